"""Backup filename formatting.

A backup filename is ``<stem>.sql`` (``<stem>.sql.bz2`` when compressed).
The stem defaults to ``<host>-<database>-<YYYYmmdd_HHMMSS>``; callers can
plug in any ``FilenameFormatter`` to choose their own.

Usage:
    from db_dumper.dumper.filename import build_filename

    build_filename("localhost", "shop")
    # 'localhost-shop-20260118_031500.sql'

    build_filename("localhost", "shop", lambda host, name: f"{name}-nightly")
    # 'shop-nightly.sql'
"""

from datetime import datetime
from typing import Protocol

from db_dumper.errors import InvalidArgumentError

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
SQL_EXTENSION = ".sql"
COMPRESSED_EXTENSION = ".bz2"


class FilenameFormatter(Protocol):
    """Returns a backup filename stem (no extension) for a database."""

    def __call__(self, host: str, database: str) -> str: ...


def default_stem(host: str, database: str, now: datetime | None = None) -> str:
    """``<host>-<database>-<timestamp>`` stem."""
    now = now or datetime.now()
    return f"{host}-{database}-{now.strftime(TIMESTAMP_FORMAT)}"


def build_filename(
    host: str,
    database: str,
    formatter: FilenameFormatter | None = None,
    compressed: bool = False,
    now: datetime | None = None,
) -> str:
    """Build the full backup filename.

    Args:
        host: Database host.
        database: Database name.
        formatter: Optional stem strategy.  Falls back to ``default_stem``.
        compressed: Append ``.bz2`` after ``.sql``.
        now: Timestamp for the default stem (default: current local time).

    Raises:
        InvalidArgumentError: If the formatter returns an empty stem.
    """
    if formatter is not None:
        stem = str(formatter(host, database))
    else:
        stem = default_stem(host, database, now)

    if not stem:
        raise InvalidArgumentError("Backup filename formatter returned an empty name.")

    filename = stem + SQL_EXTENSION
    if compressed:
        filename += COMPRESSED_EXTENSION
    return filename


def is_compressed(filename: str) -> bool:
    """True if *filename* names a bzip2-compressed dump (case-insensitive)."""
    return filename.lower().endswith(COMPRESSED_EXTENSION)
