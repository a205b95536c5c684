"""Dump and restore a MySQL database through its CLI binaries.

Each call is one synchronous pipeline: optimize (optional) -> build
commands -> execute -> check exit codes.  A failure at any step aborts the
call with a typed error; no state is kept between calls.

Usage:
    from db_dumper.config.models import CompressionSetting, ConnectionConfig
    from db_dumper.dumper.runner import DumpRunner
    from db_dumper.store.manager import BackupStore

    dumper = DumpRunner(
        ConnectionConfig(host="localhost", name="shop", user="backup", password="secret"),
        BackupStore("/var/backups/shop"),
        compression=CompressionSetting.by_path_lookup(),
    )

    filename = dumper.dump()            # 'localhost-shop-20260118_031500.sql.bz2'
    dumper.restore(filename)
"""

import logging
import os
from pathlib import Path

from db_dumper.config.models import CompressionSetting, ConnectionConfig
from db_dumper.dumper.commands import (
    compressor_command,
    executable_name,
    is_executable,
    mysql_command,
    run_pipeline,
)
from db_dumper.dumper.filename import FilenameFormatter, build_filename, is_compressed
from db_dumper.errors import (
    BackupIOError,
    BackupNotFoundError,
    ConfigurationError,
    InvalidArgumentError,
)
from db_dumper.store.manager import BackupStore

logger = logging.getLogger(__name__)

# Dumps are written under this suffix and renamed once complete.  The store
# does not recognize it, so listings and rotation never see a partial file.
PARTIAL_SUFFIX = ".part"


class DumpRunner:
    """Creates and restores dumps of one database inside one ``BackupStore``.

    Args:
        connection: Database credentials.
        store: Backup directory the dumps are written to and read from.
        compression: Whether dumps are piped through ``bzip2``.
        mysql_dir: Directory holding ``mysqldump``/``mysql``/``mysqlcheck``.
            ``None`` resolves them from ``PATH``.
        filename_formatter: Default stem strategy for ``dump()``.
        timeout: Seconds allowed per pipeline.  ``None`` runs to completion.

    Raises:
        ConfigurationError: If compression points at a directory without an
            executable ``bzip2``.
    """

    def __init__(
        self,
        connection: ConnectionConfig,
        store: BackupStore,
        compression: CompressionSetting | None = None,
        mysql_dir: Path | None = None,
        filename_formatter: FilenameFormatter | None = None,
        timeout: float | None = None,
    ):
        self.connection = connection
        self.store = store
        self.compression = compression or CompressionSetting.disabled()
        self.mysql_dir = Path(mysql_dir) if mysql_dir else None
        self.filename_formatter = filename_formatter
        self.timeout = timeout

        if self.compression.mode == "directory":
            bzip2 = self.compression.directory / executable_name("bzip2")
            if not is_executable(bzip2):
                raise ConfigurationError(
                    f"The {bzip2} is not executable. "
                    f"Set proper path to bzip2 compressor directory or disable compression."
                )

    def dump(
        self,
        optimize: bool = True,
        name_override: FilenameFormatter | None = None,
    ) -> str:
        """Dump the database into a new backup file.

        Args:
            optimize: Optimize all tables (``mysqlcheck --optimize``) first.
            name_override: Stem strategy for this dump only.  Receives the
                host and database name and returns the name without extension.

        Returns:
            Filename of the backup, relative to the store directory.

        Raises:
            ProcessError: If optimizing, dumping or compressing fails.  The
                partial output is removed and an existing backup with the
                same name is left untouched.
            BackupIOError: If the backup file cannot be created in the store.
        """
        if optimize:
            self.optimize()

        filename = build_filename(
            self.connection.host,
            self.connection.name,
            formatter=name_override or self.filename_formatter,
            compressed=self.compression.enabled,
        )

        stages = [self._mysql("mysqldump")]
        if self.compression.enabled:
            stages.append(compressor_command(self.compression))

        path = self.store.resolve_path(filename)
        partial = path + PARTIAL_SUFFIX
        logger.info(f"Dumping database {self.connection.name} to {filename}")
        try:
            out = open(partial, "wb")
        except OSError as e:
            raise BackupIOError(
                filename, f'The backup file "{filename}" could not be created: {e.strerror or e}'
            ) from e

        try:
            with out:
                run_pipeline(stages, stdout=out, timeout=self.timeout)
            try:
                os.replace(partial, path)
            except OSError as e:
                raise BackupIOError(
                    filename, f'The backup file "{filename}" could not be saved: {e.strerror or e}'
                ) from e
        except BaseException:
            if os.path.exists(partial):
                os.remove(partial)
                logger.debug(f"Removed incomplete backup {filename}{PARTIAL_SUFFIX}")
            raise

        return filename

    def restore(self, filename: str) -> None:
        """Restore (import) the database from a backup file.

        Args:
            filename: Backup filename relative to the store directory.
                Files ending in ``.bz2`` are decompressed on the way in.

        Raises:
            InvalidArgumentError: If *filename* is empty.
            BackupNotFoundError: If the backup file does not exist.
            ConfigurationError: If the backup is compressed and compression
                is disabled.
            ProcessError: If decompressing or importing fails.
        """
        if not filename:
            raise InvalidArgumentError("Missing filename argument.")

        path = self.store.resolve_path(filename)
        if not os.path.isfile(path):
            raise BackupNotFoundError(filename)

        stages = [self._mysql("mysql")]
        if is_compressed(filename):
            if not self.compression.enabled:
                raise ConfigurationError(
                    f'Cannot restore compressed backup "{filename}": '
                    f"the bzip2 compressor is not configured."
                )
            stages.insert(0, compressor_command(self.compression, decompress=True))

        logger.info(f"Restoring database {self.connection.name} from {filename}")
        with open(path, "rb") as source:
            run_pipeline(stages, stdin=source, timeout=self.timeout)

    def optimize(self) -> None:
        """Optimize all tables in the database.

        Raises:
            ProcessError: If ``mysqlcheck`` fails.
        """
        logger.debug(f"Optimizing tables of {self.connection.name}")
        run_pipeline([self._mysql("mysqlcheck", "--optimize")], timeout=self.timeout)

    def dump_and_rotate(
        self,
        keep: int = 1,
        optimize: bool = True,
        name_override: FilenameFormatter | None = None,
    ) -> str:
        """Dump, then remove all but the newest *keep* backups.

        Rotation only runs after a successful dump.

        Returns:
            Filename of the new backup.
        """
        filename = self.dump(optimize=optimize, name_override=name_override)
        self.store.remove_old(keep)
        return filename

    def _mysql(self, program: str, *options: str) -> list[str]:
        return mysql_command(program, self.connection, self.mysql_dir, *options)
