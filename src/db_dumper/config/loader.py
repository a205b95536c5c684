"""Configuration loading from TOML and the environment.

The environment is read here, once, and injected into the dumper as an
explicit ``mysql_dir``. Nothing else in the library looks at ``os.environ``.

Usage:
    from db_dumper.config.loader import load_dumper_config

    config = load_dumper_config(Path("dumper.toml"))

Example ``dumper.toml``::

    [database]
    host = "localhost"
    name = "shop"
    user = "backup"
    password = "secret"

    [backup]
    directory = "/var/backups/shop"
    keep = 5
    compression = true          # or a directory holding bzip2
"""

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from db_dumper.config.models import CompressionSetting, ConnectionConfig, DumperConfig

MYSQL_HOME_VAR = "MYSQL_HOME"


def mysql_home_from_env(environ: Mapping[str, str] | None = None) -> Path | None:
    """Return the directory named by ``MYSQL_HOME``, if set and non-empty."""
    if environ is None:
        environ = os.environ
    value = environ.get(MYSQL_HOME_VAR, "").strip()
    return Path(value) if value else None


def load_dumper_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> DumperConfig:
    """Load backup configuration from a TOML file.

    Args:
        config_path: Path to the TOML file (default: ``./dumper.toml``).
        environ: Environment mapping used for ``MYSQL_HOME``
            (default: ``os.environ``).  ``[backup] mysql_dir`` in the file
            takes precedence over the environment.

    Returns:
        DumperConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "dumper.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Dumper config not found: {config_path}\n"
            f"Create it with [database] and [backup] sections."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    database = data.get("database")
    backup = data.get("backup", {})
    if not isinstance(database, dict):
        raise ValueError(f"Missing [database] section in {config_path}")
    if "directory" not in backup:
        raise ValueError(f"Missing 'directory' in [backup] section of {config_path}")

    # Relative backup directories are resolved against the config file
    backup_dir = Path(backup["directory"])
    if not backup_dir.is_absolute():
        backup_dir = config_path.parent / backup_dir

    mysql_dir = backup.get("mysql_dir")
    mysql_dir = Path(mysql_dir) if mysql_dir else mysql_home_from_env(environ)

    try:
        return DumperConfig(
            database=ConnectionConfig(**database),
            backup_dir=backup_dir,
            compression=CompressionSetting.from_option(backup.get("compression", False)),
            keep=backup.get("keep", 1),
            optimize=backup.get("optimize", True),
            mysql_dir=mysql_dir,
            timeout=backup.get("timeout"),
        )
    except ValidationError as e:
        raise ValueError(f"Invalid dumper config in {config_path}: {e}") from e
