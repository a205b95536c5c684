"""db-dumper: MySQL dump/restore with a managed, rotated backup directory.

Creates (optionally bzip2-compressed) dumps with the MySQL CLI binaries,
stores them in one directory, lists them newest first and prunes all but
the newest N.

Usage:
    from db_dumper import BackupStore, DumpRunner, ConnectionConfig, CompressionSetting
    from db_dumper import load_dumper_config, create_dumper
    from db_dumper import DumperError, ProcessError
"""

__version__ = "0.1.0"

# Config
from db_dumper.config.loader import load_dumper_config, mysql_home_from_env
from db_dumper.config.models import CompressionSetting, ConnectionConfig, DumperConfig

# Errors
from db_dumper.errors import (
    BackupIOError,
    BackupNotFoundError,
    ConfigurationError,
    DumperError,
    InvalidArgumentError,
    ProcessError,
)

# Store
from db_dumper.store.manager import BackupStore
from db_dumper.store.models import BackupArtifact

# Dumper
from db_dumper.dumper.filename import FilenameFormatter, build_filename
from db_dumper.dumper.runner import DumpRunner

# Factory
from db_dumper.factory import create_dumper, create_store

__all__ = [
    # Config
    "load_dumper_config",
    "mysql_home_from_env",
    "CompressionSetting",
    "ConnectionConfig",
    "DumperConfig",
    # Errors
    "DumperError",
    "ConfigurationError",
    "InvalidArgumentError",
    "BackupNotFoundError",
    "BackupIOError",
    "ProcessError",
    # Store
    "BackupStore",
    "BackupArtifact",
    # Dumper
    "DumpRunner",
    "FilenameFormatter",
    "build_filename",
    # Factory
    "create_dumper",
    "create_store",
]
