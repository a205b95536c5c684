"""Build stores and dumpers from a ``DumperConfig``.

Usage:
    from db_dumper.config.loader import load_dumper_config
    from db_dumper.factory import create_dumper

    config = load_dumper_config()
    dumper = create_dumper(config)
    dumper.dump_and_rotate(config.keep, optimize=config.optimize)
"""

from db_dumper.config.models import DumperConfig
from db_dumper.dumper.filename import FilenameFormatter
from db_dumper.dumper.runner import DumpRunner
from db_dumper.store.manager import BackupStore


def create_store(config: DumperConfig) -> BackupStore:
    """Create the ``BackupStore`` for ``config.backup_dir``.

    Raises:
        ConfigurationError: If the directory is unusable.
    """
    return BackupStore(config.backup_dir)


def create_dumper(
    config: DumperConfig,
    filename_formatter: FilenameFormatter | None = None,
) -> DumpRunner:
    """Create a ``DumpRunner`` (and its store) from configuration.

    Args:
        config: Loaded configuration.  ``mysql_dir`` is expected to already
            hold any ``MYSQL_HOME`` value (see ``load_dumper_config``).
        filename_formatter: Optional default stem strategy.

    Raises:
        ConfigurationError: If the backup directory or compressor is unusable.
    """
    return DumpRunner(
        config.database,
        create_store(config),
        compression=config.compression,
        mysql_dir=config.mysql_dir,
        filename_formatter=filename_formatter,
        timeout=config.timeout,
    )
