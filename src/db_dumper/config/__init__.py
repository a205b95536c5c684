"""Configuration models and TOML loader."""

from db_dumper.config.loader import load_dumper_config, mysql_home_from_env
from db_dumper.config.models import CompressionSetting, ConnectionConfig, DumperConfig

__all__ = [
    "load_dumper_config",
    "mysql_home_from_env",
    "CompressionSetting",
    "ConnectionConfig",
    "DumperConfig",
]
