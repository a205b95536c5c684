"""Pydantic models for connection and backup configuration."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator


# ============================================================================
# Connection
# ============================================================================


class ConnectionConfig(BaseModel):
    """MySQL credentials passed through to the CLI binaries."""

    host: str = "localhost"
    name: str                       # database name
    user: str
    password: SecretStr = SecretStr("")


# ============================================================================
# Compression
# ============================================================================


class CompressionSetting(BaseModel):
    """Whether dumps are piped through ``bzip2`` and where to find it.

    Three variants:

    - ``disabled``: plain ``.sql`` dumps; compressed restores are rejected.
    - ``path_lookup``: ``bzip2`` is resolved from the system ``PATH``.
    - ``directory``: ``bzip2`` lives in ``directory`` and is verified
      when the dumper is constructed.
    """

    model_config = ConfigDict(frozen=True)

    mode: Literal["disabled", "path_lookup", "directory"] = "disabled"
    directory: Path | None = None

    @model_validator(mode="after")
    def _check_directory(self) -> "CompressionSetting":
        if self.mode == "directory" and self.directory is None:
            raise ValueError("directory is required when mode is 'directory'")
        if self.mode != "directory" and self.directory is not None:
            raise ValueError(f"directory is not allowed when mode is '{self.mode}'")
        return self

    @classmethod
    def disabled(cls) -> "CompressionSetting":
        return cls(mode="disabled")

    @classmethod
    def by_path_lookup(cls) -> "CompressionSetting":
        return cls(mode="path_lookup")

    @classmethod
    def at_directory(cls, directory: str | Path) -> "CompressionSetting":
        return cls(mode="directory", directory=Path(directory))

    @classmethod
    def from_option(cls, value: bool | str | Path | None) -> "CompressionSetting":
        """Build a setting from the legacy ``bool | path`` option.

        ``False``/``None``/``""`` disable compression, ``True`` uses the
        system ``PATH``, and a string is taken as the compressor directory.
        """
        if value is True:
            return cls.by_path_lookup()
        if not value:
            return cls.disabled()
        return cls.at_directory(value)

    @property
    def enabled(self) -> bool:
        return self.mode != "disabled"


# ============================================================================
# Complete configuration
# ============================================================================


class DumperConfig(BaseModel):
    """Complete backup configuration, usually loaded from ``dumper.toml``."""

    database: ConnectionConfig
    backup_dir: Path
    compression: CompressionSetting = Field(default_factory=CompressionSetting.disabled)
    keep: int = 1                       # backups left by rotation
    optimize: bool = True               # run mysqlcheck --optimize before dumping
    mysql_dir: Path | None = None       # directory holding mysql/mysqldump/mysqlcheck
    timeout: float | None = Field(default=None, gt=0)
