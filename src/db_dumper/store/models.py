"""Backup artifact model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class BackupArtifact(BaseModel):
    """One stored backup file."""

    model_config = ConfigDict(frozen=True)

    filename: str           # relative to the store directory, extensions included
    path: str               # absolute path
    created_at: datetime
    size: int = 0           # bytes
