"""Backup directory inventory and rotation.

Usage:
    from db_dumper.store import BackupStore, BackupArtifact
"""

from db_dumper.store.manager import BACKUP_EXTENSIONS, BackupStore
from db_dumper.store.models import BackupArtifact

__all__ = [
    "BACKUP_EXTENSIONS",
    "BackupArtifact",
    "BackupStore",
]
