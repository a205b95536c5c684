"""Backup directory inventory and retention.

The directory listing IS the inventory: there is no manifest or index file.
Any file whose final extension is ``sql``, ``bz2``, ``gz`` or ``zip`` is a
backup artifact, at any depth below the store directory.

Usage:
    from db_dumper.store.manager import BackupStore

    store = BackupStore("/var/backups/shop")
    for artifact in store.list_artifacts():
        print(artifact.filename, artifact.created_at)

    store.remove_old(keep=5)
"""

import logging
import os
from collections.abc import Callable
from datetime import datetime
from functools import cmp_to_key
from pathlib import Path

from db_dumper.errors import BackupIOError, BackupNotFoundError, ConfigurationError
from db_dumper.store.models import BackupArtifact

logger = logging.getLogger(__name__)

BACKUP_EXTENSIONS = frozenset({"sql", "bz2", "gz", "zip"})

ArtifactComparator = Callable[[BackupArtifact, BackupArtifact], int]


def file_extension(name: str) -> str:
    """Return the final extension of *name* without the dot (``""`` if none)."""
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1]


class BackupStore:
    """Directory-scoped backup inventory with retain-N rotation.

    Args:
        directory: Backup directory.  Created (with parents) when missing.

    Raises:
        ConfigurationError: If the directory cannot be created, is not a
            directory, or is not writable.
    """

    def __init__(self, directory: str | Path):
        try:
            os.makedirs(directory, mode=0o777, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f'Backup directory with a path "{directory}" could not be created: {e}'
            ) from e

        if not os.path.isdir(directory):
            raise ConfigurationError(f'Backup path "{directory}" is not a directory.')
        if not os.access(directory, os.W_OK):
            raise ConfigurationError(f'Backup directory "{directory}" is not writable.')

        self._backup_dir = os.path.realpath(directory)
        logger.debug(f"Backup store at {self._backup_dir}")

    @property
    def backup_dir(self) -> str:
        """Canonical absolute path of the backup directory."""
        return self._backup_dir

    def list_artifacts(self, sort: ArtifactComparator | None = None) -> list[BackupArtifact]:
        """List backup files, by default sorted from newest to oldest.

        Args:
            sort: Optional comparator ``(a, b) -> int`` (negative when *a*
                goes first).  Applied with a stable sort.

        Returns:
            List of ``BackupArtifact``.  Empty list if there are no backups.
        """
        root = Path(self._backup_dir)
        artifacts = []

        for entry in sorted(root.rglob("*")):
            if file_extension(entry.name) not in BACKUP_EXTENSIONS:
                continue
            try:
                if not entry.is_file():
                    continue
                stat = entry.stat()
            except FileNotFoundError:
                # Removed while scanning
                continue

            filename = str(entry.relative_to(root))
            artifacts.append(BackupArtifact(
                filename=filename,
                path=self.resolve_path(filename),
                created_at=datetime.fromtimestamp(stat.st_mtime),
                size=stat.st_size,
            ))

        if sort is None:
            return sorted(artifacts, key=lambda a: a.created_at, reverse=True)
        return sorted(artifacts, key=cmp_to_key(sort))

    def get(self, filename: str) -> BackupArtifact:
        """Get a single backup by filename.

        Raises:
            BackupNotFoundError: If no such backup exists.
        """
        path = self.resolve_path(filename)
        if not os.path.isfile(path):
            raise BackupNotFoundError(filename)

        stat = os.stat(path)
        return BackupArtifact(
            filename=filename,
            path=path,
            created_at=datetime.fromtimestamp(stat.st_mtime),
            size=stat.st_size,
        )

    def latest(self) -> BackupArtifact | None:
        """Newest backup, or ``None`` when the store is empty."""
        artifacts = self.list_artifacts()
        return artifacts[0] if artifacts else None

    def resolve_path(self, filename: str) -> str:
        """Full path to a backup file.  Existence is not checked."""
        return self._backup_dir + os.sep + filename

    def remove(self, filename: str) -> None:
        """Remove a backup file.

        Args:
            filename: Path of the file relative to the backup directory.

        Raises:
            BackupNotFoundError: If the file does not exist.
            BackupIOError: If the file could not be removed.
        """
        path = self.resolve_path(filename)
        if not os.path.exists(path):
            raise BackupNotFoundError(filename)

        try:
            os.remove(path)
        except OSError as e:
            raise BackupIOError(
                filename, f'The backup file "{filename}" could not be removed: {e}'
            ) from e

        logger.info(f"Removed backup {filename}")

    def remove_old(self, keep: int = 1) -> list[str]:
        """Remove backups but leave the newest *keep*.

        Stops at the first failed removal; older backups after it are left
        in place and the error propagates.

        Args:
            keep: Number of newest backups to leave.  ``keep <= 0`` removes all.

        Returns:
            Filenames of the removed backups, newest first.
        """
        removed = []
        for artifact in self.list_artifacts()[max(keep, 0):]:
            self.remove(artifact.filename)
            removed.append(artifact.filename)

        if removed:
            logger.info(f"Rotation kept {max(keep, 0)} backup(s), removed {len(removed)}")
        return removed
