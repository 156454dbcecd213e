"""
Document backups and rollback.

Every write of the live document is preceded by a durable snapshot:

    .soulsynth/backups/2026-02-07T10-30-00-123456Z/SOUL.md

Backup ids are UTC ISO-8601 timestamps with filesystem-safe separators, so
lexicographic order is chronological and "latest" is simply the maximum id.
Snapshots are read-only once written; pruning them is left to an external
retention policy.

Usage:
    from soulsynth.ops.backup import publish_document, rollback, list_backups

    backup_id = publish_document(paths.document_path, content, paths.backup_dir)
    restored = rollback(paths.backup_dir, paths.document_path, "latest")
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from soulsynth.errors import BackupNotFoundError, EmptyBackupHistoryError, InvalidInputError
from soulsynth.models import utcnow
from soulsynth.ops.persistence import fsync_directory, write_file_atomic

logger = logging.getLogger(__name__)

LATEST = "latest"
BACKUP_ID_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"
READ_ONLY = stat.S_IRUSR | stat.S_IRGRP | stat.S_IROTH


@dataclass(frozen=True)
class Backup:
    id: str
    path: Path
    size: int

    @property
    def created_at(self) -> datetime | None:
        stamp = self.id.split("_", 1)[0]
        try:
            return datetime.strptime(stamp, BACKUP_ID_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        created = self.created_at
        return {
            "id": self.id,
            "path": str(self.path),
            "size": self.size,
            "created_at": created.isoformat() if created else None,
        }


def new_backup_id(now: datetime | None = None) -> str:
    return (now or utcnow()).astimezone(timezone.utc).strftime(BACKUP_ID_FORMAT)


def _reserve_backup_dir(backup_dir: Path) -> tuple[str, Path]:
    """Create a fresh, uniquely named snapshot directory."""
    backup_dir.mkdir(parents=True, exist_ok=True)
    base = new_backup_id()
    backup_id = base
    suffix = 0
    while True:
        target = backup_dir / backup_id
        try:
            target.mkdir()
            return backup_id, target
        except FileExistsError:
            suffix += 1
            backup_id = f"{base}_{suffix}"


def backup_document(document_path: Path, backup_dir: Path) -> str | None:
    """
    Snapshot the live document.

    Returns:
        The new backup id, or None when there is no document yet

    The snapshot is fsynced (file and directories) before returning.
    """
    if not document_path.exists():
        logger.debug(f"Skipping backup of {document_path} (does not exist)")
        return None

    backup_id, target_dir = _reserve_backup_dir(backup_dir)
    dest = target_dir / document_path.name

    try:
        with open(document_path, "rb") as f_in, open(dest, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
            f_out.flush()
            os.fsync(f_out.fileno())
        os.chmod(dest, READ_ONLY)
    except BaseException:
        # No half-written snapshot may be listed as a backup
        shutil.rmtree(target_dir, ignore_errors=True)
        raise
    fsync_directory(target_dir)
    fsync_directory(backup_dir)

    logger.info(f"Backed up {document_path.name} -> {backup_id}")
    return backup_id


def publish_document(document_path: Path, content: str, backup_dir: Path) -> str | None:
    """
    Replace the live document, snapshotting the current one first.

    This is the only write path for the live document; the backup has
    completed durably before the new content touches disk.

    Returns:
        Backup id of the previous document (None on the very first write)
    """
    backup_id = backup_document(document_path, backup_dir)
    write_file_atomic(document_path, content)
    logger.info(f"Wrote {document_path.name} ({len(content)} chars)")
    return backup_id


def list_backups(backup_dir: Path, document_name: str | None = None) -> list[Backup]:
    """All snapshots, newest first."""
    if not backup_dir.exists():
        return []

    backups: list[Backup] = []
    for entry in backup_dir.iterdir():
        if not entry.is_dir():
            continue
        snapshot = _snapshot_file(entry, document_name)
        if snapshot is None:
            continue
        backups.append(Backup(id=entry.name, path=snapshot, size=snapshot.stat().st_size))

    backups.sort(key=lambda b: b.id, reverse=True)
    return backups


def _snapshot_file(entry: Path, document_name: str | None) -> Path | None:
    if document_name:
        candidate = entry / document_name
        return candidate if candidate.is_file() else None
    files = sorted(p for p in entry.iterdir() if p.is_file())
    return files[0] if files else None


def resolve_backup(backup_dir: Path, backup_id: str, document_name: str | None = None) -> Backup:
    """
    Find a backup by id, or the newest one for "latest".

    Raises:
        EmptyBackupHistoryError: "latest" requested and no backups exist
        BackupNotFoundError: Unknown id
    """
    if not backup_id or not backup_id.strip():
        raise InvalidInputError("Backup id must be a non-empty string")

    backups = list_backups(backup_dir, document_name)
    if backup_id == LATEST:
        if not backups:
            raise EmptyBackupHistoryError()
        return backups[0]

    for backup in backups:
        if backup.id == backup_id:
            return backup
    raise BackupNotFoundError(backup_id)


def rollback(backup_dir: Path, document_path: Path, backup_id: str = LATEST) -> str:
    """
    Restore the live document from a snapshot.

    The restore itself is an atomic replace. The snapshot is left in place.

    Returns:
        The restored document content
    """
    backup = resolve_backup(backup_dir, backup_id, document_path.name)
    data = backup.path.read_bytes()
    write_file_atomic(document_path, data)
    logger.info(f"Restored {document_path.name} from backup {backup.id}")
    return data.decode("utf-8")


def describe_age(backup: Backup, now: datetime | None = None) -> str:
    """Human-readable age, e.g. '3 hours ago'."""
    created = backup.created_at
    if created is None:
        return "unknown age"

    seconds = int(((now or utcnow()) - created).total_seconds())
    if seconds < 60:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            value = seconds // size
            return f"{value} {unit}{'s' if value != 1 else ''} ago"
    return "just now"


__all__ = [
    "Backup",
    "LATEST",
    "backup_document",
    "describe_age",
    "list_backups",
    "new_backup_id",
    "publish_document",
    "resolve_backup",
    "rollback",
]
