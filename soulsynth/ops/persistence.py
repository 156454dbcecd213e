"""
Persistence Layer for Synthesis Artifacts

Signals, principles and axioms are stored as JSON arrays under the
workspace data directory. Every write goes to a temp file in the same
directory, is fsynced, then renamed over the target, so a crash leaves
either the old file or the new one.

Usage:
    from soulsynth.ops.persistence import save_records, load_signals

    save_records(paths.signals_path, signals)
    signals = load_signals(paths.signals_path)
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, TypeVar

from soulsynth.errors import InvalidInputError, StateConsistencyError
from soulsynth.models import Axiom, Principle, Signal

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_FILE_MODE = 0o644


def write_file_atomic(path: Path, content: str | bytes) -> None:
    """Write content to path via temp file + fsync + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8") if isinstance(content, str) else content

    mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else DEFAULT_FILE_MODE

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".tmp-{path.name}-")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            os.fchmod(f.fileno(), mode)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    fsync_directory(path.parent)


def fsync_directory(directory: Path) -> None:
    """Persist directory entries (renames) where the platform allows it."""
    try:
        dir_fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)


def save_records(path: Path, records: Iterable[Any]) -> None:
    payload = [r.to_dict() for r in records]
    write_file_atomic(path, json.dumps(payload, indent=2, ensure_ascii=False))


def _load_records(path: Path, factory: Callable[[dict[str, Any]], T]) -> list[T]:
    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise StateConsistencyError(f"Corrupted artifact {path.name}: {e}") from e
    if not isinstance(raw, list):
        raise StateConsistencyError(f"Corrupted artifact {path.name}: expected a JSON array")
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise StateConsistencyError(
                f"Corrupted artifact {path.name}: item {index} is {type(item).__name__}, not an object"
            )
    try:
        return [factory(item) for item in raw]
    except (AttributeError, InvalidInputError, KeyError, TypeError, ValueError) as e:
        raise StateConsistencyError(f"Corrupted artifact {path.name}: {e}") from e


def load_signals(path: Path) -> list[Signal]:
    return _load_records(path, Signal.from_dict)


def load_principles(path: Path) -> list[Principle]:
    return _load_records(path, Principle.from_dict)


def load_axioms(path: Path) -> list[Axiom]:
    return _load_records(path, Axiom.from_dict)


def read_signal_file(path: Path) -> list[Signal]:
    """
    Read extraction-collaborator output (a JSON array of signal records).

    Raises:
        InvalidInputError: If the file is missing or malformed
    """
    if not path.exists():
        raise InvalidInputError(f"Signals file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Signals file is not valid JSON: {e}") from e
    if not isinstance(raw, list):
        raise InvalidInputError("Signals file must contain a JSON array")
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise InvalidInputError(f"Signal {index} must be a JSON object, got {type(item).__name__}")
    return [Signal.from_dict(item) for item in raw]


__all__ = [
    "fsync_directory",
    "load_axioms",
    "load_principles",
    "load_signals",
    "read_signal_file",
    "save_records",
    "write_file_atomic",
]
