"""
Optional git commit of the rendered document.

Auto-commit is a convenience: any failure (not a repository, git missing,
nothing to commit) is logged and reported as False, never raised.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30


def _git(args: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=GIT_TIMEOUT_SECONDS,
    )


def is_git_repo(directory: Path) -> bool:
    try:
        result = _git(["rev-parse", "--is-inside-work-tree"], directory)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


def commit_document(document_path: Path, message: str) -> bool:
    """
    Stage and commit a single file.

    Returns:
        True if a commit was created
    """
    cwd = document_path.parent
    if not is_git_repo(cwd):
        logger.info(f"Skipping auto-commit: {cwd} is not a git repository")
        return False

    try:
        added = _git(["add", "--", document_path.name], cwd)
        if added.returncode != 0:
            logger.warning(f"git add failed: {added.stderr.strip()}")
            return False

        committed = _git(["commit", "-m", message, "--", document_path.name], cwd)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Auto-commit failed: {e}")
        return False

    if committed.returncode != 0:
        detail = committed.stderr.strip() or committed.stdout.strip()
        logger.warning(f"git commit failed: {detail}")
        return False

    logger.info(f"Committed {document_path.name}")
    return True


__all__ = ["commit_document", "is_git_repo"]
