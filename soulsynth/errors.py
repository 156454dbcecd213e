"""
Error taxonomy for the synthesis pipeline.

Validation errors reject malformed input before any processing. Resolution
errors (missing backups) are raised to the caller explicitly. Collaborator
errors are raised only after the retry budget is exhausted, and callers
skip the affected unit. State-consistency errors halt a run and carry a
recommendation for the operator.
"""

from __future__ import annotations


class SynthesisError(Exception):
    """Base class for all soulsynth errors."""


class InvalidInputError(SynthesisError, ValueError):
    """Malformed input structure (empty candidate, non-sequence, bad config)."""


class DimensionMismatchError(InvalidInputError):
    """Two compared similarity vectors differ in length."""

    def __init__(self, left: int, right: int):
        super().__init__(f"Vector dimension mismatch: {left} vs {right}")
        self.left = left
        self.right = right


class CollaboratorError(SynthesisError):
    """An external classification/generation call failed or timed out."""

    def __init__(self, operation: str, attempts: int, cause: BaseException | None = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"{operation} failed after {attempts} attempt(s){detail}")
        self.operation = operation
        self.attempts = attempts
        self.cause = cause


class BackupNotFoundError(SynthesisError, LookupError):
    """The requested backup id does not exist."""

    def __init__(self, backup_id: str):
        super().__init__(f"Backup not found: {backup_id}")
        self.backup_id = backup_id


class EmptyBackupHistoryError(SynthesisError, LookupError):
    """'latest' was requested but no backups exist."""

    def __init__(self):
        super().__init__("No backups available to restore")


class AxiomNotFoundError(SynthesisError, LookupError):
    """No axiom matches the requested id or symbol."""

    def __init__(self, key: str):
        super().__init__(f"Axiom not found: {key}")
        self.key = key


class StateConsistencyError(SynthesisError):
    """On-disk state failed a sanity check; the run must not proceed."""

    def __init__(self, message: str, recommendation: str = "Run `soulsynth rollback` to restore the last good document."):
        super().__init__(message)
        self.recommendation = recommendation


__all__ = [
    "AxiomNotFoundError",
    "BackupNotFoundError",
    "CollaboratorError",
    "DimensionMismatchError",
    "EmptyBackupHistoryError",
    "InvalidInputError",
    "StateConsistencyError",
    "SynthesisError",
]
