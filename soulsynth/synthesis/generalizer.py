"""
Principle Text Generalization

When a signal folds into a principle, the principle's display text may be
rewritten to cover both. The rewrite is a replaceable strategy: the store
works unchanged with KeepOriginalGeneralizer, and CollaboratorGeneralizer
falls back to the current text whenever the collaborator fails or returns
something unusable.
"""

from __future__ import annotations

import logging
from typing import Protocol

from soulsynth.errors import CollaboratorError
from soulsynth.models import Dimension
from soulsynth.synthesis.collaborators import (
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    LLMCollaborator,
    call_with_retry,
)

logger = logging.getLogger(__name__)

MAX_OUTPUT_LENGTH = 150

GENERALIZATION_PROMPT = """Two observations about the same person express one underlying principle.
Rewrite them as a single short, abstract principle statement (under 150 characters).

Dimension: {dimension}
Current principle: {current}
New observation: {new}

Respond with ONLY the principle statement."""


class TextGeneralizer(Protocol):
    async def generalize(self, current_text: str, new_text: str, dimension: Dimension) -> str: ...


class KeepOriginalGeneralizer:
    """Leaves principle text as first written."""

    async def generalize(self, current_text: str, new_text: str, dimension: Dimension) -> str:
        return current_text


def _validate(text: str) -> str | None:
    """Return a reason when the generated text is unusable."""
    if not text:
        return "empty output"
    if len(text) > MAX_OUTPUT_LENGTH:
        return f"output too long ({len(text)} > {MAX_OUTPUT_LENGTH})"
    if "\n" in text:
        return "multi-line output"
    return None


class CollaboratorGeneralizer:
    def __init__(
        self,
        collaborator: LLMCollaborator,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retries: int = DEFAULT_RETRIES,
    ):
        self._collaborator = collaborator
        self._timeout = timeout
        self._retries = retries
        self.fallback_count = 0

    async def generalize(self, current_text: str, new_text: str, dimension: Dimension) -> str:
        prompt = GENERALIZATION_PROMPT.format(
            dimension=dimension.value, current=current_text, new=new_text
        )
        try:
            result = await call_with_retry(
                lambda: self._collaborator.generate(prompt),
                operation="generalize",
                timeout=self._timeout,
                retries=self._retries,
            )
        except CollaboratorError as e:
            self.fallback_count += 1
            logger.warning(f"[generalizer] keeping original text: {e}")
            return current_text

        text = result.text.strip().strip('"').strip()
        reason = _validate(text)
        if reason:
            self.fallback_count += 1
            logger.warning(f"[generalizer] keeping original text: {reason}")
            return current_text
        return text


__all__ = [
    "CollaboratorGeneralizer",
    "KeepOriginalGeneralizer",
    "MAX_OUTPUT_LENGTH",
    "TextGeneralizer",
]
