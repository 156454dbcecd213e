"""
Canonical Notation Generation

Produces at most one alternate rendering of an axiom alongside the
always-kept native text. Formats:

    labeled     - "誠: honesty over performance"
    math        - "誠: honesty > performance"
    math-emoji  - "💎 誠: honesty > performance"

A failed or empty generation yields a native-only CanonicalForm; it never
raises, so one axiom's notation cannot block the others.
"""

from __future__ import annotations

import logging

from soulsynth.errors import CollaboratorError
from soulsynth.models import CanonicalForm, Dimension, NotationFormat
from soulsynth.synthesis.collaborators import (
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    LLMCollaborator,
    call_with_retry,
)

logger = logging.getLogger(__name__)

_FORMAT_INSTRUCTIONS = {
    NotationFormat.LABELED: (
        "A single CJK character anchor that captures the essence, then a colon and a 2-4 word label.\n"
        'Example: "誠: honesty over performance"'
    ),
    NotationFormat.MATH: (
        "A single CJK character anchor, then a colon and mathematical notation for the relationship "
        '("A > B" for priority, "¬X" for negation).\n'
        'Example: "誠: honesty > performance"'
    ),
    NotationFormat.MATH_EMOJI: (
        "An emoji indicator, a single CJK character anchor, then a colon and mathematical notation "
        "for the relationship.\n"
        'Example: "💎 誠: honesty > performance"'
    ),
}

NOTATION_PROMPT = """Express this principle in compact notation.

Format: {instructions}

Dimension: {dimension}
Principle: "{text}"

If there is no clear relationship, use a brief 2-3 word summary after the colon.
Respond with ONLY the formatted notation, nothing else."""


class NotationGenerator:
    def __init__(
        self,
        collaborator: LLMCollaborator | None,
        fmt: NotationFormat = NotationFormat.NATIVE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retries: int = DEFAULT_RETRIES,
    ):
        self._collaborator = collaborator
        self.format = fmt
        self._timeout = timeout
        self._retries = retries

    @property
    def enabled(self) -> bool:
        return self.format is not NotationFormat.NATIVE and self._collaborator is not None

    async def canonical_for(self, text: str, dimension: Dimension) -> CanonicalForm:
        native = CanonicalForm(native=text)
        if not self.enabled:
            return native

        prompt = NOTATION_PROMPT.format(
            instructions=_FORMAT_INSTRUCTIONS[self.format],
            dimension=dimension.value,
            text=text,
        )
        try:
            result = await call_with_retry(
                lambda: self._collaborator.generate(prompt),
                operation="notation",
                timeout=self._timeout,
                retries=self._retries,
            )
        except CollaboratorError as e:
            logger.warning(f"[notation] falling back to native text: {e}")
            return native

        lines = result.text.strip().strip('"').strip().splitlines()
        notated = lines[0].strip() if lines else ""
        if not notated:
            logger.warning("[notation] empty notation, falling back to native text")
            return native
        return CanonicalForm(native=text, notated=notated, notation=self.format)


__all__ = ["NOTATION_PROMPT", "NotationGenerator"]
