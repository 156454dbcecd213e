"""
External Collaborator Interface

The language-model process that classifies and generates text is supplied
by the host. The core only depends on this async interface:

    classify(text, categories, context) -> ClassificationResult
    generate(prompt)                    -> GenerationResult

Every call goes through call_with_retry(), which bounds latency with a
timeout and retries once before raising CollaboratorError. Callers decide
whether to skip the affected unit or fall back.

Usage:
    from soulsynth.synthesis.collaborators import call_with_retry

    result = await call_with_retry(
        lambda: llm.generate(prompt),
        operation="notation",
        timeout=30.0,
    )
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar, runtime_checkable

from soulsynth.errors import CollaboratorError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_RETRIES = 1


@dataclass(frozen=True)
class ClassificationResult:
    category: str | None
    confidence: float
    reasoning: str = ""


@dataclass(frozen=True)
class GenerationResult:
    text: str


@runtime_checkable
class LLMCollaborator(Protocol):
    """Host-provided classification and generation capability."""

    async def classify(
        self,
        text: str,
        categories: Sequence[str],
        context: str | None = None,
    ) -> ClassificationResult: ...

    async def generate(self, prompt: str) -> GenerationResult: ...


async def call_with_retry(
    call: Callable[[], Awaitable[T]],
    operation: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    retries: int = DEFAULT_RETRIES,
) -> T:
    """
    Await a collaborator call with a timeout, retrying on failure.

    Args:
        call: Zero-argument factory returning a fresh awaitable per attempt
        operation: Name used in logs and errors
        timeout: Seconds allowed per attempt
        retries: Extra attempts after the first failure

    Returns:
        The call's result

    Raises:
        CollaboratorError: When every attempt failed or timed out
    """
    attempts = retries + 1
    last_error: BaseException | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            last_error = e
            if isinstance(e, asyncio.TimeoutError):
                reason = f"timed out after {timeout:.1f}s"
            else:
                reason = str(e) or type(e).__name__
            logger.warning(f"{operation} attempt {attempt}/{attempts} failed: {reason}")

    raise CollaboratorError(operation, attempts, last_error)


__all__ = [
    "ClassificationResult",
    "DEFAULT_RETRIES",
    "DEFAULT_TIMEOUT_SECONDS",
    "GenerationResult",
    "LLMCollaborator",
    "call_with_retry",
]
