"""Recovery strategies and the retry driver shared by file and command code.

A :class:`RecoveryContext` is built per logical operation and hands out its
strategies strictly in the order they were added.  :func:`run_with_recovery`
drives an operation against such a context until it succeeds or the context
yields a terminal strategy.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar, Union

logger = logging.getLogger("pyhyprconfig.recovery")

T = TypeVar("T")


@dataclass(frozen=True)
class Retry:
    max_attempts: int
    base_delay_ms: int


@dataclass(frozen=True)
class Fallback:
    description: str


@dataclass(frozen=True)
class UserIntervention:
    message: str


@dataclass(frozen=True)
class Skip:
    reason: str


@dataclass(frozen=True)
class Abort:
    pass


ABORT = Abort()

RecoveryStrategy = Union[Retry, Fallback, UserIntervention, Skip, Abort]


class Backoff(Enum):
    """Delay growth between retry attempts."""

    CONSTANT = "constant"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"

    def delay_ms(self, base_delay_ms: int, attempt: int) -> int:
        """Return the delay before retry number *attempt* (1-based)."""
        if attempt < 1:
            raise ValueError("attempt numbers start at 1")
        if self is Backoff.CONSTANT:
            return base_delay_ms
        if self is Backoff.LINEAR:
            return base_delay_ms * attempt
        return base_delay_ms * 2 ** (attempt - 1)


class RecoveryContext:
    """Ordered list of strategies for one logical operation."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self.strategies: list[RecoveryStrategy] = []
        self.attempt_count = 0

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return (
            f"RecoveryContext({self.operation!r}, strategies={self.strategies!r}, "
            f"attempt_count={self.attempt_count})"
        )

    def with_retry(self, max_attempts: int, base_delay_ms: int) -> RecoveryContext:
        self.strategies.append(Retry(max_attempts, base_delay_ms))
        return self

    def with_fallback(self, description: str) -> RecoveryContext:
        self.strategies.append(Fallback(description))
        return self

    def with_user_intervention(self, message: str) -> RecoveryContext:
        self.strategies.append(UserIntervention(message))
        return self

    def with_skip(self, reason: str) -> RecoveryContext:
        self.strategies.append(Skip(reason))
        return self

    @property
    def exhausted(self) -> bool:
        return self.attempt_count >= len(self.strategies)

    def next_strategy(self) -> RecoveryStrategy:
        """Return the next strategy, or :data:`ABORT` once the list is used up."""
        if self.exhausted:
            return ABORT
        strategy = self.strategies[self.attempt_count]
        self.attempt_count += 1
        return strategy


def _retryable(error: Exception) -> bool:
    return bool(getattr(error, "is_retryable", False))


async def run_with_recovery(
    context: RecoveryContext,
    attempt: Callable[[], Awaitable[T]],
    *,
    backoff: Backoff = Backoff.LINEAR,
    retry_if: Callable[[Exception], bool] = _retryable,
    fallback: Callable[[Exception], T] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T | None:
    """Run *attempt* until it succeeds or *context* gives up.

    Only :class:`~pyhyprconfig.errors.HyprConfigError` failures are handled;
    anything else propagates immediately.  A ``Retry`` strategy re-runs the
    attempt up to ``max_attempts`` more times while *retry_if* accepts the
    error, sleeping according to *backoff* in between; once spent, the next
    strategy is consulted.  ``Fallback`` returns ``fallback(error)`` (which may
    itself re-raise to decline), ``Skip`` returns ``None`` and
    ``UserIntervention``/``Abort`` re-raise the last error.
    """
    from .errors import HyprConfigError

    strategy: RecoveryStrategy | None = None
    retries = 0
    while True:
        try:
            return await attempt()
        except HyprConfigError as exc:
            error = exc

        while True:
            if (
                isinstance(strategy, Retry)
                and retries < strategy.max_attempts
                and retry_if(error)
            ):
                retries += 1
                delay = backoff.delay_ms(strategy.base_delay_ms, retries)
                logger.warning(
                    "retrying %s (attempt %d/%d) after %dms: %s",
                    context.operation,
                    retries,
                    strategy.max_attempts,
                    delay,
                    error,
                )
                await sleep(delay / 1000)
                break

            strategy = context.next_strategy()
            retries = 0
            if isinstance(strategy, Retry):
                continue
            if isinstance(strategy, Fallback):
                if fallback is None:
                    raise error
                logger.info("%s: using fallback (%s)", context.operation, strategy.description)
                return fallback(error)
            if isinstance(strategy, Skip):
                logger.info("%s: skipped (%s)", context.operation, strategy.reason)
                return None
            if isinstance(strategy, UserIntervention):
                logger.warning("%s: %s", context.operation, strategy.message)
                error.add_note(strategy.message)
            raise error
