"""
Bounded polling for eventually-consistent container and chain state.

Every wait in the suite (init file parsing, node health, relayer readiness,
halt detection, post-upgrade resume, transfer arrival) goes through
``Poller``: a condition is evaluated at a fixed interval until it returns a
truthy value, the deadline passes, or the attempt budget runs out.

Usage:
    poller = Poller()

    height = poller.require(
        lambda: client.height() >= 3 and client.height(),
        description="node producing blocks",
        timeout=300,
        interval=1,
    )

Exceptions listed in ``transient`` count as a miss and are remembered as the
last error. Anything else propagates immediately, and a
``ProtocolInvariantViolation`` always propagates, even when listed.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from ledger_e2e.core.exceptions import PollTimeoutError, ProtocolInvariantViolation
from ledger_e2e.core.logging import get_logger

logger = get_logger("polling")

T = TypeVar("T")


@dataclass
class PollResult(Generic[T]):
    """Outcome of a bounded poll."""

    succeeded: bool
    value: T | None
    attempts: int
    elapsed: float
    last_error: BaseException | None = None


class Poller:
    """
    Fixed-interval poll loop with an injectable clock.

    Args:
        clock: Monotonic time source in seconds
        sleep: Blocking sleep used between attempts
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._clock = clock
        self._sleep = sleep

    def poll(
        self,
        condition: Callable[[], T],
        *,
        timeout: float | None = None,
        interval: float = 1.0,
        max_attempts: int | None = None,
        transient: tuple[type[BaseException], ...] = (),
    ) -> PollResult[T]:
        """Evaluate ``condition`` until truthy or a bound is hit.

        The first attempt runs immediately; every miss except the last is
        followed by ``interval`` seconds of sleep.
        """
        if timeout is None and max_attempts is None:
            raise ValueError("poll requires a timeout or max_attempts")

        start = self._clock()
        attempts = 0
        last_error: BaseException | None = None

        while True:
            attempts += 1
            try:
                value = condition()
            except transient as e:
                if isinstance(e, ProtocolInvariantViolation):
                    raise
                last_error = e
                logger.debug(f"Poll attempt {attempts} failed: {e}")
            else:
                if value:
                    return PollResult(
                        succeeded=True,
                        value=value,
                        attempts=attempts,
                        elapsed=self._clock() - start,
                        last_error=last_error,
                    )

            if max_attempts is not None and attempts >= max_attempts:
                break
            if timeout is not None and self._clock() - start >= timeout:
                break
            self._sleep(interval)

        return PollResult(
            succeeded=False,
            value=None,
            attempts=attempts,
            elapsed=self._clock() - start,
            last_error=last_error,
        )

    def require(
        self,
        condition: Callable[[], T],
        *,
        description: str,
        details: dict[str, Any] | None = None,
        **poll_kwargs: Any,
    ) -> T:
        """Poll like ``poll`` but raise ``PollTimeoutError`` on exhaustion."""
        result = self.poll(condition, **poll_kwargs)
        if result.succeeded:
            return result.value  # type: ignore[return-value]

        context = dict(details or {})
        context["attempts"] = result.attempts
        context["elapsed_seconds"] = round(result.elapsed, 1)
        if result.last_error is not None:
            context["last_error"] = repr(result.last_error)
        raise PollTimeoutError(f"{description} not met", details=context) from result.last_error

    def settle(self, seconds: float) -> None:
        """Unconditional wait."""
        if seconds > 0:
            self._sleep(seconds)
