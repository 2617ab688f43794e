"""Token bucket rate limiting for outbound requests.

The bucket holds a single token, so admissions are strictly spaced by
``interval`` seconds with no bursts. Waiters reserve their slot under a lock
and then sleep outside it, which lets any number of threads or asyncio tasks
queue up at once. Grant order between concurrent waiters is not guaranteed.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable

from .exceptions import ClinkRateLimitWaitError, ClinkValidationError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Admission gate granting one token every ``interval`` seconds."""

    def __init__(self, interval: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        if interval <= 0:
            raise ClinkValidationError("interval must be greater than 0")
        self.interval = float(interval)
        self._clock = clock
        self._next_free: float | None = None
        self._lock = threading.Lock()

    @classmethod
    def per_minute(cls, requests_per_minute: float) -> "RateLimiter":
        if requests_per_minute <= 0:
            raise ClinkValidationError("requests_per_minute must be greater than 0")
        return cls(60.0 / requests_per_minute)

    @property
    def rate(self) -> float:
        """Tokens granted per second."""
        return 1.0 / self.interval

    def reserve(self) -> tuple[float, float]:
        """Claim the next free slot.

        Returns the number of seconds to wait before the slot opens and the
        slot's timestamp, which :meth:`release` needs to hand it back.
        """
        with self._lock:
            now = self._clock()
            slot = now if self._next_free is None else max(now, self._next_free)
            self._next_free = slot + self.interval
            return slot - now, slot

    def release(self, slot: float) -> None:
        """Return an unused slot if no later reservation was stacked on it."""
        with self._lock:
            if self._next_free == slot + self.interval:
                self._next_free = slot

    def wait(self, cancel: threading.Event | None = None, timeout: float | None = None) -> None:
        """Block until a token is granted.

        Raises :class:`ClinkRateLimitWaitError` if ``cancel`` is set before
        the token arrives or if the required wait is longer than ``timeout``.
        The transport is never touched on either failure path.
        """
        if cancel is not None and cancel.is_set():
            raise ClinkRateLimitWaitError("rate limiter wait cancelled")

        delay, slot = self.reserve()
        if timeout is not None and delay > timeout:
            self.release(slot)
            raise ClinkRateLimitWaitError(
                f"rate limiter wait of {delay:.3f}s would exceed timeout of {timeout:.3f}s"
            )
        if delay <= 0:
            return

        logger.debug("Rate limiter delaying request by %.3fs", delay)
        if cancel is None:
            time.sleep(delay)
            return
        if cancel.wait(delay):
            self.release(slot)
            raise ClinkRateLimitWaitError("rate limiter wait cancelled")

    async def await_token(self, cancel: asyncio.Event | None = None, timeout: float | None = None) -> None:
        """Async twin of :meth:`wait`.

        Task cancellation while waiting hands the slot back and propagates.
        """
        if cancel is not None and cancel.is_set():
            raise ClinkRateLimitWaitError("rate limiter wait cancelled")

        delay, slot = self.reserve()
        if timeout is not None and delay > timeout:
            self.release(slot)
            raise ClinkRateLimitWaitError(
                f"rate limiter wait of {delay:.3f}s would exceed timeout of {timeout:.3f}s"
            )
        if delay <= 0:
            return

        logger.debug("Rate limiter delaying request by %.3fs", delay)
        try:
            if cancel is None:
                await asyncio.sleep(delay)
                return
            try:
                await asyncio.wait_for(cancel.wait(), timeout=delay)
            except asyncio.TimeoutError:
                return
        except asyncio.CancelledError:
            self.release(slot)
            raise
        self.release(slot)
        raise ClinkRateLimitWaitError("rate limiter wait cancelled")
