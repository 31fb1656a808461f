"""Cooperative cancellation for pipeline runs.

A :class:`CancellationToken` is created by whoever starts a run and handed to
both the pipeline and the remote access layer. Work is never interrupted
mid-request; instead every remote call checks the token first, and every
deliberate sleep (quota waits, retry backoff) waits on the token's event so a
cancellation or an expired deadline wakes it immediately.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from repodocs.errors import Cancelled


class CancellationToken:
    """Thread-safe cancellation flag with an optional monotonic deadline.

    Examples:
        >>> token = CancellationToken.with_timeout(30)
        >>> token.raise_if_cancelled()   # no-op until cancelled or expired
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(
        self,
        deadline: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._event = threading.Event()
        self._deadline = deadline
        self._clock = clock
        self._reason = "cancelled by caller"

    @classmethod
    def with_timeout(cls, seconds: float, clock: Callable[[], float] = time.monotonic) -> CancellationToken:
        """Token that cancels itself ``seconds`` from now."""
        return cls(deadline=clock() + seconds, clock=clock)

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self._reason = reason
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self._reason = "deadline exceeded"
            self._event.set()
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled():
            raise Cancelled(self._reason)

    def sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``; raise Cancelled as soon as the token fires."""
        self.raise_if_cancelled()
        timeout = max(0.0, seconds)
        if self._deadline is not None:
            timeout = min(timeout, max(0.0, self._deadline - self._clock()))
        self._event.wait(timeout)
        self.raise_if_cancelled()
