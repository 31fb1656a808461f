"""Proactive quota sleeping shared by every call of one access instance"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from repodocs.core.models import Quota


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def quota_from_headers(headers: Mapping[str, str]) -> Optional[Quota]:
    """Quota from X-RateLimit-* response headers, or None when they are absent or malformed."""
    remaining = headers.get("X-RateLimit-Remaining")
    reset = headers.get("X-RateLimit-Reset")
    if remaining is None or reset is None:
        return None
    try:
        limit = headers.get("X-RateLimit-Limit")
        return Quota(
            remaining=int(remaining),
            reset_at=datetime.fromtimestamp(int(reset), tz=timezone.utc),
            limit=int(limit) if limit is not None else None,
        )
    except ValueError:
        return None


class QuotaGuard:
    """Check-then-sleep around remote calls.

    The last quota seen in a response is kept; when nothing has been seen yet,
    ``fetch`` is asked. If at most ``buffer`` calls remain and the reset is due
    within ``reset_window`` seconds, ``wait`` sleeps until the reset instead of
    letting the next call fail. The whole sequence holds a lock, so concurrent
    callers observing the same low quota sleep once, one after the other,
    rather than racing each other into the limit.
    """

    def __init__(
        self,
        fetch: Callable[[], Quota],
        buffer: int = 100,
        reset_window: float = 3600,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = utcnow,
        log: logging.Logger | None = None,
    ):
        self.fetch = fetch
        self.buffer = buffer
        self.reset_window = reset_window
        self._sleep = sleep
        self._now = now
        self.log = log or logger
        self._lock = threading.Lock()
        self._observed: Optional[Quota] = None

    @property
    def observed(self) -> Optional[Quota]:
        return self._observed

    def observe(self, quota: Optional[Quota]) -> None:
        if quota is not None:
            self._observed = quota

    def wait(self) -> float:
        """Sleep until reset when quota is low; return the seconds slept."""
        with self._lock:
            quota = self._observed
            if quota is None:
                quota = self._observed = self.fetch()

            delay = (quota.reset_at - self._now()).total_seconds()
            if quota.remaining > self.buffer or delay <= 0 or delay > self.reset_window:
                return 0.0

            self.log.warning(
                "Quota low (%d remaining, buffer %d); sleeping %.1fs until reset at %s",
                quota.remaining, self.buffer, delay, quota.reset_at.isoformat(),
            )
            self._sleep(delay)
            self._observed = None     # re-read after the reset
            return delay
