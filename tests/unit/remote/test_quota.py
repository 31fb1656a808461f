"""Unit tests for remote/quota.py"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from repodocs.core.models import Quota
from repodocs.remote.quota import QuotaGuard, quota_from_headers


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class Sleeps(list):
    """Records requested sleeps instead of sleeping."""

    def __call__(self, seconds: float) -> None:
        self.append(seconds)


def _quota(remaining: int, reset_in: float) -> Quota:
    return Quota(remaining=remaining, reset_at=NOW + timedelta(seconds=reset_in))


def _guard(quota: Quota, sleeps: Sleeps, **kwargs) -> QuotaGuard:
    return QuotaGuard(lambda: quota, sleep=sleeps, now=lambda: NOW, **kwargs)


def test_low_quota_sleeps_until_reset():
    """remaining=50 with buffer 100 and reset in 10s sleeps ~10s before the next call."""
    sleeps = Sleeps()
    delay = _guard(_quota(50, 10), sleeps, buffer=100).wait()
    assert delay == pytest.approx(10)
    assert sleeps == [pytest.approx(10)]


@pytest.mark.parametrize("remaining, reset_in", [
    (500, 10),        # plenty left
    (101, 10),        # just above the buffer
    (0, 7200),        # reset too far away
    (0, -5),          # reset already passed
])
def test_no_sleep(remaining, reset_in):
    sleeps = Sleeps()
    assert _guard(_quota(remaining, reset_in), sleeps, buffer=100, reset_window=3600).wait() == 0.0
    assert sleeps == []


def test_buffer_boundary_is_inclusive():
    sleeps = Sleeps()
    _guard(_quota(100, 30), sleeps, buffer=100).wait()
    assert sleeps == [pytest.approx(30)]


def test_observed_quota_avoids_fetch():
    calls = []

    def fetch():
        calls.append(1)
        return _quota(5000, 60)

    guard = QuotaGuard(fetch, sleep=Sleeps(), now=lambda: NOW)
    guard.observe(_quota(4000, 60))
    guard.wait()
    guard.observe(None)
    guard.wait()
    assert calls == []
    assert guard.observed.remaining == 4000


def test_fetch_once_then_reuse():
    calls = []

    def fetch():
        calls.append(1)
        return _quota(5000, 60)

    guard = QuotaGuard(fetch, sleep=Sleeps(), now=lambda: NOW)
    guard.wait()
    guard.wait()
    assert calls == [1]


def test_quota_refetched_after_sleep():
    quotas = [_quota(10, 5), _quota(5000, 3600)]
    sleeps = Sleeps()
    guard = QuotaGuard(lambda: quotas.pop(0), buffer=100, sleep=sleeps, now=lambda: NOW)
    guard.wait()
    guard.wait()
    assert sleeps == [pytest.approx(5)]
    assert quotas == []


def test_concurrent_waiters_are_serialized():
    """Two threads seeing the same low quota: one sleeps, the other re-reads a fresh quota."""
    quotas = [_quota(10, 5), _quota(5000, 3600)]
    sleeps = Sleeps()
    guard = QuotaGuard(lambda: quotas.pop(0), buffer=100, sleep=sleeps, now=lambda: NOW)

    threads = [threading.Thread(target=guard.wait) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(sleeps) == 1


def test_quota_from_headers():
    quota = quota_from_headers({
        "X-RateLimit-Remaining": "42",
        "X-RateLimit-Reset": str(int(NOW.timestamp())),
        "X-RateLimit-Limit": "5000",
    })
    assert quota.remaining == 42
    assert quota.limit == 5000
    assert quota.reset_at == NOW


@pytest.mark.parametrize("headers", [
    {},
    {"X-RateLimit-Remaining": "1"},
    {"X-RateLimit-Remaining": "many", "X-RateLimit-Reset": "0"},
])
def test_quota_from_headers_missing_or_malformed(headers):
    assert quota_from_headers(headers) is None
