"""GitHub adapter for RepositoryAccess.

Directory listings and existence checks use the REST contents API, file bodies
are fetched in chunks through GraphQL ``object(expression: "HEAD:<path>")``
aliases, and quota comes from ``/rate_limit`` and the ``X-RateLimit-*``
headers of every response.

Every request runs inside a tenacity ``Retrying`` loop. Transport failures,
5xx responses and rate-limit signals are retried with exponential backoff
(2, 4, 8 ... seconds) or the server's ``Retry-After``; a query the host
rejects as too complex is raised immediately as :class:`QueryTooComplex`.
Before each attempt the :class:`QuotaGuard` may sleep until the quota resets.
"""

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from repodocs.cancellation import CancellationToken
from repodocs.config import Settings
from repodocs.core.models import EntryKind, ProjectConfig, Quota, RepositoryEntry
from repodocs.errors import NotFound, QueryTooComplex, QuotaExceeded, RepositoryAccessError
from repodocs.remote.access import read_project_config
from repodocs.remote.quota import QuotaGuard, quota_from_headers, utcnow


logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
PER_PAGE = 100
MAX_RETRY_AFTER = 60.0
TOO_COMPLEX_TYPES = {"MAX_NODE_LIMIT_EXCEEDED", "RESOURCE_LIMITS_EXCEEDED"}
ENTRY_KINDS = {"file": EntryKind.file, "dir": EntryKind.dir}


class RateLimited(RepositoryAccessError):
    """A 429, a 403 with no quota left, or a GraphQL RATE_LIMITED error; retried."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        remaining: Optional[int] = None,
        reset_at: Optional[datetime] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.remaining = remaining
        self.reset_at = reset_at
        self.retry_after = retry_after


class TransientError(RepositoryAccessError):
    """A 5xx response; retried."""


class _RetryAfterOrBackoff(wait_base):
    """Honour a rate-limit ``Retry-After`` (capped), else fall back to exponential backoff."""

    def __init__(self, fallback: wait_base, cap: float = MAX_RETRY_AFTER) -> None:
        self._fallback = fallback
        self._cap = cap

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = float(self._fallback(retry_state))
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return delay
        exc = outcome.exception()
        if isinstance(exc, RateLimited) and exc.retry_after is not None:
            return min(max(exc.retry_after, 0.0), self._cap)
        return delay


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def blob_query(paths: list[str]) -> str:
    """GraphQL query with one aliased ``object`` lookup per path (f0, f1, ...)."""
    fields = "\n".join(
        f"    f{i}: object(expression: {json.dumps('HEAD:' + path)}) {{ ... on Blob {{ text isBinary }} }}"
        for i, path in enumerate(paths)
    )
    return (
        "query($owner: String!, $name: String!) {\n"
        "  repository(owner: $owner, name: $name) {\n"
        f"{fields}\n"
        "  }\n"
        "}"
    )


class GitHubAccess:
    """RepositoryAccess bound to one repository of ``settings.github_organization``.

    ``repository`` may also be given as ``owner/name``. ``sleep`` and ``now``
    are injectable for tests; by default sleeps go through the cancellation
    token so that cancelling a run interrupts quota waits and backoff.
    """

    def __init__(
        self,
        settings: Settings,
        repository: str,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        cancel: Optional[CancellationToken] = None,
        sleep: Optional[Callable[[float], None]] = None,
        now: Callable[[], datetime] = utcnow,
        log: logging.Logger | None = None,
    ):
        owner, _, name = repository.rpartition("/")
        self.settings = settings
        self.owner = owner or settings.github_organization
        self.repository = name
        self.cancel = cancel
        self.log = log or logger
        if sleep is None:
            sleep = cancel.sleep if cancel is not None else time.sleep
        self._sleep = sleep
        self.client = httpx.Client(
            base_url=settings.api_url,
            headers=self._headers(settings.github_token),
            timeout=settings.request_timeout,
            transport=transport,
        )
        self.quota_guard = QuotaGuard(
            self.current_quota,
            buffer=settings.quota_buffer,
            reset_window=settings.quota_reset_window,
            sleep=self._sleep,
            now=now,
            log=self.log,
        )

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "GitHubAccess":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # --- transport ---

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type((RateLimited, TransientError, httpx.TransportError)),
            wait=_RetryAfterOrBackoff(wait_exponential(multiplier=2, max=MAX_RETRY_AFTER)),
            stop=stop_after_attempt(self.settings.max_retries + 1),
            sleep=self._sleep,
            before_sleep=before_sleep_log(self.log, logging.WARNING),
            reraise=True,
        )

    def _check_response(self, response: httpx.Response) -> None:
        """Record quota headers and raise the retryable conditions."""
        quota = quota_from_headers(response.headers)
        self.quota_guard.observe(quota)
        status = response.status_code

        if status == 429 or (status == 403 and quota is not None and quota.remaining == 0):
            raise RateLimited(
                f"Rate limited: HTTP {status}",
                status_code=status,
                remaining=quota.remaining if quota else None,
                reset_at=quota.reset_at if quota else None,
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if status >= 500:
            raise TransientError(f"HTTP {status} from {response.request.url}", status_code=status)

    def _request(
        self,
        method: str,
        url: str,
        *,
        guarded: bool = True,
        inspect: Optional[Callable[[httpx.Response], None]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request under the retry policy; 4xx other than rate limits are returned as-is."""
        try:
            for attempt in self._retrying():
                with attempt:
                    if self.cancel is not None:
                        self.cancel.raise_if_cancelled()
                    if guarded:
                        self.quota_guard.wait()
                    response = self.client.request(method, url, **kwargs)
                    self._check_response(response)
                    if inspect is not None:
                        inspect(response)
        except RateLimited as e:
            if e.remaining == 0:
                raise QuotaExceeded(e.reset_at) from e
            raise RepositoryAccessError(str(e), status_code=e.status_code) from e
        except TransientError as e:
            raise RepositoryAccessError(str(e), status_code=e.status_code) from e
        except httpx.TransportError as e:
            raise RepositoryAccessError(f"{method} {url} failed: {e}") from e
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise RepositoryAccessError(
            f"{response.request.method} {response.request.url} failed: HTTP {response.status_code}",
            status_code=response.status_code,
        )

    def _contents_url(self, path: str) -> str:
        url = f"/repos/{self.owner}/{self.repository}/contents"
        path = path.strip("/")
        return f"{url}/{quote(path)}" if path else url

    # --- RepositoryAccess ---

    def list_directory(self, path: str) -> list[RepositoryEntry]:
        response = self._request("GET", self._contents_url(path))
        if response.status_code == 404:
            raise NotFound(path)
        self._raise_for_status(response)

        data = response.json()
        if not isinstance(data, list):     # a file, not a directory
            raise NotFound(path)
        return [
            RepositoryEntry(
                path=item["path"],
                name=item["name"],
                kind=ENTRY_KINDS.get(item.get("type"), EntryKind.other),
                size=item.get("size"),
            )
            for item in data
        ]

    def file_exists(self, path: str) -> bool:
        response = self._request("GET", self._contents_url(path))
        if response.status_code == 404:
            return False
        self._raise_for_status(response)
        data = response.json()
        return isinstance(data, dict) and data.get("type") == "file"

    def current_quota(self) -> Quota:
        response = self._request("GET", "/rate_limit", guarded=False)
        self._raise_for_status(response)
        core = response.json()["resources"]["core"]
        quota = Quota(
            remaining=core["remaining"],
            limit=core.get("limit"),
            reset_at=datetime.fromtimestamp(core["reset"], tz=timezone.utc),
        )
        self.quota_guard.observe(quota)
        return quota

    def batch_fetch_files(self, paths: list[str]) -> dict[str, str | None]:
        size = self.settings.batch_size
        chunks = [paths[i:i + size] for i in range(0, len(paths), size)]
        self.log.debug("Fetching %d files in %d chunk(s)", len(paths), len(chunks))

        if self.settings.max_workers > 1 and len(chunks) > 1:
            with ThreadPoolExecutor(max_workers=self.settings.max_workers) as pool:
                results = list(pool.map(self._fetch_chunk, chunks))
        else:
            results = [self._fetch_chunk(chunk) for chunk in chunks]

        merged: dict[str, str | None] = {}
        for result in results:
            merged.update(result)
        return {path: merged.get(path) for path in paths}

    def _check_graphql(self, response: httpx.Response, batch_size: int) -> None:
        if not response.is_success:
            return
        for error in response.json().get("errors") or []:
            kind = error.get("type", "")
            message = error.get("message", "")
            if kind == "RATE_LIMITED":
                quota = quota_from_headers(response.headers)
                raise RateLimited(
                    f"GraphQL rate limited: {message}",
                    status_code=response.status_code,
                    remaining=0,
                    reset_at=quota.reset_at if quota else None,
                )
            if kind in TOO_COMPLEX_TYPES or "complex" in message.lower():
                raise QueryTooComplex(batch_size, message)

    def _fetch_chunk(self, paths: list[str]) -> dict[str, str | None]:
        response = self._request(
            "POST",
            "/graphql",
            json={
                "query": blob_query(paths),
                "variables": {"owner": self.owner, "name": self.repository},
            },
            inspect=lambda r: self._check_graphql(r, len(paths)),
        )
        self._raise_for_status(response)

        payload = response.json()
        repository = (payload.get("data") or {}).get("repository")
        if repository is None:
            if payload.get("errors"):
                messages = "; ".join(e.get("message", "") for e in payload["errors"])
                if any(e.get("type") == "NOT_FOUND" for e in payload["errors"]):
                    raise NotFound(f"{self.owner}/{self.repository}")
                raise RepositoryAccessError(f"GraphQL query failed: {messages}")
            raise NotFound(f"{self.owner}/{self.repository}")

        contents: dict[str, str | None] = {}
        for i, path in enumerate(paths):
            blob = repository.get(f"f{i}")
            if blob and blob.get("isBinary"):
                self.log.debug("Skipping binary blob %s", path)
            contents[path] = blob.get("text") if blob else None
        return contents

    # --- organization and project config ---

    def list_repositories(self) -> list[str]:
        """Names of every repository of the owner, following Link rel="next" pages."""
        if not self.owner:
            raise RepositoryAccessError("No organization configured")
        url: Optional[str] = f"/orgs/{self.owner}/repos"
        params: Optional[dict[str, Any]] = {"per_page": PER_PAGE}
        names: list[str] = []
        while url:
            response = self._request("GET", url, params=params)
            if response.status_code == 404:
                raise NotFound(self.owner)
            self._raise_for_status(response)
            names.extend(repo["name"] for repo in response.json())
            url = response.links.get("next", {}).get("url")
            params = None      # the next link carries its own query
        return names

    def read_project_config(self) -> ProjectConfig:
        """Fetch and parse the repository's own document tree file; NotFound when it has none."""
        config = read_project_config(self, self.settings.config_file)
        if config is None:
            raise NotFound(self.settings.config_file)
        return config
