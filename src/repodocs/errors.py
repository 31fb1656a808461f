"""Exception hierarchy for remote access, discovery, and pipeline runs.

Remote failures are grouped under :class:`RepositoryAccessError` so callers can
contain per-item problems (a missing file, a subtree that fails to list) while
still reacting to the terminal ones (:class:`QuotaExceeded`) by type. Stage
failures surface as :class:`PipelineError` carrying the stage name, with the
underlying cause chained via ``raise ... from``.
"""

from datetime import datetime
from typing import Optional


class RepodocsError(RuntimeError):
    """Base exception for everything raised by this package."""


class RepositoryAccessError(RepodocsError):
    """Raised when the remote host cannot serve a request after retries."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFound(RepositoryAccessError):
    """Raised when a remote path (file, directory, or repository) does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Not found: {path}", status_code=404)
        self.path = path


class QuotaExceeded(RepositoryAccessError):
    """Raised when retries are exhausted while the API quota is fully spent."""

    def __init__(self, reset_at: Optional[datetime] = None) -> None:
        when = f"; resets at {reset_at.isoformat()}" if reset_at else ""
        super().__init__(f"API rate limit exceeded{when}", status_code=403)
        self.reset_at = reset_at


class QueryTooComplex(RepositoryAccessError):
    """Raised when the host rejects a batched query as too expensive; not retried."""

    def __init__(self, batch_size: int, detail: str = "") -> None:
        super().__init__(f"Query for {batch_size} paths rejected as too complex: {detail}".rstrip(": "))
        self.batch_size = batch_size


class InvalidPattern(RepodocsError):
    """Raised when a discovery glob or regex does not compile."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid pattern '{pattern}': {reason}")
        self.pattern = pattern


class PipelineError(RepodocsError):
    """Raised when a pipeline stage cannot complete; ``stage`` names the stage."""

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        message = super().__str__()
        return f"[{self.stage}] {message}" if self.stage else message


class Cancelled(PipelineError):
    """Raised when the caller cancels a run or its deadline passes."""
