"""Pipeline orchestration: discover, validate, and process one repository"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, TypeVar

from repodocs.cancellation import CancellationToken
from repodocs.config import DEFAULT_PATTERNS
from repodocs.core.discover import FileDiscoverer
from repodocs.core.extract.extract import ContentProcessor
from repodocs.core.models import (
    DiscoveredFile,
    PipelineResult,
    ProcessedDocument,
    ProjectConfig,
    Quota,
    RepositoryEntry,
    ValidatedFile,
)
from repodocs.core.validate import ContentValidator
from repodocs.errors import PipelineError, RepodocsError
from repodocs.remote.access import RepositoryAccess


logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineState(str, Enum):
    pending = "pending"
    discovering = "discovering"
    validating = "validating"
    processing = "processing"
    done = "done"
    failed = "failed"


@dataclass
class ProcessingContext:
    """Everything one run needs; the access instance is already bound to ``repository``."""
    repository: str
    access:     RepositoryAccess
    config:     ProjectConfig | None = None
    patterns:   list[str] = field(default_factory=lambda: list(DEFAULT_PATTERNS))
    cancel:     CancellationToken = field(default_factory=CancellationToken)


class CancellableAccess:
    """RepositoryAccess wrapper that checks the token before every call."""

    def __init__(self, access: RepositoryAccess, cancel: CancellationToken):
        self.access = access
        self.cancel = cancel

    def list_directory(self, path: str) -> list[RepositoryEntry]:
        self.cancel.raise_if_cancelled()
        return self.access.list_directory(path)

    def batch_fetch_files(self, paths: list[str]) -> dict[str, str | None]:
        self.cancel.raise_if_cancelled()
        return self.access.batch_fetch_files(paths)

    def file_exists(self, path: str) -> bool:
        self.cancel.raise_if_cancelled()
        return self.access.file_exists(path)

    def current_quota(self) -> Quota:
        self.cancel.raise_if_cancelled()
        return self.access.current_quota()


class Pipeline:
    """Discovering -> Validating -> Processing, each stage over the full output of the last.

    Item-level problems are filtered out inside the stages. Anything a stage
    raises, including unexpected errors from an access adapter, aborts the run
    as a PipelineError naming the stage; Cancelled keeps its type. The token is
    also checked as each stage finishes, so a cancel is attributed to the stage
    that was running. No partial result is returned.
    """

    def __init__(self, processor: ContentProcessor | None = None, log: logging.Logger | None = None):
        self.log = log or logger
        self.processor = processor or ContentProcessor(log=self.log)
        self.state = PipelineState.pending

    def _stage(
        self,
        state: PipelineState,
        durations: dict[str, float],
        cancel: CancellationToken,
        run: Callable[[], T],
    ) -> T:
        self.state = state
        start = time.perf_counter()
        try:
            result = run()
            cancel.raise_if_cancelled()
        except PipelineError as e:
            self.state = PipelineState.failed
            if e.stage is None:
                e.stage = state.value
            raise
        except RepodocsError as e:
            self.state = PipelineState.failed
            raise PipelineError(str(e), stage=state.value) from e
        except Exception as e:
            self.state = PipelineState.failed
            raise PipelineError(f"{type(e).__name__}: {e}", stage=state.value) from e
        durations[state.value] = (time.perf_counter() - start) * 1000
        return result

    def _process(self, files: list[ValidatedFile], cancel: CancellationToken) -> list[ProcessedDocument]:
        documents = []
        for f in files:
            cancel.raise_if_cancelled()
            documents.append(self.processor.process_file(f))
        return documents

    def execute(self, context: ProcessingContext) -> PipelineResult:
        cancel = context.cancel
        access = CancellableAccess(context.access, cancel)
        discoverer = FileDiscoverer(access, context.patterns, cancel=cancel, log=self.log)
        validator = ContentValidator(access, log=self.log)

        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        durations: dict[str, float] = {}
        self.log.info("Processing repository %s", context.repository)

        discovered: list[DiscoveredFile] = self._stage(
            PipelineState.discovering, durations, cancel, lambda: discoverer.discover(context.config))
        validated = self._stage(
            PipelineState.validating, durations, cancel, lambda: validator.validate_batch(discovered))
        documents = self._stage(
            PipelineState.processing, durations, cancel, lambda: self._process(validated, cancel))

        self.state = PipelineState.done
        result = PipelineResult(
            repository=context.repository,
            documents=documents,
            discovered_count=len(discovered),
            validated_count=len(validated),
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            duration_ms=(time.perf_counter() - start) * 1000,
            stage_durations_ms=durations,
        )
        self.log.info(
            "%s: %d discovered, %d validated, %d processed in %.0fms",
            context.repository, result.discovered_count, result.validated_count,
            len(documents), result.duration_ms,
        )
        return result
