"""Organization-wide runs: find the repositories that declare a document tree and process each one"""

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable

from repodocs.cancellation import CancellationToken
from repodocs.config import Settings
from repodocs.core.export import export_result
from repodocs.core.models import PipelineResult
from repodocs.core.pipeline import Pipeline, ProcessingContext
from repodocs.errors import Cancelled, RepodocsError
from repodocs.remote.access import RepositoryAccess, read_project_config


logger = logging.getLogger(__name__)

OpenAccess = Callable[[str], AbstractContextManager[RepositoryAccess]]


@dataclass
class RepositoryScan:
    name:       str
    has_config: bool


@dataclass
class RepositoryOutcome:
    """One repository of an organization run; ``error`` is set when it failed."""
    name:       str
    output_dir: Path
    result:     PipelineResult | None = None
    error:      str | None = None


@dataclass
class OrganizationReport:
    total:    int
    outcomes: list[RepositoryOutcome] = field(default_factory=list)

    @property
    def processed(self) -> list[RepositoryOutcome]:
        return [o for o in self.outcomes if o.error is None]

    @property
    def failed(self) -> list[RepositoryOutcome]:
        return [o for o in self.outcomes if o.error is not None]


class OrganizationProcessor:
    """Runs the pipeline once per configured repository.

    ``open_access(name)`` returns a context manager yielding the access for one
    repository. A repository's failure is logged and counted, and the loop
    moves on; only cancellation stops the whole run.
    """

    def __init__(
        self,
        open_access: OpenAccess,
        settings: Settings,
        cancel: CancellationToken | None = None,
        log: logging.Logger | None = None,
    ):
        self.open_access = open_access
        self.settings = settings
        self.cancel = cancel or CancellationToken()
        self.log = log or logger

    def scan(self, names: Iterable[str]) -> list[RepositoryScan]:
        """Check every repository for the document tree file. Access errors propagate."""
        scans = []
        for name in names:
            self.cancel.raise_if_cancelled()
            with self.open_access(name) as access:
                found = access.file_exists(self.settings.config_file)
            self.log.debug("%s: %s %s", name, self.settings.config_file, "found" if found else "absent")
            scans.append(RepositoryScan(name=name, has_config=found))
        return scans

    def process_repository(self, name: str) -> RepositoryOutcome:
        output_dir = Path(self.settings.output_dir) / name
        outcome = RepositoryOutcome(name=name, output_dir=output_dir)
        try:
            with self.open_access(name) as access:
                project = read_project_config(access, self.settings.config_file)
                if project is None:
                    raise RepodocsError(f"{self.settings.config_file} disappeared from {name}")
                outcome.result = Pipeline(log=self.log).execute(ProcessingContext(
                    repository=name,
                    access=access,
                    config=project,
                    patterns=self.settings.discovery_patterns,
                    cancel=self.cancel,
                ))
            export_result(
                outcome.result, project, output_dir,
                self.settings.url_prefix, self.settings.nav_heading_level,
            )
        except Cancelled:
            raise
        except (RepodocsError, ValueError, OSError) as e:
            self.log.error("Error processing repository %s: %s", name, e)
            outcome.error = str(e)
        return outcome

    def process(self, names: Iterable[str]) -> OrganizationReport:
        """Scan ``names`` and process each repository that has a document tree file."""
        scans = self.scan(names)
        report = OrganizationReport(total=len(scans))
        for scan in scans:
            if not scan.has_config:
                self.log.info("Skipping %s: no %s", scan.name, self.settings.config_file)
                continue
            self.log.info("Processing repository %s", scan.name)
            report.outcomes.append(self.process_repository(scan.name))
        if report.failed:
            self.log.warning("%d of %d repositories failed to process", len(report.failed), len(report.outcomes))
        return report
