"""In-memory RepositoryAccess used by tests and offline runs"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from posixpath import basename, dirname

from repodocs.core.models import EntryKind, Quota, RepositoryEntry
from repodocs.errors import NotFound, RepositoryAccessError


def _default_quota() -> Quota:
    return Quota(remaining=5000, limit=5000, reset_at=datetime.now(timezone.utc) + timedelta(hours=1))


@dataclass
class InMemoryAccess:
    """Files keyed by repo-relative path; directories are implied by file paths.

    ``listings`` overrides what a directory lists (to simulate host anomalies),
    ``failing`` holds directories whose listing raises, and ``calls`` records
    every capability call as ``(method, argument)``.
    """
    files:       dict[str, str] = field(default_factory=dict)
    directories: set[str] = field(default_factory=set)
    listings:    dict[str, list[RepositoryEntry]] = field(default_factory=dict)
    failing:     set[str] = field(default_factory=set)
    quota:       Quota = field(default_factory=_default_quota)
    calls:       list[tuple[str, object]] = field(default_factory=list)

    def add_file(self, path: str, content: str) -> None:
        self.files[path] = content
        parent = dirname(path)
        while parent:
            self.directories.add(parent)
            parent = dirname(parent)

    def add_directory(self, path: str) -> None:
        self.directories.add(path.strip('/'))

    def list_directory(self, path: str) -> list[RepositoryEntry]:
        path = path.strip('/')
        self.calls.append(("list_directory", path))
        if path in self.failing:
            raise RepositoryAccessError(f"Listing failed: {path}", status_code=500)
        if path in self.listings:
            return list(self.listings[path])
        if path and path not in self.directories:
            raise NotFound(path)

        entries = [
            RepositoryEntry(path=d, name=basename(d), kind=EntryKind.dir)
            for d in self.directories if dirname(d) == path
        ]
        entries += [
            RepositoryEntry(path=p, name=basename(p), kind=EntryKind.file, size=len(content.encode('utf-8')))
            for p, content in self.files.items() if dirname(p) == path
        ]
        return sorted(entries, key=lambda e: e.name)

    def batch_fetch_files(self, paths: list[str]) -> dict[str, str | None]:
        self.calls.append(("batch_fetch_files", list(paths)))
        return {p: self.files.get(p) for p in paths}

    def file_exists(self, path: str) -> bool:
        self.calls.append(("file_exists", path))
        return path in self.files

    def current_quota(self) -> Quota:
        self.calls.append(("current_quota", None))
        return self.quota
