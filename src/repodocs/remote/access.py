"""The remote repository capability the pipeline is written against"""

from posixpath import splitext
from typing import Protocol, runtime_checkable

from repodocs.config import parse_project_config
from repodocs.core.models import ProjectConfig, Quota, RepositoryEntry


@runtime_checkable
class RepositoryAccess(Protocol):
    """Read access to one repository, with credentials and owner already bound.

    Implementations: ``GitHubAccess`` (remote host) and ``InMemoryAccess`` (tests).
    """

    def list_directory(self, path: str) -> list[RepositoryEntry]:
        """Single-level listing; [] for an empty directory, NotFound when the path is absent."""
        ...

    def batch_fetch_files(self, paths: list[str]) -> dict[str, str | None]:
        """Content for every requested path; None for missing files, never an error per path."""
        ...

    def file_exists(self, path: str) -> bool:
        ...

    def current_quota(self) -> Quota:
        ...


def read_project_config(access: RepositoryAccess, path: str) -> ProjectConfig | None:
    """Fetch and parse the repository's document tree file; None when the repository has none."""
    text = access.batch_fetch_files([path]).get(path)
    if text is None:
        return None
    return parse_project_config(text, splitext(path)[1].lstrip(".").lower() or "toml")
