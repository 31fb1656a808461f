"""File discovery: declared document paths plus convention patterns matched against the remote tree"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from repodocs.cancellation import CancellationToken
from repodocs.core.models import DiscoveredFile, DocumentTreeNode, ProjectConfig, RepositoryEntry
from repodocs.errors import InvalidPattern, QuotaExceeded, RepositoryAccessError
from repodocs.remote.access import RepositoryAccess


logger = logging.getLogger(__name__)

REGEX_PREFIX = "regex:"
GLOB_CHARS = frozenset("*?[")


class PatternKind(str, Enum):
    exact = "exact"
    glob = "glob"
    regex = "regex"


def glob_to_regex(glob: str) -> str:
    """Translate a shell glob into an anchored regex.

    ``*`` and ``?`` also match ``/``; ``**`` must be a whole path component,
    where ``**/`` matches zero or more leading directories.
    """
    out = []
    i, n = 0, len(glob)
    while i < n:
        c = glob[i]
        if c == "*":
            j = i
            while j < n and glob[j] == "*":
                j += 1
            run = j - i
            if run > 2:
                raise InvalidPattern(glob, "'***' is not a valid wildcard")
            if run == 2:
                if (i > 0 and glob[i - 1] != "/") or (j < n and glob[j] != "/"):
                    raise InvalidPattern(glob, "'**' must be a whole path component")
                if j < n:            # '**/'
                    out.append("(?:.*/)?")
                    j += 1
                else:                # trailing '**'
                    out.append(".*")
            else:
                out.append(".*")
            i = j
        elif c == "?":
            out.append(".")
            i += 1
        elif c == "[":
            j = glob.find("]", i + 2 if glob[i + 1:i + 2] in ("!", "]") else i + 1)
            if j == -1:
                raise InvalidPattern(glob, "unclosed '['")
            body = glob[i + 1:j]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append("[" + body.replace("\\", "\\\\") + "]")
            i = j + 1
        else:
            out.append(re.escape(c))
            i += 1
    return "^" + "".join(out) + "$"


@dataclass(frozen=True)
class Pattern:
    """A classified convention pattern; ``matcher`` is None for exact paths."""
    raw:     str
    kind:    PatternKind
    matcher: re.Pattern | None = None

    @classmethod
    def parse(cls, raw: str) -> "Pattern":
        """Classify and compile; raises InvalidPattern when the glob or regex is malformed."""
        if raw.startswith(REGEX_PREFIX):
            source = raw[len(REGEX_PREFIX):]
            try:
                return cls(raw, PatternKind.regex, re.compile(source))
            except re.error as e:
                raise InvalidPattern(raw, str(e)) from e
        if GLOB_CHARS & set(raw):
            try:
                return cls(raw, PatternKind.glob, re.compile(glob_to_regex(raw)))
            except re.error as e:
                raise InvalidPattern(raw, str(e)) from e
        return cls(raw, PatternKind.exact)

    @property
    def origin(self) -> str:
        return f"pattern:{self.raw}"

    def matches(self, path: str) -> bool:
        if self.kind == PatternKind.exact:
            return path == self.raw
        if self.kind == PatternKind.regex:
            return self.matcher.search(path) is not None
        return self.matcher.match(path) is not None


def walk_config(documents: dict[str, DocumentTreeNode]) -> Iterator[DiscoveredFile]:
    """Depth-first over the declared tree in declared order; structural nodes yield nothing."""
    def visit(node: DocumentTreeNode, origin: str) -> Iterator[DiscoveredFile]:
        if node.path:
            yield DiscoveredFile(path=node.path.strip("/"), origin=origin)
        for child in node.children:
            yield from visit(child, f"{origin}:{child.title}")

    for key, node in documents.items():
        yield from visit(node, key)


class FileDiscoverer:
    """Expand a project config and convention patterns into unique candidate paths.

    Listings are cached for one ``discover`` call, so several glob/regex
    patterns walk the remote tree once. Each walk keeps its own ``visited``
    set; nothing is shared between calls.
    """

    def __init__(
        self,
        access: RepositoryAccess,
        patterns: Iterable[str],
        cancel: CancellationToken | None = None,
        log: logging.Logger | None = None,
    ):
        self.access = access
        self.patterns = list(patterns)
        self.cancel = cancel
        self.log = log or logger

    def discover(self, config: ProjectConfig | None = None) -> list[DiscoveredFile]:
        found: list[DiscoveredFile] = []
        if config is not None:
            found.extend(walk_config(config.documents))
        self.log.debug("%d path(s) declared in config", len(found))

        listings: dict[str, list[RepositoryEntry] | None] = {}
        for raw in self.patterns:
            try:
                pattern = Pattern.parse(raw)
            except InvalidPattern as e:
                self.log.warning("Skipping pattern: %s", e)
                continue
            found.extend(self.resolve(pattern, listings))

        unique = dedupe(found)
        self.log.info("Discovered %d file(s) from %d candidate(s)", len(unique), len(found))
        return unique

    def resolve(self, pattern: Pattern, listings: dict | None = None) -> list[DiscoveredFile]:
        """Files matched by one pattern; a failed check or subtree contributes nothing."""
        if pattern.kind == PatternKind.exact:
            try:
                exists = self.access.file_exists(pattern.raw)
            except QuotaExceeded:
                raise
            except RepositoryAccessError as e:
                self.log.warning("Existence check for %s failed: %s", pattern.raw, e)
                return []
            return [DiscoveredFile(path=pattern.raw, origin=pattern.origin)] if exists else []

        return [
            DiscoveredFile(path=entry.path, origin=pattern.origin, estimated_size=entry.size)
            for entry in self.walk(listings if listings is not None else {})
            if pattern.matches(entry.path)
        ]

    def walk(self, listings: dict[str, list[RepositoryEntry] | None]) -> Iterator[RepositoryEntry]:
        """Yield every file entry reachable from the root using an explicit stack."""
        visited: set[str] = set()
        stack = [""]
        while stack:
            directory = stack.pop()
            if directory in visited:
                continue
            visited.add(directory)
            if self.cancel is not None:
                self.cancel.raise_if_cancelled()

            entries = self._list(directory, listings)
            for entry in entries:
                if entry.is_file:
                    yield entry
                elif entry.is_dir:
                    stack.append(entry.path.strip("/"))

    def _list(self, directory: str, listings: dict[str, list[RepositoryEntry] | None]) -> list[RepositoryEntry]:
        if directory not in listings:
            try:
                listings[directory] = self.access.list_directory(directory)
            except QuotaExceeded:
                raise
            except RepositoryAccessError as e:
                self.log.warning("Listing %s failed, skipping subtree: %s", directory or "/", e)
                listings[directory] = None
        return listings[directory] or []


def dedupe(files: Iterable[DiscoveredFile]) -> list[DiscoveredFile]:
    """Sort by path and keep the first occurrence of each; the sort is stable so declared entries win."""
    unique: dict[str, DiscoveredFile] = {}
    for f in sorted(files, key=lambda f: f.path):
        unique.setdefault(f.path, f)
    return list(unique.values())
