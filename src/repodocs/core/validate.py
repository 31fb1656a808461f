"""Content validation: batched fetch, front matter separation, and non-fatal warnings"""

import logging

from repodocs.core.models import DiscoveredFile, ValidatedFile, ValidationResult
from repodocs.core.parse import split_frontmatter
from repodocs.remote.access import RepositoryAccess


logger = logging.getLogger(__name__)

MIN_BODY_CHARS = 50
MISSING_TITLE = "Missing title in frontmatter or as first heading"
TOO_SHORT = "Content is too short, consider adding more information"
BINARY_CONTENT = "Content looks binary, not markdown text"
BROKEN_LINK_MARKERS = ('](../', ']()')


def find_broken_links(body: str) -> list[str]:
    """Lines holding a link with an empty URL or a '../' URL."""
    return [
        line.strip() for line in body.splitlines()
        if any(marker in line for marker in BROKEN_LINK_MARKERS)
    ]


def check_content(raw: str, body: str, frontmatter: dict[str, str]) -> ValidationResult:
    """Return errors (file is dropped) and warnings (file continues) for one document."""
    if '\x00' in raw:
        return ValidationResult(errors=[BINARY_CONTENT])

    warnings = []
    if 'title' not in frontmatter and not body.startswith('#'):
        warnings.append(MISSING_TITLE)
    if len(body.strip()) < MIN_BODY_CHARS:
        warnings.append(TOO_SHORT)
    if broken := find_broken_links(body):
        warnings.append(f"Found {len(broken)} potentially broken links")
    return ValidationResult(warnings=warnings)


class ContentValidator:
    """Fetch discovered files in one batched call and split/check each one."""

    def __init__(self, access: RepositoryAccess, log: logging.Logger | None = None):
        self.access = access
        self.log = log or logger

    def validate_file(self, file: DiscoveredFile, raw: str) -> tuple[ValidatedFile | None, ValidationResult]:
        """Validate already-fetched content; the ValidatedFile is None when the result has errors."""
        parsed = split_frontmatter(raw)
        result = check_content(raw, parsed.body, parsed.frontmatter)
        if not result.ok:
            return None, result
        return ValidatedFile(
            discovered=file,
            raw_content=raw,
            frontmatter=parsed.frontmatter,
            body=parsed.body,
            warnings=list(result.warnings),
        ), result

    def validate_batch(self, files: list[DiscoveredFile]) -> list[ValidatedFile]:
        """Access errors from the batch fetch propagate; missing or invalid files are dropped."""
        if not files:
            return []
        contents = self.access.batch_fetch_files([f.path for f in files])

        validated: list[ValidatedFile] = []
        for f in files:
            raw = contents.get(f.path)
            if raw is None:
                self.log.warning("Dropping %s (from %s): file not found", f.path, f.origin)
                continue
            self.log.debug("Validating %s", f.path)
            vf, result = self.validate_file(f, raw)
            if vf is None:
                self.log.warning("Dropping %s: %s", f.path, "; ".join(result.errors))
                continue
            validated.append(vf)
        return validated
