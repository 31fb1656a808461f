"""Convert a ValidatedFile into a ProcessedDocument"""

import logging
import time
from datetime import datetime, timezone

from repodocs.core.extract.blocks import extract_code_blocks, extract_headings
from repodocs.core.extract.links import extract_images, extract_links
from repodocs.core.models import Heading, Link, ProcessedDocument, ValidatedFile


logger = logging.getLogger(__name__)

UNTITLED = "Untitled Document"
WARNING_PENALTY = 0.1
HEADING_BONUS = 0.1
INTERNAL_LINK_BONUS = 0.05
MAX_LINK_BONUS = 0.2


def resolve_title(frontmatter: dict[str, str], headings: list[Heading]) -> str:
    """Front matter title, else first heading text, else a placeholder."""
    if 'title' in frontmatter:
        return frontmatter['title']
    if headings:
        return headings[0].text
    return UNTITLED


def count_words(body: str) -> int:
    return len(body.split())


def quality_score(warning_count: int, headings: list[Heading], links: list[Link]) -> float:
    """Start at 1.0, -0.1 per warning, +0.1 for any heading, +0.05 per internal link (max +0.2); clamp to [0, 1]."""
    score = 1.0 - WARNING_PENALTY * warning_count
    if headings:
        score += HEADING_BONUS
    internal = sum(1 for link in links if link.is_internal)
    score += min(INTERNAL_LINK_BONUS * internal, MAX_LINK_BONUS)
    return round(min(max(score, 0.0), 1.0), 4)


class ContentProcessor:
    """Pure structural extraction; total over its input."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def process_file(self, file: ValidatedFile) -> ProcessedDocument:
        start = time.perf_counter()
        self.log.debug("Processing %s", file.discovered.path)

        headings = extract_headings(file.body)
        links = extract_links(file.body)
        images = extract_images(file.body)
        code_blocks = extract_code_blocks(file.body)

        return ProcessedDocument(
            file_path=file.discovered.path,
            title=resolve_title(file.frontmatter, headings),
            body=file.body,
            frontmatter=dict(file.frontmatter),
            word_count=count_words(file.body),
            headings=headings,
            links=links,
            images=images,
            code_blocks=code_blocks,
            processed_at=datetime.now(timezone.utc),
            processing_duration_ms=(time.perf_counter() - start) * 1000,
            warnings=list(file.warnings),
            quality_score=quality_score(len(file.warnings), headings, links),
        )

    def process_batch(self, files: list[ValidatedFile]) -> list[ProcessedDocument]:
        return [self.process_file(f) for f in files]
