"""Line-oriented heading and fenced code block extraction"""

from repodocs.core.models import CodeBlock, Heading
from repodocs.core.utils.slug import anchorize


MAX_HEADING_LEVEL = 6
FENCE = '```'


def heading_level(line: str) -> int | None:
    """Count leading '#' (e.g. '## Title' → 2); None when absent or deeper than 6."""
    count = len(line) - len(line.lstrip('#'))
    return count if 1 <= count <= MAX_HEADING_LEVEL else None


def extract_headings(body: str) -> list[Heading]:
    """Every line starting with 1-6 '#' becomes a Heading; 7+ is not a heading at all."""
    headings: list[Heading] = []
    for line in body.splitlines():
        level = heading_level(line)
        if level is None:
            continue
        text = line.lstrip('#').strip()
        headings.append(Heading(level=level, text=text, anchor=anchorize(text)))
    return headings


def extract_code_blocks(body: str) -> list[CodeBlock]:
    """Collect closed ``` fences; a fence left open swallows the rest of the body."""
    blocks: list[CodeBlock] = []
    current: list[str] = []
    language = None
    in_fence = False

    for line in body.splitlines():
        if line.startswith(FENCE):
            if in_fence:
                blocks.append(CodeBlock(language=language, content='\n'.join(current), line_count=len(current)))
                current, language, in_fence = [], None, False
            else:
                language = line[len(FENCE):].strip() or None
                in_fence = True
        elif in_fence:
            current.append(line)

    return blocks
