"""Front matter separation and flat key: value parsing"""

from dataclasses import dataclass, field


FRONTMATTER_DELIMITER = '---'
QUOTE_CHARS = ('"', "'")


@dataclass(frozen=True)
class ParsedMarkdown:
    frontmatter: dict[str, str] = field(default_factory=dict)
    body:        str = ''


def _unquote(value: str) -> str:
    """Strip one pair of matching surrounding quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in QUOTE_CHARS:
        return value[1:-1]
    return value


def parse_flat_frontmatter(lines: list[str]) -> dict[str, str]:
    """Parse one `key: value` pair per line; lines without a key are skipped."""
    fm: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(':')
        key = key.strip()
        if not sep or not key:
            continue
        fm[key] = _unquote(value.strip())
    return fm


def split_frontmatter(text: str) -> ParsedMarkdown:
    """Return (frontmatter, body). Without a closing delimiter line the whole text is body."""
    lines = text.splitlines()
    if not lines or lines[0].rstrip() != FRONTMATTER_DELIMITER:
        return ParsedMarkdown(frontmatter={}, body=text)

    for i in range(1, len(lines)):
        if lines[i].rstrip() == FRONTMATTER_DELIMITER:
            body = '\n'.join(lines[i + 1:]).strip()
            return ParsedMarkdown(frontmatter=parse_flat_frontmatter(lines[1:i]), body=body)
    return ParsedMarkdown(frontmatter={}, body=text)
