"""Heuristic [text](url) link and ![alt](url) image scanning"""

from repodocs.core.models import Image, Link


EXTERNAL_SCHEMES = ('http://', 'https://')


def is_internal(url: str) -> bool:
    return not url.startswith(EXTERNAL_SCHEMES)


def parse_link(text: str, start: int = 0) -> Link | None:
    """Parse the link opened by the '[' at text[start]; None when '](' or ')' is missing."""
    end_bracket = text.find('](', start)
    if end_bracket == -1:
        return None
    end_paren = text.find(')', end_bracket + 2)
    if end_paren == -1:
        return None
    url = text[end_bracket + 2:end_paren]
    return Link(text=text[start + 1:end_bracket], url=url, is_internal=is_internal(url))


def extract_links(body: str) -> list[Link]:
    """Try a link at every '['; images are links too, malformed candidates are skipped."""
    links: list[Link] = []
    start = body.find('[')
    while start != -1:
        link = parse_link(body, start)
        if link is not None:
            links.append(link)
        start = body.find('[', start + 1)
    return links


def parse_image(line: str) -> Image | None:
    """Parse the first ![alt](url) on a line."""
    start = line.find('![')
    if start == -1:
        return None
    end_bracket = line.find('](', start)
    if end_bracket == -1:
        return None
    end_paren = line.find(')', end_bracket + 2)
    if end_paren == -1:
        return None
    url = line[end_bracket + 2:end_paren]
    return Image(alt_text=line[start + 2:end_bracket], url=url, is_internal=is_internal(url))


def extract_images(body: str) -> list[Image]:
    """One image per line at most: the first match wins."""
    return [img for line in body.splitlines() if (img := parse_image(line)) is not None]
