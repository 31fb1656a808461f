"""Anchor generation for heading links"""


def anchorize(text: str) -> str:
    """Lowercase text and map each non-alphanumeric char to '-'; runs of '-' are kept, ends trimmed."""
    return ''.join(c if c.isalnum() else '-' for c in text.lower()).strip('-')
