"""Shared fixtures for core unit tests"""

import pytest

from repodocs.core.models import DiscoveredFile, ValidatedFile
from repodocs.core.parse import split_frontmatter


SAMPLE_MD = """\
# Heading 1

A paragraph with **bold** text and an [internal link](other.md).

## Heading 2

- item one
- item two
- see [docs](https://example.com/docs)

```python
print("hello")
```

![logo](img/logo.png) and ![second](img/second.png)

Footer paragraph.
"""

SAMPLE_FM_MD = """\
---
title: Test Doc
slug: 'test-doc'
---

# Title

Body content.
"""


def make_validated(raw: str, path: str = "docs/sample.md", warnings: list[str] | None = None) -> ValidatedFile:
    """Build a ValidatedFile the way the validator would, without remote access."""
    parsed = split_frontmatter(raw)
    return ValidatedFile(
        discovered=DiscoveredFile(path=path, origin="test"),
        raw_content=raw,
        frontmatter=parsed.frontmatter,
        body=parsed.body,
        warnings=list(warnings or []),
    )


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD


@pytest.fixture(name="sample_validated")
def sample_validated_fixture():
    return make_validated(SAMPLE_MD)


@pytest.fixture(name="sample_fm_validated")
def sample_fm_validated_fixture():
    return make_validated(SAMPLE_FM_MD, path="docs/test-doc.md")


@pytest.fixture(name="make_validated")
def make_validated_fixture():
    return make_validated
