"""Root test configuration: environment isolation and shared repository fixtures"""

import os
from datetime import datetime, timedelta, timezone

import pytest

from repodocs.config import ENV_PREFIX, parse_project_config
from repodocs.core.models import Quota
from repodocs.remote.memory import InMemoryAccess


DOCUMENTS_TOML = """\
[project]
name = "sample"
description = "Sample project"

[documents.guide]
title = "Guide"
path = "docs/guide.md"
sub_documents = [
    { title = "Install", path = "docs/install.md" },
    { title = "Missing", path = "docs/missing.md" },
]

[documents.reference]
title = "Reference"
sub_documents = [
    { title = "API", path = "docs/api/index.md" },
]

[documents.readme]
title = "Readme"
path = "README.md"
"""

GUIDE_MD = """\
---
title: "User Guide"
author: Docs Team
---
# User Guide

Read the [install notes](install.md) first, then the [API](api/index.md).

## Getting started

```bash
pip install sample
```
"""

INSTALL_MD = """\
# Install

Install the package with pip and configure your token as described below.
![diagram](img/setup.png)
"""

API_MD = """\
# API

The API reference lists every public function, class and module.
See [the site](https://example.com) for more.
"""

README_MD = """\
# Sample

A sample repository used to exercise the documentation pipeline end to end.
"""


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch):
    """Strip REPODOCS_* variables so the developer's environment never leaks into tests."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


@pytest.fixture(name="project_config")
def project_config_fixture():
    return parse_project_config(DOCUMENTS_TOML)


@pytest.fixture(name="repo")
def repo_fixture():
    """An InMemoryAccess holding a small documented repository."""
    access = InMemoryAccess(
        quota=Quota(remaining=5000, limit=5000, reset_at=datetime.now(timezone.utc) + timedelta(hours=1)),
    )
    access.add_file("documents.toml", DOCUMENTS_TOML)
    access.add_file("README.md", README_MD)
    access.add_file("docs/guide.md", GUIDE_MD)
    access.add_file("docs/install.md", INSTALL_MD)
    access.add_file("docs/api/index.md", API_MD)
    access.add_file("src/main.py", "print('hello')\n")
    return access
