"""Unit tests for core/discover.py"""

import logging

import pytest

from repodocs.config import DEFAULT_PATTERNS, parse_project_config
from repodocs.core.discover import (
    FileDiscoverer,
    Pattern,
    PatternKind,
    dedupe,
    glob_to_regex,
    walk_config,
)
from repodocs.core.models import DiscoveredFile, EntryKind, RepositoryEntry
from repodocs.errors import InvalidPattern, QuotaExceeded
from repodocs.remote.memory import InMemoryAccess


SCENARIO_TOML = """\
[project]
name = "scenario"

[documents.doc1]
title = "Doc 1"
path = "docs/a.md"
"""


@pytest.fixture(name="scenario_access")
def scenario_access_fixture():
    access = InMemoryAccess()
    access.add_file("docs/a.md", "# A")
    access.add_file("README.md", "# Readme")
    return access


# --- pattern classification ---

@pytest.mark.parametrize("raw, kind", [
    ("README.md", PatternKind.exact),
    ("*.md", PatternKind.glob),
    ("docs/**/*.md", PatternKind.glob),
    ("doc?.md", PatternKind.glob),
    ("[A-Z]*.md", PatternKind.glob),
    (r"regex:^[A-Z]+\.md$", PatternKind.regex),
])
def test_pattern_kind(raw, kind):
    assert Pattern.parse(raw).kind == kind


@pytest.mark.parametrize("raw", [
    "docs/[abc.md",
    "a***b",
    "docs/**.md",
    "regex:(unclosed",
])
def test_invalid_patterns(raw):
    with pytest.raises(InvalidPattern):
        Pattern.parse(raw)


@pytest.mark.parametrize("glob, path, matched", [
    ("*.md", "README.md", True),
    ("*.md", "docs/deep/a.md", True),          # '*' crosses '/'
    ("*.md", "notes.txt", False),
    ("docs/**/*.md", "docs/a.md", True),
    ("docs/**/*.md", "docs/x/y/a.md", True),
    ("docs/**/*.md", "other/a.md", False),
    ("doc?.md", "doc1.md", True),
    ("doc?.md", "doc12.md", False),
    ("[A-Z]*.md", "Readme.md", True),
    ("[!A-Z]*.md", "readme.md", True),
    ("[!A-Z]*.md", "Readme.md", False),
    ("docs/**", "docs/a/b.md", True),
    ("a+b.md", "a+b.md", True),
])
def test_glob_matching(glob, path, matched):
    assert Pattern.parse(glob).matches(path) is matched


def test_glob_to_regex_is_anchored():
    assert glob_to_regex("*.md").startswith("^")
    assert glob_to_regex("*.md").endswith("$")


@pytest.mark.parametrize("path, matched", [
    ("README.md", True),
    ("CHANGELOG.md", True),
    ("docs/LICENSE.md", True),      # search, not full match
    ("Readme.md", False),
])
def test_regex_pattern_uses_search(path, matched):
    assert Pattern.parse(r"regex:[A-Z]+\.md$").matches(path) is matched


# --- config walk ---

def test_walk_config_origins_and_order(project_config):
    files = list(walk_config(project_config.documents))
    assert [(f.path, f.origin) for f in files] == [
        ("docs/guide.md", "guide"),
        ("docs/install.md", "guide:Install"),
        ("docs/missing.md", "guide:Missing"),
        ("docs/api/index.md", "reference:API"),
        ("README.md", "readme"),
    ]


def test_dedupe_sorts_and_keeps_first():
    files = [
        DiscoveredFile(path="b.md", origin="config"),
        DiscoveredFile(path="a.md", origin="pattern:*.md"),
        DiscoveredFile(path="b.md", origin="pattern:*.md"),
    ]
    assert [(f.path, f.origin) for f in dedupe(files)] == [("a.md", "pattern:*.md"), ("b.md", "config")]


# --- discovery ---

def test_discovery_scenario(scenario_access):
    """Config path plus README.md and *.md conventions yield each file exactly once."""
    config = parse_project_config(SCENARIO_TOML)
    files = FileDiscoverer(scenario_access, ["README.md", "*.md"]).discover(config)
    assert sorted(f.path for f in files) == ["README.md", "docs/a.md"]
    assert len(files) == len({f.path for f in files})
    assert {f.path: f.origin for f in files}["docs/a.md"] == "doc1"


def test_discovery_output_is_sorted_subset_of_reachable_files(repo):
    files = FileDiscoverer(repo, ["docs/**/*.md", "*.py"]).discover()
    paths = [f.path for f in files]
    assert paths == sorted(set(paths))
    assert set(paths) <= set(repo.files)
    assert paths == ["docs/api/index.md", "docs/guide.md", "docs/install.md", "src/main.py"]


def test_default_patterns(repo):
    paths = [f.path for f in FileDiscoverer(repo, DEFAULT_PATTERNS).discover()]
    assert "README.md" in paths
    assert "docs/guide.md" in paths
    assert "src/main.py" not in paths


def test_exact_pattern_missing_file_contributes_nothing(repo):
    assert FileDiscoverer(repo, ["CONTRIBUTING.md"]).discover() == []


def test_glob_records_estimated_size(repo):
    (f,) = FileDiscoverer(repo, ["README.md", "src/*.py"]).discover()[1:]
    assert f.path == "src/main.py"
    assert f.estimated_size == len("print('hello')\n")


def test_invalid_pattern_is_skipped_and_logged(repo, caplog):
    with caplog.at_level(logging.WARNING):
        files = FileDiscoverer(repo, ["regex:(", "README.md"]).discover()
    assert [f.path for f in files] == ["README.md"]
    assert "regex:(" in caplog.text


def test_tree_is_listed_once_for_several_patterns(repo):
    FileDiscoverer(repo, ["*.md", "docs/**/*.md", r"regex:\.py$"]).discover()
    listed = [arg for name, arg in repo.calls if name == "list_directory"]
    assert len(listed) == len(set(listed))


def test_failing_subtree_contributes_nothing(repo, caplog):
    repo.failing.add("docs")
    with caplog.at_level(logging.WARNING):
        paths = [f.path for f in FileDiscoverer(repo, ["*.md"]).discover()]
    assert paths == ["README.md"]
    assert "docs" in caplog.text


def test_listing_cycle_terminates():
    """A directory that lists itself (or its parent) is walked once."""
    access = InMemoryAccess()
    access.add_file("loop/a.md", "# A")
    access.listings["loop"] = [
        RepositoryEntry(path="loop/a.md", name="a.md", kind=EntryKind.file),
        RepositoryEntry(path="loop", name="loop", kind=EntryKind.dir),
        RepositoryEntry(path="", name="..", kind=EntryKind.dir),
    ]
    paths = [f.path for f in FileDiscoverer(access, ["*.md"]).discover()]
    assert paths == ["loop/a.md"]
    assert [arg for name, arg in access.calls if name == "list_directory"].count("loop") == 1


def test_other_entries_are_ignored():
    access = InMemoryAccess()
    access.listings[""] = [RepositoryEntry(path="link.md", name="link.md", kind=EntryKind.other)]
    assert FileDiscoverer(access, ["*.md"]).discover() == []


def test_quota_exceeded_is_not_contained():
    class Exhausted(InMemoryAccess):
        def list_directory(self, path):
            raise QuotaExceeded()

    with pytest.raises(QuotaExceeded):
        FileDiscoverer(Exhausted(), ["*.md"]).discover()
