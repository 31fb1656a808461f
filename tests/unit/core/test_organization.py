"""Unit tests for core/organization.py"""

import contextlib
import json

import pytest

from repodocs.cancellation import CancellationToken
from repodocs.config import Settings
from repodocs.core.organization import OrganizationProcessor, RepositoryScan
from repodocs.errors import Cancelled, QuotaExceeded
from repodocs.remote.memory import InMemoryAccess


class Exhausted(InMemoryAccess):
    def list_directory(self, path):
        raise QuotaExceeded()


@pytest.fixture(name="accesses")
def accesses_fixture(repo):
    """handbook is fully configured, plain has no config file, broken fails during discovery."""
    plain = InMemoryAccess()
    plain.add_file("README.md", "# Plain\n\nA repository without a document tree file at all.")
    broken = Exhausted()
    broken.add_file("documents.toml", '[project]\nname = "broken"\n')
    return {"handbook": repo, "plain": plain, "broken": broken}


@pytest.fixture(name="make_processor")
def make_processor_fixture(accesses, tmp_path):
    def make(cancel=None, **overrides):
        settings = Settings(output_dir=str(tmp_path / "dist"), **overrides)
        return OrganizationProcessor(
            lambda name: contextlib.nullcontext(accesses[name]), settings, cancel=cancel)
    return make


def test_scan_reports_config_presence(make_processor):
    scans = make_processor().scan(["handbook", "plain", "broken"])
    assert scans == [
        RepositoryScan("handbook", True),
        RepositoryScan("plain", False),
        RepositoryScan("broken", True),
    ]


def test_scan_uses_configured_file_name(make_processor, accesses):
    accesses["plain"].add_file("docs.yaml", "project:\n  name: plain\n")
    scans = make_processor(config_file="docs.yaml").scan(["handbook", "plain"])
    assert [s.has_config for s in scans] == [False, True]


def test_process_contains_per_repository_failures(make_processor, tmp_path):
    report = make_processor().process(["handbook", "plain", "broken"])

    assert report.total == 3
    assert [o.name for o in report.outcomes] == ["handbook", "broken"]
    assert [o.name for o in report.processed] == ["handbook"]
    assert [o.name for o in report.failed] == ["broken"]
    assert "[discovering]" in report.failed[0].error

    out = tmp_path / "dist" / "handbook"
    assert report.processed[0].output_dir == out
    assert len(report.processed[0].result.documents) == 4
    nav = json.loads((out / "navigation.json").read_text())
    assert [c["title"] for c in nav["children"]] == ["Guide", "Reference", "Readme"]
    assert not (tmp_path / "dist" / "plain").exists()


def test_invalid_config_file_is_a_repository_failure(make_processor, accesses):
    accesses["plain"].add_file("documents.toml", "[project\n")
    report = make_processor().process(["plain", "handbook"])
    assert [o.name for o in report.failed] == ["plain"]
    assert "Invalid project config" in report.failed[0].error
    assert [o.name for o in report.processed] == ["handbook"]


def test_cancellation_stops_the_whole_run(make_processor):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(Cancelled):
        make_processor(cancel=token).process(["handbook", "plain"])
