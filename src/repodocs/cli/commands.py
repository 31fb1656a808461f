"""CLI command implementations"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from repodocs.cancellation import CancellationToken
from repodocs.config import Settings, load_config, load_project_config
from repodocs.core.discover import FileDiscoverer
from repodocs.core.export import export_result
from repodocs.core.models import ProjectConfig
from repodocs.core.organization import OrganizationProcessor
from repodocs.core.pipeline import Pipeline, ProcessingContext
from repodocs.errors import RepodocsError
from repodocs.remote.access import RepositoryAccess, read_project_config
from repodocs.remote.github import GitHubAccess


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def _open_access(settings: Settings, repo: str, cancel: CancellationToken = None) -> GitHubAccess:
    """Remote access for ``repo``; usable as a context manager."""
    return GitHubAccess(settings, repo, cancel=cancel)


def _project_config(access: RepositoryAccess, settings: Settings, path: Optional[str]) -> ProjectConfig | None:
    """Local --config file when given, else the repository's own config file (None when absent)."""
    if path:
        return load_project_config(Path(path))
    config = read_project_config(access, settings.config_file)
    if config is None:
        logger.warning("No %s in repository; using discovery patterns only", settings.config_file)
    return config


def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
    ):
    """Fetch, validate and structure markdown documentation from remote repositories."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT, force=True)


def discover_cmd(
    repo: Annotated[str, typer.Argument(help="Repository name (or owner/name)")],
    config: Annotated[Optional[str], typer.Option("--config", help="Local documents.toml to use instead of the repository's")] = None,
    ):
    """List the files the pipeline would process, with the config key or pattern that found each."""
    settings = _settings()
    try:
        with _open_access(settings, repo) as access:
            project = _project_config(access, settings, config)
            files = FileDiscoverer(access, settings.discovery_patterns).discover(project)
    except (RepodocsError, ValueError) as e:
        _fail(f"Discovery failed for {repo}", e)
    for f in files:
        typer.echo(f"  {f.path}  ({f.origin})")
    typer.echo(f"Discovered {len(files)} file(s) in {repo}")


def process_cmd(
    repo: Annotated[str, typer.Argument(help="Repository name (or owner/name)")],
    config: Annotated[Optional[str], typer.Option("--config", help="Local documents.toml to use instead of the repository's")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    batch: Annotated[Optional[int], typer.Option("--batch-size", help="Paths per batched content query")] = None,
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Cancel the run after this many seconds")] = None,
    ):
    """Run the pipeline: discover -> validate -> process, then write documents and navigation."""
    settings = _settings(overrides={"output_dir": out, "batch_size": batch})
    cancel = CancellationToken.with_timeout(timeout) if timeout else CancellationToken()

    try:
        with _open_access(settings, repo, cancel) as access:
            project = _project_config(access, settings, config)
            result = Pipeline().execute(ProcessingContext(
                repository=repo,
                access=access,
                config=project,
                patterns=settings.discovery_patterns,
                cancel=cancel,
            ))
    except (RepodocsError, ValueError) as e:
        _fail(f"Processing {repo} failed", e)

    output_dir = Path(settings.output_dir) / repo.rpartition("/")[2]
    try:
        written, nav_json = export_result(
            result, project, output_dir, settings.url_prefix, settings.nav_heading_level)
    except OSError as e:
        _fail("Export failed", e)

    if nav_json is not None:
        typer.echo(f"  navigation -> {nav_json}")

    for src, json_path in written:
        typer.echo(f"  {src} -> {json_path}")
    typer.echo(
        f"Processed {len(result.documents)} of {result.discovered_count} discovered document(s) "
        f"in {result.duration_ms:.0f}ms; written to {output_dir}/"
    )


def quota_cmd():
    """Show the remaining API quota and when it resets."""
    settings = _settings()
    try:
        with _open_access(settings, "") as access:
            quota = access.current_quota()
    except RepodocsError as e:
        _fail("Quota check failed", e)
    limit = f"/{quota.limit}" if quota.limit is not None else ""
    typer.echo(f"Remaining: {quota.remaining}{limit}, resets at {quota.reset_at.isoformat()}")


def _organization_repos(settings: Settings) -> list[str]:
    """Repository names of the configured organization; exits 1 when none are configured or found."""
    if not settings.github_organization:
        _fail("No organization configured (set REPODOCS_GITHUB_ORGANIZATION)")
    try:
        with _open_access(settings, "") as access:
            names = access.list_repositories()
    except RepodocsError as e:
        _fail("Listing repositories failed", e)
    if not names:
        typer.echo(f"No repositories found for {settings.github_organization}.")
        raise typer.Exit(1)
    return names


def _organization(settings: Settings, cancel: CancellationToken = None) -> OrganizationProcessor:
    return OrganizationProcessor(lambda name: _open_access(settings, name, cancel), settings, cancel=cancel)


def repos_cmd():
    """List the repositories of the configured organization."""
    for name in _organization_repos(_settings()):
        typer.echo(name)


def scan_cmd(
    show_all: Annotated[bool, typer.Option("--all", help="Also list repositories without a document tree file")] = False,
    ):
    """Find the organization's repositories that carry a document tree file."""
    settings = _settings()
    names = _organization_repos(settings)
    try:
        scans = _organization(settings).scan(names)
    except RepodocsError as e:
        _fail(f"Scanning {settings.github_organization} failed", e)

    for scan in scans:
        if scan.has_config:
            typer.echo(f"  {scan.name}")
        elif show_all:
            typer.echo(f"  {scan.name}  (no {settings.config_file})")
    found = sum(scan.has_config for scan in scans)
    typer.echo(f"Found {settings.config_file} in {found} of {len(scans)} repositories")


def process_org_cmd(
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Cancel the run after this many seconds")] = None,
    ):
    """Process every repository of the organization that carries a document tree file."""
    settings = _settings(overrides={"output_dir": out})
    cancel = CancellationToken.with_timeout(timeout) if timeout else CancellationToken()
    names = _organization_repos(settings)
    try:
        report = _organization(settings, cancel).process(names)
    except RepodocsError as e:
        _fail(f"Processing {settings.github_organization} failed", e)

    for outcome in report.outcomes:
        if outcome.error is None:
            typer.echo(f"  {outcome.name}: {len(outcome.result.documents)} document(s) -> {outcome.output_dir}/")
        else:
            typer.echo(f"  {outcome.name}: failed: {outcome.error}", err=True)
    typer.echo("Processing summary:")
    typer.echo(f"  Repositories in organization: {report.total}")
    typer.echo(f"  With {settings.config_file}: {len(report.outcomes)}")
    typer.echo(f"  Processed: {len(report.processed)}")
    typer.echo(f"  Failed: {len(report.failed)}")
    if report.failed:
        raise typer.Exit(1)
