"""Export: write processed documents and the navigation artifact to an output directory"""

import json
from pathlib import Path, PurePosixPath

import yaml

from repodocs.core.models import NavigationArtifact, PipelineResult, ProcessedDocument, ProjectConfig
from repodocs.core.navigation import NavigationAssembler


NAV_JSON = "navigation.json"
NAV_HTML = "navigation.html"


def build_markdown(doc: ProcessedDocument) -> str:
    """Return the body with a YAML front matter block prepended (resolved title + source fields)."""
    fm = dict(doc.frontmatter)
    fm['title'] = doc.title
    header = yaml.dump(fm, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return f"---\n{header}---\n\n{doc.body.lstrip()}"


def build_record(doc: ProcessedDocument) -> dict:
    """JSON-ready dict of the full document record."""
    return doc.model_dump(mode='json')


def write_document(doc: ProcessedDocument, output_dir: Path) -> tuple[Path, Path]:
    """Write markdown + JSON record for a single document.

    Output path mirrors the source directory structure:
      output_dir / <parent dirs of doc.file_path> / <stem>.{md,json}

    Returns (md_path, json_path).
    """
    src = PurePosixPath(doc.file_path)
    dest_dir = output_dir.joinpath(*src.parent.parts)
    dest_dir.mkdir(parents=True, exist_ok=True)

    md_path = dest_dir / f"{src.stem}.md"
    json_path = dest_dir / f"{src.stem}.json"
    md_path.write_text(build_markdown(doc), encoding='utf-8')
    json_path.write_text(json.dumps(build_record(doc), indent=2), encoding='utf-8')
    return md_path, json_path


def write_documents(docs: list[ProcessedDocument], output_dir: Path) -> list[tuple[str, Path]]:
    """Write every document. Returns (source_path, json_path) pairs."""
    output_dir.mkdir(parents=True, exist_ok=True)
    results = []
    for doc in docs:
        _, json_path = write_document(doc, output_dir)
        results.append((doc.file_path, json_path))
    return results


def write_navigation(artifact: NavigationArtifact, output_dir: Path) -> tuple[Path, Path]:
    """Write navigation.json (the tree) and navigation.html. Returns (json_path, html_path)."""
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / NAV_JSON
    html_path = output_dir / NAV_HTML
    json_path.write_text(artifact.tree.model_dump_json(indent=2), encoding='utf-8')
    html_path.write_text(artifact.html, encoding='utf-8')
    return json_path, html_path


def export_result(
    result: PipelineResult,
    project: ProjectConfig | None,
    output_dir: Path,
    url_prefix: str = '',
    nav_heading_level: int | None = None,
) -> tuple[list[tuple[str, Path]], Path | None]:
    """Write one run's documents, plus its navigation when a project config declares the tree.

    Returns the (source_path, json_path) pairs and the navigation.json path (None without a config).
    """
    written = write_documents(result.documents, output_dir)
    if project is None:
        return written, None
    assembler = NavigationAssembler(url_prefix, nav_heading_level)
    by_path = {doc.file_path: doc for doc in result.documents}
    nav_json, _ = write_navigation(assembler.build_artifact(project.documents.values(), by_path), output_dir)
    return written, nav_json
