"""Navigation tree assembled from the declared document order and the processed documents"""

import html
import logging
from typing import Iterable

from repodocs.core.models import DocumentTreeNode, NavigationArtifact, NavNode, ProcessedDocument


logger = logging.getLogger(__name__)

ROOT_TITLE = "root"
MARKDOWN_EXT = ".md"
INDENT = "  "


def url_for(path: str, prefix: str = "") -> str:
    """'dir/page.md' -> '/dir/page', 'dir/index.md' -> '/dir/', 'index.md' -> '/'."""
    stem = path.strip().removesuffix(MARKDOWN_EXT)
    if stem == "index" or stem.endswith("/index"):
        stem = stem.removesuffix("index")
        url = f"{prefix}/{stem}/"
    else:
        url = f"{prefix}/{stem}"
    while "//" in url:
        url = url.replace("//", "/")
    return url if url.startswith("/") else "/" + url


class NavigationAssembler:
    """Rebuild the declared tree as NavNodes, keeping declared order and pruning unprocessed files.

    A node whose path was not processed is dropped with a warning; if some of
    its children survive it is kept as a section without a URL instead. A
    structural node left with no children is dropped.
    """

    def __init__(
        self,
        url_prefix: str = "",
        include_headings_max_level: int | None = None,
        log: logging.Logger | None = None,
    ):
        self.url_prefix = url_prefix
        self.include_headings_max_level = include_headings_max_level or None
        self.log = log or logger

    def url_for(self, path: str) -> str:
        return url_for(path, self.url_prefix)

    def build(
        self,
        ordered_roots: Iterable[DocumentTreeNode],
        processed_by_path: dict[str, ProcessedDocument],
    ) -> NavNode:
        """Synthetic root whose children are the top-level entries."""
        children = [self._node(n, processed_by_path) for n in ordered_roots]
        return NavNode(title=ROOT_TITLE, children=[c for c in children if c is not None])

    def build_artifact(
        self,
        ordered_roots: Iterable[DocumentTreeNode],
        processed_by_path: dict[str, ProcessedDocument],
    ) -> NavigationArtifact:
        tree = self.build(ordered_roots, processed_by_path)
        return NavigationArtifact(tree=tree, html=render_html_nav(tree))

    def _headings(self, doc: ProcessedDocument, url: str) -> list[NavNode]:
        if self.include_headings_max_level is None:
            return []
        return [
            NavNode(title=h.text, url=f"{url}#{h.anchor}")
            for h in doc.headings
            if 2 <= h.level <= self.include_headings_max_level
        ]

    def _node(self, node: DocumentTreeNode, processed: dict[str, ProcessedDocument]) -> NavNode | None:
        children = [self._node(child, processed) for child in node.children]
        children = [c for c in children if c is not None]

        if node.path:
            doc = processed.get(node.path.strip("/"))
            if doc is None:
                if not children:
                    self.log.warning("Dropping nav entry '%s': %s was not processed", node.title, node.path)
                    return None
                self.log.warning("Nav entry '%s' kept as a section: %s was not processed", node.title, node.path)
                return NavNode(title=node.title, children=children)
            url = self.url_for(node.path)
            return NavNode(title=node.title, url=url, children=self._headings(doc, url) + children)

        if not children:
            self.log.debug("Dropping empty section '%s'", node.title)
            return None
        return NavNode(title=node.title, children=children)


def _render_node(node: NavNode, depth: int, out: list[str]) -> None:
    pad = INDENT * depth
    title = html.escape(node.title)
    if node.url is not None:
        out.append(f'{pad}<li class="docs-nav__item">'
                   f'<a class="docs-nav__link" href="{html.escape(node.url)}">{title}</a>')
    else:
        out.append(f'{pad}<li class="docs-nav__item docs-nav__section">'
                   f'<span class="docs-nav__section-title">{title}</span>')

    if node.children:
        out.append(f'{pad}{INDENT}<ul class="docs-nav__list">')
        for child in node.children:
            _render_node(child, depth + 2, out)
        out.append(f"{pad}{INDENT}</ul>")
        out.append(f"{pad}</li>")
    else:
        out[-1] += "</li>"


def render_html_nav(root: NavNode) -> str:
    """Nested <nav><ul><li> markup; the synthetic root itself is not rendered."""
    out = ['<nav class="docs-nav">', f'{INDENT}<ul class="docs-nav__list">']
    for child in root.children:
        _render_node(child, 2, out)
    out += [f"{INDENT}</ul>", "</nav>"]
    return "\n".join(out) + "\n"
