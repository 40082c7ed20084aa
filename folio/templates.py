"""Template rendering engine for Folio.

This module uses Jinja2 to render document bodies and wrap them in layouts.
Layouts live in ``_layouts`` and may carry their own header block naming a
parent layout, forming a chain that ends at a layout without one.
Partials live in ``_includes``.

Key pieces:
- TemplateEngine: Renders documents and provides context to templates.
- render_toc: Nested table of contents from collected headings.
- archive_fragment: One HTML fragment per category group.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape
from markupsafe import Markup

from .collections import CategoryGroup, CategoryIndex
from .content import Document, Heading, LayoutResolver
from .errors import BuildError
from .extractors import extract_frontmatter
from .html_utils import escape_html, join_root_url, strip_html
from .pagination import Paginator
from .renderers import RendererRegistry, default_renderer_registry, markdownify
from .utils import slugify

__all__ = ["TemplateEngine", "archive_fragment", "render_toc"]

ARCHIVE_GROUP_INCLUDE = "archive-group.html"

DEFAULT_ARCHIVE_GROUP = """\
<section class="archive-group" id="{{ group.slug }}">
  <h2 class="archive-group__title">{{ group.name }}</h2>
  <ul class="archive-group__entries">
  {%- for entry in group.entries %}
    <li><a href="{{ entry.url | relative_url }}">{{ entry.title }}</a> \
<time datetime="{{ entry.date | date_to_xmlschema }}">{{ entry.date | date_to_string }}</time></li>
  {%- endfor %}
  </ul>
</section>
"""

_NO_LAYOUT_VALUES = (None, False, "none", "null", "")


def render_toc(page: Document) -> Markup:
    """Render a table of contents as nested HTML from page headings.

    Returns:
        Markup-safe HTML string of the nested TOC, or empty Markup if no headings.
    """
    if not page.toc:
        return Markup("")
    return _render_toc_from_headings(page.toc)


def _render_toc_from_headings(headings: list[Heading]) -> Markup:
    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        else:
            html_parts.append("<ul>")
            level_stack.append(level)

        text = escape_html(strip_html(heading.text))
        html_parts.append(f'<li><a href="#{escape_html(heading.id)}">{text}</a>')

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


class _HeaderStrippingLoader(FileSystemLoader):
    """File loader that hides the YAML header block of layouts and includes."""

    def get_source(self, environment, template):
        source, filename, uptodate = super().get_source(environment, template)
        try:
            _, body = extract_frontmatter(source)
        except (yaml.YAMLError, ValueError):
            body = source
        return body, filename, uptodate


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        project_root: Root directory of the project.
        site: The ``site`` object exposed to templates.
        env: Jinja2 environment.
        layout_resolver: Finds layout files by name.
        renderer_registry: Markup renderers by file extension.
    """

    def __init__(
        self,
        project_root: Path,
        site: dict[str, Any],
        renderer_registry: RendererRegistry | None = None,
    ):
        self.project_root = project_root
        self.site = site
        self.layout_resolver = LayoutResolver(project_root)
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.env = Environment(
            loader=_HeaderStrippingLoader(
                [project_root / "_includes", project_root],
            ),
            autoescape=select_autoescape(["html", "xml"]),
            enable_async=False,
        )
        self._layout_meta: dict[str, dict[str, Any]] = {}
        self._install_filters()
        self._install_globals()

    def _install_filters(self) -> None:
        self.env.filters["relative_url"] = self.relative_url
        self.env.filters["absolute_url"] = self.absolute_url
        self.env.filters["date_to_string"] = _date_to_string
        self.env.filters["date_to_long_string"] = _date_to_long_string
        self.env.filters["date_to_xmlschema"] = _date_to_xmlschema
        self.env.filters["slugify"] = slugify
        self.env.filters["xml_escape"] = lambda value: Markup(escape_html(str(value)))
        self.env.filters["markdownify"] = lambda value: Markup(markdownify(str(value)))
        self.env.filters["strip_html"] = lambda value: strip_html(str(value))
        self.env.filters["number_of_words"] = lambda value: len(str(value).split())

    def _install_globals(self) -> None:
        self.env.globals["site"] = self.site
        self.env.globals["render_toc"] = render_toc
        self.env.globals["archive_fragment"] = self._archive_fragment
        self.env.globals["archive"] = self._archive

    def relative_url(self, path: str) -> str:
        """Prefix a root-relative path with ``baseurl``."""
        path = str(path or "")
        if path.startswith(("http://", "https://", "//")):
            return path
        baseurl = str(self.site.get("baseurl") or "").rstrip("/")
        suffix = path if path.startswith("/") else f"/{path}"
        return f"{baseurl}{suffix}"

    def absolute_url(self, path: str) -> str:
        """Prefix a path with ``url`` and ``baseurl``."""
        relative = self.relative_url(path)
        if relative.startswith(("http://", "https://", "//")):
            return relative
        return join_root_url(str(self.site.get("url") or ""), relative)

    def _archive_fragment(self, group: CategoryGroup) -> Markup:
        return archive_fragment(self, group)

    def _archive(self, index: CategoryIndex | None = None) -> Markup:
        index = index if index is not None else self.site.get("categories")
        if not index:
            return Markup("")
        return Markup("").join(archive_fragment(self, group) for group in index.groups())

    def render_body(self, doc: Document, paginator: Paginator | None = None) -> str:
        """Render a document body to HTML.

        Jinja runs first (unless ``render_with_liquid: false``), then the
        markup renderer. The document's ``content`` and ``toc`` are updated.
        """
        body = doc.body
        if doc.render_with_liquid and ("{{" in body or "{%" in body):
            body = self.render_string(body, self._context(doc, paginator))
        renderer = self.renderer_registry.get_renderer(doc.path)
        if renderer is not None:
            html, toc = renderer.render(body)
        else:
            html, toc = body, []
        doc.content = Markup(html)
        doc.toc = toc
        return doc.content

    def render_excerpt(self, doc: Document) -> str:
        """Render the excerpt source with the document's markup renderer."""
        renderer = self.renderer_registry.get_renderer(doc.path)
        if renderer is None or not doc.excerpt_source:
            doc.excerpt = Markup(doc.excerpt_source)
        else:
            html, _ = renderer.render(doc.excerpt_source)
            doc.excerpt = Markup(html)
        return doc.excerpt

    def render_layouts(self, doc: Document, paginator: Paginator | None = None) -> str:
        """Wrap a document's rendered content in its layout chain.

        Raises:
            BuildError: If layouts refer to each other in a cycle.
        """
        context = self._context(doc, paginator)
        output = doc.content
        name = doc.layout
        seen: list[str] = []
        while name:
            if name in seen:
                chain = " -> ".join([*seen, name])
                raise BuildError(doc.path, f"Layout cycle: {chain}")
            seen.append(name)
            layout_path = self.layout_resolver.find(name)
            if layout_path is None:
                print(f"Layout '{name}' requested in {doc.relative_path} does not exist.")
                break
            meta = self.layout_metadata(layout_path)
            template_name = layout_path.relative_to(self.project_root).as_posix()
            try:
                template = self.env.get_template(template_name)
                output = template.render(content=Markup(output), layout=meta, **context)
            except TemplateNotFound as exc:
                print(f"Template not found during render ({exc}); rendering body only.")
                return doc.content
            parent = meta.get("layout")
            name = None if parent in _NO_LAYOUT_VALUES else str(parent)
        doc.output = output
        return output

    def render_document(self, doc: Document, paginator: Paginator | None = None) -> str:
        """Render body and layouts in one go."""
        self.render_body(doc, paginator)
        return self.render_layouts(doc, paginator)

    def layout_metadata(self, layout_path: Path) -> dict[str, Any]:
        """Header values of a layout file (cached per path)."""
        key = str(layout_path)
        if key not in self._layout_meta:
            try:
                raw = layout_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise BuildError(layout_path, f"Cannot read layout: {exc}", exc) from exc
            try:
                meta, _ = extract_frontmatter(raw)
            except (yaml.YAMLError, ValueError) as exc:
                raise BuildError(layout_path, f"Invalid header block: {exc}", exc) from exc
            self._layout_meta[key] = meta
        return self._layout_meta[key]

    def _context(self, doc: Document, paginator: Paginator | None) -> dict[str, Any]:
        return {
            "site": self.site,
            "page": doc,
            "paginator": paginator,
        }

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string."""
        tmpl = self.env.from_string(template)
        return tmpl.render(**context)


def archive_fragment(engine: TemplateEngine, group: CategoryGroup) -> Markup:
    """Render the listing of one category group.

    Uses ``_includes/archive-group.html`` when the project has one, else a
    built-in fragment. The template receives ``group`` with ``name``,
    ``slug`` and ``entries`` (each with ``title``, ``url``, ``date``).
    """
    if (engine.project_root / "_includes" / ARCHIVE_GROUP_INCLUDE).is_file():
        template = engine.env.get_template(ARCHIVE_GROUP_INCLUDE)
    else:
        template = engine.env.from_string(DEFAULT_ARCHIVE_GROUP)
    return Markup(template.render(group=group, site=engine.site))


def _date_to_string(value: datetime) -> str:
    return value.strftime("%d %b %Y")


def _date_to_long_string(value: datetime) -> str:
    return value.strftime("%d %B %Y")


def _date_to_xmlschema(value: datetime) -> str:
    return value.isoformat()
