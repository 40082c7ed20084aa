"""Site building functionality for Folio.

This module contains the core logic for building a static site from a
project. It loads configuration and data, processes documents, groups them
by category and tag, renders templates, paginates, and writes the output.

Key functions:
- build_site: Main function to build the entire site.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import TemplateSyntaxError

from .assets import StaticFileCopier
from .collections import DocumentCollection, build_category_index, build_tag_index
from .config import CONFIG_FILENAMES, enabled_plugins, load_config, load_data
from .content import ContentProcessor, Document, StaticFile
from .errors import BuildError, ConfigError
from .feeds import create_feed_registry
from .pagination import Paginator, find_template_page, page_path, paginate
from .permalinks import output_path_for
from .protocols import TemplateRenderer
from .templates import TemplateEngine
from .utils import ensure_clean_dir

__all__ = ["BuildError", "BuildResult", "ConfigError", "build_site", "check_destination"]


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        documents: All documents rendered into the site.
        static_files: Files copied verbatim.
        output_dir: Directory where the site was built.
        site: The ``site`` object templates saw.
        written: Output files written for documents, including extra pages.
        feeds: Feed files generated by plugins.
    """

    documents: list[Document]
    static_files: list[StaticFile]
    output_dir: Path
    site: dict[str, Any]
    written: list[Path] = field(default_factory=list)
    feeds: list[str] = field(default_factory=list)


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    future: bool | None = None,
    unpublished: bool | None = None,
    base_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
    config_overrides: dict[str, Any] | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include ``_drafts``.
        future: Publish posts dated in the future (default: config).
        unpublished: Publish ``published: false`` documents (default: config).
        base_url: Override for the configured ``url``.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Write here instead of the configured destination.
        config_overrides: Extra configuration values that win over the file.

    Returns:
        BuildResult describing what was built.

    Raises:
        ConfigError: If the configuration or a data file is invalid.
        BuildError: If a document or layout fails to render.
    """
    overrides = dict(config_overrides or {})
    if base_url is not None:
        overrides["url"] = base_url
    config = load_config(project_root, overrides)
    include_drafts = include_drafts or bool(config.get("show_drafts"))
    plugins, unknown = enabled_plugins(config)
    for name in unknown:
        print(f"Plugin '{name}' is not supported; ignoring it.")

    output_dir = output_dir_override or (project_root / str(config["destination"]))
    check_destination(project_root, output_dir)
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    data = load_data(project_root)
    content = ContentProcessor(project_root, config).load(
        include_drafts=include_drafts, future=future, unpublished=unpublished
    )
    documents = content.documents
    collection = DocumentCollection(documents)
    posts = collection.posts().sorted()
    _link_neighbours(posts)

    site = dict(config)
    site.update(
        {
            "posts": posts,
            "pages": collection.pages(),
            "documents": collection,
            "categories": build_category_index(documents),
            "tags": build_tag_index(documents),
            "data": data,
            "time": datetime.now(),
            "static_files": content.static_files,
        }
    )
    engine: TemplateRenderer = TemplateEngine(project_root, site)

    pagers: list[Paginator] = []
    template_page: Document | None = None
    paginate_path = str(config["paginate_path"])
    if "jekyll-paginate" in plugins and config.get("paginate"):
        template_page = find_template_page(documents, paginate_path)
        if template_page is None:
            print(f"Pagination is enabled but no index page serves {paginate_path}.")
        else:
            pagers = paginate(posts, int(config["paginate"]), template_page.url, paginate_path)

    for doc in documents:
        _guarded(doc, engine.render_excerpt, doc)
    for doc in documents:
        first = pagers[0] if pagers and doc is template_page else None
        _guarded(doc, engine.render_body, doc, first)

    result = BuildResult(
        documents=documents,
        static_files=content.static_files,
        output_dir=output_dir,
        site=site,
    )
    seen_urls: dict[str, str] = {}
    for doc in documents:
        first = pagers[0] if pagers and doc is template_page else None
        rendered = _guarded(doc, engine.render_layouts, doc, first)
        result.written.append(_write_document(output_dir, doc, rendered, seen_urls))
        if doc is template_page:
            for pager in pagers[1:]:
                url = page_path(pager.page, doc.url, paginate_path)
                extra = dataclasses.replace(doc, url=url)
                rendered = _guarded(doc, engine.render_document, extra, pager)
                result.written.append(
                    _write_document(output_dir, extra, rendered, seen_urls)
                )

    StaticFileCopier(output_dir).run(content.static_files)
    result.feeds = create_feed_registry(plugins, config).generate_all(
        output_dir, documents, site
    )
    return result


def check_destination(project_root: Path, output_dir: Path) -> None:
    """Refuse an output directory that is, or contains, the project."""
    root = project_root.resolve()
    target = output_dir.resolve()
    if target == root or target in root.parents:
        raise ConfigError(
            project_root / CONFIG_FILENAMES[0],
            f"destination {output_dir} would overwrite the project itself",
        )


def _link_neighbours(posts: DocumentCollection) -> None:
    """Set ``previous`` (older) and ``next`` (newer) on each post."""
    for index, post in enumerate(posts):
        post.next = posts[index - 1] if index > 0 else None
        post.previous = posts[index + 1] if index + 1 < len(posts) else None


def _guarded(doc: Document, func: Callable, *args):
    """Run a rendering step, converting failures into BuildError."""
    try:
        return func(*args)
    except BuildError:
        raise
    except TemplateSyntaxError as exc:
        raise BuildError(
            doc.path,
            f"Template syntax error on line {exc.lineno}: {exc.message}",
            exc,
        ) from exc
    except Exception as exc:
        raise BuildError(doc.path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message."""
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"
    if error_type == "AttributeError":
        return f"Attribute error: {error_msg}"

    return f"{error_type}: {error_msg}"


def _write_document(
    output_dir: Path, doc: Document, rendered: str, seen_urls: dict[str, str]
) -> Path:
    """Write a rendered document, warning when two documents share a URL."""
    previous = seen_urls.get(doc.url)
    if previous is not None and previous != doc.relative_path:
        print(
            f"Conflict: {doc.relative_path} and {previous} both write {doc.url}; "
            "the later one wins."
        )
    seen_urls[doc.url] = doc.relative_path
    try:
        target = output_path_for(output_dir, doc.url)
    except ValueError as exc:
        raise BuildError(doc.path, str(exc), exc) from exc
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(rendered)
    return target
