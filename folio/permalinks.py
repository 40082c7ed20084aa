"""Permalink templates for Folio.

A permalink template is a format string whose ``:placeholder`` tokens are
filled from a document's date, categories and filename::

    /blog/:year/:month/:day/:title:output_ext

Built-in style names stand for common templates (``date``, ``pretty``,
``ordinal``, ``none``). A ``permalink`` header on a document overrides the
site template for that document only.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import unquote

from .html_utils import join_url_path
from .utils import slugify, split_date_prefix

if TYPE_CHECKING:
    from .content import Document

BUILTIN_STYLES = {
    "date": "/:categories/:year/:month/:day/:title:output_ext",
    "pretty": "/:categories/:year/:month/:day/:title/",
    "ordinal": "/:categories/:year/:y_day/:title:output_ext",
    "none": "/:categories/:title:output_ext",
}

PLACEHOLDERS = (
    "year",
    "month",
    "i_month",
    "day",
    "i_day",
    "short_year",
    "y_day",
    "hour",
    "minute",
    "second",
    "title",
    "slug",
    "categories",
    "output_ext",
    "path",
    "basename",
    "name",
)

# Longest names first so ":i_month" never matches as ":i" + "_month".
_PLACEHOLDER_RE = re.compile(
    r":(" + "|".join(sorted(PLACEHOLDERS, key=len, reverse=True)) + r")"
)
_UNSAFE_TITLE_RE = re.compile(r"[^\w.~-]+")

OUTPUT_EXT = ".html"


def resolve_template(permalink: str | None) -> str:
    """Return the template for a permalink setting, expanding style names."""
    value = (permalink or "date").strip()
    return BUILTIN_STYLES.get(value, value)


def is_pretty(template: str) -> bool:
    """Whether a template produces directory-style URLs."""
    return template.endswith("/")


def expand_permalink(template: str, placeholders: dict[str, str]) -> str:
    """Fill a permalink template and normalize the resulting URL.

    Unknown placeholders are left in place. Empty values (such as a post
    with no categories) collapse, so the result never contains ``//``.

    Examples:
        >>> expand_permalink("/:categories/:title:output_ext",
        ...                  {"categories": "", "title": "hi", "output_ext": ".html"})
        '/hi.html'
    """
    template = resolve_template(template)

    def repl(match: re.Match) -> str:
        name = match.group(1)
        if name in placeholders:
            return placeholders[name]
        return match.group(0)

    expanded = _PLACEHOLDER_RE.sub(repl, template)
    url = join_url_path(expanded)
    if template.endswith("/") and not url.endswith("/"):
        url += "/"
    return url


def title_segment(name: str) -> str:
    """Make a filename-derived title safe for a URL, keeping its case."""
    cleaned = _UNSAFE_TITLE_RE.sub("-", name).strip("-")
    return cleaned or "index"


def placeholders_for(doc: Document) -> dict[str, str]:
    """Collect placeholder values for a document."""
    rel = PurePosixPath(doc.relative_path)
    stem = rel.stem
    _, undated = split_date_prefix(stem)
    raw_slug = str(doc.metadata.get("slug") or undated)
    date = doc.date
    return {
        "year": date.strftime("%Y"),
        "month": date.strftime("%m"),
        "i_month": str(date.month),
        "day": date.strftime("%d"),
        "i_day": str(date.day),
        "short_year": date.strftime("%y"),
        "y_day": date.strftime("%j"),
        "hour": date.strftime("%H"),
        "minute": date.strftime("%M"),
        "second": date.strftime("%S"),
        "title": title_segment(raw_slug),
        "slug": slugify(raw_slug),
        "categories": "/".join(c.lower() for c in doc.categories),
        "output_ext": OUTPUT_EXT,
        "path": rel.with_suffix("").as_posix(),
        "basename": stem,
        "name": slugify(stem),
    }


def post_url(doc: Document, template: str) -> str:
    """URL for a post or draft: its own permalink header or the site template."""
    own = doc.metadata.get("permalink")
    return expand_permalink(str(own) if own else template, placeholders_for(doc))


def page_url(doc: Document, template: str) -> str:
    """URL for a page.

    Pages follow their location in the project. ``index`` files map to their
    directory. Other pages get ``.html`` unless the site template is
    directory-style, in which case they get a trailing slash.
    """
    own = doc.metadata.get("permalink")
    if own:
        return expand_permalink(str(own), placeholders_for(doc))
    rel = PurePosixPath(doc.relative_path)
    parent = "" if str(rel.parent) == "." else rel.parent.as_posix()
    if rel.stem == "index":
        url = join_url_path(parent)
        return url if url.endswith("/") else f"{url}/"
    if is_pretty(resolve_template(template)):
        return f"{join_url_path(parent, rel.stem)}/"
    return join_url_path(parent, f"{rel.stem}{OUTPUT_EXT}")


def output_path_for(output_dir: Path, url: str) -> Path:
    """Map a URL to the file it is written to under the output directory.

    A URL ending in ``/`` is written as ``index.html`` inside that
    directory; a URL without the output extension gets it appended.

    Raises:
        ValueError: If the URL would resolve outside ``output_dir``.
    """
    path = join_url_path(unquote(url)).lstrip("/")
    if not path or url.endswith("/"):
        target = output_dir / path / "index.html"
    else:
        if not path.endswith(OUTPUT_EXT) and not PurePosixPath(path).suffix:
            path += OUTPUT_EXT
        target = output_dir / path
    if not target.resolve().is_relative_to(output_dir.resolve()):
        raise ValueError(f"URL {url!r} resolves outside {output_dir}")
    return target
