"""Utility functions for Folio.

This module contains small helpers used throughout the Folio codebase:
string processing, path classification, date handling and label normalization.

Key functions:
    slugify: Convert filenames and labels to URL slugs.
    titleize: Convert filenames to human-readable titles.
    split_date_prefix: Split a YYYY-MM-DD- prefix off a filename stem.
    coerce_datetime: Turn header date values into naive datetimes.
    normalize_labels: Normalize category/tag header values into a list.
    first_paragraph: Plain-text first paragraph for descriptions.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

# Re-export from html_utils so callers have one import site
from .html_utils import strip_html

MARKDOWN_EXTENSIONS = (".md", ".markdown")
HTML_EXTENSIONS = (".html", ".htm")

_DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})-(.+)$")


def slugify(name: str) -> str:
    """Convert a filename stem or label to a slug, dropping any date prefix.

    Args:
        name: Filename stem or free-form label.

    Returns:
        URL-friendly slug.
    """
    _, cleaned = split_date_prefix(name)
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", cleaned)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Removes date prefixes (YYYY-MM-DD), replaces hyphens and underscores
    with spaces, and capitalizes each word.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'

        >>> titleize("getting-started.md")
        'Getting Started'
    """
    _, base = split_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def split_date_prefix(name: str) -> tuple[datetime | None, str]:
    """Split a ``YYYY-MM-DD-`` prefix from a filename stem.

    Args:
        name: Filename stem (without extension).

    Returns:
        Tuple of (date or None, remainder). An invalid calendar date
        leaves the name untouched.

    Examples:
        >>> split_date_prefix("2024-01-15-hello-world")
        (datetime.datetime(2024, 1, 15, 0, 0), 'hello-world')

        >>> split_date_prefix("hello-world")
        (None, 'hello-world')
    """
    match = _DATE_PREFIX_RE.match(name)
    if not match:
        return None, name
    year, month, day, rest = match.groups()
    try:
        return datetime(int(year), int(month), int(day)), rest
    except ValueError:
        return None, name


def coerce_datetime(value: Any) -> datetime:
    """Convert a header date value into a naive datetime.

    Accepts ``datetime``, ``date`` and strings in ISO form or the
    ``YYYY-MM-DD HH:MM:SS +ZZZZ`` form used by Jekyll headers. Aware
    values are converted to UTC before dropping the timezone so all
    document dates compare with each other.

    Raises:
        ValueError: If the value cannot be read as a date.
    """
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        result = None
        for fmt in ("%Y-%m-%d %H:%M:%S %z", "%Y-%m-%d %H:%M %z"):
            try:
                result = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        if result is None:
            result = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported date value: {value!r}")
    if result.tzinfo is not None:
        result = result.astimezone(timezone.utc).replace(tzinfo=None)
    return result


def normalize_labels(*values: Any) -> list[str]:
    """Normalize category or tag header values into a de-duplicated list.

    Each value may be None, a whitespace-separated string, or a list of
    scalars. Order of first appearance is preserved.

    Examples:
        >>> normalize_labels("ml  stats", ["ml", "bayes"])
        ['ml', 'stats', 'bayes']
    """
    labels: list[str] = []
    for value in values:
        if value is None:
            continue
        if isinstance(value, str):
            items = value.split()
        elif isinstance(value, (list, tuple, set)):
            items = [str(item).strip() for item in value if item is not None]
        else:
            items = [str(value).strip()]
        for item in items:
            if item and item not in labels:
                labels.append(item)
    return labels


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first paragraph from text.

    Skips headings, strips HTML tags and Jinja syntax, collapses whitespace
    and truncates to the specified limit.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith("#") or para.startswith(("![", "```", "---")):
            continue
        para = strip_html(para)
        para = re.sub(r"\{[%#{].*?[%#}]\}", "", para)
        collapsed = " ".join(para.split())
        if collapsed:
            return collapsed[:limit]
    return ""


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.
    """
    if path.exists():
        shutil.rmtree(str(path), ignore_errors=True)
        if path.exists():
            # Fallback for stubborn directories
            for item in path.rglob("*"):
                if item.is_file():
                    item.unlink()
            for item in sorted(
                [p for p in path.rglob("*") if p.is_dir()], reverse=True
            ):
                item.rmdir()
            path.rmdir()
    path.mkdir(parents=True, exist_ok=True)


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (.md or .markdown)."""
    return path.suffix.lower() in MARKDOWN_EXTENSIONS


def is_html(path: Path) -> bool:
    """Check if a path is an HTML file (.html or .htm)."""
    return path.suffix.lower() in HTML_EXTENSIONS


def is_markup(path: Path) -> bool:
    """Check if a path may hold a document (Markdown or HTML)."""
    return is_markdown(path) or is_html(path)


def has_header(path: Path) -> bool:
    """Check whether a file starts with a ``---`` header delimiter."""
    try:
        with open(path, encoding="utf-8") as f:
            first = f.readline()
    except (OSError, UnicodeDecodeError):
        return False
    return first.rstrip() == "---"
