"""Metadata extractors for Folio.

This module contains implementations of the MetadataExtractor protocol.
Each extractor derives one kind of document attribute from the header
block and body of a source file.

Key classes:
- TitleExtractor: Header title, first heading, or titleized filename.
- DateExtractor: Header date, filename prefix, or file modification time.
- LabelExtractor: Categories and tags, normalized into lists.
- ExcerptExtractor: Header excerpt or the body up to the excerpt separator.
- DescriptionExtractor: Header description or first plain paragraph.
- CompositeMetadataExtractor: Runs extractors in order, threading the body.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

import yaml

from .protocols import MetadataExtractor
from .utils import (
    coerce_datetime,
    first_paragraph,
    is_markdown,
    normalize_labels,
    split_date_prefix,
    titleize,
)

if TYPE_CHECKING:
    from .content import SourceFile

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^(?:---|\.\.\.)[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)

# ATX heading (levels 1-3) or a setext heading at the start of the body.
_ATX_TITLE_RE = re.compile(r"\A\s*#{1,3}[ \t]+(.+?)[ \t]*#*[ \t]*(?:\r?\n|\Z)")
_SETEXT_TITLE_RE = re.compile(r"\A\s*([^\n]+?)[ \t]*\r?\n[=-]+[ \t]*(?:\r?\n|\Z)")


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a YAML header block from the body.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (header dict, remaining content). Text without a header
        yields an empty dict and the text unchanged.

    Raises:
        yaml.YAMLError: If the header is not valid YAML.
        ValueError: If the header is not a mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    data = yaml.safe_load(match.group(1))
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Header block must be a mapping")
    return data, text[match.end() :]


class TitleExtractor:
    """Extracts the document title.

    Order of precedence: the ``title`` header, the leading Markdown heading
    (when titles from headings are enabled), the titleized filename. With
    ``strip_title`` the heading used as the title is dropped from the body.
    """

    def __init__(self, from_headings: bool = True, strip_title: bool = False):
        self.from_headings = from_headings
        self.strip_title = strip_title

    def extract(
        self, body: str, source: SourceFile, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        title = metadata.get("title")
        if title is not None and str(title).strip():
            return {"title": str(title)}
        if self.from_headings and is_markdown(source.path):
            for pattern in (_ATX_TITLE_RE, _SETEXT_TITLE_RE):
                match = pattern.match(body)
                if match:
                    result: dict[str, Any] = {"title": match.group(1).strip()}
                    if self.strip_title:
                        result["body"] = body[match.end() :].lstrip("\r\n")
                    return result
        return {"title": titleize(source.path.name)}


class DateExtractor:
    """Extracts the document date.

    Looks for a ``date`` header, then a YYYY-MM-DD filename prefix, falling
    back to the file modification time.
    """

    def extract(
        self, body: str, source: SourceFile, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        """Extract the date.

        Raises:
            ValueError: If the ``date`` header cannot be read as a date.
        """
        if metadata.get("date") is not None:
            return {"date": coerce_datetime(metadata["date"])}
        found, _ = split_date_prefix(source.path.stem)
        if found is None:
            found = datetime.fromtimestamp(source.path.stat().st_mtime)
        return {"date": found}


class LabelExtractor:
    """Extracts categories and tags.

    Posts stored under ``<dir>/_posts`` get the directory parts as leading
    categories. Header ``categories``/``category`` and ``tags``/``tag``
    accept lists or whitespace-separated strings.
    """

    def extract(
        self, body: str, source: SourceFile, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        categories = normalize_labels(
            source.directory_categories(),
            metadata.get("categories"),
            metadata.get("category"),
        )
        tags = normalize_labels(metadata.get("tags"), metadata.get("tag"))
        return {"categories": categories, "tags": tags}


class ExcerptExtractor:
    """Extracts the excerpt source text.

    Uses the ``excerpt`` header when present, otherwise the body up to the
    first excerpt separator. A title heading removed by ``strip_title`` is
    already gone from the body it receives; any other heading is kept.
    """

    def __init__(self, separator: str = "\n\n"):
        self.separator = separator or "\n\n"

    def extract(
        self, body: str, source: SourceFile, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        if metadata.get("excerpt") is not None:
            return {"excerpt_source": str(metadata["excerpt"])}
        return {"excerpt_source": self._extract_excerpt(body)}

    def _extract_excerpt(self, text: str) -> str:
        remaining = text.lstrip()
        if self.separator in remaining:
            return remaining.split(self.separator, 1)[0].strip()
        return remaining.strip()


class DescriptionExtractor:
    """Extracts a short plain-text description (160 chars at most)."""

    def extract(
        self, body: str, source: SourceFile, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        if metadata.get("description") is not None:
            return {"description": str(metadata["description"])}
        return {"description": first_paragraph(body)}


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Runs every extractor in order and merges their results. An extractor
    that returns a ``body`` key replaces the body seen by later extractors.
    """

    def __init__(self, extractors: list[MetadataExtractor] | None = None):
        if extractors is None:
            self._extractors = [
                TitleExtractor(),
                DateExtractor(),
                LabelExtractor(),
                ExcerptExtractor(),
                DescriptionExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor: MetadataExtractor) -> None:
        """Add an extractor to the composite."""
        self._extractors.append(extractor)

    def extract(
        self, body: str, source: SourceFile, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        """Run all extractors.

        Returns:
            Dictionary with all extracted attributes plus the final ``body``.
        """
        result: dict[str, Any] = {"body": body}
        for extractor in self._extractors:
            extracted = extractor.extract(result["body"], source, metadata)
            result.update(extracted)
        return result


def create_metadata_extractor(config: dict[str, Any]) -> CompositeMetadataExtractor:
    """Build the extractor chain for a site configuration."""
    titles = config.get("titles_from_headings") or {}
    return CompositeMetadataExtractor(
        [
            TitleExtractor(
                from_headings=bool(titles.get("enabled", True)),
                strip_title=bool(titles.get("strip_title", False)),
            ),
            DateExtractor(),
            LabelExtractor(),
            ExcerptExtractor(str(config.get("excerpt_separator") or "\n\n")),
            DescriptionExtractor(),
        ]
    )
