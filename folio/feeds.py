"""Feed generation for Folio.

This module writes the machine-readable files that the ``jekyll-feed`` and
``jekyll-sitemap`` plugins produce: an Atom feed of recent posts and a
sitemap of every document.

Classes:
    FeedGenerator: Base class for feed generators.
    SitemapGenerator: Generates sitemap.xml files.
    AtomFeedGenerator: Generates the Atom feed of recent posts.
    FeedRegistry: Registry for managing feed generators.

Functions:
    create_feed_registry: Create a registry for the enabled plugins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .html_utils import escape_html, join_root_url, join_url_path

if TYPE_CHECKING:
    from .content import Document


def _site_root(site: dict[str, Any]) -> str:
    """Absolute URL of the site including ``baseurl``, or empty string."""
    base_url = str(site.get("url") or "").rstrip("/")
    if not base_url:
        return ""
    baseurl = str(site.get("baseurl") or "").strip("/")
    return f"{base_url}/{baseurl}" if baseurl else base_url


def _xml_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _author_name(site: dict[str, Any]) -> str:
    author = site.get("author")
    if isinstance(author, dict):
        return str(author.get("name") or "")
    return str(author or "")


class FeedGenerator(ABC):
    """Base class for feed generators.

    Subclasses implement specific formats. New formats can be added
    by creating new subclasses and registering them.
    """

    @property
    @abstractmethod
    def filename(self) -> str:
        """Output filename, relative to the output directory."""
        ...

    @abstractmethod
    def generate(
        self,
        documents: Iterable[Document],
        site: dict[str, Any],
    ) -> str | None:
        """Generate feed content.

        Returns:
            Feed content as a string, or None if the feed cannot be
            generated (e.g., missing site ``url``).
        """
        ...

    def write(
        self,
        output_dir: Path,
        documents: Iterable[Document],
        site: dict[str, Any],
    ) -> bool:
        """Generate and write the feed.

        Returns:
            True if the feed was written, False if skipped.
        """
        content = self.generate(documents, site)
        if content is None:
            return False
        output_path = output_dir / join_url_path(self.filename).lstrip("/")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        return True


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml following the sitemaps.org protocol.

    Lists every document except those with ``sitemap: false``. Requires
    ``url`` in the site configuration.
    """

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(
        self,
        documents: Iterable[Document],
        site: dict[str, Any],
    ) -> str | None:
        root = _site_root(site)
        if not root:
            return None

        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for doc in documents:
            if doc.metadata.get("sitemap") is False:
                continue
            loc = escape_html(join_root_url(root, doc.url))
            lastmod = doc.date.strftime("%Y-%m-%d")
            lines.append(f"  <url><loc>{loc}</loc><lastmod>{lastmod}</lastmod></url>")
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class AtomFeedGenerator(FeedGenerator):
    """Generates an Atom feed of the most recent posts.

    Path and length come from the ``feed`` configuration mapping
    (``path``, default ``feed.xml``; ``posts_limit``, default 10). Requires
    ``url`` in the site configuration.
    """

    def __init__(self, path: str = "feed.xml", posts_limit: int = 10):
        self.path = join_url_path(path).lstrip("/") or "feed.xml"
        self.posts_limit = posts_limit

    @property
    def filename(self) -> str:
        return self.path

    def generate(
        self,
        documents: Iterable[Document],
        site: dict[str, Any],
    ) -> str | None:
        root = _site_root(site)
        if not root:
            return None

        posts = [d for d in documents if d.is_post and not d.draft]
        posts.sort(key=lambda d: d.date, reverse=True)
        posts = posts[: self.posts_limit]

        title = escape_html(str(site.get("title") or "Feed"))
        feed_url = escape_html(join_root_url(root, f"/{self.path}"))
        updated = _xml_date(posts[0].date) if posts else _xml_date(datetime.now(timezone.utc))
        lines = [
            '<?xml version="1.0" encoding="utf-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f"<title>{title}</title>",
            f'<link href="{feed_url}" rel="self" type="application/atom+xml"/>',
            f'<link href="{escape_html(root)}/" rel="alternate" type="text/html"/>',
            f"<updated>{updated}</updated>",
            f"<id>{feed_url}</id>",
        ]
        subtitle = site.get("subtitle") or site.get("description")
        if subtitle:
            lines.append(f"<subtitle>{escape_html(str(subtitle))}</subtitle>")
        author = _author_name(site)
        if author:
            lines.append(f"<author><name>{escape_html(author)}</name></author>")

        for doc in posts:
            link = escape_html(join_root_url(root, doc.url))
            lines.append("<entry>")
            lines.append(f"<title>{escape_html(doc.title)}</title>")
            lines.append(f'<link href="{link}" rel="alternate" type="text/html"/>')
            lines.append(f"<id>{link}</id>")
            lines.append(f"<published>{_xml_date(doc.date)}</published>")
            lines.append(f"<updated>{_xml_date(doc.date)}</updated>")
            for category in doc.categories:
                lines.append(f'<category term="{escape_html(category)}"/>')
            if doc.excerpt:
                lines.append(f'<summary type="html">{escape_html(str(doc.excerpt))}</summary>')
            lines.append(f'<content type="html">{escape_html(str(doc.content))}</content>')
            lines.append("</entry>")
        lines.append("</feed>")
        return "\n".join(lines) + "\n"


class FeedRegistry:
    """Registry for managing feed generators.

    Attributes:
        _generators: List of registered feed generators.
    """

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def __len__(self) -> int:
        return len(self._generators)

    def generate_all(
        self,
        output_dir: Path,
        documents: Iterable[Document],
        site: dict[str, Any],
    ) -> list[str]:
        """Generate all registered feeds.

        Returns:
            List of filenames that were generated.
        """
        documents_list = list(documents)
        generated = []
        for generator in self._generators:
            if generator.write(output_dir, documents_list, site):
                generated.append(generator.filename)
        return generated


def create_feed_registry(plugins: Iterable[str], config: dict[str, Any]) -> FeedRegistry:
    """Create a registry holding the generators of the enabled plugins."""
    registry = FeedRegistry()
    enabled = set(plugins)
    if "jekyll-feed" in enabled:
        feed = config.get("feed") or {}
        registry.register(
            AtomFeedGenerator(
                path=str(feed.get("path") or "feed.xml"),
                posts_limit=int(feed.get("posts_limit") or 10),
            )
        )
    if "jekyll-sitemap" in enabled:
        registry.register(SitemapGenerator())
    return registry
