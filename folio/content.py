"""Content processing for Folio.

This module discovers the documents of a project, reads their header
blocks, merges configuration defaults into them, and derives the attributes
every later stage relies on (title, date, categories, URL).

Key classes:
- SourceFile: A discovered document file before it is read.
- Document: Dataclass representing one post or page.
- StaticFile: A file copied verbatim into the output.
- FileContentLoader: Walks the project and classifies files.
- LayoutResolver: Resolves the layout a document is wrapped in.
- DocumentBuilder: Builds Document objects from source files.
- ContentProcessor: Facade returning the documents and static files of a site.
"""

from __future__ import annotations

import fnmatch
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from .defaults import DefaultRule, merge_defaults, parse_default_rules
from .errors import BuildError
from .extractors import (
    CompositeMetadataExtractor,
    create_metadata_extractor,
    extract_frontmatter,
)
from .permalinks import page_url, post_url, resolve_template
from .protocols import ContentLoader, DocumentFactory
from .utils import has_header, is_markdown, is_markup, slugify, split_date_prefix

POSTS = "posts"
PAGES = "pages"

POSTS_DIR = "_posts"
DRAFTS_DIR = "_drafts"
LAYOUTS_DIR = "_layouts"

_NO_LAYOUT_VALUES = (None, False, "none", "null", "")


@dataclass
class Heading:
    """A heading collected from rendered Markdown for the table of contents.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


@dataclass(frozen=True)
class SourceFile:
    """A document file found during discovery.

    Attributes:
        path: Absolute path to the file.
        relative_path: POSIX path relative to the project root.
        doc_type: "posts" or "pages". Drafts are posts.
        draft: Whether the file lives in a ``_drafts`` directory.
    """

    path: Path
    relative_path: str
    doc_type: str
    draft: bool = False

    def directory_categories(self) -> list[str]:
        """Directory parts above ``_posts``/``_drafts``, used as categories."""
        if self.doc_type != POSTS:
            return []
        parts = PurePosixPath(self.relative_path).parts
        for marker in (POSTS_DIR, DRAFTS_DIR):
            if marker in parts:
                return list(parts[: parts.index(marker)])
        return []


@dataclass
class StaticFile:
    """A file copied verbatim into the output directory."""

    path: Path
    relative_path: str

    @property
    def url(self) -> str:
        return "/" + self.relative_path


@dataclass
class Document:
    """A post or page.

    Header keys that are not attributes remain reachable by item access, so
    templates can write ``page.toc_label`` for any header value.

    Attributes:
        path: Path to the source file.
        relative_path: POSIX path relative to the project root.
        doc_type: "posts" or "pages".
        metadata: Header values merged with configuration defaults.
        body: Raw prose after the header block.
        title: Human-readable title.
        slug: URL-friendly slug.
        date: Publication date.
        categories: Category labels, first appearance order, no duplicates.
        tags: Tag labels, same normalization as categories.
        layout: Resolved layout name, or None to render unwrapped.
        url: Published URL path.
        excerpt_source: Raw excerpt markup.
        description: Short plain-text description.
        draft: Whether the document came from ``_drafts``.
        excerpt: Rendered excerpt HTML (filled during build).
        content: Rendered body HTML (filled during build).
        output: Final HTML including layouts (filled during build).
        toc: Headings collected while rendering.
    """

    path: Path
    relative_path: str
    doc_type: str
    metadata: dict[str, Any]
    body: str
    title: str
    slug: str
    date: datetime
    categories: list[str]
    tags: list[str]
    layout: str | None
    url: str
    excerpt_source: str = ""
    description: str = ""
    draft: bool = False
    excerpt: str = ""
    content: str = ""
    output: str = ""
    toc: list[Heading] = field(default_factory=list)
    previous: Document | None = field(default=None, repr=False, compare=False)
    next: Document | None = field(default=None, repr=False, compare=False)

    @property
    def source_type(self) -> str:
        return "markdown" if is_markdown(self.path) else "html"

    @property
    def is_post(self) -> bool:
        return self.doc_type == POSTS

    @property
    def published(self) -> bool:
        return self.metadata.get("published", True) is not False

    @property
    def hidden(self) -> bool:
        return bool(self.metadata.get("hidden", False))

    @property
    def render_with_liquid(self) -> bool:
        return self.metadata.get("render_with_liquid", True) is not False

    def __getitem__(self, key: str) -> Any:
        if key in self.__dataclass_fields__ or hasattr(type(self), key):
            return getattr(self, key)
        return self.metadata[key]

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"Document({self.relative_path!r}, url={self.url!r})"


@dataclass
class ScanResult:
    """Files found in a project, split into document sources and static files."""

    sources: list[SourceFile] = field(default_factory=list)
    static_files: list[StaticFile] = field(default_factory=list)


class FileContentLoader:
    """Discovers document and static files in a project.

    Names starting with ``_`` or ``.`` are skipped unless listed in the
    ``include`` configuration; names matching ``exclude`` are always
    skipped. ``_posts`` directories hold posts wherever they sit, and
    ``_drafts`` directories hold drafts that are read only on request.

    Attributes:
        project_root: Root directory of the project.
        include: Names or relative paths to process despite a ``_``/``.``.
        exclude: Names, relative paths or globs never processed.
    """

    def __init__(self, project_root: Path, config: dict[str, Any] | None = None):
        config = config or {}
        self.project_root = project_root
        self.include = [str(item).strip("/") for item in config.get("include", [])]
        self.exclude = [str(item).strip("/") for item in config.get("exclude", [])]
        destination = str(config.get("destination") or "_site")
        self.exclude.append(destination.strip("/"))

    def scan(self, include_drafts: bool = False) -> ScanResult:
        """Walk the project and classify every file.

        Args:
            include_drafts: Whether to read ``_drafts`` directories.

        Returns:
            ScanResult with sources in a stable (sorted) order.
        """
        result = ScanResult()
        for dirpath, dirnames, filenames in os.walk(self.project_root):
            current = Path(dirpath)
            rel_dir = current.relative_to(self.project_root).as_posix()
            rel_dir = "" if rel_dir == "." else rel_dir
            dirnames[:] = sorted(
                name
                for name in dirnames
                if self._descend(f"{rel_dir}/{name}".lstrip("/"), include_drafts)
            )
            parts = PurePosixPath(rel_dir).parts
            in_posts = POSTS_DIR in parts
            in_drafts = DRAFTS_DIR in parts
            for filename in sorted(filenames):
                path = current / filename
                rel = f"{rel_dir}/{filename}".lstrip("/")
                if in_posts or in_drafts:
                    source = self._post_source(path, rel, draft=in_drafts)
                    if source is not None:
                        result.sources.append(source)
                    continue
                if self._skipped(rel):
                    continue
                if is_markup(path) and has_header(path):
                    result.sources.append(SourceFile(path, rel, PAGES))
                else:
                    result.static_files.append(StaticFile(path, rel))
        return result

    def _descend(self, rel: str, include_drafts: bool) -> bool:
        name = PurePosixPath(rel).name
        if self._excluded(rel):
            return False
        if name == POSTS_DIR:
            return True
        if name == DRAFTS_DIR:
            return include_drafts
        if POSTS_DIR in PurePosixPath(rel).parts or DRAFTS_DIR in PurePosixPath(rel).parts:
            return True
        return not self._hidden(rel)

    def _skipped(self, rel: str) -> bool:
        return self._excluded(rel) or self._hidden(rel)

    def _hidden(self, rel: str) -> bool:
        name = PurePosixPath(rel).name
        if not name.startswith(("_", ".")):
            return False
        return not self._included(rel)

    def _included(self, rel: str) -> bool:
        name = PurePosixPath(rel).name
        return name in self.include or rel in self.include

    def _excluded(self, rel: str) -> bool:
        name = PurePosixPath(rel).name
        for pattern in self.exclude:
            if not pattern:
                continue
            if rel == pattern or name == pattern or rel.startswith(f"{pattern}/"):
                return True
            if fnmatch.fnmatch(rel, pattern):
                return True
        return False

    def _post_source(self, path: Path, rel: str, draft: bool) -> SourceFile | None:
        if not is_markup(path) or path.name.startswith((".", "_")):
            return None
        if not draft:
            found, _ = split_date_prefix(path.stem)
            if found is None:
                print(f"Skipping post without YYYY-MM-DD- filename prefix: {rel}")
                return None
        return SourceFile(path, rel, POSTS, draft=draft)


class LayoutResolver:
    """Resolves layout names against the ``_layouts`` directory.

    A layout requested in the header is used when the file exists. Without
    a header value, posts try ``post`` and pages try ``page`` before
    ``default``. Explicit ``none``/``null`` disables layouts.

    Attributes:
        layout_dir: Directory holding layout templates.
    """

    SUFFIXES = (".html", ".htm", ".jinja", ".html.jinja")

    def __init__(self, project_root: Path):
        self.layout_dir = project_root / LAYOUTS_DIR

    def exists(self, name: str) -> bool:
        return self.find(name) is not None

    def find(self, name: str) -> Path | None:
        """Return the layout file for a name, if any."""
        for suffix in self.SUFFIXES:
            target = self.layout_dir / f"{name}{suffix}"
            if target.is_file():
                return target
        return None

    def resolve(self, metadata: dict[str, Any], doc_type: str, where: str) -> str | None:
        """Resolve the layout for a document.

        Args:
            metadata: Merged header values.
            doc_type: Document type.
            where: Relative path of the document, used in warnings.

        Returns:
            Layout name, or None to leave content unwrapped.
        """
        if "layout" in metadata:
            requested = metadata["layout"]
            if requested in _NO_LAYOUT_VALUES:
                return None
            name = str(requested)
            if self.exists(name):
                return name
            print(f"Layout '{name}' requested in {where} does not exist.")
            return None
        fallback = "post" if doc_type == POSTS else "page"
        for candidate in (fallback, "default"):
            if self.exists(candidate):
                return candidate
        return None


class DocumentBuilder:
    """Builds Document objects from source files.

    Attributes:
        project_root: Root directory of the project.
        rules: Default-attribute rules from the configuration.
        permalink: Site permalink template.
        metadata_extractor: Extractor chain deriving document attributes.
        layout_resolver: Layout resolver instance.
    """

    def __init__(
        self,
        project_root: Path,
        config: dict[str, Any],
        rules: list[DefaultRule] | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.project_root = project_root
        self.rules = (
            rules if rules is not None else parse_default_rules(config.get("defaults"))
        )
        self.permalink = resolve_template(config.get("permalink"))
        self.metadata_extractor = metadata_extractor or create_metadata_extractor(config)
        self.layout_resolver = LayoutResolver(project_root)

    def build(self, source: SourceFile) -> Document:
        """Build a Document from a source file.

        Raises:
            BuildError: If the file, its header block or its date cannot be read.
        """
        try:
            raw = source.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise BuildError(source.path, f"Cannot read file: {exc}", exc) from exc
        try:
            header, body = extract_frontmatter(raw)
        except (yaml.YAMLError, ValueError) as exc:
            raise BuildError(source.path, f"Invalid header block: {exc}", exc) from exc

        metadata = merge_defaults(
            self.rules, source.relative_path, source.doc_type, header, draft=source.draft
        )
        try:
            extracted = self.metadata_extractor.extract(body, source, metadata)
        except ValueError as exc:
            raise BuildError(source.path, f"Invalid date: {exc}", exc) from exc

        _, undated = split_date_prefix(source.path.stem)
        doc = Document(
            path=source.path,
            relative_path=source.relative_path,
            doc_type=source.doc_type,
            metadata=metadata,
            body=extracted["body"],
            title=extracted["title"],
            slug=slugify(str(metadata.get("slug") or undated)),
            date=extracted["date"],
            categories=extracted["categories"],
            tags=extracted["tags"],
            layout=self.layout_resolver.resolve(
                metadata, source.doc_type, source.relative_path
            ),
            url="",
            excerpt_source=extracted["excerpt_source"],
            description=extracted["description"],
            draft=source.draft,
        )
        if doc.is_post:
            doc.url = post_url(doc, self.permalink)
        else:
            doc.url = page_url(doc, self.permalink)
        return doc


@dataclass
class SiteContent:
    """Documents and static files of a site, as loaded for one build."""

    documents: list[Document]
    static_files: list[StaticFile]


class ContentProcessor:
    """Facade for discovering files and building Document objects.

    Attributes:
        project_root: Root directory of the project.
        config: Loaded site configuration.
    """

    def __init__(
        self,
        project_root: Path,
        config: dict[str, Any],
        content_loader: ContentLoader | None = None,
        document_builder: DocumentFactory | None = None,
    ):
        self.project_root = project_root
        self.config = config
        self._content_loader = content_loader or FileContentLoader(project_root, config)
        self._document_builder = document_builder or DocumentBuilder(project_root, config)

    def load(
        self,
        include_drafts: bool = False,
        future: bool | None = None,
        unpublished: bool | None = None,
        now: datetime | None = None,
    ) -> SiteContent:
        """Load all documents and static files.

        Args:
            include_drafts: Whether to include ``_drafts``.
            future: Keep posts dated after ``now``. Defaults to config ``future``.
            unpublished: Keep ``published: false`` documents. Defaults to
                config ``unpublished``.
            now: Reference time for future posts.

        Returns:
            SiteContent with documents in discovery order.
        """
        if future is None:
            future = bool(self.config.get("future", False))
        if unpublished is None:
            unpublished = bool(self.config.get("unpublished", False))
        now = now or datetime.now()

        scan = self._content_loader.scan(include_drafts=include_drafts)
        documents: list[Document] = []
        for source in scan.sources:
            doc = self._document_builder.build(source)
            if not doc.published and not unpublished:
                continue
            if doc.is_post and not doc.draft and not future and doc.date > now:
                continue
            documents.append(doc)
        return SiteContent(documents=documents, static_files=scan.static_files)
