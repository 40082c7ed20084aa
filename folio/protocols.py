"""Protocol definitions for Folio.

This module defines the interfaces the build pipeline depends on, so that
renderers, metadata extractors, content loaders and document builders can
be swapped or mocked in tests without touching the pipeline.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import Document, Heading, ScanResult, SourceFile


@runtime_checkable
class ContentRenderer(Protocol):
    """Protocol for converting a document body to HTML.

    Implementations handle one markup language each.
    """

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Check if this renderer can handle the given file."""
        ...

    @abstractmethod
    def render(self, content: str) -> tuple[str, list[Heading]]:
        """Render content to HTML.

        Args:
            content: Body text, after template expansion.

        Returns:
            Tuple of (rendered HTML, list of headings for TOC).
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier (e.g., 'markdown', 'html')."""
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Protocol for deriving document attributes.

    Each extractor derives a few attributes (title, date, labels, ...) from
    the body, the source file and the merged header values.
    """

    @abstractmethod
    def extract(
        self, body: str, source: SourceFile, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        """Extract attributes.

        Args:
            body: Body text after the header block.
            source: The discovered source file.
            metadata: Header values merged with configuration defaults.

        Returns:
            Dictionary of derived attributes. A ``body`` key replaces the
            body seen by later extractors.
        """
        ...


@runtime_checkable
class TemplateRenderer(Protocol):
    """Protocol for rendering documents through layouts.

    The build renders in passes: every excerpt, then every body, then the
    layout chains, so layouts can show other documents' rendered content.
    """

    @abstractmethod
    def render_excerpt(self, doc: Document) -> str:
        """Render the excerpt source and store it on the document."""
        ...

    @abstractmethod
    def render_body(self, doc: Document, paginator: Any = None) -> str:
        """Render the document body and store it on the document."""
        ...

    @abstractmethod
    def render_layouts(self, doc: Document, paginator: Any = None) -> str:
        """Wrap the rendered body in its layout chain."""
        ...

    @abstractmethod
    def render_document(self, doc: Document, paginator: Any = None) -> str:
        """Render a document body and wrap it in its layout chain."""
        ...

    @abstractmethod
    def render_string(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string."""
        ...


@runtime_checkable
class ContentLoader(Protocol):
    """Protocol for discovering the files of a project."""

    @abstractmethod
    def scan(self, include_drafts: bool = False) -> ScanResult:
        """Split project files into document sources and static files.

        Args:
            include_drafts: Whether to read ``_drafts`` directories.
        """
        ...


@runtime_checkable
class DocumentFactory(Protocol):
    """Protocol for building Document objects from discovered sources."""

    @abstractmethod
    def build(self, source: SourceFile) -> Document:
        """Read a source file and return its Document."""
        ...
