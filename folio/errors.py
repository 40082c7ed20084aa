"""Exceptions raised while loading and building a Folio site.

Every error carries the path of the file that caused it so the CLI can
point the author at the offending source.
"""

from __future__ import annotations

from pathlib import Path


class FolioError(Exception):
    """Base error with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught, if any.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


class ConfigError(FolioError):
    """The site configuration file is unreadable or malformed."""


class BuildError(FolioError):
    """A document, layout or output file failed to build."""
