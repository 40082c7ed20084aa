"""Static file copying for Folio.

Files that are neither documents nor part of the site machinery
(``_layouts``, ``_includes``, ``_data`` and the like) are copied verbatim
into the output directory, keeping their relative paths.

Key components:
- StaticFileCopier: Copies the static files found during discovery.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path

from .content import StaticFile


class StaticFileCopier:
    """Copies static files into the output directory.

    Attributes:
        output_dir: Directory where files are written.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir

    def run(self, static_files: Iterable[StaticFile]) -> list[Path]:
        """Copy every static file.

        Files already present at the destination with the same size and an
        equal or newer modification time are left alone.

        Returns:
            Destination paths of the files actually copied.
        """
        copied: list[Path] = []
        for static in static_files:
            dest = self.output_dir / static.relative_path
            if self._up_to_date(static.path, dest):
                continue
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(static.path, dest)
            copied.append(dest)
        return copied

    @staticmethod
    def _up_to_date(source: Path, dest: Path) -> bool:
        if not dest.exists():
            return False
        src_stat = source.stat()
        dest_stat = dest.stat()
        return (
            src_stat.st_size == dest_stat.st_size
            and dest_stat.st_mtime >= src_stat.st_mtime
        )
