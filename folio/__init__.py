"""Folio static site generator.

This package builds a blog from a Jekyll-style project: a YAML site configuration,
Markdown posts with YAML headers, and Jinja2 layouts.

The main entry point is the CLI module, which provides commands for scaffolding new projects,
building sites, creating posts, and running the development server.

Build flow is one-directional:
- Configuration defaults merge into each document's header (defaults module).
- Documents get their URLs from permalink templates (permalinks module).
- Documents are grouped by category and tag for archive pages (collections module).
- Templates render each document through its layout chain (templates module).
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
