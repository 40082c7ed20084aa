"""Command-line interface for Folio.

This module defines the CLI commands using Click framework.
It provides commands for creating new projects, building sites, running the
development server, writing posts and listing categories.

Commands:
- new: Scaffold a new Folio project.
- build: Build the site into the destination directory.
- serve: Run development server with live reload.
- post: Create a new dated post interactively.
- categories: Print the category archive of the site.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .collections import CategoryIndex, build_category_index, build_tag_index
from .config import load_config
from .content import POSTS_DIR, ContentProcessor
from .errors import FolioError
from .utils import normalize_labels, slugify

# Skeleton copied by `folio new`
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"


@click.group()
@click.version_option(version=__version__, prog_name="folio")
def cli():
    """Folio static site generator."""


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new Folio project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New Folio site created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include posts from _drafts")
@click.option("--future", is_flag=True, help="Publish posts dated in the future")
@click.option(
    "--unpublished", is_flag=True, help="Publish documents marked published: false"
)
@click.option(
    "--destination",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
    help="Output directory (overrides destination in _config.yml)",
)
def build(drafts: bool, future: bool, unpublished: bool, destination: Path | None):
    """Build the site into the destination directory."""
    project_root = Path.cwd()
    from .build import build_site

    try:
        result = build_site(
            project_root,
            include_drafts=drafts,
            future=future or None,
            unpublished=unpublished or None,
            output_dir_override=destination.resolve() if destination else None,
        )
    except FolioError as exc:
        _report_error(exc, project_root)
        raise SystemExit(1) from None
    click.echo(
        f"Built {len(result.written)} pages from {len(result.documents)} documents "
        f"into {result.output_dir}"
    )
    for name in result.feeds:
        click.echo(f"  wrote {name}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include posts from _drafts")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides port in _config.yml)",
)
@click.option(
    "--livereload-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides livereload_port)",
)
@click.option("--host", required=False, help="Interface to bind (overrides host)")
def serve(drafts: bool, port: int | None, livereload_port: int | None, host: str | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port, ws_port=livereload_port, host=host)
        server.start(include_drafts=drafts)
    except FolioError as exc:
        _report_error(exc, project_root)
        raise SystemExit(1) from None


@cli.command()
def post():
    """Create a new dated post interactively."""
    project_root = Path.cwd()
    posts_dir = project_root / POSTS_DIR
    if not posts_dir.exists():
        raise click.ClickException(
            "No _posts/ directory found. Run this command from a Folio project root."
        )

    try:
        index = _load_index(project_root)
    except FolioError as exc:
        _report_error(exc, project_root)
        raise SystemExit(1) from None

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()
    title = title.strip()

    categories: list[str] = []
    if len(index):
        picked = questionary.checkbox(
            "Categories:",
            choices=list(index),
            style=_questionary_style(),
        ).ask()
        if picked is None:
            raise click.Abort()
        categories.extend(picked)

    extra = questionary.text(
        "New categories (space separated, optional):",
        style=_questionary_style(),
    ).ask()
    if extra is None:
        raise click.Abort()
    categories = normalize_labels(categories, extra)

    slug = slugify(title)
    conflicting = _find_slug(posts_dir, slug)
    if conflicting is not None:
        raise click.ClickException(
            f"A post with slug '{slug}' already exists: {conflicting.name}"
        )

    now = datetime.now()
    target_path = posts_dir / f"{now:%Y-%m-%d}-{slug}.md"
    target_path.write_text(_post_source(title, categories, now), encoding="utf-8")
    click.echo(f"Created {target_path.relative_to(project_root)}")


@cli.command()
@click.option("--tags", is_flag=True, help="List tags instead of categories")
@click.option("--drafts", is_flag=True, help="Include posts from _drafts")
def categories(tags: bool, drafts: bool):
    """Print every category with the documents filed under it."""
    project_root = Path.cwd()
    try:
        index = _load_index(project_root, tags=tags, include_drafts=drafts)
    except FolioError as exc:
        _report_error(exc, project_root)
        raise SystemExit(1) from None

    if not len(index):
        click.echo("No tags found." if tags else "No categories found.")
        return
    for group in index.groups():
        click.echo(click.style(f"{group.name} ({len(group)})", bold=True))
        for entry in group.entries:
            click.echo(f"  {entry.date:%Y-%m-%d}  {entry.title}  {entry.url}")


def _load_index(
    project_root: Path, tags: bool = False, include_drafts: bool = False
) -> CategoryIndex:
    """Load the project's documents and group them by category or tag."""
    config = load_config(project_root)
    content = ContentProcessor(project_root, config).load(include_drafts=include_drafts)
    if tags:
        return build_tag_index(content.documents)
    return build_category_index(content.documents)


def _find_slug(posts_dir: Path, slug: str) -> Path | None:
    """Find an existing post with the same slug, whatever its date."""
    for path in sorted(posts_dir.iterdir()):
        if not path.is_file():
            continue
        if slugify(path.stem) == slug:
            return path
    return None


def _post_source(title: str, categories: list[str], date: datetime) -> str:
    header = {
        "layout": "post",
        "title": title,
        "date": date.strftime("%Y-%m-%d %H:%M:%S"),
        "categories": categories,
    }
    dumped = yaml.safe_dump(header, sort_keys=False, allow_unicode=True)
    return f"---\n{dumped}---\n\n"


def _report_error(exc: FolioError, project_root: Path) -> None:
    """Print a build or configuration error with the offending file."""
    try:
        rel_path = exc.source_path.relative_to(project_root)
    except ValueError:
        rel_path = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new Folio project.

    Args:
        root: Root directory for the new project.
    """
    for src_path in _SCAFFOLD_DIR.rglob("*"):
        if src_path.is_dir():
            continue
        rel_path = src_path.relative_to(_SCAFFOLD_DIR)
        dest_path = root / rel_path
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)

    # The sample post is dated on the day the project is created.
    sample = root / POSTS_DIR / "welcome.md"
    if sample.exists():
        sample.rename(sample.with_name(f"{datetime.now():%Y-%m-%d}-welcome.md"))

    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("FOLIO_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run(
            [git_bin, "init"],
            cwd=root,
            check=True,
            capture_output=True,
        )
    except (OSError, subprocess.CalledProcessError):
        # Non-fatal: user can run git init manually
        pass
