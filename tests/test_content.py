from datetime import datetime
from pathlib import Path

import pytest

from folio.config import load_config
from folio.content import (
    ContentProcessor,
    DocumentBuilder,
    FileContentLoader,
    LayoutResolver,
    SourceFile,
)
from folio.errors import BuildError

CONFIG = """\
title: Test Blog
permalink: /blog/:categories/:year/:month/:day/:title:output_ext
include:
  - _pages
defaults:
  - scope:
      path: ""
      type: posts
    values:
      layout: post
      comments: true
"""


def write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def create_project(tmp_path: Path, config: str = CONFIG) -> Path:
    write(tmp_path, "_config.yml", config)
    write(tmp_path, "_layouts/default.html", "{{ content }}")
    write(tmp_path, "_layouts/post.html", "---\nlayout: default\n---\n{{ content }}")
    write(
        tmp_path,
        "_posts/2024-01-15-first-post.md",
        "---\ncategories: [machine-learning]\n---\n# First Post\n\nIntro paragraph.\n\nMore.",
    )
    write(
        tmp_path,
        "_posts/2024-02-01-second.md",
        "---\ntitle: Second\ncategory: stats\ntags: a b\n---\nBody text.",
    )
    write(tmp_path, "_posts/no-date.md", "---\n---\nundated")
    write(tmp_path, "ml/_posts/2024-03-01-nested.md", "---\ncategories: deep\n---\nNested.")
    write(tmp_path, "_drafts/idea.md", "---\n---\n# Idea\n\nLater.")
    write(tmp_path, "about.md", "---\ntitle: About\n---\nAbout page.")
    write(tmp_path, "_pages/archive.md", "---\ntitle: Archive\npermalink: /archive/\n---\n")
    write(tmp_path, "_hidden/secret.md", "---\n---\nsecret")
    write(tmp_path, "README.md", "---\n---\nreadme")
    write(tmp_path, "notes.md", "no header, copied as is")
    write(tmp_path, "assets/site.css", "body{}")
    write(tmp_path, "_site/old.html", "stale output")
    return tmp_path


def load(project: Path, **kwargs):
    config = load_config(project)
    return ContentProcessor(project, config).load(**kwargs)


def by_path(documents):
    return {doc.relative_path: doc for doc in documents}


def test_scan_classifies_files(tmp_path, capsys):
    project = create_project(tmp_path)
    scan = FileContentLoader(project, load_config(project)).scan()
    sources = {s.relative_path: s for s in scan.sources}
    assert set(sources) == {
        "_posts/2024-01-15-first-post.md",
        "_posts/2024-02-01-second.md",
        "ml/_posts/2024-03-01-nested.md",
        "about.md",
        "_pages/archive.md",
    }
    assert sources["about.md"].doc_type == "pages"
    assert sources["ml/_posts/2024-03-01-nested.md"].doc_type == "posts"
    static = {s.relative_path for s in scan.static_files}
    assert static == {"notes.md", "assets/site.css"}
    assert "no-date.md" in capsys.readouterr().out


def test_scan_reads_drafts_on_request(tmp_path):
    project = create_project(tmp_path)
    scan = FileContentLoader(project, load_config(project)).scan(include_drafts=True)
    drafts = [s for s in scan.sources if s.draft]
    assert [s.relative_path for s in drafts] == ["_drafts/idea.md"]
    assert drafts[0].doc_type == "posts"


def test_directory_categories():
    source = SourceFile(Path("/x"), "ml/deep/_posts/2024-01-01-a.md", "posts")
    assert source.directory_categories() == ["ml", "deep"]
    assert SourceFile(Path("/x"), "about.md", "pages").directory_categories() == []


def test_documents_get_metadata_and_urls(tmp_path):
    project = create_project(tmp_path)
    docs = by_path(load(project).documents)

    first = docs["_posts/2024-01-15-first-post.md"]
    assert first.title == "First Post"
    assert first.date == datetime(2024, 1, 15)
    assert first.categories == ["machine-learning"]
    assert first.layout == "post"
    assert first["comments"] is True
    assert first.url == "/blog/machine-learning/2024/01/15/first-post.html"
    assert first.excerpt_source == "# First Post"
    assert first.description == "Intro paragraph."
    assert first.slug == "first-post"

    second = docs["_posts/2024-02-01-second.md"]
    assert second.title == "Second"
    assert second.categories == ["stats"]
    assert second.tags == ["a", "b"]

    nested = docs["ml/_posts/2024-03-01-nested.md"]
    assert nested.categories == ["ml", "deep"]
    assert nested.url == "/blog/ml/deep/2024/03/01/nested.html"

    about = docs["about.md"]
    assert about.doc_type == "pages"
    assert about.categories == []
    assert about.url == "/about.html"
    assert about.layout == "default"
    assert "comments" not in about.metadata

    assert docs["_pages/archive.md"].url == "/archive/"


def test_drafts_only_when_requested(tmp_path):
    project = create_project(tmp_path)
    assert not any(d.draft for d in load(project).documents)
    docs = by_path(load(project, include_drafts=True).documents)
    draft = docs["_drafts/idea.md"]
    assert draft.draft
    assert draft.is_post
    assert draft.title == "Idea"
    assert draft["layout"] == "post"


def test_future_and_unpublished_are_filtered(tmp_path):
    project = create_project(tmp_path)
    write(project, "_posts/2999-01-01-future.md", "---\n---\nlater")
    write(project, "_posts/2024-01-20-hidden.md", "---\npublished: false\n---\nno")

    paths = set(by_path(load(project).documents))
    assert "_posts/2999-01-01-future.md" not in paths
    assert "_posts/2024-01-20-hidden.md" not in paths

    paths = set(by_path(load(project, future=True, unpublished=True).documents))
    assert "_posts/2999-01-01-future.md" in paths
    assert "_posts/2024-01-20-hidden.md" in paths

    now = datetime(3000, 1, 1)
    paths = set(by_path(load(project, now=now).documents))
    assert "_posts/2999-01-01-future.md" in paths


def test_header_date_overrides_filename(tmp_path):
    project = create_project(tmp_path)
    write(
        project,
        "_posts/2024-04-01-dated.md",
        "---\ndate: 2024-04-02 08:30:00 +0000\n---\nx",
    )
    doc = by_path(load(project).documents)["_posts/2024-04-01-dated.md"]
    assert doc.date == datetime(2024, 4, 2, 8, 30)
    assert doc.url.endswith("/2024/04/02/dated.html")


def test_strip_title_removes_heading(tmp_path):
    project = create_project(
        tmp_path, CONFIG + "titles_from_headings:\n  strip_title: true\n"
    )
    doc = by_path(load(project).documents)["_posts/2024-01-15-first-post.md"]
    assert doc.title == "First Post"
    assert doc.body.startswith("Intro paragraph.")
    assert doc.excerpt_source == "Intro paragraph."


def test_titles_from_headings_disabled(tmp_path):
    project = create_project(tmp_path, CONFIG + "titles_from_headings: false\n")
    doc = by_path(load(project).documents)["_posts/2024-01-15-first-post.md"]
    assert doc.title == "First Post"
    doc = by_path(load(project, include_drafts=True).documents)["_drafts/idea.md"]
    assert doc.title == "Idea"
    write(project, "_posts/2024-05-01-heading-only.md", "---\n---\n# Something Else\n")
    doc = by_path(load(project).documents)["_posts/2024-05-01-heading-only.md"]
    assert doc.title == "Heading Only"


@pytest.mark.parametrize(
    "header, message",
    [
        ("---\ntitle: [broken\n---\nx", "Invalid header"),
        ("---\n- a\n- b\n---\nx", "Invalid header"),
        ("---\ndate: yesterday\n---\nx", "Invalid date"),
    ],
)
def test_invalid_headers_raise_build_error(tmp_path, header, message):
    project = create_project(tmp_path)
    bad = write(project, "_posts/2024-06-01-bad.md", header)
    with pytest.raises(BuildError) as excinfo:
        load(project)
    assert excinfo.value.source_path == bad
    assert message in excinfo.value.message


def test_document_item_access(tmp_path):
    project = create_project(tmp_path)
    doc = by_path(load(project).documents)["_posts/2024-01-15-first-post.md"]
    assert doc["title"] == "First Post"
    assert doc["is_post"] is True
    assert doc.get("missing", "fallback") == "fallback"
    with pytest.raises(KeyError):
        doc["missing"]
    assert doc.published
    assert not doc.hidden
    assert doc.render_with_liquid
    assert doc.source_type == "markdown"


def test_layout_resolver(tmp_path, capsys):
    project = create_project(tmp_path)
    resolver = LayoutResolver(project)
    assert resolver.resolve({"layout": "post"}, "posts", "x.md") == "post"
    assert resolver.resolve({}, "posts", "x.md") == "post"
    assert resolver.resolve({}, "pages", "x.md") == "default"
    assert resolver.resolve({"layout": "none"}, "pages", "x.md") is None
    assert resolver.resolve({"layout": None}, "pages", "x.md") is None
    assert resolver.resolve({"layout": "missing"}, "pages", "x.md") is None
    assert "missing" in capsys.readouterr().out
    assert resolver.find("post") == project / "_layouts" / "post.html"


def test_document_builder_with_custom_rules(tmp_path):
    project = create_project(tmp_path)
    builder = DocumentBuilder(project, load_config(project), rules=[])
    source = SourceFile(
        project / "_posts/2024-01-15-first-post.md",
        "_posts/2024-01-15-first-post.md",
        "posts",
    )
    doc = builder.build(source)
    assert "comments" not in doc.metadata
    assert doc.url == "/blog/machine-learning/2024/01/15/first-post.html"
