from datetime import datetime
from pathlib import Path

import pytest
from markupsafe import Markup

from folio.collections import build_category_index
from folio.content import Document, Heading
from folio.errors import BuildError
from folio.pagination import paginate
from folio.renderers import MarkdownRenderer, RendererRegistry, markdownify
from folio.templates import TemplateEngine, render_toc


def write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def make_doc(root, rel, body="", layout=None, metadata=None, categories=(), title="Title"):
    return Document(
        path=root / rel,
        relative_path=rel,
        doc_type="posts" if "_posts" in rel else "pages",
        metadata=metadata or {},
        body=body,
        title=title,
        slug=Path(rel).stem,
        date=datetime(2024, 3, 5),
        categories=list(categories),
        tags=[],
        layout=layout,
        url=f"/{Path(rel).stem}.html",
    )


def create_project(tmp_path: Path) -> Path:
    write(tmp_path, "_layouts/default.html", "<html>{% include 'nav.html' %}{{ content }}</html>")
    write(
        tmp_path,
        "_layouts/post.html",
        "---\nlayout: default\nwidth: wide\n---\n<article class=\"{{ layout.width }}\">"
        "<h1>{{ page.title }}</h1>{{ content }}</article>",
    )
    write(tmp_path, "_layouts/loop-a.html", "---\nlayout: loop-b\n---\nA{{ content }}")
    write(tmp_path, "_layouts/loop-b.html", "---\nlayout: loop-a\n---\nB{{ content }}")
    write(tmp_path, "_includes/nav.html", "---\nignored: true\n---\n<nav>{{ site.title }}</nav>")
    return tmp_path


def make_engine(project, **site):
    values = {"title": "Test", "url": "https://example.com", "baseurl": ""}
    values.update(site)
    return TemplateEngine(project, values)


def test_body_runs_jinja_then_markdown(tmp_path):
    project = create_project(tmp_path)
    engine = make_engine(project)
    doc = make_doc(project, "_posts/2024-03-05-a.md", body="Hello **{{ site.title }}**")
    engine.render_body(doc)
    assert isinstance(doc.content, Markup)
    assert "<strong>Test</strong>" in doc.content


def test_render_with_liquid_false_keeps_braces(tmp_path):
    project = create_project(tmp_path)
    engine = make_engine(project)
    doc = make_doc(
        project,
        "_posts/2024-03-05-a.md",
        body="Use `{{ raw }}` here",
        metadata={"render_with_liquid": False},
    )
    engine.render_body(doc)
    assert "{{ raw }}" in doc.content


def test_layout_chain_wraps_content(tmp_path):
    project = create_project(tmp_path)
    engine = make_engine(project)
    doc = make_doc(project, "_posts/2024-03-05-a.md", body="Body", layout="post", title="A & B")
    output = engine.render_document(doc)
    assert output.startswith("<html><nav>Test</nav><article class=\"wide\">")
    assert "<h1>A &amp; B</h1><p>Body</p>" in output
    assert "ignored" not in output
    assert doc.output == output


def test_layout_cycle_raises(tmp_path):
    project = create_project(tmp_path)
    engine = make_engine(project)
    doc = make_doc(project, "page.html", body="x", layout="loop-a")
    engine.render_body(doc)
    with pytest.raises(BuildError) as excinfo:
        engine.render_layouts(doc)
    assert "loop-a -> loop-b -> loop-a" in excinfo.value.message


def test_missing_layout_leaves_content(tmp_path, capsys):
    project = create_project(tmp_path)
    engine = make_engine(project)
    doc = make_doc(project, "page.html", body="<p>raw</p>", layout="nope")
    output = engine.render_document(doc)
    assert output == "<p>raw</p>"
    assert "does not exist" in capsys.readouterr().out


def test_no_layout_renders_content_only(tmp_path):
    project = create_project(tmp_path)
    engine = make_engine(project)
    doc = make_doc(project, "page.html", body="<p>{{ page.title }}</p>")
    assert engine.render_document(doc) == "<p>Title</p>"


def test_excerpt_is_rendered(tmp_path):
    project = create_project(tmp_path)
    engine = make_engine(project)
    doc = make_doc(project, "_posts/2024-03-05-a.md")
    doc.excerpt_source = "*short*"
    engine.render_excerpt(doc)
    assert "<em>short</em>" in doc.excerpt
    html_doc = make_doc(project, "page.html")
    html_doc.excerpt_source = "<b>x</b>"
    assert engine.render_excerpt(html_doc) == "<b>x</b>"


def test_url_filters(tmp_path):
    engine = make_engine(create_project(tmp_path), baseurl="/blog")
    assert engine.relative_url("/about/") == "/blog/about/"
    assert engine.relative_url("about/") == "/blog/about/"
    assert engine.relative_url("https://other.org/x") == "https://other.org/x"
    assert engine.absolute_url("/about/") == "https://example.com/blog/about/"


def test_template_filters(tmp_path):
    engine = make_engine(create_project(tmp_path))
    context = {"d": datetime(2024, 3, 5), "text": "one two three"}
    rendered = engine.render_string(
        "{{ d | date_to_string }}|{{ d | date_to_long_string }}|"
        "{{ d | date_to_xmlschema }}|{{ 'Hello World' | slugify }}|"
        "{{ text | number_of_words }}|{{ '<b>x</b>' | strip_html }}",
        context,
    )
    assert rendered == "05 Mar 2024|05 March 2024|2024-03-05T00:00:00|hello-world|3|x"
    assert "<em>hi</em>" in engine.render_string("{{ '*hi*' | markdownify }}", {})
    assert engine.render_string("{{ 'a & b' | xml_escape }}", {}) == "a &amp; b"


def test_archive_uses_built_in_fragment(tmp_path):
    project = create_project(tmp_path)
    docs = [
        make_doc(project, "_posts/2024-03-05-a.md", categories=["machine-learning"], title="A"),
        make_doc(project, "_posts/2024-03-06-b.md", title="B"),
    ]
    engine = make_engine(project, categories=build_category_index(docs))
    html = engine.render_string("{{ archive() }}", {})
    assert '<section class="archive-group" id="machine-learning">' in html
    assert '<a href="/2024-03-05-a.html">A</a>' in html
    assert "05 Mar 2024" in html
    assert ">B<" not in html


def test_archive_uses_project_include(tmp_path):
    project = create_project(tmp_path)
    write(project, "_includes/archive-group.html", "<div>{{ group.name }}:{{ group.entries|length }}</div>")
    docs = [make_doc(project, "_posts/2024-03-05-a.md", categories=["ml", "stats"])]
    engine = make_engine(project, categories=build_category_index(docs))
    assert engine.render_string("{{ archive() }}", {}) == "<div>ml:1</div><div>stats:1</div>"


def test_archive_without_categories(tmp_path):
    engine = make_engine(create_project(tmp_path))
    assert engine.render_string("{{ archive() }}", {}) == ""


def test_paginator_in_context(tmp_path):
    project = create_project(tmp_path)
    engine = make_engine(project)
    posts = [make_doc(project, f"_posts/2024-03-0{i}-p{i}.md", title=f"P{i}") for i in range(1, 4)]
    pagers = paginate(posts, 2, "/", "/page:num/")
    doc = make_doc(project, "index.html", body="{{ paginator.page }}/{{ paginator.total_pages }}")
    assert engine.render_document(doc, pagers[1]) == "2/2"


def test_render_toc_nests_levels():
    doc = Document(
        path=Path("a.md"),
        relative_path="a.md",
        doc_type="pages",
        metadata={},
        body="",
        title="t",
        slug="a",
        date=datetime(2024, 1, 1),
        categories=[],
        tags=[],
        layout=None,
        url="/a.html",
        toc=[Heading("a", "A", 2), Heading("b", "B", 3), Heading("c", "C", 2)],
    )
    assert render_toc(doc) == (
        '<ul><li><a href="#a">A</a><ul><li><a href="#b">B</a></li></ul></li>'
        '<li><a href="#c">C</a></li></ul>'
    )
    doc.toc = []
    assert render_toc(doc) == ""


def test_markdown_renderer_collects_headings():
    html, toc = MarkdownRenderer().render("# Hello World\n\n## Hello World\n\ntext")
    assert '<h1 id="hello-world">' in html
    assert '<h2 id="hello-world-1">' in html
    assert [(h.id, h.level) for h in toc] == [("hello-world", 1), ("hello-world-1", 2)]


def test_markdown_code_highlighting():
    html, _ = MarkdownRenderer().render("```python\nprint(1)\n```\n")
    assert 'class="highlight"' in html
    html, _ = MarkdownRenderer().render("```nosuchlang\n<x>\n```\n")
    assert 'class="language-nosuchlang"' in html
    assert "&lt;x&gt;" in html


def test_renderer_registry_by_extension():
    registry = RendererRegistry()
    assert registry.get_renderer(Path("a.md")).source_type == "markdown"
    assert registry.get_renderer(Path("a.html")).source_type == "html"
    assert registry.get_renderer(Path("a.txt")) is None
    assert "<p>x</p>" in markdownify("x")
