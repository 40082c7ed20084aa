from datetime import datetime
from pathlib import Path

import pytest

from folio.content import Document
from folio.pagination import find_template_page, page_path, paginate, paginate_base


def make_doc(rel, day, doc_type="posts", url=None, hidden=False):
    return Document(
        path=Path("/site") / rel,
        relative_path=rel,
        doc_type=doc_type,
        metadata={"hidden": True} if hidden else {},
        body="",
        title=Path(rel).stem,
        slug=Path(rel).stem,
        date=datetime(2024, 1, day),
        categories=[],
        tags=[],
        layout=None,
        url=url or f"/{Path(rel).stem}.html",
    )


def test_paginate_base():
    assert paginate_base("/blog/page:num/") == "/blog/"
    assert paginate_base("/page:num") == "/"
    assert paginate_base("/page:num/") == "/"


def test_page_path():
    assert page_path(1, "/blog/", "/blog/page:num/") == "/blog/"
    assert page_path(3, "/blog/", "/blog/page:num/") == "/blog/page3/"
    assert page_path(2, "/", "/page:num") == "/page2"


def test_paginate_splits_newest_first():
    posts = [make_doc(f"_posts/p{day}.md", day) for day in range(1, 8)]
    pagers = paginate(posts, 3, "/blog/", "/blog/page:num/")
    assert len(pagers) == 3
    assert [len(p.posts) for p in pagers] == [3, 3, 1]
    assert [p.title for p in pagers[0].posts] == ["p7", "p6", "p5"]
    assert pagers[0].total_posts == 7
    assert pagers[0].total_pages == 3

    first, middle, last = pagers
    assert first.previous_page is None
    assert first.previous_page_path is None
    assert first.next_page == 2
    assert first.next_page_path == "/blog/page2/"
    assert middle.previous_page_path == "/blog/"
    assert middle.next_page_path == "/blog/page3/"
    assert last.next_page is None
    assert last.previous_page == 2


def test_paginate_skips_hidden_and_pages():
    posts = [
        make_doc("_posts/a.md", 1),
        make_doc("_posts/b.md", 2, hidden=True),
        make_doc("about.md", 3, doc_type="pages"),
    ]
    pagers = paginate(posts, 5, "/", "/page:num/")
    assert [p.title for p in pagers[0].posts] == ["a"]
    assert pagers[0].total_posts == 1


def test_paginate_without_posts_still_has_a_page():
    pagers = paginate([], 5, "/", "/page:num/")
    assert len(pagers) == 1
    assert pagers[0].posts == []
    assert pagers[0].total_pages == 1


def test_paginate_rejects_bad_size():
    with pytest.raises(ValueError):
        paginate([], 0, "/", "/page:num/")


def test_find_template_page():
    blog = make_doc("blog/index.html", 1, doc_type="pages", url="/blog/")
    post = make_doc("_posts/x.md", 1, url="/blog/")
    assert find_template_page([post, blog], "/blog/page:num/") is blog
    assert find_template_page([post], "/blog/page:num/") is None
