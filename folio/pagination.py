"""Post pagination (the ``jekyll-paginate`` plugin).

When ``paginate`` is set and the plugin is enabled, the page living at the
directory of ``paginate_path`` is rendered once per chunk of posts. The
first chunk keeps that page's own URL; chunk ``n`` is written at
``paginate_path`` with ``:num`` replaced by ``n``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from posixpath import dirname

from .content import Document
from .html_utils import join_url_path


@dataclass
class Paginator:
    """The ``paginator`` object exposed to templates.

    Attributes:
        page: Current page number, starting at 1.
        per_page: Posts per page.
        posts: Posts on the current page.
        total_posts: Number of paginated posts.
        total_pages: Number of pages.
        previous_page: Previous page number, or None on the first page.
        previous_page_path: URL of the previous page, or None.
        next_page: Next page number, or None on the last page.
        next_page_path: URL of the next page, or None.
    """

    page: int
    per_page: int
    total_posts: int
    total_pages: int
    posts: list[Document] = field(default_factory=list)
    previous_page: int | None = None
    previous_page_path: str | None = None
    next_page: int | None = None
    next_page_path: str | None = None


def paginate_base(paginate_path: str) -> str:
    """URL of the page that holds the first chunk.

    Examples:
        >>> paginate_base("/blog/page:num/")
        '/blog/'
        >>> paginate_base("/page:num")
        '/'
    """
    trimmed = paginate_path.rstrip("/")
    base = join_url_path(dirname(trimmed))
    return base if base.endswith("/") else f"{base}/"


def page_path(num: int, first_url: str, paginate_path: str) -> str:
    """URL of page ``num``; page 1 is the template page's own URL."""
    if num <= 1:
        return first_url
    url = join_url_path(paginate_path.replace(":num", str(num)))
    if paginate_path.endswith("/") and not url.endswith("/"):
        url += "/"
    return url


def find_template_page(documents: Sequence[Document], paginate_path: str) -> Document | None:
    """Find the page to paginate: the index page at the paginate base URL."""
    base = paginate_base(paginate_path)
    for doc in documents:
        if doc.is_post:
            continue
        if doc.url == base or doc.url == f"{base}index.html":
            return doc
    return None


def paginate(
    posts: Sequence[Document],
    per_page: int,
    first_url: str,
    paginate_path: str,
) -> list[Paginator]:
    """Split posts into pagers, newest first.

    Hidden posts are left out. An empty post list still yields one (empty)
    pager so the template page renders.

    Args:
        posts: Candidate posts, any order.
        per_page: Posts per page, at least 1.
        first_url: URL of the template page (page 1).
        paginate_path: Template for the URLs of later pages.
    """
    if per_page < 1:
        raise ValueError("per_page must be at least 1")
    visible = [p for p in posts if p.is_post and not p.hidden]
    visible.sort(key=lambda p: (p.title.lower(), p.relative_path))
    visible.sort(key=lambda p: p.date, reverse=True)
    total_pages = max(1, math.ceil(len(visible) / per_page))
    pagers = []
    for num in range(1, total_pages + 1):
        start = (num - 1) * per_page
        pager = Paginator(
            page=num,
            per_page=per_page,
            total_posts=len(visible),
            total_pages=total_pages,
            posts=visible[start : start + per_page],
        )
        if num > 1:
            pager.previous_page = num - 1
            pager.previous_page_path = page_path(num - 1, first_url, paginate_path)
        if num < total_pages:
            pager.next_page = num + 1
            pager.next_page_path = page_path(num + 1, first_url, paginate_path)
        pagers.append(pager)
    return pagers
