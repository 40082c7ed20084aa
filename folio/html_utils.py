"""HTML utility functions for Folio.

This module focuses on HTML string manipulation: escaping, tag
stripping and URL joining.

Functions:
    escape_html: Escape special HTML characters in a string.
    strip_html: Remove tags from an HTML fragment.
    join_root_url: Join a base URL with a path.
    join_url_path: Join URL path segments into a clean root-relative path.
"""

from __future__ import annotations

import re

_TAG_RE = re.compile(r"<[^>]+>")
_DOT_SEGMENTS = {"", ".", ".."}


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Converts the following characters to their HTML entity equivalents:
    - & becomes &amp;
    - < becomes &lt;
    - > becomes &gt;
    - " becomes &quot;

    Examples:
        >>> escape_html('<script>alert("XSS")</script>')
        '&lt;script&gt;alert(&quot;XSS&quot;)&lt;/script&gt;'

        >>> escape_html('Tom & Jerry')
        'Tom &amp; Jerry'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def strip_html(html: str) -> str:
    """Remove HTML tags, keeping the text between them.

    Examples:
        >>> strip_html("<p>Hello <em>world</em></p>")
        'Hello world'
    """
    return _TAG_RE.sub("", html)


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Args:
        root_url: Base URL (e.g., https://example.com/blog).
        path: Path beginning with or without a leading slash.

    Returns:
        Combined URL with proper slash handling.

    Examples:
        >>> join_root_url('https://example.com', '/about')
        'https://example.com/about'

        >>> join_root_url('https://example.com/', 'about')
        'https://example.com/about'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def join_url_path(*segments: str) -> str:
    """Join URL path segments into a single root-relative path.

    Empty segments disappear and repeated slashes collapse, so a missing
    category never produces ``//`` in a permalink. ``.`` and ``..`` parts
    are dropped, so the result always stays under the site root. A
    trailing slash is kept.

    Examples:
        >>> join_url_path("/", "", "/2024/", "post.html")
        '/2024/post.html'

        >>> join_url_path("/../../escaped.html")
        '/escaped.html'
    """
    joined = "/".join(segment for segment in segments if segment)
    parts = [part for part in joined.split("/") if part not in _DOT_SEGMENTS]
    path = "/" + "/".join(parts)
    if parts and joined.endswith("/"):
        path += "/"
    return path
