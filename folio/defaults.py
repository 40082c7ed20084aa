"""Path-scoped default attributes for documents.

The ``defaults`` list in ``_config.yml`` supplies header values to documents
matching a path prefix and a document type::

    defaults:
      - scope:
          path: ""
          type: posts
        values:
          layout: post
          comments: true

Merging is additive. A document keeps every key from its own header, and a
default key is added only when nothing has set it yet. Rules apply in
declaration order, so the first matching rule wins a key and later rules
never overwrite it.
"""

from __future__ import annotations

import copy
import fnmatch
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from .errors import ConfigError

DOCUMENT_TYPES = ("posts", "pages", "drafts")
_SINGULAR_TYPES = {"post": "posts", "page": "pages", "draft": "drafts"}


@dataclass(frozen=True)
class DefaultRule:
    """A scope predicate plus the values it supplies.

    Attributes:
        scope_path: Path prefix (or glob when it contains ``*``) relative to
            the project root. Empty matches every document.
        scope_type: Document type to match, or None for any type.
        values: Header values supplied to matching documents.
    """

    scope_path: str = ""
    scope_type: str | None = None
    values: dict[str, Any] = field(default_factory=dict)

    def matches(self, rel_path: str, doc_type: str, draft: bool = False) -> bool:
        """Check whether the rule applies to a document.

        Args:
            rel_path: Document path relative to the project root (POSIX).
            doc_type: Document type ("posts" or "pages").
            draft: Whether the document is a draft. Drafts are posts, and
                also match rules scoped to type "drafts".
        """
        if self.scope_type is not None and self.scope_type != doc_type:
            if not (draft and self.scope_type == "drafts"):
                return False
        return _path_in_scope(rel_path, self.scope_path)


def _path_in_scope(rel_path: str, scope_path: str) -> bool:
    scope = scope_path.strip().strip("/")
    if scope in ("", "."):
        return True
    path = PurePosixPath(rel_path).as_posix().lstrip("/")
    if "*" in scope:
        return fnmatch.fnmatch(path, scope) or fnmatch.fnmatch(path, f"{scope}/*")
    return path == scope or path.startswith(f"{scope}/")


def parse_default_rules(raw: Any, source: Path | None = None) -> list[DefaultRule]:
    """Build rules from the ``defaults`` configuration list.

    Args:
        raw: The ``defaults`` value from the configuration.
        source: Configuration path used in error messages.

    Returns:
        Rules in declaration order.

    Raises:
        ConfigError: If an entry is not shaped like ``{scope, values}``.
    """
    where = source or Path("_config.yml")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError(where, "'defaults' must be a list")
    rules: list[DefaultRule] = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ConfigError(where, f"defaults[{index}] must be a mapping")
        scope = entry.get("scope") or {}
        values = entry.get("values") or {}
        if not isinstance(scope, dict):
            raise ConfigError(where, f"defaults[{index}].scope must be a mapping")
        if not isinstance(values, dict):
            raise ConfigError(where, f"defaults[{index}].values must be a mapping")
        scope_type = scope.get("type")
        if scope_type is not None:
            scope_type = str(scope_type)
            if scope_type in _SINGULAR_TYPES:
                plural = _SINGULAR_TYPES[scope_type]
                print(f"defaults[{index}]: type '{scope_type}' is deprecated, use '{plural}'.")
                scope_type = plural
            if scope_type not in DOCUMENT_TYPES:
                print(f"defaults[{index}] targets unknown type '{scope_type}'; it matches nothing.")
        rules.append(
            DefaultRule(
                scope_path=str(scope.get("path") or ""),
                scope_type=scope_type,
                values=dict(values),
            )
        )
    return rules


def matching_rules(
    rules: list[DefaultRule], rel_path: str, doc_type: str, draft: bool = False
) -> list[DefaultRule]:
    """Return the rules applying to a document, in declaration order."""
    return [rule for rule in rules if rule.matches(rel_path, doc_type, draft)]


def merge_defaults(
    rules: list[DefaultRule],
    rel_path: str,
    doc_type: str,
    metadata: dict[str, Any],
    draft: bool = False,
) -> dict[str, Any]:
    """Merge matching default values beneath a document's own header.

    Args:
        rules: Parsed default rules.
        rel_path: Document path relative to the project root.
        doc_type: Document type.
        metadata: The document's own header values.
        draft: Whether the document is a draft.

    Returns:
        A new mapping with the document's keys unchanged plus every default
        key not already set. The input mapping is not modified.
    """
    merged = dict(metadata)
    for rule in matching_rules(rules, rel_path, doc_type, draft):
        for key, value in rule.values.items():
            if key not in merged:
                merged[key] = copy.deepcopy(value)
    return merged
