"""Document collections and the category archive index.

The category index is derived, never stored: it is rebuilt from the
current document set every time it is requested, so it always reflects the
documents of the build in progress.

Ordering is explicit. Categories sort case-insensitively by name; entries
within a category sort by date, newest first, then by title.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from .content import Document
from .utils import slugify


class DocumentCollection(Sequence[Document]):
    """Lightweight helper for working with lists of Documents in templates and code."""

    def __init__(self, documents: Iterable[Document]):
        self._documents = list(documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return DocumentCollection(self._documents[item])
        return self._documents[item]

    def posts(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.is_post)

    def pages(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if not d.is_post)

    def with_category(self, name: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if name in d.categories)

    def with_tag(self, tag: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if tag in d.tags)

    def drafts(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.draft)

    def published(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if not d.draft)

    def sorted(self, reverse: bool = True) -> DocumentCollection:
        """Sort by date, then title, then relative path.

        Args:
            reverse: If True (default), newest first. Ties still break on
                ascending title so the order is stable across builds.
        """
        by_name = sorted(self._documents, key=lambda d: (d.title.lower(), d.relative_path))
        return DocumentCollection(sorted(by_name, key=lambda d: d.date, reverse=reverse))

    def latest(self, count: int = 5) -> DocumentCollection:
        return self.sorted()[:count]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DocumentCollection({len(self._documents)} documents)"


@dataclass(frozen=True)
class ArchiveEntry:
    """One line of an archive listing."""

    title: str
    url: str
    date: datetime

    @classmethod
    def from_document(cls, doc: Document) -> ArchiveEntry:
        return cls(title=doc.title, url=doc.url, date=doc.date)


@dataclass
class CategoryGroup:
    """All entries filed under one label.

    Attributes:
        name: The label as written in document headers.
        slug: URL-friendly form of the name.
        entries: Archive entries, newest first.
        documents: The documents behind the entries, same order.
    """

    name: str
    slug: str
    entries: list[ArchiveEntry] = field(default_factory=list)
    documents: list[Document] = field(default_factory=list, repr=False)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ArchiveEntry]:
        return iter(self.entries)


class CategoryIndex(Mapping[str, CategoryGroup]):
    """Mapping of label to CategoryGroup, iterated in sorted label order."""

    def __init__(self, groups: Iterable[CategoryGroup]):
        ordered = sorted(groups, key=lambda g: (g.name.lower(), g.name))
        self._groups = {group.name: group for group in ordered}

    def __getitem__(self, key: str) -> CategoryGroup:
        return self._groups[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)

    def __len__(self) -> int:
        return len(self._groups)

    def groups(self) -> list[CategoryGroup]:
        """Groups in display order."""
        return list(self._groups.values())

    def entries(self, name: str) -> list[ArchiveEntry]:
        """Entries for a label, or an empty list when nothing uses it."""
        group = self._groups.get(name)
        return list(group.entries) if group else []

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"CategoryIndex({len(self._groups)} groups)"


def _build_index(
    documents: Iterable[Document], labels_of: Callable[[Document], list[str]]
) -> CategoryIndex:
    members: dict[str, list[Document]] = {}
    for doc in documents:
        # Labels are normalized on load; dict keys keep one entry per label.
        for label in dict.fromkeys(labels_of(doc) or []):
            members.setdefault(label, []).append(doc)
    groups = []
    for label, docs in members.items():
        ordered = DocumentCollection(docs).sorted()
        groups.append(
            CategoryGroup(
                name=label,
                slug=slugify(label),
                entries=[ArchiveEntry.from_document(d) for d in ordered],
                documents=list(ordered),
            )
        )
    return CategoryIndex(groups)


def build_category_index(documents: Iterable[Document]) -> CategoryIndex:
    """Group documents by category.

    Every document with category ``x`` appears exactly once under ``x``.
    Documents without categories appear in no group.
    """
    return _build_index(documents, lambda d: d.categories)


def build_tag_index(documents: Iterable[Document]) -> CategoryIndex:
    """Group documents by tag, with the same rules as categories."""
    return _build_index(documents, lambda d: d.tags)
