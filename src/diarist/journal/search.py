"""Substring search over journal entries.

Match policy: an entry matches when the query occurs in its title or its
content as a case-insensitive substring (``str.casefold``). Queries are not
tokenized and there is no fuzzy matching or ranking; results keep the order
of the input, which for store listings is newest first.

There is no persistent index. Every store search re-reads the entries
directory, which is fine for a personal journal of hundreds to a few
thousand entries and nothing larger.
"""

from __future__ import annotations

from collections.abc import Iterable

from diarist.core.utils.text import fold, strip_markup as _strip_markup

from .models import Entry


def is_blank_query(query: str | None) -> bool:
    return query is None or not query.strip()


def matches(entry: Entry, query: str, *, strip_markup: bool = False) -> bool:
    """Whether ``entry`` matches ``query`` under the substring policy."""
    needle = fold(query)
    if needle in fold(entry.title):
        return True
    content = _strip_markup(entry.content) if strip_markup else entry.content
    return needle in fold(content)


def search_entries(
    entries: Iterable[Entry],
    query: str | None,
    *,
    strip_markup: bool = False,
) -> list[Entry]:
    """Filter ``entries`` to those matching ``query``, preserving order.

    Args:
        entries: Entries in display order.
        query: Substring to look for. ``None``, empty or whitespace-only
            returns every entry.
        strip_markup: Match content after removing HTML tags.
    """
    if is_blank_query(query):
        return list(entries)
    return [entry for entry in entries if matches(entry, query, strip_markup=strip_markup)]
