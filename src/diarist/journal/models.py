"""Core data models for the journal engine.

An ``Entry`` is the engine's view of one journal record. It is frozen:
saving never mutates the caller's object, it returns a new ``Entry``
carrying the assigned identity and timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

LABEL_FORMAT = "%Y-%m-%d %H:%M"


@dataclass(frozen=True)
class Entry:
    """A journal entry.

    Attributes:
        title: Display title. Must be non-empty once persisted.
        content: Free-form text, may contain HTML markup, may be empty.
        timestamp: Creation time, assigned at first save. ``None`` while unsaved.
        identity: Stable handle assigned at first save. ``None`` while unsaved.
    """

    title: str
    content: str = ""
    timestamp: datetime | None = None
    identity: str | None = None

    @property
    def is_persisted(self) -> bool:
        return self.identity is not None

    @property
    def has_title(self) -> bool:
        return bool(self.title and self.title.strip())

    @property
    def label(self) -> str:
        """List label: ``"2026-10-19 09:30 - Morning pages"``."""
        if self.timestamp is None:
            return self.title
        return f"{self.timestamp.strftime(LABEL_FORMAT)} - {self.title}"

    def revise(self, title: str, content: str) -> Entry:
        """Return a copy with new title/content and the same identity and timestamp."""
        return replace(self, title=title, content=content)

    def __str__(self) -> str:
        return self.label

    def __repr__(self) -> str:
        return f"Entry(identity={self.identity!r}, title={self.title!r})"


@dataclass(frozen=True)
class Listing:
    """Result of enumerating the entries directory.

    Attributes:
        entries: Parsed entries in listing order.
        skipped: Filenames of records that could not be parsed.
    """

    entries: list[Entry] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)
