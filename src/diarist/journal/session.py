"""Editing session — the state of the "currently open entry".

The UI owns an :class:`EditingSession` and drives it through the state
machine below. Anything running in the background (autosave) only ever sees
an immutable :class:`SessionSnapshot`.

::

    EMPTY --edit--> EDITING --saved--> SAVED --edit--> EDITING
    any --open_for_reading--> READING --begin_editing--> EDITING
    any --new_entry / current entry deleted--> EMPTY
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from .models import Entry
from .outcomes import Outcome, SavedEntry, SaveOrigin


class SessionState(StrEnum):
    EMPTY = "empty"
    EDITING = "editing"
    SAVED = "saved"
    READING = "reading"


EDITABLE_STATES = frozenset({SessionState.EMPTY, SessionState.EDITING, SessionState.SAVED})


def _new_draft_key() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time view of an editing session."""

    draft_key: str
    state: SessionState
    entry: Entry | None
    title: str
    content: str
    last_saved_title: str
    last_saved_content: str
    revision: int = 0

    @property
    def editable(self) -> bool:
        return self.state in EDITABLE_STATES

    @property
    def dirty(self) -> bool:
        return self.title != self.last_saved_title or self.content != self.last_saved_content

    @property
    def has_title(self) -> bool:
        return bool(self.title.strip())


class EditingSession:
    """Mutable editing state owned by the UI layer.

    Attributes:
        state: Current :class:`SessionState`.
        entry: The persisted entry being viewed/edited, or None for a new one.
        title, content: Live values from the editor.
        last_saved_title, last_saved_content: Last known-persisted values.
        draft_key: Token identifying "this logical entry in this session";
            changes whenever the session moves to a different entry.
        revision: Bumped on every edit that changes title or content.
        status: Human-readable status line.

    Args:
        on_release: Called with the old draft key whenever the session moves
            to another draft. Pass ``Journal.forget_draft`` so the journal
            drops its bookkeeping for drafts nobody edits any more.
    """

    def __init__(self, on_release: Callable[[str], None] | None = None) -> None:
        self._on_release = on_release
        self.draft_key = ""
        self.new_entry()

    # -- Transitions ---------------------------------------------------------

    def new_entry(self) -> None:
        self.state = SessionState.EMPTY
        self.entry: Entry | None = None
        self.title = ""
        self.content = ""
        self.last_saved_title = ""
        self.last_saved_content = ""
        self._next_draft()
        self.revision = 0
        self.saved_revision = 0
        self.status = "New Entry"

    def open_for_reading(self, entry: Entry) -> None:
        if not entry.is_persisted:
            raise ValueError("Only saved entries can be opened for reading")
        self.state = SessionState.READING
        self.entry = entry
        self.title = entry.title
        self.content = entry.content
        self.last_saved_title = entry.title
        self.last_saved_content = entry.content
        self._next_draft()
        self.revision = 0
        self.saved_revision = 0
        self.status = f"Reading: {entry.title}"

    def begin_editing(self) -> None:
        """Switch a READING session to EDITING; no-op otherwise."""
        if self.state is not SessionState.READING or self.entry is None:
            return
        self.state = SessionState.EDITING
        self.status = f"Editing: {self.entry.title}"

    def edit(self, title: str | None = None, content: str | None = None) -> None:
        """Apply live editor changes."""
        if self.state is SessionState.READING:
            raise ValueError("Entry is open read-only; call begin_editing() first")
        before = (self.title, self.content)
        if title is not None:
            self.title = title
        if content is not None:
            self.content = content
        if (self.title, self.content) != before:
            self.revision += 1
        if self.dirty:
            self.state = SessionState.EDITING

    def entry_deleted(self, entry: Entry) -> bool:
        """Reset to EMPTY if ``entry`` is the open one. Returns True if reset."""
        if self.entry is not None and self.entry.identity == entry.identity:
            self.new_entry()
            self.status = "Entry deleted"
            return True
        return False

    def apply(self, outcome: Outcome[SavedEntry]) -> bool:
        """Record a successful save for this session's current entry.

        Results for another draft (the user moved on meanwhile), results older
        than one already applied, and failures are ignored. Returns True when
        the snapshot was refreshed.
        """
        if not outcome.ok or outcome.value is None:
            return False
        saved = outcome.value
        if saved.draft_key != self.draft_key or saved.revision < self.saved_revision:
            return False
        self.entry = saved.entry
        self.saved_revision = saved.revision
        self.last_saved_title = saved.entry.title
        self.last_saved_content = saved.entry.content
        if self.state is not SessionState.READING:
            self.state = SessionState.SAVED if not self.dirty else SessionState.EDITING
        prefix = "Auto-saved" if outcome.origin is SaveOrigin.AUTOSAVE else "Saved"
        self.status = f"{prefix}: {saved.entry.title}"
        return True

    def _next_draft(self) -> None:
        previous, self.draft_key = self.draft_key, _new_draft_key()
        if previous and self._on_release is not None:
            self._on_release(previous)

    # -- Views ---------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        return self.title != self.last_saved_title or self.content != self.last_saved_content

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            draft_key=self.draft_key,
            state=self.state,
            entry=self.entry,
            title=self.title,
            content=self.content,
            last_saved_title=self.last_saved_title,
            last_saved_content=self.last_saved_content,
            revision=self.revision,
        )
