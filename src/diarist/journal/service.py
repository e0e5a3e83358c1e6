"""Journal — the collaborator-facing facade over the entry store.

Every method returns an :class:`~diarist.journal.outcomes.Outcome`; engine
exceptions never cross into the caller. ``save`` is the one save path shared
by the manual "Save" action and the autosave coordinator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from diarist.core.exceptions import ValidationError

from .config import SearchConfig, StoreConfig
from .locks import KeyedLock
from .models import Entry, Listing
from .outcomes import Operation, Outcome, SavedEntry, SaveOrigin, SaveOutcome, capture
from .search import search_entries
from .session import SessionSnapshot
from .store import EntryStore

if TYPE_CHECKING:
    from diarist.core.config import Config


class Journal:
    """Outcome-returning journal operations.

    Saves are serialized per draft key (one logical entry in one editing
    session). The journal remembers which persisted entry and revision each
    draft last wrote, so:

    - a snapshot taken before the draft's first save finished becomes an
      update of the entry that save created, never a second entry;
    - a snapshot older than the last written revision is not written, so the
      newest edit wins regardless of which caller reaches the lock first.

    Sessions built with ``EditingSession(on_release=journal.forget_draft)``
    release a draft when they move on, so this bookkeeping only covers
    drafts still open.

    Args:
        store: Backing entry store.
        search_config: Match policy options for :meth:`search`.
    """

    def __init__(self, store: EntryStore, search_config: SearchConfig | None = None):
        self.store = store
        self.search_config = search_config or SearchConfig()
        self._draft_locks = KeyedLock()
        self._drafts: dict[str, tuple[Entry, int]] = {}
        self._released: set[str] = set()

    @classmethod
    def from_config(cls, config: Config) -> Journal:
        store = EntryStore.from_config(StoreConfig.from_config(config))
        return cls(store, SearchConfig.from_config(config))

    # -- Queries -------------------------------------------------------------

    async def list_entries(self) -> Outcome[list[Entry]]:
        return await capture(Operation.LIST, self.store.list_all())

    async def scan(self) -> Outcome[Listing]:
        """Like :meth:`list_entries` but also reports skipped records."""
        return await capture(Operation.LIST, self.store.scan())

    async def search(self, query: str | None) -> Outcome[list[Entry]]:
        return await capture(Operation.SEARCH, self._search(query))

    async def _search(self, query: str | None) -> list[Entry]:
        entries = await self.store.list_all()
        return search_entries(entries, query, strip_markup=self.search_config.strip_markup)

    async def get(self, identity: str) -> Outcome[Entry]:
        return await capture(Operation.GET, self.store.get(identity))

    # -- Mutations -----------------------------------------------------------

    async def create(self, entry: Entry) -> Outcome[Entry]:
        return await capture(Operation.SAVE, self.store.create(entry))

    async def update(self, old: Entry, new: Entry) -> Outcome[Entry]:
        return await capture(Operation.SAVE, self.store.update(old, new))

    async def delete(self, entry: Entry) -> Outcome[None]:
        outcome = await capture(Operation.DELETE, self.store.delete(entry))
        if outcome.ok:
            self._forget_identity(entry.identity)
        return outcome

    async def save(self, snapshot: SessionSnapshot, origin: SaveOrigin = SaveOrigin.MANUAL) -> SaveOutcome:
        """Persist the live title/content of an editing session.

        Creates the entry on first save and updates it afterwards.
        """
        return await capture(Operation.SAVE, self._save(snapshot), origin)

    async def _save(self, snapshot: SessionSnapshot) -> SavedEntry:
        if not snapshot.editable:
            raise ValidationError("Entry is open read-only.")
        if not snapshot.has_title:
            raise ValidationError("Title cannot be empty.")

        key = snapshot.draft_key
        try:
            async with self._draft_locks.hold(key):
                known = self._drafts.get(key)
                if known is not None and snapshot.revision < known[1]:
                    logger.debug(f"Skipping stale save of revision {snapshot.revision} for {known[0].identity}")
                    return SavedEntry(entry=known[0], draft_key=key, revision=known[1], written=False)

                current = known[0] if known is not None else snapshot.entry
                if current is None:
                    entry = await self.store.create(Entry(title=snapshot.title, content=snapshot.content))
                    created = True
                else:
                    entry = await self.store.update(current, current.revise(snapshot.title, snapshot.content))
                    created = False
                self._drafts[key] = (entry, snapshot.revision)
        finally:
            self._drop_if_released(key)

        return SavedEntry(entry=entry, draft_key=key, revision=snapshot.revision, created=created)

    def forget_draft(self, draft_key: str) -> None:
        """Drop what the journal remembers about a draft the session left.

        Saves for the draft that are still running or queued keep seeing its
        entry, so the bookkeeping is dropped once the last of them finishes.
        """
        if self._draft_locks.in_use(draft_key):
            self._released.add(draft_key)
        else:
            self._drafts.pop(draft_key, None)

    def _drop_if_released(self, draft_key: str) -> None:
        if draft_key in self._released and not self._draft_locks.in_use(draft_key):
            self._released.discard(draft_key)
            self._drafts.pop(draft_key, None)

    def _forget_identity(self, identity: str | None) -> None:
        for key in [k for k, (entry, _) in self._drafts.items() if entry.identity == identity]:
            del self._drafts[key]
