"""Journal persistence and retrieval engine.

Provides the Entry model, a one-file-per-entry async store, substring
search, typed operation outcomes, the editing-session state machine and an
autosave coordinator sharing the manual save path.
"""

from .autosave import AutosaveCoordinator
from .config import AutosaveConfig, SearchConfig, StoreConfig
from .identity import derive_identity
from .models import Entry, Listing
from .outcomes import Notice, NoticeLevel, Outcome, SavedEntry, SaveOrigin, notice_for
from .search import search_entries
from .service import Journal
from .session import EditingSession, SessionSnapshot, SessionState
from .store import EntryStore

__all__ = [
    "AutosaveConfig",
    "AutosaveCoordinator",
    "EditingSession",
    "Entry",
    "EntryStore",
    "Journal",
    "Listing",
    "Notice",
    "NoticeLevel",
    "Outcome",
    "SaveOrigin",
    "SavedEntry",
    "SearchConfig",
    "SessionSnapshot",
    "SessionState",
    "StoreConfig",
    "derive_identity",
    "notice_for",
    "search_entries",
]
