"""EntryStore — async one-file-per-entry persistence.

Each entry lives in ``<entries_dir>/<identity>.md`` (see
:mod:`diarist.journal.records` for the layout). Writes go to a hidden
temporary file in the same directory and are moved into place with
``os.replace``, so a reader sees either the old record or the new one and a
failed write leaves nothing behind.

Writes to one identity are serialized with a :class:`KeyedLock`; different
identities proceed concurrently. Listing takes no locks.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import aiofiles
import aiofiles.os
from loguru import logger

from diarist.core.exceptions import (
    EntryNotFoundError,
    RecordParseError,
    StorageIOError,
    ValidationError,
)

from .config import StoreConfig
from .identity import DEFAULT_MAX_ATTEMPTS, derive_identity, identity_sort_key, is_valid_identity
from .locks import KeyedLock
from .models import Entry, Listing
from .records import RECORD_SUFFIX, decode_entry, encode_entry, normalize_timestamp
from .search import search_entries

_TMP_SUFFIX = ".tmp"


def sort_entries(entries: list[Entry]) -> list[Entry]:
    """Newest first; same-second entries by identity, highest suffix first."""
    return sorted(
        entries,
        key=lambda e: (e.timestamp, identity_sort_key(e.identity or "")),
        reverse=True,
    )


def _require_title(entry: Entry) -> None:
    if not entry.has_title:
        raise ValidationError("Title cannot be empty.")


class EntryStore:
    """Durable CRUD over journal entries.

    Args:
        entries_dir: Directory for record files. Created if missing.
        max_identity_attempts: Bound on suffixes tried for same-second entries.
    """

    def __init__(self, entries_dir: str | Path, max_identity_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.entries_dir = Path(entries_dir).expanduser()
        self.max_identity_attempts = max_identity_attempts
        self._locks = KeyedLock()
        self._allocation_lock = asyncio.Lock()
        self._reserved: set[str] = set()
        try:
            self.entries_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Cannot create entries directory {self.entries_dir}: {e}") from e

    @classmethod
    def from_config(cls, config: StoreConfig) -> EntryStore:
        return cls(config.entries_dir, max_identity_attempts=config.max_identity_attempts)

    # -- Paths ---------------------------------------------------------------

    def _path_for(self, identity: str | None) -> Path:
        if not is_valid_identity(identity):
            raise EntryNotFoundError(identity, f"Invalid entry identity: {identity!r}")
        return self.entries_dir / f"{identity}{RECORD_SUFFIX}"

    async def _record_names(self) -> list[str]:
        try:
            names = await aiofiles.os.listdir(self.entries_dir)
        except OSError as e:
            raise StorageIOError(f"Cannot read entries directory {self.entries_dir}: {e}") from e
        return [n for n in names if n.endswith(RECORD_SUFFIX) and not n.startswith(".")]

    # -- Reads ---------------------------------------------------------------

    async def _read(self, identity: str) -> Entry:
        path = self._path_for(identity)
        try:
            async with aiofiles.open(path, encoding="utf-8", newline="") as f:
                text = await f.read()
        except FileNotFoundError:
            raise EntryNotFoundError(identity) from None
        except UnicodeDecodeError as e:
            raise RecordParseError(path.name, f"not UTF-8: {e}") from e
        except OSError as e:
            raise StorageIOError(f"Cannot read {path.name}: {e}") from e
        return decode_entry(text, identity)

    async def _load_for_listing(self, name: str) -> Entry | str | None:
        """Entry on success, the filename when skipped, None if it vanished."""
        identity = name[: -len(RECORD_SUFFIX)]
        if not is_valid_identity(identity):
            logger.warning(f"Skipping record with unrecognized name: {name}")
            return name
        try:
            return await self._read(identity)
        except EntryNotFoundError:
            logger.debug(f"Record {name} removed during listing")
            return None
        except (RecordParseError, StorageIOError) as e:
            logger.warning(f"Skipping record: {e}")
            return name

    async def scan(self) -> Listing:
        """Enumerate all records, reporting which ones were skipped.

        Raises:
            StorageIOError: the entries directory itself cannot be read.
        """
        names = await self._record_names()
        results = await asyncio.gather(*(self._load_for_listing(n) for n in names))

        entries = [r for r in results if isinstance(r, Entry)]
        skipped = sorted(r for r in results if isinstance(r, str))
        return Listing(entries=sort_entries(entries), skipped=skipped)

    async def list_all(self) -> list[Entry]:
        """All persisted entries, newest first. Unparseable records are skipped."""
        listing = await self.scan()
        return listing.entries

    async def get(self, identity: str) -> Entry:
        """Read a single entry.

        Raises:
            EntryNotFoundError: no record for ``identity``.
            RecordParseError: the record exists but cannot be decoded.
        """
        return await self._read(identity)

    async def exists(self, identity: str) -> bool:
        if not is_valid_identity(identity):
            return False
        return await aiofiles.os.path.exists(self._path_for(identity))

    async def search(self, query: str | None, *, strip_markup: bool = False) -> list[Entry]:
        """Re-scan storage and filter by ``query`` (see :mod:`diarist.journal.search`)."""
        entries = await self.list_all()
        return search_entries(entries, query, strip_markup=strip_markup)

    # -- Writes --------------------------------------------------------------

    async def _discard(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temporary file {path.name}: {e}")

    async def _write_atomic(self, path: Path, text: str) -> None:
        """Write via temp file + fsync + ``os.replace``."""
        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}{_TMP_SUFFIX}")
        try:
            try:
                async with aiofiles.open(tmp, "w", encoding="utf-8", newline="") as f:
                    await f.write(text)
                    await f.flush()
                    await asyncio.to_thread(os.fsync, f.fileno())
                await aiofiles.os.replace(tmp, path)
            except BaseException:
                await self._discard(tmp)
                raise
        except OSError as e:
            raise StorageIOError(f"Cannot write {path.name}: {e}") from e

    async def create(self, entry: Entry) -> Entry:
        """Persist a new entry and return it with identity and timestamp assigned.

        Raises:
            ValidationError: empty title, or the entry already has an identity.
            IdentityExhaustedError: too many entries in the same second.
            StorageIOError: the record could not be written.
        """
        if entry.is_persisted:
            raise ValidationError(f"Entry {entry.identity} is already saved; use update()")
        _require_title(entry)
        timestamp = normalize_timestamp(entry.timestamp or datetime.now())

        async with self._allocation_lock:
            taken = {n[: -len(RECORD_SUFFIX)] for n in await self._record_names()}
            identity = derive_identity(timestamp, taken | self._reserved, self.max_identity_attempts)
            self._reserved.add(identity)

        created = replace(entry, timestamp=timestamp, identity=identity)
        try:
            async with self._locks.hold(identity):
                await self._write_atomic(self._path_for(identity), encode_entry(created))
        finally:
            self._reserved.discard(identity)

        logger.debug(f"Created entry {identity}")
        return created

    async def update(self, old: Entry, new: Entry) -> Entry:
        """Overwrite ``old``'s record with ``new``'s title and content.

        Raises:
            ValidationError: ``new`` changes identity or timestamp, or has no title.
            EntryNotFoundError: the record no longer exists.
            StorageIOError: the record could not be written.
        """
        if not old.is_persisted:
            raise ValidationError("Cannot update an entry that was never saved")
        if new.identity != old.identity or new.timestamp != old.timestamp:
            raise ValidationError("Update must keep the entry's identity and timestamp")
        _require_title(new)

        path = self._path_for(old.identity)
        async with self._locks.hold(old.identity):
            if not await aiofiles.os.path.exists(path):
                raise EntryNotFoundError(old.identity)
            await self._write_atomic(path, encode_entry(new))

        logger.debug(f"Updated entry {old.identity}")
        return new

    async def delete(self, entry: Entry) -> None:
        """Remove ``entry``'s record permanently.

        Raises:
            EntryNotFoundError: the record does not exist.
            StorageIOError: the record could not be removed.
        """
        if not entry.is_persisted:
            raise EntryNotFoundError(None, "Entry was never saved")
        path = self._path_for(entry.identity)
        async with self._locks.hold(entry.identity):
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                raise EntryNotFoundError(entry.identity) from None
            except OSError as e:
                raise StorageIOError(f"Cannot delete {path.name}: {e}") from e

        logger.debug(f"Deleted entry {entry.identity}")
