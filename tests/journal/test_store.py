"""Tests for diarist.journal.store."""

import asyncio
from datetime import datetime

import aiofiles.os
import pytest

from diarist.core.exceptions import EntryNotFoundError, StorageIOError, ValidationError
from diarist.journal.models import Entry
from diarist.journal.records import decode_entry, encode_entry
from diarist.journal.store import EntryStore

TS = datetime(2026, 10, 19, 9, 30, 15)


def _write_raw(entries_dir, name, text):
    entries_dir.mkdir(parents=True, exist_ok=True)
    (entries_dir / name).write_text(text, encoding="utf-8")


def _files(entries_dir):
    return sorted(p.name for p in entries_dir.iterdir())


async def _fail(*args, **kwargs):
    raise OSError(28, "No space left on device")


class TestCreate:
    @pytest.mark.asyncio
    async def test_assigns_identity_and_timestamp(self, store, entries_dir):
        draft = Entry(title="Morning pages", content="<p>hello</p>")
        created = await store.create(draft)

        assert created.identity
        assert created.timestamp is not None
        assert created.timestamp.microsecond == 0
        assert created.title == "Morning pages"
        assert draft.identity is None  # caller's object untouched
        assert _files(entries_dir) == [f"{created.identity}.md"]

    @pytest.mark.asyncio
    async def test_uses_given_timestamp(self, store):
        created = await store.create(Entry(title="x", timestamp=TS.replace(microsecond=500)))
        assert created.timestamp == TS
        assert created.identity == "2026-10-19_09-30-15"

    @pytest.mark.asyncio
    async def test_empty_title_rejected(self, store, entries_dir):
        with pytest.raises(ValidationError, match="Title cannot be empty"):
            await store.create(Entry(title="  ", content="body"))
        assert _files(entries_dir) == []

    @pytest.mark.asyncio
    async def test_already_persisted_rejected(self, store):
        created = await store.create(Entry(title="x"))
        with pytest.raises(ValidationError, match="already saved"):
            await store.create(created)

    @pytest.mark.asyncio
    async def test_same_second_gets_suffixes(self, store):
        first = await store.create(Entry(title="a", timestamp=TS))
        second = await store.create(Entry(title="b", timestamp=TS))
        third = await store.create(Entry(title="c", timestamp=TS))
        assert [first.identity, second.identity, third.identity] == [
            "2026-10-19_09-30-15",
            "2026-10-19_09-30-15-2",
            "2026-10-19_09-30-15-3",
        ]

    @pytest.mark.asyncio
    async def test_concurrent_burst_unique(self, store, entries_dir):
        created = await asyncio.gather(*(store.create(Entry(title=f"n{i}", timestamp=TS)) for i in range(20)))
        identities = {e.identity for e in created}
        assert len(identities) == 20
        assert len(_files(entries_dir)) == 20

    @pytest.mark.asyncio
    async def test_write_failure_leaves_nothing(self, store, entries_dir, monkeypatch):
        monkeypatch.setattr(aiofiles.os, "replace", _fail)
        with pytest.raises(StorageIOError, match="No space left"):
            await store.create(Entry(title="doomed"))
        assert _files(entries_dir) == []

    @pytest.mark.asyncio
    async def test_failed_create_releases_identity(self, store, monkeypatch):
        monkeypatch.setattr(aiofiles.os, "replace", _fail)
        with pytest.raises(StorageIOError):
            await store.create(Entry(title="doomed", timestamp=TS))
        monkeypatch.undo()
        created = await store.create(Entry(title="retry", timestamp=TS))
        assert created.identity == "2026-10-19_09-30-15"


class TestListAll:
    @pytest.mark.asyncio
    async def test_empty(self, store):
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        created = await store.create(Entry(title="Walk", content="<i>sunny</i>"))
        entries = await store.list_all()
        assert entries == [created]

    @pytest.mark.asyncio
    async def test_newest_first(self, store):
        old = await store.create(Entry(title="old", timestamp=datetime(2025, 1, 1)))
        new = await store.create(Entry(title="new", timestamp=datetime(2026, 1, 1)))
        mid = await store.create(Entry(title="mid", timestamp=datetime(2025, 6, 1)))
        assert [e.identity for e in await store.list_all()] == [new.identity, mid.identity, old.identity]

    @pytest.mark.asyncio
    async def test_ties_broken_by_identity(self, store):
        for i in range(11):
            await store.create(Entry(title=f"t{i}", timestamp=TS))
        identities = [e.identity for e in await store.list_all()]
        assert identities[0] == "2026-10-19_09-30-15-11"
        assert identities[1] == "2026-10-19_09-30-15-10"
        assert identities[-1] == "2026-10-19_09-30-15"

    @pytest.mark.asyncio
    async def test_corrupt_record_skipped(self, store, entries_dir):
        a = await store.create(Entry(title="a", timestamp=datetime(2026, 1, 1)))
        b = await store.create(Entry(title="b", timestamp=datetime(2026, 1, 2)))
        _write_raw(entries_dir, "2026-01-03_00-00-00.md", "this is not a record")

        entries = await store.list_all()
        assert [e.identity for e in entries] == [b.identity, a.identity]

        listing = await store.scan()
        assert listing.skipped == ["2026-01-03_00-00-00.md"]

    @pytest.mark.asyncio
    async def test_non_utf8_record_skipped(self, store, entries_dir):
        await store.create(Entry(title="ok"))
        entries_dir.joinpath("2026-01-03_00-00-00.md").write_bytes(b"---\ntitle: \xff\xfe\n---\n")
        listing = await store.scan()
        assert len(listing.entries) == 1
        assert listing.skipped == ["2026-01-03_00-00-00.md"]

    @pytest.mark.asyncio
    async def test_ignores_foreign_and_temp_files(self, store, entries_dir):
        created = await store.create(Entry(title="real"))
        _write_raw(entries_dir, ".2026-01-01_00-00-00.md.abc.tmp", "partial")
        _write_raw(entries_dir, "README.txt", "not an entry")
        _write_raw(entries_dir, "notes.md", "---\ntitle: x\ntimestamp: '2026-01-01T00:00:00'\n---\n")

        listing = await store.scan()
        assert listing.entries == [created]
        assert listing.skipped == ["notes.md"]

    @pytest.mark.asyncio
    async def test_unreadable_directory(self, store, monkeypatch):
        async def denied(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(aiofiles.os, "listdir", denied)
        with pytest.raises(StorageIOError, match="Permission denied"):
            await store.list_all()

    @pytest.mark.asyncio
    async def test_missing_directory(self, store, entries_dir):
        entries_dir.rmdir()
        with pytest.raises(StorageIOError):
            await store.list_all()

    @pytest.mark.asyncio
    async def test_record_written_externally(self, store, entries_dir):
        text = encode_entry(Entry(title="imported", content="x", timestamp=TS))
        _write_raw(entries_dir, "2026-10-19_09-30-15.md", text)
        entries = await store.list_all()
        assert entries[0].identity == "2026-10-19_09-30-15"
        assert entries[0].title == "imported"


class TestGet:
    @pytest.mark.asyncio
    async def test_get(self, store):
        created = await store.create(Entry(title="x", content="y"))
        assert await store.get(created.identity) == created

    @pytest.mark.asyncio
    async def test_missing(self, store):
        with pytest.raises(EntryNotFoundError):
            await store.get("2026-10-19_09-30-15")

    @pytest.mark.asyncio
    async def test_invalid_identity_is_not_found(self, store):
        with pytest.raises(EntryNotFoundError, match="Invalid"):
            await store.get("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_exists(self, store):
        created = await store.create(Entry(title="x"))
        assert await store.exists(created.identity)
        assert not await store.exists("2026-10-19_09-30-15-99")
        assert not await store.exists("bogus")


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_keeps_identity_and_timestamp(self, store):
        created = await store.create(Entry(title="draft", content="one"))
        updated = await store.update(created, created.revise("final", "two"))

        entries = await store.list_all()
        assert len(entries) == 1
        assert entries[0] == updated
        assert entries[0].identity == created.identity
        assert entries[0].timestamp == created.timestamp
        assert entries[0].title == "final"
        assert entries[0].content == "two"

    @pytest.mark.asyncio
    async def test_changed_timestamp_rejected(self, store):
        created = await store.create(Entry(title="x", timestamp=TS))
        moved = Entry(title="x", timestamp=datetime(2020, 1, 1), identity=created.identity)
        with pytest.raises(ValidationError, match="identity and timestamp"):
            await store.update(created, moved)

    @pytest.mark.asyncio
    async def test_changed_identity_rejected(self, store):
        created = await store.create(Entry(title="x", timestamp=TS))
        other = Entry(title="x", timestamp=TS, identity="2026-10-19_09-30-15-2")
        with pytest.raises(ValidationError):
            await store.update(created, other)

    @pytest.mark.asyncio
    async def test_empty_title_rejected(self, store):
        created = await store.create(Entry(title="x"))
        with pytest.raises(ValidationError):
            await store.update(created, created.revise("", "body"))
        assert (await store.get(created.identity)).title == "x"

    @pytest.mark.asyncio
    async def test_unsaved_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.update(Entry(title="x"), Entry(title="y"))

    @pytest.mark.asyncio
    async def test_update_after_delete(self, store):
        created = await store.create(Entry(title="x"))
        await store.delete(created)
        with pytest.raises(EntryNotFoundError):
            await store.update(created, created.revise("y", ""))
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_write_failure_keeps_old_record(self, store, entries_dir, monkeypatch):
        created = await store.create(Entry(title="keep", content="original"))
        monkeypatch.setattr(aiofiles.os, "replace", _fail)
        with pytest.raises(StorageIOError):
            await store.update(created, created.revise("lost", "changes"))
        monkeypatch.undo()
        assert _files(entries_dir) == [f"{created.identity}.md"]
        assert (await store.get(created.identity)).content == "original"


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_then_list(self, store):
        keep = await store.create(Entry(title="keep", timestamp=datetime(2026, 1, 1)))
        gone = await store.create(Entry(title="gone", timestamp=datetime(2026, 1, 2)))
        await store.delete(gone)
        assert [e.identity for e in await store.list_all()] == [keep.identity]

    @pytest.mark.asyncio
    async def test_second_delete_not_found(self, store):
        created = await store.create(Entry(title="x"))
        await store.delete(created)
        with pytest.raises(EntryNotFoundError) as exc_info:
            await store.delete(created)
        assert exc_info.value.identity == created.identity

    @pytest.mark.asyncio
    async def test_unsaved_not_found(self, store):
        with pytest.raises(EntryNotFoundError):
            await store.delete(Entry(title="never saved"))

    @pytest.mark.asyncio
    async def test_remove_failure(self, store, monkeypatch):
        created = await store.create(Entry(title="x"))
        monkeypatch.setattr(aiofiles.os, "remove", _fail)
        with pytest.raises(StorageIOError):
            await store.delete(created)


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_interleaved_updates_leave_one_clean_record(self, store, entries_dir):
        created = await store.create(Entry(title="start", content="0", timestamp=TS))
        revisions = [created.revise(f"title {i}", f"<p>{'x' * i}</p>") for i in range(1, 40)]

        await asyncio.gather(*(store.update(created, r) for r in revisions))

        assert _files(entries_dir) == [f"{created.identity}.md"]
        text = (entries_dir / f"{created.identity}.md").read_text(encoding="utf-8")
        final = decode_entry(text, created.identity)
        assert final in revisions
        assert final.timestamp == TS
        assert len(store._locks) == 0

    @pytest.mark.asyncio
    async def test_update_racing_delete(self, store):
        created = await store.create(Entry(title="x"))
        results = await asyncio.gather(
            store.update(created, created.revise("y", "")),
            store.delete(created),
            return_exceptions=True,
        )
        # Either the update landed before the delete, or it found nothing.
        assert results[1] is None
        assert results[0] == created.revise("y", "") or isinstance(results[0], EntryNotFoundError)
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_reads_during_writes_never_see_partial_records(self, store):
        created = await store.create(Entry(title="start", content="a" * 5000))

        async def writer():
            for i in range(25):
                await store.update(created, created.revise(f"t{i}", str(i) * 5000))

        async def reader():
            for _ in range(25):
                listing = await store.scan()
                assert listing.skipped == []
                assert len(listing.entries) == 1

        await asyncio.gather(writer(), reader())


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_rescans(self, store):
        await store.create(Entry(title="The Fox", timestamp=datetime(2026, 1, 1)))
        assert len(await store.search("fox")) == 1
        await store.create(Entry(title="other", content="a FOX again", timestamp=datetime(2026, 1, 2)))
        assert [e.title for e in await store.search("fox")] == ["other", "The Fox"]


class TestConstruction:
    def test_creates_directory(self, tmp_path):
        target = tmp_path / "a" / "b"
        EntryStore(target)
        assert target.is_dir()

    def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(StorageIOError):
            EntryStore(blocker / "entries")
