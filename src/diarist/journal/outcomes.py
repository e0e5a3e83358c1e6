"""Typed results for journal operations.

The journal facade never lets engine exceptions escape into the caller. It
returns an :class:`Outcome` holding either a value or the
:class:`~diarist.core.exceptions.DiaristError` that stopped the operation.
:func:`notice_for` then decides how a UI should present it, based on whether
the user asked for the operation or autosave did.
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from loguru import logger

from diarist.core.exceptions import (
    DiaristError,
    EntryNotFoundError,
    StorageIOError,
    ValidationError,
)

from .models import Entry

T = TypeVar("T")


class SaveOrigin(StrEnum):
    MANUAL = "manual"
    AUTOSAVE = "autosave"


class Operation(StrEnum):
    LIST = "list"
    SEARCH = "search"
    GET = "get"
    SAVE = "save"
    DELETE = "delete"


class FailureKind(StrEnum):
    IO = "io"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    OTHER = "other"


def failure_kind(error: BaseException | None) -> FailureKind | None:
    if error is None:
        return None
    if isinstance(error, ValidationError):
        return FailureKind.VALIDATION
    if isinstance(error, EntryNotFoundError):
        return FailureKind.NOT_FOUND
    if isinstance(error, StorageIOError):
        return FailureKind.IO
    return FailureKind.OTHER


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Success value or typed failure of one journal operation."""

    operation: Operation
    value: T | None = None
    error: DiaristError | None = None
    origin: SaveOrigin = SaveOrigin.MANUAL

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> FailureKind | None:
        return failure_kind(self.error)

    def unwrap(self) -> T:
        """Return the value or re-raise the failure."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


@dataclass(frozen=True)
class SavedEntry:
    """Value of a successful save: the persisted entry plus what was written.

    ``draft_key`` ties the result to the editing session that produced it so
    a session can ignore results for an entry it has since moved away from.
    ``written`` is False when the save was superseded by a newer revision
    and nothing was written; ``entry`` is then the newer persisted state.
    """

    entry: Entry
    draft_key: str | None = None
    revision: int = 0
    created: bool = False
    written: bool = True


SaveOutcome = Outcome[SavedEntry]


async def capture(
    operation: Operation,
    work: Awaitable[T],
    origin: SaveOrigin = SaveOrigin.MANUAL,
) -> Outcome[T]:
    """Await ``work`` and wrap its result or DiaristError in an Outcome."""
    try:
        value = await work
    except DiaristError as e:
        if origin is SaveOrigin.AUTOSAVE:
            logger.debug(f"{operation} ({origin}) failed: {e}")
        else:
            logger.info(f"{operation} failed: {e}")
        return Outcome(operation=operation, error=e, origin=origin)
    return Outcome(operation=operation, value=value, origin=origin)


# -- Presentation -------------------------------------------------------------


class NoticeLevel(StrEnum):
    STATUS = "status"  # transient status line
    ALERT = "alert"  # blocking dialog


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str
    title: str = ""

    @property
    def blocking(self) -> bool:
        return self.level is NoticeLevel.ALERT


def notice_for(outcome: Outcome) -> Notice | None:
    """How a UI should surface ``outcome``; ``None`` means stay silent.

    A manual save confirms with an alert and every manual failure gets one.
    Autosave never alerts: validation failures are silent and other failures
    only update the status line.
    """
    autosave = outcome.origin is SaveOrigin.AUTOSAVE

    if outcome.ok:
        if outcome.operation is Operation.SAVE:
            if autosave:
                return Notice(NoticeLevel.STATUS, f"Auto-saved: {outcome.value.entry.title}")
            return Notice(NoticeLevel.ALERT, "Entry saved successfully.", title="Success")
        if outcome.operation is Operation.DELETE:
            return Notice(NoticeLevel.STATUS, "Entry deleted")
        return None

    kind = outcome.kind
    if autosave:
        if kind is FailureKind.VALIDATION:
            return None
        if kind is FailureKind.NOT_FOUND:
            return Notice(NoticeLevel.STATUS, "Auto-save stopped: entry no longer exists")
        return Notice(NoticeLevel.STATUS, "Auto-save failed")

    if kind is FailureKind.VALIDATION:
        return Notice(NoticeLevel.ALERT, str(outcome.error), title="Error")
    verb = {Operation.SAVE: "save", Operation.DELETE: "delete"}.get(outcome.operation, "load")
    return Notice(NoticeLevel.ALERT, f"Failed to {verb} entry: {outcome.error}", title="Error")
