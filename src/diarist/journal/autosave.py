"""Autosave coordinator — periodic background saves of the open entry.

Wraps APScheduler's ``AsyncIOScheduler`` with an interval job that calls
:meth:`AutosaveCoordinator.tick`. Each tick asks a session provider for the
current editing session, and if it is editable, dirty and titled, saves it
through :meth:`Journal.save` with ``SaveOrigin.AUTOSAVE``, the same path a
manual save takes.

The coordinator never touches UI state. Outcomes go to the ``on_result``
callback; the UI decides what to do with them (typically
``EditingSession.apply`` plus a quiet status update).

APScheduler is imported lazily (only in :meth:`start`) so the module can be
imported and ticked directly in tests without a scheduler.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from .config import AutosaveConfig
from .outcomes import FailureKind, SaveOrigin, SaveOutcome
from .service import Journal
from .session import EditingSession, SessionSnapshot

SessionProvider = Callable[[], EditingSession | SessionSnapshot | None]
"""Returns the currently open session (or its snapshot), or None."""

ResultCallback = Callable[[SaveOutcome], Awaitable[Any] | Any]
"""Sync or async callable receiving each autosave outcome."""

JOB_ID = "diarist-autosave"


class AutosaveCoordinator:
    """Periodically persists unsaved edits without interrupting the user.

    Ticks are serialized: a tick that arrives while another is running waits
    for it, then re-reads the session. The scheduled job is additionally
    registered with ``max_instances=1`` and ``coalesce=True`` so missed runs
    collapse into one.

    Args:
        journal: The journal whose save path is used.
        session_provider: Returns the open editing session or None.
        on_result: Receives every outcome of an attempted autosave.
        config: Interval and enable flag.
        timezone: Scheduler timezone.
    """

    def __init__(
        self,
        journal: Journal,
        session_provider: SessionProvider,
        on_result: ResultCallback | None = None,
        config: AutosaveConfig | None = None,
        timezone: str = "UTC",
    ):
        self.journal = journal
        self.config = config or AutosaveConfig()
        self._session_provider = session_provider
        self._on_result = on_result
        self._timezone = timezone
        self._scheduler: Any = None  # AsyncIOScheduler, lazily created
        self._tick_lock = asyncio.Lock()
        self._stopped = False
        self._abandoned: str | None = None  # draft key of a deleted entry

    # ── Lifecycle ──────────────────────────────────────────────────

    def start(self) -> None:
        """Create the scheduler and start ticking.

        Must be called from a running asyncio event loop.
        """
        if not self.config.enabled:
            logger.info("Autosave disabled in config")
            return
        if self._scheduler is not None:
            logger.warning("Autosave already running")
            return

        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.interval import IntervalTrigger

        self._stopped = False
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.config.interval_seconds, timezone=self._timezone),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Autosave started, every {self.config.interval_seconds:g}s")

    def shutdown(self) -> None:
        """Stop the scheduler. Ticks arriving afterwards do nothing."""
        self._stopped = True
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Autosave shut down")

    async def stop(self) -> None:
        """Shut down and wait for an in-flight tick to finish."""
        self.shutdown()
        async with self._tick_lock:
            pass

    @property
    def running(self) -> bool:
        return self._scheduler is not None and not self._stopped

    @property
    def apscheduler(self) -> Any:
        """The raw APScheduler instance, or None before :meth:`start`."""
        return self._scheduler

    # ── Ticking ────────────────────────────────────────────────────

    def _snapshot(self) -> SessionSnapshot | None:
        current = self._session_provider()
        if isinstance(current, EditingSession):
            return current.snapshot()
        return current

    def _should_save(self, snapshot: SessionSnapshot | None) -> bool:
        if snapshot is None:
            return False
        if snapshot.draft_key == self._abandoned:
            return False
        self._abandoned = None
        if not snapshot.editable or not snapshot.dirty:
            return False
        # Never bother the user about autosave of an untitled draft.
        return snapshot.has_title

    async def tick(self) -> SaveOutcome | None:
        """Run one autosave check. Returns the save outcome, or None if skipped."""
        if self._stopped:
            return None
        async with self._tick_lock:
            if self._stopped:
                return None
            snapshot = self._snapshot()
            if not self._should_save(snapshot):
                return None

            logger.debug("Auto-saving...")
            outcome = await self.journal.save(snapshot, SaveOrigin.AUTOSAVE)

            if outcome.kind is FailureKind.NOT_FOUND:
                self._abandoned = snapshot.draft_key
                logger.warning(f"Auto-save stopped for a deleted entry: {outcome.error}")
            elif not outcome.ok:
                logger.warning(f"Auto-save failed: {outcome.error}")

            await self._report(outcome)
            return outcome

    async def _report(self, outcome: SaveOutcome) -> None:
        if self._on_result is None:
            return
        try:
            result = self._on_result(outcome)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Autosave result callback failed")
