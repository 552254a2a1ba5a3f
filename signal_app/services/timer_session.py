"""
Timer session: glue between the TimerMachine and the ledger.

start  -> make sure a day is open, create a draft entry, start the machine
stop   -> finalize the draft with the elapsed minutes, then stop the machine
status -> verify the draft still exists; self-reset if it was deleted
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from sqlalchemy.orm import Session

from signal_app.core import clock
from signal_app.core.config import settings
from signal_app.core.errors import MissingFieldError, TimerAlreadyRunningError
from signal_app.core.logging import get_logger
from signal_app.models.day import Day
from signal_app.models.log_entry import LogEntry, QualityLevel
from signal_app.services import days as day_service
from signal_app.services import ledger
from signal_app.services.timer import SnapshotStore, StopResult, TimerMachine

logger = get_logger(__name__)

MISSING_DRAFT_MESSAGE = "The entry for the running timer no longer exists; the timer was reset."
DISCARDED_SESSION_MESSAGE = "The entry for this timer no longer exists; the session was not recorded."


@dataclass
class SessionStatus:
    machine: TimerMachine
    message: Optional[str] = None


@dataclass
class SessionStop:
    result: StopResult
    entry: Optional[LogEntry]
    day: Optional[Day]
    message: Optional[str] = None


def _draft_exists(db: Session, day_id: Optional[int], entry_id: Optional[int]) -> bool:
    if day_id is None or entry_id is None:
        return False
    if db.get(Day, day_id) is None:
        return False
    entries = ledger.list_entries(db, day_id, include_drafts=True)
    return any(e.id == entry_id and e.is_draft for e in entries)


class TimerSessionService:
    def __init__(self, machine: TimerMachine):
        self.machine = machine

    def status(self, db: Session) -> SessionStatus:
        """Current timer state, after checking its draft entry is still there."""
        snap = self.machine.snapshot
        if snap.is_running and not _draft_exists(db, snap.current_day_id, snap.current_entry_id):
            logger.info(
                "draft entry %s for active timer is gone, resetting timer",
                snap.current_entry_id,
            )
            self.machine.reset()
            return SessionStatus(machine=self.machine, message=MISSING_DRAFT_MESSAGE)
        return SessionStatus(machine=self.machine)

    def start(self, db: Session, quality: Optional[QualityLevel] = None) -> SessionStatus:
        # A stale session whose draft vanished must not block a new one.
        self.status(db)
        if self.machine.is_active:
            raise TimerAlreadyRunningError(self.machine.snapshot.current_entry_id)

        day = day_service.get_current_day(db)
        if day is None or not day.is_open:
            day = day_service.open_day(db, clock.utcnow())

        created = ledger.create_entry(
            db,
            day.id,
            settings.TIMER_PLACEHOLDER_CONTENT,
            quality=quality,
            is_draft=True,
        )
        self.machine.start(day_id=day.id, entry_id=created.entry.id)
        return SessionStatus(machine=self.machine)

    def pause(self) -> SessionStatus:
        self.machine.pause()
        return SessionStatus(machine=self.machine)

    def resume(self) -> SessionStatus:
        self.machine.resume()
        return SessionStatus(machine=self.machine)

    def stop(
        self,
        db: Session,
        quality: Optional[QualityLevel] = None,
        content: Optional[str] = None,
    ) -> SessionStop:
        """
        Finalize the draft with the elapsed minutes, then stop the machine.

        If finalizing fails the session keeps running and can be stopped again.
        """
        if content is not None and not content.strip():
            raise MissingFieldError("content")
        result = self.machine.pending_stop()

        if not _draft_exists(db, result.day_id, result.entry_id):
            self.machine.stop()
            logger.info("timer stopped but draft entry %s is gone", result.entry_id)
            return SessionStop(result=result, entry=None, day=None, message=DISCARDED_SESSION_MESSAGE)

        finalized = ledger.finalize_entry(
            db,
            result.entry_id,
            duration=result.duration,
            quality=quality,
            content=content,
        )
        if self.machine.is_active:
            self.machine.stop()
        return SessionStop(result=result, entry=finalized.entry, day=finalized.day)

    def reset(self) -> SessionStatus:
        self.machine.reset()
        return SessionStatus(machine=self.machine)


@lru_cache(maxsize=1)
def get_timer_service() -> TimerSessionService:
    """Process-wide timer session (FastAPI dependency)."""
    machine = TimerMachine(SnapshotStore(settings.TIMER_STATE_PATH))
    return TimerSessionService(machine)
