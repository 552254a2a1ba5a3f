"""
Day lifecycle service: open / close / reopen days and navigate between them.

Public API
----------
get_current_day(db)                  -> Day | None
get_day(db, day_id)                  -> Day           (DayNotFoundError)
list_days(db)                        -> list[Day]     (newest first)
open_day(db, wake_time)              -> Day           (idempotent while a day is open)
close_day(db, day_id, sleep_time)    -> Day
reopen_day(db, day_id)               -> Day           (most recent day only)
update_wake_time(db, day_id, value)  -> Day
navigate(db, day_id)                 -> DayNavigation
day_view(db, day)                    -> DayView
find_duplicate_days(db)              -> list[DuplicateGroup]
cleanup_duplicate_days(db, dry_run)  -> list[CleanupAction]

At most one Day is open (sleep_time IS NULL) at any time.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from signal_app.core import clock
from signal_app.core.errors import (
    DayNotFoundError,
    DayNotReopenableError,
    FutureTimestampError,
    MissingFieldError,
    StoreError,
)
from signal_app.core.logging import get_logger
from signal_app.db.base import as_utc, atomic
from signal_app.models.day import Day

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class DayNavigation:
    previous_day_id: Optional[int]   # next-older day
    next_day_id: Optional[int]       # next-newer day


@dataclass
class DayView:
    day: Day
    previous_day_id: Optional[int]
    next_day_id: Optional[int]


@dataclass
class DuplicateGroup:
    date: date
    days: list[Day]


@dataclass
class CleanupAction:
    date: date
    kept_day_id: int
    deleted_day_ids: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_past(value: Optional[datetime], field_name: str) -> datetime:
    """Reject missing or future instants before any mutation."""
    if value is None:
        raise MissingFieldError(field_name)
    value = as_utc(value)
    if value > clock.utcnow():
        raise FutureTimestampError(field_name, value)
    return value


def _newest_first():
    return (Day.wake_time.desc(), Day.id.desc())


def _lock_day(db: Session, day_id: int) -> Day:
    day = db.scalars(select(Day).where(Day.id == day_id).with_for_update()).first()
    if day is None:
        raise DayNotFoundError(day_id)
    return day


def _open_days(db: Session) -> list[Day]:
    return list(
        db.scalars(
            select(Day)
            .where(Day.sleep_time.is_(None))
            .order_by(*_newest_first())
            .with_for_update()
        ).all()
    )


def _latest_day(db: Session) -> Optional[Day]:
    return db.scalars(select(Day).order_by(*_newest_first()).limit(1)).first()


def _force_close(days: list[Day], at: datetime) -> None:
    for stray in days:
        logger.warning("force-closing stray open day %s at %s", stray.id, at.isoformat())
        stray.sleep_time = at


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_current_day(db: Session) -> Optional[Day]:
    """The open day if there is one, else the most recently woken closed day."""
    open_day_ = db.scalars(
        select(Day).where(Day.sleep_time.is_(None)).order_by(*_newest_first()).limit(1)
    ).first()
    if open_day_ is not None:
        return open_day_
    return _latest_day(db)


def get_day(db: Session, day_id: int) -> Day:
    day = db.get(Day, day_id)
    if day is None:
        raise DayNotFoundError(day_id)
    return day


def list_days(db: Session) -> list[Day]:
    return list(db.scalars(select(Day).order_by(*_newest_first())).all())


def navigate(db: Session, day_id: int) -> DayNavigation:
    """Neighbours of `day_id` in the wake_time-descending ordering of all days."""
    ordered_ids = list(db.scalars(select(Day.id).order_by(*_newest_first())).all())
    try:
        index = ordered_ids.index(day_id)
    except ValueError:
        raise DayNotFoundError(day_id)

    previous_id = ordered_ids[index + 1] if index + 1 < len(ordered_ids) else None
    next_id = ordered_ids[index - 1] if index > 0 else None
    return DayNavigation(previous_day_id=previous_id, next_day_id=next_id)


def day_view(db: Session, day: Day) -> DayView:
    nav = navigate(db, day.id)
    return DayView(
        day=day,
        previous_day_id=nav.previous_day_id,
        next_day_id=nav.next_day_id,
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def open_day(db: Session, wake_time: Optional[datetime]) -> Day:
    """
    Open a day at `wake_time`.

    - An already-open day is returned unchanged (safe to retry). Any other
      open day found alongside it is force-closed at its wake_time.
    - A closed day woken on today's calendar date is reopened and its
      wake_time overwritten instead of creating a second day for the date.
    - Otherwise a new day is created.

    If a concurrent caller opened a day first, the unique open-day index
    rejects this insert and the winner's day is returned.
    """
    wake_time = _require_past(wake_time, "wake_time")

    try:
        return _open_day(db, wake_time)
    except StoreError as exc:
        if not isinstance(exc.__cause__, IntegrityError):
            raise
        winner = db.scalars(
            select(Day).where(Day.sleep_time.is_(None)).order_by(*_newest_first()).limit(1)
        ).first()
        if winner is None:
            raise
        logger.info("day %s was opened concurrently, returning it", winner.id)
        return winner


def _open_day(db: Session, wake_time: datetime) -> Day:
    with atomic(db, "open day"):
        open_days = _open_days(db)
        if open_days:
            current, strays = open_days[0], open_days[1:]
            _force_close(strays, current.wake_time)
            db.flush()
            return current

        latest = _latest_day(db)
        if latest is not None and clock.local_date(latest.wake_time) == clock.local_date(clock.utcnow()):
            logger.info(
                "reopening day %s (wake %s -> %s)",
                latest.id, latest.wake_time.isoformat(), wake_time.isoformat(),
            )
            latest.sleep_time = None
            latest.wake_time = wake_time
            db.flush()
            return latest

        day = Day(wake_time=wake_time, signal_total=0, wasted_total=0)
        db.add(day)
        db.flush()
        logger.info("opened day %s at %s", day.id, wake_time.isoformat())
        return day


def close_day(db: Session, day_id: int, sleep_time: Optional[datetime]) -> Day:
    """Set sleep_time. Closing an already-closed day edits its sleep time."""
    sleep_time = _require_past(sleep_time, "sleep_time")

    with atomic(db, "close day"):
        day = _lock_day(db, day_id)
        day.sleep_time = sleep_time
        db.flush()
        logger.info("closed day %s at %s", day.id, sleep_time.isoformat())
        return day


def reopen_day(db: Session, day_id: int) -> Day:
    with atomic(db, "reopen day"):
        day = _lock_day(db, day_id)
        if day.is_open:
            return day

        latest = _latest_day(db)
        if latest is None or latest.id != day.id:
            raise DayNotReopenableError(day_id, "only the most recent day can be reopened")
        if _open_days(db):
            raise DayNotReopenableError(day_id, "another day is still open")

        day.sleep_time = None
        db.flush()
        logger.info("reopened day %s", day.id)
        return day


def update_wake_time(db: Session, day_id: int, wake_time: Optional[datetime]) -> Day:
    """Overwrite wake_time; entries and totals are untouched."""
    wake_time = _require_past(wake_time, "wake_time")

    with atomic(db, "update wake time"):
        day = _lock_day(db, day_id)
        day.wake_time = wake_time
        db.flush()
        return day


# ---------------------------------------------------------------------------
# Maintenance: duplicate days for one calendar date
# ---------------------------------------------------------------------------

def find_duplicate_days(db: Session) -> list[DuplicateGroup]:
    """Group days by the calendar date of wake_time; keep groups with >1 day."""
    by_date: dict[date, list[Day]] = {}
    for day in list_days(db):
        by_date.setdefault(clock.local_date(day.wake_time), []).append(day)

    return [
        DuplicateGroup(date=d, days=days)
        for d, days in by_date.items()
        if len(days) > 1
    ]


def _pick_keeper(days: list[Day]) -> Day:
    """Most recent day, unless a day with more entries exists."""
    ordered = sorted(days, key=lambda d: (d.wake_time, d.id), reverse=True)
    keep = ordered[0]
    for day in ordered:
        if len(day.entries) > len(keep.entries):
            keep = day
            break
    return keep


def cleanup_duplicate_days(db: Session, dry_run: bool = True) -> list[CleanupAction]:
    """
    Delete all but one day for each duplicated calendar date.

    Deleting a day deletes its entries. With dry_run=True nothing is
    written; the returned actions describe what would happen.
    """
    actions: list[CleanupAction] = []

    with atomic(db, "clean up duplicate days"):
        for group in find_duplicate_days(db):
            keep = _pick_keeper(group.days)
            action = CleanupAction(date=group.date, kept_day_id=keep.id)
            for day in group.days:
                if day.id == keep.id:
                    continue
                action.deleted_day_ids.append(day.id)
                if not dry_run:
                    logger.info("deleting duplicate day %s (%s)", day.id, group.date)
                    db.delete(day)
            actions.append(action)
        db.flush()

    return actions
