"""
Entry ledger: log-entry mutations and the per-day totals they maintain.

Public API
----------
list_entries(db, day_id, include_drafts, descending)  -> list[LogEntry]
create_entry(db, day_id, content, ...)                -> LedgerResult
update_entry(db, entry_id, changes)                   -> LedgerResult
finalize_entry(db, entry_id, duration, ...)           -> LedgerResult
delete_entry(db, entry_id)                            -> LedgerResult
recompute_totals(db, day_id)                          -> Day

Totals rule
-----------
Day.signal_total / Day.wasted_total == sum of LogEntry.contribution() over the
day's final entries. Every mutation reverses the entry's old contribution and
applies the new one inside the same transaction, with the owning Day row
locked and the entry re-read under that lock, so concurrent writers on one
day serialize.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from signal_app.core import clock
from signal_app.core.errors import (
    DayNotFoundError,
    EntryAlreadyFinalError,
    EntryNotFoundError,
    MissingFieldError,
    ValidationError,
)
from signal_app.core.logging import get_logger
from signal_app.db.base import as_utc, atomic
from signal_app.models.day import Day
from signal_app.models.log_entry import EntryStatus, LogEntry, QualityLevel
from signal_app.services.classifier import classify, type_for_quality, validate_duration

logger = get_logger(__name__)

_UNSET: Any = object()


# ---------------------------------------------------------------------------
# Result / input types
# ---------------------------------------------------------------------------

@dataclass
class LedgerResult:
    """The mutated entry and its owning day after the change."""
    entry: LogEntry
    day: Day


@dataclass
class EntryChanges:
    """Partial update. Fields left at _UNSET are not touched."""
    content: Any = field(default=_UNSET)
    timestamp: Any = field(default=_UNSET)
    quality: Any = field(default=_UNSET)
    duration: Any = field(default=_UNSET)
    is_draft: Any = field(default=_UNSET)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EntryChanges":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _lock_day(db: Session, day_id: int) -> Day:
    day = db.scalars(
        select(Day)
        .where(Day.id == day_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if day is None:
        raise DayNotFoundError(day_id)
    return day


def _get_entry(db: Session, entry_id: int) -> LogEntry:
    entry = db.get(LogEntry, entry_id)
    if entry is None:
        raise EntryNotFoundError(entry_id)
    return entry


def _lock_entry(db: Session, entry_id: int) -> tuple[LogEntry, Day]:
    """
    Lock the entry's Day, then re-read the entry under that lock.

    State checks and contribution() must only look at the re-read row; the
    first read exists to find the day_id.
    """
    day = _lock_day(db, _get_entry(db, entry_id).day_id)
    entry = db.scalars(
        select(LogEntry)
        .where(LogEntry.id == entry_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if entry is None:
        raise EntryNotFoundError(entry_id)
    return entry, day


def _apply(day: Day, signal: int, wasted: int) -> None:
    """Add a (possibly negative) delta to the day's totals, floored at zero."""
    day.signal_total = max(0, (day.signal_total or 0) + signal)
    day.wasted_total = max(0, (day.wasted_total or 0) + wasted)


def _reverse(day: Day, contribution: tuple[int, int]) -> None:
    _apply(day, -contribution[0], -contribution[1])


def _require_content(content: Optional[str]) -> str:
    if content is None or not content.strip():
        raise MissingFieldError("content")
    return content


def _quality(value) -> Optional[QualityLevel]:
    if value is None:
        return None
    try:
        return QualityLevel(value)
    except ValueError:
        raise ValidationError(
            message=f"Unknown quality {value!r}.",
            details={"quality": str(value)},
        )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def list_entries(
    db: Session,
    day_id: int,
    include_drafts: bool = False,
    descending: bool = False,
) -> list[LogEntry]:
    if db.get(Day, day_id) is None:
        raise DayNotFoundError(day_id)

    stmt = select(LogEntry).where(LogEntry.day_id == day_id)
    if not include_drafts:
        stmt = stmt.where(LogEntry.status == EntryStatus.final)
    order = LogEntry.timestamp.desc() if descending else LogEntry.timestamp.asc()
    stmt = stmt.order_by(order, LogEntry.id.desc() if descending else LogEntry.id.asc())
    return list(db.scalars(stmt).all())


def find_entry(db: Session, entry_id: int) -> Optional[LogEntry]:
    return db.get(LogEntry, entry_id)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def create_entry(
    db: Session,
    day_id: int,
    content: Optional[str],
    timestamp: Optional[datetime] = None,
    quality: Optional[QualityLevel | str] = None,
    duration: Optional[int] = None,
    is_draft: bool = False,
) -> LedgerResult:
    """Classify, persist, and count the entry toward its day if final."""
    content = _require_content(content)
    quality_level = _quality(quality)
    parsed = classify(content, quality=quality_level, duration=duration)

    with atomic(db, "create entry"):
        day = _lock_day(db, day_id)
        entry = LogEntry(
            day_id=day.id,
            timestamp=as_utc(timestamp) if timestamp else clock.utcnow(),
            content=parsed.content,
            entry_type=parsed.entry_type,
            duration=parsed.duration,
            quality=quality_level,
            status=EntryStatus.draft if is_draft else EntryStatus.final,
        )
        db.add(entry)
        signal, wasted = entry.contribution()
        _apply(day, signal, wasted)
        db.flush()
        logger.debug(
            "entry %s created on day %s (%s, %s min, %s)",
            entry.id, day.id, entry.entry_type.value, entry.duration, entry.status.value,
        )
        return LedgerResult(entry=entry, day=day)


def update_entry(db: Session, entry_id: int, changes: EntryChanges) -> LedgerResult:
    """
    Apply a partial update with full totals reconciliation.

    - quality  -> type recomputed from the quality
    - content  -> re-classified from tags when the entry has no quality
    - is_draft -> True->False finalizes the draft (see finalize_entry)
    """
    if changes.content is not _UNSET:
        _require_content(changes.content)
    if changes.duration is not _UNSET:
        validate_duration(changes.duration)
    if changes.quality is not _UNSET:
        changes.quality = _quality(changes.quality)

    with atomic(db, "update entry"):
        entry, day = _lock_entry(db, entry_id)

        if entry.is_draft and changes.is_draft is False:
            _finalize(
                entry,
                day,
                duration=entry.duration if changes.duration is _UNSET else changes.duration,
                quality=entry.quality if changes.quality is _UNSET else changes.quality,
                content=None if changes.content is _UNSET else changes.content,
                timestamp=None if changes.timestamp is _UNSET else changes.timestamp,
            )
            db.flush()
            return LedgerResult(entry=entry, day=day)

        _reverse(day, entry.contribution())

        if changes.timestamp is not _UNSET and changes.timestamp is not None:
            entry.timestamp = as_utc(changes.timestamp)
        if changes.quality is not _UNSET:
            entry.quality = changes.quality
        if changes.content is not _UNSET:
            entry.content = changes.content.strip()

        if entry.quality is not None:
            if changes.quality is not _UNSET:
                entry.entry_type = type_for_quality(entry.quality)
        elif changes.content is not _UNSET or changes.quality is not _UNSET:
            parsed = classify(entry.content)
            entry.entry_type = parsed.entry_type
            if changes.duration is _UNSET and parsed.duration is not None:
                entry.duration = parsed.duration

        if changes.duration is not _UNSET:
            entry.duration = changes.duration
        if changes.is_draft is True:
            entry.status = EntryStatus.draft

        signal, wasted = entry.contribution()
        _apply(day, signal, wasted)
        db.flush()
        return LedgerResult(entry=entry, day=day)


def _finalize(
    entry: LogEntry,
    day: Day,
    duration: Optional[int],
    quality: Optional[QualityLevel],
    content: Optional[str],
    timestamp: Optional[datetime],
) -> None:
    """Draft -> Final on a locked entry; inputs are already validated."""
    if content is not None:
        entry.content = content.strip()
    if timestamp is not None:
        entry.timestamp = as_utc(timestamp)

    if quality is not None:
        entry.quality = quality
        entry.entry_type = type_for_quality(quality)
    elif content is not None and entry.quality is None:
        entry.entry_type = classify(entry.content).entry_type
    entry.duration = duration
    entry.status = EntryStatus.final

    signal, wasted = entry.contribution()
    _apply(day, signal, wasted)
    logger.info(
        "entry %s finalized on day %s (%s, %s min)",
        entry.id, day.id, entry.entry_type.value, entry.duration,
    )


def finalize_entry(
    db: Session,
    entry_id: int,
    duration: Optional[int],
    quality: Optional[QualityLevel | str] = None,
    content: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> LedgerResult:
    """
    Draft -> Final. The only way a draft's duration reaches the totals.

    Raises EntryAlreadyFinalError if the entry is not a draft.
    """
    duration = validate_duration(duration)
    quality = _quality(quality)
    if content is not None:
        _require_content(content)

    with atomic(db, "finalize entry"):
        entry, day = _lock_entry(db, entry_id)
        if not entry.is_draft:
            raise EntryAlreadyFinalError(entry_id)
        _finalize(entry, day, duration, quality, content, timestamp)
        db.flush()
        return LedgerResult(entry=entry, day=day)


def delete_entry(db: Session, entry_id: int) -> LedgerResult:
    """Remove the entry and reverse its contribution (floored at zero)."""
    with atomic(db, "delete entry"):
        entry, day = _lock_entry(db, entry_id)
        _reverse(day, entry.contribution())
        db.delete(entry)
        db.flush()
        logger.debug("entry %s deleted from day %s", entry_id, day.id)

    db.refresh(day)
    return LedgerResult(entry=entry, day=day)


def recompute_totals(db: Session, day_id: int) -> Day:
    """Rebuild the day's totals from its final entries."""
    with atomic(db, "recompute totals"):
        day = _lock_day(db, day_id)
        signal = wasted = 0
        for entry in list_entries(db, day_id, include_drafts=False):
            s, w = entry.contribution()
            signal += s
            wasted += w
        if (signal, wasted) != (day.signal_total, day.wasted_total):
            logger.warning(
                "day %s totals drifted: signal %s -> %s, wasted %s -> %s",
                day.id, day.signal_total, signal, day.wasted_total, wasted,
            )
        day.signal_total = signal
        day.wasted_total = wasted
        db.flush()
        return day
