"""
Trends read-model — aggregate statistics over the whole Day/Entry history.

Read-only. Consumed by the external assistant as context.

Outputs
-------
  total_days, avg_signal_minutes, avg_wasted_minutes
  signal_to_wasted_ratio   total_signal / total_wasted (total_signal if no waste)
  peak_hours               up to 3 "9AM-10AM" ranges by summed signal minutes
  best_day                 max signal_total
  worst_day                max wasted_total, only when > 0
  recent_trend             improving / declining / stable: average signal of
                           the newest window vs the one before it (>= 3 days
                           in each, +-10% threshold)

Only final entries are counted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from signal_app.core import clock
from signal_app.core.config import settings
from signal_app.models.day import Day
from signal_app.models.log_entry import EntryType

PEAK_HOURS_LIMIT = 3
MIN_DAYS_PER_WINDOW = 3
TREND_THRESHOLD = 0.1


class TrendDirection(str, Enum):
    improving = "improving"
    declining = "declining"
    stable = "stable"


@dataclass
class BestDay:
    day_id: int
    date: date
    signal: int


@dataclass
class WorstDay:
    day_id: int
    date: date
    wasted: int


@dataclass
class TrendsSummary:
    total_days: int = 0
    avg_signal_minutes: int = 0
    avg_wasted_minutes: int = 0
    signal_to_wasted_ratio: float = 0.0
    peak_hours: list[str] = field(default_factory=list)
    best_day: Optional[BestDay] = None
    worst_day: Optional[WorstDay] = None
    recent_trend: TrendDirection = TrendDirection.stable


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _final_entries(day) -> list:
    return [e for e in (day.entries or []) if not e.is_draft]


def _hour_label(hour: int) -> str:
    def _fmt(h: int) -> str:
        h %= 24
        return f"{h % 12 or 12}{'AM' if h < 12 else 'PM'}"
    return f"{_fmt(hour)}-{_fmt(hour + 1)}"


def peak_hours(days: Iterable) -> list[str]:
    """Hours of the day with the most signal minutes, best first."""
    minutes_by_hour: dict[int, int] = {}
    for day in days:
        for entry in _final_entries(day):
            if entry.entry_type == EntryType.signal and entry.duration:
                hour = clock.to_local(entry.timestamp).hour
                minutes_by_hour[hour] = minutes_by_hour.get(hour, 0) + entry.duration

    ranked = sorted(minutes_by_hour.items(), key=lambda kv: (-kv[1], kv[0]))
    return [_hour_label(hour) for hour, _ in ranked[:PEAK_HOURS_LIMIT]]


def recent_trend(days: list, window: int) -> TrendDirection:
    newest_first = sorted(days, key=lambda d: d.wake_time, reverse=True)
    recent = newest_first[:window]
    prior = newest_first[window:window * 2]
    if len(recent) < MIN_DAYS_PER_WINDOW or len(prior) < MIN_DAYS_PER_WINDOW:
        return TrendDirection.stable

    recent_avg = sum(d.signal_total for d in recent) / len(recent)
    prior_avg = sum(d.signal_total for d in prior) / len(prior)
    change = (recent_avg - prior_avg) / prior_avg if prior_avg > 0 else 0
    if change > TREND_THRESHOLD:
        return TrendDirection.improving
    if change < -TREND_THRESHOLD:
        return TrendDirection.declining
    return TrendDirection.stable


# ---------------------------------------------------------------------------
# Core: pure reduction
# ---------------------------------------------------------------------------

def calculate_trends(days: list, window: Optional[int] = None) -> TrendsSummary:
    if not days:
        return TrendsSummary()
    window = window or settings.TREND_WINDOW_DAYS

    total_signal = sum(d.signal_total for d in days)
    total_wasted = sum(d.wasted_total for d in days)
    newest_first = sorted(days, key=lambda d: d.wake_time, reverse=True)

    best = max(newest_first, key=lambda d: d.signal_total)
    worst = max(newest_first, key=lambda d: d.wasted_total)

    return TrendsSummary(
        total_days=len(days),
        avg_signal_minutes=round(total_signal / len(days)),
        avg_wasted_minutes=round(total_wasted / len(days)),
        signal_to_wasted_ratio=(
            total_signal / total_wasted if total_wasted > 0 else float(total_signal)
        ),
        peak_hours=peak_hours(days),
        best_day=BestDay(
            day_id=best.id,
            date=clock.local_date(best.wake_time),
            signal=best.signal_total,
        ),
        worst_day=(
            WorstDay(
                day_id=worst.id,
                date=clock.local_date(worst.wake_time),
                wasted=worst.wasted_total,
            )
            if worst.wasted_total > 0 else None
        ),
        recent_trend=recent_trend(days, window),
    )


def format_day_context(day: Optional[Day]) -> str:
    """Plain-text timeline of one day for the assistant prompt."""
    if day is None:
        return "No active day."
    entries = _final_entries(day)
    if not entries:
        return "No entries logged yet today."

    lines = []
    for entry in sorted(entries, key=lambda e: e.timestamp):
        time_label = clock.to_local(entry.timestamp).strftime("%H:%M")
        suffix = ""
        if entry.quality:
            quality = getattr(entry.quality, "value", entry.quality)
            suffix = f" ({quality}, {entry.duration}min)" if entry.duration else f" ({quality})"
        lines.append(f"{time_label} - {entry.content}{suffix}")

    summary = f"Signal: {day.signal_total}min | Wasted: {day.wasted_total}min"
    return "\n".join(lines) + "\n\n" + summary


# ---------------------------------------------------------------------------
# DB entry points
# ---------------------------------------------------------------------------

def load_history(db: Session) -> list[Day]:
    return list(
        db.scalars(
            select(Day).options(selectinload(Day.entries)).order_by(Day.wake_time.desc())
        ).all()
    )


def get_trends(db: Session) -> TrendsSummary:
    return calculate_trends(load_history(db))
