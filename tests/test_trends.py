"""
Tests for the trends read-model.
"""
from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from conftest import utc
from signal_app.models.log_entry import EntryStatus, EntryType
from signal_app.services import days as day_service
from signal_app.services import ledger
from signal_app.services.trends import (
    TrendDirection,
    _hour_label,
    calculate_trends,
    format_day_context,
    get_trends,
    peak_hours,
    recent_trend,
)


def _entry(hour, minutes, entry_type=EntryType.signal, status=EntryStatus.final):
    return SimpleNamespace(
        timestamp=utc(2024, 3, 1, hour, 15),
        entry_type=entry_type,
        duration=minutes,
        is_draft=status == EntryStatus.draft,
    )


def _day(day_id, wake, signal=0, wasted=0, entries=None):
    return SimpleNamespace(
        id=day_id,
        wake_time=wake,
        signal_total=signal,
        wasted_total=wasted,
        entries=entries or [],
    )


def _series(signals, start=utc(2024, 1, 1, 8)):
    """Days oldest first with the given signal totals."""
    return [
        _day(i + 1, start + timedelta(days=i), signal=s)
        for i, s in enumerate(signals)
    ]


class TestHourLabel:
    @pytest.mark.parametrize("hour,expected", [
        (0, "12AM-1AM"),
        (9, "9AM-10AM"),
        (11, "11AM-12PM"),
        (12, "12PM-1PM"),
        (23, "11PM-12AM"),
    ])
    def test_labels(self, hour, expected):
        assert _hour_label(hour) == expected


class TestPeakHours:
    def test_ranks_by_signal_minutes(self):
        days = [
            _day(1, utc(2024, 3, 1, 7), entries=[
                _entry(9, 60), _entry(14, 90), _entry(20, 10), _entry(9, 40),
            ]),
            _day(2, utc(2024, 3, 2, 7), entries=[_entry(22, 5)]),
        ]
        assert peak_hours(days) == ["9AM-10AM", "2PM-3PM", "8PM-9PM"]

    def test_ignores_drafts_and_non_signal(self):
        days = [_day(1, utc(2024, 3, 1, 7), entries=[
            _entry(9, 500, status=EntryStatus.draft),
            _entry(10, 500, entry_type=EntryType.wasted),
            _entry(11, 30),
        ])]
        assert peak_hours(days) == ["11AM-12PM"]

    def test_ties_go_to_earlier_hour(self):
        days = [_day(1, utc(2024, 3, 1, 7), entries=[_entry(16, 30), _entry(8, 30)])]
        assert peak_hours(days) == ["8AM-9AM", "4PM-5PM"]


class TestRecentTrend:
    def test_improving(self):
        assert recent_trend(_series([100] * 7 + [200] * 7), window=7) == TrendDirection.improving

    def test_declining(self):
        assert recent_trend(_series([200] * 7 + [100] * 7), window=7) == TrendDirection.declining

    def test_within_threshold_is_stable(self):
        assert recent_trend(_series([100] * 7 + [105] * 7), window=7) == TrendDirection.stable

    def test_needs_three_days_per_window(self):
        assert recent_trend(_series([10, 10, 500, 500, 500]), window=3) == TrendDirection.stable

    def test_short_windows(self):
        assert recent_trend(_series([10, 10, 10, 50, 50, 50]), window=3) == TrendDirection.improving

    def test_zero_prior_is_stable(self):
        assert recent_trend(_series([0, 0, 0, 50, 50, 50]), window=3) == TrendDirection.stable


class TestCalculateTrends:
    def test_empty_history(self):
        summary = calculate_trends([])
        assert summary.total_days == 0
        assert summary.best_day is None
        assert summary.worst_day is None
        assert summary.peak_hours == []
        assert summary.recent_trend == TrendDirection.stable

    def test_aggregates(self):
        days = [
            _day(1, utc(2024, 3, 1, 7), signal=120, wasted=30),
            _day(2, utc(2024, 3, 2, 7), signal=60, wasted=90),
            _day(3, utc(2024, 3, 3, 7), signal=31, wasted=0),
        ]
        summary = calculate_trends(days)
        assert summary.total_days == 3
        assert summary.avg_signal_minutes == 70
        assert summary.avg_wasted_minutes == 40
        assert summary.signal_to_wasted_ratio == pytest.approx(211 / 120)
        assert summary.best_day.day_id == 1
        assert summary.best_day.date == date(2024, 3, 1)
        assert summary.best_day.signal == 120
        assert summary.worst_day.day_id == 2
        assert summary.worst_day.wasted == 90

    def test_no_waste_ratio_and_worst_day(self):
        summary = calculate_trends([_day(1, utc(2024, 3, 1, 7), signal=45)])
        assert summary.signal_to_wasted_ratio == 45.0
        assert summary.worst_day is None


class TestFormatDayContext:
    def test_no_day(self):
        assert format_day_context(None) == "No active day."

    def test_no_entries(self):
        assert format_day_context(_day(1, utc(2024, 3, 1, 7))) == "No entries logged yet today."

    def test_timeline(self, db):
        day = day_service.open_day(db, utc(2024, 3, 15, 7))
        ledger.create_entry(db, day.id, "deep work", quality="deep", duration=90,
                            timestamp=utc(2024, 3, 15, 9, 5))
        ledger.create_entry(db, day.id, "breakfast", timestamp=utc(2024, 3, 15, 8))
        ledger.create_entry(db, day.id, "timer", is_draft=True, timestamp=utc(2024, 3, 15, 10))

        text = format_day_context(day_service.get_day(db, day.id))
        assert text == (
            "08:00 - breakfast\n"
            "09:05 - deep work (deep, 90min)\n"
            "\n"
            "Signal: 90min | Wasted: 0min"
        )


def test_get_trends_from_database(db):
    day = day_service.open_day(db, utc(2024, 3, 15, 7))
    ledger.create_entry(db, day.id, "work [signal: 50]", timestamp=utc(2024, 3, 15, 10, 30))
    ledger.create_entry(db, day.id, "feeds [wasted: 25]", timestamp=utc(2024, 3, 15, 12))

    summary = get_trends(db)
    assert summary.total_days == 1
    assert summary.avg_signal_minutes == 50
    assert summary.signal_to_wasted_ratio == 2.0
    assert summary.peak_hours == ["10AM-11AM"]
    assert summary.best_day.day_id == day.id
