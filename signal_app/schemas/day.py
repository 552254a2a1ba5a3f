from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from signal_app.models.day import Day, DayStatus
from signal_app.schemas.entry import EntryOut, entry_out
from signal_app.services.days import DayView


class OpenDayRequest(BaseModel):
    wake_time: datetime = Field(
        description="Wake-up instant. Must not be in the future.",
        examples=["2024-01-01T09:00:00Z"],
    )


class CloseDayRequest(BaseModel):
    sleep_time: datetime = Field(
        description="Sleep instant. Must not be in the future.",
        examples=["2024-01-01T23:30:00Z"],
    )


class UpdateWakeTimeRequest(BaseModel):
    wake_time: datetime = Field(description="New wake-up instant. Must not be in the future.")


class DayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    wake_time: datetime
    sleep_time: Optional[datetime] = None
    status: DayStatus
    signal_total: int
    wasted_total: int
    previous_day_id: Optional[int] = Field(default=None, description="Next-older day.")
    next_day_id: Optional[int] = Field(default=None, description="Next-newer day.")
    entries: list[EntryOut] = Field(
        default_factory=list,
        description="Final entries, oldest first.",
    )


class DaySummaryOut(BaseModel):
    id: int
    wake_time: datetime
    sleep_time: Optional[datetime] = None
    status: DayStatus
    signal_total: int
    wasted_total: int
    entry_count: int


class CurrentDayResponse(BaseModel):
    day: Optional[DayOut] = None


class DayListResponse(BaseModel):
    total: int
    items: list[DaySummaryOut]


def day_out(view: DayView) -> DayOut:
    day = view.day
    entries = sorted(
        (e for e in day.entries if not e.is_draft),
        key=lambda e: (e.timestamp, e.id),
    )
    return DayOut(
        id=day.id,
        wake_time=day.wake_time,
        sleep_time=day.sleep_time,
        status=day.status,
        signal_total=day.signal_total,
        wasted_total=day.wasted_total,
        previous_day_id=view.previous_day_id,
        next_day_id=view.next_day_id,
        entries=[entry_out(e) for e in entries],
    )


def day_summary_out(day: Day) -> DaySummaryOut:
    return DaySummaryOut(
        id=day.id,
        wake_time=day.wake_time,
        sleep_time=day.sleep_time,
        status=day.status,
        signal_total=day.signal_total,
        wasted_total=day.wasted_total,
        entry_count=sum(1 for e in day.entries if not e.is_draft),
    )
