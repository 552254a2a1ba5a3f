"""
Insights schemas.

GET /insights/trends   → TrendsResponse
GET /insights/context  → DayContextResponse
"""
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from signal_app.services.trends import TrendDirection


class BestDayOut(BaseModel):
    day_id: int
    date: date
    signal: int


class WorstDayOut(BaseModel):
    day_id: int
    date: date
    wasted: int


class TrendsResponse(BaseModel):
    total_days: int
    avg_signal_minutes: int
    avg_wasted_minutes: int
    signal_to_wasted_ratio: float
    peak_hours: list[str] = Field(examples=[["9AM-10AM", "2PM-3PM"]])
    best_day: Optional[BestDayOut] = None
    worst_day: Optional[WorstDayOut] = Field(
        default=None,
        description="Only present when some day has wasted time.",
    )
    recent_trend: TrendDirection


class DayContextResponse(BaseModel):
    day_id: Optional[int] = None
    context: str
