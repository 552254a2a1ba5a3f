"""
Insights router — read-only aggregates for the assistant.

GET /insights/trends
GET /insights/context?day_id=
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from signal_app.db.base import get_db
from signal_app.schemas.common import error_responses
from signal_app.schemas.insights import (
    BestDayOut,
    DayContextResponse,
    TrendsResponse,
    WorstDayOut,
)
from signal_app.services import days as day_service
from signal_app.services.trends import TrendsSummary, format_day_context, get_trends

router = APIRouter(prefix="/insights", tags=["insights"])


def _trends_to_response(t: TrendsSummary) -> TrendsResponse:
    return TrendsResponse(
        total_days=t.total_days,
        avg_signal_minutes=t.avg_signal_minutes,
        avg_wasted_minutes=t.avg_wasted_minutes,
        signal_to_wasted_ratio=t.signal_to_wasted_ratio,
        peak_hours=t.peak_hours,
        best_day=(
            BestDayOut(day_id=t.best_day.day_id, date=t.best_day.date, signal=t.best_day.signal)
            if t.best_day else None
        ),
        worst_day=(
            WorstDayOut(day_id=t.worst_day.day_id, date=t.worst_day.date, wasted=t.worst_day.wasted)
            if t.worst_day else None
        ),
        recent_trend=t.recent_trend,
    )


@router.get("/trends", response_model=TrendsResponse, summary="History-wide trends")
def trends(db: Session = Depends(get_db)):
    """
    Averages, signal/wasted ratio, peak signal hours, best/worst day and the
    recent trend (newest 7 days vs the 7 before).
    """
    return _trends_to_response(get_trends(db))


@router.get(
    "/context",
    response_model=DayContextResponse,
    summary="Plain-text timeline of one day",
    responses=error_responses(e404="Day does not exist."),
)
def day_context(
    day_id: Optional[int] = Query(default=None, description="Defaults to the current day."),
    db: Session = Depends(get_db),
):
    day = day_service.get_day(db, day_id) if day_id is not None else day_service.get_current_day(db)
    return DayContextResponse(
        day_id=day.id if day is not None else None,
        context=format_day_context(day),
    )
