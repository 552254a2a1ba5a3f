"""
Days router.

GET   /days/current
GET   /days
GET   /days/{day_id}
POST  /days                      — open (idempotent while a day is open)
POST  /days/{day_id}/close
POST  /days/{day_id}/reopen
PATCH /days/{day_id}/wake-time
POST  /days/{day_id}/recompute   — rebuild totals from entries
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from signal_app.db.base import get_db
from signal_app.schemas.common import error_responses
from signal_app.schemas.day import (
    CloseDayRequest,
    CurrentDayResponse,
    DayListResponse,
    DayOut,
    OpenDayRequest,
    UpdateWakeTimeRequest,
    day_out,
    day_summary_out,
)
from signal_app.services import days as day_service
from signal_app.services import ledger

router = APIRouter(prefix="/days", tags=["days"])

_NOT_FOUND = error_responses(e404="Day does not exist.")


@router.get(
    "/current",
    response_model=CurrentDayResponse,
    summary="The open day, or the most recent closed day",
)
def current_day(db: Session = Depends(get_db)):
    """Returns `{"day": null}` when nothing has been logged yet."""
    day = day_service.get_current_day(db)
    if day is None:
        return CurrentDayResponse(day=None)
    return CurrentDayResponse(day=day_out(day_service.day_view(db, day)))


@router.get("", response_model=DayListResponse, summary="All days, newest first")
def list_days(db: Session = Depends(get_db)):
    days = day_service.list_days(db)
    return DayListResponse(total=len(days), items=[day_summary_out(d) for d in days])


@router.get("/{day_id}", response_model=DayOut, summary="One day", responses=_NOT_FOUND)
def get_day(day_id: int, db: Session = Depends(get_db)):
    day = day_service.get_day(db, day_id)
    return day_out(day_service.day_view(db, day))


@router.post(
    "",
    response_model=DayOut,
    summary="Open a day at wake time",
    responses=error_responses(e422="wake_time missing or in the future."),
)
def open_day(payload: OpenDayRequest, db: Session = Depends(get_db)):
    """
    Open a day:
    - If a day is already open it is returned unchanged.
    - If the most recent day was woken today and is closed, it is reopened
      with the new wake time instead of creating a second day for the date.
    - Otherwise a new day is created.
    """
    day = day_service.open_day(db, payload.wake_time)
    return day_out(day_service.day_view(db, day))


@router.post(
    "/{day_id}/close",
    response_model=DayOut,
    summary="Close a day at sleep time",
    responses={**_NOT_FOUND, **error_responses(e422="sleep_time missing or in the future.")},
)
def close_day(day_id: int, payload: CloseDayRequest, db: Session = Depends(get_db)):
    day = day_service.close_day(db, day_id, payload.sleep_time)
    return day_out(day_service.day_view(db, day))


@router.post(
    "/{day_id}/reopen",
    response_model=DayOut,
    summary="Reopen the most recent day",
    responses={
        **_NOT_FOUND,
        **error_responses(e409="Not the most recent day, or another day is open."),
    },
)
def reopen_day(day_id: int, db: Session = Depends(get_db)):
    day = day_service.reopen_day(db, day_id)
    return day_out(day_service.day_view(db, day))


@router.patch(
    "/{day_id}/wake-time",
    response_model=DayOut,
    summary="Correct a day's wake time",
    responses={**_NOT_FOUND, **error_responses(e422="wake_time in the future.")},
)
def update_wake_time(day_id: int, payload: UpdateWakeTimeRequest, db: Session = Depends(get_db)):
    day = day_service.update_wake_time(db, day_id, payload.wake_time)
    return day_out(day_service.day_view(db, day))


@router.post(
    "/{day_id}/recompute",
    response_model=DayOut,
    summary="Rebuild a day's totals from its final entries",
    responses=_NOT_FOUND,
)
def recompute_totals(day_id: int, db: Session = Depends(get_db)):
    day = ledger.recompute_totals(db, day_id)
    return day_out(day_service.day_view(db, day))
