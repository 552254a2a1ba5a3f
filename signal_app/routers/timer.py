"""
Timer router.

GET  /timer          — current state (self-resets if the draft entry is gone)
POST /timer/start    — open/reuse today, create a draft entry, start timing
POST /timer/pause
POST /timer/resume
POST /timer/stop     — finalize the draft with the elapsed minutes
POST /timer/reset    — discard the session without touching the ledger
GET  /timer/stream   — server-sent events with HH:MM:SS while running
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from signal_app.core.config import settings
from signal_app.db.base import get_db
from signal_app.schemas.common import error_responses
from signal_app.schemas.day import day_out
from signal_app.schemas.entry import entry_out
from signal_app.schemas.timer import (
    TimerStartRequest,
    TimerStatusResponse,
    TimerStopRequest,
    TimerStopResponse,
)
from signal_app.services import days as day_service
from signal_app.services.timer import format_elapsed
from signal_app.services.timer_session import TimerSessionService, get_timer_service

router = APIRouter(prefix="/timer", tags=["timer"])


def _status_response(service: TimerSessionService, message: Optional[str] = None) -> TimerStatusResponse:
    machine = service.machine
    snap = machine.snapshot
    elapsed = machine.elapsed_ms()
    return TimerStatusResponse(
        state=snap.state,
        is_running=snap.is_running,
        is_paused=snap.is_paused,
        elapsed_ms=elapsed,
        formatted_elapsed=format_elapsed(elapsed),
        current_entry_id=snap.current_entry_id,
        current_day_id=snap.current_day_id,
        message=message,
    )


@router.get("", response_model=TimerStatusResponse, summary="Current timer state")
def timer_status(
    db: Session = Depends(get_db),
    service: TimerSessionService = Depends(get_timer_service),
):
    status = service.status(db)
    return _status_response(service, status.message)


@router.post(
    "/start",
    response_model=TimerStatusResponse,
    summary="Start a timed session",
    responses=error_responses(e409="A session is already active."),
)
def start_timer(
    payload: Optional[TimerStartRequest] = None,
    db: Session = Depends(get_db),
    service: TimerSessionService = Depends(get_timer_service),
):
    """
    Uses the open day (opening one now if needed), creates a draft entry for
    the session and starts timing. The draft does not count toward totals
    until the session is stopped.
    """
    quality = payload.quality if payload else None
    service.start(db, quality=quality)
    return _status_response(service)


@router.post("/pause", response_model=TimerStatusResponse, summary="Pause (no-op unless running)")
def pause_timer(service: TimerSessionService = Depends(get_timer_service)):
    service.pause()
    return _status_response(service)


@router.post("/resume", response_model=TimerStatusResponse, summary="Resume (no-op unless paused)")
def resume_timer(service: TimerSessionService = Depends(get_timer_service)):
    service.resume()
    return _status_response(service)


@router.post(
    "/stop",
    response_model=TimerStopResponse,
    summary="Stop and record the session",
    responses=error_responses(e409="No session is active."),
)
def stop_timer(
    payload: Optional[TimerStopRequest] = None,
    db: Session = Depends(get_db),
    service: TimerSessionService = Depends(get_timer_service),
):
    """
    Stops timing and finalizes the draft entry with the elapsed whole minutes.
    `quality` decides whether the minutes count as signal or wasted time.
    """
    payload = payload or TimerStopRequest()
    stopped = service.stop(db, quality=payload.quality, content=payload.content)
    return TimerStopResponse(
        duration=stopped.result.duration,
        elapsed_ms=stopped.result.elapsed_ms,
        entry=entry_out(stopped.entry) if stopped.entry is not None else None,
        day=day_out(day_service.day_view(db, stopped.day)) if stopped.day is not None else None,
        message=stopped.message,
    )


@router.post("/reset", response_model=TimerStatusResponse, summary="Discard the session")
def reset_timer(service: TimerSessionService = Depends(get_timer_service)):
    service.reset()
    return _status_response(service)


@router.get("/stream", summary="Live elapsed time (server-sent events)")
async def stream_timer(service: TimerSessionService = Depends(get_timer_service)):
    """
    Emits `data: HH:MM:SS` roughly every 100 ms while the session runs, then
    one final event with the frozen value when it stops or pauses.
    """
    machine = service.machine

    async def events():
        async for elapsed in machine.ticks(settings.TIMER_TICK_SECONDS):
            yield f"data: {format_elapsed(elapsed)}\n\n"
        yield f"data: {machine.formatted_elapsed()}\n\n"

    return StreamingResponse(events(), media_type="text/event-stream")
