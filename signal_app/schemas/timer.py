"""
Timer request / response schemas.

GET  /timer          → TimerStatusResponse
POST /timer/start    → TimerStartRequest → TimerStatusResponse
POST /timer/stop     → TimerStopRequest  → TimerStopResponse
"""
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from signal_app.models.log_entry import QualityLevel
from signal_app.schemas.day import DayOut
from signal_app.schemas.entry import EntryOut
from signal_app.services.timer import TimerState


class TimerStartRequest(BaseModel):
    quality: Optional[QualityLevel] = Field(
        default=None,
        description="Quality to pre-assign to the session's draft entry.",
    )


class TimerStopRequest(BaseModel):
    quality: Optional[QualityLevel] = Field(
        default=None,
        description="How the session went; decides whether it counts as signal or wasted.",
    )
    content: Optional[str] = Field(
        default=None,
        max_length=10_000,
        description="Replaces the placeholder text of the draft entry.",
    )

    @field_validator("content", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v):
        stripped = v.strip() if isinstance(v, str) else v
        if stripped is not None and not stripped:
            raise ValueError("content must not be empty after stripping whitespace")
        return stripped


class TimerStatusResponse(BaseModel):
    state: TimerState
    is_running: bool
    is_paused: bool
    elapsed_ms: int
    formatted_elapsed: str = Field(examples=["01:02:03"])
    current_entry_id: Optional[int] = None
    current_day_id: Optional[int] = None
    message: Optional[str] = Field(
        default=None,
        description="Informational notice, e.g. the timer reset itself.",
    )


class TimerStopResponse(BaseModel):
    duration: int = Field(description="Whole minutes recorded (floored).")
    elapsed_ms: int
    entry: Optional[EntryOut] = None
    day: Optional[DayOut] = None
    message: Optional[str] = None
