"""
Log entry request / response schemas.

GET    /entries                 → EntryListResponse
POST   /entries                 → CreateEntryRequest  → EntryMutationResponse
PATCH  /entries/{id}            → UpdateEntryRequest  → EntryMutationResponse
POST   /entries/{id}/finalize   → FinalizeEntryRequest → EntryMutationResponse
DELETE /entries/{id}            → EntryMutationResponse

EntryMutationResponse lives in schemas/ledger.py (it embeds DayOut).
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from signal_app.models.log_entry import EntryType, LogEntry, QualityLevel

CONTENT_MAX_LENGTH = 10_000


def _strip_content(v):
    stripped = v.strip() if isinstance(v, str) else v
    if stripped is not None and not stripped:
        raise ValueError("content must not be empty after stripping whitespace")
    return stripped


class CreateEntryRequest(BaseModel):
    """A single log entry. Without day_id it goes to the current day (opened if needed)."""

    day_id: Optional[int] = Field(
        default=None,
        description="Owning day. Defaults to the open day, opening one now if none is open.",
    )
    content: Annotated[str, Field(
        min_length=1,
        max_length=CONTENT_MAX_LENGTH,
        description="Free text. Tags: [wake], [sleep], [signal: N], [wasted: N].",
        examples=["deep work on the parser [signal: 90]", "doomscroll [wasted: 20]"],
    )]
    timestamp: Optional[datetime] = Field(
        default=None,
        description="When it happened. Defaults to now (UTC).",
    )
    quality: Optional[QualityLevel] = Field(
        default=None,
        description="Explicit quality; overrides the tag-derived type.",
    )
    duration: Optional[int] = Field(default=None, ge=0, description="Minutes.")
    is_draft: bool = Field(default=False, description="Drafts never count toward totals.")

    @field_validator("content", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v):
        return _strip_content(v)


class UpdateEntryRequest(BaseModel):
    """Partial update; omitted fields are left untouched."""

    content: Optional[str] = Field(default=None, min_length=1, max_length=CONTENT_MAX_LENGTH)
    timestamp: Optional[datetime] = None
    quality: Optional[QualityLevel] = None
    duration: Optional[int] = Field(default=None, ge=0)
    is_draft: Optional[bool] = None

    @field_validator("content", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v):
        return _strip_content(v)


class FinalizeEntryRequest(BaseModel):
    duration: Optional[int] = Field(default=None, ge=0, description="Minutes.")
    quality: Optional[QualityLevel] = None
    content: Optional[str] = Field(default=None, min_length=1, max_length=CONTENT_MAX_LENGTH)

    @field_validator("content", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v):
        return _strip_content(v)


class EntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    day_id: int
    timestamp: datetime
    content: str
    type: EntryType
    duration: Optional[int] = None
    quality: Optional[QualityLevel] = None
    is_draft: bool
    created_at: Optional[datetime] = None


class EntryListResponse(BaseModel):
    day_id: int
    entries: list[EntryOut]


def entry_out(entry: LogEntry) -> EntryOut:
    return EntryOut(
        id=entry.id,
        day_id=entry.day_id,
        timestamp=entry.timestamp,
        content=entry.content,
        type=entry.entry_type,
        duration=entry.duration,
        quality=entry.quality,
        is_draft=entry.is_draft,
        created_at=entry.created_at,
    )

