"""
Entries router.

GET    /entries?day_id=&include_drafts=&order=
POST   /entries
PATCH  /entries/{entry_id}
POST   /entries/{entry_id}/finalize
DELETE /entries/{entry_id}
"""
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from signal_app.core import clock
from signal_app.db.base import get_db
from signal_app.schemas.common import error_responses
from signal_app.schemas.day import day_out
from signal_app.schemas.entry import (
    CreateEntryRequest,
    EntryListResponse,
    FinalizeEntryRequest,
    UpdateEntryRequest,
    entry_out,
)
from signal_app.schemas.ledger import BoundaryPromptOut, EntryMutationResponse
from signal_app.services import days as day_service
from signal_app.services import ledger
from signal_app.services.classifier import detect_boundary_intent

router = APIRouter(prefix="/entries", tags=["entries"])


def _to_response(db: Session, result: ledger.LedgerResult, boundary=None) -> EntryMutationResponse:
    return EntryMutationResponse(
        entry=entry_out(result.entry),
        day=day_out(day_service.day_view(db, result.day)),
        boundary=boundary,
    )


@router.get(
    "",
    response_model=EntryListResponse,
    summary="Entries of one day",
    responses=error_responses(e404="Day does not exist."),
)
def list_entries(
    day_id: int = Query(description="Owning day."),
    include_drafts: bool = Query(default=False, description="Include draft (timer) entries."),
    order: Literal["asc", "desc"] = Query(default="asc", description="Timestamp order."),
    db: Session = Depends(get_db),
):
    entries = ledger.list_entries(
        db, day_id, include_drafts=include_drafts, descending=(order == "desc")
    )
    return EntryListResponse(day_id=day_id, entries=[entry_out(e) for e in entries])


@router.post(
    "",
    response_model=EntryMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log an entry",
    responses=error_responses(
        e404="day_id does not exist.",
        e422="Validation error (empty content, negative duration, etc.)",
    ),
)
def create_entry(payload: CreateEntryRequest, db: Session = Depends(get_db)):
    """
    Classify and store an entry, updating the day's totals when it is a final
    signal/wasted entry.

    Without `day_id` the entry goes to the open day; if no day is open one is
    opened now. `boundary` tells the client whether the text reads like waking
    up or going to sleep so it can offer to open/close a day.
    """
    day_id = payload.day_id
    if day_id is None:
        current = day_service.get_current_day(db)
        if current is None or not current.is_open:
            current = day_service.open_day(db, clock.utcnow())
        day_id = current.id

    result = ledger.create_entry(
        db,
        day_id,
        payload.content,
        timestamp=payload.timestamp,
        quality=payload.quality,
        duration=payload.duration,
        is_draft=payload.is_draft,
    )
    intent = detect_boundary_intent(payload.content)
    return _to_response(db, result, BoundaryPromptOut(wake=intent.wake, sleep=intent.sleep))


@router.patch(
    "/{entry_id}",
    response_model=EntryMutationResponse,
    summary="Edit an entry",
    responses=error_responses(e404="Entry does not exist."),
)
def update_entry(entry_id: int, payload: UpdateEntryRequest, db: Session = Depends(get_db)):
    """
    Partial update. The entry's previous contribution to the day's totals is
    reversed and the new one applied, so totals stay exact after edits.
    Setting `is_draft` to false on a draft finalizes it.
    """
    changes = ledger.EntryChanges.from_dict(payload.model_dump(exclude_unset=True))
    result = ledger.update_entry(db, entry_id, changes)
    return _to_response(db, result)


@router.post(
    "/{entry_id}/finalize",
    response_model=EntryMutationResponse,
    summary="Turn a draft entry into a final one",
    responses=error_responses(
        e404="Entry does not exist.",
        e409="Entry is already final.",
    ),
)
def finalize_entry(entry_id: int, payload: FinalizeEntryRequest, db: Session = Depends(get_db)):
    result = ledger.finalize_entry(
        db,
        entry_id,
        duration=payload.duration,
        quality=payload.quality,
        content=payload.content,
    )
    return _to_response(db, result)


@router.delete(
    "/{entry_id}",
    response_model=EntryMutationResponse,
    summary="Delete an entry",
    responses=error_responses(e404="Entry does not exist."),
)
def delete_entry(entry_id: int, db: Session = Depends(get_db)):
    """Removes the entry and takes its minutes back out of the day's totals."""
    result = ledger.delete_entry(db, entry_id)
    return _to_response(db, result)
