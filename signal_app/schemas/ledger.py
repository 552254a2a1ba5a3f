"""
Responses for entry mutations: the entry plus its owning day's refreshed state.
"""
from typing import Optional

from pydantic import BaseModel

from signal_app.schemas.day import DayOut
from signal_app.schemas.entry import EntryOut


class BoundaryPromptOut(BaseModel):
    """Whether the client should ask to open (wake) or close (sleep) a day."""
    wake: bool
    sleep: bool


class EntryMutationResponse(BaseModel):
    entry: EntryOut
    day: DayOut
    boundary: Optional[BoundaryPromptOut] = None
