"""Pydantic schemas for notes.

Learn: Pydantic v2 models validate request/response data. Separate
"Create" schemas (input) from "Read" schemas (output) for clean APIs.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class NoteWrite(BaseModel):
    """Body for both creating and replacing a note."""
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(default="", max_length=100_000)


class NoteRead(BaseModel):
    id: int
    title: str
    content: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteList(BaseModel):
    notes: list[NoteRead]


class NoteId(BaseModel):
    id: int
