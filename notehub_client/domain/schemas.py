from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .entities import NoteTag


class Note(BaseModel):
    id: str
    title: str
    content: str = ""
    tag: NoteTag
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class NoteListResult(BaseModel):
    notes: list[Note] = Field(default_factory=list)
    total_pages: int = Field(default=0, ge=0, alias="totalPages")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class NoteCreateIn(BaseModel):
    title: str = Field(min_length=3, max_length=50)
    content: str = Field(default="", max_length=500)
    tag: NoteTag

    model_config = ConfigDict(use_enum_values=True)


class PageMetadataOut(BaseModel):
    title: str
    description: str


class DehydratedQuery(BaseModel):
    key: list[Union[str, int, None]]
    status: Literal["resolved", "errored"]
    data: Any = None
    error: Optional[str] = None
    updated_at: Optional[str] = None


class DehydratedState(BaseModel):
    queries: list[DehydratedQuery] = Field(default_factory=list)


class NotesPageOut(BaseModel):
    tag: Optional[str] = None
    metadata: PageMetadataOut
    state: DehydratedState


class NotePageOut(BaseModel):
    note_id: str
    state: DehydratedState
