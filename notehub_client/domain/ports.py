from __future__ import annotations

from typing import Protocol, runtime_checkable

from notehub_client.domain.schemas import Note, NoteCreateIn, NoteListResult


@runtime_checkable
class NoteService(Protocol):
    async def list_notes(self, search_term: str, page: int, tag: str | None = None) -> NoteListResult:
        ...

    async def get_note(self, note_id: str) -> Note:
        ...

    async def create_note(self, payload: NoteCreateIn) -> Note:
        ...
