from __future__ import annotations

from typing import Mapping

from ..domain.entities import ListQuery
from ..domain.ports import NoteService
from ..domain.schemas import Note, NoteListResult
from ..query.cache import Fetcher, QueryOptions
from ..query.hydration import Decoder
from ..query.keys import NOTE, NOTES, QueryKey, note_key, notes_list_key

# A failed list fetch surfaces immediately; the previous page stays visible while the next one loads.
LIST_QUERY_OPTIONS = QueryOptions(retry=0, keep_previous_data=True)

NOTES_PREFIX: QueryKey = (NOTES,)

DECODERS: Mapping[str, Decoder] = {
    NOTES: NoteListResult.model_validate,
    NOTE: Note.model_validate,
}


def notes_list_query(service: NoteService, query: ListQuery) -> tuple[QueryKey, Fetcher]:
    async def fetch() -> NoteListResult:
        return await service.list_notes(query.search_term, query.page, query.tag)

    return (notes_list_key(query), fetch)


def note_query(service: NoteService, note_id: str) -> tuple[QueryKey, Fetcher]:
    async def fetch() -> Note:
        return await service.get_note(note_id)

    return (note_key(note_id), fetch)


def tag_from_slug(slug: str) -> str | None:
    parts = [p for p in slug.split("/") if p]
    if not parts or parts[0] == "all":
        return None
    return parts[0]
