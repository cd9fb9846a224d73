import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from notehub_client.dependencies import get_note_service
from notehub_client.domain.entities import ListQuery
from notehub_client.domain.ports import NoteService
from notehub_client.domain.schemas import NotePageOut, NotesPageOut, PageMetadataOut
from notehub_client.notes.queries import note_query, notes_list_query, tag_from_slug
from notehub_client.query.hydration import prefetch

router = APIRouter()
logger = logging.getLogger("notehub.api")


def notes_page_metadata(tag: Optional[str]) -> PageMetadataOut:
    label = tag or "All notes"
    title = label if tag is None else f"Notes by category: {label}"
    return PageMetadataOut(title=title, description=f"Your notes in category : {label}")


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/notes/filter/{slug:path}", response_model=NotesPageOut)
async def notes_page(slug: str, request: Request, service: NoteService = Depends(get_note_service)):
    tag = tag_from_slug(slug)
    state = await prefetch([notes_list_query(service, ListQuery(search_term="", page=1, tag=tag))])
    logger.info(
        "notes_prefetch",
        extra={"rid": request.state.request_id, "tag": tag, "queries": len(state.queries)},
    )
    return NotesPageOut(tag=tag, metadata=notes_page_metadata(tag), state=state)


@router.get("/notes/{note_id}", response_model=NotePageOut)
async def note_page(note_id: str, request: Request, service: NoteService = Depends(get_note_service)):
    state = await prefetch([note_query(service, note_id)])
    logger.info("note_prefetch", extra={"rid": request.state.request_id, "id": note_id})
    return NotePageOut(note_id=note_id, state=state)
