from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from notehub_client.domain.exceptions import NoteServiceError
from notehub_client.domain.schemas import NoteCreateIn
from notehub_client.remote.http_service import HttpNoteService


def _service(handler, **kwargs) -> HttpNoteService:
    return HttpNoteService("https://notes.test/api", transport=httpx.MockTransport(handler), **kwargs)


def test_list_notes_sends_page_search_and_tag() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "notes": [{"id": "1", "title": "Standup", "content": "", "tag": "Meeting", "createdAt": "x"}],
                "totalPages": 3,
            },
        )

    async def scenario():
        service = _service(handler, per_page=12)
        try:
            return await service.list_notes("stand", 2, "Meeting")
        finally:
            await service.aclose()

    result = asyncio.run(scenario())
    assert result.total_pages == 3
    assert result.notes[0].title == "Standup"
    assert seen[0].url.path == "/api/notes"
    assert dict(seen[0].url.params) == {"page": "2", "perPage": "12", "search": "stand", "tag": "Meeting"}


def test_list_notes_omits_empty_search_and_tag() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"notes": [], "totalPages": 0})

    async def scenario():
        service = _service(handler)
        try:
            return await service.list_notes("", 1, None)
        finally:
            await service.aclose()

    result = asyncio.run(scenario())
    assert result.total_pages == 0
    assert "search" not in seen[0].url.params
    assert "tag" not in seen[0].url.params


def test_create_note_posts_json_body() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"id": "n1", **bodies[-1]})

    async def scenario():
        service = _service(handler)
        try:
            return await service.create_note(NoteCreateIn(title="Buy milk", content="", tag="Shopping"))
        finally:
            await service.aclose()

    note = asyncio.run(scenario())
    assert bodies == [{"title": "Buy milk", "content": "", "tag": "Shopping"}]
    assert note.id == "n1"


@pytest.mark.parametrize(
    ("response", "code"),
    [
        (httpx.Response(404, json={"message": "not found"}), "notes_http_404"),
        (httpx.Response(200, content=b"<html>"), "notes_bad_response"),
        (httpx.Response(200, json={"title": "no id"}), "notes_bad_response"),
    ],
)
def test_get_note_maps_failures_to_service_errors(response: httpx.Response, code: str) -> None:
    async def scenario():
        service = _service(lambda _request: response)
        try:
            await service.get_note("n1")
        finally:
            await service.aclose()

    with pytest.raises(NoteServiceError) as excinfo:
        asyncio.run(scenario())
    assert str(excinfo.value) == code


def test_transport_failure_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async def scenario():
        service = _service(handler)
        try:
            await service.list_notes("", 1)
        finally:
            await service.aclose()

    with pytest.raises(NoteServiceError, match="notes_request_failed"):
        asyncio.run(scenario())
