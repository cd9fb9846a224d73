from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from notehub_client.dependencies import get_note_service
from notehub_client.domain.entities import ListQuery
from notehub_client.domain.schemas import NotePageOut, NotesPageOut
from notehub_client.notes.session import NotesSession
from notehub_client.notes.surfaces import ModalSurface
from notehub_client.query.keys import notes_list_key


def _client(service) -> TestClient:
    from main import create_app

    app = create_app()
    app.dependency_overrides[get_note_service] = lambda: service
    return TestClient(app)


def test_health_has_request_id(service) -> None:
    r = _client(service).get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}
    assert r.headers.get("x-request-id")


def test_filter_all_prefetches_first_page_without_tag(service) -> None:
    r = _client(service).get("/notes/filter/all")
    assert r.status_code == 200
    body = r.json()
    assert body["tag"] is None
    assert body["metadata"]["title"] == "All notes"
    assert body["metadata"]["description"] == "Your notes in category : All notes"
    assert [q["key"] for q in body["state"]["queries"]] == [["notes", "", 1, None]]
    assert service.list_calls() == [("list", "", 1, None)]


def test_filter_by_tag_sets_metadata(service) -> None:
    r = _client(service).get("/notes/filter/Work")
    body = r.json()
    assert body["tag"] == "Work"
    assert body["metadata"] == {
        "title": "Notes by category: Work",
        "description": "Your notes in category : Work",
    }
    assert body["state"]["queries"][0]["key"] == ["notes", "", 1, "Work"]


def test_client_renders_prefetched_list_without_refetch(service, scheduler) -> None:
    r = _client(service).get("/notes/filter/Shopping")
    snapshot = r.text
    server_calls = len(service.calls)

    async def scenario() -> None:
        session = NotesSession(service, scheduler=scheduler)
        view = session.open_notes_page(NotesPageOut.model_validate_json(snapshot))

        state = view.mount()
        assert state.status == "idle-with-data"
        assert view.query == ListQuery(tag="Shopping")
        assert [n.id for n in state.notes] == ["b"]
        assert len(service.calls) == server_calls
        session.close()

    asyncio.run(scenario())


def test_note_page_records_service_failure_in_snapshot(service) -> None:
    service.fail_get = True
    r = _client(service).get("/notes/zzz")
    assert r.status_code == 200
    body = r.json()
    assert body["note_id"] == "zzz"
    assert body["state"]["queries"][0]["status"] == "errored"


def test_note_preview_uses_hydrated_note(service) -> None:
    r = _client(service).get("/notes/c")
    page = NotePageOut.model_validate(r.json())
    server_calls = len(service.calls)

    async def scenario() -> None:
        session = NotesSession(service)
        closed: list[bool] = []

        preview = session.open_note_page(page, surface=ModalSurface(lambda: closed.append(True)))
        result = preview.mount()
        assert result.status == "resolved"
        assert preview.note.title == "Charlie call"
        assert len(service.calls) == server_calls

        preview.close()
        assert closed == [True]

    asyncio.run(scenario())


def test_session_close_unmounts_views_and_disposes_cache(service, scheduler) -> None:
    async def scenario() -> None:
        session = NotesSession(service, scheduler=scheduler)
        view = session.list_view(tag="Work")
        view.mount()
        await session.cache.idle()
        view.on_search_input("Alpha")

        session.close()
        assert not view.mounted
        scheduler.advance(1.0)
        assert view.query == ListQuery(tag="Work")
        assert session.cache.entries() == []
        with pytest.raises(RuntimeError, match="query_cache_closed"):
            session.cache.query(notes_list_key(ListQuery()), service.list_notes)

    asyncio.run(scenario())
