from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass

import pytest

from notehub_client.dependencies import get_note_service, get_settings
from notehub_client.domain.exceptions import NoteServiceError
from notehub_client.domain.schemas import Note, NoteCreateIn, NoteListResult


@dataclass
class _Timer:
    when: float
    callback: object
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock with the ``call_later`` shape of an asyncio loop."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[_Timer] = []

    def call_later(self, delay: float, callback) -> _Timer:
        timer = _Timer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.timers if not t.cancelled and t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.now = target


class FakeNoteService:
    def __init__(self, notes: list[Note] | None = None, per_page: int = 2) -> None:
        self.notes = list(notes or [])
        self.per_page = per_page
        self.calls: list[tuple] = []
        self.gate: asyncio.Event | None = None
        self.fail_list = False
        self.fail_get = False
        self.fail_create = False

    async def list_notes(self, search_term: str, page: int, tag: str | None = None) -> NoteListResult:
        self.calls.append(("list", search_term, page, tag))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_list:
            raise NoteServiceError("notes_http_500")
        needle = search_term.lower()
        matched = [
            n
            for n in self.notes
            if (not tag or n.tag.value == tag) and (needle in n.title.lower() or needle in n.content.lower())
        ]
        start = (page - 1) * self.per_page
        return NoteListResult(
            notes=matched[start : start + self.per_page],
            total_pages=math.ceil(len(matched) / self.per_page),
        )

    async def get_note(self, note_id: str) -> Note:
        self.calls.append(("get", note_id))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_get:
            raise NoteServiceError("notes_http_404")
        for n in self.notes:
            if n.id == note_id:
                return n
        raise NoteServiceError("notes_http_404")

    async def create_note(self, payload: NoteCreateIn) -> Note:
        self.calls.append(("create", payload.title))
        if self.fail_create:
            raise NoteServiceError("notes_http_500")
        note = Note(id=f"n{len(self.notes) + 1}", title=payload.title, content=payload.content, tag=payload.tag)
        self.notes.insert(0, note)
        return note

    def list_calls(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "list"]


def make_note(note_id: str, title: str, tag: str = "Todo", content: str = "") -> Note:
    return Note(id=note_id, title=title, content=content, tag=tag)


@pytest.fixture
def notes() -> list[Note]:
    return [
        make_note("a", "Alpha plan", "Work"),
        make_note("b", "Bravo list", "Shopping"),
        make_note("c", "Charlie call", "Meeting"),
        make_note("d", "Delta chores", "Todo"),
    ]


@pytest.fixture
def service(notes) -> FakeNoteService:
    return FakeNoteService(notes)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture(autouse=True)
def clear_dependency_caches():
    get_settings.cache_clear()
    get_note_service.cache_clear()
    yield
    get_settings.cache_clear()
    get_note_service.cache_clear()
