from __future__ import annotations

from typing import Optional

from ..domain.exceptions import FetchError
from ..domain.ports import NoteService
from ..domain.schemas import Note
from ..query.cache import QueryCache, QueryObserver, QueryOptions, QueryResult
from .queries import note_query
from .surfaces import Surface


class NotePreviewController:
    """Single-note view (modal or page) keyed by ``("note", id)``."""

    def __init__(
        self,
        cache: QueryCache,
        service: NoteService,
        note_id: str,
        *,
        surface: Surface | None = None,
        options: QueryOptions | None = None,
    ) -> None:
        self.note_id = note_id
        self.surface = surface
        self._service = service
        self._observer = QueryObserver(cache, options or QueryOptions(retry=0))

    def mount(self) -> QueryResult:
        key, fetch = note_query(self._service, self.note_id)
        return self._observer.mount(key, fetch)

    def unmount(self) -> None:
        self._observer.unmount()

    @property
    def result(self) -> QueryResult:
        return self._observer.current()

    @property
    def note(self) -> Optional[Note]:
        result = self.result
        return result.data if result.status == "resolved" else None

    @property
    def error(self) -> Optional[FetchError]:
        return self.result.error

    def close(self) -> None:
        self.unmount()
        if self.surface is not None:
            self.surface.dismiss()
