from __future__ import annotations

import logging
from typing import Callable, Union

from ..config import Settings
from ..debounce import Scheduler
from ..dependencies import get_settings, new_list_view, new_query_cache
from ..domain.ports import NoteService
from ..domain.schemas import DehydratedState, NotePageOut, NotesPageOut
from ..query.hydration import hydrate, hydrate_json
from .list_view import ListViewController, ListViewState
from .note_form import CreateNoteFlow
from .note_preview import NotePreviewController
from .queries import DECODERS
from .surfaces import Surface

logger = logging.getLogger("notehub.session")


class NotesSession:
    """
    Client bootstrap for one browsing session.

    Owns the query cache, built from settings, and hands out the views bound
    to it. ``close()`` unmounts every view it created and disposes the cache.
    """

    def __init__(
        self,
        service: NoteService,
        *,
        settings: Settings | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.service = service
        self.cache = new_query_cache(self.settings, scheduler=scheduler)
        self._scheduler = scheduler
        self._views: list[Union[ListViewController, NotePreviewController]] = []

    def hydrate(self, state: Union[DehydratedState, str, bytes]) -> int:
        if isinstance(state, DehydratedState):
            return hydrate(self.cache, state, decoders=DECODERS)
        return hydrate_json(self.cache, state, decoders=DECODERS)

    def list_view(
        self,
        *,
        tag: str | None = None,
        on_change: Callable[[ListViewState], None] | None = None,
    ) -> ListViewController:
        view = new_list_view(
            self.cache,
            self.service,
            tag=tag,
            settings=self.settings,
            scheduler=self._scheduler,
            on_change=on_change,
        )
        self._views.append(view)
        return view

    def open_notes_page(self, page: NotesPageOut) -> ListViewController:
        self.hydrate(page.state)
        return self.list_view(tag=page.tag)

    def note_preview(self, note_id: str, *, surface: Surface | None = None) -> NotePreviewController:
        preview = NotePreviewController(self.cache, self.service, note_id, surface=surface)
        self._views.append(preview)
        return preview

    def open_note_page(self, page: NotePageOut, *, surface: Surface | None = None) -> NotePreviewController:
        self.hydrate(page.state)
        return self.note_preview(page.note_id, surface=surface)

    def create_flow(self, surface: Surface) -> CreateNoteFlow:
        return CreateNoteFlow(self.cache, self.service, surface)

    def close(self) -> None:
        for view in self._views:
            view.unmount()
        self._views.clear()
        self.cache.close()
        logger.debug("session_close")
