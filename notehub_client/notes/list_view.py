from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal, Optional

from ..debounce import Debouncer, Scheduler
from ..domain.entities import ListQuery
from ..domain.exceptions import FetchError
from ..domain.ports import NoteService
from ..domain.schemas import Note
from ..query.cache import QueryCache, QueryObserver, QueryOptions, QueryResult
from ..query.keys import QueryKey
from .queries import LIST_QUERY_OPTIONS, notes_list_query

logger = logging.getLogger("notehub.notes")

ViewStatus = Literal["idle-with-data", "loading-no-data", "loading-with-placeholder", "error"]


@dataclass(frozen=True)
class ListViewState:
    status: ViewStatus
    search_term: str
    search_input: str
    page: int
    tag: Optional[str]
    notes: list[Note] = field(default_factory=list)
    total_pages: int = 0
    error: Optional[FetchError] = None
    placeholder_of: Optional[QueryKey] = None

    @property
    def show_pagination(self) -> bool:
        return self.total_pages > 0

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def _status_for(result: QueryResult) -> ViewStatus:
    if result.status == "errored":
        return "error"
    if result.status == "resolved":
        return "idle-with-data"
    if result.is_placeholder:
        return "loading-with-placeholder"
    return "loading-no-data"


class ListViewController:
    """Visible (search, page, tag) triple for the notes list, backed by the query cache."""

    def __init__(
        self,
        cache: QueryCache,
        service: NoteService,
        *,
        tag: str | None = None,
        debounce_delay: float = 0.3,
        scheduler: Scheduler | None = None,
        options: QueryOptions = LIST_QUERY_OPTIONS,
        on_change: Callable[[ListViewState], None] | None = None,
    ) -> None:
        self.cache = cache
        self.service = service
        self._search_term = ""
        self._search_input = ""
        self._page = 1
        self._tag = tag
        self._on_change = on_change
        self._observer = QueryObserver(cache, options, listener=self._on_result)
        self._debouncer: Debouncer[str] = Debouncer(self._commit_search, delay=debounce_delay, scheduler=scheduler)

    @property
    def query(self) -> ListQuery:
        return ListQuery(search_term=self._search_term, page=self._page, tag=self._tag)

    @property
    def mounted(self) -> bool:
        return self._observer.mounted

    @property
    def debounce_delay(self) -> float:
        return self._debouncer.delay

    @property
    def state(self) -> ListViewState:
        if self._observer.key is None:
            return ListViewState(
                status="loading-no-data",
                search_term=self._search_term,
                search_input=self._search_input,
                page=self._page,
                tag=self._tag,
            )
        return self._build_state(self._observer.current())

    def mount(self) -> ListViewState:
        key, fetch = notes_list_query(self.service, self.query)
        return self._build_state(self._observer.mount(key, fetch))

    def unmount(self) -> None:
        self._debouncer.dispose()
        self._observer.unmount()
        self._on_change = None

    def on_search_input(self, text: str) -> None:
        self._search_input = text
        self._debouncer.push(text)

    def set_page(self, page: int) -> None:
        if page < 1:
            raise ValueError("page_must_be_positive")
        if page == self._page:
            return
        self._page = page
        self._refresh()

    def set_tag(self, tag: str | None) -> None:
        if tag == self._tag:
            return
        self._tag = tag
        self._page = 1
        self._refresh()

    def _commit_search(self, term: str) -> None:
        if term == self._search_term:
            return
        logger.debug("search_commit", extra={"term": term})
        self._search_term = term
        self._page = 1
        self._refresh()

    def _refresh(self) -> None:
        key, fetch = notes_list_query(self.service, self.query)
        result = self._observer.set_query(key, fetch)
        self._emit(result)

    def _on_result(self, result: QueryResult) -> None:
        self._emit(result)

    def _emit(self, result: QueryResult) -> None:
        if self._on_change is not None and self._observer.mounted:
            self._on_change(self._build_state(result))

    def _build_state(self, result: QueryResult) -> ListViewState:
        data = result.data
        return ListViewState(
            status=_status_for(result),
            search_term=self._search_term,
            search_input=self._search_input,
            page=self._page,
            tag=self._tag,
            notes=list(data.notes) if data is not None else [],
            total_pages=data.total_pages if data is not None else 0,
            error=result.error if result.status == "errored" else None,
            placeholder_of=result.placeholder_of,
        )
