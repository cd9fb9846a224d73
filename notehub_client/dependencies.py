from functools import lru_cache

from notehub_client.config import Settings, load_settings
from notehub_client.notes.list_view import ListViewController
from notehub_client.query.cache import QueryCache, QueryOptions
from notehub_client.remote.http_service import HttpNoteService

@lru_cache()
def get_settings():
    return load_settings()

@lru_cache()
def get_note_service():
    settings = get_settings()
    return HttpNoteService(
        settings.notes_api_url,
        per_page=settings.notes_per_page,
        timeout_s=settings.http_timeout_s,
    )

def query_defaults(settings: Settings) -> QueryOptions:
    max_delay = settings.query_retry_max_delay_s
    return QueryOptions(
        retry=settings.query_retry,
        retry_delay=lambda attempt: min(2.0**attempt, max_delay),
        stale_time=settings.query_stale_time_s,
        gc_time=settings.query_gc_time_s,
    )

def new_query_cache(settings: Settings | None = None, **kwargs) -> QueryCache:
    return QueryCache(defaults=query_defaults(settings or get_settings()), **kwargs)

def new_list_view(cache: QueryCache, service, *, tag: str | None = None, settings: Settings | None = None, **kwargs) -> ListViewController:
    settings = settings or get_settings()
    return ListViewController(cache, service, tag=tag, debounce_delay=settings.search_debounce_ms / 1000.0, **kwargs)
