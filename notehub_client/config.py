from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    notes_api_url: str
    notes_per_page: int
    http_timeout_s: float
    search_debounce_ms: int
    query_retry: int
    query_retry_max_delay_s: float
    query_stale_time_s: float | None
    query_gc_time_s: float | None
    api_debug_log: bool


def _optional_float(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    return float(raw)


def load_settings() -> Settings:
    notes_api_url = os.environ.get("NOTEHUB_API_URL", "http://localhost:8080/api")
    notes_per_page = int(os.environ.get("NOTEHUB_PER_PAGE", "12"))
    http_timeout_s = float(os.environ.get("NOTEHUB_HTTP_TIMEOUT_S", "30"))
    search_debounce_ms = int(os.environ.get("SEARCH_DEBOUNCE_MS", "300"))
    query_retry = int(os.environ.get("QUERY_RETRY", "3"))
    query_retry_max_delay_s = float(os.environ.get("QUERY_RETRY_MAX_DELAY_S", "30"))
    query_stale_time_s = _optional_float(os.environ.get("QUERY_STALE_TIME_S"))
    query_gc_time_s = _optional_float(os.environ.get("QUERY_GC_TIME_S", "300"))
    api_debug_log = os.environ.get("API_DEBUG_LOG", "false").lower() == "true"
    return Settings(
        notes_api_url=notes_api_url,
        notes_per_page=notes_per_page,
        http_timeout_s=http_timeout_s,
        search_debounce_ms=search_debounce_ms,
        query_retry=query_retry,
        query_retry_max_delay_s=query_retry_max_delay_s,
        query_stale_time_s=query_stale_time_s,
        query_gc_time_s=query_gc_time_s,
        api_debug_log=api_debug_log,
    )
