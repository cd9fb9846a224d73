from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable, Mapping

from pydantic import BaseModel

from ..domain.exceptions import FetchError
from ..domain.schemas import DehydratedQuery, DehydratedState
from ..util import parse_rfc3339
from .cache import CacheEntry, Fetcher, QueryCache, QueryOptions
from .keys import QueryKey, decode_key, encode_key

logger = logging.getLogger("notehub.hydration")

Decoder = Callable[[Any], Any]


def _to_jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    return data


def dehydrate(cache: QueryCache, *, include_errors: bool = True) -> DehydratedState:
    queries: list[DehydratedQuery] = []
    for entry in cache.entries():
        if entry.status == "resolved":
            queries.append(
                DehydratedQuery(
                    key=encode_key(entry.key),
                    status="resolved",
                    data=_to_jsonable(entry.data),
                    updated_at=entry.updated_at,
                )
            )
        elif entry.status == "errored" and include_errors:
            queries.append(
                DehydratedQuery(
                    key=encode_key(entry.key),
                    status="errored",
                    error=str(entry.error) if entry.error else "fetch_failed",
                    updated_at=entry.updated_at,
                )
            )
    return DehydratedState(queries=queries)


async def prefetch(
    queries: Iterable[tuple[QueryKey, Fetcher]],
    *,
    options: QueryOptions | None = None,
) -> DehydratedState:
    """
    Server-side pass: resolve every (key, fetcher) pair in a private cache and
    snapshot the outcome. Failures are recorded, not raised.
    """
    cache = QueryCache(defaults=options or QueryOptions(retry=0))
    try:
        await asyncio.gather(*(cache.prefetch_query(key, fetcher) for key, fetcher in queries))
        return dehydrate(cache)
    finally:
        cache.close()


def _may_replace(existing: CacheEntry, incoming: DehydratedQuery) -> bool:
    if not existing.hydrated:
        # client-fetched data always beats a server snapshot
        return existing.status != "resolved"
    if existing.updated_at is None or incoming.updated_at is None:
        return incoming.updated_at is not None
    return parse_rfc3339(incoming.updated_at) > parse_rfc3339(existing.updated_at)


def hydrate(
    cache: QueryCache,
    state: DehydratedState,
    *,
    decoders: Mapping[str, Decoder] | None = None,
) -> int:
    decoders = decoders or {}
    restored = 0
    for query in state.queries:
        key = decode_key(query.key)
        existing = cache.get_entry(key)
        if existing is not None and not _may_replace(existing, query):
            continue
        if query.status == "resolved":
            decode = decoders.get(key[0])
            data = decode(query.data) if decode is not None and query.data is not None else query.data
            entry = CacheEntry(
                key=key,
                status="resolved",
                data=data,
                last_resolved_at=cache.now(),
                updated_at=query.updated_at,
                hydrated=True,
            )
        else:
            entry = CacheEntry(
                key=key,
                status="errored",
                error=FetchError(key, query.error or "fetch_failed"),
                updated_at=query.updated_at,
                hydrated=True,
            )
        cache.put_entry(entry)
        restored += 1
    logger.info("cache_hydrate", extra={"count": restored, "total": len(state.queries)})
    return restored


def hydrate_json(cache: QueryCache, raw: str | bytes, *, decoders: Mapping[str, Decoder] | None = None) -> int:
    return hydrate(cache, DehydratedState.model_validate_json(raw), decoders=decoders)


def dehydrate_json(cache: QueryCache) -> str:
    return dehydrate(cache).model_dump_json()
