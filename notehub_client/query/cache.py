from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Literal, Optional, Sequence, Union

from ..debounce import Scheduler, TimerHandle
from ..domain.exceptions import FetchError, MutationError
from ..util import rfc3339_now
from .keys import QueryKey, key_matches

logger = logging.getLogger("notehub.cache")

Status = Literal["pending", "resolved", "errored"]
Fetcher = Callable[[], Awaitable[Any]]
Predicate = Callable[[QueryKey], bool]
Listener = Callable[["QueryResult"], None]


def default_retry_delay(attempt: int) -> float:
    return min(2.0**attempt, 30.0)


@dataclass(frozen=True)
class QueryOptions:
    retry: int = 3
    retry_delay: Callable[[int], float] = default_retry_delay
    stale_time: float | None = None
    gc_time: float | None = 300.0
    keep_previous_data: bool = False


@dataclass(frozen=True)
class CacheEntry:
    key: QueryKey
    status: Status = "pending"
    data: Any = None
    error: FetchError | None = None
    last_resolved_at: float | None = None
    updated_at: str | None = None
    placeholder_of: QueryKey | None = None
    is_stale: bool = False
    is_fetching: bool = False
    hydrated: bool = False


@dataclass(frozen=True)
class QueryResult:
    key: QueryKey
    status: Status
    data: Any = None
    error: FetchError | None = None
    placeholder_of: QueryKey | None = None
    is_fetching: bool = False
    is_stale: bool = False

    @property
    def is_placeholder(self) -> bool:
        return self.placeholder_of is not None


class QueryCache:
    """
    Keyed store of query results.

    At most one fetch per key is in flight; every caller asking for a pending
    key attaches to it. Entries are immutable and replaced on each transition.
    """

    def __init__(
        self,
        *,
        defaults: QueryOptions | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.defaults = defaults or QueryOptions()
        self._clock = clock
        self._sleep = sleep
        self._scheduler = scheduler
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._inflight: dict[QueryKey, asyncio.Task] = {}
        self._invalidated_inflight: set[QueryKey] = set()
        self._fetchers: dict[QueryKey, tuple[Fetcher, QueryOptions]] = {}
        self._observers: dict[QueryKey, list[QueryObserver]] = {}
        self._gc_handles: dict[QueryKey, TimerHandle] = {}
        self._closed = False

    def now(self) -> float:
        return self._clock()

    def get_entry(self, key: QueryKey) -> CacheEntry | None:
        return self._entries.get(key)

    def entries(self) -> list[CacheEntry]:
        return list(self._entries.values())

    def is_fetching(self, key: QueryKey) -> bool:
        return key in self._inflight

    def is_stale(self, entry: CacheEntry, options: QueryOptions | None = None) -> bool:
        if entry.is_stale:
            return True
        stale_time = (options or self.defaults).stale_time
        if stale_time is None or entry.last_resolved_at is None:
            return False
        return self._clock() - entry.last_resolved_at >= stale_time

    def query(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        options: QueryOptions | None = None,
        *,
        placeholder_key: QueryKey | None = None,
    ) -> QueryResult:
        if self._closed:
            raise RuntimeError("query_cache_closed")
        options = options or self.defaults
        self._fetchers[key] = (fetcher, options)
        entry = self._entries.get(key)
        if entry is None or self._needs_fetch(entry, options):
            self._start_fetch(key, placeholder_key)
        return self.peek(key, placeholder_key=placeholder_key)

    def peek(self, key: QueryKey, *, placeholder_key: QueryKey | None = None) -> QueryResult:
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key)
        if entry.status == "pending" and placeholder_key is not None and placeholder_key != key:
            previous = self._entries.get(placeholder_key)
            if previous is not None and previous.status == "resolved":
                return QueryResult(
                    key=key,
                    status="pending",
                    data=previous.data,
                    placeholder_of=placeholder_key,
                    is_fetching=entry.is_fetching,
                )
        return QueryResult(
            key=key,
            status=entry.status,
            data=entry.data,
            error=entry.error,
            is_fetching=entry.is_fetching,
            is_stale=self.is_stale(entry, self._options_for(key)),
        )

    async def fetch_query(self, key: QueryKey, fetcher: Fetcher, options: QueryOptions | None = None) -> Any:
        self.query(key, fetcher, options)
        # a settled fetch may hand over to a refetch when invalidated mid-flight
        task = self._inflight.get(key)
        while task is not None:
            try:
                # shield: a cancelled caller must not cancel the shared fetch
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not self._closed:
                    raise
            task = self._inflight.get(key)
        entry = self._entries.get(key)
        if self._closed or entry is None:
            raise RuntimeError("query_cache_closed")
        if entry.status == "errored":
            raise entry.error
        return entry.data

    async def prefetch_query(self, key: QueryKey, fetcher: Fetcher, options: QueryOptions | None = None) -> None:
        try:
            await self.fetch_query(key, fetcher, options)
        except FetchError:
            logger.warning("prefetch_failed", extra={"key": key})

    def put_entry(self, entry: CacheEntry) -> None:
        if entry.key in self._inflight:
            entry = replace(entry, is_fetching=True)
        self._entries[entry.key] = entry
        if not self._observers.get(entry.key):
            self._schedule_gc(entry.key)
        self._notify(entry.key)

    def invalidate(self, predicate: Union[Predicate, Sequence[Any]], *, refetch_active: bool = True) -> list[QueryKey]:
        prefix = None if callable(predicate) else tuple(predicate)

        def matches(key: QueryKey) -> bool:
            if prefix is None:
                return predicate(key)
            return key_matches(key, prefix)

        matched: list[QueryKey] = []
        for key, entry in list(self._entries.items()):
            if not matches(key):
                continue
            matched.append(key)
            self._entries[key] = replace(entry, is_stale=True)
            if key in self._inflight:
                self._invalidated_inflight.add(key)
            elif refetch_active and self._observers.get(key):
                self._start_fetch(key, None)
        logger.info("cache_invalidate", extra={"count": len(matched)})
        return matched

    def mutation(
        self,
        fn: Callable[[Any], Awaitable[Any]],
        *,
        on_success: Optional[Callable[[Any, Any], None]] = None,
    ) -> Mutation:
        return Mutation(fn, on_success=on_success)

    async def idle(self) -> None:
        while self._inflight:
            await asyncio.gather(*list(self._inflight.values()), return_exceptions=True)

    def close(self) -> None:
        self._closed = True
        for handle in self._gc_handles.values():
            handle.cancel()
        self._gc_handles.clear()
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        self._invalidated_inflight.clear()
        self._observers.clear()
        self._fetchers.clear()
        self._entries.clear()

    def _options_for(self, key: QueryKey) -> QueryOptions:
        registered = self._fetchers.get(key)
        return registered[1] if registered else self.defaults

    def _needs_fetch(self, entry: CacheEntry, options: QueryOptions) -> bool:
        if entry.key in self._inflight:
            return False
        if entry.status == "resolved":
            return self.is_stale(entry, options)
        return True

    def _start_fetch(self, key: QueryKey, placeholder_key: QueryKey | None) -> None:
        previous = self._entries.get(key)
        if previous is None:
            placeholder_of = None
            if placeholder_key is not None:
                shown = self._entries.get(placeholder_key)
                if shown is not None and shown.status == "resolved":
                    placeholder_of = placeholder_key
            entry = CacheEntry(key=key, is_fetching=True, placeholder_of=placeholder_of)
        elif previous.status == "resolved":
            entry = replace(previous, is_fetching=True)
        else:
            entry = replace(previous, status="pending", is_fetching=True)
        self._entries[key] = entry
        self._inflight[key] = asyncio.get_running_loop().create_task(self._run(key))
        logger.debug("query_fetch", extra={"key": key})

    async def _run(self, key: QueryKey) -> None:
        fetcher, options = self._fetchers[key]
        attempt = 0
        failure: Exception | None = None
        data: Any = None
        try:
            while True:
                try:
                    data = await fetcher()
                    failure = None
                    break
                except Exception as e:
                    failure = e
                    if attempt >= options.retry:
                        break
                    delay = options.retry_delay(attempt)
                    attempt += 1
                    logger.info("query_retry", extra={"key": key, "attempt": attempt, "delay": delay})
                    await self._sleep(delay)
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                self._inflight.pop(key, None)

        if self._closed or key not in self._entries:
            return
        invalidated = key in self._invalidated_inflight
        self._invalidated_inflight.discard(key)
        current = self._entries[key]
        if failure is None:
            self._entries[key] = replace(
                current,
                status="resolved",
                data=data,
                error=None,
                last_resolved_at=self._clock(),
                updated_at=rfc3339_now(),
                placeholder_of=None,
                is_stale=invalidated,
                is_fetching=False,
                hydrated=False,
            )
        else:
            error = FetchError(key, str(failure) or type(failure).__name__)
            error.__cause__ = failure
            logger.warning("query_failed", extra={"key": key, "error": str(error)})
            self._entries[key] = replace(
                current,
                status="errored",
                error=error,
                placeholder_of=None,
                is_stale=invalidated,
                is_fetching=False,
            )
        if invalidated and self._observers.get(key):
            self._start_fetch(key, None)
        elif not self._observers.get(key):
            self._schedule_gc(key)
        self._notify(key)

    def _mount(self, key: QueryKey, observer: QueryObserver) -> None:
        self._cancel_gc(key)
        observers = self._observers.setdefault(key, [])
        if observer not in observers:
            observers.append(observer)

    def _unmount(self, key: QueryKey, observer: QueryObserver) -> None:
        observers = self._observers.get(key)
        if not observers:
            return
        if observer in observers:
            observers.remove(observer)
        if not observers:
            self._observers.pop(key, None)
            self._schedule_gc(key)

    def _schedule_gc(self, key: QueryKey) -> None:
        gc_time = self._options_for(key).gc_time
        if gc_time is None or self._closed or key not in self._entries:
            return
        scheduler = self._scheduler
        if scheduler is None:
            try:
                scheduler = asyncio.get_running_loop()
            except RuntimeError:
                # no loop to evict on; the entry stays until close()
                return
        self._cancel_gc(key)
        self._gc_handles[key] = scheduler.call_later(gc_time, lambda: self._collect(key))

    def _cancel_gc(self, key: QueryKey) -> None:
        handle = self._gc_handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def _collect(self, key: QueryKey) -> None:
        self._gc_handles.pop(key, None)
        if self._observers.get(key) or key in self._inflight:
            return
        self._entries.pop(key, None)
        self._fetchers.pop(key, None)
        logger.debug("query_evicted", extra={"key": key})

    def _notify(self, key: QueryKey) -> None:
        for observer in list(self._observers.get(key, ())):
            observer._on_update()


class QueryObserver:
    """A mounted consumer of one key at a time; remembers the last key it saw resolved for placeholders."""

    def __init__(
        self,
        cache: QueryCache,
        options: QueryOptions | None = None,
        *,
        listener: Listener | None = None,
    ) -> None:
        self.cache = cache
        self.options = options or cache.defaults
        self._listener = listener
        self._key: QueryKey | None = None
        self._fetcher: Fetcher | None = None
        self._last_data_key: QueryKey | None = None
        self.mounted = False

    @property
    def key(self) -> QueryKey | None:
        return self._key

    def mount(self, key: QueryKey, fetcher: Fetcher) -> QueryResult:
        self.mounted = True
        return self.set_query(key, fetcher)

    def unmount(self) -> None:
        if self.mounted and self._key is not None:
            self.cache._unmount(self._key, self)
        self.mounted = False

    def set_query(self, key: QueryKey, fetcher: Fetcher) -> QueryResult:
        if self.mounted and self._key is not None and self._key != key:
            self.cache._unmount(self._key, self)
        self._key = key
        self._fetcher = fetcher
        if not self.mounted:
            return self.current()
        self.cache._mount(key, self)
        self.cache.query(key, fetcher, self.options, placeholder_key=self._placeholder_key())
        return self.current()

    def current(self) -> QueryResult:
        if self._key is None:
            raise RuntimeError("observer_has_no_query")
        result = self.cache.peek(self._key, placeholder_key=self._placeholder_key())
        if result.status == "resolved":
            self._last_data_key = self._key
        return result

    def _placeholder_key(self) -> QueryKey | None:
        if not self.options.keep_previous_data or self._last_data_key == self._key:
            return None
        return self._last_data_key

    def _on_update(self) -> None:
        if not self.mounted:
            return
        result = self.current()
        if self._listener is not None:
            self._listener(result)


MutationStatus = Literal["idle", "pending", "success", "error"]


class Mutation:
    def __init__(
        self,
        fn: Callable[[Any], Awaitable[Any]],
        *,
        on_success: Optional[Callable[[Any, Any], None]] = None,
    ) -> None:
        self._fn = fn
        self._on_success = on_success
        self.status: MutationStatus = "idle"
        self.data: Any = None
        self.error: MutationError | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    async def mutate(self, variables: Any) -> Any:
        self.status = "pending"
        try:
            data = await self._fn(variables)
        except Exception as e:
            error = MutationError(str(e) or type(e).__name__)
            self.status = "error"
            self.error = error
            logger.warning("mutation_failed", extra={"error": str(error)})
            raise error from e
        self.status = "success"
        self.data = data
        self.error = None
        if self._on_success is not None:
            self._on_success(data, variables)
        return data

    def reset(self) -> None:
        self.status = "idle"
        self.data = None
        self.error = None
