# catalog_sdk/cache.py
import asyncio
import json
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Hashable, Iterable, List, Optional, Set, Tuple

from .config import Settings
from .endpoints import CATALOG_ENDPOINTS, MUTATION, QUERY, Endpoint, lookup
from .errors import CacheClosedError

logger = logging.getLogger(__name__)


class QueryStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


Listener = Callable[["CacheEntry"], None]


def _key(name: str, arg: Any) -> Tuple[str, Hashable]:
    try:
        hash(arg)
        return name, arg
    except TypeError:
        return name, json.dumps(arg, sort_keys=True, default=str)


class CacheEntry:
    """Last-known result of one (endpoint, argument) query."""

    def __init__(self, endpoint: Endpoint, arg: Any):
        self.endpoint = endpoint
        self.arg = arg
        self.data: Any = None
        self.error: Optional[BaseException] = None
        self.status = QueryStatus.UNINITIALIZED
        self.stale = False
        self.fetched_at: Optional[float] = None
        # bumped on every invalidation; a fetch started under an older
        # generation completes stale
        self.generation = 0
        self.listeners: List[Listener] = []
        self.inflight: Optional[asyncio.Task] = None
        self.waiters = 0

    @property
    def tags(self) -> FrozenSet[str]:
        return self.endpoint.provides

    @property
    def is_fresh(self) -> bool:
        return self.status is QueryStatus.FULFILLED and not self.stale

    @property
    def is_loading(self) -> bool:
        # first load only; refetches keep showing the previous data
        return self.status in (QueryStatus.UNINITIALIZED, QueryStatus.PENDING) and self.fetched_at is None

    @property
    def is_error(self) -> bool:
        return self.status is QueryStatus.REJECTED

    @property
    def has_subscribers(self) -> bool:
        return bool(self.listeners)

    def __repr__(self):
        return f"<CacheEntry {self.endpoint.name}({self.arg!r}) {self.status.value}{' stale' if self.stale else ''}>"


class Subscription:
    def __init__(self, cache: "RequestCache", entry: CacheEntry, listener: Listener):
        self._cache = cache
        self.entry = entry
        self._listener = listener
        self.active = True

    @property
    def data(self):
        return self.entry.data

    @property
    def error(self):
        return self.entry.error

    def unsubscribe(self):
        if not self.active:
            return
        self.active = False
        self._cache._unsubscribe(self.entry, self._listener)


class RequestCache:
    """Per-session store of query results with tag-based invalidation.

    Reads go through :meth:`query` or :meth:`subscribe`; identical concurrent
    reads share one in-flight request. Writes go through :meth:`mutate`, which
    marks every entry carrying one of the mutation's tags stale and refetches
    the ones somebody is subscribed to.
    """

    def __init__(self, api, endpoints: Optional[Dict[str, Endpoint]] = None, owns_api: bool = False):
        self.api = api
        self.endpoints = endpoints or CATALOG_ENDPOINTS
        self._owns_api = owns_api
        self._entries: Dict[Tuple[str, Hashable], CacheEntry] = {}
        self._refetches: Set[asyncio.Task] = set()
        self.closed = False

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **client_kwargs) -> "RequestCache":
        from .client import AsyncCatalogClient
        return cls(AsyncCatalogClient(settings=settings, **client_kwargs), owns_api=True)

    # ---------------------------
    # Lifecycle
    # ---------------------------
    def open(self) -> "RequestCache":
        self.closed = False
        return self

    async def close(self):
        if self.closed:
            return
        self.closed = True
        tasks = [e.inflight for e in self._entries.values() if e.inflight] + list(self._refetches)
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._entries.clear()
        self._refetches.clear()
        if self._owns_api:
            await self.api.aclose()
        logger.debug("request cache closed")

    async def __aenter__(self):
        return self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _check_open(self):
        if self.closed:
            raise CacheClosedError("request cache is closed")

    # ---------------------------
    # Reads
    # ---------------------------
    def select(self, name: str, arg: Any = None) -> Optional[CacheEntry]:
        return self._entries.get(_key(name, arg))

    def _entry(self, endpoint: Endpoint, arg: Any) -> CacheEntry:
        key = _key(endpoint.name, arg)
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = CacheEntry(endpoint, arg)
        return entry

    async def query(self, name: str, arg: Any = None, force: bool = False) -> CacheEntry:
        self._check_open()
        entry = self._entry(lookup(self.endpoints, name, QUERY), arg)
        if entry.is_fresh and not force and entry.inflight is None:
            logger.debug("[CACHE HIT] %s(%r)", name, arg)
            return entry
        task = self._start_fetch(entry)
        entry.waiters += 1
        try:
            # one caller giving up must not cancel the fetch for the others
            await asyncio.shield(task)
        finally:
            entry.waiters -= 1
        if entry.status is QueryStatus.REJECTED:
            raise entry.error
        return entry

    def subscribe(self, name: str, arg: Any, listener: Listener) -> Subscription:
        self._check_open()
        entry = self._entry(lookup(self.endpoints, name, QUERY), arg)
        entry.listeners.append(listener)
        if not entry.is_fresh:
            self._start_fetch(entry)
        return Subscription(self, entry, listener)

    def _unsubscribe(self, entry: CacheEntry, listener: Listener):
        try:
            entry.listeners.remove(listener)
        except ValueError:
            return
        if not entry.listeners and entry.inflight is not None and entry.waiters == 0:
            logger.debug("[CACHE CANCEL] %s(%r) lost its last subscriber", entry.endpoint.name, entry.arg)
            entry.inflight.cancel()

    def _start_fetch(self, entry: CacheEntry) -> asyncio.Task:
        if entry.inflight is not None:
            return entry.inflight
        logger.debug("[CACHE MISS] %s(%r)", entry.endpoint.name, entry.arg)
        entry.status = QueryStatus.PENDING
        # listeners only hear outcomes
        entry.inflight = asyncio.get_running_loop().create_task(self._fetch(entry))
        return entry.inflight

    async def _fetch(self, entry: CacheEntry):
        generation = entry.generation
        try:
            data = await entry.endpoint.call(self.api, entry.arg)
        except asyncio.CancelledError:
            entry.inflight = None
            if entry.fetched_at is not None:
                # back to the last good result
                entry.status = QueryStatus.FULFILLED
                entry.error = None
            else:
                entry.status = QueryStatus.UNINITIALIZED
            entry.stale = entry.stale or entry.fetched_at is not None
            raise
        except Exception as e:
            logger.warning("[QUERY FAILED] %s(%r): %s", entry.endpoint.name, entry.arg, e)
            entry.inflight = None
            # keep whatever data we had; only the status and error change
            entry.error = e
            entry.status = QueryStatus.REJECTED
        else:
            entry.inflight = None
            entry.data = data
            entry.error = None
            entry.status = QueryStatus.FULFILLED
            entry.fetched_at = time.monotonic()
            entry.stale = entry.generation != generation
        self._notify(entry)
        # no automatic retries: only a successful but outdated fetch goes again
        if entry.status is QueryStatus.FULFILLED and entry.stale and entry.has_subscribers and not self.closed:
            self._schedule_refetch(entry)

    def _notify(self, entry: CacheEntry):
        for listener in list(entry.listeners):
            listener(entry)

    def _schedule_refetch(self, entry: CacheEntry):
        task = self._start_fetch(entry)
        self._refetches.add(task)
        task.add_done_callback(self._refetches.discard)

    async def settle(self):
        """Wait until no fetch (first load or refetch) is in flight."""
        while True:
            pending = {e.inflight for e in self._entries.values() if e.inflight} | self._refetches
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ---------------------------
    # Writes
    # ---------------------------
    def invalidate_tags(self, tags: Iterable[str]) -> List[CacheEntry]:
        tags = frozenset(tags)
        touched = []
        for key, entry in list(self._entries.items()):
            if not entry.tags & tags:
                continue
            entry.generation += 1
            entry.stale = True
            touched.append(entry)
            if entry.has_subscribers:
                # an in-flight fetch finishes stale and schedules its own refetch
                if entry.inflight is None:
                    self._schedule_refetch(entry)
            elif entry.inflight is None:
                del self._entries[key]
        logger.info("[CACHE INVALIDATION] tags=%s entries=%d", sorted(tags), len(touched))
        return touched

    async def mutate(self, name: str, arg: Any = None):
        self._check_open()
        endpoint = lookup(self.endpoints, name, MUTATION)
        try:
            result = await endpoint.call(self.api, arg)
        except Exception as e:
            logger.warning("[MUTATION FAILED] %s: %s", name, e)
            raise
        logger.debug("[MUTATION] %s ok", name)
        self.invalidate_tags(endpoint.invalidates)
        return result
