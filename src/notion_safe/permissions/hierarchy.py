"""Parent lookups and ancestry checks over the remote hierarchy.

:class:`HierarchyResolver` finds the immediate parent of a resource by
probing the store as a page, then a block, then a database, and caches
every answer (including "no parent") in a :class:`HierarchyCache` for a
bounded time. :meth:`HierarchyResolver.is_descendant_of` walks those
parent pointers up to a fixed depth and fails closed when the bound is
exhausted.

The three resource kinds encode their parent differently; all of them
are collapsed into a single :class:`ParentPointer` by :func:`decode_parent`
before any comparison happens.

Example
-------
::

    resolver = HierarchyResolver(store)
    parent = await resolver.get_parent("b1")
    inside = await resolver.is_descendant_of("b1", "p1")
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from notion_safe.permissions.identifiers import ids_match, normalize_id
from notion_safe.store.base import (
    PROBE_ORDER,
    ResourceKind,
    ResourceStore,
    ResourceStoreError,
    StoreContractError,
)

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS: float = 10 * 60
DEFAULT_MAX_DEPTH: int = 10
DEFAULT_SWEEP_INTERVAL: int = 256

# ---------------------------------------------------------------------------
# ParentPointer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParentPointer:
    """The parent of a resource, independent of how the store encoded it.

    Attributes
    ----------
    parent_id:
        Identifier of the parent resource.
    parent_kind:
        Kind of the parent as reported by the store.
    """

    parent_id: str
    parent_kind: ResourceKind


# Parent pointer types each resource kind may carry, mapped to the kind of
# the parent they point at. Any other type (e.g. "workspace") means root.
_PARENT_FIELDS: dict[ResourceKind, dict[str, ResourceKind]] = {
    ResourceKind.PAGE: {
        "page_id": ResourceKind.PAGE,
        "database_id": ResourceKind.DATABASE,
    },
    ResourceKind.BLOCK: {
        "page_id": ResourceKind.PAGE,
        "database_id": ResourceKind.DATABASE,
        "block_id": ResourceKind.BLOCK,
    },
    ResourceKind.DATABASE: {
        "page_id": ResourceKind.PAGE,
    },
}


def decode_parent(
    kind: ResourceKind, payload: Mapping[str, object]
) -> ParentPointer | None:
    """Collapse a store parent payload into a :class:`ParentPointer`.

    Parameters
    ----------
    kind:
        Kind the child resource was retrieved as.
    payload:
        The raw ``parent`` object, e.g. ``{"type": "page_id", "page_id": "..."}``.

    Returns
    -------
    ParentPointer | None
        ``None`` for workspace-level resources and unrecognised shapes.
    """
    parent_type = payload.get("type")

    # Newer API versions file database pages under a data source but still
    # carry the owning database id alongside it.
    if kind is ResourceKind.PAGE and parent_type == "data_source_id":
        database_id = payload.get("database_id")
        if isinstance(database_id, str) and database_id:
            return ParentPointer(database_id, ResourceKind.DATABASE)
        return None

    allowed = _PARENT_FIELDS[kind]
    if not isinstance(parent_type, str) or parent_type not in allowed:
        return None
    parent_id = payload.get(parent_type)
    if not isinstance(parent_id, str) or not parent_id:
        return None
    return ParentPointer(parent_id, allowed[parent_type])


# ---------------------------------------------------------------------------
# HierarchyCache
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CacheEntry:
    """A cached parent lookup and the monotonic time it expires at."""

    value: ParentPointer | None
    expires_at: float


class HierarchyCache:
    """TTL cache of parent lookups, keyed by normalized resource id.

    Storage is a plain dict guarded by a :class:`threading.Lock`; none of
    the operations suspend, so the cache is safe from both threads and
    asyncio tasks. Concurrent writers for the same key simply overwrite
    each other (last writer wins).

    Parameters
    ----------
    ttl_seconds:
        Lifetime of each entry. Default 600 (10 minutes).
    clock:
        Monotonic time source, injectable for tests.
    sweep_interval:
        Every this many writes, expired entries for all keys are dropped,
        so ids that are never looked up again do not accumulate.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: int = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive; got {ttl_seconds!r}.")
        if sweep_interval < 1:
            raise ValueError(f"sweep_interval must be at least 1; got {sweep_interval!r}.")
        self._ttl = ttl_seconds
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._writes = 0
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, resource_id: str) -> CacheEntry | None:
        """Return the live entry for *resource_id*, or ``None``.

        An expired entry is evicted and reported as absent.
        """
        key = normalize_id(resource_id)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= now:
                del self._entries[key]
                return None
            return entry

    def put(self, resource_id: str, value: ParentPointer | None) -> CacheEntry:
        """Store *value* for *resource_id* with expiry ``now + ttl``."""
        now = self._clock()
        entry = CacheEntry(value=value, expires_at=now + self._ttl)
        with self._lock:
            self._writes += 1
            if self._writes % self._sweep_interval == 0:
                self._drop_expired(now)
            self._entries[normalize_id(resource_id)] = entry
        return entry

    def purge_expired(self) -> int:
        """Drop every expired entry; return how many were removed."""
        now = self._clock()
        with self._lock:
            return self._drop_expired(now)

    def clear(self) -> None:
        """Discard every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _drop_expired(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Dropped %d expired hierarchy cache entries", len(expired))
        return len(expired)


# ---------------------------------------------------------------------------
# HierarchyResolver
# ---------------------------------------------------------------------------


class HierarchyResolver:
    """Resolves parents and ancestry through a :class:`ResourceStore`.

    Parameters
    ----------
    store:
        The remote store to probe.
    cache:
        Cache to use. A private cache with the default TTL is created when
        omitted, so independent resolvers never share state implicitly.
    """

    def __init__(
        self,
        store: ResourceStore,
        cache: HierarchyCache | None = None,
    ) -> None:
        self._store = store
        self._cache = cache if cache is not None else HierarchyCache()

    @property
    def cache(self) -> HierarchyCache:
        return self._cache

    async def get_parent(self, resource_id: str) -> ParentPointer | None:
        """Return the immediate parent of *resource_id*.

        A live cache entry is returned without touching the store.
        Otherwise the id is retrieved as a page, then a block, then a
        database; the first successful retrieval decides the parent. When
        every probe fails the resource is treated as parentless. Both
        outcomes are cached for the cache TTL.

        Raises
        ------
        StoreContractError
            If the store returns something other than a mapping.
        """
        cached = self._cache.get(resource_id)
        if cached is not None:
            return cached.value

        parent: ParentPointer | None = None
        for kind in PROBE_ORDER:
            try:
                payload = await self._store.fetch_parent(kind, resource_id)
            except ResourceStoreError as exc:
                logger.debug("Probe as %s failed for %s: %s", kind.value, resource_id, exc)
                continue
            if not isinstance(payload, Mapping):
                raise StoreContractError(
                    f"fetch_parent({kind.value!r}, {resource_id!r}) returned "
                    f"{type(payload).__name__}, expected a mapping."
                )
            parent = decode_parent(kind, payload)
            break
        else:
            logger.debug("No kind matched %s; treating it as parentless", resource_id)

        self._cache.put(resource_id, parent)
        return parent

    async def is_descendant_of(
        self,
        resource_id: str,
        ancestor_id: str,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> bool:
        """Return True if *ancestor_id* is *resource_id* or one of its ancestors.

        At most *max_depth* parent lookups are made. Reaching a resource
        with no parent, or running out of depth, returns ``False``.
        """
        if ids_match(resource_id, ancestor_id):
            return True

        current_id = resource_id
        for _ in range(max_depth):
            parent = await self.get_parent(current_id)
            if parent is None:
                return False
            if ids_match(parent.parent_id, ancestor_id):
                return True
            current_id = parent.parent_id

        logger.info(
            "Ancestry walk from %s towards %s exhausted depth %d; denying",
            resource_id,
            ancestor_id,
            max_depth,
        )
        return False
