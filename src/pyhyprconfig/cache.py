"""Success-only TTL cache in front of ``hyprctl`` queries."""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger("pyhyprconfig.cache")

T = TypeVar("T")

DEFAULT_OPTION_TTL = 30.0
DEFAULT_BULK_TTL = 60.0


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    created_at: float

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.created_at >= ttl


class BulkSlot(Enum):
    ALL_OPTIONS = "all_options"
    BINDS = "binds"
    WINDOW_RULES = "window_rules"
    LAYER_RULES = "layer_rules"
    WORKSPACE_RULES = "workspace_rules"


@dataclass(frozen=True)
class CacheStats:
    options: int
    bulk: dict[str, bool]
    option_ttl: float
    bulk_ttl: float


class CommandCache:
    """Per-option and bulk-query cache with lazy expiry.

    Only successful results are ever stored.  Every method takes the same
    :class:`asyncio.Lock` for the duration of a dictionary update; the lock is
    never held while a fetch runs, so slow backends do not block other
    readers.  Any mutation of the live configuration is expected to call
    :meth:`clear`.

    :meth:`clear` also bumps a generation counter.  Fetches started before a
    clear carry the old generation, and their results are dropped rather
    than stored, so a value read before a mutation can never be cached after
    it.
    """

    def __init__(
        self,
        option_ttl: float = DEFAULT_OPTION_TTL,
        bulk_ttl: float = DEFAULT_BULK_TTL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.option_ttl = option_ttl
        self.bulk_ttl = bulk_ttl
        self._clock = clock
        self._lock = asyncio.Lock()
        self._generation = 0
        self._options: dict[str, CacheEntry[str]] = {}
        self._bulk: dict[BulkSlot, CacheEntry[Any]] = {}

    def _sweep(self) -> None:
        now = self._clock()
        for name in [n for n, e in self._options.items() if e.is_expired(now, self.option_ttl)]:
            del self._options[name]
        for slot in [s for s, e in self._bulk.items() if e.is_expired(now, self.bulk_ttl)]:
            del self._bulk[slot]

    def _is_stale(self, generation: int | None) -> bool:
        return generation is not None and generation != self._generation

    async def generation(self) -> int:
        """Return the current generation, to be passed back to ``put_*``."""
        async with self._lock:
            return self._generation

    # ----- single options -----

    async def get_option(self, name: str) -> str | None:
        async with self._lock:
            self._sweep()
            entry = self._options.get(name)
        if entry is None:
            logger.debug("option cache miss: %s", name)
            return None
        logger.debug("option cache hit: %s", name)
        return entry.value

    async def put_option(
        self, name: str, value: str, *, generation: int | None = None
    ) -> bool:
        """Store *value*; return False if a clear happened since *generation*."""
        async with self._lock:
            if self._is_stale(generation):
                logger.debug("dropping stale option result: %s", name)
                return False
            self._options[name] = CacheEntry(value, self._clock())
            return True

    async def get_or_fetch_option(
        self, name: str, fetch: Callable[[], Awaitable[str]]
    ) -> str:
        cached = await self.get_option(name)
        if cached is not None:
            return cached
        generation = await self.generation()
        value = await fetch()
        await self.put_option(name, value, generation=generation)
        return value

    # ----- bulk queries -----

    async def get_bulk(self, slot: BulkSlot) -> Any | None:
        async with self._lock:
            self._sweep()
            entry = self._bulk.get(slot)
        if entry is None:
            logger.debug("bulk cache miss: %s", slot.value)
            return None
        logger.debug("bulk cache hit: %s", slot.value)
        return copy.deepcopy(entry.value)

    async def put_bulk(
        self, slot: BulkSlot, value: Any, *, generation: int | None = None
    ) -> bool:
        async with self._lock:
            if self._is_stale(generation):
                logger.debug("dropping stale bulk result: %s", slot.value)
                return False
            self._bulk[slot] = CacheEntry(copy.deepcopy(value), self._clock())
            return True

    async def get_or_fetch_bulk(
        self, slot: BulkSlot, fetch: Callable[[], Awaitable[T]]
    ) -> T:
        cached = await self.get_bulk(slot)
        if cached is not None:
            return cached
        generation = await self.generation()
        value = await fetch()
        await self.put_bulk(slot, value, generation=generation)
        return value

    # ----- maintenance -----

    async def clear(self) -> None:
        async with self._lock:
            self._options.clear()
            self._bulk.clear()
            self._generation += 1
        logger.debug("command cache cleared")

    async def stats(self) -> CacheStats:
        async with self._lock:
            self._sweep()
            return CacheStats(
                options=len(self._options),
                bulk={slot.value: slot in self._bulk for slot in BulkSlot},
                option_ttl=self.option_ttl,
                bulk_ttl=self.bulk_ttl,
            )
