"""Layered geocode cache: in-process memory first, then the shared remote tiers.

Tiers are consulted cheapest first. The memory tier answers without any
network cost; the edge store outlives process restarts and redeploys; the
optional remote KV service shares results between independently deployed
environments. An outer tier that is unreachable degrades to a miss, it never
fails a lookup.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from cachetools import TTLCache
from loguru import logger

from incident_api.lib.geocoder.base import PROVIDER_STRATEGIES, GeocodeStrategy

if TYPE_CHECKING:
    from incident_api.core.background import BackgroundTaskRunner
    from incident_api.lib.geocoder.stores import KeyValueStore


@dataclass(frozen=True)
class CachedGeocode:
    """A provider-resolved coordinate as stored in every cache tier."""

    lat: float
    lon: float
    approximate: bool
    strategy: GeocodeStrategy

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.lat,
            "lon": self.lon,
            "approximate": self.approximate,
            "strategy": self.strategy.value,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CachedGeocode | None:
        """Decode a stored entry, rejecting anything that is not a usable provider match.

        Entries with null coordinates or a non-provider strategy are written
        by older code paths that cached degraded results; they are treated
        as a miss so the address gets resolved again.
        """
        lat = data.get("lat")
        lon = data.get("lon")
        if lat is None or lon is None:
            return None
        try:
            strategy = GeocodeStrategy(data.get("strategy"))
            entry = cls(
                lat=float(lat),
                lon=float(lon),
                approximate=bool(data.get("approximate", False)),
                strategy=strategy,
            )
        except (ValueError, TypeError):
            return None
        if strategy not in PROVIDER_STRATEGIES:
            return None
        return entry

    @classmethod
    def from_json(cls, raw: str | bytes) -> CachedGeocode | None:
        try:
            data = json.loads(raw)
        except (ValueError, TypeError):
            return None
        return cls.from_dict(data) if isinstance(data, dict) else None


class MemoryCache:
    """Process-local TTL cache.

    Expiry is checked lazily on access; nothing sweeps in the background.
    Only the event loop thread touches it, so single-key operations need no
    locking.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 10000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: TTLCache[str, CachedGeocode] = TTLCache(maxsize=max_entries, ttl=ttl_seconds, timer=timer)

    def get(self, key: str) -> CachedGeocode | None:
        return self._entries.get(key)

    def set(self, key: str, value: CachedGeocode) -> None:
        self._entries[key] = value

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class LayeredCache:
    """Memory → edge → remote KV, presented as one logical cache."""

    def __init__(
        self,
        memory: MemoryCache,
        task_runner: BackgroundTaskRunner,
        edge: KeyValueStore | None = None,
        remote: KeyValueStore | None = None,
    ) -> None:
        self.memory = memory
        self._tasks = task_runner
        self._edge = edge
        self._remote = remote

    @property
    def tiers(self) -> list[str]:
        """Names of the configured tiers, cheapest first."""
        names = ["memory"]
        names.extend(store.name for store in (self._edge, self._remote) if store is not None)
        return names

    async def get(self, key: str) -> CachedGeocode | None:
        """Look a key up tier by tier, back-filling the cheaper tiers on a hit.

        Args:
            key: Cache key from ``make_cache_key``.

        Returns:
            The cached entry, or None on a miss in every tier.
        """
        hit = self.memory.get(key)
        if hit is not None:
            logger.debug("Geocode cache hit: memory")
            return hit

        if self._edge is not None:
            hit = await self._edge.get(key)
            if hit is not None:
                logger.debug("Geocode cache hit: edge")
                self.memory.set(key, hit)
                return hit

        if self._remote is not None:
            hit = await self._remote.get(key)
            if hit is not None:
                logger.debug("Geocode cache hit: remote-kv")
                self.memory.set(key, hit)
                if self._edge is not None:
                    self._tasks.submit(self._edge.set(key, hit), label="edge back-fill")
                return hit

        return None

    def set(self, key: str, value: CachedGeocode) -> None:
        """Store an entry in memory now and in the remote tiers in the background.

        Args:
            key: Cache key from ``make_cache_key``.
            value: Provider-resolved coordinate.
        """
        self.memory.set(key, value)
        if self._edge is not None:
            self._tasks.submit(self._edge.set(key, value), label="edge write")
        if self._remote is not None:
            self._tasks.submit(self._remote.set(key, value), label="remote-kv write")

    async def invalidate(self, key: str) -> bool:
        """Remove a key from every tier.

        Args:
            key: Cache key from ``make_cache_key``.

        Returns:
            Whether the edge store held (and dropped) the key.
        """
        self.memory.delete(key)
        edge_deleted = False
        if self._edge is not None:
            edge_deleted = await self._edge.delete(key)
        if self._remote is not None:
            await self._remote.delete(key)
        return edge_deleted

    async def close(self) -> None:
        """Release connections held by the remote tiers."""
        for store in (self._edge, self._remote):
            if store is not None:
                await store.close()
