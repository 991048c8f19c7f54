"""Remote key-value stores backing the outer geocode cache tiers.

Both stores speak the same contract: ``get`` returns a decoded entry or
None, ``set`` and ``delete`` are best-effort. Transport and decoding errors
are logged and swallowed here so that an unreachable store degrades to a
cache miss and never blocks resolution.
"""

from typing import Any, Protocol
from urllib.parse import quote

import httpx
import redis.asyncio as aioredis
from loguru import logger
from redis.exceptions import RedisError

from incident_api.lib.geocoder.address import CACHE_KEY_PREFIX
from incident_api.lib.geocoder.cache import CachedGeocode


class KeyValueStore(Protocol):
    """Contract shared by the outer cache tiers."""

    name: str

    async def get(self, key: str) -> CachedGeocode | None: ...

    async def set(self, key: str, value: CachedGeocode) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def close(self) -> None: ...


class EdgeStore:
    """Shared low-latency Redis store (Upstash or any Redis-protocol service)."""

    name = "edge"

    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int,
        prefix: str = CACHE_KEY_PREFIX,
    ) -> None:
        self._client = client
        self._ttl = ttl_seconds
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int, timeout: float = 2.0) -> "EdgeStore":
        """Create a store from a ``redis://`` or ``rediss://`` URL."""
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client, ttl_seconds)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> CachedGeocode | None:
        full_key = self._key(key)
        try:
            raw = await self._client.get(full_key)
        except (RedisError, OSError) as e:
            logger.warning(f"Edge store get failed (treated as miss): {type(e).__name__}")
            return None
        if raw is None:
            return None

        entry = CachedGeocode.from_json(raw)
        if entry is None:
            logger.info("Edge store entry is unusable, deleting it")
            await self.delete(key)
        return entry

    async def set(self, key: str, value: CachedGeocode) -> None:
        try:
            await self._client.set(self._key(key), value.to_json(), ex=self._ttl)
        except (RedisError, OSError) as e:
            logger.warning(f"Edge store set failed: {type(e).__name__}")

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._client.delete(self._key(key)))
        except (RedisError, OSError) as e:
            logger.warning(f"Edge store delete failed: {type(e).__name__}")
            return False

    async def close(self) -> None:
        await self._client.aclose()


class RemoteKVStore:
    """Optional distributed key-value service reached over plain HTTP.

    ``GET /geocode/{key}`` returns the JSON entry or 404; ``PUT`` stores it
    with a TTL fixed on the service side; ``DELETE`` removes it.
    """

    name = "remote-kv"

    def __init__(
        self,
        base_url: str,
        timeout: float = 3.0,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {"Accept": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._transport = transport

    def _url(self, key: str) -> str:
        return f"{self._base_url}/geocode/{quote(CACHE_KEY_PREFIX + key, safe='')}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, headers=self._headers, transport=self._transport)

    async def get(self, key: str) -> CachedGeocode | None:
        try:
            async with self._client() as client:
                response = await client.get(self._url(key))
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data: Any = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Remote KV get failed (treated as miss): {type(e).__name__}")
            return None
        return CachedGeocode.from_dict(data) if isinstance(data, dict) else None

    async def set(self, key: str, value: CachedGeocode) -> None:
        try:
            async with self._client() as client:
                response = await client.put(
                    self._url(key),
                    content=value.to_json(),
                    headers={"Content-Type": "application/json"},
                )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Remote KV set failed: {type(e).__name__}")

    async def delete(self, key: str) -> bool:
        try:
            async with self._client() as client:
                response = await client.delete(self._url(key))
            if response.status_code == 404:
                return False
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Remote KV delete failed: {type(e).__name__}")
            return False
        return True

    async def close(self) -> None:
        """Nothing to release; a client is opened per request."""

