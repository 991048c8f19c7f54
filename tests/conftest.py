"""Shared test fixtures: settings, fake providers, caches and resolvers."""

import asyncio
from collections.abc import Callable

import pytest

from incident_api.core.background import InProcessTaskRunner
from incident_api.core.config import Settings
from incident_api.lib.geocoder import (
    BaseGeocoder,
    GeocodeQuery,
    GeocodeResolver,
    GeocodingProviderError,
    GeocodingResult,
    LayeredCache,
    MemoryCache,
)
from incident_api.lib.geocoder.centroids import CentroidTable


class FakeGeocoder(BaseGeocoder):
    """Scriptable provider: returns a fixed match, None, or raises."""

    def __init__(
        self,
        name: str,
        result: GeocodingResult | None = None,
        error: str | None = None,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self.result = result
        self.error = error
        self.delay = delay
        self.calls: list[GeocodeQuery] = []
        self.hints: list[str | None] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def provider_name(self) -> str:
        return self._name

    def build_query(self, query: GeocodeQuery, user_location_hint: str | None = None) -> str:
        return f"{self._name}:{query.raw_address}"

    async def geocode(self, query: GeocodeQuery, user_location_hint: str | None = None) -> GeocodingResult | None:
        self.calls.append(query)
        self.hints.append(user_location_hint)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise GeocodingProviderError(self._name, self.error)
            return self.result
        finally:
            self.in_flight -= 1


@pytest.fixture
def settings() -> Settings:
    """Test application settings with no remote cache tiers and no Apple credentials."""
    return Settings(
        environment="test",
        admin_api_key="test-admin-key",
        geocode_edge_url=None,
        geocode_remote_kv_url=None,
        apple_mapkit_team_id=None,
        apple_mapkit_key_id=None,
        apple_mapkit_private_key=None,
        feed_cache_ttl_seconds=0,
    )


@pytest.fixture
def make_provider() -> Callable[..., FakeGeocoder]:
    """Factory for scriptable fake providers."""
    return FakeGeocoder


@pytest.fixture
def task_runner() -> InProcessTaskRunner:
    return InProcessTaskRunner()


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache(ttl_seconds=259200)


@pytest.fixture
def layered_cache(memory_cache: MemoryCache, task_runner: InProcessTaskRunner) -> LayeredCache:
    """Memory-only layered cache."""
    return LayeredCache(memory_cache, task_runner)


@pytest.fixture
def make_resolver(layered_cache: LayeredCache) -> Callable[..., GeocodeResolver]:
    """Build a resolver over the given providers, the shared cache and the default centroids."""

    def _make(*providers: BaseGeocoder, centroids: CentroidTable | None = None) -> GeocodeResolver:
        return GeocodeResolver(
            providers=list(providers),
            cache=layered_cache,
            centroids=centroids or CentroidTable.default(),
        )

    return _make
