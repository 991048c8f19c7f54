"""Geocoder library: provider fallback, layered caching and batch resolution.

Public API:
    - GeocodeQuery / GeocodeResult / GeocodeStrategy: Resolution data model
    - BaseGeocoder: Abstract provider interface
    - AppleMapsGeocoder / CensusGeocoder / NominatimGeocoder: Providers
    - CentroidTable: Regional centroid fallback
    - MemoryCache / LayeredCache / EdgeStore / RemoteKVStore: Cache tiers
    - GeocodeResolver: Single-address resolution
    - BatchGeocoder / IncidentCandidate / GeocodedCandidate: Batch orchestration
    - get_geocoder / get_configured_providers: Provider factory/registry
    - build_layered_cache / build_resolver: Wiring from Settings
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from incident_api.lib.geocoder.address import is_usable_address, make_cache_key, rejection_reason
from incident_api.lib.geocoder.apple import AppleMapsGeocoder, AppleMapsTokenProvider
from incident_api.lib.geocoder.base import (
    BaseGeocoder,
    GeocodeQuery,
    GeocodeResult,
    GeocodeStrategy,
    GeocodingProviderError,
    GeocodingResult,
)
from incident_api.lib.geocoder.batch import BatchGeocoder, GeocodedCandidate, IncidentCandidate
from incident_api.lib.geocoder.cache import CachedGeocode, LayeredCache, MemoryCache
from incident_api.lib.geocoder.census import CensusGeocoder
from incident_api.lib.geocoder.centroids import CentroidTable
from incident_api.lib.geocoder.nominatim import NominatimGeocoder
from incident_api.lib.geocoder.resolver import GeocodeResolver
from incident_api.lib.geocoder.stores import EdgeStore, RemoteKVStore

if TYPE_CHECKING:
    from incident_api.core.background import BackgroundTaskRunner
    from incident_api.core.config import Settings

# Provider registry: all known providers
_PROVIDERS: dict[str, type[BaseGeocoder]] = {
    "apple": AppleMapsGeocoder,
    "census": CensusGeocoder,
    "nominatim": NominatimGeocoder,
}


def get_available_providers() -> list[str]:
    """Return the names of all registered geocoder providers."""
    return sorted(_PROVIDERS.keys())


def get_geocoder(provider: str, **kwargs: Any) -> BaseGeocoder:
    """Get a geocoder instance by provider name.

    Args:
        provider: Provider name (e.g., "census").
        **kwargs: Additional arguments forwarded to the provider constructor.

    Returns:
        An instance of the requested geocoder provider.

    Raises:
        ValueError: If the provider is not registered.
    """
    cls = _PROVIDERS.get(provider)
    if cls is None:
        msg = f"Unknown geocoder provider: {provider!r}. Available: {list(_PROVIDERS.keys())}"
        raise ValueError(msg)
    return cls(**kwargs)


def _provider_kwargs(settings: Settings) -> dict[str, dict[str, Any]]:
    token_provider = None
    if settings.apple_mapkit_team_id and settings.apple_mapkit_key_id and settings.apple_mapkit_private_key:
        token_provider = AppleMapsTokenProvider(
            team_id=settings.apple_mapkit_team_id,
            key_id=settings.apple_mapkit_key_id,
            private_key=settings.apple_mapkit_private_key,
            timeout=settings.apple_token_timeout,
            assertion_ttl=settings.apple_token_ttl_seconds,
        )
    return {
        "apple": {
            "token_provider": token_provider,
            "timeout": settings.apple_timeout,
        },
        "census": {
            "timeout": settings.census_timeout,
            "base_url": settings.census_geocoder_base,
            "jurisdiction": settings.geocoder_jurisdiction_suffix,
        },
        "nominatim": {
            "timeout": settings.nominatim_timeout,
            "email": settings.nominatim_email,
            "user_agent": settings.nominatim_user_agent,
            "base_url": settings.nominatim_base_url,
            "jurisdiction": settings.geocoder_jurisdiction_suffix,
        },
    }


def get_configured_providers(settings: Settings) -> list[BaseGeocoder]:
    """Get geocoder instances for all providers that are properly configured.

    Providers are returned in the configured fallback order, deduplicated.
    Providers missing required credentials (Apple without a signing key)
    are skipped rather than failing every lookup.

    Args:
        settings: Application settings.

    Returns:
        List of configured BaseGeocoder instances, in fallback order.
    """
    provider_kwargs = _provider_kwargs(settings)
    providers: list[BaseGeocoder] = []
    seen: set[str] = set()

    for name in settings.geocoder_fallback_order_list:
        if name in seen or name not in _PROVIDERS:
            continue
        seen.add(name)
        geocoder = get_geocoder(name, **provider_kwargs[name])
        if geocoder.is_configured:
            providers.append(geocoder)

    return providers


def build_layered_cache(settings: Settings, task_runner: BackgroundTaskRunner) -> LayeredCache:
    """Assemble the cache tiers enabled in settings; unset URLs simply drop a tier."""
    edge = None
    if settings.geocode_edge_url:
        edge = EdgeStore.from_url(
            settings.geocode_edge_url,
            ttl_seconds=settings.geocode_edge_ttl_seconds,
            timeout=settings.geocode_edge_timeout,
        )
    remote = None
    if settings.geocode_remote_kv_url:
        remote = RemoteKVStore(
            settings.geocode_remote_kv_url,
            timeout=settings.geocode_remote_kv_timeout,
            token=settings.geocode_remote_kv_token,
        )
    memory = MemoryCache(
        ttl_seconds=settings.geocode_memory_ttl_seconds,
        max_entries=settings.geocode_memory_max_entries,
    )
    return LayeredCache(memory, task_runner, edge=edge, remote=remote)


def build_resolver(settings: Settings, task_runner: BackgroundTaskRunner) -> GeocodeResolver:
    """Create the process-wide resolver with its providers, cache and centroid table."""
    return GeocodeResolver(
        providers=get_configured_providers(settings),
        cache=build_layered_cache(settings, task_runner),
        centroids=CentroidTable.default(),
    )


__all__ = [
    "AppleMapsGeocoder",
    "AppleMapsTokenProvider",
    "BaseGeocoder",
    "BatchGeocoder",
    "CachedGeocode",
    "CensusGeocoder",
    "CentroidTable",
    "EdgeStore",
    "GeocodeQuery",
    "GeocodeResolver",
    "GeocodeResult",
    "GeocodeStrategy",
    "GeocodedCandidate",
    "GeocodingProviderError",
    "GeocodingResult",
    "IncidentCandidate",
    "LayeredCache",
    "MemoryCache",
    "NominatimGeocoder",
    "RemoteKVStore",
    "build_layered_cache",
    "build_resolver",
    "get_available_providers",
    "get_configured_providers",
    "get_geocoder",
    "is_usable_address",
    "make_cache_key",
    "rejection_reason",
]
