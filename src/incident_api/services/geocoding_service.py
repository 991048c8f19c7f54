"""Geocoding service: diagnostics across providers and cache purge."""

from loguru import logger

from incident_api.core.config import Settings
from incident_api.lib.geocoder import GeocodeQuery, GeocodeResolver, make_cache_key
from incident_api.schemas.geocoding import (
    AppleCredentialStatus,
    CachePurgeResponse,
    GeocodeDebugResponse,
    GeocodeResultResponse,
)


def apple_credential_status(settings: Settings) -> AppleCredentialStatus:
    """Report which Apple Maps credentials are present without exposing them."""
    return AppleCredentialStatus(
        has_team_id=bool(settings.apple_mapkit_team_id),
        has_key_id=bool(settings.apple_mapkit_key_id),
        has_private_key=bool(settings.apple_mapkit_private_key),
    )


async def debug_geocode(
    resolver: GeocodeResolver,
    settings: Settings,
    address: str,
    area: str | None = None,
    station: str | None = None,
) -> GeocodeDebugResponse:
    """Resolve one address with each provider forced, then with the full chain.

    Every resolution bypasses the cache, so the output reflects what the
    providers return right now.

    Args:
        resolver: The application resolver.
        settings: Application settings (for credential reporting).
        address: Raw incident address.
        area: Optional area/city.
        station: Optional station name.

    Returns:
        GeocodeDebugResponse with per-provider and full-chain results.
    """
    query = GeocodeQuery(raw_address=address, area=area, station=station)
    providers: dict[str, GeocodeResultResponse] = {}
    for name in resolver.provider_names:
        result = await resolver.resolve(query, no_cache=True, force_provider=name)
        providers[name] = GeocodeResultResponse.from_result(result)

    chain = await resolver.resolve(query, no_cache=True)
    logger.info(f"Geocode debug ran {len(providers)} providers, chain strategy={chain.strategy.value}")

    return GeocodeDebugResponse(
        address=address,
        area=area,
        station=station,
        configured_providers=resolver.provider_names,
        apple_credentials=apple_credential_status(settings),
        providers=providers,
        chain=GeocodeResultResponse.from_result(chain),
    )


async def purge_geocode(resolver: GeocodeResolver, address: str, area: str | None = None) -> CachePurgeResponse:
    """Drop one address from every cache tier.

    Args:
        resolver: The application resolver.
        address: Raw incident address.
        area: Optional area/city that forms part of the cache key.

    Returns:
        The purged key and whether the shared edge store held it.
    """
    existed = await resolver.invalidate(address, area)
    logger.info(f"Purged geocode cache entry (edge_existed={existed})")
    return CachePurgeResponse(key=make_cache_key(address, area), existed=existed)
