"""Geocoding administration endpoints: provider diagnostics and cache purge."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from incident_api.core.config import Settings
from incident_api.core.dependencies import get_app_settings, get_resolver, require_admin
from incident_api.lib.geocoder import GeocodeResolver
from incident_api.schemas.geocoding import CachePurgeResponse, GeocodeDebugResponse
from incident_api.services.geocoding_service import debug_geocode, purge_geocode

geocoding_router = APIRouter(prefix="/geocoding", tags=["geocoding"])


@geocoding_router.get("/debug", response_model=GeocodeDebugResponse)
async def geocode_debug(
    response: Response,
    settings: Annotated[Settings, Depends(get_app_settings)],
    resolver: Annotated[GeocodeResolver, Depends(get_resolver)],
    address: str = Query(..., min_length=1, max_length=500, description="Raw incident address"),  # noqa: B008
    area: str | None = Query(None, description="Area/city"),  # noqa: B008
    station: str | None = Query(None, description="Station name"),  # noqa: B008
) -> GeocodeDebugResponse:
    """Run every configured provider, then the full chain, bypassing the cache."""
    response.headers["Cache-Control"] = "no-store"
    return await debug_geocode(resolver, settings, address.strip(), area=area, station=station)


@geocoding_router.post(
    "/purge",
    response_model=CachePurgeResponse,
    dependencies=[Depends(require_admin)],
)
async def geocode_purge(
    resolver: Annotated[GeocodeResolver, Depends(get_resolver)],
    address: str = Query(..., min_length=1, max_length=500, description="Raw incident address"),  # noqa: B008
    area: str | None = Query(None, description="Area/city"),  # noqa: B008
) -> CachePurgeResponse:
    """Invalidate one address in every cache tier."""
    return await purge_geocode(resolver, address, area)
