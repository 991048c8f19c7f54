"""Incident listing endpoint with optional on-the-fly geocoding."""

from datetime import UTC, datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from incident_api.core.config import Settings
from incident_api.core.dependencies import get_app_settings, get_batch_geocoder, get_feed_client, get_resolver
from incident_api.lib.geocoder import BatchGeocoder, GeocodeResolver
from incident_api.lib.incidents import IncidentFeedClient, IncidentFilter, parse_bbox
from incident_api.lib.incidents.filters import MAX_LIMIT
from incident_api.schemas.incident import IncidentListResponse
from incident_api.services.incident_service import GeocodeOptions, list_incidents

incidents_router = APIRouter(prefix="/incidents", tags=["incidents"])

CACHE_CONTROL = "public, s-maxage=30, stale-while-revalidate=60"


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@incidents_router.get("", response_model=IncidentListResponse)
async def get_incidents(
    response: Response,
    settings: Annotated[Settings, Depends(get_app_settings)],
    feed: Annotated[IncidentFeedClient, Depends(get_feed_client)],
    batch: Annotated[BatchGeocoder, Depends(get_batch_geocoder)],
    resolver: Annotated[GeocodeResolver, Depends(get_resolver)],
    since: datetime | None = Query(None, description="Only incidents received at or after (ISO 8601)"),  # noqa: B008
    until: datetime | None = Query(None, description="Only incidents received at or before (ISO 8601)"),  # noqa: B008
    area: str | None = Query(None, description="Exact area/city match"),  # noqa: B008
    call_category: str | None = Query(None, alias="callCategory"),  # noqa: B008
    call_type: str | None = Query(None, alias="callType", description="Case-insensitive substring"),  # noqa: B008
    min_priority: int | None = Query(None, alias="minPriority", ge=0),  # noqa: B008
    q: str | None = Query(None, description="Free text over id, address, call type and area"),  # noqa: B008
    bbox: str | None = Query(None, description="minLon,minLat,maxLon,maxLat"),  # noqa: B008
    limit: int = Query(MAX_LIMIT, ge=0, le=MAX_LIMIT),  # noqa: B008
    station: str | None = Query(None, description="Upstream station filter"),  # noqa: B008
    geocode: bool = Query(False, description="Resolve coordinates for eligible incidents"),  # noqa: B008
    max_geocode: int | None = Query(None, alias="maxGeocode"),  # noqa: B008
    geocode_concurrency: int | None = Query(None, alias="geocodeConcurrency"),  # noqa: B008
    nocache: bool = Query(False, description="Bypass the geocode cache"),  # noqa: B008
    force_provider: Literal["apple", "census", "nominatim"] | None = Query(None, alias="forceProvider"),  # noqa: B008
) -> IncidentListResponse:
    """List recent incidents, filtered, optionally with coordinates."""
    if geocode and force_provider and force_provider not in resolver.provider_names:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Geocoder provider {force_provider!r} is not configured.",
        )

    incident_filter = IncidentFilter(
        since=_as_utc(since),
        until=_as_utc(until),
        area=area,
        call_category=call_category,
        call_type=call_type,
        min_priority=min_priority,
        q=q,
        bbox=parse_bbox(bbox),
        limit=limit,
    )
    options = GeocodeOptions(
        enabled=geocode,
        max_geocode=max_geocode,
        concurrency=geocode_concurrency,
        no_cache=nocache,
        force_provider=force_provider,
    )

    result = await list_incidents(feed, batch, settings, incident_filter, options, station=station)
    response.headers["Cache-Control"] = CACHE_CONTROL
    return result
