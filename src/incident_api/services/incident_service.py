"""Incident service: fetch, normalize, geocode and filter one incident listing."""

from dataclasses import dataclass

from loguru import logger

from incident_api.core.config import Settings
from incident_api.lib.geocoder import BatchGeocoder
from incident_api.lib.incidents import (
    Incident,
    IncidentFeedClient,
    IncidentFilter,
    apply_geocodes,
    geocode_candidates,
)
from incident_api.schemas.incident import GeocodeSummary, IncidentListResponse, IncidentResponse


@dataclass(frozen=True)
class GeocodeOptions:
    """Per-request geocoding knobs, before server-side clamping."""

    enabled: bool = False
    max_geocode: int | None = None
    concurrency: int | None = None
    no_cache: bool = False
    force_provider: str | None = None


def build_feed_client(settings: Settings) -> IncidentFeedClient:
    """Create the feed client configured from settings."""
    return IncidentFeedClient(
        url=settings.feed_url,
        timeout=settings.feed_timeout,
        page_size=settings.feed_page_size,
        cache_ttl_seconds=settings.feed_cache_ttl_seconds,
    )


async def geocode_incidents(
    incidents: list[Incident],
    batch: BatchGeocoder,
    settings: Settings,
    options: GeocodeOptions,
) -> tuple[list[Incident], GeocodeSummary]:
    """Geocode eligible incidents under the clamped per-request caps.

    Args:
        incidents: Normalized incidents in feed order.
        batch: The application batch orchestrator.
        settings: Application settings (supplies the default knobs).
        options: Requested knobs.

    Returns:
        The incidents with coordinates merged in, and a summary of the pass.
    """
    max_geocode = batch.clamp_max_geocode(
        options.max_geocode if options.max_geocode is not None else settings.geocode_max_per_request
    )
    concurrency = batch.clamp_concurrency(
        options.concurrency if options.concurrency is not None else settings.geocode_concurrency
    )
    candidates = geocode_candidates(incidents)
    geocoded = await batch.resolve_batch(
        candidates,
        max_geocode=max_geocode,
        concurrency=concurrency,
        no_cache=options.no_cache,
        force_provider=options.force_provider,
    )

    results = [item.result for item in geocoded if item.result is not None]
    summary = GeocodeSummary(
        requested=True,
        candidates=len(candidates),
        attempted=len(results),
        located=sum(1 for r in results if r.has_coordinates),
        approximate=sum(1 for r in results if r.has_coordinates and r.approximate),
        cached=sum(1 for r in results if r.cached),
        max_geocode=max_geocode,
        concurrency=concurrency,
    )
    logger.info(
        f"Geocoded {summary.located}/{summary.attempted} attempted "
        f"({summary.candidates} candidates, {summary.cached} cached)"
    )
    return apply_geocodes(incidents, geocoded), summary


async def list_incidents(
    feed: IncidentFeedClient,
    batch: BatchGeocoder,
    settings: Settings,
    incident_filter: IncidentFilter,
    options: GeocodeOptions,
    station: str | None = None,
) -> IncidentListResponse:
    """Fetch, optionally geocode, and filter incidents.

    Filtering by time, attributes and text happens before geocoding so the
    geocode budget is spent on incidents that will be returned; the bbox is
    applied afterwards since it needs coordinates.

    Raises:
        FeedError: If the upstream feed cannot be fetched.
    """
    incidents = await feed.fetch_incidents(
        since=incident_filter.since,
        station=station,
        max_pages=settings.feed_max_pages,
    )
    incidents = [incident for incident in incidents if incident_filter.matches(incident)]

    summary = GeocodeSummary()
    if options.enabled:
        incidents, summary = await geocode_incidents(incidents, batch, settings, options)

    items = incident_filter.apply(incidents)
    return IncidentListResponse(
        count=len(items),
        items=[IncidentResponse.model_validate(incident) for incident in items],
        geocoding=summary,
    )
