"""Incident feed CLI commands."""

import asyncio

import typer

from incident_api.cli.geocode_cmd import open_resolver
from incident_api.core.config import get_settings
from incident_api.lib.geocoder import BatchGeocoder
from incident_api.lib.incidents import FeedError, IncidentFilter
from incident_api.services.incident_service import GeocodeOptions, build_feed_client, list_incidents

incidents_app = typer.Typer()


@incidents_app.command("fetch")
def fetch_incidents(
    geocode: bool = typer.Option(False, "--geocode", help="Resolve coordinates for eligible incidents"),  # noqa: FBT001
    station: str | None = typer.Option(None, "--station", help="Upstream station filter"),
    max_geocode: int | None = typer.Option(None, "--max-geocode", help="Incidents to geocode (clamped)"),
    concurrency: int | None = typer.Option(None, "--concurrency", help="Concurrent geocode workers (clamped)"),
    limit: int = typer.Option(50, "--limit", help="Maximum incidents to print"),
) -> None:
    """Fetch the live feed and print one line per incident."""
    try:
        asyncio.run(_fetch_incidents(geocode, station, max_geocode, concurrency, limit))
    except FeedError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=1) from e


async def _fetch_incidents(
    geocode: bool,
    station: str | None,
    max_geocode: int | None,
    concurrency: int | None,
    limit: int,
) -> None:
    """Async implementation of the feed fetch."""
    settings = get_settings()
    feed = build_feed_client(settings)
    options = GeocodeOptions(enabled=geocode, max_geocode=max_geocode, concurrency=concurrency)

    async with open_resolver(settings) as resolver:
        batch = BatchGeocoder(
            resolver,
            max_geocode_cap=settings.geocode_max_per_request_cap,
            concurrency_cap=settings.geocode_concurrency_cap,
        )
        listing = await list_incidents(feed, batch, settings, IncidentFilter(limit=limit), options, station=station)

    for item in listing.items:
        where = f"{item.lat:.5f},{item.lon:.5f}" if item.lat is not None and item.lon is not None else "-"
        flag = "~" if item.approximate else " "
        typer.echo(
            f"{item.received_at:%Y-%m-%d %H:%M} {item.incident_id:<14} {item.call_category:<11} "
            f"{where:>22}{flag} {item.call_type} @ {item.address_raw or '-'} ({item.area or '-'})"
        )

    typer.echo(f"\nIncidents: {listing.count}")
    if listing.geocoding.requested:
        summary = listing.geocoding
        typer.echo(
            f"Geocoded:  {summary.located}/{summary.attempted} attempted of {summary.candidates} candidates "
            f"({summary.approximate} approximate, {summary.cached} cached)"
        )
