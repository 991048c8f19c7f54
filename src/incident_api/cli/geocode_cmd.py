"""Geocoding CLI commands for resolving and purging single addresses."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import typer

from incident_api.core.background import InProcessTaskRunner
from incident_api.core.config import Settings, get_settings
from incident_api.lib.geocoder import GeocodeQuery, GeocodeResolver, build_resolver, make_cache_key

geocode_app = typer.Typer()


@asynccontextmanager
async def open_resolver(settings: Settings) -> AsyncGenerator[GeocodeResolver]:
    """Build a resolver for one command and flush its cache writes on exit."""
    task_runner = InProcessTaskRunner()
    resolver = build_resolver(settings, task_runner)
    try:
        yield resolver
    finally:
        await task_runner.drain()
        await resolver.cache.close()


@geocode_app.command("resolve")
def resolve_address(
    address: str = typer.Argument(..., help="Raw incident address"),
    area: str | None = typer.Option(None, "--area", help="Area/city of the incident"),
    station: str | None = typer.Option(None, "--station", help="Sheriff station name"),
    provider: str | None = typer.Option(None, "--provider", help="Only try this provider"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass cache lookup and write-back"),  # noqa: FBT001
) -> None:
    """Resolve one address through the cache and provider chain."""
    try:
        asyncio.run(_resolve_address(address, area, station, provider, no_cache))
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@geocode_app.command("purge")
def purge_address(
    address: str = typer.Argument(..., help="Raw incident address"),
    area: str | None = typer.Option(None, "--area", help="Area/city of the incident"),
) -> None:
    """Remove one address from every cache tier."""
    asyncio.run(_purge_address(address, area))


async def _resolve_address(
    address: str,
    area: str | None,
    station: str | None,
    provider: str | None,
    no_cache: bool,
) -> None:
    """Async implementation of single-address resolution."""
    settings = get_settings()
    async with open_resolver(settings) as resolver:
        result = await resolver.resolve(
            GeocodeQuery(raw_address=address, area=area, station=station),
            no_cache=no_cache,
            force_provider=provider,
        )

    typer.echo(f"Strategy:     {result.strategy.value}")
    if result.has_coordinates:
        typer.echo(f"Lat/Lon:      {result.lat}, {result.lon}")
    else:
        typer.echo("Lat/Lon:      -")
    typer.echo(f"Approximate:  {result.approximate}")
    typer.echo(f"Cached:       {result.cached}")
    if result.query:
        typer.echo(f"Query:        {result.query}")
    if result.user_location_hint:
        typer.echo(f"Hint:         {result.user_location_hint}")
    if result.error:
        typer.echo(f"Error:        {result.error}")


async def _purge_address(address: str, area: str | None) -> None:
    """Async implementation of cache purge."""
    settings = get_settings()
    async with open_resolver(settings) as resolver:
        existed = await resolver.invalidate(address, area)

    typer.echo(f"Purged key:   {make_cache_key(address, area)}")
    typer.echo(f"Edge entry:   {'removed' if existed else 'not found'}")
