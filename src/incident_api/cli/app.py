"""Typer CLI root: logging setup, ``serve`` and ``config`` commands."""

import typer

from incident_api import __version__
from incident_api.core.config import get_settings
from incident_api.core.logging import setup_logging

app = typer.Typer(name="incident-api", help="Incident map feed and geocoding CLI", no_args_is_help=True)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG regardless of LOG_LEVEL"),
) -> None:
    """Configure logging before any subcommand runs."""
    settings = get_settings()
    level = "DEBUG" if verbose else settings.log_level
    setup_logging(level, log_dir=settings.log_dir, json_output=settings.log_json, component="cli")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind host"),  # noqa: S104
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Restart on source changes (development only)"),
    workers: int = typer.Option(1, "--workers", min=1, help="Worker processes (ignored with --reload)"),
) -> None:
    """Run the HTTP API under uvicorn.

    Each worker holds its own in-process geocode cache; use the edge or
    remote store to share results across workers.
    """
    import uvicorn

    settings = get_settings()
    typer.echo(f"incident-api {__version__} ({settings.environment}) on http://{host}:{port}")
    uvicorn.run(
        "incident_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=None if reload else workers,
        log_level=settings.log_level.lower(),
    )


@app.command("config")
def show_config() -> None:
    """Print the effective geocoding and feed configuration (no secrets)."""
    from incident_api.lib.geocoder import get_configured_providers
    from incident_api.services.geocoding_service import apple_credential_status

    settings = get_settings()
    providers = [provider.provider_name for provider in get_configured_providers(settings)]
    apple = apple_credential_status(settings)
    typer.echo(f"Environment:       {settings.environment}")
    typer.echo(f"Providers:         {', '.join(providers) or 'none'}")
    typer.echo(
        f"Apple credentials: team_id={apple.has_team_id} key_id={apple.has_key_id} "
        f"private_key={apple.has_private_key}"
    )
    typer.echo(f"Edge cache:        {'on' if settings.geocode_edge_url else 'off'}")
    typer.echo(f"Remote cache:      {'on' if settings.geocode_remote_kv_url else 'off'}")
    typer.echo(
        f"Geocode caps:      max={settings.geocode_max_per_request}/{settings.geocode_max_per_request_cap} "
        f"concurrency={settings.geocode_concurrency}/{settings.geocode_concurrency_cap}"
    )
    typer.echo(f"Feed:              {settings.feed_url} (cache {settings.feed_cache_ttl_seconds}s)")


def _register_subcommands() -> None:
    from incident_api.cli.geocode_cmd import geocode_app
    from incident_api.cli.incidents_cmd import incidents_app

    app.add_typer(geocode_app, name="geocode", help="Resolve and purge single addresses")
    app.add_typer(incidents_app, name="incidents", help="Fetch the live incident feed")


_register_subcommands()
