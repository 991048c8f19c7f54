"""FastAPI dependency injection for settings, geocoding components and admin access.

The resolver, batch orchestrator and feed client are built once in the
application lifespan and stored on ``app.state``; these dependencies hand
them to request handlers.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from incident_api.core.config import Settings, get_settings
from incident_api.lib.geocoder import BatchGeocoder, GeocodeResolver
from incident_api.lib.incidents import IncidentFeedClient


def get_app_settings(request: Request) -> Settings:
    """Return the settings the application was created with."""
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def get_resolver(request: Request) -> GeocodeResolver:
    """Return the application-wide geocode resolver."""
    return request.app.state.resolver


def get_batch_geocoder(request: Request) -> BatchGeocoder:
    """Return the application-wide batch orchestrator."""
    return request.app.state.batch_geocoder


def get_feed_client(request: Request) -> IncidentFeedClient:
    """Return the application-wide incident feed client."""
    return request.app.state.feed_client


async def require_admin(
    settings: Annotated[Settings, Depends(get_app_settings)],
    x_admin_key: Annotated[str | None, Header()] = None,
) -> None:
    """Allow the request outside production, or with a matching ``X-Admin-Key``.

    Raises:
        HTTPException: 403 when running in production without a valid key.
    """
    if not settings.is_production:
        return
    if settings.admin_api_key and x_admin_key == settings.admin_api_key:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Admin key required",
    )
