"""Root API router with the /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from incident_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included.

    Args:
        settings: Application settings.

    Returns:
        Configured API router.
    """
    from incident_api.api.v1.geocoding import geocoding_router
    from incident_api.api.v1.incidents import incidents_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(incidents_router)
    root_router.include_router(geocoding_router)

    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware on the FastAPI app.

    Browser map clients call the API cross-origin with simple GETs, so CORS
    allows any method and header but never credentials.

    Args:
        app: The FastAPI application.
        settings: Application settings.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
