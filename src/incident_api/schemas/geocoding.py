"""Pydantic v2 schemas for geocoding diagnostics and cache administration."""

from pydantic import BaseModel, Field

from incident_api.lib.geocoder import GeocodeResult


class GeocodeResultResponse(BaseModel):
    """One resolution outcome as reported by the API."""

    model_config = {"from_attributes": True}

    lat: float | None = None
    lon: float | None = None
    approximate: bool = False
    strategy: str
    error: str | None = None
    query: str = ""
    user_location_hint: str | None = None
    centroid_used: bool = False
    cached: bool = False

    @classmethod
    def from_result(cls, result: GeocodeResult) -> "GeocodeResultResponse":
        return cls(
            lat=result.lat,
            lon=result.lon,
            approximate=result.approximate,
            strategy=result.strategy.value,
            error=result.error,
            query=result.query,
            user_location_hint=result.user_location_hint,
            centroid_used=result.centroid_used,
            cached=result.cached,
        )


class AppleCredentialStatus(BaseModel):
    """Which Apple Maps signing credentials are configured (values never exposed)."""

    has_team_id: bool
    has_key_id: bool
    has_private_key: bool


class GeocodeDebugResponse(BaseModel):
    """Per-provider and full-chain resolution of one address, bypassing the cache."""

    address: str
    area: str | None = None
    station: str | None = None
    configured_providers: list[str] = Field(default_factory=list)
    apple_credentials: AppleCredentialStatus
    providers: dict[str, GeocodeResultResponse] = Field(default_factory=dict)
    chain: GeocodeResultResponse


class CachePurgeResponse(BaseModel):
    """Result of invalidating one cache key."""

    key: str
    existed: bool
