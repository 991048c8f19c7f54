"""Pydantic v2 schemas for incident listings."""

from datetime import datetime

from pydantic import BaseModel, Field


class IncidentResponse(BaseModel):
    """A normalized incident, with coordinates when it was geocoded."""

    model_config = {"from_attributes": True}

    incident_id: str
    call_type: str
    call_category: str
    priority: int
    received_at: datetime
    address_raw: str | None = None
    area: str | None = None
    station: str | None = None
    division: str | None = None
    disposition: str | None = None
    confidential: bool = False
    lat: float | None = None
    lon: float | None = None
    approximate: bool = False
    geocode_strategy: str | None = None


class GeocodeSummary(BaseModel):
    """Counts describing how the geocoding pass went for one listing."""

    requested: bool = False
    candidates: int = 0
    attempted: int = 0
    located: int = 0
    approximate: int = 0
    cached: int = 0
    max_geocode: int = 0
    concurrency: int = 0


class IncidentListResponse(BaseModel):
    """Filtered incident listing."""

    count: int
    items: list[IncidentResponse] = Field(default_factory=list)
    geocoding: GeocodeSummary = Field(default_factory=GeocodeSummary)
