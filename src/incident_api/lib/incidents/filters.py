"""Post-normalization incident filtering (time window, attributes, text, bbox)."""

from dataclasses import dataclass
from datetime import datetime

from incident_api.lib.incidents.normalizer import Incident

MAX_LIMIT = 10000


@dataclass(frozen=True)
class BBox:
    """Bounding box in WGS84 degrees."""

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def contains(self, lat: float | None, lon: float | None) -> bool:
        if lat is None or lon is None:
            return False
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat


def parse_bbox(raw: str | None) -> BBox | None:
    """Parse ``"minLon,minLat,maxLon,maxLat"``; anything malformed means no bbox."""
    if not raw:
        return None
    parts = raw.split(",")
    if len(parts) != 4:
        return None
    try:
        min_lon, min_lat, max_lon, max_lat = (float(p) for p in parts)
    except ValueError:
        return None
    return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)


@dataclass(frozen=True)
class IncidentFilter:
    """Filters applied to the incident list after normalization and geocoding."""

    since: datetime | None = None
    until: datetime | None = None
    area: str | None = None
    call_category: str | None = None
    call_type: str | None = None
    min_priority: int | None = None
    q: str | None = None
    bbox: BBox | None = None
    limit: int = MAX_LIMIT

    def matches(self, incident: Incident) -> bool:
        if self.since and incident.received_at < self.since:
            return False
        if self.until and incident.received_at > self.until:
            return False
        if self.area and incident.area != self.area:
            return False
        if self.call_category and incident.call_category != self.call_category:
            return False
        if self.call_type and self.call_type.lower() not in incident.call_type.lower():
            return False
        # Priority numbers rank severity: keep incidents at least this severe
        if self.min_priority and incident.priority > self.min_priority:
            return False
        if self.q:
            haystack = " ".join(
                part or "" for part in (incident.incident_id, incident.address_raw, incident.call_type, incident.area)
            ).lower()
            if self.q.lower() not in haystack:
                return False
        return True

    def apply(self, incidents: list[Incident]) -> list[Incident]:
        """Filter, cap at ``limit``, then restrict to the bbox (geocoded incidents only)."""
        limited = [incident for incident in incidents if self.matches(incident)][: max(0, min(self.limit, MAX_LIMIT))]
        if self.bbox is None:
            return limited
        return [incident for incident in limited if self.bbox.contains(incident.lat, incident.lon)]
