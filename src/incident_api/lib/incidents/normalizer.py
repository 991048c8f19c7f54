"""Normalize raw feed records into incidents and pick geocoding candidates.

The feed publishes Pacific local timestamps without an offset, redacts
confidential calls, and sometimes prints placeholders instead of an
address. Normalization converts the timestamp to UTC, classifies the call
type, and decides which incidents are worth sending to the geocoder at all.
"""

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from loguru import logger

from incident_api.lib.geocoder import GeocodedCandidate, IncidentCandidate, is_usable_address
from incident_api.lib.geocoder.address import collapse_whitespace
from incident_api.lib.incidents.classify import classify

FEED_TIMEZONE = ZoneInfo("America/Los_Angeles")


@dataclass
class Incident:
    """A normalized incident; coordinates stay None until geocoded."""

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
    geocode_error: str | None = field(default=None, repr=False)


def _text(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    return collapse_whitespace(str(value)) or None


def parse_feed_timestamp(value: str | None, now: datetime | None = None) -> datetime:
    """Interpret a feed timestamp as Pacific time and convert it to UTC.

    Args:
        value: ISO timestamp without offset (e.g. ``"2025-10-16T12:10:24"``).
        now: Fallback for missing or unparseable values (defaults to now).

    Returns:
        A timezone-aware UTC datetime.
    """
    fallback = now or datetime.now(UTC)
    if not value:
        return fallback
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.debug(f"Unparseable feed timestamp {value!r}, using fallback")
        return fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=FEED_TIMEZONE)
    return parsed.astimezone(UTC)


def normalize_incident(raw: dict[str, Any]) -> Incident | None:
    """Convert one raw feed record into an Incident.

    Args:
        raw: A ``cd_*`` record from the upstream JSON feed.

    Returns:
        The Incident, or None if the record carries no incident id.
    """
    incident_id = _text(raw, "cd_Inc_ID")
    if not incident_id:
        return None

    call_type = _text(raw, "cd_Call_Type") or ""
    classification = classify(call_type)

    address = _text(raw, "cd_Address")
    if address and "undefined" in address.lower():
        address = None

    return Incident(
        incident_id=incident_id,
        call_type=call_type,
        call_category=classification.category.value,
        priority=classification.priority,
        received_at=parse_feed_timestamp(_text(raw, "cd_Received")),
        address_raw=address,
        area=_text(raw, "cd_Area"),
        station=_text(raw, "cd_Station"),
        division=_text(raw, "cd_Div"),
        disposition=_text(raw, "cd_Disposition"),
        confidential=bool(raw.get("cd_Confidential_Type")),
    )


def normalize_incidents(records: list[dict[str, Any]]) -> list[Incident]:
    """Normalize a feed page, dropping records without an incident id."""
    incidents = [incident for incident in (normalize_incident(r) for r in records) if incident is not None]
    dropped = len(records) - len(incidents)
    if dropped:
        logger.debug(f"Dropped {dropped} feed records without an incident id")
    return incidents


def is_geocode_candidate(incident: Incident) -> bool:
    """Whether an incident's address should be sent to the geocoder."""
    return not incident.confidential and is_usable_address(incident.address_raw)


def geocode_candidates(incidents: list[Incident]) -> list[IncidentCandidate]:
    """Eligible incidents as geocoding candidates, in feed order."""
    return [
        IncidentCandidate(
            id=incident.incident_id,
            raw_address=incident.address_raw or "",
            area=incident.area,
            station=incident.station,
            index=index,
        )
        for index, incident in enumerate(incidents)
        if is_geocode_candidate(incident)
    ]


def apply_geocodes(incidents: list[Incident], geocoded: list[GeocodedCandidate]) -> list[Incident]:
    """Merge batch results back onto incidents by their position in ``incidents``.

    Position rather than incident id, so a repeated id across feed pages
    keeps its own result. Incidents that were not candidates, or were
    beyond the per-request cap, are returned unchanged with unset coordinates.
    """
    by_index = {
        item.candidate.index: item.result
        for item in geocoded
        if item.result is not None and item.candidate.index is not None
    }
    merged: list[Incident] = []
    for index, incident in enumerate(incidents):
        result = by_index.get(index)
        if result is None:
            merged.append(incident)
            continue
        merged.append(
            replace(
                incident,
                lat=result.lat,
                lon=result.lon,
                approximate=result.approximate,
                geocode_strategy=result.strategy.value,
                geocode_error=result.error,
            )
        )
    return merged
