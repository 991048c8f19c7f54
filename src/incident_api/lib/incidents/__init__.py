"""Incident feed ingestion: fetching, normalization, classification and filtering."""

from incident_api.lib.incidents.classify import CallCategory, Classification, classify
from incident_api.lib.incidents.feed import FeedError, IncidentFeedClient
from incident_api.lib.incidents.filters import BBox, IncidentFilter, parse_bbox
from incident_api.lib.incidents.normalizer import (
    Incident,
    apply_geocodes,
    geocode_candidates,
    is_geocode_candidate,
    normalize_incident,
    normalize_incidents,
)

__all__ = [
    "BBox",
    "CallCategory",
    "Classification",
    "FeedError",
    "Incident",
    "IncidentFeedClient",
    "IncidentFilter",
    "apply_geocodes",
    "classify",
    "geocode_candidates",
    "is_geocode_candidate",
    "normalize_incident",
    "normalize_incidents",
    "parse_bbox",
]
