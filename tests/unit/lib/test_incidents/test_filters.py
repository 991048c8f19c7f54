"""Unit tests for incident filtering."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta

from incident_api.lib.incidents.filters import BBox, IncidentFilter, parse_bbox
from incident_api.lib.incidents.normalizer import Incident

BASE = datetime(2025, 10, 16, 19, 0, tzinfo=UTC)


def _incident(incident_id: str, **overrides) -> Incident:
    incident = Incident(
        incident_id=incident_id,
        call_type="SHOTS FIRED",
        call_category="violent",
        priority=10,
        received_at=BASE,
        address_raw="41000 MAIN ST",
        area="TEMECULA",
    )
    return replace(incident, **overrides)


class TestParseBbox:
    """Tests for parse_bbox."""

    def test_valid(self) -> None:
        assert parse_bbox("-117.7,33.5,-116.8,34.1") == BBox(-117.7, 33.5, -116.8, 34.1)

    def test_invalid(self) -> None:
        assert parse_bbox(None) is None
        assert parse_bbox("") is None
        assert parse_bbox("1,2,3") is None
        assert parse_bbox("a,b,c,d") is None


class TestIncidentFilter:
    """Tests for IncidentFilter.matches / apply."""

    def test_time_window(self) -> None:
        early = _incident("A", received_at=BASE - timedelta(hours=2))
        late = _incident("B", received_at=BASE)
        f = IncidentFilter(since=BASE - timedelta(hours=1))
        assert f.apply([early, late]) == [late]
        f = IncidentFilter(until=BASE - timedelta(hours=1))
        assert f.apply([early, late]) == [early]

    def test_area_and_category(self) -> None:
        a = _incident("A")
        b = _incident("B", area="PERRIS", call_category="traffic")
        assert IncidentFilter(area="PERRIS").apply([a, b]) == [b]
        assert IncidentFilter(call_category="violent").apply([a, b]) == [a]

    def test_call_type_substring_case_insensitive(self) -> None:
        a = _incident("A", call_type="TRAFFIC COLLISION")
        b = _incident("B")
        assert IncidentFilter(call_type="collision").apply([a, b]) == [a]

    def test_min_priority_keeps_more_severe(self) -> None:
        severe = _incident("A", priority=10)
        mild = _incident("B", priority=80)
        assert IncidentFilter(min_priority=30).apply([severe, mild]) == [severe]

    def test_free_text(self) -> None:
        a = _incident("RSO1")
        b = _incident("RSO2", address_raw="123 ELM ST")
        assert IncidentFilter(q="elm").apply([a, b]) == [b]
        assert IncidentFilter(q="rso1").apply([a, b]) == [a]

    def test_limit_then_bbox(self) -> None:
        inside = _incident("A", lat=33.6, lon=-117.2)
        outside = _incident("B", lat=34.5, lon=-116.0)
        ungeocoded = _incident("C")
        bbox = BBox(-117.7, 33.5, -116.8, 34.1)

        assert IncidentFilter(bbox=bbox).apply([inside, outside, ungeocoded]) == [inside]
        assert IncidentFilter(bbox=bbox, limit=1).apply([outside, inside]) == []
        assert IncidentFilter(limit=2).apply([inside, outside, ungeocoded]) == [inside, outside]
