"""Unit tests for the regional centroid table."""

from incident_api.lib.geocoder.centroids import (
    AREA_CENTROIDS,
    RIVERSIDE_COUNTY_CENTER,
    STATION_CENTROIDS,
    Centroid,
    CentroidTable,
)


class TestCentroidTable:
    """Tests for CentroidTable.lookup."""

    def setup_method(self) -> None:
        self.table = CentroidTable.default()

    def test_station_wins_over_area(self) -> None:
        """Station centroid is preferred over the area centroid."""
        assert self.table.lookup("Southwest", "TEMECULA") == STATION_CENTROIDS["southwest"]

    def test_area_when_station_unknown(self) -> None:
        assert self.table.lookup("Nowhere Station", "TEMECULA") == AREA_CENTROIDS["temecula"]

    def test_area_when_station_missing(self) -> None:
        assert self.table.lookup(None, "murrieta") == AREA_CENTROIDS["murrieta"]

    def test_county_default(self) -> None:
        assert self.table.lookup(None, "Atlantis") == RIVERSIDE_COUNTY_CENTER
        assert self.table.lookup(None, None) == RIVERSIDE_COUNTY_CENTER

    def test_lookup_normalizes_case_and_whitespace(self) -> None:
        assert self.table.lookup("  LAKE   ELSINORE ", None) == Centroid(33.6681, -117.3273)

    def test_no_default_returns_none(self) -> None:
        table = CentroidTable(stations={}, areas={}, default=None)
        assert table.lookup("southwest", "temecula") is None


class TestCentroid:
    """Tests for Centroid."""

    def test_as_hint(self) -> None:
        assert Centroid(33.616, -117.217).as_hint() == "33.616,-117.217"
