"""Regional centroid table used as the last-resort approximate location.

Coordinates are rough centres of sheriff station service areas and of the
cities/communities the feed reports as ``area``. They are only ever used
when every provider failed, or as a ``userLocation`` bias hint.
"""

from dataclasses import dataclass

from incident_api.lib.geocoder.address import normalize_cache_component


@dataclass(frozen=True)
class Centroid:
    """An approximate coordinate for a region."""

    lat: float
    lon: float

    def as_hint(self) -> str:
        """Format as the ``"lat,lon"`` string providers accept as a bias hint."""
        return f"{self.lat},{self.lon}"


RIVERSIDE_COUNTY_CENTER = Centroid(33.7175, -115.4734)

STATION_CENTROIDS: dict[str, Centroid] = {
    "southwest": Centroid(33.616, -117.217),
    "lake elsinore": Centroid(33.6681, -117.3273),
    "perris": Centroid(33.7825, -117.2286),
    "moreno valley": Centroid(33.9425, -117.2297),
    "jurupa valley": Centroid(33.9972, -117.4855),
    "hemet": Centroid(33.7475, -116.9720),
    "san jacinto": Centroid(33.7839, -116.9586),
    "cabazon": Centroid(33.9175, -116.7872),
    "palm desert": Centroid(33.7222, -116.3745),
    "thermal": Centroid(33.6403, -116.1397),
    "colorado river": Centroid(33.6103, -114.5964),
}

AREA_CENTROIDS: dict[str, Centroid] = {
    "aguanga": Centroid(33.4428, -116.8653),
    "anza": Centroid(33.5550, -116.6739),
    "banning": Centroid(33.9256, -116.8764),
    "beaumont": Centroid(33.9295, -116.9773),
    "blythe": Centroid(33.6103, -114.5964),
    "calimesa": Centroid(34.0036, -117.0620),
    "canyon lake": Centroid(33.6850, -117.2731),
    "cathedral city": Centroid(33.7797, -116.4653),
    "coachella": Centroid(33.6803, -116.1739),
    "corona": Centroid(33.8753, -117.5664),
    "desert hot springs": Centroid(33.9611, -116.5017),
    "eastvale": Centroid(33.9525, -117.5848),
    "french valley": Centroid(33.5989, -117.1070),
    "hemet": Centroid(33.7475, -116.9720),
    "homeland": Centroid(33.7431, -117.1092),
    "idyllwild": Centroid(33.7400, -116.7186),
    "indian wells": Centroid(33.7175, -116.3409),
    "indio": Centroid(33.7206, -116.2156),
    "jurupa valley": Centroid(33.9972, -117.4855),
    "la quinta": Centroid(33.6634, -116.3100),
    "lake elsinore": Centroid(33.6681, -117.3273),
    "mead valley": Centroid(33.8336, -117.2959),
    "mecca": Centroid(33.5717, -116.0775),
    "menifee": Centroid(33.6971, -117.1850),
    "moreno valley": Centroid(33.9425, -117.2297),
    "murrieta": Centroid(33.5539, -117.2139),
    "norco": Centroid(33.9311, -117.5487),
    "palm desert": Centroid(33.7222, -116.3745),
    "palm springs": Centroid(33.8303, -116.5453),
    "perris": Centroid(33.7825, -117.2286),
    "rancho mirage": Centroid(33.7397, -116.4128),
    "riverside": Centroid(33.9806, -117.3755),
    "san jacinto": Centroid(33.7839, -116.9586),
    "temecula": Centroid(33.4936, -117.1484),
    "thermal": Centroid(33.6403, -116.1397),
    "wildomar": Centroid(33.5989, -117.2800),
    "winchester": Centroid(33.7069, -117.0845),
}


class CentroidTable:
    """Station → area → county-default lookup of approximate coordinates."""

    def __init__(
        self,
        stations: dict[str, Centroid] | None = None,
        areas: dict[str, Centroid] | None = None,
        default: Centroid | None = RIVERSIDE_COUNTY_CENTER,
    ) -> None:
        self._stations = {normalize_cache_component(k): v for k, v in (stations or {}).items()}
        self._areas = {normalize_cache_component(k): v for k, v in (areas or {}).items()}
        self._default = default

    @classmethod
    def default(cls) -> "CentroidTable":
        """Table for Riverside County stations and communities."""
        return cls(stations=STATION_CENTROIDS, areas=AREA_CENTROIDS)

    def lookup(self, station: str | None, area: str | None) -> Centroid | None:
        """Most specific centroid available: station, else area, else county default.

        Args:
            station: Station name or code as published by the feed.
            area: Area/city as published by the feed.

        Returns:
            The centroid, or None if the table has no entry at any level.
        """
        if station:
            hit = self._stations.get(normalize_cache_component(station))
            if hit is not None:
                return hit
        if area:
            hit = self._areas.get(normalize_cache_component(area))
            if hit is not None:
                return hit
        return self._default
