"""Abstract base geocoder interface and the shared geocoding data model."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum


class GeocodeStrategy(StrEnum):
    """Which tier ultimately produced (or failed to produce) coordinates."""

    APPLE = "apple"
    CENSUS = "census"
    NOMINATIM = "nominatim"
    CENTROID = "centroid"
    NONE = "none"


# Strategies backed by a real provider match; only these are ever cached
PROVIDER_STRATEGIES: frozenset[GeocodeStrategy] = frozenset(
    {GeocodeStrategy.APPLE, GeocodeStrategy.CENSUS, GeocodeStrategy.NOMINATIM}
)


@dataclass(frozen=True)
class GeocodeQuery:
    """A raw incident address plus the context used to bias its resolution.

    ``area`` and ``station`` only shape provider queries and pick a centroid
    fallback; they never short-circuit provider lookup.
    """

    raw_address: str
    area: str | None = None
    station: str | None = None


@dataclass
class GeocodingResult:
    """A coordinate match returned by a single provider."""

    latitude: float
    longitude: float
    approximate: bool = False
    matched_address: str | None = None
    confidence_score: float | None = None

    def __post_init__(self) -> None:
        if not (-90 <= self.latitude <= 90):
            msg = f"latitude must be between -90 and 90, got {self.latitude}"
            raise ValueError(msg)
        if not (-180 <= self.longitude <= 180):
            msg = f"longitude must be between -180 and 180, got {self.longitude}"
            raise ValueError(msg)
        if self.confidence_score is not None and not (0 <= self.confidence_score <= 1):
            msg = f"confidence_score must be between 0 and 1, got {self.confidence_score}"
            raise ValueError(msg)


@dataclass
class GeocodeResult:
    """Outcome of resolving one GeocodeQuery through caches, providers and centroids."""

    lat: float | None
    lon: float | None
    strategy: GeocodeStrategy
    approximate: bool = False
    error: str | None = None
    query: str = ""
    user_location_hint: str | None = None
    centroid_used: bool = False
    cached: bool = False

    def __post_init__(self) -> None:
        if (self.lat is None) != (self.lon is None):
            msg = "lat and lon must both be set or both be None"
            raise ValueError(msg)
        if self.strategy == GeocodeStrategy.CENTROID:
            self.approximate = True
            self.centroid_used = True
        if self.strategy == GeocodeStrategy.NONE and self.lat is not None:
            msg = "a result with strategy 'none' cannot carry coordinates"
            raise ValueError(msg)
        if self.strategy != GeocodeStrategy.NONE and self.lat is None:
            msg = f"a result with strategy {self.strategy.value!r} must carry coordinates"
            raise ValueError(msg)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    @classmethod
    def failed(cls, error: str, *, query: str = "", user_location_hint: str | None = None) -> "GeocodeResult":
        """Build a terminal failure result (``strategy=none``)."""
        return cls(
            lat=None,
            lon=None,
            strategy=GeocodeStrategy.NONE,
            error=error,
            query=query,
            user_location_hint=user_location_hint,
        )


class GeocodingProviderError(Exception):
    """Raised when a geocoding provider experiences a transport or service error.

    Distinguishes provider failures (timeout, HTTP error, connection error,
    unparseable body, failed auth exchange) from a successful response with
    no match (which returns None).

    Args:
        provider_name: Name of the failing provider.
        message: Human-readable error description.
        status_code: Optional HTTP status code from the provider.
    """

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.provider_name = provider_name
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider_name}: {message}")


class BaseGeocoder(ABC):
    """Abstract geocoder interface. All providers must implement this."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this geocoder provider."""

    @property
    def strategy(self) -> GeocodeStrategy:
        """Strategy recorded on results produced by this provider."""
        return GeocodeStrategy(self.provider_name)

    @property
    def requires_api_key(self) -> bool:
        """Whether this provider requires credentials to function."""
        return False

    @property
    def is_configured(self) -> bool:
        """Whether this provider has all required configuration (e.g., credentials)."""
        return True

    @abstractmethod
    def build_query(self, query: GeocodeQuery, user_location_hint: str | None = None) -> str:
        """Shape the free-text query string this provider is sent.

        Args:
            query: The incident address and its context.
            user_location_hint: ``"lat,lon"`` bias hint, used by providers that accept one.

        Returns:
            The query string.
        """

    @abstractmethod
    async def geocode(self, query: GeocodeQuery, user_location_hint: str | None = None) -> GeocodingResult | None:
        """Resolve one address.

        Args:
            query: The incident address and its context.
            user_location_hint: ``"lat,lon"`` bias hint, used by providers that accept one.

        Returns:
            GeocodingResult or None if the provider responded but found no match.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
