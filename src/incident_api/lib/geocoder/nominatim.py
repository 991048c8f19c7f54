"""OpenStreetMap Nominatim geocoder provider.

Uses the Nominatim API (https://nominatim.org/release-docs/develop/api/Search/)
for address-to-coordinate resolution. Free but limited to about 1 req/sec;
callers keep within that through the batch concurrency cap.
"""

import httpx
from loguru import logger

from incident_api.lib.geocoder.address import join_query, parse_block_address
from incident_api.lib.geocoder.base import (
    BaseGeocoder,
    GeocodeQuery,
    GeocodingProviderError,
    GeocodingResult,
)

NOMINATIM_API_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "incident-map-api/0.1 (incident-tracker)"
DEFAULT_JURISDICTION = "Riverside County, CA"


class NominatimGeocoder(BaseGeocoder):
    """OpenStreetMap Nominatim geocoder provider."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        email: str = "",
        user_agent: str = DEFAULT_USER_AGENT,
        base_url: str = NOMINATIM_API_URL,
        jurisdiction: str = DEFAULT_JURISDICTION,
    ) -> None:
        self._timeout = timeout
        self._email = email
        self._user_agent = user_agent
        self._base_url = base_url
        self._jurisdiction = jurisdiction

    @property
    def provider_name(self) -> str:
        return "nominatim"

    def build_query(self, query: GeocodeQuery, user_location_hint: str | None = None) -> str:
        address = parse_block_address(query.raw_address) or query.raw_address
        return join_query(address, query.area, self._jurisdiction)

    async def geocode(self, query: GeocodeQuery, user_location_hint: str | None = None) -> GeocodingResult | None:
        """Geocode an address using the Nominatim API.

        Block-range addresses are sent with the block marker stripped and
        any match is flagged approximate.

        Args:
            query: The incident address and its context.
            user_location_hint: Ignored; the jurisdiction suffix disambiguates instead.

        Returns:
            GeocodingResult or None if no match found.

        Raises:
            GeocodingProviderError: On transport or service errors.
        """
        params: dict[str, str | int] = {
            "q": self.build_query(query),
            "format": "json",
            "limit": 1,
            "countrycodes": "us",
        }
        if self._email:
            params["email"] = self._email

        headers = {"User-Agent": self._user_agent, "Accept": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._base_url, params=params, headers=headers)
                response.raise_for_status()

            data = response.json()
            result = self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("Nominatim geocoder timeout for address (redacted)")
            raise GeocodingProviderError("nominatim", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Nominatim geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "nominatim",
                f"Provider returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Nominatim geocoder connection error")
            raise GeocodingProviderError("nominatim", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Nominatim geocoder unexpected error")
            raise GeocodingProviderError("nominatim", f"Unexpected error: {e}") from e

        if result is not None and parse_block_address(query.raw_address):
            result.approximate = True
        return result

    def _parse_response(self, data: list[dict]) -> GeocodingResult | None:
        """Parse Nominatim API response into a GeocodingResult.

        Args:
            data: Raw JSON response (list of results) from Nominatim API.

        Returns:
            GeocodingResult or None if no match found.
        """
        if not data:
            return None

        best = data[0]
        try:
            lat = float(best["lat"])
            lon = float(best["lon"])
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Nominatim response: {e}")
            raise GeocodingProviderError("nominatim", f"Failed to parse response: {e}") from e

        importance = best.get("importance")
        return GeocodingResult(
            latitude=lat,
            longitude=lon,
            matched_address=best.get("display_name"),
            confidence_score=min(float(importance), 1.0) if importance is not None else None,
        )
