"""US Census Bureau geocoder provider.

Uses the Census Geocoding API (https://geocoding.geo.census.gov/geocoder/)
for address-to-coordinate resolution. Free and unauthenticated.
"""

import httpx
from loguru import logger

from incident_api.lib.geocoder.address import join_query, parse_block_address
from incident_api.lib.geocoder.base import BaseGeocoder, GeocodeQuery, GeocodingProviderError, GeocodingResult

CENSUS_API_URL = "https://geocoding.geo.census.gov/geocoder/locations/onelineaddress"
DEFAULT_TIMEOUT = 10.0
DEFAULT_JURISDICTION = "Riverside County, CA"


class CensusGeocoder(BaseGeocoder):
    """US Census Bureau geocoder provider."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: str = CENSUS_API_URL,
        jurisdiction: str = DEFAULT_JURISDICTION,
    ) -> None:
        self._timeout = timeout
        self._base_url = base_url
        self._jurisdiction = jurisdiction

    @property
    def provider_name(self) -> str:
        return "census"

    def build_query(self, query: GeocodeQuery, user_location_hint: str | None = None) -> str:
        return join_query(query.raw_address, query.area, self._jurisdiction)

    async def geocode(self, query: GeocodeQuery, user_location_hint: str | None = None) -> GeocodingResult | None:
        """Geocode an address using the Census Bureau API.

        The exact address is tried first. A block-range address with a known
        area gets one more attempt with the block marker stripped, and a
        match from that attempt is flagged approximate.

        Args:
            query: The incident address and its context.
            user_location_hint: Ignored; the Census API has no bias parameter.

        Returns:
            GeocodingResult or None if the provider responded but found no match.

        Raises:
            GeocodingProviderError: On transport or service errors (timeout, HTTP error, connection).
        """
        result = await self._request(self.build_query(query))
        if result is not None:
            return result

        reduced = parse_block_address(query.raw_address)
        if reduced and query.area:
            logger.debug("Census retrying block address without block marker")
            result = await self._request(join_query(reduced, query.area, self._jurisdiction))
            if result is not None:
                result.approximate = True
        return result

    async def _request(self, address: str) -> GeocodingResult | None:
        params = {
            "address": address,
            "benchmark": "Public_AR_Current",
            "format": "json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._base_url, params=params, headers={"Accept": "application/json"})
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("Census geocoder timeout for address (redacted)")
            raise GeocodingProviderError("census", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Census geocoder HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "census", f"Provider returned HTTP {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Census geocoder connection error")
            raise GeocodingProviderError("census", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Census geocoder unexpected error")
            raise GeocodingProviderError("census", f"Unexpected error: {e}") from e

    def _parse_response(self, data: dict) -> GeocodingResult | None:
        """Parse Census API response into a GeocodingResult.

        Args:
            data: Raw JSON response from Census API.

        Returns:
            GeocodingResult or None if no match found.
        """
        try:
            result = data.get("result") or {}
            matches = result.get("addressMatches") or []

            if not matches:
                return None

            best = matches[0]
            coords = best.get("coordinates") or {}
            lon = coords.get("x")
            lat = coords.get("y")

            if lat is None or lon is None:
                return None

            return GeocodingResult(
                latitude=float(lat),
                longitude=float(lon),
                matched_address=best.get("matchedAddress"),
                confidence_score=1.0 if best.get("tigerLine") else 0.8,
            )
        except (AttributeError, KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Census geocoder response: {e}")
            raise GeocodingProviderError("census", f"Failed to parse response: {e}") from e
