"""Apple Maps Server API geocoder provider.

Authentication is a two-step exchange: an ES256 auth assertion signed with
the team's Maps private key is exchanged at ``/v1/token`` for a short-lived
access token, which is then sent as a bearer token to ``/v1/geocode``.
Access tokens are cached and refreshed shortly before they expire.
"""

import asyncio
import time
from collections.abc import Callable

import httpx
import jwt
from loguru import logger

from incident_api.lib.geocoder.address import join_query
from incident_api.lib.geocoder.base import (
    BaseGeocoder,
    GeocodeQuery,
    GeocodingProviderError,
    GeocodingResult,
)

APPLE_TOKEN_URL = "https://maps-api.apple.com/v1/token"
APPLE_GEOCODE_URL = "https://maps-api.apple.com/v1/geocode"
DEFAULT_TIMEOUT = 10.0
DEFAULT_TOKEN_TIMEOUT = 5.0
DEFAULT_ASSERTION_TTL = 1800
REFRESH_MARGIN_SECONDS = 60


class AppleMapsTokenProvider:
    """Signs auth assertions and caches the exchanged access token."""

    def __init__(
        self,
        team_id: str,
        key_id: str,
        private_key: str,
        timeout: float = DEFAULT_TOKEN_TIMEOUT,
        assertion_ttl: int = DEFAULT_ASSERTION_TTL,
        token_url: str = APPLE_TOKEN_URL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._team_id = team_id
        self._key_id = key_id
        # Keys pasted into env vars often carry literal "\n" sequences
        self._private_key = private_key.replace("\\n", "\n")
        self._timeout = timeout
        self._assertion_ttl = assertion_ttl
        self._token_url = token_url
        self._clock = clock
        self._access_token: str | None = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self._team_id and self._key_id and self._private_key)

    def sign_assertion(self) -> str:
        """Sign the short-lived auth assertion presented to the token endpoint.

        Raises:
            GeocodingProviderError: If the private key cannot sign the assertion.
        """
        issued_at = int(self._clock())
        payload = {
            "iss": self._team_id,
            "iat": issued_at,
            "exp": issued_at + self._assertion_ttl,
        }
        try:
            return jwt.encode(payload, self._private_key, algorithm="ES256", headers={"kid": self._key_id})
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            logger.warning(f"Apple Maps assertion signing failed: {type(e).__name__}")
            raise GeocodingProviderError("apple", "Failed to sign auth assertion") from e

    def invalidate(self) -> None:
        """Forget the cached access token so the next call re-exchanges."""
        self._access_token = None
        self._expires_at = 0.0

    async def get_access_token(self) -> str:
        """Return a valid access token, exchanging a new assertion when needed.

        Raises:
            GeocodingProviderError: If credentials are missing or the exchange fails.
        """
        if not self.is_configured:
            raise GeocodingProviderError("apple", "Apple Maps credentials are not configured")
        if self._token_is_fresh():
            return self._access_token  # type: ignore[return-value]

        async with self._lock:
            if self._token_is_fresh():
                return self._access_token  # type: ignore[return-value]
            await self._exchange()
            return self._access_token  # type: ignore[return-value]

    def _token_is_fresh(self) -> bool:
        return self._access_token is not None and self._clock() < self._expires_at - REFRESH_MARGIN_SECONDS

    async def _exchange(self) -> None:
        assertion = self.sign_assertion()
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(
                    self._token_url,
                    headers={"Authorization": f"Bearer {assertion}", "Accept": "application/json"},
                )
                response.raise_for_status()
            data = response.json()
            token = data["accessToken"]
            expires_in = float(data.get("expiresInSeconds", self._assertion_ttl))
        except httpx.TimeoutException as e:
            logger.warning("Apple Maps token exchange timeout")
            raise GeocodingProviderError("apple", "Token exchange timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Apple Maps token exchange HTTP error {e.response.status_code}")
            raise GeocodingProviderError(
                "apple",
                f"Token exchange returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Apple Maps token exchange connection error")
            raise GeocodingProviderError("apple", "Connection to token endpoint failed") from e
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Apple Maps token response: {e}")
            raise GeocodingProviderError("apple", f"Failed to parse token response: {e}") from e

        self._access_token = token
        self._expires_at = self._clock() + expires_in
        logger.debug(f"Apple Maps access token refreshed, valid for {int(expires_in)}s")


class AppleMapsGeocoder(BaseGeocoder):
    """Apple Maps geocoder provider, biased toward a user location hint."""

    def __init__(
        self,
        token_provider: AppleMapsTokenProvider | None,
        timeout: float = DEFAULT_TIMEOUT,
        geocode_url: str = APPLE_GEOCODE_URL,
    ) -> None:
        self._tokens = token_provider
        self._timeout = timeout
        self._geocode_url = geocode_url

    @property
    def provider_name(self) -> str:
        return "apple"

    @property
    def requires_api_key(self) -> bool:
        return True

    @property
    def is_configured(self) -> bool:
        return self._tokens is not None and self._tokens.is_configured

    def build_query(self, query: GeocodeQuery, user_location_hint: str | None = None) -> str:
        return join_query(query.raw_address, query.area)

    async def geocode(self, query: GeocodeQuery, user_location_hint: str | None = None) -> GeocodingResult | None:
        """Geocode an address using the Apple Maps Server API.

        Args:
            query: The incident address and its context.
            user_location_hint: ``"lat,lon"`` sent as ``userLocation`` to bias results.

        Returns:
            GeocodingResult or None if no match found.

        Raises:
            GeocodingProviderError: On token exchange, transport or service errors.
        """
        if self._tokens is None:
            raise GeocodingProviderError("apple", "Apple Maps credentials are not configured")
        token = await self._tokens.get_access_token()

        params = {"q": self.build_query(query), "limitToCountries": "US"}
        if user_location_hint:
            params["userLocation"] = user_location_hint

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(
                    self._geocode_url,
                    params=params,
                    headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                )
                response.raise_for_status()

            data = response.json()
            return self._parse_response(data)

        except httpx.TimeoutException as e:
            logger.warning("Apple Maps geocoder timeout for address (redacted)")
            raise GeocodingProviderError("apple", "Geocoding request timed out") from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.warning(f"Apple Maps geocoder HTTP error {status_code}")
            if status_code == 401:
                self._tokens.invalidate()
            raise GeocodingProviderError(
                "apple",
                f"Provider returned HTTP {status_code}",
                status_code=status_code,
            ) from e
        except httpx.ConnectError as e:
            logger.warning("Apple Maps geocoder connection error")
            raise GeocodingProviderError("apple", "Connection to geocoding provider failed") from e
        except GeocodingProviderError:
            raise
        except Exception as e:
            logger.exception("Apple Maps geocoder unexpected error")
            raise GeocodingProviderError("apple", f"Unexpected error: {e}") from e

    def _parse_response(self, data: dict) -> GeocodingResult | None:
        """Parse Apple Maps API response into a GeocodingResult."""
        results = data.get("results") or []
        if not results:
            return None

        best = results[0]
        coordinate = best.get("coordinate") or {}
        lat = coordinate.get("latitude")
        lon = coordinate.get("longitude")
        if lat is None or lon is None:
            return None

        try:
            return GeocodingResult(
                latitude=float(lat),
                longitude=float(lon),
                matched_address=", ".join(best.get("formattedAddressLines") or []) or None,
            )
        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to parse Apple Maps response: {e}")
            raise GeocodingProviderError("apple", f"Failed to parse response: {e}") from e
