"""Unit tests for Census Bureau geocoder provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from incident_api.lib.geocoder.base import GeocodeQuery, GeocodingProviderError
from incident_api.lib.geocoder.census import CensusGeocoder


def _response(data: dict) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = data
    response.raise_for_status = MagicMock()
    return response


def _match(lat: float, lon: float, tiger: bool = True) -> dict:
    match: dict = {"matchedAddress": "MATCHED", "coordinates": {"x": lon, "y": lat}}
    if tiger:
        match["tigerLine"] = {"tigerLineId": "1"}
    return {"result": {"addressMatches": [match]}}


NO_MATCH = {"result": {"addressMatches": []}}


class TestCensusResponseParsing:
    """Tests for Census API response parsing."""

    def setup_method(self) -> None:
        self.geocoder = CensusGeocoder()

    def test_successful_match(self) -> None:
        result = self.geocoder._parse_response(_match(33.49, -117.14))
        assert result is not None
        assert result.latitude == 33.49
        assert result.longitude == -117.14
        assert result.confidence_score == 1.0
        assert result.matched_address == "MATCHED"

    def test_no_tigerline_lower_confidence(self) -> None:
        result = self.geocoder._parse_response(_match(33.49, -117.14, tiger=False))
        assert result is not None
        assert result.confidence_score == 0.8

    def test_no_matches(self) -> None:
        assert self.geocoder._parse_response(NO_MATCH) is None

    def test_missing_coordinates(self) -> None:
        data = {"result": {"addressMatches": [{"matchedAddress": "X", "coordinates": {}}]}}
        assert self.geocoder._parse_response(data) is None

    def test_malformed_response(self) -> None:
        assert self.geocoder._parse_response({}) is None
        assert self.geocoder._parse_response({"result": {}}) is None


class TestCensusQueryShaping:
    """Tests for the query string sent to the Census API."""

    def test_appends_area_and_jurisdiction(self) -> None:
        geocoder = CensusGeocoder()
        query = GeocodeQuery(raw_address="41000 MAIN ST", area="TEMECULA")
        assert geocoder.build_query(query) == "41000 MAIN ST, TEMECULA, Riverside County, CA"

    @pytest.mark.asyncio
    async def test_block_address_retried_reduced_and_flagged_approximate(self) -> None:
        """A block address that misses exactly is retried without the block marker."""
        geocoder = CensusGeocoder()
        query = GeocodeQuery(raw_address="2600 *** BLOCK AMANDA AV", area="PERRIS")
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = [_response(NO_MATCH), _response(_match(33.78, -117.22))]
            result = await geocoder.geocode(query)

        assert result is not None
        assert result.approximate is True
        assert mock_get.call_count == 2
        sent = [c.kwargs["params"]["address"] for c in mock_get.call_args_list]
        assert sent[0] == "2600 *** BLOCK AMANDA AV, PERRIS, Riverside County, CA"
        assert sent[1] == "2600 AMANDA AV, PERRIS, Riverside County, CA"

    @pytest.mark.asyncio
    async def test_exact_match_is_not_approximate(self) -> None:
        geocoder = CensusGeocoder()
        query = GeocodeQuery(raw_address="41000 MAIN ST", area="TEMECULA")
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(_match(33.49, -117.14))):
            result = await geocoder.geocode(query)

        assert result is not None
        assert result.approximate is False

    @pytest.mark.asyncio
    async def test_block_address_without_area_not_retried(self) -> None:
        geocoder = CensusGeocoder()
        query = GeocodeQuery(raw_address="2600 *** BLOCK AMANDA AV")
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=_response(NO_MATCH)) as mock_get:
            result = await geocoder.geocode(query)

        assert result is None
        assert mock_get.call_count == 1


class TestCensusGeocoderErrors:
    """Tests for CensusGeocoder error translation."""

    QUERY = GeocodeQuery(raw_address="41000 MAIN ST", area="TEMECULA")

    @pytest.mark.asyncio
    async def test_timeout_raises_provider_error(self) -> None:
        geocoder = CensusGeocoder(timeout=0.1)
        with (
            patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get,
            pytest.raises(GeocodingProviderError, match="census") as exc_info,
        ):
            mock_get.side_effect = httpx.TimeoutException("Connection timed out")
            await geocoder.geocode(self.QUERY)

        assert exc_info.value.provider_name == "census"

    @pytest.mark.asyncio
    async def test_http_status_error_raises_provider_error(self) -> None:
        geocoder = CensusGeocoder()
        mock_response = httpx.Response(status_code=500, request=httpx.Request("GET", "http://test"))
        with (
            patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get,
            pytest.raises(GeocodingProviderError) as exc_info,
        ):
            mock_get.side_effect = httpx.HTTPStatusError(
                "Server error", request=mock_response.request, response=mock_response
            )
            await geocoder.geocode(self.QUERY)

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_connection_error_raises_provider_error(self) -> None:
        geocoder = CensusGeocoder()
        with (
            patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get,
            pytest.raises(GeocodingProviderError),
        ):
            mock_get.side_effect = httpx.ConnectError("Connection refused")
            await geocoder.geocode(self.QUERY)
