"""Unit tests for the upstream incident feed client."""

from datetime import UTC, datetime

import httpx
import pytest

from incident_api.lib.incidents.feed import FeedError, IncidentFeedClient


def _record(incident_id: str, received: str) -> dict:
    return {
        "cd_Inc_ID": incident_id,
        "cd_Call_Type": "PATROL CHECK",
        "cd_Address": "41000 MAIN ST",
        "cd_Area": "TEMECULA",
        "cd_Received": received,
    }


def _client(handler, page_size: int = 2, cache_ttl_seconds: int = 0) -> tuple[IncidentFeedClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = IncidentFeedClient(
        url="https://feed.example.com/incidents",
        page_size=page_size,
        cache_ttl_seconds=cache_ttl_seconds,
        transport=httpx.MockTransport(record),
    )
    return client, seen


class TestFetchPage:
    """Tests for IncidentFeedClient.fetch_page."""

    @pytest.mark.asyncio
    async def test_sends_paging_params(self) -> None:
        client, seen = _client(lambda request: httpx.Response(200, json=[]))

        assert await client.fetch_page(3, station="SOUTHWEST") == []
        params = seen[0].url.params
        assert params["PageSize"] == "2"
        assert params["PageNumber"] == "3"
        assert params["Cd_Station"] == "SOUTHWEST"

    @pytest.mark.asyncio
    async def test_non_list_body_raises(self) -> None:
        client, _ = _client(lambda request: httpx.Response(200, json={"error": "nope"}))
        with pytest.raises(FeedError, match="not a list"):
            await client.fetch_page()

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        client, _ = _client(lambda request: httpx.Response(503))
        with pytest.raises(FeedError) as exc_info:
            await client.fetch_page()
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_pages_memoized(self) -> None:
        client, seen = _client(lambda request: httpx.Response(200, json=[]), cache_ttl_seconds=60)

        await client.fetch_page(1)
        await client.fetch_page(1)
        await client.fetch_page(1, station="SOUTHWEST")

        assert len(seen) == 2


class TestFetchIncidents:
    """Tests for multi-page fetching."""

    @pytest.mark.asyncio
    async def test_stops_on_short_page(self) -> None:
        pages = {
            "1": [_record("A", "2025-10-16T12:00:00"), _record("B", "2025-10-16T11:00:00")],
            "2": [_record("C", "2025-10-16T10:00:00")],
        }
        client, seen = _client(lambda request: httpx.Response(200, json=pages[request.url.params["PageNumber"]]))

        incidents = await client.fetch_incidents(max_pages=10)

        assert [i.incident_id for i in incidents] == ["A", "B", "C"]
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_stops_at_since_cutoff(self) -> None:
        pages = {
            "1": [_record("A", "2025-10-16T12:00:00"), _record("B", "2025-10-16T11:00:00")],
            "2": [_record("C", "2025-10-16T10:00:00"), _record("D", "2025-10-16T08:00:00")],
            "3": [_record("E", "2025-10-16T07:00:00"), _record("F", "2025-10-16T06:00:00")],
        }
        client, seen = _client(lambda request: httpx.Response(200, json=pages[request.url.params["PageNumber"]]))

        # 09:00 Pacific daylight time
        since = datetime(2025, 10, 16, 16, 0, tzinfo=UTC)
        incidents = await client.fetch_incidents(since=since, max_pages=10)

        assert [i.incident_id for i in incidents] == ["A", "B", "C"]
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_respects_max_pages(self) -> None:
        full = [_record("A", "2025-10-16T12:00:00"), _record("B", "2025-10-16T11:00:00")]
        client, seen = _client(lambda request: httpx.Response(200, json=full))

        await client.fetch_incidents(max_pages=3)

        assert len(seen) == 3
