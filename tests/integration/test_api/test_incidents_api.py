"""Integration tests for GET /api/v1/incidents."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from incident_api.core.dependencies import get_batch_geocoder, get_feed_client, get_resolver
from incident_api.lib.geocoder import BatchGeocoder, GeocodingResult
from incident_api.lib.incidents import FeedError, IncidentFeedClient, normalize_incidents
from incident_api.main import create_app

MATCH = GeocodingResult(latitude=33.4936, longitude=-117.1484)

RECORDS = [
    {
        "cd_Inc_ID": "RSO0001",
        "cd_Call_Type": "SHOTS FIRED",
        "cd_Address": "41000 MAIN ST",
        "cd_Area": "TEMECULA",
        "cd_Station": "SOUTHWEST",
        "cd_Received": "2025-10-16T12:00:00",
    },
    {
        "cd_Inc_ID": "RSO0002",
        "cd_Call_Type": "PATROL CHECK",
        "cd_Address": "ADDRESS WITHHELD",
        "cd_Area": "PERRIS",
        "cd_Received": "2025-10-16T11:00:00",
    },
    {
        "cd_Inc_ID": "RSO0003",
        "cd_Call_Type": "TRAFFIC COLLISION",
        "cd_Address": "2600 *** BLOCK AMANDA AV",
        "cd_Area": "PERRIS",
        "cd_Received": "2025-10-16T10:00:00",
    },
]


@pytest.fixture
def feed() -> MagicMock:
    feed = MagicMock(spec=IncidentFeedClient)
    feed.fetch_incidents = AsyncMock(return_value=normalize_incidents(RECORDS))
    return feed


@pytest.fixture
def provider(make_provider):
    return make_provider("census", result=MATCH)


@pytest.fixture
def app(settings, feed, provider, make_resolver) -> FastAPI:
    """Application with geocoding components injected instead of built in the lifespan."""
    resolver = make_resolver(provider)
    app = create_app(settings)
    app.dependency_overrides[get_resolver] = lambda: resolver
    app.dependency_overrides[get_batch_geocoder] = lambda: BatchGeocoder(resolver)
    app.dependency_overrides[get_feed_client] = lambda: feed
    return app


@pytest.fixture
def client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestIncidentsEndpoint:
    """Tests for GET /api/v1/incidents."""

    @pytest.mark.asyncio
    async def test_lists_incidents_with_cache_headers(self, client, provider) -> None:
        resp = await client.get("/api/v1/incidents")

        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "public, s-maxage=30, stale-while-revalidate=60"
        data = resp.json()
        assert data["count"] == 3
        assert [item["incident_id"] for item in data["items"]] == ["RSO0001", "RSO0002", "RSO0003"]
        assert data["items"][0]["call_category"] == "violent"
        assert data["items"][0]["lat"] is None
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_geocode_skips_ineligible_addresses(self, client, provider) -> None:
        resp = await client.get("/api/v1/incidents", params={"geocode": "true"})

        assert resp.status_code == 200
        items = resp.json()["items"]
        assert items[0]["lat"] == 33.4936
        assert items[0]["geocode_strategy"] == "census"
        assert items[1]["lat"] is None
        assert items[2]["lat"] == 33.4936
        assert len(provider.calls) == 2
        summary = resp.json()["geocoding"]
        assert summary["candidates"] == 2
        assert summary["located"] == 2

    @pytest.mark.asyncio
    async def test_max_geocode_and_concurrency_knobs(self, client, provider) -> None:
        resp = await client.get(
            "/api/v1/incidents", params={"geocode": "true", "maxGeocode": 1, "geocodeConcurrency": 99}
        )

        assert resp.status_code == 200
        summary = resp.json()["geocoding"]
        assert summary["attempted"] == 1
        assert summary["max_geocode"] == 1
        assert summary["concurrency"] == 5
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_low_knobs_are_clamped_not_rejected(self, client, provider) -> None:
        resp = await client.get(
            "/api/v1/incidents", params={"geocode": "true", "maxGeocode": -5, "geocodeConcurrency": 0}
        )

        assert resp.status_code == 200
        summary = resp.json()["geocoding"]
        assert summary["max_geocode"] == 0
        assert summary["concurrency"] == 1
        assert summary["attempted"] == 0
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_filters(self, client) -> None:
        resp = await client.get("/api/v1/incidents", params={"area": "PERRIS", "callType": "collision"})
        assert [item["incident_id"] for item in resp.json()["items"]] == ["RSO0003"]

        resp = await client.get("/api/v1/incidents", params={"minPriority": 20})
        assert [item["incident_id"] for item in resp.json()["items"]] == ["RSO0001"]

        resp = await client.get("/api/v1/incidents", params={"limit": 1})
        assert resp.json()["count"] == 1

    @pytest.mark.asyncio
    async def test_bbox_keeps_only_geocoded_inside(self, client) -> None:
        resp = await client.get(
            "/api/v1/incidents", params={"geocode": "true", "bbox": "-117.7,33.4,-116.8,34.1"}
        )
        assert [item["incident_id"] for item in resp.json()["items"]] == ["RSO0001", "RSO0003"]

    @pytest.mark.asyncio
    async def test_limit_above_max_rejected(self, client) -> None:
        resp = await client.get("/api/v1/incidents", params={"limit": 10001})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_unconfigured_force_provider_rejected(self, client) -> None:
        resp = await client.get("/api/v1/incidents", params={"geocode": "true", "forceProvider": "apple"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_force_provider_rejected(self, client) -> None:
        resp = await client.get("/api/v1/incidents", params={"geocode": "true", "forceProvider": "bing"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_feed_failure_returns_502(self, client, feed) -> None:
        feed.fetch_incidents.side_effect = FeedError("Incident feed returned HTTP 503", status_code=503)

        resp = await client.get("/api/v1/incidents")

        assert resp.status_code == 502
        assert resp.json()["error"] == "Incident feed returned HTTP 503"


class TestHealth:
    """Tests for GET /health."""

    @pytest.mark.asyncio
    async def test_health(self, client) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
