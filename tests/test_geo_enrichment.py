import asyncio
from typing import Any, Dict, List

import httpx

from day_planner.schemas import Stop
from day_planner.tools.geo_enrichment import GeoEnricher, lookup_city


class DummyResponse:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        return None

    def json(self):
        return self._payload


class DummyAsyncClient:
    def __init__(self, response_payload, *args, **kwargs):
        self.response_payload = response_payload
        self.requests: List[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def get(self, url, params=None):
        self.requests.append((url, params))
        return DummyResponse(self.response_payload)


class FailingAsyncClient(DummyAsyncClient):
    async def get(self, url, params=None):
        raise httpx.ConnectError("unreachable")


def _ok_payload(lat: float, lng: float) -> Dict[str, Any]:
    return {"status": "OK", "results": [{"geometry": {"location": {"lat": lat, "lng": lng}}}]}


def test_geocode_reads_first_result(monkeypatch):
    clients: List[DummyAsyncClient] = []

    def factory(*args, **kwargs):
        client = DummyAsyncClient(_ok_payload(35.0, 135.7), *args, **kwargs)
        clients.append(client)
        return client

    monkeypatch.setattr(httpx, "AsyncClient", factory)

    coords = asyncio.run(GeoEnricher(api_key="test-key").geocode("Fushimi Inari, Kyoto"))

    assert (coords.lat, coords.lng) == (35.0, 135.7)
    url, params = clients[0].requests[0]
    assert url == GeoEnricher.GEOCODE_ENDPOINT
    assert params == {"address": "Fushimi Inari, Kyoto", "key": "test-key"}


def test_geocode_falls_back_to_city_table_on_no_match(monkeypatch):
    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        lambda *a, **kw: DummyAsyncClient({"status": "ZERO_RESULTS", "results": []}, *a, **kw),
    )

    coords = asyncio.run(GeoEnricher(api_key="test-key").geocode("Paris, France"))

    assert (coords.lat, coords.lng) == (48.8566, 2.3522)


def test_geocode_without_key_never_calls_out(monkeypatch):
    def forbidden(*args, **kwargs):
        raise AssertionError("no HTTP call expected without an API key")

    monkeypatch.setattr(httpx, "AsyncClient", forbidden)

    enricher = GeoEnricher(api_key="")

    assert asyncio.run(enricher.geocode("tokyo")).lat == 35.6762
    assert asyncio.run(enricher.geocode("Atlantis")) is None
    assert asyncio.run(enricher.geocode("   ")) is None


def test_network_errors_are_swallowed(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: FailingAsyncClient({}, *a, **kw))

    assert asyncio.run(GeoEnricher(api_key="test-key").geocode("Unknown Place")) is None


def test_enrich_stops_fills_only_missing_coordinates(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", lambda *a, **kw: DummyAsyncClient(_ok_payload(1.0, 2.0), *a, **kw))
    stops = [
        Stop(id="A", name="Known", latitude=10.0, longitude=20.0),
        Stop(id="B", name="Museum", address="1 Main St"),
    ]

    enriched = asyncio.run(GeoEnricher(api_key="test-key").enrich_stops(stops))

    assert (enriched[0].latitude, enriched[0].longitude) == (10.0, 20.0)
    assert (enriched[1].latitude, enriched[1].longitude) == (1.0, 2.0)
    assert stops[1].latitude is None


def test_lookup_city_uses_first_part_of_query():
    assert lookup_city("London, United Kingdom").lng == -0.1278
    assert lookup_city("Nowhere") is None
