"""Tests for the HTTP API."""

import asyncio
import threading
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from resource_matcher.api import API_VERSION, create_app
from resource_matcher.api.app import cancel_on_disconnect
from resource_matcher.config.environment import EnvironmentConfig
from resource_matcher.config.models import AppConfig
from resource_matcher.matching import GENERIC_RELEVANCE_NOTE, ResourceMatcher
from resource_matcher.narration.base import Narrator
from resource_matcher.narration.exceptions import NarrationHTTPError
from tests.helpers import BlockingGateway, InMemoryGateway, load_fixture_catalog

AUSTIN_PROFILE = {
    "cause_areas": ["environment"],
    "location": {"city": "Austin", "state": "TX"},
    "venture_type": "business",
    "budget_level": "low",
    "commitment_level": "steady",
}


class FixedNarrator(Narrator):
    def __init__(self, notes=None, error=None):
        self.notes = notes or {}
        self.error = error
        self.calls = 0

    def annotate(self, listings, context):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return dict(self.notes)


@pytest.fixture
def gateway():
    return InMemoryGateway(load_fixture_catalog())


@pytest.fixture
def app_config():
    return AppConfig()


@pytest.fixture
def client(app_config, gateway):
    app = create_app(app_config, EnvironmentConfig(), gateway=gateway)
    with TestClient(app) as test_client:
        yield test_client


class TestMatchEndpoint:
    """POST /match."""

    def test_success_envelope(self, client):
        """A valid profile returns ranked matches per category."""
        response = client.post("/match", json=AUSTIN_PROFILE)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        matches = body["data"]["matches"]
        assert list(matches) == ["grant", "accelerator", "sba", "coworking"]
        first = matches["grant"][0]
        assert first["id"] == "grant-austin-green-fund"
        assert first["match_score"] == 14
        assert first["match_reasons"] == [
            "Located in Austin",
            "Supports environment",
            "Up to $20K available",
        ]
        assert first["amount_range"] == "Up to $20K"
        assert body["data"]["filters_applied"]["location"] == {"city": "Austin", "state": "TX"}

    def test_categories_query(self, client):
        """Only the requested categories are matched, in request order."""
        response = client.post("/match?categories=coworking,GRANT", json=AUSTIN_PROFILE)

        assert response.status_code == 200
        assert list(response.json()["data"]["matches"]) == ["coworking", "grant"]

    def test_empty_profile(self, client):
        """An empty profile is valid; location-bound categories go to fallback."""
        response = client.post("/match", json={})

        assert response.status_code == 200
        matches = response.json()["data"]["matches"]
        assert "coworking" not in matches
        assert [item["id"] for item in matches["grant"]] == ["grant-women-founders"]

    def test_invalid_field(self, client):
        """Bad enum values are rejected with 400."""
        response = client.post("/match", json={"budget_level": "enormous"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "budget_level" in body["error"]

    def test_incomplete_location(self, client):
        response = client.post("/match", json={"location": {"city": "Austin"}})
        assert response.status_code == 400
        assert "location.state" in response.json()["error"]

    def test_non_object_body(self, client):
        response = client.post("/match", json=["environment"])
        assert response.status_code == 400
        assert response.json()["error"].startswith("Request body must be a JSON object")

    def test_malformed_json(self, client):
        response = client.post(
            "/match", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_catalog_unavailable(self, app_config):
        gateway = InMemoryGateway(load_fixture_catalog(), unavailable=True)
        with TestClient(create_app(app_config, EnvironmentConfig(), gateway=gateway)) as client:
            response = client.post("/match", json=AUSTIN_PROFILE)

        assert response.status_code == 503
        assert response.json() == {"success": False, "error": "Resource catalog is unavailable"}

    def test_timeout(self, app_config):
        """A match past its deadline returns 503."""
        gateway = BlockingGateway(load_fixture_catalog())
        matcher = ResourceMatcher(gateway, timeout_seconds=0.2)
        app = create_app(app_config, EnvironmentConfig(), gateway=gateway, matcher=matcher)
        try:
            with TestClient(app) as client:
                response = client.post("/match", json=AUSTIN_PROFILE)
        finally:
            gateway.release.set()

        assert response.status_code == 503
        assert response.json()["error"] == "Match timed out or was cancelled"

    def test_unexpected_error(self, app_config):
        """Anything else is a 500 with the error envelope."""

        class BrokenGateway(InMemoryGateway):
            def check_available(self):
                raise RuntimeError("boom")

        app = create_app(app_config, EnvironmentConfig(), gateway=BrokenGateway())
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.post("/match", json=AUSTIN_PROFILE)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}

class _DisconnectingRequest:
    """Stands in for a Starlette request whose client leaves after a few polls."""

    def __init__(self, disconnect_after):
        self.polls = 0
        self.disconnect_after = disconnect_after
        self.url = SimpleNamespace(path="/match")

    async def is_disconnected(self):
        self.polls += 1
        return self.polls >= self.disconnect_after


class TestClientDisconnect:
    """Cancelling in-flight matches when the caller goes away."""

    def test_watcher_sets_cancel_event(self):
        request = _DisconnectingRequest(disconnect_after=3)
        cancel_event = threading.Event()

        asyncio.run(cancel_on_disconnect(request, cancel_event, poll_interval=0))

        assert cancel_event.is_set()
        assert request.polls == 3

    def test_watcher_stops_when_already_cancelled(self):
        request = _DisconnectingRequest(disconnect_after=1)
        cancel_event = threading.Event()
        cancel_event.set()

        asyncio.run(cancel_on_disconnect(request, cancel_event, poll_interval=0))

        assert request.polls == 0

    def test_disconnect_cancels_blocked_match(self, app_config):
        """A blocked category pass is abandoned once the client disconnects."""
        gateway = BlockingGateway(load_fixture_catalog())
        app = create_app(app_config, EnvironmentConfig(), gateway=gateway)
        try:
            with patch.object(Request, "is_disconnected", new=AsyncMock(return_value=True)):
                with TestClient(app) as client:
                    response = client.post("/match", json=AUSTIN_PROFILE)
        finally:
            gateway.release.set()

        assert response.status_code == 503
        assert response.json()["error"] == "Match timed out or was cancelled"



class TestNarratedMatch:
    """POST /match?narrate=true."""

    def test_notes_attached(self, app_config, gateway):
        narrator = FixedNarrator(notes={"grant-austin-green-fund": "Made for you."})
        app = create_app(app_config, EnvironmentConfig(), gateway=gateway, narrator=narrator)
        with TestClient(app) as client:
            response = client.post("/match?narrate=true&categories=grant", json=AUSTIN_PROFILE)

        grants = response.json()["data"]["matches"]["grant"]
        assert grants[0]["relevance_note"] == "Made for you."
        assert grants[1]["relevance_note"] == GENERIC_RELEVANCE_NOTE

    def test_narration_failure_still_succeeds(self, app_config, gateway):
        narrator = FixedNarrator(error=NarrationHTTPError("HTTP 500", status_code=500, url="x"))
        app = create_app(app_config, EnvironmentConfig(), gateway=gateway, narrator=narrator)
        with TestClient(app) as client:
            response = client.post("/match?narrate=true&categories=coworking", json=AUSTIN_PROFILE)

        assert response.status_code == 200
        coworking = response.json()["data"]["matches"]["coworking"][0]
        assert coworking["relevance_note"] == "Desks and meeting rooms downtown."

    def test_narrated_responses_not_cached(self, app_config, gateway):
        narrator = FixedNarrator()
        app = create_app(app_config, EnvironmentConfig(), gateway=gateway, narrator=narrator)
        with TestClient(app) as client:
            client.post("/match?narrate=true", json=AUSTIN_PROFILE)
            client.post("/match?narrate=true", json=AUSTIN_PROFILE)

        assert narrator.calls == 2
        assert app.state.cache.stats()["size"] == 0


class TestResponseCaching:
    """Caching of non-narrated responses."""

    def test_repeat_request_served_from_cache(self, client, gateway):
        """An identical profile hits the cache and skips the catalog."""
        client.post("/match", json=AUSTIN_PROFILE)
        calls_after_first = len(gateway.calls)

        padded = dict(AUSTIN_PROFILE, location={"city": " Austin ", "state": "TX"})
        second = client.post("/match", json=padded)

        assert second.status_code == 200
        assert len(gateway.calls) == calls_after_first
        assert client.app.state.cache.stats()["hits"] == 1

    def test_cached_body_echoes_each_callers_profile(self, client):
        """Profiles differing in case or cause order get their own echo and reasons."""
        client.post(
            "/match?categories=grant",
            json={"cause_areas": ["environment"], "location": {"city": "Austin", "state": "TX"}},
        )
        response = client.post(
            "/match?categories=grant",
            json={"cause_areas": ["Environment"], "location": {"city": "AUSTIN", "state": "tx"}},
        )

        data = response.json()["data"]
        assert data["filters_applied"]["cause_areas"] == ["Environment"]
        assert data["filters_applied"]["location"] == {"city": "AUSTIN", "state": "tx"}
        assert data["matches"]["grant"][0]["match_reasons"][0] == "Located in AUSTIN"
        assert client.app.state.cache.stats()["hits"] == 0

    def test_cause_order_is_not_shared(self, client):
        client.post("/match", json={"cause_areas": ["arts_culture", "environment"]})
        response = client.post("/match", json={"cause_areas": ["environment", "arts_culture"]})

        assert response.json()["data"]["filters_applied"]["cause_areas"] == [
            "environment",
            "arts_culture",
        ]
        assert client.app.state.cache.stats()["hits"] == 0

    def test_cache_disabled(self, gateway):
        app_config = AppConfig(api={"cache_ttl": "0"})
        with TestClient(create_app(app_config, EnvironmentConfig(), gateway=gateway)) as client:
            client.post("/match", json=AUSTIN_PROFILE)
            calls_after_first = len(gateway.calls)
            client.post("/match", json=AUSTIN_PROFILE)

        assert len(gateway.calls) == 2 * calls_after_first


class TestCategoriesEndpoint:
    def test_counts_sorted(self, client):
        """Categories are sorted by count desc, then name, with registry settings."""
        response = client.get("/categories")

        assert response.status_code == 200
        data = response.json()["data"]
        assert [(c["category"], c["count"]) for c in data["categories"]] == [
            ("accelerator", 3),
            ("grant", 3),
            ("sba", 2),
            ("business-attorney", 1),
            ("coworking", 1),
        ]
        assert data["total"] == 10
        sba = next(c for c in data["categories"] if c["category"] == "sba")
        assert sba["strategy"] == "state-level"
        assert sba["limit"] == 3

    def test_unavailable(self, app_config):
        gateway = InMemoryGateway(unavailable=True)
        with TestClient(create_app(app_config, EnvironmentConfig(), gateway=gateway)) as client:
            response = client.get("/categories")
        assert response.status_code == 503


class TestHealthz:
    def test_ok(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == API_VERSION
        assert body["catalog"] == "available"
        assert body["narration"] == "disabled"
        assert body["cache"]["enabled"] is True
        assert body["started_at"].endswith("Z")

    def test_degraded(self, app_config):
        gateway = InMemoryGateway(unavailable=True)
        with TestClient(create_app(app_config, EnvironmentConfig(), gateway=gateway)) as client:
            response = client.get("/healthz")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
        assert response.json()["catalog"] == "unavailable"
