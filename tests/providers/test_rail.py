"""Tests for the DB transport REST client and its formatting helpers."""

from __future__ import annotations

import httpx
import pytest

from dzt_travel.core.cache import EphemeralCache
from dzt_travel.providers.errors import ProviderRequestError, StationNotFoundError
from dzt_travel.providers.rail import (
    USER_AGENT,
    RailTransportClient,
    delay_minutes,
    filter_remarks,
    format_delay,
    format_duration,
    get_journey_duration,
    get_product_icon,
    get_transfer_count,
    platform_changed,
)

pytestmark = pytest.mark.unit

BASE_URL = "https://db.test"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestFormatDelay:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(None, ""), (0, ""), (120, "+2 min"), (-60, "-1 min"), (90, "+2 min")],
    )
    def test_format(self, seconds, expected):
        assert format_delay(seconds) == expected

    def test_minutes(self):
        assert delay_minutes(None) == 0
        assert delay_minutes(300) == 5
        assert delay_minutes(-120) == -2


class TestJourneyHelpers:
    def test_transfer_count_ignores_walking(self):
        journey = {
            "legs": [{"walking": True}, {"line": {}}, {"walking": True}, {"line": {}}],
        }
        assert get_transfer_count(journey) == 1

    def test_transfer_count_floor_zero(self):
        assert get_transfer_count({"legs": [{"walking": True}]}) == 0
        assert get_transfer_count({"legs": []}) == 0

    def test_duration_in_minutes(self):
        journey = {
            "legs": [
                {"departure": "2026-03-01T10:00:00+01:00", "arrival": "2026-03-01T11:00:00+01:00"},
                {"departure": "2026-03-01T11:10:00+01:00", "arrival": "2026-03-01T14:25:00+01:00"},
            ]
        }
        assert get_journey_duration(journey) == 265

    def test_duration_without_legs(self):
        assert get_journey_duration({"legs": []}) == 0

    def test_duration_of_cancelled_leg_uses_planned_times(self):
        journey = {
            "legs": [
                {
                    "departure": None,
                    "plannedDeparture": "2026-03-01T10:00:00+01:00",
                    "arrival": None,
                    "plannedArrival": "2026-03-01T11:30:00+01:00",
                    "cancelled": True,
                }
            ]
        }
        assert get_journey_duration(journey) == 90

    def test_duration_without_any_times(self):
        journey = {"legs": [{"departure": None, "arrival": None, "cancelled": True}]}
        assert get_journey_duration(journey) == 0

    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [(45, "45 Min"), (120, "2 Std"), (265, "4 Std 25 Min"), (0, "0 Min")],
    )
    def test_format_duration(self, minutes, expected):
        assert format_duration(minutes) == expected


class TestBoardHelpers:
    def test_product_icon(self):
        assert get_product_icon("nationalExpress") == "ICE"
        assert get_product_icon("suburban") == "S"
        assert get_product_icon("hovercraft") == "hovercraft"

    def test_platform_changed(self):
        assert platform_changed("7", "5")
        assert not platform_changed("5", "5")
        assert not platform_changed("5", None)
        assert platform_changed(None, "5")

    def test_filter_remarks_keeps_warnings_and_status(self):
        remarks = [
            {"type": "hint", "text": "Bicycles allowed"},
            {"type": "warning", "summary": "Construction", "text": "Long text"},
            {"type": "status", "text": "Train cancelled"},
        ]
        assert filter_remarks(remarks) == ["Construction", "Train cancelled"]

    def test_filter_remarks_none(self):
        assert filter_remarks(None) is None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class TestRailTransportClient:
    def _client(self, make_http_client, handler, cache: EphemeralCache | None = None):
        return RailTransportClient(
            http_client=make_http_client(handler),
            cache=cache,
            base_url=BASE_URL,
        )

    async def test_search_sends_headers_and_flags(self, make_http_client):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[{"id": "8011160", "name": "Berlin Hbf"}])

        rail = self._client(make_http_client, handler)
        stops = await rail.search_stations("Berlin", results=3)

        assert stops == [{"id": "8011160", "name": "Berlin Hbf"}]
        request = requests[0]
        assert request.url.path == "/locations"
        assert request.url.params["query"] == "Berlin"
        assert request.url.params["results"] == "3"
        assert request.url.params["stops"] == "true"
        assert request.url.params["addresses"] == "false"
        assert request.headers["User-Agent"] == USER_AGENT
        assert request.headers["Accept"] == "application/json"

    async def test_departures_are_cached_by_url(self, make_http_client):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"departures": []})

        rail = self._client(make_http_client, handler)
        await rail.get_departures("8011160", duration=60, results=20)
        await rail.get_departures("8011160", duration=60, results=20)
        await rail.get_departures("8011160", duration=30, results=20)

        assert calls == 2
        assert len(rail.cache) == 2

    async def test_cached_response_expires(self, make_http_client, clock):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"departures": []})

        rail = self._client(make_http_client, handler, cache=EphemeralCache(clock=clock))
        await rail.get_departures("8011160")
        clock.advance(31)
        await rail.get_departures("8011160")

        assert calls == 2

    async def test_journey_params(self, make_http_client):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"journeys": []})

        rail = self._client(make_http_client, handler)
        await rail.find_journeys(
            "8011160",
            "8000261",
            departure="2026-03-01T10:00",
            results=5,
            transfers=0,
            stopovers=True,
            products={"bus": False},
        )

        params = requests[0].url.params
        assert params["from"] == "8011160"
        assert params["to"] == "8000261"
        assert params["departure"] == "2026-03-01T10:00"
        assert params["results"] == "5"
        assert params["transfers"] == "0"
        assert params["stopovers"] == "true"
        assert params["bus"] == "false"

    async def test_non_success_status_raises(self, make_http_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        rail = self._client(make_http_client, handler)
        with pytest.raises(ProviderRequestError, match="DB API Error: 503 Service Unavailable"):
            await rail.get_stop("8011160")

    async def test_transport_error_raises(self, make_http_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        rail = self._client(make_http_client, handler)
        with pytest.raises(ProviderRequestError) as exc_info:
            await rail.get_stop("8011160")
        assert exc_info.value.provider == "db-transport"

    async def test_failed_response_not_cached(self, make_http_client):
        responses = [httpx.Response(500), httpx.Response(200, json={"id": "8011160"})]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        rail = self._client(make_http_client, handler)
        with pytest.raises(ProviderRequestError):
            await rail.get_stop("8011160")
        assert await rail.get_stop("8011160") == {"id": "8011160"}


class TestResolveStation:
    async def test_numeric_id_needs_no_request(self, make_http_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        rail = RailTransportClient(http_client=make_http_client(handler), base_url=BASE_URL)
        assert await rail.resolve_station("8011160") == ("8011160", "8011160")

    async def test_free_text_takes_top_search_result(self, make_http_client):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=[{"id": "8011160", "name": "Berlin Hbf"}])

        rail = RailTransportClient(http_client=make_http_client(handler), base_url=BASE_URL)
        assert await rail.resolve_station("Berlin") == ("8011160", "Berlin Hbf")
        assert requests[0].url.params["results"] == "1"

    async def test_no_match_raises_not_found(self, make_http_client):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[])

        rail = RailTransportClient(http_client=make_http_client(handler), base_url=BASE_URL)
        with pytest.raises(StationNotFoundError, match="Station not found: Atlantis"):
            await rail.resolve_station("Atlantis")
