"""Tests for the /api/flights endpoints."""

from __future__ import annotations

import httpx
import pytest

from dzt_travel.providers.flights import MOCK_MESSAGE, TOKEN_PATH

pytestmark = pytest.mark.unit

OFFERS = {
    "data": [
        {
            "id": "1",
            "price": {"grandTotal": "89.99", "currency": "EUR"},
            "itineraries": [
                {
                    "duration": "PT1H10M",
                    "segments": [
                        {
                            "departure": {"iataCode": "BER", "at": "2026-03-01T07:00:00"},
                            "arrival": {"iataCode": "MUC", "at": "2026-03-01T08:10:00",
                                        "terminal": "2"},
                            "carrierCode": "LH",
                            "number": "1934",
                            "duration": "PT1H10M",
                        }
                    ],
                }
            ],
        }
    ],
    "dictionaries": {"carriers": {"LH": "LUFTHANSA"}},
}


def _amadeus_handler(requests: list[httpx.Request], api_response: httpx.Response):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == TOKEN_PATH:
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 1799})
        return api_response

    return handler


# ---------------------------------------------------------------------------
# GET /api/flights/search
# ---------------------------------------------------------------------------


class TestFlightSearch:
    async def test_without_credentials_serves_sample_offers(self, api, use_flights):
        use_flights(configured=False)
        resp = await api("/api/flights/search", {"from": "Berlin", "to": "muc",
                                                 "date": "2026-03-01"})

        assert resp.status_code == 200
        assert "cache-control" not in resp.headers
        body = resp.json()
        assert body["mock"] is True
        assert body["message"] == MOCK_MESSAGE
        assert len(body["flights"]) == 3
        assert [f["stops"] for f in body["flights"]] == [0, 1, 0]
        assert body["flights"][0]["departure"] == {"time": "2026-03-01T08:30:00",
                                                   "airport": "BER"}
        assert body["flights"][1]["stopover"] == "DUS"
        assert "segments" not in body["flights"][0]

    async def test_live_results(self, api, use_flights):
        requests: list[httpx.Request] = []
        use_flights(_amadeus_handler(requests, httpx.Response(200, json=OFFERS)))
        resp = await api(
            "/api/flights/search",
            {"from": "BER", "to": "München", "date": "2026-03-01", "class": "business",
             "adults": "2"},
        )

        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "public, max-age=300"
        body = resp.json()
        assert body["origin"] == "BER"
        assert body["destination"] == "MUC"
        assert "mock" not in body
        flight = body["flights"][0]
        assert flight["price"] == 89.99
        assert flight["priceFormatted"] == "89,99 €"
        assert flight["airline"] == "LUFTHANSA"
        assert flight["arrival"] == {"time": "2026-03-01T08:10:00", "airport": "MUC",
                                     "terminal": "2"}
        assert flight["stops"] == 0

        params = requests[-1].url.params
        assert params["travelClass"] == "BUSINESS"
        assert params["adults"] == "2"

    async def test_rejected_credentials_degrade_to_samples(self, api, use_flights):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid_client"})

        use_flights(handler)
        resp = await api("/api/flights/search", {"from": "BER", "to": "MUC",
                                                 "date": "2026-03-01"})

        assert resp.status_code == 200
        assert resp.json()["mock"] is True

    async def test_other_upstream_errors_fail(self, api, use_flights):
        use_flights(_amadeus_handler([], httpx.Response(500, json={"errors": []})))
        resp = await api("/api/flights/search", {"from": "BER", "to": "MUC",
                                                 "date": "2026-03-01"})

        assert resp.status_code == 500
        assert resp.json()["error"]["provider"] == "amadeus"

    async def test_missing_params(self, api, use_flights):
        use_flights(configured=False)
        resp = await api("/api/flights/search", {"from": "BER", "to": "MUC"})

        assert resp.status_code == 400
        assert (
            resp.json()["error"]["message"]
            == 'Parameters "from", "to", and "date" are required'
        )

    async def test_unknown_airport_names_side(self, api, use_flights):
        use_flights(configured=False)
        resp = await api("/api/flights/search", {"from": "BER", "to": "Atlantis City",
                                                 "date": "2026-03-01"})

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == (
            "Unknown destination airport: Atlantis City. Use IATA code (e.g., FRA, MUC)."
        )

    @pytest.mark.parametrize(
        "params",
        [
            {"date": "01.03.2026"},
            {"date": "2026-02-30"},
            {"date": "2026-03-01", "class": "CARGO"},
            {"date": "2026-03-01", "return": "tomorrow"},
        ],
    )
    async def test_malformed_params(self, api, use_flights, params):
        use_flights(configured=False)
        resp = await api("/api/flights/search", {"from": "BER", "to": "MUC", **params})

        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# GET /api/flights/airports
# ---------------------------------------------------------------------------


class TestAirportSearch:
    async def test_local_tables_without_credentials(self, api, use_flights):
        use_flights(configured=False)
        resp = await api("/api/flights/airports", {"q": "Ham"})

        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "public, max-age=3600"
        assert {"name": "Hamburg Airport", "iataCode": "HAM", "city": "Hamburg",
                "country": "Germany"} in resp.json()

    async def test_live_lookup(self, api, use_flights):
        locations = {
            "data": [
                {
                    "name": "BERLIN BRANDENBURG",
                    "iataCode": "BER",
                    "address": {"cityName": "BERLIN", "countryName": "GERMANY"},
                }
            ]
        }
        use_flights(_amadeus_handler([], httpx.Response(200, json=locations)))
        resp = await api("/api/flights/airports", {"q": "Berlin"})

        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "public, max-age=3600"
        assert resp.json() == [
            {"name": "BERLIN BRANDENBURG", "iataCode": "BER", "city": "BERLIN",
             "country": "GERMANY"}
        ]

    async def test_live_failure_falls_back_uncached(self, api, use_flights):
        use_flights(_amadeus_handler([], httpx.Response(500)))
        resp = await api("/api/flights/airports", {"q": "LHR"})

        assert resp.status_code == 200
        assert "cache-control" not in resp.headers
        assert [a["iataCode"] for a in resp.json()] == ["LHR"]

    async def test_short_query(self, api, use_flights):
        use_flights(configured=False)
        resp = await api("/api/flights/airports", {"q": "B"})

        assert resp.status_code == 400


# ---------------------------------------------------------------------------
# GET /api/flights/dates
# ---------------------------------------------------------------------------


class TestFlightDates:
    async def test_without_credentials(self, api, use_flights):
        use_flights(configured=False)
        resp = await api("/api/flights/dates", {"from": "BER", "to": "MUC"})

        assert resp.status_code == 200
        assert resp.json() == {"data": [], "mock": True, "message": MOCK_MESSAGE}

    async def test_passthrough(self, api, use_flights):
        payload = {"data": [{"departureDate": "2026-03-04", "price": {"total": "49.00"}}]}
        use_flights(_amadeus_handler([], httpx.Response(200, json=payload)))
        resp = await api("/api/flights/dates", {"from": "Berlin", "to": "Köln"})

        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "public, max-age=300"
        assert resp.json() == payload
