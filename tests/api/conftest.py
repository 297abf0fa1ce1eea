"""Shared fixtures for the travel API tests.

Provider clients are real instances over ``httpx.MockTransport`` and are
swapped in through ``app.dependency_overrides``, so no lifespan or network
is needed.
"""

from __future__ import annotations

import httpx
import pytest
from fastapi import FastAPI

from dzt_travel.api.app import create_app
from dzt_travel.api.deps import get_flight_client, get_journey_planner, get_rail_client
from dzt_travel.config import Settings
from dzt_travel.providers.flights import AmadeusCredentials, FlightSearchClient
from dzt_travel.providers.journey_planner import JourneyPlannerClient
from dzt_travel.providers.rail import RailTransportClient

DB_BASE_URL = "https://db.test"
AMADEUS_BASE_URL = "https://amadeus.test"
MOTIS_BASE_URL = "https://motis.test/api/v1"


def _unexpected(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected upstream request: {request.url}")


@pytest.fixture
def app() -> FastAPI:
    return create_app(Settings())


@pytest.fixture
def api(app):
    """GET against the app through ``httpx.ASGITransport``."""

    async def _get(path: str, params: dict | None = None, **kwargs) -> httpx.Response:
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        ) as client:
            return await client.get(path, params=params, **kwargs)

    return _get


@pytest.fixture
def use_rail(app, make_http_client):
    def _install(handler=_unexpected) -> RailTransportClient:
        rail = RailTransportClient(http_client=make_http_client(handler), base_url=DB_BASE_URL)
        app.dependency_overrides[get_rail_client] = lambda: rail
        return rail

    return _install


@pytest.fixture
def use_flights(app, make_http_client):
    def _install(handler=_unexpected, *, configured: bool = True) -> FlightSearchClient:
        flights = FlightSearchClient(
            credentials=AmadeusCredentials("cid", "secret") if configured else None,
            http_client=make_http_client(handler),
            base_url=AMADEUS_BASE_URL,
        )
        app.dependency_overrides[get_flight_client] = lambda: flights
        return flights

    return _install


@pytest.fixture
def use_planner(app, make_http_client):
    def _install(handler=_unexpected) -> JourneyPlannerClient:
        planner = JourneyPlannerClient(http_client=make_http_client(handler), base_url=MOTIS_BASE_URL)
        app.dependency_overrides[get_journey_planner] = lambda: planner
        return planner

    return _install
