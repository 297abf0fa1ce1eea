"""Provider client ownership and FastAPI dependency functions.

Provides:
- ``ProviderClients``: the three provider clients plus the HTTP client and
  caches they share, built once per application by ``init_clients()``.
- ``get_settings()`` / ``get_rail_client()`` / ``get_flight_client()`` /
  ``get_journey_planner()``: dependencies reading from ``app.state``.

Clients live on ``app.state`` (not module globals) so each app instance owns
its caches and flight token.  Tests replace them via ``dependency_overrides``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from dzt_travel.config import Settings
from dzt_travel.core.cache import EphemeralCache
from dzt_travel.providers.flights import AmadeusCredentials, FlightSearchClient
from dzt_travel.providers.journey_planner import JourneyPlannerClient
from dzt_travel.providers.rail import RailTransportClient

logger = logging.getLogger(__name__)


@dataclass
class ProviderClients:
    """Provider clients owned by one application instance."""

    http_client: httpx.AsyncClient
    rail: RailTransportClient
    flights: FlightSearchClient
    journey_planner: JourneyPlannerClient

    async def aclose(self) -> None:
        await self.http_client.aclose()
        logger.info("Provider clients closed")


def init_clients(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> ProviderClients:
    """Build provider clients from settings.

    Each provider gets its own :class:`EphemeralCache`; the underlying
    ``httpx.AsyncClient`` (connection pool) is shared.
    """
    if http_client is None:
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout, connect=min(10.0, settings.http_timeout))
        )

    credentials = (
        AmadeusCredentials(settings.amadeus_client_id, settings.amadeus_client_secret)
        if settings.amadeus_configured
        else None
    )
    if credentials is None:
        logger.warning("Amadeus credentials not configured; flight endpoints use sample data")

    rail = RailTransportClient(
        http_client=http_client,
        cache=EphemeralCache(settings.station_cache_ttl, max_entries=settings.cache_max_entries),
        base_url=settings.db_transport_base_url,
        station_cache_ttl=settings.station_cache_ttl,
    )
    flights = FlightSearchClient(
        credentials=credentials,
        http_client=http_client,
        cache=EphemeralCache(max_entries=settings.cache_max_entries),
        base_url=settings.amadeus_base_url,
    )
    journey_planner = JourneyPlannerClient(
        http_client=http_client,
        base_url=settings.motis_base_url,
    )
    return ProviderClients(
        http_client=http_client,
        rail=rail,
        flights=flights,
        journey_planner=journey_planner,
    )


def _clients(request: Request) -> ProviderClients:
    clients = getattr(request.app.state, "clients", None)
    if clients is None:
        raise RuntimeError("Provider clients not initialized: app lifespan has not run")
    return clients


def get_settings(request: Request) -> Settings:
    """FastAPI dependency: the settings the app was created with."""
    return request.app.state.settings


def get_rail_client(request: Request) -> RailTransportClient:
    """FastAPI dependency: the rail transport client."""
    return _clients(request).rail


def get_flight_client(request: Request) -> FlightSearchClient:
    """FastAPI dependency: the flight search client."""
    return _clients(request).flights


def get_journey_planner(request: Request) -> JourneyPlannerClient:
    """FastAPI dependency: the MOTIS journey planner client."""
    return _clients(request).journey_planner
