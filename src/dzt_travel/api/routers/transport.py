"""Rail transport endpoints: station search, live boards and journeys.

Provides:

- ``router``: endpoints under ``/api/transport``

Station parameters accept either a 7–8 digit station ID or free text; free
text is resolved to the best-matching stop before the main request.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, Depends, Query, Response

from dzt_travel.api.deps import get_rail_client
from dzt_travel.api.models.transport import (
    ArrivalsResponse,
    Departure,
    DeparturesResponse,
    Journey,
    JourneyEndpoint,
    JourneyLeg,
    JourneyProduct,
    JourneysResponse,
    StationRef,
    StationSearchResult,
)
from dzt_travel.api.params import clamp, require_params, require_search_query
from dzt_travel.providers.rail import (
    MAX_DEPARTURE_RESULTS,
    MAX_DEPARTURE_WINDOW_MINUTES,
    MAX_JOURNEY_RESULTS,
    MAX_STATION_RESULTS,
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

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transport", tags=["transport"])

_SEARCH_CACHE_CONTROL = "public, max-age=3600"
_BOARD_CACHE_CONTROL = "public, max-age=30"
_JOURNEYS_CACHE_CONTROL = "public, max-age=60"


# ---------------------------------------------------------------------------
# Transform helpers
# ---------------------------------------------------------------------------


def _to_station_result(stop: Mapping[str, Any]) -> StationSearchResult:
    location = stop.get("location") or {}
    return StationSearchResult(
        id=str(stop["id"]),
        name=stop["name"],
        lat=location.get("latitude"),
        lng=location.get("longitude"),
        products=stop.get("products"),
    )


def _to_board_entry(entry: Mapping[str, Any]) -> Departure:
    """Shape a departure or arrival; arrivals carry ``provenance`` instead of ``direction``."""
    line = entry.get("line") or {}
    product = line.get("product")
    return Departure(
        time=entry.get("when"),
        planned_time=entry.get("plannedWhen"),
        delay=format_delay(entry.get("delay")),
        delay_minutes=delay_minutes(entry.get("delay")),
        line=line.get("name"),
        product=product,
        product_icon=get_product_icon(product or ""),
        direction=entry.get("direction") or entry.get("provenance"),
        platform=entry.get("platform"),
        planned_platform=entry.get("plannedPlatform"),
        platform_changed=platform_changed(entry.get("platform"), entry.get("plannedPlatform")),
        cancelled=entry.get("when") is None,
        remarks=filter_remarks(entry.get("remarks")),
    )


def _board_entries(payload: Any, key: str) -> tuple[list[Mapping[str, Any]], int | None]:
    # Older API versions return a bare list instead of {departures: [...]}.
    if isinstance(payload, list):
        return payload, None
    return payload.get(key) or [], payload.get("realtimeDataUpdatedAt")


def _to_journey(journey: Mapping[str, Any]) -> Journey:
    legs = journey["legs"]
    first_leg = legs[0]
    last_leg = legs[-1]
    minutes = get_journey_duration(journey)

    return Journey(
        departure=first_leg.get("departure"),
        planned_departure=first_leg.get("plannedDeparture"),
        departure_delay=format_delay(first_leg.get("departureDelay")),
        arrival=last_leg.get("arrival"),
        planned_arrival=last_leg.get("plannedArrival"),
        arrival_delay=format_delay(last_leg.get("arrivalDelay")),
        duration=format_duration(minutes),
        duration_minutes=minutes,
        transfers=get_transfer_count(journey),
        price=journey.get("price"),
        origin=JourneyEndpoint(
            id=first_leg["origin"].get("id"),
            name=first_leg["origin"].get("name"),
            platform=first_leg.get("departurePlatform"),
        ),
        destination=JourneyEndpoint(
            id=last_leg["destination"].get("id"),
            name=last_leg["destination"].get("name"),
            platform=last_leg.get("arrivalPlatform"),
        ),
        products=[
            JourneyProduct(
                line=leg["line"].get("name"),
                product=leg["line"].get("product"),
                direction=leg.get("direction"),
            )
            for leg in legs
            if not leg.get("walking") and leg.get("line")
        ],
        legs=[
            JourneyLeg(
                origin=leg["origin"].get("name"),
                destination=leg["destination"].get("name"),
                departure=leg.get("departure"),
                arrival=leg.get("arrival"),
                line=(leg.get("line") or {}).get("name"),
                product=(leg.get("line") or {}).get("product"),
                direction=leg.get("direction"),
                walking=leg.get("walking"),
                distance=leg.get("distance"),
                departure_platform=leg.get("departurePlatform"),
                arrival_platform=leg.get("arrivalPlatform"),
                departure_delay=format_delay(leg.get("departureDelay")),
                arrival_delay=format_delay(leg.get("arrivalDelay")),
            )
            for leg in legs
        ],
        refresh_token=journey.get("refreshToken"),
    )


# ---------------------------------------------------------------------------
# GET /api/transport/search
# ---------------------------------------------------------------------------


@router.get("/search", response_model=list[StationSearchResult])
async def search_stations(
    response: Response,
    q: str | None = Query(None, description="Station name (min 2 characters)"),
    limit: int = Query(10, description="Max results (capped at 20)"),
    rail: RailTransportClient = Depends(get_rail_client),
) -> list[StationSearchResult]:
    """Search train stations and stops by name."""
    query = require_search_query(q)
    stops = await rail.search_stations(
        query,
        results=clamp(limit, MAX_STATION_RESULTS),
        stops=True,
        addresses=False,
        poi=False,
    )
    response.headers["Cache-Control"] = _SEARCH_CACHE_CONTROL
    return [_to_station_result(stop) for stop in stops]


# ---------------------------------------------------------------------------
# GET /api/transport/departures, /api/transport/arrivals
# ---------------------------------------------------------------------------


@router.get("/departures", response_model=DeparturesResponse)
async def get_departures(
    response: Response,
    station: str | None = Query(None, description="Station ID or name"),
    duration: int = Query(60, description="Time window in minutes (capped at 720)"),
    results: int = Query(20, description="Max departures (capped at 50)"),
    rail: RailTransportClient = Depends(get_rail_client),
) -> DeparturesResponse:
    """Live departures from a station."""
    require_params(station=station)
    station_id, station_name = await rail.resolve_station(station.strip())

    payload = await rail.get_departures(
        station_id,
        duration=clamp(duration, MAX_DEPARTURE_WINDOW_MINUTES),
        results=clamp(results, MAX_DEPARTURE_RESULTS),
    )
    entries, updated_at = _board_entries(payload, "departures")

    response.headers["Cache-Control"] = _BOARD_CACHE_CONTROL
    return DeparturesResponse(
        station=StationRef(id=station_id, name=station_name),
        departures=[_to_board_entry(entry) for entry in entries],
        updated_at=updated_at,
    )


@router.get("/arrivals", response_model=ArrivalsResponse)
async def get_arrivals(
    response: Response,
    station: str | None = Query(None, description="Station ID or name"),
    duration: int = Query(60, description="Time window in minutes (capped at 720)"),
    results: int = Query(20, description="Max arrivals (capped at 50)"),
    rail: RailTransportClient = Depends(get_rail_client),
) -> ArrivalsResponse:
    """Live arrivals at a station."""
    require_params(station=station)
    station_id, station_name = await rail.resolve_station(station.strip())

    payload = await rail.get_arrivals(
        station_id,
        duration=clamp(duration, MAX_DEPARTURE_WINDOW_MINUTES),
        results=clamp(results, MAX_DEPARTURE_RESULTS),
    )
    entries, updated_at = _board_entries(payload, "arrivals")

    response.headers["Cache-Control"] = _BOARD_CACHE_CONTROL
    return ArrivalsResponse(
        station=StationRef(id=station_id, name=station_name),
        arrivals=[_to_board_entry(entry) for entry in entries],
        updated_at=updated_at,
    )


# ---------------------------------------------------------------------------
# GET /api/transport/journeys
# ---------------------------------------------------------------------------


@router.get("/journeys", response_model=JourneysResponse)
async def find_journeys(
    response: Response,
    from_: str | None = Query(None, alias="from", description="Origin station ID or name"),
    to: str | None = Query(None, description="Destination station ID or name"),
    when: str | None = Query(None, description="Departure time (ISO 8601); default now"),
    results: int = Query(5, description="Max journeys (capped at 10)"),
    transfers: int | None = Query(None, description="Max transfers"),
    rail: RailTransportClient = Depends(get_rail_client),
) -> JourneysResponse:
    """Train connections between two stations."""
    require_params(from_=from_, to=to)
    from_id, _ = await rail.resolve_station(from_.strip())
    to_id, _ = await rail.resolve_station(to.strip())

    payload = await rail.find_journeys(
        from_id,
        to_id,
        departure=when or None,
        results=clamp(results, MAX_JOURNEY_RESULTS),
        transfers=transfers,
        stopovers=True,
    )

    response.headers["Cache-Control"] = _JOURNEYS_CACHE_CONTROL
    return JourneysResponse(
        journeys=[_to_journey(journey) for journey in payload.get("journeys") or []],
        earlier_ref=payload.get("earlierRef"),
        later_ref=payload.get("laterRef"),
    )


@router.get("/journeys/refresh", response_model=Journey)
async def refresh_journey(
    response: Response,
    token: str | None = Query(None, description="Journey refresh token"),
    rail: RailTransportClient = Depends(get_rail_client),
) -> Journey:
    """Re-fetch one journey with current realtime data."""
    require_params(token=token)
    payload = await rail.refresh_journey(token)
    journey = payload.get("journey", payload)

    response.headers["Cache-Control"] = _BOARD_CACHE_CONTROL
    return _to_journey(journey)
