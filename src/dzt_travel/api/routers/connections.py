"""Door-to-door connections between German cities via MOTIS.

Provides:

- ``router``: ``GET /api/connections``
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query

from dzt_travel.api.deps import get_journey_planner
from dzt_travel.api.models.connections import Connection, ConnectionLeg, ConnectionsResponse
from dzt_travel.api.params import check_date, check_time, require_params
from dzt_travel.providers.journey_planner import (
    MAX_ITINERARIES,
    JourneyPlannerClient,
    format_clock,
    format_trip_duration,
    transport_modes,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["connections"])

DEFAULT_TIME = "10:00"


def _to_connection(itinerary: Mapping[str, Any]) -> Connection:
    legs = itinerary.get("legs") or []
    return Connection(
        abfahrt=format_clock(itinerary["startTime"]),
        ankunft=format_clock(itinerary["endTime"]),
        dauer=format_trip_duration(itinerary.get("duration") or 0),
        umstiege=itinerary.get("transfers") or 0,
        verkehrsmittel=transport_modes(legs),
        stationen=[
            ConnectionLeg(
                von=leg["from"].get("name"),
                nach=leg["to"].get("name"),
                modus=leg["mode"],
                abfahrt=format_clock(leg["from"].get("departure") or leg["startTime"]),
                ankunft=format_clock(leg["to"].get("arrival") or leg["endTime"]),
            )
            for leg in legs
        ],
    )


@router.get("/connections", response_model=ConnectionsResponse)
async def get_connections(
    from_: str | None = Query(None, alias="from", description="City name or 'lat,lon'"),
    to: str | None = Query(None, description="City name or 'lat,lon'"),
    date: str | None = Query(None, description="Travel date YYYY-MM-DD (default today, UTC)"),
    time: str | None = Query(None, description="Departure time HH:mm (default 10:00)"),
    planner: JourneyPlannerClient = Depends(get_journey_planner),
) -> ConnectionsResponse:
    """Plan up to five itineraries between two places."""
    require_params(from_=from_, to=to)
    travel_date = check_date(date) if date else datetime.now(UTC).date().isoformat()
    travel_time = check_time(time) if time else DEFAULT_TIME

    itineraries = await planner.plan_trip(from_, to, f"{travel_date}T{travel_time}:00Z")
    connections = [_to_connection(it) for it in itineraries[:MAX_ITINERARIES]]
    logger.debug("Planned %d connections %s -> %s", len(connections), from_, to)

    return ConnectionsResponse(
        von=from_,
        nach=to,
        datum=travel_date,
        anzahl=len(connections),
        verbindungen=connections,
    )
