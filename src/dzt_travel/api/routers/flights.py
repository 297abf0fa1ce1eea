"""Flight endpoints: airport lookup, offer search and cheapest dates.

Provides:

- ``router``: endpoints under ``/api/flights``

Without Amadeus credentials the airport lookup answers from the static
tables and the offer search serves sample offers flagged ``mock: true``.
The same sample offers are served when Amadeus rejects the credentials.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, Depends, Query, Response

from dzt_travel.api.deps import get_flight_client
from dzt_travel.api.models.flights import AirportResult, FlightSearchResponse
from dzt_travel.api.params import check_date, require_params, require_search_query
from dzt_travel.providers.errors import (
    InvalidRequestError,
    ProviderCredentialsError,
    ProviderError,
    UnknownAirportError,
)
from dzt_travel.providers.flights import (
    MOCK_MESSAGE,
    TRAVEL_CLASSES,
    FlightSearchClient,
    get_airport_code,
    mock_offers,
    search_local_airports,
    transform_offer,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/flights", tags=["flights"])

_AIRPORTS_CACHE_CONTROL = "public, max-age=3600"
_OFFERS_CACHE_CONTROL = "public, max-age=300"


def _to_airport_result(location: Mapping[str, Any]) -> AirportResult:
    address = location.get("address") or {}
    return AirportResult(
        name=location.get("name") or location.get("iataCode", ""),
        iata_code=location.get("iataCode", ""),
        city=address.get("cityName"),
        country=address.get("countryName"),
    )


def _resolve_airport(value: str, side: str) -> str:
    code = get_airport_code(value)
    if code is None:
        raise UnknownAirportError(value, side=side)
    return code


# ---------------------------------------------------------------------------
# GET /api/flights/airports
# ---------------------------------------------------------------------------


@router.get("/airports", response_model=list[AirportResult])
async def search_airports(
    response: Response,
    q: str | None = Query(None, description="Airport, city or IATA code (min 2 characters)"),
    flights: FlightSearchClient = Depends(get_flight_client),
) -> list[AirportResult]:
    """Search airports by keyword."""
    query = require_search_query(q)

    if not flights.configured:
        response.headers["Cache-Control"] = _AIRPORTS_CACHE_CONTROL
        return [AirportResult.model_validate(a) for a in search_local_airports(query)]

    try:
        locations = await flights.search_airports(query)
    except ProviderError:
        logger.warning("Airport search failed; answering from local tables", exc_info=True)
        return [AirportResult.model_validate(a) for a in search_local_airports(query)]

    response.headers["Cache-Control"] = _AIRPORTS_CACHE_CONTROL
    return [_to_airport_result(location) for location in locations]


# ---------------------------------------------------------------------------
# GET /api/flights/search
# ---------------------------------------------------------------------------


@router.get(
    "/search",
    response_model=FlightSearchResponse,
    response_model_exclude_none=True,
)
async def search_flights(
    response: Response,
    from_: str | None = Query(None, alias="from", description="Origin city or IATA code"),
    to: str | None = Query(None, description="Destination city or IATA code"),
    date: str | None = Query(None, description="Departure date YYYY-MM-DD"),
    return_: str | None = Query(None, alias="return", description="Return date YYYY-MM-DD"),
    adults: int = Query(1, ge=1, le=9, description="Number of adult passengers"),
    travel_class: str = Query("ECONOMY", alias="class", description="Cabin class"),
    flights: FlightSearchClient = Depends(get_flight_client),
) -> FlightSearchResponse:
    """Search flight offers, falling back to sample offers without credentials."""
    require_params(from_=from_, to=to, date=date)
    check_date(date)
    if return_:
        check_date(return_, name="return")
    cabin = travel_class.strip().upper()
    if cabin not in TRAVEL_CLASSES:
        raise InvalidRequestError(
            f'Parameter "class" must be one of: {", ".join(TRAVEL_CLASSES)}'
        )

    origin = _resolve_airport(from_, "origin")
    destination = _resolve_airport(to, "destination")

    if not flights.configured:
        return FlightSearchResponse.model_validate(mock_offers(origin, destination, date))

    try:
        data = await flights.search_flights(
            origin=origin,
            destination=destination,
            departure_date=date,
            return_date=return_ or None,
            adults=adults,
            travel_class=cabin,
            max_results=10,
        )
    except ProviderCredentialsError as exc:
        logger.warning("Amadeus rejected credentials (%s); serving sample offers", exc.message)
        return FlightSearchResponse.model_validate(mock_offers(origin, destination, date))

    carriers = (data.get("dictionaries") or {}).get("carriers")
    offers = [transform_offer(offer, carriers) for offer in data.get("data") or []]

    response.headers["Cache-Control"] = _OFFERS_CACHE_CONTROL
    return FlightSearchResponse.model_validate(
        {"flights": offers, "origin": origin, "destination": destination}
    )


# ---------------------------------------------------------------------------
# GET /api/flights/dates
# ---------------------------------------------------------------------------


@router.get("/dates")
async def get_flight_dates(
    response: Response,
    from_: str | None = Query(None, alias="from", description="Origin city or IATA code"),
    to: str | None = Query(None, description="Destination city or IATA code"),
    flights: FlightSearchClient = Depends(get_flight_client),
) -> dict[str, Any]:
    """Cheapest departure dates for a route, as returned by Amadeus."""
    require_params(from_=from_, to=to)
    origin = _resolve_airport(from_, "origin")
    destination = _resolve_airport(to, "destination")

    unavailable = {"data": [], "mock": True, "message": MOCK_MESSAGE}
    if not flights.configured:
        return unavailable

    try:
        data = await flights.get_flight_dates(origin=origin, destination=destination)
    except ProviderCredentialsError as exc:
        logger.warning("Amadeus rejected credentials (%s); no flight dates", exc.message)
        return unavailable

    response.headers["Cache-Control"] = _OFFERS_CACHE_CONTROL
    return data
