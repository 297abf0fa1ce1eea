"""Flight response models."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from dzt_travel.api.models import CamelModel


class AirportResult(CamelModel):
    name: str
    iata_code: str
    city: str | None = None
    country: str | None = None


class FlightEndpoint(CamelModel):
    time: str
    airport: str
    terminal: str | None = None


class FlightSegment(CamelModel):
    """One non-stop leg.  ``departure``/``arrival`` are passed through from the provider."""

    departure: dict[str, Any]
    arrival: dict[str, Any]
    airline: str
    flight_number: str
    duration: str


class FlightOffer(CamelModel):
    id: str
    price: float
    price_formatted: str | None = None
    currency: str
    departure: FlightEndpoint
    arrival: FlightEndpoint
    duration: str
    duration_minutes: int
    stops: int
    airline: str
    airline_code: str
    flight_number: str
    stopover: str | None = None
    segments: list[FlightSegment] | None = None


class FlightSearchResponse(CamelModel):
    """Live results carry ``origin``/``destination``; sample data carries ``mock``/``message``."""

    flights: list[FlightOffer] = Field(default_factory=list)
    origin: str | None = None
    destination: str | None = None
    mock: bool | None = None
    message: str | None = None
