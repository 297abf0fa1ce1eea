"""Rail transport response models (stations, departures, journeys)."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from dzt_travel.api.models import CamelModel


class StationSearchResult(CamelModel):
    """A stop matched by free-text search.

    ``products`` maps service classes (``nationalExpress``, ``regional``,
    ``bus``, ...) to whether the stop is served by them.
    """

    id: str
    name: str
    lat: float | None = None
    lng: float | None = None
    products: dict[str, bool] | None = None


class StationRef(CamelModel):
    id: str
    name: str


class Departure(CamelModel):
    """One departure (or arrival) on a station board.

    ``time`` is ``None`` when the trip is cancelled.
    """

    time: str | None = None
    planned_time: str | None = None
    delay: str = ""
    delay_minutes: int = 0
    line: str | None = None
    product: str | None = None
    product_icon: str = ""
    direction: str | None = None
    platform: str | None = None
    planned_platform: str | None = None
    platform_changed: bool = False
    cancelled: bool = False
    remarks: list[str | None] | None = None


class DeparturesResponse(CamelModel):
    station: StationRef
    departures: list[Departure] = Field(default_factory=list)
    updated_at: int | None = None


class ArrivalsResponse(CamelModel):
    station: StationRef
    arrivals: list[Departure] = Field(default_factory=list)
    updated_at: int | None = None


class JourneyEndpoint(CamelModel):
    id: str | None = None
    name: str | None = None
    platform: str | None = None


class JourneyProduct(CamelModel):
    line: str | None = None
    product: str | None = None
    direction: str | None = None


class JourneyLeg(CamelModel):
    origin: str | None = None
    destination: str | None = None
    departure: str | None = None
    arrival: str | None = None
    line: str | None = None
    product: str | None = None
    direction: str | None = None
    walking: bool | None = None
    distance: int | float | None = None
    departure_platform: str | None = None
    arrival_platform: str | None = None
    departure_delay: str = ""
    arrival_delay: str = ""


class Journey(CamelModel):
    """A simplified journey.  ``transfers`` ignores walking legs."""

    departure: str | None = None
    planned_departure: str | None = None
    departure_delay: str = ""
    arrival: str | None = None
    planned_arrival: str | None = None
    arrival_delay: str = ""
    duration: str
    duration_minutes: int
    transfers: int
    price: dict[str, Any] | None = None
    origin: JourneyEndpoint
    destination: JourneyEndpoint
    products: list[JourneyProduct] = Field(default_factory=list)
    legs: list[JourneyLeg] = Field(default_factory=list)
    refresh_token: str | None = None


class JourneysResponse(CamelModel):
    journeys: list[Journey] = Field(default_factory=list)
    earlier_ref: str | None = None
    later_ref: str | None = None
