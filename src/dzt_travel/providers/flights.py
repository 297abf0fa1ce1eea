"""Amadeus Self-Service flight client.

Covers airport/city lookup, flight-offer search and cheapest-date search
against the Amadeus test environment (free tier: 2000 calls/month).

Credentials come from ``AMADEUS_CLIENT_ID`` / ``AMADEUS_CLIENT_SECRET``.
Without them the API layer falls back to the local airport tables and
sample offers defined here.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import httpx

from dzt_travel.core.cache import EphemeralCache
from dzt_travel.core.resolution import RawIdentifier, classify_airport
from dzt_travel.providers.errors import ProviderCredentialsError, ProviderRequestError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "amadeus"
DEFAULT_BASE_URL = "https://test.api.amadeus.com"
TOKEN_PATH = "/v1/security/oauth2/token"
TOKEN_REFRESH_MARGIN_SECONDS = 60.0

OFFERS_TTL = 300.0
AIRPORTS_TTL = 3600.0
FLIGHT_DATES_TTL = 300.0

LOCAL_SEARCH_LIMIT = 10
TRAVEL_CLASSES = ("ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST")

_DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")
_UMLAUT_FOLDS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})

# IATA codes for major German cities.
GERMAN_AIRPORTS: Mapping[str, str] = MappingProxyType(
    {
        "Berlin": "BER",
        "Frankfurt": "FRA",
        "München": "MUC",
        "Hamburg": "HAM",
        "Düsseldorf": "DUS",
        "Köln": "CGN",
        "Stuttgart": "STR",
        "Hannover": "HAJ",
        "Nürnberg": "NUE",
        "Leipzig": "LEJ",
        "Dresden": "DRS",
        "Bremen": "BRE",
    }
)

INTERNATIONAL_AIRPORTS: tuple[Mapping[str, str], ...] = tuple(
    MappingProxyType(airport)
    for airport in (
        {
            "name": "London Heathrow Airport",
            "iataCode": "LHR",
            "city": "London",
            "country": "United Kingdom",
        },
        {
            "name": "Paris Charles de Gaulle Airport",
            "iataCode": "CDG",
            "city": "Paris",
            "country": "France",
        },
        {
            "name": "Amsterdam Airport Schiphol",
            "iataCode": "AMS",
            "city": "Amsterdam",
            "country": "Netherlands",
        },
        {"name": "Madrid Barajas Airport", "iataCode": "MAD", "city": "Madrid", "country": "Spain"},
        {
            "name": "Barcelona El Prat Airport",
            "iataCode": "BCN",
            "city": "Barcelona",
            "country": "Spain",
        },
        {"name": "Rome Fiumicino Airport", "iataCode": "FCO", "city": "Rome", "country": "Italy"},
        {
            "name": "Vienna International Airport",
            "iataCode": "VIE",
            "city": "Vienna",
            "country": "Austria",
        },
        {"name": "Zurich Airport", "iataCode": "ZRH", "city": "Zurich", "country": "Switzerland"},
    )
)


def _fold(text: str) -> str:
    return text.strip().lower().translate(_UMLAUT_FOLDS)


# ---------------------------------------------------------------------------
# Airport resolution
# ---------------------------------------------------------------------------


def get_airport_code(city: str) -> str | None:
    """Map a German city name or an IATA code to an IATA code.

    Order: exact city match, then substring match in either direction, then
    any three-letter token taken literally.  Matching ignores case,
    surrounding whitespace and umlaut spelling (``Muenchen`` == ``München``).
    """
    folded = _fold(city)
    if not folded:
        return None

    for name, code in GERMAN_AIRPORTS.items():
        if _fold(name) == folded:
            return code

    for name, code in GERMAN_AIRPORTS.items():
        folded_name = _fold(name)
        if folded in folded_name or folded_name in folded:
            return code

    classified = classify_airport(city)
    if isinstance(classified, RawIdentifier):
        return classified.value
    return None


def search_local_airports(query: str) -> list[dict[str, str]]:
    """Search the static German and international airport tables."""
    normalized = query.strip().lower()
    folded = _fold(query)
    results: list[dict[str, str]] = []

    for city, code in GERMAN_AIRPORTS.items():
        if normalized in city.lower() or folded in _fold(city) or normalized in code.lower():
            results.append(
                {
                    "name": f"{city} Airport",
                    "iataCode": code,
                    "city": city,
                    "country": "Germany",
                }
            )

    for airport in INTERNATIONAL_AIRPORTS:
        if (
            normalized in airport["name"].lower()
            or normalized in airport["iataCode"].lower()
            or normalized in airport["city"].lower()
        ):
            results.append(dict(airport))

    return results[:LOCAL_SEARCH_LIMIT]


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def parse_duration(duration: str) -> str:
    """ISO 8601 duration to display text: ``"PT10H30M"`` → ``"10h 30m"``."""
    match = _DURATION_PATTERN.search(duration)
    if not match:
        return duration
    hours, minutes = match.groups()
    parts = [f"{hours}h" if hours else "", f"{minutes}m" if minutes else ""]
    return " ".join(part for part in parts if part)


def get_duration_minutes(duration: str) -> int:
    """ISO 8601 duration in whole minutes (0 if unparseable)."""
    match = _DURATION_PATTERN.search(duration)
    if not match:
        return 0
    hours, minutes = match.groups()
    return int(hours or 0) * 60 + int(minutes or 0)


def get_stops(itinerary: Mapping[str, Any]) -> int:
    """Intermediate stops: one fewer than the number of segments."""
    return len(itinerary.get("segments") or []) - 1


def format_price(price: str | float, currency: str) -> str:
    """German-locale currency text, e.g. ``"1.234,50 €"``."""
    amount = float(price)
    grouped = f"{amount:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    symbol = "€" if currency == "EUR" else currency
    return f"{grouped} {symbol}"


def get_airline_name(code: str, carriers: Mapping[str, str] | None = None) -> str:
    """Carrier name from the response dictionary, or the raw code."""
    if carriers and carriers.get(code):
        return carriers[code]
    return code


def transform_offer(
    offer: Mapping[str, Any],
    carriers: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Reshape one Amadeus flight offer.  Only the outbound itinerary is used."""
    outbound = offer["itineraries"][0]
    segments = outbound["segments"]
    first_segment = segments[0]
    last_segment = segments[-1]
    price = offer["price"]

    return {
        "id": offer["id"],
        "price": float(price["grandTotal"]),
        "priceFormatted": format_price(price["grandTotal"], price["currency"]),
        "currency": price["currency"],
        "departure": {
            "time": first_segment["departure"]["at"],
            "airport": first_segment["departure"]["iataCode"],
            "terminal": first_segment["departure"].get("terminal"),
        },
        "arrival": {
            "time": last_segment["arrival"]["at"],
            "airport": last_segment["arrival"]["iataCode"],
            "terminal": last_segment["arrival"].get("terminal"),
        },
        "duration": parse_duration(outbound["duration"]),
        "durationMinutes": sum(get_duration_minutes(seg["duration"]) for seg in segments),
        "stops": get_stops(outbound),
        "airline": get_airline_name(first_segment["carrierCode"], carriers),
        "airlineCode": first_segment["carrierCode"],
        "flightNumber": f"{first_segment['carrierCode']} {first_segment['number']}",
        "segments": [
            {
                "departure": seg["departure"],
                "arrival": seg["arrival"],
                "airline": get_airline_name(seg["carrierCode"], carriers),
                "flightNumber": f"{seg['carrierCode']} {seg['number']}",
                "duration": parse_duration(seg["duration"]),
            }
            for seg in segments
        ],
    }


MOCK_MESSAGE = "Amadeus API not configured. Showing example data."

# (id, dep clock, arr clock, duration, minutes, stops, airline, code, number, price delta, stopover)
_MOCK_TEMPLATES: tuple[tuple[Any, ...], ...] = (
    ("mock-1", "08:30", "10:15", "1h 45m", 105, 0, "Lufthansa", "LH", "123", 0, None),
    ("mock-2", "12:00", "14:30", "2h 30m", 150, 1, "Eurowings", "EW", "456", -20, "DUS"),
    ("mock-3", "18:45", "20:20", "1h 35m", 95, 0, "Lufthansa", "LH", "789", 30, None),
)


def mock_offers(
    origin: str,
    destination: str,
    date: str,
    rng: random.Random | None = None,
) -> dict[str, Any]:
    """Three sample offers for when live data is unavailable.

    Prices are random around a base fare in [50, 199] EUR; everything else is
    fixed.  The payload is flagged ``mock: true``.
    """
    rng = rng or random.Random()
    base_price = rng.randint(50, 199)

    flights = []
    for (
        offer_id,
        dep_clock,
        arr_clock,
        duration,
        minutes,
        stops,
        airline,
        code,
        number,
        delta,
        stopover,
    ) in _MOCK_TEMPLATES:
        price = base_price + delta
        flight: dict[str, Any] = {
            "id": offer_id,
            "price": price,
            "priceFormatted": format_price(price, "EUR"),
            "currency": "EUR",
            "departure": {"time": f"{date}T{dep_clock}:00", "airport": origin},
            "arrival": {"time": f"{date}T{arr_clock}:00", "airport": destination},
            "duration": duration,
            "durationMinutes": minutes,
            "stops": stops,
            "airline": airline,
            "airlineCode": code,
            "flightNumber": f"{code} {number}",
        }
        if stopover:
            flight["stopover"] = stopover
        flights.append(flight)

    return {"flights": flights, "mock": True, "message": MOCK_MESSAGE}


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AmadeusCredentials:
    """Client-credentials pair for the Amadeus OAuth endpoint."""

    client_id: str
    client_secret: str

    def __repr__(self) -> str:
        return f"AmadeusCredentials(client_id={self.client_id!r}, client_secret='***')"


class _AmadeusTokenHolder:
    """Client-credentials OAuth helper with an in-memory access-token cache."""

    def __init__(
        self,
        credentials: AmadeusCredentials,
        http_client: httpx.AsyncClient,
        base_url: str,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._credentials = credentials
        self._http_client = http_client
        self._token_url = f"{base_url}{TOKEN_PATH}"
        self._clock = clock
        self._access_token: str | None = None
        self._expires_at = 0.0
        self._refresh_lock = asyncio.Lock()

    async def get_access_token(self) -> str:
        if self._token_is_fresh():
            assert self._access_token is not None
            return self._access_token

        async with self._refresh_lock:
            if self._token_is_fresh():
                assert self._access_token is not None
                return self._access_token

            await self._refresh_access_token()
            assert self._access_token is not None
            return self._access_token

    def _token_is_fresh(self) -> bool:
        if self._access_token is None:
            return False
        return self._clock() < self._expires_at - TOKEN_REFRESH_MARGIN_SECONDS

    async def _refresh_access_token(self) -> None:
        try:
            response = await self._http_client.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._credentials.client_id,
                    "client_secret": self._credentials.client_secret,
                },
            )
        except httpx.HTTPError as exc:
            raise ProviderRequestError(
                PROVIDER_NAME, f"Amadeus auth request failed: {exc}"
            ) from exc

        if response.status_code in (400, 401, 403):
            raise ProviderCredentialsError(
                PROVIDER_NAME,
                f"Amadeus rejected the configured credentials ({response.status_code})",
                status_code=response.status_code,
            )
        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderRequestError(
                PROVIDER_NAME,
                f"Amadeus auth failed: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderRequestError(
                PROVIDER_NAME, "Amadeus token endpoint returned invalid JSON"
            ) from exc

        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(access_token, str) or not access_token:
            raise ProviderRequestError(
                PROVIDER_NAME, "Amadeus token response is missing an access_token"
            )

        expires_in = payload.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, int | float):
            expires_in = 1799

        self._access_token = access_token
        self._expires_at = self._clock() + float(expires_in)
        logger.info("Refreshed Amadeus access token (expires in %ss)", expires_in)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class FlightSearchClient:
    """Async client for the Amadeus flight APIs.

    Parameters
    ----------
    credentials:
        Client-credentials pair.  When ``None`` every live call raises
        :class:`ProviderCredentialsError`.
    http_client:
        Shared ``httpx.AsyncClient``.  A private one is created when omitted.
    cache:
        Cache owned by this client, keyed by request URL.
    base_url:
        Amadeus API root (test or production environment).
    """

    def __init__(
        self,
        *,
        credentials: AmadeusCredentials | None = None,
        http_client: httpx.AsyncClient | None = None,
        cache: EphemeralCache | None = None,
        base_url: str = DEFAULT_BASE_URL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._owns_http_client = http_client is None
        self._http_client = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(timeout=httpx.Timeout(20.0, connect=10.0))
        )
        self._cache = cache if cache is not None else EphemeralCache(OFFERS_TTL)
        self._base_url = base_url.rstrip("/")
        self._tokens = (
            _AmadeusTokenHolder(credentials, self._http_client, self._base_url, clock=clock)
            if credentials is not None
            else None
        )

    @property
    def configured(self) -> bool:
        """True when credentials are available for live calls."""
        return self._tokens is not None

    @property
    def cache(self) -> EphemeralCache:
        return self._cache

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    async def _request(self, path: str, params: Mapping[str, str], ttl: float) -> dict[str, Any]:
        url = str(httpx.URL(f"{self._base_url}{path}", params=dict(params)))
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug("Cache hit: %s", url)
            return cached

        if self._tokens is None:
            raise ProviderCredentialsError(
                PROVIDER_NAME,
                "Amadeus API credentials not configured. "
                "Set AMADEUS_CLIENT_ID and AMADEUS_CLIENT_SECRET.",
            )
        token = await self._tokens.get_access_token()

        logger.debug("GET %s", url)
        try:
            response = await self._http_client.get(
                url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise ProviderRequestError(PROVIDER_NAME, f"Amadeus request failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderRequestError(
                PROVIDER_NAME,
                _error_description(response),
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderRequestError(
                PROVIDER_NAME, "Amadeus returned invalid JSON", status_code=response.status_code
            ) from exc

        self._cache.put(url, data, ttl)
        return data

    async def search_airports(self, keyword: str) -> list[dict[str, Any]]:
        """Look up airports and cities by keyword."""
        params = {"keyword": keyword, "subType": "AIRPORT,CITY", "page[limit]": "10"}
        data = await self._request("/v1/reference-data/locations", params, AIRPORTS_TTL)
        return data.get("data") or []

    async def search_flights(
        self,
        *,
        origin: str,
        destination: str,
        departure_date: str,
        return_date: str | None = None,
        adults: int = 1,
        children: int | None = None,
        travel_class: str | None = None,
        non_stop: bool = False,
        max_results: int = 10,
    ) -> dict[str, Any]:
        """Search flight offers between two IATA codes (dates as ``YYYY-MM-DD``)."""
        params = {
            "originLocationCode": origin,
            "destinationLocationCode": destination,
            "departureDate": departure_date,
            "adults": str(adults or 1),
            "max": str(max_results or 10),
        }
        if return_date:
            params["returnDate"] = return_date
        if children:
            params["children"] = str(children)
        if travel_class:
            params["travelClass"] = travel_class
        if non_stop:
            params["nonStop"] = "true"

        return await self._request("/v2/shopping/flight-offers", params, OFFERS_TTL)

    async def get_flight_dates(self, *, origin: str, destination: str) -> dict[str, Any]:
        """Cheapest travel dates for a route."""
        params = {"origin": origin, "destination": destination}
        return await self._request("/v1/shopping/flight-dates", params, FLIGHT_DATES_TTL)


def _error_description(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        description = payload.get("error_description")
        if isinstance(description, str) and description.strip():
            return description.strip()
        errors = payload.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            detail = errors[0].get("detail") or errors[0].get("title")
            if isinstance(detail, str) and detail.strip():
                return detail.strip()
    return f"Amadeus API error: {response.status_code}"
