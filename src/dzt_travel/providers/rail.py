"""Deutsche Bahn transport client: wraps the public ``v6.db.transport.rest`` API.

Responses use the FPTF shape (stops, lines, legs, journeys) and are returned
as plain dicts.  Every GET goes through the client's :class:`EphemeralCache`,
keyed by the full request URL.

Rate limit upstream is 100 requests/minute; no API key is required.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from dzt_travel.core.cache import EphemeralCache
from dzt_travel.core.resolution import FreeTextQuery, classify_station
from dzt_travel.providers.errors import ProviderRequestError, StationNotFoundError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "db-transport"
DEFAULT_BASE_URL = "https://v6.db.transport.rest"
USER_AGENT = "dzt-tourism-platform/0.1.0"

STATION_SEARCH_TTL = 60.0
STOP_TTL = 60.0
REALTIME_TTL = 30.0
JOURNEYS_TTL = 60.0

MAX_DEPARTURE_WINDOW_MINUTES = 720
MAX_DEPARTURE_RESULTS = 50
MAX_JOURNEY_RESULTS = 10
MAX_STATION_RESULTS = 20

# Product filters accepted by departures/arrivals/journeys, in request order.
PRODUCT_FILTERS: tuple[str, ...] = (
    "nationalExpress",
    "national",
    "regionalExp",
    "regional",
    "suburban",
    "bus",
)

# Service classes a stop may offer.  Flags are independent, not exclusive.
PRODUCT_CLASSES: tuple[str, ...] = (
    "nationalExpress",  # ICE
    "national",  # IC/EC
    "regionalExp",  # RE
    "regional",  # RB
    "suburban",  # S-Bahn
    "bus",
    "ferry",
    "subway",  # U-Bahn
    "tram",
    "taxi",
)

_PRODUCT_ICONS: dict[str, str] = {
    "nationalExpress": "ICE",
    "national": "IC",
    "regionalExp": "RE",
    "regional": "RB",
    "suburban": "S",
    "subway": "U",
    "tram": "Tram",
    "bus": "Bus",
    "ferry": "Fähre",
    "taxi": "Taxi",
}

_SURFACED_REMARK_TYPES = frozenset({"warning", "status"})


def _js_round(value: float) -> int:
    """Round half up, the way the upstream frontend rounds minutes."""
    return math.floor(value + 0.5)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _timestamp(value: str | datetime) -> str:
    return value.isoformat() if isinstance(value, datetime) else value


class RailTransportClient:
    """Async client for the DB transport REST API.

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``.  A private one is created (and closed
        by :meth:`aclose`) when omitted.
    cache:
        Cache owned by this client.  A fresh unbounded one is created when
        omitted.
    base_url:
        API root, without trailing slash.
    station_cache_ttl:
        TTL in seconds for station search results.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        cache: EphemeralCache | None = None,
        base_url: str = DEFAULT_BASE_URL,
        station_cache_ttl: float = STATION_SEARCH_TTL,
    ) -> None:
        self._owns_http_client = http_client is None
        self._http_client = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(timeout=httpx.Timeout(20.0, connect=10.0))
        )
        self._cache = cache if cache is not None else EphemeralCache(STATION_SEARCH_TTL)
        self._base_url = base_url.rstrip("/")
        self._station_cache_ttl = station_cache_ttl

    @property
    def cache(self) -> EphemeralCache:
        return self._cache

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _build_url(self, path: str, params: Mapping[str, str] | None = None) -> str:
        return str(httpx.URL(f"{self._base_url}{path}", params=dict(params or {})))

    async def _fetch(self, url: str, ttl: float) -> Any:
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug("Cache hit: %s", url)
            return cached

        logger.debug("GET %s", url)
        try:
            response = await self._http_client.get(
                url,
                headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            )
        except httpx.HTTPError as exc:
            raise ProviderRequestError(PROVIDER_NAME, f"DB API request failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderRequestError(
                PROVIDER_NAME,
                f"DB API Error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderRequestError(
                PROVIDER_NAME,
                "DB API returned invalid JSON",
                status_code=response.status_code,
            ) from exc

        self._cache.put(url, data, ttl)
        return data

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def search_stations(
        self,
        query: str,
        *,
        results: int = 10,
        stops: bool = True,
        addresses: bool = False,
        poi: bool = False,
    ) -> list[dict[str, Any]]:
        """Search stops/stations by free text."""
        params = {
            "query": query,
            "results": str(results),
            "stops": _flag(stops),
            "addresses": _flag(addresses),
            "poi": _flag(poi),
        }
        data = await self._fetch(self._build_url("/locations", params), self._station_cache_ttl)
        return data if isinstance(data, list) else []

    async def get_stop(self, stop_id: str) -> dict[str, Any]:
        """Fetch a single stop by ID."""
        return await self._fetch(self._build_url(f"/stops/{quote(stop_id, safe='')}"), STOP_TTL)

    async def get_departures(
        self,
        stop_id: str,
        *,
        when: str | datetime | None = None,
        duration: int | None = None,
        results: int | None = None,
        products: Mapping[str, bool] | None = None,
    ) -> dict[str, Any]:
        """Live departures at a stop.  ``duration`` is the window in minutes."""
        params = self._board_params(when, duration, results, products)
        url = self._build_url(f"/stops/{quote(stop_id, safe='')}/departures", params)
        return await self._fetch(url, REALTIME_TTL)

    async def get_arrivals(
        self,
        stop_id: str,
        *,
        when: str | datetime | None = None,
        duration: int | None = None,
        results: int | None = None,
    ) -> dict[str, Any]:
        """Live arrivals at a stop."""
        params = self._board_params(when, duration, results, None)
        url = self._build_url(f"/stops/{quote(stop_id, safe='')}/arrivals", params)
        return await self._fetch(url, REALTIME_TTL)

    async def find_journeys(
        self,
        from_id: str,
        to_id: str,
        *,
        via: str | None = None,
        departure: str | datetime | None = None,
        arrival: str | datetime | None = None,
        results: int | None = None,
        stopovers: bool | None = None,
        transfers: int | None = None,
        transfer_time: int | None = None,
        tickets: bool | None = None,
        products: Mapping[str, bool] | None = None,
    ) -> dict[str, Any]:
        """Journeys from A to B.  ``transfers=-1`` means unlimited."""
        params: dict[str, str] = {"from": from_id, "to": to_id}
        if via:
            params["via"] = via
        if departure:
            params["departure"] = _timestamp(departure)
        if arrival:
            params["arrival"] = _timestamp(arrival)
        if results:
            params["results"] = str(results)
        if stopovers is not None:
            params["stopovers"] = _flag(stopovers)
        if transfers is not None:
            params["transfers"] = str(transfers)
        if transfer_time:
            params["transferTime"] = str(transfer_time)
        if tickets is not None:
            params["tickets"] = _flag(tickets)
        params.update(_product_params(products))

        return await self._fetch(self._build_url("/journeys", params), JOURNEYS_TTL)

    async def refresh_journey(self, refresh_token: str) -> dict[str, Any]:
        """Re-fetch a journey for updated realtime data."""
        url = self._build_url(f"/journeys/{quote(refresh_token, safe='')}")
        return await self._fetch(url, REALTIME_TTL)

    async def resolve_station(self, token: str) -> tuple[str, str]:
        """Return ``(station_id, display_name)`` for an ID or a free-text query.

        Raises
        ------
        StationNotFoundError
            If the free-text search returns no stop.
        """
        classified = classify_station(token)
        if not isinstance(classified, FreeTextQuery):
            return classified.value, classified.value

        stops = await self.search_stations(classified.text, results=1)
        if not stops:
            raise StationNotFoundError(token)
        top = stops[0]
        return str(top["id"]), top.get("name") or token

    @staticmethod
    def _board_params(
        when: str | datetime | None,
        duration: int | None,
        results: int | None,
        products: Mapping[str, bool] | None,
    ) -> dict[str, str]:
        params: dict[str, str] = {}
        if when:
            params["when"] = _timestamp(when)
        if duration:
            params["duration"] = str(duration)
        if results:
            params["results"] = str(results)
        params.update(_product_params(products))
        return params


def _product_params(products: Mapping[str, bool] | None) -> dict[str, str]:
    if not products:
        return {}
    return {name: _flag(products[name]) for name in PRODUCT_FILTERS if name in products}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_delay(delay_seconds: int | float | None) -> str:
    """Human-readable delay: ``""`` for none/zero, else ``"+N min"`` / ``"-N min"``."""
    if delay_seconds is None or delay_seconds == 0:
        return ""
    minutes = _js_round(delay_seconds / 60)
    if minutes > 0:
        return f"+{minutes} min"
    return f"{minutes} min"


def delay_minutes(delay_seconds: int | float | None) -> int:
    """Delay rounded to whole minutes, 0 when unknown."""
    if not delay_seconds:
        return 0
    return _js_round(delay_seconds / 60)


def get_journey_duration(journey: Mapping[str, Any]) -> int:
    """Minutes between the first leg's departure and the last leg's arrival.

    Cancelled legs carry no realtime times, so the planned ones stand in.
    Returns 0 when either end has no time at all.
    """
    legs = journey.get("legs") or []
    if not legs:
        return 0
    departure = legs[0].get("departure") or legs[0].get("plannedDeparture")
    arrival = legs[-1].get("arrival") or legs[-1].get("plannedArrival")
    if not departure or not arrival:
        return 0
    start = datetime.fromisoformat(departure)
    end = datetime.fromisoformat(arrival)
    return _js_round((end - start).total_seconds() / 60)


def format_duration(minutes: int) -> str:
    """Format minutes as ``"N Min"``, ``"N Std"`` or ``"N Std M Min"``."""
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins} Min"
    if mins == 0:
        return f"{hours} Std"
    return f"{hours} Std {mins} Min"


def get_transfer_count(journey: Mapping[str, Any]) -> int:
    """Number of changes; walking legs are not transport legs."""
    transport_legs = [leg for leg in journey.get("legs") or [] if not leg.get("walking")]
    return max(0, len(transport_legs) - 1)


def get_product_icon(product: str) -> str:
    """Short label for a product class (``nationalExpress`` → ``ICE``)."""
    return _PRODUCT_ICONS.get(product, product)


def platform_changed(platform: str | None, planned_platform: str | None) -> bool:
    """True when the actual platform differs from a known planned one."""
    return planned_platform is not None and platform != planned_platform


def filter_remarks(remarks: list[Mapping[str, Any]] | None) -> list[str | None] | None:
    """Keep warning/status remarks, preferring the summary over the full text."""
    if remarks is None:
        return None
    return [
        remark.get("summary") or remark.get("text")
        for remark in remarks
        if remark.get("type") in _SURFACED_REMARK_TYPES
    ]
