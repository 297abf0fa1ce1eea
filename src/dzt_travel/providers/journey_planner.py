"""MOTIS journey planner client: multimodal trip planning across Europe.

City names are mapped to coordinates through a static table of German
cities; callers may also pass ``"lat,lon"`` pairs directly.  Results are not
cached.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any
from zoneinfo import ZoneInfo

import httpx

from dzt_travel.core.resolution import FreeTextQuery, classify_location
from dzt_travel.providers.errors import ProviderRequestError, UnknownLocationError

logger = logging.getLogger(__name__)

PROVIDER_NAME = "motis"
DEFAULT_BASE_URL = "https://europe.motis-project.de/api/v1"
MAX_ITINERARIES = 5
DISPLAY_TIMEZONE = ZoneInfo("Europe/Berlin")

_UMLAUT_FOLDS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})

# German cities -> "lat,lon".  Keys are folded (lower case, umlauts spelled out).
CITY_COORDS: Mapping[str, str] = MappingProxyType(
    {
        "berlin": "52.5200,13.4050",
        "hamburg": "53.5511,9.9937",
        "muenchen": "48.1351,11.5820",
        "koeln": "50.9375,6.9603",
        "frankfurt": "50.1109,8.6821",
        "duesseldorf": "51.2277,6.7735",
        "stuttgart": "48.7758,9.1829",
        "dortmund": "51.5136,7.4653",
        "essen": "51.4556,7.0116",
        "leipzig": "51.3397,12.3731",
        "dresden": "51.0504,13.7373",
        "hannover": "52.3759,9.7320",
        "nuernberg": "49.4521,11.0767",
        "bremen": "53.0793,8.8017",
    }
)


def fold_city_name(name: str) -> str:
    """Normalise a city name for lookup: trimmed, lower case, umlauts transliterated."""
    return name.strip().lower().translate(_UMLAUT_FOLDS)


def resolve_location(value: str) -> str:
    """Return a ``"lat,lon"`` string for coordinates or a known city name.

    Raises
    ------
    UnknownLocationError
        If *value* is neither a coordinate pair nor a known city.
    """
    classified = classify_location(value.strip())
    if not isinstance(classified, FreeTextQuery):
        return classified.value

    coords = CITY_COORDS.get(fold_city_name(classified.text))
    if coords is None:
        raise UnknownLocationError(value)
    return coords


def format_trip_duration(seconds: int | float) -> str:
    """``"2h 5min"`` or ``"45min"`` from a duration in seconds."""
    total = int(seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    return f"{hours}h {minutes}min" if hours > 0 else f"{minutes}min"


def format_clock(iso_string: str) -> str:
    """Local (Europe/Berlin) ``HH:MM`` wall-clock time for an ISO timestamp."""
    moment = datetime.fromisoformat(iso_string)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(DISPLAY_TIMEZONE).strftime("%H:%M")


def transport_modes(legs: Iterable[Mapping[str, Any]]) -> list[str]:
    """Distinct non-walking modes in order of first use."""
    modes: list[str] = []
    for leg in legs:
        mode = leg.get("mode")
        if mode and mode != "WALK" and mode not in modes:
            modes.append(mode)
    return modes


class JourneyPlannerClient:
    """Async client for the MOTIS ``/plan`` endpoint."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self._owns_http_client = http_client is None
        self._http_client = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(timeout=httpx.Timeout(20.0, connect=10.0))
        )
        self._base_url = base_url.rstrip("/")

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    async def plan_trip(
        self,
        from_location: str,
        to_location: str,
        departure: str,
    ) -> list[dict[str, Any]]:
        """Plan trips between two places.

        Parameters
        ----------
        from_location, to_location:
            Coordinate pairs (``"52.52,13.405"``) or known German city names.
        departure:
            ISO timestamp, e.g. ``"2026-03-01T10:00:00Z"``.

        Returns
        -------
        list[dict]
            The provider's itineraries, unmodified.
        """
        from_place = resolve_location(from_location)
        to_place = resolve_location(to_location)

        params = {
            "fromPlace": from_place,
            "toPlace": to_place,
            "time": departure,
            "arriveBy": "false",
        }
        logger.debug("MOTIS plan %s -> %s at %s", from_place, to_place, departure)
        try:
            response = await self._http_client.get(f"{self._base_url}/plan", params=params)
        except httpx.HTTPError as exc:
            raise ProviderRequestError(PROVIDER_NAME, f"MOTIS request failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderRequestError(
                PROVIDER_NAME,
                f"MOTIS API Fehler: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderRequestError(
                PROVIDER_NAME, "MOTIS returned invalid JSON", status_code=response.status_code
            ) from exc

        itineraries = data.get("itineraries") if isinstance(data, dict) else None
        return itineraries if isinstance(itineraries, list) else []
