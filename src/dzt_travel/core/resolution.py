"""Classification of caller-supplied location tokens.

Every endpoint receives human input that is either already a provider
identifier or free text that must be looked up first.  Each domain gets one
classifier returning a tagged variant:

- ``RawIdentifier``: usable as-is (coordinate pair, station ID, IATA code)
- ``FreeTextQuery``: needs a lookup (static table or provider search)

Routers branch on the variant type instead of matching patterns themselves.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_COORDINATE_PATTERN = re.compile(r"^\d+\.\d+,\d+\.\d+$")
_STATION_ID_PATTERN = re.compile(r"^\d{7,8}$")
_IATA_PATTERN = re.compile(r"^[A-Za-z]{3}$")


@dataclass(frozen=True, slots=True)
class RawIdentifier:
    """A token that already is a provider identifier."""

    value: str


@dataclass(frozen=True, slots=True)
class FreeTextQuery:
    """A token that must be resolved before it can be sent to a provider."""

    text: str


LocationToken = RawIdentifier | FreeTextQuery


def classify_location(text: str) -> LocationToken:
    """Classify journey-planner input: ``"lat,lon"`` pairs are raw coordinates."""
    if _COORDINATE_PATTERN.match(text):
        return RawIdentifier(text)
    return FreeTextQuery(text)


def classify_station(token: str) -> LocationToken:
    """Classify rail input: 7–8 digit numbers are station IDs."""
    if _STATION_ID_PATTERN.match(token):
        return RawIdentifier(token)
    return FreeTextQuery(token)


def classify_airport(token: str) -> LocationToken:
    """Classify flight input: three letters are an IATA code (normalised to upper case)."""
    stripped = token.strip()
    if _IATA_PATTERN.match(stripped):
        return RawIdentifier(stripped.upper())
    return FreeTextQuery(token)
