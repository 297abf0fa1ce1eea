"""Query-parameter checks shared by the routers.

Required parameters are declared optional in the route signatures and
checked here so a missing value yields a 400 with a readable message
instead of FastAPI's generic validation payload.
"""

from __future__ import annotations

import re
from datetime import date

from dzt_travel.providers.errors import InvalidRequestError

MIN_QUERY_LENGTH = 2

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _quoted(names: tuple[str, ...]) -> str:
    quoted = [f'"{name}"' for name in names]
    if len(quoted) == 1:
        return quoted[0]
    if len(quoted) == 2:
        return f"{quoted[0]} and {quoted[1]}"
    return ", ".join(quoted[:-1]) + f", and {quoted[-1]}"


def require_params(**params: str | None) -> None:
    """Raise if any of the given parameters is missing or blank."""
    if all(value and value.strip() for value in params.values()):
        return
    names = tuple(name.rstrip("_") for name in params)
    noun = "Parameter" if len(names) == 1 else "Parameters"
    verb = "is" if len(names) == 1 else "are"
    raise InvalidRequestError(f"{noun} {_quoted(names)} {verb} required")


def require_search_query(q: str | None, name: str = "q") -> str:
    """Return the search query, which must be at least two characters long."""
    if q is None or len(q.strip()) < MIN_QUERY_LENGTH:
        raise InvalidRequestError(
            f'Query parameter "{name}" is required (min {MIN_QUERY_LENGTH} characters)'
        )
    return q.strip()


def check_date(value: str, name: str = "date") -> str:
    """Validate a ``YYYY-MM-DD`` calendar date."""
    if not _DATE_PATTERN.match(value):
        raise InvalidRequestError(f'Parameter "{name}" must be a date in YYYY-MM-DD format')
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidRequestError(f'Parameter "{name}" is not a valid date: {value}') from exc
    return value


def check_time(value: str, name: str = "time") -> str:
    """Validate an ``HH:mm`` wall-clock time."""
    if not _TIME_PATTERN.match(value):
        raise InvalidRequestError(f'Parameter "{name}" must be a time in HH:mm format')
    return value


def clamp(value: int, upper: int, lower: int = 1) -> int:
    """Clamp a numeric parameter into ``[lower, upper]``."""
    return max(lower, min(value, upper))
