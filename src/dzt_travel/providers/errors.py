"""Error taxonomy shared by all provider clients.

The API layer maps these onto HTTP status codes (see ``api/middleware.py``):

- ``InvalidRequestError`` (incl. unknown city or airport) → 400
- ``StationNotFoundError`` → 404
- ``ProviderError`` and subclasses → 500
"""

from __future__ import annotations


class ProviderError(RuntimeError):
    """Base error for a failed interaction with an upstream provider."""

    def __init__(self, provider: str, message: str, *, status_code: int | None = None) -> None:
        self.provider = provider
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ProviderRequestError(ProviderError):
    """Raised when a provider returns a non-success status or cannot be reached."""


class ProviderCredentialsError(ProviderError):
    """Raised when provider credentials are missing or rejected.

    The flight search endpoint degrades to sample data on this error kind
    instead of failing the request.
    """


class InvalidRequestError(ValueError):
    """Raised when caller input is missing or malformed."""


class UnknownLocationError(InvalidRequestError):
    """Raised when a city name cannot be mapped to coordinates."""

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"Unbekannte Stadt: {location}. Bitte Koordinaten angeben.")


class UnknownAirportError(InvalidRequestError):
    """Raised when a city or code cannot be mapped to an IATA airport code."""

    def __init__(self, value: str, *, side: str) -> None:
        self.value = value
        self.side = side
        super().__init__(f"Unknown {side} airport: {value}. Use IATA code (e.g., FRA, MUC).")


class StationNotFoundError(LookupError):
    """Raised when a free-text station query yields no stop."""

    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"Station not found: {query}")
