"""Clients for the third-party travel data providers."""
