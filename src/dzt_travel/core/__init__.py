"""Shared infrastructure: logging, caching and input resolution."""
