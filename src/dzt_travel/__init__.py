"""DZT travel information API: rail, journey-planner and flight data behind one JSON surface."""

__version__ = "0.1.0"
