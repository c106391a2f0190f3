"""Truck rest-break and refuel stop planner."""

__version__ = "0.1.0"
