"""Route group exports."""

from . import health, plan

__all__ = ["health", "plan"]
