"""Rest-break window scheduling."""

from .rest_windows import build_rest_windows, drive_limit_minutes

__all__ = ["build_rest_windows", "drive_limit_minutes"]
