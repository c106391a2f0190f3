"""Error taxonomy for stop planning."""

from __future__ import annotations


class StopPlanError(Exception):
    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ConfigurationError(StopPlanError):
    """A required credential or storage setting is missing."""


class LinkResolutionError(StopPlanError):
    """The map link is unsupported or yields no usable origin/destination."""


class UpstreamError(StopPlanError):
    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code)


class UpstreamTimeout(UpstreamError):
    def __init__(self, label: str, timeout_seconds: float) -> None:
        super().__init__(f"{label} timeout ({int(timeout_seconds * 1000)}ms)", status_code=504)
        self.label = label
        self.timeout_seconds = timeout_seconds


class UpstreamFailure(UpstreamError):
    """Non-success HTTP status or a provider-reported error status."""

    NOT_FOUND_STATUSES = frozenset({"NOT_FOUND", "ZERO_RESULTS"})

    def __init__(self, message: str, status: str | None = None) -> None:
        super().__init__(message)
        self.status = status

    @property
    def is_not_found(self) -> bool:
        if self.status in self.NOT_FOUND_STATUSES:
            return True
        return any(marker in self.message for marker in self.NOT_FOUND_STATUSES)


def describe_error(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__
