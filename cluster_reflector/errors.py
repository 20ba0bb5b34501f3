"""Exception hierarchy for cluster-reflector."""

from __future__ import annotations

from enum import StrEnum


class ReflectorError(Exception):
    """Base class for every error raised by cluster-reflector."""


class ConfigError(ReflectorError, ValueError):
    """Raised when the configuration is invalid; fatal at startup."""


class ClusterAPIError(ReflectorError):
    """A call against the Kubernetes API failed, timed out or was refused.

    ``status`` carries the HTTP status code when the API server answered.
    """

    def __init__(self, operation: str, cause: BaseException | str, status: int | None = None) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.status = status


class HealthReason(StrEnum):
    """Machine-readable reason carried by a failed health check."""

    CONNECTIVITY = "connectivity"
    STALE = "stale"


class HealthCheckError(ReflectorError):
    """Raised by the health check when the service should report unhealthy."""

    def __init__(self, reason: HealthReason, detail: str) -> None:
        super().__init__(detail)
        self.reason = reason
        self.detail = detail
