"""Custom exception hierarchy for fleetsim."""

from __future__ import annotations


class FleetSimError(Exception):
    """Base exception for all fleetsim errors."""


class FleetSimConfigError(FleetSimError):
    """Invalid or missing configuration."""


class RoutingError(FleetSimError):
    """Directions request failed (network, timeout, non-2xx status)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        """Whether the service reported that no route exists (HTTP 404).

        This is the only failure class the route provider retries.
        """
        return self.status_code == 404


class RoutingResponseError(RoutingError):
    """Directions service answered, but the payload is not a usable route."""


class StateError(FleetSimError):
    """Invalid operation on the state store (e.g. seeding a tracker twice)."""
