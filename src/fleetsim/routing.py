"""Path acquisition: directions service with a synthetic fallback."""

from __future__ import annotations

import logging
import random

from fleetsim._api.directions import (
    build_directions_headers,
    build_directions_request,
    directions_endpoint,
    parse_directions_response,
)
from fleetsim._geo import random_point_in_bbox, random_walk
from fleetsim._transport import RoutingTransport
from fleetsim.config import SimulationConfig
from fleetsim.exceptions import RoutingError
from fleetsim.models.location import LocationData, PathPoint
from fleetsim.models.path import TrackerPath

_logger = logging.getLogger(__name__)


class RouteProvider:
    """Produces paths for trackers.

    Routes are requested between two random points of the configured
    bounding box. Only "not found" replies are retried, with a fresh pair
    of points; any other failure, or running out of attempts, falls back
    to a random walk around the tracker's last location.

    :meth:`generate_path` never raises; every failure ends in the fallback.
    """

    def __init__(
        self,
        config: SimulationConfig,
        transport: RoutingTransport | None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._rng = rng or random.Random()
        self._endpoint = directions_endpoint(config.routing_profile)
        self._warned_disabled = False

    @property
    def routing_enabled(self) -> bool:
        return self._transport is not None and bool(self._config.routing_api_key)

    async def generate_path(
        self,
        tracker_id: str,
        current_location_hint: LocationData | PathPoint | None = None,
    ) -> TrackerPath:
        """Return a new path for *tracker_id* with its cursor at 0."""
        if not self.routing_enabled:
            if not self._warned_disabled:
                _logger.warning("No routing credential or transport configured; using synthetic paths only")
                self._warned_disabled = True
            return self.fallback_path(current_location_hint)

        path = await self._request_route(tracker_id)
        if path is not None:
            return path
        return self.fallback_path(current_location_hint)

    async def _request_route(self, tracker_id: str) -> TrackerPath | None:
        assert self._transport is not None  # noqa: S101
        assert self._config.routing_api_key is not None  # noqa: S101
        headers = build_directions_headers(self._config.routing_api_key)
        attempts = self._config.max_route_attempts
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            start = random_point_in_bbox(self._rng, self._config.bbox)
            end = random_point_in_bbox(self._rng, self._config.bbox)
            try:
                data = await self._transport.post_json(
                    self._endpoint,
                    build_directions_request(start, end),
                    headers,
                )
                path = parse_directions_response(data, endpoint=self._endpoint)
            except RoutingError as exc:
                last_error = exc
                _logger.error(
                    "Route generation failed (attempt %d) for %s: start=(%s,%s), end=(%s,%s) - %s",
                    attempt,
                    tracker_id,
                    start.lat,
                    start.lng,
                    end.lat,
                    end.lng,
                    exc,
                )
                if not exc.is_not_found:
                    break
                continue
            except Exception as exc:
                last_error = exc
                _logger.error(
                    "Route generation failed unexpectedly (attempt %d) for %s",
                    attempt,
                    tracker_id,
                    exc_info=True,
                )
                break

            _logger.debug(
                "Route for %s: %d points, distance=%s m, duration=%s s",
                tracker_id,
                len(path.points),
                path.distance_meters,
                path.duration_seconds,
            )
            return path

        _logger.error(
            "Route generation failed after %d attempt(s) for %s, falling back to random path: %s",
            attempt,
            tracker_id,
            last_error,
        )
        return None

    def fallback_path(self, current_location_hint: LocationData | PathPoint | None = None) -> TrackerPath:
        """Random-walk path starting next to *current_location_hint* (or the default origin)."""
        start: PathPoint | None
        if isinstance(current_location_hint, LocationData):
            start = current_location_hint.point
        else:
            start = current_location_hint
        points = random_walk(self._rng, start, self._config.path_length, self._config.path_radius_km)
        return TrackerPath(points=points, current_point_index=0)
