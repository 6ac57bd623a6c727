"""OpenRouteService directions endpoint.

Endpoint:
  - POST /v2/directions/{profile}/geojson

The service takes and returns coordinates as ``[lng, lat]`` pairs.
"""

from __future__ import annotations

from typing import Any

from fleetsim.exceptions import RoutingResponseError
from fleetsim.models.location import PathPoint
from fleetsim.models.path import TrackerPath


def directions_endpoint(profile: str) -> str:
    return f"/v2/directions/{profile}/geojson"


def build_directions_request(origin: PathPoint, destination: PathPoint) -> dict[str, Any]:
    """Build the JSON body for a two-point route request."""
    return {
        "coordinates": [
            [origin.lng, origin.lat],
            [destination.lng, destination.lat],
        ],
    }


def build_directions_headers(api_key: str) -> dict[str, str]:
    return {
        "Authorization": api_key,
        "Content-Type": "application/json",
        "Accept": "application/json, application/geo+json",
    }


def _safe_float(value: Any) -> float | None:
    """Convert a value to float, returning None on failure."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if result != result:  # NaN check
        return None
    return result


def parse_directions_response(data: dict[str, Any], *, endpoint: str = "") -> TrackerPath:
    """Turn a GeoJSON directions response into a fresh :class:`TrackerPath`.

    Raises :class:`RoutingResponseError` when the payload carries no usable
    geometry.
    """
    features = data.get("features")
    if not isinstance(features, list) or not features or not isinstance(features[0], dict):
        raise RoutingResponseError("Directions response has no features", endpoint=endpoint)
    feature = features[0]

    geometry = feature.get("geometry")
    coords = geometry.get("coordinates") if isinstance(geometry, dict) else None
    if not isinstance(coords, list) or not coords:
        raise RoutingResponseError("Directions response has no coordinates", endpoint=endpoint)

    points: list[PathPoint] = []
    try:
        for pair in coords:
            lng, lat = pair[0], pair[1]
            points.append(PathPoint(lat=lat, lng=lng))
    except (TypeError, IndexError, ValueError) as exc:
        raise RoutingResponseError(f"Malformed coordinate in directions response: {exc}", endpoint=endpoint) from exc

    properties = feature.get("properties")
    summary = properties.get("summary") if isinstance(properties, dict) else None
    if not isinstance(summary, dict):
        summary = {}

    return TrackerPath(
        points=points,
        current_point_index=0,
        distance_meters=_safe_float(summary.get("distance")),
        duration_seconds=_safe_float(summary.get("duration")),
    )
