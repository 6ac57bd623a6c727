"""Coordinate sampling and synthetic movement helpers."""

from __future__ import annotations

import math
import random

from fleetsim._constants import DEFAULT_ORIGIN, JITTER_SPAN_DEGREES, KM_PER_DEGREE
from fleetsim.config import BoundingBox
from fleetsim.models.location import PathPoint


def _clamp_lat(lat: float) -> float:
    return max(-90.0, min(90.0, lat))


def _wrap_lng(lng: float) -> float:
    if -180.0 <= lng <= 180.0:
        return lng
    return ((lng + 180.0) % 360.0) - 180.0


def make_point(lat: float, lng: float) -> PathPoint:
    """Build a point, folding out-of-range coordinates back into range."""
    return PathPoint(lat=_clamp_lat(lat), lng=_wrap_lng(lng))


def random_point_in_bbox(rng: random.Random, bbox: BoundingBox) -> PathPoint:
    """Uniformly sample a point inside *bbox*."""
    lat = rng.random() * (bbox.max_lat - bbox.min_lat) + bbox.min_lat
    lng = rng.random() * (bbox.max_lng - bbox.min_lng) + bbox.min_lng
    return PathPoint(lat=lat, lng=lng)


def random_walk(
    rng: random.Random,
    start: PathPoint | None,
    count: int,
    radius_km: float,
) -> list[PathPoint]:
    """Generate *count* points wandering away from *start*.

    Each step has a uniform heading and a length uniform in
    ``[0, radius_km)`` converted to degrees; the longitude component is
    stretched by ``1 / cos(lat)`` of the previous point. *start* itself is
    not part of the result.
    """
    last_lat, last_lng = (start.lat, start.lng) if start is not None else DEFAULT_ORIGIN
    points: list[PathPoint] = []
    for _ in range(count):
        angle = rng.random() * math.pi * 2
        distance = (rng.random() * radius_km) / KM_PER_DEGREE
        # Avoid blowing up the longitude step at the poles.
        cos_lat = max(math.cos(math.radians(last_lat)), 1e-6)
        point = make_point(
            last_lat + math.sin(angle) * distance,
            last_lng + math.cos(angle) * (distance / cos_lat),
        )
        points.append(point)
        last_lat, last_lng = point.lat, point.lng
    return points


def jitter(rng: random.Random, around: PathPoint | None) -> PathPoint:
    """A point within ±half the jitter span of *around* (default origin when unknown)."""
    lat, lng = (around.lat, around.lng) if around is not None else DEFAULT_ORIGIN
    return make_point(
        lat + (rng.random() - 0.5) * JITTER_SPAN_DEGREES,
        lng + (rng.random() - 0.5) * JITTER_SPAN_DEGREES,
    )


def step_degrees(a: PathPoint, b: PathPoint) -> float:
    """Length of the step a→b in latitude-degrees, correcting longitude at *a*'s latitude."""
    dlat = b.lat - a.lat
    dlng = (b.lng - a.lng) * math.cos(math.radians(a.lat))
    return math.hypot(dlat, dlng)
