"""Simulation configuration for fleetsim."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from fleetsim._constants import JABODETABEK_BBOX, MAX_ROUTE_ATTEMPTS, ROUTING_BASE_URL, ROUTING_PROFILE
from fleetsim.exceptions import FleetSimConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class BoundingBox:
    """Rectangle that random route endpoints are sampled from."""

    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.min_lat < self.max_lat <= 90.0:
            raise FleetSimConfigError(f"invalid latitude range [{self.min_lat}, {self.max_lat}]")
        if not -180.0 <= self.min_lng < self.max_lng <= 180.0:
            raise FleetSimConfigError(f"invalid longitude range [{self.min_lng}, {self.max_lng}]")

    @classmethod
    def parse(cls, text: str) -> BoundingBox:
        """Parse ``"minLat,minLng,maxLat,maxLng"``."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise FleetSimConfigError(f"bounding box needs 4 comma-separated numbers, got {text!r}")
        try:
            min_lat, min_lng, max_lat, max_lng = (float(p) for p in parts)
        except ValueError as exc:
            raise FleetSimConfigError(f"bounding box is not numeric: {text!r}") from exc
        return cls(min_lat, min_lng, max_lat, max_lng)


@dataclasses.dataclass(frozen=True)
class SimulationConfig:
    """Simulation configuration.

    Parameters
    ----------
    tracker_count : int
        Number of trackers created at startup.
    tick_interval_ms : int
        Nominal delay between two simulation ticks, in milliseconds.
    path_length : int
        Number of points in a synthetic (fallback) path.
    path_radius_km : float
        Upper bound of a single fallback random-walk step, in kilometres.
    routing_api_key : str or None
        OpenRouteService credential. When unset, routing is skipped and
        every path is synthetic.
    routing_base_url : str
        Directions API base URL.
    routing_profile : str
        Directions profile (e.g. ``"driving-car"``).
    routing_timeout : float
        Seconds before a directions request is abandoned.
    max_route_attempts : int
        Attempt budget for a single path request.
    bbox : BoundingBox
        Area random route endpoints are sampled from.
    max_concurrency : int
        Trackers processed concurrently within one tick (and at seeding).
    history_limit : int or None
        Keep at most this many history entries per tracker. ``None``
        keeps everything for the process lifetime.
    mqtt_enabled : bool
        Publish location updates to an MQTT broker.
    mqtt_host : str
        Broker host.
    mqtt_port : int
        Broker port.
    mqtt_topic_prefix : str
        Topic prefix for published updates.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    """

    tracker_count: int = 10
    tick_interval_ms: int = 2000
    path_length: int = 10
    path_radius_km: float = 0.05
    routing_api_key: str | None = None
    routing_base_url: str = ROUTING_BASE_URL
    routing_profile: str = ROUTING_PROFILE
    routing_timeout: float = 10.0
    max_route_attempts: int = MAX_ROUTE_ATTEMPTS
    bbox: BoundingBox = dataclasses.field(default_factory=lambda: BoundingBox(*JABODETABEK_BBOX))
    max_concurrency: int = 4
    history_limit: int | None = None
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic_prefix: str = "fleetsim"
    mqtt_keepalive: int = 60

    def __post_init__(self) -> None:
        if self.tracker_count < 1:
            raise FleetSimConfigError(f"tracker_count must be >= 1, got {self.tracker_count}")
        if self.tick_interval_ms <= 0:
            raise FleetSimConfigError(f"tick_interval_ms must be > 0, got {self.tick_interval_ms}")
        if self.path_length < 1:
            raise FleetSimConfigError(f"path_length must be >= 1, got {self.path_length}")
        if self.path_radius_km <= 0:
            raise FleetSimConfigError(f"path_radius_km must be > 0, got {self.path_radius_km}")
        if self.max_route_attempts < 1:
            raise FleetSimConfigError(f"max_route_attempts must be >= 1, got {self.max_route_attempts}")
        if self.max_concurrency < 1:
            raise FleetSimConfigError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if self.history_limit is not None and self.history_limit < 1:
            raise FleetSimConfigError(f"history_limit must be >= 1 or None, got {self.history_limit}")

    @property
    def tick_interval(self) -> float:
        """Tick interval in seconds."""
        return self.tick_interval_ms / 1000.0

    @classmethod
    def from_env(cls, **overrides: Any) -> SimulationConfig:
        """Create configuration from environment variables.

        Reads ``FLEETSIM_*`` variables; the routing credential is also
        accepted as ``ORS_API_KEY``. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SimulationConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_INT_MAP = {
            "FLEETSIM_TRACKER_COUNT": "tracker_count",
            "FLEETSIM_TICK_INTERVAL_MS": "tick_interval_ms",
            "FLEETSIM_PATH_LENGTH": "path_length",
            "FLEETSIM_MAX_CONCURRENCY": "max_concurrency",
            "FLEETSIM_HISTORY_LIMIT": "history_limit",
            "FLEETSIM_MQTT_PORT": "mqtt_port",
            "FLEETSIM_MQTT_KEEPALIVE": "mqtt_keepalive",
        }
        _ENV_FLOAT_MAP = {
            "FLEETSIM_PATH_RADIUS_KM": "path_radius_km",
            "FLEETSIM_ROUTING_TIMEOUT": "routing_timeout",
        }
        _ENV_STR_MAP = {
            "FLEETSIM_ROUTING_BASE_URL": "routing_base_url",
            "FLEETSIM_ROUTING_PROFILE": "routing_profile",
            "FLEETSIM_MQTT_HOST": "mqtt_host",
            "FLEETSIM_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
        }

        config_kwargs: dict[str, Any] = {}
        try:
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and val.strip():
                    config_kwargs[field_name] = int(val)
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and val.strip():
                    config_kwargs[field_name] = float(val)
        except ValueError as exc:
            raise FleetSimConfigError(f"invalid numeric environment value: {exc}") from exc

        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        api_key = env.get("FLEETSIM_ROUTING_API_KEY") or env.get("ORS_API_KEY")
        if api_key:
            config_kwargs["routing_api_key"] = api_key

        bbox_env = env.get("FLEETSIM_BBOX")
        if bbox_env is not None and "bbox" not in overrides:
            config_kwargs["bbox"] = BoundingBox.parse(bbox_env)

        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("FLEETSIM_MQTT_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
