"""High-level async entry point wiring the simulation together."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from typing import Any

import aiohttp

from fleetsim._mqtt import MqttBroadcaster
from fleetsim._transport import HttpRoutingTransport, RoutingTransport
from fleetsim.broadcast import BroadcastPort, MultiBroadcaster, NullBroadcaster
from fleetsim.config import SimulationConfig
from fleetsim.exceptions import FleetSimError
from fleetsim.query import QueryAPI
from fleetsim.registry import TrackerRegistry
from fleetsim.routing import RouteProvider
from fleetsim.scheduler import SimulationScheduler
from fleetsim.state.store import StateStore

_logger = logging.getLogger(__name__)


class FleetSimulator:
    """Fleet simulation engine.

    Usage::

        broadcaster = FanoutBroadcaster()
        async with FleetSimulator(config, broadcast=broadcaster) as sim:
            await sim.start()
            state = sim.query.get_initial_state()

    Parameters
    ----------
    config
        Simulation settings.
    broadcast
        Sink for location updates. Defaults to dropping them.
    transport
        Directions transport. Defaults to HTTP over *session*.
    session
        aiohttp session to borrow; one is created (and closed) otherwise.
    rng
        Seeded randomness for reproducible runs.
    clock
        Epoch-milliseconds clock.
    """

    def __init__(
        self,
        config: SimulationConfig,
        *,
        broadcast: BroadcastPort | None = None,
        transport: RoutingTransport | None = None,
        session: aiohttp.ClientSession | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
        mqtt_broadcaster: MqttBroadcaster | None = None,
    ) -> None:
        self._config = config
        self._rng = rng or random.Random()
        self._clock = clock
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._mqtt = mqtt_broadcaster
        if self._mqtt is None and config.mqtt_enabled:
            self._mqtt = MqttBroadcaster.from_config(config, logger=_logger)

        ports: list[BroadcastPort] = [broadcast or NullBroadcaster()]
        if self._mqtt is not None:
            ports.append(self._mqtt)
        self._broadcast: BroadcastPort = ports[0] if len(ports) == 1 else MultiBroadcaster(ports)

        self._registry = TrackerRegistry.create(config.tracker_count, rng=self._rng)
        self._store = StateStore(history_limit=config.history_limit)
        self._query = QueryAPI(self._store)
        self._routes: RouteProvider | None = None
        self._scheduler: SimulationScheduler | None = None
        self._started = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FleetSimulator:
        if self._transport is None and self._config.routing_api_key:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpRoutingTransport(
                self._config.routing_base_url,
                self._http_session,
                timeout=self._config.routing_timeout,
            )
        self._routes = RouteProvider(self._config, self._transport, rng=self._rng)
        self._scheduler = SimulationScheduler(
            self._store,
            self._routes,
            self._broadcast,
            interval=self._config.tick_interval,
            max_concurrency=self._config.max_concurrency,
            rng=self._rng,
            clock=self._clock,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _require_scheduler(self) -> SimulationScheduler:
        if self._scheduler is None:
            raise FleetSimError("Simulator not initialized. Use 'async with FleetSimulator(...) as sim:'")
        return self._scheduler

    async def seed(self) -> None:
        """Create initial paths and locations (idempotent)."""
        scheduler = self._require_scheduler()
        if len(self._store) == 0:
            await scheduler.seed(self._registry)

    async def start(self, *, run_scheduler: bool = True) -> None:
        """Seed every tracker, then start the recurring tick."""
        scheduler = self._require_scheduler()
        await self.seed()
        if self._mqtt is not None and not self._mqtt.is_running:
            self._mqtt.start()
            self._mqtt.publish_initial_state(self._query.get_initial_state())
        if run_scheduler:
            scheduler.start()
        self._started = True
        _logger.info("Tracking simulation initialized with %d tracker(s)", len(self._registry))

    async def stop(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
        if self._mqtt is not None:
            self._mqtt.stop()
        self._started = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def query(self) -> QueryAPI:
        return self._query

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def trackers(self) -> TrackerRegistry:
        return self._registry

    @property
    def scheduler(self) -> SimulationScheduler:
        return self._require_scheduler()

    @property
    def route_provider(self) -> RouteProvider:
        if self._routes is None:
            raise FleetSimError("Simulator not initialized. Use 'async with FleetSimulator(...) as sim:'")
        return self._routes

    @property
    def is_running(self) -> bool:
        return self._started and self._scheduler is not None and self._scheduler.is_running
