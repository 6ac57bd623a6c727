"""Recurring simulation tick.

Owns forward motion: on every tick each tracker's path cursor moves one
point, exhausted paths are replaced, and the resulting location is
committed to the store and broadcast.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
import time
from collections.abc import Callable, Iterable

from fleetsim._geo import jitter
from fleetsim.broadcast import BroadcastPort
from fleetsim.models.location import LocationData
from fleetsim.models.path import TrackerPath
from fleetsim.models.tracker import Tracker
from fleetsim.routing import RouteProvider
from fleetsim.state.store import StateStore

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class SimulationScheduler:
    """Drives every tracker forward on a fixed interval.

    Ticks never overlap: the next tick is scheduled only once every tracker
    of the current one is done, including any path regeneration. Within a
    tick, trackers are processed concurrently with at most
    *max_concurrency* in flight.

    Parameters
    ----------
    store
        State to advance.
    route_provider
        Source of replacement paths.
    broadcast
        Sink invoked with every new location.
    interval
        Seconds between tick starts.
    max_concurrency
        Trackers processed at the same time.
    rng
        Randomness for location jitter.
    clock
        Epoch-milliseconds clock used to stamp locations.
    """

    def __init__(
        self,
        store: StateStore,
        route_provider: RouteProvider,
        broadcast: BroadcastPort,
        *,
        interval: float = 2.0,
        max_concurrency: int = 4,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self._store = store
        self._routes = route_provider
        self._broadcast = broadcast
        self._interval = interval
        self._max_concurrency = max_concurrency
        self._rng = rng or random.Random()
        self._clock = clock or _now_ms
        self._task: asyncio.Task[None] | None = None
        self._tick_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    async def seed(self, trackers: Iterable[Tracker]) -> None:
        """Request an initial path for every tracker and store its first location."""
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _seed_one(tracker: Tracker) -> tuple[Tracker, TrackerPath, LocationData]:
            async with semaphore:
                path = await self._routes.generate_path(tracker.id)
            return tracker, path, self._locate(tracker.id, path, None, self._clock())

        # Store in registry order regardless of which route came back first.
        for tracker, path, location in await asyncio.gather(*(_seed_one(tracker) for tracker in trackers)):
            self._store.seed(tracker, path, location)
        _logger.info("Seeded %d tracker(s)", len(self._store))

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    async def tick(self) -> None:
        """Advance every tracker by one point."""
        tick_ms = self._clock()
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _guarded(tracker_id: str) -> None:
            async with semaphore:
                try:
                    await self._advance(tracker_id, tick_ms)
                except Exception:
                    _logger.exception("Tick failed for %s", tracker_id)

        tracker_ids = [tracker.id for tracker in self._store.all_trackers()]
        await asyncio.gather(*(_guarded(tracker_id) for tracker_id in tracker_ids))
        self._tick_count += 1

    async def _advance(self, tracker_id: str, tick_ms: int) -> None:
        current = self._store.get_slice(tracker_id)
        if current is None:
            return
        last_location, path = current

        if path.advance():
            _logger.debug("Path of %s exhausted, requesting a new one", tracker_id)
            path = await self._routes.generate_path(tracker_id, last_location)
            path.current_point_index = 0

        location = self._locate(tracker_id, path, last_location, tick_ms)
        stored = self._store.commit(tracker_id, path, location)
        self._emit(stored)

    def _locate(
        self,
        tracker_id: str,
        path: TrackerPath,
        last_location: LocationData | None,
        timestamp_ms: int,
    ) -> LocationData:
        location = path.current_location(tracker_id, timestamp_ms)
        if location is not None:
            return location
        _logger.warning(
            "No point %d on path of %s (%d points); jittering last location",
            path.current_point_index,
            tracker_id,
            len(path.points),
        )
        point = jitter(self._rng, last_location.point if last_location is not None else None)
        return LocationData(tracker_id=tracker_id, lat=point.lat, lng=point.lng, timestamp_ms=timestamp_ms)

    def _emit(self, location: LocationData) -> None:
        try:
            self._broadcast.on_location_update(location)
        except Exception:
            _logger.warning("Broadcast of %s failed", location.tracker_id, exc_info=True)

    # ------------------------------------------------------------------
    # Timer lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start ticking on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="fleetsim-scheduler")
        _logger.info("Simulation started (interval=%.3fs)", self._interval)

    async def stop(self) -> None:
        """Stop ticking; an in-flight tick is cancelled, not awaited."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        _logger.info("Simulation stopped after %d tick(s)", self._tick_count)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self._interval
        while True:
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            started = loop.time()
            await self.tick()
            elapsed = loop.time() - started
            if elapsed > self._interval:
                _logger.debug("Tick %d took %.3fs (interval %.3fs)", self._tick_count, elapsed, self._interval)
            next_at = max(next_at + self._interval, loop.time())
