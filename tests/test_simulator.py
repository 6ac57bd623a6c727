from __future__ import annotations

import asyncio
import random
from collections.abc import Mapping
from typing import Any

import pytest

from fleetsim._mqtt import MqttBroadcaster
from fleetsim.broadcast import FanoutBroadcaster
from fleetsim.config import SimulationConfig
from fleetsim.exceptions import FleetSimError
from fleetsim.simulator import FleetSimulator
from fleetsim.state.events import BroadcastEvent


class _RouteBackend:
    def __init__(self) -> None:
        self.calls = 0

    async def post_json(self, endpoint: str, payload: Mapping[str, Any], headers: Mapping[str, str]) -> dict[str, Any]:
        self.calls += 1
        coords = [[lng, lat] for lng, lat in payload["coordinates"]]
        return {
            "features": [
                {
                    "geometry": {"coordinates": coords},
                    "properties": {"summary": {"distance": 2500.0, "duration": 300.0}},
                }
            ]
        }


@pytest.mark.asyncio
async def test_initial_state_before_any_tick() -> None:
    config = SimulationConfig(tracker_count=3, tick_interval_ms=10)

    async with FleetSimulator(config, rng=random.Random(5)) as sim:
        await sim.start(run_scheduler=False)
        state = sim.query.get_initial_state()

    assert [t.id for t in state.trackers] == ["tracker-1", "tracker-2", "tracker-3"]
    assert set(state.locations) == {"tracker-1", "tracker-2", "tracker-3"}
    for tracker_id, path in state.paths.items():
        assert len(path.points) == config.path_length
        assert path.current_point_index == 0
        location = state.locations[tracker_id]
        assert (location.lat, location.lng) == (path.points[0].lat, path.points[0].lng)
        assert sim.query.get_history(tracker_id) == [location]


@pytest.mark.asyncio
async def test_history_for_unknown_tracker_is_empty() -> None:
    async with FleetSimulator(SimulationConfig(tracker_count=1)) as sim:
        await sim.start(run_scheduler=False)
        assert sim.query.get_history("nonexistent") == []


@pytest.mark.asyncio
async def test_routed_paths_are_used_when_credential_is_set() -> None:
    backend = _RouteBackend()
    config = SimulationConfig(tracker_count=2, routing_api_key="key")

    async with FleetSimulator(config, transport=backend, rng=random.Random(1)) as sim:
        await sim.start(run_scheduler=False)
        state = sim.query.get_initial_state()

    assert backend.calls == 2
    for path in state.paths.values():
        assert path.distance_meters == 2500.0
        assert len(path.points) == 2


@pytest.mark.asyncio
async def test_running_simulation_broadcasts_updates() -> None:
    broadcaster = FanoutBroadcaster()
    config = SimulationConfig(tracker_count=2, tick_interval_ms=10)

    async with FleetSimulator(config, broadcast=broadcaster, rng=random.Random(2)) as sim:
        subscription = broadcaster.subscribe()
        await sim.start()
        assert sim.is_running
        async with asyncio.timeout(2.0):
            seen: set[str] = set()
            while len(seen) < 2:
                message = await subscription.get()
                assert message.event == BroadcastEvent.LOCATION_UPDATE
                seen.add(message.payload["trackerId"])
        await sim.stop()
        assert not sim.is_running

        for tracker in sim.query.get_all_trackers():
            assert len(sim.query.get_history(tracker.id)) >= 2


@pytest.mark.asyncio
async def test_seed_is_idempotent() -> None:
    async with FleetSimulator(SimulationConfig(tracker_count=2)) as sim:
        await sim.seed()
        await sim.seed()
        assert len(sim.store) == 2


@pytest.mark.asyncio
async def test_use_before_enter_raises() -> None:
    sim = FleetSimulator(SimulationConfig(tracker_count=1))
    with pytest.raises(FleetSimError):
        await sim.start()
    with pytest.raises(FleetSimError):
        _ = sim.scheduler


class _RecordingMqttClient:
    def __init__(self, client_id: str) -> None:
        self.topics: list[str] = []
        self.on_connect: Any = None
        self.on_disconnect: Any = None

    def enable_logger(self, _logger: Any) -> None:
        pass

    def connect_async(self, host: str, port: int, keepalive: int = 60) -> None:
        pass

    def loop_start(self) -> None:
        pass

    def loop_stop(self) -> None:
        pass

    def disconnect(self) -> None:
        pass

    def publish(self, topic: str, payload: str, qos: int = 0, retain: bool = False) -> None:
        self.topics.append(topic)


@pytest.mark.asyncio
async def test_mqtt_sink_receives_snapshot_and_updates() -> None:
    clients: list[_RecordingMqttClient] = []

    def _factory(client_id: str) -> _RecordingMqttClient:
        client = _RecordingMqttClient(client_id)
        clients.append(client)
        return client

    config = SimulationConfig(tracker_count=1, tick_interval_ms=10)
    mqtt_sink = MqttBroadcaster.from_config(config, client_factory=_factory)

    async with FleetSimulator(config, mqtt_broadcaster=mqtt_sink, rng=random.Random(3)) as sim:
        await sim.start(run_scheduler=False)
        await sim.scheduler.tick()

    assert clients[0].topics == ["fleetsim/initial_state", "fleetsim/tracker-1/location"]
    assert not mqtt_sink.is_running
