from __future__ import annotations

import logging
import time

import pytest

from fleetsim.broadcast import FanoutBroadcaster, MultiBroadcaster, NullBroadcaster
from fleetsim.models import InitialState, LocationData, Tracker
from fleetsim.state.events import BroadcastEvent


def _loc(ts: int, tracker_id: str = "tracker-1") -> LocationData:
    return LocationData(tracker_id=tracker_id, lat=-6.2, lng=106.8, timestamp_ms=ts)


@pytest.mark.asyncio
async def test_subscription_receives_location_updates() -> None:
    broadcaster = FanoutBroadcaster()
    subscription = broadcaster.subscribe()

    broadcaster.on_location_update(_loc(1))

    message = await subscription.get(timeout=1.0)
    assert message.event == BroadcastEvent.LOCATION_UPDATE
    assert message.payload == {"trackerId": "tracker-1", "lat": -6.2, "lng": 106.8, "timestampMs": 1}


def test_full_mailbox_drops_oldest() -> None:
    broadcaster = FanoutBroadcaster()
    slow = broadcaster.subscribe(maxsize=2)
    fast = broadcaster.subscribe(maxsize=10)

    for ts in range(5):
        broadcaster.on_location_update(_loc(ts))

    assert [m.payload["timestampMs"] for m in slow.drain()] == [3, 4]
    assert slow.dropped == 3
    assert [m.payload["timestampMs"] for m in fast.drain()] == [0, 1, 2, 3, 4]


def test_unsubscribed_mailbox_stops_receiving() -> None:
    broadcaster = FanoutBroadcaster()
    subscription = broadcaster.subscribe()
    broadcaster.unsubscribe(subscription)

    broadcaster.on_location_update(_loc(1))

    assert subscription.drain() == []
    assert broadcaster.subscriber_count == 0


@pytest.mark.asyncio
async def test_failing_listener_is_isolated(caplog: pytest.LogCaptureFixture) -> None:
    broadcaster = FanoutBroadcaster()
    received: list[LocationData] = []

    def _bad(_location: LocationData) -> None:
        raise RuntimeError("socket closed")

    broadcaster.add_listener(_bad)
    broadcaster.add_listener(received.append)

    with caplog.at_level(logging.WARNING, logger="fleetsim.broadcast"):
        broadcaster.on_location_update(_loc(1))
        broadcaster.on_location_update(_loc(2))
        await broadcaster.flush()

    assert received == [_loc(1), _loc(2)]
    assert sum("failed" in r.getMessage() for r in caplog.records) == 2
    await broadcaster.aclose()


@pytest.mark.asyncio
async def test_listener_can_be_removed() -> None:
    broadcaster = FanoutBroadcaster()
    received: list[LocationData] = []
    remove = broadcaster.add_listener(received.append)

    broadcaster.on_location_update(_loc(1))
    await broadcaster.flush()
    remove()
    broadcaster.on_location_update(_loc(2))
    await broadcaster.flush()

    assert [loc.timestamp_ms for loc in received] == [1]


@pytest.mark.asyncio
async def test_blocking_listener_does_not_hold_up_caller(caplog: pytest.LogCaptureFixture) -> None:
    broadcaster = FanoutBroadcaster(slow_listener_threshold=0.05)
    received: list[int] = []

    def _blocking(location: LocationData) -> None:
        time.sleep(0.2)
        received.append(location.timestamp_ms)

    broadcaster.add_listener(_blocking)

    started = time.monotonic()
    for ts in range(3):
        broadcaster.on_location_update(_loc(ts))
    assert time.monotonic() - started < 0.1

    with caplog.at_level(logging.WARNING, logger="fleetsim.broadcast"):
        await broadcaster.flush()

    assert received == [0, 1, 2]
    assert any("took" in r.getMessage() for r in caplog.records)
    await broadcaster.aclose()


@pytest.mark.asyncio
async def test_listener_backlog_drops_oldest() -> None:
    broadcaster = FanoutBroadcaster()
    received: list[int] = []
    broadcaster.add_listener(lambda location: received.append(location.timestamp_ms), maxsize=2)

    for ts in range(5):
        broadcaster.on_location_update(_loc(ts))
    await broadcaster.flush()

    assert received == [3, 4]
    await broadcaster.aclose()



def test_send_initial_state_targets_one_subscriber() -> None:
    broadcaster = FanoutBroadcaster()
    joined = broadcaster.subscribe()
    other = broadcaster.subscribe()
    state = InitialState(
        trackers=[Tracker(id="tracker-1", name="Vehicle 1", color="#ABCDEF")],
        locations={"tracker-1": _loc(1)},
    )

    broadcaster.send_initial_state(joined, state)

    messages = joined.drain()
    assert len(messages) == 1
    assert messages[0].event == BroadcastEvent.INITIAL_STATE
    assert messages[0].payload["trackers"][0]["id"] == "tracker-1"
    assert other.drain() == []


def test_multi_broadcaster_isolates_failing_port() -> None:
    class _Broken:
        def on_location_update(self, location: LocationData) -> None:
            raise OSError("broker down")

    fanout = FanoutBroadcaster()
    subscription = fanout.subscribe()
    multi = MultiBroadcaster([_Broken(), NullBroadcaster(), fanout])

    multi.on_location_update(_loc(7))

    assert [m.payload["timestampMs"] for m in subscription.drain()] == [7]
