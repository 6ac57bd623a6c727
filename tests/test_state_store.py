from __future__ import annotations

import threading

import pytest

from fleetsim.exceptions import StateError
from fleetsim.models import LocationData, PathPoint, Tracker, TrackerPath
from fleetsim.state.store import StateStore


def _tracker(n: int = 1) -> Tracker:
    return Tracker(id=f"tracker-{n}", name=f"Vehicle {n}", color="#123456")


def _path(n: int = 4, base: float = 0.0) -> TrackerPath:
    return TrackerPath(points=[PathPoint(lat=base + i * 0.01, lng=base + i * 0.01) for i in range(n)])


def _loc(tracker_id: str, point: PathPoint, ts: int) -> LocationData:
    return LocationData(tracker_id=tracker_id, lat=point.lat, lng=point.lng, timestamp_ms=ts)


def _seeded(history_limit: int | None = None) -> StateStore:
    store = StateStore(history_limit=history_limit)
    path = _path()
    store.seed(_tracker(), path, _loc("tracker-1", path.points[0], 1000))
    return store


def test_history_of_unknown_tracker_is_empty() -> None:
    store = _seeded()
    assert store.history("nonexistent") == []
    assert store.get_path("nonexistent") is None
    assert store.get_location("nonexistent") is None


def test_seed_twice_is_rejected() -> None:
    store = _seeded()
    path = _path()
    with pytest.raises(StateError):
        store.seed(_tracker(), path, _loc("tracker-1", path.points[0], 1))


def test_seed_rejects_foreign_location() -> None:
    store = StateStore()
    path = _path()
    with pytest.raises(StateError):
        store.seed(_tracker(1), path, _loc("tracker-2", path.points[0], 1))


def test_commit_replaces_path_and_appends_history() -> None:
    store = _seeded()
    path = store.get_path("tracker-1")
    assert path is not None
    path.advance()
    location = _loc("tracker-1", path.points[1], 2000)

    stored = store.commit("tracker-1", path, location)

    assert stored == location
    assert store.get_location("tracker-1") == location
    assert [h.timestamp_ms for h in store.history("tracker-1")] == [1000, 2000]
    stored_path = store.get_path("tracker-1")
    assert stored_path is not None
    assert stored_path.current_point_index == 1


def test_commit_unknown_tracker_raises() -> None:
    store = _seeded()
    path = _path()
    with pytest.raises(StateError):
        store.commit("tracker-9", path, _loc("tracker-9", path.points[0], 1))


def test_get_path_returns_private_copy() -> None:
    store = _seeded()
    path = store.get_path("tracker-1")
    assert path is not None
    path.advance()
    path.advance()

    again = store.get_path("tracker-1")
    assert again is not None
    assert again.current_point_index == 0


def test_history_timestamps_never_decrease() -> None:
    store = _seeded()
    path = _path()
    stored = store.commit("tracker-1", path, _loc("tracker-1", path.points[1], 500))

    assert stored.timestamp_ms == 1000
    timestamps = [h.timestamp_ms for h in store.history("tracker-1")]
    assert timestamps == sorted(timestamps)


def test_history_limit_evicts_oldest() -> None:
    store = _seeded(history_limit=3)
    path = _path()
    for ts in (2000, 3000, 4000):
        store.commit("tracker-1", path, _loc("tracker-1", path.points[0], ts))

    assert [h.timestamp_ms for h in store.history("tracker-1")] == [2000, 3000, 4000]


def test_history_is_unbounded_by_default() -> None:
    store = _seeded()
    path = _path()
    for ts in range(2000, 2000 + 500):
        store.commit("tracker-1", path, _loc("tracker-1", path.points[0], ts))

    assert len(store.history("tracker-1")) == 501


def test_snapshot_contains_all_trackers_in_seed_order() -> None:
    store = StateStore()
    for n in (1, 2, 3):
        path = _path(base=n)
        store.seed(_tracker(n), path, _loc(f"tracker-{n}", path.points[0], n))

    snapshot = store.snapshot_all()

    assert [t.id for t in snapshot.trackers] == ["tracker-1", "tracker-2", "tracker-3"]
    assert [t.id for t in store.all_trackers()] == ["tracker-1", "tracker-2", "tracker-3"]
    assert set(snapshot.locations) == set(snapshot.paths) == {"tracker-1", "tracker-2", "tracker-3"}


def test_snapshot_pairs_location_with_its_own_path_under_concurrent_writes() -> None:
    store = StateStore()
    for n in (1, 2):
        path = _path(n=50, base=n)
        store.seed(_tracker(n), path, _loc(f"tracker-{n}", path.points[0], 0))

    stop = threading.Event()
    errors: list[str] = []

    def _writer(tracker_id: str) -> None:
        ts = 1
        while not stop.is_set():
            path = store.get_path(tracker_id)
            assert path is not None
            if path.advance():
                path.current_point_index = 0
            point = path.points[path.current_point_index]
            store.commit(tracker_id, path, _loc(tracker_id, point, ts))
            ts += 1

    def _reader() -> None:
        for _ in range(2000):
            snapshot = store.snapshot_all()
            for tracker_id, location in snapshot.locations.items():
                path = snapshot.paths[tracker_id]
                expected = path.points[path.current_point_index]
                if (location.lat, location.lng) != (expected.lat, expected.lng):
                    errors.append(tracker_id)

    writers = [threading.Thread(target=_writer, args=(f"tracker-{n}",)) for n in (1, 2)]
    for thread in writers:
        thread.start()
    try:
        _reader()
    finally:
        stop.set()
        for thread in writers:
            thread.join()

    assert errors == []
