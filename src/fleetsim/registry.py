"""The fixed set of trackers created at startup."""

from __future__ import annotations

import random
from collections.abc import Iterable, Iterator

from fleetsim.models.tracker import Tracker

_HEX_DIGITS = "0123456789ABCDEF"


def random_color(rng: random.Random) -> str:
    """Random ``#RRGGBB`` colour."""
    return "#" + "".join(rng.choice(_HEX_DIGITS) for _ in range(6))


class TrackerRegistry:
    """Immutable, ordered collection of trackers keyed by id."""

    def __init__(self, trackers: Iterable[Tracker]) -> None:
        self._trackers: dict[str, Tracker] = {}
        for tracker in trackers:
            if tracker.id in self._trackers:
                raise ValueError(f"duplicate tracker id {tracker.id!r}")
            self._trackers[tracker.id] = tracker

    @classmethod
    def create(cls, count: int, *, rng: random.Random | None = None) -> TrackerRegistry:
        """Build ``tracker-1`` .. ``tracker-<count>`` named ``Vehicle 1`` .. ``Vehicle <count>``."""
        rng = rng or random.Random()
        return cls(
            Tracker(id=f"tracker-{i}", name=f"Vehicle {i}", color=random_color(rng))
            for i in range(1, count + 1)
        )

    def __iter__(self) -> Iterator[Tracker]:
        return iter(self._trackers.values())

    def __len__(self) -> int:
        return len(self._trackers)

    def __contains__(self, tracker_id: object) -> bool:
        return tracker_id in self._trackers

    def get(self, tracker_id: str) -> Tracker | None:
        return self._trackers.get(tracker_id)

    def ids(self) -> list[str]:
        return list(self._trackers)
