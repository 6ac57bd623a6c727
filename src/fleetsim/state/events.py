"""Outbound events.

Every change published to subscribers is wrapped in a
:class:`BroadcastMessage`; the event names are the ones used on the wire
by transport adapters.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from fleetsim.models.location import LocationData
from fleetsim.models.state import InitialState


class BroadcastEvent(StrEnum):
    LOCATION_UPDATE = "locationUpdate"
    INITIAL_STATE = "initialState"
    REQUEST_INITIAL_STATE = "requestInitialState"
    TRACKER_HISTORY = "trackerHistory"


class BroadcastMessage(BaseModel):
    """A single message queued for one subscriber."""

    model_config = ConfigDict(frozen=True)

    event: BroadcastEvent
    payload: dict[str, Any] = Field(default_factory=dict, description="Wire (camelCase) payload")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def location_update(cls, location: LocationData) -> BroadcastMessage:
        return cls(event=BroadcastEvent.LOCATION_UPDATE, payload=location.to_wire())

    @classmethod
    def initial_state(cls, state: InitialState) -> BroadcastMessage:
        return cls(event=BroadcastEvent.INITIAL_STATE, payload=state.to_wire())

    @classmethod
    def tracker_history(cls, tracker_id: str, history: list[LocationData]) -> BroadcastMessage:
        return cls(
            event=BroadcastEvent.TRACKER_HISTORY,
            payload={"trackerId": tracker_id, "history": [loc.to_wire() for loc in history]},
        )
