"""Tracker identity model."""

from __future__ import annotations

import re

from pydantic import field_validator

from fleetsim.models._base import FleetBaseModel

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


class Tracker(FleetBaseModel):
    """A simulated moving entity.

    Parameters
    ----------
    id : str
        Stable identifier (``tracker-1`` ...).
    name : str
        Display name.
    color : str
        ``#RRGGBB`` colour used to draw the tracker on a map.
    """

    id: str
    name: str
    color: str

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value: str) -> str:
        tracker_id = value.strip()
        if not tracker_id:
            raise ValueError("id must be non-empty")
        return tracker_id

    @field_validator("color")
    @classmethod
    def _check_color(cls, value: str) -> str:
        if not _COLOR_RE.match(value):
            raise ValueError(f"color must look like #RRGGBB, got {value!r}")
        return value
