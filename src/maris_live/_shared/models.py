# Area: Shared
"""
maris_live._shared.models - Persistent records seen by the live core
====================================================================

Read-only shapes of what the store hands back, plus the coordinate type
used for range checks. The live core never owns these records; it only
reads them through the store protocol.
"""

from __future__ import annotations

import math
import re
from enum import IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import InvalidReferenceError

EARTH_RADIUS_METERS = 6371008.8

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def is_object_id(value: Any) -> bool:
    """Check whether value is a 24 hex digit identifier."""
    return isinstance(value, str) and _OBJECT_ID_RE.match(value) is not None


def parse_object_id(value: Any, kind: str = "object") -> str:
    """
    Normalise an identifier to lower-case hex.

    Accepts a raw id string or anything exposing an ``id`` attribute
    (records, live entities).

    Raises:
        InvalidReferenceError: If the identifier is malformed
    """
    raw = getattr(value, "id", value)
    if not is_object_id(raw):
        raise InvalidReferenceError(kind, value)
    return raw.lower()


class GameStage(IntEnum):
    OPEN = 0
    RUNNING = 1
    FINISHED = 2


class ApprovalState(IntEnum):
    """Approval lifecycle of a submission."""
    NONE = 0
    APPROVED = 1
    REJECTED = 2
    PENDING = 3


class Coordinate(BaseModel):
    """A WGS84 coordinate."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    @classmethod
    def parse(cls, raw: Any) -> Optional["Coordinate"]:
        """
        Parse a raw location as sent by clients.

        Accepts ``{"latitude", "longitude"}`` or ``{"lat", "lon"}``.
        Returns None for anything that is not a valid coordinate.
        """
        if isinstance(raw, Coordinate):
            return raw
        if not isinstance(raw, dict):
            return None
        data = {
            "latitude": raw.get("latitude", raw.get("lat")),
            "longitude": raw.get("longitude", raw.get("lon")),
        }
        try:
            return cls(**data)
        except ValidationError:
            return None

    def distance_to(self, other: "Coordinate") -> float:
        """Great-circle distance in metres (haversine)."""
        lat1, lat2 = math.radians(self.latitude), math.radians(other.latitude)
        d_lat = lat2 - lat1
        d_lon = math.radians(other.longitude - self.longitude)
        a = (math.sin(d_lat / 2) ** 2
             + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2)
        return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(a)))

    def is_in_range(self, other: "Coordinate", radius: float) -> bool:
        return self.distance_to(other) <= radius

    def serialize(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


class GameRoles(BaseModel):
    """Role flags of a user within one game."""

    model_config = ConfigDict(frozen=True)

    participant: bool = False
    spectator: bool = False
    requested: bool = False


class PointRecord(BaseModel):
    """Persisted point as returned by ``PersistenceStore.get_points``."""

    id: str
    name: str
    game_id: str
    user_id: Optional[str] = None
    location: Coordinate
    level: Optional[int] = None
    defence: Optional[int] = None
    in_count: Optional[int] = None
    out_count: Optional[int] = None


class SubmissionRecord(BaseModel):
    """Persisted submission; the live core only reads approval_state."""

    id: str
    assignment_id: str
    user_id: str
    approve_user_id: Optional[str] = None
    approval_state: Optional[ApprovalState] = ApprovalState.NONE
    answer_text: Optional[str] = None
    answer_file: Optional[str] = None
