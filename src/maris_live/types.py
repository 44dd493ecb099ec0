"""
maris_live.types - TypedDict schemas for push payloads
======================================================

Documents the exact structure of every payload the live core sends
through the push channel. Web-client code should reference these when
decoding packets.
"""

from typing import List, TypedDict


# ============================================
# POINT_DATA
# ============================================

class PointData(TypedDict):
    """Per-user view of a point."""
    name: str
    inRange: bool           # recipient's remembered range state


class PointDataPayload(TypedDict):
    """Sent with PacketType.POINT_DATA."""
    point: str              # point id
    game: str               # game id
    data: PointData


# ============================================
# POINT_RANGE_CHANGED / POINT_DESTROYED
# ============================================

class RangeChangedPayload(TypedDict):
    """Sent to the moving user when their range state at a point flips."""
    point: str
    name: str
    inRange: bool


class PointDestroyedPayload(TypedDict):
    """Sent to users who could see a point when it is deleted."""
    point: str
    game: str


# ============================================
# GAME_LOCATIONS_UPDATE / GAME_DATA
# ============================================

class UserLocation(TypedDict):
    user: str
    userName: str
    location: dict          # {"latitude": float, "longitude": float}


class GameLocationsPayload(TypedDict):
    game: str
    users: List[UserLocation]
    points: List[str]


class GameData(TypedDict):
    stage: int
    points: List[str]       # ids of points visible to the recipient


class GameDataPayload(TypedDict):
    game: str
    data: GameData


class MessageResponsePayload(TypedDict):
    error: bool
    message: str
    dialog: bool


# ============================================
# GAME_STAGE_CHANGE / GAME_STAGE_CHANGED
# ============================================

class GameStageChangeRequest(TypedDict):
    """Received with PacketType.GAME_STAGE_CHANGE."""
    game: str
    stage: int              # 1 (start) or 2 (finish)


class GameStageChangedPayload(TypedDict):
    """Sent to every member of a game after its stage changed."""
    game: str
    gameName: str
    stage: int
    joined: bool


class LocationUpdateRequest(TypedDict):
    """Received with PacketType.LOCATION_UPDATE."""
    game: str
    location: dict          # {"latitude": float, "longitude": float, ...}
