# Area: Realtime
"""
maris_live._realtime.packet_type - Push packet identifiers
==========================================================

Numeric packet types shared with the web client. Values below 35 keep
the numbering the client already uses.
"""

from enum import IntEnum


class PacketType(IntEnum):
    GAME_STAGE_CHANGE = 3
    MESSAGE_RESPONSE = 4
    GAME_STAGE_CHANGED = 5
    LOCATION_UPDATE = 10
    GAME_LOCATIONS_UPDATE = 13
    GAME_DATA = 15
    POINT_DATA = 35
    POINT_RANGE_CHANGED = 36
    POINT_DESTROYED = 37
