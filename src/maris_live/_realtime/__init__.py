# Area: Realtime
"""
Realtime - Packets exchanged with web clients.

This package handles:
- Packet type numbering
- Best-effort sending through the push channel
- Routing client packets to their handlers
"""

from .game_stage_handler import GameStageChangeHandler
from .handler_base import BasePacketHandler
from .location_update_handler import LocationUpdateHandler
from .packet_router import PacketRouter
from .packet_type import PacketType
from .push import push_packet

__all__ = [
    "GameStageChangeHandler",
    "BasePacketHandler",
    "LocationUpdateHandler",
    "PacketRouter",
    "PacketType",
    "push_packet",
]
