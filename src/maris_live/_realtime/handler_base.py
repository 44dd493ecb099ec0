# Area: Realtime
"""
maris_live._realtime.handler_base - Base Packet Handler
=======================================================

Abstract base class for handlers of packets sent by web clients.
Provides helpers for field checks and error responses.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

from .packet_type import PacketType
from .push import push_packet

logger = logging.getLogger("maris_live.realtime.handler")


class BasePacketHandler(ABC):
    """
    Abstract base class for client packet handlers.

    Subclasses set ``packet_type`` and implement ``handle()``.
    """

    packet_type: PacketType

    def __init__(self, game_manager):
        self.game_manager = game_manager

    @property
    def push(self):
        return self.game_manager.push

    @abstractmethod
    async def handle(self, packet: Dict[str, Any], connection: Any,
                     user_id: Optional[str] = None) -> bool:
        """
        Handle a client packet.

        Args:
            packet: Decoded packet body
            connection: The client connection the packet arrived on
            user_id: Authenticated user of the connection, None if anonymous

        Returns:
            True if the packet was acted upon
        """
        pass

    def has_fields(self, packet: Any, fields: Iterable[str]) -> bool:
        """Check that ``packet`` is a dict holding every field."""
        if not isinstance(packet, dict):
            return False
        return all(field in packet for field in fields)

    def send_error(self, connection: Any, message: str) -> None:
        """Send an error dialog to a single connection."""
        push_packet(self.push, PacketType.MESSAGE_RESPONSE, {
            "error": True,
            "message": message,
            "dialog": True,
        }, connections=connection)
