# Area: Realtime
"""
maris_live._realtime.packet_router - Client Packet Router
=========================================================

Routes packets received from web clients to their handlers based on
packet type.
"""

import logging
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger("maris_live.realtime.router")


class PacketHandler(Protocol):
    """Protocol for client packet handlers."""

    async def handle(self, packet: Dict[str, Any], connection: Any,
                     user_id: Optional[str] = None) -> bool:
        ...


class PacketRouter:
    """
    Routes client packets to handlers.

    Usage:
        router = PacketRouter()
        router.register_handler(PacketType.LOCATION_UPDATE, handler)
        await router.route(PacketType.LOCATION_UPDATE, packet, connection, user_id)
    """

    def __init__(self):
        self._handlers: Dict[int, PacketHandler] = {}

    def register_handler(self, packet_type: int, handler: PacketHandler) -> None:
        self._handlers[int(packet_type)] = handler
        logger.debug(f"Registered handler for packet type {int(packet_type)}")

    def get_handler(self, packet_type: int) -> Optional[PacketHandler]:
        return self._handlers.get(int(packet_type))

    async def route(self, packet_type: int, packet: Dict[str, Any], connection: Any,
                    user_id: Optional[str] = None) -> bool:
        """
        Route a packet to its handler.

        Returns:
            The handler's result, or False if no handler is registered
        """
        handler = self.get_handler(packet_type)
        if handler is None:
            logger.warning(f"No handler for packet type: {packet_type}")
            return False
        return await handler.handle(packet, connection, user_id)
