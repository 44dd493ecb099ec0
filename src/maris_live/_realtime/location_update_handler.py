# Area: Realtime
"""
maris_live._realtime.location_update_handler - Location Update Handler
======================================================================

Handles LOCATION_UPDATE packets from players.

Flow:
1. Validate the packet and the sender
2. Check in parallel that the game is running, the sender participates,
   and fetch the live game
3. Store the location on the live user and recompute point ranges
4. Top up the user's assignments
"""

import logging
from typing import Any, Dict, Optional

from .._coord.fanout import guarded, join
from .._shared.models import Coordinate, GameStage, is_object_id
from ..errors import MarisLiveError
from .handler_base import BasePacketHandler
from .packet_type import PacketType

logger = logging.getLogger("maris_live.realtime.handler.location_update")

ERROR_INTERNAL = "An error occurred while sending your location, due to an internal server error."
ERROR_UNAUTHORIZED = "An error occurred while sending your location, you are not authorized."


class LocationUpdateHandler(BasePacketHandler):
    """Handler for LOCATION_UPDATE packets."""

    packet_type = PacketType.LOCATION_UPDATE

    async def handle(self, packet: Dict[str, Any], connection: Any,
                     user_id: Optional[str] = None) -> bool:
        """
        Handle a LOCATION_UPDATE packet.

        Args:
            packet: ``{"game": <id>, "location": {"latitude", "longitude"}}``
            connection: Sender connection, receives error responses
            user_id: Authenticated sender, None if not logged in

        Returns:
            True if the location was applied
        """
        if not self.has_fields(packet, ("game", "location")):
            logger.warning("Received malformed location packet, missing game/location data")
            self.send_error(connection, ERROR_INTERNAL)
            return False

        if user_id is None:
            self.send_error(connection, ERROR_UNAUTHORIZED)
            return False

        coordinate = Coordinate.parse(packet["location"])
        if coordinate is None or not is_object_id(packet["game"]) or not is_object_id(user_id):
            self.send_error(connection, ERROR_INTERNAL)
            return False
        game_id = str(packet["game"]).lower()
        user_id = str(user_id).lower()

        manager = self.game_manager
        timeout = manager.config.io_timeout_seconds
        try:
            stage, roles, live_game = await join([
                guarded(manager.store.get_field(game_id, "stage"), timeout, "game.stage"),
                guarded(manager.permissions.user_game_role(game_id, user_id),
                        timeout, "game.roles"),
                manager.get_game(game_id),
            ], label="location_update.checks")
        except MarisLiveError as e:
            logger.error(f"Location update checks failed for user {user_id}: {e}")
            self.send_error(connection, ERROR_INTERNAL)
            return False

        if int(stage) != GameStage.RUNNING or not roles.participant or live_game is None:
            self.send_error(connection, ERROR_INTERNAL)
            return False

        try:
            live_user = await live_game.get_user(user_id)
        except MarisLiveError as e:
            logger.error(f"Failed to get live user {user_id}: {e}")
            live_user = None
        if live_user is None:
            self.send_error(connection, ERROR_INTERNAL)
            return False

        try:
            await live_user.update_location(coordinate, connection)
        except MarisLiveError as e:
            logger.error(f"Failed to update player location, ignoring ({e})")

        try:
            await live_game.point_manager.update_user_points(user_id)
        except MarisLiveError as e:
            logger.error(f"Failed to update points of user {user_id}: {e}")
            self.send_error(connection, ERROR_INTERNAL)
            return False
        return True
