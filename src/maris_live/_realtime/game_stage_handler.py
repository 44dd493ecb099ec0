# Area: Realtime
"""
maris_live._realtime.game_stage_handler - Game Stage Change Handler
===================================================================

Handles GAME_STAGE_CHANGE packets sent by game managers to start or
finish a game.

Flow:
1. Validate the packet, the requested stage and the sender
2. Check in parallel that the sender may manage the game and that the
   stage actually changes
3. Persist the new stage
4. Load the live game when it starts, unload it otherwise
5. Send GAME_STAGE_CHANGED to the game's members and the sender
"""

import logging
from typing import Any, Dict, List, Optional

from .._coord.fanout import guarded, join
from .._shared.logging_config import log_best_effort_failure
from .._shared.models import GameStage, is_object_id
from ..errors import MarisLiveError
from .handler_base import BasePacketHandler
from .packet_type import PacketType
from .push import push_packet

logger = logging.getLogger("maris_live.realtime.handler.game_stage")

ERROR_GENERIC = "An error occurred while changing the stage of this game."
ERROR_NOT_LOGGED_IN = "An error occurred while changing the stage of this game, you are not logged in."
ERROR_NO_PERMISSION = "You don't have permission to change the stage of this game."
ERROR_SAME_STAGE = ("An error occurred while changing the stage of this game. "
                    "The game is already in the requested stage.")
ERROR_LOAD_FAILED = "An error occurred while loading this game, so it could not be started."


class GameStageChangeHandler(BasePacketHandler):
    """Handler for GAME_STAGE_CHANGE packets."""

    packet_type = PacketType.GAME_STAGE_CHANGE

    async def handle(self, packet: Dict[str, Any], connection: Any,
                     user_id: Optional[str] = None) -> bool:
        """
        Handle a GAME_STAGE_CHANGE packet.

        Args:
            packet: ``{"game": <id>, "stage": 1 | 2}``
            connection: Sender connection, receives error responses
            user_id: Authenticated sender, None if not logged in

        Returns:
            True if the stage was changed
        """
        if not self.has_fields(packet, ("game", "stage")):
            logger.warning("Received malformed game stage change packet, missing game/stage data")
            return False

        try:
            stage = int(packet["stage"])
        except (TypeError, ValueError):
            stage = None
        if stage is None or stage < GameStage.RUNNING or stage > GameStage.FINISHED:
            self.send_error(connection, ERROR_GENERIC)
            return False
        stage = GameStage(stage)

        if user_id is None:
            self.send_error(connection, ERROR_NOT_LOGGED_IN)
            return False

        if not is_object_id(packet["game"]) or not is_object_id(user_id):
            self.send_error(connection, ERROR_GENERIC)
            return False
        game_id = str(packet["game"]).lower()
        user_id = str(user_id).lower()

        manager = self.game_manager
        timeout = manager.config.io_timeout_seconds
        try:
            allowed, current = await join([
                guarded(manager.permissions.game_has_manage_permission(game_id, user_id),
                        timeout, "game.manage_permission"),
                guarded(manager.store.get_field(game_id, "stage"), timeout, "game.stage"),
            ], label="stage_change.checks")
        except MarisLiveError as e:
            logger.error(f"Stage change checks failed for game {game_id}: {e}")
            self.send_error(connection, ERROR_GENERIC)
            return False

        if not allowed:
            self.send_error(connection, ERROR_NO_PERMISSION)
            return False
        if int(current) == stage:
            self.send_error(connection, ERROR_SAME_STAGE)
            return False

        try:
            await guarded(manager.store.set_field(game_id, "stage", int(stage)),
                          timeout, "game.set_stage")
        except MarisLiveError as e:
            logger.error(f"Failed to store stage of game {game_id}: {e}")
            self.send_error(connection, ERROR_GENERIC)
            return False
        logger.info(f"Game {game_id} moved to stage {stage.name} by user {user_id}")

        if stage == GameStage.RUNNING:
            try:
                await manager.load_game(game_id)
            except MarisLiveError as e:
                logger.error(f"Failed to load started game {game_id}: {e}")
                self.send_error(connection, ERROR_LOAD_FAILED)
                return False
        else:
            manager.unload_game(game_id)

        await self._broadcast_stage(game_id, stage, user_id)
        return True

    async def _broadcast_stage(self, game_id: str, stage: GameStage, sender_id: str) -> int:
        manager = self.game_manager
        timeout = manager.config.io_timeout_seconds

        try:
            name = await guarded(manager.store.get_field(game_id, "name"), timeout, "game.name")
        except MarisLiveError:
            name = "Unknown"

        member_ids: List[str] = []
        try:
            member_ids = await guarded(manager.store.get_game_user_ids(game_id),
                                       timeout, "game.users")
        except MarisLiveError as e:
            log_best_effort_failure(logger, "Listing game members", e, game_id=game_id)

        recipients = {user: True for user in member_ids}
        recipients.setdefault(sender_id, False)
        for recipient, joined in recipients.items():
            push_packet(self.push, PacketType.GAME_STAGE_CHANGED, {
                "game": game_id,
                "gameName": name,
                "stage": int(stage),
                "joined": joined,
            }, user_id=recipient)
        return len(recipients)
