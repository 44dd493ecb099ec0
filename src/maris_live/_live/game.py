# Area: Live
"""
maris_live._live.game - Live game
=================================

One running game: its live users, its live points, and the collaborators
they reach through it. Nothing here is global; every LiveGame is built by
a GameManager that injects the store, push channel, permission oracle
and configuration.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from .._coord.fanout import guarded, join
from .._realtime.push import push_packet
from .._shared.models import GameRoles, GameStage, parse_object_id
from .point_manager import PointManager
from .user import LiveUser
from .user_manager import UserManager

if TYPE_CHECKING:
    from .game_manager import GameManager

logger = logging.getLogger("maris_live.live.game")


class LiveGame:
    """
    Runtime state of one running game.

    Attributes:
        id: Game id
        manager: Owning GameManager
        user_manager: Live users of this game
        point_manager: Live points of this game
    """

    def __init__(self, game: Any, manager: "GameManager"):
        self.id = parse_object_id(game, "game")
        self.manager = manager
        self.store = manager.store
        self.push = manager.push
        self.permissions = manager.permissions
        self.config = manager.config
        self.user_manager = UserManager(self)
        self.point_manager = PointManager(self)

    def __repr__(self) -> str:
        return f"<LiveGame {self.id}>"

    def is_game(self, game: Any) -> bool:
        return self.id == parse_object_id(game, "game")

    async def get_name(self) -> str:
        return await guarded(
            self.store.get_field(self.id, "name"),
            self.config.io_timeout_seconds, "game.name",
        )

    async def get_stage(self) -> GameStage:
        stage = await guarded(
            self.store.get_field(self.id, "stage"),
            self.config.io_timeout_seconds, "game.stage",
        )
        return GameStage(int(stage))

    async def get_roles(self, user: Any) -> GameRoles:
        return await guarded(
            self.permissions.user_game_role(self.id, parse_object_id(user, "user")),
            self.config.io_timeout_seconds, "game.roles",
        )

    async def get_user(self, user: Any) -> Optional[LiveUser]:
        return await self.user_manager.get_user(user)

    async def load(self) -> None:
        await join([self.user_manager.load(), self.point_manager.load()],
                   label=f"game.{self.id}.load")

    def unload(self) -> None:
        self.point_manager.unload()
        self.user_manager.unload()

    # ── Push (best-effort) ───────────────────────────────────

    def push_to_user(self, packet_type: int, payload: dict, user_id: str) -> None:
        push_packet(self.push, packet_type, payload, user_id=user_id)

    def push_to_connections(self, packet_type: int, payload: dict, connections: Any) -> None:
        push_packet(self.push, packet_type, payload, connections=connections)
