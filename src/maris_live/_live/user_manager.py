# Area: Live
"""
maris_live._live.user_manager - Live users of one game
======================================================

Creates LiveUsers for members of a running game, either all at once on
load or lazily on first reference.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .._coord.fanout import guarded, join
from .._shared.models import GameRoles, parse_object_id
from .user import LiveUser

if TYPE_CHECKING:
    from .game import LiveGame

logger = logging.getLogger("maris_live.live.user_manager")


def _has_live_role(roles: GameRoles) -> bool:
    return roles.participant or roles.spectator


class UserManager:

    def __init__(self, game: "LiveGame"):
        self.game = game
        self._users: Dict[str, LiveUser] = {}

    @property
    def users(self) -> List[LiveUser]:
        return list(self._users.values())

    def get_loaded_user(self, user: Any) -> Optional[LiveUser]:
        return self._users.get(parse_object_id(user, "user"))

    def get_loaded_user_count(self) -> int:
        return len(self._users)

    async def get_user(self, user: Any) -> Optional[LiveUser]:
        """
        Get the live user, creating it on first reference.

        Returns:
            The LiveUser, or None if the user has no participant or
            spectator role in this game
        """
        user_id = parse_object_id(user, "user")
        loaded = self._users.get(user_id)
        if loaded is not None:
            return loaded

        roles = await self.game.get_roles(user_id)
        if not _has_live_role(roles):
            return None

        # Another caller may have created it while we waited.
        loaded = self._users.get(user_id)
        if loaded is not None:
            return loaded
        live_user = LiveUser(user_id, self.game)
        await live_user.load()
        self._users[user_id] = live_user
        logger.debug("Live user %s created in game %s", user_id, self.game.id)
        return live_user

    async def load(self) -> None:
        """
        Replace all live users with the game's current members.

        Members without a participant or spectator role are skipped, the
        same as in ``get_user``.
        """
        user_ids = await guarded(
            self.game.store.get_game_user_ids(self.game.id),
            self.game.config.io_timeout_seconds, "game.users",
        )
        roles = await join([self.game.get_roles(u) for u in user_ids],
                           label=f"game.{self.game.id}.member_roles")
        self.unload()
        for user_id, user_roles in zip(user_ids, roles):
            if not _has_live_role(user_roles):
                logger.debug("Skipping member %s of game %s without a live role",
                             user_id, self.game.id)
                continue
            live_user = LiveUser(user_id, self.game)
            await live_user.load()
            self._users[live_user.id] = live_user

    def unload(self) -> None:
        for live_user in self._users.values():
            live_user.unload()
        self._users.clear()

    def unload_user(self, user: Any) -> bool:
        live_user = self._users.pop(parse_object_id(user, "user"), None)
        if live_user is None:
            return False
        live_user.unload()
        for point in self.game.point_manager.points:
            point.clear_user(live_user)
        return True
