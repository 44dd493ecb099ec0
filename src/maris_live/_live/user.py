# Area: Live
"""
maris_live._live.user - Live user
=================================

Runtime state of one participant or spectator in a running game: the
last known location, when it was received, and the visibility rules
between users. A location older than ``location_decay_seconds`` counts
as absent for every range and visibility check.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Optional

from .._coord.fanout import JoinPolicy, guarded, join
from .._shared.logging_config import log_best_effort_failure
from .._shared.models import Coordinate, GameRoles, parse_object_id
from ..errors import FanOutError, MarisLiveError

if TYPE_CHECKING:
    from .game import LiveGame

logger = logging.getLogger("maris_live.live.user")


class LiveUser:
    """
    Live user owned by exactly one UserManager.

    Raises:
        InvalidReferenceError: If the user id is malformed
    """

    def __init__(self, user: Any, game: "LiveGame"):
        self.id = parse_object_id(user, "user")
        self.game = game
        self._location: Optional[Coordinate] = None
        self._location_time: Optional[float] = None
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<LiveUser {self.id}>"

    def is_user(self, user: Any) -> bool:
        return self.id == parse_object_id(user, "user")

    async def get_name(self) -> str:
        return await guarded(
            self.game.store.get_field(self.id, "name"),
            self.game.config.io_timeout_seconds, "user.name",
        )

    async def get_roles(self) -> GameRoles:
        return await self.game.get_roles(self.id)

    async def load(self) -> None:
        return None

    def unload(self) -> None:
        self._location = None
        self._location_time = None

    # ── Location ─────────────────────────────────────────────

    def set_location(self, location: Coordinate) -> None:
        self._location = location
        self._location_time = time.monotonic()

    def get_location(self) -> Optional[Coordinate]:
        return self._location

    def has_location(self) -> bool:
        return self._location is not None

    def get_location_age(self) -> Optional[float]:
        """Seconds since the last location update, None if never set."""
        if self._location_time is None:
            return None
        return time.monotonic() - self._location_time

    def get_recent_location(self) -> Optional[Coordinate]:
        """The last location, or None once it has decayed."""
        age = self.get_location_age()
        if age is None:
            return None
        if age < self.game.config.location_decay_seconds:
            return self._location
        return None

    def has_recent_location(self) -> bool:
        return self.get_recent_location() is not None

    async def update_location(self, location: Optional[Coordinate] = None,
                              connection: Any = None) -> bool:
        """
        Store a new location and recompute every point's range state.

        If any point changed, fresh game data goes to this user (to
        ``connection`` when given) and location data is broadcast to the
        game. Those two pushes are best-effort.

        Every point is evaluated even if another one fails; the first
        failure is raised once all of them have finished.

        Returns:
            True if any point's range state changed
        """
        async with self._lock:
            if location is not None:
                self.set_location(location)

            points = list(self.game.point_manager.points)
            try:
                results = await join(
                    [p.update_range_state(self) for p in points],
                    policy=JoinPolicy.COLLECT_ALL,
                    label=f"user.{self.id}.range",
                )
            except FanOutError as e:
                # Points that did flip have sent their packets by now.
                raise e.errors[0] from e
            if not any(results):
                return False

            manager = self.game.manager
            try:
                await join(
                    [manager.send_game_data(self.game.id, self.id, connection),
                     manager.broadcast_location_data(game=self.game.id)],
                    policy=JoinPolicy.COLLECT_ALL,
                    label=f"user.{self.id}.notify",
                )
            except MarisLiveError as e:
                log_best_effort_failure(logger, "Location update push", e,
                                        game_id=self.game.id, user_id=self.id)
            return True

    # ── Visibility ───────────────────────────────────────────

    async def is_visible_for(self, other: Optional["LiveUser"]) -> bool:
        """
        Check whether this user is shown to ``other``.

        Spectators are always shown. Participants are shown to spectators,
        or to anyone while their location is recent. Users without any
        known location, or without a role in the game, are never shown.
        """
        if other is None or self.is_user(other):
            return False
        if not self.has_location():
            return False

        own_roles, other_roles = await join(
            [self.get_roles(), other.get_roles()],
            label=f"user.{self.id}.visible",
        )
        if not own_roles.participant and not own_roles.spectator:
            return False
        if own_roles.spectator:
            return True
        if other_roles.spectator:
            return True
        # TODO: hide participants that are far from ``other`` once a
        # player sight radius exists in LiveConfig.
        return self.has_recent_location()

    is_visible_to = is_visible_for
