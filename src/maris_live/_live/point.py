# Area: Live
"""
maris_live._live.point - Live point
===================================

Runtime shadow of one persisted point inside a running game.

A LivePoint remembers two things that are never persisted:

- range memory: the users last computed to be in range of the point
- assignment memory: per user, the ordered assignment ids handed out
  at this point

Both reflect the *last computed* state. ``update_range_state`` must run
before range memory is trusted for a user.

Range state per (point, user) is a two-state machine:

    OUT_OF_RANGE --(in range)--> IN_RANGE
    IN_RANGE --(out of range)--> OUT_OF_RANGE

Every transition broadcasts point data to the users who can see the
point and notifies the moving user. Users never evaluated start in
OUT_OF_RANGE.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Iterable, List, Optional, Set

from .._coord.fanout import first_true, guarded, join
from .._realtime.packet_type import PacketType
from .._realtime.push import as_connection_list
from .._shared.logging_config import log_best_effort_failure
from .._shared.models import Coordinate, GameStage, parse_object_id
from ..errors import MarisLiveError
from .assignment_filter import ACTIVE_FILTER, AssignmentFilter

if TYPE_CHECKING:
    from .game import LiveGame
    from .user import LiveUser

logger = logging.getLogger("maris_live.live.point")


class RangeState(Enum):
    OUT_OF_RANGE = "out_of_range"
    IN_RANGE = "in_range"


class PointNotInGameError(MarisLiveError):
    """Raised when a point's stored game differs from its live game."""

    def __init__(self, point_id: str, game_id: str):
        self.point_id = point_id
        self.game_id = game_id
        super().__init__(f"Point {point_id} is not part of game {game_id}")


class LivePoint:
    """
    Live point owned by exactly one PointManager.

    Args:
        point: Point id or record (anything with an ``id``)
        game: The live game this point belongs to

    Raises:
        InvalidReferenceError: If the point id is malformed
    """

    def __init__(self, point: Any, game: "LiveGame"):
        self.id = parse_object_id(point, "point")
        self.game = game
        self._range_memory: Set[str] = set()
        self._assignment_memory: Dict[str, List[str]] = {}
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<LivePoint {self.id}>"

    @property
    def _timeout(self) -> float:
        return self.game.config.io_timeout_seconds

    def is_point(self, point: Any) -> bool:
        return self.id == parse_object_id(point, "point")

    # ── Persisted fields ─────────────────────────────────────

    async def _get_field(self, field: str) -> Any:
        return await guarded(
            self.game.store.get_field(self.id, field),
            self._timeout, f"point.{field}",
        )

    async def get_name(self) -> str:
        return await self._get_field("name")

    async def get_location(self) -> Coordinate:
        return await self._get_field("location")

    async def get_game_id(self) -> str:
        return await self._get_field("game_id")

    # ── Lifecycle ────────────────────────────────────────────

    async def load(self) -> None:
        """Nothing is preloaded; fields are read from the store on demand."""
        return None

    def unload(self) -> None:
        self._range_memory.clear()
        self._assignment_memory.clear()

    # ── Range memory ─────────────────────────────────────────

    def is_in_range_memory(self, user: Any) -> bool:
        return parse_object_id(user, "user") in self._range_memory

    def set_in_range_memory(self, user: Any, in_range: bool) -> bool:
        """
        Store the range state for a user.

        Returns:
            True if the remembered state flipped, False if unchanged
        """
        user_id = parse_object_id(user, "user")
        if (user_id in self._range_memory) == in_range:
            return False
        if in_range:
            self._range_memory.add(user_id)
        else:
            self._range_memory.discard(user_id)
        return True

    def get_range_state(self, user: Any) -> RangeState:
        if self.is_in_range_memory(user):
            return RangeState.IN_RANGE
        return RangeState.OUT_OF_RANGE

    def get_in_range_user_ids(self) -> FrozenSet[str]:
        return frozenset(self._range_memory)

    # ── Assignment memory ────────────────────────────────────

    def set_user_assignments(self, user: Any, assignment_ids: Iterable[Any]) -> None:
        """Replace the assignment ids remembered for a user (order kept)."""
        user_id = parse_object_id(user, "user")
        ids = [parse_object_id(a, "assignment") for a in assignment_ids]
        self._assignment_memory[user_id] = list(dict.fromkeys(ids))

    def remove_user_assignments(
        self, user: Any, assignment_ids: Optional[Iterable[Any]] = None
    ) -> int:
        """
        Prune assignment ids for a user; all of them if none are given.

        Returns:
            Number of ids removed
        """
        user_id = parse_object_id(user, "user")
        current = self._assignment_memory.get(user_id, [])
        if assignment_ids is None:
            self._assignment_memory.pop(user_id, None)
            return len(current)
        drop = {parse_object_id(a, "assignment") for a in assignment_ids}
        kept = [a for a in current if a not in drop]
        if kept:
            self._assignment_memory[user_id] = kept
        else:
            self._assignment_memory.pop(user_id, None)
        return len(current) - len(kept)

    def clear_user(self, user: Any) -> None:
        """Forget everything remembered about a user."""
        user_id = parse_object_id(user, "user")
        self._range_memory.discard(user_id)
        self._assignment_memory.pop(user_id, None)

    async def get_user_assignment_ids(self, user: Any, filter: Any = None) -> List[str]:
        """
        Assignment ids remembered for a user, optionally filtered.

        Filtering reads the user's submissions for all remembered ids
        in a single store query.
        """
        user_id = parse_object_id(user, "user")
        ids = list(self._assignment_memory.get(user_id, []))
        flt = AssignmentFilter.coerce(filter)
        if flt is None or not ids:
            return ids

        submissions = await guarded(
            self.game.store.get_submissions(user_id=user_id, assignment_ids=ids),
            self._timeout, "point.submissions",
        )
        by_assignment = defaultdict(list)
        for submission in submissions:
            by_assignment[submission.assignment_id].append(submission)
        return [a for a in ids if flt.matches(by_assignment.get(a, []))]

    async def get_user_assignment_count(self, user: Any, filter: Any = None) -> int:
        return len(await self.get_user_assignment_ids(user, filter))

    async def has_user_assignments(self, user: Any, filter: Any = None) -> bool:
        return await self.get_user_assignment_count(user, filter) > 0

    # ── Range and visibility ─────────────────────────────────

    async def is_user_in_range(self, live_user: Optional["LiveUser"],
                               range_: Optional[float] = None) -> bool:
        """
        Check whether a user is within range of this point.

        Without an explicit ``range_`` the radius depends on the remembered
        state and the configured hysteresis policy.
        """
        if live_user is None:
            return False
        user_location = live_user.get_recent_location()
        if user_location is None:
            return False

        if range_ is None:
            if self.is_in_range_memory(live_user):
                range_ = self.game.config.exit_radius()
            else:
                range_ = self.game.config.enter_radius()

        point_location = await self.get_location()
        return point_location.is_in_range(user_location, range_)

    async def is_visible_for(self, live_user: Optional["LiveUser"]) -> bool:
        """
        Check whether this point is shown to a user.

        Visible to everyone once the game is finished. Otherwise visible to
        spectators and to users with an open or pending assignment here.
        """
        if live_user is None:
            return False
        stage = await self.game.get_stage()
        if stage >= GameStage.FINISHED:
            return True
        return await first_true(
            [self._is_spectator(live_user),
             self.has_user_assignments(live_user, ACTIVE_FILTER)],
            timeout=self._timeout, label=f"point.{self.id}.visible",
        )

    async def _is_spectator(self, live_user: "LiveUser") -> bool:
        roles = await live_user.get_roles()
        return roles.spectator

    async def get_visibility_state(self, live_user: "LiveUser") -> Dict[str, bool]:
        return {"inRange": self.is_in_range_memory(live_user)}

    async def update_range_state(self, live_user: "LiveUser") -> bool:
        """
        Recompute the range state for a user and react to a transition.

        Store errors while computing the range propagate and leave range
        memory untouched. Broadcasting and notifying afterwards is
        best-effort.

        Returns:
            True if the user's range state flipped
        """
        async with self._lock:
            in_range = await self.is_user_in_range(live_user)
            changed = self.set_in_range_memory(live_user, in_range)
        if not changed:
            return False

        logger.info("User %s %s range of point %s", live_user.id,
                    "entered" if in_range else "left", self.id)

        try:
            await self.broadcast_data()
        except MarisLiveError as e:
            log_best_effort_failure(logger, "Point data broadcast", e, point_id=self.id)

        try:
            await self._notify_range_change(live_user, in_range)
        except MarisLiveError as e:
            log_best_effort_failure(logger, "Range change notification", e,
                                    point_id=self.id, user_id=live_user.id)
        return True

    async def _notify_range_change(self, live_user: "LiveUser", in_range: bool) -> None:
        name, visible = await join(
            [self.get_name(), self.is_visible_for(live_user)],
            timeout=self._timeout, label="point.notify",
        )
        if not visible:
            return
        self.game.push_to_user(PacketType.POINT_RANGE_CHANGED, {
            "point": self.id,
            "name": name,
            "inRange": in_range,
        }, live_user.id)

    # ── Push ─────────────────────────────────────────────────

    async def send_data(self, user: Any, connections: Any = None) -> None:
        """
        Push this point's data to a user.

        Sent to the given connection(s), or to all of the user's
        connections if none are given.

        Raises:
            PointNotInGameError: If the stored point belongs to another game
        """
        user_id = parse_object_id(user, "user")
        connections = as_connection_list(connections)

        game_id, name = await join(
            [self.get_game_id(), self.get_name()],
            timeout=self._timeout, label="point.send_data",
        )
        if game_id != self.game.id:
            raise PointNotInGameError(self.id, self.game.id)

        payload = {
            "point": self.id,
            "game": self.game.id,
            "data": {
                "name": name,
                "inRange": user_id in self._range_memory,
            },
        }
        if connections:
            self.game.push_to_connections(PacketType.POINT_DATA, payload, connections)
        else:
            self.game.push_to_user(PacketType.POINT_DATA, payload, user_id)

    async def _visible_users(self) -> List["LiveUser"]:
        users = list(self.game.user_manager.users)
        visible = await join(
            [self.is_visible_for(u) for u in users],
            label=f"point.{self.id}.visible_users",
        )
        return [u for u, v in zip(users, visible) if v]

    async def broadcast_data(self) -> int:
        """
        Send point data to every live user who can see this point.

        Returns:
            Number of users the data was sent to
        """
        targets = await self._visible_users()
        await join([self.send_data(u) for u in targets], label="point.broadcast")
        logger.debug("Broadcast point %s to %d user(s)", self.id, len(targets))
        return len(targets)

    async def destroy(self, notify: bool = True) -> None:
        """
        Delete the persisted point and evict it from its manager.

        With ``notify``, users who could see the point beforehand get a
        POINT_DESTROYED packet (best-effort).
        """
        recipients: List[str] = []
        if notify:
            try:
                recipients = [u.id for u in await self._visible_users()]
            except MarisLiveError as e:
                log_best_effort_failure(logger, "Collecting destroy recipients", e,
                                        point_id=self.id)

        await guarded(self.game.store.delete_point(self.id), self._timeout, "point.delete")
        self.game.point_manager.unload_point(self)
        logger.info("Destroyed point %s", self.id)

        payload = {"point": self.id, "game": self.game.id}
        for user_id in recipients:
            self.game.push_to_user(PacketType.POINT_DESTROYED, payload, user_id)
