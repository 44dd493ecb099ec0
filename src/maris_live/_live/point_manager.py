# Area: Live
"""
maris_live._live.point_manager - Live points of one game
========================================================

Owns every LivePoint of a running game. Points are bulk-loaded with the
game or materialised on first lookup, and evicted on unload or when the
backing point is destroyed.

Also hands out assignments to users: a user should always have at least
``point_min_clean`` points where every assignment is still open.
"""

from __future__ import annotations

import logging
import math
import random
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .._coord.fanout import guarded, join
from .._shared.logging_config import log_best_effort_failure
from .._shared.models import parse_object_id
from ..errors import InvalidReferenceError, MarisLiveError
from .assignment_filter import OPEN_FILTER
from .point import LivePoint

if TYPE_CHECKING:
    from .game import LiveGame

logger = logging.getLogger("maris_live.live.point_manager")


class PointManager:

    def __init__(self, game: "LiveGame"):
        self.game = game
        self._points: Dict[str, LivePoint] = {}

    @property
    def points(self) -> List[LivePoint]:
        return list(self._points.values())

    @property
    def _timeout(self) -> float:
        return self.game.config.io_timeout_seconds

    # ── Lookup ───────────────────────────────────────────────

    async def get_point(self, point: Any) -> Optional[LivePoint]:
        """
        Get a loaded point, or load it from the store.

        Returns:
            The LivePoint, or None if the point does not exist or belongs
            to another game

        Raises:
            InvalidReferenceError: If the point id is malformed
        """
        point_id = parse_object_id(point, "point")
        loaded = self._points.get(point_id)
        if loaded is not None:
            return loaded
        return await self.load_point(point_id)

    async def load_point(self, point: Any) -> Optional[LivePoint]:
        point_id = parse_object_id(point, "point")
        store = self.game.store
        if not await guarded(store.is_valid_point_id(point_id), self._timeout, "point.valid"):
            return None
        game_id = await guarded(store.get_field(point_id, "game_id"), self._timeout, "point.game_id")
        if game_id != self.game.id:
            return None

        loaded = self._points.get(point_id)
        if loaded is not None:
            return loaded
        live_point = LivePoint(point_id, self.game)
        await live_point.load()
        self._points[point_id] = live_point
        logger.debug("Loaded point %s on demand", point_id)
        return live_point

    def get_loaded_point(self, point: Any) -> Optional[LivePoint]:
        return self._points.get(parse_object_id(point, "point"))

    def is_point_loaded(self, point: Any) -> bool:
        return self.get_loaded_point(point) is not None

    def get_loaded_point_count(self) -> int:
        return len(self._points)

    # ── Load / unload ────────────────────────────────────────

    async def load(self) -> None:
        """Discard all live points and load every point of the game."""
        records = await guarded(
            self.game.store.get_points(self.game.id), self._timeout, "game.points",
        )
        self.unload()
        points = [LivePoint(record, self.game) for record in records]
        await join([p.load() for p in points], label="points.load")
        for point in points:
            self._points[point.id] = point
        logger.info("Loaded %d point(s) for game %s", len(points), self.game.id)

    def unload(self) -> None:
        for point in self._points.values():
            point.unload()
        self._points.clear()

    def unload_point(self, point: Any) -> bool:
        live_point = self._points.pop(parse_object_id(point, "point"), None)
        if live_point is None:
            return False
        live_point.unload()
        return True

    # ── Queries ──────────────────────────────────────────────

    async def get_visible_points(self, user: Any) -> List[LivePoint]:
        """Points where the user still has at least one open assignment."""
        if user is None:
            raise InvalidReferenceError("user", user)
        live_user = await self.game.get_user(user)
        if live_user is None:
            return []
        points = self.points
        flags = await join(
            [p.has_user_assignments(live_user, OPEN_FILTER) for p in points],
            label="points.visible",
        )
        return [p for p, visible in zip(points, flags) if visible]

    async def get_unused_points(self, user: Any) -> List[LivePoint]:
        """Points that hold no assignments for the user."""
        user_id = parse_object_id(user, "user")
        points = self.points
        counts = await join(
            [p.get_user_assignment_count(user_id) for p in points],
            label="points.unused",
        )
        return [p for p, count in zip(points, counts) if count <= 0]

    async def get_unused_assignments(self, user: Any) -> List[str]:
        """Assignments the user has not submitted and not been handed out."""
        user_id = parse_object_id(user, "user")
        candidates = await guarded(
            self.game.store.get_assignments_without_submissions(self.game.id, user_id),
            self._timeout, "game.unused_assignments",
        )
        used_lists = await join(
            [p.get_user_assignment_ids(user_id) for p in self.points],
            label="points.used_assignments",
        )
        used = {a for ids in used_lists for a in ids}
        return [a for a in candidates if a not in used]

    async def _is_clean(self, point: LivePoint, user_id: str) -> bool:
        all_count, open_count = await join(
            [point.get_user_assignment_count(user_id),
             point.get_user_assignment_count(user_id, OPEN_FILTER)],
            label="points.clean",
        )
        return all_count > 0 and all_count == open_count

    async def update_user_points(self, user: Any) -> List[LivePoint]:
        """
        Top up the user's clean points with fresh assignments.

        A point is clean for a user when it holds assignments and all of
        them are still open. Missing clean points are picked at random
        from unused points and given up to ``point_assignment_count``
        unused assignments each.

        Returns:
            The points that received assignments
        """
        user_id = parse_object_id(user, "user")
        config = self.game.config

        clean = await join([self._is_clean(p, user_id) for p in self.points],
                           label="points.clean_all")
        missing = max(config.point_min_clean - sum(clean), 0)
        if missing == 0:
            return []

        unused_points, unused_assignments = await join(
            [self.get_unused_points(user_id), self.get_unused_assignments(user_id)],
            label="points.unused_all",
        )
        if not unused_points or not unused_assignments:
            return []

        chosen = random.sample(unused_points, min(missing, len(unused_points)))
        pool = list(unused_assignments)
        updated: List[LivePoint] = []
        for point in chosen:
            count = min(math.ceil(len(pool) / len(chosen)), config.point_assignment_count)
            picked = []
            while len(picked) < count and pool:
                picked.append(pool.pop(random.randrange(len(pool))))
            if not picked:
                break
            point.set_user_assignments(user_id, picked)
            updated.append(point)

        logger.info("Assigned %d point(s) to user %s in game %s",
                    len(updated), user_id, self.game.id)

        try:
            await self.game.manager.broadcast_location_data(game=self.game.id, user=user_id)
        except MarisLiveError as e:
            log_best_effort_failure(logger, "Location data broadcast", e,
                                    game_id=self.game.id, user_id=user_id)
        return updated
