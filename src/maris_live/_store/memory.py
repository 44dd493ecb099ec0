# Area: Store
"""
maris_live._store.memory - In-memory persistence store
======================================================

Dict-backed implementation of the PersistenceStore protocol. Used for
local runs, demos and tests. Supports failure injection so callers can
exercise their error paths without a database.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from .._shared.models import (
    ApprovalState,
    GameStage,
    PointRecord,
    SubmissionRecord,
    is_object_id,
)
from ..errors import PersistenceError

logger = logging.getLogger("maris_live.store.memory")


class InMemoryStore:
    """
    In-memory store keyed by entity id.

    Every entity is a dict of fields. Points, games, users and
    assignments share one id space, submissions are kept as records.
    """

    def __init__(self):
        self._entities: Dict[str, Dict[str, Any]] = {}
        self._kinds: Dict[str, str] = {}
        self._submissions: List[SubmissionRecord] = []
        self._failures: Set[Tuple[str, Optional[str]]] = set()
        self.calls: List[Tuple[str, Any]] = []

    # ── Seeding ──────────────────────────────────────────────

    def add_game(self, game_id: str, name: str = "Game",
                 stage: int = GameStage.RUNNING,
                 user_ids: Optional[List[str]] = None) -> None:
        self._put(game_id, "game", {
            "name": name, "stage": int(stage), "user_ids": list(user_ids or []),
        })

    def add_user(self, user_id: str, name: str = "User",
                 game_id: Optional[str] = None) -> None:
        self._put(user_id, "user", {"name": name})
        if game_id is not None:
            self._entities[game_id]["user_ids"].append(user_id)

    def add_point(self, point: PointRecord) -> None:
        self._put(point.id, "point", point.model_dump())
        self._entities[point.id]["location"] = point.location

    def add_assignment(self, assignment_id: str, game_id: str,
                       name: str = "Assignment", **fields: Any) -> None:
        data = {"name": name, "game_id": game_id}
        data.update(fields)
        self._put(assignment_id, "assignment", data)

    def add_submission(self, submission: SubmissionRecord) -> None:
        self._submissions.append(submission)

    def set_approval_state(self, submission_id: str, state: ApprovalState) -> None:
        for i, submission in enumerate(self._submissions):
            if submission.id == submission_id:
                self._submissions[i] = submission.model_copy(update={"approval_state": state})
                return
        raise KeyError(submission_id)

    def fail(self, method: str, key: Optional[str] = None) -> None:
        """Make ``method`` raise PersistenceError (optionally only for ``key``)."""
        self._failures.add((method, key))

    def heal(self) -> None:
        self._failures.clear()

    def _put(self, entity_id: str, kind: str, data: Dict[str, Any]) -> None:
        if not is_object_id(entity_id):
            raise ValueError(f"Invalid entity id: {entity_id!r}")
        self._entities[entity_id] = data
        self._kinds[entity_id] = kind

    def _check(self, method: str, key: Optional[str] = None) -> None:
        self.calls.append((method, key))
        if (method, None) in self._failures or (method, key) in self._failures:
            raise PersistenceError(f"Injected failure in {method}", entity_id=key)

    # ── PersistenceStore protocol ────────────────────────────

    async def get_field(self, entity_id: str, field: str) -> Any:
        self._check("get_field", entity_id)
        self._check(f"get_field:{field}", entity_id)
        entity = self._entities.get(entity_id)
        if entity is None:
            raise PersistenceError(f"Unknown entity {entity_id}", entity_id, field)
        if field not in entity:
            raise PersistenceError(f"Unknown field {field}", entity_id, field)
        return entity[field]

    async def set_field(self, entity_id: str, field: str, value: Any) -> None:
        self._check("set_field", entity_id)
        entity = self._entities.get(entity_id)
        if entity is None:
            raise PersistenceError(f"Unknown entity {entity_id}", entity_id, field)
        entity[field] = value

    async def get_points(self, game_id: str) -> List[PointRecord]:
        self._check("get_points", game_id)
        return [
            PointRecord(**data)
            for entity_id, data in self._entities.items()
            if self._kinds[entity_id] == "point" and data["game_id"] == game_id
        ]

    async def get_submissions(
        self,
        user_id: Optional[str] = None,
        assignment_ids: Optional[Sequence[str]] = None,
    ) -> List[SubmissionRecord]:
        self._check("get_submissions", user_id)
        wanted = set(assignment_ids) if assignment_ids is not None else None
        return [
            s for s in self._submissions
            if (user_id is None or s.user_id == user_id)
            and (wanted is None or s.assignment_id in wanted)
        ]

    async def is_valid_point_id(self, point_id: str) -> bool:
        self._check("is_valid_point_id", point_id)
        return self._kinds.get(point_id) == "point"

    async def delete_point(self, point_id: str) -> None:
        self._check("delete_point", point_id)
        if self._kinds.get(point_id) != "point":
            raise PersistenceError(f"Unknown point {point_id}", point_id)
        del self._entities[point_id]
        del self._kinds[point_id]
        logger.debug("Deleted point %s", point_id)

    async def get_game_user_ids(self, game_id: str) -> List[str]:
        self._check("get_game_user_ids", game_id)
        game = self._entities.get(game_id)
        return list(game["user_ids"]) if game else []

    async def get_games_with_stage(self, stage: int) -> List[str]:
        self._check("get_games_with_stage")
        return [
            entity_id for entity_id, data in self._entities.items()
            if self._kinds[entity_id] == "game" and data["stage"] == int(stage)
        ]

    async def get_assignments_without_submissions(
        self, game_id: str, user_id: str
    ) -> List[str]:
        self._check("get_assignments_without_submissions", user_id)
        submitted = {s.assignment_id for s in self._submissions if s.user_id == user_id}
        return [
            entity_id for entity_id, data in self._entities.items()
            if self._kinds[entity_id] == "assignment"
            and data["game_id"] == game_id
            and entity_id not in submitted
        ]
