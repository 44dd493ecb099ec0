# Area: Shared
"""
maris_live._shared.interfaces - Collaborator protocols
======================================================

The live core talks to three external collaborators. Each is passed in
explicitly when a GameManager is built:

- PersistenceStore: field access and queries against the database layer.
  Every method is a coroutine and may raise PersistenceError.
- PushChannel: sends typed packets to a user's sockets or a single socket.
  Fire-and-forget; nothing is awaited.
- PermissionOracle: role and permission checks.
"""

from typing import Any, List, Optional, Protocol, Sequence

from .models import GameRoles, PointRecord, SubmissionRecord


class PersistenceStore(Protocol):
    """Protocol for the storage collaborator."""

    async def get_field(self, entity_id: str, field: str) -> Any:
        ...

    async def set_field(self, entity_id: str, field: str, value: Any) -> None:
        ...

    async def get_points(self, game_id: str) -> List[PointRecord]:
        ...

    async def get_submissions(
        self,
        user_id: Optional[str] = None,
        assignment_ids: Optional[Sequence[str]] = None,
    ) -> List[SubmissionRecord]:
        ...

    async def is_valid_point_id(self, point_id: str) -> bool:
        ...

    async def delete_point(self, point_id: str) -> None:
        ...

    async def get_game_user_ids(self, game_id: str) -> List[str]:
        ...

    async def get_games_with_stage(self, stage: int) -> List[str]:
        ...

    async def get_assignments_without_submissions(
        self, game_id: str, user_id: str
    ) -> List[str]:
        ...


class PushChannel(Protocol):
    """Protocol for the push-notification collaborator."""

    def send_to_user(self, packet_type: int, payload: dict, user_id: str) -> None:
        ...

    def send_to_connection(self, packet_type: int, payload: dict, connection: Any) -> None:
        ...


class PermissionOracle(Protocol):
    """Protocol for the permission collaborator."""

    async def game_has_manage_permission(self, game_id: str, user_id: str) -> bool:
        ...

    async def user_game_role(self, game_id: str, user_id: str) -> GameRoles:
        ...
