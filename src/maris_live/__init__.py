"""
maris_live - Live Game Core
===========================

Runtime state of running location games: which players are in range of
which points, which assignments are open for them there, and the push
packets that keep web clients in sync.

Quick Start:
    from maris_live import GameManager, InMemoryStore, load_config
    manager = GameManager(store, push, permissions, load_config())
    await manager.load()

    router = create_packet_router(manager)
    await router.route(packet_type, packet, connection, user_id)

Collaborators
-------------
The store, push channel and permission oracle are passed in; see
``maris_live._shared.interfaces`` for the protocols they implement.
"""

from ._coord import CallbackLatch, JoinPolicy, first_true, guarded, join
from ._live import (
    AssignmentFilter,
    GameManager,
    LiveGame,
    LivePoint,
    LiveUser,
    PointManager,
    PointNotInGameError,
    RangeState,
    UserManager,
)
from ._realtime import (
    GameStageChangeHandler,
    LocationUpdateHandler,
    PacketRouter,
    PacketType,
)
from ._shared.interfaces import PermissionOracle, PersistenceStore, PushChannel
from ._shared.logging_config import setup_logging
from ._shared.models import (
    ApprovalState,
    Coordinate,
    GameRoles,
    GameStage,
    PointRecord,
    SubmissionRecord,
)
from ._store import InMemoryStore
from .config import LiveConfig, RangeHysteresis, load_config
from .errors import (
    FanOutError,
    InvalidReferenceError,
    MarisLiveError,
    OperationTimeoutError,
    PersistenceError,
)


def create_packet_router(game_manager: GameManager) -> PacketRouter:
    """Build a router with every client packet handler registered."""
    router = PacketRouter()
    for handler in (LocationUpdateHandler(game_manager),
                    GameStageChangeHandler(game_manager)):
        router.register_handler(handler.packet_type, handler)
    return router


__all__ = [
    # Main classes
    "GameManager",
    "LiveGame",
    "LivePoint",
    "LiveUser",
    "PointManager",
    "UserManager",
    "RangeState",
    "AssignmentFilter",
    "InMemoryStore",
    # Realtime
    "PacketType",
    "PacketRouter",
    "LocationUpdateHandler",
    "GameStageChangeHandler",
    "create_packet_router",
    # Coordination
    "CallbackLatch",
    "JoinPolicy",
    "guarded",
    "join",
    "first_true",
    # Configuration and logging
    "LiveConfig",
    "RangeHysteresis",
    "load_config",
    "setup_logging",
    # Records and collaborators
    "ApprovalState",
    "Coordinate",
    "GameRoles",
    "GameStage",
    "PointRecord",
    "SubmissionRecord",
    "PersistenceStore",
    "PushChannel",
    "PermissionOracle",
    # Errors
    "MarisLiveError",
    "InvalidReferenceError",
    "PersistenceError",
    "OperationTimeoutError",
    "FanOutError",
    "PointNotInGameError",
]
__version__ = "1.0.0"
