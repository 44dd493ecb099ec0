# Area: Live
"""
Live - Runtime state of running games.

This package handles:
- Live games and the registry that loads them
- Live users, their locations and mutual visibility
- Live points, range tracking and assignment memory
- Distributing assignments over points
"""

from .assignment_filter import ACTIVE_FILTER, OPEN_FILTER, AssignmentFilter
from .game import LiveGame
from .game_manager import GameManager
from .point import LivePoint, PointNotInGameError, RangeState
from .point_manager import PointManager
from .user import LiveUser
from .user_manager import UserManager

__all__ = [
    "ACTIVE_FILTER",
    "OPEN_FILTER",
    "AssignmentFilter",
    "LiveGame",
    "GameManager",
    "LivePoint",
    "PointNotInGameError",
    "RangeState",
    "PointManager",
    "LiveUser",
    "UserManager",
]
