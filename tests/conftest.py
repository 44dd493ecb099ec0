# Area: Test Fixtures
"""Shared fixtures: a seeded in-memory game world and recording collaborators."""

import asyncio

import pytest

from maris_live._live.game_manager import GameManager
from maris_live._shared.models import Coordinate, GameRoles, GameStage, PointRecord
from maris_live._store.memory import InMemoryStore
from maris_live.config import LiveConfig

METERS_PER_DEGREE_LAT = 111195.08


class RecordingPushChannel:
    """Push channel that records every packet as (type, payload, target)."""

    def __init__(self):
        self.sent = []
        self.failing_users = set()

    def send_to_user(self, packet_type, payload, user_id):
        if user_id in self.failing_users:
            raise ConnectionError(f"socket of {user_id} is gone")
        self.sent.append((packet_type, payload, user_id))

    def send_to_connection(self, packet_type, payload, connection):
        self.sent.append((packet_type, payload, connection))

    def of_type(self, packet_type):
        return [entry for entry in self.sent if entry[0] == int(packet_type)]

    def clear(self):
        self.sent.clear()


class DictPermissionOracle:
    """Permission oracle backed by plain dicts."""

    def __init__(self):
        self.roles = {}
        self.managers = set()

    async def game_has_manage_permission(self, game_id, user_id):
        return (game_id, user_id) in self.managers

    async def user_game_role(self, game_id, user_id):
        return self.roles.get((game_id, user_id), GameRoles())


class World:
    """
    One running game with three members, two points and four assignments.

    POINT sits at BASE; POINT_FAR is about 1.1 km north of it.
    """

    GAME = "5a0000000000000000000001"
    OTHER_GAME = "5a0000000000000000000002"
    PLAYER = "5b0000000000000000000001"
    OTHER_PLAYER = "5b0000000000000000000002"
    SPECTATOR = "5b0000000000000000000003"
    MANAGER = "5b0000000000000000000004"
    POINT = "5c0000000000000000000001"
    POINT_FAR = "5c0000000000000000000002"
    ASSIGNMENTS = [
        "5d0000000000000000000001",
        "5d0000000000000000000002",
        "5d0000000000000000000003",
        "5d0000000000000000000004",
    ]
    BASE = Coordinate(latitude=52.0, longitude=5.0)

    def __init__(self, config=None):
        self.store = InMemoryStore()
        self.push = RecordingPushChannel()
        self.permissions = DictPermissionOracle()
        self.config = config or LiveConfig()

        self.store.add_game(self.GAME, name="Treasure Hunt", stage=GameStage.RUNNING)
        self.store.add_user(self.PLAYER, name="Alice", game_id=self.GAME)
        self.store.add_user(self.OTHER_PLAYER, name="Bob", game_id=self.GAME)
        self.store.add_user(self.SPECTATOR, name="Carol", game_id=self.GAME)
        self.store.add_user(self.MANAGER, name="Dave")
        self.store.add_point(PointRecord(
            id=self.POINT, name="Fountain", game_id=self.GAME,
            user_id=self.MANAGER, location=self.BASE,
        ))
        self.store.add_point(PointRecord(
            id=self.POINT_FAR, name="Windmill", game_id=self.GAME,
            user_id=self.MANAGER, location=self.north(1100),
        ))
        for i, assignment_id in enumerate(self.ASSIGNMENTS):
            self.store.add_assignment(assignment_id, self.GAME, name=f"Assignment {i + 1}")

        self.permissions.roles[(self.GAME, self.PLAYER)] = GameRoles(participant=True)
        self.permissions.roles[(self.GAME, self.OTHER_PLAYER)] = GameRoles(participant=True)
        self.permissions.roles[(self.GAME, self.SPECTATOR)] = GameRoles(spectator=True)
        self.permissions.managers.add((self.GAME, self.MANAGER))
        self.permissions.managers.add((self.OTHER_GAME, self.MANAGER))

        self.manager = GameManager(self.store, self.push, self.permissions, self.config)

    def north(self, meters):
        """Coordinate ``meters`` north of BASE."""
        return Coordinate(
            latitude=self.BASE.latitude + meters / METERS_PER_DEGREE_LAT,
            longitude=self.BASE.longitude,
        )

    def slow_reads(self, delay=0.01):
        """Make every store field read pause before answering."""
        read = self.store.get_field

        async def get_field(entity_id, field):
            await asyncio.sleep(delay)
            return await read(entity_id, field)

        self.store.get_field = get_field

    async def load(self):
        """Load all running games and return the live game."""
        await self.manager.load()
        return self.manager.get_loaded_game(self.GAME)


@pytest.fixture
def world():
    return World()


@pytest.fixture
def make_world():
    """Build a world with a custom LiveConfig."""
    return World
