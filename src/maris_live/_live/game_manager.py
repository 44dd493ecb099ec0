# Area: Live
"""
maris_live._live.game_manager - Registry of running games
=========================================================

Loads live games from the store, hands them out, tears them down, and
pushes game-wide data (game data, user locations) to clients.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .._coord.fanout import guarded, join
from .._realtime.packet_type import PacketType
from .._realtime.push import as_connection_list, push_packet
from .._shared.interfaces import PermissionOracle, PersistenceStore, PushChannel
from .._shared.models import GameStage, parse_object_id
from ..config import LiveConfig
from ..errors import MarisLiveError
from .game import LiveGame
from .user import LiveUser

logger = logging.getLogger("maris_live.live.game_manager")


class GameManager:
    """
    Owns every LiveGame of this process.

    Usage:
        manager = GameManager(store, push, permissions, load_config())
        await manager.load()
        game = await manager.get_game(game_id)
    """

    def __init__(
        self,
        store: PersistenceStore,
        push: PushChannel,
        permissions: PermissionOracle,
        config: Optional[LiveConfig] = None,
    ):
        self.store = store
        self.push = push
        self.permissions = permissions
        self.config = config or LiveConfig()
        self._games: Dict[str, LiveGame] = {}

    @property
    def games(self) -> List[LiveGame]:
        return list(self._games.values())

    @property
    def _timeout(self) -> float:
        return self.config.io_timeout_seconds

    # ── Lookup ───────────────────────────────────────────────

    async def get_game(self, game: Any) -> Optional[LiveGame]:
        """
        Get a live game, loading it if needed.

        Returns:
            The LiveGame, or None if the game has not been started yet
        """
        game_id = parse_object_id(game, "game")
        loaded = self._games.get(game_id)
        if loaded is not None:
            return loaded

        stage = await guarded(self.store.get_field(game_id, "stage"), self._timeout, "game.stage")
        if int(stage) == GameStage.OPEN:
            return None
        return await self.load_game(game_id)

    def get_loaded_game(self, game: Any) -> Optional[LiveGame]:
        return self._games.get(parse_object_id(game, "game"))

    def is_game_loaded(self, game: Any) -> bool:
        return self.get_loaded_game(game) is not None

    def get_loaded_game_count(self) -> int:
        return len(self._games)

    # ── Load / unload ────────────────────────────────────────

    async def load(self) -> None:
        """Unload everything, then load every running game."""
        logger.info("Loading all live games...")
        game_ids = await guarded(
            self.store.get_games_with_stage(int(GameStage.RUNNING)),
            self._timeout, "games.running",
        )
        self.unload()
        await join([self.load_game(g) for g in game_ids], label="games.load")

    async def load_game(self, game: Any) -> LiveGame:
        """(Re)load one game, replacing any loaded instance."""
        game_id = parse_object_id(game, "game")
        logger.info("Loading live game %s...", game_id)
        self.unload_game(game_id)

        live_game = LiveGame(game_id, self)
        await live_game.load()
        self._games[game_id] = live_game

        try:
            name = await live_game.get_name()
        except MarisLiveError:
            logger.warning("Failed to fetch name of game %s, ignoring", game_id)
        else:
            logger.info("Live game loaded (name: %s, id: %s)", name, game_id)
        return live_game

    def unload(self) -> None:
        if self._games:
            logger.info("Unloading all live games...")
        for live_game in self._games.values():
            live_game.unload()
        self._games.clear()

    def unload_game(self, game: Any) -> bool:
        live_game = self._games.pop(parse_object_id(game, "game"), None)
        if live_game is None:
            return False
        live_game.unload()
        logger.info("Unloaded live game %s", live_game.id)
        return True

    # ── Game data ────────────────────────────────────────────

    async def send_game_data(self, game: Any, user: Any, connections: Any = None) -> None:
        """Push the game stage and the user's visible points."""
        game_id = parse_object_id(game, "game")
        user_id = parse_object_id(user, "user")

        live_game = await self.get_game(game_id)
        if live_game is None:
            stage = GameStage(int(await guarded(
                self.store.get_field(game_id, "stage"), self._timeout, "game.stage")))
            points: List[str] = []
        else:
            stage, visible = await join(
                [live_game.get_stage(), live_game.point_manager.get_visible_points(user_id)],
                label="game.data",
            )
            points = [p.id for p in visible]

        payload = {"game": game_id, "data": {"stage": int(stage), "points": points}}
        push_packet(self.push, PacketType.GAME_DATA, payload,
                    user_id=user_id, connections=connections)

    async def send_game_data_to_all(self, game: Any) -> int:
        """Push game data to every live user of a game."""
        live_game = await self.get_game(game)
        if live_game is None:
            raise MarisLiveError(f"Game {game} is not running")
        users = live_game.user_manager.users
        await join([self.send_game_data(live_game.id, u.id) for u in users],
                   label="game.data_all")
        return len(users)

    # ── Location data ────────────────────────────────────────

    async def broadcast_location_data(
        self,
        game: Any = None,
        user: Any = None,
        connections: Any = None,
    ) -> int:
        """
        Push to each recipient the locations of users visible to them.

        Args:
            game: Only this game, or all loaded games if None
            user: Only this recipient, or every live user if None
            connections: Send to these connections instead of the
                recipient's own

        Returns:
            Number of recipients
        """
        game_id = parse_object_id(game, "game") if game is not None else None
        user_id = parse_object_id(user, "user") if user is not None else None
        connections = as_connection_list(connections)

        entries = [
            (live_game, live_user)
            for live_game in self.games
            if game_id is None or live_game.id == game_id
            for live_user in live_game.user_manager.users
            if user_id is None or live_user.id == user_id
        ]
        await join(
            [self._send_location_data(g, u, connections) for g, u in entries],
            label="locations.broadcast",
        )
        return len(entries)

    async def _send_location_data(self, live_game: LiveGame, recipient: LiveUser,
                                  connections: List[Any]) -> None:
        others = [u for u in live_game.user_manager.users if u is not recipient]
        flags = await join([o.is_visible_for(recipient) for o in others],
                           label="locations.visible")
        visible = [o for o, shown in zip(others, flags) if shown]
        names = await join([o.get_name() for o in visible], label="locations.names")

        payload = {
            "game": live_game.id,
            "users": [
                {"user": o.id, "userName": name, "location": o.get_location().serialize()}
                for o, name in zip(visible, names)
                if o.get_location() is not None
            ],
            "points": [],
        }
        push_packet(self.push, PacketType.GAME_LOCATIONS_UPDATE, payload,
                    user_id=recipient.id, connections=connections)

    async def run_location_broadcasts(self, stop_event: asyncio.Event) -> None:
        """Broadcast location data every ``location_update_interval`` until stopped."""
        interval = self.config.location_update_interval
        while not stop_event.is_set():
            try:
                await self.broadcast_location_data()
            except MarisLiveError as e:
                logger.error("Error while broadcasting location data, ignoring (%s)", e)
            try:
                await asyncio.wait_for(stop_event.wait(), interval)
            except asyncio.TimeoutError:
                pass

