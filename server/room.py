"""
Room management for multiplayer Kongeleken games.

This module is the game store: it hands out game codes, keeps every live
session in memory, and owns the lock that serializes mutations of each
session.

A Room contains:
    - A unique N-letter code that doubles as the game id
    - The Game instance with the actual game state
    - An asyncio.Lock every event, join and read of the game goes through
    - The WebSocket connections watching this game, keyed by player id
"""

import asyncio
import logging
import random
import string
from dataclasses import dataclass, field
from typing import Optional

from fastapi import WebSocket

from game import Game

logger = logging.getLogger(__name__)


@dataclass
class Room:
    """
    A live Kongeleken session plus the plumbing around it.

    Attributes:
        code: Game code (e.g., "ABCD"), also the game id.
        game: The Game instance containing actual game state.
        game_lock: asyncio.Lock serializing read-validate-mutate-log of
            each event on this game.
        connections: WebSocket per subscribed player id.
    """

    code: str
    game: Optional[Game] = None
    game_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    connections: dict[str, WebSocket] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.game is None:
            self.game = Game(game_id=self.code)

    def subscribe(self, player_id: str, websocket: WebSocket) -> None:
        """
        Start pushing game state to a player's WebSocket.

        A player has one live connection; subscribing again replaces it.
        """
        self.connections[player_id] = websocket

    def unsubscribe(self, player_id: str, websocket: Optional[WebSocket] = None) -> None:
        """
        Stop pushing game state to a player.

        If websocket is given, only that exact connection is removed, so a
        stale socket closing does not drop a newer one.
        """
        current = self.connections.get(player_id)
        if current is None:
            return
        if websocket is None or current is websocket:
            del self.connections[player_id]

    def player_count(self) -> int:
        return len(self.game.players)

    async def send_to(self, player_id: str, message: dict) -> None:
        """
        Send a message to a specific subscribed player.

        Args:
            player_id: ID of the recipient player.
            message: JSON-serializable message dict.
        """
        websocket = self.connections.get(player_id)
        if websocket is None:
            return
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.debug(f"Dropping connection for {player_id} in {self.code}: {e}")
            self.unsubscribe(player_id, websocket)

    async def broadcast_state(self, max_actions: int = 0, exclude: Optional[str] = None) -> None:
        """
        Send every subscriber the game state from their own perspective.

        Args:
            max_actions: Most recent log entries to include (0 for all).
            exclude: Optional player ID to skip.
        """
        for player_id in list(self.connections):
            if player_id == exclude:
                continue
            await self.send_to(player_id, {
                "type": "game_state",
                "game_state": self.game.get_state(player_id, max_actions=max_actions),
            })


class RoomManager:
    """
    Manages all active game rooms.

    Provides room creation with unique codes, lookup, and cleanup.
    A single RoomManager instance is used by the server.
    """

    def __init__(self, code_length: int = 4) -> None:
        """Initialize an empty room manager."""
        self.code_length = code_length
        self.rooms: dict[str, Room] = {}

    def _generate_code(self, max_attempts: int = 100) -> str:
        """Generate a unique room code."""
        for _ in range(max_attempts):
            code = "".join(random.choices(string.ascii_uppercase, k=self.code_length))
            if code not in self.rooms:
                return code
        raise RuntimeError("Could not generate unique game code")

    def create_room(self) -> Room:
        """
        Create a new room (and empty game) with a unique code.

        Returns:
            The newly created Room.
        """
        code = self._generate_code()
        room = Room(code=code)
        self.rooms[code] = room
        logger.info(f"Created game {code}")
        return room

    def get_room(self, code: str) -> Optional[Room]:
        """
        Get a room by its code (case-insensitive).

        Args:
            code: The game code.

        Returns:
            The Room if found, None otherwise.
        """
        return self.rooms.get(code.upper())

    def remove_room(self, code: str) -> None:
        """
        Delete a room.

        Args:
            code: The game code to remove.
        """
        code = code.upper()
        if code in self.rooms:
            del self.rooms[code]
            logger.info(f"Removed game {code}")

    def find_player_room(self, player_id: str) -> Optional[Room]:
        """
        Find which room a player is seated in.

        Args:
            player_id: The player ID to search for.

        Returns:
            The Room containing the player, or None.
        """
        for room in self.rooms.values():
            if room.game.get_player(player_id) is not None:
                return room
        return None
