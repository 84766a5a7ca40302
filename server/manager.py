"""
Game manager: the operations clients can perform against Kongeleken games.

Both transports (REST in routers/games.py, WebSocket in handlers.py) go
through a single GameManager. Each operation looks the game up in the
RoomManager, takes that game's lock for the whole read-validate-mutate-log
sequence, and hands back a player-scoped view built while the lock is still
held.

Protocol problems (unknown game, unknown player, unknown event type) raise
the typed errors from errors.py. Rule violations do not raise; they come
back as an EventOutcome with accepted=False.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from errors import GameError, GameNotFoundError
from game import EventOutcome, GameEventType
from logging_config import log_context
from room import Room, RoomManager

logger = logging.getLogger(__name__)


@dataclass
class StartGameResult:
    """A freshly started game and the id of the player who started it."""

    game_id: str
    new_player_id: str
    game_state: dict


@dataclass
class AddPlayerResult:
    """The id of a newly seated player and the game from their seat."""

    game_id: str
    new_player_id: str
    game_state: dict


@dataclass
class EventResult:
    """The game as the acting player sees it after their event."""

    game_id: str
    outcome: EventOutcome
    game_state: dict


class GameManager:
    """
    Applies client operations to games held by a RoomManager.

    Args:
        room_manager: Store the games live in.
        max_actions: Most recent log entries to put in each view (0 for all).
    """

    def __init__(self, room_manager: RoomManager, max_actions: int = 0) -> None:
        self.room_manager = room_manager
        self.max_actions = max_actions

    def _get_room(self, game_id: str) -> Room:
        room = self.room_manager.get_room(game_id) if isinstance(game_id, str) else None
        if room is None:
            logger.warning(f"Request for unknown game {game_id}")
            raise GameNotFoundError(game_id)
        return room

    async def start_new_game(self, initiating_player_name: str) -> StartGameResult:
        """
        Create a game with the initiating player seated as dealer.

        Args:
            initiating_player_name: Display name of the player starting it.
        """
        room = self.room_manager.create_room()
        async with room.game_lock:
            with log_context(game_id=room.code):
                new_player_id = room.game.start(initiating_player_name)
                logger.info(f"{initiating_player_name} started game {room.code}")
                game_state = room.game.get_state(new_player_id, max_actions=self.max_actions)

        return StartGameResult(
            game_id=room.code,
            new_player_id=new_player_id,
            game_state=game_state,
        )

    async def add_player(self, game_id: str, player_name: str) -> AddPlayerResult:
        """
        Seat a new player in an existing game.

        Raises:
            GameNotFoundError: If no game has this id.
        """
        room = self._get_room(game_id)
        async with room.game_lock:
            with log_context(game_id=room.code):
                player = room.game.add_player(player_name)
                game_state = room.game.get_state(player.id, max_actions=self.max_actions)

        return AddPlayerResult(
            game_id=room.code,
            new_player_id=player.id,
            game_state=game_state,
        )

    async def get_game(self, game_id: str, for_player_id: Optional[str] = None) -> dict:
        """
        Get the current state of a game from one player's seat.

        Raises:
            GameNotFoundError: If no game has this id.
        """
        room = self._get_room(game_id)
        async with room.game_lock:
            return room.game.get_state(for_player_id, max_actions=self.max_actions)

    async def handle_game_event(
        self,
        game_id: str,
        player_id: str,
        event_type: Union[GameEventType, str],
        target_id: Optional[str] = None,
    ) -> EventResult:
        """
        Apply one player event to a game.

        Args:
            game_id: Game the event is for.
            player_id: The acting player.
            event_type: GameEventType or its wire value (e.g. "deal").
            target_id: Card id for turn_card events.

        Raises:
            GameNotFoundError: If no game has this id.
            UnknownPlayerError: If the player is not seated in the game.
            InvalidEventError: If the event type is not recognised.
        """
        room = self._get_room(game_id)
        async with room.game_lock:
            with log_context(game_id=room.code, player_id=player_id):
                try:
                    outcome = room.game.apply_event(player_id, event_type, target_id)
                except GameError as e:
                    logger.warning(f"Event rejected as invalid: {e}")
                    raise
                game_state = room.game.get_state(player_id, max_actions=self.max_actions)

        return EventResult(game_id=room.code, outcome=outcome, game_state=game_state)
