"""
Game API router for Kongeleken.

Provides endpoints for starting a game, joining it, reading it from a
player's seat, and sending round events (shuffle, deal, turn card).
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException

from errors import GameError, GameNotFoundError, InvalidEventError, UnknownPlayerError
from manager import GameManager
from models import AddPlayerRequest, GameEventRequest, StartGameRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/games", tags=["games"])


# =============================================================================
# Dependencies
# =============================================================================

# Set by main.py during startup
_game_manager: Optional[GameManager] = None


def set_game_manager(manager: GameManager) -> None:
    """Set the game manager instance."""
    global _game_manager
    _game_manager = manager


def get_game_manager() -> GameManager:
    if _game_manager is None:
        raise HTTPException(status_code=503, detail="Game service not initialized")
    return _game_manager


def to_http_error(error: GameError) -> HTTPException:
    """Map a typed game error onto an HTTP status."""
    if isinstance(error, (GameNotFoundError, UnknownPlayerError)):
        status_code = 404
    elif isinstance(error, InvalidEventError):
        status_code = 400
    else:
        status_code = 500
    return HTTPException(
        status_code=status_code,
        detail={"code": error.code, "message": error.message},
    )


async def _push_state(manager: GameManager, game_id: str) -> None:
    """Let WebSocket subscribers see what a REST call changed."""
    room = manager.room_manager.get_room(game_id)
    if room:
        await room.broadcast_state(manager.max_actions)


# =============================================================================
# Routes
# =============================================================================


@router.post("")
async def start_new_game(request: StartGameRequest):
    """Start a new game; the caller becomes its first player and dealer."""
    manager = get_game_manager()
    result = await manager.start_new_game(request.player_name)
    return {
        "game_id": result.game_id,
        "new_player_id": result.new_player_id,
        "game": result.game_state,
    }


@router.post("/{game_id}/players")
async def add_player(game_id: str, request: AddPlayerRequest):
    """Join an existing game."""
    manager = get_game_manager()
    try:
        result = await manager.add_player(game_id, request.player_name)
    except GameError as e:
        raise to_http_error(e)

    await _push_state(manager, result.game_id)
    return {
        "game_id": result.game_id,
        "new_player_id": result.new_player_id,
        "game": result.game_state,
    }


@router.get("/{game_id}")
async def get_game(game_id: str, player_id: Optional[str] = None):
    """Get a game as seen from a player's seat (or as a spectator)."""
    manager = get_game_manager()
    try:
        game_state = await manager.get_game(game_id, player_id)
    except GameError as e:
        raise to_http_error(e)
    return {"game": game_state}


@router.post("/{game_id}/events")
async def handle_game_event(game_id: str, request: GameEventRequest):
    """
    Apply a round event.

    Rule violations still return 200: the response's outcome says the event
    was refused and the game's log says why.
    """
    manager = get_game_manager()
    try:
        result = await manager.handle_game_event(
            game_id,
            request.player_id,
            request.event_type,
            request.target_id,
        )
    except GameError as e:
        raise to_http_error(e)

    await _push_state(manager, result.game_id)
    return {
        "outcome": result.outcome.to_dict(),
        "game": result.game_state,
    }
