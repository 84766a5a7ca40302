"""
Request models shared by the REST and WebSocket transports.

Both transports validate client payloads with these before anything reaches
the game manager, so the engine only ever sees string names and ids.
"""

from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# REST bodies
# =============================================================================


class StartGameRequest(BaseModel):
    """Start a new game."""
    player_name: str = Field(..., min_length=1, max_length=30)


class AddPlayerRequest(BaseModel):
    """Join an existing game."""
    player_name: str = Field(..., min_length=1, max_length=30)


class GameEventRequest(BaseModel):
    """A round event from one player."""
    player_id: str
    event_type: str
    target_id: Optional[str] = None


# =============================================================================
# WebSocket messages
# =============================================================================


class StartGameMessage(BaseModel):
    """{"type": "start_game", "player_name": ...}"""
    player_name: str = Field("Player", min_length=1, max_length=30)


class JoinGameMessage(BaseModel):
    """{"type": "join_game", "game_id": ..., "player_name": ...}"""
    game_id: str
    player_name: str = Field("Player", min_length=1, max_length=30)


class GetGameMessage(BaseModel):
    """Both fields default to the connection's own game and seat."""
    game_id: Optional[str] = None
    player_id: Optional[str] = None


class GameEventMessage(BaseModel):
    """The acting player is the connection's seat, so only the event is sent."""
    event_type: str
    target_id: Optional[str] = None
