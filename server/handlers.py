"""WebSocket message handlers for the Kongeleken card game.

Each handler corresponds to a single message type from the client and
validates its payload with the matching model from models.py. Handlers are
dispatched via the HANDLERS dict in main.py; the pydantic ValidationErrors
and typed GameErrors they raise are turned into "error" messages there.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import WebSocket

from manager import GameManager
from models import GameEventMessage, GetGameMessage, JoinGameMessage, StartGameMessage
from room import Room, RoomManager

logger = logging.getLogger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    player_id: Optional[str] = None
    current_room: Optional[Room] = None

    def attach(self, room: Room, player_id: str) -> None:
        """Bind this connection to a seat, leaving any previous game."""
        self.detach()
        self.current_room = room
        self.player_id = player_id
        room.subscribe(player_id, self.websocket)

    def detach(self) -> None:
        if self.current_room and self.player_id:
            self.current_room.unsubscribe(self.player_id, self.websocket)
        self.current_room = None
        self.player_id = None


# ---------------------------------------------------------------------------
# Lobby handlers
# ---------------------------------------------------------------------------

async def handle_start_game(data: dict, ctx: ConnectionContext, *, game_manager: GameManager, room_manager: RoomManager, **kw) -> None:
    message = StartGameMessage.model_validate(data)

    result = await game_manager.start_new_game(message.player_name)
    ctx.attach(room_manager.get_room(result.game_id), result.new_player_id)

    await ctx.websocket.send_json({
        "type": "game_started",
        "game_id": result.game_id,
        "player_id": result.new_player_id,
        "game_state": result.game_state,
    })


async def handle_join_game(data: dict, ctx: ConnectionContext, *, game_manager: GameManager, room_manager: RoomManager, **kw) -> None:
    message = JoinGameMessage.model_validate(data)

    result = await game_manager.add_player(message.game_id, message.player_name)
    room = room_manager.get_room(result.game_id)
    ctx.attach(room, result.new_player_id)

    await ctx.websocket.send_json({
        "type": "game_joined",
        "game_id": result.game_id,
        "player_id": result.new_player_id,
        "game_state": result.game_state,
    })

    await room.broadcast_state(game_manager.max_actions, exclude=result.new_player_id)


async def handle_get_game(data: dict, ctx: ConnectionContext, *, game_manager: GameManager, **kw) -> None:
    message = GetGameMessage.model_validate(data)
    game_id = message.game_id or (ctx.current_room.code if ctx.current_room else "")
    player_id = message.player_id or ctx.player_id

    game_state = await game_manager.get_game(game_id, player_id)
    await ctx.websocket.send_json({
        "type": "game_state",
        "game_state": game_state,
    })


# ---------------------------------------------------------------------------
# Round handlers
# ---------------------------------------------------------------------------

async def handle_game_event(data: dict, ctx: ConnectionContext, *, game_manager: GameManager, **kw) -> None:
    if not ctx.current_room or not ctx.player_id:
        await ctx.websocket.send_json({
            "type": "error",
            "code": "NOT_IN_GAME",
            "message": "Start or join a game first",
        })
        return

    message = GameEventMessage.model_validate(data)
    result = await game_manager.handle_game_event(
        ctx.current_room.code,
        ctx.player_id,
        message.event_type,
        message.target_id,
    )

    await ctx.websocket.send_json({
        "type": "event_result",
        **result.outcome.to_dict(),
    })

    # Rejections are narrated in the log too, so everyone gets the new state.
    await ctx.current_room.broadcast_state(game_manager.max_actions)


async def handle_leave_game(data: dict, ctx: ConnectionContext, **kw) -> None:
    if ctx.current_room:
        logger.debug(f"Connection {ctx.connection_id} stopped watching {ctx.current_room.code}")
    ctx.detach()


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "start_game": handle_start_game,
    "join_game": handle_join_game,
    "get_game": handle_get_game,
    "game_event": handle_game_event,
    "leave_game": handle_leave_game,
}
