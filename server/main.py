"""FastAPI server for the Kongeleken card game."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from config import config
from errors import GameError
from handlers import HANDLERS, ConnectionContext
from logging_config import setup_logging
from manager import GameManager
from middleware import RequestIDMiddleware
from room import RoomManager
from routers.games import router as games_router
from routers.games import set_game_manager
from routers.health import router as health_router
from routers.health import set_health_dependencies

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)


room_manager = RoomManager(code_length=config.GAME_CODE_LENGTH)
game_manager = GameManager(room_manager, max_actions=config.MAX_ACTION_LOG_VIEW)


async def _close_all_websockets():
    """Close all active WebSocket connections gracefully."""
    for room in list(room_manager.rooms.values()):
        for player_id, websocket in list(room.connections.items()):
            try:
                await websocket.close(code=1001, reason="Server shutting down")
            except Exception as e:
                logger.debug(f"Close failed for {player_id} in {room.code}: {e}")
            room.unsubscribe(player_id, websocket)
    logger.info("All WebSocket connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler wiring services into the routers."""
    set_game_manager(game_manager)
    set_health_dependencies(room_manager=room_manager)

    logger.info(f"Kongeleken server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _close_all_websockets()
    room_manager.rooms.clear()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Kongeleken",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestIDMiddleware)

app.include_router(games_router)
app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    connection_id = str(uuid.uuid4())
    logger.debug(f"WebSocket connected as {connection_id}")

    ctx = ConnectionContext(
        websocket=websocket,
        connection_id=connection_id,
    )

    # Shared dependencies passed to every handler
    handler_deps = dict(
        game_manager=game_manager,
        room_manager=room_manager,
    )

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({
                    "type": "error",
                    "code": "INVALID_MESSAGE",
                    "message": "Messages must be JSON objects",
                })
                continue

            handler = HANDLERS.get(data.get("type")) if isinstance(data, dict) else None
            if handler is None:
                await websocket.send_json({
                    "type": "error",
                    "code": "UNKNOWN_MESSAGE",
                    "message": "Unknown message type",
                })
                continue

            try:
                await handler(data, ctx, **handler_deps)
            except ValidationError as e:
                await websocket.send_json({
                    "type": "error",
                    "code": "INVALID_MESSAGE",
                    "message": "; ".join(
                        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                        for err in e.errors()
                    ),
                })
            except GameError as e:
                await websocket.send_json({
                    "type": "error",
                    "code": e.code,
                    "message": e.message,
                })
    except WebSocketDisconnect:
        logger.debug(f"WebSocket {connection_id} disconnected")
        ctx.detach()


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting Kongeleken server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
