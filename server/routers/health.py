"""
Health check endpoints for production deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (can the app handle requests?)
- /metrics - Application metrics for monitoring
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from room import RoomManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Service references (set during app initialization)
_room_manager: Optional[RoomManager] = None


def set_health_dependencies(room_manager: Optional[RoomManager] = None) -> None:
    """Set dependencies for health checks."""
    global _room_manager
    _room_manager = room_manager


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - can the app handle requests?

    Games live in memory, so the server is ready once the game store has
    been wired up. Returns 503 before that.
    """
    ready = _room_manager is not None
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "starting",
            "checks": {"game_store": {"status": "ok" if ready else "not_configured"}},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get("/metrics")
async def metrics():
    """
    Expose application metrics for monitoring.

    Returns operational metrics useful for dashboards and alerting.
    """
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        rooms = list(_room_manager.rooms.values())
        metrics_data["games"] = {
            "active": len(rooms),
            "rounds_in_progress": sum(1 for r in rooms if r.game.round_in_progress()),
            "total_players": sum(r.player_count() for r in rooms),
            "connected_players": sum(len(r.connections) for r in rooms),
            "cards_remaining": sum(r.game.deck.cards_remaining() for r in rooms),
        }

    return metrics_data
