"""
Structured logging configuration for the Kongeleken game server.

Provides:
- JSONFormatter for production (machine-readable logs)
- Human-readable formatter for development
- Contextual logging (request_id, game_id, player_id)
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Iterator, Optional

# Context variables for request/event-scoped data
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
game_id_var: ContextVar[Optional[str]] = ContextVar("game_id", default=None)
player_id_var: ContextVar[Optional[str]] = ContextVar("player_id", default=None)

_CONTEXT_FIELDS = ("request_id", "game_id", "player_id")


def _context_value(record: logging.LogRecord, name: str) -> Optional[str]:
    """Prefer an explicit `extra=` field, fall back to the context variable."""
    value = getattr(record, name, None)
    if value:
        return value
    return {
        "request_id": request_id_var,
        "game_id": game_id_var,
        "player_id": player_id_var,
    }[name].get()


class JSONFormatter(logging.Formatter):
    """
    Format logs as JSON for production log aggregation.

    One JSON object per line, carrying whatever request/game/player
    context is active when the record is emitted.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in _CONTEXT_FIELDS:
            value = _context_value(record, name)
            if value:
                log_data[name] = value

        # Add source location for errors
        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable, coloured formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""

        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        context_parts = []
        request_id = _context_value(record, "request_id")
        if request_id:
            context_parts.append(f"req={request_id[:8]}")

        game_id = _context_value(record, "game_id")
        if game_id:
            context_parts.append(f"game={game_id}")

        player_id = _context_value(record, "player_id")
        if player_id:
            context_parts.append(f"player={player_id[:8]}")

        context = f" [{', '.join(context_parts)}]" if context_parts else ""

        output = f"{timestamp} {color}{record.levelname:8}{reset} {record.name}{context} - {record.getMessage()}"

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)

        return output


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        environment: Environment name (production uses JSON, else human-readable).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if environment == "production":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={level}, environment={environment}"
    )


@contextmanager
def log_context(game_id: Optional[str] = None, player_id: Optional[str] = None) -> Iterator[None]:
    """
    Tag every log record emitted inside the block with a game and player.

    Usage:
        with log_context(game_id="ABCD", player_id=player_id):
            game.apply_event(...)
    """
    game_token = game_id_var.set(game_id)
    player_token = player_id_var.set(player_id)
    try:
        yield
    finally:
        player_id_var.reset(player_token)
        game_id_var.reset(game_token)
