"""
Protocol-level errors for the Kongeleken game server.

Rule violations (dealing out of turn, turning someone else's card, ...) are
never raised: they are narrated into the game's action log instead. The
exceptions here cover requests that reference things which do not exist or
that cannot be understood at all.
"""


class GameError(Exception):
    """Base exception for game-related protocol errors."""

    code = "GAME_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"[{self.code}] {message}")


class GameNotFoundError(GameError):
    """No game exists for the requested id."""

    code = "GAME_NOT_FOUND"

    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__(f"Unable to find a game with id {game_id!r}")


class UnknownPlayerError(GameError):
    """An event named a player that is not part of the game."""

    code = "UNKNOWN_PLAYER"

    def __init__(self, game_id: str, player_id: str):
        self.game_id = game_id
        self.player_id = player_id
        super().__init__(f"Player {player_id!r} is not part of game {game_id!r}")


class InvalidEventError(GameError):
    """The event type is not one the engine understands."""

    code = "INVALID_EVENT"

    def __init__(self, event_type: object):
        self.event_type = event_type
        super().__init__(f"Unknown game event type {event_type!r}")


class EmptyDeckError(GameError):
    """A card was drawn from a deck with no cards left."""

    code = "EMPTY_DECK"

    def __init__(self):
        super().__init__("No cards left in the deck")
