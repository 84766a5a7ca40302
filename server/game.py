"""
Game logic for Kongeleken.

This module implements the round state machine for Kongeleken, a drinking
card game: card/deck management, player state, the action log and the
rules that decide who has to drink when a round is revealed.

Kongeleken Rules Summary:
    - The dealer hands every player one face-down card
    - Each player turns their own card when they are ready
    - Once the last card is turned the round resolves:
        * Lowest card drinks (all tied holders drink)
        * A King drinks the "King's drink"
        * A Queen makes every other picture card (J/Q/K) drink
        * A Jack makes every other player drink
    - Only the dealer may deal, and only once the previous round is done

Nothing in here raises for a rule violation. A player who deals out of turn
or grabs someone else's card just gets narrated into the action log; the
log is how the table finds out what happened.
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from constants import (
    MSG_DEAL_DECK_TOO_SMALL,
    MSG_DEAL_NOT_DEALER,
    MSG_DEAL_ROUND_UNFINISHED,
    MSG_DEALT,
    MSG_GAME_STARTED,
    MSG_JACK,
    MSG_KING,
    MSG_LOWEST_CARD,
    MSG_PLAYER_JOINED,
    MSG_QUEEN,
    MSG_SHUFFLED,
    MSG_TURN_ALREADY_TURNED,
    MSG_TURN_NO_CARD,
    MSG_TURN_OTHERS_CARD,
    MSG_TURN_UNKNOWN_CARD,
    MSG_TURNED,
    NAME_SEPARATOR,
)
from errors import EmptyDeckError, InvalidEventError, UnknownPlayerError

logger = logging.getLogger(__name__)


class Rank(Enum):
    """Card ranks with their display values, lowest first."""

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"


# Plain enumeration order: Ace is the lowest card, King the highest.
RANK_VALUES: dict[Rank, int] = {rank: index for index, rank in enumerate(Rank, start=1)}

PICTURE_RANKS = frozenset({Rank.JACK, Rank.QUEEN, Rank.KING})


class PlayerFlag(str, Enum):
    """Markers a player picks up during round resolution."""

    DRINK = "drink"
    KING = "king"


class UserAction(str, Enum):
    """What the client should render for a logged action."""

    NONE = "none"
    DRINK = "drink"
    DRINK_KING = "drink_king"
    DRINK_JACK = "drink_jack"


class GameEventType(str, Enum):
    """Every event a client can send against a game."""

    NOTHING = "nothing"
    JOIN = "join"
    SHUFFLE_DECK = "shuffle_deck"
    DEAL = "deal"
    TURN_CARD = "turn_card"

    @classmethod
    def parse(cls, value: object) -> "GameEventType":
        """
        Convert a wire value into an event type.

        Raises:
            InvalidEventError: If the value names no known event type.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidEventError(value) from None


class RejectReason(str, Enum):
    """Why an event was refused by the rules."""

    ROUND_NOT_FINISHED = "round_not_finished"
    NOT_DEALER = "not_dealer"
    DECK_TOO_SMALL = "deck_too_small"
    NO_CARD = "no_card"
    ALREADY_TURNED = "already_turned"
    NOT_OWN_CARD = "not_own_card"


@dataclass(frozen=True)
class EventOutcome:
    """
    Result of applying one event.

    Rejected events have already been narrated into the action log; the
    outcome makes the refusal visible to the caller as well.
    """

    accepted: bool
    reason: Optional[RejectReason] = None

    @classmethod
    def ok(cls) -> "EventOutcome":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: RejectReason) -> "EventOutcome":
        return cls(accepted=False, reason=reason)

    def to_dict(self) -> dict:
        return {
            "accepted": self.accepted,
            "reason": self.reason.value if self.reason else None,
        }


@dataclass
class Card:
    """
    A playing card with a stable id, a rank, and a face-up state.

    Attributes:
        rank: The card's rank (A, 2-10, J, Q, K). Never changes.
        id: Opaque identifier, stable for the life of the card.
        is_turned: Whether the card has been revealed.
    """

    rank: Rank
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    is_turned: bool = False

    def value(self) -> int:
        """Position of this card's rank in the ordering (Ace = 1)."""
        return RANK_VALUES[self.rank]

    def is_picture(self) -> bool:
        return self.rank in PICTURE_RANKS

    def to_dict(self) -> dict:
        """Full card data, for server-side use."""
        return {
            "id": self.id,
            "rank": self.rank.value,
            "is_turned": self.is_turned,
        }

    def to_client_dict(self, is_owner: bool) -> dict:
        """
        Card data as a given viewer may see it.

        Turned cards are public. An unturned card hides its rank from
        everyone; only its owner gets the id, which is needed to turn it.
        """
        if self.is_turned:
            return self.to_dict()
        if is_owner:
            return {"id": self.id, "is_turned": False}
        return {"is_turned": False}


class Deck:
    """
    The game's deck: one card per rank, drawn from the front.

    The deck is built once per game. Shuffling reorders whatever is left;
    dealt cards do not come back.
    """

    def __init__(self, cards: Optional[list[Card]] = None, seed: Optional[int] = None) -> None:
        """
        Initialize a deck.

        Args:
            cards: Explicit card order (front first). Built fresh if omitted.
            seed: Optional random seed for deterministic shuffles.
        """
        self.cards: list[Card] = list(cards) if cards is not None else self.build()
        self.seed: int = seed if seed is not None else random.randint(0, 2**31 - 1)
        self._rng = random.Random(self.seed)

    @staticmethod
    def build() -> list[Card]:
        """One card per rank, in rank order."""
        return [Card(rank) for rank in Rank]

    def shuffle(self) -> None:
        """Randomize the order of the remaining cards in place."""
        self._rng.shuffle(self.cards)

    def draw_front(self) -> Card:
        """
        Remove and return the front card.

        Raises:
            EmptyDeckError: If no cards remain.
        """
        if not self.cards:
            raise EmptyDeckError()
        return self.cards.pop(0)

    def cards_remaining(self) -> int:
        """Return the number of cards left in the deck."""
        return len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)


@dataclass
class Player:
    """
    A player at the table.

    Attributes:
        id: Unique identifier, generated on join.
        name: Display name (not required to be unique).
        current_card: The card dealt this round, if any.
        previous_cards: Cards held in earlier rounds, oldest first.
        flags: What this player picked up in the current round's resolution.
        last_contact: When this player last sent an event.
    """

    id: str
    name: str
    current_card: Optional[Card] = None
    previous_cards: list[Card] = field(default_factory=list)
    flags: set[PlayerFlag] = field(default_factory=set)
    last_contact: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def add_flag(self, flag: PlayerFlag) -> None:
        self.flags.add(flag)

    def clear_flags(self) -> None:
        self.flags.clear()

    def touch(self) -> None:
        """Record that the player was just heard from."""
        self.last_contact = datetime.now(timezone.utc)

    def receive_card(self, card: Card) -> None:
        """Take a freshly dealt card, moving the old one into history."""
        self.clear_card()
        card.is_turned = False
        self.current_card = card

    def clear_card(self) -> None:
        """Drop the current card (into history) so the player holds nothing."""
        if self.current_card is not None:
            self.previous_cards.append(self.current_card)
        self.current_card = None

    def holds_unturned_card(self) -> bool:
        return self.current_card is not None and not self.current_card.is_turned


@dataclass(frozen=True)
class GameAction:
    """
    One narrated entry in the action log.

    Attributes:
        player_name: Who the entry is about.
        message: Human-readable text shown to the table.
        user_action: Client-side effect to render (drink animation etc.).
        timestamp: When the entry was appended (UTC).
    """

    player_name: str
    message: str
    user_action: UserAction = UserAction.NONE
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "player_name": self.player_name,
            "message": self.message,
            "user_action": self.user_action.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Game:
    """
    One Kongeleken session: the table, the deck, the dealer and the log.

    Every method here assumes the caller holds the session's lock; see
    room.Room.game_lock.

    Attributes:
        game_id: Identifier the session is stored under.
        players: Players in join order.
        deck: Cards not yet dealt.
        dealer_player_id: The only player allowed to deal.
        action_log: Append-only narration of everything that happened.
    """

    game_id: str
    players: list[Player] = field(default_factory=list)
    deck: Deck = field(default_factory=Deck)
    dealer_player_id: Optional[str] = None
    action_log: list[GameAction] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Session setup
    # -------------------------------------------------------------------------

    def start(self, initiating_player_name: str, seed: Optional[int] = None) -> str:
        """
        Set up a brand new session.

        Builds and shuffles a fresh deck, seats the initiating player and
        makes them the dealer.

        Args:
            initiating_player_name: Name of the player starting the game.
            seed: Optional shuffle seed (for reproducible games).

        Returns:
            The id of the initiating player.
        """
        self.log(initiating_player_name, MSG_GAME_STARTED.format(name=initiating_player_name))

        self.deck = Deck(seed=seed)
        self.deck.shuffle()

        player = self.add_player(initiating_player_name)
        self.dealer_player_id = player.id
        return player.id

    def add_player(self, player_name: str) -> Player:
        """Seat a new player at the end of the table."""
        player = Player(id=str(uuid.uuid4()), name=player_name)
        self.players.append(player)
        self.log(player_name, MSG_PLAYER_JOINED.format(name=player_name))
        logger.info(f"Player {player_name} joined game {self.game_id} ({len(self.players)} players)")
        return player

    def get_player(self, player_id: str) -> Optional[Player]:
        """Get a player by ID, or None if not found."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def log(self, player_name: str, message: str, user_action: UserAction = UserAction.NONE) -> GameAction:
        """Append an entry to the action log."""
        action = GameAction(player_name=player_name, message=message, user_action=user_action)
        self.action_log.append(action)
        return action

    # -------------------------------------------------------------------------
    # Round state
    # -------------------------------------------------------------------------

    def players_in_round(self) -> list[Player]:
        """Players holding a card this round, in table order."""
        return [p for p in self.players if p.current_card is not None]

    def round_in_progress(self) -> bool:
        """True while anyone still has a face-down card."""
        return any(p.holds_unturned_card() for p in self.players)

    def round_complete(self) -> bool:
        """True once cards are out and every one of them has been turned."""
        in_round = self.players_in_round()
        return bool(in_round) and all(p.current_card.is_turned for p in in_round)

    def find_card_owner(self, card_id: Optional[str]) -> Optional[Player]:
        if card_id is None:
            return None
        for player in self.players:
            if player.current_card is not None and player.current_card.id == card_id:
                return player
        return None

    # -------------------------------------------------------------------------
    # Event dispatch
    # -------------------------------------------------------------------------

    def apply_event(
        self,
        player_id: str,
        event_type: GameEventType,
        target_id: Optional[str] = None,
    ) -> EventOutcome:
        """
        Apply one client event to the session.

        Args:
            player_id: The acting player.
            event_type: What the player is doing.
            target_id: Card id for TURN_CARD; ignored otherwise.

        Returns:
            Whether the rules accepted the event.

        Raises:
            InvalidEventError: If event_type is not a known event type.
            UnknownPlayerError: If player_id is not seated in this game.
        """
        event_type = GameEventType.parse(event_type)

        player = self.get_player(player_id)
        if player is None:
            raise UnknownPlayerError(self.game_id, player_id)

        player.touch()

        handlers = {
            GameEventType.NOTHING: self._handle_nothing,
            GameEventType.JOIN: self._handle_nothing,
            GameEventType.SHUFFLE_DECK: self._handle_shuffle,
            GameEventType.DEAL: self._handle_deal,
            GameEventType.TURN_CARD: self._handle_turn_card,
        }
        outcome = handlers[event_type](player, target_id)

        if outcome.accepted:
            logger.info(f"{player.name} applied {event_type.value}")
        else:
            logger.info(f"{player.name} {event_type.value} rejected: {outcome.reason.value}")
        return outcome

    def _handle_nothing(self, player: Player, target_id: Optional[str]) -> EventOutcome:
        return EventOutcome.ok()

    def _handle_shuffle(self, player: Player, target_id: Optional[str]) -> EventOutcome:
        for p in self.players:
            p.clear_card()
        self.deck.shuffle()
        self.log(player.name, MSG_SHUFFLED.format(name=player.name))
        return EventOutcome.ok()

    def _handle_deal(self, player: Player, target_id: Optional[str]) -> EventOutcome:
        """
        Deal one card to every player, front of the deck first.

        Refused (and narrated) while a round is still face-down, when the
        actor is not the dealer, or when the deck cannot cover the table.
        """
        if self.round_in_progress():
            self.log(player.name, MSG_DEAL_ROUND_UNFINISHED.format(name=player.name))
            return EventOutcome.rejected(RejectReason.ROUND_NOT_FINISHED)

        if player.id != self.dealer_player_id:
            self.log(player.name, MSG_DEAL_NOT_DEALER.format(name=player.name))
            return EventOutcome.rejected(RejectReason.NOT_DEALER)

        if self.deck.cards_remaining() < len(self.players):
            self.log(player.name, MSG_DEAL_DECK_TOO_SMALL.format(name=player.name))
            return EventOutcome.rejected(RejectReason.DECK_TOO_SMALL)

        for p in self.players:
            p.clear_flags()
            p.receive_card(self.deck.draw_front())

        self.log(player.name, MSG_DEALT.format(name=player.name))
        return EventOutcome.ok()

    def _handle_turn_card(self, player: Player, target_id: Optional[str]) -> EventOutcome:
        """
        Reveal the acting player's own card.

        A player may only turn their own card. When the last card of the
        round goes face up, the round resolves.
        """
        card = player.current_card
        if card is None:
            self.log(player.name, MSG_TURN_NO_CARD.format(name=player.name))
            return EventOutcome.rejected(RejectReason.NO_CARD)

        if card.id != target_id:
            owner = self.find_card_owner(target_id)
            if owner is not None:
                message = MSG_TURN_OTHERS_CARD.format(name=player.name, owner=owner.name)
            else:
                message = MSG_TURN_UNKNOWN_CARD.format(name=player.name)
            self.log(player.name, message)
            return EventOutcome.rejected(RejectReason.NOT_OWN_CARD)

        # A second turn of the same card must not resolve the round again.
        if card.is_turned:
            self.log(player.name, MSG_TURN_ALREADY_TURNED.format(name=player.name))
            return EventOutcome.rejected(RejectReason.ALREADY_TURNED)

        card.is_turned = True
        self.log(player.name, MSG_TURNED.format(name=player.name))

        if self.round_complete():
            self._resolve_round()

        return EventOutcome.ok()

    # -------------------------------------------------------------------------
    # Round resolution
    # -------------------------------------------------------------------------

    def _resolve_round(self) -> None:
        """
        Work out who drinks now that every card is face up.

        Rules run in a fixed order (lowest card, king, queen, jack) and each
        one appends its own log entries, so a player can collect several
        flags in one round.
        """
        in_round = self.players_in_round()
        logger.debug(
            "Resolving round: "
            + ", ".join(f"{p.name}={p.current_card.rank.value}" for p in in_round)
        )

        # Lowest card - every tied holder drinks
        lowest = min(p.current_card.value() for p in in_round)
        for loser in (p for p in in_round if p.current_card.value() == lowest):
            loser.add_flag(PlayerFlag.DRINK)
            self.log(
                loser.name,
                MSG_LOWEST_CARD.format(rank=loser.current_card.rank.value, name=loser.name),
                UserAction.DRINK,
            )

        # King
        for with_king in (p for p in in_round if p.current_card.rank == Rank.KING):
            with_king.add_flag(PlayerFlag.KING)
            self.log(with_king.name, MSG_KING.format(name=with_king.name), UserAction.DRINK_KING)

        # Queen - every other picture card drinks
        for with_queen in (p for p in in_round if p.current_card.rank == Rank.QUEEN):
            pictures = [
                p for p in in_round
                if p is not with_queen and p.current_card.is_picture()
            ]
            if pictures:
                for p in pictures:
                    p.add_flag(PlayerFlag.DRINK)
                self.log(
                    with_queen.name,
                    MSG_QUEEN.format(name=with_queen.name, names=_join_names(pictures)),
                )

        # Jack - everybody else at the table drinks
        for with_jack in (p for p in in_round if p.current_card.rank == Rank.JACK):
            others = [p for p in self.players if p is not with_jack]
            if others:
                for p in others:
                    p.add_flag(PlayerFlag.DRINK)
                self.log(
                    with_jack.name,
                    MSG_JACK.format(name=with_jack.name, names=_join_names(others)),
                    UserAction.DRINK_JACK,
                )

    # -------------------------------------------------------------------------
    # Client view
    # -------------------------------------------------------------------------

    def get_state(self, for_player_id: Optional[str], max_actions: int = 0) -> dict:
        """
        Get the game state as one player is allowed to see it.

        Args:
            for_player_id: The player receiving this state (None for a
                spectator). Only they get their own player id and the id
                of their face-down card.
            max_actions: Number of most recent log entries to include
                (0 includes the whole log).

        Returns:
            Dict suitable for JSON serialization.
        """
        players_data = []
        for player in self.players:
            card = player.current_card
            is_viewer = player.id == for_player_id
            seat = {
                "name": player.name,
                "is_you": is_viewer,
                "is_dealer": player.id == self.dealer_player_id,
                "card": card.to_client_dict(is_owner=is_viewer) if card else None,
                "flags": sorted(flag.value for flag in player.flags),
                "previous_cards": len(player.previous_cards),
            }
            # Player ids only go to their owner.
            if is_viewer:
                seat["id"] = player.id
            players_data.append(seat)

        actions = self.action_log[-max_actions:] if max_actions > 0 else self.action_log

        return {
            "game_id": self.game_id,
            "player_id": for_player_id,
            "deck_remaining": self.deck.cards_remaining(),
            "round_in_progress": self.round_in_progress(),
            "round_complete": self.round_complete(),
            "players": players_data,
            "actions": [action.to_dict() for action in actions],
        }


def _join_names(players: list[Player]) -> str:
    return NAME_SEPARATOR.join(p.name for p in players)
