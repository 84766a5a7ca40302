"""
Action log text for Kongeleken.

Every line a player reads in the game log is built from one of these
templates, so the wording lives in one place.
"""

# =============================================================================
# Lobby
# =============================================================================

MSG_GAME_STARTED = "{name} started the game"
MSG_PLAYER_JOINED = "{name} joined the game"

# =============================================================================
# Round flow
# =============================================================================

MSG_SHUFFLED = "{name} shuffled the deck"
MSG_DEALT = "{name} dealt cards"
MSG_TURNED = "{name} turned his card"

# Rejections (narrated, never raised)
MSG_DEAL_ROUND_UNFINISHED = "{name} tried dealing, but the round is not finished yet"
MSG_DEAL_NOT_DEALER = "{name} tried dealing, but he's not the current dealer!!!"
MSG_DEAL_DECK_TOO_SMALL = "{name} tried dealing, but he's running out of cards in the deck"
MSG_TURN_NO_CARD = "{name} tried turning his card...but it's no longer there!"
MSG_TURN_ALREADY_TURNED = "{name} tried turning his card, but it's already face up"
MSG_TURN_OTHERS_CARD = "{name} tried turning the card belonging to {owner}"
MSG_TURN_UNKNOWN_CARD = "{name} tried turning a card that isn't on the table"

# =============================================================================
# Round resolution
# =============================================================================

MSG_LOWEST_CARD = "Lowest card is {rank}. Loser this round is {name}.  DRINK!"
MSG_KING = "{name} got a king! ***DRINK!***"
MSG_QUEEN = "{name} got a queen! {names} must DRINK!"
MSG_JACK = "{name} got a jack! {names} must DRINK!"

NAME_SEPARATOR = ","
