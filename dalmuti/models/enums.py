"""Enums for the game."""

from enum import Enum


class Phase(str, Enum):
    """Game phases during the lifecycle."""

    WAITING = "waiting"
    ROLE_SELECTION = "roleSelection"
    CARD_SELECTION = "cardSelection"
    REVOLUTION = "revolution"
    TAX = "tax"
    PLAYING = "playing"
    GAME_END = "gameEnd"

    def can_transition_to(self, next_phase: "Phase") -> bool:
        """Check whether the state machine allows moving to ``next_phase``."""
        return next_phase in _TRANSITIONS[self]


_TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.WAITING: frozenset({Phase.ROLE_SELECTION}),
    Phase.ROLE_SELECTION: frozenset({Phase.CARD_SELECTION}),
    Phase.CARD_SELECTION: frozenset({Phase.REVOLUTION, Phase.TAX}),
    Phase.REVOLUTION: frozenset({Phase.TAX, Phase.PLAYING}),
    Phase.TAX: frozenset({Phase.PLAYING}),
    Phase.PLAYING: frozenset({Phase.GAME_END}),
    # Next game after a unanimous vote
    Phase.GAME_END: frozenset({Phase.ROLE_SELECTION}),
}


class VoteStatus(str, Enum):
    """Outcome of the next-game vote."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
