"""Player model."""

from dataclasses import dataclass, field

from dalmuti.constants import MAX_ROLE_NUMBER, MIN_ROLE_NUMBER
from dalmuti.errors import CardsNotOwnedError, InvalidRoleNumberError, InvariantError
from dalmuti.models.card import Card, format_cards
from dalmuti.models.deck import contains_cards, remove_cards, sort_cards


@dataclass
class Player:
    """Represents a player in a room.

    Attributes:
        id: Unique player identifier
        nickname: Player's display name
        role: Number drawn during role selection (None until drawn)
        rank: Standing for the current game, 1 is best (None until assigned)
        hand: Cards currently held
        is_ready: Whether the player marked ready in the waiting room
        has_passed: Whether the player passed in the current trick
        has_finished: Whether the player emptied their hand this game
        has_double_joker: Whether the player was dealt both jokers

    """

    id: str
    nickname: str
    role: int | None = None
    rank: int | None = None
    hand: list[Card] = field(default_factory=list)
    is_ready: bool = False
    has_passed: bool = False
    has_finished: bool = False
    has_double_joker: bool = False

    def assign_role(self, role: int) -> None:
        """Record the role number drawn by this player."""
        if not MIN_ROLE_NUMBER <= role <= MAX_ROLE_NUMBER:
            raise InvalidRoleNumberError(role)
        self.role = role

    def assign_rank(self, rank: int) -> None:
        """Set the player's standing."""
        if rank < 1:
            raise InvariantError(f"Rank must be positive, got {rank}")
        self.rank = rank

    def has_cards(self, cards: list[Card]) -> bool:
        """Check if the hand holds all ``cards`` (with multiplicity)."""
        return contains_cards(self.hand, cards)

    def add_cards(self, cards: list[Card]) -> None:
        """Add cards to the hand, keeping it sorted."""
        self.hand = sort_cards([*self.hand, *cards])

    def remove_cards(self, cards: list[Card]) -> None:
        """Remove cards from the hand.

        Raises:
            CardsNotOwnedError: If any card is missing; the hand is left untouched

        """
        if not self.has_cards(cards):
            raise CardsNotOwnedError(f"{self.nickname} does not hold {format_cards(cards)}")
        self.hand = remove_cards(self.hand, cards)

    def card_count(self) -> int:
        """Number of cards in hand."""
        return len(self.hand)

    def reset_for_next_game(self) -> None:
        """Clear everything dealt or decided during a game."""
        self.role = None
        self.rank = None
        self.hand = []
        self.has_passed = False
        self.has_finished = False
        self.has_double_joker = False

    def __str__(self) -> str:
        """Return string representation."""
        rank_str = f" #{self.rank}" if self.rank is not None else ""
        return f"{self.nickname}{rank_str} - Cards: {len(self.hand)}"
