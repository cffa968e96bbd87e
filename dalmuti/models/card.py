"""Card model."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from dalmuti.constants import JOKER_GROUP_RANK, MAX_CARD_RANK, MIN_CARD_RANK
from dalmuti.errors import InvalidCardError


@dataclass(frozen=True)
class Card:
    """Represents a Dalmuti card.

    Attributes:
        rank: Printed number 1-13 (lower is stronger), or None for a joker

    Jokers carry no natural rank, so any two jokers compare equal and
    are interchangeable.

    """

    rank: int | None

    def __post_init__(self) -> None:
        """Reject ranks outside 1-13."""
        if self.rank is None:
            return
        if isinstance(self.rank, bool) or not isinstance(self.rank, int):
            raise InvalidCardError(f"Card rank must be an integer, got {self.rank!r}")
        if not MIN_CARD_RANK <= self.rank <= MAX_CARD_RANK:
            raise InvalidCardError(
                f"Card rank must be between {MIN_CARD_RANK} and {MAX_CARD_RANK}, got {self.rank}"
            )

    @classmethod
    def joker(cls) -> "Card":
        """Create a joker."""
        return cls(None)

    @property
    def is_joker(self) -> bool:
        """Check if card is a joker."""
        return self.rank is None

    @property
    def strength(self) -> int:
        """Numeric strength, lower is stronger. Jokers are strongest."""
        return JOKER_GROUP_RANK if self.rank is None else self.rank

    def is_stronger_than(self, other: "Card") -> bool:
        """Check if this card beats ``other`` on its own."""
        return self.strength < other.strength

    def sort_key(self) -> tuple[int, int]:
        """Key for hand ordering: rank ascending, jokers last."""
        if self.rank is None:
            return (1, 0)
        return (0, self.rank)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dict."""
        return {"rank": self.rank, "is_joker": self.is_joker}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Card":
        """Build a card from ``{"rank": int | None, "is_joker": bool}``."""
        if not isinstance(data, dict):
            raise InvalidCardError(f"Card payload must be an object, got {type(data).__name__}")
        if data.get("is_joker", data.get("isJoker", False)):
            return cls.joker()
        if "rank" not in data:
            raise InvalidCardError("Card payload is missing 'rank'")
        return cls(data["rank"])

    def __str__(self) -> str:
        """Return string representation of card."""
        return "Joker" if self.rank is None else str(self.rank)


JOKER = Card.joker()


def cards_from_dicts(payload: Iterable[dict[str, Any]]) -> list[Card]:
    """Parse a list of card payloads."""
    return [Card.from_dict(item) for item in payload]


def cards_to_dicts(cards: Iterable[Card]) -> list[dict[str, Any]]:
    """Serialize a list of cards."""
    return [card.to_dict() for card in cards]


def format_cards(cards: Iterable[Card]) -> str:
    """Human-readable card list for logs."""
    return "[" + ", ".join(str(card) for card in cards) + "]"
