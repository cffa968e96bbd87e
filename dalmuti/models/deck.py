"""Deck construction, shuffling and partitioning.

All functions are pure: they take explicit inputs and return new lists.
"""

import random
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from dalmuti.constants import (
    COPIES_PER_RANK,
    JOKER_COUNT,
    MAX_CARD_RANK,
    MAX_ROLE_NUMBER,
    MIN_CARD_RANK,
    MIN_ROLE_NUMBER,
    STANDARD_DECK_SIZE,
)
from dalmuti.errors import InvalidPartitionError, InvariantError
from dalmuti.models.card import JOKER, Card


@dataclass
class SelectableDeck:
    """One face-down segment of the shuffled deck offered during card selection.

    Attributes:
        cards: Cards in the segment, sorted
        is_selected: Whether a player has taken this segment
        selected_by: ID of the player holding it

    """

    cards: list[Card]
    is_selected: bool = False
    selected_by: str | None = None


@dataclass
class RoleSelectionCard:
    """A numbered card drawn during role selection."""

    number: int
    is_selected: bool = False
    selected_by: str | None = None


def build_standard_deck() -> list[Card]:
    """Build the 54-card deck: four of each rank 1-13 plus two jokers.

    Order is deterministic (rank ascending, jokers last).
    """
    deck = [
        Card(rank)
        for rank in range(MIN_CARD_RANK, MAX_CARD_RANK + 1)
        for _ in range(COPIES_PER_RANK)
    ]
    deck.extend(JOKER for _ in range(JOKER_COUNT))
    return deck


def shuffle(deck: Sequence[Card], rng: random.Random | None = None) -> list[Card]:
    """Return a uniformly shuffled copy of ``deck`` (Fisher-Yates).

    Args:
        deck: Cards to shuffle; never mutated
        rng: Optional random source for reproducible shuffles

    """
    rng = rng or random.Random()  # noqa: S311
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def sort_cards(cards: Iterable[Card]) -> list[Card]:
    """Sort cards by rank ascending with jokers last."""
    return sorted(cards, key=Card.sort_key)


def partition(deck: Sequence[Card], player_count: int) -> list[SelectableDeck]:
    """Split ``deck`` into ``player_count`` contiguous, sorted segments.

    Every segment gets ``len(deck) // player_count`` cards; the remainder is
    handed out one card at a time to the earliest segments.

    Raises:
        InvalidPartitionError: If ``player_count`` < 1 or the deck is empty

    """
    if player_count < 1:
        raise InvalidPartitionError(f"Player count must be at least 1, got {player_count}")
    if not deck:
        raise InvalidPartitionError("Cannot partition an empty deck")

    base, remainder = divmod(len(deck), player_count)
    segments: list[SelectableDeck] = []
    start = 0
    for index in range(player_count):
        size = base + (1 if index < remainder else 0)
        segments.append(SelectableDeck(cards=sort_cards(deck[start : start + size])))
        start += size
    return segments


def build_role_selection_deck(rng: random.Random | None = None) -> list[RoleSelectionCard]:
    """Build the 13 numbered role cards.

    Args:
        rng: When given, the cards are laid out in shuffled order

    """
    numbers = list(range(MIN_ROLE_NUMBER, MAX_ROLE_NUMBER + 1))
    if rng is not None:
        rng.shuffle(numbers)
    return [RoleSelectionCard(number=number) for number in numbers]


def count_jokers(cards: Iterable[Card]) -> int:
    """Count jokers in a collection of cards."""
    return sum(1 for card in cards if card.is_joker)


def has_double_joker(cards: Iterable[Card]) -> bool:
    """Check if the cards include both jokers."""
    return count_jokers(cards) >= JOKER_COUNT


def remove_cards(cards: Sequence[Card], to_remove: Iterable[Card]) -> list[Card]:
    """Remove one copy of each card in ``to_remove`` (multiset difference).

    Cards not present are ignored; use ``contains_cards`` to check first.
    """
    result = list(cards)
    for card in to_remove:
        if card in result:
            result.remove(card)
    return result


def contains_cards(cards: Iterable[Card], wanted: Iterable[Card]) -> bool:
    """Check that ``cards`` holds every card in ``wanted`` with multiplicity."""
    available = Counter(cards)
    needed = Counter(wanted)
    return all(available[card] >= count for card, count in needed.items())


def jokers_first(deck: Sequence[Card]) -> list[Card]:
    """Move both jokers to the front so the first segment holds a double joker.

    Only used when the ``debug_double_joker`` setting is on, to exercise the
    revolution flow by hand.
    """
    jokers = [card for card in deck if card.is_joker]
    others = [card for card in deck if not card.is_joker]
    if len(jokers) < JOKER_COUNT:
        return list(deck)
    return jokers + others


def verify_deck_integrity(cards: Iterable[Card]) -> None:
    """Check that ``cards`` is exactly one standard deck.

    Raises:
        InvariantError: If the composition differs from 4 x ranks 1-13 + 2 jokers

    """
    actual = Counter(cards)
    expected = Counter(build_standard_deck())
    if actual != expected:
        total = sum(actual.values())
        raise InvariantError(
            f"Deck composition violated: {total} cards (expected {STANDARD_DECK_SIZE})"
        )
