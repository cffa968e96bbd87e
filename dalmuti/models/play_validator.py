"""Legality checks for a proposed play.

The validator only classifies: it never touches hands or the table. Each
failure is raised as its own ``BusinessRuleError`` subclass so callers can
tell the player exactly what went wrong.
"""

from collections.abc import Sequence

from dalmuti.constants import JOKER_GROUP_RANK
from dalmuti.errors import (
    AlreadyFinishedError,
    AlreadyPassedError,
    BusinessRuleError,
    CardsNotOwnedError,
    CountMismatchError,
    EmptyPlayError,
    NonUniformGroupError,
    NotYourTurnError,
    TooWeakError,
    WrongPhaseError,
)
from dalmuti.models.card import Card, format_cards
from dalmuti.models.deck import contains_cards
from dalmuti.models.enums import Phase


def group_rank(cards: Sequence[Card]) -> int | None:
    """Effective rank of a group, or None if the naturals are mixed.

    Jokers take the rank of the naturals they accompany. A group of only
    jokers ranks above every natural group of the same size.
    """
    naturals = {card.rank for card in cards if not card.is_joker}
    if not naturals:
        return JOKER_GROUP_RANK
    if len(naturals) > 1:
        return None
    return naturals.pop()


def beats(cards: Sequence[Card], previous: Sequence[Card]) -> bool:
    """Check if ``cards`` is a legal answer to ``previous``.

    Same size, and a strictly lower (stronger) effective rank.
    """
    if len(cards) != len(previous):
        return False
    rank = group_rank(cards)
    previous_rank = group_rank(previous)
    if rank is None or previous_rank is None:
        return False
    return rank < previous_rank


def validate_play(
    hand: Sequence[Card],
    cards: Sequence[Card],
    last_play: Sequence[Card] | None,
    *,
    phase: Phase = Phase.PLAYING,
    is_current_turn: bool = True,
    has_passed: bool = False,
    has_finished: bool = False,
) -> int:
    """Check a proposed play against the rules.

    Args:
        hand: The acting player's cards
        cards: The proposed group
        last_play: Cards currently on the table, or None when opening a trick
        phase: Current game phase
        is_current_turn: Whether the player holds the turn
        has_passed: Whether the player already passed this trick
        has_finished: Whether the player already emptied their hand

    Returns:
        The effective rank of the proposed group

    Raises:
        WrongPhaseError, NotYourTurnError, AlreadyFinishedError,
        AlreadyPassedError, EmptyPlayError, CardsNotOwnedError,
        NonUniformGroupError, CountMismatchError, TooWeakError

    """
    if phase != Phase.PLAYING:
        raise WrongPhaseError(Phase.PLAYING.value, phase.value)
    if not is_current_turn:
        raise NotYourTurnError("It is not your turn")
    if has_finished:
        raise AlreadyFinishedError("You have already played all your cards")
    if has_passed:
        raise AlreadyPassedError("You already passed this trick")
    if not cards:
        raise EmptyPlayError("Select at least one card to play")
    if not contains_cards(hand, cards):
        raise CardsNotOwnedError(f"You do not hold {format_cards(cards)}")

    rank = group_rank(cards)
    if rank is None:
        raise NonUniformGroupError(f"Cards must share one rank: {format_cards(cards)}")

    if last_play:
        if len(cards) != len(last_play):
            raise CountMismatchError(
                f"Must play {len(last_play)} card(s) to follow, got {len(cards)}"
            )
        previous_rank = group_rank(last_play)
        if previous_rank is not None and rank >= previous_rank:
            raise TooWeakError(
                f"{format_cards(cards)} does not beat {format_cards(last_play)}"
            )

    return rank


def is_legal_play(
    hand: Sequence[Card],
    cards: Sequence[Card],
    last_play: Sequence[Card] | None,
    **context: object,
) -> bool:
    """Boolean form of ``validate_play``."""
    try:
        validate_play(hand, cards, last_play, **context)  # type: ignore[arg-type]
    except BusinessRuleError:
        return False
    return True
