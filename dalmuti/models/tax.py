"""Tax exchange between top- and bottom-ranked players.

The top two ranks trade with the bottom two. In each pair the worse-ranked
player hands over their best cards and receives the better-ranked
player's worst cards.
"""

from collections.abc import Sequence

from dalmuti.constants import MIN_PLAYERS, SECOND_PAIR_TAX_CARD_COUNT, TAX_CARD_COUNT
from dalmuti.errors import InsufficientCardsError, PlayerNotFoundError
from dalmuti.models.card import Card
from dalmuti.models.phase_data import TaxExchangePair, TaxSettlement
from dalmuti.models.player import Player


def _best_first(card: Card) -> tuple[int, int]:
    # Jokers are the best cards, then rank ascending
    return (0, 0) if card.is_joker else (1, card.rank or 0)


def select_best_cards(hand: Sequence[Card], count: int) -> list[Card]:
    """Pick the ``count`` strongest cards (jokers first, then lowest numbers)."""
    return sorted(hand, key=_best_first)[:count]


def select_worst_cards(hand: Sequence[Card], count: int) -> list[Card]:
    """Pick the ``count`` weakest cards (highest numbers, jokers last)."""
    return sorted(hand, key=_best_first, reverse=True)[:count]


def initialize_tax_exchanges(
    players: Sequence[Player], card_count: int = TAX_CARD_COUNT
) -> list[TaxExchangePair]:
    """Pair ranks for the tax phase.

    With four players rank 1 trades with rank 4 and rank 2 with rank 3.
    With five or more only the ends trade: rank 1 with the last rank, and
    rank 2 with the second-to-last for a single card.

    Args:
        players: All players in the game, with ranks assigned
        card_count: Cards moved in each direction by the outermost pair

    Returns:
        The pairs, outermost first

    """
    player_count = len(players)
    if player_count < MIN_PLAYERS:
        return []
    if player_count == MIN_PLAYERS:
        return [
            TaxExchangePair(giver_rank=4, receiver_rank=1, card_count=card_count),
            TaxExchangePair(giver_rank=3, receiver_rank=2, card_count=card_count),
        ]
    return [
        TaxExchangePair(giver_rank=player_count, receiver_rank=1, card_count=card_count),
        TaxExchangePair(
            giver_rank=player_count - 1,
            receiver_rank=2,
            card_count=SECOND_PAIR_TAX_CARD_COUNT,
        ),
    ]


def _player_with_rank(players: Sequence[Player], rank: int) -> Player:
    for player in players:
        if player.rank == rank:
            return player
    raise PlayerNotFoundError(f"rank {rank}")


def plan_tax_exchange(pair: TaxExchangePair, players: Sequence[Player]) -> TaxSettlement:
    """Work out which cards one exchange moves, without touching any hand.

    Raises:
        InsufficientCardsError: If either side holds fewer than ``card_count`` cards
        PlayerNotFoundError: If no player holds one of the pair's ranks

    """
    giver = _player_with_rank(players, pair.giver_rank)
    receiver = _player_with_rank(players, pair.receiver_rank)

    for player in (giver, receiver):
        if len(player.hand) < pair.card_count:
            raise InsufficientCardsError(
                f"{player.nickname} holds {len(player.hand)} card(s), "
                f"needs {pair.card_count} for tax"
            )

    return TaxSettlement(
        pair=pair,
        giver_id=giver.id,
        receiver_id=receiver.id,
        cards_to_receiver=tuple(select_best_cards(giver.hand, pair.card_count)),
        cards_to_giver=tuple(select_worst_cards(receiver.hand, pair.card_count)),
    )


def apply_tax_exchange(pair: TaxExchangePair, players: Sequence[Player]) -> TaxSettlement:
    """Perform one exchange: both sides give their cards at once.

    Returns:
        The settlement describing the cards that moved

    """
    settlement = plan_tax_exchange(pair, players)
    giver = _player_with_rank(players, pair.giver_rank)
    receiver = _player_with_rank(players, pair.receiver_rank)

    giver.remove_cards(list(settlement.cards_to_receiver))
    receiver.remove_cards(list(settlement.cards_to_giver))
    receiver.add_cards(list(settlement.cards_to_receiver))
    giver.add_cards(list(settlement.cards_to_giver))
    return settlement
