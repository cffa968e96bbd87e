"""Tests for deck construction, shuffling and partitioning."""

import random
from collections import Counter

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from dalmuti.constants import STANDARD_DECK_SIZE
from dalmuti.errors import InvalidPartitionError, InvariantError
from dalmuti.models.card import JOKER, Card
from dalmuti.models.deck import (
    build_role_selection_deck,
    build_standard_deck,
    contains_cards,
    count_jokers,
    has_double_joker,
    jokers_first,
    partition,
    remove_cards,
    shuffle,
    sort_cards,
    verify_deck_integrity,
)

# =============================================================================
# STANDARD DECK
# =============================================================================


class TestStandardDeck:
    """Test the 54-card deck."""

    def test_deck_size(self):
        assert len(build_standard_deck()) == STANDARD_DECK_SIZE == 54

    def test_four_copies_of_each_rank(self):
        counts = Counter(card.rank for card in build_standard_deck() if not card.is_joker)
        assert set(counts) == set(range(1, 14))
        assert all(count == 4 for count in counts.values())

    def test_two_jokers(self):
        assert count_jokers(build_standard_deck()) == 2

    def test_integrity_check_passes_for_standard_deck(self):
        verify_deck_integrity(build_standard_deck())

    def test_integrity_check_rejects_missing_card(self):
        deck = build_standard_deck()[1:]
        with pytest.raises(InvariantError):
            verify_deck_integrity(deck)

    def test_integrity_check_rejects_substituted_card(self):
        deck = build_standard_deck()
        deck[0] = JOKER
        with pytest.raises(InvariantError):
            verify_deck_integrity(deck)


class TestShuffle:
    """Test shuffling."""

    def test_shuffle_returns_new_list(self):
        deck = build_standard_deck()
        shuffled = shuffle(deck, random.Random(1))
        assert shuffled is not deck
        assert deck == build_standard_deck()

    def test_same_seed_same_order(self):
        deck = build_standard_deck()
        assert shuffle(deck, random.Random(42)) == shuffle(deck, random.Random(42))

    @given(seed=st.integers(0, 100000))
    @settings(max_examples=50, deadline=None)
    def test_shuffle_preserves_composition(self, seed: int) -> None:
        shuffled = shuffle(build_standard_deck(), random.Random(seed))
        assert Counter(shuffled) == Counter(build_standard_deck())


# =============================================================================
# PARTITION
# =============================================================================


class TestPartition:
    """Test splitting the deck into selectable segments."""

    @pytest.mark.parametrize(
        ("player_count", "sizes"),
        [
            (4, [14, 14, 13, 13]),
            (5, [11, 11, 11, 11, 10]),
            (6, [9, 9, 9, 9, 9, 9]),
            (7, [8, 8, 8, 8, 8, 7, 7]),
            (8, [7, 7, 7, 7, 7, 7, 6, 6]),
        ],
    )
    def test_remainder_goes_to_earliest_segments(self, player_count, sizes):
        segments = partition(build_standard_deck(), player_count)
        assert [len(s.cards) for s in segments] == sizes

    def test_segments_start_unselected(self):
        segments = partition(build_standard_deck(), 4)
        assert all(not s.is_selected and s.selected_by is None for s in segments)

    def test_segments_are_sorted(self):
        segments = partition(shuffle(build_standard_deck(), random.Random(3)), 5)
        for segment in segments:
            assert segment.cards == sort_cards(segment.cards)

    def test_zero_players_rejected(self):
        with pytest.raises(InvalidPartitionError):
            partition(build_standard_deck(), 0)

    def test_empty_deck_rejected(self):
        with pytest.raises(InvalidPartitionError):
            partition([], 4)

    @given(seed=st.integers(0, 100000), player_count=st.integers(4, 8))
    @settings(max_examples=50, deadline=None)
    def test_partition_keeps_every_card(self, seed: int, player_count: int) -> None:
        """Segments together are exactly the shuffled deck."""
        segments = partition(shuffle(build_standard_deck(), random.Random(seed)), player_count)
        dealt = [card for segment in segments for card in segment.cards]
        assert Counter(dealt) == Counter(build_standard_deck())
        sizes = [len(s.cards) for s in segments]
        assert max(sizes) - min(sizes) <= 1


# =============================================================================
# HELPERS
# =============================================================================


class TestRoleSelectionDeck:
    def test_thirteen_numbered_cards(self):
        cards = build_role_selection_deck()
        assert [c.number for c in cards] == list(range(1, 14))
        assert all(not c.is_selected for c in cards)

    def test_shuffled_with_rng(self):
        cards = build_role_selection_deck(random.Random(7))
        assert sorted(c.number for c in cards) == list(range(1, 14))


class TestCardHelpers:
    def test_double_joker_detection(self):
        assert has_double_joker([JOKER, Card(3), JOKER])
        assert not has_double_joker([JOKER, Card(3)])

    def test_jokers_first(self):
        arranged = jokers_first(shuffle(build_standard_deck(), random.Random(5)))
        assert arranged[:2] == [JOKER, JOKER]
        assert len(arranged) == STANDARD_DECK_SIZE

    def test_jokers_first_lands_in_first_segment(self):
        segments = partition(jokers_first(build_standard_deck()), 8)
        assert has_double_joker(segments[0].cards)

    def test_remove_cards_is_multiset_difference(self):
        hand = [Card(2), Card(2), Card(5)]
        assert remove_cards(hand, [Card(2)]) == [Card(2), Card(5)]

    def test_contains_cards_respects_multiplicity(self):
        hand = [Card(2), Card(5)]
        assert contains_cards(hand, [Card(2)])
        assert not contains_cards(hand, [Card(2), Card(2)])

    def test_sort_cards(self):
        assert sort_cards([JOKER, Card(10), Card(1)]) == [Card(1), Card(10), JOKER]
