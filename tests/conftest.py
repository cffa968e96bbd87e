"""Shared game builders for all tests."""

from collections.abc import Callable

import pytest

from dalmuti.models.card import Card
from dalmuti.models.game import Game
from dalmuti.models.phase_data import PlayingData
from dalmuti.models.player import Player


def build_playing_game(hands: dict[str, list[int | None]]) -> Game:
    """A game already in playing, ranks following the dict order.

    ``None`` in a hand is a joker. The first player holds the turn.
    """
    players = [
        Player(
            id=player_id,
            nickname=player_id.upper(),
            role=rank,
            rank=rank,
            hand=[Card(r) for r in ranks],
        )
        for rank, (player_id, ranks) in enumerate(hands.items(), start=1)
    ]
    return Game(
        room_id="ROOM01",
        players=players,
        phase_data=PlayingData(),
        round=1,
        trick=1,
        current_turn=players[0].id,
    )


def build_waiting_game(player_count: int = 4) -> Game:
    """A waiting room with players p1..pN."""
    game = Game.create("ROOM01")
    for index in range(1, player_count + 1):
        game.add_player(Player(id=f"p{index}", nickname=f"P{index}"))
    return game


@pytest.fixture
def make_playing_game() -> Callable[[dict[str, list[int | None]]], Game]:
    return build_playing_game


@pytest.fixture
def make_waiting_game() -> Callable[..., Game]:
    return build_waiting_game


@pytest.fixture
def waiting_game() -> Game:
    return build_waiting_game()
