"""Tests for turn order and trick resolution."""

from dalmuti.models.card import Card
from dalmuti.models.phase_data import LastPlay
from dalmuti.models.turn import (
    active_players,
    first_active_player,
    next_player,
    players_by_rank,
    round_complete,
    start_new_round,
)

HANDS = {"p1": [3, 5], "p2": [4, 6], "p3": [7, 8], "p4": [9, 10]}


def put_on_table(game, player_id, *ranks):
    game.phase_data.last_play = LastPlay(player_id=player_id, cards=tuple(Card(r) for r in ranks))


class TestRankOrder:
    def test_players_sorted_by_rank(self, make_playing_game):
        game = make_playing_game(HANDS)
        game.players.reverse()
        assert [p.id for p in players_by_rank(game.players)] == ["p1", "p2", "p3", "p4"]

    def test_unranked_players_sort_last(self, make_playing_game):
        game = make_playing_game(HANDS)
        game.players[0].rank = None
        assert players_by_rank(game.players)[-1].id == "p1"

    def test_finished_players_are_not_active(self, make_playing_game):
        game = make_playing_game(HANDS)
        game.players[0].has_finished = True
        assert [p.id for p in active_players(game)] == ["p2", "p3", "p4"]
        assert first_active_player(game) == "p2"


class TestNextPlayer:
    """Turn moves down the rank order with wraparound."""

    def test_next_in_rank_order(self, make_playing_game):
        game = make_playing_game(HANDS)
        assert next_player(game, "p1") == "p2"
        assert next_player(game, "p2") == "p3"

    def test_wraps_around(self, make_playing_game):
        game = make_playing_game(HANDS)
        assert next_player(game, "p4") == "p1"

    def test_skips_passed_and_finished(self, make_playing_game):
        game = make_playing_game(HANDS)
        game.players[1].has_passed = True
        game.players[2].has_finished = True
        assert next_player(game, "p1") == "p4"

    def test_acting_player_is_considered_last(self, make_playing_game):
        game = make_playing_game(HANDS)
        for player in game.players[1:]:
            player.has_passed = True
        assert next_player(game, "p1") == "p1"

    def test_nobody_can_act(self, make_playing_game):
        game = make_playing_game(HANDS)
        for player in game.players:
            player.has_passed = True
        assert next_player(game, "p1") is None

    def test_unknown_player_falls_back_to_first_who_can_act(self, make_playing_game):
        game = make_playing_game(HANDS)
        game.players[0].has_passed = True
        assert next_player(game, "ghost") == "p2"


class TestTrickResolution:
    """A trick ends when everyone else still playing has passed."""

    def test_no_trick_without_a_play(self, make_playing_game):
        game = make_playing_game(HANDS)
        assert not round_complete(game)

    def test_open_while_someone_can_answer(self, make_playing_game):
        game = make_playing_game(HANDS)
        put_on_table(game, "p1", 3)
        game.players[1].has_passed = True
        assert not round_complete(game)

    def test_complete_when_all_others_passed(self, make_playing_game):
        game = make_playing_game(HANDS)
        put_on_table(game, "p2", 4)
        for player_id in ("p1", "p3", "p4"):
            game.require_player(player_id).has_passed = True
        assert round_complete(game)

    def test_finished_players_need_not_pass(self, make_playing_game):
        game = make_playing_game(HANDS)
        put_on_table(game, "p2", 4)
        game.players[0].has_finished = True
        game.players[2].has_passed = True
        game.players[3].has_passed = True
        assert round_complete(game)

    def test_winner_leads_next_trick(self, make_playing_game):
        game = make_playing_game(HANDS)
        put_on_table(game, "p3", 7)
        for player_id in ("p1", "p2", "p4"):
            game.require_player(player_id).has_passed = True

        reset = start_new_round(game)

        assert reset.leader_id == "p3"
        assert set(reset.cleared_pass_ids) == {"p1", "p2", "p3", "p4"}

    def test_finished_winner_hands_lead_to_next_active(self, make_playing_game):
        game = make_playing_game(HANDS)
        put_on_table(game, "p4", 9)
        game.players[3].has_finished = True
        reset = start_new_round(game)
        assert reset.leader_id == "p1"
        assert "p4" not in reset.cleared_pass_ids

    def test_reset_does_not_touch_the_game(self, make_playing_game):
        game = make_playing_game(HANDS)
        put_on_table(game, "p1", 3)
        game.players[1].has_passed = True
        start_new_round(game)
        assert game.players[1].has_passed
        assert game.last_play is not None
