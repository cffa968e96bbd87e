"""Turn order and trick resolution.

These helpers read the game but never change it; ``start_new_round``
returns a ``TrickReset`` that the game applies itself.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from dalmuti.models.player import Player

if TYPE_CHECKING:
    from dalmuti.models.game import Game


@dataclass(frozen=True)
class TrickReset:
    """Changes needed to open a new trick.

    Attributes:
        cleared_pass_ids: Players whose pass flag is cleared
        leader_id: Player who opens the new trick, or None if nobody can

    """

    cleared_pass_ids: tuple[str, ...]
    leader_id: str | None


def players_by_rank(players: list[Player]) -> list[Player]:
    """Players sorted by rank, best first. Unranked players sort last."""
    return sorted(players, key=lambda p: (p.rank is None, p.rank or 0))


def is_active(player: Player) -> bool:
    """A player still holding cards this game."""
    return not player.has_finished


def can_act(player: Player) -> bool:
    """A player who may still act in the current trick."""
    return not player.has_finished and not player.has_passed


def active_players(game: "Game") -> list[Player]:
    """Players who have not finished, in rank order."""
    return [p for p in players_by_rank(game.players) if is_active(p)]


def first_active_player(game: "Game") -> str | None:
    """Best-ranked player who has not finished."""
    for player in players_by_rank(game.players):
        if is_active(player):
            return player.id
    return None


def next_player(game: "Game", acting_player_id: str) -> str | None:
    """Find the next player to act after ``acting_player_id``.

    Walks the rank order from the acting player with wraparound, skipping
    players who passed or finished. The acting player is considered last.

    Returns:
        The next player's ID, or None if nobody can act

    """
    ordered = players_by_rank(game.players)
    if not ordered:
        return None

    start = next((i for i, p in enumerate(ordered) if p.id == acting_player_id), None)
    if start is None:
        return next((p.id for p in ordered if can_act(p)), None)

    for offset in range(1, len(ordered) + 1):
        candidate = ordered[(start + offset) % len(ordered)]
        if can_act(candidate):
            return candidate.id
    return None


def round_complete(game: "Game") -> bool:
    """Check if the current trick is over.

    True when a group is on the table and every other player still in the
    game has passed.
    """
    last_play = game.last_play
    if last_play is None:
        return False
    return all(
        p.has_passed
        for p in game.players
        if is_active(p) and p.id != last_play.player_id
    )


def start_new_round(game: "Game") -> TrickReset:
    """Work out how the next trick opens.

    Pass flags are cleared for everyone still in the game. The trick winner
    leads if they still hold cards, otherwise the next active player after
    them in rank order.
    """
    cleared = tuple(p.id for p in game.players if is_active(p))

    last_play = game.last_play
    if last_play is None:
        return TrickReset(cleared_pass_ids=cleared, leader_id=first_active_player(game))

    ordered = players_by_rank(game.players)
    start = next((i for i, p in enumerate(ordered) if p.id == last_play.player_id), None)
    if start is None:
        return TrickReset(cleared_pass_ids=cleared, leader_id=first_active_player(game))

    for offset in range(len(ordered)):
        candidate = ordered[(start + offset) % len(ordered)]
        if is_active(candidate):
            return TrickReset(cleared_pass_ids=cleared, leader_id=candidate.id)
    return TrickReset(cleared_pass_ids=cleared, leader_id=None)
