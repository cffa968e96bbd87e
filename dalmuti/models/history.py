"""Play log, per-player statistics and archived game summaries."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from dalmuti.models.card import Card


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class PlayRecord:
    """One group of cards put on the table."""

    trick: int
    player_id: str
    cards: tuple[Card, ...]
    played_at: datetime = field(default_factory=utc_now)


@dataclass
class PlayerStats:
    """Running totals for one player during a game.

    Attributes:
        total_cards_played: Cards put on the table
        total_passes: Times the player passed
        finished_at_trick: Trick in which the hand emptied (0 while playing)

    """

    total_cards_played: int = 0
    total_passes: int = 0
    finished_at_trick: int = 0


@dataclass(frozen=True)
class Standing:
    """Final position of a player in an archived game."""

    player_id: str
    nickname: str
    position: int
    finished_at_trick: int
    total_cards_played: int
    total_passes: int


@dataclass(frozen=True)
class GameHistory:
    """Summary of a finished game, kept when the room plays on."""

    game_number: int
    standings: tuple[Standing, ...]
    finished_order: tuple[str, ...]
    total_tricks: int
    plays: tuple[PlayRecord, ...]
    started_at: datetime | None
    ended_at: datetime
