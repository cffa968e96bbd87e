"""Game domain models."""

from dalmuti.models.card import JOKER, Card
from dalmuti.models.deck import RoleSelectionCard, SelectableDeck
from dalmuti.models.enums import Phase, VoteStatus
from dalmuti.models.game import Game, PassOutcome, PlayOutcome, VoteResult
from dalmuti.models.history import GameHistory, PlayerStats, PlayRecord, Standing
from dalmuti.models.phase_data import LastPlay, RevolutionStatus, TaxExchangePair, TaxSettlement
from dalmuti.models.player import Player

__all__ = [
    "JOKER",
    "Card",
    "Game",
    "GameHistory",
    "LastPlay",
    "PassOutcome",
    "Phase",
    "PlayOutcome",
    "PlayRecord",
    "Player",
    "PlayerStats",
    "RevolutionStatus",
    "RoleSelectionCard",
    "SelectableDeck",
    "Standing",
    "TaxExchangePair",
    "TaxSettlement",
    "VoteResult",
    "VoteStatus",
]
