"""Game serialization for MongoDB persistence.

Handles conversion between Game objects and MongoDB documents. The phase
data is stored under ``phase_data`` tagged by the ``phase`` field.
"""

from datetime import UTC, datetime
from typing import Any

from dalmuti.models.card import cards_from_dicts, cards_to_dicts
from dalmuti.models.deck import RoleSelectionCard, SelectableDeck
from dalmuti.models.enums import Phase
from dalmuti.models.game import Game
from dalmuti.models.history import GameHistory, PlayerStats, PlayRecord, Standing
from dalmuti.models.phase_data import (
    CardSelectionData,
    GameEndData,
    LastPlay,
    PhaseData,
    PlayingData,
    RevolutionData,
    RevolutionStatus,
    RoleSelectionData,
    TaxData,
    TaxExchangePair,
    TaxSettlement,
    WaitingData,
)
from dalmuti.models.player import Player


def _datetime_or_none(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        # Mongo hands back naive UTC datetimes
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    return datetime.fromisoformat(value)


def serialize_player(player: Player) -> dict[str, Any]:
    """Serialize a Player to a dictionary."""
    return {
        "id": player.id,
        "nickname": player.nickname,
        "role": player.role,
        "rank": player.rank,
        "hand": cards_to_dicts(player.hand),
        "is_ready": player.is_ready,
        "has_passed": player.has_passed,
        "has_finished": player.has_finished,
        "has_double_joker": player.has_double_joker,
    }


def deserialize_player(data: dict[str, Any]) -> Player:
    """Deserialize a Player from a dictionary."""
    return Player(
        id=data["id"],
        nickname=data["nickname"],
        role=data.get("role"),
        rank=data.get("rank"),
        hand=cards_from_dicts(data.get("hand", [])),
        is_ready=data.get("is_ready", False),
        has_passed=data.get("has_passed", False),
        has_finished=data.get("has_finished", False),
        has_double_joker=data.get("has_double_joker", False),
    )


def serialize_tax_pair(pair: TaxExchangePair) -> dict[str, Any]:
    """Serialize a TaxExchangePair to a dictionary."""
    return {
        "giver_rank": pair.giver_rank,
        "receiver_rank": pair.receiver_rank,
        "card_count": pair.card_count,
    }


def deserialize_tax_pair(data: dict[str, Any]) -> TaxExchangePair:
    """Deserialize a TaxExchangePair from a dictionary."""
    return TaxExchangePair(
        giver_rank=data["giver_rank"],
        receiver_rank=data["receiver_rank"],
        card_count=data["card_count"],
    )


def serialize_settlement(settlement: TaxSettlement) -> dict[str, Any]:
    """Serialize a TaxSettlement to a dictionary."""
    return {
        "pair": serialize_tax_pair(settlement.pair),
        "giver_id": settlement.giver_id,
        "receiver_id": settlement.receiver_id,
        "cards_to_receiver": cards_to_dicts(settlement.cards_to_receiver),
        "cards_to_giver": cards_to_dicts(settlement.cards_to_giver),
    }


def deserialize_settlement(data: dict[str, Any]) -> TaxSettlement:
    """Deserialize a TaxSettlement from a dictionary."""
    return TaxSettlement(
        pair=deserialize_tax_pair(data["pair"]),
        giver_id=data["giver_id"],
        receiver_id=data["receiver_id"],
        cards_to_receiver=tuple(cards_from_dicts(data.get("cards_to_receiver", []))),
        cards_to_giver=tuple(cards_from_dicts(data.get("cards_to_giver", []))),
    )


def serialize_phase_data(data: PhaseData) -> dict[str, Any]:
    """Serialize the current phase's data, tagged with its phase."""
    document: dict[str, Any] = {"phase": data.phase.value}
    match data:
        case RoleSelectionData():
            document["deck"] = cards_to_dicts(data.deck)
            document["cards"] = [
                {"number": c.number, "is_selected": c.is_selected, "selected_by": c.selected_by}
                for c in data.cards
            ]
        case CardSelectionData():
            document["decks"] = [
                {
                    "cards": cards_to_dicts(d.cards),
                    "is_selected": d.is_selected,
                    "selected_by": d.selected_by,
                }
                for d in data.decks
            ]
        case RevolutionData():
            document["holder_id"] = data.holder_id
        case TaxData():
            document["settlements"] = [serialize_settlement(s) for s in data.settlements]
        case PlayingData():
            document["last_play"] = (
                {"player_id": data.last_play.player_id, "cards": cards_to_dicts(data.last_play.cards)}
                if data.last_play
                else None
            )
    return document


def deserialize_phase_data(data: dict[str, Any]) -> PhaseData:
    """Deserialize phase data from its tagged dictionary."""
    phase = Phase(data["phase"])
    match phase:
        case Phase.WAITING:
            return WaitingData()
        case Phase.ROLE_SELECTION:
            return RoleSelectionData(
                deck=cards_from_dicts(data.get("deck", [])),
                cards=[
                    RoleSelectionCard(
                        number=c["number"],
                        is_selected=c.get("is_selected", False),
                        selected_by=c.get("selected_by"),
                    )
                    for c in data.get("cards", [])
                ],
            )
        case Phase.CARD_SELECTION:
            return CardSelectionData(
                decks=[
                    SelectableDeck(
                        cards=cards_from_dicts(d.get("cards", [])),
                        is_selected=d.get("is_selected", False),
                        selected_by=d.get("selected_by"),
                    )
                    for d in data.get("decks", [])
                ]
            )
        case Phase.REVOLUTION:
            return RevolutionData(holder_id=data["holder_id"])
        case Phase.TAX:
            return TaxData(
                settlements=[deserialize_settlement(s) for s in data.get("settlements", [])]
            )
        case Phase.PLAYING:
            last_play = data.get("last_play")
            return PlayingData(
                last_play=LastPlay(
                    player_id=last_play["player_id"],
                    cards=tuple(cards_from_dicts(last_play["cards"])),
                )
                if last_play
                else None
            )
        case Phase.GAME_END:
            return GameEndData()


def serialize_revolution(status: RevolutionStatus | None) -> dict[str, Any] | None:
    """Serialize a RevolutionStatus to a dictionary."""
    if status is None:
        return None
    return {
        "is_revolution": status.is_revolution,
        "is_great_revolution": status.is_great_revolution,
        "revolution_player_id": status.revolution_player_id,
    }


def deserialize_revolution(data: dict[str, Any] | None) -> RevolutionStatus | None:
    """Deserialize a RevolutionStatus from a dictionary."""
    if not data:
        return None
    return RevolutionStatus(
        is_revolution=data["is_revolution"],
        is_great_revolution=data["is_great_revolution"],
        revolution_player_id=data["revolution_player_id"],
    )


def serialize_play_record(record: PlayRecord) -> dict[str, Any]:
    """Serialize a PlayRecord to a dictionary."""
    return {
        "trick": record.trick,
        "player_id": record.player_id,
        "cards": cards_to_dicts(record.cards),
        "played_at": record.played_at.isoformat(),
    }


def deserialize_play_record(data: dict[str, Any]) -> PlayRecord:
    """Deserialize a PlayRecord from a dictionary."""
    return PlayRecord(
        trick=data["trick"],
        player_id=data["player_id"],
        cards=tuple(cards_from_dicts(data["cards"])),
        played_at=_datetime_or_none(data["played_at"]) or datetime.now(UTC),
    )


def serialize_history(history: GameHistory) -> dict[str, Any]:
    """Serialize a GameHistory to a dictionary."""
    return {
        "game_number": history.game_number,
        "standings": [
            {
                "player_id": s.player_id,
                "nickname": s.nickname,
                "position": s.position,
                "finished_at_trick": s.finished_at_trick,
                "total_cards_played": s.total_cards_played,
                "total_passes": s.total_passes,
            }
            for s in history.standings
        ],
        "finished_order": list(history.finished_order),
        "total_tricks": history.total_tricks,
        "plays": [serialize_play_record(p) for p in history.plays],
        "started_at": history.started_at.isoformat() if history.started_at else None,
        "ended_at": history.ended_at.isoformat(),
    }


def deserialize_history(data: dict[str, Any]) -> GameHistory:
    """Deserialize a GameHistory from a dictionary."""
    return GameHistory(
        game_number=data["game_number"],
        standings=tuple(Standing(**s) for s in data.get("standings", [])),
        finished_order=tuple(data.get("finished_order", [])),
        total_tricks=data.get("total_tricks", 0),
        plays=tuple(deserialize_play_record(p) for p in data.get("plays", [])),
        started_at=_datetime_or_none(data.get("started_at")),
        ended_at=_datetime_or_none(data["ended_at"]) or datetime.now(UTC),
    )


def serialize_game(game: Game) -> dict[str, Any]:
    """Serialize a complete Game to a MongoDB document.

    Args:
        game: Game instance to serialize

    Returns:
        Dictionary suitable for MongoDB storage
    """
    return {
        "_id": game.room_id,
        "phase": game.phase.value,
        "phase_data": serialize_phase_data(game.phase_data),
        "round": game.round,
        "trick": game.trick,
        "players": [serialize_player(p) for p in game.players],
        "current_turn": game.current_turn,
        "finished_players": list(game.finished_players),
        "revolution_status": serialize_revolution(game.revolution_status),
        "votes": dict(game.votes),
        "closed": game.closed,
        "game_number": game.game_number,
        "plays": [serialize_play_record(p) for p in game.plays],
        "player_stats": {
            player_id: {
                "total_cards_played": stats.total_cards_played,
                "total_passes": stats.total_passes,
                "finished_at_trick": stats.finished_at_trick,
            }
            for player_id, stats in game.player_stats.items()
        },
        "histories": [serialize_history(h) for h in game.histories],
        "started_at": game.started_at.isoformat() if game.started_at else None,
        "created_at": game.created_at or datetime.now(UTC).isoformat(),
        "updated_at": datetime.now(UTC).isoformat(),
    }


def deserialize_game(data: dict[str, Any]) -> Game:
    """Deserialize a Game from a MongoDB document.

    Args:
        data: MongoDB document

    Returns:
        Game instance with full state restored
    """
    game = Game(
        room_id=data["_id"],
        phase_data=deserialize_phase_data(data.get("phase_data", {"phase": data["phase"]})),
        round=data.get("round", 0),
        trick=data.get("trick", 0),
        current_turn=data.get("current_turn"),
        closed=data.get("closed", False),
        game_number=data.get("game_number", 1),
        started_at=_datetime_or_none(data.get("started_at")),
        created_at=data.get("created_at"),
    )

    # Restore players
    game.players = [deserialize_player(p) for p in data.get("players", [])]

    # Restore per-game progress
    game.finished_players = list(data.get("finished_players", []))
    game.revolution_status = deserialize_revolution(data.get("revolution_status"))
    game.votes = dict(data.get("votes", {}))
    game.plays = [deserialize_play_record(p) for p in data.get("plays", [])]
    game.player_stats = {
        player_id: PlayerStats(**stats)
        for player_id, stats in data.get("player_stats", {}).items()
    }
    game.histories = [deserialize_history(h) for h in data.get("histories", [])]

    return game
