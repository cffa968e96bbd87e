"""Request and response models."""

from typing import Any

from pydantic import BaseModel, Field

from dalmuti.models.card import Card
from dalmuti.models.game import Game

__all__ = [
    "CardModel",
    "CommandResponse",
    "CreateGameRequest",
    "CreateGameResponse",
    "DeckRequest",
    "ErrorBody",
    "ErrorResponse",
    "GameView",
    "JoinRequest",
    "PlayRequest",
    "PlayerRequest",
    "PlayerView",
    "ReadyRequest",
    "RevolutionRequest",
    "RoleRequest",
    "VoteRequest",
    "build_game_view",
]


# =============================================================================
# REQUESTS
# =============================================================================


class CreateGameRequest(BaseModel):
    """Create a room; the id is generated when omitted."""

    room_id: str | None = None


class PlayerRequest(BaseModel):
    player_id: str


class JoinRequest(PlayerRequest):
    nickname: str


class ReadyRequest(PlayerRequest):
    """Set readiness; omit ``is_ready`` to toggle."""

    is_ready: bool | None = None


class RoleRequest(PlayerRequest):
    role_number: int


class DeckRequest(PlayerRequest):
    deck_index: int


class RevolutionRequest(PlayerRequest):
    want_revolution: bool


class CardModel(BaseModel):
    """A card on the wire. Jokers carry no rank."""

    rank: int | None = None
    is_joker: bool = False

    @classmethod
    def from_card(cls, card: Card) -> "CardModel":
        return cls(rank=card.rank, is_joker=card.is_joker)


class PlayRequest(PlayerRequest):
    cards: list[CardModel] = Field(default_factory=list)


class VoteRequest(PlayerRequest):
    approve: bool


# =============================================================================
# RESPONSES
# =============================================================================


class CreateGameResponse(BaseModel):
    room_id: str


class PlayerView(BaseModel):
    """Player information visible to everyone in the room."""

    id: str
    nickname: str
    role: int | None
    rank: int | None
    card_count: int
    is_ready: bool
    has_passed: bool
    has_finished: bool
    has_double_joker: bool


class GameView(BaseModel):
    """Room state as seen by one caller.

    Other players' hands are reduced to counts; ``hand`` is filled only for
    the requesting player.
    """

    room_id: str
    phase: str
    round: int
    trick: int
    game_number: int
    current_turn: str | None
    players: list[PlayerView]
    finished_players: list[str]
    hand: list[CardModel] | None = None
    role_selection_cards: list[dict[str, Any]] | None = None
    selectable_decks: list[dict[str, Any]] | None = None
    revolution_holder: str | None = None
    tax_exchanges: list[dict[str, Any]] | None = None
    last_play: dict[str, Any] | None = None
    revolution_status: dict[str, Any] | None = None
    votes: dict[str, bool] = Field(default_factory=dict)
    vote_status: str


class CommandResponse(BaseModel):
    """A use case's report plus the resulting room view."""

    result: dict[str, Any]
    game: GameView


class ErrorBody(BaseModel):
    code: str
    message: str
    field: str | None = None


class ErrorResponse(BaseModel):
    error: ErrorBody


def build_game_view(game: Game, viewer_id: str | None = None) -> GameView:
    """Project a game for one viewer.

    Deck segments are face down: only their size and owner are shown.
    Tax exchanges list only the card counts; the moved cards are private
    to the two players involved.
    """
    viewer = game.get_player(viewer_id) if viewer_id else None

    role_cards = None
    if game.role_selection_cards is not None:
        role_cards = [
            {"number": c.number, "is_selected": c.is_selected, "selected_by": c.selected_by}
            for c in game.role_selection_cards
        ]

    decks = None
    if game.selectable_decks is not None:
        decks = [
            {"index": i, "card_count": len(d.cards), "is_selected": d.is_selected, "selected_by": d.selected_by}
            for i, d in enumerate(game.selectable_decks)
        ]

    exchanges = None
    if game.tax_settlements is not None:
        exchanges = [
            {
                "giver_id": s.giver_id,
                "receiver_id": s.receiver_id,
                "giver_rank": s.pair.giver_rank,
                "receiver_rank": s.pair.receiver_rank,
                "card_count": s.pair.card_count,
            }
            for s in game.tax_settlements
        ]

    last_play = None
    if game.last_play is not None:
        last_play = {
            "player_id": game.last_play.player_id,
            "cards": [CardModel.from_card(c).model_dump() for c in game.last_play.cards],
        }

    revolution = None
    if game.revolution_status is not None:
        revolution = {
            "is_revolution": game.revolution_status.is_revolution,
            "is_great_revolution": game.revolution_status.is_great_revolution,
            "revolution_player_id": game.revolution_status.revolution_player_id,
        }

    return GameView(
        room_id=game.room_id,
        phase=game.phase.value,
        round=game.round,
        trick=game.trick,
        game_number=game.game_number,
        current_turn=game.current_turn,
        players=[
            PlayerView(
                id=p.id,
                nickname=p.nickname,
                role=p.role,
                rank=p.rank,
                card_count=p.card_count(),
                is_ready=p.is_ready,
                has_passed=p.has_passed,
                has_finished=p.has_finished,
                has_double_joker=p.has_double_joker,
            )
            for p in game.players
        ],
        finished_players=list(game.finished_players),
        hand=[CardModel.from_card(c) for c in viewer.hand] if viewer else None,
        role_selection_cards=role_cards,
        selectable_decks=decks,
        revolution_holder=game.revolution_holder,
        tax_exchanges=exchanges,
        last_play=last_play,
        revolution_status=revolution,
        votes=dict(game.votes),
        vote_status=game.vote_status.value,
    )
