"""API routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dalmuti.api.responses import (
    CommandResponse,
    CreateGameRequest,
    CreateGameResponse,
    DeckRequest,
    ErrorBody,
    ErrorResponse,
    GameView,
    JoinRequest,
    PlayerRequest,
    PlayRequest,
    ReadyRequest,
    RevolutionRequest,
    RoleRequest,
    VoteRequest,
    build_game_view,
)
from dalmuti.errors import (
    BusinessRuleError,
    DalmutiError,
    ErrorCode,
    InvariantError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from dalmuti.services.game_service import CommandResult, GameService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_game_service(request: Request) -> GameService:
    """Game service stored on the application at startup."""
    return request.app.state.game_service


Service = Annotated[GameService, Depends(get_game_service)]


def _respond(result: CommandResult, viewer_id: str | None = None) -> CommandResponse:
    return CommandResponse(result=result.payload, game=build_game_view(result.game, viewer_id))


# =============================================================================
# ERROR HANDLING
# =============================================================================


def status_for(error: DalmutiError) -> int:
    """HTTP status for an error kind."""
    if isinstance(error, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, BusinessRuleError):
        return status.HTTP_409_CONFLICT
    if isinstance(error, StorageError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def dalmuti_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Convert engine errors to the ``{"error": {...}}`` envelope."""
    if not isinstance(exc, DalmutiError):
        raise exc
    if isinstance(exc, InvariantError):
        logger.error("Invariant violation: %s", exc.message)
    body = ErrorResponse(
        error=ErrorBody(code=exc.code.value, message=exc.message, field=getattr(exc, "field", None))
    )
    return JSONResponse(status_code=status_for(exc), content=body.model_dump(exclude_none=True))


async def request_validation_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Report malformed request bodies as 400 in the same envelope."""
    if not isinstance(exc, RequestValidationError):
        raise exc
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    body = ErrorResponse(
        error=ErrorBody(
            code=ErrorCode.INVALID_INPUT.value,
            message=first.get("msg", "Invalid request"),
            field=".".join(location) or None,
        )
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump(exclude_none=True)
    )


# =============================================================================
# ROOMS
# =============================================================================


@router.post("/games", status_code=status.HTTP_201_CREATED)
async def create_game(request: CreateGameRequest, service: Service) -> CreateGameResponse:
    """Create a new room."""
    result = await service.create_game(request.room_id)
    return CreateGameResponse(room_id=result.game.room_id)


@router.get("/games/{room_id}")
async def get_game(
    room_id: str,
    service: Service,
    player_id: Annotated[str | None, Query(description="Caller, to include their own hand")] = None,
) -> GameView:
    """Get the room state. Only the caller's own hand is included."""
    game = await service.get_game(room_id)
    return build_game_view(game, player_id)


@router.delete("/games/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_game(room_id: str, service: Service) -> None:
    await service.get_game(room_id)
    await service.delete_game(room_id)


@router.post("/games/{room_id}/players", status_code=status.HTTP_201_CREATED)
async def join_game(room_id: str, request: JoinRequest, service: Service) -> CommandResponse:
    result = await service.join_game(room_id, request.player_id, request.nickname)
    return _respond(result, request.player_id)


@router.delete("/games/{room_id}/players/{player_id}")
async def leave_game(room_id: str, player_id: str, service: Service) -> dict[str, bool]:
    """Leave a room. The room is deleted with its last player."""
    result = await service.leave_game(room_id, player_id)
    return {"room_deleted": result.payload["room_deleted"]}


@router.post("/games/{room_id}/ready")
async def set_ready(room_id: str, request: ReadyRequest, service: Service) -> CommandResponse:
    result = await service.set_ready(room_id, request.player_id, request.is_ready)
    return _respond(result, request.player_id)


@router.post("/games/{room_id}/start")
async def start_game(room_id: str, service: Service) -> CommandResponse:
    result = await service.start_game(room_id)
    return _respond(result)


# =============================================================================
# DEALING
# =============================================================================


@router.post("/games/{room_id}/role")
async def select_role(room_id: str, request: RoleRequest, service: Service) -> CommandResponse:
    result = await service.select_role(room_id, request.player_id, request.role_number)
    return _respond(result, request.player_id)


@router.post("/games/{room_id}/deck")
async def select_deck(room_id: str, request: DeckRequest, service: Service) -> CommandResponse:
    result = await service.select_deck(room_id, request.player_id, request.deck_index)
    return _respond(result, request.player_id)


@router.post("/games/{room_id}/revolution")
async def choose_revolution(
    room_id: str, request: RevolutionRequest, service: Service
) -> CommandResponse:
    result = await service.choose_revolution(room_id, request.player_id, request.want_revolution)
    return _respond(result, request.player_id)


@router.post("/games/{room_id}/tax/complete")
async def complete_tax(room_id: str, service: Service) -> CommandResponse:
    """Advance from tax to playing without waiting for the timer."""
    result = await service.transition_tax_to_playing(room_id)
    return _respond(result)


# =============================================================================
# PLAYING
# =============================================================================


@router.post("/games/{room_id}/play")
async def play_cards(room_id: str, request: PlayRequest, service: Service) -> CommandResponse:
    cards = [card.model_dump() for card in request.cards]
    result = await service.play_cards(room_id, request.player_id, cards)
    return _respond(result, request.player_id)


@router.post("/games/{room_id}/pass")
async def pass_turn(room_id: str, request: PlayerRequest, service: Service) -> CommandResponse:
    result = await service.pass_turn(room_id, request.player_id)
    return _respond(result, request.player_id)


@router.post("/games/{room_id}/vote")
async def vote_next_game(room_id: str, request: VoteRequest, service: Service) -> CommandResponse:
    result = await service.vote_next_game(room_id, request.player_id, request.approve)
    return _respond(result, request.player_id)
