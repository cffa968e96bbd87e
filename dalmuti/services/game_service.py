"""Game use cases.

Each use case validates its input, loads the room, runs exactly one engine
operation and stores the result. Calls for the same room are serialized
with a per-room lock; different rooms run independently.
"""

import asyncio
import logging
import random
import secrets
import string
from collections.abc import AsyncIterator, Callable, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from dalmuti.config import settings
from dalmuti.constants import MAX_ROLE_NUMBER, MIN_ROLE_NUMBER, ROOM_ID_ALPHABET, ROOM_ID_LENGTH
from dalmuti.errors import (
    DalmutiError,
    GameNotFoundError,
    InvalidCardError,
    InvalidDeckIndexError,
    InvalidRoleNumberError,
    InvariantError,
    RoomExistsError,
    StorageError,
    ValidationError,
)
from dalmuti.models.card import Card, cards_to_dicts
from dalmuti.models.enums import Phase
from dalmuti.models.game import Game
from dalmuti.models.player import Player
from dalmuti.repositories.game_repository import GameRepository
from dalmuti.services.game_serializer import serialize_revolution
from dalmuti.services.log_service import LogService
from dalmuti.services.phase_scheduler import PhaseScheduler

logger = logging.getLogger(__name__)

_ROOM_ID_CHARS = frozenset(string.ascii_letters + string.digits)


@dataclass(frozen=True)
class CommandResult:
    """The game after a use case, plus what the use case reports back."""

    game: Game
    payload: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# INPUT VALIDATION
# =============================================================================


def generate_room_id() -> str:
    """Generate a random 6-character room id."""
    return "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))


def validate_room_id(room_id: Any) -> str:
    """Room ids are exactly 6 ASCII letters or digits."""
    if (
        not isinstance(room_id, str)
        or len(room_id) != ROOM_ID_LENGTH
        or not set(room_id) <= _ROOM_ID_CHARS
    ):
        raise ValidationError(
            f"Room id must be {ROOM_ID_LENGTH} letters or digits, got {room_id!r}",
            field="room_id",
        )
    return room_id


def validate_player_id(player_id: Any) -> str:
    if not isinstance(player_id, str) or not player_id.strip():
        raise ValidationError("Player id must not be blank", field="player_id")
    return player_id


def validate_nickname(nickname: Any) -> str:
    if not isinstance(nickname, str) or not nickname.strip():
        raise ValidationError("Nickname must not be blank", field="nickname")
    return nickname.strip()


def validate_role_number(role_number: Any) -> int:
    if (
        isinstance(role_number, bool)
        or not isinstance(role_number, int)
        or not MIN_ROLE_NUMBER <= role_number <= MAX_ROLE_NUMBER
    ):
        raise InvalidRoleNumberError(role_number)
    return role_number


def validate_deck_index(deck_index: Any) -> int:
    if isinstance(deck_index, bool) or not isinstance(deck_index, int) or deck_index < 0:
        raise InvalidDeckIndexError(deck_index)
    return deck_index


def parse_cards(payload: Any) -> list[Card]:
    """Accept cards as ``Card`` objects or ``{"rank", "is_joker"}`` dicts."""
    if not isinstance(payload, Iterable) or isinstance(payload, str | bytes | dict):
        raise InvalidCardError("Cards must be a list")
    return [item if isinstance(item, Card) else Card.from_dict(item) for item in payload]


# =============================================================================
# SERVICE
# =============================================================================


class GameService:
    """Runs game commands against a repository.

    Args:
        repository: Where games are loaded from and saved to
        scheduler: Advances the tax phase after a delay; without one the
            tax phase waits for ``transition_tax_to_playing``
        log_service: Audit logger

    """

    def __init__(
        self,
        repository: GameRepository,
        scheduler: PhaseScheduler | None = None,
        log_service: LogService | None = None,
    ) -> None:
        self.repository = repository
        self.scheduler = scheduler
        self.log_service = log_service or LogService()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _room_lock(self, room_id: str) -> AsyncIterator[None]:
        """Hold the room's lock; it is dropped once no caller holds or awaits it."""
        lock = self._locks.setdefault(room_id, asyncio.Lock())
        self._lock_users[room_id] = self._lock_users.get(room_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[room_id] -= 1
            if self._lock_users[room_id] == 0:
                del self._lock_users[room_id]
                del self._locks[room_id]

    async def _load(self, room_id: str) -> Game:
        game = await self.repository.find(room_id)
        if game is None:
            raise GameNotFoundError(room_id)
        return game

    async def _store(self, game: Game, *, new: bool = False) -> None:
        stored = await (self.repository.save(game) if new else self.repository.update(game))
        if not stored:
            raise StorageError(f"Could not save game {game.room_id}")

    async def _execute(
        self,
        action: str,
        room_id: str,
        command: Callable[[Game], dict[str, Any]],
        **log_fields: Any,
    ) -> CommandResult:
        """Load the room, run ``command`` on it and save it, under the room lock."""
        async with self._room_lock(room_id):
            game = await self._load(room_id)
            try:
                payload = command(game)
            except InvariantError as e:
                self.log_service.error(
                    {"action": action, "room": room_id, "code": e.code.value, "message": e.message}
                )
                raise
            except DalmutiError as e:
                self.log_service.rejected(action, room_id, e.code.value, e.message)
                raise
            await self._store(game)

        self.log_service.command(action, room_id, phase=game.phase.value, **log_fields)
        self._schedule_phase_timer(game)
        return CommandResult(game=game, payload=payload)

    def _schedule_phase_timer(self, game: Game) -> None:
        if self.scheduler is not None and game.phase == Phase.TAX:
            self.scheduler.schedule(game.room_id, self._advance_tax)

    async def _advance_tax(self, room_id: str) -> None:
        await self.transition_tax_to_playing(room_id)

    def resume_phase_timers(self, games: Iterable[Game]) -> int:
        """Re-arm tax timers for rooms restored after a restart.

        Returns:
            Number of rooms whose timer was scheduled
        """
        resumed = 0
        for game in games:
            if game.phase == Phase.TAX and self.scheduler is not None:
                resumed += self.scheduler.schedule(game.room_id, self._advance_tax)
        if resumed:
            logger.info("Resumed %d tax timers", resumed)
        return resumed

    # ------------------------------------------------------------------
    # Room lifecycle
    # ------------------------------------------------------------------

    async def create_game(self, room_id: str | None = None) -> CommandResult:
        """Create an empty room, with a generated id unless one is given."""
        if room_id is None:
            room_id = generate_room_id()
            while await self.repository.find(room_id) is not None:
                room_id = generate_room_id()
        else:
            validate_room_id(room_id)

        async with self._room_lock(room_id):
            if await self.repository.find(room_id) is not None:
                raise RoomExistsError(f"Room already exists: {room_id}")
            game = Game.create(room_id)
            await self._store(game, new=True)

        self.log_service.command("create_game", room_id)
        return CommandResult(game=game, payload={"room_id": room_id})

    async def get_game(self, room_id: str) -> Game:
        """Load a room."""
        validate_room_id(room_id)
        return await self._load(room_id)

    async def delete_game(self, room_id: str) -> bool:
        """Delete a room and cancel its timers."""
        validate_room_id(room_id)
        if self.scheduler is not None:
            await self.scheduler.cancel(room_id)
        async with self._room_lock(room_id):
            deleted = await self.repository.delete(room_id)
        if deleted:
            self.log_service.command("delete_game", room_id)
        return deleted

    async def join_game(self, room_id: str, player_id: str, nickname: str) -> CommandResult:
        validate_room_id(room_id)
        validate_player_id(player_id)
        nickname = validate_nickname(nickname)

        def command(game: Game) -> dict[str, Any]:
            game.add_player(Player(id=player_id, nickname=nickname))
            return {"player_id": player_id, "player_count": len(game.players)}

        return await self._execute("join_game", room_id, command, player=player_id)

    async def leave_game(self, room_id: str, player_id: str) -> CommandResult:
        """Remove a player; the room is deleted when the last one leaves."""
        validate_room_id(room_id)
        validate_player_id(player_id)

        def command(game: Game) -> dict[str, Any]:
            game.remove_player(player_id)
            return {"player_id": player_id, "room_deleted": not game.players}

        result = await self._execute("leave_game", room_id, command, player=player_id)
        if result.payload["room_deleted"]:
            await self.delete_game(room_id)
        return result

    async def set_ready(self, room_id: str, player_id: str, is_ready: bool | None = None) -> CommandResult:
        validate_room_id(room_id)
        validate_player_id(player_id)

        def command(game: Game) -> dict[str, Any]:
            ready = game.set_ready(player_id, is_ready)
            return {"is_ready": ready, "all_ready": game.all_players_ready()}

        return await self._execute("set_ready", room_id, command, player=player_id)

    async def start_game(self, room_id: str, rng: random.Random | None = None) -> CommandResult:
        """Start the game in a waiting room."""
        validate_room_id(room_id)

        def command(game: Game) -> dict[str, Any]:
            game.start(rng=rng, jokers_first=settings.debug_double_joker)
            return {"player_count": len(game.players)}

        return await self._execute("start_game", room_id, command)

    # ------------------------------------------------------------------
    # Dealing
    # ------------------------------------------------------------------

    async def select_role(self, room_id: str, player_id: str, role_number: int) -> CommandResult:
        validate_room_id(room_id)
        validate_player_id(player_id)
        validate_role_number(role_number)

        def command(game: Game) -> dict[str, Any]:
            complete = game.select_role(player_id, role_number)
            return {"role_number": role_number, "roles_complete": complete}

        return await self._execute("select_role", room_id, command, player=player_id, role=role_number)

    async def select_deck(self, room_id: str, player_id: str, deck_index: int) -> CommandResult:
        validate_room_id(room_id)
        validate_player_id(player_id)
        validate_deck_index(deck_index)

        def command(game: Game) -> dict[str, Any]:
            cards = game.select_deck(player_id, deck_index)
            return {"deck_index": deck_index, "cards": cards_to_dicts(cards)}

        return await self._execute("select_deck", room_id, command, player=player_id, deck=deck_index)

    async def choose_revolution(self, room_id: str, player_id: str, want_revolution: bool) -> CommandResult:
        validate_room_id(room_id)
        validate_player_id(player_id)

        def command(game: Game) -> dict[str, Any]:
            status = game.choose_revolution(player_id, bool(want_revolution))
            return {"revolution": serialize_revolution(status)}

        return await self._execute(
            "choose_revolution", room_id, command, player=player_id, revolution=bool(want_revolution)
        )

    async def transition_tax_to_playing(self, room_id: str) -> CommandResult:
        """Move a room from tax to playing. A no-op in any other phase."""
        validate_room_id(room_id)

        def command(game: Game) -> dict[str, Any]:
            return {"advanced": game.finish_tax()}

        return await self._execute("transition_tax_to_playing", room_id, command)

    # ------------------------------------------------------------------
    # Playing
    # ------------------------------------------------------------------

    async def play_cards(self, room_id: str, player_id: str, cards: Any) -> CommandResult:
        validate_room_id(room_id)
        validate_player_id(player_id)
        parsed = parse_cards(cards)

        def command(game: Game) -> dict[str, Any]:
            outcome = game.play_cards(player_id, parsed)
            return {
                "cards": cards_to_dicts(outcome.cards),
                "player_finished": outcome.player_finished,
                "round_finished": outcome.round_finished,
                "game_over": outcome.game_over,
                "next_turn": outcome.next_turn,
            }

        return await self._execute("play_cards", room_id, command, player=player_id, count=len(parsed))

    async def pass_turn(self, room_id: str, player_id: str) -> CommandResult:
        validate_room_id(room_id)
        validate_player_id(player_id)

        def command(game: Game) -> dict[str, Any]:
            outcome = game.pass_turn(player_id)
            return {"round_finished": outcome.round_finished, "next_turn": outcome.next_turn}

        return await self._execute("pass_turn", room_id, command, player=player_id)

    async def vote_next_game(self, room_id: str, player_id: str, approve: bool) -> CommandResult:
        validate_room_id(room_id)
        validate_player_id(player_id)

        def command(game: Game) -> dict[str, Any]:
            result = game.register_vote(player_id, bool(approve))
            return {
                "all_voted": result.all_voted,
                "approved": result.approved,
                "status": result.status.value,
            }

        return await self._execute("vote_next_game", room_id, command, player=player_id, approve=bool(approve))
