"""Tests for the game use cases."""

import asyncio
import random

import pytest

from dalmuti.config import settings
from dalmuti.errors import (
    GameNotFoundError,
    InvalidCardError,
    InvalidDeckIndexError,
    InvalidRoleNumberError,
    NotYourTurnError,
    RoomExistsError,
    ValidationError,
    WrongPhaseError,
)
from dalmuti.models.enums import Phase
from dalmuti.services.game_service import generate_room_id, parse_cards, validate_room_id

pytestmark = pytest.mark.anyio

ROOM = "ROOM01"
PLAYERS = ("p1", "p2", "p3", "p4")


async def fill_room(service, room_id: str = ROOM):
    await service.create_game(room_id)
    for player_id in PLAYERS:
        await service.join_game(room_id, player_id, player_id.upper())


async def deal_with_double_joker(service, monkeypatch, room_id: str = ROOM):
    """Start a game where p1 (rank 1) is dealt both jokers."""
    monkeypatch.setattr(settings, "debug_double_joker", True)
    await fill_room(service, room_id)
    await service.start_game(room_id, rng=random.Random(5))
    for number, player_id in enumerate(PLAYERS, start=1):
        await service.select_role(room_id, player_id, number)
    for index, player_id in enumerate(PLAYERS[:3]):
        await service.select_deck(room_id, player_id, index)


# =============================================================================
# INPUT VALIDATION
# =============================================================================


class TestInputValidation:
    """Input is checked before any room is loaded."""

    @pytest.mark.parametrize("room_id", ["ABC12", "ABC1234", "ABC-12", "", None, "ÄBC123"])
    async def test_bad_room_ids(self, room_id):
        with pytest.raises(ValidationError):
            validate_room_id(room_id)

    async def test_generated_room_id_is_valid(self):
        assert validate_room_id(generate_room_id())

    async def test_blank_player_id(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.join_game(ROOM, "  ", "Nick")
        assert exc_info.value.field == "player_id"

    async def test_blank_nickname(self, service):
        with pytest.raises(ValidationError):
            await service.join_game(ROOM, "p1", "")

    async def test_role_number_checked_before_lookup(self, service):
        with pytest.raises(InvalidRoleNumberError):
            await service.select_role("NOROOM", "p1", 0)

    async def test_negative_deck_index(self, service):
        with pytest.raises(InvalidDeckIndexError):
            await service.select_deck("NOROOM", "p1", -1)

    async def test_card_payloads(self):
        assert parse_cards([{"rank": 3}, {"is_joker": True}])[1].is_joker
        with pytest.raises(InvalidCardError):
            parse_cards("3,3")
        with pytest.raises(InvalidCardError):
            parse_cards([{"rank": 99}])


# =============================================================================
# ROOM LIFECYCLE
# =============================================================================


class TestRoomLifecycle:
    async def test_create_with_generated_id(self, service, repository):
        result = await service.create_game()
        assert len(result.game.room_id) == 6
        assert result.game.room_id in repository

    async def test_create_existing_room(self, service):
        await service.create_game(ROOM)
        with pytest.raises(RoomExistsError):
            await service.create_game(ROOM)

    async def test_unknown_room(self, service):
        with pytest.raises(GameNotFoundError):
            await service.join_game("NOROOM", "p1", "P1")

    async def test_join_is_persisted(self, service):
        await fill_room(service)
        game = await service.get_game(ROOM)
        assert [p.id for p in game.players] == list(PLAYERS)

    async def test_last_player_leaving_deletes_room(self, service, repository):
        await service.create_game(ROOM)
        await service.join_game(ROOM, "p1", "P1")
        result = await service.leave_game(ROOM, "p1")
        assert result.payload["room_deleted"] is True
        assert ROOM not in repository

    async def test_delete_game(self, service):
        await service.create_game(ROOM)
        assert await service.delete_game(ROOM) is True
        assert await service.delete_game(ROOM) is False

    async def test_results_are_not_shared_with_storage(self, service):
        await fill_room(service)
        result = await service.set_ready(ROOM, "p1", True)
        result.game.players.clear()
        game = await service.get_game(ROOM)
        assert len(game.players) == 4
        assert game.require_player("p1").is_ready


# =============================================================================
# GAME COMMANDS
# =============================================================================


class TestCommands:
    async def test_start_and_select_roles(self, service):
        await fill_room(service)
        await service.start_game(ROOM, rng=random.Random(1))
        for number, player_id in enumerate(PLAYERS, start=1):
            result = await service.select_role(ROOM, player_id, number)
        assert result.payload["roles_complete"] is True
        assert result.game.phase == Phase.CARD_SELECTION
        assert result.game.current_turn == "p1"

    async def test_select_deck_reports_cards(self, service):
        await fill_room(service)
        await service.start_game(ROOM, rng=random.Random(1))
        for number, player_id in enumerate(PLAYERS, start=1):
            await service.select_role(ROOM, player_id, number)
        result = await service.select_deck(ROOM, "p1", 0)
        assert len(result.payload["cards"]) == 14

    async def test_rule_violation_is_not_saved(self, service):
        await fill_room(service)
        await service.start_game(ROOM, rng=random.Random(1))
        await service.select_role(ROOM, "p1", 1)
        with pytest.raises(WrongPhaseError):
            await service.select_deck(ROOM, "p1", 0)
        game = await service.get_game(ROOM)
        assert game.phase == Phase.ROLE_SELECTION

    async def test_revolution_declined_then_tax_advanced(self, service, monkeypatch):
        await deal_with_double_joker(service, monkeypatch)

        result = await service.choose_revolution(ROOM, "p1", False)
        assert result.game.phase == Phase.TAX
        assert result.payload["revolution"] is None

        result = await service.transition_tax_to_playing(ROOM)
        assert result.payload["advanced"] is True
        assert result.game.phase == Phase.PLAYING
        assert result.game.current_turn == "p1"

    async def test_stale_tax_transition_is_a_no_op(self, service, monkeypatch):
        await deal_with_double_joker(service, monkeypatch)
        await service.choose_revolution(ROOM, "p1", True)

        result = await service.transition_tax_to_playing(ROOM)

        assert result.payload["advanced"] is False
        assert result.game.phase == Phase.PLAYING

    async def test_play_and_pass(self, service, monkeypatch):
        await deal_with_double_joker(service, monkeypatch)
        await service.choose_revolution(ROOM, "p1", True)
        game = await service.get_game(ROOM)
        card = game.require_player("p1").hand[0]

        result = await service.play_cards(ROOM, "p1", [card.to_dict()])
        assert result.payload["next_turn"] == "p2"

        with pytest.raises(NotYourTurnError):
            await service.pass_turn(ROOM, "p3")
        result = await service.pass_turn(ROOM, "p2")
        assert result.payload["next_turn"] == "p3"


# =============================================================================
# ROOM LOCKS
# =============================================================================


class TestRoomLocks:
    async def test_lock_survives_delete_while_others_wait(self, service):
        await service.create_game(ROOM)

        async with service._room_lock(ROOM):
            deleting = asyncio.create_task(service.delete_game(ROOM))
            joining = asyncio.create_task(service.join_game(ROOM, "p1", "P1"))
            await asyncio.sleep(0)
            lock = service._locks[ROOM]

        # Let the delete run; the join is still queued on the same lock
        await asyncio.sleep(0)
        assert deleting.done() and deleting.result() is True
        assert service._locks.get(ROOM) is lock

        with pytest.raises(GameNotFoundError):
            await joining
        assert ROOM not in service._locks

    async def test_locks_are_released_after_use(self, service):
        await fill_room(service)
        await service.set_ready(ROOM, "p1")
        assert service._locks == {}
