"""Game aggregate: the Dalmuti state machine.

A room moves through these phases::

    waiting -> roleSelection -> cardSelection -> revolution -> tax -> playing -> gameEnd
                                             \\-> tax        \\-> playing
    gameEnd -> roleSelection   (after a unanimous next-game vote)

Every mutating operation checks its phase first and raises a
``BusinessRuleError`` subclass when the action is not allowed, so a stale
request (or a late timer) never corrupts the game.
"""

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

from dalmuti.constants import MAX_PLAYERS, MAX_ROLE_NUMBER, MIN_PLAYERS, MIN_ROLE_NUMBER, STANDARD_DECK_SIZE
from dalmuti.errors import (
    AlreadyFinishedError,
    AlreadyPassedError,
    CannotPassError,
    DeckAlreadyHeldError,
    DeckTakenError,
    GameClosedError,
    InvalidDeckIndexError,
    InvalidPlayerCountError,
    InvalidRoleNumberError,
    InvariantError,
    NotRevolutionHolderError,
    NotYourTurnError,
    PlayerExistsError,
    PlayerNotFoundError,
    RoleAlreadyChosenError,
    RoleTakenError,
    RoomFullError,
    WrongPhaseError,
)
from dalmuti.models import deck as deck_builder
from dalmuti.models.card import Card, format_cards
from dalmuti.models.deck import RoleSelectionCard, SelectableDeck
from dalmuti.models.enums import Phase, VoteStatus
from dalmuti.models.history import GameHistory, PlayerStats, PlayRecord, Standing, utc_now
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
from dalmuti.models.play_validator import validate_play
from dalmuti.models.player import Player
from dalmuti.models.tax import apply_tax_exchange, initialize_tax_exchanges
from dalmuti.models.turn import (
    TrickReset,
    active_players,
    first_active_player,
    next_player,
    players_by_rank,
    round_complete,
    start_new_round,
)

logger = logging.getLogger(__name__)

_DataT = TypeVar("_DataT")


@dataclass(frozen=True)
class PlayOutcome:
    """What happened after a successful play."""

    player_id: str
    cards: tuple[Card, ...]
    player_finished: bool
    round_finished: bool
    game_over: bool
    next_turn: str | None


@dataclass(frozen=True)
class PassOutcome:
    """What happened after a pass."""

    player_id: str
    round_finished: bool
    next_turn: str | None


@dataclass(frozen=True)
class VoteResult:
    """Tally of the next-game vote after one ballot."""

    all_voted: bool
    approved: bool
    status: VoteStatus


@dataclass
class Game:
    """Represents one Dalmuti room and the game played in it.

    Attributes:
        room_id: Room identifier
        players: Players in join order
        phase_data: Data belonging to the current phase (see ``phase``)
        round: Game round, 0 until the first deal is settled
        trick: Trick number within the current game
        current_turn: ID of the player expected to act, if any
        finished_players: Player IDs in the order they emptied their hands
        revolution_status: Set when the double-joker holder called a revolution
        votes: Next-game ballots, keyed by player ID
        closed: True once the next game was refused; the room stays in gameEnd
        game_number: 1-based count of games played in this room
        plays: Every group played in the current game
        player_stats: Running totals per player for the current game
        histories: Summaries of earlier games in this room
        started_at: When the current game started
        created_at: When the room was created

    """

    room_id: str
    players: list[Player] = field(default_factory=list)
    phase_data: PhaseData = field(default_factory=WaitingData)
    round: int = 0
    trick: int = 0
    current_turn: str | None = None
    finished_players: list[str] = field(default_factory=list)
    revolution_status: RevolutionStatus | None = None
    votes: dict[str, bool] = field(default_factory=dict)
    closed: bool = False
    game_number: int = 1
    plays: list[PlayRecord] = field(default_factory=list)
    player_stats: dict[str, PlayerStats] = field(default_factory=dict)
    histories: list[GameHistory] = field(default_factory=list)
    started_at: datetime | None = None
    created_at: str | None = None

    @classmethod
    def create(cls, room_id: str) -> "Game":
        """Create an empty room waiting for players."""
        return cls(room_id=room_id, created_at=utc_now().isoformat())

    # ------------------------------------------------------------------
    # Phase views
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        """Current phase."""
        return self.phase_data.phase

    @property
    def deck(self) -> list[Card] | None:
        """Shuffled deck waiting to be split (role selection only)."""
        if isinstance(self.phase_data, RoleSelectionData):
            return self.phase_data.deck
        return None

    @property
    def role_selection_cards(self) -> list[RoleSelectionCard] | None:
        """Role cards on the table (role selection only)."""
        if isinstance(self.phase_data, RoleSelectionData):
            return self.phase_data.cards
        return None

    @property
    def selectable_decks(self) -> list[SelectableDeck] | None:
        """Deck segments on offer (card selection only)."""
        if isinstance(self.phase_data, CardSelectionData):
            return self.phase_data.decks
        return None

    @property
    def tax_settlements(self) -> list[TaxSettlement] | None:
        """Cards moved by the tax (tax phase only)."""
        if isinstance(self.phase_data, TaxData):
            return self.phase_data.settlements
        return None

    @property
    def tax_exchanges(self) -> list[TaxExchangePair] | None:
        """Rank pairs exchanged during the tax (tax phase only)."""
        settlements = self.tax_settlements
        if settlements is None:
            return None
        return [settlement.pair for settlement in settlements]

    @property
    def last_play(self) -> LastPlay | None:
        """Group on the table (playing only)."""
        if isinstance(self.phase_data, PlayingData):
            return self.phase_data.last_play
        return None

    @property
    def revolution_holder(self) -> str | None:
        """Player deciding on a revolution (revolution phase only)."""
        if isinstance(self.phase_data, RevolutionData):
            return self.phase_data.holder_id
        return None

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def get_player(self, player_id: str) -> Player | None:
        """Get a player by ID."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def require_player(self, player_id: str) -> Player:
        """Get a player by ID or raise ``PlayerNotFoundError``."""
        player = self.get_player(player_id)
        if player is None:
            raise PlayerNotFoundError(player_id)
        return player

    def ranked_players(self) -> list[Player]:
        """Players sorted by rank, best first."""
        return players_by_rank(self.players)

    def add_player(self, player: Player) -> None:
        """Add a player to the waiting room."""
        self._require_phase(Phase.WAITING)
        if self.get_player(player.id) is not None:
            raise PlayerExistsError(f"Player already in room: {player.id}")
        if len(self.players) >= MAX_PLAYERS:
            raise RoomFullError(f"Room {self.room_id} is full ({MAX_PLAYERS} players)")
        self.players.append(player)

    def remove_player(self, player_id: str) -> Player:
        """Remove a player from the room.

        Allowed while waiting and after the game ended. Leaving after the
        game ended refuses the next game for the whole room.
        """
        if self.phase not in (Phase.WAITING, Phase.GAME_END):
            raise WrongPhaseError(f"{Phase.WAITING.value} or {Phase.GAME_END.value}", self.phase.value)
        player = self.require_player(player_id)
        self.players.remove(player)
        self.player_stats.pop(player_id, None)
        if self.phase == Phase.GAME_END:
            self.votes.pop(player_id, None)
            self.closed = True
        return player

    def set_ready(self, player_id: str, is_ready: bool | None = None) -> bool:
        """Mark a player ready (or toggle when ``is_ready`` is None)."""
        player = self.require_player(player_id)
        player.is_ready = (not player.is_ready) if is_ready is None else is_ready
        return player.is_ready

    def all_players_ready(self) -> bool:
        """Check if the room has players and all of them are ready."""
        return bool(self.players) and all(p.is_ready for p in self.players)

    def is_player_turn(self, player_id: str) -> bool:
        """Check if ``player_id`` holds the turn."""
        return self.current_turn is not None and self.current_turn == player_id

    def active_player_count(self) -> int:
        """Players who have not finished the current game."""
        return sum(1 for p in self.players if p.id not in self.finished_players)

    def is_game_over(self) -> bool:
        """Check if at most one player still holds cards."""
        return self.active_player_count() <= 1

    def card_total(self) -> int:
        """Cards in hands plus undealt deck plus unclaimed deck segments."""
        total = sum(len(p.hand) for p in self.players)
        if self.deck is not None:
            total += len(self.deck)
        for segment in self.selectable_decks or []:
            if not segment.is_selected:
                total += len(segment.cards)
        return total

    # ------------------------------------------------------------------
    # Waiting -> role selection
    # ------------------------------------------------------------------

    def start(self, rng: random.Random | None = None, jokers_first: bool = False) -> None:
        """Start the game: shuffle a fresh deck and lay out the role cards.

        Args:
            rng: Optional random source for reproducible games
            jokers_first: Deal both jokers into the first deck segment

        Raises:
            WrongPhaseError: If the game is not waiting
            InvalidPlayerCountError: If the room has fewer than 4 or more than 8 players

        """
        self._require_phase(Phase.WAITING)
        count = len(self.players)
        if not MIN_PLAYERS <= count <= MAX_PLAYERS:
            raise InvalidPlayerCountError(
                f"A game needs {MIN_PLAYERS}-{MAX_PLAYERS} players, room has {count}"
            )
        self._deal_new_game(rng, jokers_first)

    def _deal_new_game(self, rng: random.Random | None, jokers_first: bool) -> None:
        rng = rng or random.Random()  # noqa: S311
        shuffled = deck_builder.shuffle(deck_builder.build_standard_deck(), rng)
        if jokers_first:
            shuffled = deck_builder.jokers_first(shuffled)
        role_cards = deck_builder.build_role_selection_deck(rng)

        self.current_turn = None
        self.started_at = utc_now()
        self._transition(RoleSelectionData(deck=shuffled, cards=role_cards))

    # ------------------------------------------------------------------
    # Role selection -> card selection
    # ------------------------------------------------------------------

    def select_role(self, player_id: str, role_number: int) -> bool:
        """Draw a role card.

        Once every player holds a role, ranks are assigned by ascending role,
        the deck is split into one segment per player and the game moves to
        card selection with rank 1 on turn.

        Returns:
            True if this call completed the role selection

        """
        data = self._require_data(RoleSelectionData)
        player = self.require_player(player_id)

        if (
            isinstance(role_number, bool)
            or not isinstance(role_number, int)
            or not MIN_ROLE_NUMBER <= role_number <= MAX_ROLE_NUMBER
        ):
            raise InvalidRoleNumberError(role_number)
        if player.role is not None:
            raise RoleAlreadyChosenError(f"{player.nickname} already drew role {player.role}")

        role_card = next(card for card in data.cards if card.number == role_number)
        if role_card.is_selected:
            raise RoleTakenError(f"Role {role_number} was already drawn")

        role_card.is_selected = True
        role_card.selected_by = player.id
        player.assign_role(role_number)

        if any(p.role is None for p in self.players):
            return False

        self._resolve_roles(data)
        return True

    def _resolve_roles(self, data: RoleSelectionData) -> None:
        ordered = sorted(self.players, key=lambda p: p.role or 0)
        for rank, player in enumerate(ordered, start=1):
            player.assign_rank(rank)
        self._verify_rank_permutation()

        decks = deck_builder.partition(data.deck, len(self.players))
        self._transition(CardSelectionData(decks=decks))
        self.current_turn = ordered[0].id

    # ------------------------------------------------------------------
    # Card selection -> revolution | tax
    # ------------------------------------------------------------------

    def select_deck(self, player_id: str, deck_index: int) -> list[Card]:
        """Take one of the face-down deck segments.

        The turn then passes to the next rank without a segment. When a
        single segment is left it goes to that player automatically.

        Returns:
            The cards of the chosen segment

        """
        data = self._require_data(CardSelectionData)
        player = self.require_player(player_id)

        if not self.is_player_turn(player_id):
            raise NotYourTurnError("It is not your turn to pick a deck")
        if (
            isinstance(deck_index, bool)
            or not isinstance(deck_index, int)
            or not 0 <= deck_index < len(data.decks)
        ):
            raise InvalidDeckIndexError(deck_index)

        segment = data.decks[deck_index]
        if segment.is_selected:
            raise DeckTakenError(f"Deck {deck_index} was already taken")
        if self._holds_deck(data, player.id):
            raise DeckAlreadyHeldError(f"{player.nickname} already holds a deck")

        self._take_deck(player, segment)

        following = self._next_without_deck(data, player.id)
        remaining = [d for d in data.decks if not d.is_selected]
        if len(remaining) == 1 and following is not None:
            self._take_deck(self.require_player(following), remaining[0])

        if all(d.is_selected for d in data.decks):
            self._settle_deal()
        else:
            self.current_turn = following

        return list(segment.cards)

    def _holds_deck(self, data: CardSelectionData, player_id: str) -> bool:
        return any(d.selected_by == player_id for d in data.decks)

    def _take_deck(self, player: Player, segment: SelectableDeck) -> None:
        segment.is_selected = True
        segment.selected_by = player.id
        player.add_cards(segment.cards)

    def _next_without_deck(self, data: CardSelectionData, player_id: str) -> str | None:
        ordered = self.ranked_players()
        start = next(i for i, p in enumerate(ordered) if p.id == player_id)
        for offset in range(1, len(ordered)):
            candidate = ordered[(start + offset) % len(ordered)]
            if not self._holds_deck(data, candidate.id):
                return candidate.id
        return None

    def _settle_deal(self) -> None:
        self._verify_card_total()
        deck_builder.verify_deck_integrity(card for p in self.players for card in p.hand)

        holder = next(
            (p for p in self.ranked_players() if deck_builder.has_double_joker(p.hand)),
            None,
        )
        if holder is None:
            self._enter_tax()
            return

        holder.has_double_joker = True
        self._transition(RevolutionData(holder_id=holder.id))
        self.current_turn = holder.id
        logger.info("Room %s: %s holds both jokers", self.room_id, holder.nickname)

    # ------------------------------------------------------------------
    # Revolution
    # ------------------------------------------------------------------

    def choose_revolution(self, player_id: str, want_revolution: bool) -> RevolutionStatus | None:
        """Let the double-joker holder call or decline a revolution.

        Declining runs the tax as usual. Calling one skips the tax; if the
        holder is the worst rank, every rank is inverted (great revolution).

        Returns:
            The recorded revolution status, or None if declined

        """
        data = self._require_data(RevolutionData)
        player = self.require_player(player_id)
        if player.id != data.holder_id:
            raise NotRevolutionHolderError("Only the double-joker holder can call a revolution")

        if not want_revolution:
            self.revolution_status = None
            self.round += 1
            self._enter_tax()
            return None

        player_count = len(self.players)
        is_great = player.rank == player_count
        if is_great:
            for p in self.players:
                p.assign_rank(player_count + 1 - (p.rank or 0))
            self._verify_rank_permutation()

        self.revolution_status = RevolutionStatus(
            is_revolution=True,
            is_great_revolution=is_great,
            revolution_player_id=player.id,
        )
        logger.info(
            "Room %s: %s called a %srevolution",
            self.room_id,
            player.nickname,
            "great " if is_great else "",
        )
        self._enter_playing()
        return self.revolution_status

    # ------------------------------------------------------------------
    # Tax -> playing
    # ------------------------------------------------------------------

    def _enter_tax(self) -> None:
        pairs = initialize_tax_exchanges(self.players)
        settlements = [apply_tax_exchange(pair, self.players) for pair in pairs]
        self._transition(TaxData(settlements=settlements))
        self._count_first_round()
        self.current_turn = first_active_player(self)

    def finish_tax(self) -> bool:
        """Move from tax to playing.

        Safe to call late or twice: outside the tax phase it does nothing.

        Returns:
            True if the game moved to playing

        """
        if self.phase != Phase.TAX:
            return False
        self._enter_playing()
        return True

    def _enter_playing(self) -> None:
        for player in self.players:
            player.has_passed = False
        self._transition(PlayingData())
        self._count_first_round()
        self.trick = 1
        self.current_turn = first_active_player(self)

    def _count_first_round(self) -> None:
        # The first settled deal opens round 1; later games advance it on the vote
        # or on a declined revolution
        if self.round == 0:
            self.round = 1

    # ------------------------------------------------------------------
    # Playing
    # ------------------------------------------------------------------

    def play_cards(self, player_id: str, cards: Sequence[Card]) -> PlayOutcome:
        """Put a group of cards on the table.

        Raises:
            BusinessRuleError: Any of the play validator's failure kinds

        """
        player = self.require_player(player_id)
        last_play = self.last_play
        validate_play(
            player.hand,
            cards,
            last_play.cards if last_play else None,
            phase=self.phase,
            is_current_turn=self.is_player_turn(player_id),
            has_passed=player.has_passed,
            has_finished=player.has_finished,
        )

        data = self._require_data(PlayingData)
        played = tuple(cards)
        player.remove_cards(list(played))
        data.last_play = LastPlay(player_id=player.id, cards=played)
        self.plays.append(PlayRecord(trick=self.trick, player_id=player.id, cards=played))
        stats = self._stats(player.id)
        stats.total_cards_played += len(played)

        player_finished = not player.hand
        if player_finished:
            player.has_finished = True
            self.finished_players.append(player.id)
            stats.finished_at_trick = self.trick
            logger.debug("Room %s: %s finished", self.room_id, player.nickname)

        if len(active_players(self)) <= 1:
            self._end_game()
            return PlayOutcome(player.id, played, player_finished, False, True, None)

        round_finished = round_complete(self)
        if round_finished:
            self._apply_trick_reset(start_new_round(self))
        else:
            self.current_turn = next_player(self, player.id)

        logger.debug(
            "Room %s: %s played %s", self.room_id, player.nickname, format_cards(played)
        )
        return PlayOutcome(
            player.id, played, player_finished, round_finished, False, self.current_turn
        )

    def pass_turn(self, player_id: str) -> PassOutcome:
        """Pass on the current trick."""
        self._require_phase(Phase.PLAYING)
        player = self.require_player(player_id)
        if not self.is_player_turn(player_id):
            raise NotYourTurnError("It is not your turn")
        if player.has_finished:
            raise AlreadyFinishedError("You have already played all your cards")
        if player.has_passed:
            raise AlreadyPassedError("You already passed this trick")
        if self.last_play is None:
            raise CannotPassError("The trick leader must play")

        player.has_passed = True
        self._stats(player.id).total_passes += 1

        round_finished = round_complete(self)
        if round_finished:
            self._apply_trick_reset(start_new_round(self))
        else:
            self.current_turn = next_player(self, player.id)
        return PassOutcome(player.id, round_finished, self.current_turn)

    def _apply_trick_reset(self, reset: TrickReset) -> None:
        cleared = set(reset.cleared_pass_ids)
        for player in self.players:
            if player.id in cleared:
                player.has_passed = False
        data = self._require_data(PlayingData)
        data.last_play = None
        self.current_turn = reset.leader_id
        self.trick += 1

    def _end_game(self) -> None:
        for player in active_players(self):
            self.finished_players.append(player.id)
            self._stats(player.id).finished_at_trick = self.trick
        self.current_turn = None
        self.votes = {}
        self._transition(GameEndData())
        logger.info(
            "Room %s: game %d over, finishing order %s",
            self.room_id,
            self.game_number,
            self.finished_players,
        )

    # ------------------------------------------------------------------
    # Next-game vote
    # ------------------------------------------------------------------

    @property
    def vote_status(self) -> VoteStatus:
        """Current state of the next-game vote."""
        if self.closed:
            return VoteStatus.REJECTED
        if not self.players or any(p.id not in self.votes for p in self.players):
            return VoteStatus.PENDING
        if all(self.votes[p.id] for p in self.players):
            return VoteStatus.APPROVED
        return VoteStatus.REJECTED

    def register_vote(self, player_id: str, approve: bool) -> VoteResult:
        """Record a ballot on playing another game.

        When every player has voted: a unanimous yes starts the next game at
        role selection, anything else closes the room in gameEnd.
        """
        self._require_phase(Phase.GAME_END)
        if self.closed:
            raise GameClosedError("The next game was refused")
        player = self.require_player(player_id)
        self.votes[player.id] = bool(approve)

        status = self.vote_status
        if status == VoteStatus.REJECTED:
            self.closed = True
        elif status == VoteStatus.APPROVED:
            self._start_next_game()

        return VoteResult(
            all_voted=status != VoteStatus.PENDING,
            approved=status == VoteStatus.APPROVED,
            status=status,
        )

    def _start_next_game(self) -> None:
        self.histories.append(self._archive())
        self.round += 1
        self.game_number += 1
        self.trick = 0
        self.finished_players = []
        self.votes = {}
        self.revolution_status = None
        self.plays = []
        self.player_stats = {}
        for player in self.players:
            player.reset_for_next_game()
        self._deal_new_game(None, jokers_first=False)

    def _archive(self) -> GameHistory:
        standings = []
        for position, player_id in enumerate(self.finished_players, start=1):
            player = self.get_player(player_id)
            stats = self.player_stats.get(player_id, PlayerStats())
            standings.append(
                Standing(
                    player_id=player_id,
                    nickname=player.nickname if player else "",
                    position=position,
                    finished_at_trick=stats.finished_at_trick,
                    total_cards_played=stats.total_cards_played,
                    total_passes=stats.total_passes,
                )
            )
        return GameHistory(
            game_number=self.game_number,
            standings=tuple(standings),
            finished_order=tuple(self.finished_players),
            total_tricks=self.trick,
            plays=tuple(self.plays),
            started_at=self.started_at,
            ended_at=utc_now(),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _stats(self, player_id: str) -> PlayerStats:
        return self.player_stats.setdefault(player_id, PlayerStats())

    def _require_phase(self, phase: Phase) -> None:
        if self.phase != phase:
            raise WrongPhaseError(phase.value, self.phase.value)

    def _require_data(self, data_type: type[_DataT]) -> _DataT:
        if not isinstance(self.phase_data, data_type):
            raise WrongPhaseError(data_type.phase.value, self.phase.value)  # type: ignore[attr-defined]
        return self.phase_data

    def _transition(self, data: PhaseData) -> None:
        if not self.phase.can_transition_to(data.phase):
            raise InvariantError(
                f"Illegal phase transition {self.phase.value} -> {data.phase.value}"
            )
        logger.debug("Room %s: %s -> %s", self.room_id, self.phase.value, data.phase.value)
        self.phase_data = data

    def _verify_rank_permutation(self) -> None:
        ranks = sorted(p.rank or 0 for p in self.players)
        if ranks != list(range(1, len(self.players) + 1)):
            raise InvariantError(f"Ranks are not a permutation of 1..{len(self.players)}: {ranks}")

    def _verify_card_total(self) -> None:
        total = self.card_total()
        if total != STANDARD_DECK_SIZE:
            raise InvariantError(f"Card total is {total}, expected {STANDARD_DECK_SIZE}")

    def __str__(self) -> str:
        """Return string representation."""
        return (
            f"Game {self.room_id}: {len(self.players)} players, "
            f"Round {self.round}, Phase: {self.phase.value}"
        )
