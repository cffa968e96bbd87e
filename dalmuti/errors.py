"""Error taxonomy for the Dalmuti engine and its use cases.

Failures are split into kinds so callers can react differently:

- ``ValidationError``: malformed input, detectable before touching state
- ``NotFoundError``: the referenced room or player does not exist
- ``BusinessRuleError``: the action is illegal right now (phase, turn, cards)
- ``InvariantError``: internal state is inconsistent; an engine bug
- ``StorageError``: the game store could not be read or written
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for i18n translation on the frontend."""

    # Validation
    INVALID_INPUT = "error.invalidInput"
    INVALID_PARTITION = "error.invalidPartition"
    INVALID_ROLE_NUMBER = "error.invalidRoleNumber"
    INVALID_DECK_INDEX = "error.invalidDeckIndex"
    INVALID_CARD = "error.invalidCard"

    # Not found
    GAME_NOT_FOUND = "error.gameNotFound"
    PLAYER_NOT_FOUND = "error.playerNotFound"

    # Room rules
    ROOM_EXISTS = "error.roomExists"
    PLAYER_EXISTS = "error.playerExists"
    ROOM_FULL = "error.roomFull"
    INVALID_PLAYER_COUNT = "error.invalidPlayerCount"
    WRONG_PHASE = "error.wrongPhase"
    GAME_CLOSED = "error.gameClosed"

    # Selection rules
    ROLE_TAKEN = "error.roleTaken"
    ROLE_ALREADY_CHOSEN = "error.roleAlreadyChosen"
    DECK_TAKEN = "error.deckTaken"
    DECK_ALREADY_HELD = "error.deckAlreadyHeld"
    NOT_REVOLUTION_HOLDER = "error.notRevolutionHolder"
    INSUFFICIENT_CARDS = "error.insufficientCards"

    # Play rules
    NOT_YOUR_TURN = "error.notYourTurn"
    ALREADY_PASSED = "error.alreadyPassed"
    ALREADY_FINISHED = "error.alreadyFinished"
    EMPTY_PLAY = "error.emptyPlay"
    CARDS_NOT_OWNED = "error.cardsNotOwned"
    NON_UNIFORM_GROUP = "error.nonUniformGroup"
    COUNT_MISMATCH = "error.countMismatch"
    TOO_WEAK = "error.tooWeak"
    CANNOT_PASS = "error.cannotPass"

    # Internal
    INVARIANT_VIOLATION = "error.invariantViolation"
    STORAGE_UNAVAILABLE = "error.storageUnavailable"


class DalmutiError(Exception):
    """Base exception for game-related errors."""

    code: ErrorCode = ErrorCode.INVALID_INPUT

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"[{self.code.value}] {message}")


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(DalmutiError):
    """Malformed input, reported with the offending field."""

    def __init__(self, message: str, field: str | None = None, code: ErrorCode | None = None) -> None:
        self.field = field
        super().__init__(message, code)


class InvalidPartitionError(ValidationError):
    code = ErrorCode.INVALID_PARTITION

    def __init__(self, message: str) -> None:
        super().__init__(message, field="player_count")


class InvalidRoleNumberError(ValidationError):
    code = ErrorCode.INVALID_ROLE_NUMBER

    def __init__(self, role_number: object) -> None:
        super().__init__(f"Role number must be between 1 and 13, got {role_number!r}", field="role_number")


class InvalidDeckIndexError(ValidationError):
    code = ErrorCode.INVALID_DECK_INDEX

    def __init__(self, deck_index: object) -> None:
        super().__init__(f"No selectable deck at index {deck_index!r}", field="deck_index")


class InvalidCardError(ValidationError):
    code = ErrorCode.INVALID_CARD

    def __init__(self, message: str) -> None:
        super().__init__(message, field="cards")


# =============================================================================
# NOT FOUND
# =============================================================================


class NotFoundError(DalmutiError):
    """A referenced room or player does not exist."""


class GameNotFoundError(NotFoundError):
    code = ErrorCode.GAME_NOT_FOUND

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"Game not found: {room_id}")


class PlayerNotFoundError(NotFoundError):
    code = ErrorCode.PLAYER_NOT_FOUND

    def __init__(self, player_id: str) -> None:
        self.player_id = player_id
        super().__init__(f"Player not found: {player_id}")


# =============================================================================
# BUSINESS RULES
# =============================================================================


class BusinessRuleError(DalmutiError):
    """The action is not allowed in the current game state."""


class WrongPhaseError(BusinessRuleError):
    code = ErrorCode.WRONG_PHASE

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Game is not in {expected} phase (current: {actual})")


class RoomExistsError(BusinessRuleError):
    code = ErrorCode.ROOM_EXISTS


class PlayerExistsError(BusinessRuleError):
    code = ErrorCode.PLAYER_EXISTS


class RoomFullError(BusinessRuleError):
    code = ErrorCode.ROOM_FULL


class InvalidPlayerCountError(BusinessRuleError):
    code = ErrorCode.INVALID_PLAYER_COUNT


class GameClosedError(BusinessRuleError):
    code = ErrorCode.GAME_CLOSED


class RoleTakenError(BusinessRuleError):
    code = ErrorCode.ROLE_TAKEN


class RoleAlreadyChosenError(BusinessRuleError):
    code = ErrorCode.ROLE_ALREADY_CHOSEN


class DeckTakenError(BusinessRuleError):
    code = ErrorCode.DECK_TAKEN


class DeckAlreadyHeldError(BusinessRuleError):
    code = ErrorCode.DECK_ALREADY_HELD


class NotRevolutionHolderError(BusinessRuleError):
    code = ErrorCode.NOT_REVOLUTION_HOLDER


class InsufficientCardsError(BusinessRuleError):
    code = ErrorCode.INSUFFICIENT_CARDS


class NotYourTurnError(BusinessRuleError):
    code = ErrorCode.NOT_YOUR_TURN


class AlreadyPassedError(BusinessRuleError):
    code = ErrorCode.ALREADY_PASSED


class AlreadyFinishedError(BusinessRuleError):
    code = ErrorCode.ALREADY_FINISHED


class EmptyPlayError(BusinessRuleError):
    code = ErrorCode.EMPTY_PLAY


class CardsNotOwnedError(BusinessRuleError):
    code = ErrorCode.CARDS_NOT_OWNED


class NonUniformGroupError(BusinessRuleError):
    code = ErrorCode.NON_UNIFORM_GROUP


class CountMismatchError(BusinessRuleError):
    code = ErrorCode.COUNT_MISMATCH


class TooWeakError(BusinessRuleError):
    code = ErrorCode.TOO_WEAK


class CannotPassError(BusinessRuleError):
    code = ErrorCode.CANNOT_PASS


# =============================================================================
# INVARIANTS
# =============================================================================


class InvariantError(DalmutiError):
    """Internal state is inconsistent. Indicates an engine bug, not user error."""

    code = ErrorCode.INVARIANT_VIOLATION


# =============================================================================
# STORAGE
# =============================================================================


class StorageError(DalmutiError):
    """The game store failed; the room may still exist."""

    code = ErrorCode.STORAGE_UNAVAILABLE
