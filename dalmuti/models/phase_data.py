"""Per-phase game data.

Each phase carries only the fields that make sense in it, so a game in
``tax`` cannot hold a half-selected deck and a game in ``waiting`` cannot
hold a last play.
"""

from dataclasses import dataclass, field

from dalmuti.models.card import Card
from dalmuti.models.deck import RoleSelectionCard, SelectableDeck
from dalmuti.models.enums import Phase


@dataclass(frozen=True)
class LastPlay:
    """The group currently on the table and who played it."""

    player_id: str
    cards: tuple[Card, ...]


@dataclass(frozen=True)
class TaxExchangePair:
    """A scheduled card swap between two ranks.

    The giver (worse rank) sends its best ``card_count`` cards to the
    receiver (better rank) and gets back the receiver's worst cards.
    """

    giver_rank: int
    receiver_rank: int
    card_count: int


@dataclass(frozen=True)
class TaxSettlement:
    """The concrete cards moved by one tax exchange."""

    pair: TaxExchangePair
    giver_id: str
    receiver_id: str
    cards_to_receiver: tuple[Card, ...]
    cards_to_giver: tuple[Card, ...]


@dataclass(frozen=True)
class RevolutionStatus:
    """Result of the double-joker holder's revolution choice."""

    is_revolution: bool
    is_great_revolution: bool
    revolution_player_id: str


@dataclass
class WaitingData:
    phase = Phase.WAITING


@dataclass
class RoleSelectionData:
    """Shuffled deck waiting to be split, and the role cards on the table."""

    deck: list[Card]
    cards: list[RoleSelectionCard]
    phase = Phase.ROLE_SELECTION


@dataclass
class CardSelectionData:
    decks: list[SelectableDeck]
    phase = Phase.CARD_SELECTION


@dataclass
class RevolutionData:
    holder_id: str
    phase = Phase.REVOLUTION


@dataclass
class TaxData:
    settlements: list[TaxSettlement] = field(default_factory=list)
    phase = Phase.TAX


@dataclass
class PlayingData:
    last_play: LastPlay | None = None
    phase = Phase.PLAYING


@dataclass
class GameEndData:
    phase = Phase.GAME_END


PhaseData = (
    WaitingData
    | RoleSelectionData
    | CardSelectionData
    | RevolutionData
    | TaxData
    | PlayingData
    | GameEndData
)
