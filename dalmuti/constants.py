"""Game constants for Dalmuti."""

# Room limits
MIN_PLAYERS = 4
MAX_PLAYERS = 8
ROOM_ID_LENGTH = 6
ROOM_ID_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# Deck composition
MIN_CARD_RANK = 1
MAX_CARD_RANK = 13
COPIES_PER_RANK = 4
JOKER_COUNT = 2
STANDARD_DECK_SIZE = (MAX_CARD_RANK - MIN_CARD_RANK + 1) * COPIES_PER_RANK + JOKER_COUNT

# Role selection draws from the numbers 1..13
MIN_ROLE_NUMBER = 1
MAX_ROLE_NUMBER = 13

# Tax: cards moved in each direction per exchanged pair
TAX_CARD_COUNT = 2

# With five or more players the second pair trades a single card
SECOND_PAIR_TAX_CARD_COUNT = 1

# Effective rank of a group made only of jokers (stronger than any natural rank)
JOKER_GROUP_RANK = 0
