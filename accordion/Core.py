from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, Optional, Sequence

logger = logging.getLogger("accordion.game")

DECK_SIZE = 52


class Rank(IntEnum):
    ACE = 0
    TWO = 1
    THREE = 2
    FOUR = 3
    FIVE = 4
    SIX = 5
    SEVEN = 6
    EIGHT = 7
    NINE = 8
    TEN = 9
    JACK = 10
    QUEEN = 11
    KING = 12


class Suit(IntEnum):
    CLUBS = 0
    DIAMONDS = 1
    HEARTS = 2
    SPADES = 3


class Card:
    NUM_PER_SUIT = 13
    SUITS = "♣♦♥♠"
    NUMS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")

    __slots__ = ("id", "rank", "suit")

    def __init__(self, id: int):
        if not 0 <= id < DECK_SIZE:
            raise ValueError(f"Card out of range: {id}")
        self.id = id
        self.rank = Rank(id % Card.NUM_PER_SUIT)
        self.suit = Suit(id // Card.NUM_PER_SUIT)

    def __str__(self):
        return Card.NUMS[self.rank] + Card.SUITS[self.suit]

    def __repr__(self):
        return self.__str__()

    def __eq__(self, other):
        return isinstance(other, Card) and other.id == self.id

    def __hash__(self):
        return hash(self.id)

    @staticmethod
    def from_rank_and_suit(rank: int, suit: int) -> "Card":
        return card_of(Suit(suit) * Card.NUM_PER_SUIT + Rank(rank))


CARDS: tuple[Card, ...] = tuple(Card(i) for i in range(DECK_SIZE))


def card_of(id: int) -> Card:
    """Shared instance for ``id``; raises ``ValueError`` outside [0, 52)."""
    if not 0 <= id < DECK_SIZE:
        raise ValueError(f"Card out of range: {id}")
    return CARDS[id]


class Deck:
    """
    The 52 cards in dealing order plus a draw cursor.

    The order is fixed at creation; only ``pos`` moves.
    """

    def __init__(self, cards: Sequence[Card], pos: int = 0):
        cards = tuple(cards)
        if len(cards) != DECK_SIZE or len({c.id for c in cards}) != DECK_SIZE:
            raise ValueError("a deck must hold each of the 52 cards exactly once")
        if not 0 <= pos <= DECK_SIZE:
            raise ValueError(f"deck position out of range: {pos}")
        self.cards = cards
        self.pos = pos

    @staticmethod
    def new_unshuffled() -> "Deck":
        return Deck(CARDS)

    @staticmethod
    def new_shuffled(rng: Optional[random.Random] = None) -> "Deck":
        order = list(CARDS)
        (rng or random).shuffle(order)
        return Deck(order)

    @staticmethod
    def from_seed(seed: int) -> "Deck":
        return Deck.new_shuffled(random.Random(seed))

    @staticmethod
    def from_ids(ids: Iterable[int]) -> "Deck":
        return Deck([card_of(i) for i in ids])

    def draw(self) -> Optional[Card]:
        if self.pos >= len(self.cards):
            return None
        self.pos += 1
        return self.cards[self.pos - 1]

    def remaining(self) -> tuple[Card, ...]:
        return self.cards[self.pos:]

    def __len__(self):
        return len(self.cards) - self.pos

    def __str__(self):
        return " ".join(str(c) for c in self.remaining())


class MatchType(Enum):
    SUIT = "suit"
    RANK = "rank"


def is_match(a: Card, b: Card) -> Optional[MatchType]:
    if a.suit == b.suit:
        return MatchType.SUIT
    if a.rank == b.rank:
        return MatchType.RANK
    return None


@dataclass(frozen=True, slots=True)
class PlacedCard:
    """A tableau card with its cached match flags against the cards 1 and 3 to its left."""

    card: Card
    matches_one: bool = False
    matches_three: bool = False

    def marker(self) -> str:
        if self.matches_one and self.matches_three:
            return "B"
        if self.matches_one:
            return "S"
        if self.matches_three:
            return "L"
        return "_"

    def __str__(self):
        return f"{self.card}{self.marker()}"


@dataclass(frozen=True, slots=True)
class Match:
    """Move the card at ``index`` onto the card ``distance`` places to its left."""

    index: int
    distance: int

    def __post_init__(self):
        if self.distance not in (1, 3):
            raise ValueError(f"match distance must be 1 or 3, got {self.distance}")

    @property
    def target(self) -> int:
        return self.index - self.distance

    def to_notation(self) -> str:
        return f"MATCH({self.index}->{self.target})"


@dataclass(frozen=True, slots=True)
class SavedGame:
    pos: int
    tableau: tuple[PlacedCard, ...]


class PlayState(Enum):
    WON = "won"
    LOST = "lost"
    CHOOSE = "choose"


@dataclass(frozen=True, slots=True)
class Choices:
    kind: PlayState
    matches: tuple[Match, ...] = ()


class Game:
    """
    Accordion patience on one deck.

    deal / match operations mutate the tableau in place; after a change at a
    slot the flags of that slot and the two after it are recomputed.
    ``choice_points`` is never rewound by ``restore``.
    """

    def __init__(self, deck: Optional[Deck] = None):
        self.deck = deck if deck is not None else Deck.new_shuffled()
        self.tableau: list[PlacedCard] = []
        self.choice_points = 0

    @staticmethod
    def from_layout(cards: Iterable[Card], deck: Optional[Deck] = None) -> "Game":
        if deck is None:
            deck = Deck(CARDS, pos=DECK_SIZE)
        game = Game(deck)
        for card in cards:
            game.tableau.append(PlacedCard(card))
            game.check_matches_at(len(game.tableau) - 1)
        return game

    def save_game(self) -> SavedGame:
        return SavedGame(pos=self.deck.pos, tableau=tuple(self.tableau))

    def restore(self, saved: SavedGame):
        self.deck.pos = saved.pos
        self.tableau = list(saved.tableau)

    def cards(self) -> list[Card]:
        return [p.card for p in self.tableau]

    def deal_card(self) -> bool:
        card = self.deck.draw()
        if card is None:
            return False
        self.tableau.append(PlacedCard(card))
        self.check_matches_at(len(self.tableau) - 1)
        return True

    def __check_index(self, ix: int):
        if ix < 0 or ix >= len(self.tableau):
            raise IndexError(f"tableau index {ix} out of range for {len(self.tableau)} cards")

    def remove_card(self, ix: int) -> Card:
        self.__check_index(ix)
        placed = self.tableau.pop(ix)
        self.__recheck_from(ix)
        return placed.card

    def place_card(self, card: Card, ix: int):
        # overwrite
        self.__check_index(ix)
        self.tableau[ix] = PlacedCard(card)
        self.__recheck_from(ix)

    def __recheck_from(self, ix: int):
        for i in range(ix, ix + 3):
            self.check_matches_at(i)

    def check_matches_at(self, ix: int):
        tableau = self.tableau
        if ix < 0 or ix >= len(tableau):
            return
        card = tableau[ix].card
        m1 = ix >= 1 and is_match(card, tableau[ix - 1].card) is not None
        m3 = ix >= 3 and is_match(card, tableau[ix - 3].card) is not None
        tableau[ix] = PlacedCard(card, m1, m3)

    def find_matches(self) -> list[Match]:
        ans = []
        for ix, placed in enumerate(self.tableau):
            if placed.matches_one:
                ans.append(Match(ix, 1))
            if placed.matches_three:
                ans.append(Match(ix, 3))
        return ans

    def make_match(self, match: Match):
        picked_up = self.remove_card(match.index)
        self.place_card(picked_up, match.target)

    def make_choice(self, match: Match):
        self.make_match(match)

    def play_to_choice(self) -> Choices:
        trace = logger.isEnabledFor(logging.DEBUG)
        while True:
            matches = self.find_matches()
            if trace:
                logger.debug("%s", self)
            if not matches:
                if self.deal_card():
                    continue
                if len(self.tableau) == 1:
                    return Choices(PlayState.WON)
                return Choices(PlayState.LOST)
            if len(matches) == 1:
                self.make_match(matches[0])
                continue
            self.choice_points += 1
            return Choices(PlayState.CHOOSE, tuple(matches))

    def __str__(self):
        tableau = " ".join(str(p) for p in self.tableau)
        return f"Deck: {self.deck}\nTableau: {tableau}"
