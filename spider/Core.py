import logging
import random
import time
from enum import Enum, IntEnum

from spider.adapter import CoreAdapter

logger = logging.getLogger(__name__)

STACK_COUNT = 10
DECK_SIZE = 104
INITIAL_DEALT = 54
WIN_SEQUENCES = 8
INITIAL_SCORE = 500
MOVE_PENALTY = 1
SEQUENCE_BONUS = 100
DIFFICULTIES = (1, 2, 4)


def lastOf(lst):
    return lst[len(lst) - 1]


class Suit(Enum):
    SPADES = "S"
    HEARTS = "H"
    CLUBS = "C"
    DIAMONDS = "D"

    @property
    def symbol(self):
        return SUIT_SYMBOLS[self]


SUIT_SYMBOLS = {Suit.SPADES: "♠", Suit.HEARTS: "♥", Suit.CLUBS: "♣", Suit.DIAMONDS: "♦"}
CANONICAL_SUITS = (Suit.SPADES, Suit.HEARTS, Suit.CLUBS, Suit.DIAMONDS)


class Rank(IntEnum):
    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    @property
    def label(self):
        return RANK_LABELS[self - 1]


RANK_LABELS = ("A ", "2 ", "3 ", "4 ", "5 ", "6 ", "7 ", "8 ", "9 ", "10", "J ", "Q ", "K ")
SEQUENCE_LENGTH = len(Rank)


class Phase(Enum):
    PLAYING = "playing"
    WON = "won"


class Outcome(Enum):
    """Status returned by every mutating call on `Core`."""
    SELECTED = "selected"
    DESELECTED = "deselected"
    MOVED = "moved"
    DEALT = "dealt"
    REJECTED = "rejected"
    IGNORED = "ignored"


class Card:
    def __init__(self, suit: Suit, rank: Rank, cardId: str, faceUp=False):
        self.suit = suit
        self.rank = rank
        self.id = cardId
        self.faceUp = faceUp

    def __str__(self):
        if self.faceUp:
            return self.id
        return self.id + "H"

    def __repr__(self):
        return self.__str__()

    def suitableAsBaseFor(self, upper):
        return self.rank == upper.rank + 1

    def suitableAsSequenceFor(self, upper):
        return self.suit == upper.suit and self.rank == upper.rank + 1

    @staticmethod
    def makeId(suit: Suit, rank: Rank, rep: int, pos: int) -> str:
        return f"{suit.value}{int(rank)}-{rep}-{pos}"

    @staticmethod
    def fromId(cardId: str, faceUp=False):
        """
        Rebuilds a card from an id made by `makeId`.
        :raises ValueError: if the id does not name a suit and a rank
        """
        head = cardId.split("-")[0]
        if len(head) < 2:
            raise ValueError(f"malformed card id: {cardId!r}")
        suit = Suit(head[0])
        rank = Rank(int(head[1:]))
        return Card(suit, rank, cardId, faceUp)


def buildDeck(difficulty: int) -> list:
    """
    Builds the 104 cards of a game using the first `difficulty` canonical suits.

    Each suit is repeated `8 // difficulty` times so the deck size never changes.
    """
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"difficulty must be one of {DIFFICULTIES}, got {difficulty!r}")
    repetitions = WIN_SEQUENCES // difficulty
    deck = []
    for suit in CANONICAL_SUITS[:difficulty]:
        for rep in range(repetitions):
            for rank in Rank:
                deck.append(Card(suit, rank, Card.makeId(suit, rank, rep, len(deck))))
    return deck


def shuffleDeck(cards: list, rng=None) -> list:
    """
    Shuffles `cards` in place with a uniform random permutation and returns it.

    :param rng: object with a `randrange` method, such as `random.Random`;
        the module-level generator is used when omitted.
    """
    if rng is None:
        rng = random
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randrange(i + 1)
        cards[i], cards[j] = cards[j], cards[i]
    return cards


def dealLayout(deck: list):
    """
    Lays out a shuffled deck: the first 54 cards go round-robin onto the piles,
    the remaining ones become the stock.
    :return: (piles, stock)
    """
    piles = [[] for _ in range(STACK_COUNT)]
    for k, card in enumerate(deck[:INITIAL_DEALT]):
        card.faceUp = False
        piles[k % STACK_COUNT].append(card)
    for pile in piles:
        if len(pile) > 0:
            lastOf(pile).faceUp = True
    stock = list(deck[INITIAL_DEALT:])
    for card in stock:
        card.faceUp = False
    return piles, stock


def isValidRun(cards) -> bool:
    if len(cards) == 0:
        return False
    base = cards[0]
    if not base.faceUp:
        return False
    for upper in cards[1:]:
        if not base.suitableAsSequenceFor(upper):
            return False
        base = upper
    return True


def canPlaceOn(destPile, run) -> bool:
    if len(run) == 0:
        return False
    if len(destPile) == 0:
        return True
    return lastOf(destPile).suitableAsBaseFor(run[0])


def findCompleteSequence(pile) -> bool:
    """
    Whether the last 13 cards of the pile run from King down to Ace in one suit.
    """
    if len(pile) < SEQUENCE_LENGTH:
        return False
    tail = pile[len(pile) - SEQUENCE_LENGTH:]
    if tail[0].rank != Rank.KING:
        return False
    return isValidRun(tail)


class Selection:
    def __init__(self, pile: int, index: int, cards: list):
        self.pile = pile
        self.index = index
        self.cards = cards


class GameState:
    def __init__(self, difficulty: int, piles: list, stock: list):
        self.phase = Phase.PLAYING
        self.difficulty = difficulty
        self.piles = piles
        self.stock = stock
        self.completed = 0
        self.moves = 0
        self.score = INITIAL_SCORE
        self.selection: Selection = None

    def cardCount(self):
        return len(self.stock) + sum(len(p) for p in self.piles)


def validateState(state: GameState):
    """
    Checks that a restored state could have come from a real game.
    :raises ValueError: naming the first broken rule
    """
    if len(state.piles) != STACK_COUNT:
        raise ValueError(f"expected {STACK_COUNT} piles, got {len(state.piles)}")
    if not 0 <= state.completed <= WIN_SEQUENCES:
        raise ValueError(f"completed sequences out of range: {state.completed}")
    if (state.phase == Phase.WON) != (state.completed == WIN_SEQUENCES):
        raise ValueError(f"phase {state.phase.value} does not match {state.completed} completed sequences")
    if len(state.stock) % STACK_COUNT != 0:
        raise ValueError(f"stock size {len(state.stock)} is not a multiple of {STACK_COUNT}")
    if any(card.faceUp for card in state.stock):
        raise ValueError("stock holds a face-up card")
    expected = DECK_SIZE - SEQUENCE_LENGTH * state.completed
    if state.cardCount() != expected:
        raise ValueError(f"card count {state.cardCount()} does not match {expected}")
    for idx, pile in enumerate(state.piles):
        flags = [card.faceUp for card in pile]
        if flags != sorted(flags):
            raise ValueError(f"pile {idx} has a face-down card above a face-up one")
    ids = [card.id for card in state.stock]
    for pile in state.piles:
        ids.extend(card.id for card in pile)
    if len(set(ids)) != len(ids):
        raise ValueError("duplicate card ids")


class GameConfig:
    def __init__(self):
        self.difficulty = 1
        self.seed = None

    def makeRandom(self):
        if self.seed is None:
            return None
        return random.Random(self.seed)

    @staticmethod
    def loadFromFile(path):
        config = GameConfig()
        try:
            with open(path, encoding="utf-8") as f:
                lines = f.readlines()
        except OSError as e:
            logger.warning("cannot read game config %s: %s", path, e)
            return config
        for line in lines:
            line = line.strip()
            if len(line) == 0 or line.startswith("#"):
                continue
            if "=" not in line:
                logger.warning("ignoring malformed config line: %r", line)
                continue
            (k, v) = line.split("=", 1)
            k = k.strip()
            v = v.strip()
            if k not in vars(config):
                continue
            try:
                v = int(v)
            except ValueError:
                pass
            if v == "None":
                v = None
            config.__setattr__(k, v)
        if config.difficulty not in DIFFICULTIES:
            logger.warning("invalid difficulty %r in %s, using 1", config.difficulty, path)
            config.difficulty = 1
        if config.seed is not None and not isinstance(config.seed, int):
            logger.warning("invalid seed %r in %s, ignoring it", config.seed, path)
            config.seed = None
        return config

    def saveToFile(self, path):
        with open(path, "w", encoding="utf-8") as f:
            for k, v in self.__dict__.items():
                f.write(f"{k}={str(v)}\n")


class GameEvent:
    pass


class CardMove(GameEvent):
    def __init__(self, src: (int, int), dest: (int, int), count: int):
        self.src = src
        self.dest = dest
        self.count = count


class CallDeal(GameEvent):
    def __init__(self, drawCount: int):
        self.drawCount = drawCount


class CompleteSequence(GameEvent):
    def __init__(self, idx, suit):
        self.idx = idx
        self.suit = suit


class RevealTop(GameEvent):
    def __init__(self, idx):
        self.idx = idx


def decodeStack(code: str):
    if code.startswith("empty"):
        return []
    cards = code.split(",")

    def decodeCard(s: str):
        data = s.strip().split(" ")
        if len(data) != 2:
            raise ValueError(f"malformed card: {s!r}")
        return Card.fromId(data[0], faceUp=data[1] == "0")

    return list(map(decodeCard, cards))


def encodeStack(stack: list):
    if len(stack) == 0:
        return "empty"

    def encodeCard(card: Card):
        if card.faceUp:
            return card.id + " 0"
        return card.id + " 1"

    return ",".join(map(encodeCard, stack))


class Core:
    """
    Spider Solitaire rules engine.

    select/tryMove/deal : called by the host, never raise on illegal input.
    do*** : actual operation, no validation.
    """

    def __init__(self):
        self.interface = None
        self.state: GameState = None
        self.listeners = []

    def registerInterface(self, interface):
        self.interface = interface
        interface.core = self

    def onStateChange(self, callback):
        """
        Subscribes `callback(snapshot)` to every state change.
        :return: a function removing the subscription
        """
        self.listeners.append(callback)

        def unsubscribe():
            if callback in self.listeners:
                self.listeners.remove(callback)

        return unsubscribe

    def getState(self):
        if self.state is None:
            return None
        return CoreAdapter.snapshot(self.state)

    def emitState(self):
        if self.state is None:
            return
        snapshot = self.getState()
        if self.interface is not None:
            self.interface.onStateChange(snapshot)
        for callback in list(self.listeners):
            callback(snapshot)

    def emitEvent(self, event: GameEvent):
        if self.interface is not None:
            self.interface.onEvent(event)

    def start(self, difficulty: int, rng=None):
        deck = shuffleDeck(buildDeck(difficulty), rng)
        piles, stock = dealLayout(deck)
        self.state = GameState(difficulty, piles, stock)
        logger.debug("started game with difficulty %d", difficulty)
        if self.interface is not None:
            self.interface.onStart()
        self.emitState()

    def startGame(self, gameConfig: GameConfig = None):
        if gameConfig is None:
            gameConfig = GameConfig()
        self.start(gameConfig.difficulty, gameConfig.makeRandom())

    def isPlaying(self):
        return self.state is not None and self.state.phase == Phase.PLAYING

    def isValidPosition(self, s, idx):
        if not self.isValidPile(s):
            return False
        return 0 <= idx < len(self.state.piles[s])

    def isValidPile(self, s):
        return 0 <= s < len(self.state.piles)

    def clearSelection(self):
        self.state.selection = None

    def selectCards(self, pile: int, cardIndex: int) -> Outcome:
        """
        Picks up the run starting at `cardIndex`, or, while a run is held,
        drops it on `pile` (the source pile itself cancels the selection).
        """
        outcome = self.__select(pile, cardIndex)
        self.emitState()
        return outcome

    def __select(self, pile, cardIndex):
        if not self.isPlaying():
            return Outcome.IGNORED
        state = self.state
        if state.selection is not None:
            if state.selection.pile == pile:
                self.clearSelection()
                return Outcome.DESELECTED
            return self.__move(pile)
        if not self.isValidPosition(pile, cardIndex):
            self.clearSelection()
            return Outcome.REJECTED
        run = state.piles[pile][cardIndex:]
        if not isValidRun(run):
            self.clearSelection()
            return Outcome.REJECTED
        state.selection = Selection(pile, cardIndex, run)
        return Outcome.SELECTED

    def tryMove(self, destPile: int) -> Outcome:
        outcome = self.__move(destPile)
        self.emitState()
        return outcome

    def canMove(self, destPile: int) -> bool:
        if not self.isPlaying():
            return False
        selection = self.state.selection
        if selection is None:
            return False
        if not self.isValidPile(destPile) or destPile == selection.pile:
            return False
        return canPlaceOn(self.state.piles[destPile], selection.cards)

    def __move(self, destPile):
        if not self.isPlaying() or self.state.selection is None:
            return Outcome.IGNORED
        if not self.canMove(destPile):
            self.clearSelection()
            return Outcome.REJECTED
        selection = self.state.selection
        self.doMove(selection.pile, selection.index, destPile)
        self.doReveal(selection.pile)
        self.clearSelection()
        self.checkForCompleteSequences()
        return Outcome.MOVED

    def canDeal(self) -> bool:
        if not self.isPlaying():
            return False
        if len(self.state.stock) == 0:
            return False
        for pile in self.state.piles:
            if len(pile) == 0:
                return False
        return True

    def dealFromStock(self) -> Outcome:
        if not self.isPlaying():
            outcome = Outcome.IGNORED
        elif not self.canDeal():
            self.clearSelection()
            outcome = Outcome.REJECTED
        else:
            self.doDeal()
            self.clearSelection()
            self.checkForCompleteSequences()
            outcome = Outcome.DEALT
        self.emitState()
        return outcome

    def checkForCompleteSequences(self):
        state = self.state
        for idx in range(len(state.piles)):
            while state.phase == Phase.PLAYING and findCompleteSequence(state.piles[idx]):
                self.doComplete(idx)
                self.doReveal(idx)
                self.checkWin()

    def checkWin(self):
        state = self.state
        if state.completed < WIN_SEQUENCES:
            return False
        state.phase = Phase.WON
        state.selection = None
        logger.debug("game won after %d moves with score %d", state.moves, state.score)
        if self.interface is not None:
            self.interface.onWin()
        return True

    def doMove(self, src: int, idx: int, dest: int):
        piles = self.state.piles
        run = piles[src][idx:]
        destPair = (dest, len(piles[dest]))
        piles[src] = piles[src][:idx]
        piles[dest].extend(run)
        self.state.moves += 1
        self.state.score -= MOVE_PENALTY
        self.emitEvent(CardMove((src, idx), destPair, len(run)))

    def doReveal(self, idx: int):
        pile = self.state.piles[idx]
        if len(pile) == 0:
            return False
        card = lastOf(pile)
        if card.faceUp:
            return False
        card.faceUp = True
        self.emitEvent(RevealTop(idx))
        return True

    def doComplete(self, idx: int):
        state = self.state
        pile = state.piles[idx]
        suit = lastOf(pile).suit
        state.piles[idx] = pile[:len(pile) - SEQUENCE_LENGTH]
        state.completed += 1
        state.score += SEQUENCE_BONUS
        logger.debug("completed %s sequence on pile %d (%d/%d)", suit.name, idx, state.completed, WIN_SEQUENCES)
        self.emitEvent(CompleteSequence(idx, suit))
        return suit

    def doDeal(self):
        state = self.state
        drawCount = min(len(state.piles), len(state.stock))
        for dest in range(drawCount):
            card = state.stock.pop()
            card.faceUp = True
            state.piles[dest].append(card)
        state.moves += 1
        self.emitEvent(CallDeal(drawCount))

    def saveGameAsLines(self):
        state = self.state
        lines = [
            str(state.difficulty),
            state.phase.value,
            str(state.completed),
            str(state.moves),
            str(state.score),
            encodeStack(state.stock),
        ]
        for pile in state.piles:
            lines.append(encodeStack(pile))
        return lines

    def loadGameFromLines(self, lines):
        """
        Restores a game saved by `saveGameAsLines`. The selection is not restored.
        :raises ValueError: if the lines do not describe a game
        """
        def lineFilter(s: str):
            return len(s.strip()) > 0 and not s.startswith("#")

        lines = [s.strip() for s in filter(lineFilter, lines)]
        if len(lines) < 6:
            raise ValueError("saved game is truncated")
        difficulty = int(lines[0])
        if difficulty not in DIFFICULTIES:
            raise ValueError(f"invalid difficulty in saved game: {difficulty}")
        piles = [decodeStack(line) for line in lines[6:]]
        state = GameState(difficulty, piles, decodeStack(lines[5]))
        state.phase = Phase(lines[1])
        state.completed = int(lines[2])
        state.moves = int(lines[3])
        state.score = int(lines[4])
        validateState(state)
        self.state = state


def saveGameToFile(core: Core, path):
    with open(path, "w", encoding="utf-8") as f:
        dateInfo = "# date: " + time.strftime("%Y-%m-%d %H:%M:%S", time.localtime()) + "\n"
        f.write(dateInfo)
        f.writelines([x + "\n" for x in core.saveGameAsLines()])


def loadGameFromFile(path):
    with open(path, encoding="utf-8") as f:
        lines = f.readlines()
    core = Core()
    core.loadGameFromLines(lines)
    return core
