import itertools

from spider.Core import DECK_SIZE, SEQUENCE_LENGTH, STACK_COUNT, Card, Core, Rank, Suit, encodeStack
from spider.Interface import Interface

_positions = itertools.count(1000)


class RecordingInterface(Interface):
    def __init__(self):
        super().__init__()
        self.events = []
        self.snapshots = []
        self.started = False
        self.won = False

    def onStart(self):
        self.started = True

    def onEvent(self, event):
        self.events.append(event)
        super().onEvent(event)

    def notifyRedraw(self, snapshot):
        self.snapshots.append(snapshot)

    def onWin(self):
        self.won = True


class IdentityRandom:
    """Random source whose shuffle leaves the deck untouched."""

    def randrange(self, n):
        return n - 1


def up(suit, rank):
    return Card(suit, Rank(rank), Card.makeId(suit, Rank(rank), 0, next(_positions)), faceUp=True)


def down(suit, rank):
    return Card(suit, Rank(rank), Card.makeId(suit, Rank(rank), 0, next(_positions)), faceUp=False)


def spades_run(high, low, suit=Suit.SPADES):
    return [up(suit, r) for r in range(high, low - 1, -1)]


def filler_piles(count, cards=None):
    """
    Piles topped by a face-up King of diamonds that do not interact with the
    piles under test. `cards` cards are spread over them, one face-up per pile.
    """
    if cards is None:
        cards = count
    piles = [[] for _ in range(count)]
    for k in range(cards):
        piles[k % count].append(down(Suit.DIAMONDS, 13))
    for pile in piles:
        if pile:
            pile[-1].faceUp = True
    return piles


def make_loaded_core(piles, stock=(), completed=0, difficulty=1, phase=None, score=500, moves=0):
    """
    Loads a full 10-pile game whose leading piles are `piles`. The remaining
    piles are fillers holding the cards needed for 104 - 13 * completed in play.
    """
    piles = [list(p) for p in piles]
    stock = list(stock)
    if phase is None:
        phase = "won" if completed == 8 else "playing"
    missing = DECK_SIZE - SEQUENCE_LENGTH * completed - len(stock) - sum(len(p) for p in piles)
    free = STACK_COUNT - len(piles)
    if missing < 0 or (missing > 0 and free == 0):
        raise ValueError(f"cannot pad position: {missing} cards for {free} piles")
    if free > 0:
        piles.extend(filler_piles(free, missing))
    lines = [str(difficulty), phase, str(completed), str(moves), str(score), encodeStack(stock)]
    lines.extend(encodeStack(pile) for pile in piles)
    core = Core()
    core.loadGameFromLines(lines)
    ui = RecordingInterface()
    core.registerInterface(ui)
    return core, ui
