from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CardView:
    id: str
    suit: str
    rank: int
    face_up: bool


@dataclass(frozen=True)
class PileView:
    cards: tuple[CardView, ...]

    @property
    def top(self) -> Optional[CardView]:
        if not self.cards:
            return None
        return self.cards[-1]


@dataclass(frozen=True)
class SelectionView:
    pile: int
    index: int
    cards: tuple[CardView, ...]


@dataclass(frozen=True)
class GameSnapshot:
    phase: str
    difficulty: int
    stock: tuple[CardView, ...]
    piles: tuple[PileView, ...]
    completed: int
    moves: int
    score: int
    selection: Optional[SelectionView]

    @property
    def stock_count(self) -> int:
        return len(self.stock)

    @property
    def won(self) -> bool:
        return self.phase == "won"
