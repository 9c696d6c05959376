from spider.view_model import CardView, GameSnapshot, PileView, SelectionView


class CoreAdapter:
    """Freezes the engine's mutable GameState into a renderer-friendly snapshot."""

    @staticmethod
    def card_view(card) -> CardView:
        return CardView(id=card.id, suit=card.suit.value, rank=int(card.rank), face_up=card.faceUp)

    @staticmethod
    def snapshot(state) -> GameSnapshot:
        piles = tuple(
            PileView(cards=tuple(CoreAdapter.card_view(card) for card in pile))
            for pile in state.piles
        )
        selection = None
        if state.selection is not None:
            selection = SelectionView(
                pile=state.selection.pile,
                index=state.selection.index,
                cards=tuple(CoreAdapter.card_view(card) for card in state.selection.cards),
            )
        return GameSnapshot(
            phase=state.phase.value,
            difficulty=state.difficulty,
            stock=tuple(CoreAdapter.card_view(card) for card in state.stock),
            piles=piles,
            completed=state.completed,
            moves=state.moves,
            score=state.score,
            selection=selection,
        )
