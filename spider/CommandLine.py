import argparse
import logging

from spider.Core import (
    DIFFICULTIES,
    CompleteSequence,
    Core,
    GameConfig,
    Outcome,
    Rank,
    Suit,
    loadGameFromFile,
    saveGameToFile,
)
from spider.Interface import Interface

logger = logging.getLogger(__name__)

HELP = "commands: sel P I | mv P | deal | new [1|2|4] | save PATH | load PATH | quit"

OUTCOME_MESSAGES = {
    Outcome.SELECTED: "Selected.",
    Outcome.DESELECTED: "Selection cleared.",
    Outcome.MOVED: "Moved.",
    Outcome.DEALT: "Dealt.",
    Outcome.REJECTED: "Cannot do that!",
    Outcome.IGNORED: "Nothing to do.",
}


class CommandLineInterface(Interface):

    def __init__(self, out=print):
        super().__init__()
        self.out = out

    def render(self, snapshot):
        lines = [
            f"Completed: {snapshot.completed}    Stock: {snapshot.stock_count}"
            f"    Moves: {snapshot.moves}    Score: {snapshot.score}",
            "-----" + "".join(f"--{i}--" for i in range(len(snapshot.piles))),
        ]
        selected = set()
        if snapshot.selection is not None:
            sel = snapshot.selection
            selected = {(sel.pile, sel.index + k) for k in range(len(sel.cards))}
        depth = max((len(p.cards) for p in snapshot.piles), default=0)
        for i in range(depth):
            line = f"{i:>2}:  "
            for p, pile in enumerate(snapshot.piles):
                if len(pile.cards) <= i:
                    line += "     "
                    continue
                line += cardText(pile.cards[i])
                line += "*" if (p, i) in selected else " "
                line += " "
            lines.append(line.rstrip())
        return "\n".join(lines)

    def onStart(self):
        self.out("Game started!")

    def onEvent(self, event):
        if isinstance(event, CompleteSequence):
            self.out(f"Sequence completed on pile {event.idx}!")

    def notifyRedraw(self, snapshot):
        self.out(self.render(snapshot))
        self.out("")

    def onWin(self):
        self.out("You win!")


def cardText(card):
    if not card.face_up:
        return "---"
    return Suit(card.suit).symbol + Rank(card.rank).label


def handleCommand(core: Core, command: str) -> str:
    """
    Runs one text command against the core.
    :return: the message for the player, empty when the board redraw says enough
    """
    parts = command.split()
    if len(parts) == 0:
        return HELP
    name, args = parts[0], parts[1:]
    try:
        if name == "sel" and len(args) == 2:
            return OUTCOME_MESSAGES[core.selectCards(int(args[0]), int(args[1]))]
        if name == "mv" and len(args) == 1:
            return OUTCOME_MESSAGES[core.tryMove(int(args[0]))]
    except ValueError:
        return "Invalid index!"
    if name == "new" and len(args) <= 1:
        if not args:
            difficulty = core.state.difficulty
        elif args[0].isdigit():
            difficulty = int(args[0])
        else:
            difficulty = None
        if difficulty not in DIFFICULTIES:
            return f"Difficulty must be one of {DIFFICULTIES}!"
        core.start(difficulty)
        return ""
    if name == "deal":
        outcome = core.dealFromStock()
        if outcome == Outcome.REJECTED:
            return "Cannot deal: stock is empty or a pile is empty!"
        return OUTCOME_MESSAGES[outcome]
    if name == "save" and len(args) == 1:
        try:
            saveGameToFile(core, args[0])
        except OSError as e:
            logger.warning("saving to %s failed: %s", args[0], e)
            return "Cannot save game!"
        return f"Saved to {args[0]}."
    if name == "load" and len(args) == 1:
        try:
            loaded = loadGameFromFile(args[0])
        except (OSError, ValueError) as e:
            logger.warning("loading %s failed: %s", args[0], e)
            return "Cannot load game!"
        core.state = loaded.state
        core.emitState()
        return f"Loaded {args[0]}."
    return "Invalid command! " + HELP


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play Spider Solitaire in the terminal.")
    parser.add_argument("--difficulty", type=int, choices=DIFFICULTIES, default=None, help="Suit count.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible deal.")
    parser.add_argument("--config", type=str, default="", help="Optional key=value game config file.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def buildConfig(args: argparse.Namespace) -> GameConfig:
    config = GameConfig.loadFromFile(args.config) if args.config else GameConfig()
    if args.difficulty is not None:
        config.difficulty = args.difficulty
    if args.seed is not None:
        config.seed = args.seed
    return config


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    interface = CommandLineInterface()
    core = Core()
    core.registerInterface(interface)
    core.startGame(buildConfig(args))
    print(HELP)
    while True:
        try:
            command = input()
        except EOFError:
            break
        if command.strip() == "quit":
            break
        message = handleCommand(core, command)
        if message:
            print(message)


if __name__ == '__main__':
    main()
