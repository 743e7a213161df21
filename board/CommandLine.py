import argparse
import random

from colorama import Fore, Style, just_fix_windows_console

from board.Core import Core, Layout, LayoutParseError, Move, MoveParseError, STACK_COUNT
from board.Interface import Interface


def _cell(text: str, style: str, color: bool) -> str:
    if color and style:
        return f"{style} {text} {Style.RESET_ALL}"
    return f" {text} "


def render_layout(layout: Layout, color=True) -> str:
    """Row-major dump of the layout, one column per stack."""
    lines = ["=" * (STACK_COUNT * 3)]
    lines.append("".join(f" {i} " for i in range(STACK_COUNT)))
    row = 0
    while True:
        has = False
        line = ""
        for stack in layout.stacks:
            if stack.completed:
                if row == 0:
                    has = True
                    line += _cell("C", Fore.RED + Style.BRIGHT, color)
                else:
                    line += "   "
                continue
            if len(stack) <= row:
                line += "   "
                continue
            has = True
            char = stack.cards[row].to_char()
            if stack.forced and row == len(stack) - 1:
                if color:
                    line += _cell(char, Fore.BLUE + Style.BRIGHT, color)
                else:
                    line += f"[{char}]"
            else:
                line += _cell(char, Style.BRIGHT, color)
        if not has:
            break
        lines.append(line.rstrip())
        row += 1
    return "\n".join(lines)


class CommandLineInterface(Interface):

    def __init__(self, color=True):
        super().__init__()
        self.color = color

    def printAll(self):
        print(render_layout(self.core.layout, self.color))
        print()

    def onStart(self):
        print("Game started!")

    def onEvent(self, move: Move):
        print(f"Moved {move.count} card(s) [{move.source}] -> [{move.to}]")
        super().onEvent(move)

    def notifyRedraw(self):
        self.printAll()

    def onWin(self):
        print("You win!")

    def onLose(self):
        print("No moves left, you lose.")


def readLayout(read=input) -> Layout:
    """Read six rows of six cards, asking again until the rows form a full deck."""
    while True:
        rows = [read() for _ in range(STACK_COUNT)]
        try:
            return Layout.from_rows(rows)
        except LayoutParseError as e:
            print(f"Incorrect layout ({e}), try again:")


def gameplayLoop(core: Core, read=input):
    # A dealt layout can already be stuck.
    core.checkFinished()
    while not core.gameEnded:
        try:
            command = read()
        except EOFError:
            break
        if command.strip() in ("q", "quit", "exit"):
            break
        try:
            move = Move.from_text(command)
        except MoveParseError:
            print("Invalid move! Enter: source destination count")
            continue
        if not core.askMove(move):
            print("Cannot move!")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play a layout by hand.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a random deal.")
    parser.add_argument("--input", action="store_true", help="Type the six starting rows instead of dealing.")
    parser.add_argument("--no-color", action="store_true", help="Plain text rendering.")
    return parser.parse_args()


def main():
    args = _parse_args()
    just_fix_windows_console()
    interface = CommandLineInterface(color=not args.no_color)
    core = Core()
    core.registerInterface(interface)
    core.registerPlayer("Null")
    if args.input:
        layout = readLayout()
    else:
        layout = Layout.deal(random.Random(args.seed))
    core.startGame(layout)
    gameplayLoop(core)


if __name__ == '__main__':
    main()
