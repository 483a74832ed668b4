"""
Play the game in command line.

The save file is restored on start, if it exists, and written on quit.
"""

import argparse
import logging
import os.path
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

from tiles.errors import MalformedStateError
from tiles.game import Game
from tiles.geometry import Direction
from tiles.grid import TWO_PROB, Grid
from tiles.storage import load_game, save_game
from tiles.tile import TileState

_STEP_LETTERS = {
    "L": Direction.LEFT,
    "R": Direction.RIGHT,
    "U": Direction.UP,
    "D": Direction.DOWN,
}


class Display:
    """Print the board and collect merges reported by the grid."""

    def __init__(self, game: Game):
        self.game = game
        self.merged: list[TileState] = []

        game.add_callback(Game.EVENT_NEW_GAME, self.attach)
        self.attach(game.grid)

    def attach(self, grid: Grid):
        grid.add_callback(Grid.EVENT_TILE_COMBINED, self.on_combined)

    def on_combined(self, combined: TileState, absorbed: TileState):
        self.merged.append(combined)

    def draw(self):
        print(self.game.grid)
        print(f"score: {self.game.score}  largest tile: {self.game.largest_tile}")


def parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser()
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--two-prob", type=float, default=TWO_PROB)
    p.add_argument("--save", type=str, default=None)
    p.add_argument("--log-file", type=str, default=None)
    return p


def main():
    ns = parser().parse_args()

    if ns.log_file is not None:
        logger = logging.getLogger("tiles")
        logger.setLevel(logging.DEBUG)
        logger.addHandler(logging.FileHandler(ns.log_file, encoding="utf-8"))

    game = None
    if ns.save is not None and os.path.exists(ns.save):
        try:
            game = load_game(ns.save, two_prob=ns.two_prob, seed=ns.seed)
        except MalformedStateError as ex:
            print(f"Cannot restore {ns.save}: {ex}")

    if game is None:
        game = Game(two_prob=ns.two_prob, seed=ns.seed)

    display = Display(game)

    while True:
        display.draw()

        ans = input("Move (L/R/U/D, N for new game, Q to quit): ").strip().upper()

        if ans == "Q":
            if ns.save is not None:
                save_game(ns.save, game)
            print("Bye")
            return

        if ans == "N":
            game.start_new_game()
            continue

        try:
            direction = _STEP_LETTERS[ans]
        except KeyError:
            print("Bad action, try again")
            continue

        display.merged.clear()
        if not game.swipe(direction):
            print("Nothing moved, try again")
            continue

        if display.merged:
            print("merged:", ", ".join(str(s.value) for s in display.merged))

        if not game.can_move:
            display.draw()
            print("Game over")
            return


if __name__ == "__main__":
    main()
