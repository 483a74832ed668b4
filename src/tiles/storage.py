"""
Save and load a game as a numpy .npz archive.

The archive holds the game blob as four arrays:
score, largest_tile, length (scalars) and board (packed cells).
"""

import logging
import os
import zipfile
from typing import Any

import numpy as np

from tiles.errors import MalformedStateError
from tiles.game import Game, GameState
from tiles.grid import BOARD_DTYPE, GridState

logger = logging.getLogger(__name__)

_FIELDS = ("score", "largest_tile", "length", "board")


def save_game(path: str | os.PathLike, game: Game):
    state = game.serialize()
    grid = state["grid"]

    with open(path, "wb") as fp:
        np.savez(
            fp,
            score=np.int64(state["score"]),
            largest_tile=np.int64(state["largest_tile"]),
            length=np.int64(grid["length"]),
            board=np.asarray(grid["board"], dtype=BOARD_DTYPE),
        )

    logger.info("saved game to %s", path)


def read_state(path: str | os.PathLike) -> GameState:
    try:
        data = np.load(path)
    except (EOFError, ValueError, zipfile.BadZipFile) as ex:
        raise MalformedStateError(f"Cannot read save file {path}: {ex}") from ex

    if not isinstance(data, np.lib.npyio.NpzFile):
        raise MalformedStateError(f"Save file {path} is not an .npz archive")

    with data:
        missing = [name for name in _FIELDS if name not in data.files]
        if missing:
            raise MalformedStateError(f"Save file lacks arrays: {missing}")

        try:
            return GameState(
                score=int(data["score"]),
                largest_tile=int(data["largest_tile"]),
                grid=GridState(
                    length=int(data["length"]),
                    board=data["board"].reshape(-1),
                ),
            )
        except (TypeError, ValueError) as ex:
            raise MalformedStateError(f"Bad arrays in save file {path}: {ex}") from ex


def load_game(path: str | os.PathLike, **kwargs: Any) -> Game:
    """
    Restore a game saved by save_game().

    Extra keyword arguments go to Game.restore().
    """
    game = Game.restore(read_state(path), **kwargs)
    logger.info("loaded game from %s", path)
    return game
