import logging
from typing import Any, Callable, Optional, TypedDict

import numpy as np

from tiles.errors import MalformedStateError
from tiles.event import EventEmitter
from tiles.geometry import Direction
from tiles.grid import TWO_PROB, Grid, GridState

logger = logging.getLogger(__name__)

GRID_LENGTH = 4

# New games always begin with two tiles
INITIAL_TILES = 2


class GameState(TypedDict):
    score: int
    largest_tile: int
    grid: GridState


class Game:
    """
    A single game of 2048.

    Owns one grid and keeps the score and the largest tile ever placed.
    """

    EVENT_NEW_GAME: str = "new_game"
    """
    args: (grid,)
    """

    _grid: Grid
    _score: int
    _largest_tile: int

    def __init__(
        self,
        *,
        two_prob: float = TWO_PROB,
        seed: int | np.random.Generator | None = None,
        state: Optional[GameState] = None,
    ):
        self._two_prob = two_prob
        # one stream shared by every grid this game creates
        self._rand = np.random.default_rng(seed)
        self._emitter = EventEmitter()

        if state is None:
            self.start_new_game()
        else:
            self._restore(state)

    @classmethod
    def restore(
        cls,
        state: GameState,
        *,
        two_prob: float = TWO_PROB,
        seed: int | np.random.Generator | None = None,
    ) -> "Game":
        if state is None:
            raise MalformedStateError("Game state is missing")
        return cls(two_prob=two_prob, seed=seed, state=state)

    def _restore(self, state: GameState):
        try:
            score = state["score"]
            largest_tile = state["largest_tile"]
            grid_state = state["grid"]
        except (KeyError, TypeError) as ex:
            raise MalformedStateError(f"Game state is missing fields: {ex}") from ex

        try:
            score = int(score)
            largest_tile = int(largest_tile)
        except (TypeError, ValueError) as ex:
            raise MalformedStateError(f"Bad score or largest tile: {ex}") from ex

        self._grid = Grid.restore(grid_state, two_prob=self._two_prob, seed=self._rand)
        self._score = score
        self._largest_tile = largest_tile

        logger.debug(
            "restored game: score=%d, largest_tile=%d, tiles=%d",
            score,
            largest_tile,
            self._grid.count,
        )

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def score(self) -> int:
        return self._score

    @property
    def largest_tile(self) -> int:
        return self._largest_tile

    @property
    def can_move(self) -> bool:
        # Only checks for free cells; a full board with merges left counts as stuck.
        return not self._grid.is_full

    def add_callback(self, event: str, fn: Callable[..., Any]):
        if event != self.EVENT_NEW_GAME:
            raise ValueError(f"Unknown game event {event!r}")
        self._emitter.add_listener(event, fn)

    def remove_callback(self, event: str, fn: Callable[..., Any]) -> bool:
        return self._emitter.remove_listener(event, fn)

    def start_new_game(self):
        self._grid = Grid(GRID_LENGTH, two_prob=self._two_prob, seed=self._rand)
        self._score = 0
        self._largest_tile = 0

        for _ in range(INITIAL_TILES):
            self._place_next_tile()

        logger.info("new game started")
        self._emitter.emit(self.EVENT_NEW_GAME, (self._grid,))

    def swipe(self, direction: Direction) -> bool:
        """
        Move all tiles in the given direction.

        A new tile is placed after any move that changed the board.
        """
        moved = self._grid.move_tiles(direction)

        if moved and not self._grid.is_full:
            self._place_next_tile()

        return moved

    def _place_next_tile(self):
        tile = self._grid.place_random_tile()
        if tile is not None and tile.value > self._largest_tile:
            self._largest_tile = tile.value

    def serialize(self) -> GameState:
        return GameState(
            score=self._score,
            largest_tile=self._largest_tile,
            grid=self._grid.serialize(),
        )
