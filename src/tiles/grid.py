"""
The tile-sliding board.

Cells are stored row-major, index = y * length + x:

+----+----+----+----+
|  0 |  1 |  2 |  3 |
|  4 |  5 |  6 |  7 |
|  8 |  9 | 10 | 11 |
| 12 | 13 | 14 | 15 |
+----+----+----+----+
"""

import logging
from collections.abc import Iterable, Iterator
from typing import Any, Callable, Optional, Sequence, TypedDict

import numpy as np
from numba import njit

from tiles.errors import InvalidOperationError, MalformedStateError
from tiles.event import EventEmitter
from tiles.geometry import Direction, Position
from tiles.tile import Tile

logger = logging.getLogger(__name__)

# probability to place a 2, otherwise 4.
TWO_PROB = 0.75

# Packed cell layout, see Grid.serialize()
_ID_SHIFT = 16
_ID_MASK = 0xFFFF
_LOG_MASK = 0xFFFF
_CELL_MASK = 0xFFFFFFFF

BOARD_DTYPE = np.uint32


class GridState(TypedDict):
    length: int
    board: np.ndarray | Sequence[int]


@njit
def _pack_board(ids: np.ndarray, logs: np.ndarray, out: np.ndarray):
    for i in range(out.size):
        if ids[i] == 0:
            out[i] = 0
        else:
            out[i] = ((ids[i] & _ID_MASK) << _ID_SHIFT) | (logs[i] & _LOG_MASK)


@njit
def _unpack_board(state: np.ndarray, ids: np.ndarray, logs: np.ndarray) -> int:
    """
    Split packed cells into ids and base-2 logs.

    Return the number of occupied cells.
    """
    count = 0

    for i in range(state.size):
        # signed 32-bit input is read modulo 2 ** 32
        cell = state[i] & _CELL_MASK
        ident = (cell >> _ID_SHIFT) & _ID_MASK

        if ident == 0:
            # empty cell, the value bits are ignored
            ids[i] = 0
            logs[i] = 0
        else:
            ids[i] = ident
            logs[i] = cell & _LOG_MASK
            count += 1

    return count


def _fold_id(ident: int) -> int:
    # Only 16 bits survive packing and 0 means empty, so wrap into 1..0xFFFF
    return (ident - 1) % _ID_MASK + 1


def _validate_state(state: GridState) -> tuple[int, np.ndarray]:
    try:
        length = state["length"]
        board = state["board"]
    except (KeyError, TypeError) as ex:
        raise MalformedStateError(f"Grid state is missing fields: {ex}") from ex

    if isinstance(length, bool) or not isinstance(length, (int, np.integer)):
        raise MalformedStateError(f"Grid length must be an integer: {length!r}")

    length = int(length)
    if length <= 0:
        raise MalformedStateError(f"Grid length must be positive: {length}")

    try:
        board = np.asarray(board, dtype=np.int64)
    except (TypeError, ValueError, OverflowError) as ex:
        raise MalformedStateError(f"Grid board is not an integer array: {ex}") from ex

    if board.ndim != 1 or board.size != length * length:
        raise MalformedStateError(
            f"Grid board expects {length * length} cells instead of shape {board.shape}"
        )

    return length, board


class Grid:
    """
    A square board of optional tiles.

    The grid is the sole owner of its tiles. Observers receive snapshots
    (tile events) or the grid itself (board events) and must not mutate them.
    """

    EVENT_BOARD_UPDATED: str = "board_updated"
    """
    args: (grid,)
    """

    EVENT_TILE_COMBINED: str = "tile_combined"
    """
    args: (combined_tile_state, absorbed_tile_state)
    """

    _EVENTS = frozenset({EVENT_BOARD_UPDATED, EVENT_TILE_COMBINED})

    _length: int
    _board: list[Optional[Tile]]
    _count: int
    _next_id: int
    _rand: np.random.Generator

    def __init__(
        self,
        length: int,
        *,
        two_prob: float = TWO_PROB,
        seed: int | np.random.Generator | None = None,
    ):
        if length <= 0:
            raise ValueError(f"Grid length must be positive: {length}")
        if not 0.0 <= two_prob <= 1.0:
            raise ValueError(f"two_prob must be within [0, 1]: {two_prob}")

        self._length = length
        self._board = [None] * (length * length)
        self._count = 0
        self._next_id = 1
        self._two_prob = two_prob
        self._rand = np.random.default_rng(seed)
        self._emitter = EventEmitter()

    @classmethod
    def restore(
        cls,
        state: GridState,
        *,
        two_prob: float = TWO_PROB,
        seed: int | np.random.Generator | None = None,
    ) -> "Grid":
        length, board = _validate_state(state)

        ids = np.zeros(board.shape, dtype=np.int64)
        logs = np.zeros(board.shape, dtype=np.int64)
        count = _unpack_board(board, ids, logs)

        grid = cls(length, two_prob=two_prob, seed=seed)
        for index in np.flatnonzero(ids):
            index = int(index)
            grid._board[index] = Tile(
                int(ids[index]),
                grid._index_to_pos(index),
                1 << int(logs[index]),
            )

        grid._count = count
        grid._next_id = int(ids.max(initial=0)) + 1

        logger.debug("restored %dx%d grid with %d tiles", length, length, count)
        return grid

    @property
    def length(self) -> int:
        return self._length

    @property
    def count(self) -> int:
        """Number of live tiles"""
        return self._count

    @property
    def is_full(self) -> bool:
        return self._count == len(self._board)

    def add_callback(self, event: str, fn: Callable[..., Any]):
        if event not in self._EVENTS:
            raise ValueError(f"Unknown grid event {event!r}")
        self._emitter.add_listener(event, fn)

    def remove_callback(self, event: str, fn: Callable[..., Any]) -> bool:
        return self._emitter.remove_listener(event, fn)

    def get(self, x: int, y: int) -> Optional[Tile]:
        return self._board[self._pos_to_index(x, y)]

    def set(self, x: int, y: int, tile: Optional[Tile]):
        """
        Put tile into the cell at (x, y), replacing whatever was there.

        The tile is relocated to (x, y) if its position says otherwise.
        """
        index = self._pos_to_index(x, y)

        if self._board[index] is not None:
            self._count -= 1

        if tile is not None:
            if tile.position != (x, y):
                tile.position = Position(x, y)
            if tile.id >= self._next_id:
                self._next_id = tile.id + 1
            self._count += 1

        self._board[index] = tile

    def __getitem__(self, pos: tuple[int, int]) -> Optional[Tile]:
        x, y = pos
        return self.get(x, y)

    def __setitem__(self, pos: tuple[int, int], tile: Optional[Tile]):
        x, y = pos
        self.set(x, y, tile)

    def tiles(self) -> Iterator[Tile]:
        """Live tiles in cell order"""
        return (tile for tile in self._board if tile is not None)

    def place_random_tile(self) -> Optional[Tile]:
        """
        Place a 2 or a 4 in a random empty cell.

        Return None if the board is full.
        """
        if self.is_full:
            return None

        occupied = np.fromiter(
            (tile is not None for tile in self._board),
            dtype=np.bool_,
            count=len(self._board),
        )
        empty_indices = np.flatnonzero(~occupied)

        if empty_indices.size == 1:
            index = int(empty_indices[0])
        else:
            index = int(self._rand.choice(empty_indices))

        value = 2 if self._rand.uniform() < self._two_prob else 4

        tile = Tile(self._next_id, self._index_to_pos(index), value)
        self._next_id += 1
        self._board[index] = tile
        self._count += 1

        logger.debug("placed %r", tile)
        self._emitter.emit(self.EVENT_BOARD_UPDATED, (self,))

        return tile

    def move_tiles(self, direction: Direction) -> bool:
        """
        Slide every tile toward one edge, merging equal pairs.

        Return True if any tile moved or combined.
        """
        direction = Direction(direction)
        moved = False

        for index in self._traverse(direction):
            tile = self._board[index]
            if tile is not None and self._move_tile(tile, direction):
                moved = True

        for tile in self._board:
            if tile is not None:
                tile.reset()

        logger.debug("move %s: moved=%s, count=%d", direction.name, moved, self._count)
        self._emitter.emit(self.EVENT_BOARD_UPDATED, (self,))

        return moved

    def _move_tile(self, tile: Tile, direction: Direction) -> bool:
        origin = tile.position
        if self._board[self._pos_to_index(*origin)] is not tile:
            raise InvalidOperationError(f"{tile!r} is not in its own cell")

        neighbor = self._next_neighbor_of(origin, direction)

        if neighbor is None:
            # Nothing in the way, so slide all the way to the edge
            edge = self._edge_of(origin, direction)
            if edge == origin:
                raise InvalidOperationError(
                    f"Cannot move {tile!r} already at the {direction.name} edge"
                )

            self._relocate(tile, edge)
            return True

        if neighbor.value == tile.value and not neighbor.has_combined:
            absorbed = tile.snapshot()
            neighbor.combine_with(tile)
            self._board[self._pos_to_index(*origin)] = None
            self._count -= 1

            self._emitter.emit(
                self.EVENT_TILE_COMBINED,
                (neighbor.snapshot(), absorbed),
            )
            return True

        # Stop right behind the neighbor, if there is a gap
        stop = neighbor.position.neighbor(direction.opposite())
        if stop != origin:
            self._relocate(tile, stop)
            return True

        return False

    def _relocate(self, tile: Tile, pos: Position):
        self._board[self._pos_to_index(*tile.position)] = None
        self._board[self._pos_to_index(*pos)] = tile
        tile.position = pos

    def _next_neighbor_of(self, pos: Position, direction: Direction) -> Optional[Tile]:
        pos = pos.neighbor(direction)

        while self._in_range(pos.x, pos.y):
            tile = self._board[self._pos_to_index(pos.x, pos.y)]
            if tile is not None:
                return tile
            pos = pos.neighbor(direction)

        return None

    def _edge_of(self, pos: Position, direction: Direction) -> Position:
        last = self._length - 1

        if direction == Direction.UP:
            return Position(pos.x, 0)
        elif direction == Direction.DOWN:
            return Position(pos.x, last)
        elif direction == Direction.LEFT:
            return Position(0, pos.y)
        else:
            return Position(last, pos.y)

    def _traverse(self, direction: Direction) -> Iterable[int]:
        """
        Cell indices in the order they are resolved for a move.

        The row (or column) along the target edge is skipped because those
        tiles cannot go any further. Every other tile either stops at the edge
        or next to a tile that has already finished its move.
        """
        n = self._length

        if direction == Direction.UP:
            return range(n, n * n)
        elif direction == Direction.DOWN:
            return range(n * n - n - 1, -1, -1)
        elif direction == Direction.LEFT:
            return (y * n + x for x in range(1, n) for y in range(n))
        else:
            return (y * n + x for x in range(n - 2, -1, -1) for y in range(n))

    def serialize(self) -> GridState:
        """
        Pack the grid into a GridState.

        Each cell is packed into a 32-bit unsigned int:

        |76543210|76543210|76543210|76543210|
               tile ID          log2(value)

        IDs are transient and only need to be distinct from one another,
        so they are not stable across save/restore. A zero ID means the
        cell is empty.
        """
        size = len(self._board)
        ids = np.zeros((size,), dtype=np.int64)
        logs = np.zeros((size,), dtype=np.int64)

        for index, tile in enumerate(self._board):
            if tile is not None:
                ids[index] = _fold_id(tile.id)
                logs[index] = tile.value.bit_length() - 1

        packed = np.zeros((size,), dtype=np.int64)
        _pack_board(ids, logs, packed)

        return GridState(length=self._length, board=packed.astype(BOARD_DTYPE))

    def _in_range(self, x: int, y: int) -> bool:
        return 0 <= x < self._length and 0 <= y < self._length

    def _pos_to_index(self, x: int, y: int) -> int:
        if not self._in_range(x, y):
            raise IndexError(f"({x}, {y}) is outside the {self._length}x{self._length} grid")
        return y * self._length + x

    def _index_to_pos(self, index: int) -> Position:
        y, x = divmod(index, self._length)
        return Position(x, y)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Grid):
            return NotImplemented
        return self._length == other._length and self._board == other._board

    __hash__ = None

    def __str__(self) -> str:
        n = self._length
        rows = []

        for start in range(0, len(self._board), n):
            items = [
                f"{tile.value:<5d}" if tile is not None else " " * 5
                for tile in self._board[start : start + n]
            ]
            rows.append("[" + "|".join(items) + "]")

        return "\n".join(rows)

    def __repr__(self) -> str:
        return f"Grid(length={self._length}, count={self._count})"
