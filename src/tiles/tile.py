from typing import Any, Callable, NamedTuple

from tiles.errors import InvalidOperationError
from tiles.event import EventEmitter
from tiles.geometry import Position


class TileState(NamedTuple):
    """Immutable snapshot of a tile, handed to observers."""

    id: int
    position: Position
    value: int


def is_tile_value(value: int) -> bool:
    """Tile values are positive powers of two"""
    return value > 0 and value & (value - 1) == 0


class Tile:
    """
    One numbered square on the board.

    Equality and hashing only consider position and value. The id is
    transient and has_combined only lives for the duration of one move.
    """

    EVENT_CHANGED: str = "changed"
    """
    args: (tile_state,)
    """

    __slots__ = ("_id", "_position", "_value", "has_combined", "_emitter")

    def __init__(self, id: int, position: Position | tuple[int, int], value: int):
        if not is_tile_value(value):
            raise ValueError(f"Tile value must be a positive power of two: {value!r}")

        self._id = id
        self._position = Position(*position)
        self._value = value

        # When True, this tile has already combined during the current move
        # and nothing else may combine with it until reset().
        self.has_combined = False

        self._emitter = EventEmitter()

    @property
    def id(self) -> int:
        return self._id

    @property
    def position(self) -> Position:
        return self._position

    @position.setter
    def position(self, position: Position | tuple[int, int]):
        self._position = Position(*position)
        self._notify()

    @property
    def value(self) -> int:
        return self._value

    @value.setter
    def value(self, value: int):
        if not is_tile_value(value):
            raise ValueError(f"Tile value must be a positive power of two: {value!r}")
        self._value = value
        self._notify()

    def add_callback(self, event: str, fn: Callable[..., Any]):
        if event != self.EVENT_CHANGED:
            raise ValueError(f"Unknown tile event {event!r}")
        self._emitter.add_listener(event, fn)

    def remove_callback(self, event: str, fn: Callable[..., Any]) -> bool:
        return self._emitter.remove_listener(event, fn)

    def snapshot(self) -> TileState:
        return TileState(self._id, self._position, self._value)

    def combine_with(self, other: "Tile"):
        """
        Combine other into this tile, adding its value to ours.

        Fails if other has a different value, or if this tile has already
        combined during this move.
        """
        if other.value != self._value:
            raise InvalidOperationError(
                f"Cannot combine with mismatched values (this={self._value}, that={other.value})"
            )
        if self.has_combined:
            raise InvalidOperationError("Already combined once during this move")

        self.has_combined = True
        self.value = self._value + other.value

    def reset(self):
        self.has_combined = False

    def _notify(self):
        self._emitter.emit(self.EVENT_CHANGED, (self.snapshot(),))

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Tile):
            return NotImplemented
        return self._position == other._position and self._value == other._value

    def __hash__(self) -> int:
        return hash((self._position, self._value))

    def __repr__(self) -> str:
        return f"Tile(id={self._id}, position={tuple(self._position)}, value={self._value})"
