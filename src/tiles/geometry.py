"""
Board geometry: swipe directions and cell positions.

+-------+-------+-------+-------+
| (0,0) | (1,0) | (2,0) | (3,0) |
| (0,1) | (1,1) | (2,1) | (3,1) |
| (0,2) | (1,2) | (2,2) | (3,2) |
| (0,3) | (1,3) | (2,3) | (3,3) |
+-------+-------+-------+-------+

UP decreases y, LEFT decreases x.
"""

import enum
from typing import NamedTuple


class Direction(enum.IntEnum):
    LEFT = 0
    RIGHT = 1
    UP = 2
    DOWN = 3

    def opposite(self) -> "Direction":
        return _OPPOSITES[self]


_OPPOSITES = {
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
}

# (dx, dy) of one step
_OFFSETS = {
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
}


class Position(NamedTuple):
    x: int
    y: int

    def neighbor(self, direction: Direction) -> "Position":
        """The adjacent position one step away. No bounds checking."""
        dx, dy = _OFFSETS[direction]
        return Position(self.x + dx, self.y + dy)


def opposite(direction: Direction) -> Direction:
    return direction.opposite()


def neighbor(position: Position, direction: Direction) -> Position:
    return position.neighbor(direction)
