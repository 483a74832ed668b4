"""
Pytest fixtures for tiles tests.
"""

import pytest

from tiles.geometry import Position
from tiles.grid import Grid
from tiles.tile import Tile


def make_grid(length: int, *tiles: tuple[int, int, int]) -> Grid:
    """Build a grid from (x, y, value) triples. Tile ids do not matter for equality."""
    grid = Grid(length)
    for x, y, value in tiles:
        grid.set(x, y, Tile(1, Position(x, y), value))
    return grid


@pytest.fixture
def grid_builder():
    return make_grid


@pytest.fixture
def recorder():
    """A callable that records every call's positional arguments."""

    class Recorder:
        def __init__(self):
            self.calls = []

        def __call__(self, *args):
            self.calls.append(args)

    return Recorder()
