import pytest

from tiles.errors import MalformedStateError
from tiles.game import GRID_LENGTH, Game
from tiles.geometry import Direction
from tiles.grid import Grid

from conftest import make_grid


def game_from(grid: Grid, *, score: int = 0, largest_tile: int = 0, **kwargs) -> Game:
    state = {"score": score, "largest_tile": largest_tile, "grid": grid.serialize()}
    return Game.restore(state, **kwargs)


class TestNewGame:
    def test_new_game(self):
        game = Game(seed=0)

        assert game.grid.length == GRID_LENGTH == 4
        assert game.grid.count == 2
        assert game.score == 0
        assert game.largest_tile in (2, 4)
        assert game.largest_tile == max(tile.value for tile in game.grid.tiles())
        assert game.can_move

    def test_start_new_game_resets(self, recorder):
        game = Game(seed=1)
        game.add_callback(Game.EVENT_NEW_GAME, recorder)
        old_grid = game.grid

        game.start_new_game()

        assert game.grid is not old_grid
        assert game.grid.count == 2
        assert recorder.calls == [(game.grid,)]

    def test_seeded_games_are_reproducible(self):
        a = Game(seed=5)
        b = Game(seed=5)
        for direction in [Direction.UP, Direction.RIGHT, Direction.DOWN, Direction.LEFT]:
            a.swipe(direction)
            b.swipe(direction)
        assert a.grid == b.grid

    def test_unknown_event(self):
        with pytest.raises(ValueError):
            Game(seed=0).add_callback("swiped", print)


class TestSwipe:
    def test_swipe_places_a_tile(self):
        game = game_from(make_grid(4, (3, 3, 2)), seed=0)

        assert game.swipe(Direction.UP)

        assert game.grid.get(3, 0).value == 2
        assert game.grid.count == 2

    def test_swipe_without_change_places_nothing(self):
        grid = make_grid(4, (0, 0, 2))
        game = game_from(grid, seed=0)

        assert not game.swipe(Direction.UP)
        assert not game.swipe(Direction.LEFT)

        assert game.grid == grid
        assert game.grid.count == 1

    def test_merge_then_place(self):
        game = game_from(make_grid(4, (0, 0, 8), (0, 3, 8)), seed=0)

        assert game.swipe(Direction.UP)

        assert game.grid.get(0, 0).value == 16
        assert game.grid.count == 2

    def test_largest_tile_follows_placed_tiles(self):
        game = game_from(make_grid(4, (0, 3, 2)), largest_tile=2, two_prob=0.0, seed=0)

        game.swipe(Direction.UP)

        assert game.largest_tile == 4

    def test_largest_tile_never_decreases(self):
        game = game_from(make_grid(4, (0, 3, 2)), largest_tile=64, seed=0)

        game.swipe(Direction.UP)

        assert game.largest_tile == 64

    def test_score_is_kept(self):
        game = game_from(make_grid(4, (0, 0, 4), (0, 3, 4)), score=120, seed=0)

        game.swipe(Direction.UP)

        assert game.score == 120

    def test_can_move_only_checks_free_cells(self):
        full = make_grid(
            2,
            (0, 0, 2),
            (1, 0, 2),
            (0, 1, 4),
            (1, 1, 8),
        )
        game = game_from(full)

        assert not game.can_move
        # the two 2s still merge, and the freed cell is refilled at once
        assert game.swipe(Direction.LEFT)
        assert game.grid.get(0, 0).value == 4
        assert game.grid.count == 4


class TestGamePersistence:
    def test_round_trip(self):
        game = Game(seed=9)
        for direction in [Direction.LEFT, Direction.UP, Direction.RIGHT]:
            game.swipe(direction)

        restored = Game.restore(game.serialize())

        assert restored.grid == game.grid
        assert restored.score == game.score
        assert restored.largest_tile == game.largest_tile

    def test_serialize_layout(self):
        game = game_from(make_grid(4, (1, 2, 16)), score=3, largest_tile=4)

        state = game.serialize()

        assert state["score"] == 3
        assert state["largest_tile"] == 4
        assert state["grid"]["length"] == 4
        assert len(state["grid"]["board"]) == 16

    @pytest.mark.parametrize(
        "state",
        [
            {"score": 0, "largest_tile": 0},
            {"score": 0, "grid": {"length": 4, "board": [0] * 16}},
            {"score": "lots", "largest_tile": 0, "grid": {"length": 4, "board": [0] * 16}},
            {"score": 0, "largest_tile": 0, "grid": {"length": 4, "board": [0] * 15}},
        ],
    )
    def test_malformed_state(self, state):
        with pytest.raises(MalformedStateError):
            Game.restore(state)
