import numpy as np
import pytest

from tiles.errors import MalformedStateError
from tiles.game import Game
from tiles.geometry import Direction
from tiles.storage import load_game, read_state, save_game


class TestStorage:
    def test_round_trip(self, tmp_path):
        game = Game(seed=11)
        game.swipe(Direction.DOWN)
        game.swipe(Direction.LEFT)
        path = tmp_path / "game.npz"

        save_game(path, game)
        restored = load_game(path)

        assert restored.grid == game.grid
        assert restored.score == game.score
        assert restored.largest_tile == game.largest_tile

    def test_archive_arrays(self, tmp_path):
        game = Game(seed=2)
        path = tmp_path / "game.npz"

        save_game(path, game)

        with np.load(path) as data:
            assert sorted(data.files) == ["board", "largest_tile", "length", "score"]
            assert data["board"].dtype == np.uint32
            assert data["board"].shape == (16,)
            assert int(data["length"]) == 4

    def test_read_state(self, tmp_path):
        path = tmp_path / "game.npz"
        save_game(path, Game(seed=4))

        state = read_state(path)

        assert state["score"] == 0
        assert state["grid"]["length"] == 4

    def test_missing_arrays(self, tmp_path):
        path = tmp_path / "partial.npz"
        np.savez(path, score=np.int64(0), board=np.zeros(16, dtype=np.uint32))

        with pytest.raises(MalformedStateError):
            load_game(path)

    def test_not_an_archive(self, tmp_path):
        path = tmp_path / "junk.npz"
        path.write_text("not a save file")

        with pytest.raises(MalformedStateError):
            load_game(path)

    def test_plain_array_file(self, tmp_path):
        path = tmp_path / "board.npy"
        np.save(path, np.zeros(16, dtype=np.uint32))

        with pytest.raises(MalformedStateError):
            load_game(path)

    def test_bad_board_size(self, tmp_path):
        path = tmp_path / "bad.npz"
        np.savez(
            path,
            score=np.int64(0),
            largest_tile=np.int64(0),
            length=np.int64(4),
            board=np.zeros(9, dtype=np.uint32),
        )

        with pytest.raises(MalformedStateError):
            load_game(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_game(tmp_path / "nothing.npz")
