import numpy as np
import pandas as pd
import pytest

from knnlab.data import drop_incomplete, load_frame
from knnlab.errors import SchemaMismatch


class TestLoadFrame:
    def test_selects_columns(self, tmp_path):
        path = tmp_path / "d.csv"
        pd.DataFrame({"a": [1, 2], "b": ["x", "y"], "c": [0.1, 0.2]}).to_csv(path, index=False)
        frame = load_frame(path, columns=["c", "a"])
        assert list(frame.columns) == ["c", "a"]
        assert len(frame) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_frame(tmp_path / "nope.csv")

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "d.csv"
        pd.DataFrame({"a": [1]}).to_csv(path, index=False)
        with pytest.raises(SchemaMismatch) as err:
            load_frame(path, columns=["a", "b"])
        assert err.value.value == ["b"]


class TestDropIncomplete:
    def test_drops_and_reindexes(self):
        frame = pd.DataFrame({"a": [1.0, np.nan, 3.0], "b": ["x", "y", None]})
        kept = drop_incomplete(frame)
        assert list(kept["a"]) == [1.0]
        assert list(kept.index) == [0]

    def test_subset(self):
        frame = pd.DataFrame({"a": [1.0, np.nan, 3.0], "b": ["x", "y", None]})
        kept = drop_incomplete(frame, columns=["a"])
        assert list(kept["b"]) == ["x", None]
        assert list(kept.index) == [0, 1]
