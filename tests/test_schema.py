import pandas as pd
import pytest

from knnlab.errors import SchemaMismatch
from knnlab.schema import Schema


class TestSchema:
    def test_predictors_and_columns(self):
        schema = Schema(target="y", mode="regression", numeric=["a", "b"], categorical=["c"])
        assert schema.numeric == ("a", "b")
        assert schema.predictors == ("a", "b", "c")
        assert schema.columns == ("a", "b", "c", "y")
        assert not schema.is_classification

    @pytest.mark.parametrize("kwargs", [
        dict(target="y", mode="ranking", numeric=("a",)),
        dict(target="y", mode="regression"),
        dict(target="y", mode="regression", numeric=("y",)),
        dict(target="y", mode="regression", numeric=("a",), categorical=("a",)),
        dict(target="y", mode="regression", numeric=("a", "a")),
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(SchemaMismatch):
            Schema(**kwargs)

    def test_check_columns(self):
        schema = Schema(target="y", mode="classification", numeric=("a",))
        frame = pd.DataFrame({"a": [1.0]})
        schema.check_columns(frame)
        with pytest.raises(SchemaMismatch) as err:
            schema.check_columns(frame, with_target=True)
        assert err.value.value == ["y"]


class TestInfer:
    def test_dtypes(self):
        frame = pd.DataFrame({
            "num": [1.0, 2.0],
            "count": [1, 2],
            "flag": [True, False],
            "color": ["red", "blue"],
            "y": ["a", "b"],
        })
        schema = Schema.infer(frame, target="y", mode="classification")
        assert schema.numeric == ("num", "count")
        assert schema.categorical == ("flag", "color")

    def test_explicit_predictors(self):
        frame = pd.DataFrame({"num": [1.0], "color": ["red"], "y": [1.0]})
        schema = Schema.infer(frame, target="y", mode="regression", predictors=["color"])
        assert schema.predictors == ("color",)

    def test_missing_column(self):
        frame = pd.DataFrame({"num": [1.0], "y": [1.0]})
        with pytest.raises(SchemaMismatch):
            Schema.infer(frame, target="y", mode="regression", predictors=["num", "other"])
