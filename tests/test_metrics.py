import math

import numpy as np
import pytest
from sklearn import metrics as skm

from knnlab.errors import EmptyInput, LengthMismatch, UnknownLabel
from knnlab.metrics import (
    METRICS,
    accuracy,
    confusion_frame,
    confusion_matrix,
    get_metric,
    macro_f1,
    rmse,
)

PRED = ["a", "b", "b", "c", "a", "a"]
TRUE = ["a", "b", "c", "c", "b", "a"]


class TestAccuracy:
    def test_matches_sklearn(self):
        assert accuracy(PRED, TRUE) == pytest.approx(skm.accuracy_score(TRUE, PRED))

    def test_bounds(self):
        assert accuracy([1, 2], [1, 2]) == 1.0
        assert accuracy([1, 2], [2, 1]) == 0.0

    def test_empty(self):
        with pytest.raises(EmptyInput):
            accuracy([], [])

    def test_length_mismatch(self):
        with pytest.raises(LengthMismatch):
            accuracy([1, 2], [1])


class TestConfusionMatrix:
    def test_counts_match_sklearn(self):
        labels = ["a", "b", "c"]
        cm = confusion_matrix(PRED, TRUE, labels)
        expected = skm.confusion_matrix(TRUE, PRED, labels=labels)
        for i, t in enumerate(labels):
            for j, q in enumerate(labels):
                assert cm[(t, q)] == expected[i, j]

    def test_every_pair_present(self):
        cm = confusion_matrix(["a"], ["a"], ["a", "b"])
        assert cm == {("a", "a"): 1, ("a", "b"): 0, ("b", "a"): 0, ("b", "b"): 0}

    def test_margins(self):
        labels = ["a", "b", "c"]
        cm = confusion_matrix(PRED, TRUE, labels)
        for t in labels:
            assert sum(cm[(t, q)] for q in labels) == TRUE.count(t)
            assert sum(cm[(q, t)] for q in labels) == PRED.count(t)

    def test_keys_follow_given_label_order(self):
        cm = confusion_matrix([1, 0, 2, 2], [2, 0, 1, 2], [2, 0, 1])
        assert list(cm)[:3] == [(2, 2), (2, 0), (2, 1)]
        assert cm[(2, 1)] == 1
        assert cm[(1, 2)] == 1
        assert cm[(0, 0)] == 1
        assert cm[(2, 2)] == 1
        assert sum(cm.values()) == 4
        assert all(type(n) is int for n in cm.values())

    def test_unknown_actual(self):
        with pytest.raises(UnknownLabel) as err:
            confusion_matrix(["a"], ["z"], ["a", "b"])
        assert err.value.value == "z"

    def test_unknown_predicted(self):
        with pytest.raises(UnknownLabel) as err:
            confusion_matrix(["z"], ["a"], ["a", "b"])
        assert err.value.value == "z"

    def test_empty(self):
        with pytest.raises(EmptyInput):
            confusion_matrix([], [], ["a"])

    def test_frame_layout(self):
        labels = ["a", "b", "c"]
        frame = confusion_frame(confusion_matrix(PRED, TRUE, labels), labels)
        assert frame.index.name == "actual"
        assert frame.columns.name == "predicted"
        assert frame.loc["c", "b"] == 1
        assert frame.to_numpy().sum() == len(PRED)


class TestRMSE:
    def test_known_value(self):
        assert rmse([1, 2, 3], [1, 2, 5]) == pytest.approx(math.sqrt(4 / 3))

    def test_matches_sklearn(self):
        rng = np.random.default_rng(0)
        a, b = rng.normal(size=30), rng.normal(size=30)
        assert rmse(a, b) == pytest.approx(math.sqrt(skm.mean_squared_error(b, a)))

    def test_empty(self):
        with pytest.raises(EmptyInput):
            rmse([], [])

    def test_length_mismatch(self):
        with pytest.raises(LengthMismatch) as err:
            rmse([1.0, 2.0], [1.0, 2.0, 3.0])
        assert err.value.value == (2, 3)


class TestRegistry:
    def test_macro_f1_matches_sklearn(self):
        assert macro_f1(PRED, TRUE) == pytest.approx(skm.f1_score(TRUE, PRED, average="macro"))

    def test_directions(self):
        assert get_metric("accuracy").better(0.9, 0.8)
        assert get_metric("rmse").better(0.8, 0.9)
        assert not get_metric("rmse").better(0.8, 0.8)

    def test_modes(self):
        assert METRICS["accuracy"].mode == "classification"
        assert METRICS["macro_f1"].mode == "classification"
        assert METRICS["rmse"].mode == "regression"

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            get_metric("auc")
