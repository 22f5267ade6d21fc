"""Shared synthetic datasets for the test suite."""

import numpy as np
import pandas as pd
import pytest

from knnlab.schema import Schema


@pytest.fixture
def clusters():
    """Two tight, far-apart clusters: 100 rows of 'a', then 100 rows of 'b'."""
    rng = np.random.default_rng(7)
    a = rng.normal(loc=0.0, scale=0.5, size=(100, 2))
    b = rng.normal(loc=10.0, scale=0.5, size=(100, 2))
    frame = pd.DataFrame(np.vstack([a, b]), columns=["x1", "x2"])
    frame["label"] = ["a"] * 100 + ["b"] * 100
    return frame


@pytest.fixture
def clusters_schema():
    return Schema(target="label", mode="classification", numeric=("x1", "x2"))


@pytest.fixture
def overlapping():
    """200 rows, 2 numeric predictors, binary outcome with some class overlap."""
    rng = np.random.default_rng(3)
    a = rng.normal(loc=0.0, scale=1.0, size=(120, 2))
    b = rng.normal(loc=1.5, scale=1.0, size=(80, 2))
    frame = pd.DataFrame(np.vstack([a, b]), columns=["x1", "x2"])
    frame["label"] = ["no"] * 120 + ["yes"] * 80
    return frame


@pytest.fixture
def linear():
    """Outcome linear in `x` plus small noise; `z` is an irrelevant predictor."""
    rng = np.random.default_rng(11)
    x = rng.uniform(0.0, 10.0, size=200)
    z = rng.uniform(0.0, 1.0, size=200)
    y = 3.0 * x + 2.0 + rng.normal(0.0, 0.3, size=200)
    return pd.DataFrame({"x": x, "z": z, "y": y})


@pytest.fixture
def linear_schema():
    return Schema(target="y", mode="regression", numeric=("x", "z"))


@pytest.fixture
def mixed():
    """Numeric + categorical predictors."""
    return pd.DataFrame({
        "size": [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
        "color": ["red", "blue", "red", "green", "blue", "red"],
        "label": ["s", "s", "s", "l", "l", "l"],
    })


@pytest.fixture
def mixed_schema():
    return Schema(target="label", mode="classification", numeric=("size",), categorical=("color",))
