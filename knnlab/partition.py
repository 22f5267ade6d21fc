# knnlab/partition.py
# -----------------------------------------------------------------------------
# Seeded train/test partitioning with optional stratification.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from .errors import InsufficientData, InvalidProportion, SchemaMismatch

logger = logging.getLogger(__name__)


def round_half_up(x: float) -> int:
    """round() without banker's rounding: 37.5 -> 38."""
    return int(math.floor(x + 0.5))


def strata_labels(dataset: pd.DataFrame, column: str, bins: int = 4) -> np.ndarray:
    """
    Stratum label per row.

    Categorical columns are used as-is. A numeric column with more distinct
    values than `bins` is cut into quantile bins first.
    """
    if column not in dataset.columns:
        raise SchemaMismatch(f"Stratify column {column!r} not in dataset.", column)
    col = dataset[column]
    if is_numeric_dtype(col.dtype) and not is_bool_dtype(col.dtype) and col.nunique() > bins:
        col = pd.qcut(col, q=bins, labels=False, duplicates="drop")
    return col.to_numpy()


def group_positions(strata: np.ndarray) -> List[np.ndarray]:
    """Row positions per stratum, strata in first-seen order."""
    _, first, inverse = np.unique(strata, return_index=True, return_inverse=True)
    groups = []
    for code in np.argsort(first, kind="stable"):
        groups.append(np.flatnonzero(inverse == code))
    return groups


@dataclass(frozen=True, eq=False)
class Split:
    """Row positions of the training and test subsets (each sorted)."""

    train_index: np.ndarray
    test_index: np.ndarray

    def train(self, dataset: pd.DataFrame) -> pd.DataFrame:
        return dataset.iloc[self.train_index].reset_index(drop=True)

    def test(self, dataset: pd.DataFrame) -> pd.DataFrame:
        return dataset.iloc[self.test_index].reset_index(drop=True)


class Partitioner:
    """
    Train/test splitter.

    Parameters
    ----------
    train_proportion : float
        Share of rows for training, strictly between 0 and 1.
    stratify : str, optional
        Column whose class balance is kept in both subsets.
    seed : int
        Seed for numpy's default_rng; the same seed gives the same split.
    strata_bins : int
        Quantile bins used when the stratify column is numeric.

    Notes
    -----
    Training size is round_half_up(n * train_proportion), computed per
    stratum when stratifying. Returned indices are sorted so both subsets
    keep the dataset's row order.
    """

    def __init__(
        self,
        train_proportion: float,
        stratify: Optional[str] = None,
        seed: int = 0,
        strata_bins: int = 4,
    ):
        if not (0.0 < float(train_proportion) < 1.0):
            raise InvalidProportion(
                f"train_proportion must be strictly between 0 and 1, got {train_proportion}",
                train_proportion,
            )
        self.train_proportion = float(train_proportion)
        self.stratify = stratify
        self.seed = seed
        self.strata_bins = int(strata_bins)

    def split(self, dataset: pd.DataFrame) -> Split:
        n = len(dataset)
        rng = np.random.default_rng(self.seed)

        if self.stratify is None:
            groups = [np.arange(n)]
        else:
            groups = group_positions(strata_labels(dataset, self.stratify, self.strata_bins))

        train_parts, test_parts = [], []
        for positions in groups:
            shuffled = rng.permutation(positions)
            cut = round_half_up(len(shuffled) * self.train_proportion)
            train_parts.append(shuffled[:cut])
            test_parts.append(shuffled[cut:])

        train_index = np.sort(np.concatenate(train_parts)) if train_parts else np.array([], dtype=int)
        test_index = np.sort(np.concatenate(test_parts)) if test_parts else np.array([], dtype=int)
        if train_index.size < 1 or test_index.size < 1:
            raise InsufficientData(
                f"Split of {n} rows at {self.train_proportion} leaves "
                f"{train_index.size} train / {test_index.size} test rows",
                n,
            )

        logger.info(
            "Split %d rows -> %d train / %d test (stratify=%s, seed=%s)",
            n, train_index.size, test_index.size, self.stratify, self.seed,
        )
        return Split(train_index=train_index, test_index=test_index)
