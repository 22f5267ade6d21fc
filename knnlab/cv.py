# knnlab/cv.py
# -----------------------------------------------------------------------------
# Repeated v-fold cross-validation plans.
#
# A plan is built once from a dataset's row count (and strata) and holds only
# row positions, so the same plan can be reused for every candidate k.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import InvalidFoldCount
from .partition import group_positions, strata_labels

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Fold:
    fit_index: np.ndarray
    holdout_index: np.ndarray
    repeat: int
    fold: int

    @property
    def id(self) -> str:
        return f"Repeat{self.repeat}/Fold{self.fold}"


FoldPlan = Tuple[Fold, ...]


@dataclass(frozen=True)
class CVPlan:
    """One FoldPlan per repeat, over a dataset of `n_rows` rows."""

    fold_plans: Tuple[FoldPlan, ...]
    n_rows: int

    def __iter__(self) -> Iterator[Fold]:
        for plan in self.fold_plans:
            yield from plan

    def __len__(self) -> int:
        return sum(len(plan) for plan in self.fold_plans)

    @property
    def repeats(self) -> int:
        return len(self.fold_plans)


class CrossValidator:
    """
    Planner for repeated v-fold cross-validation.

    Parameters
    ----------
    v : int
        Folds per repeat, 2 <= v <= n_rows.
    repeats : int
        Independent re-shuffles of the dataset.
    stratify : str, optional
        Column whose class balance each holdout group should follow.
    seed : int
        Root seed; each repeat draws from its own spawned child seed.

    Notes
    -----
    Without strata, shuffled positions are cut into v contiguous groups with
    numpy.array_split (sizes differ by at most one). With strata, each stratum
    is shuffled, strata are concatenated and positions are dealt to folds
    round-robin, which keeps the same size guarantee.
    """

    def __init__(self, v: int, repeats: int = 1, stratify: Optional[str] = None, seed: int = 0,
                 strata_bins: int = 4):
        if isinstance(v, bool) or not isinstance(v, (int, np.integer)) or v < 2:
            raise InvalidFoldCount(f"v must be an integer >= 2, got {v!r}", v)
        if isinstance(repeats, bool) or not isinstance(repeats, (int, np.integer)) or repeats < 1:
            raise InvalidFoldCount(f"repeats must be an integer >= 1, got {repeats!r}", repeats)
        self.v = int(v)
        self.repeats = int(repeats)
        self.stratify = stratify
        self.seed = seed
        self.strata_bins = int(strata_bins)

    def plan(self, dataset: pd.DataFrame) -> CVPlan:
        n = len(dataset)
        if self.v > n:
            raise InvalidFoldCount(f"v={self.v} exceeds the {n} rows available", self.v)

        groups = None
        if self.stratify is not None:
            groups = group_positions(strata_labels(dataset, self.stratify, self.strata_bins))

        children = np.random.SeedSequence(self.seed).spawn(self.repeats)
        fold_plans = []
        for r, child in enumerate(children, start=1):
            rng = np.random.default_rng(child)
            fold_plans.append(self._one_repeat(n, rng, groups, r))

        plan = CVPlan(fold_plans=tuple(fold_plans), n_rows=n)
        logger.info("Planned %d folds (%d x %d) over %d rows", len(plan), self.repeats, self.v, n)
        return plan

    def _one_repeat(self, n: int, rng: np.random.Generator, groups, repeat: int) -> FoldPlan:
        if groups is None:
            holdouts = np.array_split(rng.permutation(n), self.v)
        else:
            order = np.concatenate([rng.permutation(g) for g in groups])
            assignment = np.arange(n) % self.v
            holdouts = [order[assignment == f] for f in range(self.v)]

        all_rows = np.arange(n)
        folds = []
        for f, holdout in enumerate(holdouts, start=1):
            holdout = np.sort(holdout)
            fit = np.setdiff1d(all_rows, holdout, assume_unique=True)
            folds.append(Fold(fit_index=fit, holdout_index=holdout, repeat=repeat, fold=f))
        return tuple(folds)
