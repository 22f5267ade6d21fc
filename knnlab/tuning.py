# knnlab/tuning.py
# -----------------------------------------------------------------------------
# Grid search over k with cross-validation.
#
# Every (k, fold) cell fits a fresh pipeline on the fold's fit rows and scores
# the holdout rows. Scores are averaged per k. A validation error in any cell
# invalidates that k only; the sweep goes on with the remaining candidates.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .cv import CVPlan
from .errors import EmptyInput, InvalidHyperparameter, KNNLabError, LengthMismatch, NoValidCandidate
from .knn import check_k
from .metrics import MAXIMIZE, MetricSpec, get_metric

if TYPE_CHECKING:
    from .pipeline import Pipeline

logger = logging.getLogger(__name__)

GRID_SCALES = ("linear", "log")


def k_grid(low: int, high: int, levels: int, scale: str = "linear") -> List[int]:
    """
    Integer k values spread over [low, high].

    `levels` points are placed evenly ("linear") or geometrically ("log"),
    rounded to integers and deduplicated, so fewer than `levels` values may
    come back for narrow ranges.
    """
    low = check_k(low)
    high = check_k(high)
    if high < low:
        raise InvalidHyperparameter(f"k range is empty: low={low} > high={high}", (low, high))
    if isinstance(levels, bool) or not isinstance(levels, (int, np.integer)) or levels < 1:
        raise InvalidHyperparameter(f"levels must be a positive integer, got {levels!r}", levels)
    if scale not in GRID_SCALES:
        raise ValueError(f"scale must be one of {GRID_SCALES}, got {scale!r}")

    if scale == "linear":
        points = np.linspace(low, high, int(levels))
    else:
        points = np.geomspace(low, high, int(levels))
    return sorted({int(round(p)) for p in points})


@dataclass(frozen=True)
class KScore:
    """Cross-validated aggregate for one candidate k."""

    k: int
    values: Tuple[float, ...] = ()
    error: Optional[str] = None
    failed_fold: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.error is None and len(self.values) > 0

    @property
    def n(self) -> int:
        return len(self.values)

    @property
    def mean(self) -> Optional[float]:
        return float(np.mean(self.values)) if self.valid else None

    @property
    def std_err(self) -> Optional[float]:
        if not self.valid:
            return None
        if self.n < 2:
            return float("nan")
        return float(np.std(self.values, ddof=1) / math.sqrt(self.n))


@dataclass
class TuningResult:
    metric: MetricSpec
    scores: Dict[int, KScore] = field(default_factory=dict)

    def as_mapping(self) -> Dict[int, Optional[float]]:
        """k -> mean metric, None where the k has no valid aggregate."""
        return {k: s.mean for k, s in sorted(self.scores.items())}

    @property
    def invalid_ks(self) -> List[int]:
        return [k for k, s in sorted(self.scores.items()) if not s.valid]

    def best_k(self) -> int:
        """Best aggregate in the metric's direction; ties go to the smaller k."""
        best: Optional[KScore] = None
        for _, score in sorted(self.scores.items()):
            if not score.valid:
                continue
            if best is None or self.metric.better(score.mean, best.mean):
                best = score
        if best is None:
            raise NoValidCandidate(
                f"No candidate k produced a valid {self.metric.name}", sorted(self.scores)
            )
        return best.k

    def to_frame(self) -> pd.DataFrame:
        rows = []
        for k, s in sorted(self.scores.items()):
            rows.append({
                "k": k,
                "metric": self.metric.name,
                "mean": s.mean,
                "n": s.n,
                "std_err": s.std_err,
                "valid": s.valid,
                "error": s.error,
            })
        return pd.DataFrame(rows, columns=["k", "metric", "mean", "n", "std_err", "valid", "error"])

    def show_best(self, n: int = 5) -> pd.DataFrame:
        frame = self.to_frame()
        frame = frame[frame["valid"]]
        ascending = self.metric.direction != MAXIMIZE
        return frame.sort_values(["mean", "k"], ascending=[ascending, True], kind="stable").head(n)


class GridTuner:
    """
    Cross-validated grid search over k.

    Parameters
    ----------
    pipeline_factory : callable
        k -> fresh, unfitted Pipeline. Called once per (k, fold) cell.
    candidate_ks : sequence of int
        Values to evaluate; deduplicated and visited in ascending order.
    metric : MetricSpec or str
        Score computed on each holdout fold; its direction drives selection.
    """

    def __init__(
        self,
        pipeline_factory: Callable[[int], "Pipeline"],
        candidate_ks: Sequence[int],
        metric: Union[MetricSpec, str],
    ):
        if len(candidate_ks) == 0:
            raise EmptyInput("candidate_ks must not be empty", list(candidate_ks))
        self.pipeline_factory = pipeline_factory
        self.candidate_ks = sorted({check_k(k) for k in candidate_ks})
        self.metric = get_metric(metric) if isinstance(metric, str) else metric

        # Fitted attributes
        self.result_: Optional[TuningResult] = None

    def tune(self, dataset: pd.DataFrame, cv_plan: CVPlan) -> TuningResult:
        if len(dataset) != cv_plan.n_rows:
            raise LengthMismatch(
                f"CV plan covers {cv_plan.n_rows} rows, dataset has {len(dataset)}",
                (cv_plan.n_rows, len(dataset)),
            )
        schema = self.pipeline_factory(self.candidate_ks[0]).schema
        if schema.mode != self.metric.mode:
            raise ValueError(
                f"Metric {self.metric.name!r} is for {self.metric.mode}, pipeline is {schema.mode}"
            )

        result = TuningResult(metric=self.metric)
        for k in self.candidate_ks:
            result.scores[k] = self._score_k(k, dataset, cv_plan)
            s = result.scores[k]
            if s.valid:  # failures are logged per cell
                logger.info("k=%d  %s=%.4f (n=%d)", k, self.metric.name, s.mean, s.n)

        self.result_ = result
        if result.invalid_ks:
            logger.warning("No valid aggregate for k in %s", result.invalid_ks)
        return result

    def best_k(self) -> int:
        if self.result_ is None:
            raise RuntimeError("GridTuner.tune() has not been run.")
        return self.result_.best_k()

    def _score_k(self, k: int, dataset: pd.DataFrame, cv_plan: CVPlan) -> KScore:
        values: List[float] = []
        for fold in cv_plan:
            try:
                fitted = self.pipeline_factory(k).fit(dataset.iloc[fold.fit_index])
                holdout = dataset.iloc[fold.holdout_index]
                pred = fitted.predict(holdout)
                value = self.metric.score(pred, holdout[fitted.schema.target].to_numpy())
            except KNNLabError as exc:
                logger.warning("k=%d invalid: %s failed with %s: %s", k, fold.id, type(exc).__name__, exc)
                return KScore(k=k, values=tuple(values), error=f"{type(exc).__name__}: {exc}",
                              failed_fold=fold.id)
            logger.debug("k=%d %s %s=%.4f", k, fold.id, self.metric.name, value)
            values.append(value)
        return KScore(k=k, values=tuple(values))
