# knnlab/metrics.py
# -----------------------------------------------------------------------------
# Evaluation metrics for predictions vs. ground truth.
#
#   classification: accuracy, macro-F1, confusion matrix
#   regression:     RMSE
#
# MetricSpec ties a metric to its mode and to the direction the tuner should
# optimize it in.
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix as sk_confusion_matrix
from sklearn.metrics import f1_score

from .errors import EmptyInput, LengthMismatch, UnknownLabel
from .schema import CLASSIFICATION, REGRESSION

MAXIMIZE = "maximize"
MINIMIZE = "minimize"


def _paired(predicted, actual) -> Tuple[np.ndarray, np.ndarray]:
    p = np.asarray(predicted)
    a = np.asarray(actual)
    if p.size == 0 or a.size == 0:
        raise EmptyInput("predicted and actual must be non-empty", (p.size, a.size))
    if p.shape[0] != a.shape[0]:
        raise LengthMismatch(f"{p.shape[0]} predictions vs {a.shape[0]} actual values", (p.shape[0], a.shape[0]))
    return p, a


def accuracy(predicted, actual) -> float:
    """Fraction of exact matches."""
    p, a = _paired(predicted, actual)
    return float(np.mean(p == a))


def rmse(predicted, actual) -> float:
    """Square root of the mean squared error."""
    p, a = _paired(predicted, actual)
    err = p.astype(np.float64) - a.astype(np.float64)
    return float(np.sqrt(np.mean(err * err)))


def macro_f1(predicted, actual) -> float:
    """Unweighted mean of per-class F1 over the classes present in either input."""
    p, a = _paired(predicted, actual)
    return float(f1_score(a, p, average="macro", zero_division=0))


def confusion_matrix(predicted, actual, labels: Sequence[Hashable]) -> Dict[Tuple[Hashable, Hashable], int]:
    """
    Counts keyed by (actual label, predicted label) over the fixed label set.

    Every pair of `labels` gets an entry, zero if never observed. A label
    outside `labels` in either input raises UnknownLabel.
    """
    p, a = _paired(predicted, actual)
    labels = list(labels)
    known = set(labels)
    for role, values in (("actual", a), ("predicted", p)):
        unknown = [v for v in values.tolist() if v not in known]
        if unknown:
            raise UnknownLabel(f"{role} label {unknown[0]!r} not in label set {labels}", unknown[0])

    counts = sk_confusion_matrix(a, p, labels=labels)
    return {
        (t, q): int(counts[i, j])
        for i, t in enumerate(labels)
        for j, q in enumerate(labels)
    }


def confusion_frame(matrix: Dict[Tuple[Hashable, Hashable], int], labels: Sequence[Hashable]) -> pd.DataFrame:
    """Confusion matrix as a DataFrame: rows actual, columns predicted."""
    labels = list(labels)
    data = [[matrix[(t, q)] for q in labels] for t in labels]
    frame = pd.DataFrame(data, index=labels, columns=labels)
    frame.index.name = "actual"
    frame.columns.name = "predicted"
    return frame


# ----------------------------- metric registry ----------------------------- #

@dataclass(frozen=True)
class MetricSpec:
    name: str
    mode: str
    direction: str
    fn: Callable[[Sequence, Sequence], float]

    def score(self, predicted, actual) -> float:
        return self.fn(predicted, actual)

    def better(self, a: float, b: float) -> bool:
        """True if aggregate `a` is strictly better than `b`."""
        return a > b if self.direction == MAXIMIZE else a < b


METRICS: Dict[str, MetricSpec] = {
    "accuracy": MetricSpec("accuracy", CLASSIFICATION, MAXIMIZE, accuracy),
    "macro_f1": MetricSpec("macro_f1", CLASSIFICATION, MAXIMIZE, macro_f1),
    "rmse": MetricSpec("rmse", REGRESSION, MINIMIZE, rmse),
}


def get_metric(name: str) -> MetricSpec:
    try:
        return METRICS[name]
    except KeyError:
        raise ValueError(f"Unknown metric {name!r}; choose from {sorted(METRICS)}") from None
