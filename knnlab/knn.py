# knnlab/knn.py
# -----------------------------------------------------------------------------
# From-scratch KNN for dense feature matrices: classification and regression.
# Euclidean distance only. Includes ranked label vote shares.
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Tuple

import numpy as np

from .errors import InsufficientData, InvalidHyperparameter, LengthMismatch, SchemaMismatch
from .schema import CLASSIFICATION, MODES


def check_k(k: Any, n_rows: Optional[int] = None) -> int:
    """Return k as int, or raise InvalidHyperparameter if it is not usable."""
    if isinstance(k, (bool, np.bool_)) or not isinstance(k, (int, np.integer)):
        raise InvalidHyperparameter(f"k must be an integer, got {k!r}", k)
    if k < 1:
        raise InvalidHyperparameter(f"k must be >= 1, got {k}", k)
    if n_rows is not None and k > n_rows:
        raise InvalidHyperparameter(f"k={k} exceeds the {n_rows} training rows", k)
    return int(k)


class DistanceIndex:
    """
    Training vectors + targets answering k-nearest-neighbor queries.

    Neighbors are ordered by Euclidean distance with a stable sort, so rows
    at equal distance come back in ascending row order. When several rows
    tie at the k-th position, the ones with the lower row index are kept.

    Each query batch materializes a (batch, n_train, n_features) difference
    array. The batch is shrunk so that array holds at most `max_cells`
    float64 values, whatever `batch_size` asks for.
    """

    max_cells = 2 ** 22

    def __init__(self, features: np.ndarray, targets: np.ndarray, batch_size: int = 256):
        X = self._to_dense_f64(features).copy()
        y = np.array(targets, copy=True)
        if X.shape[0] == 0:
            raise InsufficientData("Empty training set.", 0)
        if X.shape[0] != y.shape[0]:
            raise LengthMismatch(
                f"features have {X.shape[0]} rows but targets have {y.shape[0]}", (X.shape[0], y.shape[0])
            )
        X.setflags(write=False)
        self.X_ = X
        self.y_ = y
        self.batch_size = int(batch_size)

    def __len__(self) -> int:
        return self.X_.shape[0]

    @property
    def n_features(self) -> int:
        return self.X_.shape[1]

    @property
    def batch_rows(self) -> int:
        """Query rows per batch, capped by the size of the difference array."""
        per_query = max(self.X_.shape[0] * self.X_.shape[1], 1)
        return max(1, min(self.batch_size, self.max_cells // per_query))

    # ----------------------------- public API ----------------------------- #

    def query(self, vector: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """Indices and distances of the k nearest training rows, nearest first."""
        x = np.asarray(vector, dtype=np.float64).reshape(1, -1)
        idx, dist = self.kneighbors(x, k)
        return idx[0], dist[0]

    def kneighbors(self, X: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Batched query.

        Returns
        -------
        idx : (n_queries, k) int array
        dist : (n_queries, k) float array
        """
        k = check_k(k, len(self))
        Xq = self._to_dense_f64(X)
        if Xq.shape[1] != self.n_features:
            raise SchemaMismatch(
                f"query has {Xq.shape[1]} features, index has {self.n_features}", Xq.shape[1]
            )

        idx_out = np.empty((Xq.shape[0], k), dtype=np.int64)
        dist_out = np.empty((Xq.shape[0], k), dtype=np.float64)
        for Xb, sl in self._iter_batches(Xq, self.batch_rows):
            # direct differences, not the norm expansion: exact ties stay ties
            diff = Xb[:, None, :] - self.X_[None, :, :]
            d = np.sqrt(np.sum(diff * diff, axis=2))          # (b, n_train)
            order = np.argsort(d, axis=1, kind="stable")[:, :k]
            idx_out[sl] = order
            dist_out[sl] = np.take_along_axis(d, order, axis=1)
        return idx_out, dist_out

    # -------------------------- batching utilities ------------------------- #

    @staticmethod
    def _iter_batches(X: np.ndarray, batch_size: int) -> Iterable[Tuple[np.ndarray, slice]]:
        n = X.shape[0]
        for start in range(0, n, batch_size):
            end = min(start + batch_size, n)
            yield X[start:end], slice(start, end)

    @staticmethod
    def _to_dense_f64(X) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64, order="C")
        if X.ndim != 2:
            raise ValueError("X must be 2D (n_samples, n_features).")
        return X


class KNNPredictor:
    """
    KNN classifier / regressor over a DistanceIndex.

    Parameters
    ----------
    k : int
        Number of neighbors.
    mode : {"classification", "regression"}
        Classification returns the most frequent neighbor label, regression
        the mean neighbor target.
    batch_size : int
        Query batch size for memory-safe inference.

    Notes
    -----
    - Votes are unweighted. Labels tied on count go to the one whose
      nearest neighbor ranks first.
    - The predictor holds no mutable state after fit().
    """

    def __init__(self, k: int = 5, mode: str = CLASSIFICATION, batch_size: int = 256):
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {mode!r}")
        self.k = check_k(k)
        self.mode = mode
        self.batch_size = int(batch_size)

        # Fitted attributes
        self.index_: Optional[DistanceIndex] = None

    # ----------------------------- public API ----------------------------- #

    def fit(self, features: np.ndarray, targets: np.ndarray) -> "KNNPredictor":
        targets = np.asarray(targets)
        if self.mode != CLASSIFICATION:
            targets = targets.astype(np.float64)
        index = DistanceIndex(features, targets, batch_size=self.batch_size)
        check_k(self.k, len(index))
        self.index_ = index
        return self

    def query(self, vector: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return self._require_index().query(vector, self.k)

    def predict(self, features: np.ndarray) -> np.ndarray:
        index = self._require_index()
        neigh_idx, _ = index.kneighbors(features, self.k)
        if self.mode == CLASSIFICATION:
            preds = [self._vote(index.y_[row]) for row in neigh_idx]
            return np.asarray(preds, dtype=index.y_.dtype)
        return index.y_[neigh_idx].mean(axis=1)

    def rank_labels(self, features: np.ndarray, top: Optional[int] = None) -> List[List[Tuple[Any, float]]]:
        """
        Return, for each row, a ranked list of (label, vote share) pairs.
        Shares sum to 1; ties keep nearest-neighbor order.
        """
        if self.mode != CLASSIFICATION:
            raise RuntimeError("rank_labels is only defined for classification.")
        index = self._require_index()
        neigh_idx, _ = index.kneighbors(features, self.k)

        out: List[List[Tuple[Any, float]]] = []
        for row in neigh_idx:
            counts = self._count(index.y_[row])
            # sorted() is stable, so equal counts keep first-seen order
            ranked = sorted(counts.items(), key=lambda kv: -kv[1])
            shares = [(label, count / self.k) for label, count in ranked]
            out.append(shares[:top] if top is not None else shares)
        return out

    # --------------------------- voting & scoring -------------------------- #

    @staticmethod
    def _count(labels: np.ndarray) -> dict:
        # dict keeps insertion order = rank of each label's nearest neighbor
        counts: dict = {}
        for lab in labels.tolist():
            counts[lab] = counts.get(lab, 0) + 1
        return counts

    def _vote(self, labels: np.ndarray):
        counts = self._count(labels)
        # max() returns the first maximal key in iteration order
        return max(counts, key=counts.get)

    def _require_index(self) -> DistanceIndex:
        if self.index_ is None:
            raise RuntimeError("Model not fitted.")
        return self.index_


# ------------------------------- self-test --------------------------------- #
if __name__ == "__main__":
    # Tiny check: two classes separable along x
    rng = np.random.default_rng(0)
    X0 = rng.normal(loc=-1.0, scale=0.2, size=(20, 2))
    X1 = rng.normal(loc=+1.0, scale=0.2, size=(20, 2))
    X = np.vstack([X0, X1])
    y = np.array(["a"] * 20 + ["b"] * 20)

    knn = KNNPredictor(k=5).fit(X, y)
    preds = knn.predict(X)
    print("Train acc:", (preds == y).mean())
    print("Vote shares for first 3 rows:", knn.rank_labels(X[:3]))
