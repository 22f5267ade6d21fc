# knnlab/features.py
# -----------------------------------------------------------------------------
# Feature transformer: numeric normalization + categorical one-hot encoding.
#
# - fit() learns per-column statistics from the training rows only
# - transform() turns any frame with the schema's columns into a dense
#   float64 matrix with a fixed column order
#
# Column order of the output:
#   numeric predictors (schema order), then one indicator block per
#   categorical predictor (schema order, levels in first-seen order, first
#   level dropped as the reference).
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.preprocessing import OneHotEncoder

from .errors import InsufficientData, SchemaMismatch
from .schema import Schema

logger = logging.getLogger(__name__)

UNKNOWN_POLICIES = ("reject", "zero")


@dataclass(frozen=True)
class TransformState:
    """Statistics learned by FeatureTransformer.fit (read-only afterwards)."""

    means: Dict[str, float]
    stds: Dict[str, float]
    levels: Dict[str, Tuple]
    constant_columns: Tuple[str, ...] = ()


class FeatureTransformer:
    """
    Fit-once, apply-many preprocessing for KNN.

    Parameters
    ----------
    schema : Schema
        Which predictors are numeric and which are categorical.
    unknown_levels : {"reject", "zero"}
        What transform() does with a categorical level not seen during fit.
        "reject" raises SchemaMismatch. "zero" encodes it as an all-zero
        indicator block, i.e. the same vector as the reference level.

    Notes
    -----
    - Standard deviation uses the sample formula (ddof=1).
    - A constant numeric column (or a single training row) has no usable
      spread; its std is recorded as 1.0 so the column is only centered.
    """

    def __init__(self, schema: Schema, unknown_levels: str = "reject"):
        if unknown_levels not in UNKNOWN_POLICIES:
            raise ValueError(f"unknown_levels must be one of {UNKNOWN_POLICIES}, got {unknown_levels!r}")
        self.schema = schema
        self.unknown_levels = unknown_levels

        # Fitted attributes
        self.state_: Optional[TransformState] = None
        self.encoders_: Dict[str, OneHotEncoder] = {}

    # ----------------------------- public API ----------------------------- #

    def fit(self, rows: pd.DataFrame) -> "FeatureTransformer":
        if len(rows) == 0:
            raise InsufficientData("Cannot fit a transformer on zero rows.", 0)
        self.schema.check_columns(rows)

        means: Dict[str, float] = {}
        stds: Dict[str, float] = {}
        constant: List[str] = []
        for col in self.schema.numeric:
            values = self._numeric_values(rows, col)
            mean = float(values.mean())
            std = float(values.std(ddof=1)) if values.size > 1 else 0.0
            if not np.isfinite(std) or std == 0.0:
                std = 1.0
                constant.append(col)
            means[col] = mean
            stds[col] = std

        levels: Dict[str, Tuple] = {}
        encoders: Dict[str, OneHotEncoder] = {}
        for col in self.schema.categorical:
            # pd.unique keeps first-occurrence order
            levels[col] = tuple(pd.unique(rows[col]))
            encoders[col] = OneHotEncoder(
                categories=[list(levels[col])],
                drop="first",
                handle_unknown="error" if self.unknown_levels == "reject" else "ignore",
                sparse_output=False,
                dtype=np.float64,
            ).fit(self._as_objects(rows[col]))
        self.encoders_ = encoders

        if constant:
            logger.warning("Numeric columns without spread, std set to 1: %s", constant)

        self.state_ = TransformState(
            means=means, stds=stds, levels=levels, constant_columns=tuple(constant)
        )
        logger.debug("Fitted transformer on %d rows -> %d features", len(rows), self.n_features)
        return self

    def transform(self, rows: pd.DataFrame) -> np.ndarray:
        state = self._require_state()
        self.schema.check_columns(rows)

        n = len(rows)
        blocks: List[np.ndarray] = []
        for col in self.schema.numeric:
            values = self._numeric_values(rows, col)
            blocks.append(((values - state.means[col]) / state.stds[col]).reshape(n, 1))

        for col in self.schema.categorical:
            blocks.append(self._one_hot(rows[col], col))

        if not blocks:
            return np.zeros((n, 0), dtype=np.float64)
        return np.hstack(blocks).astype(np.float64, copy=False)

    def fit_transform(self, rows: pd.DataFrame) -> np.ndarray:
        return self.fit(rows).transform(rows)

    @property
    def feature_names(self) -> List[str]:
        state = self._require_state()
        names = list(self.schema.numeric)
        for col in self.schema.categorical:
            names.extend(f"{col}_{level}" for level in state.levels[col][1:])
        return names

    @property
    def n_features(self) -> int:
        state = self._require_state()
        return len(self.schema.numeric) + sum(len(lv) - 1 for lv in state.levels.values())

    # ---------------------------- core utilities --------------------------- #

    def _require_state(self) -> TransformState:
        if self.state_ is None:
            raise RuntimeError("FeatureTransformer not fitted.")
        return self.state_

    @staticmethod
    def _numeric_values(rows: pd.DataFrame, col: str) -> np.ndarray:
        try:
            values = pd.to_numeric(rows[col], errors="raise").to_numpy(dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise SchemaMismatch(f"Column {col!r} holds non-numeric values.", col) from exc
        if np.isnan(values).any():
            raise SchemaMismatch(f"Column {col!r} has missing values; drop incomplete rows first.", col)
        return values

    @staticmethod
    def _as_objects(series: pd.Series) -> np.ndarray:
        # object dtype keeps the encoder from requiring sorted numeric levels
        return series.to_numpy(dtype=object).reshape(-1, 1)

    def _one_hot(self, series: pd.Series, col: str) -> np.ndarray:
        encoder = self.encoders_[col]
        try:
            return encoder.transform(self._as_objects(series))
        except ValueError as exc:
            unseen = series[~series.isin(encoder.categories_[0])]
            value = unseen.iloc[0] if len(unseen) else col
            raise SchemaMismatch(f"Column {col!r} has level {value!r} not seen during fit.", value) from exc
