# knnlab/schema.py
# -----------------------------------------------------------------------------
# Column roles for a modeling run: which predictors are numeric, which are
# categorical, which column is the outcome and how it is predicted.
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from .errors import SchemaMismatch

CLASSIFICATION = "classification"
REGRESSION = "regression"
MODES = (CLASSIFICATION, REGRESSION)


@dataclass(frozen=True)
class Schema:
    """
    Fixed description of the columns a pipeline works with.

    Parameters
    ----------
    target : str
        Outcome column.
    mode : {"classification", "regression"}
        Whether the outcome is a class label or a number.
    numeric : tuple of str
        Predictors normalized to zero mean / unit variance.
    categorical : tuple of str
        Predictors one-hot encoded (reference level dropped).
    """

    target: str
    mode: str
    numeric: Tuple[str, ...] = ()
    categorical: Tuple[str, ...] = ()

    def __post_init__(self):
        # accept lists from callers, store tuples
        object.__setattr__(self, "numeric", tuple(self.numeric))
        object.__setattr__(self, "categorical", tuple(self.categorical))

        if self.mode not in MODES:
            raise SchemaMismatch(f"mode must be one of {MODES}, got {self.mode!r}", self.mode)
        if not self.predictors:
            raise SchemaMismatch("Schema needs at least one predictor column.", self.predictors)
        if self.target in self.predictors:
            raise SchemaMismatch(f"Target {self.target!r} is also listed as a predictor.", self.target)
        both = sorted(set(self.numeric) & set(self.categorical))
        if both:
            raise SchemaMismatch(f"Columns listed as both numeric and categorical: {both}", both)
        dupes = sorted({c for c in self.predictors if self.predictors.count(c) > 1})
        if dupes:
            raise SchemaMismatch(f"Duplicate predictor columns: {dupes}", dupes)

    @property
    def predictors(self) -> Tuple[str, ...]:
        return self.numeric + self.categorical

    @property
    def columns(self) -> Tuple[str, ...]:
        return self.predictors + (self.target,)

    @property
    def is_classification(self) -> bool:
        return self.mode == CLASSIFICATION

    def check_columns(self, frame: pd.DataFrame, with_target: bool = False) -> None:
        """Raise SchemaMismatch if `frame` lacks any column this schema needs."""
        needed = self.columns if with_target else self.predictors
        missing = [c for c in needed if c not in frame.columns]
        if missing:
            raise SchemaMismatch(f"Missing required columns: {missing}", missing)

    @classmethod
    def infer(
        cls,
        frame: pd.DataFrame,
        target: str,
        mode: str,
        predictors: Optional[Sequence[str]] = None,
    ) -> "Schema":
        """
        Build a schema by looking at column dtypes.

        Numeric dtypes (except bool) become numeric predictors; everything
        else is treated as categorical. When `predictors` is None every
        column other than the target is used.
        """
        if predictors is None:
            predictors = [c for c in frame.columns if c != target]
        missing = [c for c in list(predictors) + [target] if c not in frame.columns]
        if missing:
            raise SchemaMismatch(f"Missing required columns: {missing}", missing)

        numeric, categorical = [], []
        for col in predictors:
            dtype = frame[col].dtype
            if is_numeric_dtype(dtype) and not is_bool_dtype(dtype):
                numeric.append(col)
            else:
                categorical.append(col)
        return cls(target=target, mode=mode, numeric=tuple(numeric), categorical=tuple(categorical))
