# knnlab/errors.py
# -----------------------------------------------------------------------------
# Validation errors raised by the modeling pipeline.
# Every error keeps the offending value on `.value` so callers can report it.
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Any


class KNNLabError(ValueError):
    """Base class for local validation failures in knnlab."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message)
        self.value = value


class SchemaMismatch(KNNLabError):
    """A row is missing a schema column, or holds a value the fit never saw."""


class InvalidHyperparameter(KNNLabError):
    """k (or a k-grid setting) is outside its valid range."""


class InvalidProportion(KNNLabError):
    """Train proportion not strictly between 0 and 1."""


class InsufficientData(KNNLabError):
    """Too few rows for the requested operation."""


class InvalidFoldCount(KNNLabError):
    """Fold count (or repeat count) unusable for the dataset."""


class EmptyInput(KNNLabError):
    """An empty sequence was given where values are required."""


class LengthMismatch(KNNLabError):
    """Paired sequences differ in length."""


class UnknownLabel(KNNLabError):
    """A label outside the fixed label set reached the evaluator."""


class NoValidCandidate(KNNLabError):
    """Every candidate k failed during tuning."""
