"""KNN modeling pipeline with cross-validated selection of k."""

from .cv import CrossValidator, CVPlan, Fold
from .errors import (
    EmptyInput,
    InsufficientData,
    InvalidFoldCount,
    InvalidHyperparameter,
    InvalidProportion,
    KNNLabError,
    LengthMismatch,
    NoValidCandidate,
    SchemaMismatch,
    UnknownLabel,
)
from .features import FeatureTransformer, TransformState
from .knn import DistanceIndex, KNNPredictor
from .metrics import METRICS, MetricSpec, accuracy, confusion_matrix, get_metric, macro_f1, rmse
from .partition import Partitioner, Split
from .pipeline import FittedPipeline, Pipeline
from .schema import Schema
from .tuning import GridTuner, TuningResult, k_grid

__all__ = [
    "CVPlan",
    "CrossValidator",
    "DistanceIndex",
    "EmptyInput",
    "FeatureTransformer",
    "FittedPipeline",
    "Fold",
    "GridTuner",
    "InsufficientData",
    "InvalidFoldCount",
    "InvalidHyperparameter",
    "InvalidProportion",
    "KNNLabError",
    "KNNPredictor",
    "LengthMismatch",
    "METRICS",
    "MetricSpec",
    "NoValidCandidate",
    "Partitioner",
    "Pipeline",
    "Schema",
    "SchemaMismatch",
    "Split",
    "TransformState",
    "TuningResult",
    "UnknownLabel",
    "accuracy",
    "confusion_matrix",
    "get_metric",
    "k_grid",
    "macro_f1",
    "rmse",
]
