# knnlab/pipeline.py
# -----------------------------------------------------------------------------
# Fit/predict pipeline (FeatureTransformer + KNNPredictor) and the
# train-tune-evaluate workflow built on it.
#
# - Pipeline(schema, k).fit(train) -> FittedPipeline
# - train_and_eval(config):
#     split -> CV plan on train -> grid search over k -> refit with best k
#     -> evaluate on test, write metrics JSON + figures
#
# Usage (from repo root):
#   python -m knnlab.pipeline --data data/patients.csv --outcome risk \
#       --mode classification --predictors age bmi smoker \
#       --k-range 1 50 10 --stratify risk --folds 5 --repeats 3
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from . import report
from .config import RunConfig, parse_args
from .cv import CrossValidator
from .data import drop_incomplete, load_frame
from .errors import SchemaMismatch
from .features import FeatureTransformer
from .knn import KNNPredictor
from .metrics import accuracy, confusion_frame, confusion_matrix, macro_f1, rmse
from .partition import Partitioner
from .schema import Schema
from .tuning import GridTuner, TuningResult

logger = logging.getLogger(__name__)


# ------------------------------ fit / predict ------------------------------ #

class FittedPipeline:
    """Transformer and predictor fitted on the same training rows."""

    def __init__(self, schema: Schema, transformer: FeatureTransformer, predictor: KNNPredictor,
                 labels: Sequence = ()):
        self.schema = schema
        self.transformer = transformer
        self.predictor = predictor
        self.labels = list(labels)

    @property
    def k(self) -> int:
        return self.predictor.k

    def predict(self, rows: pd.DataFrame) -> np.ndarray:
        """Predictions in the same order as `rows`."""
        return self.predictor.predict(self.transformer.transform(rows))

    def rank_labels(self, rows: pd.DataFrame, top: Optional[int] = None):
        return self.predictor.rank_labels(self.transformer.transform(rows), top=top)


class Pipeline:
    """
    Unfitted KNN pipeline for one value of k.

    Parameters
    ----------
    schema : Schema
        Column roles and prediction mode.
    k : int
        Number of neighbors.
    unknown_levels : {"reject", "zero"}
        Passed to FeatureTransformer.
    """

    def __init__(self, schema: Schema, k: int, unknown_levels: str = "reject", batch_size: int = 256):
        self.schema = schema
        self.k = k
        self.unknown_levels = unknown_levels
        self.batch_size = batch_size

    @classmethod
    def factory(cls, schema: Schema, **kwargs) -> Callable[[int], "Pipeline"]:
        """k -> Pipeline, for GridTuner."""
        def make(k: int) -> "Pipeline":
            return cls(schema, k, **kwargs)
        return make

    def fit(self, train_rows: pd.DataFrame) -> FittedPipeline:
        self.schema.check_columns(train_rows, with_target=True)
        targets = self._targets(train_rows)

        transformer = FeatureTransformer(self.schema, unknown_levels=self.unknown_levels).fit(train_rows)
        predictor = KNNPredictor(k=self.k, mode=self.schema.mode, batch_size=self.batch_size)
        predictor.fit(transformer.transform(train_rows), targets)

        labels = pd.unique(targets).tolist() if self.schema.is_classification else []
        return FittedPipeline(self.schema, transformer, predictor, labels=labels)

    def _targets(self, rows: pd.DataFrame) -> np.ndarray:
        col = rows[self.schema.target]
        if col.isna().any():
            raise SchemaMismatch(f"Target {self.schema.target!r} has missing values.", self.schema.target)
        if self.schema.is_classification:
            return col.to_numpy()
        try:
            return pd.to_numeric(col, errors="raise").to_numpy(dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise SchemaMismatch(
                f"Regression target {self.schema.target!r} holds non-numeric values.", self.schema.target
            ) from exc


# ----------------------------- eval utilities ----------------------------- #

def evaluate(fitted: FittedPipeline, predicted: np.ndarray, actual: np.ndarray) -> Dict[str, Any]:
    """Test-set metrics for the pipeline's mode."""
    if fitted.schema.is_classification:
        cm = confusion_matrix(predicted, actual, fitted.labels)
        return {
            "accuracy": accuracy(predicted, actual),
            "macro_f1": macro_f1(predicted, actual),
            "confusion": [
                {"actual": t, "predicted": q, "count": n} for (t, q), n in cm.items()
            ],
        }
    baseline = np.full(len(actual), float(np.mean(fitted.predictor.index_.y_)))
    return {
        "rmse": rmse(predicted, actual),
        "rmse_mean_baseline": rmse(baseline, actual),
    }


# ------------------------------ train & eval ------------------------------ #

def train_and_eval(config: RunConfig, write_artifacts: bool = True) -> Dict[str, Any]:
    """
    Split, tune k by cross-validation on the training rows, refit with the
    best k and evaluate on the test rows. Returns a dict of metrics and paths.
    """
    columns: List[str] = config.predictors + [config.outcome]
    if config.stratify is not None:
        columns.append(config.stratify)
    columns = list(dict.fromkeys(columns))
    frame = drop_incomplete(load_frame(config.data, columns=columns), columns=columns)
    schema = Schema.infer(frame, config.outcome, config.mode, predictors=config.predictors)
    logger.info("Schema: numeric=%s categorical=%s", list(schema.numeric), list(schema.categorical))

    split = Partitioner(config.train_proportion, stratify=config.stratify, seed=config.seed).split(frame)
    train_df, test_df = split.train(frame), split.test(frame)

    plan = CrossValidator(config.v, repeats=config.repeats, stratify=config.stratify,
                          seed=config.seed).plan(train_df)
    tuner = GridTuner(Pipeline.factory(schema), config.candidate_ks(), config.metric)
    result: TuningResult = tuner.tune(train_df, plan)
    best_k = tuner.best_k()

    fitted = Pipeline(schema, best_k).fit(train_df)
    predicted = fitted.predict(test_df)
    actual = test_df[schema.target].to_numpy()

    metrics: Dict[str, Any] = {
        "data": str(config.data),
        "outcome": schema.target,
        "mode": schema.mode,
        "n_train": len(train_df),
        "n_test": len(test_df),
        "tuning_metric": result.metric.name,
        "tuning": {str(k): v for k, v in result.as_mapping().items()},
        "invalid_ks": result.invalid_ks,
        "best_k": best_k,
    }
    metrics.update(evaluate(fitted, predicted, actual))

    summary: Dict[str, Any] = {"metrics": metrics}
    if write_artifacts:
        summary.update(_write_artifacts(config, result, fitted, predicted, actual, metrics))
    return summary


def _write_artifacts(config, result, fitted, predicted, actual, metrics) -> Dict[str, str]:
    name = f"{config.data.stem}_{config.outcome}_knn"
    out = config.out_dir
    paths = {
        "metrics_path": str(report.save_metrics_json(metrics, out / f"metrics_{name}.json")),
        "tuning_path": str(report.save_tuning_curve(
            result, out / f"tuning_{name}.png", f"CV {result.metric.name} by k ({name})")),
    }
    if fitted.schema.is_classification:
        cm = confusion_frame(confusion_matrix(predicted, actual, fitted.labels), fitted.labels)
        paths["cm_test_path"] = str(report.save_confusion_png(
            cm, out / f"confusion_{name}_test.png", f"Confusion (test) - k={fitted.k}"))
    return paths


# ---------------------------------- CLI ---------------------------------- #

def main(argv: Optional[Sequence[str]] = None):
    config, args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    summary = train_and_eval(config)

    # Console summary
    print("\n=== Tuning complete ===")
    for k, v in summary["metrics"].items():
        if k in ("tuning", "confusion"):
            continue
        if isinstance(v, float):
            print(f"{k}: {v:.4f}")
        else:
            print(f"{k}: {v}")
    print("\nSaved:")
    for key in ("metrics_path", "tuning_path", "cm_test_path"):
        if key in summary:
            print(f"  {key.replace('_path', '')}: {summary[key]}")


if __name__ == "__main__":
    main()
