# knnlab/config.py
# -----------------------------------------------------------------------------
# Run configuration for `python -m knnlab.pipeline`.
#
# Outcome column, mode, predictors and the k candidates must be given on the
# command line; every other setting has a default shown by --help.
# -----------------------------------------------------------------------------

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .metrics import get_metric
from .schema import CLASSIFICATION, MODES, REGRESSION
from .tuning import GRID_SCALES, k_grid

DEFAULT_METRIC = {CLASSIFICATION: "accuracy", REGRESSION: "rmse"}


@dataclass
class RunConfig:
    data: Path
    outcome: str
    mode: str
    predictors: List[str]
    ks: Optional[List[int]] = None
    k_range: Optional[Tuple[int, int, int]] = None
    k_scale: str = "linear"
    train_proportion: float = 0.75
    stratify: Optional[str] = None
    seed: int = 42
    v: int = 10
    repeats: int = 1
    metric: Optional[str] = None
    out_dir: Path = field(default_factory=lambda: Path("artifacts"))

    def __post_init__(self):
        self.data = Path(self.data)
        self.out_dir = Path(self.out_dir)
        if self.metric is None and self.mode in DEFAULT_METRIC:
            self.metric = DEFAULT_METRIC[self.mode]

    def validate(self) -> "RunConfig":
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode!r}")
        if not self.predictors:
            raise ValueError("At least one predictor column is required.")
        if (self.ks is None) == (self.k_range is None):
            raise ValueError("Give exactly one of an explicit k list or a k range.")
        if self.k_scale not in GRID_SCALES:
            raise ValueError(f"k_scale must be one of {GRID_SCALES}, got {self.k_scale!r}")
        spec = get_metric(self.metric)
        if spec.mode != self.mode:
            raise ValueError(f"Metric {spec.name!r} is for {spec.mode}, run mode is {self.mode}")
        return self

    def candidate_ks(self) -> List[int]:
        if self.ks is not None:
            return list(self.ks)
        low, high, levels = self.k_range
        return k_grid(low, high, levels, scale=self.k_scale)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="knnlab",
        description="Tune k for a KNN model by repeated cross-validation and evaluate on a test split.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--data", required=True, help="CSV file with predictors and outcome.")
    p.add_argument("--outcome", required=True, help="Outcome column.")
    p.add_argument("--mode", required=True, choices=MODES, help="Prediction mode.")
    p.add_argument("--predictors", required=True, nargs="+", help="Predictor columns.")

    ks = p.add_mutually_exclusive_group(required=True)
    ks.add_argument("--k", type=int, nargs="+", dest="ks", help="Explicit candidate k values.")
    ks.add_argument("--k-range", type=int, nargs=3, metavar=("LOW", "HIGH", "LEVELS"),
                    help="Generate LEVELS candidate k values between LOW and HIGH.")
    p.add_argument("--k-scale", choices=GRID_SCALES, default="linear", help="Spacing for --k-range.")

    p.add_argument("--train-proportion", type=float, default=0.75, help="Share of rows used for training.")
    p.add_argument("--stratify", default=None, help="Column to stratify the split and folds on.")
    p.add_argument("--seed", type=int, default=42, help="Random seed for split and folds.")
    p.add_argument("--folds", type=int, default=10, dest="v", help="Cross-validation folds (v).")
    p.add_argument("--repeats", type=int, default=1, help="Cross-validation repeats.")
    p.add_argument("--metric", default=None,
                   help="Metric driving selection (accuracy, macro_f1, rmse); defaults to accuracy "
                        "for classification and rmse for regression.")
    p.add_argument("--out-dir", default="artifacts", help="Where metrics JSON and figures are written.")
    p.add_argument("--verbose", action="store_true", help="Log per-fold scores.")
    return p


def parse_args(argv: Optional[Sequence[str]] = None) -> Tuple[RunConfig, argparse.Namespace]:
    args = build_parser().parse_args(argv)
    config = RunConfig(
        data=args.data,
        outcome=args.outcome,
        mode=args.mode,
        predictors=list(args.predictors),
        ks=args.ks,
        k_range=tuple(args.k_range) if args.k_range else None,
        k_scale=args.k_scale,
        train_proportion=args.train_proportion,
        stratify=args.stratify,
        seed=args.seed,
        v=args.v,
        repeats=args.repeats,
        metric=args.metric,
        out_dir=args.out_dir,
    )
    return config.validate(), args
