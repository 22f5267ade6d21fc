# knnlab/report.py
# -----------------------------------------------------------------------------
# Presentation helpers for a finished run:
#   * metrics JSON
#   * tuning curve PNG (metric vs. k, with standard-error bars)
#   * confusion matrix PNG (classification)
# Nothing in the modeling core depends on this module.
# -----------------------------------------------------------------------------

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import matplotlib.pyplot as plt
import pandas as pd

from .tuning import TuningResult


def save_metrics_json(metrics: Dict[str, Any], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(metrics, indent=2, default=str))
    return out_path


def save_tuning_curve(result: TuningResult, out_path: Path, title: str) -> Path:
    """
    Plot the cross-validated metric for each valid k.
    Invalid k values are marked along the x axis.
    """
    frame = result.to_frame()
    ok = frame[frame["valid"]]
    bad = frame[~frame["valid"]]

    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.figure()
    plt.errorbar(ok["k"], ok["mean"], yerr=ok["std_err"].fillna(0.0), marker="o", capsize=3)
    if len(bad):
        y0 = ok["mean"].min() if len(ok) else 0.0
        plt.scatter(bad["k"], [y0] * len(bad), marker="x", color="red", label="no valid aggregate")
        plt.legend()
    plt.title(title)
    plt.xlabel("k (neighbors)")
    plt.ylabel(result.metric.name)
    plt.tight_layout()
    plt.savefig(out_path, dpi=140)
    plt.close()
    return out_path


def save_confusion_png(frame: pd.DataFrame, out_path: Path, title: str) -> Path:
    """
    Save a basic confusion matrix plot as a PNG.
    `frame` is metrics.confusion_frame output (rows actual, columns predicted).
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)
    labels = [str(c) for c in frame.columns]
    plt.figure()
    plt.imshow(frame.to_numpy(), interpolation='nearest')
    plt.title(title)
    plt.xticks(range(len(labels)), labels, rotation=45)
    plt.yticks(range(len(labels)), labels)
    plt.xlabel("Predicted")
    plt.ylabel("True")
    plt.colorbar()
    plt.tight_layout()
    plt.savefig(out_path, dpi=140)
    plt.close()
    return out_path
