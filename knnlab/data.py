# knnlab/data.py
# -----------------------------------------------------------------------------
# Loading a tabular dataset and enforcing the "no missing values" precondition.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import pandas as pd

from .errors import SchemaMismatch

logger = logging.getLogger(__name__)


def load_frame(path: Union[str, Path], columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Read a CSV file, keeping only `columns` when given.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")
    frame = pd.read_csv(path)
    if columns is not None:
        missing = [c for c in columns if c not in frame.columns]
        if missing:
            raise SchemaMismatch(f"Missing required columns in {path.name}: {missing}", missing)
        frame = frame[list(columns)]
    logger.info("Loaded %d rows x %d columns from %s", len(frame), frame.shape[1], path)
    return frame


def drop_incomplete(frame: pd.DataFrame, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Drop rows with a missing value in `columns` (all columns by default)."""
    subset = list(columns) if columns is not None else None
    kept = frame.dropna(subset=subset).reset_index(drop=True)
    dropped = len(frame) - len(kept)
    if dropped:
        logger.warning("Dropped %d of %d rows with missing values", dropped, len(frame))
    return kept
