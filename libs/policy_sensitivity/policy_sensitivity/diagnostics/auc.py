"""Discrimination diagnostics for first-stage policy models."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from sklearn.metrics import roc_auc_score


def compute_auc(
    preds: NDArray[Any] | pd.Series,
    labels: NDArray[Any] | pd.Series,
    ret_num: bool = False,
) -> float | str:
    """Area under the ROC curve of ``preds`` against binary ``labels``.

    Args:
        preds: Predicted scores
        labels: Binary labels
        ret_num: Return a float instead of a display string

    Returns:
        AUC formatted to three decimals, or a float when ``ret_num``. If the
        labels contain a single class the AUC is undefined and ``"-"`` (or
        ``nan``) is returned.
    """
    preds = np.asarray(preds, dtype=float)
    labels = np.asarray(labels).astype(bool)
    if len(preds) != len(labels):
        raise ValueError(
            f"preds has length {len(preds)} but labels has length {len(labels)}"
        )

    if len(np.unique(labels)) < 2:
        return float("nan") if ret_num else "-"

    auc = float(roc_auc_score(labels, preds))
    if ret_num:
        return auc
    return f"{auc:.3f}"
