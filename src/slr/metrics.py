"""
Held-out error measures used by the SLR cross-validation.

``roc_auc_score`` mirrors scikit-learn's binary ROC AUC and raises
``ValueError`` when only one class is present, which cross-validation records
as a missing cell.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np

__all__ = [
    "mean_squared_error",
    "misclassification_rate",
    "roc_auc_score",
]


def mean_squared_error(
    y_true: Iterable[float] | np.ndarray,
    y_pred: Iterable[float] | np.ndarray,
) -> float:
    yt = np.asarray(y_true, dtype=np.float64)
    yp = np.asarray(y_pred, dtype=np.float64)
    return float(np.mean((yt - yp) ** 2))


def misclassification_rate(
    y_true: Iterable[int] | np.ndarray,
    probas_pred: Iterable[float] | np.ndarray,
    thresh: float = 0.5,
) -> float:
    """Share of samples whose label disagrees with ``probas_pred > thresh``."""
    yt = np.asarray(y_true, dtype=np.float64)
    yp = np.asarray(probas_pred, dtype=np.float64) > thresh
    return float(np.mean(yp != (yt == 1.0)))


def _rankdata_average(a: np.ndarray) -> np.ndarray:
    """Tie-aware ranking with averaging; helper for ROC AUC."""
    order = np.argsort(a, kind="mergesort")
    ranks = np.empty_like(order, dtype=np.float64)
    i = 0
    n = a.size
    while i < n:
        j = i + 1
        while j < n and a[order[j]] == a[order[i]]:
            j += 1
        rank = 0.5 * (i + j - 1) + 1.0
        ranks[order[i:j]] = rank
        i = j
    return ranks


def roc_auc_score(
    y_true: Iterable[int] | np.ndarray,
    y_score: Iterable[float] | np.ndarray,
) -> float:
    """
    Area under the ROC curve for binary classification.

    Labels must be coded {0, 1}; higher scores are taken to indicate class 1.
    """
    y = np.asarray(y_true, dtype=np.float64)
    if not np.all(np.isin(y, (0.0, 1.0))):
        raise ValueError("roc_auc_score currently supports binary labels {0,1}.")
    scores = np.asarray(y_score, dtype=np.float64)
    if scores.shape != y.shape:
        raise ValueError("y_true and y_score must have the same length.")

    pos = int(np.sum(y == 1.0))
    neg = int(np.sum(y == 0.0))
    if pos == 0 or neg == 0:
        raise ValueError("roc_auc_score is undefined when only one class is present.")

    ranks = _rankdata_average(scores)
    sum_ranks_pos = np.sum(ranks[y == 1.0])
    u = sum_ranks_pos - pos * (pos + 1) / 2.0
    return float(u / (pos * neg))
