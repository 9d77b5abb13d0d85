"""
Balances: the log-ratio between the geometric means of two groups of
components, defined by a sign vector (sequential binary partition) over the
columns of a compositional matrix.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

__all__ = ["has_both_groups", "select_components", "slr_from_contrast"]


def slr_from_contrast(x: pd.DataFrame | np.ndarray, contrast) -> np.ndarray:
    """
    Balance of every sample of ``x`` under ``contrast``.

    ``contrast`` is aligned with the columns of ``x`` by position and takes
    values in {-1, 0, 1}. The balance is the row mean of ``log(x)`` over the
    +1 columns minus the row mean over the -1 columns; 0 columns are ignored.
    """
    X = np.asarray(x, dtype=np.float64)
    c = np.asarray(contrast).ravel()

    if X.ndim != 2 or c.shape[0] != X.shape[1]:
        raise ValueError("invalid contrast: contrast must have length ncol(x) = D.")
    if not np.all(np.isin(c, (-1, 0, 1))):
        raise ValueError("invalid contrast: contrast must contain [-1, 0, 1] only.")

    pos = c == 1
    neg = c == -1
    if not pos.any() or not neg.any():
        raise ValueError("invalid contrast: both the +1 and the -1 group must be non-empty.")

    logX = np.log(X)
    return logX[:, pos].mean(axis=1) - logX[:, neg].mean(axis=1)


def select_components(x: pd.DataFrame, sbp: pd.Series) -> pd.DataFrame:
    """Restrict ``x`` to the components named in ``sbp``, in ``sbp`` order."""
    missing = [name for name in sbp.index if name not in x.columns]
    if missing:
        raise ValueError(f"Input is missing components: {missing}")
    return x.loc[:, list(sbp.index)]


def has_both_groups(sbp: pd.Series) -> bool:
    values = np.asarray(sbp)
    return bool(np.any(values == 1) and np.any(values == -1))
