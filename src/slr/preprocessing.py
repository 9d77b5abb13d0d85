"""
Preprocessing utilities for the SLR package.

This module contains
  • input normalisation for compositional matrices (named columns, strictly
    positive entries),
  • the centred log-ratio transform and a minimalist ``StandardScaler``, and
  • the Aitchison variation matrix with its similarity counterpart, which feed
    the clustering step.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import pandas as pd

__all__ = [
    "StandardScaler",
    "aitchison_variation",
    "check_composition",
    "clr",
    "variation_to_similarity",
]


class StandardScaler:
    """
    Minimal replacement for :class:`sklearn.preprocessing.StandardScaler`.

    ``ddof=1`` gives the sample standard deviation used by the screening
    statistics; constant columns keep a unit scale.
    """

    def __init__(self, with_mean: bool = True, with_std: bool = True, ddof: int = 0) -> None:
        self.with_mean = bool(with_mean)
        self.with_std = bool(with_std)
        self.ddof = int(ddof)
        self.mean_: Optional[np.ndarray] = None
        self.scale_: Optional[np.ndarray] = None

    def fit(self, X: np.ndarray, y: Optional[np.ndarray] = None) -> "StandardScaler":
        X = np.asarray(X, dtype=np.float64)
        if self.with_mean:
            self.mean_ = np.nanmean(X, axis=0)
        else:
            self.mean_ = np.zeros(X.shape[1], dtype=np.float64)

        if self.with_std:
            var = np.nanvar(X, axis=0, ddof=self.ddof)
            scale = np.sqrt(var)
            scale[scale == 0.0] = 1.0
            self.scale_ = scale
        else:
            self.scale_ = np.ones(X.shape[1], dtype=np.float64)
        return self

    def transform(self, X: np.ndarray) -> np.ndarray:
        if self.mean_ is None or self.scale_ is None:
            raise RuntimeError("StandardScaler must be fitted before calling transform().")
        X = np.asarray(X, dtype=np.float64)
        return (X - self.mean_) / self.scale_

    def fit_transform(self, X: np.ndarray, y: Optional[np.ndarray] = None) -> np.ndarray:
        return self.fit(X, y).transform(X)


def _ensure_dataframe(
    X: pd.DataFrame | np.ndarray,
    feature_names: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Return ``X`` as a float DataFrame with one named column per component."""
    if isinstance(X, pd.DataFrame):
        df = X.copy()
        df.columns = [str(c) for c in df.columns]
        return df.astype(np.float64)
    arr = np.asarray(X, dtype=np.float64)
    if arr.ndim != 2:
        raise ValueError("X must be a 2D matrix of compositions (samples x components).")
    if feature_names is None:
        feature_names = [f"V{j + 1}" for j in range(arr.shape[1])]
    feature_names = [str(c) for c in feature_names]
    if len(feature_names) != arr.shape[1]:
        raise ValueError(
            f"feature_names has {len(feature_names)} entries but X has {arr.shape[1]} columns."
        )
    return pd.DataFrame(arr, columns=feature_names)


def check_composition(
    X: pd.DataFrame | np.ndarray,
    feature_names: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Validate a compositional matrix and return it as a named DataFrame.

    Every entry must be finite and strictly positive: log-ratios are undefined
    otherwise and zeros are not replaced.
    """
    df = _ensure_dataframe(X, feature_names)
    if df.columns.duplicated().any():
        raise ValueError("Component names must be unique.")
    values = df.to_numpy()
    if not np.all(np.isfinite(values)):
        raise ValueError("Compositional matrix contains missing or infinite entries.")
    if np.any(values <= 0.0):
        raise ValueError(
            "Compositional matrix contains zero or negative entries; "
            "log-ratios require strictly positive proportions."
        )
    return df


def clr(X: pd.DataFrame | np.ndarray) -> pd.DataFrame | np.ndarray:
    """Centred log-ratio transform, row by row: ``log(x) - mean(log(x))``."""
    if isinstance(X, pd.DataFrame):
        logX = np.log(X)
        return logX.sub(logX.mean(axis=1), axis=0)
    logX = np.log(np.asarray(X, dtype=np.float64))
    return logX - logX.mean(axis=1, keepdims=True)


def aitchison_variation(X: pd.DataFrame | np.ndarray) -> pd.DataFrame | np.ndarray:
    """
    Aitchison variation matrix of the columns of ``X``.

    Entry (j, k) is the sample variance of ``log(x_j) - log(x_k)``; the matrix
    is symmetric with a zero diagonal. A DataFrame input yields a DataFrame
    labelled by its column names on both axes.
    """
    values = np.asarray(X, dtype=np.float64)
    if np.any(values <= 0.0):
        raise ValueError("Aitchison variation requires strictly positive entries.")
    logX = np.log(values)
    cov = np.atleast_2d(np.cov(logX, rowvar=False, ddof=1))
    d = np.diag(cov)
    A = d[:, None] + d[None, :] - 2.0 * cov
    A = 0.5 * (A + A.T)
    A = np.clip(A, 0.0, None)
    np.fill_diagonal(A, 0.0)
    if isinstance(X, pd.DataFrame):
        return pd.DataFrame(A, index=X.columns, columns=X.columns)
    return A


def variation_to_similarity(A: pd.DataFrame | np.ndarray) -> pd.DataFrame | np.ndarray:
    """Similarity used by spectral clustering: ``max(A) - A`` elementwise."""
    return np.max(np.asarray(A)) - A
