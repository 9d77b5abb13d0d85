"""
Low-level solvers for the one-balance regression models.

Both solvers fit an intercept plus zero or more predictors without any
penalty, and keep the coefficient standard errors so the univariate
screening step can form Wald statistics from the same code path.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import scipy.linalg

from ._math import _binary_log_loss_from_logits, _sigmoid

__all__ = ["_LinearLS", "_IRLSLogistic"]


def _design(X: Optional[np.ndarray], n: int) -> np.ndarray:
    """Prepend the intercept column; ``X=None`` gives the intercept-only design."""
    if X is None:
        return np.ones((n, 1), dtype=np.float64)
    X = np.asarray(X, dtype=np.float64)
    if X.ndim == 1:
        X = X[:, None]
    if X.shape[0] != n:
        raise ValueError("X and y must have the same number of rows.")
    return np.column_stack([np.ones(n, dtype=np.float64), X])


class _LinearLS:
    """Ordinary least squares with an intercept."""

    def __init__(self) -> None:
        self.theta_: Optional[np.ndarray] = None
        self.bse_: Optional[np.ndarray] = None
        self.sigma2_: float = float("nan")

    @property
    def intercept_(self) -> float:
        return float(self.theta_[0])

    @property
    def coef_(self) -> np.ndarray:
        return self.theta_[1:]

    def fit(self, X: Optional[np.ndarray], y: np.ndarray) -> "_LinearLS":
        y = np.asarray(y, dtype=np.float64)
        n = y.shape[0]
        D = _design(X, n)
        k = D.shape[1]

        theta, _, _, _ = scipy.linalg.lstsq(D, y)
        resid = y - D @ theta
        dof = n - k
        self.sigma2_ = float(resid @ resid / dof) if dof > 0 else float("nan")
        cov = self.sigma2_ * np.linalg.pinv(D.T @ D)

        self.theta_ = np.asarray(theta, dtype=np.float64)
        self.bse_ = np.sqrt(np.clip(np.diag(cov), 0.0, None))
        return self

    def predict(self, X: Optional[np.ndarray], n: Optional[int] = None) -> np.ndarray:
        if self.theta_ is None:
            raise RuntimeError("Model must be fitted before calling predict().")
        if X is None and n is None:
            raise ValueError("n is required for intercept-only prediction.")
        D = _design(X, n if X is None else np.asarray(X).shape[0])
        return D @ self.theta_


class _IRLSLogistic:
    """
    Unpenalised logistic regression by iteratively reweighted least squares.

    Mirrors the usual GLM recipe: start from the shrunken responses
    ``(y + 0.5) / 2``, iterate weighted least-squares steps on the working
    response and stop once the relative change in deviance drops below
    ``tol``. Separable data are not an error; the solver simply stops at
    ``max_iter`` with large coefficients and ``converged_ = False``.
    """

    def __init__(self, tol: float = 1e-8, max_iter: int = 25) -> None:
        self.tol = float(tol)
        self.max_iter = int(max_iter)
        self.theta_: Optional[np.ndarray] = None
        self.bse_: Optional[np.ndarray] = None
        self.deviance_: float = float("nan")
        self.n_iter_: int = 0
        self.converged_: bool = False

    @property
    def intercept_(self) -> float:
        return float(self.theta_[0])

    @property
    def coef_(self) -> np.ndarray:
        return self.theta_[1:]

    def fit(self, X: Optional[np.ndarray], y: np.ndarray) -> "_IRLSLogistic":
        y = np.asarray(y, dtype=np.float64)
        n = y.shape[0]
        D = _design(X, n)

        mu = (y + 0.5) / 2.0
        eta = np.log(mu / (1.0 - mu))
        dev_old = np.inf
        theta = np.zeros(D.shape[1], dtype=np.float64)
        self.converged_ = False

        for it in range(1, self.max_iter + 1):
            wght = np.maximum(mu * (1.0 - mu), 1e-12)
            z = eta + (y - mu) / wght
            sw = np.sqrt(wght)
            theta, _, _, _ = scipy.linalg.lstsq(D * sw[:, None], z * sw)

            eta = D @ theta
            mu = _sigmoid(eta)
            dev = 2.0 * n * _binary_log_loss_from_logits(y, eta)
            self.n_iter_ = it
            if abs(dev - dev_old) / (abs(dev) + 0.1) < self.tol:
                self.converged_ = True
                break
            dev_old = dev

        wght = np.maximum(mu * (1.0 - mu), 1e-12)
        cov = np.linalg.pinv(D.T @ (D * wght[:, None]))

        self.theta_ = np.asarray(theta, dtype=np.float64)
        self.bse_ = np.sqrt(np.clip(np.diag(cov), 0.0, None))
        self.deviance_ = float(dev)
        return self

    def decision_function(self, X: Optional[np.ndarray], n: Optional[int] = None) -> np.ndarray:
        if self.theta_ is None:
            raise RuntimeError("Model must be fitted before calling decision_function().")
        if X is None and n is None:
            raise ValueError("n is required for intercept-only prediction.")
        D = _design(X, n if X is None else np.asarray(X).shape[0])
        return D @ self.theta_

    def predict_proba(self, X: Optional[np.ndarray], n: Optional[int] = None) -> np.ndarray:
        p = _sigmoid(self.decision_function(X, n))
        return np.column_stack([1.0 - p, p])
