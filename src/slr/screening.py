"""Univariate screening scores of each component against the response."""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd
from scipy import stats

from ._solvers import _IRLSLogistic
from .options import ResponseType, ScreenMethod, _require_implemented
from .preprocessing import StandardScaler, check_composition, clr

__all__ = ["feature_scores"]


def _wald_continuous(xs: np.ndarray, y: np.ndarray, s0_perc: Optional[float]) -> np.ndarray:
    n = y.shape[0]
    yc = y - np.mean(y)
    sxx = np.sum(xs ** 2, axis=0)
    sxy = xs.T @ yc
    syy = float(yc @ yc)
    numer = sxy / sxx
    sd = np.sqrt((syy / sxx - numer ** 2) / (n - 2))

    if s0_perc is None:
        fudge = float(np.median(sd))
    elif s0_perc >= 0:
        fudge = float(np.quantile(sd, s0_perc))
    else:
        fudge = 0.0

    wald = numer / (sd + fudge)
    return stats.t.cdf(np.abs(wald), df=n - 2)


def _wald_binary(xs: np.ndarray, y: np.ndarray) -> np.ndarray:
    z = np.empty(xs.shape[1], dtype=np.float64)
    for j in range(xs.shape[1]):
        fit = _IRLSLogistic().fit(xs[:, j], y)
        z[j] = fit.theta_[1] / fit.bse_[1]
    return stats.norm.cdf(np.abs(z))


def feature_scores(
    x: pd.DataFrame | np.ndarray,
    y,
    screen_method="correlation",
    response_type="continuous",
    s0_perc: Optional[float] = 0.0,
) -> pd.Series:
    """
    Association score of every component with the response.

    Components are compared on the centred log-ratio scale.

    * ``correlation``: Pearson correlation of each clr column with ``y``
      (signed; screening thresholds its absolute value).
    * ``wald`` with a continuous response: standardised clr columns are
      regressed one at a time on the centred response; the slope over its
      standard error plus a fudge term is mapped through the Student-t CDF
      with ``n - 2`` degrees of freedom. The fudge term is the median
      standard error when ``s0_perc`` is None, the ``s0_perc`` quantile of the
      standard errors when ``s0_perc >= 0`` and zero otherwise.
    * ``wald`` with a binary response: Wald z statistic of a univariate
      logistic fit per standardised clr column, mapped through the standard
      normal CDF of its absolute value.

    Returns
    -------
    pandas.Series
        One score per original component, indexed by component name.
    """
    method = ScreenMethod.coerce(screen_method)
    rtype = ResponseType.coerce(response_type)
    _require_implemented(rtype)

    X = check_composition(x)
    y = np.asarray(y, dtype=np.float64).ravel()
    if y.shape[0] != X.shape[0]:
        raise ValueError("x and y must have the same number of rows.")

    xclr = clr(X).to_numpy()

    if method is ScreenMethod.CORRELATION:
        xc = xclr - xclr.mean(axis=0)
        yc = y - y.mean()
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = (xc.T @ yc) / np.sqrt(np.sum(xc ** 2, axis=0) * float(yc @ yc))
    else:
        xs = StandardScaler(ddof=1).fit_transform(xclr)
        if rtype is ResponseType.CONTINUOUS:
            scores = _wald_continuous(xs, y, s0_perc)
        else:
            scores = _wald_binary(xs, y)

    return pd.Series(np.asarray(scores, dtype=np.float64), index=X.columns, name="score")
