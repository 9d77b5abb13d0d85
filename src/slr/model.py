"""
Supervised log-ratio (SLR) balance regression.

:func:`slr` screens the components, splits the survivors into two groups,
forms their balance and fits a one-predictor linear or logistic model;
:func:`predict_slr` applies a fitted model to new compositions.
:class:`SupervisedLogRatios` wraps both behind a scikit-learn-inspired API.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ._math import _as_generator, _sigmoid
from ._solvers import _IRLSLogistic, _LinearLS
from .balance import has_both_groups, select_components, slr_from_contrast
from .clustering import hierarchical_clustering, spectral_clustering
from .metrics import misclassification_rate
from .options import ClusterMethod, ResponseType, ScreenMethod, _require_implemented
from .preprocessing import (
    _ensure_dataframe,
    aitchison_variation,
    check_composition,
    variation_to_similarity,
)
from .screening import feature_scores

__all__ = [
    "BalanceModel",
    "FittedModel",
    "InterceptOnlyModel",
    "SupervisedLogRatios",
    "predict_slr",
    "slr",
]

_Solver = Union[_LinearLS, _IRLSLogistic]


@dataclass(frozen=True, eq=False)
class InterceptOnlyModel:
    """Fallback fit used when fewer than two components survive screening."""

    feature_scores: pd.Series
    theta: np.ndarray
    fit: _Solver
    response_type: ResponseType

    @property
    def intercept(self) -> float:
        return float(self.theta[0])


@dataclass(frozen=True, eq=False)
class BalanceModel:
    """
    One-balance regression model.

    ``sbp`` is the sign vector over the screened components, ``aitchison_var``
    the variation matrix it was derived from and ``cluster_mat`` the matrix
    the partitioner actually consumed (the similarity for spectral clustering,
    the variation for hierarchical clustering). ``theta`` is
    ``[intercept, slope]``.
    """

    sbp: pd.Series
    aitchison_var: pd.DataFrame
    cluster_mat: pd.DataFrame
    feature_scores: pd.Series
    theta: np.ndarray
    fit: _Solver
    response_type: ResponseType

    @property
    def intercept(self) -> float:
        return float(self.theta[0])

    @property
    def slope(self) -> float:
        return float(self.theta[1])

    @property
    def numerator(self) -> List[str]:
        return [str(name) for name, s in self.sbp.items() if s == 1]

    @property
    def denominator(self) -> List[str]:
        return [str(name) for name, s in self.sbp.items() if s == -1]


FittedModel = Union[BalanceModel, InterceptOnlyModel]


def _check_response(y, n: int, response_type: ResponseType) -> np.ndarray:
    y_arr = np.asarray(y, dtype=np.float64).ravel()
    if y_arr.shape[0] != n:
        raise ValueError("x and y must have the same number of rows.")
    if response_type is ResponseType.BINARY and not np.all(np.isin(y_arr, (0.0, 1.0))):
        raise ValueError("A binary response must be coded as 0/1.")
    return y_arr


def _fit_regression(balance: Optional[np.ndarray], y: np.ndarray, response_type: ResponseType) -> _Solver:
    if response_type is ResponseType.BINARY:
        return _IRLSLogistic().fit(balance, y)
    return _LinearLS().fit(balance, y)


def slr(
    x: pd.DataFrame | np.ndarray,
    y,
    screen_method="correlation",
    cluster_method="spectral",
    response_type="continuous",
    threshold: Optional[float] = None,
    s0_perc: Optional[float] = 0.0,
    zeta: float = 0.0,
    x_unlabeled: Optional[pd.DataFrame | np.ndarray] = None,
    use_unlabeled: bool = False,
    positive_slope: bool = False,
    random_state=None,
    *,
    feature_names: Optional[Sequence[str]] = None,
) -> FittedModel:
    """
    Fit a supervised log-ratio model.

    Parameters
    ----------
    x :
        Strictly positive compositions (samples x components).
    y :
        Continuous response, or 0/1 labels for ``response_type="binary"``.
    screen_method :
        ``"correlation"`` or ``"wald"`` (see :func:`~slr.screening.feature_scores`).
    cluster_method :
        ``"spectral"`` or ``"hierarchical"``. Spectral clustering is always
        used when exactly two components survive screening.
    response_type :
        ``"continuous"`` or ``"binary"``; ``"survival"`` is not implemented.
    threshold :
        Components with ``|score| >= threshold`` are kept. ``None`` keeps all.
    s0_perc :
        Fudge percentile for the continuous Wald score.
    zeta :
        Laplacian perturbation for spectral clustering.
    x_unlabeled, use_unlabeled :
        Extra compositions without a response, stacked under ``x`` when
        computing the Aitchison variation (never used in the regression).
    positive_slope :
        Flip the partition when needed so the balance coefficient is >= 0.
    random_state :
        Seed or ``numpy.random.Generator`` for the k-means restarts.

    Returns
    -------
    BalanceModel or InterceptOnlyModel
        The intercept-only model is returned, silently, when fewer than two
        components pass the threshold or the partition collapses to one group.
    """
    smethod = ScreenMethod.coerce(screen_method)
    cmethod = ClusterMethod.coerce(cluster_method)
    rtype = ResponseType.coerce(response_type)
    _require_implemented(rtype)

    X = check_composition(x, feature_names)
    y_arr = _check_response(y, X.shape[0], rtype)
    rng = _as_generator(random_state)

    scores = feature_scores(X, y_arr, smethod, rtype, s0_perc)
    if threshold is None:
        which = np.ones(X.shape[1], dtype=bool)
    else:
        which = np.abs(scores.to_numpy()) >= threshold

    def _intercept_only() -> InterceptOnlyModel:
        fit = _fit_regression(None, y_arr, rtype)
        return InterceptOnlyModel(
            feature_scores=scores, theta=fit.theta_.copy(), fit=fit, response_type=rtype
        )

    if int(np.sum(which)) < 2:
        return _intercept_only()

    x_reduced = X.loc[:, which]
    if use_unlabeled:
        if x_unlabeled is None:
            raise ValueError("use_unlabeled is True but x_unlabeled is missing.")
        XU = check_composition(x_unlabeled, None if isinstance(x_unlabeled, pd.DataFrame) else X.columns)
        if list(XU.columns) != list(X.columns):
            raise ValueError(
                "x and x_unlabeled don't have the same components; cannot use the unlabeled data."
            )
        all_reduced = pd.concat([X, XU], axis=0, ignore_index=True).loc[:, which]
        A = aitchison_variation(all_reduced)
    else:
        A = aitchison_variation(x_reduced)

    if cmethod is ClusterMethod.SPECTRAL or A.shape[0] == 2:
        cluster_mat = variation_to_similarity(A)
        sbp = spectral_clustering(cluster_mat, zeta=zeta, random_state=rng)
    else:
        cluster_mat = A
        sbp = hierarchical_clustering(A)

    if not has_both_groups(sbp):
        return _intercept_only()

    balance = slr_from_contrast(select_components(x_reduced, sbp), sbp)
    fit = _fit_regression(balance, y_arr, rtype)

    if positive_slope and fit.theta_[1] < 0:
        sbp = -sbp
        balance = slr_from_contrast(select_components(x_reduced, sbp), sbp)
        fit = _fit_regression(balance, y_arr, rtype)

    return BalanceModel(
        sbp=sbp,
        aitchison_var=A,
        cluster_mat=cluster_mat,
        feature_scores=scores,
        theta=fit.theta_.copy(),
        fit=fit,
        response_type=rtype,
    )


def predict_slr(
    model: FittedModel,
    newdata: Optional[pd.DataFrame | np.ndarray] = None,
    response_type=None,
) -> np.ndarray:
    """
    Predict from a fitted SLR model.

    Binary models return probabilities, continuous models the linear
    predictor ``intercept + slope * balance``. An intercept-only model
    returns ``sigmoid(intercept)`` for every row, whatever the response type.
    Arrays without column names are labelled with the training component
    names.
    """
    if newdata is None:
        raise ValueError("No new data provided!")
    rtype = model.response_type if response_type is None else ResponseType.coerce(response_type)
    _require_implemented(rtype)

    names = list(model.feature_scores.index)
    if isinstance(newdata, pd.DataFrame):
        df = _ensure_dataframe(newdata)
    else:
        df = _ensure_dataframe(newdata, names)

    if isinstance(model, InterceptOnlyModel):
        return np.full(df.shape[0], float(_sigmoid(model.theta[0])))

    reduced = check_composition(select_components(df, model.sbp))
    new_balance = slr_from_contrast(reduced, model.sbp)
    if rtype is ResponseType.BINARY:
        return model.fit.predict_proba(new_balance)[:, 1]
    return np.column_stack([np.ones_like(new_balance), new_balance]) @ model.theta


@dataclass
class SupervisedLogRatios:
    """
    Estimator wrapper around :func:`slr` / :func:`predict_slr`.

    Parameters mirror :func:`slr`. After ``fit`` the estimator exposes
    ``model_`` (the fitted :data:`FittedModel`), ``feature_scores_``,
    ``theta_`` and ``sbp_`` (None for the intercept-only fallback).
    """

    screen_method: str = "correlation"
    cluster_method: str = "spectral"
    response_type: str = "continuous"
    threshold: Optional[float] = None
    s0_perc: Optional[float] = 0.0
    zeta: float = 0.0
    use_unlabeled: bool = False
    positive_slope: bool = False
    random_state: Optional[int] = 42

    def fit(
        self,
        X: pd.DataFrame | np.ndarray,
        y,
        *,
        x_unlabeled: Optional[pd.DataFrame | np.ndarray] = None,
        feature_names: Optional[Sequence[str]] = None,
    ) -> "SupervisedLogRatios":
        model = slr(
            X,
            y,
            screen_method=self.screen_method,
            cluster_method=self.cluster_method,
            response_type=self.response_type,
            threshold=self.threshold,
            s0_perc=self.s0_perc,
            zeta=self.zeta,
            x_unlabeled=x_unlabeled,
            use_unlabeled=self.use_unlabeled,
            positive_slope=self.positive_slope,
            random_state=self.random_state,
            feature_names=feature_names,
        )
        self._set_model(model)
        return self

    def _set_model(self, model: FittedModel) -> None:
        self.model_ = model
        self.feature_scores_ = model.feature_scores
        self.theta_ = model.theta
        self.sbp_ = model.sbp if isinstance(model, BalanceModel) else None
        self.feature_names_ = list(model.feature_scores.index)

    def predict(
        self,
        X: pd.DataFrame | np.ndarray,
        *,
        feature_names: Optional[Sequence[str]] = None,
    ) -> np.ndarray:
        if not hasattr(self, "model_"):
            raise RuntimeError("fit must be called before predict.")
        if feature_names is not None and not isinstance(X, pd.DataFrame):
            X = _ensure_dataframe(X, feature_names)
        return predict_slr(self.model_, X)

    def score(
        self,
        X: pd.DataFrame | np.ndarray,
        y,
        *,
        feature_names: Optional[Sequence[str]] = None,
    ) -> float:
        """Accuracy for binary responses, R^2 for continuous responses."""
        pred = self.predict(X, feature_names=feature_names)
        y_arr = np.asarray(y, dtype=np.float64)
        if self.model_.response_type is ResponseType.BINARY:
            return 1.0 - misclassification_rate(y_arr, pred)
        ss_res = float(np.sum((y_arr - pred) ** 2))
        ss_tot = float(np.sum((y_arr - np.mean(y_arr)) ** 2))
        return 1.0 - ss_res / ss_tot

    # ------------------------------------------------------------------ #
    # Parameter helpers
    # ------------------------------------------------------------------ #

    def get_params(self, deep: bool = True) -> Dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def set_params(self, **params) -> "SupervisedLogRatios":
        names = {f.name for f in fields(self)}
        for key, value in params.items():
            if key not in names:
                raise ValueError(f"Unknown parameter '{key}'.")
            setattr(self, key, value)
        return self
