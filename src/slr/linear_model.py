"""
Cross-validated choice of the SLR screening threshold.

Each fold is one task that walks the whole threshold grid; tasks share
nothing and are dispatched through joblib. The error matrix (folds x
thresholds) is reduced to a weighted mean and a standard error per threshold,
and the threshold is chosen by the minimum or the one-standard-error rule,
both breaking ties toward the larger (sparser) threshold.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from ._math import _as_generator, _draw_seed
from .metrics import mean_squared_error, misclassification_rate, roc_auc_score
from .model import (
    FittedModel,
    SupervisedLogRatios,
    _check_response,
    predict_slr,
    slr,
)
from .options import (
    ClusterMethod,
    ResponseType,
    ScreenMethod,
    TypeMeasure,
    resolve_type_measure,
)
from .preprocessing import check_composition
from .screening import feature_scores

__all__ = [
    "CVResult",
    "SupervisedLogRatiosCV",
    "build_predmat",
    "cv_slr",
    "get_optcv",
]


@dataclass(frozen=True, eq=False)
class CVResult:
    """
    Outcome of :func:`cv_slr`.

    ``fit_preval`` is the held-out error matrix (folds x thresholds); ``cvm``
    and ``cvsd`` its per-threshold weighted mean and standard error.
    ``index`` holds the 0-based grid positions of ``threshold_min`` and
    ``threshold_1se`` under the keys ``"min"`` and ``"1se"``.
    """

    threshold: np.ndarray
    cvm: np.ndarray
    cvsd: np.ndarray
    fit_preval: np.ndarray
    foldid: np.ndarray
    threshold_min: float
    threshold_1se: float
    index: Dict[str, int]
    type_measure: TypeMeasure
    foldid_unlabeled: Optional[np.ndarray] = None

    def plot(self, ax=None, plot_dir: Optional[str] = None):
        from .plotting import plot_cv

        return plot_cv(self, ax=ax, plot_dir=plot_dir)


def _assign_folds(n: int, nfolds: int, rng: np.random.Generator) -> np.ndarray:
    """Balanced random fold ids 0..nfolds-1 (round-robin, then shuffled)."""
    return rng.permutation(np.resize(np.arange(nfolds), n))


def _check_foldid(foldid, n: int, what: str) -> np.ndarray:
    ids = np.asarray(foldid)
    if ids.ndim != 1 or ids.shape[0] != n:
        raise ValueError(f"{what} must have one entry per sample ({n}).")
    if not np.issubdtype(ids.dtype, np.integer):
        if not np.all(np.mod(ids, 1) == 0):
            raise ValueError(f"{what} must contain integer fold ids.")
        ids = ids.astype(int)
    if np.any(ids < 0):
        raise ValueError(f"{what} must contain fold ids >= 0.")
    return ids


def get_optcv(threshold, cvm, cvsd) -> Dict[str, object]:
    """
    Pick the optimal threshold from cross-validated errors.

    ``threshold_min`` is the largest threshold attaining the minimum mean
    error; ``threshold_1se`` the largest threshold whose mean error is within
    one standard error of the error at ``threshold_min``. Missing thresholds
    and errors are ignored. When no entry satisfies the one-SE bound (its standard error is
    missing) the one-SE choice falls back to ``threshold_min``.
    """
    threshold = np.asarray(threshold, dtype=np.float64)
    cvm = np.asarray(cvm, dtype=np.float64)
    cvsd = np.asarray(cvsd, dtype=np.float64)
    valid = ~np.isnan(threshold) & ~np.isnan(cvm)
    if not np.any(valid):
        raise ValueError("All cross-validated errors are missing; cannot choose a threshold.")

    cvmin = np.min(cvm[valid])
    threshold_min = float(np.max(threshold[valid & (cvm <= cvmin)]))
    idmin = int(np.flatnonzero(threshold == threshold_min)[0])

    semin = (cvm + cvsd)[idmin]
    id1se = valid & (cvm <= semin)
    if np.any(id1se):
        threshold_1se = float(np.max(threshold[id1se]))
        id1se_idx = int(np.flatnonzero(threshold == threshold_1se)[0])
    else:
        threshold_1se, id1se_idx = threshold_min, idmin

    return {
        "threshold_min": threshold_min,
        "threshold_1se": threshold_1se,
        "index": {"min": idmin, "1se": id1se_idx},
    }


def build_predmat(
    outlist: Sequence[Sequence[FittedModel]],
    threshold: Sequence[float],
    x: pd.DataFrame,
    y: np.ndarray,
    foldid: np.ndarray,
    response_type,
    type_measure,
) -> np.ndarray:
    """
    Held-out error of every fold/threshold model, shape (folds, thresholds).

    The only failure recorded rather than raised is an undefined AUC (a fold
    with a single class), which becomes NaN.
    """
    rtype = ResponseType.coerce(response_type)
    measure = resolve_type_measure(type_measure, rtype)
    nfolds = len(outlist)
    predmat = np.full((nfolds, len(threshold)), np.nan, dtype=np.float64)

    for i in range(nfolds):
        which = foldid == i
        y_i = y[which]
        x_i = x.loc[which, :]
        for j, fitobj in enumerate(outlist[i]):
            pred_ij = predict_slr(fitobj, x_i, response_type=rtype)
            if measure is TypeMeasure.MSE:
                predmat[i, j] = mean_squared_error(y_i, pred_ij)
            elif measure is TypeMeasure.ACCURACY:
                predmat[i, j] = misclassification_rate(y_i, pred_ij)
            else:
                try:
                    predmat[i, j] = 1.0 - roc_auc_score(y_i, pred_ij)
                except ValueError:
                    predmat[i, j] = np.nan
    return predmat


def _fold_path_worker(
    fold: int,
    nfolds: int,
    x_sub: pd.DataFrame,
    y_sub: np.ndarray,
    x_unlab_sub: Optional[pd.DataFrame],
    thresholds: np.ndarray,
    seed: int,
    options: Dict[str, object],
    verbose: bool,
) -> List[FittedModel]:
    """Fit ONE fold across the ENTIRE threshold grid."""
    if verbose:
        print(f"[cv] Fold: {fold + 1}/{nfolds}")
    rng = np.random.default_rng(seed)
    return [
        slr(x_sub, y_sub, threshold=float(t), x_unlabeled=x_unlab_sub, random_state=rng, **options)
        for t in thresholds
    ]


def _weighted_nanmean(M: np.ndarray, w: np.ndarray) -> np.ndarray:
    mask = ~np.isnan(M)
    wm = np.where(mask, w[:, None], 0.0)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.sum(np.where(mask, M, 0.0) * wm, axis=0) / np.sum(wm, axis=0)


def cv_slr(
    x: pd.DataFrame | np.ndarray,
    y,
    screen_method="correlation",
    cluster_method="spectral",
    response_type="continuous",
    threshold: Optional[Sequence[float]] = None,
    s0_perc: Optional[float] = 0.0,
    zeta: float = 0.0,
    x_unlabeled: Optional[pd.DataFrame | np.ndarray] = None,
    use_unlabeled: bool = False,
    type_measure="default",
    nfolds: int = 10,
    foldid=None,
    weights=None,
    fold_unlabeled: bool = False,
    foldid_unlabeled=None,
    random_state=None,
    n_jobs: Optional[int] = 1,
    verbose: bool = False,
    *,
    feature_names: Optional[Sequence[str]] = None,
) -> CVResult:
    """
    K-fold cross-validation of :func:`slr` over a grid of thresholds.

    Parameters
    ----------
    threshold :
        Candidate thresholds. ``None`` uses the sorted feature scores of the
        full labelled data, one candidate per component.
    type_measure :
        ``"mse"`` for continuous responses; ``"accuracy"`` (misclassification
        at 0.5) or ``"auc"`` (1 - AUC) for binary responses; ``"default"``
        picks ``mse`` / ``accuracy``.
    nfolds, foldid :
        Number of folds or an explicit 0-based assignment (then
        ``nfolds = max(foldid) + 1``). Fewer than 3 folds is an error.
    weights :
        One weight per fold for the mean error (uniform by default).
    fold_unlabeled, foldid_unlabeled :
        Also split the unlabelled rows into folds so each training fold only
        sees its held-in unlabelled rows.
    random_state :
        Seed or Generator for fold assignment and the per-fold k-means seeds.
    n_jobs :
        joblib workers, one task per fold.
    verbose :
        Print progress lines.
    """
    smethod = ScreenMethod.coerce(screen_method)
    cmethod = ClusterMethod.coerce(cluster_method)
    rtype = ResponseType.coerce(response_type)
    measure = resolve_type_measure(type_measure, rtype)

    X = check_composition(x, feature_names)
    y_arr = _check_response(y, X.shape[0], rtype)
    N = X.shape[0]
    rng = _as_generator(random_state)

    if foldid is None:
        nfolds = int(nfolds)
    else:
        foldid = _check_foldid(foldid, N, "foldid")
        nfolds = int(np.max(foldid)) + 1
        empty = np.flatnonzero(np.bincount(foldid, minlength=nfolds) == 0)
        if empty.size:
            raise ValueError(
                f"foldid must use consecutive fold ids 0..{nfolds - 1}; "
                f"folds {empty.tolist()} have no samples."
            )
    if nfolds < 3:
        raise ValueError("nfolds must be at least 3; nfolds=10 recommended.")

    if weights is None:
        weights = np.ones(nfolds, dtype=np.float64)
    else:
        weights = np.asarray(weights, dtype=np.float64).ravel()
        if weights.shape[0] != nfolds:
            raise ValueError(f"weights must have one entry per fold ({nfolds}).")

    XU = None
    if x_unlabeled is not None:
        XU = check_composition(
            x_unlabeled, None if isinstance(x_unlabeled, pd.DataFrame) else X.columns
        )
    if use_unlabeled and XU is None:
        raise ValueError("use_unlabeled is True but x_unlabeled is missing.")

    if threshold is None:
        scores = feature_scores(X, y_arr, smethod, rtype, s0_perc).to_numpy()
        threshold = np.sort(scores[~np.isnan(scores)])
        if threshold.size == 0:
            raise ValueError(
                "All feature scores are NaN (is the response constant?); "
                "cannot build a threshold grid."
            )
    else:
        threshold = np.asarray(threshold, dtype=np.float64).ravel()

    if foldid is None:
        foldid = _assign_folds(N, nfolds, rng)

    if fold_unlabeled:
        if XU is None:
            raise ValueError("fold_unlabeled is True but x_unlabeled is missing.")
        if foldid_unlabeled is None:
            if nfolds > XU.shape[0]:
                raise ValueError(
                    "nfolds is greater than the number of samples in x_unlabeled; "
                    "cannot divide into folds."
                )
            foldid_unlabeled = _assign_folds(XU.shape[0], nfolds, rng)
        else:
            foldid_unlabeled = _check_foldid(foldid_unlabeled, XU.shape[0], "foldid_unlabeled")

    options = {
        "screen_method": smethod,
        "cluster_method": cmethod,
        "response_type": rtype,
        "s0_perc": s0_perc,
        "zeta": zeta,
        "use_unlabeled": use_unlabeled,
        "positive_slope": False,
    }

    args_list = []
    for i in range(nfolds):
        in_fold = foldid == i
        if use_unlabeled:
            if fold_unlabeled:
                x_unlab_sub = XU.loc[foldid_unlabeled != i, :]
            else:
                x_unlab_sub = XU
        else:
            x_unlab_sub = None
        args_list.append((
            i, nfolds,
            X.loc[~in_fold, :], y_arr[~in_fold], x_unlab_sub,
            threshold, _draw_seed(rng), options, verbose,
        ))

    if verbose:
        print(f"[cv] Training {nfolds} folds x {len(threshold)} thresholds")

    if n_jobs == 1 or nfolds == 1:
        outlist = [_fold_path_worker(*a) for a in args_list]
    else:
        outlist = Parallel(n_jobs=n_jobs)(delayed(_fold_path_worker)(*a) for a in args_list)

    predmat = build_predmat(outlist, threshold, X, y_arr, foldid, rtype, measure)

    cvm = _weighted_nanmean(predmat, weights)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        cvsd = np.nanstd(predmat, axis=0, ddof=1) / math.sqrt(nfolds)

    if verbose:
        for t, m, s in zip(threshold, cvm, cvsd):
            print(f"[cv] threshold={t:.4g} -> mean={m:.6f} ± {s:.6f}")

    opt = get_optcv(threshold, cvm, cvsd)
    return CVResult(
        threshold=threshold,
        cvm=cvm,
        cvsd=cvsd,
        fit_preval=predmat,
        foldid=foldid,
        threshold_min=opt["threshold_min"],
        threshold_1se=opt["threshold_1se"],
        index=opt["index"],
        type_measure=measure,
        foldid_unlabeled=foldid_unlabeled,
    )


@dataclass
class SupervisedLogRatiosCV(SupervisedLogRatios):
    """
    Cross-validate the threshold, then refit on all labelled data.

    ``threshold`` is the candidate grid here (None derives it from the
    feature scores). ``cv_rule`` picks ``threshold_min`` (``"min"``) or
    ``threshold_1se`` (``"1se"``). After ``fit``: ``cv_result_``,
    ``threshold_`` and everything :class:`SupervisedLogRatios` exposes.
    """

    threshold: Optional[Sequence[float]] = None
    type_measure: str = "default"
    nfolds: int = 10
    fold_unlabeled: bool = False
    cv_rule: str = "min"
    n_jobs: Optional[int] = 1
    verbose: bool = False

    def fit(
        self,
        X: pd.DataFrame | np.ndarray,
        y,
        *,
        x_unlabeled: Optional[pd.DataFrame | np.ndarray] = None,
        feature_names: Optional[Sequence[str]] = None,
        foldid=None,
        weights=None,
        foldid_unlabeled=None,
    ) -> "SupervisedLogRatiosCV":
        rule = str(self.cv_rule).lower()
        if rule not in ("min", "1se"):
            raise ValueError(f"Unsupported cv_rule '{self.cv_rule}'. Use 'min' or '1se'.")

        X = check_composition(X, feature_names)
        rng = _as_generator(self.random_state)
        result = cv_slr(
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
            type_measure=self.type_measure,
            nfolds=self.nfolds,
            foldid=foldid,
            weights=weights,
            fold_unlabeled=self.fold_unlabeled,
            foldid_unlabeled=foldid_unlabeled,
            random_state=rng,
            n_jobs=self.n_jobs,
            verbose=self.verbose,
        )
        chosen = result.threshold_1se if rule == "1se" else result.threshold_min

        if self.verbose:
            print(f"[slr] refit at threshold={chosen:.4g} ({rule} rule)")
        model = slr(
            X,
            y,
            screen_method=self.screen_method,
            cluster_method=self.cluster_method,
            response_type=self.response_type,
            threshold=chosen,
            s0_perc=self.s0_perc,
            zeta=self.zeta,
            x_unlabeled=x_unlabeled,
            use_unlabeled=self.use_unlabeled,
            positive_slope=self.positive_slope,
            random_state=rng,
        )
        self.cv_result_ = result
        self.threshold_ = chosen
        self._set_model(model)
        return self

    def plot(self, ax=None, plot_dir: Optional[str] = None):
        if not hasattr(self, "cv_result_"):
            raise RuntimeError("fit must be called before plot.")
        return self.cv_result_.plot(ax=ax, plot_dir=plot_dir)
