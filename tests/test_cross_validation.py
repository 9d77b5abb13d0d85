import math

import numpy as np
import pytest

from slr.linear_model import (
    CVResult,
    SupervisedLogRatiosCV,
    _assign_folds,
    build_predmat,
    cv_slr,
    get_optcv,
)
from slr.model import slr
from slr.options import TypeMeasure

from conftest import make_compositions


def _small_continuous(n=24, p=3, seed=0):
    x = make_compositions(n=n, p=p, seed=seed)
    logx = np.log(x.to_numpy())
    rng = np.random.default_rng(seed + 100)
    y = logx[:, 0] - logx[:, 1] + 0.2 * rng.normal(size=n)
    return x, y


# Test 1
def test_get_optcv_prefers_larger_threshold_on_ties():
    opt = get_optcv([0.1, 0.2, 0.3, 0.4], [0.5, 0.3, 0.3, 0.4], [0.05] * 4)
    assert opt["threshold_min"] == pytest.approx(0.3)
    assert opt["index"]["min"] == 2
    assert opt["threshold_1se"] == pytest.approx(0.3)
    assert opt["index"]["1se"] == 2


# Test 2
def test_get_optcv_one_standard_error_rule():
    opt = get_optcv([0.1, 0.2, 0.3, 0.4], [0.5, 0.3, 0.34, 0.4], [0.05] * 4)
    assert opt["threshold_min"] == pytest.approx(0.2)
    assert opt["threshold_1se"] == pytest.approx(0.3)
    assert opt["index"] == {"min": 1, "1se": 2}


# Test 3
def test_get_optcv_ignores_missing_entries():
    opt = get_optcv([0.1, 0.2, 0.3], [np.nan, 0.2, 0.4], [np.nan, np.nan, 0.1])
    assert opt["threshold_min"] == pytest.approx(0.2)
    assert opt["threshold_1se"] == pytest.approx(0.2)
    with pytest.raises(ValueError):
        get_optcv([0.1, 0.2], [np.nan, np.nan], [0.1, 0.1])


# Test 4
def test_assign_folds_balanced():
    ids = _assign_folds(23, 5, np.random.default_rng(0))
    counts = np.bincount(ids, minlength=5)
    assert counts.sum() == 23
    assert counts.max() - counts.min() <= 1


# Test 5
def test_cv_rejects_fewer_than_three_folds():
    x, y = _small_continuous()
    with pytest.raises(ValueError, match="nfolds"):
        cv_slr(x, y, nfolds=2)
    with pytest.raises(ValueError, match="nfolds"):
        cv_slr(x, y, foldid=np.arange(x.shape[0]) % 2)


# Test 6
def test_cv_default_grid_has_one_threshold_per_component():
    x, y = _small_continuous(p=3)
    res = cv_slr(x, y, nfolds=3, random_state=0)
    assert isinstance(res, CVResult)
    assert res.threshold.shape == (3,)
    assert np.all(np.diff(res.threshold) >= 0)
    assert res.fit_preval.shape == (3, 3)
    assert res.cvm.shape == (3,)
    assert res.type_measure is TypeMeasure.MSE
    assert res.threshold_min in res.threshold
    assert res.threshold_1se >= res.threshold_min


# Test 7
def test_cv_aggregation_matches_error_matrix():
    x, y = _small_continuous(n=20, p=4, seed=3)
    weights = np.array([1.0, 2.0, 1.0, 0.5])
    res = cv_slr(x, y, nfolds=4, weights=weights, random_state=1)
    M = res.fit_preval
    assert np.allclose(res.cvm, (weights[:, None] * M).sum(axis=0) / weights.sum())
    assert np.allclose(res.cvsd, M.std(axis=0, ddof=1) / math.sqrt(4))


# Test 8
def test_cv_is_reproducible_and_parallel_safe():
    x, y = _small_continuous(n=18, p=3, seed=4)
    a = cv_slr(x, y, nfolds=3, random_state=7)
    b = cv_slr(x, y, nfolds=3, random_state=7)
    c = cv_slr(x, y, nfolds=3, random_state=7, n_jobs=2)
    assert np.array_equal(a.foldid, b.foldid)
    assert np.allclose(a.fit_preval, b.fit_preval)
    assert np.allclose(a.fit_preval, c.fit_preval)


# Test 9
def test_cv_with_explicit_folds_and_grid():
    x, y = _small_continuous(n=15, p=4, seed=5)
    foldid = np.arange(15) % 5
    grid = [0.0, 0.2, 0.5, 2.0]
    res = cv_slr(x, y, threshold=grid, foldid=foldid, random_state=0)
    assert np.array_equal(res.foldid, foldid)
    assert res.fit_preval.shape == (5, 4)
    assert np.allclose(res.threshold, grid)


# Test 10
def test_build_predmat_matches_manual_errors():
    x, y = _small_continuous(n=12, p=3, seed=6)
    foldid = np.arange(12) % 3
    grid = [0.0, 2.0]
    outlist = [
        [slr(x[foldid != i], y[foldid != i], threshold=t, random_state=0) for t in grid]
        for i in range(3)
    ]
    M = build_predmat(outlist, grid, x, y, foldid, "continuous", "mse")
    assert M.shape == (3, 2)
    # threshold 2.0 keeps nothing: every prediction is sigmoid(intercept)
    for i in range(3):
        theta = outlist[i][1].theta[0]
        expected = np.mean((y[foldid == i] - 1.0 / (1.0 + np.exp(-theta))) ** 2)
        assert M[i, 1] == pytest.approx(expected)


# Test 11
def test_auc_failures_become_missing_cells():
    x = make_compositions(n=12, p=3, seed=8)
    y = np.array([0, 0, 0, 0, 1, 1, 1, 1, 0, 1, 0, 1])
    foldid = np.repeat([0, 1, 2], 4)
    res = cv_slr(x, y, response_type="binary", type_measure="auc",
                 threshold=[0.0, 2.0], foldid=foldid, random_state=0)
    assert np.all(np.isnan(res.fit_preval[0]))
    assert np.all(np.isnan(res.fit_preval[1]))
    assert np.all(np.isfinite(res.fit_preval[2]))
    assert np.allclose(res.cvm, res.fit_preval[2])
    assert res.type_measure is TypeMeasure.AUC


# Test 12
def test_binary_accuracy_measure():
    x = make_compositions(n=24, p=3, seed=9)
    logx = np.log(x.to_numpy())
    y = (logx[:, 0] > logx[:, 1]).astype(int)
    res = cv_slr(x, y, response_type="binary", nfolds=3, random_state=0)
    assert res.type_measure is TypeMeasure.ACCURACY
    assert np.all((res.fit_preval >= 0.0) & (res.fit_preval <= 1.0))


# Test 13
def test_type_measure_must_match_response():
    x, y = _small_continuous()
    with pytest.raises(ValueError, match="mse"):
        cv_slr(x, y, type_measure="auc", nfolds=3)
    yb = (y > np.median(y)).astype(int)
    with pytest.raises(ValueError, match="accuracy or auc"):
        cv_slr(x, yb, response_type="binary", type_measure="mse", nfolds=3)
    with pytest.raises(NotImplementedError):
        cv_slr(x, y, response_type="survival", nfolds=3)


# Test 14
def test_unlabeled_folding_validation():
    x, y = _small_continuous(n=15, p=3)
    with pytest.raises(ValueError, match="x_unlabeled is missing"):
        cv_slr(x, y, use_unlabeled=True, nfolds=3)
    with pytest.raises(ValueError, match="x_unlabeled is missing"):
        cv_slr(x, y, fold_unlabeled=True, nfolds=3)
    xu = make_compositions(n=2, p=3, seed=20)
    with pytest.raises(ValueError, match="nfolds is greater"):
        cv_slr(x, y, x_unlabeled=xu, use_unlabeled=True, fold_unlabeled=True, nfolds=3)
    with pytest.raises(ValueError, match="weights"):
        cv_slr(x, y, nfolds=3, weights=[1.0, 1.0])


# Test 15
def test_unlabeled_folds_are_assigned():
    x, y = _small_continuous(n=15, p=3)
    xu = make_compositions(n=9, p=3, seed=21)
    res = cv_slr(x, y, x_unlabeled=xu, use_unlabeled=True, fold_unlabeled=True,
                 nfolds=3, random_state=0)
    assert res.foldid_unlabeled.shape == (9,)
    assert np.array_equal(np.bincount(res.foldid_unlabeled), [3, 3, 3])
    assert np.all(np.isfinite(res.cvm))


# Test 16
def test_cv_estimator_refits_at_chosen_threshold(block_data):
    x, y = block_data
    est = SupervisedLogRatiosCV(nfolds=3, cv_rule="1se", positive_slope=True, random_state=0)
    est.fit(x, y)
    assert est.threshold_ == est.cv_result_.threshold_1se
    assert est.predict(x).shape == (x.shape[0],)
    assert est.score(x, y) > 0.5

    with pytest.raises(ValueError, match="cv_rule"):
        SupervisedLogRatiosCV(cv_rule="best").fit(x, y)


# Test 17
def test_get_optcv_skips_missing_thresholds():
    opt = get_optcv([0.1, 0.2, np.nan], [0.3, 0.3, 0.3], [0.01] * 3)
    assert opt["threshold_min"] == pytest.approx(0.2)
    assert opt["threshold_1se"] == pytest.approx(0.2)
    assert opt["index"] == {"min": 1, "1se": 1}


# Test 18
def test_constant_response_has_no_threshold_grid():
    x = make_compositions(n=15, p=3)
    with pytest.raises(ValueError, match="threshold grid"):
        cv_slr(x, np.full(15, 2.0), nfolds=3, random_state=0)


# Test 19
def test_foldid_without_empty_folds():
    x, y = _small_continuous(n=15, p=3)
    with pytest.raises(ValueError, match="no samples"):
        cv_slr(x, y, threshold=[0.0, 2.0], foldid=np.arange(15) % 5 + 1)
