import numpy as np
import pandas as pd
import pytest

from slr.preprocessing import (
    StandardScaler,
    aitchison_variation,
    check_composition,
    clr,
    variation_to_similarity,
)

from conftest import make_compositions


# Test 1
def test_clr_rows_sum_to_zero():
    x = make_compositions(n=6, p=4)
    xclr = clr(x)
    assert list(xclr.columns) == list(x.columns)
    assert np.allclose(xclr.sum(axis=1), 0.0)
    assert np.allclose(clr(x.to_numpy()), xclr.to_numpy())


# Test 2
def test_clr_is_scale_invariant():
    x = make_compositions(n=5, p=3)
    assert np.allclose(clr(x * 7.5), clr(x))


# Test 3
def test_aitchison_variation_symmetric_zero_diagonal():
    x = make_compositions(n=12, p=6, seed=4)
    A = aitchison_variation(x)
    assert isinstance(A, pd.DataFrame)
    assert list(A.index) == list(x.columns)
    values = A.to_numpy()
    assert np.array_equal(values, values.T)
    assert np.all(np.diag(values) == 0.0)
    assert np.all(values >= 0.0)


# Test 4
def test_aitchison_variation_matches_pairwise_variance():
    x = make_compositions(n=10, p=4, seed=2).to_numpy()
    A = aitchison_variation(x)
    logx = np.log(x)
    for j in range(4):
        for k in range(4):
            if j == k:
                continue
            expected = np.var(logx[:, j] - logx[:, k], ddof=1)
            assert A[j, k] == pytest.approx(expected, rel=1e-10)


# Test 5
def test_aitchison_variation_rejects_non_positive():
    x = np.array([[0.5, 0.5], [0.0, 1.0], [0.3, 0.7]])
    with pytest.raises(ValueError):
        aitchison_variation(x)


# Test 6
def test_similarity_is_max_minus_variation():
    A = np.array([[0.0, 2.0, 1.0], [2.0, 0.0, 3.0], [1.0, 3.0, 0.0]])
    W = variation_to_similarity(A)
    assert np.array_equal(W, np.array([[3.0, 1.0, 2.0], [1.0, 3.0, 0.0], [2.0, 0.0, 3.0]]))


# Test 7
def test_check_composition_names_and_validation():
    df = check_composition(np.array([[0.2, 0.8], [0.6, 0.4]]))
    assert list(df.columns) == ["V1", "V2"]
    with pytest.raises(ValueError, match="zero or negative"):
        check_composition(np.array([[0.2, 0.0], [0.6, 0.4]]))
    with pytest.raises(ValueError):
        check_composition(np.array([[0.2, np.nan], [0.6, 0.4]]))
    with pytest.raises(ValueError):
        check_composition(np.array([[0.2, 0.8]]), feature_names=["a"])


# Test 8
def test_standard_scaler_sample_sd():
    X = np.array([[1.0, 5.0], [2.0, 5.0], [3.0, 5.0]])
    Z = StandardScaler(ddof=1).fit_transform(X)
    assert np.allclose(Z[:, 0], [-1.0, 0.0, 1.0])
    assert np.allclose(Z[:, 1], 0.0)
    with pytest.raises(RuntimeError):
        StandardScaler().transform(X)
