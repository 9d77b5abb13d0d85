"""
Pytest configuration and fixtures for SLR tests.
"""
import numpy as np
import pandas as pd
import pytest


def make_compositions(n=20, p=5, seed=0):
    """Random strictly positive compositions closed to 1, columns c1..cp."""
    rng = np.random.default_rng(seed)
    z = rng.normal(size=(n, p))
    x = np.exp(z)
    x /= x.sum(axis=1, keepdims=True)
    return pd.DataFrame(x, columns=[f"c{j + 1}" for j in range(p)])


def true_balance(x):
    """Balance of (c1, c2) over (c3, c4) used to generate responses."""
    logx = np.log(x.to_numpy())
    return logx[:, :2].mean(axis=1) - logx[:, 2:4].mean(axis=1)


def make_blocks(n=30, seed=1, noise=0.05):
    """Four components in two near-proportional pairs: (b1, b2) and (b3, b4)."""
    rng = np.random.default_rng(seed)
    a = rng.normal(size=n)
    b = rng.normal(size=n)
    logx = np.column_stack([
        a + noise * rng.normal(size=n),
        a + noise * rng.normal(size=n),
        b + noise * rng.normal(size=n),
        b + noise * rng.normal(size=n),
    ])
    x = np.exp(logx)
    x /= x.sum(axis=1, keepdims=True)
    return pd.DataFrame(x, columns=["b1", "b2", "b3", "b4"])


@pytest.fixture
def continuous_data():
    x = make_compositions(n=20, p=5, seed=0)
    rng = np.random.default_rng(10)
    y = 1.0 + 2.0 * true_balance(x) + 0.1 * rng.normal(size=x.shape[0])
    return x, y


@pytest.fixture
def binary_data():
    x = make_compositions(n=40, p=5, seed=3)
    rng = np.random.default_rng(11)
    signal = true_balance(x) + 0.5 * rng.normal(size=x.shape[0])
    y = (signal > np.median(signal)).astype(int)
    return x, y


@pytest.fixture
def block_data():
    x = make_blocks(n=30, seed=1)
    logx = np.log(x.to_numpy())
    balance = logx[:, :2].mean(axis=1) - logx[:, 2:].mean(axis=1)
    rng = np.random.default_rng(12)
    y = 1.0 + 2.0 * balance + 0.1 * rng.normal(size=x.shape[0])
    return x, y
