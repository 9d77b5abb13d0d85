"""
Quickstart example for the SLR package.

Simulates compositions with two near-proportional pairs of parts, a response
driven by the balance between the pairs, then cross-validates the screening
threshold and refits. Run with:

    python examples/quickstart.py
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from slr import SupervisedLogRatiosCV


def main() -> None:
    rng = np.random.default_rng(0)
    n = 60
    a = rng.normal(size=n)
    b = rng.normal(size=n)
    logx = np.column_stack([
        a + 0.05 * rng.normal(size=n),
        a + 0.05 * rng.normal(size=n),
        b + 0.05 * rng.normal(size=n),
        b + 0.05 * rng.normal(size=n),
        rng.normal(size=n),
    ])
    x = np.exp(logx)
    x /= x.sum(axis=1, keepdims=True)
    X = pd.DataFrame(x, columns=["taxon_a", "taxon_b", "taxon_c", "taxon_d", "taxon_e"])
    y = 1.0 + 2.0 * (logx[:, :2].mean(axis=1) - logx[:, 2:4].mean(axis=1))
    y += 0.1 * rng.normal(size=n)

    est = SupervisedLogRatiosCV(nfolds=5, cv_rule="1se", positive_slope=True, verbose=True)
    est.fit(X, y)

    print("chosen threshold:", est.threshold_)
    print("feature scores:\n", est.feature_scores_)
    if est.sbp_ is not None:
        print("numerator:", est.model_.numerator)
        print("denominator:", est.model_.denominator)
    print("theta:", est.theta_)
    print("R^2:", est.score(X, y))


if __name__ == "__main__":
    main()
