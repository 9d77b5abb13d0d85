"""Cross-validation curve for :class:`~slr.linear_model.CVResult`."""

from __future__ import annotations

import os
from typing import Optional

import numpy as np

__all__ = ["plot_cv"]

_MEASURE_LABELS = {
    "mse": "Mean squared error",
    "accuracy": "Misclassification rate",
    "auc": "1 - AUC",
}


def plot_cv(result, ax=None, plot_dir: Optional[str] = None):
    """
    Plot mean held-out error ± one standard error against the threshold grid.

    Dashed verticals mark ``threshold_min`` and ``threshold_1se``. With
    ``plot_dir`` the figure is written to ``cv_error.png`` there and closed
    (the path is returned); otherwise the figure is returned.
    """
    import matplotlib.pyplot as plt

    if ax is None:
        fig, ax = plt.subplots(figsize=(6.8, 4.2))
    else:
        fig = ax.figure

    thr = np.asarray(result.threshold, dtype=np.float64)
    ax.errorbar(
        thr, result.cvm, yerr=result.cvsd,
        fmt="o", color="C3", ecolor="gray", markersize=4, capsize=2, linewidth=1,
    )
    ax.axvline(result.threshold_min, color="k", linestyle="--", linewidth=1.0,
               label=f"min @ {result.threshold_min:.3g}")
    ax.axvline(result.threshold_1se, color="C0", linestyle="--", linewidth=1.0,
               label=f"1se @ {result.threshold_1se:.3g}")
    measure = getattr(result.type_measure, "value", str(result.type_measure))
    ax.set_xlabel("Screening threshold")
    ax.set_ylabel(_MEASURE_LABELS.get(measure, measure))
    ax.set_title("Cross-validated error vs threshold")
    ax.legend(loc="best")
    fig.tight_layout()

    if plot_dir:
        os.makedirs(plot_dir, exist_ok=True)
        out = os.path.join(plot_dir, "cv_error.png")
        fig.savefig(out, dpi=150)
        plt.close(fig)
        return out
    return fig
