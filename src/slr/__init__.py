"""
SLR package
-----------

Supervised log-ratios: sparse, interpretable balance regression for
compositional data. Components are screened by their association with the
response, the survivors are split into two groups by clustering their
Aitchison variation, and a single log-ratio (balance) between the groups is
used as the predictor of a linear or logistic model. The screening threshold
is chosen by cross-validation.
"""

from __future__ import annotations

from ._version import __version__
from .balance import select_components, slr_from_contrast
from .clustering import graph_laplacian, hierarchical_clustering, spectral_clustering
from .linear_model import CVResult, SupervisedLogRatiosCV, build_predmat, cv_slr, get_optcv
from .metrics import mean_squared_error, misclassification_rate, roc_auc_score
from .model import (
    BalanceModel,
    FittedModel,
    InterceptOnlyModel,
    SupervisedLogRatios,
    predict_slr,
    slr,
)
from .options import ClusterMethod, ResponseType, ScreenMethod, TypeMeasure
from .preprocessing import aitchison_variation, clr, variation_to_similarity
from .screening import feature_scores

__all__ = [
    "__version__",
    "BalanceModel",
    "CVResult",
    "ClusterMethod",
    "FittedModel",
    "InterceptOnlyModel",
    "ResponseType",
    "ScreenMethod",
    "SupervisedLogRatios",
    "SupervisedLogRatiosCV",
    "TypeMeasure",
    "aitchison_variation",
    "build_predmat",
    "clr",
    "cv_slr",
    "feature_scores",
    "get_optcv",
    "graph_laplacian",
    "hierarchical_clustering",
    "mean_squared_error",
    "misclassification_rate",
    "predict_slr",
    "roc_auc_score",
    "select_components",
    "slr",
    "slr_from_contrast",
    "spectral_clustering",
    "variation_to_similarity",
]
