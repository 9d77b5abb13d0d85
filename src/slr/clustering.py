"""
Partitioning of the screened components into a positive and a negative group.

Two strategies are available:

* spectral clustering of the Aitchison similarity (``max(A) - A``) through a
  perturbed, normalised graph Laplacian and k-means on its leading
  eigenvectors, and
* complete-linkage hierarchical clustering of the Aitchison variation itself,
  cutting the dendrogram at the root.

Both return a sign vector: a ``pandas.Series`` of {-1, +1} keyed by component
name.
"""

from __future__ import annotations

from typing import Hashable, List

import numpy as np
import pandas as pd
import scipy.linalg
from scipy.cluster.hierarchy import linkage, to_tree
from scipy.spatial.distance import pdist
from sklearn.cluster import KMeans

from ._math import _as_generator, _draw_seed

__all__ = [
    "graph_laplacian",
    "hierarchical_clustering",
    "spectral_clustering",
]


def _labels(M: pd.DataFrame | np.ndarray) -> List[Hashable]:
    if isinstance(M, pd.DataFrame):
        return list(M.index)
    return [f"V{j + 1}" for j in range(np.asarray(M).shape[0])]


def graph_laplacian(
    W: pd.DataFrame | np.ndarray,
    normalized: bool = True,
    zeta: float = 0.01,
) -> np.ndarray:
    """
    Perturbed graph operator of a similarity matrix.

    Every pair of vertices first receives a small extra weight
    ``zeta * mean(colSums(W)) / n`` so the graph stays connected. With
    ``normalized=True`` the result is ``D^{-1/2} W' D^{-1/2}`` where ``D`` holds
    the perturbed degrees; otherwise the perturbed ``W'`` itself is returned.
    """
    W = np.asarray(W, dtype=np.float64)
    if W.ndim != 2 or W.shape[0] != W.shape[1]:
        raise ValueError("Similarity matrix must be square.")

    n = W.shape[0]
    W = W + zeta * np.mean(W.sum(axis=0)) / n * np.ones((n, n))
    g = W.sum(axis=0)

    if normalized:
        D_half = np.diag(1.0 / np.sqrt(g))
        return D_half @ W @ D_half
    return W


def spectral_clustering(
    W: pd.DataFrame | np.ndarray,
    n_eig: int = 2,
    zeta: float = 0.0,
    random_state=None,
) -> pd.Series:
    """
    Spectral clustering of a similarity matrix.

    Parameters
    ----------
    W :
        Square similarity matrix; DataFrame labels become the result's index.
    n_eig :
        Number of clusters, which is also the number of leading eigenvectors
        used as coordinates.
    zeta :
        Perturbation passed to :func:`graph_laplacian`.
    random_state :
        Seed or ``numpy.random.Generator`` driving the k-means restarts.

    Returns
    -------
    pandas.Series
        For ``n_eig == 2`` the sign vector in {-1, +1} (first k-means cluster
        maps to -1); otherwise cluster labels ``1..n_eig``.
    """
    names = _labels(W)
    L = graph_laplacian(W, normalized=True, zeta=zeta)
    evals, evecs = scipy.linalg.eigh(L)
    order = np.argsort(-np.abs(evals), kind="stable")
    evecs = evecs[:, order]

    rng = _as_generator(random_state)
    km = KMeans(
        n_clusters=n_eig,
        init="random",
        n_init=100,
        algorithm="lloyd",
        random_state=_draw_seed(rng),
    )
    labels = km.fit_predict(evecs[:, :n_eig])

    if n_eig == 2:
        cl = 2 * labels - 1
    else:
        cl = labels + 1
    return pd.Series(cl.astype(int), index=names, name="sbp")


def hierarchical_clustering(
    A: pd.DataFrame | np.ndarray,
    method: str = "complete",
) -> pd.Series:
    """
    First bipartition of a hierarchical clustering of the components.

    Rows of ``A`` (the Aitchison variation) are compared by Euclidean
    distance. Leaves under the left child of the root get +1 and leaves
    under the right child get -1, so every component is assigned.
    """
    names = _labels(A)
    values = np.asarray(A, dtype=np.float64)
    if values.shape[0] < 2:
        raise ValueError("Hierarchical clustering needs at least 2 components.")

    Z = linkage(pdist(values, metric="euclidean"), method=method)
    root = to_tree(Z)

    sbp = np.zeros(values.shape[0], dtype=int)
    sbp[root.get_left().pre_order()] = 1
    sbp[root.get_right().pre_order()] = -1
    return pd.Series(sbp, index=names, name="sbp")
