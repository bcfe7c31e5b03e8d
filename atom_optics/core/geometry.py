"""Pairwise geometry of an atomic ensemble."""

import numpy as np
from scipy.spatial.distance import pdist, squareform


def pairwise_distances(positions: np.ndarray) -> np.ndarray:
    """Symmetric (N, N) matrix of Euclidean distances, zero on the diagonal."""
    r = np.asarray(positions, dtype=float)
    if r.ndim != 2:
        raise ValueError(f"positions must be a 2-D array, got shape {r.shape}")
    if r.shape[0] == 1:
        return np.zeros((1, 1))
    return squareform(pdist(r, metric="euclidean"))


def minimum_separation(positions: np.ndarray) -> float:
    """Smallest distance between two distinct atoms (inf for a single atom)."""
    r = np.asarray(positions, dtype=float)
    if r.shape[0] < 2:
        return np.inf
    return float(pdist(r).min())
