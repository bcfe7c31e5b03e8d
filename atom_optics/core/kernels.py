"""Interaction (Green's function) matrices between atoms.

The scalar kernel couples atoms j != k through

    G[j, k] = -(Gamma/2) * exp(i k0 R_jk) / (i k0 R_jk)

and puts the single-atom self energy i*Delta - Gamma/2 on the diagonal.
Atoms must sit at distinct positions: a zero off-diagonal distance divides
by zero and yields a non-finite entry, which is not guarded against here.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Tuple

import numpy as np

from ..models import PhysicalConstants
from .geometry import pairwise_distances

logger = logging.getLogger(__name__)

# below this many rows a thread pool costs more than it saves
MIN_PARALLEL_ROWS = 64


def _fill_scalar_rows(G: np.ndarray, R: np.ndarray, start: int, stop: int,
                      constants: PhysicalConstants) -> None:
    ikR = 1j * constants.k0 * R[start:stop]
    # self terms are overwritten after the join
    rows = np.arange(start, stop)
    ikR[rows - start, rows] = 1.0
    G[start:stop] = -(constants.gamma / 2) * np.exp(ikR) / ikR


def _row_tiles(n_rows: int, workers: int):
    bounds = np.linspace(0, n_rows, workers + 1).astype(int)
    return [(a, b) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]


def _resolve_workers(workers: Optional[int], n_rows: int) -> int:
    if workers is None:
        workers = os.cpu_count() or 1
    if n_rows < MIN_PARALLEL_ROWS:
        return 1
    return max(1, min(int(workers), n_rows))


def green_scalar(positions: np.ndarray, detuning: float,
                 constants: PhysicalConstants,
                 workers: Optional[int] = None) -> np.ndarray:
    """Scalar coupled-dipole interaction matrix.

    Args:
        positions: (N, 3) atom positions, pairwise distinct
        detuning: Laser detuning from resonance
        constants: Linewidth and wavenumber
        workers: Threads filling row tiles; ``None`` uses every CPU

    Returns:
        (N, N) complex matrix, symmetric off the diagonal
    """
    R = pairwise_distances(positions)
    N = R.shape[0]
    G = np.empty((N, N), dtype=np.complex128)

    n_workers = _resolve_workers(workers, N)
    if n_workers == 1:
        _fill_scalar_rows(G, R, 0, N, constants)
    else:
        tiles = _row_tiles(N, n_workers)
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            # each tile writes a disjoint block of rows
            list(pool.map(lambda ab: _fill_scalar_rows(G, R, ab[0], ab[1], constants), tiles))

    np.fill_diagonal(G, 1j * detuning - constants.gamma / 2)
    logger.debug("scalar kernel: N=%d, workers=%d", N, n_workers)
    return G


def green_mean_field(positions: np.ndarray, detuning: float,
                     constants: PhysicalConstants,
                     workers: Optional[int] = None) -> np.ndarray:
    """Interaction matrix of the mean-field model.

    Same kernel as the scalar model; the sign flip and the removal of the
    self terms needed by the mean-field equations happen in
    :func:`mean_field_coupling`.
    """
    return green_scalar(positions, detuning, constants, workers)


def mean_field_coupling(G: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Negate ``G`` and zero its diagonal.

    The mean-field equations carry +Gamma/2 where the scalar kernel has
    -Gamma/2, and self coupling is excluded from the sum over atoms.

    Returns:
        Tuple of (coupling matrix, removed diagonal of -G)
    """
    G = np.asarray(G)
    if G.ndim != 2 or G.shape[0] != G.shape[1]:
        raise ValueError(f"interaction matrix must be square, got shape {G.shape}")
    coupling = -G
    removed = np.diag(coupling).copy()
    np.fill_diagonal(coupling, 0)
    return coupling, removed
