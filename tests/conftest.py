"""Shared fixtures for the atom_optics test suite."""

import numpy as np
import pytest

from atom_optics import Atoms, Laser, PhysicalConstants


def jittered_lattice(n_side: int, spacing: float = 2.0, jitter: float = 0.3,
                     seed: int = 0) -> np.ndarray:
    """Cubic lattice with random displacements; atoms stay well separated."""
    rng = np.random.default_rng(seed)
    grid = np.arange(n_side) * spacing
    X, Y, Z = np.meshgrid(grid, grid, grid, indexing="ij")
    pts = np.column_stack([X.ravel(), Y.ravel(), Z.ravel()])
    return pts + rng.uniform(-jitter, jitter, size=pts.shape)


@pytest.fixture
def constants() -> PhysicalConstants:
    return PhysicalConstants(gamma=1.0, k0=1.0)


@pytest.fixture
def pair() -> Atoms:
    """Two atoms 1.5/k0 apart along z."""
    return Atoms(np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 1.5]]))


@pytest.fixture
def cloud() -> Atoms:
    """Eight well-separated atoms."""
    return Atoms(jittered_lattice(2, seed=1))


@pytest.fixture
def weak_laser() -> Laser:
    return Laser(detuning=0.0, amplitude=1e-2)


@pytest.fixture
def make_lattice():
    return jittered_lattice
