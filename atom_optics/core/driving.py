"""Projection of the driving laser onto the atoms."""

import numpy as np

from ..models import Atoms, Laser, PhysicalConstants


def apply_laser_over_atoms(laser: Laser, atoms: Atoms,
                           constants: PhysicalConstants) -> np.ndarray:
    """Laser amplitude Omega_n at every atom, shape (N,)."""
    omega = laser.project(atoms.positions, constants.k0)
    if omega.shape != (atoms.N,):
        raise ValueError(
            f"laser projection returned shape {omega.shape}, expected ({atoms.N},)"
        )
    return omega
