"""Tests for the interaction (Green's function) matrices."""

import numpy as np
import pytest

from atom_optics.core.kernels import (
    MIN_PARALLEL_ROWS,
    green_mean_field,
    green_scalar,
    mean_field_coupling,
)
from atom_optics.models import PhysicalConstants


# =============================================================================
# Scalar kernel
# =============================================================================

class TestScalarKernel:

    def test_two_atoms_match_hand_computed_matrix(self, constants):
        d = 1.5
        r = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, d]])
        G = green_scalar(r, detuning=0.0, constants=constants)

        off = -(1.0 / 2) * np.exp(1j * d) / (1j * d)
        expected = np.array([[-0.5, off], [off, -0.5]], dtype=complex)
        np.testing.assert_allclose(G, expected, rtol=1e-15, atol=0)

    def test_constants_enter_the_kernel(self):
        constants = PhysicalConstants(gamma=2.0, k0=3.0)
        d = 0.7
        r = np.array([[0.0, 0.0, 0.0], [d, 0.0, 0.0]])
        G = green_scalar(r, detuning=0.25, constants=constants)
        kR = 3.0 * d
        np.testing.assert_allclose(G[0, 1], -1.0 * np.exp(1j * kR) / (1j * kR))
        np.testing.assert_allclose(np.diag(G), 0.25j - 1.0)

    def test_symmetric_for_distinct_positions(self, make_lattice, constants):
        G = green_scalar(make_lattice(3, seed=2), detuning=-1.3, constants=constants)
        np.testing.assert_allclose(G, G.T, rtol=1e-15, atol=0)

    @pytest.mark.parametrize("detuning", [-5.0, 0.0, 0.3, 12.0])
    def test_diagonal_is_self_energy(self, cloud, constants, detuning):
        expected = 1j * detuning - constants.gamma / 2
        for builder in (green_scalar, green_mean_field):
            G = builder(cloud.positions, detuning, constants)
            np.testing.assert_array_equal(np.diag(G), expected)

    def test_single_atom(self, constants):
        G = green_scalar(np.zeros((1, 3)), detuning=2.0, constants=constants)
        np.testing.assert_array_equal(G, [[2.0j - 0.5]])

    def test_coincident_atoms_give_non_finite_entries(self, constants):
        r = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 2.0]])
        with np.errstate(divide="ignore", invalid="ignore"):
            G = green_scalar(r, detuning=0.0, constants=constants)
        assert not np.isfinite(G[0, 1])
        assert np.isfinite(G[0, 2]) and np.isfinite(G[1, 2])
        assert np.all(np.isfinite(np.diag(G)))


class TestParallelFill:

    def test_threaded_fill_matches_serial(self, make_lattice, constants):
        r = make_lattice(5, seed=3)
        assert r.shape[0] >= MIN_PARALLEL_ROWS
        serial = green_scalar(r, 0.4, constants, workers=1)
        threaded = green_scalar(r, 0.4, constants, workers=4)
        np.testing.assert_allclose(threaded, serial, rtol=1e-14, atol=0)

    def test_more_workers_than_rows(self, make_lattice, constants):
        r = make_lattice(4, seed=5)
        G = green_scalar(r, 0.0, constants, workers=10_000)
        np.testing.assert_allclose(G, green_scalar(r, 0.0, constants, workers=1),
                                   rtol=1e-14, atol=0)


# =============================================================================
# Mean-field coupling
# =============================================================================

class TestMeanFieldCoupling:

    def test_negated_with_zero_diagonal(self, cloud, constants):
        G = green_mean_field(cloud.positions, 0.7, constants)
        coupling, removed = mean_field_coupling(G)

        np.testing.assert_array_equal(np.diag(coupling), 0)
        off = ~np.eye(cloud.N, dtype=bool)
        np.testing.assert_array_equal(coupling[off], -G[off])
        np.testing.assert_array_equal(removed, -(0.7j - 0.5))

    def test_input_is_not_modified(self, pair, constants):
        G = green_scalar(pair.positions, 0.0, constants)
        before = G.copy()
        mean_field_coupling(G)
        np.testing.assert_array_equal(G, before)

    def test_non_square_is_rejected(self):
        with pytest.raises(ValueError):
            mean_field_coupling(np.zeros((2, 3), dtype=complex))
