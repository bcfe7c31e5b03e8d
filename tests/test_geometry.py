"""Tests for pairwise geometry."""

import numpy as np
import pytest

from atom_optics.core.geometry import minimum_separation, pairwise_distances


def test_distances_of_a_right_triangle():
    r = np.array([[0.0, 0.0, 0.0], [3.0, 0.0, 0.0], [0.0, 4.0, 0.0]])
    R = pairwise_distances(r)
    expected = np.array([[0.0, 3.0, 4.0], [3.0, 0.0, 5.0], [4.0, 5.0, 0.0]])
    np.testing.assert_allclose(R, expected)


def test_distance_matrix_is_symmetric_with_zero_diagonal(make_lattice):
    R = pairwise_distances(make_lattice(3, seed=4))
    np.testing.assert_array_equal(R, R.T)
    np.testing.assert_array_equal(np.diag(R), 0.0)


def test_single_atom():
    R = pairwise_distances(np.zeros((1, 3)))
    assert R.shape == (1, 1) and R[0, 0] == 0.0
    assert minimum_separation(np.zeros((1, 3))) == np.inf


def test_minimum_separation_detects_coincident_atoms():
    r = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0], [0.0, 0.0, 0.0]])
    assert minimum_separation(r) == 0.0


def test_flat_input_is_rejected():
    with pytest.raises(ValueError):
        pairwise_distances(np.zeros(3))
