"""Right-hand sides and time integration of the coupled-dipole equations.

RHS functions have the in-place signature ``rhs(du, u, params, t)`` and are
evaluated tens of thousands of times per run under tight tolerances, so
everything they touch (coupling matrix, drive, scratch vectors) is built
once per run and carried in ``params``.

Complex states are handed to ``solve_ivp`` as their float64 view, which
lets real-only methods such as LSODA integrate them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

import numpy as np
from scipy.integrate import solve_ivp
from scipy.linalg.blas import zgemv

from ..models import EvolutionOptions, PhysicalConstants
from .kernels import mean_field_coupling

logger = logging.getLogger(__name__)

# writes G @ x into out
MatVec = Callable[[np.ndarray, np.ndarray], None]

# the LSODA wrapper copies the derivative into its own work array, every
# other solve_ivp method keeps references to returned derivatives
_SHARES_DERIVATIVE = frozenset({"LSODA"})


class IntegrationError(RuntimeError):
    """The ODE solver stopped before reaching the end of the time span."""


def make_matvec(G: np.ndarray, backend: str = "blas") -> MatVec:
    """Allocation-free product ``out = G @ x`` for a fixed matrix."""
    if backend == "blas":
        # zgemv wants Fortran order; converting once avoids a copy per call
        Gf = np.asfortranarray(G, dtype=np.complex128)

        def matvec(x, out):
            y = zgemv(1.0, Gf, x, beta=0.0, y=out, overwrite_y=True)
            if y is not out:
                out[...] = y
        return matvec

    if backend == "numpy":
        Gc = np.ascontiguousarray(G, dtype=np.complex128)

        def matvec(x, out):
            np.dot(Gc, x, out=out)
        return matvec

    raise ValueError(f"unknown matvec backend '{backend}'")


def _check_square(G: np.ndarray, drive: np.ndarray) -> int:
    if G.ndim != 2 or G.shape[0] != G.shape[1]:
        raise ValueError(f"interaction matrix must be square, got shape {G.shape}")
    if drive.shape != (G.shape[0],):
        raise ValueError(
            f"drive has shape {drive.shape}, interaction matrix is {G.shape}"
        )
    return G.shape[0]


# --------------------------------------------------------------- scalar ---

@dataclass(frozen=True)
class ScalarParameters:
    """Constant data of the linear scalar equations du/dt = G u + drive."""
    G: np.ndarray
    drive: np.ndarray  # -(i/2) * Omega_n
    matvec: MatVec

    @classmethod
    def build(cls, G: np.ndarray, omega: np.ndarray,
              matvec: str = "blas") -> "ScalarParameters":
        G = np.asarray(G, dtype=np.complex128)
        omega = np.asarray(omega, dtype=np.complex128)
        _check_square(G, omega)
        return cls(G=G, drive=-0.5j * omega, matvec=make_matvec(G, matvec))


def scalar_rhs(du: np.ndarray, u: np.ndarray, p: ScalarParameters, t: float) -> None:
    p.matvec(u, du)
    np.add(du, p.drive, out=du)


def scalar_initial_condition(n_atoms: int) -> np.ndarray:
    return np.zeros(n_atoms, dtype=np.complex128)


# ----------------------------------------------------------- mean field ---

@dataclass(frozen=True)
class MeanFieldWorkspace:
    """Scratch vectors reused by every mean-field RHS call of one run.

    A workspace belongs to a single integration and must not be shared
    between evolutions running at the same time.
    """
    g_beta: np.ndarray
    w: np.ndarray
    half_drive: np.ndarray
    tmp: np.ndarray
    tmp_real: np.ndarray

    @classmethod
    def allocate(cls, omega: np.ndarray) -> "MeanFieldWorkspace":
        n = omega.shape[0]
        return cls(
            g_beta=np.zeros(n, dtype=np.complex128),
            w=np.zeros(n, dtype=np.complex128),
            half_drive=omega / 2,
            tmp=np.zeros(n, dtype=np.complex128),
            tmp_real=np.zeros(n, dtype=float),
        )


@dataclass(frozen=True)
class MeanFieldParameters:
    """Constant data and scratch space of the mean-field equations.

    ``G`` is the negated interaction matrix with a zero diagonal, so the
    matrix-vector product already excludes self coupling.
    ``removed_diagonal`` keeps the self terms taken out of it.
    """
    G: np.ndarray
    removed_diagonal: np.ndarray
    drive: np.ndarray
    detuning: float
    n_atoms: int
    gamma: float
    self_energy: complex  # i Delta - Gamma/2
    workspace: MeanFieldWorkspace
    matvec: MatVec

    @classmethod
    def build(cls, G: np.ndarray, omega: np.ndarray, detuning: float,
              constants: PhysicalConstants,
              matvec: str = "blas") -> "MeanFieldParameters":
        """Parameters from the scalar interaction matrix ``G``."""
        omega = np.asarray(omega, dtype=np.complex128)
        n = _check_square(np.asarray(G), omega)
        coupling, removed = mean_field_coupling(np.asarray(G, dtype=np.complex128))
        return cls(
            G=coupling,
            removed_diagonal=removed,
            drive=omega,
            detuning=float(detuning),
            n_atoms=n,
            gamma=float(constants.gamma),
            self_energy=1j * float(detuning) - float(constants.gamma) / 2,
            workspace=MeanFieldWorkspace.allocate(omega),
            matvec=make_matvec(coupling, matvec),
        )


def mean_field_rhs(du: np.ndarray, u: np.ndarray, p: MeanFieldParameters, t: float) -> None:
    """Mean-field two-level equations for u = [beta, z].

    W_n        = Omega_n/2 - i (G beta)_n
    d beta_n   = (i Delta - Gamma/2) beta_n + i W_n z_n
    d z_n      = -Gamma (1 + z_n) - 4 Im(beta_n conj(W_n))
    """
    N = p.n_atoms
    ws = p.workspace
    beta, z = u[:N], u[N:]
    d_beta, d_z = du[:N], du[N:]

    p.matvec(beta, ws.g_beta)
    np.multiply(ws.g_beta, -1j, out=ws.w)
    np.add(ws.w, ws.half_drive, out=ws.w)

    np.multiply(ws.w, z, out=ws.tmp)
    np.multiply(ws.tmp, 1j, out=ws.tmp)
    np.multiply(beta, p.self_energy, out=d_beta)
    np.add(d_beta, ws.tmp, out=d_beta)

    np.conjugate(ws.w, out=ws.tmp)
    np.multiply(ws.tmp, beta, out=ws.tmp)
    np.multiply(ws.tmp.imag, 4.0, out=ws.tmp_real)
    np.multiply(z, -p.gamma, out=d_z)
    np.subtract(d_z, p.gamma, out=d_z)
    np.subtract(d_z, ws.tmp_real, out=d_z)


def mean_field_initial_condition(n_atoms: int) -> np.ndarray:
    """Ground state: no coherence and z = 2|beta|^2 - 1 = -1 on every atom."""
    beta0 = np.zeros(n_atoms, dtype=np.complex128)
    z0 = 2 * beta0 * np.conj(beta0) - 1
    return np.concatenate([beta0, z0])


# ---------------------------------------------------------- integration ---

def integrate(rhs: Callable[[np.ndarray, np.ndarray, Any, float], None],
              params: Any, u0: np.ndarray, tspan: Tuple[float, float],
              options: EvolutionOptions) -> Tuple[np.ndarray, np.ndarray, Dict[str, Any]]:
    """Advance ``u0`` over ``tspan`` with ``solve_ivp``.

    Returns:
        Tuple of (times, complex states of shape (T, M), solver metadata)

    Raises:
        IntegrationError: if the solver does not reach the end of the span
    """
    u0 = np.array(u0, dtype=np.complex128)
    du = np.empty_like(u0)
    du_real = du.view(np.float64)
    share = options.method in _SHARES_DERIVATIVE

    def fun(t, y):
        # finite-difference Jacobians (BDF, Radau) pass strided columns
        rhs(du, np.ascontiguousarray(y).view(np.complex128), params, t)
        return du_real if share else du_real.copy()

    t0, t1 = float(tspan[0]), float(tspan[1])
    sol = solve_ivp(fun, (t0, t1), u0.view(np.float64), **options.solver_kwargs((t0, t1)))
    if not sol.success:
        logger.warning("integration failed at t=%s: %s",
                       sol.t[-1] if sol.t.size else t0, sol.message)
        raise IntegrationError(sol.message)

    states = np.ascontiguousarray(sol.y.T).view(np.complex128)
    metadata = {
        "method": options.method,
        "message": sol.message,
        "nfev": int(sol.nfev),
        "njev": int(sol.njev),
        "nlu": int(sol.nlu),
    }
    return sol.t, states, metadata
