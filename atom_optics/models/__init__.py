"""Core data models for coupled-dipole optics simulations."""

from dataclasses import dataclass, field, replace as _replace
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union
from enum import Enum

import numpy as np


class ModelKind(str, Enum):
    SCALAR = "scalar"
    MEAN_FIELD = "mean_field"


class Linearity(str, Enum):
    LINEAR = "linear"
    NONLINEAR = "nonlinear"


MATVEC_BACKENDS = ("blas", "numpy")


@dataclass(frozen=True)
class PhysicalConstants:
    """Single-atom linewidth and light wavenumber, in simulation units."""
    gamma: float = 1.0
    k0: float = 1.0


@dataclass(frozen=True, eq=False)
class Atoms:
    """Point scatterers at fixed positions.

    Positions are stored as a read-only ``(N, 3)`` array. Inputs of shape
    ``(N,)`` or ``(N, 2)`` are padded with zero coordinates. Distinct
    positions are a precondition of every coupling calculation; coincident
    atoms are not rejected here.
    """
    positions: np.ndarray

    def __post_init__(self):
        r = np.array(self.positions, dtype=float)
        if r.ndim == 1:
            r = r[:, None]
        if r.ndim != 2 or r.shape[1] > 3:
            raise ValueError(
                f"positions must have shape (N, 3), got {np.shape(self.positions)}"
            )
        if r.shape[0] == 0:
            raise ValueError("at least one atom is required")
        if r.shape[1] < 3:
            r = np.hstack([r, np.zeros((r.shape[0], 3 - r.shape[1]))])
        r.setflags(write=False)
        object.__setattr__(self, "positions", r)

    @property
    def N(self) -> int:
        return self.positions.shape[0]


@dataclass(frozen=True)
class Laser:
    """Driving field: detuning plus a projection rule onto atom positions.

    Plane wave along ``direction`` unless a Gaussian ``waist`` is given, in
    which case the amplitude falls off as exp(-rho^2/w^2) away from the
    beam axis.
    """
    detuning: float = 0.0
    amplitude: complex = 1e-2
    direction: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    waist: Optional[float] = None

    def __post_init__(self):
        k = np.asarray(self.direction, dtype=float)
        norm = np.linalg.norm(k)
        if k.shape != (3,) or norm == 0:
            raise ValueError(f"direction must be a non-zero 3-vector, got {self.direction}")
        if self.waist is not None and self.waist <= 0:
            raise ValueError(f"waist must be positive, got {self.waist}")
        object.__setattr__(self, "direction", tuple(float(x) for x in k / norm))

    def project(self, positions: np.ndarray, k0: float) -> np.ndarray:
        """Complex field amplitude at each position."""
        r = np.asarray(positions, dtype=float)
        k_hat = np.asarray(self.direction)
        along = r @ k_hat
        amp = self.amplitude * np.exp(1j * k0 * along)
        if self.waist is not None:
            rho2 = np.sum(r * r, axis=1) - along**2
            amp = amp * np.exp(-rho2 / self.waist**2)
        return amp.astype(np.complex128)


# (positions, detuning, constants, workers) -> (N, N) complex
KernelFunction = Callable[[np.ndarray, float, PhysicalConstants, Optional[int]], np.ndarray]


@dataclass(frozen=True)
class Problem:
    """A model tag bound to atoms, laser and physical constants.

    ``model`` selects the strategy bundle registered in
    :mod:`atom_optics.core.physics`; ``linearity`` must agree with it.
    ``kernel`` optionally replaces the model's interaction matrix builder.
    """
    atoms: Atoms
    laser: Laser
    model: Union[ModelKind, str]
    linearity: Linearity
    constants: PhysicalConstants = field(default_factory=PhysicalConstants)
    kernel: Optional[KernelFunction] = None

    def __post_init__(self):
        # late import: the registry depends on this module
        from ..core.physics import get_strategy

        strategy = get_strategy(self.model)
        if strategy.linearity != self.linearity:
            raise ValueError(
                f"model '{_kind_name(self.model)}' is {strategy.linearity.value}, "
                f"cannot build a {self.linearity.value} problem from it"
            )

    @property
    def N(self) -> int:
        return self.atoms.N

    @property
    def state_size(self) -> int:
        """Length of the state vector for this model."""
        from ..core.physics import get_strategy

        return get_strategy(self.model).state_size(self.atoms.N)


def LinearOptics(atoms: Atoms, laser: Laser,
                 model: Union[ModelKind, str] = ModelKind.SCALAR,
                 constants: Optional[PhysicalConstants] = None,
                 kernel: Optional[KernelFunction] = None) -> Problem:
    """Linear (weak-drive) problem; scalar coupled dipoles by default."""
    return Problem(atoms, laser, model, Linearity.LINEAR,
                   constants or PhysicalConstants(), kernel)


def NonLinearOptics(atoms: Atoms, laser: Laser,
                    model: Union[ModelKind, str] = ModelKind.MEAN_FIELD,
                    constants: Optional[PhysicalConstants] = None,
                    kernel: Optional[KernelFunction] = None) -> Problem:
    """Nonlinear problem; mean-field two-level atoms by default."""
    return Problem(atoms, laser, model, Linearity.NONLINEAR,
                   constants or PhysicalConstants(), kernel)


def _kind_name(kind: Union[ModelKind, str]) -> str:
    return kind.value if isinstance(kind, Enum) else str(kind)


@dataclass
class EvolutionOptions:
    """Settings forwarded to ``scipy.integrate.solve_ivp``.

    LSODA switches between Adams and BDF formulas of varying order, which
    covers the moderately stiff regime of dense atomic clouds. The tiny
    first step resolves the fast initial transient.
    """
    method: str = "LSODA"
    first_step: Optional[float] = 1e-10
    atol: float = 1e-10
    rtol: float = 1e-10
    max_step: float = np.inf
    save_trajectory: bool = True
    t_eval: Optional[Sequence[float]] = None
    matvec: str = "blas"
    workers: Optional[int] = None

    def __post_init__(self):
        if self.matvec not in MATVEC_BACKENDS:
            raise ValueError(
                f"matvec must be one of {MATVEC_BACKENDS}, got '{self.matvec}'"
            )

    def replace(self, **changes: Any) -> "EvolutionOptions":
        return _replace(self, **changes)

    def solver_kwargs(self, tspan: Tuple[float, float]) -> Dict[str, Any]:
        """Keyword arguments for ``solve_ivp`` over ``tspan``."""
        kwargs: Dict[str, Any] = {
            "method": self.method,
            "atol": self.atol,
            "rtol": self.rtol,
            "max_step": self.max_step,
        }
        if self.first_step is not None:
            kwargs["first_step"] = self.first_step
        if not self.save_trajectory:
            kwargs["t_eval"] = [tspan[1]]
        elif self.t_eval is not None:
            kwargs["t_eval"] = np.asarray(self.t_eval, dtype=float)
        return kwargs


@dataclass(frozen=True, eq=False)
class EvolutionResult:
    """Time samples and states of one evolution run."""
    t: np.ndarray
    states: np.ndarray  # (T, M) complex
    model: Union[ModelKind, str]
    n_atoms: int
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def final_state(self) -> np.ndarray:
        return self.states[-1]

    @property
    def coherences(self) -> np.ndarray:
        return self.states[:, :self.n_atoms]

    @property
    def populations(self) -> np.ndarray:
        if self.states.shape[1] != 2 * self.n_atoms:
            raise ValueError(
                f"model '{_kind_name(self.model)}' has no population variables"
            )
        return self.states[:, self.n_atoms:]

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to a serializable dictionary."""
        return {
            "model": _kind_name(self.model),
            "n_atoms": self.n_atoms,
            "t": self.t.tolist(),
            "states": {"real": self.states.real.tolist(),
                       "imag": self.states.imag.tolist()},
            "metadata": {k: v.tolist() if isinstance(v, np.ndarray) else v
                         for k, v in self.metadata.items()},
        }
