"""Model dispatch and the public solve / evolve entry points.

Each model kind is described by a :class:`ModelStrategy` bundle (matrix
builder, RHS, initial condition, steady-state rule) kept in a registry
keyed by the model name. Problems carry only the tag; every operation here
looks the bundle up and delegates to it.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

import numpy as np
from scipy import linalg

from ..models import (
    EvolutionOptions,
    EvolutionResult,
    Linearity,
    ModelKind,
    Problem,
)
from .driving import apply_laser_over_atoms
from .dynamics import (
    MeanFieldParameters,
    ScalarParameters,
    integrate,
    mean_field_initial_condition,
    mean_field_rhs,
    scalar_initial_condition,
    scalar_rhs,
)
from .kernels import green_mean_field, green_scalar

logger = logging.getLogger(__name__)

DEFAULT_STEADY_STATE_TIME = 50.0


@dataclass(frozen=True)
class ModelStrategy:
    """Everything needed to build, evolve and solve one model kind."""
    linearity: Linearity
    build_matrix: Callable[..., np.ndarray]
    evolution_parameters: Callable[[Problem, np.ndarray, np.ndarray, EvolutionOptions], Any]
    rhs: Callable[[np.ndarray, np.ndarray, Any, float], None]
    initial_condition: Callable[[int], np.ndarray]
    steady_state: Callable[..., np.ndarray]
    states_per_atom: int = 1

    def state_size(self, n_atoms: int) -> int:
        return self.states_per_atom * n_atoms


_REGISTRY: Dict[str, ModelStrategy] = {}


def _key(kind: Union[ModelKind, str]) -> str:
    return kind.value if isinstance(kind, Enum) else str(kind)


def register_model(kind: Union[ModelKind, str], strategy: ModelStrategy) -> None:
    """Register (or replace) the strategy bundle of a model kind."""
    _REGISTRY[_key(kind)] = strategy


def get_strategy(kind: Union[ModelKind, str]) -> ModelStrategy:
    try:
        return _REGISTRY[_key(kind)]
    except KeyError:
        raise KeyError(
            f"unknown model '{_key(kind)}', registered: {sorted(_REGISTRY)}"
        ) from None


# ------------------------------------------------------------ public API ---

def get_interaction_matrix(problem: Problem, workers: Optional[int] = None) -> np.ndarray:
    """Interaction matrix G of the problem's atoms and laser detuning.

    Pure: unchanged atoms and laser always give the same matrix.
    """
    builder = problem.kernel or get_strategy(problem.model).build_matrix
    logger.debug("start: interaction matrix (%s, N=%d)", _key(problem.model), problem.N)
    G = builder(problem.atoms.positions, problem.laser.detuning, problem.constants, workers)
    logger.debug("end  : interaction matrix")
    return G


def get_drive(problem: Problem) -> np.ndarray:
    """Laser amplitude Omega_n at each atom."""
    return apply_laser_over_atoms(problem.laser, problem.atoms, problem.constants)


def default_initial_condition(problem: Problem) -> np.ndarray:
    return get_strategy(problem.model).initial_condition(problem.N)


def get_steady_state(problem: Problem, **kwargs: Any) -> np.ndarray:
    """Steady state of the problem.

    Linear models solve their linear system directly. Nonlinear models have
    no closed form: their steady state is the end point of a finite time
    evolution (see :func:`mean_field_steady_state`).

    Keyword arguments are passed to the model's steady-state rule; one it
    does not accept raises ``TypeError``.
    """
    return get_strategy(problem.model).steady_state(problem, **kwargs)


def time_evolution(problem: Problem, u0: Optional[np.ndarray] = None,
                   tspan: Tuple[float, float] = (0.0, 10.0),
                   options: Optional[EvolutionOptions] = None) -> EvolutionResult:
    """Integrate the problem's equations of motion over ``tspan``.

    Args:
        problem: Model, atoms and laser
        u0: Initial state; ``None`` uses the model's ground state. Not modified.
        tspan: (start, end) times
        options: Solver settings; defaults to :class:`EvolutionOptions`

    Returns:
        EvolutionResult with every accepted step, the ``t_eval`` samples,
        or only the final state when ``options.save_trajectory`` is False
    """
    options = options or EvolutionOptions()
    strategy = get_strategy(problem.model)

    if u0 is None:
        u0 = strategy.initial_condition(problem.N)
    u0 = np.asarray(u0)
    expected = strategy.state_size(problem.N)
    if u0.shape != (expected,):
        raise ValueError(
            f"initial state has shape {u0.shape}, model '{_key(problem.model)}' "
            f"with N={problem.N} needs ({expected},)"
        )

    logger.debug("start: time evolution (%s, N=%d, tspan=%s, method=%s)",
                 _key(problem.model), problem.N, tspan, options.method)
    G = get_interaction_matrix(problem, workers=options.workers)
    omega = get_drive(problem)
    params = strategy.evolution_parameters(problem, G, omega, options)
    t, states, metadata = integrate(strategy.rhs, params, u0, tspan, options)
    logger.debug("end  : time evolution (%d samples, nfev=%d)", t.size, metadata["nfev"])

    return EvolutionResult(t=t, states=states, model=problem.model,
                           n_atoms=problem.N, metadata=metadata)


# --------------------------------------------------------- steady states ---

def scalar_steady_state(problem: Problem, workers: Optional[int] = None) -> np.ndarray:
    """Solve G beta = (i/2) Omega by LU factorisation.

    Raises:
        scipy.linalg.LinAlgError: if G is singular
        ValueError: if G has non-finite entries (coincident atoms)
    """
    logger.debug("start: steady state (scalar, N=%d)", problem.N)
    G = get_interaction_matrix(problem, workers=workers)
    omega = get_drive(problem)
    if G.shape != (omega.shape[0], omega.shape[0]):
        raise ValueError(f"drive has shape {omega.shape}, interaction matrix is {G.shape}")
    beta = linalg.solve(G, 0.5j * omega, check_finite=True)
    logger.debug("end  : steady state")
    return beta


def mean_field_steady_state(problem: Problem,
                            time_max: float = DEFAULT_STEADY_STATE_TIME,
                            options: Optional[EvolutionOptions] = None,
                            workers: Optional[int] = None) -> np.ndarray:
    """Long-time state of the mean-field equations.

    Evolves the ground state over (0, time_max) and returns the last state,
    discarding intermediate samples. This approximates the steady state; it
    is not a certified fixed point and may be far from one if ``time_max``
    is short compared to the slowest collective decay. ``workers`` overrides
    the matrix-fill thread count of ``options``.
    """
    options = (options or EvolutionOptions()).replace(save_trajectory=False)
    if workers is not None:
        options = options.replace(workers=workers)
    u0 = mean_field_initial_condition(problem.N)
    result = time_evolution(problem, u0, (0.0, time_max), options)
    return result.final_state


# -------------------------------------------------------------- registry ---

def _scalar_parameters(problem: Problem, G: np.ndarray, omega: np.ndarray,
                       options: EvolutionOptions) -> ScalarParameters:
    return ScalarParameters.build(G, omega, matvec=options.matvec)


def _mean_field_parameters(problem: Problem, G: np.ndarray, omega: np.ndarray,
                           options: EvolutionOptions) -> MeanFieldParameters:
    return MeanFieldParameters.build(G, omega, problem.laser.detuning,
                                     problem.constants, matvec=options.matvec)


register_model(ModelKind.SCALAR, ModelStrategy(
    linearity=Linearity.LINEAR,
    build_matrix=green_scalar,
    evolution_parameters=_scalar_parameters,
    rhs=scalar_rhs,
    initial_condition=scalar_initial_condition,
    steady_state=scalar_steady_state,
))

register_model(ModelKind.MEAN_FIELD, ModelStrategy(
    linearity=Linearity.NONLINEAR,
    build_matrix=green_mean_field,
    evolution_parameters=_mean_field_parameters,
    rhs=mean_field_rhs,
    initial_condition=mean_field_initial_condition,
    steady_state=mean_field_steady_state,
    states_per_atom=2,
))
