"""Coupled-dipole optics package.

This package simulates the optical response of cold atomic ensembles driven
by a laser, in the linear scalar coupled-dipole model and in the nonlinear
mean-field two-level model.
"""

__version__ = "0.1.0"

from .models import (
    PhysicalConstants,
    Atoms,
    Laser,
    ModelKind,
    Linearity,
    Problem,
    LinearOptics,
    NonLinearOptics,
    EvolutionOptions,
    EvolutionResult
)

from .core.physics import (
    ModelStrategy,
    register_model,
    get_strategy,
    get_interaction_matrix,
    get_drive,
    get_steady_state,
    time_evolution,
    default_initial_condition
)
from .core.dynamics import IntegrationError
from .config import ConfigManager, get_default_config

__all__ = [
    'PhysicalConstants',
    'Atoms',
    'Laser',
    'ModelKind',
    'Linearity',
    'Problem',
    'LinearOptics',
    'NonLinearOptics',
    'EvolutionOptions',
    'EvolutionResult',
    'ModelStrategy',
    'register_model',
    'get_strategy',
    'get_interaction_matrix',
    'get_drive',
    'get_steady_state',
    'time_evolution',
    'default_initial_condition',
    'IntegrationError',
    'ConfigManager',
    'get_default_config'
]
