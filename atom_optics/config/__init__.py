"""Configuration management for coupled-dipole simulations."""

from typing import Dict, Any, Optional, Tuple
import json
from dataclasses import asdict

import numpy as np

from ..models import (
    Atoms,
    EvolutionOptions,
    Laser,
    ModelKind,
    PhysicalConstants,
    Problem,
)
from ..core.physics import get_strategy

_EVOLUTION_KEYS = ("method", "first_step", "atol", "rtol", "max_step",
                   "save_trajectory", "t_eval", "matvec", "workers")


class ConfigManager:
    """Manages simulation configuration and parameters."""

    @staticmethod
    def load_config(filepath: str) -> Dict[str, Any]:
        """Load configuration from a JSON file."""
        with open(filepath, 'r') as f:
            return json.load(f)

    @staticmethod
    def save_config(config: Dict[str, Any], filepath: str) -> None:
        """Save configuration to a JSON file."""
        with open(filepath, 'w') as f:
            json.dump(config, f, indent=2)

    @staticmethod
    def validate_config(config: Dict[str, Any]) -> bool:
        """Validate configuration dictionary."""
        required_sections = ['atoms', 'laser']
        for section in required_sections:
            if section not in config:
                raise ValueError(f"Missing required section: {section}")
        if 'positions' not in config['atoms']:
            raise ValueError("Section 'atoms' needs a 'positions' list")

        model = config.get('model', ModelKind.SCALAR.value)
        known = [kind.value for kind in ModelKind]
        if model not in known:
            raise ValueError(f"Unknown model '{model}', expected one of {known}")

        unknown = set(config.get('evolution', {})) - set(_EVOLUTION_KEYS)
        if unknown:
            raise ValueError(f"Unknown evolution options: {sorted(unknown)}")

        tspan = config.get('tspan', (0.0, 50.0))
        if len(tspan) != 2 or tspan[1] <= tspan[0]:
            raise ValueError(f"tspan must be (start, end) with end > start, got {tspan}")
        return True

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Create problem and solver options from a configuration dictionary."""
        cls.validate_config(config_dict)

        atoms = Atoms(np.asarray(config_dict['atoms']['positions'], dtype=float))

        laser_config = dict(config_dict['laser'])
        amplitude = laser_config.pop('amplitude', 1e-2)
        if isinstance(amplitude, (list, tuple)):
            amplitude = complex(amplitude[0], amplitude[1])
        if 'direction' in laser_config:
            laser_config['direction'] = tuple(laser_config['direction'])
        laser = Laser(amplitude=amplitude, **laser_config)

        constants = PhysicalConstants(**config_dict.get('constants', {}))

        model = ModelKind(config_dict.get('model', ModelKind.SCALAR.value))
        problem = Problem(atoms, laser, model, get_strategy(model).linearity, constants)

        options = EvolutionOptions(**config_dict.get('evolution', {}))
        tspan = tuple(float(t) for t in config_dict.get('tspan', (0.0, 50.0)))

        return {
            'problem': problem,
            'options': options,
            'tspan': tspan,
        }

    @classmethod
    def to_dict(cls, problem: Problem,
                options: Optional[EvolutionOptions] = None,
                tspan: Tuple[float, float] = (0.0, 50.0)) -> Dict[str, Any]:
        """Convert a problem and solver options back to a dictionary."""
        options = options or EvolutionOptions()
        amplitude = complex(problem.laser.amplitude)
        evolution = asdict(options)
        if evolution['t_eval'] is not None:
            evolution['t_eval'] = [float(t) for t in evolution['t_eval']]
        if not np.isfinite(evolution['max_step']):
            # JSON has no infinity; fall back to the default
            evolution.pop('max_step')
        return {
            'model': problem.model.value if isinstance(problem.model, ModelKind) else str(problem.model),
            'atoms': {'positions': problem.atoms.positions.tolist()},
            'laser': {
                'detuning': problem.laser.detuning,
                'amplitude': [amplitude.real, amplitude.imag],
                'direction': list(problem.laser.direction),
                'waist': problem.laser.waist,
            },
            'constants': asdict(problem.constants),
            'evolution': evolution,
            'tspan': list(tspan),
        }


# Default configuration
def get_default_config() -> Dict[str, Any]:
    """Get default configuration parameters."""
    return {
        "model": "scalar",
        "atoms": {
            "positions": [[0.0, 0.0, 0.0], [0.0, 0.0, 1.0]]  # units of 1/k0
        },
        "laser": {
            "detuning": 0.0,  # units of Gamma
            "amplitude": [1e-2, 0.0],  # (re, im)
            "direction": [0.0, 0.0, 1.0],
            "waist": None  # plane wave
        },
        "constants": {
            "gamma": 1.0,
            "k0": 1.0
        },
        "evolution": {
            "method": "LSODA",
            "first_step": 1e-10,
            "atol": 1e-10,
            "rtol": 1e-10,
            "save_trajectory": True,
            "matvec": "blas",
            "workers": None
        },
        "tspan": [0.0, 50.0]
    }
