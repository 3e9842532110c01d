"""
Search space management for optimization parameters.
"""

import itertools
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from tuner.optimization.results.models import Candidate
from .parameter import ParameterSpec


class SearchSpace:
    """
    Manages the complete parameter search space for optimization.

    The search space defines all parameters that will be optimized, their kinds,
    ranges and constraints. Assignments are plain dicts keyed by `ParameterSpec.key`
    ("<owner_id>.<name>") in declaration order.

    Example:
        space = SearchSpace([
            ParameterSpec(owner_id="rsi-1", name="period", kind="discrete", low=2, high=50, step=1),
            ParameterSpec(owner_id="rsi-1", name="overbought", kind="discrete", low=60, high=90, step=5),
            ParameterSpec(owner_id="risk", name="stop_loss", kind="continuous", low=0.005, high=0.05),
            ParameterSpec(owner_id="ma-1", name="ma_type", kind="categorical", choices=["sma", "ema"]),
        ])
    """

    def __init__(self, parameters: Optional[List[ParameterSpec]] = None):
        """
        Initialize search space with parameter definitions.

        Args:
            parameters: List of ParameterSpec objects defining the search space.
                An empty space is allowed here; optimizers reject it before iterating.
        """
        self.parameters: Dict[str, ParameterSpec] = {}
        for param in parameters or []:
            self.add_parameter(param)

    def add_parameter(self, parameter: ParameterSpec):
        """
        Add a parameter to the search space.

        Args:
            parameter: Parameter to add
        """
        if parameter.key in self.parameters:
            raise ValueError(f"Parameter '{parameter.key}' already exists in search space")
        self.parameters[parameter.key] = parameter

    def get_parameter(self, key: str) -> ParameterSpec:
        if key not in self.parameters:
            raise ValueError(f"Parameter '{key}' not found in search space")
        return self.parameters[key]

    def get_parameter_names(self) -> List[str]:
        """Get list of all parameter keys in declaration order."""
        return list(self.parameters.keys())

    def get_dimensionality(self) -> int:
        return len(self.parameters)

    def is_empty(self) -> bool:
        return not self.parameters

    def sample_assignment(self, rng: np.random.RandomState) -> Dict[str, Any]:
        return {key: param.sample(rng) for key, param in self.parameters.items()}

    def generate_random(self, rng: np.random.RandomState) -> Candidate:
        """
        Draw one candidate uniformly from the space.

        Args:
            rng: Random state owned by the current run

        Returns:
            Unevaluated candidate
        """
        return Candidate(assignment=self.sample_assignment(rng))

    def validate_configuration(self, config: Dict[str, Any]) -> bool:
        """
        Validate if a parameter configuration is valid for this search space.

        Args:
            config: Parameter configuration to validate

        Returns:
            True if every key is known, present and within its domain
        """
        if set(config.keys()) != set(self.parameters.keys()):
            return False

        return all(self.parameters[key].validate_value(value) for key, value in config.items())

    def clamp(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Clip a parameter configuration to be within the search space domain.

        Total and idempotent: unknown keys are dropped, missing keys take the
        parameter's lower bound (first choice for categorical parameters).

        Args:
            config: Parameter configuration to clip

        Returns:
            Clipped configuration
        """
        clipped_config = {}

        for key, param in self.parameters.items():
            if key in config:
                clipped_config[key] = param.clip_value(config[key])
            elif param.is_categorical:
                clipped_config[key] = param.choices[0]
            else:
                clipped_config[key] = param.clip_value(param.low)

        return clipped_config

    def neighbor(self, config: Dict[str, Any], rng: np.random.RandomState, scale: float, n_keys: int = 1) -> Dict[str, Any]:
        """
        Perturb `n_keys` randomly chosen keys of a configuration, then clamp.

        Args:
            config: Current configuration
            rng: Random state owned by the current run
            scale: Step size as a fraction of each parameter's range
            n_keys: How many keys to perturb

        Returns:
            New clamped configuration; the input is not modified
        """
        neighbor = self.clamp(config)
        keys = self.get_parameter_names()
        if not keys:
            return neighbor

        n_keys = min(max(1, n_keys), len(keys))
        for index in rng.choice(len(keys), size=n_keys, replace=False):
            key = keys[int(index)]
            neighbor[key] = self.parameters[key].perturb(neighbor[key], rng, scale)

        return neighbor

    def grid_axes(self, default_n_points: int = 10) -> List[List[Any]]:
        return [param.grid_values(default_n_points) for param in self.parameters.values()]

    def grid_size(self, default_n_points: int = 10) -> int:
        """Number of points in the full Cartesian grid, without enumerating it."""
        size = 1
        for axis in self.grid_axes(default_n_points):
            size *= len(axis)
        return size

    def create_grid(self, default_n_points: int = 10, limit: Optional[int] = None) -> Iterator[Dict[str, Any]]:
        """
        Lazily enumerate grid configurations in lexicographic order.

        The first declared parameter varies slowest. With `limit`, only the first
        `limit` configurations are produced.

        Args:
            default_n_points: Number of points per dimension for numeric parameters without step or n_points
            limit: Optional maximum number of configurations

        Returns:
            Iterator of parameter configurations forming a grid
        """
        names = self.get_parameter_names()
        combinations = itertools.product(*self.grid_axes(default_n_points))
        if limit is not None:
            combinations = itertools.islice(combinations, limit)

        for combination in combinations:
            yield dict(zip(names, combination))

    def vector_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Lower and upper bounds of the numeric encoding used by particle swarm."""
        bounds = [param.vector_bounds() for param in self.parameters.values()]
        lows = np.array([b[0] for b in bounds], dtype=float)
        highs = np.array([b[1] for b in bounds], dtype=float)
        return lows, highs

    def encode(self, config: Dict[str, Any]) -> np.ndarray:
        return np.array([param.encode(config[key]) for key, param in self.parameters.items()], dtype=float)

    def decode(self, vector: np.ndarray) -> Dict[str, Any]:
        return {
            key: param.decode(coordinate)
            for (key, param), coordinate in zip(self.parameters.items(), vector)
        }

    def group_by_owner(self, config: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """Nest a flat configuration as {owner_id: {name: value}}."""
        nested: Dict[str, Dict[str, Any]] = {}
        for key, value in config.items():
            param = self.parameters.get(key)
            if param is None:
                continue
            nested.setdefault(param.owner_id, {})[param.name] = value
        return nested

    def __len__(self) -> int:
        """Get number of parameters in search space."""
        return len(self.parameters)

    def __repr__(self) -> str:
        """String representation of search space."""
        param_info = []
        for key, param in self.parameters.items():
            if param.is_categorical:
                param_info.append(f"{key}: {param.kind.value}{param.choices}")
            else:
                param_info.append(f"{key}: {param.kind.value}[{param.low}, {param.high}]")

        return f"SearchSpace({', '.join(param_info)})"
