"""
Parameter definition and types for optimization search spaces using Pydantic.
"""

import math
from enum import Enum
from typing import Any, List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ParameterKind(str, Enum):
    """Kinds of parameters that can be optimized."""
    CONTINUOUS = "continuous"
    DISCRETE = "discrete"
    CATEGORICAL = "categorical"


class ParameterSpec(BaseModel):
    """
    Definition of a single tunable parameter of one strategy component.

    Args:
        owner_id: Id of the strategy node (indicator, condition, risk rule) owning the parameter
        name: Name of the parameter within its owner
        kind: continuous, discrete or categorical
        low: Lower bound for numeric parameters
        high: Upper bound for numeric parameters
        step: Lattice spacing. Required for discrete parameters, optional grid spacing for continuous ones
        choices: Allowed values for categorical parameters
        n_points: Number of grid points for a continuous parameter without step

    Examples:
        # Discrete parameter on a unit lattice
        ParameterSpec(owner_id="rsi-1", name="period", kind=ParameterKind.DISCRETE, low=2, high=50, step=1)

        # Continuous parameter
        ParameterSpec(owner_id="risk", name="stop_loss", kind=ParameterKind.CONTINUOUS, low=0.005, high=0.05)

        # Categorical parameter
        ParameterSpec(owner_id="ma-1", name="ma_type", kind=ParameterKind.CATEGORICAL, choices=["sma", "ema"])
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    owner_id: str = Field("strategy", description="Strategy node owning this parameter")
    name: str
    kind: ParameterKind

    # Numeric parameters
    low: Optional[float] = None
    high: Optional[float] = None
    step: Optional[float] = Field(
        None,
        description="Spacing between lattice values for numeric parameters"
    )
    n_points: Optional[int] = Field(
        None,
        description="Number of grid points for this parameter if step is not provided"
    )

    # Categorical parameters
    choices: Optional[List[Any]] = None

    @field_validator('choices')
    @classmethod
    def validate_choices(cls, v):
        """Validate choices are not empty if provided."""
        if v is not None and len(v) == 0:
            raise ValueError("Choices list cannot be empty")
        return v

    @model_validator(mode='after')
    def validate_parameter(self):
        """Validate parameter definition after initialization."""

        if self.kind in (ParameterKind.CONTINUOUS, ParameterKind.DISCRETE):
            if self.low is None or self.high is None:
                raise ValueError(f"Numeric parameter '{self.key}' requires low and high bounds")
            if self.low > self.high:
                raise ValueError(f"Parameter '{self.key}': low ({self.low}) must be <= high ({self.high})")
            if self.step is not None and self.step <= 0:
                raise ValueError(f"Parameter '{self.key}': step must be > 0")
            if self.kind == ParameterKind.DISCRETE and self.step is None:
                raise ValueError(f"Discrete parameter '{self.key}' requires a step")

        elif self.kind == ParameterKind.CATEGORICAL:
            if not self.choices:
                raise ValueError(f"Categorical parameter '{self.key}' requires non-empty choices")

        if self.step is not None and self.n_points is not None:
            raise ValueError(f"Parameter '{self.key}': specify either 'step' or 'n_points', not both")

        if self.n_points is not None:
            if self.kind != ParameterKind.CONTINUOUS:
                raise ValueError(f"Parameter '{self.key}': 'n_points' is only valid for continuous parameters")
            if self.n_points < 2:
                raise ValueError(f"Parameter '{self.key}': 'n_points' must be at least 2")

        return self

    @property
    def key(self) -> str:
        """Assignment key, unique within a search space."""
        return f"{self.owner_id}.{self.name}"

    @property
    def is_categorical(self) -> bool:
        return self.kind == ParameterKind.CATEGORICAL

    @property
    def span(self) -> float:
        """Width of the numeric range (0 for categorical parameters)."""
        if self.is_categorical:
            return 0.0
        return float(self.high - self.low)

    def _lattice_size(self) -> int:
        return int(math.floor(self.span / self.step + 1e-9)) + 1

    def _lattice_is_integral(self) -> bool:
        return self.kind == ParameterKind.DISCRETE and float(self.low).is_integer() and float(self.step).is_integer()

    def _lattice_value(self, index: int) -> Any:
        value = round(self.low + index * self.step, 12)
        if self._lattice_is_integral():
            return int(value)
        return float(value)

    def sample(self, rng: np.random.RandomState) -> Any:
        """
        Sample a value uniformly from this parameter's domain.

        Args:
            rng: Random state owned by the current run

        Returns:
            Sampled parameter value
        """
        if self.kind == ParameterKind.CATEGORICAL:
            return self.choices[rng.randint(len(self.choices))]

        if self.kind == ParameterKind.DISCRETE:
            return self._lattice_value(rng.randint(self._lattice_size()))

        if self.span == 0:
            return float(self.low)
        return float(rng.uniform(self.low, self.high))

    def validate_value(self, value: Any) -> bool:
        """
        Validate if a value is valid for this parameter.

        Args:
            value: Value to validate

        Returns:
            True if value is valid for this parameter
        """
        try:
            if self.kind == ParameterKind.CATEGORICAL:
                return value in self.choices

            if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
                return False
            if not self.low <= value <= self.high:
                return False

            if self.kind == ParameterKind.DISCRETE:
                index = (value - self.low) / self.step
                return abs(index - round(index)) < 1e-6

            return True

        except (TypeError, ValueError):
            return False

    def clip_value(self, value: Any) -> Any:
        """
        Clip a value to be within this parameter's domain.

        Numeric values are clipped to the bounds (discrete values are then snapped
        to the nearest lattice point); unknown categorical values fall back to the
        first choice. Clipping a valid value returns it unchanged.

        Args:
            value: Value to clip

        Returns:
            Clipped value
        """
        if self.kind == ParameterKind.CATEGORICAL:
            if value in self.choices:
                return value
            return self.choices[0]

        if self.validate_value(value):
            # same value, as a plain Python number
            if isinstance(value, (int, np.integer)) or (float(value).is_integer() and self._lattice_is_integral()):
                return int(value)
            return float(value)

        try:
            numeric = float(value)
        except (TypeError, ValueError):
            numeric = float(self.low)
        if math.isnan(numeric):
            numeric = float(self.low)

        clipped = float(np.clip(numeric, self.low, self.high))

        if self.kind == ParameterKind.DISCRETE:
            index = int(round((clipped - self.low) / self.step))
            index = min(max(index, 0), self._lattice_size() - 1)
            return self._lattice_value(index)

        return clipped

    def perturb(self, value: Any, rng: np.random.RandomState, scale: float) -> Any:
        """
        Gaussian step of standard deviation `scale * span`, clipped to the domain.

        Categorical parameters switch to a different choice instead.
        """
        if self.kind == ParameterKind.CATEGORICAL:
            others = [choice for choice in self.choices if choice != value]
            if not others:
                return self.clip_value(value)
            return others[rng.randint(len(others))]

        if self.span == 0:
            return self.clip_value(self.low)

        return self.clip_value(float(value) + rng.normal(0.0, scale * self.span))

    def grid_values(self, default_n_points: int = 10) -> List[Any]:
        """
        Ordered grid values for this parameter.

        Uses step if provided, then n_points, then `default_n_points` evenly spaced values.
        """
        if self.kind == ParameterKind.CATEGORICAL:
            return list(self.choices)

        if self.span == 0:
            return [self.clip_value(self.low)]

        if self.step is not None:
            if self.kind == ParameterKind.DISCRETE:
                return [self._lattice_value(i) for i in range(self._lattice_size())]
            values = np.arange(self.low, self.high + self.step / 10, self.step)
            return [float(v) for v in np.clip(values, self.low, self.high)]

        n_points = self.n_points or default_n_points
        return [float(v) for v in np.linspace(self.low, self.high, n_points)]

    def encode(self, value: Any) -> float:
        """Numeric coordinate of a value (categorical values map to their index)."""
        if self.kind == ParameterKind.CATEGORICAL:
            return float(self.choices.index(self.clip_value(value)))
        return float(value)

    def decode(self, coordinate: float) -> Any:
        """Inverse of `encode`, clipped to the domain."""
        if self.kind == ParameterKind.CATEGORICAL:
            index = int(np.clip(round(float(coordinate)), 0, len(self.choices) - 1))
            return self.choices[index]
        return self.clip_value(coordinate)

    def vector_bounds(self) -> Tuple[float, float]:
        if self.kind == ParameterKind.CATEGORICAL:
            return 0.0, float(len(self.choices) - 1)
        return float(self.low), float(self.high)
