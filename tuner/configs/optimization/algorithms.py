from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OptimizationAlgorithm(str, Enum):
    """Search strategies selectable by name."""
    GRID_SEARCH = "grid-search"
    RANDOM_SEARCH = "random-search"
    GENETIC_ALGORITHM = "genetic-algorithm"
    SIMULATED_ANNEALING = "simulated-annealing"
    PARTICLE_SWARM = "particle-swarm"
    BAYESIAN_OPTIMIZATION = "bayesian-optimization"
    MULTI_OBJECTIVE = "multi-objective"


class Budget(BaseModel):
    """
    Shared iteration and wall-clock budget.

    An iteration is one evaluated point for grid, random and guided sampling,
    one neighbor step for annealing, and one generation or swarm step for the
    population strategies.
    """

    model_config = ConfigDict(extra="forbid")

    max_iterations: int = Field(100, ge=1, description="Maximum number of iterations")
    time_limit_seconds: Optional[float] = Field(None, gt=0, description="Wall-clock limit for the run")


class ConvergenceConfig(BaseModel):
    """Early-stopping thresholds consulted by the convergence tracker."""

    model_config = ConfigDict(extra="forbid")

    variance_threshold: float = Field(1e-6, ge=0, description="Stop population runs when score variance drops below this")
    stagnation_window: int = Field(50, ge=1, description="Iterations without improvement before an iterative run stops")
    stagnation_epsilon: float = Field(1e-9, ge=0, description="Minimum best-score gain that counts as improvement")


class GridSearchConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_n_points: int = Field(10, ge=2, description="Subdivisions for numeric parameters without step or n_points")


class GeneticConfig(BaseModel):
    """
    Genetic algorithm settings.

    Attributes:
        population_size (int): Candidates per generation.
        generations (int): Generations to evolve, capped by the budget.
        mutation_rate (float): Per-key probability of Gaussian mutation.
        crossover_rate (float): Probability that a parent pair is recombined.
        elitism_rate (float): Fraction of the population carried over unchanged (at least one).
        tournament_size (int): Contestants drawn per tournament.
        mutation_scale (float): Mutation standard deviation as a fraction of the parameter range.
    """

    model_config = ConfigDict(extra="forbid")

    population_size: int = Field(50, ge=2)
    generations: int = Field(100, ge=1)
    mutation_rate: float = Field(0.1, ge=0, le=1)
    crossover_rate: float = Field(0.8, ge=0, le=1)
    elitism_rate: float = Field(0.2, ge=0, le=1)
    tournament_size: int = Field(3, ge=1)
    mutation_scale: float = Field(0.1, gt=0)


class MultiObjectiveConfig(GeneticConfig):
    population_size: int = Field(100, ge=2)
    generations: int = Field(50, ge=1)


class AnnealingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    initial_temperature: float = Field(1.0, gt=0)
    cooling_rate: float = Field(0.95, gt=0, lt=1)
    min_temperature: float = Field(1e-3, gt=0)
    step_scale: float = Field(0.1, gt=0, description="Neighbor step as a fraction of the range at full temperature")
    min_scale: float = Field(0.05, gt=0, le=1, description="Lower bound on the temperature-derived step factor")

    @model_validator(mode="after")
    def validate_temperatures(self) -> "AnnealingConfig":
        if self.min_temperature >= self.initial_temperature:
            raise ValueError("min_temperature must be below initial_temperature")
        return self


class SwarmConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    swarm_size: int = Field(30, ge=1)
    inertia: float = Field(0.7, ge=0, description="Inertia weight w")
    cognitive: float = Field(1.5, ge=0, description="Personal-best pull c1")
    social: float = Field(1.5, ge=0, description="Global-best pull c2")


class GuidedSamplingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    exploration_fraction: float = Field(0.3, ge=0, le=1, description="Share of the budget spent on uniform sampling")
    top_fraction: float = Field(0.2, gt=0, le=1, description="Share of history averaged when guiding")
    max_top_k: Optional[int] = Field(5, ge=1, description="Cap on the number of top performers averaged")
    noise_scale: float = Field(0.05, ge=0, description="Guidance noise as a fraction of the range")
