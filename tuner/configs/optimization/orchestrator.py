from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tuner.configs.optimization.algorithms import (
    AnnealingConfig,
    Budget,
    ConvergenceConfig,
    GeneticConfig,
    GridSearchConfig,
    GuidedSamplingConfig,
    MultiObjectiveConfig,
    OptimizationAlgorithm,
    SwarmConfig,
)
from tuner.configs.optimization.objectives import ObjectiveDefinition, default_objectives


class OptimizationConfig(BaseModel):
    """
    Configuration for optimization runs.

    Attributes:
        # Algorithm selection
        algorithm (OptimizationAlgorithm): Search strategy to run.
        objectives (List[ObjectiveDefinition]): Objectives scored against each backtest.

        # Budget and stopping
        budget (Budget): Iteration and wall-clock limits shared by every strategy.
        convergence (ConvergenceConfig): Variance and stagnation thresholds.

        # Per-algorithm settings
        grid, genetic, annealing, swarm, guided, multi_objective: Strategy-specific knobs.

        # Execution
        seed (int): Seed for the run's random state. None draws fresh entropy.
        max_workers (int): Thread pool size for evaluating one batch of candidates.
        cache_size (int): Maximum entries held by the LRU result cache.
        enable_progress_tracking (bool): Whether progress callbacks are notified.
    """

    model_config = ConfigDict(extra="forbid")

    # Algorithm selection
    algorithm: OptimizationAlgorithm = Field(OptimizationAlgorithm.BAYESIAN_OPTIMIZATION, description="Search strategy")
    objectives: List[ObjectiveDefinition] = Field(default_factory=default_objectives, description="Objectives to optimize")

    # Budget and stopping
    budget: Budget = Field(default_factory=Budget)
    convergence: ConvergenceConfig = Field(default_factory=ConvergenceConfig)

    # Per-algorithm settings
    grid: GridSearchConfig = Field(default_factory=GridSearchConfig)
    genetic: GeneticConfig = Field(default_factory=GeneticConfig)
    annealing: AnnealingConfig = Field(default_factory=AnnealingConfig)
    swarm: SwarmConfig = Field(default_factory=SwarmConfig)
    guided: GuidedSamplingConfig = Field(default_factory=GuidedSamplingConfig)
    multi_objective: MultiObjectiveConfig = Field(default_factory=MultiObjectiveConfig)

    # Execution
    seed: Optional[int] = Field(None, description="Random seed for reproducible runs")
    max_workers: int = Field(4, ge=1, description="Concurrent evaluations per batch")
    cache_size: int = Field(10_000, ge=1, description="LRU result cache capacity")
    enable_progress_tracking: bool = Field(True, description="Notify progress callbacks each iteration")

    def algorithm_settings(self):
        """Return the sub-config that belongs to the selected algorithm, if any."""
        return {
            OptimizationAlgorithm.GRID_SEARCH: self.grid,
            OptimizationAlgorithm.GENETIC_ALGORITHM: self.genetic,
            OptimizationAlgorithm.SIMULATED_ANNEALING: self.annealing,
            OptimizationAlgorithm.PARTICLE_SWARM: self.swarm,
            OptimizationAlgorithm.BAYESIAN_OPTIMIZATION: self.guided,
            OptimizationAlgorithm.MULTI_OBJECTIVE: self.multi_objective,
        }.get(self.algorithm)
