"""
Search strategies for parameter optimization.
"""

from typing import Dict, Type, Union

from tuner.configs.optimization.algorithms import OptimizationAlgorithm
from tuner.optimization.exceptions import ConfigurationError
from .annealing import SimulatedAnnealingOptimizer, acceptance_probability
from .base import BaseOptimizer, SearchContext
from .bayesian import BayesianOptimizer
from .genetic import GeneticOptimizer
from .grid_search import GridSearchOptimizer
from .multi_objective import MultiObjectiveOptimizer
from .pareto import crowding_distance, dominates, non_dominated_sort
from .particle_swarm import ParticleSwarmOptimizer
from .random_search import RandomSearchOptimizer

OPTIMIZER_REGISTRY: Dict[OptimizationAlgorithm, Type[BaseOptimizer]] = {
    OptimizationAlgorithm.GRID_SEARCH: GridSearchOptimizer,
    OptimizationAlgorithm.RANDOM_SEARCH: RandomSearchOptimizer,
    OptimizationAlgorithm.GENETIC_ALGORITHM: GeneticOptimizer,
    OptimizationAlgorithm.SIMULATED_ANNEALING: SimulatedAnnealingOptimizer,
    OptimizationAlgorithm.PARTICLE_SWARM: ParticleSwarmOptimizer,
    OptimizationAlgorithm.BAYESIAN_OPTIMIZATION: BayesianOptimizer,
    OptimizationAlgorithm.MULTI_OBJECTIVE: MultiObjectiveOptimizer,
}


def get_optimizer(name: Union[str, OptimizationAlgorithm]) -> Type[BaseOptimizer]:
    """
    Look up a search strategy by name.

    Raises:
        ConfigurationError: if the name is not a known algorithm
    """
    try:
        return OPTIMIZER_REGISTRY[OptimizationAlgorithm(name)]
    except (ValueError, KeyError):
        raise ConfigurationError(f"Unknown optimization algorithm: {name!r}") from None


__all__ = [
    'OPTIMIZER_REGISTRY',
    'BaseOptimizer',
    'BayesianOptimizer',
    'GeneticOptimizer',
    'GridSearchOptimizer',
    'MultiObjectiveOptimizer',
    'ParticleSwarmOptimizer',
    'RandomSearchOptimizer',
    'SearchContext',
    'SimulatedAnnealingOptimizer',
    'acceptance_probability',
    'crowding_distance',
    'dominates',
    'get_optimizer',
    'non_dominated_sort',
]
