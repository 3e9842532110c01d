from tuner.configs.optimization.algorithms import OptimizationAlgorithm
from tuner.optimization.convergence import TrackerMode
from .base import BaseOptimizer, SearchContext


class RandomSearchOptimizer(BaseOptimizer):
    """
    Independent uniform draws from the search space, one per iteration.
    """

    algorithm = OptimizationAlgorithm.RANDOM_SEARCH
    tracker_mode = TrackerMode.EXHAUSTIVE

    def _search(self, context: SearchContext):
        self._sequential_search(context, lambda: context.space.generate_random(context.rng))
