from tuner.configs.optimization.algorithms import GridSearchConfig, OptimizationAlgorithm
from tuner.optimization.convergence import TrackerMode
from tuner.optimization.results.models import Candidate, StopReason
from utils.logger import get_logger
from .base import BaseOptimizer, SearchContext

logger = get_logger(__name__)


class GridSearchOptimizer(BaseOptimizer):
    """
    Exhaustive search over the Cartesian product of every parameter's grid values.

    Points are visited in lexicographic order (first declared parameter varies
    slowest). When the product is larger than the iteration budget, exactly the
    first `max_iterations` points are evaluated, never a random subset, so two
    runs over the same space are identical.
    """

    algorithm = OptimizationAlgorithm.GRID_SEARCH
    settings_class = GridSearchConfig
    tracker_mode = TrackerMode.EXHAUSTIVE

    def _search(self, context: SearchContext):
        n_points = self.settings.default_n_points
        total = context.space.grid_size(n_points)
        points = context.space.create_grid(n_points, limit=context.budget.max_iterations)

        if total > context.budget.max_iterations:
            logger.info(f"Grid of {total} points truncated to the first {context.budget.max_iterations}")
        else:
            logger.info(f"Evaluating full grid of {total} points")

        visited = 0

        def propose():
            nonlocal visited
            assignment = next(points, None)
            if assignment is None:
                return None
            visited += 1
            return Candidate(assignment=assignment)

        self._sequential_search(context, propose)

        if visited >= total:
            context.tracker.stop(StopReason.SCHEDULE_COMPLETE, override=True)
