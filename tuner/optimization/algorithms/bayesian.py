import math
from collections import Counter
from typing import Optional

from tuner.configs.optimization.algorithms import GuidedSamplingConfig, OptimizationAlgorithm
from tuner.optimization.convergence import TrackerMode
from tuner.optimization.results.models import Candidate
from .base import BaseOptimizer, SearchContext


class BayesianOptimizer(BaseOptimizer):
    """
    Guided sampling, selectable as "bayesian-optimization".

    This is a heuristic, not a surrogate model: after an exploration phase of
    uniform draws, each new candidate is the mean of the top-K evaluated
    candidates plus Gaussian noise (categorical parameters take the most common
    top-K value and are occasionally resampled).
    """

    algorithm = OptimizationAlgorithm.BAYESIAN_OPTIMIZATION
    settings_class = GuidedSamplingConfig
    tracker_mode = TrackerMode.EXHAUSTIVE

    def n_exploration(self, max_iterations: int) -> int:
        return max(1, int(math.floor(self.settings.exploration_fraction * max_iterations)))

    def top_k(self, n_history: int) -> int:
        k = int(math.floor(self.settings.top_fraction * n_history))
        if self.settings.max_top_k is not None:
            k = min(self.settings.max_top_k, k)
        return max(1, k)

    def _search(self, context: SearchContext):
        n_explore = self.n_exploration(context.budget.max_iterations)
        proposed = 0

        def propose() -> Candidate:
            nonlocal proposed
            proposed += 1
            if proposed <= n_explore:
                return context.space.generate_random(context.rng)
            return self._guided_candidate(context) or context.space.generate_random(context.rng)

        self._sequential_search(context, propose)

    def _guided_candidate(self, context: SearchContext) -> Optional[Candidate]:
        settings: GuidedSamplingConfig = self.settings
        history = [candidate for candidate in context.run.get_sorted_results() if not candidate.failed]
        if not history:
            return None

        top = history[:self.top_k(len(history))]
        assignment = {}
        for key, param in context.space.parameters.items():
            values = [candidate.assignment[key] for candidate in top]
            if param.is_categorical:
                assignment[key] = Counter(values).most_common(1)[0][0]
                if context.rng.rand() < settings.noise_scale:
                    assignment[key] = param.sample(context.rng)
            else:
                mean = sum(float(v) for v in values) / len(values)
                assignment[key] = mean + context.rng.normal(0.0, settings.noise_scale * param.span) if param.span else mean

        return Candidate(assignment=context.space.clamp(assignment))
