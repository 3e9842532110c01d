import math

from tuner.configs.optimization.algorithms import AnnealingConfig, OptimizationAlgorithm
from tuner.optimization.convergence import TrackerMode
from tuner.optimization.results.models import Candidate, StopReason
from .base import BaseOptimizer, SearchContext


def acceptance_probability(delta: float, temperature: float) -> float:
    """
    Metropolis acceptance probability of a move changing fitness by `delta`.

    Improvements (delta >= 0) are always accepted; worse moves with exp(delta / T).
    """
    if delta >= 0:
        return 1.0
    if temperature <= 0:
        return 0.0
    return math.exp(delta / temperature)


class SimulatedAnnealingOptimizer(BaseOptimizer):
    """
    Single-candidate annealing with geometric cooling.

    Starts from the caller's original assignment when given, otherwise from a
    random point. The neighbor step shrinks with temperature down to
    `step_scale * min_scale`. The best-ever candidate is tracked by the run
    independently of the currently accepted one.
    """

    algorithm = OptimizationAlgorithm.SIMULATED_ANNEALING
    settings_class = AnnealingConfig
    tracker_mode = TrackerMode.ITERATIVE

    def _search(self, context: SearchContext):
        settings: AnnealingConfig = self.settings
        space, rng = context.space, context.rng

        if context.original_assignment:
            current = Candidate(assignment=space.clamp(context.original_assignment))
        else:
            current = space.generate_random(rng)
        context.evaluate([current])

        temperature = settings.initial_temperature
        while context.tracker.should_continue():
            scale = settings.step_scale * max(temperature / settings.initial_temperature, settings.min_scale)
            neighbor = Candidate(assignment=space.neighbor(current.assignment, rng, scale))
            context.evaluate([neighbor])

            delta = neighbor.fitness - current.fitness
            if rng.rand() < acceptance_probability(delta, temperature):
                current = neighbor

            temperature *= settings.cooling_rate
            if context.step([current.fitness]):
                break
            if temperature < settings.min_temperature:
                context.tracker.stop(StopReason.SCHEDULE_COMPLETE)
                break
