import math
from typing import Any, Dict, List, Tuple

import numpy as np

from tuner.configs.optimization.algorithms import GeneticConfig, OptimizationAlgorithm
from tuner.optimization.convergence import TrackerMode
from tuner.optimization.results.models import Candidate
from tuner.optimization.search_space.space import SearchSpace
from utils.logger import get_logger
from .base import BaseOptimizer, SearchContext

logger = get_logger(__name__)


def tournament_select(population: List[Candidate], rng: np.random.RandomState, size: int = 3) -> Candidate:
    """Fittest of `size` uniformly drawn contestants (with replacement)."""
    contestants = rng.randint(len(population), size=size)
    winner = population[int(contestants[0])]
    for index in contestants[1:]:
        contestant = population[int(index)]
        if contestant.fitness > winner.fitness:
            winner = contestant
    return winner


def crossover(
    first: Dict[str, Any],
    second: Dict[str, Any],
    keys: List[str],
    rng: np.random.RandomState,
    rate: float,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Single-point crossover over the ordered key list.

    With probability `1 - rate` (or fewer than two keys) the parents are copied.
    """
    if len(keys) < 2 or rng.rand() >= rate:
        return dict(first), dict(second)

    point = rng.randint(1, len(keys))
    child_a = {key: (first if i < point else second)[key] for i, key in enumerate(keys)}
    child_b = {key: (second if i < point else first)[key] for i, key in enumerate(keys)}
    return child_a, child_b


def mutate(
    assignment: Dict[str, Any],
    space: SearchSpace,
    rng: np.random.RandomState,
    rate: float,
    scale: float,
) -> Dict[str, Any]:
    """
    Per-key Gaussian mutation with probability `rate`, then clamp.

    Numeric keys move by N(0, scale * range); categorical keys are resampled.
    """
    mutated = dict(assignment)
    for key, param in space.parameters.items():
        if rng.rand() < rate:
            if param.is_categorical:
                mutated[key] = param.sample(rng)
            else:
                mutated[key] = param.perturb(mutated[key], rng, scale)
    return space.clamp(mutated)


def breed(
    population: List[Candidate],
    space: SearchSpace,
    rng: np.random.RandomState,
    settings: GeneticConfig,
    n_children: int,
    select,
) -> List[Candidate]:
    """Produce `n_children` unevaluated offspring using `select(population, rng)` for parents."""
    keys = space.get_parameter_names()
    children: List[Candidate] = []
    while len(children) < n_children:
        parent_a = select(population, rng)
        parent_b = select(population, rng)
        for child in crossover(parent_a.assignment, parent_b.assignment, keys, rng, settings.crossover_rate):
            if len(children) >= n_children:
                break
            children.append(Candidate(assignment=mutate(child, space, rng, settings.mutation_rate, settings.mutation_scale)))
    return children


class GeneticOptimizer(BaseOptimizer):
    """
    Generational genetic algorithm with elitism.

    Each generation is evaluated as one batch. The top `max(1, floor(elitism_rate * P))`
    candidates survive unchanged, so the best fitness never decreases; the rest of
    the next generation comes from tournament selection, single-point crossover and
    Gaussian mutation.
    """

    algorithm = OptimizationAlgorithm.GENETIC_ALGORITHM
    settings_class = GeneticConfig
    tracker_mode = TrackerMode.POPULATION

    def n_elites(self) -> int:
        size = self.settings.population_size
        return min(size, max(1, int(math.floor(self.settings.elitism_rate * size))))

    def _search(self, context: SearchContext):
        settings: GeneticConfig = self.settings
        population = [context.space.generate_random(context.rng) for _ in range(settings.population_size)]

        for generation in range(settings.generations):
            if not context.tracker.should_continue():
                break

            context.evaluate(population, require_success=True)
            if context.step([candidate.fitness for candidate in population]):
                break
            if generation == settings.generations - 1:
                break

            population = self._next_generation(context, population)

    def _next_generation(self, context: SearchContext, population: List[Candidate]) -> List[Candidate]:
        settings: GeneticConfig = self.settings
        ranked = sorted(population, key=lambda c: c.fitness, reverse=True)
        elites = ranked[:self.n_elites()]

        def select(pool, rng):
            return tournament_select(pool, rng, settings.tournament_size)

        children = breed(population, context.space, context.rng, settings, settings.population_size - len(elites), select)
        return elites + children
