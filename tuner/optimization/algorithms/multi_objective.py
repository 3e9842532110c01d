from typing import Dict, List, Tuple

import numpy as np

from tuner.configs.optimization.algorithms import MultiObjectiveConfig, OptimizationAlgorithm
from tuner.optimization.convergence import TrackerMode
from tuner.optimization.results.models import Candidate
from utils.logger import get_logger
from .base import BaseOptimizer, SearchContext
from .genetic import breed
from .pareto import crowding_distance, non_dominated_sort

logger = get_logger(__name__)


def rank_population(population: List[Candidate]) -> Tuple[List[List[int]], Dict[int, int], Dict[int, float]]:
    """Fronts, per-index front rank and per-index crowding distance of a population."""
    vectors = [candidate.objective_scores for candidate in population]
    fronts = non_dominated_sort(vectors)
    ranks: Dict[int, int] = {}
    crowding: Dict[int, float] = {}
    for rank, front in enumerate(fronts):
        for index, distance in zip(front, crowding_distance(vectors, front)):
            ranks[index] = rank
            crowding[index] = float(distance)
    return fronts, ranks, crowding


class MultiObjectiveOptimizer(BaseOptimizer):
    """
    NSGA-II style search over the objective vector.

    Each generation breeds offspring by binary crowded tournament, merges them
    with the parents and keeps the best `population_size` by front rank, breaking
    the last front by crowding distance. The result's Pareto front is the first
    front of the final population; the best fields carry its member with the
    highest weighted scalar score.
    """

    algorithm = OptimizationAlgorithm.MULTI_OBJECTIVE
    settings_class = MultiObjectiveConfig
    tracker_mode = TrackerMode.POPULATION

    def _search(self, context: SearchContext):
        settings: MultiObjectiveConfig = self.settings
        size = settings.population_size

        population = [context.space.generate_random(context.rng) for _ in range(size)]
        context.evaluate(population, require_success=True)
        fronts, ranks, crowding = rank_population(population)

        generation = 1
        while not context.step([candidate.fitness for candidate in population]):
            if generation >= settings.generations or not context.tracker.should_continue():
                break

            def select(pool, rng):
                a, b = rng.randint(len(pool), size=2)
                return pool[self._crowded_winner(int(a), int(b), ranks, crowding)]

            offspring = breed(population, context.space, context.rng, settings, size, select)
            context.evaluate(offspring, require_success=True)

            population = self._survivors(population + offspring, size)
            fronts, ranks, crowding = rank_population(population)
            generation += 1

        self._publish_front(context, population, fronts[0] if fronts else [])

    @staticmethod
    def _crowded_winner(a: int, b: int, ranks: Dict[int, int], crowding: Dict[int, float]) -> int:
        if ranks[a] != ranks[b]:
            return a if ranks[a] < ranks[b] else b
        if crowding[a] != crowding[b]:
            return a if crowding[a] > crowding[b] else b
        return a

    @staticmethod
    def _survivors(combined: List[Candidate], size: int) -> List[Candidate]:
        vectors = [candidate.objective_scores for candidate in combined]
        survivors: List[Candidate] = []
        for front in non_dominated_sort(vectors):
            if len(survivors) + len(front) <= size:
                survivors.extend(combined[i] for i in front)
                continue

            distances = crowding_distance(vectors, front)
            order = np.argsort(-distances, kind="mergesort")
            survivors.extend(combined[front[int(i)]] for i in order[:size - len(survivors)])
            break
        return survivors

    @staticmethod
    def _publish_front(context: SearchContext, population: List[Candidate], front: List[int]):
        unique: Dict[str, Candidate] = {}
        for index in front:
            candidate = population[index]
            if not candidate.failed:
                unique.setdefault(candidate.key, candidate)

        pareto_front = sorted(unique.values(), key=lambda c: c.fitness, reverse=True)
        context.run.pareto_front = pareto_front
        if pareto_front:
            context.run.best_candidate = pareto_front[0]
        logger.info(f"Pareto front holds {len(pareto_front)} candidates")
