"""
Evaluates a batch of candidates, optionally across a bounded thread pool.

Candidates in one batch are independent; the caller only derives the next batch
after this one has returned, which keeps generation transitions sequential.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from tuner.configs.optimization.scenario import MarketScenario
from tuner.optimization.objectives.scorer import ObjectiveScorer
from tuner.optimization.results.models import Candidate
from .cache import CachedEvaluator


class BatchEvaluator:
    """
    Fills in metrics, scalar fitness and objective vector for each candidate.

    Args:
        evaluator: Cache-backed evaluator shared by the run
        scorer: Objective scorer for the run
        scenario: Market scenario every candidate is evaluated in
        max_workers: Thread pool size; 1 evaluates in the calling thread
    """

    def __init__(self, evaluator: CachedEvaluator, scorer: ObjectiveScorer, scenario: MarketScenario, max_workers: int = 1):
        self.evaluator = evaluator
        self.scorer = scorer
        self.scenario = scenario
        self.max_workers = max(1, max_workers)
        self._executor: Optional[ThreadPoolExecutor] = None

    def __enter__(self) -> "BatchEvaluator":
        if self.max_workers > 1:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="tuner-eval")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def evaluate(self, candidates: List[Candidate]) -> List[Candidate]:
        """
        Evaluate every not-yet-evaluated candidate in place.

        Args:
            candidates: Batch to evaluate; already evaluated candidates are skipped

        Returns:
            The same list, with fitness filled in, in input order
        """
        pending = [candidate for candidate in candidates if not candidate.is_evaluated]
        if not pending:
            return candidates

        assignments = [candidate.assignment for candidate in pending]
        if self._executor is not None and len(pending) > 1:
            results = list(self._executor.map(lambda a: self.evaluator.evaluate(a, self.scenario), assignments))
        else:
            results = [self.evaluator.evaluate(a, self.scenario) for a in assignments]

        for candidate, metrics in zip(pending, results):
            candidate.metrics = metrics
            candidate.fitness = self.scorer.score(metrics)
            candidate.objective_scores = self.scorer.score_vector(metrics)

        return candidates
