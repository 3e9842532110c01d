import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
from pydantic import BaseModel

from tuner.configs.optimization.algorithms import Budget, ConvergenceConfig, OptimizationAlgorithm
from tuner.configs.optimization.objectives import ObjectiveDefinition
from tuner.configs.optimization.scenario import MarketScenario
from tuner.optimization.convergence import ConvergenceTracker, TrackerMode
from tuner.optimization.evaluation.cache import CachedEvaluator, ResultCache
from tuner.optimization.evaluation.evaluator import FitnessEvaluator
from tuner.optimization.evaluation.pool import BatchEvaluator
from tuner.optimization.exceptions import ConfigurationError, NoOptimizableParameters, RunFailure
from tuner.optimization.objectives.scorer import ObjectiveScorer
from tuner.optimization.results.aggregator import ResultAggregator
from tuner.optimization.results.models import (
    Candidate,
    IterationRecord,
    OptimizationResult,
    OptimizationRun,
    OptimizationStatus,
    StopReason,
)
from tuner.optimization.search_space.space import SearchSpace
from utils.logger import get_logger

logger = get_logger(__name__)

CONVERGED_REASONS = (StopReason.VARIANCE, StopReason.STAGNATION, StopReason.SCHEDULE_COMPLETE)


class SearchContext:
    """
    Everything a search strategy needs during one run.

    Strategies propose candidates and call `evaluate` then `step`; bookkeeping of
    the best candidate, evaluation counts and convergence lives here.
    """

    def __init__(
        self,
        space: SearchSpace,
        scorer: ObjectiveScorer,
        batch: BatchEvaluator,
        tracker: ConvergenceTracker,
        rng: np.random.RandomState,
        run: OptimizationRun,
        budget: Budget,
        original_assignment: Optional[Dict[str, Any]] = None,
    ):
        self.space = space
        self.scorer = scorer
        self.batch = batch
        self.tracker = tracker
        self.rng = rng
        self.run = run
        self.budget = budget
        self.original_assignment = original_assignment

    def evaluate(self, candidates: List[Candidate], require_success: bool = False) -> List[Candidate]:
        """
        Evaluate a batch and record the newly evaluated candidates in the run.

        Args:
            candidates: Candidates to evaluate; evaluated ones are skipped
            require_success: Raise RunFailure if every new evaluation failed

        Returns:
            The same candidates, evaluated
        """
        pending = [candidate for candidate in candidates if not candidate.is_evaluated]
        for candidate in pending:
            if not self.space.validate_configuration(candidate.assignment):
                raise RunFailure(f"Candidate outside the search space: {candidate.assignment}")

        self.batch.evaluate(pending)
        self.run.record(pending)

        if require_success and pending and all(candidate.failed for candidate in pending):
            raise RunFailure(f"All {len(pending)} evaluations of iteration {self.tracker.iterations + 1} failed")

        return candidates

    def step(self, population_scores: Optional[Sequence[float]] = None) -> bool:
        """Report one finished iteration to the tracker. Returns True if the run should stop."""
        best = self.run.best_candidate.fitness if self.run.best_candidate is not None else float("-inf")
        return self.tracker.record_iteration(best, population_scores)


class BaseOptimizer(ABC):
    """
    Abstract base class for all search strategies.

    `optimize` validates the setup, wires the scorer, the cache-backed evaluator
    and the convergence tracker, runs the strategy's `_search` and hands the run
    to the result aggregator. Subclasses only implement `_search`.

    Args:
        settings: Strategy-specific configuration model
        convergence: Early-stopping thresholds
        max_workers: Concurrent evaluations per batch
        cache: Result cache shared across runs; a private one is created if omitted
        top_n: Number of best candidates kept in the result
    """

    algorithm: OptimizationAlgorithm
    settings_class: Optional[type] = None
    tracker_mode: TrackerMode = TrackerMode.ITERATIVE

    def __init__(
        self,
        settings: Optional[BaseModel] = None,
        convergence: Optional[ConvergenceConfig] = None,
        max_workers: int = 1,
        cache: Optional[ResultCache] = None,
        top_n: int = 10,
    ):
        if settings is None and self.settings_class is not None:
            settings = self.settings_class()
        self.settings = settings
        self.convergence = convergence or ConvergenceConfig()
        self.max_workers = max_workers
        self.cache = cache
        self.top_n = top_n
        self.aggregator = ResultAggregator()

    def optimize(
        self,
        space: SearchSpace,
        evaluator: FitnessEvaluator,
        objectives: Sequence[ObjectiveDefinition],
        budget: Budget,
        rng: np.random.RandomState,
        scenario: Optional[MarketScenario] = None,
        cancel_event: Optional[threading.Event] = None,
        original_assignment: Optional[Dict[str, Any]] = None,
        progress_callback: Optional[Callable[[Dict[str, Any]], None]] = None,
    ) -> OptimizationResult:
        """
        Run the search.

        Args:
            space: Parameters to tune
            evaluator: Backtest-backed fitness evaluator
            objectives: Objectives to score each backtest against
            budget: Iteration and wall-clock limits
            rng: Random state used for every random draw of the run
            scenario: Market scenario every candidate is evaluated in
            cancel_event: Cooperative cancellation signal
            original_assignment: Caller's current parameters; never modified
            progress_callback: Called with a progress dict after every iteration

        Returns:
            OptimizationResult; configuration problems and run failures are
            reported through its status rather than raised
        """
        scenario = scenario or MarketScenario()
        name = self.algorithm.value

        try:
            if space.is_empty():
                raise NoOptimizableParameters()
            scorer = ObjectiveScorer(objectives)
        except ConfigurationError as e:
            logger.error(f"{name} rejected: {e}")
            return self.aggregator.configuration_error(name, str(e), scenario)

        logger.info(f"Starting {name} over {space.get_dimensionality()} parameters in {scenario.label} scenario")

        run = OptimizationRun(name, scenario, top_n=self.top_n)
        cached = evaluator if isinstance(evaluator, CachedEvaluator) else CachedEvaluator(evaluator, self.cache)

        def on_iteration(record: IterationRecord):
            logger.debug(f"{name} iteration {record.iteration}: best={record.best_score:.6f} mean={record.mean_score:.6f}")
            if progress_callback is not None:
                progress_callback({
                    "algorithm": name,
                    "scenario": scenario.label,
                    "iteration": record.iteration,
                    "max_iterations": budget.max_iterations,
                    "best_score": record.best_score,
                    "mean_score": record.mean_score,
                    "evaluations": run.evaluations,
                    "elapsed_seconds": record.elapsed_seconds,
                })

        tracker = ConvergenceTracker(
            budget,
            self.convergence,
            mode=self.tracker_mode,
            cancel_event=cancel_event,
            on_iteration=on_iteration,
        )

        with BatchEvaluator(cached, scorer, scenario, self.max_workers) as batch:
            context = SearchContext(space, scorer, batch, tracker, rng, run, budget, original_assignment)
            try:
                self._search(context)
                if run.evaluations and not run.successful_evaluations:
                    raise RunFailure(f"All {run.evaluations} evaluations failed")

                if tracker.stop_reason is None:
                    tracker.stop(StopReason.SCHEDULE_COMPLETE)
                run.stop_reason = tracker.stop_reason
                run.status = (
                    OptimizationStatus.CONVERGED
                    if run.stop_reason in CONVERGED_REASONS
                    else OptimizationStatus.BUDGET_EXHAUSTED
                )

            except RunFailure as e:
                logger.error(f"{name} failed: {e}")
                run.status = OptimizationStatus.FAILED
                run.failure_reason = str(e)

        run.end_time = datetime.now()
        return self.aggregator.build(
            run,
            tracker,
            space,
            scorer,
            evaluator=cached,
            original_assignment=original_assignment,
            cache_stats=cached.cache.stats(),
        )

    @abstractmethod
    def _search(self, context: SearchContext):
        """
        Explore the space until the tracker says stop or the strategy's schedule ends.
        """
        pass

    def _sequential_search(self, context: SearchContext, propose: Callable[[], Optional[Candidate]]):
        """
        One evaluated point per iteration, evaluated in chunks of up to `max_workers`.

        Args:
            context: Run context
            propose: Returns the next candidate, or None when the schedule is exhausted
        """
        tracker = context.tracker
        while tracker.should_continue():
            chunk = []
            for _ in range(min(context.batch.max_workers, tracker.remaining_iterations)):
                candidate = propose()
                if candidate is None:
                    break
                chunk.append(candidate)

            if not chunk:
                return

            context.evaluate(chunk)
            for candidate in chunk:
                if context.step([candidate.fitness]):
                    return
