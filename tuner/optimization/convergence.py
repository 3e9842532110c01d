"""
Convergence tracking shared by every search strategy.

The tracker is consulted once per iteration (one point, one annealing step or one
generation) and decides whether the run should stop: budget, wall clock and
cancellation apply to every strategy; variance applies to population strategies
and stagnation to iterative single-candidate strategies.
"""

import threading
import time
from enum import Enum
from typing import Callable, List, Optional, Sequence

import numpy as np

from tuner.configs.optimization.algorithms import Budget, ConvergenceConfig
from tuner.optimization.results.models import IterationRecord, StopReason
from utils.logger import get_logger

logger = get_logger(__name__)


class TrackerMode(str, Enum):
    POPULATION = "population"
    ITERATIVE = "iterative"
    EXHAUSTIVE = "exhaustive"


class ConvergenceTracker:
    """
    Records per-iteration scores and decides when a run stops.

    Args:
        budget: Iteration and wall-clock limits
        config: Variance and stagnation thresholds
        mode: POPULATION checks score variance, ITERATIVE checks stagnation,
            EXHAUSTIVE stops on the budget only
        cancel_event: Cooperative cancellation signal, checked between iterations
        clock: Monotonic time source, injectable for tests
        on_iteration: Called with every new IterationRecord
    """

    def __init__(
        self,
        budget: Budget,
        config: Optional[ConvergenceConfig] = None,
        mode: TrackerMode = TrackerMode.ITERATIVE,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
        on_iteration: Optional[Callable[[IterationRecord], None]] = None,
    ):
        self.budget = budget
        self.config = config or ConvergenceConfig()
        self.mode = mode
        self.cancel_event = cancel_event
        self.clock = clock
        self.on_iteration = on_iteration

        self.started_at = clock()
        self.iterations = 0
        self.best_score: Optional[float] = None
        self.best_history: List[float] = []
        self.history: List[IterationRecord] = []
        self.stop_reason: Optional[StopReason] = None
        self.converged_at: Optional[float] = None

    @property
    def elapsed(self) -> float:
        return self.clock() - self.started_at

    @property
    def remaining_iterations(self) -> int:
        return max(0, self.budget.max_iterations - self.iterations)

    def _limit_reason(self) -> Optional[StopReason]:
        # cancellation and time limits apply only once something has been evaluated
        if self.iterations == 0:
            return None
        if self.cancel_event is not None and self.cancel_event.is_set():
            return StopReason.CANCELLED
        if self.iterations >= self.budget.max_iterations:
            return StopReason.MAX_ITERATIONS
        if self.budget.time_limit_seconds is not None and self.elapsed >= self.budget.time_limit_seconds:
            return StopReason.TIME_LIMIT
        return None

    def should_continue(self) -> bool:
        """Pre-iteration check of cancellation, iteration budget and time limit."""
        if self.stop_reason is not None:
            return False

        reason = self._limit_reason()
        if reason is not None:
            self.stop(reason)
            return False
        return True

    def stop(self, reason: StopReason, override: bool = False):
        """Record why the run stopped; the first reason wins unless `override` is set."""
        if self.stop_reason is None or override:
            self.stop_reason = reason
            if self.converged_at is None:
                self.converged_at = self.elapsed
            logger.debug(f"Stopping after {self.iterations} iterations: {reason.value}")

    def record_iteration(self, best_score: float, population_scores: Optional[Sequence[float]] = None) -> bool:
        """
        Record one completed iteration.

        Args:
            best_score: Best score of the run so far (or of this iteration)
            population_scores: Scores of every candidate evaluated in this iteration

        Returns:
            True if the run should stop
        """
        scores = np.asarray(population_scores if population_scores is not None else [best_score], dtype=float)

        self.iterations += 1
        if self.best_score is None or best_score > self.best_score:
            self.best_score = float(best_score)
        self.best_history.append(self.best_score)

        variance = float(np.var(scores)) if scores.size > 1 else 0.0
        record = IterationRecord(
            iteration=self.iterations,
            best_score=self.best_score,
            mean_score=float(np.mean(scores)),
            score_variance=variance,
            elapsed_seconds=self.elapsed,
        )
        self.history.append(record)
        if self.on_iteration is not None:
            self.on_iteration(record)

        reason = self._limit_reason()
        if reason is None:
            reason = self._convergence_reason(scores, variance)
        if reason is not None:
            self.stop(reason)
            return True
        return False

    def _convergence_reason(self, scores: np.ndarray, variance: float) -> Optional[StopReason]:
        if self.mode == TrackerMode.POPULATION:
            if scores.size > 1 and variance < self.config.variance_threshold:
                return StopReason.VARIANCE

        elif self.mode == TrackerMode.ITERATIVE:
            window = self.config.stagnation_window
            if len(self.best_history) > window:
                gain = self.best_history[-1] - self.best_history[-window - 1]
                if gain <= self.config.stagnation_epsilon:
                    return StopReason.STAGNATION

        return None
