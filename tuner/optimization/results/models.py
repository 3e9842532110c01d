"""
Data model shared by the search strategies, the evaluator layer and the result aggregator.
"""

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from tuner.configs.optimization.scenario import MarketScenario


def canonical_key(payload: Any) -> str:
    """SHA-256 of the canonical JSON form of `payload` (sorted keys, compact separators)."""
    text = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class BacktestResult(BaseModel):
    """
    Fixed record of performance metrics produced by the external backtest engine.

    Ratios are fractions (0.15 == 15%). `max_drawdown` is a positive fraction.
    A result with `failed=True` is the penalty sentinel for an evaluation that
    raised; it never carries real metrics.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    total_return: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    total_trades: int = 0
    average_win: float = 0.0
    average_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    consecutive_wins: int = 0
    consecutive_losses: int = 0

    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def worst(cls, error: Optional[str] = None) -> "BacktestResult":
        """Penalty sentinel used when an evaluation fails."""
        return cls(
            total_return=-1.0,
            max_drawdown=1.0,
            failed=True,
            error=error,
        )


class Candidate(BaseModel):
    """
    One concrete parameter assignment under evaluation.

    Fitness, objective scores and metrics are filled in lazily by the evaluation layer.
    """

    assignment: Dict[str, Any]
    fitness: Optional[float] = None
    objective_scores: Optional[List[float]] = None
    metrics: Optional[BacktestResult] = None

    _key: Optional[str] = PrivateAttr(default=None)

    @property
    def key(self) -> str:
        """Content key of the assignment, computed once."""
        if self._key is None:
            self._key = canonical_key(self.assignment)
        return self._key

    @property
    def is_evaluated(self) -> bool:
        return self.fitness is not None

    @property
    def failed(self) -> bool:
        return self.metrics is not None and self.metrics.failed


class OptimizationStatus(str, Enum):
    RUNNING = "running"
    CONVERGED = "converged"
    BUDGET_EXHAUSTED = "budget-exhausted"
    FAILED = "failed"
    CONFIGURATION_ERROR = "configuration-error"


class StopReason(str, Enum):
    MAX_ITERATIONS = "max-iterations"
    TIME_LIMIT = "time-limit"
    CANCELLED = "cancelled"
    VARIANCE = "variance"
    STAGNATION = "stagnation"
    SCHEDULE_COMPLETE = "schedule-complete"


class ImpactLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class IterationRecord(BaseModel):
    """Snapshot taken by the convergence tracker after each iteration."""
    iteration: int
    best_score: float
    mean_score: float
    score_variance: float
    elapsed_seconds: float


class ConvergenceSummary(BaseModel):
    iterations: int = 0
    best_score: Optional[float] = None
    best_score_history: List[float] = Field(default_factory=list)
    time_to_convergence: float = 0.0
    final_error: float = 1.0


class PerformanceImprovement(BaseModel):
    """Percent changes from the original to the optimized parameters."""
    total_return_improvement: float = 0.0
    sharpe_ratio_improvement: float = 0.0
    drawdown_reduction: float = 0.0
    win_rate_improvement: float = 0.0
    overall_score: float = 0.0


class BacktestComparison(BaseModel):
    original: BacktestResult
    optimized: BacktestResult
    improvement: PerformanceImprovement


class ParameterRecommendation(BaseModel):
    owner_id: str
    parameter: str
    current_value: Any = None
    recommended_value: Any = None
    reasoning: str
    confidence: float
    expected_impact: ImpactLevel


class OptimizationResult(BaseModel):
    """
    Outcome of one optimization run, consumed by reporting and by an apply-parameters step.
    """

    success: bool
    status: OptimizationStatus
    algorithm: str
    scenario: Optional[MarketScenario] = None

    best_assignment: Dict[str, Any] = Field(default_factory=dict)
    best_score: Optional[float] = None
    best_objective_scores: Optional[List[float]] = None
    best_metrics: Optional[BacktestResult] = None
    pareto_front: List[Candidate] = Field(default_factory=list)
    top_candidates: List[Candidate] = Field(default_factory=list)

    history: List[IterationRecord] = Field(default_factory=list)
    convergence: ConvergenceSummary = Field(default_factory=ConvergenceSummary)
    iterations: int = 0
    evaluations: int = 0
    failed_evaluations: int = 0

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: float = 0.0
    stop_reason: Optional[StopReason] = None
    failure_reason: Optional[str] = None

    comparison: Optional[BacktestComparison] = None
    recommendations: List[ParameterRecommendation] = Field(default_factory=list)
    cache_stats: Dict[str, int] = Field(default_factory=dict)

    def history_frame(self) -> pd.DataFrame:
        """Convergence history as a DataFrame indexed by iteration."""
        columns = list(IterationRecord.model_fields)
        frame = pd.DataFrame([record.model_dump() for record in self.history], columns=columns)
        return frame.set_index("iteration")

    def leaderboard(self, n: Optional[int] = None) -> pd.DataFrame:
        """Best evaluated candidates (Pareto front members in multi-objective runs), best first."""
        candidates = self.pareto_front or self.top_candidates
        rows = [{**candidate.assignment, "fitness": candidate.fitness} for candidate in candidates]
        frame = pd.DataFrame(rows)
        if frame.empty:
            return frame
        frame = frame.sort_values("fitness", ascending=False, kind="mergesort").reset_index(drop=True)
        return frame if n is None else frame.head(n)


class OptimizationRun:
    """
    Mutable state of one invocation. Created by the optimizer, mutated only by the
    owning search strategy and discarded once the result is built.
    """

    def __init__(self, algorithm: str, scenario: Optional[MarketScenario] = None, top_n: int = 10):
        self.algorithm = algorithm
        self.scenario = scenario
        self.status = OptimizationStatus.RUNNING
        self.history: List[Candidate] = []
        self.best_candidate: Optional[Candidate] = None
        self.pareto_front: List[Candidate] = []
        self.evaluations = 0
        self.failed_evaluations = 0
        self.stop_reason: Optional[StopReason] = None
        self.failure_reason: Optional[str] = None
        self.start_time = datetime.now()
        self.end_time: Optional[datetime] = None
        self.top_n = top_n

    def record(self, candidates: List[Candidate]):
        """Register a batch of freshly evaluated candidates and update the best-ever candidate."""
        for candidate in candidates:
            self.history.append(candidate)
            self.evaluations += 1
            if candidate.failed:
                self.failed_evaluations += 1
            if self.best_candidate is None or candidate.fitness > self.best_candidate.fitness:
                self.best_candidate = candidate

    @property
    def successful_evaluations(self) -> int:
        return self.evaluations - self.failed_evaluations

    def get_sorted_results(self) -> List[Candidate]:
        # sorted() is stable, so ties keep evaluation order
        return sorted(self.history, key=lambda c: c.fitness, reverse=True)

    def top_candidates(self) -> List[Candidate]:
        unique = {}
        for candidate in self.get_sorted_results():
            unique.setdefault(candidate.key, candidate)
            if len(unique) >= self.top_n:
                break
        return list(unique.values())
