"""
Builds the caller-facing OptimizationResult from a finished run.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from tuner.configs.optimization.algorithms import OptimizationAlgorithm
from tuner.configs.optimization.scenario import MarketScenario
from tuner.optimization.convergence import ConvergenceTracker
from tuner.optimization.evaluation.evaluator import FitnessEvaluator
from tuner.optimization.objectives.scorer import ObjectiveScorer
from tuner.optimization.search_space.space import SearchSpace
from utils.logger import get_logger
from .models import (
    BacktestComparison,
    BacktestResult,
    ConvergenceSummary,
    ImpactLevel,
    OptimizationResult,
    OptimizationRun,
    OptimizationStatus,
    ParameterRecommendation,
    PerformanceImprovement,
)

logger = get_logger(__name__)

# How much a recommendation from each strategy is trusted
ALGORITHM_CONFIDENCE: Dict[OptimizationAlgorithm, float] = {
    OptimizationAlgorithm.GRID_SEARCH: 0.8,
    OptimizationAlgorithm.RANDOM_SEARCH: 0.7,
    OptimizationAlgorithm.GENETIC_ALGORITHM: 0.85,
    OptimizationAlgorithm.BAYESIAN_OPTIMIZATION: 0.9,
    OptimizationAlgorithm.PARTICLE_SWARM: 0.8,
    OptimizationAlgorithm.SIMULATED_ANNEALING: 0.75,
    OptimizationAlgorithm.MULTI_OBJECTIVE: 0.85,
}

ALGORITHM_LABELS: Dict[OptimizationAlgorithm, str] = {
    OptimizationAlgorithm.GRID_SEARCH: "grid search",
    OptimizationAlgorithm.RANDOM_SEARCH: "random search",
    OptimizationAlgorithm.GENETIC_ALGORITHM: "genetic algorithm",
    OptimizationAlgorithm.BAYESIAN_OPTIMIZATION: "guided sampling",
    OptimizationAlgorithm.PARTICLE_SWARM: "particle swarm optimization",
    OptimizationAlgorithm.SIMULATED_ANNEALING: "simulated annealing",
    OptimizationAlgorithm.MULTI_OBJECTIVE: "multi-objective search",
}

IMPROVEMENT_WEIGHTS = {
    "total_return_improvement": 0.3,
    "sharpe_ratio_improvement": 0.3,
    "drawdown_reduction": 0.2,
    "win_rate_improvement": 0.2,
}


def expected_impact(confidence: float) -> ImpactLevel:
    if confidence > 0.8:
        return ImpactLevel.HIGH
    if confidence > 0.6:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def _percent_change(new: float, old: float) -> float:
    if old == 0:
        return 0.0
    return (new - old) / abs(old) * 100


class ResultAggregator:
    """
    Turns an OptimizationRun into an OptimizationResult.

    Adds the convergence summary, the before/after backtest comparison against the
    caller's original assignment and per-parameter recommendations.
    """

    def configuration_error(self, algorithm: str, reason: str, scenario: Optional[MarketScenario] = None) -> OptimizationResult:
        """Result for a run rejected before its first iteration."""
        now = datetime.now()
        return OptimizationResult(
            success=False,
            status=OptimizationStatus.CONFIGURATION_ERROR,
            algorithm=algorithm,
            scenario=scenario,
            start_time=now,
            end_time=now,
            failure_reason=reason,
        )

    def convergence_summary(self, tracker: ConvergenceTracker) -> ConvergenceSummary:
        best_history = list(tracker.best_history)
        final_error = 1.0
        if tracker.best_score is not None:
            final_error = float(max(0.0, 1.0 - tracker.best_score))

        return ConvergenceSummary(
            iterations=tracker.iterations,
            best_score=tracker.best_score,
            best_score_history=best_history,
            time_to_convergence=tracker.converged_at if tracker.converged_at is not None else tracker.elapsed,
            final_error=final_error,
        )

    def compare(self, original: BacktestResult, optimized: BacktestResult) -> BacktestComparison:
        """
        Percent changes from the original to the optimized metrics.

        Zero baselines produce a zero change rather than a division error.
        """
        improvement = PerformanceImprovement(
            total_return_improvement=_percent_change(optimized.total_return, original.total_return),
            sharpe_ratio_improvement=_percent_change(optimized.sharpe_ratio, original.sharpe_ratio),
            drawdown_reduction=-_percent_change(optimized.max_drawdown, original.max_drawdown),
            win_rate_improvement=_percent_change(optimized.win_rate, original.win_rate),
        )
        improvement.overall_score = sum(getattr(improvement, name) * weight for name, weight in IMPROVEMENT_WEIGHTS.items())

        return BacktestComparison(original=original, optimized=optimized, improvement=improvement)

    def recommend(
        self,
        algorithm: OptimizationAlgorithm,
        space: SearchSpace,
        best_assignment: Dict[str, Any],
        original_assignment: Optional[Dict[str, Any]] = None,
        scenario: Optional[MarketScenario] = None,
    ) -> List[ParameterRecommendation]:
        """One recommendation per tuned parameter, most confident first."""
        original_assignment = original_assignment or {}
        confidence = ALGORITHM_CONFIDENCE.get(algorithm, 0.5)
        label = ALGORITHM_LABELS.get(algorithm, algorithm.value)
        condition = scenario.condition.value if scenario is not None else "any"

        recommendations = []
        for key, value in best_assignment.items():
            param = space.get_parameter(key)
            recommendations.append(ParameterRecommendation(
                owner_id=param.owner_id,
                parameter=param.name,
                current_value=original_assignment.get(key),
                recommended_value=value,
                reasoning=f"Optimized through {label} for {condition} market conditions",
                confidence=confidence,
                expected_impact=expected_impact(confidence),
            ))

        return sorted(recommendations, key=lambda r: r.confidence, reverse=True)

    def build(
        self,
        run: OptimizationRun,
        tracker: ConvergenceTracker,
        space: SearchSpace,
        scorer: ObjectiveScorer,
        evaluator: Optional[FitnessEvaluator] = None,
        original_assignment: Optional[Dict[str, Any]] = None,
        cache_stats: Optional[Dict[str, int]] = None,
    ) -> OptimizationResult:
        """
        Assemble the final result of a run.

        Args:
            run: Finished run state
            tracker: Convergence tracker of the run
            space: Search space the run explored
            scorer: Objective scorer of the run
            evaluator: Cache-backed evaluator, used to score the original assignment
            original_assignment: Caller's current parameters, if any
            cache_stats: Snapshot of the result cache counters

        Returns:
            OptimizationResult for the caller
        """
        end_time = run.end_time or datetime.now()
        best = run.best_candidate
        success = run.status in (OptimizationStatus.CONVERGED, OptimizationStatus.BUDGET_EXHAUSTED) and best is not None

        comparison = None
        recommendations: List[ParameterRecommendation] = []
        algorithm = OptimizationAlgorithm(run.algorithm)

        if success:
            if evaluator is not None and original_assignment is not None and best.metrics is not None:
                original_metrics = evaluator.evaluate(space.clamp(original_assignment), run.scenario)
                if not original_metrics.failed:
                    comparison = self.compare(original_metrics, best.metrics)
            recommendations = self.recommend(algorithm, space, best.assignment, original_assignment, run.scenario)

        result = OptimizationResult(
            success=success,
            status=run.status,
            algorithm=run.algorithm,
            scenario=run.scenario,
            best_assignment=dict(best.assignment) if best is not None else {},
            best_score=best.fitness if best is not None else None,
            best_objective_scores=best.objective_scores if best is not None else None,
            best_metrics=best.metrics if best is not None else None,
            pareto_front=list(run.pareto_front),
            top_candidates=run.top_candidates(),
            history=list(tracker.history),
            convergence=self.convergence_summary(tracker),
            iterations=tracker.iterations,
            evaluations=run.evaluations,
            failed_evaluations=run.failed_evaluations,
            start_time=run.start_time,
            end_time=end_time,
            duration_seconds=(end_time - run.start_time).total_seconds(),
            stop_reason=run.stop_reason,
            failure_reason=run.failure_reason,
            comparison=comparison,
            recommendations=recommendations,
            cache_stats=cache_stats or {},
        )

        logger.info(
            f"{run.algorithm} finished with status {run.status.value} after {result.iterations} iterations "
            f"({result.evaluations} evaluations, {result.failed_evaluations} failed), best score {result.best_score}"
        )
        return result
