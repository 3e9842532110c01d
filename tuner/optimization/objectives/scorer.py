"""
Reduces backtest metrics to a scalar or per-objective vector score.
"""

from typing import Dict, List, Sequence, Tuple

import numpy as np

from tuner.configs.optimization.objectives import ObjectiveDefinition, PerformanceMetric
from tuner.optimization.exceptions import ConfigurationError
from tuner.optimization.results.models import BacktestResult

# Score assigned to failed evaluations, strictly below any normalized score
PENALTY_SCORE = -1.0

# Raw ranges mapped onto [0, 1]; values outside are clipped
NORMALIZATION_BOUNDS: Dict[PerformanceMetric, Tuple[float, float]] = {
    PerformanceMetric.TOTAL_RETURN: (-0.5, 0.5),
    PerformanceMetric.SHARPE_RATIO: (0.0, 3.0),
    PerformanceMetric.MAX_DRAWDOWN: (0.0, 0.5),
    PerformanceMetric.WIN_RATE: (0.0, 1.0),
    PerformanceMetric.PROFIT_FACTOR: (0.5, 3.0),
    PerformanceMetric.CALMAR_RATIO: (0.0, 5.0),
    PerformanceMetric.SORTINO_RATIO: (0.0, 3.6),
    PerformanceMetric.TOTAL_TRADES: (0.0, 500.0),
}


def metric_value(metrics: BacktestResult, metric: PerformanceMetric) -> float:
    """Read (or derive) one metric from a backtest result."""
    if metric == PerformanceMetric.TOTAL_RETURN:
        return metrics.total_return
    if metric == PerformanceMetric.SHARPE_RATIO:
        return metrics.sharpe_ratio
    if metric == PerformanceMetric.MAX_DRAWDOWN:
        return metrics.max_drawdown
    if metric == PerformanceMetric.WIN_RATE:
        return metrics.win_rate
    if metric == PerformanceMetric.PROFIT_FACTOR:
        return metrics.profit_factor
    if metric == PerformanceMetric.CALMAR_RATIO:
        drawdown = abs(metrics.max_drawdown)
        return metrics.total_return / drawdown if drawdown > 0 else 0.0
    if metric == PerformanceMetric.SORTINO_RATIO:
        # Approximation: no downside deviation in the metric record
        return metrics.sharpe_ratio * 1.2
    if metric == PerformanceMetric.TOTAL_TRADES:
        return float(metrics.total_trades)
    raise ConfigurationError(f"Unsupported performance metric: {metric}")


def normalize_metric(value: float, metric: PerformanceMetric) -> float:
    """Map a raw metric onto [0, 1], preserving its natural order."""
    low, high = NORMALIZATION_BOUNDS[metric]
    if not np.isfinite(value):
        return 1.0 if value > 0 else 0.0
    return float(np.clip((value - low) / (high - low), 0.0, 1.0))


class ObjectiveScorer:
    """
    Scores backtest results against a list of objectives.

    Every objective contributes a directed value in [0, 1] where higher is always
    better: maximized metrics use the normalized value, minimized metrics (such as
    drawdown) use its complement. The scalar score is the weighted mean of the
    directed values; the vector score lists them in objective order.

    Raises:
        ConfigurationError: if there are no objectives or their weights sum to zero.
    """

    def __init__(self, objectives: Sequence[ObjectiveDefinition]):
        self.objectives: List[ObjectiveDefinition] = list(objectives)
        if not self.objectives:
            raise ConfigurationError("At least one objective is required")

        self.total_weight = float(sum(objective.weight for objective in self.objectives))
        if self.total_weight <= 0:
            raise ConfigurationError("Total objective weight must be greater than zero")

    @property
    def n_objectives(self) -> int:
        return len(self.objectives)

    def directed_value(self, metrics: BacktestResult, objective: ObjectiveDefinition) -> float:
        normalized = normalize_metric(metric_value(metrics, objective.metric), objective.metric)
        return normalized if objective.direction == 'maximize' else 1.0 - normalized

    def score(self, metrics: BacktestResult) -> float:
        if metrics.failed:
            return PENALTY_SCORE

        total = sum(self.directed_value(metrics, objective) * objective.weight for objective in self.objectives)
        return total / self.total_weight

    def score_vector(self, metrics: BacktestResult) -> List[float]:
        if metrics.failed:
            return [PENALTY_SCORE] * self.n_objectives
        return [self.directed_value(metrics, objective) for objective in self.objectives]

    def scalarize(self, vector: Sequence[float]) -> float:
        """Weighted mean of an already directed objective vector."""
        return float(sum(v * o.weight for v, o in zip(vector, self.objectives)) / self.total_weight)
