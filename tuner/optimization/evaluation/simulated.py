"""
Reference evaluator producing synthetic backtest metrics.

Useful for demos and tests when no backtest engine is plugged in. Metrics start
from a per-regime baseline and are scaled by a parameter quality heuristic that
prefers moderate values over extremes.
"""

from typing import Any, Dict, Optional

import numpy as np

from tuner.configs.optimization.scenario import MarketCondition, MarketScenario
from tuner.optimization.results.models import BacktestResult, canonical_key
from tuner.optimization.search_space.space import SearchSpace
from .evaluator import FitnessEvaluator

BASELINES: Dict[MarketCondition, BacktestResult] = {
    MarketCondition.TRENDING: BacktestResult(
        total_return=0.15, sharpe_ratio=1.2, max_drawdown=0.08, win_rate=0.55, profit_factor=1.8,
        total_trades=120, average_win=0.025, average_loss=-0.015, largest_win=0.08, largest_loss=-0.05,
        consecutive_wins=5, consecutive_losses=3,
    ),
    MarketCondition.RANGING: BacktestResult(
        total_return=0.08, sharpe_ratio=0.9, max_drawdown=0.12, win_rate=0.48, profit_factor=1.3,
        total_trades=200, average_win=0.015, average_loss=-0.018, largest_win=0.04, largest_loss=-0.06,
        consecutive_wins=3, consecutive_losses=4,
    ),
    MarketCondition.VOLATILE: BacktestResult(
        total_return=0.12, sharpe_ratio=0.8, max_drawdown=0.18, win_rate=0.52, profit_factor=1.5,
        total_trades=150, average_win=0.035, average_loss=-0.025, largest_win=0.12, largest_loss=-0.08,
        consecutive_wins=4, consecutive_losses=5,
    ),
    MarketCondition.LOW_VOLATILITY: BacktestResult(
        total_return=0.06, sharpe_ratio=1.1, max_drawdown=0.05, win_rate=0.58, profit_factor=1.4,
        total_trades=80, average_win=0.018, average_loss=-0.012, largest_win=0.03, largest_loss=-0.025,
        consecutive_wins=6, consecutive_losses=2,
    ),
    MarketCondition.BULL_MARKET: BacktestResult(
        total_return=0.25, sharpe_ratio=1.5, max_drawdown=0.06, win_rate=0.62, profit_factor=2.2,
        total_trades=100, average_win=0.04, average_loss=-0.018, largest_win=0.15, largest_loss=-0.04,
        consecutive_wins=7, consecutive_losses=2,
    ),
    MarketCondition.BEAR_MARKET: BacktestResult(
        total_return=-0.05, sharpe_ratio=0.3, max_drawdown=0.25, win_rate=0.42, profit_factor=0.8,
        total_trades=90, average_win=0.02, average_loss=-0.03, largest_win=0.06, largest_loss=-0.12,
        consecutive_wins=2, consecutive_losses=6,
    ),
}


class SimulatedBacktestEvaluator(FitnessEvaluator):
    """
    Deterministic synthetic evaluator.

    Args:
        space: Optional search space used to normalize numeric values by their
            declared bounds. Without it values are normalized by 100.
        noise: Amplitude of seeded noise added to the quality score when the
            scenario carries a seed.
    """

    def __init__(self, space: Optional[SearchSpace] = None, noise: float = 0.05):
        self.space = space
        self.noise = noise

    def parameter_quality(self, assignment: Dict[str, Any]) -> float:
        """Score in [0, 1]; 0.5 is neutral, moderate numeric values raise it."""
        quality = 0.5
        for key, value in assignment.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                continue

            param = self.space.parameters.get(key) if self.space is not None else None
            if param is not None and param.span > 0:
                normalized = (value - param.low) / param.span
            else:
                normalized = abs(value) / 100

            extremeness = min(1.0, abs(normalized - 0.5) * 2)
            quality += (1 - extremeness) * 0.1

        return float(np.clip(quality, 0.0, 1.0))

    def evaluate(self, assignment: Dict[str, Any], scenario: MarketScenario) -> BacktestResult:
        base = BASELINES[scenario.condition]
        quality = self.parameter_quality(assignment)

        if scenario.seed is not None and self.noise > 0:
            digest = int(canonical_key(assignment)[:8], 16)
            rng = np.random.RandomState((scenario.seed + digest) % (2 ** 32))
            quality = float(np.clip(quality + rng.uniform(-self.noise, self.noise), 0.0, 1.0))

        improvement = (quality - 0.5) * 0.4

        return BacktestResult(
            total_return=base.total_return * (1 + improvement),
            sharpe_ratio=base.sharpe_ratio * (1 + improvement * 0.5),
            max_drawdown=base.max_drawdown * (1 - improvement * 0.3),
            win_rate=min(0.95, base.win_rate * (1 + improvement * 0.2)),
            profit_factor=base.profit_factor * (1 + improvement),
            total_trades=base.total_trades,
            average_win=base.average_win * (1 + improvement),
            average_loss=base.average_loss * (1 - improvement * 0.5),
            largest_win=base.largest_win * (1 + improvement),
            largest_loss=base.largest_loss * (1 - improvement * 0.3),
            consecutive_wins=int(round(base.consecutive_wins * (1 + improvement * 0.1))),
            consecutive_losses=int(round(base.consecutive_losses * (1 - improvement * 0.1))),
        )
