import math

import numpy as np
import pytest

from tuner.configs.optimization import ObjectiveDefinition, PerformanceMetric
from tuner.optimization.evaluation import FunctionEvaluator
from tuner.optimization.results.models import BacktestResult
from tuner.optimization.search_space import ParameterKind, ParameterSpec, SearchSpace


def peaked_sharpe(period: float) -> float:
    """Sharpe ratio peaking at 3.0 for an RSI period of 14."""
    return 3.0 * math.exp(-((period - 14) / 4) ** 2)


@pytest.fixture
def rng():
    return np.random.RandomState(7)


@pytest.fixture
def period_space():
    return SearchSpace([
        ParameterSpec(owner_id="rsi-1", name="period", kind=ParameterKind.DISCRETE, low=2, high=50, step=1),
    ])


@pytest.fixture
def mixed_space():
    return SearchSpace([
        ParameterSpec(owner_id="rsi-1", name="period", kind=ParameterKind.DISCRETE, low=2, high=50, step=1),
        ParameterSpec(owner_id="rsi-1", name="overbought", kind=ParameterKind.DISCRETE, low=60, high=90, step=5),
        ParameterSpec(owner_id="risk", name="stop_loss", kind=ParameterKind.CONTINUOUS, low=0.005, high=0.05),
        ParameterSpec(owner_id="ma-1", name="ma_type", kind=ParameterKind.CATEGORICAL, choices=["sma", "ema", "wma"]),
    ])


@pytest.fixture
def sharpe_objectives():
    return [ObjectiveDefinition(metric=PerformanceMetric.SHARPE_RATIO, weight=1.0, direction="maximize")]


@pytest.fixture
def peak_evaluator():
    def evaluate(assignment, scenario):
        return BacktestResult(sharpe_ratio=peaked_sharpe(assignment["rsi-1.period"]), total_trades=50)

    return FunctionEvaluator(evaluate)


@pytest.fixture
def smooth_evaluator():
    """Deterministic evaluator over `mixed_space` rewarding period 14, overbought 70 and EMA."""

    def evaluate(assignment, scenario):
        sharpe = peaked_sharpe(assignment["rsi-1.period"])
        sharpe *= 1.0 - abs(assignment["rsi-1.overbought"] - 70) / 60
        if assignment["ma-1.ma_type"] == "ema":
            sharpe += 0.2
        drawdown = 0.05 + assignment["risk.stop_loss"]
        return BacktestResult(
            total_return=sharpe / 10,
            sharpe_ratio=sharpe,
            max_drawdown=drawdown,
            win_rate=0.5,
            total_trades=100,
        )

    return FunctionEvaluator(evaluate)
