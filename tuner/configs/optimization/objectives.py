from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class PerformanceMetric(str, Enum):
    """Backtest metrics an objective can target."""
    TOTAL_RETURN = "total-return"
    SHARPE_RATIO = "sharpe-ratio"
    MAX_DRAWDOWN = "max-drawdown"
    WIN_RATE = "win-rate"
    PROFIT_FACTOR = "profit-factor"
    CALMAR_RATIO = "calmar-ratio"
    SORTINO_RATIO = "sortino-ratio"
    TOTAL_TRADES = "total-trades"


class ObjectiveDefinition(BaseModel):
    """
    One optimization objective.

    Attributes:
        metric (PerformanceMetric): Backtest metric to score.
        weight (float): Relative weight in the scalarized score.
        direction (Literal): 'maximize' or 'minimize'.
        priority (int): Display ordering only, lower comes first.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    metric: PerformanceMetric
    weight: float = Field(1.0, ge=0, description="Relative weight of this objective")
    direction: Literal['maximize', 'minimize'] = Field('maximize', description="Optimization direction")
    priority: int = Field(1, ge=0, description="Display priority")


def default_objectives():
    """Sharpe-led blend used when the caller supplies no objectives."""
    return [
        ObjectiveDefinition(metric=PerformanceMetric.SHARPE_RATIO, weight=0.4, direction='maximize', priority=1),
        ObjectiveDefinition(metric=PerformanceMetric.MAX_DRAWDOWN, weight=0.3, direction='minimize', priority=2),
        ObjectiveDefinition(metric=PerformanceMetric.TOTAL_RETURN, weight=0.3, direction='maximize', priority=3),
    ]
