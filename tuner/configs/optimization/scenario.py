from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class MarketCondition(str, Enum):
    """Market regimes a strategy can be tuned for."""
    TRENDING = "trending"
    RANGING = "ranging"
    VOLATILE = "volatile"
    LOW_VOLATILITY = "low-volatility"
    BULL_MARKET = "bull-market"
    BEAR_MARKET = "bear-market"


class MarketScenario(BaseModel):
    """
    Fixed historical context a candidate is evaluated against.

    The whole scenario is part of the result cache key, so any field that changes
    the backtest outcome (including `seed`) must live here.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    condition: MarketCondition = Field(MarketCondition.TRENDING, description="Market regime")
    name: Optional[str] = Field(None, description="Human readable label, e.g. 'BTC 2021H1'")
    seed: Optional[int] = Field(None, description="Seed threaded into stochastic backtests")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Evaluator-specific context")

    @property
    def label(self) -> str:
        return self.name or self.condition.value
