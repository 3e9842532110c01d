"""
Fitness evaluator interface.

The evaluator is an external collaborator: it runs a backtest for one parameter
assignment in one market scenario and returns its metrics. The engine treats it
as expensive and fallible, and never knows how metrics are produced.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Union

from tuner.configs.optimization.scenario import MarketScenario
from tuner.optimization.exceptions import EvaluationFailure
from tuner.optimization.results.models import BacktestResult
from utils.logger import get_logger

logger = get_logger(__name__)


class FitnessEvaluator(ABC):
    """
    Abstract base class for backtest-backed fitness evaluators.

    Implementations must be deterministic for a fixed (assignment, scenario) pair,
    and must enforce their own timeouts.
    """

    @abstractmethod
    def evaluate(self, assignment: Dict[str, Any], scenario: MarketScenario) -> BacktestResult:
        """
        Run a backtest for one parameter assignment.
        """
        pass


class FunctionEvaluator(FitnessEvaluator):
    """
    Adapts a plain callable `fn(assignment, scenario)` to the evaluator interface.

    The callable may return a BacktestResult or a mapping of metric fields.
    """

    def __init__(self, fn: Callable[[Dict[str, Any], MarketScenario], Union[BacktestResult, Mapping[str, Any]]]):
        self.fn = fn

    def evaluate(self, assignment: Dict[str, Any], scenario: MarketScenario) -> BacktestResult:
        result = self.fn(assignment, scenario)
        if isinstance(result, BacktestResult):
            return result
        return BacktestResult(**dict(result))


class SafeEvaluator(FitnessEvaluator):
    """
    Isolates evaluation failures.

    Any exception raised by the wrapped evaluator is logged as a warning and turned
    into the `BacktestResult.worst()` sentinel, so one bad candidate never aborts a
    whole generation.
    """

    def __init__(self, evaluator: FitnessEvaluator):
        self.evaluator = evaluator

    def evaluate(self, assignment: Dict[str, Any], scenario: MarketScenario) -> BacktestResult:
        try:
            result = self.evaluator.evaluate(assignment, scenario)
            if not isinstance(result, BacktestResult):
                raise TypeError(f"Evaluator returned {type(result).__name__}, expected BacktestResult")
            return result
        except Exception as e:
            failure = EvaluationFailure(assignment, e)
            logger.warning(str(failure))
            return BacktestResult.worst(error=str(e))
