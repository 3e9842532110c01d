"""
Optimization engine - main entry point for all optimization workflows.

The engine manages the optimization lifecycle and coordinates between:
- The search space produced by the strategy interpreter
- The injected fitness evaluator (through a shared result cache)
- Search strategies selected by name
- Result aggregation, progress tracking and cancellation
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field, ValidationError

from tuner.configs.optimization.objectives import ObjectiveDefinition
from tuner.configs.optimization.orchestrator import OptimizationConfig
from tuner.configs.optimization.scenario import MarketCondition, MarketScenario
from .algorithms import BaseOptimizer, get_optimizer
from .evaluation.cache import ResultCache
from .evaluation.evaluator import FitnessEvaluator
from .exceptions import ConfigurationError
from .results.aggregator import ResultAggregator
from .results.models import OptimizationResult
from .search_space.space import SearchSpace
from utils.logger import get_logger

logger = get_logger(__name__)


class ScenarioSweepResult(BaseModel):
    """
    Outcome of optimizing the same strategy once per market scenario.
    """

    results: Dict[str, OptimizationResult] = Field(default_factory=dict, description="Results keyed by scenario label")
    success_rate: float = 0.0
    best_scenario: Optional[str] = None

    def best_result(self) -> Optional[OptimizationResult]:
        if self.best_scenario is None:
            return None
        return self.results[self.best_scenario]

    def summary_frame(self) -> pd.DataFrame:
        """One row per scenario with status, best score and evaluation counts."""
        rows = [
            {
                "scenario": label,
                "status": result.status.value,
                "best_score": result.best_score,
                "iterations": result.iterations,
                "evaluations": result.evaluations,
                "duration_seconds": result.duration_seconds,
            }
            for label, result in self.results.items()
        ]
        return pd.DataFrame(rows, columns=["scenario", "status", "best_score", "iterations", "evaluations", "duration_seconds"])


class OptimizationEngine:
    """
    Main orchestrator for optimization workflows.

    Manages the complete optimization lifecycle:
    1. Initialization - configuration validation and algorithm selection
    2. Execution - batch evaluation of candidates through a shared result cache
    3. Finalization - result aggregation, comparison and recommendations

    Features:
    - Configuration errors reported as results, never raised
    - Progress tracking and cooperative cancellation
    - Multiple optimization algorithm support
    - Multi-scenario sweeps
    """

    def __init__(self, config: Optional[Union[OptimizationConfig, Dict[str, Any]]] = None):
        """
        Initialize the optimization engine.

        Args:
            config: Optimization configuration, or a dict validated into one.
                An invalid dict is kept as a configuration error and reported by
                every subsequent run.
        """
        self.config: Optional[OptimizationConfig] = None
        self._config_error: Optional[str] = None

        if config is None or isinstance(config, OptimizationConfig):
            self.config = config or OptimizationConfig()
        else:
            try:
                self.config = OptimizationConfig.model_validate(config)
            except ValidationError as e:
                self._config_error = f"Invalid optimization configuration: {e}"
                logger.error(self._config_error)

        # State management
        self.is_running = False
        self._cancel_event = threading.Event()
        self._progress_callbacks: List[Callable[[Dict[str, Any]], None]] = []

        # Components
        self.cache = ResultCache(self.config.cache_size if self.config else 10_000)
        self.result_aggregator = ResultAggregator()

    def add_progress_callback(self, callback: Callable[[Dict[str, Any]], None]):
        """Add callback for progress updates."""
        self._progress_callbacks.append(callback)

    def _notify_progress(self, progress_data: Dict[str, Any]):
        """Notify all progress callbacks."""
        if self.config is None or not self.config.enable_progress_tracking:
            return

        for callback in self._progress_callbacks:
            try:
                callback(progress_data)
            except Exception as e:
                logger.error(f"Progress callback failed: {e}")

    def cancel(self):
        """Ask the running optimization to stop after the current iteration."""
        logger.info("Cancellation requested")
        self._cancel_event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def build_optimizer(self) -> BaseOptimizer:
        """
        Instantiate the configured search strategy.

        Raises:
            ConfigurationError: if the configuration is invalid or names an unknown algorithm
        """
        if self.config is None:
            raise ConfigurationError(self._config_error)

        optimizer_class = get_optimizer(self.config.algorithm)
        return optimizer_class(
            settings=self.config.algorithm_settings(),
            convergence=self.config.convergence,
            max_workers=self.config.max_workers,
            cache=self.cache,
        )

    def optimize(
        self,
        search_space: SearchSpace,
        evaluator: FitnessEvaluator,
        objectives: Optional[Sequence[ObjectiveDefinition]] = None,
        scenario: Optional[MarketScenario] = None,
        original_assignment: Optional[Dict[str, Any]] = None,
    ) -> OptimizationResult:
        """
        Run the complete optimization workflow.

        Args:
            search_space: Parameter search space definition
            evaluator: Backtest-backed fitness evaluator
            objectives: Objectives to score against; defaults to the configured ones
            scenario: Market scenario to evaluate in; defaults to a trending market
            original_assignment: Caller's current parameters, used for comparison only

        Returns:
            OptimizationResult with status converged, budget-exhausted, failed or
            configuration-error
        """
        self._cancel_event.clear()
        return self._run(search_space, evaluator, objectives, scenario, original_assignment)

    def optimize_scenarios(
        self,
        search_space: SearchSpace,
        evaluator: FitnessEvaluator,
        scenarios: Optional[Sequence[MarketScenario]] = None,
        objectives: Optional[Sequence[ObjectiveDefinition]] = None,
        original_assignment: Optional[Dict[str, Any]] = None,
    ) -> ScenarioSweepResult:
        """
        Optimize the same strategy once per market scenario.

        Args:
            search_space: Parameter search space definition
            evaluator: Backtest-backed fitness evaluator
            scenarios: Scenarios to sweep; defaults to one per market condition
            objectives: Objectives to score against
            original_assignment: Caller's current parameters

        Returns:
            ScenarioSweepResult with per-scenario results, success rate and best scenario
        """
        self._cancel_event.clear()
        if scenarios is None:
            scenarios = [MarketScenario(condition=condition) for condition in MarketCondition]

        sweep = ScenarioSweepResult()
        for index, scenario in enumerate(scenarios):
            if self.is_cancelled:
                logger.info(f"Sweep cancelled after {index} of {len(scenarios)} scenarios")
                break

            self._notify_progress({"event": "scenario_started", "scenario": scenario.label, "index": index, "total": len(scenarios)})
            sweep.results[scenario.label] = self._run(search_space, evaluator, objectives, scenario, original_assignment)

        successful = {label: result for label, result in sweep.results.items() if result.success}
        sweep.success_rate = len(successful) / len(scenarios) if scenarios else 0.0
        if successful:
            sweep.best_scenario = max(successful, key=lambda label: successful[label].best_score)

        logger.info(f"Scenario sweep finished: {len(successful)}/{len(scenarios)} succeeded, best scenario {sweep.best_scenario}")
        return sweep

    def _run(
        self,
        search_space: SearchSpace,
        evaluator: FitnessEvaluator,
        objectives: Optional[Sequence[ObjectiveDefinition]],
        scenario: Optional[MarketScenario],
        original_assignment: Optional[Dict[str, Any]],
    ) -> OptimizationResult:
        scenario = scenario or MarketScenario()
        algorithm_name = self.config.algorithm.value if self.config else "unknown"

        try:
            optimizer = self.build_optimizer()
        except ConfigurationError as e:
            logger.error(f"Optimization rejected: {e}")
            return self.result_aggregator.configuration_error(algorithm_name, str(e), scenario)

        if objectives is None:
            objectives = self.config.objectives

        self.is_running = True
        try:
            result = optimizer.optimize(
                search_space,
                evaluator,
                objectives,
                self.config.budget,
                np.random.RandomState(self.config.seed),
                scenario=scenario,
                cancel_event=self._cancel_event,
                original_assignment=original_assignment,
                progress_callback=lambda progress: self._notify_progress({"event": "iteration", **progress}),
            )
        finally:
            self.is_running = False

        self._notify_progress({
            "event": "completed",
            "algorithm": algorithm_name,
            "scenario": scenario.label,
            "status": result.status.value,
            "best_score": result.best_score,
        })
        return result
