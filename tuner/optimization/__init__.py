"""
Optimization module for strategy parameter tuning.

This module provides a meta-optimization layer that sits above an external
backtest engine, searching a strategy's parameter space for assignments that
score best against weighted performance objectives.
"""

from .orchestrator import OptimizationEngine, ScenarioSweepResult
from .algorithms import OPTIMIZER_REGISTRY, BaseOptimizer, get_optimizer
from .evaluation import CachedEvaluator, FitnessEvaluator, FunctionEvaluator, ResultCache, SimulatedBacktestEvaluator
from .exceptions import ConfigurationError, EvaluationFailure, NoOptimizableParameters, OptimizationError, RunFailure
from .results.models import BacktestResult, Candidate, OptimizationResult, OptimizationStatus
from .search_space import ParameterKind, ParameterSpec, SearchSpace, space_from_strategy_nodes

__all__ = [
    'OptimizationEngine',
    'ScenarioSweepResult',
    'OPTIMIZER_REGISTRY',
    'BaseOptimizer',
    'get_optimizer',
    'CachedEvaluator',
    'FitnessEvaluator',
    'FunctionEvaluator',
    'ResultCache',
    'SimulatedBacktestEvaluator',
    'ConfigurationError',
    'EvaluationFailure',
    'NoOptimizableParameters',
    'OptimizationError',
    'RunFailure',
    'BacktestResult',
    'Candidate',
    'OptimizationResult',
    'OptimizationStatus',
    'ParameterKind',
    'ParameterSpec',
    'SearchSpace',
    'space_from_strategy_nodes',
]
