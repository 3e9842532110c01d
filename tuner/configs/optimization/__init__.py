from .algorithms import (
    AnnealingConfig,
    Budget,
    ConvergenceConfig,
    GeneticConfig,
    GridSearchConfig,
    GuidedSamplingConfig,
    MultiObjectiveConfig,
    OptimizationAlgorithm,
    SwarmConfig,
)
from .objectives import ObjectiveDefinition, PerformanceMetric, default_objectives
from .orchestrator import OptimizationConfig
from .scenario import MarketCondition, MarketScenario

__all__ = [
    'AnnealingConfig',
    'Budget',
    'ConvergenceConfig',
    'GeneticConfig',
    'GridSearchConfig',
    'GuidedSamplingConfig',
    'MarketCondition',
    'MarketScenario',
    'MultiObjectiveConfig',
    'ObjectiveDefinition',
    'OptimizationAlgorithm',
    'OptimizationConfig',
    'PerformanceMetric',
    'SwarmConfig',
    'default_objectives',
]
