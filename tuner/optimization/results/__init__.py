from .models import (
    BacktestComparison,
    BacktestResult,
    Candidate,
    ConvergenceSummary,
    ImpactLevel,
    IterationRecord,
    OptimizationResult,
    OptimizationRun,
    OptimizationStatus,
    ParameterRecommendation,
    PerformanceImprovement,
    StopReason,
    canonical_key,
)

__all__ = [
    'BacktestComparison',
    'BacktestResult',
    'Candidate',
    'ConvergenceSummary',
    'ImpactLevel',
    'IterationRecord',
    'OptimizationResult',
    'OptimizationRun',
    'OptimizationStatus',
    'ParameterRecommendation',
    'PerformanceImprovement',
    'StopReason',
    'canonical_key',
]
