from .cache import CachedEvaluator, ResultCache, evaluation_key
from .evaluator import FitnessEvaluator, FunctionEvaluator, SafeEvaluator
from .pool import BatchEvaluator
from .simulated import SimulatedBacktestEvaluator

__all__ = [
    'BatchEvaluator',
    'CachedEvaluator',
    'FitnessEvaluator',
    'FunctionEvaluator',
    'ResultCache',
    'SafeEvaluator',
    'SimulatedBacktestEvaluator',
    'evaluation_key',
]
