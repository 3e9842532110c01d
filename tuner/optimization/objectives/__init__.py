from .scorer import NORMALIZATION_BOUNDS, PENALTY_SCORE, ObjectiveScorer, metric_value, normalize_metric

__all__ = [
    'NORMALIZATION_BOUNDS', 'PENALTY_SCORE', 'ObjectiveScorer', 'metric_value', 'normalize_metric',
]
