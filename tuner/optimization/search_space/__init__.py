from .parameter import ParameterKind, ParameterSpec
from .presets import INDICATOR_PRESETS, original_assignment_from_nodes, space_from_strategy_nodes
from .space import SearchSpace

__all__ = [
    'INDICATOR_PRESETS',
    'ParameterKind',
    'ParameterSpec',
    'SearchSpace',
    'original_assignment_from_nodes',
    'space_from_strategy_nodes',
]
