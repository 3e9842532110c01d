"""
Default parameter bounds for common indicators, and a search space builder for
strategy graphs produced by the strategy interpreter.
"""

from typing import Any, Dict, Iterable, List, Mapping, Tuple

from utils.logger import get_logger
from .parameter import ParameterKind, ParameterSpec
from .space import SearchSpace

logger = get_logger(__name__)

# indicator id -> parameter name -> (low, high, step)
INDICATOR_PRESETS: Dict[str, Dict[str, Tuple[float, float, float]]] = {
    "rsi": {
        "period": (2, 50, 1),
        "overbought": (60, 90, 5),
        "oversold": (10, 40, 5),
    },
    "sma": {
        "period": (5, 200, 5),
    },
    "macd": {
        "fast_period": (5, 20, 1),
        "slow_period": (15, 50, 1),
    },
}

OPTIMIZABLE_NODE_TYPES = ("indicator", "condition", "risk")


def preset_parameters(owner_id: str, indicator_id: str, parameter_names: Iterable[str]) -> List[ParameterSpec]:
    """
    Discrete parameter specs for the preset parameters an indicator node exposes.

    Args:
        owner_id: Id of the strategy node
        indicator_id: Indicator type, e.g. "rsi"
        parameter_names: Parameter names present on the node

    Returns:
        One ParameterSpec per parameter with a known preset, in node order
    """
    presets = INDICATOR_PRESETS.get(indicator_id, {})
    specs = []
    for name in parameter_names:
        if name not in presets:
            continue
        low, high, step = presets[name]
        specs.append(ParameterSpec(
            owner_id=owner_id,
            name=name,
            kind=ParameterKind.DISCRETE,
            low=low,
            high=high,
            step=step,
        ))
    return specs


def space_from_strategy_nodes(nodes: Iterable[Mapping[str, Any]]) -> SearchSpace:
    """
    Build a search space from strategy graph nodes.

    Each node is a mapping with "id", "type", optional "indicator_id" and a
    "parameters" mapping. Only indicator, condition and risk nodes that carry
    parameters are considered; parameters without a preset are left untuned.
    The returned space may be empty, which optimizers report as having no
    optimizable parameters.
    """
    space = SearchSpace()
    for node in nodes:
        parameters = node.get("parameters") or {}
        if node.get("type") not in OPTIMIZABLE_NODE_TYPES or not parameters:
            continue

        specs = preset_parameters(node["id"], node.get("indicator_id") or "", parameters.keys())
        skipped = [name for name in parameters if name not in {spec.name for spec in specs}]
        if skipped:
            logger.debug(f"Node {node['id']}: no preset bounds for {skipped}")

        for spec in specs:
            space.add_parameter(spec)

    return space


def original_assignment_from_nodes(nodes: Iterable[Mapping[str, Any]], space: SearchSpace) -> Dict[str, Any]:
    """Current parameter values of the nodes, keyed like the space's assignments."""
    assignment = {}
    for node in nodes:
        for name, value in (node.get("parameters") or {}).items():
            key = f"{node.get('id')}.{name}"
            if key in space.parameters:
                assignment[key] = value
    return assignment
