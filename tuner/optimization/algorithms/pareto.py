"""
Pareto dominance, fast non-dominated sorting and crowding distance.

Objective vectors are directed: higher is better on every objective.
"""

from typing import List, Sequence

import numpy as np


def dominates(a: Sequence[float], b: Sequence[float]) -> bool:
    """True if `a` is at least as good as `b` everywhere and strictly better somewhere."""
    at_least_as_good = all(x >= y for x, y in zip(a, b))
    strictly_better = any(x > y for x, y in zip(a, b))
    return at_least_as_good and strictly_better


def non_dominated_sort(vectors: Sequence[Sequence[float]]) -> List[List[int]]:
    """
    Partition vector indices into Pareto fronts, best front first.

    Args:
        vectors: One objective vector per candidate

    Returns:
        List of fronts, each a list of indices into `vectors`
    """
    n = len(vectors)
    dominated_by = [[] for _ in range(n)]
    domination_count = [0] * n
    fronts: List[List[int]] = [[]]

    for p in range(n):
        for q in range(p + 1, n):
            if dominates(vectors[p], vectors[q]):
                dominated_by[p].append(q)
                domination_count[q] += 1
            elif dominates(vectors[q], vectors[p]):
                dominated_by[q].append(p)
                domination_count[p] += 1

    for p in range(n):
        if domination_count[p] == 0:
            fronts[0].append(p)

    current = 0
    while fronts[current]:
        next_front = []
        for p in fronts[current]:
            for q in dominated_by[p]:
                domination_count[q] -= 1
                if domination_count[q] == 0:
                    next_front.append(q)
        current += 1
        fronts.append(sorted(next_front))

    return fronts[:-1]


def crowding_distance(vectors: Sequence[Sequence[float]], front: Sequence[int]) -> np.ndarray:
    """
    Crowding distance of each member of one front, aligned with `front`.

    Boundary members get infinity; interior members accumulate the normalized
    gap between their neighbours on every objective.
    """
    size = len(front)
    distances = np.zeros(size)
    if size == 0:
        return distances
    if size <= 2:
        distances[:] = np.inf
        return distances

    values = np.array([vectors[i] for i in front], dtype=float)
    for m in range(values.shape[1]):
        order = np.argsort(values[:, m], kind="mergesort")
        low, high = values[order[0], m], values[order[-1], m]
        distances[order[0]] = np.inf
        distances[order[-1]] = np.inf
        if high == low:
            continue
        for position in range(1, size - 1):
            gap = values[order[position + 1], m] - values[order[position - 1], m]
            distances[order[position]] += gap / (high - low)

    return distances
