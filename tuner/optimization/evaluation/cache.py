"""
Content-addressed LRU cache for backtest results.

Concurrency contract: lookups and writes are serialized by one lock; a miss that
two workers compute concurrently is written twice (last write wins). Evaluation
is deterministic, so duplicate work costs time, never correctness. Eviction only
affects performance.
"""

import threading
from collections import OrderedDict
from typing import Any, Dict, Optional

from tuner.configs.optimization.scenario import MarketScenario
from tuner.optimization.results.models import BacktestResult, canonical_key
from utils.logger import get_logger
from .evaluator import FitnessEvaluator, SafeEvaluator

logger = get_logger(__name__)


def evaluation_key(assignment: Dict[str, Any], scenario: MarketScenario) -> str:
    """Deterministic key of an (assignment, scenario) pair."""
    return canonical_key({
        "assignment": assignment,
        "scenario": scenario.model_dump(mode="json"),
    })


class ResultCache:
    """
    Least-recently-used map from evaluation key to BacktestResult.

    Args:
        max_entries: Capacity; the least recently used entry is evicted beyond it
    """

    def __init__(self, max_entries: int = 10_000):
        if max_entries < 1:
            raise ValueError("Cache capacity must be at least 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, BacktestResult]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> Optional[BacktestResult]:
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return result

    def put(self, key: str, result: BacktestResult):
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self.evictions += 1

    def clear(self):
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries


class CachedEvaluator(FitnessEvaluator):
    """
    Memoizes a fitness evaluator by (assignment, scenario).

    Failures are isolated by a SafeEvaluator and are not cached, so a transient
    failure can succeed on a later request.
    """

    def __init__(self, evaluator: FitnessEvaluator, cache: Optional[ResultCache] = None):
        self.evaluator = evaluator if isinstance(evaluator, SafeEvaluator) else SafeEvaluator(evaluator)
        self.cache = cache if cache is not None else ResultCache()

    def evaluate(self, assignment: Dict[str, Any], scenario: MarketScenario) -> BacktestResult:
        key = evaluation_key(assignment, scenario)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = self.evaluator.evaluate(assignment, scenario)
        if not result.failed:
            self.cache.put(key, result)
        return result
