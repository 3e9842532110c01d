import threading

from tuner.configs.optimization import MarketCondition, MarketScenario
from tuner.optimization.evaluation import CachedEvaluator, FitnessEvaluator, ResultCache, evaluation_key
from tuner.optimization.results.models import BacktestResult


class CountingEvaluator(FitnessEvaluator):
    def __init__(self, fail_first: int = 0):
        self.calls = 0
        self.fail_first = fail_first
        self._lock = threading.Lock()

    def evaluate(self, assignment, scenario):
        with self._lock:
            self.calls += 1
            calls = self.calls
        if calls <= self.fail_first:
            raise RuntimeError("backtest crashed")
        return BacktestResult(sharpe_ratio=float(assignment["p"]), total_trades=10)


def test_cache_hit_returns_identical_result_without_reevaluating():
    inner = CountingEvaluator()
    evaluator = CachedEvaluator(inner)
    scenario = MarketScenario()

    first = evaluator.evaluate({"p": 1}, scenario)
    second = evaluator.evaluate({"p": 1}, scenario)

    assert first is second
    assert inner.calls == 1
    assert evaluator.cache.stats()["hits"] == 1


def test_key_is_independent_of_assignment_order_but_depends_on_scenario():
    trending = MarketScenario(condition=MarketCondition.TRENDING)
    ranging = MarketScenario(condition=MarketCondition.RANGING)

    assert evaluation_key({"a": 1, "b": 2}, trending) == evaluation_key({"b": 2, "a": 1}, trending)
    assert evaluation_key({"a": 1}, trending) != evaluation_key({"a": 1}, ranging)
    assert evaluation_key({"a": 1}, MarketScenario(seed=1)) != evaluation_key({"a": 1}, MarketScenario(seed=2))


def test_failures_become_sentinels_and_are_not_cached():
    inner = CountingEvaluator(fail_first=1)
    evaluator = CachedEvaluator(inner)
    scenario = MarketScenario()

    failed = evaluator.evaluate({"p": 2}, scenario)
    retried = evaluator.evaluate({"p": 2}, scenario)

    assert failed.failed
    assert "backtest crashed" in failed.error
    assert not retried.failed
    assert inner.calls == 2


def test_lru_evicts_least_recently_used_entry():
    cache = ResultCache(max_entries=2)
    cache.put("a", BacktestResult(sharpe_ratio=1.0))
    cache.put("b", BacktestResult(sharpe_ratio=2.0))
    assert cache.get("a") is not None

    cache.put("c", BacktestResult(sharpe_ratio=3.0))

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache
    assert cache.stats()["evictions"] == 1


def test_concurrent_lookups_share_one_cache():
    inner = CountingEvaluator()
    evaluator = CachedEvaluator(inner)
    scenario = MarketScenario()

    threads = [threading.Thread(target=evaluator.evaluate, args=({"p": i % 5}, scenario)) for i in range(40)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(evaluator.cache) == 5
    assert 5 <= inner.calls <= 40
