import threading

import numpy as np
import pytest

from tuner.configs.optimization import (
    AnnealingConfig,
    Budget,
    GeneticConfig,
    GuidedSamplingConfig,
    MultiObjectiveConfig,
    ObjectiveDefinition,
    OptimizationAlgorithm,
    PerformanceMetric,
    SwarmConfig,
)
from tuner.optimization.algorithms import (
    OPTIMIZER_REGISTRY,
    GeneticOptimizer,
    GridSearchOptimizer,
    MultiObjectiveOptimizer,
    RandomSearchOptimizer,
    SimulatedAnnealingOptimizer,
    acceptance_probability,
    dominates,
    get_optimizer,
)
from tuner.optimization.evaluation import FitnessEvaluator, FunctionEvaluator
from tuner.optimization.exceptions import ConfigurationError
from tuner.optimization.results.models import BacktestResult, OptimizationStatus, StopReason
from tuner.optimization.search_space import ParameterKind, ParameterSpec, SearchSpace

SMALL_SETTINGS = {
    OptimizationAlgorithm.GENETIC_ALGORITHM: GeneticConfig(population_size=8, generations=5),
    OptimizationAlgorithm.MULTI_OBJECTIVE: MultiObjectiveConfig(population_size=8, generations=5),
    OptimizationAlgorithm.PARTICLE_SWARM: SwarmConfig(swarm_size=6),
    OptimizationAlgorithm.SIMULATED_ANNEALING: AnnealingConfig(),
    OptimizationAlgorithm.BAYESIAN_OPTIMIZATION: GuidedSamplingConfig(),
}


def build(algorithm, max_workers=1, **kwargs):
    optimizer_class = get_optimizer(algorithm)
    return optimizer_class(settings=SMALL_SETTINGS.get(algorithm), max_workers=max_workers, **kwargs)


class RecordingEvaluator(FitnessEvaluator):
    """Records every assignment it sees and whether it lay inside the space."""

    def __init__(self, inner, space):
        self.inner = inner
        self.space = space
        self.seen = []
        self.violations = []
        self._lock = threading.Lock()

    def evaluate(self, assignment, scenario):
        with self._lock:
            self.seen.append(dict(assignment))
            if not self.space.validate_configuration(assignment):
                self.violations.append(dict(assignment))
        return self.inner.evaluate(assignment, scenario)


@pytest.mark.parametrize("algorithm", list(OptimizationAlgorithm))
def test_every_candidate_stays_in_domain(algorithm, mixed_space, smooth_evaluator, sharpe_objectives):
    evaluator = RecordingEvaluator(smooth_evaluator, mixed_space)

    result = build(algorithm, max_workers=2).optimize(
        mixed_space, evaluator, sharpe_objectives, Budget(max_iterations=30), np.random.RandomState(3)
    )

    assert result.success
    assert evaluator.seen
    assert evaluator.violations == []
    assert mixed_space.validate_configuration(result.best_assignment)


@pytest.mark.parametrize("algorithm", list(OptimizationAlgorithm))
def test_empty_space_is_a_configuration_error(algorithm, smooth_evaluator, sharpe_objectives):
    result = build(algorithm).optimize(
        SearchSpace(), smooth_evaluator, sharpe_objectives, Budget(), np.random.RandomState(0)
    )

    assert not result.success
    assert result.status == OptimizationStatus.CONFIGURATION_ERROR
    assert result.iterations == 0
    assert result.evaluations == 0
    assert "No optimizable parameters" in result.failure_reason


def test_zero_weight_objectives_fail_before_evaluating(period_space, peak_evaluator):
    evaluator = RecordingEvaluator(peak_evaluator, period_space)
    objectives = [ObjectiveDefinition(metric=PerformanceMetric.SHARPE_RATIO, weight=0.0)]

    result = RandomSearchOptimizer().optimize(period_space, evaluator, objectives, Budget(), np.random.RandomState(0))

    assert result.status == OptimizationStatus.CONFIGURATION_ERROR
    assert evaluator.seen == []


def test_unknown_algorithm_name_is_rejected():
    with pytest.raises(ConfigurationError):
        get_optimizer("hill-climbing")


def test_registry_covers_every_algorithm():
    assert set(OPTIMIZER_REGISTRY) == set(OptimizationAlgorithm)


@pytest.mark.parametrize("seed", [0, 1, 2])
@pytest.mark.parametrize("population_size", [2, 5, 12])
def test_genetic_best_fitness_never_decreases(seed, population_size, mixed_space, smooth_evaluator, sharpe_objectives):
    optimizer = GeneticOptimizer(settings=GeneticConfig(population_size=population_size, generations=15))

    result = optimizer.optimize(
        mixed_space, smooth_evaluator, sharpe_objectives, Budget(max_iterations=15), np.random.RandomState(seed)
    )

    best = [record.best_score for record in result.history]
    assert best == sorted(best)
    assert result.best_score == best[-1]


@pytest.mark.parametrize("algorithm", list(OptimizationAlgorithm))
@pytest.mark.parametrize("limit", ["time", "cancel"])
def test_expired_budget_still_evaluates_before_stopping(algorithm, limit, mixed_space, smooth_evaluator, sharpe_objectives):
    cancel = threading.Event()
    if limit == "cancel":
        cancel.set()
        budget = Budget(max_iterations=50)
    else:
        budget = Budget(max_iterations=50, time_limit_seconds=1e-9)

    result = build(algorithm).optimize(
        mixed_space, smooth_evaluator, sharpe_objectives, budget, np.random.RandomState(0), cancel_event=cancel
    )

    assert result.status == OptimizationStatus.BUDGET_EXHAUSTED
    assert result.success
    assert result.evaluations >= 1
    assert result.iterations >= 1
    assert result.best_score is not None
    assert mixed_space.validate_configuration(result.best_assignment)


def test_genetic_keeps_at_least_one_elite():
    optimizer = GeneticOptimizer(settings=GeneticConfig(population_size=4, elitism_rate=0.0))
    assert optimizer.n_elites() == 1


@pytest.mark.parametrize("kind", [ParameterKind.DISCRETE, ParameterKind.CONTINUOUS])
def test_genetic_finds_peaked_rsi_period(kind, peak_evaluator, sharpe_objectives):
    step = 1 if kind == ParameterKind.DISCRETE else None
    space = SearchSpace([ParameterSpec(owner_id="rsi-1", name="period", kind=kind, low=2, high=50, step=step)])
    optimizer = GeneticOptimizer(settings=GeneticConfig(population_size=50, generations=100))

    result = optimizer.optimize(
        space, peak_evaluator, sharpe_objectives, Budget(max_iterations=100), np.random.RandomState(42)
    )

    assert result.success
    assert 2 <= result.best_assignment["rsi-1.period"] <= 50
    assert abs(result.best_assignment["rsi-1.period"] - 14) <= 2


def test_acceptance_probability():
    assert acceptance_probability(0.0, 1.0) == 1.0
    assert acceptance_probability(0.3, 0.01) == 1.0
    assert acceptance_probability(-1.0, 1.0) == pytest.approx(np.exp(-1.0))
    assert acceptance_probability(-0.1, 0.1) == pytest.approx(np.exp(-1.0))
    assert acceptance_probability(-0.1, 0.01) < acceptance_probability(-0.1, 1.0)


def test_annealing_starts_from_original_assignment_without_mutating_it(period_space, peak_evaluator, sharpe_objectives):
    original = {"rsi-1.period": 40}
    evaluator = RecordingEvaluator(peak_evaluator, period_space)

    result = SimulatedAnnealingOptimizer().optimize(
        period_space, evaluator, sharpe_objectives, Budget(max_iterations=200), np.random.RandomState(5),
        original_assignment=original,
    )

    assert evaluator.seen[0] == {"rsi-1.period": 40}
    assert original == {"rsi-1.period": 40}
    assert result.success
    assert result.best_score >= result.history[0].best_score


def test_annealing_stops_when_temperature_floor_is_reached(period_space, peak_evaluator, sharpe_objectives):
    settings = AnnealingConfig(initial_temperature=1.0, cooling_rate=0.5, min_temperature=0.1)

    result = SimulatedAnnealingOptimizer(settings=settings).optimize(
        period_space, peak_evaluator, sharpe_objectives, Budget(max_iterations=1000), np.random.RandomState(0)
    )

    assert result.status == OptimizationStatus.CONVERGED
    assert result.stop_reason == StopReason.SCHEDULE_COMPLETE
    assert result.iterations == 4


def test_multi_objective_front_is_mutually_non_dominated():
    space = SearchSpace([ParameterSpec(name="x", kind=ParameterKind.CONTINUOUS, low=0.0, high=1.0)])
    objectives = [
        ObjectiveDefinition(metric=PerformanceMetric.SHARPE_RATIO, direction="maximize"),
        ObjectiveDefinition(metric=PerformanceMetric.WIN_RATE, direction="maximize"),
    ]

    def trade_off(assignment, scenario):
        x = assignment["strategy.x"]
        return BacktestResult(sharpe_ratio=3.0 * x, win_rate=1.0 - x ** 2)

    optimizer = MultiObjectiveOptimizer(settings=MultiObjectiveConfig(population_size=20, generations=10))
    result = optimizer.optimize(
        space, FunctionEvaluator(trade_off), objectives, Budget(max_iterations=10), np.random.RandomState(11)
    )

    front = result.pareto_front
    assert result.success
    assert len(front) >= 2
    for a in front:
        for b in front:
            assert not dominates(a.objective_scores, b.objective_scores)
    assert result.best_score == max(candidate.fitness for candidate in front)
    assert result.best_assignment in [candidate.assignment for candidate in front]


def test_grid_truncates_to_budget_in_lexicographic_order(sharpe_objectives):
    space = SearchSpace([
        ParameterSpec(owner_id="rsi-1", name="period", kind=ParameterKind.DISCRETE, low=10, high=12, step=1),
        ParameterSpec(owner_id="rsi-1", name="overbought", kind=ParameterKind.DISCRETE, low=70, high=80, step=5),
        ParameterSpec(owner_id="ma-1", name="ma_type", kind=ParameterKind.CATEGORICAL, choices=["sma", "ema"]),
    ])

    def run():
        evaluator = RecordingEvaluator(
            FunctionEvaluator(lambda a, s: BacktestResult(sharpe_ratio=a["rsi-1.period"] / 10)), space
        )
        result = GridSearchOptimizer().optimize(
            space, evaluator, sharpe_objectives, Budget(max_iterations=7), np.random.RandomState(0)
        )
        return result, evaluator.seen

    result, seen = run()
    _, seen_again = run()

    assert space.grid_size() == 18
    assert result.evaluations == 7
    assert result.status == OptimizationStatus.BUDGET_EXHAUSTED
    assert seen == list(space.create_grid())[:7]
    assert seen[:3] == [
        {"rsi-1.period": 10, "rsi-1.overbought": 70, "ma-1.ma_type": "sma"},
        {"rsi-1.period": 10, "rsi-1.overbought": 70, "ma-1.ma_type": "ema"},
        {"rsi-1.period": 10, "rsi-1.overbought": 75, "ma-1.ma_type": "sma"},
    ]
    assert seen == seen_again


def test_grid_covering_the_whole_product_converges(period_space, peak_evaluator, sharpe_objectives):
    result = GridSearchOptimizer().optimize(
        period_space, peak_evaluator, sharpe_objectives, Budget(max_iterations=49), np.random.RandomState(0)
    )

    assert result.evaluations == 49
    assert result.status == OptimizationStatus.CONVERGED
    assert result.best_assignment == {"rsi-1.period": 14}


def test_random_search_is_reproducible_for_a_seed(mixed_space, smooth_evaluator, sharpe_objectives):
    def run(seed):
        return RandomSearchOptimizer().optimize(
            mixed_space, smooth_evaluator, sharpe_objectives, Budget(max_iterations=20), np.random.RandomState(seed)
        )

    first, second = run(9), run(9)

    assert first.best_assignment == second.best_assignment
    assert first.best_score == second.best_score
    assert first.evaluations == 20


def test_guided_sampling_improves_on_its_exploration_phase(period_space, peak_evaluator, sharpe_objectives):
    optimizer = get_optimizer(OptimizationAlgorithm.BAYESIAN_OPTIMIZATION)()

    result = optimizer.optimize(
        period_space, peak_evaluator, sharpe_objectives, Budget(max_iterations=60), np.random.RandomState(4)
    )

    exploration = optimizer.n_exploration(60)
    assert exploration == 18
    assert result.history[-1].best_score >= result.history[exploration - 1].best_score
    assert abs(result.best_assignment["rsi-1.period"] - 14) <= 4


def test_guided_top_k_bounds():
    optimizer = get_optimizer("bayesian-optimization")()
    assert optimizer.top_k(1) == 1
    assert optimizer.top_k(10) == 2
    assert optimizer.top_k(1000) == 5


def test_particle_swarm_cancellation_returns_best_so_far(mixed_space, smooth_evaluator, sharpe_objectives):
    cancel = threading.Event()
    calls = []

    def cancelling(assignment, scenario):
        calls.append(1)
        if len(calls) == 15:
            cancel.set()
        return smooth_evaluator.evaluate(assignment, scenario)

    optimizer = get_optimizer("particle-swarm")(settings=SwarmConfig(swarm_size=10))
    result = optimizer.optimize(
        mixed_space, FunctionEvaluator(cancelling), sharpe_objectives, Budget(max_iterations=50),
        np.random.RandomState(1), cancel_event=cancel,
    )

    assert result.success
    assert result.status == OptimizationStatus.BUDGET_EXHAUSTED
    assert result.stop_reason == StopReason.CANCELLED
    assert result.best_assignment
    assert result.iterations < 50


def test_generation_where_every_evaluation_fails_fails_the_run(mixed_space, sharpe_objectives):
    def broken(assignment, scenario):
        raise RuntimeError("data feed unavailable")

    result = GeneticOptimizer(settings=GeneticConfig(population_size=6, generations=3)).optimize(
        mixed_space, FunctionEvaluator(broken), sharpe_objectives, Budget(), np.random.RandomState(0)
    )

    assert not result.success
    assert result.status == OptimizationStatus.FAILED
    assert "failed" in result.failure_reason
    assert result.failed_evaluations == 6


def test_sequential_run_where_every_evaluation_fails_fails_the_run(period_space, sharpe_objectives):
    def broken(assignment, scenario):
        raise RuntimeError("data feed unavailable")

    result = RandomSearchOptimizer().optimize(
        period_space, FunctionEvaluator(broken), sharpe_objectives, Budget(max_iterations=5), np.random.RandomState(0)
    )

    assert result.status == OptimizationStatus.FAILED
    assert result.evaluations == 5


def test_isolated_failures_do_not_stop_the_run(period_space, peak_evaluator, sharpe_objectives):
    def flaky(assignment, scenario):
        if assignment["rsi-1.period"] % 2:
            raise RuntimeError("odd periods crash")
        return peak_evaluator.evaluate(assignment, scenario)

    result = GridSearchOptimizer().optimize(
        period_space, FunctionEvaluator(flaky), sharpe_objectives, Budget(max_iterations=49), np.random.RandomState(0)
    )

    assert result.success
    assert result.failed_evaluations == 24
    assert result.best_assignment == {"rsi-1.period": 14}
