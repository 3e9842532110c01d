import numpy as np
import pytest
from pydantic import ValidationError

from tuner.optimization.search_space import ParameterKind, ParameterSpec, SearchSpace


@pytest.mark.parametrize("kwargs", [
    dict(name="p", kind=ParameterKind.DISCRETE, low=10, high=2, step=1),
    dict(name="p", kind=ParameterKind.DISCRETE, low=2, high=10),
    dict(name="p", kind=ParameterKind.DISCRETE, low=2, high=10, step=0),
    dict(name="p", kind=ParameterKind.CONTINUOUS, low=0.0),
    dict(name="p", kind=ParameterKind.CATEGORICAL, choices=[]),
    dict(name="p", kind=ParameterKind.CONTINUOUS, low=0.0, high=1.0, step=0.1, n_points=5),
])
def test_invalid_parameter_specs_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        ParameterSpec(**kwargs)


def test_parameter_key_combines_owner_and_name():
    spec = ParameterSpec(owner_id="rsi-1", name="period", kind=ParameterKind.DISCRETE, low=2, high=50, step=1)
    assert spec.key == "rsi-1.period"


def test_duplicate_parameter_keys_are_rejected(period_space):
    with pytest.raises(ValueError):
        period_space.add_parameter(
            ParameterSpec(owner_id="rsi-1", name="period", kind=ParameterKind.DISCRETE, low=2, high=10, step=1)
        )


def test_unknown_parameter_lookup_raises(period_space):
    with pytest.raises(ValueError):
        period_space.get_parameter("sma-1.period")


def test_generate_random_stays_in_domain(mixed_space, rng):
    for _ in range(200):
        candidate = mixed_space.generate_random(rng)
        assert mixed_space.validate_configuration(candidate.assignment)


def test_discrete_samples_are_integers_on_an_integer_lattice(period_space, rng):
    values = {period_space.generate_random(rng).assignment["rsi-1.period"] for _ in range(300)}
    assert all(isinstance(v, int) for v in values)
    assert min(values) >= 2 and max(values) <= 50


def test_clamp_clips_snaps_and_falls_back(mixed_space):
    clamped = mixed_space.clamp({
        "rsi-1.period": 3.6,
        "rsi-1.overbought": 120,
        "risk.stop_loss": -1.0,
        "ma-1.ma_type": "hma",
    })

    assert clamped == {
        "rsi-1.period": 4,
        "rsi-1.overbought": 90,
        "risk.stop_loss": 0.005,
        "ma-1.ma_type": "sma",
    }


def test_clamp_fills_missing_keys_and_drops_unknown_ones(mixed_space):
    clamped = mixed_space.clamp({"rsi-1.period": 20, "unknown.key": 1})

    assert clamped["rsi-1.period"] == 20
    assert clamped["rsi-1.overbought"] == 60
    assert clamped["risk.stop_loss"] == 0.005
    assert clamped["ma-1.ma_type"] == "sma"
    assert "unknown.key" not in clamped


def test_clamp_is_idempotent_and_keeps_valid_assignments(mixed_space, rng):
    for _ in range(100):
        assignment = mixed_space.sample_assignment(rng)
        once = mixed_space.clamp(assignment)
        assert once == assignment
        assert mixed_space.clamp(once) == once

    wild = {"rsi-1.period": 1e9, "rsi-1.overbought": float("nan"), "risk.stop_loss": "x", "ma-1.ma_type": None}
    once = mixed_space.clamp(wild)
    assert mixed_space.validate_configuration(once)
    assert mixed_space.clamp(once) == once


def test_clamp_keeps_float_step_values_that_are_already_on_the_lattice():
    space = SearchSpace([ParameterSpec(name="x", kind=ParameterKind.DISCRETE, low=0.1, high=1.0, step=0.1)])
    value = 0.1 + 2 * 0.1
    key = next(iter(space.parameters))

    assert space.parameters[key].validate_value(value)
    assert space.clamp({key: value}) == {key: value}
    assert space.clamp({key: 0.33}) == {key: 0.3}


def test_neighbor_perturbs_within_domain_without_mutating_input(mixed_space, rng):
    start = mixed_space.sample_assignment(rng)
    snapshot = dict(start)

    for _ in range(200):
        neighbor = mixed_space.neighbor(start, rng, scale=0.5, n_keys=2)
        assert mixed_space.validate_configuration(neighbor)

    assert start == snapshot


def test_grid_is_lexicographic_in_declaration_order():
    space = SearchSpace([
        ParameterSpec(owner_id="a", name="x", kind=ParameterKind.DISCRETE, low=1, high=2, step=1),
        ParameterSpec(owner_id="a", name="mode", kind=ParameterKind.CATEGORICAL, choices=["p", "q"]),
    ])

    grid = list(space.create_grid())

    assert grid == [
        {"a.x": 1, "a.mode": "p"},
        {"a.x": 1, "a.mode": "q"},
        {"a.x": 2, "a.mode": "p"},
        {"a.x": 2, "a.mode": "q"},
    ]
    assert space.grid_size() == 4


def test_grid_uses_n_points_then_default_subdivisions():
    space = SearchSpace([
        ParameterSpec(name="a", kind=ParameterKind.CONTINUOUS, low=0.0, high=1.0, n_points=3),
        ParameterSpec(name="b", kind=ParameterKind.CONTINUOUS, low=0.0, high=1.0),
    ])

    axes = space.grid_axes(default_n_points=5)

    assert axes[0] == [0.0, 0.5, 1.0]
    assert len(axes[1]) == 5
    assert space.grid_size(default_n_points=5) == 15


def test_create_grid_limit_is_a_prefix(mixed_space):
    full = mixed_space.create_grid(default_n_points=4)
    first = [next(full) for _ in range(10)]

    assert list(mixed_space.create_grid(default_n_points=4, limit=10)) == first


def test_vector_encoding_round_trips_categorical_indices(mixed_space):
    assignment = {"rsi-1.period": 14, "rsi-1.overbought": 70, "risk.stop_loss": 0.02, "ma-1.ma_type": "wma"}

    vector = mixed_space.encode(assignment)
    lows, highs = mixed_space.vector_bounds()

    assert vector[3] == 2.0
    assert np.all(vector >= lows) and np.all(vector <= highs)
    assert mixed_space.decode(vector) == assignment


def test_group_by_owner_nests_assignment(mixed_space):
    nested = mixed_space.group_by_owner({"rsi-1.period": 14, "rsi-1.overbought": 70, "risk.stop_loss": 0.02})
    assert nested == {"rsi-1": {"period": 14, "overbought": 70}, "risk": {"stop_loss": 0.02}}
