import math

import numpy as np
import pytest

from covsim import integrators
from covsim.dynamics import rhs
from covsim.errors import NegativeTimeSpanError, ShapeMismatchError
from covsim.integrators import (
    advance_state,
    combine_derivatives,
    evolve,
    n_substeps,
    rk4_step,
    simulate_days,
)
from covsim.params import RK4_WEIGHTS, constant_rate
from covsim.state import make_state

from conftest import build_params


def stock_arrays(s):
    pop = s.current
    return [pop.susceptible, pop.exposed, pop.infectious, pop.severe, pop.critical, pop.overflow]


def cumulative_arrays(s):
    cum = s.cumulative
    return [cum.recovered, cum.hospitalized, cum.critical, cum.fatality]


def test_combine_with_rk4_weights_of_identical_slopes(state, params):
    k = rhs(0.0, state, params)
    combined = combine_derivatives([k, k, k, k], RK4_WEIGHTS)

    np.testing.assert_allclose(combined.current.exposed, k.current.exposed)
    np.testing.assert_allclose(combined.current.susceptible, k.current.susceptible)
    np.testing.assert_allclose(combined.cumulative.hospitalized, k.cumulative.hospitalized)


def test_combine_is_a_weighted_sum(state, params):
    k1 = rhs(0.0, state, params)
    k2 = rhs(0.0, state, build_params(infection=constant_rate(1.2)))
    combined = combine_derivatives([k1, k2], [0.25, 2.0])

    np.testing.assert_allclose(
        combined.current.susceptible,
        0.25 * k1.current.susceptible + 2.0 * k2.current.susceptible,
    )
    np.testing.assert_allclose(
        combined.cumulative.recovered,
        0.25 * k1.cumulative.recovered + 2.0 * k2.cumulative.recovered,
    )


def test_combine_rejects_mismatched_weights(state, params):
    k = rhs(0.0, state, params)
    with pytest.raises(ValueError):
        combine_derivatives([k, k], [1.0])


def test_advance_clamps_at_zero(state, params):
    k = rhs(0.0, state, params)
    advanced = advance_state(state, k, 1e4, np.inf)

    for arr in stock_arrays(advanced) + cumulative_arrays(advanced):
        assert np.all(arr >= 0.0)
    assert np.all(advanced.current.susceptible == 0.0)


def test_advance_keeps_time_and_input(state, params):
    before = state.current.susceptible.copy()
    k = rhs(0.0, state, params)
    advanced = advance_state(state, k, 0.5, np.inf)

    assert advanced.time == state.time
    np.testing.assert_array_equal(state.current.susceptible, before)
    np.testing.assert_allclose(
        advanced.current.infectious, state.current.infectious + 0.5 * k.current.infectious
    )


def test_advance_enforces_bed_budget(state, params):
    k = rhs(0.0, state, params)
    advanced = advance_state(state, k, 0.5, 4.0)

    assert advanced.current.critical.sum() <= 4.0 + 1e-9
    assert advanced.current.overflow.sum() > 0.0


def test_rk4_step_sets_new_time(state, params):
    nxt = rk4_step(rhs, state, params, 0.5)
    assert nxt.time == 0.5


def test_rk4_stage_times():
    times = []

    def infection(t):
        times.append(t)
        return 0.5

    s = make_state(time=10.0, susceptible=[100.0], exposed=[[0.0]], infectious=[1.0])
    rk4_step(rhs, s, build_params(n_ages=1, infection=infection), 0.5)
    assert times == [10.0, 10.25, 10.25, 10.5]


def test_one_day_takes_two_substeps(state, params, monkeypatch):
    calls = []
    real_step = integrators.rk4_step

    def counting_step(rhs_fn, s, p, dt):
        calls.append(dt)
        return real_step(rhs_fn, s, p, dt)

    monkeypatch.setattr(integrators, "rk4_step", counting_step)
    out = evolve(state, params, state.time + 1.0)

    assert calls == [0.5, 0.5]
    assert out.time == pytest.approx(1.0)


@pytest.mark.parametrize(
    "span, expected",
    [(0.0, 1), (0.1, 1), (0.25, 1), (0.75, 2), (1.0, 2), (1.25, 3), (7.0, 14)],
)
def test_substep_count_rounds_half_up(span, expected):
    assert n_substeps(span) == expected


def test_evolve_is_deterministic(state, params):
    a = evolve(state, params, 5.0)
    b = evolve(state, params, 5.0)

    for x, y in zip(stock_arrays(a) + cumulative_arrays(a), stock_arrays(b) + cumulative_arrays(b)):
        np.testing.assert_array_equal(x, y)
    assert a.time == b.time


def test_evolve_ignores_sampler(state, params):
    def sampler(x):
        raise AssertionError("the deterministic path must not sample")

    a = evolve(state, params, 2.0, sampler)
    b = evolve(state, params, 2.0)
    np.testing.assert_array_equal(a.current.infectious, b.current.infectious)


def test_evolve_keeps_chain_length(state, params):
    out = evolve(state, params, 3.0)
    assert out.current.exposed.shape == state.current.exposed.shape


def test_evolve_rejects_backward_span(state, params):
    later = evolve(state, params, 2.0)
    with pytest.raises(NegativeTimeSpanError):
        evolve(later, params, 1.0)


def test_evolve_rejects_shape_mismatch(state):
    with pytest.raises(ShapeMismatchError):
        evolve(state, build_params(n_ages=3), 1.0)


def test_evolve_rejects_bad_step(state, params):
    with pytest.raises(ValueError):
        evolve(state, params, 1.0, step=0.0)


def test_zero_span_keeps_values(state):
    # 9 beds for 9 critical patients: nothing to redistribute
    out = evolve(state, build_params(icu_beds=9.0), state.time)

    assert out.time == state.time
    for x, y in zip(stock_arrays(out), stock_arrays(state)):
        np.testing.assert_array_equal(x, y)


def test_conservation_without_capacity_or_imports(state, params):
    def total(s):
        return (
            s.current.total()
            + s.cumulative.recovered.sum()
            + s.cumulative.fatality.sum()
        )

    out = evolve(state, params, 2.0)
    assert total(out) == pytest.approx(total(state), rel=1e-9)


def test_single_age_infection_matches_closed_form():
    beta = 0.3
    s0 = make_state(time=0.0, susceptible=[999.0], exposed=[[0.0]], infectious=[1.0])
    p = build_params(
        n_ages=1,
        population_served=1000.0,
        infection=constant_rate(beta),
        latency=0.0,
        isolated=np.zeros(1),
        recovery=np.zeros(1),
        severe=np.zeros(1),
    )
    out = evolve(s0, p, 1.0)

    # I is frozen so dS/dt = -beta * S / 1000
    expected_s = 999.0 * math.exp(-beta / 1000.0)
    assert out.current.susceptible[0] == pytest.approx(expected_s, rel=1e-10)
    assert 999.0 - out.current.susceptible[0] == pytest.approx(beta * 999.0 / 1000.0, rel=1e-3)
    # Nothing leaves the latent stage without progression
    assert out.current.exposed[0, 0] == pytest.approx(999.0 - expected_s, rel=1e-8)
    assert out.current.infectious[0] == 1.0


def test_trajectory_invariants_under_tight_capacity():
    p = build_params(
        icu_beds=5.0,
        infection=constant_rate(1.5),
        severe=np.array([0.05, 0.2]),
        critical=np.array([0.2, 0.4]),
    )
    s0 = make_state(
        time=0.0,
        susceptible=[5000.0, 4900.0],
        exposed=[[10.0, 0.0, 0.0], [10.0, 0.0, 0.0]],
        infectious=[50.0, 50.0],
    )
    trajectory = simulate_days(s0, p, 60)

    assert len(trajectory) == 61
    assert [s.time for s in trajectory] == sorted(s.time for s in trajectory)
    assert max(s.current.overflow.sum() for s in trajectory) > 0.0

    for prev, cur in zip(trajectory, trajectory[1:]):
        assert cur.current.critical.sum() <= 5.0 + 1e-9
        assert cur.current.exposed.shape == (2, 3)
        for arr in stock_arrays(cur) + cumulative_arrays(cur):
            assert np.all(arr >= 0.0)
        for a, b in zip(cumulative_arrays(prev), cumulative_arrays(cur)):
            assert np.all(b >= a)


def test_simulate_days_points_per_day(state, params):
    trajectory = simulate_days(state, params, 2, points_per_day=4)

    assert len(trajectory) == 9
    assert trajectory[0] is state
    assert trajectory[-1].time == pytest.approx(2.0)


def test_simulate_days_rejects_bad_resolution(state, params):
    with pytest.raises(ValueError):
        simulate_days(state, params, 2, points_per_day=0)


def test_bed_budget_is_applied_at_every_rk4_stage():
    beds = 4.0
    p = build_params(icu_beds=beds)
    s0 = make_state(
        time=0.0,
        susceptible=[1000.0, 1000.0],
        exposed=[[0.0], [0.0]],
        infectious=[0.0, 0.0],
        severe=[200.0, 200.0],
        critical=[2.0, 2.0],
    )
    seen = []

    def spy(t, s, params):
        seen.append(s)
        return rhs(t, s, params)

    out = rk4_step(spy, s0, p, 0.5)

    assert len(seen) == 4
    for s in seen:
        assert s.current.critical.sum() <= beds + 1e-9
    for s in seen[1:]:
        assert s.current.overflow.sum() > 0.0
    assert out.current.critical.sum() <= beds + 1e-9


def test_combine_rejects_empty_input():
    with pytest.raises(ValueError):
        combine_derivatives([], [])


def test_evolve_output_is_read_only(state, params):
    out = evolve(state, params, 1.0)

    for arr in stock_arrays(out) + cumulative_arrays(out):
        assert not arr.flags.writeable
