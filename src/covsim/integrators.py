"""
Numerical integrators for the age-stratified model.

Implements RK4 (Runge-Kutta 4th order) with a 0.5 day sub-step, where
every stage is advanced through the clamped, capacity-constrained Euler
update of `advance_state`.
"""
import logging
import math
from typing import Callable, Optional, Sequence

import numpy as np

from .capacity import redistribute_icu
from .dynamics import rhs, validate
from .errors import NegativeTimeSpanError
from .params import EULER_STEP, RK4_WEIGHTS, ModelParams
from .state import CumulativeState, CurrentState, SimulationState, TimeDerivative, freeze

logger = logging.getLogger(__name__)


def _gz(x: np.ndarray) -> np.ndarray:
    return freeze(np.maximum(x, 0.0))


def combine_derivatives(
    grads: Sequence[TimeDerivative],
    weights: Sequence[float],
) -> TimeDerivative:
    """Weighted sum sum_i weights[i] * grads[i], field by field."""
    if not grads:
        raise ValueError("at least one derivative is required")
    if len(grads) != len(weights):
        raise ValueError(f"{len(grads)} derivatives but {len(weights)} weights")

    first = grads[0]
    current = {
        "susceptible": np.zeros_like(first.current.susceptible),
        "exposed": np.zeros_like(first.current.exposed),
        "infectious": np.zeros_like(first.current.infectious),
        "severe": np.zeros_like(first.current.severe),
        "critical": np.zeros_like(first.current.critical),
        "overflow": np.zeros_like(first.current.overflow),
    }
    cumulative = {
        "recovered": np.zeros_like(first.cumulative.recovered),
        "hospitalized": np.zeros_like(first.cumulative.hospitalized),
        "critical": np.zeros_like(first.cumulative.critical),
        "fatality": np.zeros_like(first.cumulative.fatality),
    }

    for grad, w in zip(grads, weights):
        current["susceptible"] = current["susceptible"] + w * grad.current.susceptible
        current["exposed"] = current["exposed"] + w * grad.current.exposed
        current["infectious"] = current["infectious"] + w * grad.current.infectious
        current["severe"] = current["severe"] + w * grad.current.severe
        current["critical"] = current["critical"] + w * grad.current.critical
        current["overflow"] = current["overflow"] + w * grad.current.overflow

        cumulative["recovered"] = cumulative["recovered"] + w * grad.cumulative.recovered
        cumulative["hospitalized"] = cumulative["hospitalized"] + w * grad.cumulative.hospitalized
        cumulative["critical"] = cumulative["critical"] + w * grad.cumulative.critical
        cumulative["fatality"] = cumulative["fatality"] + w * grad.cumulative.fatality

    return TimeDerivative(current=CurrentState(**current), cumulative=CumulativeState(**cumulative))


def advance_state(
    state: SimulationState,
    tdot: TimeDerivative,
    dt: float,
    icu_beds: float,
) -> SimulationState:
    """
    Euler update x + dt * dx/dt floored at zero, then ICU redistribution.

    The returned state keeps `state.time`; callers set the new time.
    """
    pop, cum = state.current, state.cumulative
    dpop, dcum = tdot.current, tdot.cumulative

    critical, overflow = redistribute_icu(
        _gz(pop.critical + dt * dpop.critical),
        _gz(pop.overflow + dt * dpop.overflow),
        icu_beds,
    )
    current = CurrentState(
        susceptible=_gz(pop.susceptible + dt * dpop.susceptible),
        exposed=_gz(pop.exposed + dt * dpop.exposed),
        infectious=_gz(pop.infectious + dt * dpop.infectious),
        severe=_gz(pop.severe + dt * dpop.severe),
        critical=critical,
        overflow=overflow,
    )
    cumulative = CumulativeState(
        recovered=_gz(cum.recovered + dt * dcum.recovered),
        hospitalized=_gz(cum.hospitalized + dt * dcum.hospitalized),
        critical=_gz(cum.critical + dt * dcum.critical),
        fatality=_gz(cum.fatality + dt * dcum.fatality),
    )
    return SimulationState(time=state.time, current=current, cumulative=cumulative)


def rk4_step(
    rhs_fn: Callable[[float, SimulationState, ModelParams], TimeDerivative],
    state: SimulationState,
    params: ModelParams,
    dt: float,
) -> SimulationState:
    """
    Perform one RK4 (Runge-Kutta 4th order) integration step.

    Parameters
    ----------
    rhs_fn : Callable
        Right-hand side with signature rhs(t, state, params) -> TimeDerivative.
    state : SimulationState
        Current state; its `time` is the start of the step.
    params : ModelParams
        Model parameters. `params.icu_beds` is read once for all stages.
    dt : float
        Time step size [days].

    Returns
    -------
    state_next : SimulationState
        State at time state.time + dt.
    """
    t0 = state.time
    beds = params.icu_beds

    k1 = rhs_fn(t0, state, params)
    k2 = rhs_fn(t0 + 0.5 * dt, advance_state(state, k1, 0.5 * dt, beds), params)
    k3 = rhs_fn(t0 + 0.5 * dt, advance_state(state, k2, 0.5 * dt, beds), params)
    k4 = rhs_fn(t0 + dt, advance_state(state, k3, dt, beds), params)

    tdot = combine_derivatives([k1, k2, k3, k4], RK4_WEIGHTS)
    advanced = advance_state(state, tdot, dt, beds)
    return SimulationState(time=t0 + dt, current=advanced.current, cumulative=advanced.cumulative)


def n_substeps(span: float, step: float = EULER_STEP) -> int:
    """Number of RK4 sub-steps for a span of `span` days (at least one)."""
    return max(1, int(math.floor(span / step + 0.5)))


def evolve(
    state: SimulationState,
    params: ModelParams,
    t_max: float,
    sample: Optional[Callable[[float], float]] = None,
    step: float = EULER_STEP,
) -> SimulationState:
    """
    Integrate from `state.time` up to `t_max` and return the final state.

    Parameters
    ----------
    state : SimulationState
        Initial snapshot (not modified).
    params : ModelParams
        Model parameters, shared by every sub-step.
    t_max : float
        Target time [days]. Must not precede `state.time`.
    sample : Callable, optional
        Reserved for stochastic variants; ignored by this integrator.
    step : float, optional
        Nominal sub-step [days] (default 0.5).

    Returns
    -------
    SimulationState
        Snapshot at exactly `t_max` up to floating-point accumulation.

    Raises
    ------
    ShapeMismatchError
        If state and parameter dimensions disagree.
    NegativeTimeSpanError
        If `t_max < state.time`.
    """
    if step <= 0:
        raise ValueError(f"step must be > 0, got {step}")
    validate(state, params)

    span = t_max - state.time
    if span < 0:
        raise NegativeTimeSpanError(state.time, t_max)

    n_steps = n_substeps(span, step)
    dt = span / n_steps
    logger.debug("evolve: t=%g -> %g in %d steps of %g days", state.time, t_max, n_steps, dt)

    current = state
    for _ in range(n_steps):
        current = rk4_step(rhs, current, params, dt)
    return current


def simulate_days(
    state: SimulationState,
    params: ModelParams,
    n_days: int,
    points_per_day: int = 1,
) -> list[SimulationState]:
    """
    Record a trajectory by calling `evolve` at successive target times.

    Returns n_days * points_per_day + 1 snapshots, the first being `state`.
    """
    if points_per_day < 1:
        raise ValueError(f"points_per_day must be >= 1, got {points_per_day}")

    trajectory = [state]
    t_start = state.time
    for k in range(1, n_days * points_per_day + 1):
        t_next = t_start + k / points_per_day
        trajectory.append(evolve(trajectory[-1], params, t_next))
    return trajectory
