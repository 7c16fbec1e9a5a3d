"""
State containers for the age-stratified model.

A `SimulationState` is an immutable snapshot: integration never mutates
an existing state, it builds a new one. The same two containers are
reused for time derivatives (rates instead of stocks).
"""
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .errors import ShapeMismatchError


@dataclass(frozen=True)
class CurrentState:
    """Stock compartments. `exposed` has shape (n_ages, n_stages)."""

    susceptible: np.ndarray
    exposed: np.ndarray
    infectious: np.ndarray
    severe: np.ndarray
    critical: np.ndarray
    overflow: np.ndarray

    @property
    def n_ages(self) -> int:
        return len(self.susceptible)

    @property
    def n_stages(self) -> int:
        return self.exposed.shape[1]

    def total(self) -> float:
        """Somme de tous les compartiments, toutes classes d'âge confondues."""
        return float(
            self.susceptible.sum()
            + self.exposed.sum()
            + self.infectious.sum()
            + self.severe.sum()
            + self.critical.sum()
            + self.overflow.sum()
        )


@dataclass(frozen=True)
class CumulativeState:
    """Running totals; these only ever grow."""

    recovered: np.ndarray
    hospitalized: np.ndarray
    critical: np.ndarray
    fatality: np.ndarray


@dataclass(frozen=True)
class SimulationState:
    time: float
    current: CurrentState
    cumulative: CumulativeState

    @property
    def n_ages(self) -> int:
        return self.current.n_ages


@dataclass(frozen=True)
class TimeDerivative:
    current: CurrentState
    cumulative: CumulativeState


CURRENT_SCALARS: tuple[str, ...] = (
    "susceptible",
    "infectious",
    "severe",
    "critical",
    "overflow",
)
CUMULATIVE_FIELDS: tuple[str, ...] = ("recovered", "hospitalized", "critical", "fatality")


def freeze(arr: np.ndarray) -> np.ndarray:
    """Rend le tableau non modifiable (les états sont des valeurs)."""
    arr.setflags(write=False)
    return arr


def _as_age_array(name: str, values, n_ages: int) -> np.ndarray:
    arr = np.array(values, dtype=np.float64)
    if arr.shape != (n_ages,):
        raise ShapeMismatchError(
            f"'{name}' must have shape ({n_ages},), got {arr.shape}",
            expected=(n_ages,),
            actual=arr.shape,
        )
    return freeze(arr)


def _as_chain_array(exposed: Sequence[Sequence[float]], n_ages: int) -> np.ndarray:
    if len(exposed) != n_ages:
        raise ShapeMismatchError(
            f"'exposed' has {len(exposed)} age groups, expected {n_ages}",
            expected=n_ages,
            actual=len(exposed),
        )
    lengths = {len(chain) for chain in exposed}
    if len(lengths) != 1:
        raise ShapeMismatchError(
            f"exposed chains have inconsistent lengths {sorted(lengths)}",
            actual=sorted(lengths),
        )
    n_stages = lengths.pop()
    if n_stages < 1:
        raise ShapeMismatchError("exposed chains need at least one stage", expected=1, actual=0)
    return freeze(np.array(exposed, dtype=np.float64).reshape(n_ages, n_stages))


def make_state(
    time: float,
    susceptible,
    exposed,
    infectious,
    severe=None,
    critical=None,
    overflow=None,
    recovered=None,
    hospitalized=None,
    cumulative_critical=None,
    fatality=None,
) -> SimulationState:
    """
    Build a validated `SimulationState` from plain sequences.

    Omitted compartments start at zero. `exposed` is one chain of
    sub-stage values per age group; all chains must share a length.
    """
    n_ages = len(susceptible)

    def pick(name, values):
        return _as_age_array(name, np.zeros(n_ages) if values is None else values, n_ages)

    current = CurrentState(
        susceptible=pick("susceptible", susceptible),
        exposed=_as_chain_array(exposed, n_ages),
        infectious=pick("infectious", infectious),
        severe=pick("severe", severe),
        critical=pick("critical", critical),
        overflow=pick("overflow", overflow),
    )
    cumulative = CumulativeState(
        recovered=pick("recovered", recovered),
        hospitalized=pick("hospitalized", hospitalized),
        critical=pick("cumulative critical", cumulative_critical),
        fatality=pick("fatality", fatality),
    )
    return SimulationState(time=float(time), current=current, cumulative=cumulative)


def check_shapes(state: SimulationState, n_ages: int) -> None:
    """
    Verify that every array of `state` matches `n_ages` age groups.

    Raises ShapeMismatchError otherwise.
    """
    for name in CURRENT_SCALARS:
        _as_age_array(name, getattr(state.current, name), n_ages)
    for name in CUMULATIVE_FIELDS:
        _as_age_array(f"cumulative {name}", getattr(state.cumulative, name), n_ages)
    exposed = state.current.exposed
    if exposed.ndim != 2 or exposed.shape[0] != n_ages or exposed.shape[1] < 1:
        raise ShapeMismatchError(
            f"'exposed' must have shape ({n_ages}, n_stages>=1), got {exposed.shape}",
            expected=(n_ages, "n_stages"),
            actual=exposed.shape,
        )
