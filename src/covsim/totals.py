"""
Projection d'une trajectoire en totaux par classe d'âge.

Chaque compartiment devient un dictionnaire {label d'âge: valeur} avec
une entrée supplémentaire "total". La chaîne de latence est résumée par
la somme de ses étapes.
"""
from dataclasses import dataclass
from typing import Sequence

from .errors import ShapeMismatchError
from .state import CUMULATIVE_FIELDS, CURRENT_SCALARS, SimulationState

TOTAL_KEY = "total"


@dataclass(frozen=True)
class TotalsPoint:
    time: float
    current: dict[str, dict[str, float]]
    cumulative: dict[str, dict[str, float]]


def _by_age(values, ages: Sequence[str]) -> dict[str, float]:
    out = {age: float(v) for age, v in zip(ages, values)}
    out[TOTAL_KEY] = float(sum(values))
    return out


def collect_totals(
    trajectory: Sequence[SimulationState],
    ages: Sequence[str],
) -> list[TotalsPoint]:
    """Projette chaque état de la trajectoire (ordre conservé)."""
    if TOTAL_KEY in ages:
        raise ValueError(f"'{TOTAL_KEY}' is reserved and cannot be an age label")

    res = []
    for d in trajectory:
        if d.n_ages != len(ages):
            raise ShapeMismatchError(
                f"{len(ages)} age labels for a state with {d.n_ages} age groups",
                expected=d.n_ages,
                actual=len(ages),
            )
        current = {name: _by_age(getattr(d.current, name), ages) for name in CURRENT_SCALARS}
        current["exposed"] = _by_age(d.current.exposed.sum(axis=1), ages)
        cumulative = {name: _by_age(getattr(d.cumulative, name), ages) for name in CUMULATIVE_FIELDS}
        res.append(TotalsPoint(time=d.time, current=current, cumulative=cumulative))
    return res
