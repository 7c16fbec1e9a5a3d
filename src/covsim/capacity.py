"""
ICU capacity constraint.

The bed budget is enforced after each Euler update by moving patients
between `critical` (in a bed) and `overflow` (no bed available):

    - over capacity: oldest age groups are displaced first,
    - spare capacity: youngest age groups are admitted first.

The derivatives themselves are computed as if capacity were unlimited;
the constraint is only re-applied on the advanced state.
"""
import logging

import numpy as np

from .state import freeze

logger = logging.getLogger(__name__)


def redistribute_icu(
    critical: np.ndarray,
    overflow: np.ndarray,
    icu_beds: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Greedy single-pass reallocation between critical and overflow.

    Parameters
    ----------
    critical : np.ndarray
        Patients in ICU beds per age group, shape (n_ages,).
    overflow : np.ndarray
        Critical patients without a bed per age group, shape (n_ages,).
    icu_beds : float
        Global bed budget (may be np.inf).

    Returns
    -------
    critical, overflow : np.ndarray
        New arrays; the inputs are left untouched.
    """
    critical = critical.copy()
    overflow = overflow.copy()
    n_ages = len(critical)

    free_beds = icu_beds - critical.sum()
    overflow_before = overflow.sum()

    # Over capacity: displace from the oldest group downwards
    age = n_ages - 1
    while free_beds < 0 and age >= 0:
        if critical[age] > -free_beds:
            critical[age] += free_beds
            overflow[age] -= free_beds
            free_beds = 0.0
        else:
            overflow[age] += critical[age]
            free_beds += critical[age]
            critical[age] = 0.0
        age -= 1

    # Spare capacity: admit from the youngest group upwards
    age = 0
    while free_beds > 0 and age < n_ages:
        if overflow[age] > free_beds:
            critical[age] += free_beds
            overflow[age] -= free_beds
            free_beds = 0.0
        else:
            critical[age] += overflow[age]
            free_beds -= overflow[age]
            overflow[age] = 0.0
        age += 1

    moved = overflow.sum() - overflow_before
    if moved > 0:
        logger.debug("ICU over capacity: %.6g patients moved to overflow", moved)
    elif moved < 0:
        logger.debug("ICU spare beds: %.6g patients admitted from overflow", -moved)

    return freeze(critical), freeze(overflow)


def icu_headroom(critical: np.ndarray, icu_beds: float) -> float:
    """Nombre de lits libres (négatif si dépassement)."""
    return float(icu_beds - critical.sum())
