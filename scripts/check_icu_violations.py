#!/usr/bin/env python3
"""
Vérification des invariants le long des trajectoires.

Simule le jeu nominal sous les capacités de réanimation demandées et vérifie,
à chaque jour :
    - positivité de tous les compartiments,
    - occupation réa <= nombre de lits,
    - cumuls non décroissants.

Code de sortie 0 : tous les invariants tiennent (tolérance 1e-9)
Code de sortie 1 : au moins une violation

Usage (depuis la racine du dépôt) :
    python3 scripts/check_icu_violations.py [--beds 0 150 inf] [--days 200]
"""
import argparse
import sys
from dataclasses import replace
from pathlib import Path

# Add src/ to path
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT / "src"))

import numpy as np

from covsim.params import theta_nom, initial_state
from covsim.capacity import icu_headroom
from covsim.integrators import simulate_days


TOLERANCE = 1e-9


def run_check(icu_beds: float, total_days: int = 200) -> dict[str, float]:
    """
    Simulate one bed budget and return the worst violation per invariant.

    Positive values are violations.
    """
    params = replace(theta_nom, icu_beds=icu_beds)
    trajectory = simulate_days(initial_state(), params, total_days)

    worst = {"negative": -np.inf, "capacity": -np.inf, "cumulative": -np.inf}
    for prev, cur in zip(trajectory, trajectory[1:]):
        stocks = [
            cur.current.susceptible,
            cur.current.exposed.ravel(),
            cur.current.infectious,
            cur.current.severe,
            cur.current.critical,
            cur.current.overflow,
        ]
        worst["negative"] = max(worst["negative"], -min(arr.min() for arr in stocks))
        worst["capacity"] = max(worst["capacity"], -icu_headroom(cur.current.critical, icu_beds))
        for name in ("recovered", "hospitalized", "critical", "fatality"):
            drop = getattr(prev.cumulative, name) - getattr(cur.cumulative, name)
            worst["cumulative"] = max(worst["cumulative"], drop.max())
    return worst


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Check non-negativity, ICU capacity and monotone cumulatives"
    )
    parser.add_argument(
        "--beds", type=float, nargs="+", default=[0.0, 50.0, 150.0, 1000.0, np.inf],
        help="ICU bed budgets to simulate, \"inf\" for unconstrained (default: 0 50 150 1000 inf)"
    )
    parser.add_argument(
        "--days", type=int, default=200,
        help="Simulation horizon in days (default: 200)"
    )
    args = parser.parse_args()

    print("=" * 60)
    print("ICU / invariant check")
    print("=" * 60)
    print(f"Tolerance = {TOLERANCE:.2e}, horizon = {args.days} days")
    print("-" * 60)

    failed = False
    for beds in args.beds:
        worst = run_check(beds, args.days)
        print(f"icu_beds = {beds:>8}: " + ", ".join(f"{k}={v:.2e}" for k, v in worst.items()))
        if any(v > TOLERANCE for v in worst.values() if np.isfinite(v)):
            failed = True

    print("-" * 60)
    if failed:
        print("✗ FAIL: invariant violated")
        return 1
    print("✓ PASS: all invariants hold")
    return 0


if __name__ == "__main__":
    sys.exit(main())
