#!/usr/bin/env python3
"""
Script de démarrage rapide pour le modèle SEIR stratifié par âge.

Projette l'épidémie nominale sur 180 jours, trace l'occupation en
réanimation (lits et débordement) et affiche des diagnostics.

Usage (depuis la racine du dépôt) :
    python3 scripts/quickstart.py
"""
import sys
from pathlib import Path

# Add src/ to path for imports when running from repo root
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT / "src"))

import numpy as np
import matplotlib.pyplot as plt

from covsim.params import theta_nom, initial_state, AGE_GROUPS, EULER_STEP
from covsim.integrators import simulate_days
from covsim.totals import collect_totals


def main() -> None:
    """Simule le jeu nominal et produit la figure de sortie."""
    n_days = 180
    x0 = initial_state()

    trajectory = simulate_days(x0, theta_nom, n_days)
    points = collect_totals(trajectory, AGE_GROUPS)

    ts = np.array([p.time for p in points])
    critical = np.array([p.current["critical"]["total"] for p in points])
    overflow = np.array([p.current["overflow"]["total"] for p in points])
    deaths = points[-1].cumulative["fatality"]

    print("=" * 60)
    print("Quickstart - Simulation Results")
    print("=" * 60)
    print(f"Simulation: {n_days} days, RK4 sub-step = {EULER_STEP} day")
    print(f"ICU beds: {theta_nom.icu_beds:.0f}")
    print("-" * 60)
    print(f"Peak ICU occupancy: {critical.max():.1f} (day {ts[critical.argmax()]:.0f})")
    print(f"Peak overflow: {overflow.max():.1f}")
    print(f"Cumulative fatalities: {deaths['total']:.0f}")
    for age in AGE_GROUPS:
        print(f"  {age:6s}: {deaths[age]:.0f}")
    print("-" * 60)

    output_dir = REPO_ROOT / "outputs" / "figures"
    output_dir.mkdir(parents=True, exist_ok=True)
    fig_path = output_dir / "quickstart_icu.png"

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(ts, critical, "b-", linewidth=2, label="ICU (critical)")
    ax.plot(ts, overflow, "m-", linewidth=2, label="Overflow")
    ax.axhline(
        y=theta_nom.icu_beds,
        color="r",
        linestyle="--",
        linewidth=1.5,
        label=f"ICU beds ({theta_nom.icu_beds:.0f})",
    )

    ax.set_xlabel("Time [days]", fontsize=12)
    ax.set_ylabel("Patients", fontsize=12)
    ax.set_title("ICU occupancy under a fixed bed budget", fontsize=14)
    ax.legend(loc="upper right", fontsize=10)
    ax.grid(True, alpha=0.3)
    ax.set_xlim(0, n_days)
    ax.set_ylim(bottom=0)

    plt.tight_layout()
    plt.savefig(fig_path, dpi=200, bbox_inches="tight")
    plt.close()

    print(f"Figure saved: {fig_path}")
    print("=" * 60)


if __name__ == "__main__":
    main()
