"""
Modèle épidémique SEIR stratifié par âge avec capacité de réanimation.

Fournit les flux et la dynamique du graphe de compartiments, l'intégration
RK4 avec contrainte de lits, et la projection des trajectoires en totaux.
"""
from .params import ModelParams, EULER_STEP, RK4_WEIGHTS
from .params import constant_rate, theta_nom, initial_state, AGE_GROUPS
from .state import SimulationState, CurrentState, CumulativeState, TimeDerivative, make_state
from .dynamics import FluxSet, fluxes, derivative, rhs
from .capacity import redistribute_icu, icu_headroom
from .integrators import combine_derivatives, advance_state, rk4_step, evolve, simulate_days
from .totals import TotalsPoint, collect_totals
from .errors import CovsimError, ShapeMismatchError, NegativeTimeSpanError

__all__ = [
    "ModelParams",
    "EULER_STEP",
    "RK4_WEIGHTS",
    "constant_rate",
    "theta_nom",
    "initial_state",
    "AGE_GROUPS",
    "SimulationState",
    "CurrentState",
    "CumulativeState",
    "TimeDerivative",
    "make_state",
    "FluxSet",
    "fluxes",
    "derivative",
    "rhs",
    "redistribute_icu",
    "icu_headroom",
    "combine_derivatives",
    "advance_state",
    "rk4_step",
    "evolve",
    "simulate_days",
    "TotalsPoint",
    "collect_totals",
    "CovsimError",
    "ShapeMismatchError",
    "NegativeTimeSpanError",
]
