"""
Paramètres et constantes du modèle SEIR stratifié par âge.

Les taux sont exprimés par jour. Les tableaux par classe d'âge sont
ordonnés de la plus jeune (indice 0) à la plus âgée.
"""
from dataclasses import dataclass, fields
from typing import Callable

import numpy as np

from .errors import ShapeMismatchError
from .state import SimulationState, make_state


# ---------------------------------------------------------------------------
# Constantes d'intégration
# ---------------------------------------------------------------------------

EULER_STEP: float = 0.5  # Pas RK4 [jours]
RK4_WEIGHTS: tuple[float, float, float, float] = (1 / 6, 1 / 3, 1 / 3, 1 / 6)


@dataclass(frozen=True)
class ModelParams:
    """
    Paramètres épidémiologiques, fixes pendant un appel à `evolve`.

    icu_beds : capacité globale en réanimation (peut valoir np.inf)
    population_served : normalisation du taux de contact
    infection : t [jours] -> multiplicateur du taux de transmission
    latency : taux de sortie de la latence (chaîne d'Erlang)
    Les autres champs sont des tableaux (n_ages,).
    """

    icu_beds: float
    population_served: float
    infection: Callable[[float], float]
    latency: float
    imports_per_day: np.ndarray
    isolated: np.ndarray
    recovery: np.ndarray
    severe: np.ndarray
    discharge: np.ndarray
    critical: np.ndarray
    stabilize: np.ndarray
    fatality: np.ndarray
    overflow_fatality: np.ndarray

    def __post_init__(self) -> None:
        for name in AGE_FIELDS:
            arr = np.array(getattr(self, name), dtype=np.float64)
            if arr.ndim != 1:
                raise ShapeMismatchError(
                    f"'{name}' must be one-dimensional, got shape {arr.shape}",
                    expected=1,
                    actual=arr.ndim,
                )
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

        n_ages = len(self.imports_per_day)
        for name in AGE_FIELDS:
            if len(getattr(self, name)) != n_ages:
                raise ShapeMismatchError(
                    f"'{name}' has {len(getattr(self, name))} age groups, "
                    f"expected {n_ages}",
                    expected=n_ages,
                    actual=len(getattr(self, name)),
                )

    @property
    def n_ages(self) -> int:
        """Nombre de classes d'âge."""
        return len(self.imports_per_day)


AGE_FIELDS: tuple[str, ...] = tuple(
    f.name
    for f in fields(ModelParams)
    if f.name not in ("icu_beds", "population_served", "infection", "latency")
)


def constant_rate(beta: float) -> Callable[[float], float]:
    """Retourne un taux de transmission constant t -> beta."""

    def infection(t: float) -> float:
        return beta

    return infection


# ---------------------------------------------------------------------------
# Jeu nominal de démonstration (5 classes d'âge, 1 million d'habitants)
# ---------------------------------------------------------------------------

AGE_GROUPS: tuple[str, ...] = ("0-19", "20-39", "40-59", "60-79", "80+")

theta_nom: ModelParams = ModelParams(
    icu_beds=150.0,
    population_served=1_000_000.0,
    infection=constant_rate(0.6),
    latency=1 / 3.0,
    imports_per_day=np.full(5, 0.2),
    isolated=np.zeros(5),
    recovery=np.array([0.199, 0.195, 0.19, 0.17, 0.15]),
    severe=np.array([0.001, 0.005, 0.01, 0.03, 0.05]),
    discharge=np.full(5, 0.2),
    critical=np.array([0.01, 0.02, 0.04, 0.08, 0.1]),
    stabilize=np.full(5, 0.1),
    fatality=np.array([0.01, 0.02, 0.03, 0.05, 0.08]),
    overflow_fatality=np.array([0.02, 0.04, 0.06, 0.1, 0.16]),
)


def initial_state(n_stages: int = 3, time: float = 0.0) -> SimulationState:
    """État initial : 10 infectieux par classe d'âge, population répartie."""
    susceptible = [220_000.0, 260_000.0, 270_000.0, 190_000.0, 59_950.0]
    return make_state(
        time=time,
        susceptible=susceptible,
        exposed=[[0.0] * n_stages for _ in susceptible],
        infectious=[10.0] * len(susceptible),
    )
