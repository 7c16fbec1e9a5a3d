import numpy as np
import pytest

from covsim.params import ModelParams, constant_rate
from covsim.state import make_state


def build_params(n_ages: int = 2, icu_beds: float = np.inf, **overrides) -> ModelParams:
    """Jeu de paramètres de test ; chaque champ peut être surchargé."""
    kwargs = dict(
        icu_beds=icu_beds,
        population_served=10_000.0,
        infection=constant_rate(0.6),
        latency=1 / 3.0,
        imports_per_day=np.zeros(n_ages),
        isolated=np.full(n_ages, 0.1),
        recovery=np.full(n_ages, 0.2),
        severe=np.linspace(0.01, 0.05, n_ages),
        discharge=np.full(n_ages, 0.1),
        critical=np.linspace(0.02, 0.08, n_ages),
        stabilize=np.full(n_ages, 0.1),
        fatality=np.linspace(0.01, 0.04, n_ages),
        overflow_fatality=np.linspace(0.05, 0.2, n_ages),
    )
    kwargs.update(overrides)
    return ModelParams(**kwargs)


@pytest.fixture
def params() -> ModelParams:
    return build_params()


@pytest.fixture
def state():
    return make_state(
        time=0.0,
        susceptible=[5000.0, 4700.0],
        exposed=[[20.0, 10.0, 5.0], [15.0, 8.0, 2.0]],
        infectious=[40.0, 30.0],
        severe=[10.0, 12.0],
        critical=[3.0, 6.0],
        overflow=[0.0, 1.0],
        recovered=[100.0, 80.0],
        hospitalized=[20.0, 25.0],
        cumulative_critical=[5.0, 9.0],
        fatality=[1.0, 2.0],
    )
