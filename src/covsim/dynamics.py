"""
Dynamique du modèle SEIR stratifié par âge avec capacité de réanimation.

Graphe des compartiments (par classe d'âge) :
    S -> E[0] -> ... -> E[k-1] -> I
    I -> {severe, recovered}
    severe -> {critical, recovered}
    critical -> {severe, fatality}
    overflow -> {severe, fatality}

Le compartiment `overflow` n'a pas de flux entrant : il n'est alimenté
que par la redistribution des lits (cf. capacity.py).
"""
from dataclasses import dataclass

import numpy as np

from .errors import ShapeMismatchError
from .params import ModelParams
from .state import CumulativeState, CurrentState, SimulationState, TimeDerivative, check_shapes


@dataclass(frozen=True)
class FluxSet:
    """
    Flux instantanés [individus/jour], étiquetés par le compartiment source.

    exposed[a, i] est le flux sortant de l'étape i de la chaîne de latence.
    """

    susceptible: np.ndarray
    exposed: np.ndarray
    infectious_severe: np.ndarray
    infectious_recovered: np.ndarray
    severe_critical: np.ndarray
    severe_recovered: np.ndarray
    critical_severe: np.ndarray
    critical_fatality: np.ndarray
    overflow_severe: np.ndarray
    overflow_fatality: np.ndarray


def fluxes(t: float, state: SimulationState, params: ModelParams) -> FluxSet:
    """
    Calcule tous les flux du graphe à l'instant t, sans contrainte de lits.

    Le facteur n_stages sur la chaîne d'Erlang conserve la durée moyenne
    de latence 1/latency quelle que soit la longueur de la chaîne.
    """
    if state.n_ages != params.n_ages:
        raise ShapeMismatchError(
            f"state has {state.n_ages} age groups, params have {params.n_ages}",
            expected=params.n_ages,
            actual=state.n_ages,
        )
    pop = state.current
    n_stages = pop.exposed.shape[1]

    frac_infected = pop.infectious.sum() / params.population_served

    # Susceptible -> Exposed
    susceptible = (
        params.imports_per_day
        + (1.0 - params.isolated) * params.infection(t) * pop.susceptible * frac_infected
    )

    # Exposed -> ... -> Infectious
    exposed = params.latency * pop.exposed * n_stages

    return FluxSet(
        susceptible=susceptible,
        exposed=exposed,
        infectious_severe=pop.infectious * params.severe,
        infectious_recovered=pop.infectious * params.recovery,
        severe_critical=pop.severe * params.critical,
        severe_recovered=pop.severe * params.discharge,
        critical_severe=pop.critical * params.stabilize,
        critical_fatality=pop.critical * params.fatality,
        overflow_severe=pop.overflow * params.stabilize,
        overflow_fatality=pop.overflow * params.overflow_fatality,
    )


def derivative(flux: FluxSet) -> TimeDerivative:
    """
    Bilan entrées - sorties pour chaque compartiment.

    Les cumuls n'accumulent que des flux entrants. Deux termes reprennent
    tels quels le modèle historique : `hospitalized` compte deux fois
    infectious->severe, et le cumul `critical` compte deux fois
    severe->recovered (au lieu de severe->critical).
    """
    # Chaîne de latence : l'étape i reçoit la sortie de l'étape i-1
    flux_in = np.concatenate([flux.susceptible[:, None], flux.exposed[:, :-1]], axis=1)
    exposed = flux_in - flux.exposed
    into_infectious = flux.exposed[:, -1]

    current = CurrentState(
        susceptible=-flux.susceptible,
        exposed=exposed,
        infectious=into_infectious - flux.infectious_severe - flux.infectious_recovered,
        severe=(
            flux.infectious_severe
            + flux.critical_severe
            + flux.overflow_severe
            - flux.severe_critical
            - flux.severe_recovered
        ),
        critical=flux.severe_critical - flux.critical_severe - flux.critical_fatality,
        overflow=-(flux.overflow_severe + flux.overflow_fatality),
    )
    cumulative = CumulativeState(
        recovered=flux.infectious_recovered + flux.severe_recovered,
        hospitalized=flux.infectious_severe + flux.infectious_severe,
        critical=flux.severe_recovered + flux.severe_recovered,
        fatality=flux.critical_fatality + flux.overflow_fatality,
    )
    return TimeDerivative(current=current, cumulative=cumulative)


def rhs(t: float, state: SimulationState, params: ModelParams) -> TimeDerivative:
    """Membre de droite complet : derivative(fluxes(t, state, params))."""
    return derivative(fluxes(t, state, params))


def validate(state: SimulationState, params: ModelParams) -> None:
    """Vérifie la cohérence des dimensions état / paramètres."""
    check_shapes(state, params.n_ages)
