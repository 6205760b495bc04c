"""Discrete-time SIR with reactive vaccination (S, I, V, R).

All nodes update synchronously once per step. Infected nodes expose their
susceptible neighbors, who are either vaccinated (probability ``omega``,
while the budget lasts) or infected (probability ``beta``). Infected nodes
recover after ``gamma`` steps.
"""

from enum import IntEnum
from typing import Iterable

import numpy as np
from pydantic import ValidationError
from loguru import logger

from contagion_network.config import VaccinationParameters
from contagion_network.errors import InconsistentState, InvalidConfiguration
from contagion_network.graph import ContactGraph
from contagion_network.results import VaccinationResult
from contagion_network.rng import make_rng
from contagion_network.simulate_sir import validate_initial_nodes


class VacStatus(IntEnum):
    """Compartments of the vaccination process."""

    S = 0
    I = 1
    V = 2
    R = 3


class VaccinationSIRSimulator:
    """Synchronous S/I/V/R simulator on a contact graph."""

    def __init__(
        self,
        graph: ContactGraph,
        omega: float,
        beta: float,
        gamma: float,
        t_max: float,
        vac_max: float,
        radius: int = 1,
        initial_infected: Iterable[int] = (),
        seed: int = 0,
    ):
        """
        Initialize the simulator.

        Args:
            graph: Shared, read-only contact graph
            omega: Vaccination probability per exposure
            beta: Infection probability per exposure
            gamma: Infectious period in steps (rounded)
            t_max: Number of steps (rounded)
            vac_max: Maximum vaccinated fraction of the population
            radius: 1 vaccinates exposed neighbors, 2 also their neighbors
            initial_infected: Nodes infected at step 0; duplicates collapsed
            seed: Seed of the private RNG
        """
        if not isinstance(graph, ContactGraph):
            raise InvalidConfiguration(f"graph must be a ContactGraph, got {type(graph).__name__}")
        try:
            self.params = VaccinationParameters(
                omega=omega,
                beta=beta,
                gamma=gamma,
                t_max=t_max,
                vac_max=vac_max,
                radius=radius,
                seed=seed,
            )
        except ValidationError as exc:
            raise InvalidConfiguration(str(exc)) from exc

        self.graph = graph
        n = graph.n
        self.initial_infected = validate_initial_nodes(initial_infected, n)
        self.max_vaccinations = min(n, int(np.floor(self.params.vac_max * n)))

        logger.debug(
            f"Initialized VaccinationSIRSimulator: n={n}, omega={self.params.omega}, "
            f"beta={self.params.beta}, gamma={self.params.gamma}, t_max={self.params.t_max}, "
            f"max_vaccinations={self.max_vaccinations}, radius={self.params.radius}"
        )

    def run(self) -> VaccinationResult:
        """Run all ``t_max`` steps and return the per-step counts."""
        graph = self.graph
        n = graph.n
        p = self.params
        rng = make_rng(p.seed)

        status = np.full(n, VacStatus.S, dtype=np.int8)
        inf_step = np.zeros(n, dtype=np.int64)
        status[list(self.initial_infected)] = VacStatus.I
        vaccinated = 0

        series = np.zeros((p.t_max + 1, 4), dtype=np.int64)
        series[0] = np.bincount(status, minlength=4)

        to_vaccinate = np.zeros(n, dtype=np.bool_)
        to_infect = np.zeros(n, dtype=np.bool_)
        to_recover = np.zeros(n, dtype=np.bool_)

        for t in range(p.t_max):
            to_vaccinate[:] = False
            to_infect[:] = False
            to_recover[:] = False

            # exposure and recovery scheduling from the state at step t
            for u in np.flatnonzero(status == VacStatus.I):
                if inf_step[u] >= p.gamma:
                    to_recover[u] = True

                neighbors = graph.neighbors(u)
                for v in neighbors:
                    if status[v] != VacStatus.S or to_vaccinate[v] or to_infect[v]:
                        continue
                    if rng.random() < p.omega and vaccinated < self.max_vaccinations:
                        to_vaccinate[v] = True
                        vaccinated += 1
                    elif rng.random() < p.beta:
                        to_infect[v] = True

                if p.radius == 2:
                    second = dict.fromkeys(
                        int(w)
                        for v in neighbors
                        for w in graph.neighbors(v)
                        if status[w] == VacStatus.S and not to_vaccinate[w] and not to_infect[w]
                    )
                    for w in second:
                        if rng.random() < p.omega and vaccinated < self.max_vaccinations:
                            to_vaccinate[w] = True
                            vaccinated += 1

            self._apply(status, to_infect, VacStatus.S, VacStatus.I, t)
            self._apply(status, to_recover, VacStatus.I, VacStatus.R, t)
            self._apply(status, to_vaccinate, VacStatus.S, VacStatus.V, t)

            inf_step[status == VacStatus.I] += 1
            series[t + 1] = np.bincount(status, minlength=4)

            if series[t + 1, VacStatus.I] == 0:
                # no infected left: the remaining steps keep the last counts
                series[t + 2 :] = series[t + 1]
                logger.debug(f"Vaccination run died out at step {t + 1}")
                break

        result = VaccinationResult(S=series[:, 0], I=series[:, 1], V=series[:, 2], R=series[:, 3])
        logger.info(f"VaccinationSIRSimulator complete: final={result.final_counts()}")
        return result

    @staticmethod
    def _apply(
        status: np.ndarray, mask: np.ndarray, expected: VacStatus, target: VacStatus, t: int
    ) -> None:
        nodes = np.flatnonzero(mask)
        wrong = nodes[status[nodes] != expected]
        if wrong.size:
            u = int(wrong[0])
            raise InconsistentState(
                f"cannot move node to {target.name}",
                node=u,
                expected=expected.name,
                actual=VacStatus(int(status[u])).name,
                time=t,
            )
        status[nodes] = target


def simulate_vaccination(
    graph: ContactGraph,
    omega: float,
    beta: float,
    gamma: float,
    t_max: float,
    vac_max: float,
    radius: int = 1,
    initial_infected: Iterable[int] = (),
    seed: int = 0,
) -> VaccinationResult:
    """Construct a :class:`VaccinationSIRSimulator` and run it."""
    return VaccinationSIRSimulator(
        graph, omega, beta, gamma, t_max, vac_max, radius, initial_infected, seed
    ).run()
