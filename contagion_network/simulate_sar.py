"""Event-driven threshold (SAR) simulation: complex contagion.

A susceptible node becomes active only after accumulating ``threshold[v]``
exposures. Every active neighbor exposes a node at most once, so pending
exposures are tracked per directed arc rather than per node: each arc keeps
its own authoritative exposure time and the acceptance rule of the SIR
engine (earlier than the source's recovery and the horizon) is applied to
it independently.
"""

from enum import IntEnum
from typing import Iterable, Sequence

import numpy as np
from loguru import logger

from contagion_network.config import SARParameters
from contagion_network.errors import InvalidConfiguration
from contagion_network.events import Event, EventKind
from contagion_network.graph import ContactGraph
from contagion_network.results import SARResult, SimulationResult
from contagion_network.rng import exponential
from contagion_network.simulate_sir import (
    SUSCEPTIBLE,
    FastSIRSimulator,
    RunState,
)


class SARStatus(IntEnum):
    """Compartments of the SAR process."""

    S = 0
    A = 1
    R = 2


class FastSARSimulator(FastSIRSimulator):
    """Single-pass event-driven SAR simulator with per-node thresholds."""

    PARAMETERS_CLASS = SARParameters
    RESULT_CLASS = SARResult
    STATUS = SARStatus

    def __init__(
        self,
        graph: ContactGraph,
        lam: float,
        gamma: float,
        horizon: float,
        thresholds: Sequence[int],
        alpha: float = 0.0,
        beta: float = 0.0,
        initial_active: Iterable[int] = (),
        seed: int = 0,
    ):
        """
        Initialize the simulator.

        Args:
            graph: Shared, read-only contact graph
            lam: Base transmission rate (>= 0)
            gamma: Recovery rate (>= 0)
            horizon: Logical end time (> 0)
            thresholds: Exposures needed per node; length must equal n.
                A threshold of 0 or 1 activates on the first exposure.
            alpha: Exponent applied to the source degree
            beta: Exponent applied to the target degree
            initial_active: Nodes active at time 0 regardless of threshold
            seed: Seed of the private RNG
        """
        super().__init__(graph, lam, gamma, horizon, alpha, beta, initial_active, seed)

        thresholds = np.asarray(thresholds)
        if thresholds.ndim != 1 or thresholds.shape[0] != graph.n:
            raise InvalidConfiguration(
                f"thresholds must be an array of length n={graph.n}, got shape {thresholds.shape}"
            )
        if thresholds.size and not np.issubdtype(thresholds.dtype, np.integer):
            raise InvalidConfiguration(f"thresholds must be integers, got dtype {thresholds.dtype}")
        if thresholds.size and thresholds.min() < 0:
            raise InvalidConfiguration("thresholds must be non-negative")
        self.thresholds = thresholds.astype(np.int64).tolist()

        logger.debug(
            f"Thresholds: min={min(self.thresholds, default=0)}, "
            f"max={max(self.thresholds, default=0)}"
        )

    def _prepare(self) -> RunState:
        state = super()._prepare()
        state.extra["exposures"] = np.zeros(self.graph.n, dtype=np.int64)
        state.extra["arc_time"] = np.full(self.graph.num_arcs, np.inf)
        return state

    def _handle_transmit(self, state: RunState, event: Event) -> bool:
        u, t = event.node, event.time
        if state.status[u] != SUSCEPTIBLE:
            return False
        if event.arc < 0:
            # seeding event: activates unconditionally
            if t != state.pred_inf_time[u]:
                return False
            self._activate(state, u, t)
            return True
        if t != state.extra["arc_time"][event.arc]:
            return False

        exposures = state.extra["exposures"]
        exposures[u] += 1
        if exposures[u] >= self.thresholds[u]:
            self._activate(state, u, t)
        return True

    def _find_transmit(self, state: RunState, t: float, u: int, v: int, arc: int) -> None:
        """Draw the exposure time of ``v`` along ``arc`` (u -> v)."""
        if state.status[v] != SUSCEPTIBLE:
            return
        rate = self._transmission_rate(u, v)
        if rate == 0.0:
            return
        arc_time = state.extra["arc_time"]
        t_exp = t + exponential(state.rng, rate)
        bound = min(state.rec_time[u], arc_time[arc], self.params.horizon)
        if t_exp < bound:
            arc_time[arc] = t_exp
            if t_exp < state.pred_inf_time[v]:
                state.pred_inf_time[v] = t_exp
            state.queue.schedule(t_exp, v, EventKind.TRANSMIT, arc)


def simulate_sar(
    graph: ContactGraph,
    lam: float,
    gamma: float,
    horizon: float,
    thresholds: Sequence[int],
    alpha: float = 0.0,
    beta: float = 0.0,
    initial_active: Iterable[int] = (),
    seed: int = 0,
) -> SimulationResult:
    """Construct a :class:`FastSARSimulator` and run it."""
    return FastSARSimulator(
        graph, lam, gamma, horizon, thresholds, alpha, beta, initial_active, seed
    ).run()
