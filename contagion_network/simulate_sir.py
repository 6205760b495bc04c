"""Event-driven (continuous-time) SIR simulation on a contact graph.

Each node carries the earliest transmission time currently believed valid
(``pred_inf_time``). Whenever an earlier candidate is found the value is
overwritten and a new event pushed; older events for the node are left in
the queue and ignored when popped because their time no longer equals the
authoritative one.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable, List, Tuple

import numpy as np
from pydantic import ValidationError
from loguru import logger

from contagion_network.config import SIRParameters
from contagion_network.errors import InconsistentState, InvalidConfiguration
from contagion_network.events import Event, EventKind, EventQueue
from contagion_network.graph import ContactGraph
from contagion_network.results import SIRResult, SimulationResult
from contagion_network.rng import exponential, make_rng


def validate_initial_nodes(nodes: Iterable[int], n: int) -> Tuple[int, ...]:
    """
    Check initial node ids and collapse duplicates, keeping first-seen order.

    Raises:
        InvalidConfiguration: non-integer id or id outside [0, n)
    """
    seen = set()
    valid = []
    for u in nodes:
        if isinstance(u, (bool, np.bool_)) or not isinstance(u, (int, np.integer)):
            raise InvalidConfiguration(f"invalid initial node: {u!r}")
        u = int(u)
        if u < 0 or u >= n:
            raise InvalidConfiguration(f"invalid initial node: {u} (n={n})")
        if u in seen:
            continue
        seen.add(u)
        valid.append(u)
    return tuple(valid)


class SIRStatus(IntEnum):
    """Compartments of the SIR process."""

    S = 0
    I = 1
    R = 2


class RunPhase(Enum):
    """Lifecycle of a simulator; each instance runs once."""

    READY = "ready"
    RUNNING = "running"
    DONE = "done"


# Compartment codes shared by every engine: 0 susceptible, 1 active, 2 removed
SUSCEPTIBLE = 0
ACTIVE = 1
REMOVED = 2


@dataclass
class RunState:
    """Mutable state private to one run."""

    status: np.ndarray
    pred_inf_time: np.ndarray
    rec_time: np.ndarray
    counts: List[int]
    queue: EventQueue
    rng: np.random.Generator
    result: SimulationResult
    processed: int = 0
    stale: int = 0
    extra: dict = field(default_factory=dict)


class FastSIRSimulator:
    """Single-pass event-driven SIR simulator.

    The transmission rate along an arc ``u -> v`` is
    ``lam * deg(u)**alpha * deg(v)**beta`` where a degree of 0 counts as 1.
    """

    PARAMETERS_CLASS = SIRParameters
    RESULT_CLASS = SIRResult
    STATUS = SIRStatus

    def __init__(
        self,
        graph: ContactGraph,
        lam: float,
        gamma: float,
        horizon: float,
        alpha: float = 0.0,
        beta: float = 0.0,
        initial_infected: Iterable[int] = (),
        seed: int = 0,
    ):
        """
        Initialize the simulator.

        Args:
            graph: Shared, read-only contact graph
            lam: Base transmission rate (>= 0)
            gamma: Recovery rate (>= 0; 0 means nodes never recover)
            horizon: Logical end time (> 0)
            alpha: Exponent applied to the source degree
            beta: Exponent applied to the target degree
            initial_infected: Seed nodes; duplicates are collapsed
            seed: Seed of the private RNG

        Raises:
            InvalidConfiguration: on any invalid argument
        """
        if not isinstance(graph, ContactGraph):
            raise InvalidConfiguration(f"graph must be a ContactGraph, got {type(graph).__name__}")
        try:
            self.params = self.PARAMETERS_CLASS(
                lam=lam, gamma=gamma, horizon=horizon, alpha=alpha, beta=beta, seed=seed
            )
        except ValidationError as exc:
            logger.debug(f"Rejected {type(self).__name__} parameters: {exc}")
            raise InvalidConfiguration(str(exc)) from exc

        self.graph = graph
        self.initial_infected = self._validate_initial(initial_infected)
        if not self.initial_infected:
            logger.warning("No initial nodes given; the run will only record the initial sample")

        # degree 0 counts as 1 so that 0**negative never occurs
        degrees = np.maximum(graph.degrees(), 1).astype(np.float64)
        with np.errstate(over="ignore"):
            self._src_factor = np.power(degrees, self.params.alpha).tolist()
            self._dst_factor = np.power(degrees, self.params.beta).tolist()

        self.phase = RunPhase.READY

        logger.debug(
            f"Initialized {type(self).__name__}: n={graph.n}, lam={self.params.lam}, "
            f"gamma={self.params.gamma}, horizon={self.params.horizon}, "
            f"alpha={self.params.alpha}, beta={self.params.beta}, "
            f"seeds={len(self.initial_infected)}"
        )

    def _validate_initial(self, initial_infected: Iterable[int]) -> Tuple[int, ...]:
        return validate_initial_nodes(initial_infected, self.graph.n)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> SimulationResult:
        """Simulate until the queue empties or an event at/after the horizon is popped."""
        if self.phase is not RunPhase.READY:
            raise InconsistentState(
                f"{type(self).__name__} can only run once",
                expected=RunPhase.READY.value,
                actual=self.phase.value,
            )
        self.phase = RunPhase.RUNNING
        state = self._prepare()
        self._seed(state)
        self._event_loop(state)
        self.phase = RunPhase.DONE

        result = state.result.freeze()
        logger.info(
            f"{type(self).__name__} complete: final={result.final_counts()}, "
            f"samples={len(result)}, events={state.processed}, stale={state.stale}"
        )
        return result

    def _prepare(self) -> RunState:
        n = self.graph.n
        result = self.RESULT_CLASS(n)
        state = RunState(
            status=np.full(n, SUSCEPTIBLE, dtype=np.int8),
            pred_inf_time=np.full(n, np.inf),
            rec_time=np.full(n, np.inf),
            counts=[n, 0, 0],
            queue=EventQueue(),
            rng=make_rng(self.params.seed),
            result=result,
        )
        result.record(0.0, state.counts)
        return state

    def _seed(self, state: RunState) -> None:
        for u in self.initial_infected:
            state.pred_inf_time[u] = 0.0
            state.queue.schedule(0.0, u, EventKind.TRANSMIT)

    def _event_loop(self, state: RunState) -> None:
        queue = state.queue
        horizon = self.params.horizon
        while queue:
            event = queue.pop_min()
            if event.time >= horizon:
                break
            state.processed += 1
            if event.kind == EventKind.TRANSMIT:
                valid = self._handle_transmit(state, event)
            else:
                valid = self._handle_recover(state, event)
            if not valid:
                state.stale += 1

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _handle_transmit(self, state: RunState, event: Event) -> bool:
        u, t = event.node, event.time
        if state.status[u] != SUSCEPTIBLE or t != state.pred_inf_time[u]:
            return False
        self._activate(state, u, t)
        return True

    def _handle_recover(self, state: RunState, event: Event) -> bool:
        u, t = event.node, event.time
        if state.status[u] != ACTIVE or t != state.rec_time[u]:
            return False
        self._recover(state, u, t)
        return True

    def _activate(self, state: RunState, u: int, t: float) -> None:
        """S -> active transition, recovery draw and onward scheduling."""
        if state.status[u] != SUSCEPTIBLE:
            raise InconsistentState(
                "activation of a non-susceptible node",
                node=int(u),
                expected=self.STATUS(SUSCEPTIBLE).name,
                actual=self.STATUS(int(state.status[u])).name,
                time=t,
            )
        state.counts[0] -= 1
        state.counts[1] += 1
        state.result.record(t, state.counts)

        state.status[u] = ACTIVE
        state.result.mark_infected(u, t)

        t_rec = t + exponential(state.rng, self.params.gamma)
        state.rec_time[u] = t_rec
        if t_rec < self.params.horizon:
            state.queue.schedule(t_rec, u, EventKind.RECOVER)

        indices = self.graph.indices
        for e in range(self.graph.indptr[u], self.graph.indptr[u + 1]):
            self._find_transmit(state, t, u, indices[e], e)

    def _transmission_rate(self, u: int, v: int) -> float:
        return self.params.lam * self._src_factor[u] * self._dst_factor[v]

    def _find_transmit(self, state: RunState, t: float, u: int, v: int, arc: int) -> None:
        """Draw a candidate transmission u -> v and keep it if it is the earliest."""
        if state.status[v] != SUSCEPTIBLE:
            return
        rate = self._transmission_rate(u, v)
        if rate == 0.0:
            return
        t_inf = t + exponential(state.rng, rate)
        bound = min(state.rec_time[u], state.pred_inf_time[v], self.params.horizon)
        if t_inf < bound:
            state.pred_inf_time[v] = t_inf
            state.queue.schedule(t_inf, v, EventKind.TRANSMIT)

    def _recover(self, state: RunState, u: int, t: float) -> None:
        if state.status[u] != ACTIVE:
            raise InconsistentState(
                "recovery of a non-active node",
                node=int(u),
                expected=self.STATUS(ACTIVE).name,
                actual=self.STATUS(int(state.status[u])).name,
                time=t,
            )
        state.counts[1] -= 1
        state.counts[2] += 1
        state.result.record(t, state.counts)

        state.status[u] = REMOVED
        state.result.mark_recovered(u, t)


def simulate_sir(
    graph: ContactGraph,
    lam: float,
    gamma: float,
    horizon: float,
    alpha: float = 0.0,
    beta: float = 0.0,
    initial_infected: Iterable[int] = (),
    seed: int = 0,
) -> SimulationResult:
    """Construct a :class:`FastSIRSimulator` and run it."""
    return FastSIRSimulator(
        graph, lam, gamma, horizon, alpha, beta, initial_infected, seed
    ).run()
