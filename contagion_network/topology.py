"""Random contact graph generators (Erdős–Rényi and power-law configuration model)."""

import math
from typing import Optional

import networkx as nx
import numpy as np
from loguru import logger

from contagion_network.errors import InvalidConfiguration
from contagion_network.graph import ContactGraph
from contagion_network.rng import make_rng


def erdos_renyi_from_p(n: int, p: float, seed: Optional[int] = None) -> ContactGraph:
    """
    Generate a G(n, p) graph.

    Args:
        n: Number of nodes (>= 1)
        p: Edge probability in [0, 1]
        seed: Random seed

    Returns:
        ContactGraph
    """
    if n <= 0:
        raise InvalidConfiguration(f"n must be a positive integer, got {n}")
    if not 0.0 <= p <= 1.0:
        raise InvalidConfiguration(f"p must be in [0, 1], got {p}")

    G = nx.fast_gnp_random_graph(n, p, seed=seed)
    graph = ContactGraph.from_networkx(G)
    logger.debug(f"Generated G(n={n}, p={p:.6g}): {graph.num_edges} edges")
    return graph


def erdos_renyi_from_mean_degree(
    n: int, mean_degree: float, seed: Optional[int] = None
) -> ContactGraph:
    """
    Generate an ER graph with exactly ``floor(n * mean_degree) // 2`` edges.

    Node pairs are drawn uniformly; self-loops and repeated pairs are
    rejected. Edges keep their sampling order.

    Args:
        n: Number of nodes (>= 1)
        mean_degree: Target mean degree
        seed: Random seed

    Returns:
        ContactGraph
    """
    if n <= 0:
        raise InvalidConfiguration(f"n must be a positive integer, got {n}")
    if mean_degree < 0:
        raise InvalidConfiguration(f"mean_degree must be non-negative, got {mean_degree}")
    m = int(math.floor(n * mean_degree)) // 2
    if m > n * (n - 1) // 2:
        raise InvalidConfiguration(
            f"mean_degree={mean_degree} needs {m} edges, more than a simple graph on {n} nodes holds"
        )

    rng = make_rng(seed if seed is not None else 0)
    chosen = set()
    sources, targets = [], []
    while len(sources) < m:
        batch = max(1024, 2 * (m - len(sources)))
        us = rng.integers(n, size=batch).tolist()
        vs = rng.integers(n, size=batch).tolist()
        for u, v in zip(us, vs):
            if u == v:
                continue
            key = (u, v) if u < v else (v, u)
            if key in chosen:
                continue
            chosen.add(key)
            sources.append(u)
            targets.append(v)
            if len(sources) == m:
                break

    logger.info(f"Generated ER graph: N={n}, edges={m}, avg_degree={2 * m / n:.2f}")
    return ContactGraph.build(n, sources, targets)


def powerlaw_degree_sequence(
    n: int, exponent: float, rng: np.random.Generator
) -> np.ndarray:
    """Sample degrees from p(k) ∝ k^-exponent on k = 1..n-1 with an even sum."""
    k_max = max(1, n - 1)
    ks = np.arange(1, k_max + 1)
    pk = ks.astype(np.float64) ** -exponent
    pk /= pk.sum()
    deg = rng.choice(ks, size=n, p=pk)

    if deg.sum() % 2 == 1:
        # bump one node up (or down) so the stubs can pair
        up = np.flatnonzero(deg < k_max)
        down = np.flatnonzero(deg > 1)
        if up.size:
            deg[up[0]] += 1
        elif down.size:
            deg[down[0]] -= 1
        else:
            raise InvalidConfiguration(f"cannot make degree sum even for n={n}")
    return deg


def powerlaw_configuration(
    n: int, exponent: float, seed: Optional[int] = None
) -> ContactGraph:
    """
    Generate a simple graph with a power-law degree sequence.

    The sequence is wired with the configuration model; self-loops and
    parallel edges are then erased, so realized degrees can fall slightly
    below the sampled ones.

    Args:
        n: Number of nodes (>= 1)
        exponent: Power-law exponent (> 0)
        seed: Random seed

    Returns:
        ContactGraph
    """
    if n <= 0:
        raise InvalidConfiguration(f"n must be a positive integer, got {n}")
    if exponent <= 0.0:
        raise InvalidConfiguration(f"exponent must be positive, got {exponent}")

    rng = make_rng(seed if seed is not None else 0)
    deg = powerlaw_degree_sequence(n, exponent, rng)

    M = nx.configuration_model(deg.tolist(), seed=int(rng.integers(2**32)))
    G = nx.Graph(M)
    G.remove_edges_from(list(nx.selfloop_edges(G)))

    graph = ContactGraph.from_networkx(G)
    logger.info(
        f"Generated power-law configuration graph: N={n}, exponent={exponent}, "
        f"edges={graph.num_edges} (stubs={int(deg.sum())})"
    )
    return graph
