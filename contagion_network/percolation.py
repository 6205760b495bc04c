"""k-core percolation: random site removal followed by k-core pruning."""

from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
from numba import njit
from loguru import logger

from contagion_network.errors import InvalidConfiguration
from contagion_network.graph import ContactGraph
from contagion_network.rng import derive_seeds, make_rng
from contagion_network.topology import erdos_renyi_from_p


@njit
def _kcore_prune(
    indptr: np.ndarray, indices: np.ndarray, alive: np.ndarray, k: int
) -> int:
    """Size of the k-core of the subgraph induced by ``alive`` (Numba-optimized).

    Args:
        indptr: CSR arc offsets
        indices: CSR neighbor ids
        alive: Nodes present before pruning
        k: Minimum degree inside the core

    Returns:
        Number of nodes left after pruning
    """
    n = alive.shape[0]
    deg = np.zeros(n, dtype=np.int64)
    inside = alive.copy()
    queued = np.zeros(n, dtype=np.bool_)
    stack = np.empty(n, dtype=np.int64)
    top = 0

    for u in range(n):
        if not alive[u]:
            continue
        d = 0
        for e in range(indptr[u], indptr[u + 1]):
            if alive[indices[e]]:
                d += 1
        deg[u] = d
        if d < k:
            stack[top] = u
            top += 1
            queued[u] = True

    while top > 0:
        top -= 1
        u = stack[top]
        inside[u] = False
        for e in range(indptr[u], indptr[u + 1]):
            v = indices[e]
            if not inside[v] or queued[v]:
                continue
            deg[v] -= 1
            if deg[v] < k:
                stack[top] = v
                top += 1
                queued[v] = True

    left = 0
    for u in range(n):
        if inside[u]:
            left += 1
    return left


def kcore_size(graph: ContactGraph, alive: np.ndarray, k: int) -> int:
    """
    Size of the k-core restricted to the ``alive`` nodes.

    Args:
        graph: Contact graph
        alive: Boolean mask of nodes that survived site removal
        k: Minimum degree inside the core; ``k <= 0`` keeps every alive node

    Returns:
        Number of nodes in the k-core
    """
    alive = np.asarray(alive, dtype=np.bool_)
    if alive.shape != (graph.n,):
        raise InvalidConfiguration(f"alive mask must have length {graph.n}, got shape {alive.shape}")
    if k <= 0:
        return int(alive.sum())
    return int(_kcore_prune(graph.indptr, graph.indices, alive, int(k)))


def site_percolation_kcore(
    graph: ContactGraph, k: int, occupancy: float, rng: np.random.Generator
) -> int:
    """Keep each node with probability ``occupancy``, then return the k-core size."""
    alive = rng.random(graph.n) < occupancy
    return kcore_size(graph, alive, k)


def run_many_er(
    n: int,
    mean_degree: float,
    k: int,
    occupancy: float,
    trials: int,
    seed: int,
) -> dict:
    """
    Average the k-core size over independent ER realizations.

    Each trial draws a fresh G(n, mean_degree / (n - 1)) and occupation mask
    from its own seed sub-stream.

    Returns:
        Dict with mean/std of the k-core fraction and size
    """
    if trials < 1:
        raise InvalidConfiguration(f"trials must be >= 1, got {trials}")
    p = min(1.0, max(0.0, mean_degree / max(1, n - 1)))
    seeds = derive_seeds(seed, 2 * trials)

    sizes = np.empty(trials, dtype=np.float64)
    for t in range(trials):
        graph = erdos_renyi_from_p(n, p, seed=seeds[2 * t])
        sizes[t] = site_percolation_kcore(graph, k, occupancy, make_rng(seeds[2 * t + 1]))

    fracs = sizes / n
    ddof = 1 if trials > 1 else 0
    return {
        "mean_frac": float(fracs.mean()),
        "std_frac": float(fracs.std(ddof=ddof)),
        "mean_size": float(sizes.mean()),
        "std_size": float(sizes.std(ddof=ddof)),
    }


def sweep_er(
    n: int,
    mean_degree: float,
    k: int,
    p_min: float,
    p_max: float,
    steps: int,
    trials: int,
    seed: int,
    out_csv: Optional[Path | str] = None,
) -> pd.DataFrame:
    """
    Sweep the occupancy probability over ``steps`` evenly spaced values.

    Args:
        n: Number of nodes
        mean_degree: Mean degree of the ER graphs
        k: Core order
        p_min: First occupancy
        p_max: Last occupancy
        steps: Number of occupancies (inclusive of both ends)
        trials: Realizations per occupancy
        seed: Base seed; step i uses ``seed + 1337 * i``
        out_csv: Optional CSV destination

    Returns:
        DataFrame with columns p, frac_kcore, frac_std, size_mean, size_std
    """
    occupancies = np.linspace(p_min, p_max, steps) if steps > 1 else np.array([p_min])
    rows = []
    for i, p in enumerate(occupancies):
        stats = run_many_er(n, mean_degree, k, float(p), trials, seed + 1337 * i)
        rows.append(
            {
                "p": float(p),
                "frac_kcore": stats["mean_frac"],
                "frac_std": stats["std_frac"],
                "size_mean": stats["mean_size"],
                "size_std": stats["std_size"],
            }
        )
        logger.info(f"p={p:.4f} -> k-core frac={stats['mean_frac']:.4f} ± {stats['std_frac']:.4f}")

    frame = pd.DataFrame(rows, columns=["p", "frac_kcore", "frac_std", "size_mean", "size_std"])
    if out_csv is not None:
        out_csv = Path(out_csv)
        out_csv.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(out_csv, index=False, float_format="%.8f")
    return frame
