"""Seeded random streams and the exponential waiting-time draw.

Every run owns one ``numpy.random.Generator``. Independent runs (batches,
trials, parameter points) get seeds spawned from a master ``SeedSequence``
so that concurrently executing runs never share a stream.
"""

import math
from typing import List

import numpy as np

from contagion_network.errors import InvalidConfiguration


def make_rng(seed: int) -> np.random.Generator:
    """Create the private generator of one run from a 64-bit seed."""
    return np.random.Generator(np.random.PCG64(int(seed) & 0xFFFFFFFFFFFFFFFF))


def derive_seeds(master_seed: int, count: int) -> List[int]:
    """Spawn ``count`` independent 64-bit seeds from ``master_seed``."""
    children = np.random.SeedSequence(int(master_seed) & 0xFFFFFFFFFFFFFFFF).spawn(count)
    return [int(child.generate_state(1, dtype=np.uint64)[0]) for child in children]


def exponential(rng: np.random.Generator, rate: float) -> float:
    """Draw an Exp(rate) waiting time.

    A non-positive rate never fires and consumes no randomness. Otherwise
    one uniform draw in [0, 1) is complemented to (0, 1] so the logarithm
    never sees zero.
    """
    if rate <= 0.0:
        return math.inf
    u = 1.0 - rng.random()
    return -math.log(u) / rate


def sample_unique(rng: np.random.Generator, n: int, k: int) -> List[int]:
    """Draw ``k`` distinct node ids out of ``n`` by rejection, in draw order."""
    if k > n:
        raise InvalidConfiguration(f"cannot sample {k} distinct nodes out of {n}")
    used = set()
    nodes = []
    while len(nodes) < k:
        u = int(rng.integers(n))
        if u not in used:
            used.add(u)
            nodes.append(u)
    return nodes
