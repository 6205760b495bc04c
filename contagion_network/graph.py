"""Immutable contact graph stored as a compressed adjacency (CSR) structure."""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence, Tuple

import networkx as nx
import numpy as np
from numba import njit
from scipy import sparse
from loguru import logger

from contagion_network.errors import InvalidEdge


@njit
def _fill_arcs(
    n: int,
    sources: np.ndarray,
    targets: np.ndarray,
    indptr: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Lay out both arcs of every edge in edge-list order (Numba-optimized).

    Args:
        n: Number of nodes
        sources: First endpoint of each undirected edge
        targets: Second endpoint of each undirected edge
        indptr: Arc range offsets, length n + 1

    Returns:
        Tuple of (indices, rev, src) arrays of length 2m
    """
    m2 = indptr[n]
    indices = np.empty(m2, dtype=np.int64)
    rev = np.empty(m2, dtype=np.int64)
    src = np.empty(m2, dtype=np.int64)
    cur = indptr[:n].copy()

    for i in range(sources.shape[0]):
        u = sources[i]
        v = targets[i]
        e_uv = cur[u]
        cur[u] += 1
        e_vu = cur[v]
        cur[v] += 1
        indices[e_uv] = v
        src[e_uv] = u
        indices[e_vu] = u
        src[e_vu] = v
        rev[e_uv] = e_vu
        rev[e_vu] = e_uv

    return indices, rev, src


def _as_endpoint_array(values: Sequence[int], name: str) -> np.ndarray:
    arr = np.asarray(values)
    if arr.ndim != 1:
        raise InvalidEdge(f"{name} must be one-dimensional, got shape {arr.shape}")
    if arr.size == 0:
        return arr.astype(np.int64)
    if not np.issubdtype(arr.dtype, np.integer):
        raise InvalidEdge(f"{name} must hold integer node ids, got dtype {arr.dtype}")
    return np.ascontiguousarray(arr, dtype=np.int64)


def _read_only(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class ContactGraph:
    """Undirected simple graph on nodes ``0..n-1``.

    For node ``u`` the arcs ``indptr[u]:indptr[u + 1]`` hold its neighbors
    in ``indices``. ``rev[e]`` is the opposite arc of ``e`` and ``src[e]``
    its source node. All arrays are read-only, so one graph can be shared
    by any number of concurrent runs.
    """

    n: int
    indptr: np.ndarray
    indices: np.ndarray
    rev: np.ndarray
    src: np.ndarray

    @classmethod
    def build(
        cls, n: int, sources: Sequence[int], targets: Sequence[int]
    ) -> "ContactGraph":
        """
        Build a graph from an undirected edge list.

        Args:
            n: Number of nodes (0 gives an empty graph)
            sources: First endpoint of each edge
            targets: Second endpoint of each edge

        Returns:
            The immutable graph

        Raises:
            InvalidEdge: endpoint outside [0, n), self-loop, repeated edge
                or endpoint arrays of different length
        """
        n = int(n)
        if n < 0:
            raise InvalidEdge(f"node count must be non-negative, got {n}")
        s = _as_endpoint_array(sources, "sources")
        t = _as_endpoint_array(targets, "targets")
        if s.shape != t.shape:
            raise InvalidEdge(f"sources/targets length mismatch: {s.size} != {t.size}")

        if s.size:
            bad = (s < 0) | (s >= n) | (t < 0) | (t >= n)
            if bad.any():
                i = int(np.flatnonzero(bad)[0])
                raise InvalidEdge(f"invalid edge: {s[i]} {t[i]} (n={n})")
            loops = s == t
            if loops.any():
                i = int(np.flatnonzero(loops)[0])
                raise InvalidEdge(f"self-loop on node {s[i]}")
            keys = np.minimum(s, t) * n + np.maximum(s, t)
            uniq, counts = np.unique(keys, return_counts=True)
            if (counts > 1).any():
                key = int(uniq[counts > 1][0])
                raise InvalidEdge(f"repeated edge: {key // n} {key % n}")

        deg = np.bincount(np.concatenate([s, t]), minlength=n).astype(np.int64)
        indptr = np.zeros(n + 1, dtype=np.int64)
        np.cumsum(deg, out=indptr[1:])
        indices, rev, src = _fill_arcs(n, s, t, indptr)

        logger.debug(f"Built ContactGraph: n={n}, edges={s.size}")
        return cls(
            n=n,
            indptr=_read_only(indptr),
            indices=_read_only(indices),
            rev=_read_only(rev),
            src=_read_only(src),
        )

    @classmethod
    def empty(cls, n: int = 0) -> "ContactGraph":
        return cls.build(n, [], [])

    @classmethod
    def from_csr(cls, adj: sparse.spmatrix) -> "ContactGraph":
        """Build from a symmetric sparse adjacency matrix (upper triangle is read)."""
        if adj.shape[0] != adj.shape[1]:
            raise InvalidEdge(f"adjacency must be square, got shape {adj.shape}")
        adj = sparse.csr_matrix(adj)
        if adj.diagonal().any():
            node = int(np.flatnonzero(adj.diagonal())[0])
            raise InvalidEdge(f"self-loop on node {node}")
        upper = sparse.triu(adj, k=1).tocoo()
        mask = upper.data != 0
        rows, cols = upper.row[mask], upper.col[mask]
        order = np.lexsort((cols, rows))
        return cls.build(adj.shape[0], rows[order], cols[order])

    @classmethod
    def from_networkx(cls, G: nx.Graph) -> "ContactGraph":
        """Build from a networkx graph; nodes are relabelled 0..n-1 in G's order."""
        if G.is_directed():
            raise InvalidEdge("contact graphs are undirected")
        H = nx.convert_node_labels_to_integers(G)
        edges = np.array(list(H.edges()), dtype=np.int64).reshape(-1, 2)
        return cls.build(H.number_of_nodes(), edges[:, 0], edges[:, 1])

    @property
    def num_arcs(self) -> int:
        return int(self.indptr[self.n])

    @property
    def num_edges(self) -> int:
        return self.num_arcs // 2

    def degree(self, u: int) -> int:
        return int(self.indptr[u + 1] - self.indptr[u])

    def degrees(self) -> np.ndarray:
        """Degree of every node."""
        return np.diff(self.indptr)

    def first_arc(self, u: int) -> int:
        return int(self.indptr[u])

    def end_arc(self, u: int) -> int:
        return int(self.indptr[u + 1])

    def neighbors(self, u: int) -> np.ndarray:
        """Read-only view over the neighbors of ``u``; iterate it as often as needed."""
        return self.indices[self.indptr[u] : self.indptr[u + 1]]

    def edge_array(self) -> np.ndarray:
        """(m, 2) array with each undirected edge once, as ``u < v``."""
        mask = self.src < self.indices
        return np.column_stack([self.src[mask], self.indices[mask]])

    def edges(self) -> Iterator[Tuple[int, int]]:
        for u, v in self.edge_array():
            yield int(u), int(v)

    def to_csr(self) -> sparse.csr_matrix:
        """Symmetric 0/1 adjacency matrix."""
        data = np.ones(self.num_arcs, dtype=np.uint8)
        return sparse.csr_matrix(
            (data, self.indices.copy(), self.indptr.copy()), shape=(self.n, self.n)
        )

    def to_networkx(self) -> nx.Graph:
        G = nx.Graph()
        G.add_nodes_from(range(self.n))
        G.add_edges_from(self.edges())
        return G

    def write_edgelist(self, path: Path | str) -> None:
        """Write ``u v`` lines (u < v), readable by ``networkx.read_edgelist``."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savetxt(path, self.edge_array(), fmt="%d")

    def __repr__(self) -> str:
        return f"ContactGraph(n={self.n}, edges={self.num_edges})"
