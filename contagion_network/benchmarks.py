"""Performance benchmarking utilities for graph construction and the SIR engine."""

import os
import time
from typing import Dict, Optional

import psutil
from loguru import logger

from contagion_network.graph import ContactGraph
from contagion_network.rng import make_rng, sample_unique
from contagion_network.simulate_sir import FastSIRSimulator
from contagion_network.topology import erdos_renyi_from_mean_degree


class PerformanceBenchmark:
    """Benchmark wall time and memory of simulations."""

    def __init__(self):
        """Initialize benchmark."""
        self.results: Dict[str, Dict] = {}
        self.graph: Optional[ContactGraph] = None
        self.process = psutil.Process(os.getpid())

    def get_memory_usage(self) -> float:
        """Get current memory usage in MB."""
        return self.process.memory_info().rss / 1024 / 1024

    def benchmark_graph_generation(
        self, n: int, mean_degree: float, seed: int = 42
    ) -> Dict:
        """
        Benchmark ER graph generation and CSR construction.

        The generated graph is kept on ``self.graph`` for later runs.

        Args:
            n: Number of nodes
            mean_degree: Mean degree
            seed: Random seed

        Returns:
            Benchmark results
        """
        logger.info(f"Benchmarking graph generation: N={n}, avg_degree={mean_degree}")

        mem_before = self.get_memory_usage()
        start_time = time.perf_counter()
        graph = erdos_renyi_from_mean_degree(n, mean_degree, seed)
        elapsed = time.perf_counter() - start_time
        mem_used = self.get_memory_usage() - mem_before

        result = {
            "N": n,
            "avg_degree": mean_degree,
            "time_seconds": elapsed,
            "memory_mb": mem_used,
            "edges": graph.num_edges,
        }
        logger.info(f"Graph generation: {elapsed:.2f}s, {mem_used:.1f}MB, {graph.num_edges} edges")
        self.results["graph_generation"] = result
        self.graph = graph
        return result

    def benchmark_sir(
        self,
        graph: ContactGraph,
        lam: float,
        gamma: float = 1.0,
        horizon: float = 200.0,
        initial_count: int = 1,
        seed: int = 12345,
        alpha: float = 0.0,
        beta: float = 0.0,
    ) -> Dict:
        """
        Benchmark one SIR run on ``graph``.

        Returns:
            Benchmark results including transitions per second
        """
        logger.info(f"Benchmarking SIR: {graph}, lam={lam}, gamma={gamma}")
        initial = sample_unique(make_rng(seed), graph.n, initial_count)

        mem_before = self.get_memory_usage()
        start_time = time.perf_counter()
        result = FastSIRSimulator(
            graph, lam, gamma, horizon, alpha, beta, initial, seed
        ).run()
        elapsed = time.perf_counter() - start_time
        mem_used = self.get_memory_usage() - mem_before

        transitions = len(result) - 1
        bench = {
            "N": graph.n,
            "lam": lam,
            "gamma": gamma,
            "time_seconds": elapsed,
            "memory_mb": mem_used,
            "transitions": transitions,
            "transitions_per_second": transitions / elapsed if elapsed > 0 else float("inf"),
            "final_size": result.to_metrics()["final_size"],
        }
        logger.info(
            f"SIR run: {elapsed:.3f}s, {transitions} transitions "
            f"({bench['transitions_per_second']:.0f}/s)"
        )
        self.results["sir"] = bench
        return bench

    def run(
        self, n: int, mean_degree: float, lam: float, gamma: float = 1.0, seed: Optional[int] = None
    ) -> Dict[str, Dict]:
        """Benchmark graph generation followed by one SIR run on that graph."""
        seed = 42 if seed is None else seed
        self.benchmark_graph_generation(n, mean_degree, seed)
        self.benchmark_sir(self.graph, lam, gamma, seed=seed)
        return self.results
