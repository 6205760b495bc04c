"""Metrics collection and aggregation across repeated runs."""

import numpy as np
from typing import List, Dict


class MetricsCollector:
    """Collects per-run metrics (see ``SimulationResult.to_metrics``) and aggregates them."""

    def __init__(self, N_total: int, epidemic_threshold: float = 0.1):
        """
        Initialize metrics collector.

        Args:
            N_total: Population size of every run
            epidemic_threshold: Attack rate at or above which a run counts as an epidemic
        """
        self.N_total = N_total
        self.epidemic_threshold = epidemic_threshold
        self.runs: List[Dict] = []

    def add_run(self, metrics: dict) -> None:
        """Add metrics from a single run."""
        self.runs.append(metrics)

    def compute_aggregate_metrics(self) -> dict:
        """
        Compute aggregate metrics across all runs.

        Returns:
            Dictionary of aggregate metrics (empty if no run was added)
        """
        if not self.runs:
            return {}

        final_sizes = np.array([r.get("final_size", 0) for r in self.runs], dtype=np.float64)
        attack_rates = np.array(
            [self.compute_attack_rate(int(s), self.N_total) for s in final_sizes]
        )
        peaks = np.array([r.get("peak_active", 0) for r in self.runs], dtype=np.float64)
        durations = np.array([r.get("duration", 0.0) for r in self.runs], dtype=np.float64)

        return {
            "num_runs": len(self.runs),
            "mean_final_size": float(np.mean(final_sizes)),
            "std_final_size": float(np.std(final_sizes)),
            "median_final_size": float(np.median(final_sizes)),
            "mean_attack_rate": float(np.mean(attack_rates)),
            "epidemic_probability": float(np.mean(attack_rates >= self.epidemic_threshold)),
            "mean_peak_active": float(np.mean(peaks)),
            "max_peak_active": int(np.max(peaks)),
            "mean_duration": float(np.mean(durations)),
        }

    @staticmethod
    def compute_attack_rate(final_size: int, N_total: int) -> float:
        """Compute attack rate (fraction of population ever infected)."""
        return final_size / N_total if N_total > 0 else 0.0
