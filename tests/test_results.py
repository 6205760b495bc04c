"""Tests for result recording, metrics and CSV output."""

import pytest
import numpy as np
import pandas as pd

from contagion_network.errors import InconsistentState
from contagion_network.metrics import MetricsCollector
from contagion_network.paths import resolve_indexed
from contagion_network.results import SARResult, SIRResult


def small_result():
    result = SIRResult(3)
    result.record(0.0, [3, 0, 0])
    result.record(0.0, [2, 1, 0])
    result.mark_infected(0, 0.0)
    result.record(0.5, [1, 2, 0])
    result.mark_infected(2, 0.5)
    result.record(1.25, [1, 1, 1])
    result.mark_recovered(0, 1.25)
    return result.freeze()


class TestSimulationResult:
    """Test the result accumulator."""

    def test_counts_and_times(self):
        """Test access to the recorded series."""
        result = small_result()

        assert len(result) == 4
        assert result.times == [0.0, 0.0, 0.5, 1.25]
        assert result.counts("I").tolist() == [0, 1, 2, 1]
        assert result.final_counts() == {"S": 1, "I": 1, "R": 1}
        assert result.infection_time(1) is None
        assert result.recovery_time(0) == 1.25

    def test_time_cannot_go_backwards(self):
        """A sample earlier than the last one is rejected."""
        result = SIRResult(2)
        result.record(1.0, [1, 1, 0])
        with pytest.raises(InconsistentState):
            result.record(0.5, [0, 2, 0])

    def test_metrics(self):
        """Test per-run summary metrics."""
        metrics = small_result().to_metrics()

        assert metrics["final_size"] == 2
        assert metrics["attack_rate"] == pytest.approx(2 / 3)
        assert metrics["peak_active"] == 2
        assert metrics["peak_time"] == 0.5
        assert metrics["duration"] == 1.25
        assert metrics["num_samples"] == 4

    def test_sar_compartments(self):
        """SAR results name the active compartment A."""
        result = SARResult(2)
        result.record(0.0, [2, 0, 0])

        assert result.active_compartment == "A"
        assert list(result.time_series_frame().columns) == ["time", "S", "A", "R"]


class TestCSVOutput:
    """Test CSV layouts and file naming."""

    def test_time_series_layout(self, tmp_path):
        """Plain layout is time,S,I,R."""
        path = small_result().write_time_series_csv(tmp_path / "ts.csv")
        frame = pd.read_csv(path)

        assert list(frame.columns) == ["time", "S", "I", "R"]
        assert len(frame) == 4
        assert frame["time"].iloc[-1] == pytest.approx(1.25)

    def test_time_series_with_iteration(self, tmp_path):
        """The iteration index is appended as a column."""
        path = small_result().write_time_series_csv(tmp_path / "ts.csv", itr=3)
        frame = pd.read_csv(path)

        assert list(frame.columns) == ["time", "S", "I", "R", "itr"]
        assert (frame["itr"] == 3).all()

    def test_parameterised_layout(self, tmp_path):
        """Sweep rows start with the iteration and parameters."""
        params = {"alpha": -1.0, "beta": 0.0, "lambda": 0.25}
        path = small_result().write_time_series_csv(tmp_path / "ts.csv", itr=2, params=params)
        frame = pd.read_csv(path)

        assert list(frame.columns) == ["itr", "alpha", "beta", "lambda", "time", "I", "R"]
        assert (frame["lambda"] == 0.25).all()
        assert len(frame) == 4

    def test_final_state(self, tmp_path):
        """Only the last sample is written."""
        params = {"alpha": 0.0, "beta": 0.0, "lambda": 1.0}
        path = small_result().write_final_state_csv(tmp_path / "final.csv", 0, params)
        frame = pd.read_csv(path)

        assert len(frame) == 1
        assert frame["I"].iloc[0] == 1
        assert frame["R"].iloc[0] == 1

    def test_append_writes_header_once(self, tmp_path):
        """Appending to a file keeps a single header."""
        path = tmp_path / "runs.csv"
        result = small_result()
        result.write_time_series_csv(path, itr=0, append=True)
        result.write_time_series_csv(path, itr=1, append=True)
        frame = pd.read_csv(path)

        assert len(frame) == 8
        assert sorted(frame["itr"].unique()) == [0, 1]

    def test_no_clobber(self, tmp_path):
        """A fresh write next to an existing file gets an indexed name."""
        result = small_result()
        first = result.write_time_series_csv(tmp_path / "ts.csv")
        second = result.write_time_series_csv(tmp_path / "ts.csv")
        third = result.write_time_series_csv(tmp_path / "ts.csv")

        assert first.name == "ts.csv"
        assert second.name == "ts (1).csv"
        assert third.name == "ts (2).csv"

    def test_resolve_indexed(self, tmp_path):
        """Free paths are returned unchanged."""
        path = tmp_path / "out.csv"
        assert resolve_indexed(path) == path
        path.write_text("x")
        assert resolve_indexed(path) == tmp_path / "out (1).csv"

    def test_node_times(self, tmp_path):
        """Missing transitions are blank cells."""
        path = small_result().write_node_times_csv(tmp_path / "nodes.csv", itr=0)
        frame = pd.read_csv(path)

        assert list(frame.columns) == ["node", "itr", "infected_at", "recovered_at"]
        assert np.isnan(frame["infected_at"].iloc[1])
        assert frame["recovered_at"].iloc[0] == pytest.approx(1.25)
        assert "nan" not in path.read_text()


class TestMetricsCollector:
    """Test aggregation over runs."""

    def test_aggregate(self):
        """Test aggregate metrics."""
        collector = MetricsCollector(N_total=100, epidemic_threshold=0.1)
        collector.add_run({"final_size": 1, "peak_active": 1, "duration": 2.0})
        collector.add_run({"final_size": 50, "peak_active": 20, "duration": 10.0})

        agg = collector.compute_aggregate_metrics()
        assert agg["num_runs"] == 2
        assert agg["mean_final_size"] == pytest.approx(25.5)
        assert agg["epidemic_probability"] == pytest.approx(0.5)
        assert agg["max_peak_active"] == 20
        assert agg["mean_duration"] == pytest.approx(6.0)

    def test_empty(self):
        """No runs give no metrics."""
        assert MetricsCollector(N_total=10).compute_aggregate_metrics() == {}
