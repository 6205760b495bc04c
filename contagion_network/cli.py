"""Command-line interface using Typer."""

import json
from pathlib import Path
from typing import Optional

import typer
from loguru import logger

from contagion_network.benchmarks import PerformanceBenchmark
from contagion_network.config import (
    SARParameters,
    SIRParameters,
    SweepConfig,
    VaccinationParameters,
)
from contagion_network.graph import ContactGraph
from contagion_network.metrics import MetricsCollector
from contagion_network.percolation import sweep_er
from contagion_network.rng import derive_seeds, make_rng, sample_unique
from contagion_network.simulate_sar import FastSARSimulator
from contagion_network.simulate_sir import FastSIRSimulator
from contagion_network.simulate_vaccination import VaccinationSIRSimulator
from contagion_network.sweep import run_sweep, summarize_sweep
from contagion_network.topology import erdos_renyi_from_mean_degree, powerlaw_configuration

app = typer.Typer(help="Epidemic spreading on contact networks")


def _build_graph(graph: str, n: int, avg_degree: float, exponent: float, seed: int) -> ContactGraph:
    if graph == "er":
        return erdos_renyi_from_mean_degree(n, avg_degree, seed)
    if graph == "powerlaw":
        return powerlaw_configuration(n, exponent, seed)
    raise typer.BadParameter(f"Unknown graph: {graph}")


def _write_json(data: dict, path: Path) -> None:
    with open(path, "w") as f:
        json.dump(data, f, indent=2, default=str)


def _run_event_driven(
    make_simulator,
    graph: ContactGraph,
    initial_count: int,
    runs: int,
    seed: int,
    output_path: Path,
) -> None:
    """Repeat an event-driven simulation and write series, node times and metrics."""
    collector = MetricsCollector(graph.n)
    series_path = None
    nodes_path = None
    for itr, run_seed in enumerate(derive_seeds(seed, runs)):
        init_seed, sim_seed = derive_seeds(run_seed, 2)
        initial = sample_unique(make_rng(init_seed), graph.n, initial_count)
        result = make_simulator(initial, sim_seed).run()

        series_path = result.write_time_series_csv(
            series_path or output_path / "timeseries.csv", itr=itr, append=series_path is not None
        )
        nodes_path = result.write_node_times_csv(
            nodes_path or output_path / "node_times.csv", itr=itr, append=nodes_path is not None
        )
        metrics = result.to_metrics()
        collector.add_run(metrics)
        logger.info(f"Run {itr + 1}/{runs}: final={result.final_counts()}")

    if runs == 1:
        _write_json(metrics, output_path / "metrics.json")
    aggregate = collector.compute_aggregate_metrics()
    _write_json(aggregate, output_path / "aggregate_metrics.json")
    logger.info(f"Aggregate metrics: {aggregate}")


@app.command()
def sir(
    graph: str = typer.Option("er", help="Graph model: 'er' or 'powerlaw'"),
    n: int = typer.Option(10_000, help="Number of nodes"),
    avg_degree: float = typer.Option(10.0, help="Mean degree (er)"),
    exponent: float = typer.Option(2.5, help="Degree exponent (powerlaw)"),
    graph_seed: int = typer.Option(42, help="Graph seed"),
    lam: float = typer.Option(0.3, help="Transmission rate"),
    gamma: float = typer.Option(1.0, help="Recovery rate"),
    horizon: float = typer.Option(200.0, help="Simulation horizon"),
    alpha: float = typer.Option(0.0, help="Source degree exponent"),
    beta: float = typer.Option(0.0, help="Target degree exponent"),
    initial_count: int = typer.Option(1, help="Initially infected nodes"),
    runs: int = typer.Option(1, help="Number of runs"),
    seed: int = typer.Option(12345, help="Master random seed"),
    output_dir: str = typer.Option("out/sir", help="Output directory"),
) -> None:
    """Run the event-driven SIR simulation."""
    params = SIRParameters(lam=lam, gamma=gamma, horizon=horizon, alpha=alpha, beta=beta, seed=seed)
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    _write_json({"graph": graph, "N": n, "runs": runs, **params.model_dump()}, output_path / "config.json")

    g = _build_graph(graph, n, avg_degree, exponent, graph_seed)
    _run_event_driven(
        lambda initial, sim_seed: FastSIRSimulator(
            g, lam, gamma, horizon, alpha, beta, initial, sim_seed
        ),
        g,
        initial_count,
        runs,
        seed,
        output_path,
    )


@app.command()
def sar(
    graph: str = typer.Option("er", help="Graph model: 'er' or 'powerlaw'"),
    n: int = typer.Option(10_000, help="Number of nodes"),
    avg_degree: float = typer.Option(10.0, help="Mean degree (er)"),
    exponent: float = typer.Option(2.5, help="Degree exponent (powerlaw)"),
    graph_seed: int = typer.Option(42, help="Graph seed"),
    lam: float = typer.Option(0.5, help="Transmission rate"),
    gamma: float = typer.Option(1.0, help="Recovery rate"),
    horizon: float = typer.Option(200.0, help="Simulation horizon"),
    threshold: int = typer.Option(2, help="Exposures needed to activate (all nodes)"),
    alpha: float = typer.Option(0.0, help="Source degree exponent"),
    beta: float = typer.Option(0.0, help="Target degree exponent"),
    initial_count: int = typer.Option(10, help="Initially active nodes"),
    runs: int = typer.Option(1, help="Number of runs"),
    seed: int = typer.Option(12345, help="Master random seed"),
    output_dir: str = typer.Option("out/sar", help="Output directory"),
) -> None:
    """Run the event-driven threshold (SAR) simulation."""
    params = SARParameters(lam=lam, gamma=gamma, horizon=horizon, alpha=alpha, beta=beta, seed=seed)
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    _write_json(
        {"graph": graph, "N": n, "runs": runs, "threshold": threshold, **params.model_dump()},
        output_path / "config.json",
    )

    g = _build_graph(graph, n, avg_degree, exponent, graph_seed)
    thresholds = [threshold] * g.n
    _run_event_driven(
        lambda initial, sim_seed: FastSARSimulator(
            g, lam, gamma, horizon, thresholds, alpha, beta, initial, sim_seed
        ),
        g,
        initial_count,
        runs,
        seed,
        output_path,
    )


@app.command()
def vaccination(
    n: int = typer.Option(10_000, help="Number of nodes"),
    avg_degree: float = typer.Option(10.0, help="Mean degree"),
    graph_seed: int = typer.Option(42, help="Graph seed"),
    omega: float = typer.Option(0.45, help="Vaccination probability"),
    beta: float = typer.Option(0.168, help="Infection probability"),
    gamma: int = typer.Option(3, help="Infectious period (steps)"),
    t_max: int = typer.Option(120, help="Number of steps"),
    vac_max: float = typer.Option(0.5, help="Maximum vaccinated fraction"),
    radius: int = typer.Option(1, help="Vaccination reach: 1 or 2"),
    initial_count: int = typer.Option(1, help="Initially infected nodes"),
    runs: int = typer.Option(40, help="Number of runs"),
    seed: int = typer.Option(12345, help="Master random seed"),
    output_dir: str = typer.Option("out/vacsir", help="Output directory"),
) -> None:
    """Run the discrete-time vaccination SIR simulation."""
    params = VaccinationParameters(
        omega=omega, beta=beta, gamma=gamma, t_max=t_max, vac_max=vac_max, radius=radius, seed=seed
    )
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    _write_json({"N": n, "runs": runs, **params.model_dump()}, output_path / "config.json")

    g = erdos_renyi_from_mean_degree(n, avg_degree, graph_seed)
    series_path = None
    for itr, run_seed in enumerate(derive_seeds(seed, runs)):
        init_seed, sim_seed = derive_seeds(run_seed, 2)
        initial = sample_unique(make_rng(init_seed), g.n, initial_count)
        result = VaccinationSIRSimulator(
            g, omega, beta, gamma, t_max, vac_max, radius, initial, sim_seed
        ).run()
        series_path = result.write_time_series_csv(
            series_path or output_path / "timeseries.csv", itr=itr, append=series_path is not None
        )
        logger.info(f"itr {itr + 1}/{runs}: final={result.final_counts()}")


@app.command()
def sweep(
    config_path: Optional[str] = typer.Option(None, "--config", help="Sweep config JSON"),
    toy: bool = typer.Option(False, help="Use the small smoke-test sweep"),
    workers: Optional[int] = typer.Option(None, help="Worker processes"),
    output_dir: Optional[str] = typer.Option(None, help="Output directory"),
) -> None:
    """Run a batched lambda/alpha sweep of the SIR engine."""
    if config_path is not None:
        config = SweepConfig.load(config_path)
    elif toy:
        config = SweepConfig.toy()
    else:
        config = SweepConfig.default_fastsir()

    updates = {}
    if workers is not None:
        updates["workers"] = workers
    if output_dir is not None:
        updates["output_dir"] = output_dir
    if updates:
        config = SweepConfig(**{**config.model_dump(), **updates})

    paths = run_sweep(config)
    summary = summarize_sweep(paths, config.n)
    summary_path = Path(config.output_dir) / str(config.n) / "summary.csv"
    summary.to_csv(summary_path, index=False, float_format="%.9f")
    logger.info(f"Wrote {len(paths)} batch files and summary to {summary_path}")


@app.command()
def kcore(
    n: int = typer.Option(10_000, help="Number of nodes"),
    avg_degree: float = typer.Option(10.0, help="Mean degree"),
    k: int = typer.Option(3, help="Core order"),
    p_min: float = typer.Option(0.0, help="Smallest occupancy"),
    p_max: float = typer.Option(1.0, help="Largest occupancy"),
    steps: int = typer.Option(21, help="Number of occupancies"),
    trials: int = typer.Option(10, help="Realizations per occupancy"),
    seed: int = typer.Option(42, help="Random seed"),
    output: str = typer.Option("out/kcore/kcore.csv", help="Output CSV"),
) -> None:
    """Sweep site occupancy and measure the k-core of ER graphs."""
    sweep_er(n, avg_degree, k, p_min, p_max, steps, trials, seed, output)
    logger.info(f"Wrote k-core sweep to {output}")


@app.command()
def benchmark(
    n: int = typer.Option(100_000, help="Number of nodes"),
    avg_degree: float = typer.Option(25.0, help="Mean degree"),
    lam: float = typer.Option(0.3, help="Transmission rate"),
    gamma: float = typer.Option(1.0, help="Recovery rate"),
    seed: int = typer.Option(42, help="Random seed"),
    output_dir: str = typer.Option("out/benchmark", help="Output directory"),
) -> None:
    """Time ER graph generation and one SIR run."""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    results = PerformanceBenchmark().run(n, avg_degree, lam, gamma, seed)
    _write_json(results, output_path / "benchmark.json")
    logger.info(f"Benchmark results saved to {output_path / 'benchmark.json'}")


if __name__ == "__main__":
    app()
