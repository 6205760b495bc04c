"""Batched parameter sweeps of the event-driven SIR engine.

One job per batch: a batch owns one ER graph realization and runs every
(iteration, alpha, lambda) point on it. All runs of an iteration share the
same initial nodes and engine seed, so parameter points are compared on
common random numbers. Seeds come from independent ``SeedSequence``
children, so batches executing in parallel never share a stream.
"""

import multiprocessing as mp
from pathlib import Path
from typing import Iterable, List, Tuple

import pandas as pd
from loguru import logger

from contagion_network.config import SweepConfig
from contagion_network.paths import resolve_indexed
from contagion_network.rng import derive_seeds, make_rng, sample_unique
from contagion_network.simulate_sir import FastSIRSimulator
from contagion_network.topology import erdos_renyi_from_mean_degree


def _batch_output_path(config: SweepConfig, batch: int) -> Path:
    return Path(config.output_dir) / str(config.n) / f"results_{batch:02d}.csv"


def _run_batch(args: Tuple[dict, int]) -> Path:
    config_data, batch = args
    config = SweepConfig(**config_data)
    graph = erdos_renyi_from_mean_degree(config.n, config.mean_degree, config.graph_seed + batch)
    out_path = resolve_indexed(_batch_output_path(config, batch))
    lambdas = config.lambda_grid()

    batch_seed = derive_seeds(config.master_seed, config.batches)[batch]
    iteration_seeds = derive_seeds(batch_seed, config.iterations)

    logger.info(f"Batch {batch} started: {graph}, output={out_path}")
    for itr, iteration_seed in enumerate(iteration_seeds):
        init_seed, sim_seed = derive_seeds(iteration_seed, 2)
        initial = sample_unique(make_rng(init_seed), graph.n, config.initial_count)

        for alpha in config.alphas:
            for lam in lambdas:
                result = FastSIRSimulator(
                    graph,
                    lam=float(lam),
                    gamma=config.gamma,
                    horizon=config.horizon,
                    alpha=alpha,
                    beta=config.beta,
                    initial_infected=initial,
                    seed=sim_seed,
                ).run()
                params = {"alpha": alpha, "beta": config.beta, "lambda": float(lam)}
                if config.final_only:
                    result.write_final_state_csv(out_path, itr, params, append=True)
                else:
                    result.write_time_series_csv(out_path, itr, params, append=True)

        logger.info(f"Batch {batch}: iteration {itr + 1}/{config.iterations} done")

    return out_path


def run_sweep(config: SweepConfig) -> List[Path]:
    """
    Run every batch of the sweep and write one CSV per batch.

    Args:
        config: Sweep configuration

    Returns:
        Paths of the written batch files, ordered by batch
    """
    out_dir = Path(config.output_dir) / str(config.n)
    out_dir.mkdir(parents=True, exist_ok=True)
    config.save(resolve_indexed(out_dir / "config.json"))

    jobs = [(config.model_dump(), batch) for batch in range(config.batches)]
    logger.info(
        f"Total tasks: {config.total_tasks()} "
        f"({config.batches} batches, {config.workers} workers)"
    )

    paths = {}
    if config.workers > 1:
        with mp.Pool(config.workers) as pool:
            for i, path in enumerate(pool.imap_unordered(_run_batch, jobs), start=1):
                paths[path] = None
                logger.info(f"Batches completed: {100.0 * i / len(jobs):.0f}% ({i}/{len(jobs)})")
    else:
        for i, job in enumerate(jobs, start=1):
            paths[_run_batch(job)] = None
            logger.info(f"Batches completed: {100.0 * i / len(jobs):.0f}% ({i}/{len(jobs)})")

    logger.info("All tasks completed")
    return sorted(paths)


def summarize_sweep(paths: Iterable[Path | str], n: int) -> pd.DataFrame:
    """
    Aggregate batch files into per-(alpha, beta, lambda) statistics.

    Works for both layouts: the last row of each run is its final state.

    Args:
        paths: Batch CSV files written by :func:`run_sweep`
        n: Population size, for the attack rate

    Returns:
        DataFrame with run count, mean/std final size and mean attack rate
    """
    frames = []
    for batch, path in enumerate(paths):
        frame = pd.read_csv(path)
        frame["batch"] = batch
        frames.append(frame)
    if not frames:
        return pd.DataFrame(
            columns=["alpha", "beta", "lambda", "runs", "final_size_mean", "final_size_std", "attack_rate"]
        )

    data = pd.concat(frames, ignore_index=True)
    keys = ["batch", "itr", "alpha", "beta", "lambda"]
    final = data.groupby(keys, sort=False).last().reset_index()
    final["final_size"] = final["I"] + final["R"]

    summary = (
        final.groupby(["alpha", "beta", "lambda"])["final_size"]
        .agg(runs="count", final_size_mean="mean", final_size_std="std")
        .reset_index()
    )
    summary["final_size_std"] = summary["final_size_std"].fillna(0.0)
    summary["attack_rate"] = summary["final_size_mean"] / n
    return summary
