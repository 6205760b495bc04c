"""Result accumulator shared by the event-driven simulators."""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from contagion_network.errors import InconsistentState
from contagion_network.paths import resolve_indexed


def _write_frame(frame: pd.DataFrame, path: Path | str, append: bool) -> Path:
    """Write ``frame`` as CSV, never clobbering an existing file unless appending."""
    path = Path(path)
    if not append:
        path = resolve_indexed(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    write_header = not path.exists() or path.stat().st_size == 0
    frame.to_csv(
        path,
        mode="a" if append else "w",
        header=write_header,
        index=False,
        float_format="%.9f",
        na_rep="",
    )
    return path


class SimulationResult:
    """Append-only record of one run.

    One sample ``(time, counts)`` is appended per accepted transition, plus
    the initial sample. Per-node infection / recovery timestamps are NaN
    until the transition happens.
    """

    COMPARTMENTS: Tuple[str, ...] = ("S", "I", "R")

    def __init__(self, n: int):
        self.n = n
        self.compartments = self.COMPARTMENTS
        self.times: List[float] = []
        self._counts: Dict[str, List[int]] = {c: [] for c in self.compartments}
        self.t_infect = np.full(n, np.nan)
        self.t_recover = np.full(n, np.nan)
        self._frozen = False

    @property
    def active_compartment(self) -> str:
        return self.compartments[1]

    def record(self, t: float, counts: Sequence[int]) -> None:
        """Append a sample; time must not go backwards."""
        if self._frozen:
            raise InconsistentState("result is frozen", time=t)
        if self.times and t < self.times[-1]:
            raise InconsistentState(
                "sample time went backwards", expected=f">= {self.times[-1]}", actual=t, time=t
            )
        self.times.append(t)
        for name, value in zip(self.compartments, counts):
            self._counts[name].append(value)

    def mark_infected(self, u: int, t: float) -> None:
        self.t_infect[u] = t

    def mark_recovered(self, u: int, t: float) -> None:
        self.t_recover[u] = t

    def freeze(self) -> "SimulationResult":
        self._frozen = True
        self.t_infect.flags.writeable = False
        self.t_recover.flags.writeable = False
        return self

    def __len__(self) -> int:
        return len(self.times)

    def counts(self, name: str) -> np.ndarray:
        """Count series of one compartment."""
        return np.asarray(self._counts[name], dtype=np.int64)

    def final_counts(self) -> Dict[str, int]:
        return {c: int(self._counts[c][-1]) for c in self.compartments}

    def infection_time(self, u: int) -> Optional[float]:
        t = self.t_infect[u]
        return None if np.isnan(t) else float(t)

    def recovery_time(self, u: int) -> Optional[float]:
        t = self.t_recover[u]
        return None if np.isnan(t) else float(t)

    def to_metrics(self) -> dict:
        """Summary statistics of the run."""
        active = self.counts(self.active_compartment)
        final_size = int(np.count_nonzero(~np.isnan(self.t_infect)))
        peak_idx = int(np.argmax(active)) if active.size else 0
        return {
            "n": self.n,
            "num_samples": len(self.times),
            "final_counts": self.final_counts(),
            "final_size": final_size,
            "attack_rate": final_size / self.n if self.n > 0 else 0.0,
            "peak_active": int(active[peak_idx]) if active.size else 0,
            "peak_time": float(self.times[peak_idx]) if self.times else 0.0,
            "duration": float(self.times[-1]) if self.times else 0.0,
        }

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def time_series_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame({"time": np.asarray(self.times, dtype=np.float64)})
        for name in self.compartments:
            frame[name] = self.counts(name)
        return frame

    def node_times_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "node": np.arange(self.n),
                "infected_at": self.t_infect,
                "recovered_at": self.t_recover,
            }
        )

    def _parameterised_frame(
        self, itr: int, params: Mapping[str, float], rows: slice
    ) -> pd.DataFrame:
        series = self.time_series_frame().iloc[rows].reset_index(drop=True)
        frame = pd.DataFrame({"itr": np.full(len(series), itr, dtype=np.int64)})
        for key, value in params.items():
            frame[key] = float(value)
        frame["time"] = series["time"]
        for name in self.compartments[1:]:
            frame[name] = series[name]
        return frame

    def write_time_series_csv(
        self,
        path: Path | str,
        itr: Optional[int] = None,
        params: Optional[Mapping[str, float]] = None,
        append: bool = False,
    ) -> Path:
        """
        Write the sample sequence as CSV.

        Args:
            path: Target file
            itr: Iteration index added as a column
            params: Parameter columns (e.g. alpha, beta, lambda); switches to
                the ``itr,<params>,time,<active>,R`` layout
            append: Append to ``path`` instead of creating a fresh file

        Returns:
            The path actually written
        """
        if params is not None:
            frame = self._parameterised_frame(itr or 0, params, slice(None))
        else:
            frame = self.time_series_frame()
            if itr is not None:
                frame["itr"] = itr
        return _write_frame(frame, path, append)

    def write_final_state_csv(
        self,
        path: Path | str,
        itr: int,
        params: Mapping[str, float],
        append: bool = False,
    ) -> Path:
        """Write only the last sample, in the parameterised layout."""
        frame = self._parameterised_frame(itr, params, slice(-1, None))
        return _write_frame(frame, path, append)

    def write_node_times_csv(
        self, path: Path | str, itr: Optional[int] = None, append: bool = False
    ) -> Path:
        """Per-node timestamps; missing transitions are written as blanks."""
        frame = self.node_times_frame()
        if itr is not None:
            frame.insert(1, "itr", itr)
        path = _write_frame(frame, path, append)
        logger.debug(f"Wrote node times for {self.n} nodes to {path}")
        return path


class SIRResult(SimulationResult):
    """Result of an SIR run."""

    COMPARTMENTS = ("S", "I", "R")


class SARResult(SimulationResult):
    """Result of a threshold SAR run."""

    COMPARTMENTS = ("S", "A", "R")


@dataclass
class VaccinationResult:
    """Per-step compartment counts of the discrete-time vaccination process.

    Every series has length ``t_max + 1`` (steps 0..t_max).
    """

    S: np.ndarray
    I: np.ndarray
    V: np.ndarray
    R: np.ndarray

    @property
    def steps(self) -> np.ndarray:
        return np.arange(len(self.I))

    def final_counts(self) -> Dict[str, int]:
        return {
            "S": int(self.S[-1]),
            "I": int(self.I[-1]),
            "V": int(self.V[-1]),
            "R": int(self.R[-1]),
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"t": self.steps, "S": self.S, "I": self.I, "V": self.V, "R": self.R}
        )

    def write_time_series_csv(
        self, path: Path | str, itr: int = 0, append: bool = False
    ) -> Path:
        """Write ``itr,t,S,I,V,R`` rows."""
        frame = self.to_frame()
        frame.insert(0, "itr", itr)
        return _write_frame(frame, path, append)
