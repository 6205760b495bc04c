"""Configuration management for epidemic simulations."""

from typing import List
from pathlib import Path
from pydantic import BaseModel, Field, field_validator
import json
import math
import numpy as np


class SIRParameters(BaseModel):
    """Parameters of the continuous-time SIR engine."""

    lam: float = Field(default=1.0, ge=0.0, description="Base transmission rate")
    gamma: float = Field(default=1.0, ge=0.0, description="Recovery rate")
    horizon: float = Field(
        default=200.0, gt=0.0, description="Logical time after which no event is processed"
    )
    alpha: float = Field(default=0.0, description="Source degree exponent")
    beta: float = Field(default=0.0, description="Target degree exponent")
    seed: int = Field(default=0, description="Seed of the private RNG")

    @field_validator("lam", "gamma", "alpha", "beta")
    @classmethod
    def validate_not_nan(cls, v: float) -> float:
        """Reject NaN, which slips through the ordering constraints."""
        if v != v:
            raise ValueError("value must not be NaN")
        return v


class SARParameters(SIRParameters):
    """Parameters of the threshold (complex contagion) engine."""


class VaccinationParameters(BaseModel):
    """Parameters of the discrete-time vaccination SIR process."""

    omega: float = Field(default=0.45, ge=0.0, le=1.0, description="Vaccination probability per exposure")
    beta: float = Field(default=0.168, ge=0.0, le=1.0, description="Infection probability per exposure")
    gamma: int = Field(default=3, ge=0, description="Infectious period in steps")
    t_max: int = Field(default=120, gt=0, description="Number of steps")
    vac_max: float = Field(default=0.5, ge=0.0, le=1.0, description="Maximum vaccinated fraction")
    radius: int = Field(default=1, ge=1, le=2, description="Vaccination reach (1 or 2 hops)")
    seed: int = Field(default=0, description="Seed of the private RNG")

    @field_validator("gamma", "t_max", mode="before")
    @classmethod
    def round_steps(cls, v):
        """Step counts may be given as floats and are rounded."""
        if isinstance(v, float):
            return int(math.floor(v + 0.5))
        return v


class SweepConfig(BaseModel):
    """Configuration of a batched lambda/alpha sweep over ER graphs."""

    # Graph
    n: int = Field(default=100_000, ge=1, description="Number of nodes")
    mean_degree: float = Field(default=25.0, gt=0.0, description="Target mean degree")
    graph_seed: int = Field(default=42, description="Seed of the first graph realization")

    # Repetitions
    batches: int = Field(default=12, ge=1, description="Independent graph realizations")
    iterations: int = Field(default=10, ge=1, description="Runs per parameter point and batch")
    initial_count: int = Field(default=1, ge=1, description="Initially infected nodes")

    # Dynamics
    gamma: float = Field(default=1.0, ge=0.0, description="Recovery rate")
    horizon: float = Field(default=200.0, gt=0.0, description="Simulation horizon")
    beta: float = Field(default=0.0, description="Target degree exponent")
    lambda_min: float = Field(default=0.0, ge=0.0)
    lambda_max: float = Field(default=1.5, ge=0.0)
    lambda_step: float = Field(default=0.01, gt=0.0)
    alphas: List[float] = Field(
        default_factory=lambda: [-2.0, -1.0, 0.0, 1.0],
        description="Source degree exponents",
    )

    # Output
    output_dir: str = Field(default="out/fastsir", description="Output directory")
    final_only: bool = Field(
        default=True, description="Write only the final state of each run"
    )

    # Execution
    workers: int = Field(default=1, ge=1, description="Worker processes (one batch per job)")
    master_seed: int = Field(default=12345, description="Seed all run seeds derive from")

    @field_validator("lambda_max")
    @classmethod
    def validate_lambda_range(cls, v: float, info) -> float:
        """lambda_max must not be below lambda_min."""
        lo = info.data.get("lambda_min")
        if lo is not None and v < lo:
            raise ValueError("lambda_max must be >= lambda_min")
        return v

    @field_validator("alphas")
    @classmethod
    def validate_alphas(cls, v: List[float]) -> List[float]:
        if not v:
            raise ValueError("alphas must not be empty")
        return v

    def lambda_grid(self) -> np.ndarray:
        """Inclusive grid lambda_min, lambda_min + step, ... <= lambda_max."""
        # tolerance keeps e.g. 1.5 / 0.01 from flooring to 149
        count = int((self.lambda_max - self.lambda_min) / self.lambda_step + 1e-9) + 1
        return self.lambda_min + self.lambda_step * np.arange(count)

    def total_tasks(self) -> int:
        return self.batches * self.iterations * len(self.alphas) * len(self.lambda_grid())

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return self.model_dump()

    def to_json(self) -> str:
        """Convert config to JSON string."""
        return self.model_dump_json(indent=2)

    def save(self, path: Path | str) -> None:
        """Save config to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(self.to_json())

    @classmethod
    def load(cls, path: Path | str) -> "SweepConfig":
        """Load config from JSON file."""
        path = Path(path)
        with open(path, "r") as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def default_fastsir(cls) -> "SweepConfig":
        """Full-size sweep: 12 ER(100k, <k>=25) batches, 10 runs per point."""
        return cls(
            n=100_000,
            mean_degree=25.0,
            batches=12,
            iterations=10,
            gamma=1.0,
            horizon=200.0,
            lambda_min=0.0,
            lambda_max=1.5,
            lambda_step=0.01,
        )

    @classmethod
    def toy(cls) -> "SweepConfig":
        """Small sweep for smoke tests."""
        return cls(
            n=200,
            mean_degree=4.0,
            batches=2,
            iterations=2,
            lambda_min=0.0,
            lambda_max=1.0,
            lambda_step=0.5,
            alphas=[0.0, 1.0],
            horizon=20.0,
        )
