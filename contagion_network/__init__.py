"""
Contagion Network Simulation Package

A Python package for simulating stochastic spreading processes (SIR,
threshold SAR and discrete-time vaccination) on large sparse contact
networks, with time-resolved compartment counts for repeated trials and
parameter sweeps.
"""

__version__ = "0.1.0"
__author__ = "Author"

from contagion_network.config import SIRParameters, SARParameters, SweepConfig, VaccinationParameters
from contagion_network.errors import InconsistentState, InvalidConfiguration, InvalidEdge
from contagion_network.graph import ContactGraph
from contagion_network.simulate_sir import FastSIRSimulator, simulate_sir
from contagion_network.simulate_sar import FastSARSimulator, simulate_sar
from contagion_network.simulate_vaccination import VaccinationSIRSimulator, simulate_vaccination
from contagion_network.results import SimulationResult, VaccinationResult
from contagion_network.metrics import MetricsCollector

__all__ = [
    "SIRParameters",
    "SARParameters",
    "SweepConfig",
    "VaccinationParameters",
    "InconsistentState",
    "InvalidConfiguration",
    "InvalidEdge",
    "ContactGraph",
    "FastSIRSimulator",
    "simulate_sir",
    "FastSARSimulator",
    "simulate_sar",
    "VaccinationSIRSimulator",
    "simulate_vaccination",
    "SimulationResult",
    "VaccinationResult",
    "MetricsCollector",
]
