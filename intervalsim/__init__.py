from intervalsim.analytical import AnalyticalSimulator, split_cluster
from intervalsim.config import DEFAULT_CONFIG, SimConfig, load_sim_config
from intervalsim.core import (
    DEFAULT_MATURE_INTERVAL,
    Card,
    CardCluster,
    SimulationSummary,
    Simulator,
)
from intervalsim.retention import retained_fraction, retention_ratio
from intervalsim.stochastic import StochasticSimulator

__all__ = [
    "AnalyticalSimulator",
    "Card",
    "CardCluster",
    "DEFAULT_CONFIG",
    "DEFAULT_MATURE_INTERVAL",
    "SimConfig",
    "SimulationSummary",
    "Simulator",
    "StochasticSimulator",
    "load_sim_config",
    "retained_fraction",
    "retention_ratio",
    "split_cluster",
]
