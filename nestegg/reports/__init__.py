"""Report generation for Nestegg."""

from nestegg.reports.realized_gains import RealizedGainsReport
from nestegg.reports.simulation_summary import SimulationSummaryGenerator

__all__ = [
    "RealizedGainsReport",
    "SimulationSummaryGenerator",
]
