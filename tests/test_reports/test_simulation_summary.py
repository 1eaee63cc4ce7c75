"""Tests for the Monte Carlo summary report."""

from nestegg.engines.monte_carlo import MonteCarloEngine
from nestegg.reports.simulation_summary import SimulationSummaryGenerator


class TestSimulationSummary:
    def test_render(self, retirement_params):
        batch = MonteCarloEngine().run(retirement_params, 40, seed=2)
        text = SimulationSummaryGenerator().render(retirement_params, batch, target_value=500000)

        assert "Trials:            40 (seed 2)" in text
        assert "Ages:              60 -> retire 65 -> 90" in text
        assert "Starting balance:  1,000,000" in text
        for label in ("p10", "p50", "p90"):
            assert label in text
        assert "Probability final value >= 500,000:" in text

    def test_final_year_always_shown(self, retirement_params):
        batch = MonteCarloEngine().run(retirement_params, 5, seed=2)
        text = SimulationSummaryGenerator().render(retirement_params, batch, every=7)
        year_rows = [line.split()[0] for line in text.splitlines() if line[:1].isdigit()]
        assert year_rows == ["0", "7", "14", "21", "28", "30"]
