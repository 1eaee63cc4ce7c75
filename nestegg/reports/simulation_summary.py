"""Monte Carlo simulation summary report generator."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from nestegg.engines.monte_carlo import DEFAULT_PERCENTILES, percentiles, success_probability
from nestegg.models.simulation import SimulationBatch, SimulationParameters

TEMPLATE_DIR = Path(__file__).parent / "templates"


class SimulationSummaryGenerator:
    """Renders percentile bands and the probability of reaching a target."""

    def __init__(self) -> None:
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))

    def render(
        self,
        params: SimulationParameters,
        batch: SimulationBatch,
        target_value: float = 0.0,
        every: int = 5,
    ) -> str:
        """Render the summary, showing every ``every``-th year plus the final one."""
        rows = percentiles(batch.paths, DEFAULT_PERCENTILES)
        last = len(rows) - 1
        shown = [row for row in rows if row.year_index % every == 0 or row.year_index == last]
        template = self.env.get_template("simulation_summary.txt")
        return template.render(
            params=params,
            batch=batch,
            rows=shown,
            levels=DEFAULT_PERCENTILES,
            target_value=target_value,
            success=success_probability(batch.paths, target_value),
            insolvent_share=sum(batch.insolvent) / max(1, batch.trial_count),
        )
