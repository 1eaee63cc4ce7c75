"""Realized gains report (Form 8949 layout)."""

from decimal import Decimal
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from nestegg.models.enums import HoldingPeriod
from nestegg.models.lots import SellTransaction
from nestegg.models.reports import RealizedGainLine, RealizedGainSection, RealizedGainsSummary

TEMPLATE_DIR = Path(__file__).parent / "templates"


class RealizedGainsReport:
    """Groups a year's sells into short- and long-term sections with totals."""

    def __init__(self) -> None:
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))

    @staticmethod
    def line_for(sell: SellTransaction) -> RealizedGainLine:
        acquired = {c.acquisition_date for c in sell.lots_used}
        return RealizedGainLine(
            description=f"{sell.quantity.normalize():f} {sell.ticker}",
            date_acquired=acquired.pop() if len(acquired) == 1 else "VARIOUS",
            date_sold=sell.trade_date,
            proceeds=sell.proceeds,
            cost_basis=sell.cost_basis,
            gain_loss=sell.realized_gain,
            holding_period=sell.holding_period,
            wash_sale=sell.wash_sale,
        )

    @staticmethod
    def _section(period: HoldingPeriod, lines: list[RealizedGainLine]) -> RealizedGainSection:
        return RealizedGainSection(
            holding_period=period,
            lines=lines,
            total_proceeds=sum((line.proceeds for line in lines), Decimal("0")),
            total_cost_basis=sum((line.cost_basis for line in lines), Decimal("0")),
            total_gain_loss=sum((line.gain_loss for line in lines), Decimal("0")),
        )

    def summarize(self, sells: list[SellTransaction], tax_year: int | None = None) -> RealizedGainsSummary:
        """Build both sections from the sells dated in ``tax_year`` (all sells if None)."""
        selected = sorted(
            (s for s in sells if tax_year is None or s.trade_date.year == tax_year),
            key=lambda s: s.trade_date,
        )
        lines = [self.line_for(s) for s in selected]
        return RealizedGainsSummary(
            tax_year=tax_year,
            short_term=self._section(
                HoldingPeriod.SHORT_TERM,
                [line for line in lines if line.holding_period == HoldingPeriod.SHORT_TERM],
            ),
            long_term=self._section(
                HoldingPeriod.LONG_TERM,
                [line for line in lines if line.holding_period == HoldingPeriod.LONG_TERM],
            ),
        )

    def render(self, summary: RealizedGainsSummary) -> str:
        template = self.env.get_template("realized_gains.txt")
        return template.render(summary=summary)
