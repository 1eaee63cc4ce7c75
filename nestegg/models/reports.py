"""Report line models."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from nestegg.models.enums import HoldingPeriod


class RealizedGainLine(BaseModel):
    """One Form 8949-style row."""

    description: str
    date_acquired: date | str  # "VARIOUS" when several lots were sold
    date_sold: date
    proceeds: Decimal
    cost_basis: Decimal
    gain_loss: Decimal
    holding_period: HoldingPeriod
    wash_sale: bool = False


class RealizedGainSection(BaseModel):
    holding_period: HoldingPeriod
    lines: list[RealizedGainLine]
    total_proceeds: Decimal
    total_cost_basis: Decimal
    total_gain_loss: Decimal


class RealizedGainsSummary(BaseModel):
    tax_year: int | None
    short_term: RealizedGainSection
    long_term: RealizedGainSection

    @property
    def total_gain_loss(self) -> Decimal:
        return self.short_term.total_gain_loss + self.long_term.total_gain_loss

    @property
    def wash_sale_count(self) -> int:
        return sum(1 for line in self.short_term.lines + self.long_term.lines if line.wash_sale)
