"""Tax lot, transaction, and lot-selection models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from nestegg.models.enums import HoldingPeriod, LotMethod, TaxTreatment, TransactionType

LONG_TERM_THRESHOLD_DAYS = 365


def holding_period_for(acquired: date, sold: date) -> HoldingPeriod:
    """Long-term iff the position was held more than 365 days."""
    if (sold - acquired).days > LONG_TERM_THRESHOLD_DAYS:
        return HoldingPeriod.LONG_TERM
    return HoldingPeriod.SHORT_TERM


class Lot(BaseModel):
    """A discrete purchase of an asset, owned by the ledger.

    Lots are immutable snapshots; the ledger swaps in an updated copy when a
    sale consumes part of one.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    ticker: str
    acquisition_date: date
    quantity: Decimal = Field(gt=0)
    remaining_quantity: Decimal = Field(ge=0)
    price_per_unit: Decimal = Field(ge=0)
    fee: Decimal = Field(default=Decimal("0"), ge=0)
    tax_treatment: TaxTreatment = TaxTreatment.TAXABLE
    account_id: str | None = None

    @model_validator(mode="after")
    def _remaining_within_original(self) -> "Lot":
        if self.remaining_quantity > self.quantity:
            raise ValueError(
                f"remaining_quantity {self.remaining_quantity} exceeds quantity {self.quantity}"
            )
        return self

    @property
    def unit_cost(self) -> Decimal:
        """Price per unit with the purchase fee spread across the lot."""
        return self.price_per_unit + self.fee / self.quantity

    @property
    def remaining_cost_basis(self) -> Decimal:
        return self.remaining_quantity * self.unit_cost

    @property
    def is_exhausted(self) -> bool:
        return self.remaining_quantity == 0

    def holding_period_on(self, sale_date: date) -> HoldingPeriod:
        return holding_period_for(self.acquisition_date, sale_date)


class LotConsumption(BaseModel):
    """A (lot, quantity) pair drawn by one sale."""

    model_config = ConfigDict(frozen=True)

    lot_id: str
    quantity: Decimal = Field(gt=0)
    unit_cost: Decimal
    acquisition_date: date
    holding_period: HoldingPeriod

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity * self.unit_cost


class _TransactionBase(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    ticker: str
    quantity: Decimal = Field(gt=0)
    price_per_unit: Decimal = Field(ge=0)
    trade_date: date
    fee: Decimal = Field(default=Decimal("0"), ge=0)
    account_id: str | None = None
    external_id: str | None = None
    source: str | None = None

    @field_validator("trade_date", mode="before")
    @classmethod
    def _truncate_to_day(cls, value: object) -> object:
        # Broker exports often carry a time of day; only the calendar day matters.
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str) and "T" in value:
            return datetime.fromisoformat(value).date()
        return value


class BuyTransaction(_TransactionBase):
    type: Literal[TransactionType.BUY] = TransactionType.BUY
    tax_treatment: TaxTreatment = TaxTreatment.TAXABLE
    lot_id: str | None = None

    @property
    def total_cost(self) -> Decimal:
        return self.quantity * self.price_per_unit + self.fee


class SellOrder(_TransactionBase):
    """A requested sale, before lots are assigned (e.g. one row of an import)."""

    type: Literal[TransactionType.SELL] = TransactionType.SELL
    method: LotMethod | None = None
    # (lot id, quantity) picks for SPECIFIC_ID
    lot_selection: list[tuple[str, Decimal]] | None = None


class SellTransaction(SellOrder):
    """A finalized sale with its basis, gain, and the lots it consumed."""

    cost_basis: Decimal
    proceeds: Decimal
    realized_gain: Decimal
    holding_period: HoldingPeriod
    lots_used: list[LotConsumption] = Field(default_factory=list)
    wash_sale: bool = False

    @model_validator(mode="after")
    def _lots_cover_quantity(self) -> "SellTransaction":
        if self.lots_used:
            consumed = sum((c.quantity for c in self.lots_used), Decimal("0"))
            if consumed != self.quantity:
                raise ValueError(
                    f"lots_used covers {consumed} units but the sale is for {self.quantity}"
                )
        return self

    @property
    def is_loss(self) -> bool:
        return self.realized_gain < 0


Transaction = Annotated[BuyTransaction | SellTransaction, Field(discriminator="type")]
ImportRow = Annotated[BuyTransaction | SellOrder, Field(discriminator="type")]


class SelectionResult(BaseModel):
    """Which lots a prospective sale would draw from, before it is finalized."""

    ticker: str
    method: LotMethod
    sale_date: date
    consumed: list[LotConsumption] = Field(default_factory=list)
    cost_basis: Decimal = Decimal("0")
    quantity_requested: Decimal
    quantity_filled: Decimal = Decimal("0")
    holding_period: HoldingPeriod | None = None

    @property
    def quantity_unfilled(self) -> Decimal:
        return self.quantity_requested - self.quantity_filled

    @property
    def is_complete(self) -> bool:
        return self.quantity_unfilled <= 0

    @property
    def is_mixed(self) -> bool:
        return len({c.holding_period for c in self.consumed}) > 1

    def split_by_holding_period(self) -> dict[HoldingPeriod, "SelectionResult"]:
        """Break a mixed selection into one selection per holding period.

        Average-cost selections carry a single blended label and are
        returned as-is.
        """
        if self.method == LotMethod.AVERAGE or not self.is_mixed:
            return {self.holding_period: self} if self.holding_period else {}

        parts: dict[HoldingPeriod, SelectionResult] = {}
        for period in (HoldingPeriod.SHORT_TERM, HoldingPeriod.LONG_TERM):
            consumed = [c for c in self.consumed if c.holding_period == period]
            if not consumed:
                continue
            filled = sum((c.quantity for c in consumed), Decimal("0"))
            parts[period] = SelectionResult(
                ticker=self.ticker,
                method=self.method,
                sale_date=self.sale_date,
                consumed=consumed,
                cost_basis=sum((c.cost_basis for c in consumed), Decimal("0")),
                quantity_requested=filled,
                quantity_filled=filled,
                holding_period=period,
            )
        return parts


class Position(BaseModel):
    """Open quantity and basis of one ticker, valued at an injected price."""

    ticker: str
    quantity: Decimal
    cost_basis: Decimal
    average_cost: Decimal
    current_price: Decimal | None = None

    @property
    def market_value(self) -> Decimal | None:
        if self.current_price is None:
            return None
        return self.quantity * self.current_price

    @property
    def unrealized_gain(self) -> Decimal | None:
        value = self.market_value
        return None if value is None else value - self.cost_basis


class HarvestCandidate(BaseModel):
    """An open lot trading below its cost basis."""

    lot_id: str
    ticker: str
    quantity: Decimal
    cost_basis: Decimal
    market_value: Decimal
    holding_period: HoldingPeriod
    wash_sale_risk: bool = False

    @property
    def unrealized_loss(self) -> Decimal:
        return self.cost_basis - self.market_value
