"""Shared test fixtures for Nestegg."""

from datetime import date
from decimal import Decimal

import pytest

from nestegg.engines.ledger import LotLedger
from nestegg.models.enums import FilingStatus
from nestegg.models.lots import BuyTransaction, Lot
from nestegg.models.rates import INFINITY, Bracket
from nestegg.models.simulation import AssetClassAssumption, SimulationParameters


def make_lot(
    lot_id: str,
    acquired: date,
    quantity: str,
    price: str,
    ticker: str = "VTI",
    remaining: str | None = None,
    fee: str = "0",
) -> Lot:
    return Lot(
        id=lot_id,
        ticker=ticker,
        acquisition_date=acquired,
        quantity=Decimal(quantity),
        remaining_quantity=Decimal(remaining if remaining is not None else quantity),
        price_per_unit=Decimal(price),
        fee=Decimal(fee),
    )


def make_buy(
    buy_id: str, when: date, quantity: str, price: str, ticker: str = "VTI", **kwargs
) -> BuyTransaction:
    return BuyTransaction(
        id=buy_id,
        ticker=ticker,
        quantity=Decimal(quantity),
        price_per_unit=Decimal(price),
        trade_date=when,
        **kwargs,
    )


@pytest.fixture
def three_lots() -> list[Lot]:
    """Three VTI lots: cheap and old, expensive and middle-aged, mid-priced and recent."""
    return [
        make_lot("lot-a", date(2022, 1, 10), "10", "100"),
        make_lot("lot-b", date(2023, 6, 1), "10", "150"),
        make_lot("lot-c", date(2024, 9, 1), "10", "120"),
    ]


@pytest.fixture
def ledger() -> LotLedger:
    book = LotLedger()
    book.record_buy(make_buy("lot-a", date(2022, 1, 10), "10", "100"))
    book.record_buy(make_buy("lot-b", date(2023, 6, 1), "10", "150"))
    book.record_buy(make_buy("lot-c", date(2024, 9, 1), "10", "120"))
    return book


@pytest.fixture
def simple_brackets() -> list[Bracket]:
    return [
        Bracket(min=Decimal("0"), max=Decimal("10000"), rate=Decimal("0.10")),
        Bracket(min=Decimal("10000"), max=Decimal("40000"), rate=Decimal("0.12")),
        Bracket(min=Decimal("40000"), max=INFINITY, rate=Decimal("0.22")),
    ]


@pytest.fixture
def single() -> FilingStatus:
    return FilingStatus.SINGLE


@pytest.fixture
def retirement_params() -> SimulationParameters:
    return SimulationParameters(
        asset_classes=[
            AssetClassAssumption(name="stocks", balance=600000, expected_return=7.0, volatility=15.0),
            AssetClassAssumption(name="bonds", balance=400000, expected_return=4.0, volatility=5.0),
        ],
        current_age=60,
        retirement_age=65,
        end_age=90,
        inflation_rate=2.5,
        annual_contribution=20000,
        contribution_growth_rate=3.0,
        annual_spending=50000,
    )
