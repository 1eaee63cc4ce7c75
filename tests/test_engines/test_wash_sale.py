"""Tests for wash sale detection."""

from datetime import date
from decimal import Decimal

import pytest

from nestegg.engines.wash_sale import WashSaleDetector
from nestegg.models.enums import HoldingPeriod
from nestegg.models.lots import BuyTransaction, SellTransaction

SALE_DATE = date(2025, 3, 1)


def _buy(when: date, ticker: str = "VTI") -> BuyTransaction:
    return BuyTransaction(
        ticker=ticker, quantity=Decimal("1"), price_per_unit=Decimal("100"), trade_date=when
    )


class TestCheck:
    def setup_method(self):
        self.detector = WashSaleDetector()

    @pytest.mark.parametrize(
        "buy_date, flagged",
        [
            (date(2025, 1, 30), True),   # 30 days before
            (date(2025, 1, 29), False),  # 31 days before
            (date(2025, 3, 1), True),    # same day
            (date(2025, 3, 31), True),   # 30 days after
            (date(2025, 4, 1), False),   # 31 days after
        ],
    )
    def test_window_edges(self, buy_date, flagged):
        result = self.detector.check("VTI", SALE_DATE, Decimal("-50"), [_buy(buy_date)])
        assert result is flagged

    def test_gain_never_flagged(self):
        assert not self.detector.check("VTI", SALE_DATE, Decimal("50"), [_buy(SALE_DATE)])

    def test_zero_gain_not_flagged(self):
        assert not self.detector.check("VTI", SALE_DATE, Decimal("0"), [_buy(SALE_DATE)])

    def test_other_ticker_ignored(self):
        assert not self.detector.check("VTI", SALE_DATE, Decimal("-50"), [_buy(SALE_DATE, "BND")])

    def test_ticker_match_is_case_insensitive(self):
        assert self.detector.check("vti", SALE_DATE, Decimal("-50"), [_buy(SALE_DATE)])

    def test_custom_window(self):
        narrow = WashSaleDetector(window_days=5)
        assert not narrow.check("VTI", SALE_DATE, Decimal("-1"), [_buy(date(2025, 2, 20))])
        assert narrow.check("VTI", SALE_DATE, Decimal("-1"), [_buy(date(2025, 2, 24))])


class TestScan:
    def test_scan_returns_flagged_losses(self):
        loss = SellTransaction(
            ticker="VTI",
            quantity=Decimal("1"),
            price_per_unit=Decimal("90"),
            trade_date=SALE_DATE,
            cost_basis=Decimal("100"),
            proceeds=Decimal("90"),
            realized_gain=Decimal("-10"),
            holding_period=HoldingPeriod.SHORT_TERM,
        )
        gain = loss.model_copy(update={"realized_gain": Decimal("10"), "id": "gain"})
        history = [_buy(date(2025, 3, 10)), loss, gain]
        assert WashSaleDetector().scan(history) == [loss]
