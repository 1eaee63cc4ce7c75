"""Tests for the realized gains report."""

from datetime import date
from decimal import Decimal

import pytest

from nestegg.engines.ledger import LotLedger
from nestegg.models.enums import HoldingPeriod, LotMethod
from nestegg.models.lots import BuyTransaction, SellOrder
from nestegg.reports.realized_gains import RealizedGainsReport


@pytest.fixture
def sold_ledger(ledger):
    # lot-a alone, long-term gain
    ledger.sell("VTI", Decimal("5"), Decimal("130"), date(2025, 3, 1), method=LotMethod.FIFO)
    # lot-c then lot-b, mixed and so short-term
    ledger.sell("VTI", Decimal("12"), Decimal("110"), date(2025, 4, 1), method=LotMethod.LIFO)
    # prior year, excluded from 2025
    ledger.sell("VTI", Decimal("1"), Decimal("200"), date(2024, 12, 1), method=LotMethod.FIFO)
    return ledger


class TestRealizedGainsReport:
    def setup_method(self):
        self.report = RealizedGainsReport()

    def test_sections_and_totals(self, sold_ledger):
        summary = self.report.summarize(sold_ledger.sells(), 2025)
        assert [line.gain_loss for line in summary.long_term.lines] == [Decimal("150")]
        [short] = summary.short_term.lines
        assert short.date_acquired == "VARIOUS"
        # 1320 proceeds less 10 * 120 + 2 * 150
        assert short.gain_loss == Decimal("-180")
        assert summary.total_gain_loss == Decimal("-30")

    def test_single_lot_keeps_acquisition_date(self, sold_ledger):
        summary = self.report.summarize(sold_ledger.sells(), 2025)
        assert summary.long_term.lines[0].date_acquired == date(2022, 1, 10)

    def test_all_years_when_unfiltered(self, sold_ledger):
        summary = self.report.summarize(sold_ledger.sells())
        lines = summary.short_term.lines + summary.long_term.lines
        assert len(lines) == 3

    def test_render(self, sold_ledger):
        text = self.report.render(self.report.summarize(sold_ledger.sells(), 2025))
        assert "TAX YEAR 2025" in text
        assert "PART I - SHORT-TERM" in text
        assert "PART II - LONG-TERM" in text
        assert "5 VTI" in text
        assert "Total capital gain/loss: -30.00" in text

    def test_render_empty_year(self, ledger):
        text = self.report.render(self.report.summarize(ledger.sells(), 2030))
        assert "(none)" in text
        assert "Total capital gain/loss: 0.00" in text

    def test_wash_sale_marked(self, ledger):
        ledger.sell(
            "VTI", Decimal("2"), Decimal("100"), date(2024, 9, 20),
            method=LotMethod.SPECIFIC_ID, explicit_selection=[("lot-b", Decimal("2"))],
        )
        summary = self.report.summarize(ledger.sells(), 2024)
        assert summary.wash_sale_count == 1
        assert summary.long_term.lines[0].holding_period == HoldingPeriod.LONG_TERM
        assert "possible wash sale" in self.report.render(summary)

    def test_repurchase_after_loss_marked(self):
        book = LotLedger()
        book.apply([
            BuyTransaction(
                id="b1", ticker="VTI", quantity=Decimal("10"), price_per_unit=Decimal("100"),
                trade_date=date(2024, 1, 2),
            ),
            SellOrder(
                ticker="VTI", quantity=Decimal("10"), price_per_unit=Decimal("80"),
                trade_date=date(2024, 3, 1),
            ),
            BuyTransaction(
                id="b2", ticker="VTI", quantity=Decimal("10"), price_per_unit=Decimal("82"),
                trade_date=date(2024, 3, 15),
            ),
        ])
        summary = self.report.summarize(book.sells(), 2024)
        assert summary.wash_sale_count == 1
        assert "possible wash sale" in self.report.render(summary)
