"""Tests for sale finalization."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from nestegg.exceptions import IncompleteSaleError
from nestegg.models.enums import HoldingPeriod, LotMethod
from nestegg.models.lots import BuyTransaction

SALE_DATE = date(2025, 3, 1)


class TestFinalize:
    def test_proceeds_basis_and_gain(self, ledger):
        selection = ledger.select("VTI", Decimal("15"), LotMethod.FIFO, SALE_DATE)
        sell = ledger.processor.finalize(selection, Decimal("200"), Decimal("10"))
        assert sell.proceeds == Decimal("2990")
        assert sell.cost_basis == Decimal("1750")
        assert sell.realized_gain == Decimal("1240")
        assert sell.holding_period == HoldingPeriod.LONG_TERM
        assert sell.method == LotMethod.FIFO
        assert sum(c.quantity for c in sell.lots_used) == sell.quantity

    def test_consumed_lots_decremented_and_retained(self, ledger):
        selection = ledger.select("VTI", Decimal("15"), LotMethod.FIFO, SALE_DATE)
        ledger.processor.finalize(selection, Decimal("200"))
        assert ledger.lot("lot-a").remaining_quantity == Decimal("0")
        assert ledger.lot("lot-b").remaining_quantity == Decimal("5")
        assert ledger.lot("lot-c").remaining_quantity == Decimal("10")
        # Exhausted lot stays on the books
        assert "lot-a" in [lot.id for lot in ledger.lots_for("VTI", include_exhausted=True)]
        assert "lot-a" not in [lot.id for lot in ledger.lots_for("VTI")]

    def test_sell_recorded_in_history(self, ledger):
        selection = ledger.select("VTI", Decimal("1"), LotMethod.FIFO, SALE_DATE)
        sell = ledger.processor.finalize(selection, Decimal("200"), id="sale-1", source="broker")
        assert ledger.sells() == [sell]
        assert sell.id == "sale-1"
        assert sell.source == "broker"

    def test_incomplete_selection_rejected(self, ledger):
        selection = ledger.select("VTI", Decimal("31"), LotMethod.FIFO, SALE_DATE)
        with pytest.raises(IncompleteSaleError) as exc_info:
            ledger.processor.finalize(selection, Decimal("200"))
        assert exc_info.value.requested == Decimal("31")
        assert exc_info.value.filled == Decimal("30")
        assert exc_info.value.unfilled == Decimal("1")
        assert ledger.available_quantity("VTI") == Decimal("30")
        assert ledger.sells() == []

    def test_stale_selection_rejected(self, ledger):
        stale = ledger.select("VTI", Decimal("10"), LotMethod.FIFO, SALE_DATE)
        ledger.sell("VTI", Decimal("10"), Decimal("200"), SALE_DATE)
        with pytest.raises(IncompleteSaleError):
            ledger.processor.finalize(stale, Decimal("200"))

    def test_loss_sale_near_purchase_flagged_not_blocked(self, ledger):
        ledger.record_buy(
            BuyTransaction(
                id="lot-d",
                ticker="VTI",
                quantity=Decimal("5"),
                price_per_unit=Decimal("90"),
                trade_date=date(2025, 3, 20),
            )
        )
        selection = ledger.select("VTI", Decimal("10"), LotMethod.SPECIFIC_ID, SALE_DATE,
                                  explicit_selection=[("lot-b", Decimal("10"))])
        sell = ledger.processor.finalize(selection, Decimal("100"))
        assert sell.realized_gain == Decimal("-500")
        assert sell.wash_sale is True
        assert ledger.lot("lot-b").remaining_quantity == Decimal("0")

    def test_gain_sale_never_flagged(self, ledger):
        selection = ledger.select("VTI", Decimal("10"), LotMethod.LIFO, SALE_DATE)
        sell = ledger.processor.finalize(selection, Decimal("500"))
        assert sell.wash_sale is False

    def test_invalid_metadata_leaves_lots_untouched(self, ledger):
        before = ledger.lots
        selection = ledger.select("VTI", Decimal("15"), LotMethod.FIFO, SALE_DATE)
        with pytest.raises(ValidationError):
            ledger.processor.finalize(selection, Decimal("200"), account_id=123)
        assert ledger.lots == before
        assert ledger.sells() == []


class TestFinalizeSplit:
    def test_one_sell_per_holding_period(self, ledger):
        selection = ledger.select("VTI", Decimal("15"), LotMethod.LIFO, SALE_DATE)
        sells = ledger.processor.finalize_split(selection, Decimal("130"), Decimal("15"), id="s1")
        by_period = {s.holding_period: s for s in sells}

        short = by_period[HoldingPeriod.SHORT_TERM]
        assert short.quantity == Decimal("10")
        assert short.fee == Decimal("10")
        assert short.proceeds == Decimal("1290")
        assert short.cost_basis == Decimal("1200")
        assert short.id == "s1-short_term"

        long = by_period[HoldingPeriod.LONG_TERM]
        assert long.quantity == Decimal("5")
        assert long.fee == Decimal("5")
        assert long.realized_gain == Decimal("-105")

    def test_single_period_returns_one_sell(self, ledger):
        selection = ledger.select("VTI", Decimal("15"), LotMethod.FIFO, SALE_DATE)
        sells = ledger.processor.finalize_split(selection, Decimal("130"))
        assert len(sells) == 1
        assert sells[0].holding_period == HoldingPeriod.LONG_TERM

    def test_failure_on_second_period_discards_first(self, ledger, monkeypatch):
        before = ledger.lots
        finalize = ledger.processor.finalize
        calls = []

        def fail_on_second_part(*args, **kwargs):
            if calls:
                raise ValueError("second part rejected")
            calls.append(args)
            return finalize(*args, **kwargs)

        monkeypatch.setattr(ledger.processor, "finalize", fail_on_second_part)
        with pytest.raises(ValueError):
            ledger.sell(
                "VTI", Decimal("15"), Decimal("130"), SALE_DATE,
                method=LotMethod.LIFO, split_holding_periods=True,
            )
        assert len(calls) == 1
        assert ledger.lots == before
        assert ledger.sells() == []
