"""Tests for lot and transaction models."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from pydantic import TypeAdapter, ValidationError

from nestegg.models.enums import HoldingPeriod, LotMethod, TransactionType
from nestegg.models.lots import (
    BuyTransaction,
    ImportRow,
    Lot,
    LotConsumption,
    SelectionResult,
    SellOrder,
    SellTransaction,
    Transaction,
    holding_period_for,
)


class TestHoldingPeriod:
    @pytest.mark.parametrize(
        "acquired, sold, expected",
        [
            (date(2024, 1, 1), date(2024, 12, 31), HoldingPeriod.SHORT_TERM),  # 365 days
            (date(2024, 1, 1), date(2025, 1, 1), HoldingPeriod.LONG_TERM),     # 366 days
            (date(2023, 3, 1), date(2024, 3, 1), HoldingPeriod.LONG_TERM),     # spans Feb 29
            (date(2024, 6, 1), date(2024, 6, 1), HoldingPeriod.SHORT_TERM),
        ],
    )
    def test_boundary(self, acquired, sold, expected):
        assert holding_period_for(acquired, sold) == expected


class TestLot:
    def test_unit_cost_includes_fee(self):
        lot = Lot(
            id="x", ticker="VTI", acquisition_date=date(2024, 1, 1),
            quantity=Decimal("4"), remaining_quantity=Decimal("2"),
            price_per_unit=Decimal("10"), fee=Decimal("2"),
        )
        assert lot.unit_cost == Decimal("10.5")
        assert lot.remaining_cost_basis == Decimal("21")
        assert not lot.is_exhausted

    def test_remaining_cannot_exceed_quantity(self):
        with pytest.raises(ValidationError):
            Lot(
                id="x", ticker="VTI", acquisition_date=date(2024, 1, 1),
                quantity=Decimal("1"), remaining_quantity=Decimal("2"),
                price_per_unit=Decimal("10"),
            )

    def test_negative_remaining_rejected(self):
        with pytest.raises(ValidationError):
            Lot(
                id="x", ticker="VTI", acquisition_date=date(2024, 1, 1),
                quantity=Decimal("1"), remaining_quantity=Decimal("-1"),
                price_per_unit=Decimal("10"),
            )

    def test_lots_are_immutable(self, three_lots):
        with pytest.raises(ValidationError):
            three_lots[0].remaining_quantity = Decimal("0")


class TestTransactions:
    def test_trade_datetime_truncated(self):
        buy = BuyTransaction(
            ticker="VTI", quantity=Decimal("1"), price_per_unit=Decimal("1"),
            trade_date=datetime(2024, 5, 1, 15, 30),
        )
        assert buy.trade_date == date(2024, 5, 1)

    def test_iso_timestamp_string_truncated(self):
        buy = BuyTransaction(
            ticker="VTI", quantity=Decimal("1"), price_per_unit=Decimal("1"),
            trade_date="2024-05-01T09:45:00",
        )
        assert buy.trade_date == date(2024, 5, 1)

    def test_buy_total_cost(self):
        buy = BuyTransaction(
            ticker="VTI", quantity=Decimal("3"), price_per_unit=Decimal("10"),
            trade_date=date(2024, 5, 1), fee=Decimal("1.5"),
        )
        assert buy.total_cost == Decimal("31.5")

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValidationError):
            SellOrder(ticker="VTI", quantity=Decimal("0"), price_per_unit=Decimal("1"), trade_date=date(2024, 5, 1))

    def test_sell_lots_must_cover_quantity(self):
        consumption = LotConsumption(
            lot_id="a", quantity=Decimal("2"), unit_cost=Decimal("10"),
            acquisition_date=date(2023, 1, 1), holding_period=HoldingPeriod.LONG_TERM,
        )
        with pytest.raises(ValidationError):
            SellTransaction(
                ticker="VTI", quantity=Decimal("3"), price_per_unit=Decimal("12"),
                trade_date=date(2024, 5, 1), cost_basis=Decimal("20"), proceeds=Decimal("36"),
                realized_gain=Decimal("16"), holding_period=HoldingPeriod.LONG_TERM,
                lots_used=[consumption],
            )

    def test_discriminated_union(self):
        adapter = TypeAdapter(list[Transaction])
        parsed = adapter.validate_python([
            {"type": "BUY", "ticker": "VTI", "quantity": "1", "price_per_unit": "10", "trade_date": "2024-01-02"},
            {
                "type": "SELL", "ticker": "VTI", "quantity": "1", "price_per_unit": "12",
                "trade_date": "2024-03-02", "cost_basis": "10", "proceeds": "12",
                "realized_gain": "2", "holding_period": "SHORT_TERM",
            },
        ])
        assert isinstance(parsed[0], BuyTransaction)
        assert isinstance(parsed[1], SellTransaction)
        assert parsed[1].is_loss is False

    def test_import_rows_accept_bare_sells(self):
        adapter = TypeAdapter(list[ImportRow])
        [row] = adapter.validate_python([
            {
                "type": "SELL", "ticker": "VTI", "quantity": "1", "price_per_unit": "12",
                "trade_date": "2024-03-02", "method": "HIFO",
            },
        ])
        assert type(row) is SellOrder
        assert row.type == TransactionType.SELL
        assert row.method == LotMethod.HIFO


class TestSelectionSplit:
    def _selection(self, *periods):
        consumed = [
            LotConsumption(
                lot_id=f"lot-{i}", quantity=Decimal("1"), unit_cost=Decimal("10") * (i + 1),
                acquisition_date=date(2023, 1, 1), holding_period=period,
            )
            for i, period in enumerate(periods)
        ]
        return SelectionResult(
            ticker="VTI", method=LotMethod.FIFO, sale_date=date(2025, 1, 1), consumed=consumed,
            cost_basis=sum((c.cost_basis for c in consumed), Decimal("0")),
            quantity_requested=Decimal(len(consumed)), quantity_filled=Decimal(len(consumed)),
            holding_period=HoldingPeriod.SHORT_TERM,
        )

    def test_mixed_selection_splits(self):
        parts = self._selection(HoldingPeriod.LONG_TERM, HoldingPeriod.SHORT_TERM).split_by_holding_period()
        assert parts[HoldingPeriod.LONG_TERM].cost_basis == Decimal("10")
        assert parts[HoldingPeriod.SHORT_TERM].cost_basis == Decimal("20")
        assert all(p.is_complete for p in parts.values())

    def test_single_period_returned_whole(self):
        selection = self._selection(HoldingPeriod.SHORT_TERM, HoldingPeriod.SHORT_TERM)
        assert selection.split_by_holding_period() == {HoldingPeriod.SHORT_TERM: selection}
