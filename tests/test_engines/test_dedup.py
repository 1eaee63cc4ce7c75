"""Tests for import duplicate detection."""

from datetime import date
from decimal import Decimal

from nestegg.engines.dedup import DuplicateDetector
from nestegg.models.lots import BuyTransaction, SellOrder


def _buy(**overrides) -> BuyTransaction:
    fields = dict(
        ticker="VTI",
        quantity=Decimal("10"),
        price_per_unit=Decimal("100"),
        trade_date=date(2024, 5, 1),
        source="brokerage.csv",
    )
    fields.update(overrides)
    return BuyTransaction(**fields)


class TestIsDuplicate:
    def setup_method(self):
        self.detector = DuplicateDetector()

    def test_identical_rows(self):
        assert self.detector.is_duplicate(_buy(), _buy())

    def test_within_tolerance(self):
        assert self.detector.is_duplicate(_buy(), _buy(price_per_unit=Decimal("100.0000005")))

    def test_outside_tolerance(self):
        assert not self.detector.is_duplicate(_buy(), _buy(quantity=Decimal("10.01")))

    def test_different_day(self):
        assert not self.detector.is_duplicate(_buy(), _buy(trade_date=date(2024, 5, 2)))

    def test_different_source(self):
        assert not self.detector.is_duplicate(_buy(), _buy(source="other.csv"))

    def test_buy_and_sell_never_match(self):
        sell = SellOrder(
            ticker="VTI",
            quantity=Decimal("10"),
            price_per_unit=Decimal("100"),
            trade_date=date(2024, 5, 1),
            source="brokerage.csv",
        )
        assert not self.detector.is_duplicate(_buy(), sell)

    def test_external_id_wins(self):
        a = _buy(external_id="T-1")
        b = _buy(external_id="T-1", price_per_unit=Decimal("101"), trade_date=date(2024, 6, 1))
        assert self.detector.is_duplicate(a, b)

    def test_ticker_case_ignored(self):
        assert self.detector.is_duplicate(_buy(), _buy(ticker="vti"))


class TestScreen:
    def test_splits_against_existing_and_batch(self):
        existing = [_buy()]
        incoming = [
            _buy(),
            _buy(trade_date=date(2024, 7, 1)),
            _buy(trade_date=date(2024, 7, 1)),
        ]
        screen = DuplicateDetector().screen(existing, incoming)
        assert screen.unique == [incoming[1]]
        assert screen.duplicates == [incoming[0], incoming[2]]

    def test_empty_incoming(self):
        screen = DuplicateDetector().screen([_buy()], [])
        assert screen.unique == []
        assert screen.duplicates == []
