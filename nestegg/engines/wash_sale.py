"""Wash sale detection (IRC Section 1091).

Advisory only: a flagged sale is still recorded with its full loss.
"""

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from nestegg.models.lots import BuyTransaction, SellTransaction

WASH_SALE_WINDOW_DAYS = 30


class WashSaleDetector:
    """Flags loss sales with a purchase of the same ticker within the window."""

    def __init__(self, window_days: int = WASH_SALE_WINDOW_DAYS) -> None:
        self.window_days = window_days

    def replacement_buys(
        self, ticker: str, sale_date: date, buys: Iterable[BuyTransaction]
    ) -> list[BuyTransaction]:
        """Buys of ``ticker`` within ``window_days`` on either side of the sale, inclusive."""
        window_start = sale_date - timedelta(days=self.window_days)
        window_end = sale_date + timedelta(days=self.window_days)
        return [
            buy
            for buy in buys
            if buy.ticker.upper() == ticker.upper()
            and window_start <= buy.trade_date <= window_end
        ]

    def check(
        self,
        ticker: str,
        sale_date: date,
        realized_gain: Decimal,
        buys: Iterable[BuyTransaction],
    ) -> bool:
        if realized_gain >= 0:
            return False
        return bool(self.replacement_buys(ticker, sale_date, buys))

    def scan(self, transactions: Iterable[BuyTransaction | SellTransaction]) -> list[SellTransaction]:
        """Return every loss sale in a transaction history that trips the window."""
        history = list(transactions)
        buys = [t for t in history if isinstance(t, BuyTransaction)]
        return [
            t
            for t in history
            if isinstance(t, SellTransaction)
            and self.check(t.ticker, t.trade_date, t.realized_gain, buys)
        ]
