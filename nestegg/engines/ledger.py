"""Lot ledger: owns lots and transaction history for a portfolio."""

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import date, timedelta
from decimal import Decimal

from nestegg.engines.dedup import DuplicateDetector, ImportScreen
from nestegg.engines.lot_matcher import ExplicitSelection, LotMatcher
from nestegg.engines.sale_processor import SaleProcessor
from nestegg.engines.wash_sale import WashSaleDetector
from nestegg.exceptions import DataValidationError, LotNotFoundError
from nestegg.models.enums import HoldingPeriod, LotMethod
from nestegg.models.lots import (
    BuyTransaction,
    HarvestCandidate,
    Lot,
    Position,
    SelectionResult,
    SellOrder,
    SellTransaction,
)

logger = logging.getLogger(__name__)

PriceLookup = Callable[[str], Decimal | None]


class LotLedger:
    """Exclusive owner of lot state.

    Lots are created by ``record_buy`` and reduced only through the sale
    processor. Exhausted lots are kept with zero remaining quantity so
    history and duplicate checks can still see them. Sells of one ticker
    are serialized by a per-ticker lock.
    """

    def __init__(
        self,
        lots: Iterable[Lot] = (),
        transactions: Iterable[BuyTransaction | SellTransaction] = (),
        matcher: LotMatcher | None = None,
        wash_detector: WashSaleDetector | None = None,
        duplicate_detector: DuplicateDetector | None = None,
    ) -> None:
        self._lots: dict[str, Lot] = {lot.id: lot for lot in lots}
        self._transactions: list[BuyTransaction | SellTransaction] = list(transactions)
        self.matcher = matcher or LotMatcher()
        self.wash_detector = wash_detector or WashSaleDetector()
        self.duplicate_detector = duplicate_detector or DuplicateDetector()
        self.processor = SaleProcessor(self, self.wash_detector)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def lots(self) -> list[Lot]:
        return list(self._lots.values())

    @property
    def transactions(self) -> list[BuyTransaction | SellTransaction]:
        return list(self._transactions)

    def lot(self, lot_id: str) -> Lot:
        try:
            return self._lots[lot_id]
        except KeyError:
            raise LotNotFoundError(lot_id) from None

    def lots_for(self, ticker: str, include_exhausted: bool = False) -> list[Lot]:
        key = ticker.upper()
        return [
            lot for lot in self._lots.values()
            if lot.ticker.upper() == key and (include_exhausted or lot.remaining_quantity > 0)
        ]

    def buys(self, ticker: str | None = None) -> list[BuyTransaction]:
        return [
            t for t in self._transactions
            if isinstance(t, BuyTransaction) and (ticker is None or t.ticker.upper() == ticker.upper())
        ]

    def sells(self, ticker: str | None = None) -> list[SellTransaction]:
        return [
            t for t in self._transactions
            if isinstance(t, SellTransaction) and (ticker is None or t.ticker.upper() == ticker.upper())
        ]

    def tickers(self) -> list[str]:
        return sorted({lot.ticker.upper() for lot in self._lots.values()})

    def available_quantity(self, ticker: str, as_of: date | None = None) -> Decimal:
        return sum(
            (
                lot.remaining_quantity for lot in self.lots_for(ticker)
                if as_of is None or lot.acquisition_date <= as_of
            ),
            Decimal("0"),
        )

    def weighted_average_cost(self, ticker: str) -> Decimal:
        """Blended unit cost across the open lots of ``ticker`` (0 if none are open)."""
        open_lots = self.lots_for(ticker)
        quantity = sum((lot.remaining_quantity for lot in open_lots), Decimal("0"))
        if quantity == 0:
            return Decimal("0")
        return sum((lot.remaining_cost_basis for lot in open_lots), Decimal("0")) / quantity

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def record_buy(self, buy: BuyTransaction) -> Lot:
        """Open a lot for a purchase and append the buy to history."""
        lot_id = buy.lot_id or buy.id
        if lot_id in self._lots:
            raise DataValidationError("lot_id", f"lot {lot_id} already exists")
        lot = Lot(
            id=lot_id,
            ticker=buy.ticker.upper(),
            acquisition_date=buy.trade_date,
            quantity=buy.quantity,
            remaining_quantity=buy.quantity,
            price_per_unit=buy.price_per_unit,
            fee=buy.fee,
            tax_treatment=buy.tax_treatment,
            account_id=buy.account_id,
        )
        with self._lock_for(lot.ticker):
            self._lots[lot.id] = lot
            recorded = buy.model_copy(update={"lot_id": lot.id})
            self._transactions.append(recorded)
            self._flag_prior_wash_sales(recorded)
        return lot

    def select(
        self,
        ticker: str,
        quantity: Decimal,
        method: LotMethod = LotMethod.FIFO,
        sale_date: date | None = None,
        explicit_selection: ExplicitSelection | None = None,
    ) -> SelectionResult:
        """Preview which lots a sale would consume without changing anything."""
        return self.matcher.select_lots(
            self.lots_for(ticker), ticker.upper(), quantity, method, sale_date, explicit_selection
        )

    def sell(
        self,
        ticker: str,
        quantity: Decimal,
        sale_price: Decimal,
        sale_date: date,
        method: LotMethod = LotMethod.FIFO,
        fee: Decimal = Decimal("0"),
        explicit_selection: ExplicitSelection | None = None,
        split_holding_periods: bool = False,
        **metadata,
    ) -> list[SellTransaction]:
        """Select and finalize a sale atomically with respect to other sells of ``ticker``.

        Returns one sell, or one per holding period when
        ``split_holding_periods`` is set and the lots span both.

        Raises:
            IncompleteSaleError: Not enough eligible quantity.
            InvalidSpecificSelectionError: Bad SPECIFIC_ID lot reference.
        """
        with self._lock_for(ticker):
            selection = self.select(ticker, quantity, method, sale_date, explicit_selection)
            if not split_holding_periods:
                return [self.processor.finalize(selection, sale_price, fee, **metadata)]
            lots_before = {lot.id: lot for lot in self.lots_for(ticker, include_exhausted=True)}
            sells_before = {id(t) for t in self.sells(ticker)}
            try:
                return self.processor.finalize_split(selection, sale_price, fee, **metadata)
            except Exception:
                # Drop the first holding-period half if the second one fails
                self._lots.update(lots_before)
                self._transactions[:] = [
                    t for t in self._transactions
                    if not isinstance(t, SellTransaction)
                    or t.ticker.upper() != ticker.upper()
                    or id(t) in sells_before
                ]
                raise

    def apply(
        self,
        transactions: Iterable[BuyTransaction | SellOrder],
        default_method: LotMethod = LotMethod.FIFO,
    ) -> list[BuyTransaction | SellTransaction]:
        """Replay a batch in date order (buys before sells on the same day).

        Sells are re-derived against the ledger's lots; any basis they carry
        is replaced. The batch is all-or-nothing: if any row fails, the
        ledger is restored to its state before the call and the error is
        re-raised. Returns the recorded transactions.
        """
        ordered = sorted(
            transactions,
            key=lambda t: (t.trade_date, 0 if isinstance(t, BuyTransaction) else 1),
        )
        snapshot = self._snapshot()
        try:
            return self._replay(ordered, default_method)
        except Exception:
            self._restore(snapshot)
            logger.warning("Batch of %d transaction(s) rolled back", len(ordered))
            raise

    def _replay(
        self,
        ordered: list[BuyTransaction | SellOrder],
        default_method: LotMethod,
    ) -> list[BuyTransaction | SellTransaction]:
        recorded: list[BuyTransaction | SellTransaction] = []
        for txn in ordered:
            if isinstance(txn, BuyTransaction):
                self.record_buy(txn)
                recorded.append(self._transactions[-1])
                continue
            method = txn.method or default_method
            explicit = txn.lot_selection
            if explicit is None and isinstance(txn, SellTransaction) and method == LotMethod.SPECIFIC_ID:
                explicit = [(c.lot_id, c.quantity) for c in txn.lots_used]
            recorded.extend(
                self.sell(
                    txn.ticker,
                    txn.quantity,
                    txn.price_per_unit,
                    txn.trade_date,
                    method=method,
                    fee=txn.fee,
                    explicit_selection=explicit,
                    id=txn.id,
                    account_id=txn.account_id,
                    external_id=txn.external_id,
                    source=txn.source,
                )
            )
        # Later buys in the batch may have flagged earlier sells
        latest = {t.id: t for t in self._transactions}
        return [latest.get(t.id, t) for t in recorded]

    def import_transactions(
        self,
        incoming: list[BuyTransaction | SellOrder],
        default_method: LotMethod = LotMethod.FIFO,
    ) -> ImportScreen:
        """Drop duplicates of recorded history, then replay the rest."""
        screen = self.duplicate_detector.screen(self.transactions, incoming)
        self.apply(screen.unique, default_method)
        logger.info(
            "Imported %d transaction(s), skipped %d duplicate(s)",
            len(screen.unique), len(screen.duplicates),
        )
        return screen

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    def positions(self, price_lookup: PriceLookup | None = None) -> list[Position]:
        positions: list[Position] = []
        for ticker in self.tickers():
            quantity = self.available_quantity(ticker)
            if quantity == 0:
                continue
            cost_basis = sum((lot.remaining_cost_basis for lot in self.lots_for(ticker)), Decimal("0"))
            positions.append(
                Position(
                    ticker=ticker,
                    quantity=quantity,
                    cost_basis=cost_basis,
                    average_cost=cost_basis / quantity,
                    current_price=price_lookup(ticker) if price_lookup else None,
                )
            )
        return positions

    def harvest_candidates(self, price_lookup: PriceLookup, as_of: date) -> list[HarvestCandidate]:
        """Open lots priced below basis, largest loss first.

        ``wash_sale_risk`` marks lots whose ticker was bought in the 30 days
        before ``as_of``; selling now at a loss would trip the wash sale rule.
        """
        candidates: list[HarvestCandidate] = []
        window = timedelta(days=self.wash_detector.window_days)
        for ticker in self.tickers():
            price = price_lookup(ticker)
            if price is None:
                continue
            recent_buy = any(as_of - window <= b.trade_date <= as_of for b in self.buys(ticker))
            for lot in self.lots_for(ticker):
                if lot.acquisition_date > as_of:
                    continue
                market_value = lot.remaining_quantity * price
                if market_value >= lot.remaining_cost_basis:
                    continue
                candidates.append(
                    HarvestCandidate(
                        lot_id=lot.id,
                        ticker=ticker,
                        quantity=lot.remaining_quantity,
                        cost_basis=lot.remaining_cost_basis,
                        market_value=market_value,
                        holding_period=lot.holding_period_on(as_of),
                        wash_sale_risk=recent_buy,
                    )
                )
        return sorted(candidates, key=lambda c: c.unrealized_loss, reverse=True)

    def realized_gains(self, tax_year: int | None = None) -> dict[HoldingPeriod, Decimal]:
        totals = {HoldingPeriod.SHORT_TERM: Decimal("0"), HoldingPeriod.LONG_TERM: Decimal("0")}
        for sell in self.sells():
            if tax_year is None or sell.trade_date.year == tax_year:
                totals[sell.holding_period] += sell.realized_gain
        return totals

    # ------------------------------------------------------------------
    # Internal, used by SaleProcessor
    # ------------------------------------------------------------------

    def _lock_for(self, ticker: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(ticker.upper(), threading.Lock())

    def _consume_lot(self, lot_id: str, quantity: Decimal) -> Lot:
        lot = self.lot(lot_id)
        remaining = lot.remaining_quantity - quantity
        if remaining < 0:
            raise DataValidationError(
                "quantity", f"cannot take {quantity} from lot {lot_id} holding {lot.remaining_quantity}"
            )
        updated = lot.model_copy(update={"remaining_quantity": remaining})
        self._lots[lot_id] = updated
        return updated

    def _record(self, txn: BuyTransaction | SellTransaction) -> None:
        self._transactions.append(txn)

    def _flag_prior_wash_sales(self, buy: BuyTransaction) -> None:
        """Mark loss sells already on the books that ``buy`` replaces within the window."""
        for i, txn in enumerate(self._transactions):
            if not isinstance(txn, SellTransaction) or txn.wash_sale:
                continue
            if self.wash_detector.check(txn.ticker, txn.trade_date, txn.realized_gain, [buy]):
                self._transactions[i] = txn.model_copy(update={"wash_sale": True})
                logger.warning(
                    "Purchase of %s on %s falls within %d days of loss sale %s (possible wash sale)",
                    buy.ticker, buy.trade_date, self.wash_detector.window_days, txn.id,
                )

    def _snapshot(self) -> tuple[dict[str, Lot], list[BuyTransaction | SellTransaction]]:
        return dict(self._lots), list(self._transactions)

    def _restore(self, snapshot: tuple[dict[str, Lot], list[BuyTransaction | SellTransaction]]) -> None:
        lots, transactions = snapshot
        self._lots.clear()
        self._lots.update(lots)
        self._transactions[:] = transactions
