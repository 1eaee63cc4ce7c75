"""Lot selection engine: FIFO, LIFO, HIFO, LOFO, average cost, and specific identification."""

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import ROUND_DOWN, Decimal

from nestegg.exceptions import DataValidationError, InvalidSpecificSelectionError
from nestegg.models.enums import HoldingPeriod, LotMethod
from nestegg.models.lots import Lot, LotConsumption, SelectionResult

logger = logging.getLogger(__name__)

QUANTITY_QUANTUM = Decimal("0.00000001")

ExplicitSelection = Mapping[str, Decimal] | Iterable[tuple[str, Decimal]]


class LotMatcher:
    """Decides which lots a sale consumes. Never mutates the lots it is given."""

    def select_lots(
        self,
        lots: list[Lot],
        ticker: str,
        quantity: Decimal,
        method: LotMethod = LotMethod.FIFO,
        as_of_date: date | None = None,
        explicit_selection: ExplicitSelection | None = None,
    ) -> SelectionResult:
        """Select lots to cover a sale of ``quantity`` units of ``ticker``.

        Args:
            lots: Candidate lots; other tickers and exhausted lots are ignored.
            ticker: Asset being sold.
            quantity: Units to sell.
            method: Lot accounting method.
            as_of_date: Sale date. Lots acquired after it are ineligible.
            explicit_selection: (lot id, quantity) pairs for SPECIFIC_ID.

        Returns:
            A SelectionResult. ``quantity_unfilled > 0`` means the eligible
            lots could not cover the sale and it must not be finalized.
        """
        quantity = Decimal(quantity)
        if quantity <= 0:
            raise DataValidationError("quantity", f"sale quantity must be positive, got {quantity}")
        sale_date = as_of_date or date.today()
        eligible = self.eligible_lots(lots, ticker, sale_date)

        if method == LotMethod.AVERAGE:
            result = self._select_average(eligible, ticker, quantity, sale_date)
        elif method == LotMethod.SPECIFIC_ID:
            if explicit_selection is None:
                raise DataValidationError(
                    "explicit_selection", "SPECIFIC_ID sales require an explicit lot list"
                )
            ordered = self._order_specific(lots, ticker, sale_date, explicit_selection)
            result = self._consume(ordered, ticker, quantity, method, sale_date)
        else:
            ordered = [(lot, lot.remaining_quantity) for lot in self._order(eligible, method)]
            result = self._consume(ordered, ticker, quantity, method, sale_date)

        if not result.is_complete:
            logger.info(
                "Selection for %s %s is short by %s units", quantity, ticker, result.quantity_unfilled
            )
        return result

    @staticmethod
    def eligible_lots(lots: Iterable[Lot], ticker: str, as_of_date: date) -> list[Lot]:
        key = ticker.upper()
        return [
            lot
            for lot in lots
            if lot.ticker.upper() == key
            and lot.remaining_quantity > 0
            and lot.acquisition_date <= as_of_date
        ]

    @staticmethod
    def _order(lots: list[Lot], method: LotMethod) -> list[Lot]:
        # sorted() is stable, so ties keep their original order in every method
        if method == LotMethod.FIFO:
            return sorted(lots, key=lambda lot: lot.acquisition_date)
        if method == LotMethod.LIFO:
            return sorted(lots, key=lambda lot: lot.acquisition_date, reverse=True)
        if method == LotMethod.HIFO:
            return sorted(lots, key=lambda lot: lot.price_per_unit, reverse=True)
        if method == LotMethod.LOFO:
            return sorted(lots, key=lambda lot: lot.price_per_unit)
        raise DataValidationError("method", f"{method} has no lot ordering")

    @staticmethod
    def _order_specific(
        lots: list[Lot],
        ticker: str,
        sale_date: date,
        explicit_selection: ExplicitSelection,
    ) -> list[tuple[Lot, Decimal]]:
        """Validate a caller's (lot id, quantity) picks, capping each at the lot's remainder."""
        pairs = explicit_selection.items() if isinstance(explicit_selection, Mapping) else explicit_selection
        by_id = {lot.id: lot for lot in lots if lot.ticker.upper() == ticker.upper()}
        ordered: list[tuple[Lot, Decimal]] = []

        for lot_id, requested in pairs:
            lot = by_id.get(lot_id)
            if lot is None:
                raise InvalidSpecificSelectionError(lot_id, f"no {ticker} lot with this id")
            if lot.remaining_quantity <= 0:
                raise InvalidSpecificSelectionError(lot_id, "lot has no remaining quantity")
            if lot.acquisition_date > sale_date:
                raise InvalidSpecificSelectionError(lot_id, "lot was acquired after the sale date")
            requested = Decimal(requested)
            if requested > lot.remaining_quantity:
                logger.warning(
                    "Capping lot %s selection at %s (requested %s)",
                    lot_id, lot.remaining_quantity, requested,
                )
            ordered.append((lot, min(requested, lot.remaining_quantity)))

        return ordered

    @staticmethod
    def _consume(
        ordered: list[tuple[Lot, Decimal]],
        ticker: str,
        quantity: Decimal,
        method: LotMethod,
        sale_date: date,
    ) -> SelectionResult:
        """Greedily draw from ordered (lot, available) pairs until the sale is covered."""
        remaining = quantity
        consumed: list[LotConsumption] = []

        for lot, available in ordered:
            if remaining <= 0:
                break
            taken = min(available, remaining)
            if taken <= 0:
                continue
            consumed.append(
                LotConsumption(
                    lot_id=lot.id,
                    quantity=taken,
                    unit_cost=lot.unit_cost,
                    acquisition_date=lot.acquisition_date,
                    holding_period=lot.holding_period_on(sale_date),
                )
            )
            remaining -= taken

        holding_period = None
        if consumed:
            # A sale touching any short-term lot is reported short-term as a whole
            periods = {c.holding_period for c in consumed}
            holding_period = (
                HoldingPeriod.SHORT_TERM if HoldingPeriod.SHORT_TERM in periods
                else HoldingPeriod.LONG_TERM
            )

        return SelectionResult(
            ticker=ticker,
            method=method,
            sale_date=sale_date,
            consumed=consumed,
            cost_basis=sum((c.cost_basis for c in consumed), Decimal("0")),
            quantity_requested=quantity,
            quantity_filled=quantity - remaining,
            holding_period=holding_period,
        )

    @staticmethod
    def _select_average(
        eligible: list[Lot], ticker: str, quantity: Decimal, sale_date: date
    ) -> SelectionResult:
        """Draw proportionally from every eligible lot at one blended unit cost."""
        total_quantity = sum((lot.remaining_quantity for lot in eligible), Decimal("0"))
        if total_quantity == 0:
            return SelectionResult(
                ticker=ticker, method=LotMethod.AVERAGE, sale_date=sale_date, quantity_requested=quantity
            )

        total_cost = sum((lot.remaining_cost_basis for lot in eligible), Decimal("0"))
        blended = total_cost / total_quantity
        filled = min(quantity, total_quantity)

        if filled == total_quantity:
            shares = [lot.remaining_quantity for lot in eligible]
            cost_basis = total_cost
        else:
            shares = [
                (lot.remaining_quantity * filled / total_quantity).quantize(
                    QUANTITY_QUANTUM, rounding=ROUND_DOWN
                )
                for lot in eligible[:-1]
            ]
            shares.append(min(filled - sum(shares, Decimal("0")), eligible[-1].remaining_quantity))
            cost_basis = total_cost * filled / total_quantity

        consumed = [
            LotConsumption(
                lot_id=lot.id,
                quantity=share,
                unit_cost=blended,
                acquisition_date=lot.acquisition_date,
                holding_period=lot.holding_period_on(sale_date),
            )
            for lot, share in zip(eligible, shares)
            if share > 0
        ]

        long_term_quantity = sum(
            (lot.remaining_quantity for lot in eligible
             if lot.holding_period_on(sale_date) == HoldingPeriod.LONG_TERM),
            Decimal("0"),
        )
        holding_period = (
            HoldingPeriod.LONG_TERM if long_term_quantity * 2 > total_quantity
            else HoldingPeriod.SHORT_TERM
        )

        return SelectionResult(
            ticker=ticker,
            method=LotMethod.AVERAGE,
            sale_date=sale_date,
            consumed=consumed,
            cost_basis=cost_basis,
            quantity_requested=quantity,
            quantity_filled=sum((c.quantity for c in consumed), Decimal("0")),
            holding_period=holding_period,
        )
