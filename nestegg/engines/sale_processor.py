"""Sale processor: turns a lot selection into a recorded sell transaction."""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from nestegg.engines.wash_sale import WashSaleDetector
from nestegg.exceptions import IncompleteSaleError
from nestegg.models.lots import SelectionResult, SellTransaction

if TYPE_CHECKING:
    from nestegg.engines.ledger import LotLedger

logger = logging.getLogger(__name__)


class SaleProcessor:
    """The only writer of lot remaining quantities.

    ``finalize`` checks that a selection is complete and still current,
    decrements the consumed lots, and records the resulting sell on the
    ledger.
    """

    def __init__(self, ledger: "LotLedger", wash_detector: WashSaleDetector | None = None) -> None:
        self.ledger = ledger
        self.wash_detector = wash_detector or WashSaleDetector()

    def finalize(
        self,
        selection: SelectionResult,
        sale_price: Decimal,
        fee: Decimal = Decimal("0"),
        **metadata,
    ) -> SellTransaction:
        """Realize a sale from a complete selection.

        Args:
            selection: Result of LotMatcher.select_lots.
            sale_price: Price per unit received.
            fee: Total commission/fee, deducted from proceeds.
            **metadata: Optional transaction fields (id, account_id,
                external_id, source).

        Raises:
            IncompleteSaleError: The selection does not cover the requested
                quantity, or a consumed lot no longer holds enough units.
        """
        self._check_covered(selection)

        quantity = selection.quantity_filled
        proceeds = quantity * Decimal(sale_price) - Decimal(fee)
        realized_gain = proceeds - selection.cost_basis

        wash_sale = self.wash_detector.check(
            selection.ticker, selection.sale_date, realized_gain, self.ledger.buys(selection.ticker)
        )
        if wash_sale:
            logger.warning(
                "Loss sale of %s on %s has a purchase within %d days (possible wash sale)",
                selection.ticker, selection.sale_date, self.wash_detector.window_days,
            )

        sell = SellTransaction(
            ticker=selection.ticker,
            quantity=quantity,
            price_per_unit=Decimal(sale_price),
            trade_date=selection.sale_date,
            fee=Decimal(fee),
            method=selection.method,
            cost_basis=selection.cost_basis,
            proceeds=proceeds,
            realized_gain=realized_gain,
            holding_period=selection.holding_period,
            lots_used=selection.consumed,
            wash_sale=wash_sale,
            **metadata,
        )
        # Lots change only once the sell itself has validated
        for consumption in selection.consumed:
            self.ledger._consume_lot(consumption.lot_id, consumption.quantity)
        self.ledger._record(sell)
        logger.debug("Recorded sale %s: %s %s, gain %s", sell.id, quantity, sell.ticker, realized_gain)
        return sell

    def finalize_split(
        self,
        selection: SelectionResult,
        sale_price: Decimal,
        fee: Decimal = Decimal("0"),
        **metadata,
    ) -> list[SellTransaction]:
        """Realize a sale as one sell per holding period, splitting the fee by quantity."""
        self._check_covered(selection)
        parts = selection.split_by_holding_period()
        if len(parts) <= 1:
            return [self.finalize(selection, sale_price, fee, **metadata)]

        fee = Decimal(fee)
        sells: list[SellTransaction] = []
        allocated = Decimal("0")
        for i, (period, part) in enumerate(parts.items()):
            if i == len(parts) - 1:
                part_fee = fee - allocated
            else:
                part_fee = fee * part.quantity_filled / selection.quantity_filled
                allocated += part_fee
            part_metadata = dict(metadata)
            if "id" in metadata:
                part_metadata["id"] = f"{metadata['id']}-{period.value.lower()}"
            sells.append(self.finalize(part, sale_price, part_fee, **part_metadata))
        return sells

    def _check_covered(self, selection: SelectionResult) -> None:
        if not selection.is_complete:
            raise IncompleteSaleError(
                selection.ticker, selection.quantity_requested, selection.quantity_filled
            )
        for consumption in selection.consumed:
            lot = self.ledger.lot(consumption.lot_id)
            if lot.remaining_quantity < consumption.quantity:
                # Selection went stale: another sale consumed this lot in between
                raise IncompleteSaleError(
                    selection.ticker, selection.quantity_requested,
                    selection.quantity_filled - (consumption.quantity - lot.remaining_quantity),
                )
