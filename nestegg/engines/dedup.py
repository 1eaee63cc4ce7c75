"""Duplicate transaction detection for bulk imports."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from nestegg.models.lots import BuyTransaction, SellOrder

logger = logging.getLogger(__name__)

MATCH_TOLERANCE = Decimal("0.000001")

AnyTransaction = BuyTransaction | SellOrder


@dataclass
class ImportScreen:
    unique: list[AnyTransaction] = field(default_factory=list)
    duplicates: list[AnyTransaction] = field(default_factory=list)


class DuplicateDetector:
    """Matches incoming rows against recorded transactions and each other."""

    def __init__(self, tolerance: Decimal = MATCH_TOLERANCE) -> None:
        self.tolerance = tolerance

    @staticmethod
    def _label(txn: AnyTransaction) -> str | None:
        return txn.source or txn.account_id

    def is_duplicate(self, a: AnyTransaction, b: AnyTransaction) -> bool:
        """Same external id, or same ticker/type/quantity/price/day/label."""
        if a.external_id and b.external_id and a.external_id == b.external_id:
            return True
        return (
            a.ticker.upper() == b.ticker.upper()
            and a.type == b.type
            and abs(a.quantity - b.quantity) <= self.tolerance
            and abs(a.price_per_unit - b.price_per_unit) <= self.tolerance
            and a.trade_date == b.trade_date
            and self._label(a) == self._label(b)
        )

    def screen(
        self, existing: list[AnyTransaction], incoming: list[AnyTransaction]
    ) -> ImportScreen:
        """Split ``incoming`` into rows to import and rows already present."""
        result = ImportScreen()
        for txn in incoming:
            seen = existing + result.unique
            if any(self.is_duplicate(txn, other) for other in seen):
                result.duplicates.append(txn)
            else:
                result.unique.append(txn)
        if result.duplicates:
            logger.info("Skipping %d duplicate transaction(s)", len(result.duplicates))
        return result
