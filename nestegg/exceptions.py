"""Custom exceptions for Nestegg."""

from decimal import Decimal


class PlanningError(Exception):
    """Base exception for ledger, tax, and projection errors."""


class NoRateDataError(PlanningError):
    """Raised when a rate lookup is made against an empty table."""

    def __init__(self, year: int, table: str = "rate table"):
        self.year = year
        self.table = table
        super().__init__(f"No {table} data available to resolve year {year}")


class IncompleteSaleError(PlanningError):
    """Raised when the eligible lots cannot cover a requested sale."""

    def __init__(self, ticker: str, requested: Decimal, filled: Decimal):
        self.ticker = ticker
        self.requested = requested
        self.filled = filled
        super().__init__(
            f"Insufficient {ticker} lots for sale: "
            f"requested={requested}, available={filled}"
        )

    @property
    def unfilled(self) -> Decimal:
        return self.requested - self.filled


class InvalidSpecificSelectionError(PlanningError):
    """Raised when a specific-ID sale names a missing or exhausted lot."""

    def __init__(self, lot_id: str, reason: str):
        self.lot_id = lot_id
        self.reason = reason
        super().__init__(f"Invalid lot selection {lot_id}: {reason}")


class LotNotFoundError(PlanningError):
    """Raised when the ledger is asked for a lot it does not own."""

    def __init__(self, lot_id: str):
        self.lot_id = lot_id
        super().__init__(f"Lot not found: {lot_id}")


class DataValidationError(PlanningError):
    """Raised when input data fails validation."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error on '{field}': {message}")
