"""Ledger, tax, and projection engines."""

from nestegg.engines.dedup import DuplicateDetector, ImportScreen
from nestegg.engines.ledger import LotLedger
from nestegg.engines.lot_matcher import LotMatcher
from nestegg.engines.monte_carlo import (
    MonteCarloEngine,
    box_muller,
    cholesky,
    percentiles,
    success_probability,
)
from nestegg.engines.rates import RateTableResolver, inflate_tree, normalize_filing_status, resolve_status
from nestegg.engines.sale_processor import SaleProcessor
from nestegg.engines.tax import TaxCalculator
from nestegg.engines.wash_sale import WashSaleDetector

__all__ = [
    "DuplicateDetector",
    "ImportScreen",
    "LotLedger",
    "LotMatcher",
    "MonteCarloEngine",
    "RateTableResolver",
    "SaleProcessor",
    "TaxCalculator",
    "WashSaleDetector",
    "box_muller",
    "cholesky",
    "inflate_tree",
    "normalize_filing_status",
    "percentiles",
    "resolve_status",
    "success_probability",
]
