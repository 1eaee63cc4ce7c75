"""Rate table resolution: year lookup, status lookup, and inflation projection."""

import logging
import math
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, TypeVar

from pydantic import BaseModel

from nestegg.engines.rate_tables import FALLBACK_INFLATION
from nestegg.exceptions import NoRateDataError
from nestegg.models.enums import FilingStatus
from nestegg.models.rates import RateTable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Keys that are never inflated when walking plain mappings
DEFAULT_FIXED_KEYS: frozenset[str] = frozenset({"rate", "tax_rate", "year", "label"})

_STATUS_ALIASES: dict[str, FilingStatus] = {
    "single": FilingStatus.SINGLE,
    "married": FilingStatus.MFJ,
    "mfj": FilingStatus.MFJ,
    "joint": FilingStatus.MFJ,
    "married_filing_jointly": FilingStatus.MFJ,
    "mfs": FilingStatus.MFS,
    "married_filing_separately": FilingStatus.MFS,
    "hoh": FilingStatus.HOH,
    "head_of_household": FilingStatus.HOH,
}


def normalize_filing_status(status: FilingStatus | str | None) -> FilingStatus:
    """Map loose status strings onto FilingStatus; unknown values become SINGLE."""
    if isinstance(status, FilingStatus):
        return status
    if not status:
        return FilingStatus.SINGLE
    key = str(status).strip().lower().replace("-", "_").replace(" ", "_")
    return _STATUS_ALIASES.get(key, FilingStatus.SINGLE)


def _status_keys(status: FilingStatus) -> list[Any]:
    keys: list[Any] = [status, status.value.lower()]
    if status == FilingStatus.MFJ:
        keys.append("married")
    return keys


def resolve_status(mapping: Mapping[Any, T], status: FilingStatus | str | None) -> T:
    """Pick the entry for a filing status, falling back to the SINGLE entry.

    Accepts both FilingStatus-keyed tables and raw tables keyed by lowercase
    strings (where ``married`` and ``married_filing_jointly`` are synonyms).
    """
    normalized = normalize_filing_status(status)
    for key in _status_keys(normalized) + _status_keys(FilingStatus.SINGLE):
        if key in mapping:
            return mapping[key]
    raise KeyError(f"No entry for {normalized} or SINGLE")


def _round_unit(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def inflate_tree(node: T, factor: Decimal, fixed_keys: frozenset[str] = DEFAULT_FIXED_KEYS) -> T:
    """Multiply every finite numeric leaf by ``factor``, rounded to the whole unit.

    Walks pydantic models (skipping each model's ``fixed_fields``), mappings
    (skipping ``fixed_keys``), lists and tuples. Booleans, infinities, and
    non-numeric leaves come back unchanged.
    """
    if isinstance(node, BaseModel):
        fixed = getattr(type(node), "fixed_fields", frozenset())
        updates = {
            name: inflate_tree(getattr(node, name), factor, fixed_keys)
            for name in type(node).model_fields
            if name not in fixed
        }
        return node.model_copy(update=updates)
    if isinstance(node, Mapping):
        return {
            key: value if key in fixed_keys else inflate_tree(value, factor, fixed_keys)
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [inflate_tree(item, factor, fixed_keys) for item in node]
    if isinstance(node, tuple):
        return tuple(inflate_tree(item, factor, fixed_keys) for item in node)
    if isinstance(node, bool):
        return node
    if isinstance(node, Decimal):
        return _round_unit(node * factor) if node.is_finite() else node
    if isinstance(node, int):
        return int(_round_unit(Decimal(node) * factor))
    if isinstance(node, float):
        if not math.isfinite(node):
            return node
        return float(_round_unit(Decimal(str(node)) * factor))
    return node


class RateTableResolver:
    """Looks up a year's table, projecting unknown years by compound inflation."""

    def __init__(self, fallback_inflation: Decimal = FALLBACK_INFLATION) -> None:
        self.fallback_inflation = fallback_inflation
        self._cache: dict[tuple[int, int, Decimal], tuple[Mapping, Any]] = {}

    def resolve(
        self,
        table_by_year: Mapping[int, T],
        year: int,
        inflation_rate: Decimal | float | None = None,
    ) -> T:
        """Return the table for ``year``.

        Known years come back as the literal entry. Later years inflate the
        latest year at or before ``year``; years before every entry deflate
        the earliest one.
        """
        if not table_by_year:
            raise NoRateDataError(year)
        if year in table_by_year:
            return table_by_year[year]

        earlier = [y for y in table_by_year if y <= year]
        base_year = max(earlier) if earlier else min(table_by_year)
        rate = self.fallback_inflation if inflation_rate is None else Decimal(str(inflation_rate))

        key = (id(table_by_year), year, rate)
        cached = self._cache.get(key)
        if cached is not None and cached[0] is table_by_year:
            return cached[1]

        delta = year - base_year
        factor = (Decimal("1") + rate) ** delta
        logger.debug(
            "Projecting rate table %d from %d at %s/yr (factor %s)", year, base_year, rate, factor
        )
        resolved = inflate_tree(table_by_year[base_year], factor)
        if isinstance(resolved, RateTable):
            resolved = resolved.model_copy(update={"year": year})

        self._cache[key] = (table_by_year, resolved)
        return resolved
