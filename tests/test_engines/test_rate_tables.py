"""Sanity checks on the bundled federal rate tables."""

from decimal import Decimal

import pytest

from nestegg.engines.rate_tables import LATEST_KNOWN_YEAR, RATE_TABLES
from nestegg.models.enums import FilingStatus
from nestegg.models.rates import INFINITY


@pytest.mark.parametrize("year", sorted(RATE_TABLES))
class TestTableShape:
    def test_year_matches_key(self, year):
        assert RATE_TABLES[year].year == year

    @pytest.mark.parametrize("status", list(FilingStatus))
    def test_ordinary_brackets_contiguous(self, year, status):
        brackets = RATE_TABLES[year].ordinary_brackets[status]
        assert brackets[0].min == 0
        assert brackets[-1].max == INFINITY
        for lower, upper in zip(brackets, brackets[1:]):
            assert lower.max == upper.min
            assert lower.rate < upper.rate

    @pytest.mark.parametrize("status", list(FilingStatus))
    def test_ltcg_rates(self, year, status):
        rates = [b.rate for b in RATE_TABLES[year].ltcg_brackets[status]]
        assert rates == [Decimal("0"), Decimal("0.15"), Decimal("0.20")]

    def test_irmaa_tiers_ascend(self, year):
        for brackets in RATE_TABLES[year].irmaa.brackets.values():
            limits = [b.max_income for b in brackets]
            assert limits == sorted(limits)
            assert limits[-1] == INFINITY


def test_latest_known_year():
    assert LATEST_KNOWN_YEAR == 2026


def test_social_security_wage_base():
    assert RATE_TABLES[2025].social_security.wage_base == Decimal("176100")
