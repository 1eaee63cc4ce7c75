"""Tests for rate-table models."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from nestegg.engines.rate_tables import RATE_TABLES
from nestegg.models.enums import FilingStatus
from nestegg.models.rates import INFINITY, Bracket, IrmaaBracket


class TestBracket:
    def test_top_bracket_accepts_infinite_max(self):
        top = Bracket(min=Decimal("626350"), max=INFINITY, rate=Decimal("0.37"))
        assert top.max == INFINITY
        assert top.max > Decimal("1e30")

    def test_rate_above_one_rejected(self):
        with pytest.raises(ValidationError):
            Bracket(min=Decimal("0"), max=Decimal("100"), rate=Decimal("1.5"))

    def test_negative_min_rejected(self):
        with pytest.raises(ValidationError):
            Bracket(min=Decimal("-1"), max=Decimal("100"), rate=Decimal("0.1"))


class TestIrmaaBracket:
    def test_top_tier_accepts_infinite_ceiling(self):
        tier = IrmaaBracket(
            max_income=INFINITY,
            part_b_surcharge=Decimal("443.90"),
            part_d_surcharge=Decimal("85.80"),
        )
        assert tier.max_income == INFINITY


class TestBuiltInTables:
    @pytest.mark.parametrize("year", sorted(RATE_TABLES))
    def test_every_schedule_is_open_ended(self, year):
        table = RATE_TABLES[year]
        for status in FilingStatus:
            assert table.ordinary_brackets[status][-1].max == INFINITY
            assert table.ltcg_brackets[status][-1].max == INFINITY
        for tiers in table.irmaa.brackets.values():
            assert tiers[-1].max_income == INFINITY
