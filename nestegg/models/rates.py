"""Typed schema for one tax year's federal rate table.

Every model lists its non-monetary fields (rates, ages, percentages) in
``fixed_fields``; the resolver never inflates those when it projects a
table into a future year.
"""

from decimal import Decimal
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from nestegg.models.enums import FilingStatus

INFINITY = Decimal("Infinity")


class _RateModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    fixed_fields: ClassVar[frozenset[str]] = frozenset()


class Bracket(_RateModel):
    """One band of a progressive schedule. The top band has ``max = Infinity``."""

    fixed_fields: ClassVar[frozenset[str]] = frozenset({"rate"})

    min: Decimal = Field(ge=0)
    max: Decimal = Field(allow_inf_nan=True)
    rate: Decimal = Field(ge=0, le=1)


class StandardDeduction(_RateModel):
    amounts: dict[FilingStatus, Decimal]
    # Per qualifying condition (65+ or blind), per filer
    additional_single: Decimal
    additional_married: Decimal


class ContributionLimits(_RateModel):
    fixed_fields: ClassVar[frozenset[str]] = frozenset(
        {"catchup_age", "hsa_catchup_age", "super_catchup_min_age", "super_catchup_max_age"}
    )

    traditional_401k: Decimal
    traditional_401k_catchup: Decimal
    traditional_401k_super_catchup: Decimal = Decimal("0")
    total_401k_limit: Decimal
    traditional_ira: Decimal
    traditional_ira_catchup: Decimal
    roth_ira: Decimal
    roth_ira_catchup: Decimal
    hsa_single: Decimal
    hsa_family: Decimal
    hsa_catchup: Decimal
    simple_ira: Decimal
    simple_ira_catchup: Decimal

    catchup_age: int = 50
    hsa_catchup_age: int = 55
    super_catchup_min_age: int = 60
    super_catchup_max_age: int = 63


class SocialSecurity(_RateModel):
    fixed_fields: ClassVar[frozenset[str]] = frozenset({"tax_rate"})

    wage_base: Decimal
    tax_rate: Decimal
    max_monthly_benefit: Decimal


class IrmaaBracket(_RateModel):
    max_income: Decimal = Field(allow_inf_nan=True)
    part_b_surcharge: Decimal
    part_d_surcharge: Decimal


class IrmaaSchedule(_RateModel):
    part_b_base: Decimal
    part_d_base: Decimal = Decimal("0")
    brackets: dict[FilingStatus, list[IrmaaBracket]]


class Phaseout(_RateModel):
    """A MAGI band over which a benefit shrinks linearly to zero."""

    start: Decimal
    end: Decimal


class IraDeductionPhaseouts(_RateModel):
    # Filer is covered by a workplace plan
    covered: dict[FilingStatus, Phaseout]
    # MFJ filer not covered, but spouse is
    spouse_covered: Phaseout


class RateTable(_RateModel):
    """Immutable per-year snapshot of the federal numbers the planner needs."""

    fixed_fields: ClassVar[frozenset[str]] = frozenset({"year"})

    year: int
    ordinary_brackets: dict[FilingStatus, list[Bracket]]
    ltcg_brackets: dict[FilingStatus, list[Bracket]]
    standard_deduction: StandardDeduction
    contribution_limits: ContributionLimits
    social_security: SocialSecurity
    irmaa: IrmaaSchedule
    roth_phaseouts: dict[FilingStatus, Phaseout]
    ira_deduction_phaseouts: IraDeductionPhaseouts


class IrmaaCharge(BaseModel):
    """Medicare premiums owed at a given MAGI."""

    tier: int
    part_b_monthly: Decimal
    part_d_monthly: Decimal
    annual_surcharge: Decimal
    annual_total: Decimal
