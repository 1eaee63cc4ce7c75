"""Progressive tax calculator and year-dependent federal lookups."""

from collections.abc import Mapping
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from nestegg.engines.rate_tables import (
    NIIT_RATE,
    NIIT_THRESHOLDS,
    RATE_TABLES,
    RMD_FIRST_TABLE_AGE,
    RMD_LAST_TABLE_AGE,
    RMD_START_AGES,
    RMD_UNIFORM_LIFETIME,
)
from nestegg.engines.rates import RateTableResolver, normalize_filing_status, resolve_status
from nestegg.models.enums import ContributionAccount, FilingStatus, TaxTreatment
from nestegg.models.rates import Bracket, IrmaaCharge, Phaseout, RateTable

ZERO = Decimal("0")


class TaxCalculator:
    """Computes federal tax amounts and limits for a tax year.

    The bracket arithmetic is exposed as static methods that take a bracket
    list directly; the instance methods resolve a year's table first.
    """

    def __init__(
        self,
        rate_tables: Mapping[int, RateTable] | None = None,
        resolver: RateTableResolver | None = None,
        inflation_rate: Decimal | None = None,
    ) -> None:
        self.rate_tables = RATE_TABLES if rate_tables is None else rate_tables
        self.resolver = resolver or RateTableResolver()
        self.inflation_rate = inflation_rate

    def table(self, year: int) -> RateTable:
        return self.resolver.resolve(self.rate_tables, year, self.inflation_rate)

    # ------------------------------------------------------------------
    # Bracket arithmetic
    # ------------------------------------------------------------------

    @staticmethod
    def ordinary_tax(taxable_income: Decimal, brackets: list[Bracket]) -> Decimal:
        """Apply progressive brackets to income."""
        tax = ZERO
        remaining = max(Decimal(taxable_income), ZERO)
        prev_max = ZERO

        for bracket in brackets:
            if remaining <= 0:
                break
            taxed_here = min(remaining, bracket.max - prev_max)
            tax += taxed_here * bracket.rate
            remaining -= taxed_here
            prev_max = bracket.max

        return tax

    @staticmethod
    def marginal_rate(income: Decimal, brackets: list[Bracket]) -> Decimal:
        """Rate of the first bracket whose upper bound reaches ``income``."""
        for bracket in brackets:
            if income <= bracket.max:
                return bracket.rate
        return brackets[-1].rate

    @staticmethod
    def ltcg_rate(taxable_income: Decimal, ltcg_brackets: list[Bracket]) -> Decimal:
        return TaxCalculator.marginal_rate(taxable_income, ltcg_brackets)

    @staticmethod
    def stcg_rate(taxable_income: Decimal, brackets: list[Bracket]) -> Decimal:
        """Short-term gains are ordinary income."""
        return TaxCalculator.marginal_rate(taxable_income, brackets)

    @staticmethod
    def ltcg_tax(
        long_term_gains: Decimal,
        ordinary_taxable_income: Decimal,
        ltcg_brackets: list[Bracket],
    ) -> Decimal:
        """Tax on LTCG and qualified dividends stacked on top of ordinary income.

        Follows the Qualified Dividends and Capital Gain Tax Worksheet: the
        gains occupy the bracket space above ordinary taxable income, and
        each slice is taxed at the rate of the band it lands in.
        """
        if long_term_gains <= 0:
            return ZERO

        floor = max(Decimal(ordinary_taxable_income), ZERO)
        tax = ZERO
        remaining = Decimal(long_term_gains)

        for bracket in ltcg_brackets:
            if remaining <= 0:
                break
            start = max(bracket.min, floor)
            if start >= bracket.max:
                continue
            taxed_here = min(remaining, bracket.max - start)
            tax += taxed_here * bracket.rate
            remaining -= taxed_here
            floor = start + taxed_here

        return tax

    # ------------------------------------------------------------------
    # Statutory amounts (not indexed)
    # ------------------------------------------------------------------

    @staticmethod
    def niit(
        investment_income: Decimal, magi: Decimal, filing_status: FilingStatus | str
    ) -> Decimal:
        """Net Investment Income Tax (3.8%) per IRC Section 1411.

        Applies to the lesser of net investment income and the MAGI excess
        over the filing status threshold.
        """
        threshold = resolve_status(NIIT_THRESHOLDS, filing_status)
        excess = max(Decimal(magi) - threshold, ZERO)
        return min(max(Decimal(investment_income), ZERO), excess) * NIIT_RATE

    @staticmethod
    def rmd_factor(age: int) -> Decimal | None:
        """Uniform Lifetime Table divisor, or None below the table's first age."""
        if age < RMD_FIRST_TABLE_AGE:
            return None
        return RMD_UNIFORM_LIFETIME[min(age, RMD_LAST_TABLE_AGE)]

    @staticmethod
    def rmd_start_age(birth_year: int) -> Decimal:
        for last_birth_year, start_age in RMD_START_AGES:
            if last_birth_year is None or birth_year <= last_birth_year:
                return start_age
        return RMD_START_AGES[-1][1]

    @staticmethod
    def required_minimum_distribution(
        prior_year_end_balance: Decimal, age: int, birth_year: int | None = None
    ) -> Decimal:
        """Minimum withdrawal for the year ``age`` is reached.

        Zero before the start age for ``birth_year`` (when given) or below
        the table. Rounded to cents.
        """
        if birth_year is not None and age < TaxCalculator.rmd_start_age(birth_year):
            return ZERO
        factor = TaxCalculator.rmd_factor(age)
        balance = Decimal(prior_year_end_balance)
        if factor is None or balance <= 0:
            return ZERO
        return (balance / factor).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    # ------------------------------------------------------------------
    # Year-dependent lookups
    # ------------------------------------------------------------------

    def brackets(self, year: int, filing_status: FilingStatus | str) -> list[Bracket]:
        return resolve_status(self.table(year).ordinary_brackets, filing_status)

    def ltcg_brackets(self, year: int, filing_status: FilingStatus | str) -> list[Bracket]:
        return resolve_status(self.table(year).ltcg_brackets, filing_status)

    def federal_income_tax(
        self, taxable_income: Decimal, year: int, filing_status: FilingStatus | str
    ) -> Decimal:
        return self.ordinary_tax(taxable_income, self.brackets(year, filing_status))

    @staticmethod
    def additional_deduction_count(age: int | None, blind: bool = False) -> int:
        """Number of 65+/blind add-ons one filer qualifies for (0, 1, or 2)."""
        return int(age is not None and age >= 65) + int(blind)

    def standard_deduction(
        self, year: int, filing_status: FilingStatus | str, additional_count: int = 0
    ) -> Decimal:
        """Base standard deduction plus one increment per 65+/blind condition.

        ``additional_count`` is the caller's total across both spouses for
        married filers; it is not re-derived here.
        """
        deduction = self.table(year).standard_deduction
        status = normalize_filing_status(filing_status)
        base = resolve_status(deduction.amounts, status)
        if status in (FilingStatus.MFJ, FilingStatus.MFS):
            increment = deduction.additional_married
        else:
            increment = deduction.additional_single
        return base + increment * additional_count

    def contribution_limit(self, year: int, account: ContributionAccount, age: int) -> Decimal:
        """Annual employee contribution limit including any age-based catch-up."""
        limits = self.table(year).contribution_limits

        if account == ContributionAccount.TRADITIONAL_401K:
            super_band = limits.super_catchup_min_age <= age <= limits.super_catchup_max_age
            if super_band and limits.traditional_401k_super_catchup > 0:
                return limits.traditional_401k + limits.traditional_401k_super_catchup
            if age >= limits.catchup_age:
                return limits.traditional_401k + limits.traditional_401k_catchup
            return limits.traditional_401k

        if account in (ContributionAccount.HSA_SINGLE, ContributionAccount.HSA_FAMILY):
            base = limits.hsa_single if account == ContributionAccount.HSA_SINGLE else limits.hsa_family
            return base + limits.hsa_catchup if age >= limits.hsa_catchup_age else base

        base, catchup = {
            ContributionAccount.TRADITIONAL_IRA: (limits.traditional_ira, limits.traditional_ira_catchup),
            ContributionAccount.ROTH_IRA: (limits.roth_ira, limits.roth_ira_catchup),
            ContributionAccount.SIMPLE_IRA: (limits.simple_ira, limits.simple_ira_catchup),
        }[account]
        return base + catchup if age >= limits.catchup_age else base

    @staticmethod
    def _phaseout_fraction(magi: Decimal, phaseout: Phaseout) -> Decimal:
        """Share of the benefit still allowed at ``magi`` (1 below the band, 0 above)."""
        if magi <= phaseout.start:
            return Decimal("1")
        if magi >= phaseout.end:
            return ZERO
        return (phaseout.end - magi) / (phaseout.end - phaseout.start)

    def ira_deductible_amount(
        self,
        year: int,
        magi: Decimal,
        filing_status: FilingStatus | str,
        age: int,
        covered_by_workplace_plan: bool = True,
        spouse_covered: bool = False,
    ) -> Decimal:
        """Deductible Traditional-IRA contribution after the MAGI phase-out.

        A partially phased-out deduction is rounded up to the next $10.
        """
        limit = self.contribution_limit(year, ContributionAccount.TRADITIONAL_IRA, age)
        status = normalize_filing_status(filing_status)
        phaseouts = self.table(year).ira_deduction_phaseouts

        if covered_by_workplace_plan:
            phaseout = resolve_status(phaseouts.covered, status)
        elif spouse_covered and status == FilingStatus.MFJ:
            phaseout = phaseouts.spouse_covered
        else:
            return limit

        fraction = self._phaseout_fraction(Decimal(magi), phaseout)
        if fraction in (0, 1):
            return limit * fraction
        reduced = limit * fraction
        return (reduced / 10).to_integral_value(rounding=ROUND_CEILING) * 10

    def roth_contribution_limit(
        self, year: int, magi: Decimal, filing_status: FilingStatus | str, age: int
    ) -> Decimal:
        """Roth IRA contribution allowed after the MAGI phase-out, to the nearest dollar."""
        limit = self.contribution_limit(year, ContributionAccount.ROTH_IRA, age)
        phaseout = resolve_status(self.table(year).roth_phaseouts, filing_status)
        reduced = limit * self._phaseout_fraction(Decimal(magi), phaseout)
        return reduced.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    def social_security_tax(self, wages: Decimal, year: int) -> Decimal:
        """Employee OASDI tax on wages up to the wage base."""
        ss = self.table(year).social_security
        return min(max(Decimal(wages), ZERO), ss.wage_base) * ss.tax_rate

    def irmaa(self, year: int, magi: Decimal, filing_status: FilingStatus | str) -> IrmaaCharge:
        """Medicare Part B/D premiums for a MAGI (the two-year lookback is the caller's)."""
        schedule = self.table(year).irmaa
        tiers = resolve_status(schedule.brackets, filing_status)
        tier_index = len(tiers) - 1
        for i, tier in enumerate(tiers):
            if magi <= tier.max_income:
                tier_index = i
                break
        tier = tiers[tier_index]
        part_b = schedule.part_b_base + tier.part_b_surcharge
        part_d = schedule.part_d_base + tier.part_d_surcharge
        return IrmaaCharge(
            tier=tier_index,
            part_b_monthly=part_b,
            part_d_monthly=part_d,
            annual_surcharge=(tier.part_b_surcharge + tier.part_d_surcharge) * 12,
            annual_total=(part_b + part_d) * 12,
        )

    def withdrawal_tax(
        self,
        amount: Decimal,
        treatment: TaxTreatment,
        year: int,
        filing_status: FilingStatus | str,
        other_income: Decimal = ZERO,
        gain_fraction: Decimal = Decimal("0.5"),
        long_term: bool = True,
        age: int | None = None,
    ) -> Decimal:
        """Federal tax attributable to one retirement-account withdrawal.

        Tax-deferred withdrawals are ordinary income stacked on
        ``other_income`` above the standard deduction. Taxable-account
        withdrawals pay capital gains tax on their gain portion only, plus
        NIIT once ``other_income`` and the gain pass the threshold.
        Tax-free withdrawals owe nothing.
        """
        amount = Decimal(amount)
        if amount <= 0 or treatment == TaxTreatment.TAX_FREE:
            return ZERO

        deduction = self.standard_deduction(
            year, filing_status, self.additional_deduction_count(age)
        )
        base_taxable = max(Decimal(other_income) - deduction, ZERO)
        ordinary = self.brackets(year, filing_status)

        if treatment == TaxTreatment.TAX_DEFERRED:
            with_withdrawal = max(Decimal(other_income) + amount - deduction, ZERO)
            return self.ordinary_tax(with_withdrawal, ordinary) - self.ordinary_tax(
                base_taxable, ordinary
            )

        gain = amount * Decimal(gain_fraction)
        if gain <= 0:
            return ZERO
        if long_term:
            tax = self.ltcg_tax(gain, base_taxable, self.ltcg_brackets(year, filing_status))
        else:
            tax = self.ordinary_tax(base_taxable + gain, ordinary) - self.ordinary_tax(
                base_taxable, ordinary
            )
        return tax + self.niit(gain, Decimal(other_income) + gain, filing_status)
