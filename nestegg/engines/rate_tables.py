"""Federal rate tables.

Ordinary and long-term capital gains brackets, standard deductions,
contribution limits, Social Security and Medicare IRMAA figures, keyed by
tax year. Years after the latest entry are projected by the resolver, never
stored here. Never hardcode these numbers in computation functions.

Sources:
  - 2024: IRS Rev. Proc. 2023-34, SSA 2024 COLA fact sheet, CMS 2024 premiums
  - 2025: IRS Rev. Proc. 2024-40, SSA 2025 COLA fact sheet, CMS 2025 premiums
  - 2026: IRS Rev. Proc. 2025-32, SSA 2026 COLA fact sheet (IRMAA estimated)
"""

from decimal import Decimal

from nestegg.models.enums import FilingStatus
from nestegg.models.rates import (
    INFINITY,
    Bracket,
    ContributionLimits,
    IraDeductionPhaseouts,
    IrmaaBracket,
    IrmaaSchedule,
    Phaseout,
    RateTable,
    SocialSecurity,
    StandardDeduction,
)

# Annual growth used to project years past the latest table.
FALLBACK_INFLATION = Decimal("0.025")

# Net investment income tax (statutory, not indexed)
NIIT_RATE = Decimal("0.038")
NIIT_THRESHOLDS: dict[FilingStatus, Decimal] = {
    FilingStatus.SINGLE: Decimal("200000"),
    FilingStatus.MFJ: Decimal("250000"),
    FilingStatus.MFS: Decimal("125000"),
    FilingStatus.HOH: Decimal("200000"),
}

_RATES = [Decimal(r) for r in ("0.10", "0.12", "0.22", "0.24", "0.32", "0.35", "0.37")]


def _schedule(*upper_bounds: int) -> list[Bracket]:
    """Build a seven-band ordinary schedule from its six finite upper bounds."""
    bounds = [Decimal(b) for b in upper_bounds] + [INFINITY]
    brackets: list[Bracket] = []
    lower = Decimal("0")
    for upper, rate in zip(bounds, _RATES):
        brackets.append(Bracket(min=lower, max=upper, rate=rate))
        lower = upper
    return brackets


def _ltcg(zero_max: int, fifteen_max: int) -> list[Bracket]:
    return [
        Bracket(min=Decimal("0"), max=Decimal(zero_max), rate=Decimal("0")),
        Bracket(min=Decimal(zero_max), max=Decimal(fifteen_max), rate=Decimal("0.15")),
        Bracket(min=Decimal(fifteen_max), max=INFINITY, rate=Decimal("0.20")),
    ]


def _phaseout(start: int, end: int) -> Phaseout:
    return Phaseout(start=Decimal(start), end=Decimal(end))


def _irmaa(rows: list[tuple[int | None, str, str]]) -> list[IrmaaBracket]:
    return [
        IrmaaBracket(
            max_income=INFINITY if max_income is None else Decimal(max_income),
            part_b_surcharge=Decimal(part_b),
            part_d_surcharge=Decimal(part_d),
        )
        for max_income, part_b, part_d in rows
    ]


# ---------------------------------------------------------------------------
# 2024
# ---------------------------------------------------------------------------
_TABLE_2024 = RateTable(
    year=2024,
    ordinary_brackets={
        FilingStatus.SINGLE: _schedule(11600, 47150, 100525, 191950, 243725, 609350),
        FilingStatus.MFJ: _schedule(23200, 94300, 201050, 383900, 487450, 731200),
        FilingStatus.MFS: _schedule(11600, 47150, 100525, 191950, 243725, 365600),
        FilingStatus.HOH: _schedule(16550, 63100, 100500, 191950, 243700, 609350),
    },
    ltcg_brackets={
        FilingStatus.SINGLE: _ltcg(47025, 518900),
        FilingStatus.MFJ: _ltcg(94050, 583750),
        FilingStatus.MFS: _ltcg(47025, 291850),
        FilingStatus.HOH: _ltcg(63000, 551350),
    },
    standard_deduction=StandardDeduction(
        amounts={
            FilingStatus.SINGLE: Decimal("14600"),
            FilingStatus.MFJ: Decimal("29200"),
            FilingStatus.MFS: Decimal("14600"),
            FilingStatus.HOH: Decimal("21900"),
        },
        additional_single=Decimal("1950"),
        additional_married=Decimal("1550"),
    ),
    contribution_limits=ContributionLimits(
        traditional_401k=Decimal("23000"),
        traditional_401k_catchup=Decimal("7500"),
        total_401k_limit=Decimal("69000"),
        traditional_ira=Decimal("7000"),
        traditional_ira_catchup=Decimal("1000"),
        roth_ira=Decimal("7000"),
        roth_ira_catchup=Decimal("1000"),
        hsa_single=Decimal("4150"),
        hsa_family=Decimal("8300"),
        hsa_catchup=Decimal("1000"),
        simple_ira=Decimal("16000"),
        simple_ira_catchup=Decimal("3500"),
    ),
    social_security=SocialSecurity(
        wage_base=Decimal("168600"),
        tax_rate=Decimal("0.062"),
        max_monthly_benefit=Decimal("4873"),
    ),
    irmaa=IrmaaSchedule(
        part_b_base=Decimal("174.70"),
        brackets={
            FilingStatus.SINGLE: _irmaa([
                (103000, "0", "0"),
                (129000, "69.90", "12.90"),
                (161000, "174.70", "33.30"),
                (193000, "279.50", "53.80"),
                (500000, "384.30", "74.20"),
                (None, "419.30", "81.00"),
            ]),
            FilingStatus.MFJ: _irmaa([
                (206000, "0", "0"),
                (258000, "69.90", "12.90"),
                (322000, "174.70", "33.30"),
                (386000, "279.50", "53.80"),
                (750000, "384.30", "74.20"),
                (None, "419.30", "81.00"),
            ]),
        },
    ),
    roth_phaseouts={
        FilingStatus.SINGLE: _phaseout(146000, 161000),
        FilingStatus.MFJ: _phaseout(230000, 240000),
        FilingStatus.MFS: _phaseout(0, 10000),
    },
    ira_deduction_phaseouts=IraDeductionPhaseouts(
        covered={
            FilingStatus.SINGLE: _phaseout(77000, 87000),
            FilingStatus.MFJ: _phaseout(123000, 143000),
            FilingStatus.MFS: _phaseout(0, 10000),
        },
        spouse_covered=_phaseout(230000, 240000),
    ),
)

# ---------------------------------------------------------------------------
# 2025
# ---------------------------------------------------------------------------
_TABLE_2025 = RateTable(
    year=2025,
    ordinary_brackets={
        FilingStatus.SINGLE: _schedule(11925, 48475, 103350, 197300, 250525, 626350),
        FilingStatus.MFJ: _schedule(23850, 96950, 206700, 394600, 501050, 751600),
        FilingStatus.MFS: _schedule(11925, 48475, 103350, 197300, 250525, 375800),
        FilingStatus.HOH: _schedule(17000, 64850, 103350, 197300, 250500, 626350),
    },
    ltcg_brackets={
        FilingStatus.SINGLE: _ltcg(48350, 533400),
        FilingStatus.MFJ: _ltcg(96700, 600050),
        FilingStatus.MFS: _ltcg(48350, 300000),
        FilingStatus.HOH: _ltcg(64750, 566700),
    },
    standard_deduction=StandardDeduction(
        amounts={
            FilingStatus.SINGLE: Decimal("15000"),
            FilingStatus.MFJ: Decimal("30000"),
            FilingStatus.MFS: Decimal("15000"),
            FilingStatus.HOH: Decimal("22500"),
        },
        additional_single=Decimal("2000"),
        additional_married=Decimal("1600"),
    ),
    contribution_limits=ContributionLimits(
        traditional_401k=Decimal("23500"),
        traditional_401k_catchup=Decimal("7500"),
        traditional_401k_super_catchup=Decimal("11250"),
        total_401k_limit=Decimal("70000"),
        traditional_ira=Decimal("7000"),
        traditional_ira_catchup=Decimal("1000"),
        roth_ira=Decimal("7000"),
        roth_ira_catchup=Decimal("1000"),
        hsa_single=Decimal("4300"),
        hsa_family=Decimal("8550"),
        hsa_catchup=Decimal("1000"),
        simple_ira=Decimal("16500"),
        simple_ira_catchup=Decimal("3500"),
    ),
    social_security=SocialSecurity(
        wage_base=Decimal("176100"),
        tax_rate=Decimal("0.062"),
        max_monthly_benefit=Decimal("5108"),
    ),
    irmaa=IrmaaSchedule(
        part_b_base=Decimal("185.00"),
        brackets={
            FilingStatus.SINGLE: _irmaa([
                (106000, "0", "0"),
                (133000, "74.00", "13.70"),
                (167000, "185.00", "35.30"),
                (200000, "296.00", "57.00"),
                (500000, "407.00", "78.60"),
                (None, "443.90", "85.80"),
            ]),
            FilingStatus.MFJ: _irmaa([
                (212000, "0", "0"),
                (266000, "74.00", "13.70"),
                (334000, "185.00", "35.30"),
                (400000, "296.00", "57.00"),
                (750000, "407.00", "78.60"),
                (None, "443.90", "85.80"),
            ]),
        },
    ),
    roth_phaseouts={
        FilingStatus.SINGLE: _phaseout(150000, 165000),
        FilingStatus.MFJ: _phaseout(236000, 246000),
        FilingStatus.MFS: _phaseout(0, 10000),
    },
    ira_deduction_phaseouts=IraDeductionPhaseouts(
        covered={
            FilingStatus.SINGLE: _phaseout(79000, 89000),
            FilingStatus.MFJ: _phaseout(126000, 146000),
            FilingStatus.MFS: _phaseout(0, 10000),
        },
        spouse_covered=_phaseout(236000, 246000),
    ),
)

# ---------------------------------------------------------------------------
# 2026
# ---------------------------------------------------------------------------
_TABLE_2026 = RateTable(
    year=2026,
    ordinary_brackets={
        FilingStatus.SINGLE: _schedule(12400, 50400, 105700, 201775, 256225, 640600),
        FilingStatus.MFJ: _schedule(24800, 100800, 211400, 403550, 512450, 768700),
        FilingStatus.MFS: _schedule(12400, 50400, 105700, 201775, 256225, 384350),
        FilingStatus.HOH: _schedule(17650, 67450, 108150, 201775, 256225, 640600),
    },
    ltcg_brackets={
        FilingStatus.SINGLE: _ltcg(49650, 547350),
        FilingStatus.MFJ: _ltcg(99300, 615550),
        FilingStatus.MFS: _ltcg(49650, 307775),
        FilingStatus.HOH: _ltcg(66450, 580650),
    },
    standard_deduction=StandardDeduction(
        amounts={
            FilingStatus.SINGLE: Decimal("16100"),
            FilingStatus.MFJ: Decimal("32200"),
            FilingStatus.MFS: Decimal("16100"),
            FilingStatus.HOH: Decimal("24150"),
        },
        additional_single=Decimal("2050"),
        additional_married=Decimal("1650"),
    ),
    contribution_limits=ContributionLimits(
        traditional_401k=Decimal("24000"),
        traditional_401k_catchup=Decimal("7500"),
        traditional_401k_super_catchup=Decimal("11250"),
        total_401k_limit=Decimal("71500"),
        traditional_ira=Decimal("7000"),
        traditional_ira_catchup=Decimal("1000"),
        roth_ira=Decimal("7000"),
        roth_ira_catchup=Decimal("1000"),
        hsa_single=Decimal("4400"),
        hsa_family=Decimal("8750"),
        hsa_catchup=Decimal("1000"),
        simple_ira=Decimal("17000"),
        simple_ira_catchup=Decimal("3500"),
    ),
    social_security=SocialSecurity(
        wage_base=Decimal("180600"),
        tax_rate=Decimal("0.062"),
        max_monthly_benefit=Decimal("5236"),
    ),
    irmaa=IrmaaSchedule(
        part_b_base=Decimal("190.00"),
        brackets={
            FilingStatus.SINGLE: _irmaa([
                (109000, "0", "0"),
                (136000, "76.00", "14.00"),
                (171000, "190.00", "36.20"),
                (205000, "304.00", "58.40"),
                (500000, "418.00", "80.60"),
                (None, "456.00", "88.00"),
            ]),
            FilingStatus.MFJ: _irmaa([
                (218000, "0", "0"),
                (272000, "76.00", "14.00"),
                (342000, "190.00", "36.20"),
                (410000, "304.00", "58.40"),
                (750000, "418.00", "80.60"),
                (None, "456.00", "88.00"),
            ]),
        },
    ),
    roth_phaseouts={
        FilingStatus.SINGLE: _phaseout(154000, 169000),
        FilingStatus.MFJ: _phaseout(242000, 252000),
        FilingStatus.MFS: _phaseout(0, 10000),
    },
    ira_deduction_phaseouts=IraDeductionPhaseouts(
        covered={
            FilingStatus.SINGLE: _phaseout(81000, 91000),
            FilingStatus.MFJ: _phaseout(129000, 149000),
            FilingStatus.MFS: _phaseout(0, 10000),
        },
        spouse_covered=_phaseout(242000, 252000),
    ),
)

RATE_TABLES: dict[int, RateTable] = {
    2024: _TABLE_2024,
    2025: _TABLE_2025,
    2026: _TABLE_2026,
}

LATEST_KNOWN_YEAR = max(RATE_TABLES)

# ---------------------------------------------------------------------------
# Required minimum distributions
# ---------------------------------------------------------------------------

# IRS Uniform Lifetime Table (Pub. 590-B, Table III), distribution period by age
_RMD_DIVISORS = (
    "27.4", "26.5", "25.5", "24.6", "23.7", "22.9", "22.0", "21.1", "20.2", "19.4",
    "18.5", "17.7", "16.8", "16.0", "15.2", "14.4", "13.7", "12.9", "12.2", "11.5",
    "10.8", "10.1", "9.5", "8.9", "8.4", "7.8", "7.3", "6.8", "6.4", "6.0",
    "5.6", "5.2", "4.9", "4.6", "4.3", "4.1", "3.9", "3.7", "3.5", "3.4",
    "3.3", "3.1", "3.0", "2.9", "2.8", "2.7", "2.5", "2.3", "2.0",
)
RMD_FIRST_TABLE_AGE = 72
RMD_UNIFORM_LIFETIME: dict[int, Decimal] = {
    RMD_FIRST_TABLE_AGE + i: Decimal(divisor) for i, divisor in enumerate(_RMD_DIVISORS)
}
RMD_LAST_TABLE_AGE = max(RMD_UNIFORM_LIFETIME)

# SECURE 2.0 start ages by birth year: (last birth year, start age)
RMD_START_AGES: list[tuple[int | None, Decimal]] = [
    (1950, Decimal("70.5")),
    (1959, Decimal("73")),
    (None, Decimal("75")),
]
