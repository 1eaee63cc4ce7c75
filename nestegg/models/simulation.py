"""Monte Carlo inputs and outputs.

Inputs are validated pydantic models; per-trial outputs are plain
dataclasses since they are produced in bulk and shipped between worker
processes.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from nestegg.models.enums import FilingStatus, TaxTreatment, WithdrawalStrategy

CORRELATION_TOLERANCE = 1e-9


class AssetClassAssumption(BaseModel):
    """Starting balance and return assumptions for one asset class.

    ``expected_return`` and ``volatility`` are annual percentages. When
    ``return_schedule`` is given, year *n* uses its *n*-th entry and the last
    entry holds for every later year.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    balance: float = Field(ge=0)
    expected_return: float
    volatility: float = Field(default=0.0, ge=0)
    return_schedule: list[float] | None = None
    savings_allocation: float | None = Field(default=None, ge=0)

    def expected_return_for(self, year_index: int) -> float:
        if not self.return_schedule:
            return self.expected_return
        return self.return_schedule[min(year_index, len(self.return_schedule) - 1)]


class WithdrawalTaxProfile(BaseModel):
    """How decumulation withdrawals are taxed in the tax-aware variant."""

    model_config = ConfigDict(frozen=True)

    start_year: int
    treatment: TaxTreatment = TaxTreatment.TAX_DEFERRED
    filing_status: FilingStatus = FilingStatus.SINGLE
    other_income: Decimal = Decimal("0")
    gain_fraction: Decimal = Field(default=Decimal("0.5"), ge=0, le=1)
    long_term: bool = True


class SimulationParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset_classes: list[AssetClassAssumption] = Field(min_length=1)
    current_age: int = Field(ge=0)
    retirement_age: int
    end_age: int
    inflation_rate: float = 2.5
    annual_contribution: float = Field(default=0.0, ge=0)
    contribution_growth_rate: float = 0.0
    withdrawal_strategy: WithdrawalStrategy = WithdrawalStrategy.FIXED_REAL_INCOME
    annual_spending: float = Field(default=0.0, ge=0)
    initial_withdrawal_rate: float = Field(default=4.0, ge=0)
    dynamic_withdrawal_rate: float = Field(default=4.0, ge=0)
    tax_profile: WithdrawalTaxProfile | None = None
    # Correlation of yearly shocks between asset classes, in asset_classes order
    correlation: list[list[float]] | None = None

    @model_validator(mode="after")
    def _ages_ordered(self) -> "SimulationParameters":
        if not self.current_age <= self.retirement_age <= self.end_age:
            raise ValueError(
                "ages must satisfy current_age <= retirement_age <= end_age, got "
                f"{self.current_age}/{self.retirement_age}/{self.end_age}"
            )
        return self

    @model_validator(mode="after")
    def _correlation_well_formed(self) -> "SimulationParameters":
        matrix = self.correlation
        if matrix is None:
            return self
        n = len(self.asset_classes)
        if len(matrix) != n or any(len(row) != n for row in matrix):
            raise ValueError(f"correlation must be a {n}x{n} matrix, one row per asset class")
        for i in range(n):
            if abs(matrix[i][i] - 1.0) > CORRELATION_TOLERANCE:
                raise ValueError(f"correlation diagonal must be 1, got {matrix[i][i]} at row {i}")
            for j in range(i):
                if abs(matrix[i][j] - matrix[j][i]) > CORRELATION_TOLERANCE:
                    raise ValueError(f"correlation must be symmetric, rows {i} and {j} differ")
                if not -1.0 <= matrix[i][j] <= 1.0:
                    raise ValueError(f"correlation {matrix[i][j]} outside [-1, 1]")
        return self

    @property
    def horizon(self) -> int:
        return self.end_age - self.current_age

    @property
    def years_to_retirement(self) -> int:
        return self.retirement_age - self.current_age

    @property
    def starting_total(self) -> float:
        return sum(a.balance for a in self.asset_classes)

    def savings_weights(self) -> list[float]:
        """Allocation of new contributions across asset classes, summing to 1."""
        explicit = [a.savings_allocation for a in self.asset_classes]
        if all(w is not None for w in explicit) and sum(explicit) > 0:
            raw = explicit
        elif self.starting_total > 0:
            raw = [a.balance for a in self.asset_classes]
        else:
            raw = [1.0] * len(self.asset_classes)
        total = sum(raw)
        return [w / total for w in raw]


@dataclass(slots=True)
class TrialResult:
    path: list[float]
    insolvent: bool = False
    insolvency_year: int | None = None


@dataclass(slots=True)
class SimulationBatch:
    paths: list[list[float]]
    insolvent: list[bool]
    seed: int | None = None
    insolvency_years: list[int | None] = field(default_factory=list)

    @property
    def trial_count(self) -> int:
        return len(self.paths)


@dataclass(slots=True)
class PercentileRow:
    year_index: int
    values: dict[int, float]


@dataclass(slots=True)
class ScenarioComparison:
    """A baseline and an alternative plan run against the same market shocks."""

    baseline: SimulationBatch
    scenario: SimulationBatch

    @staticmethod
    def _solvent_share(batch: SimulationBatch) -> float:
        if not batch.trial_count:
            return 0.0
        return 1.0 - sum(batch.insolvent) / batch.trial_count

    @property
    def baseline_success_rate(self) -> float:
        return self._solvent_share(self.baseline)

    @property
    def scenario_success_rate(self) -> float:
        return self._solvent_share(self.scenario)

    @property
    def difference(self) -> float:
        return self.scenario_success_rate - self.baseline_success_rate
