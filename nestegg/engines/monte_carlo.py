"""Monte Carlo retirement projection.

Each trial walks from the current age to the end age, drawing one normal
return per asset class per year, optionally correlated across classes. Years before retirement add a growing
contribution; years after retirement withdraw according to the chosen
strategy. Trials are independent and individually seeded, so a batch gives
the same paths whether it runs in one process or many.
"""

import logging
import math
import random
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ProcessPoolExecutor
from decimal import Decimal

from nestegg.engines.rate_tables import RATE_TABLES
from nestegg.engines.tax import TaxCalculator
from nestegg.exceptions import DataValidationError
from nestegg.models.enums import WithdrawalStrategy
from nestegg.models.rates import RateTable
from nestegg.models.simulation import (
    PercentileRow,
    ScenarioComparison,
    SimulationBatch,
    SimulationParameters,
    TrialResult,
)

logger = logging.getLogger(__name__)

UniformSource = Callable[[], float]
UniformFactory = Callable[[int], UniformSource]

DEFAULT_PERCENTILES = (10, 25, 50, 75, 90)
MIN_UNIFORM = 1e-4
DEFAULT_CHUNK_SIZE = 250
PSD_TOLERANCE = 1e-9


def seeded_uniform(seed: int) -> UniformSource:
    """Uniform(0, 1) source for one trial."""
    return random.Random(seed).random


def box_muller(uniform: UniformSource) -> tuple[float, float]:
    """Two independent standard normals from two uniform draws.

    ``u1`` is floored at 1e-4 so ``log(u1)`` stays finite.
    """
    u1 = max(MIN_UNIFORM, uniform())
    u2 = uniform()
    radius = math.sqrt(-2.0 * math.log(u1))
    angle = 2.0 * math.pi * u2
    return radius * math.cos(angle), radius * math.sin(angle)


def cholesky(matrix: Sequence[Sequence[float]]) -> list[list[float]]:
    """Lower-triangular L with L @ L.T == matrix.

    Positive semi-definite input is accepted: a zero pivot (perfectly
    correlated classes) yields a zero column. Raises DataValidationError
    when the matrix is not positive semi-definite.
    """
    n = len(matrix)
    lower = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1):
            partial = sum(lower[i][k] * lower[j][k] for k in range(j))
            if i == j:
                pivot = matrix[i][i] - partial
                if pivot < -PSD_TOLERANCE:
                    raise DataValidationError(
                        "correlation", f"matrix is not positive semi-definite (pivot {pivot:.6g} at row {i})"
                    )
                lower[i][j] = math.sqrt(max(0.0, pivot))
            elif lower[j][j] > 0:
                lower[i][j] = (matrix[i][j] - partial) / lower[j][j]
            elif abs(matrix[i][j] - partial) > PSD_TOLERANCE:
                raise DataValidationError(
                    "correlation", f"matrix is not positive semi-definite (rows {j} and {i})"
                )
    return lower


def correlate(lower: Sequence[Sequence[float]], independent: Sequence[float]) -> list[float]:
    """Map independent standard normals onto correlated ones."""
    return [sum(lower[i][j] * independent[j] for j in range(i + 1)) for i in range(len(independent))]


def _run_chunk(
    engine: "MonteCarloEngine", params: SimulationParameters, seeds: list[int]
) -> list[TrialResult]:
    # Module-level so worker processes can unpickle it
    return [engine.run_trial(params, engine.uniform_factory(seed)) for seed in seeds]


class MonteCarloEngine:
    """Runs batches of independent wealth-path trials."""

    def __init__(
        self,
        rate_tables: Mapping[int, RateTable] | None = None,
        uniform_factory: UniformFactory = seeded_uniform,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.calculator = TaxCalculator(RATE_TABLES if rate_tables is None else rate_tables)
        self.uniform_factory = uniform_factory
        self.chunk_size = chunk_size

    # ------------------------------------------------------------------
    # Single trial
    # ------------------------------------------------------------------

    def run_trial(self, params: SimulationParameters, uniform: UniformSource) -> TrialResult:
        """Simulate one path of total wealth, one value per year including year 0."""
        balances = [a.balance for a in params.asset_classes]
        weights = params.savings_weights()
        savings = 0.0
        path = [sum(balances)]
        insolvent = False
        insolvency_year: int | None = None
        initial_withdrawal: float | None = None
        inflation = params.inflation_rate / 100.0
        lower = cholesky(params.correlation) if params.correlation else None

        for year in range(1, params.horizon + 1):
            if insolvent:
                path.append(0.0)
                continue

            shocks = [box_muller(uniform)[0] for _ in params.asset_classes]
            if lower is not None:
                shocks = correlate(lower, shocks)
            returns = []
            for i, (asset, z) in enumerate(zip(params.asset_classes, shocks)):
                simulated = asset.expected_return_for(year - 1) + asset.volatility * z
                returns.append(simulated)
                balances[i] *= max(0.0, 1.0 + simulated / 100.0)
            blended = sum(w * r for w, r in zip(weights, returns))
            savings *= max(0.0, 1.0 + blended / 100.0)

            if year <= params.years_to_retirement:
                growth = params.contribution_growth_rate / 100.0
                savings += params.annual_contribution * (1.0 + growth) ** (year - 1)
                path.append(sum(balances) + savings)
                continue

            total = sum(balances) + savings
            years_retired = year - params.years_to_retirement - 1
            if params.withdrawal_strategy == WithdrawalStrategy.FIXED_PERCENT_INITIAL:
                if initial_withdrawal is None:
                    initial_withdrawal = total * params.initial_withdrawal_rate / 100.0
                withdrawal = initial_withdrawal * (1.0 + inflation) ** years_retired
            elif params.withdrawal_strategy == WithdrawalStrategy.DYNAMIC_PERCENT_OF_BALANCE:
                withdrawal = total * params.dynamic_withdrawal_rate / 100.0
            else:
                withdrawal = params.annual_spending * (1.0 + inflation) ** (year - 1)

            withdrawal += self._withdrawal_tax(params, year, withdrawal)

            if total > 0 and withdrawal > 0:
                ratio = min(1.0, withdrawal / total)
                balances = [b * (1.0 - ratio) for b in balances]
                savings *= 1.0 - ratio
                total = sum(balances) + savings

            if total <= 0:
                insolvent = True
                insolvency_year = year
                total = 0.0
            path.append(total)

        return TrialResult(path=path, insolvent=insolvent, insolvency_year=insolvency_year)

    def _withdrawal_tax(self, params: SimulationParameters, year: int, withdrawal: float) -> float:
        profile = params.tax_profile
        if profile is None or withdrawal <= 0:
            return 0.0
        tax = self.calculator.withdrawal_tax(
            Decimal(str(round(withdrawal, 2))),
            profile.treatment,
            profile.start_year + year - 1,
            profile.filing_status,
            other_income=profile.other_income,
            gain_fraction=profile.gain_fraction,
            long_term=profile.long_term,
            age=params.current_age + year - 1,
        )
        return float(tax)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def run(
        self,
        params: SimulationParameters,
        trial_count: int,
        seed: int | None = None,
        workers: int = 1,
    ) -> SimulationBatch:
        """Run ``trial_count`` independent trials.

        Per-trial seeds are drawn from a master generator seeded with
        ``seed`` (nondeterministic when None). With ``workers > 1`` the
        trials are chunked across a process pool and concatenated in order.
        """
        results = self._run_seeds(params, self._trial_seeds(trial_count, seed), workers)
        insolvent = sum(1 for r in results if r.insolvent)
        logger.debug("Batch finished: %d trials, %d insolvent", trial_count, insolvent)
        return self._batch(results, seed)

    def compare(
        self,
        baseline: SimulationParameters,
        scenario: SimulationParameters,
        trial_count: int,
        seed: int | None = None,
        workers: int = 1,
    ) -> ScenarioComparison:
        """Run two plans against identical market shocks.

        Trial *k* of both batches draws from the same seed, so the
        difference in outcomes comes from the plans alone. Both plans must
        list the same number of asset classes.
        """
        if len(baseline.asset_classes) != len(scenario.asset_classes):
            raise DataValidationError(
                "asset_classes",
                f"scenario has {len(scenario.asset_classes)} asset classes, baseline has "
                f"{len(baseline.asset_classes)}",
            )
        seeds = self._trial_seeds(trial_count, seed)
        comparison = ScenarioComparison(
            baseline=self._batch(self._run_seeds(baseline, seeds, workers), seed),
            scenario=self._batch(self._run_seeds(scenario, seeds, workers), seed),
        )
        logger.info(
            "Scenario comparison over %d trials: baseline %.1f%%, scenario %.1f%% solvent",
            trial_count, comparison.baseline_success_rate * 100, comparison.scenario_success_rate * 100,
        )
        return comparison

    @staticmethod
    def _trial_seeds(trial_count: int, seed: int | None) -> list[int]:
        master = random.Random(seed)
        return [master.getrandbits(64) for _ in range(trial_count)]

    @staticmethod
    def _batch(results: list[TrialResult], seed: int | None) -> SimulationBatch:
        return SimulationBatch(
            paths=[r.path for r in results],
            insolvent=[r.insolvent for r in results],
            seed=seed,
            insolvency_years=[r.insolvency_year for r in results],
        )

    def _run_seeds(
        self, params: SimulationParameters, seeds: list[int], workers: int
    ) -> list[TrialResult]:
        if params.correlation:
            # Fail in this process rather than inside a worker
            cholesky(params.correlation)
        trial_count = len(seeds)
        if workers <= 1 or trial_count <= self.chunk_size:
            results = _run_chunk(self, params, seeds)
        else:
            chunks = [seeds[i:i + self.chunk_size] for i in range(0, len(seeds), self.chunk_size)]
            logger.info("Running %d trials in %d chunks on %d workers", trial_count, len(chunks), workers)
            with ProcessPoolExecutor(max_workers=workers) as pool:
                results = [
                    trial
                    for chunk in pool.map(_run_chunk, [self] * len(chunks), [params] * len(chunks), chunks)
                    for trial in chunk
                ]
        return results

    def sustainable_spending(
        self,
        params: SimulationParameters,
        trial_count: int = 500,
        seed: int | None = 0,
        success_threshold: float = 0.9,
        iterations: int = 20,
    ) -> float:
        """Highest fixed real spending at which at least ``success_threshold`` of trials stay solvent.

        Every candidate level reuses the same seed, so the search compares spending
        levels against identical market paths.
        """
        contributions = params.annual_contribution * params.years_to_retirement
        low, high = 0.0, max(1.0, params.starting_total + contributions)

        for _ in range(iterations):
            mid = (low + high) / 2.0
            candidate = params.model_copy(
                update={
                    "withdrawal_strategy": WithdrawalStrategy.FIXED_REAL_INCOME,
                    "annual_spending": mid,
                }
            )
            batch = self.run(candidate, trial_count, seed=seed)
            solvent = 1.0 - sum(batch.insolvent) / max(1, batch.trial_count)
            if solvent >= success_threshold:
                low = mid
            else:
                high = mid

        return low


def percentiles(
    paths: Sequence[Sequence[float]], levels: Sequence[int] = DEFAULT_PERCENTILES
) -> list[PercentileRow]:
    """Per-year nearest-rank percentiles (index ``floor(p/100 * n)``, clamped)."""
    if not paths:
        return []
    n = len(paths)
    rows: list[PercentileRow] = []
    for year_index in range(len(paths[0])):
        values = sorted(path[year_index] for path in paths)
        rows.append(
            PercentileRow(
                year_index=year_index,
                values={p: values[min(n - 1, math.floor(p / 100 * n))] for p in levels},
            )
        )
    return rows


def success_probability(
    paths: Sequence[Sequence[float]], target_value: float, at_year: int | None = None
) -> float:
    """Fraction of trials whose value at ``at_year`` (default: final year) is at least the target.

    Raises DataValidationError when ``at_year`` is outside the simulated years.
    """
    if not paths:
        return 0.0
    last_year = len(paths[0]) - 1
    if at_year is None:
        at_year = last_year
    elif not 0 <= at_year <= last_year:
        raise DataValidationError("at_year", f"year {at_year} outside simulated years 0..{last_year}")
    return sum(1 for path in paths if path[at_year] >= target_value) / len(paths)
