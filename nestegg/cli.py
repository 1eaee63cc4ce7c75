"""Typer CLI interface for Nestegg."""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import typer

app = typer.Typer(
    name="nestegg",
    help="Nestegg - tax lots, federal rate tables, and retirement projections.",
)

DEFAULT_LEDGER = Path.home() / ".nestegg" / "ledger.json"


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    log_level: str = typer.Option(
        os.environ.get("NESTEGG_LOG_LEVEL", "WARNING"),
        "--log-level",
        help="Logging level: DEBUG, INFO, WARNING, ERROR",
    ),
) -> None:
    """Nestegg - tax lots, federal rate tables, and retirement projections."""
    from rich.logging import RichHandler

    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _parse_status(filing_status: str) -> Any:
    from nestegg.engines.rates import normalize_filing_status
    from nestegg.models.enums import FilingStatus

    status_map = {
        "SINGLE": FilingStatus.SINGLE,
        "MFJ": FilingStatus.MFJ,
        "MFS": FilingStatus.MFS,
        "HOH": FilingStatus.HOH,
    }
    return status_map.get(filing_status.upper()) or normalize_filing_status(filing_status)


def _load_ledger(path: Path) -> Any:
    """Restore a ledger from its lots and transaction history stored at ``path``."""
    from pydantic import TypeAdapter, ValidationError

    from nestegg.engines.ledger import LotLedger
    from nestegg.models.lots import Lot, Transaction

    if not path.exists():
        return LotLedger()
    try:
        raw = json.loads(path.read_text())
        lots = TypeAdapter(list[Lot]).validate_python(raw.get("lots", []))
        transactions = TypeAdapter(list[Transaction]).validate_python(raw.get("transactions", []))
    except (ValidationError, ValueError, AttributeError) as exc:
        typer.echo(f"Error: Could not load ledger {path}: {exc}", err=True)
        raise typer.Exit(1)
    return LotLedger(lots=lots, transactions=transactions)


def _save_ledger(ledger: Any, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "lots": [lot.model_dump(mode="json") for lot in ledger.lots],
        "transactions": [t.model_dump(mode="json") for t in ledger.transactions],
    }
    path.write_text(json.dumps(payload, indent=2))


def _load_prices(path: Path) -> dict[str, Decimal]:
    raw = json.loads(path.read_text())
    return {ticker.upper(): Decimal(str(price)) for ticker, price in raw.items()}


@app.command()
def rates(
    year: int = typer.Argument(..., help="Tax year (future years are projected)"),
    filing_status: str = typer.Option(
        "SINGLE", "--filing-status", "-s", help="Filing status: SINGLE, MFJ, MFS, HOH",
    ),
    inflation: float | None = typer.Option(
        None, "--inflation", help="Annual inflation for projected years, e.g. 0.03",
    ),
) -> None:
    """Show brackets, deductions, and limits for a tax year."""
    from nestegg.engines.rate_tables import LATEST_KNOWN_YEAR
    from nestegg.engines.rates import resolve_status
    from nestegg.engines.tax import TaxCalculator

    status = _parse_status(filing_status)
    calc = TaxCalculator(inflation_rate=Decimal(str(inflation)) if inflation is not None else None)
    table = calc.table(year)

    label = " (projected)" if year > LATEST_KNOWN_YEAR else ""
    typer.echo(f"FEDERAL RATES {year}{label} - {status}")
    typer.echo("")
    typer.echo("ORDINARY INCOME BRACKETS")
    for bracket in resolve_status(table.ordinary_brackets, status):
        upper = "and up" if not bracket.max.is_finite() else f"${bracket.max:>12,.0f}"
        typer.echo(f"  {bracket.rate * 100:>5.1f}%   ${bracket.min:>12,.0f} - {upper}")
    typer.echo("")
    typer.echo("LONG-TERM CAPITAL GAINS")
    for bracket in resolve_status(table.ltcg_brackets, status):
        upper = "and up" if not bracket.max.is_finite() else f"${bracket.max:>12,.0f}"
        typer.echo(f"  {bracket.rate * 100:>5.1f}%   ${bracket.min:>12,.0f} - {upper}")
    typer.echo("")
    limits = table.contribution_limits
    typer.echo(f"  Standard Deduction:    ${calc.standard_deduction(year, status):>12,.0f}")
    typer.echo(f"  401(k) Limit:          ${limits.traditional_401k:>12,.0f}")
    typer.echo(f"  IRA Limit:             ${limits.traditional_ira:>12,.0f}")
    typer.echo(f"  HSA (self/family):     ${limits.hsa_single:>12,.0f} / ${limits.hsa_family:,.0f}")
    typer.echo(f"  SS Wage Base:          ${table.social_security.wage_base:>12,.0f}")


@app.command()
def tax(
    income: float = typer.Argument(..., help="Taxable ordinary income (after deductions)"),
    year: int = typer.Option(date.today().year, "--year", "-y", help="Tax year"),
    filing_status: str = typer.Option(
        "SINGLE", "--filing-status", "-s", help="Filing status: SINGLE, MFJ, MFS, HOH",
    ),
    ltcg: float = typer.Option(0, "--ltcg", help="Long-term gains and qualified dividends"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Compute federal income tax for taxable income."""
    from nestegg.engines.tax import TaxCalculator

    status = _parse_status(filing_status)
    calc = TaxCalculator()
    ordinary_income = Decimal(str(income))
    gains = Decimal(str(ltcg))

    ordinary_tax = calc.federal_income_tax(ordinary_income, year, status)
    ltcg_tax = calc.ltcg_tax(gains, ordinary_income, calc.ltcg_brackets(year, status))
    marginal = calc.marginal_rate(ordinary_income, calc.brackets(year, status))
    ltcg_rate = calc.ltcg_rate(ordinary_income + gains, calc.ltcg_brackets(year, status))
    total = ordinary_tax + ltcg_tax

    if json_output:
        typer.echo(json.dumps({
            "year": year,
            "filing_status": str(status),
            "ordinary_tax": str(ordinary_tax),
            "ltcg_tax": str(ltcg_tax),
            "total_tax": str(total),
            "marginal_rate": str(marginal),
            "ltcg_rate": str(ltcg_rate),
        }, indent=2))
        return

    typer.echo(f"FEDERAL TAX {year} - {status}")
    typer.echo(f"  Ordinary Income:       ${ordinary_income:>12,.2f}")
    typer.echo(f"  Ordinary Income Tax:   ${ordinary_tax:>12,.2f}")
    if gains > 0:
        typer.echo(f"  LTCG/QDiv:             ${gains:>12,.2f}")
        typer.echo(f"  LTCG/QDiv Tax:         ${ltcg_tax:>12,.2f}")
    typer.echo("  ──────────────────────────────────────")
    typer.echo(f"  Total Federal Tax:     ${total:>12,.2f}")
    typer.echo(f"  Marginal Rate:         {marginal * 100:>12.1f}%")
    typer.echo(f"  LTCG Rate:             {ltcg_rate * 100:>12.1f}%")


@app.command()
def rmd(
    balance: float = typer.Argument(..., help="Tax-deferred balance at the end of the prior year"),
    age: int = typer.Argument(..., help="Age reached this year"),
    birth_year: int | None = typer.Option(
        None, "--birth-year", help="Birth year, to apply the SECURE 2.0 start age",
    ),
) -> None:
    """Compute a required minimum distribution."""
    from nestegg.engines.tax import TaxCalculator

    factor = TaxCalculator.rmd_factor(age)
    amount = TaxCalculator.required_minimum_distribution(Decimal(str(balance)), age, birth_year)
    typer.echo(f"REQUIRED MINIMUM DISTRIBUTION - age {age}")
    if birth_year is not None:
        typer.echo(f"  Start Age:             {TaxCalculator.rmd_start_age(birth_year):>12}")
    typer.echo(f"  Divisor:               {factor if factor is not None else 'n/a':>12}")
    typer.echo(f"  Required Withdrawal:   ${amount:>12,.2f}")


@app.command()
def sell(
    ticker: str = typer.Argument(..., help="Ticker to sell"),
    quantity: float = typer.Argument(..., help="Units to sell"),
    price: float = typer.Argument(..., help="Sale price per unit"),
    ledger_file: Path = typer.Option(DEFAULT_LEDGER, "--ledger", help="Ledger JSON file"),
    sale_date: str | None = typer.Option(None, "--date", help="Sale date YYYY-MM-DD (default today)"),
    method: str = typer.Option("FIFO", "--method", "-m", help="FIFO, LIFO, HIFO, LOFO, AVERAGE, SPECIFIC_ID"),
    fee: float = typer.Option(0, "--fee", help="Total sale fee"),
    lots: list[str] | None = typer.Option(None, "--lot", help="LOT_ID:QUANTITY for SPECIFIC_ID (repeatable)"),
    split: bool = typer.Option(False, "--split", help="Record one sale per holding period"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the lot selection without recording"),
) -> None:
    """Sell from the ledger's lots and record the realized gain."""
    from nestegg.exceptions import PlanningError
    from nestegg.models.enums import LotMethod

    try:
        lot_method = LotMethod(method.upper())
    except ValueError:
        valid = ", ".join(m.value for m in LotMethod)
        typer.echo(f"Error: Invalid method '{method}'. Valid: {valid}", err=True)
        raise typer.Exit(1)

    explicit = None
    if lots:
        explicit = []
        for item in lots:
            lot_id, _, qty = item.rpartition(":")
            explicit.append((lot_id, Decimal(qty)))

    when = date.fromisoformat(sale_date) if sale_date else date.today()
    ledger = _load_ledger(ledger_file)
    qty = Decimal(str(quantity))

    try:
        if dry_run:
            selection = ledger.select(ticker, qty, lot_method, when, explicit)
            typer.echo(f"Selection for {qty} {ticker.upper()} ({lot_method}):")
            for c in selection.consumed:
                typer.echo(f"  {c.lot_id:<24} {c.quantity:>12} @ ${c.unit_cost:,.4f}  {c.holding_period}")
            typer.echo(f"  Cost Basis:            ${selection.cost_basis:>12,.2f}")
            if not selection.is_complete:
                typer.echo(f"  Unfilled:              {selection.quantity_unfilled:>13}")
            return
        sells = ledger.sell(
            ticker, qty, Decimal(str(price)), when, method=lot_method, fee=Decimal(str(fee)),
            explicit_selection=explicit, split_holding_periods=split, source="cli",
        )
    except PlanningError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    _save_ledger(ledger, ledger_file)
    for s in sells:
        typer.echo(f"Sold {s.quantity} {s.ticker} on {s.trade_date} ({s.holding_period})")
        typer.echo(f"  Proceeds:              ${s.proceeds:>12,.2f}")
        typer.echo(f"  Cost Basis:            ${s.cost_basis:>12,.2f}")
        typer.echo(f"  Gain/Loss:             ${s.realized_gain:>12,.2f}")
        if s.wash_sale:
            typer.echo("  Warning: purchase within 30 days of this loss sale (possible wash sale)")


@app.command(name="import")
def import_cmd(
    incoming_file: Path = typer.Argument(..., help="JSON array of buy/sell rows to import"),
    ledger_file: Path = typer.Option(DEFAULT_LEDGER, "--ledger", help="Ledger JSON file"),
    method: str = typer.Option("FIFO", "--method", "-m", help="Lot method for sells without one"),
) -> None:
    """Import transactions, skipping duplicates of recorded history."""
    from pydantic import TypeAdapter, ValidationError

    from nestegg.exceptions import PlanningError
    from nestegg.models.enums import LotMethod
    from nestegg.models.lots import ImportRow

    if not incoming_file.exists():
        typer.echo(f"Error: File not found: {incoming_file}", err=True)
        raise typer.Exit(1)

    ledger = _load_ledger(ledger_file)
    try:
        rows = TypeAdapter(list[ImportRow]).validate_json(incoming_file.read_text())
        screen = ledger.import_transactions(rows, LotMethod(method.upper()))
    except (ValidationError, PlanningError, ValueError) as exc:
        typer.echo(f"Error importing {incoming_file.name}: {exc}", err=True)
        raise typer.Exit(1)

    _save_ledger(ledger, ledger_file)
    typer.echo(f"Imported {len(screen.unique)} transaction(s), skipped {len(screen.duplicates)} duplicate(s)")


@app.command()
def report(
    year: int = typer.Argument(..., help="Tax year for the realized gains report"),
    ledger_file: Path = typer.Option(DEFAULT_LEDGER, "--ledger", help="Ledger JSON file"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the report to this file"),
) -> None:
    """Generate the realized gains report for a tax year."""
    from nestegg.reports import RealizedGainsReport

    ledger = _load_ledger(ledger_file)
    generator = RealizedGainsReport()
    text = generator.render(generator.summarize(ledger.sells(), tax_year=year))
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text)
        typer.echo(f"Report written to {output}")
    else:
        typer.echo(text)


@app.command()
def harvest(
    prices_file: Path = typer.Argument(..., help="JSON file with current prices: {ticker: price}"),
    ledger_file: Path = typer.Option(DEFAULT_LEDGER, "--ledger", help="Ledger JSON file"),
    as_of: str | None = typer.Option(None, "--as-of", help="Valuation date YYYY-MM-DD"),
) -> None:
    """List open lots trading below basis (tax-loss harvesting candidates)."""
    from rich.console import Console
    from rich.table import Table

    ledger = _load_ledger(ledger_file)
    prices = _load_prices(prices_file)
    when = date.fromisoformat(as_of) if as_of else date.today()
    candidates = ledger.harvest_candidates(lambda t: prices.get(t.upper()), when)

    if not candidates:
        typer.echo("No lots are trading below basis.")
        return

    table = Table(title=f"Harvest candidates as of {when}")
    for column in ("Lot", "Ticker", "Quantity", "Basis", "Value", "Loss", "Term", "Wash risk"):
        table.add_column(column)
    for c in candidates:
        table.add_row(
            c.lot_id, c.ticker, f"{c.quantity}", f"{c.cost_basis:,.2f}", f"{c.market_value:,.2f}",
            f"{c.unrealized_loss:,.2f}", str(c.holding_period), "yes" if c.wash_sale_risk else "",
        )
    Console().print(table)


@app.command()
def simulate(
    params_file: Path = typer.Argument(..., help="JSON file with simulation parameters"),
    trials: int = typer.Option(1000, "--trials", "-n", help="Number of Monte Carlo trials"),
    seed: int | None = typer.Option(None, "--seed", help="Seed for reproducible runs"),
    workers: int = typer.Option(1, "--workers", "-w", help="Worker processes"),
    target: float = typer.Option(0.0, "--target", help="Final-value target for success probability"),
    safe_spending: bool = typer.Option(
        False, "--safe-spending", help="Also search for the spending level with 90% solvency",
    ),
    compare: Path | None = typer.Option(
        None, "--compare", help="JSON file with an alternative plan to run on the same market paths",
    ),
) -> None:
    """Run a Monte Carlo retirement projection."""
    from pydantic import ValidationError

    from nestegg.engines.monte_carlo import MonteCarloEngine
    from nestegg.exceptions import PlanningError
    from nestegg.models.simulation import SimulationParameters
    from nestegg.reports import SimulationSummaryGenerator

    plans = []
    for path in [params_file] + ([compare] if compare is not None else []):
        if not path.exists():
            typer.echo(f"Error: File not found: {path}", err=True)
            raise typer.Exit(1)
        try:
            plans.append(SimulationParameters.model_validate_json(path.read_text()))
        except ValidationError as exc:
            typer.echo(f"Error: Invalid simulation parameters in {path}: {exc}", err=True)
            raise typer.Exit(1)
    params = plans[0]

    engine = MonteCarloEngine()
    try:
        if compare is not None:
            comparison = engine.compare(params, plans[1], trials, seed=seed, workers=workers)
            batch = comparison.baseline
        else:
            batch = engine.run(params, trials, seed=seed, workers=workers)
    except PlanningError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    typer.echo(SimulationSummaryGenerator().render(params, batch, target_value=target))

    if compare is not None:
        typer.echo("SCENARIO COMPARISON (same market paths)")
        typer.echo(f"  Baseline Solvent:      {comparison.baseline_success_rate * 100:>8.1f}%")
        typer.echo(f"  Scenario Solvent:      {comparison.scenario_success_rate * 100:>8.1f}%")
        typer.echo(f"  Difference:            {comparison.difference * 100:>+8.1f} pts")

    if safe_spending:
        spending = engine.sustainable_spending(params, trial_count=min(trials, 500), seed=seed or 0)
        typer.echo(f"Sustainable annual spending (90% solvent): ${spending:,.0f}")
