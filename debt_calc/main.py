"""Command-line interface for the debt calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can project a single debt under any repayment method,
compare snowball and avalanche payoff for several debts, or evaluate every
method for a draft debt. Results are printed as tables or, with ``--json``,
as JSON on stdout. ``risk`` grades a draft debt as low, medium or high risk.
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import click

from .data_models import (
    ForbearanceInput,
    GraduatedInput,
    LoanInput,
    MultiDebtLoan,
    ReborrowingInput,
    RepaymentMethod,
    SettlementInput,
)
from .engine import project as project_loan
from .exceptions import DebtCalcError
from .formatter import print_comparison, print_methods, print_risk, print_schedule, print_summary
from .logging_config import setup_logging
from .risk import analyze_risk
from .methods import compare_methods, project_draft
from .multi_debt import compare_strategies
from .utils import monthly_rate_from_apr, normalize_periods, parse_date, to_decimal

MAX_ROWS = 120
SINGLE_DEBT_METHODS = [m.value for m in RepaymentMethod if not m.is_portfolio]


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return to_decimal(value, "amount") * factor
    except DebtCalcError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_optional_amount(value: Optional[str]) -> Optional[Decimal]:
    return parse_amount(value) if value else None


def parse_debt_strings(values: Tuple[str, ...]) -> List[MultiDebtLoan]:
    """Parse ``ID:BALANCE:APR:MIN_PAYMENT`` entries into portfolio loans."""
    loans: List[MultiDebtLoan] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 4:
            raise click.BadParameter(
                f"Debt must be in ID:BALANCE:APR:MIN_PAYMENT format; got {item}"
            )
        debt_id, balance, apr, minimum = parts
        try:
            rate = monthly_rate_from_apr(apr)
        except DebtCalcError as exc:
            raise click.BadParameter(str(exc))
        loans.append(
            MultiDebtLoan(
                id=debt_id,
                principal=parse_amount(balance),
                rate=rate,
                minimum_payment=parse_amount(minimum),
            )
        )
    return loans


def build_loan_input(method: str, options: Dict[str, Any]) -> LoanInput:
    """Build the input variant ``method`` needs from CLI option values.

    Policy options left unset keep the variant's defaults.
    """
    base = dict(
        principal=parse_amount(options["principal"]),
        rate=monthly_rate_from_apr(options["rate"]),
        periods=normalize_periods(options["term"], options["length_unit"]),
        start_date=parse_date(options["start_date"]),
        monthly_income=parse_optional_amount(options.get("income")),
        monthly_living_costs=parse_optional_amount(options.get("living_costs")),
        max_affordable_payment=parse_optional_amount(options.get("max_payment")),
    )

    def policy(**names: str) -> Dict[str, Any]:
        return {field: options[opt] for field, opt in names.items() if options.get(opt) is not None}

    selected = RepaymentMethod(method)
    if selected is RepaymentMethod.REBORROWING_CASCADE:
        return ReborrowingInput(
            **base,
            **policy(reborrow_percentage="reborrow_percentage", reborrow_max_cycles="reborrow_max_cycles"),
        )
    if selected is RepaymentMethod.GRADUATED:
        params = policy(step_periods="step_periods", step_percentage="step_percentage")
        if options.get("base_payment"):
            params["base_payment"] = parse_amount(options["base_payment"])
        return GraduatedInput(
            **base, **params, allow_negative_amortization=bool(options.get("allow_negative_amortization"))
        )
    if selected is RepaymentMethod.SETTLEMENT:
        params = policy(accepted_percentage="accepted_percentage")
        if options.get("cash_available"):
            params["cash_available"] = parse_amount(options["cash_available"])
        if options.get("min_cash_buffer"):
            params["min_cash_buffer"] = parse_amount(options["min_cash_buffer"])
        return SettlementInput(**base, **params)
    if selected is RepaymentMethod.FORBEARANCE:
        return ForbearanceInput(
            **base, **policy(holiday_periods="holiday_periods", repay_periods="repay_periods")
        )
    return LoanInput(**base)


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--log-file", "log_file", type=click.Path(dir_okay=False), help="Also write logs to this file")
def cli(verbose: bool, log_file: Optional[str]) -> None:
    """A command-line debt repayment calculator."""
    setup_logging("DEBUG" if verbose else "WARNING", log_file=log_file)


@cli.command()
@click.option("--method", "-m", "method", type=click.Choice(SINGLE_DEBT_METHODS), default="amortization", help="Repayment method")
@click.option("--principal", "-p", "principal", required=True, help="Amount owed")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan length")
@click.option("--length-unit", "length_unit", type=click.Choice(["months", "weeks"]), default="months", help="Unit of --term")
@click.option("--start-date", "-s", "start_date", default=lambda: date.today().isoformat(), help="Start date (YYYY-MM-DD)")
@click.option("--income", "income", help="Monthly income")
@click.option("--living-costs", "living_costs", help="Monthly living costs")
@click.option("--max-payment", "max_payment", help="Maximum affordable payment")
@click.option("--reborrow-percentage", "reborrow_percentage", type=float, help="Re-borrowing cascade: percent re-borrowed each cycle")
@click.option("--reborrow-max-cycles", "reborrow_max_cycles", type=int, help="Re-borrowing cascade: maximum cycles")
@click.option("--base-payment", "base_payment", help="Graduated: starting payment")
@click.option("--step-periods", "step_periods", type=int, help="Graduated: periods between increases")
@click.option("--step-percentage", "step_percentage", type=float, help="Graduated: increase per step (percent)")
@click.option("--allow-negative-amortization", "allow_negative_amortization", is_flag=True, help="Graduated: let payments fall below interest")
@click.option("--cash-available", "cash_available", help="Settlement: cash available")
@click.option("--accepted-percentage", "accepted_percentage", type=float, help="Settlement: percent of principal the creditor accepts")
@click.option("--min-cash-buffer", "min_cash_buffer", help="Settlement: cash to keep afterwards")
@click.option("--holiday-periods", "holiday_periods", type=int, help="Forbearance: periods without payment")
@click.option("--repay-periods", "repay_periods", type=int, help="Forbearance: periods repaying accrued interest")
@click.option("--json", "as_json", is_flag=True, help="Print the projection as JSON")
def project(method: str, as_json: bool, **options: Any) -> None:
    """Project a single debt under one repayment method."""
    try:
        loan = build_loan_input(method, options)
        projection = project_loan(method, loan)
    except DebtCalcError as exc:
        raise click.UsageError(str(exc))
    if as_json:
        echo_json(projection.to_dict())
        return
    print_summary(projection, title=f"Projection ({method})")
    if projection.period_count + 1 > MAX_ROWS:
        click.echo(f"Schedule has {projection.period_count + 1} rows; showing first {MAX_ROWS} rows.")
    print_schedule(projection, limit=MAX_ROWS)


@cli.command()
@click.option("--debt", "-d", "debts", multiple=True, required=True, help="Debt in ID:BALANCE:APR:MIN_PAYMENT format")
@click.option("--surplus", "surplus", default="0", help="Extra cash per month on top of the minimums")
@click.option("--start-date", "-s", "start_date", default=lambda: date.today().isoformat(), help="Start date (YYYY-MM-DD)")
@click.option("--json", "as_json", is_flag=True, help="Print the comparison as JSON")
def compare(debts: Tuple[str, ...], surplus: str, start_date: str, as_json: bool) -> None:
    """Compare snowball and avalanche payoff for several debts.

    Example:

        debt-calc compare -d card:3000:22:90 -d car:9000:6:250 --surplus 300
    """
    loans = parse_debt_strings(debts)
    try:
        comparison = compare_strategies(loans, parse_amount(surplus), start_date)
    except DebtCalcError as exc:
        raise click.UsageError(str(exc))
    if as_json:
        echo_json(comparison.to_dict())
    else:
        print_comparison(comparison)


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Amount owed")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan length")
@click.option("--length-unit", "length_unit", type=click.Choice(["months", "weeks"]), default="months", help="Unit of --term")
@click.option("--start-date", "-s", "start_date", default=lambda: date.today().isoformat(), help="Start date (YYYY-MM-DD)")
@click.option("--income", "income", required=True, help="Monthly income")
@click.option("--living-costs", "living_costs", required=True, help="Monthly living costs")
@click.option("--cash-available", "cash_available", default="0", help="Cash available for a settlement")
@click.option("--debt", "-d", "debts", multiple=True, help="Existing debt in ID:BALANCE:APR:MIN_PAYMENT format")
@click.option("--show-hidden", "show_hidden", is_flag=True, help="Also list unaffordable methods")
@click.option("--json", "as_json", is_flag=True, help="Print the options as JSON")
def methods(
    principal: str,
    rate: str,
    term: int,
    length_unit: str,
    start_date: str,
    income: str,
    living_costs: str,
    cash_available: str,
    debts: Tuple[str, ...],
    show_hidden: bool,
    as_json: bool,
) -> None:
    """Evaluate every repayment method for a draft debt."""
    try:
        options = compare_methods(
            principal=parse_amount(principal),
            rate=monthly_rate_from_apr(rate),
            periods=normalize_periods(term, length_unit),
            start_date=start_date,
            monthly_income=parse_amount(income),
            monthly_living_costs=parse_amount(living_costs),
            cash_available=parse_amount(cash_available),
            other_debts=parse_debt_strings(debts),
        )
    except DebtCalcError as exc:
        raise click.UsageError(str(exc))
    if as_json:
        echo_json({"methods": [o.to_dict() for o in options]})
    else:
        print_methods(options, show_hidden=show_hidden)


@cli.command()
@click.option("--method", "-m", "method", type=click.Choice([m.value for m in RepaymentMethod]), default="amortization", help="Repayment method")
@click.option("--principal", "-p", "principal", required=True, help="Amount to borrow")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan length")
@click.option("--length-unit", "length_unit", type=click.Choice(["months", "weeks"]), default="months", help="Unit of --term")
@click.option("--start-date", "-s", "start_date", default=lambda: date.today().isoformat(), help="Start date (YYYY-MM-DD)")
@click.option("--income", "income", required=True, help="Monthly income")
@click.option("--living-costs", "living_costs", required=True, help="Monthly living costs")
@click.option("--json", "as_json", is_flag=True, help="Print the analysis and projection as JSON")
def risk(
    method: str,
    principal: str,
    rate: str,
    term: int,
    length_unit: str,
    start_date: str,
    income: str,
    living_costs: str,
    as_json: bool,
) -> None:
    """Grade the risk of taking on a draft debt."""
    try:
        periods = normalize_periods(term, length_unit)
        amount = parse_amount(principal)
        projection = project_draft(
            method,
            principal=amount,
            rate=monthly_rate_from_apr(rate),
            periods=periods,
            start_date=start_date,
            monthly_income=parse_amount(income),
            monthly_living_costs=parse_amount(living_costs),
        )
        analysis = analyze_risk(projection, amount, periods, parse_amount(income), parse_amount(living_costs))
    except DebtCalcError as exc:
        raise click.UsageError(str(exc))
    if as_json:
        echo_json({"analysis": analysis.to_dict(), "projection": projection.to_dict()})
    else:
        print_risk(analysis)


if __name__ == "__main__":
    cli()
