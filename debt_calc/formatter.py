"""Output helpers for the debt calculator.

This module renders projections, warnings and comparisons as plain text
tables. We rely only on built-in printing and string formatting.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .data_models import MethodOption, MultiDebtComparison, Projection, ProjectionWarning, RiskAnalysis


def print_warnings(warnings: Iterable[ProjectionWarning]) -> None:
    for w in warnings:
        where = f" (period {w.period})" if w.period is not None else ""
        print(f"[{w.level.value.upper()}]{where} {w.message}")


def print_summary(projection: Projection, title: str = "Summary") -> None:
    """Print the totals of a projection in a human-readable format."""
    print(title)
    print("-" * 72)
    print(f"Periods            : {projection.period_count}")
    print(f"Total paid         : {projection.total_paid:.2f}")
    print(f"Total interest     : {projection.total_interest:.2f}")
    print(f"Highest payment    : {projection.highest_payment:.2f}")
    print(f"Final balance      : {projection.final_balance:.2f}")
    print(f"Payoff date        : {projection.payoff_date.isoformat()}")
    if projection.warnings:
        print_warnings(projection.warnings)
    print("-" * 72)


def print_schedule(projection: Projection, limit: Optional[int] = None) -> None:
    """Print the projection as a simple table, one row per period.

    At most ``limit`` rows are printed when it is given.
    """
    headers = ["Period", "Date", "Payment", "Principal", "Interest", "Balance"]
    print("\t".join(headers))
    rows = zip(
        projection.dates,
        projection.payments,
        projection.principal,
        projection.interest,
        projection.balances,
    )
    for period, (dt, payment, principal, interest, balance) in enumerate(rows):
        if limit is not None and period >= limit:
            break
        print(
            "\t".join(
                [
                    str(period),
                    dt.isoformat(),
                    f"{payment:.2f}",
                    f"{principal:.2f}",
                    f"{interest:.2f}",
                    f"{balance:.2f}",
                ]
            )
        )


def print_comparison(comparison: MultiDebtComparison) -> None:
    """Print snowball and avalanche side by side.

    The difference column is snowball minus avalanche, so a positive value
    means avalanche is cheaper or shorter.
    """
    snowball, avalanche = comparison.snowball, comparison.avalanche
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Snowball':>15s} {'Avalanche':>15s} {'Difference':>15s}")
    print(
        f"{'total_paid':20s} {snowball.total_paid:15.2f} {avalanche.total_paid:15.2f} "
        f"{snowball.total_paid - avalanche.total_paid:15.2f}"
    )
    print(
        f"{'total_interest':20s} {snowball.total_interest:15.2f} {avalanche.total_interest:15.2f} "
        f"{comparison.interest_saved:15.2f}"
    )
    print(
        f"{'periods':20s} {snowball.period_count:15d} {avalanche.period_count:15d} "
        f"{comparison.time_saved:15d}"
    )
    print("=" * 72)
    for name, projection in (("Snowball", snowball), ("Avalanche", avalanche)):
        if projection.warnings:
            print(f"{name} warnings:")
            print_warnings(projection.warnings)


def print_methods(options: Sequence[MethodOption], show_hidden: bool = False) -> None:
    """Print one line per repayment method with its key figures."""
    print(f"{'Method':38s} {'Highest':>12s} {'Interest':>12s} {'Periods':>8s}")
    print("-" * 72)
    for option in options:
        if option.hidden and not show_hidden:
            continue
        projection = option.projection
        print(
            f"{option.title:38s} {option.highest_payment:12.2f} "
            f"{projection.total_interest:12.2f} {projection.period_count:8d}"
        )
        if option.hidden:
            print(f"    hidden: {option.hide_reason}")
    hidden = sum(1 for o in options if o.hidden)
    if hidden and not show_hidden:
        print(f"{hidden} method(s) hidden as unaffordable; use --show-hidden to list them.")


def print_risk(analysis: RiskAnalysis) -> None:
    print(f"{analysis.level.headline} ({analysis.level.value} risk, score {analysis.level.score})")
    print("-" * 72)
    print(f"First payment      : {analysis.monthly_payment:.2f}")
    print(f"Total interest     : {analysis.total_interest:.2f}")
    print(f"Disposable income  : {analysis.disposable_income:.2f}")
    print(f"Debt-to-income     : {analysis.debt_to_income:.1f}%")
    print(f"Of disposable      : {analysis.payment_to_disposable:.1f}%")
    print(f"Buffer             : {analysis.buffer_weeks:.1f}")
    for message in analysis.warnings:
        print(f"  - {message}")
    for message in analysis.positives:
        print(f"  + {message}")
    print("-" * 72)
    print(analysis.recommendation)
