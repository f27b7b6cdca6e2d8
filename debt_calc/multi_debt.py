"""Multi-debt payoff simulation (snowball and avalanche).

The simulator pays every debt's minimum each period and throws a fixed
surplus at one target debt: the first debt, in the order given, that still
has a balance. Ordering the portfolio is the caller's job, which is what
:func:`compare_strategies` does for the two supported heuristics.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Sequence, Union

from loguru import logger

from .data_models import (
    MultiDebtComparison,
    MultiDebtLoan,
    Projection,
    ProjectionWarning,
    WarningLevel,
)
from .exceptions import InvalidLoanInputError
from .utils import CENT, add_months, parse_date, to_decimal

ZERO = Decimal("0")
MAX_PERIODS = 1000


@dataclass
class _ActiveLoan:
    id: str
    balance: Decimal
    rate: Decimal
    minimum_payment: Decimal


def _working_copy(loans: Sequence[MultiDebtLoan]) -> List[_ActiveLoan]:
    if not loans:
        raise InvalidLoanInputError("At least one loan is required")
    active = []
    for loan in loans:
        principal = to_decimal(loan.principal, f"principal of loan {loan.id}")
        rate = to_decimal(loan.rate, f"rate of loan {loan.id}")
        minimum = to_decimal(loan.minimum_payment, f"minimum payment of loan {loan.id}")
        if principal < 0 or rate < 0 or minimum < 0:
            raise InvalidLoanInputError(
                f"Loan {loan.id} must have non-negative principal, rate and minimum payment"
            )
        active.append(_ActiveLoan(id=loan.id, balance=principal, rate=rate, minimum_payment=minimum))
    return active


def simulate_portfolio(
    loans: Sequence[MultiDebtLoan],
    surplus: Union[Decimal, int, float, str],
    start_date: Union[date, str],
) -> Projection:
    """Step a portfolio forward until every debt is paid off.

    Each period, every debt with a balance above one cent accrues interest
    and receives ``min(minimum_payment, balance + interest)``. Only the part
    of that payment above the interest reduces the balance, so a minimum
    below the interest leaves the balance flat; the interest column still
    records the full accrual. The surplus then goes
    entirely to the principal of the first debt (in the given order) that
    still has a balance. The columns of the returned projection are
    portfolio aggregates and index 0 is the starting position.

    The loop stops after ``MAX_PERIODS`` periods with a critical warning
    when the debts never pay off, e.g. when minimums and surplus cannot keep
    up with the interest.
    """
    active = _working_copy(loans)
    surplus = to_decimal(surplus, "surplus")
    if surplus < 0:
        raise InvalidLoanInputError(f"surplus must not be negative, got {surplus}")
    start = parse_date(start_date)

    dates = [start]
    balances = [sum((loan.balance for loan in active), ZERO)]
    payments = [ZERO]
    principal = [ZERO]
    interest = [ZERO]
    warnings: List[ProjectionWarning] = []

    period = 0
    while any(loan.balance > CENT for loan in active):
        if period >= MAX_PERIODS:
            logger.warning(f"Portfolio of {len(active)} debts did not pay off within {MAX_PERIODS} periods")
            warnings.append(
                ProjectionWarning(
                    level=WarningLevel.CRITICAL,
                    message=f"Strategy did not converge within {MAX_PERIODS} periods",
                    period=period,
                    amount=balances[-1],
                )
            )
            break
        period += 1

        period_payment = ZERO
        period_principal = ZERO
        period_interest = ZERO
        for loan in active:
            if loan.balance <= CENT:
                continue
            accrued = loan.balance * loan.rate
            payment = min(loan.minimum_payment, loan.balance + accrued)
            principal_paid = max(ZERO, payment - accrued)
            loan.balance -= principal_paid
            period_payment += payment
            period_principal += principal_paid
            period_interest += accrued

        target = next((loan for loan in active if loan.balance > CENT), None)
        if target is not None and surplus > 0:
            extra = min(surplus, target.balance)
            target.balance -= extra
            period_payment += extra
            period_principal += extra

        dates.append(add_months(start, period))
        balances.append(sum((loan.balance for loan in active), ZERO))
        payments.append(period_payment)
        principal.append(period_principal)
        interest.append(period_interest)

    logger.debug(f"Portfolio of {len(active)} debts simulated over {period} periods")
    return Projection(
        dates=dates,
        balances=balances,
        payments=payments,
        principal=principal,
        interest=interest,
        total_paid=sum(payments, ZERO),
        total_interest=sum(interest, ZERO),
        payoff_date=dates[-1],
        warnings=warnings,
    )


def snowball_order(loans: Sequence[MultiDebtLoan]) -> List[MultiDebtLoan]:
    """Smallest balance first."""
    return sorted(loans, key=lambda loan: to_decimal(loan.principal, "principal"))


def avalanche_order(loans: Sequence[MultiDebtLoan]) -> List[MultiDebtLoan]:
    """Highest rate first."""
    return sorted(loans, key=lambda loan: to_decimal(loan.rate, "rate"), reverse=True)


def compare_strategies(
    loans: Sequence[MultiDebtLoan],
    surplus: Union[Decimal, int, float, str],
    start_date: Union[date, str],
) -> MultiDebtComparison:
    """Simulate the portfolio under snowball and avalanche ordering.

    ``interest_saved`` and ``time_saved`` are snowball minus avalanche: a
    positive value means avalanche is cheaper or faster.
    """
    snowball = simulate_portfolio(snowball_order(loans), surplus, start_date)
    avalanche = simulate_portfolio(avalanche_order(loans), surplus, start_date)
    return MultiDebtComparison(
        snowball=snowball,
        avalanche=avalanche,
        interest_saved=snowball.total_interest - avalanche.total_interest,
        time_saved=snowball.period_count - avalanche.period_count,
    )
