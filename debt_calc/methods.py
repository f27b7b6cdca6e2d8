"""Side-by-side evaluation of every repayment method for a draft debt.

Before a debt is saved, the borrower can see how each repayment policy
would play out with sensible default parameters. Options whose highest
payment the borrower cannot afford are marked hidden with a reason rather
than dropped, so callers can still show them on request.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple, Union

from loguru import logger

from .data_models import (
    ForbearanceInput,
    GraduatedInput,
    LoanInput,
    MethodOption,
    MultiDebtLoan,
    Projection,
    ReborrowingInput,
    RepaymentMethod,
    SettlementInput,
)
from .engine import (
    calculate_amortization,
    calculate_bullet,
    calculate_equal_principal,
    calculate_forbearance,
    calculate_graduated,
    calculate_interest_only_balloon,
    calculate_reborrowing_cascade,
    calculate_settlement,
    project,
)
from .exceptions import InvalidLoanInputError
from .multi_debt import compare_strategies
from .utils import Number, format_money, to_decimal

METHOD_TITLES = {
    RepaymentMethod.AMORTIZATION: "Amortizing (Classic)",
    RepaymentMethod.BULLET: "Bullet (Pay at End)",
    RepaymentMethod.EQUAL_PRINCIPAL: "Equal Principal (Declining Interest)",
    RepaymentMethod.INTEREST_ONLY_BALLOON: "Interest-Only + Balloon",
    RepaymentMethod.GRADUATED: "Graduated (Step-Up)",
    RepaymentMethod.REBORROWING_CASCADE: "Re-Borrowing Cascade",
    RepaymentMethod.SETTLEMENT: "Negotiated Settlement",
    RepaymentMethod.FORBEARANCE: "Forbearance (Payment Holiday)",
    RepaymentMethod.SNOWBALL: "Snowball (Smallest First)",
    RepaymentMethod.AVALANCHE: "Avalanche (Highest Rate First)",
}

GRADUATED_BASE_SHARE = Decimal("0.5")  # of disposable income
SETTLEMENT_VISIBLE_SHARE = Decimal("0.6")  # of principal, in cash
NEW_DEBT_MINIMUM_SHARE = Decimal("0.05")  # of principal, as a minimum payment
PORTFOLIO_SURPLUS_SHARE = Decimal("0.2")  # of disposable income


def compare_methods(
    principal: Number,
    rate: Number,
    periods: int,
    start_date: Union[date, str],
    monthly_income: Number,
    monthly_living_costs: Number,
    cash_available: Number = 0,
    other_debts: Sequence[MultiDebtLoan] = (),
) -> List[MethodOption]:
    """Project a draft debt under every repayment method.

    Parameters
    ----------
    principal, rate, periods, start_date:
        Draft loan terms; ``rate`` is the monthly decimal fraction.
    monthly_income, monthly_living_costs:
        Used for affordability warnings and to hide unaffordable options.
    cash_available:
        Cash the borrower could put towards a settlement.
    other_debts:
        The borrower's existing debts. When given, snowball and avalanche
        are evaluated over the draft debt plus these.
    """
    income = to_decimal(monthly_income, "monthly_income")
    living_costs = to_decimal(monthly_living_costs, "monthly_living_costs")
    disposable = income - living_costs
    common = dict(
        principal=principal,
        rate=rate,
        periods=periods,
        start_date=start_date,
        monthly_income=income,
        monthly_living_costs=living_costs,
    )
    base = LoanInput(**common)

    projections: List[Tuple[RepaymentMethod, Projection]] = [
        (RepaymentMethod.AMORTIZATION, calculate_amortization(base)),
        (RepaymentMethod.BULLET, calculate_bullet(base)),
        (RepaymentMethod.EQUAL_PRINCIPAL, calculate_equal_principal(base)),
        (RepaymentMethod.INTEREST_ONLY_BALLOON, calculate_interest_only_balloon(base)),
        (
            RepaymentMethod.GRADUATED,
            calculate_graduated(
                GraduatedInput(
                    **common,
                    base_payment=max(disposable * GRADUATED_BASE_SHARE, Decimal("0")),
                    step_periods=3,
                    step_percentage=25,
                )
            ),
        ),
        (
            RepaymentMethod.REBORROWING_CASCADE,
            calculate_reborrowing_cascade(
                ReborrowingInput(**common, reborrow_percentage=80, reborrow_max_cycles=10)
            ),
        ),
        (
            RepaymentMethod.SETTLEMENT,
            calculate_settlement(
                SettlementInput(
                    **common,
                    cash_available=cash_available,
                    accepted_percentage=70,
                    min_cash_buffer=living_costs,
                )
            ),
        ),
        (
            RepaymentMethod.FORBEARANCE,
            calculate_forbearance(
                ForbearanceInput(**common, holiday_periods=min(3, periods // 4), repay_periods=3)
            ),
        ),
    ]

    if other_debts:
        draft = MultiDebtLoan(
            id="new",
            principal=principal,
            rate=rate,
            minimum_payment=to_decimal(principal, "principal") * NEW_DEBT_MINIMUM_SHARE,
        )
        surplus = max(disposable * PORTFOLIO_SURPLUS_SHARE, Decimal("0"))
        comparison = compare_strategies([draft, *other_debts], surplus, start_date)
        projections.append((RepaymentMethod.SNOWBALL, comparison.snowball))
        projections.append((RepaymentMethod.AVALANCHE, comparison.avalanche))

    principal_value = to_decimal(principal, "principal")
    cash = to_decimal(cash_available, "cash_available")
    options = [
        _option(method, projection, disposable, principal_value, cash)
        for method, projection in projections
    ]
    logger.debug(
        f"Compared {len(options)} repayment methods; {sum(o.hidden for o in options)} hidden"
    )
    return options


def _option(
    method: RepaymentMethod,
    projection: Projection,
    disposable: Decimal,
    principal: Decimal,
    cash: Decimal,
) -> MethodOption:
    highest = projection.highest_payment
    hide_reason: Optional[str] = None
    if method is RepaymentMethod.SETTLEMENT:
        required = principal * SETTLEMENT_VISIBLE_SHARE
        if cash < required:
            hide_reason = f"Requires at least {format_money(required)} cash (60% of principal)"
    elif highest > disposable:
        hide_reason = (
            f"Highest payment ({format_money(highest)}) exceeds disposable income "
            f"({format_money(disposable)})"
        )
    return MethodOption(
        method=method,
        title=METHOD_TITLES[method],
        projection=projection,
        highest_payment=highest,
        hidden=hide_reason is not None,
        hide_reason=hide_reason or "",
    )


def project_draft(
    method: Union[RepaymentMethod, str],
    principal: Number,
    rate: Number,
    periods: int,
    start_date: Union[date, str],
    monthly_income: Number,
    monthly_living_costs: Number,
) -> Projection:
    """Project a draft debt under ``method`` for a risk check.

    Policy parameters take the defaults of the risk screen: forbearance
    holds 3 periods and catches up over 3, settlement keeps a month of
    living costs and graduated starts from zero. Portfolio methods are
    projected as amortization.
    """
    try:
        method = RepaymentMethod(method)
    except ValueError as exc:
        raise InvalidLoanInputError(f"Unknown repayment method: {method!r}") from exc
    common = dict(
        principal=principal,
        rate=rate,
        periods=periods,
        start_date=start_date,
        monthly_income=monthly_income,
        monthly_living_costs=monthly_living_costs,
    )
    if method is RepaymentMethod.SETTLEMENT:
        loan: LoanInput = SettlementInput(**common, min_cash_buffer=monthly_living_costs)
    elif method is RepaymentMethod.FORBEARANCE:
        loan = ForbearanceInput(**common, holiday_periods=3, repay_periods=3)
    else:
        loan = LoanInput(**common)
    if method.is_portfolio:
        method = RepaymentMethod.AMORTIZATION
    return project(method, loan)
