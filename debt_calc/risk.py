"""Affordability and risk checks shared by the repayment projectors.

Each check returns a :class:`ProjectionWarning` or ``None``; projectors
collect the results into their own warning list. :func:`analyze_risk`
grades a finished projection of a draft debt against the borrower's income.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from .data_models import Projection, ProjectionWarning, RiskAnalysis, RiskLevel, WarningLevel
from .utils import Number, format_money, to_decimal

HALF = Decimal("0.5")


def disposable_income(income: Optional[Decimal], living_costs: Optional[Decimal]) -> Optional[Decimal]:
    """Return ``income - living_costs``, or ``None`` when either is unknown."""
    if income is None or living_costs is None:
        return None
    return income - living_costs


def check_affordability(
    payment: Decimal,
    income: Optional[Decimal],
    living_costs: Optional[Decimal],
    period: Optional[int] = None,
) -> Optional[ProjectionWarning]:
    """Classify ``payment`` against disposable income.

    The check is opt-in: without both income and living costs it returns
    ``None``. A payment above the disposable income is ``critical``; a
    payment above half of it is a ``warning``.
    """
    disposable = disposable_income(income, living_costs)
    if disposable is None:
        return None
    if payment > disposable:
        return ProjectionWarning(
            level=WarningLevel.CRITICAL,
            message=(
                f"Payment of {format_money(payment)} exceeds disposable income "
                f"of {format_money(disposable)}"
            ),
            period=period,
            amount=payment,
        )
    if payment > disposable * HALF:
        return ProjectionWarning(
            level=WarningLevel.WARNING,
            message=f"Payment of {format_money(payment)} exceeds 50% of disposable income",
            period=period,
            amount=payment,
        )
    return None


def check_payment_ceiling(
    payment: Decimal,
    ceiling: Optional[Decimal],
    label: str,
    period: Optional[int] = None,
) -> Optional[ProjectionWarning]:
    """Flag ``payment`` as critical when it exceeds ``max_affordable_payment``."""
    if ceiling is None or payment <= ceiling:
        return None
    return ProjectionWarning(
        level=WarningLevel.CRITICAL,
        message=(
            f"{label} of {format_money(payment)} exceeds max affordable payment "
            f"of {format_money(ceiling)}"
        ),
        period=period,
        amount=payment,
    )


def check_balloon(
    balloon: Decimal,
    income: Optional[Decimal],
    living_costs: Optional[Decimal],
    share: Decimal,
    message: str,
    period: Optional[int] = None,
) -> Optional[ProjectionWarning]:
    """Flag a one-off payment that needs more than ``share`` of spare cash.

    ``message`` is a format string receiving ``amount`` and ``percent``.
    """
    disposable = disposable_income(income, living_costs)
    if disposable is None or balloon <= disposable * share:
        return None
    return ProjectionWarning(
        level=WarningLevel.CRITICAL,
        message=message.format(amount=format_money(balloon), percent=int(share * 100)),
        period=period,
        amount=balloon,
    )


def check_residual_balance(balance: Decimal, period: int) -> Optional[ProjectionWarning]:
    """Flag a schedule that reaches maturity without paying the debt off."""
    if balance <= 0:
        return None
    return ProjectionWarning(
        level=WarningLevel.CRITICAL,
        message=f"Balance of {format_money(balance)} remains unpaid at maturity",
        period=period,
        amount=balance,
    )


def _whole_percent(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def _recommend(
    level: RiskLevel,
    periods: int,
    payment_to_disposable: Decimal,
    debt_to_income: Decimal,
    buffer_weeks: Decimal,
) -> str:
    if level is RiskLevel.HIGH:
        if payment_to_disposable > 60:
            safe_periods = math.ceil(periods * payment_to_disposable / 40)
            return f"Try extending to {safe_periods} periods to bring payment <= 40% of spare cash"
        if buffer_weeks < 2:
            return "Build emergency savings before taking this loan, or reduce the amount"
        return "Consider reducing loan amount or extending term to improve affordability"
    if level is RiskLevel.MEDIUM:
        if debt_to_income > 20:
            return "Avoid taking on more debt while repaying this one"
        return "Manageable if income stays steady - keep emergency savings"
    return "Looks good! Stick to the plan and avoid lifestyle inflation"


def analyze_risk(
    projection: Projection,
    principal: Number,
    periods: int,
    monthly_income: Number,
    monthly_living_costs: Number,
) -> RiskAnalysis:
    """Grade a draft debt as low, medium or high risk.

    The first scheduled payment is compared with income (debt-to-income
    above 20 % is medium, above 30 % high) and with disposable income
    (above 40 % medium, above 60 % high). A payment covered less than twice
    by disposable income, interest above 30 % of principal and the
    projection's own warnings raise the level further. Each rule that fires
    adds a message to ``warnings``; favourable findings go to ``positives``.
    """
    principal = to_decimal(principal, "principal")
    income = to_decimal(monthly_income, "monthly_income")
    disposable = income - to_decimal(monthly_living_costs, "monthly_living_costs")
    payment = projection.payments[1] if len(projection.payments) > 1 else Decimal("0")
    total_interest = projection.total_interest

    debt_to_income = payment / income * 100 if income > 0 else Decimal("0")
    payment_to_disposable = payment / disposable * 100 if disposable > 0 else Decimal("0")
    buffer_weeks = disposable / (payment or 1) if disposable > 0 else Decimal("0")

    level = RiskLevel.LOW
    warnings: List[str] = []
    positives: List[str] = []

    def at_least_medium() -> RiskLevel:
        return RiskLevel.HIGH if level is RiskLevel.HIGH else RiskLevel.MEDIUM

    share = _whole_percent(payment_to_disposable)
    if payment_to_disposable > 60:
        level = RiskLevel.HIGH
        warnings.append(f"Payment eats {share}% of spare cash - very tight")
    elif payment_to_disposable > 40:
        level = RiskLevel.MEDIUM
        warnings.append(f"Payment uses {share}% of disposable income")
    elif payment_to_disposable > 0 and payment_to_disposable <= 30:
        positives.append(f"Payment is only {share}% of spare cash - comfortable")

    if debt_to_income > 30:
        level = RiskLevel.HIGH
        warnings.append("Debt-to-income exceeds safe 30% threshold")
    elif debt_to_income > 20:
        level = at_least_medium()
        warnings.append("Debt-to-income is above 20% - monitor closely")

    if buffer_weeks < 2 and payment > 0:
        level = RiskLevel.HIGH
        warnings.append(f"Buffer drops to {buffer_weeks:.1f} weeks after payment")

    if total_interest > principal * Decimal("0.3"):
        level = at_least_medium()
        warnings.append("Interest cost is over 30% of principal")
    elif total_interest < principal * Decimal("0.1"):
        positives.append("Low total interest - good deal")

    if periods <= 12:
        positives.append("Short term minimizes interest")

    for warning in projection.warnings:
        if warning.level is WarningLevel.CRITICAL:
            level = RiskLevel.HIGH
            warnings.append(warning.message)
        elif warning.level is WarningLevel.WARNING and level is not RiskLevel.HIGH:
            level = RiskLevel.MEDIUM
            warnings.append(warning.message)

    return RiskAnalysis(
        level=level,
        recommendation=_recommend(level, periods, payment_to_disposable, debt_to_income, buffer_weeks),
        monthly_payment=payment,
        total_interest=total_interest,
        debt_to_income=debt_to_income,
        payment_to_disposable=payment_to_disposable,
        disposable_income=disposable,
        buffer_weeks=buffer_weeks,
        warnings=warnings,
        positives=positives,
    )
