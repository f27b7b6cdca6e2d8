"""Core calculation engine for single-debt repayment projections.

This module implements one projector per repayment policy. Every projector
is a pure function taking a loan input and returning a :class:`Projection`
with ``periods + 1`` entries: index 0 is origination (full principal, no
payment) and index ``periods`` is maturity. Totals are the sums of the
payment and interest columns. Business-level problems such as unaffordable
payments are reported as warnings on the projection; only malformed input
raises.

Use :func:`project` to select a projector from a :class:`RepaymentMethod`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Type, TypeVar, Union

from loguru import logger

from .data_models import (
    ForbearanceInput,
    GraduatedInput,
    LoanInput,
    Projection,
    ProjectionWarning,
    ReborrowingInput,
    RepaymentMethod,
    SettlementInput,
    WarningLevel,
)
from .exceptions import InvalidLoanInputError, UnsupportedMethodError
from .risk import (
    check_affordability,
    check_balloon,
    check_payment_ceiling,
    check_residual_balance,
)
from .utils import (
    add_months,
    clamp_residual,
    format_money,
    optional_decimal,
    parse_date,
    to_decimal,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
BULLET_SPARE_CASH_SHARE = Decimal("0.8")
BALLOON_SPARE_CASH_SHARE = Decimal("0.7")

V = TypeVar("V", bound=LoanInput)


def annuity_payment(principal: Decimal, rate: Decimal, periods: int) -> Decimal:
    """Return the fixed (annuity) payment that clears ``principal``.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` the periodic rate and ``n`` the
    number of payments. When the rate is zero, the payment simplifies to
    ``P / n``.
    """
    if periods <= 0:
        raise InvalidLoanInputError("Periods must be positive")
    if rate == 0:
        return principal / Decimal(periods)
    factor = (1 + rate) ** periods
    return principal * (rate * factor) / (factor - 1)


@dataclass(frozen=True)
class _Terms:
    principal: Decimal
    rate: Decimal
    periods: int
    start_date: date
    income: Optional[Decimal]
    living_costs: Optional[Decimal]
    max_payment: Optional[Decimal]


def _require_int(value: object, name: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidLoanInputError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidLoanInputError(f"{name} must be at least {minimum}, got {value}")
    return value


def _require_range(value: Decimal, name: str, low: Decimal, high: Optional[Decimal] = None) -> Decimal:
    if value < low or (high is not None and value > high):
        bounds = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise InvalidLoanInputError(f"{name} must be {bounds}, got {value}")
    return value


def _terms(loan: LoanInput) -> _Terms:
    """Validate and coerce the common loan fields."""
    principal = to_decimal(loan.principal, "principal")
    if principal <= 0:
        raise InvalidLoanInputError(f"principal must be positive, got {principal}")
    rate = _require_range(to_decimal(loan.rate, "rate"), "rate", ZERO)
    return _Terms(
        principal=principal,
        rate=rate,
        periods=_require_int(loan.periods, "periods", 1),
        start_date=parse_date(loan.start_date),
        income=optional_decimal(loan.monthly_income, "monthly_income"),
        living_costs=optional_decimal(loan.monthly_living_costs, "monthly_living_costs"),
        max_payment=optional_decimal(loan.max_affordable_payment, "max_affordable_payment"),
    )


def as_variant(loan: LoanInput, variant: Type[V]) -> V:
    """Return ``loan`` as ``variant``, filling policy parameters with defaults."""
    if isinstance(loan, variant):
        return loan
    base = {f.name: getattr(loan, f.name) for f in fields(LoanInput)}
    return variant(**base)


class _ScheduleBuilder:
    """Accumulates the parallel columns of a projection, one row per period."""

    def __init__(self, start_date: date) -> None:
        self.start_date = start_date
        self.dates: List[date] = []
        self.balances: List[Decimal] = []
        self.payments: List[Decimal] = []
        self.principal: List[Decimal] = []
        self.interest: List[Decimal] = []

    def add(
        self,
        balance: Decimal,
        payment: Decimal = ZERO,
        principal: Decimal = ZERO,
        interest: Decimal = ZERO,
        on: Optional[date] = None,
    ) -> None:
        self.dates.append(on or add_months(self.start_date, len(self.dates)))
        self.balances.append(balance)
        self.payments.append(payment)
        self.principal.append(principal)
        self.interest.append(interest)

    def build(self, name: str, warnings: Iterable[Optional[ProjectionWarning]]) -> Projection:
        projection = Projection(
            dates=self.dates,
            balances=self.balances,
            payments=self.payments,
            principal=self.principal,
            interest=self.interest,
            total_paid=sum(self.payments, ZERO),
            total_interest=sum(self.interest, ZERO),
            payoff_date=self.dates[-1],
            warnings=[w for w in warnings if w is not None],
        )
        logger.debug(
            f"{name}: {projection.period_count} periods, total paid {projection.total_paid:.2f}, "
            f"{len(projection.warnings)} warning(s)"
        )
        return projection


def calculate_bullet(loan: LoanInput) -> Projection:
    """Nothing is paid until maturity, when principal plus simple interest is due."""
    t = _terms(loan)
    total_interest = t.principal * t.rate * t.periods
    total_due = t.principal + total_interest

    schedule = _ScheduleBuilder(t.start_date)
    for _ in range(t.periods):
        schedule.add(t.principal)
    schedule.add(ZERO, total_due, t.principal, total_interest)

    warning = check_balloon(
        total_due,
        t.income,
        t.living_costs,
        BULLET_SPARE_CASH_SHARE,
        "Final payment of {amount} requires {percent}%+ of your spare cash",
        period=t.periods,
    )
    return schedule.build("bullet", [warning])


def calculate_amortization(loan: LoanInput) -> Projection:
    """Classic fixed-payment amortization using the annuity formula."""
    t = _terms(loan)
    fixed_payment = annuity_payment(t.principal, t.rate, t.periods)
    warnings = [
        check_affordability(fixed_payment, t.income, t.living_costs, period=0),
        check_payment_ceiling(fixed_payment, t.max_payment, "Fixed payment", period=0),
    ]

    schedule = _ScheduleBuilder(t.start_date)
    schedule.add(t.principal)
    balance = t.principal
    for period in range(1, t.periods + 1):
        if balance <= 0:
            schedule.add(ZERO)
            continue
        interest = balance * t.rate
        principal_part = fixed_payment - interest
        payment = fixed_payment
        if period == t.periods or principal_part > balance:
            # Last payment absorbs the rounding residue.
            principal_part = balance
            payment = balance + interest
        balance = clamp_residual(balance - principal_part)
        schedule.add(balance, payment, principal_part, interest)
    return schedule.build("amortization", warnings)


def calculate_reborrowing_cascade(loan: LoanInput) -> Projection:
    """Repay in full each period, then immediately borrow a share of it again.

    The cascade stops after ``reborrow_max_cycles`` re-borrows or at the last
    period, whichever comes first; later periods are zero-filled.
    """
    loan = as_variant(loan, ReborrowingInput)
    t = _terms(loan)
    percentage = _require_range(
        to_decimal(loan.reborrow_percentage, "reborrow_percentage"), "reborrow_percentage", ZERO, HUNDRED
    )
    max_cycles = _require_int(loan.reborrow_max_cycles, "reborrow_max_cycles", 0)
    factor = percentage / HUNDRED

    schedule = _ScheduleBuilder(t.start_date)
    schedule.add(t.principal)
    balance = t.principal
    cycles = 0
    for period in range(1, t.periods + 1):
        if balance <= 0:
            schedule.add(ZERO)
            continue
        interest = balance * t.rate
        repaid = balance
        if cycles < max_cycles and period < t.periods:
            balance = clamp_residual(repaid * factor)
            cycles += 1
        else:
            balance = ZERO
        schedule.add(balance, repaid + interest, repaid, interest)

    warning = ProjectionWarning(
        level=WarningLevel.WARNING,
        message=f"Cascade creates {cycles} re-borrowing cycles - mathematically expensive",
    )
    return schedule.build("reborrowing_cascade", [warning])


def calculate_interest_only_balloon(loan: LoanInput) -> Projection:
    """Pay interest only, then the whole principal with the final interest."""
    t = _terms(loan)
    interest = t.principal * t.rate

    schedule = _ScheduleBuilder(t.start_date)
    schedule.add(t.principal)
    for _ in range(1, t.periods):
        schedule.add(t.principal, interest, ZERO, interest)
    schedule.add(ZERO, t.principal + interest, t.principal, interest)

    warning = check_balloon(
        t.principal,
        t.income,
        t.living_costs,
        BALLOON_SPARE_CASH_SHARE,
        "Balloon payment of {amount} requires {percent}%+ of spare cash",
        period=t.periods,
    )
    return schedule.build("interest_only_balloon", [warning])


def calculate_equal_principal(loan: LoanInput) -> Projection:
    """Fixed principal each period with interest on the declining balance.

    Payments shrink over time, so the first one is checked against the
    affordability ceilings.
    """
    t = _terms(loan)
    principal_per_period = t.principal / Decimal(t.periods)
    warnings: List[Optional[ProjectionWarning]] = []

    schedule = _ScheduleBuilder(t.start_date)
    schedule.add(t.principal)
    balance = t.principal
    for period in range(1, t.periods + 1):
        interest = balance * t.rate
        principal_part = principal_per_period if period < t.periods else balance
        payment = principal_part + interest
        if period == 1:
            warnings.append(check_payment_ceiling(payment, t.max_payment, "First payment", period=0))
            warnings.append(check_affordability(payment, t.income, t.living_costs, period=0))
        balance = clamp_residual(balance - principal_part)
        schedule.add(balance, payment, principal_part, interest)
    return schedule.build("equal_principal", warnings)


def calculate_graduated(loan: LoanInput) -> Projection:
    """Step-up payments: the payment grows by a percentage every few periods.

    A payment below the period's interest is raised to cover it unless
    negative amortization is allowed, in which case the shortfall is added
    to the balance and the principal column goes negative for that period.
    """
    loan = as_variant(loan, GraduatedInput)
    t = _terms(loan)
    current_payment = _require_range(to_decimal(loan.base_payment, "base_payment"), "base_payment", ZERO)
    step_periods = _require_int(loan.step_periods, "step_periods", 1)
    step_percentage = _require_range(
        to_decimal(loan.step_percentage, "step_percentage"), "step_percentage", ZERO
    )
    step_factor = 1 + step_percentage / HUNDRED
    warnings: List[Optional[ProjectionWarning]] = []

    schedule = _ScheduleBuilder(t.start_date)
    schedule.add(t.principal)
    balance = t.principal
    capitalized = ZERO
    last_payment: Optional[Decimal] = None
    last_period = 0
    for period in range(1, t.periods + 1):
        if balance <= 0:
            schedule.add(ZERO)
            continue
        if period > 1 and (period - 1) % step_periods == 0:
            current_payment *= step_factor
        interest = balance * t.rate
        payment = current_payment
        if payment < interest and not loan.allow_negative_amortization:
            payment = interest
            warnings.append(
                ProjectionWarning(
                    level=WarningLevel.INFO,
                    message=(
                        f"Period {period}: Payment increased to {format_money(interest)} "
                        f"to prevent negative amortization"
                    ),
                    period=period,
                    amount=interest,
                )
            )
        payment = min(payment, balance + interest)
        principal_part = payment - interest
        if principal_part < 0:
            capitalized -= principal_part
        balance = clamp_residual(balance - principal_part)
        last_payment, last_period = payment, period
        schedule.add(balance, payment, principal_part, interest)

    if capitalized > 0:
        warnings.append(
            ProjectionWarning(
                level=WarningLevel.WARNING,
                message=f"Negative amortization adds {format_money(capitalized)} to the balance",
                amount=capitalized,
            )
        )
    if last_payment is not None:
        affordability = check_affordability(last_payment, t.income, t.living_costs, period=last_period)
        if affordability is not None:
            warnings.append(
                replace(
                    affordability,
                    message=f"Final payment of {format_money(last_payment)} may exceed income capacity",
                )
            )
    warnings.append(check_residual_balance(balance, t.periods))
    return schedule.build("graduated", warnings)


def calculate_settlement(loan: LoanInput) -> Projection:
    """Settle the debt at once for a share of the principal.

    With enough cash the projection has two points on the start date: the
    original balance and zero. Otherwise it has a single unpaid point and a
    critical warning.
    """
    loan = as_variant(loan, SettlementInput)
    t = _terms(loan)
    cash = _require_range(to_decimal(loan.cash_available, "cash_available"), "cash_available", ZERO)
    percentage = _require_range(
        to_decimal(loan.accepted_percentage, "accepted_percentage"), "accepted_percentage", ZERO, HUNDRED
    )
    buffer = _require_range(to_decimal(loan.min_cash_buffer, "min_cash_buffer"), "min_cash_buffer", ZERO)
    required_cash = t.principal * percentage / HUNDRED
    warnings: List[Optional[ProjectionWarning]] = []

    schedule = _ScheduleBuilder(t.start_date)
    schedule.add(t.principal)
    if cash < required_cash:
        warnings.append(
            ProjectionWarning(
                level=WarningLevel.CRITICAL,
                message=(
                    f"Need {format_money(required_cash)} cash ({percentage}% of principal), "
                    f"you have {format_money(cash)}"
                ),
                amount=required_cash,
            )
        )
        return schedule.build("settlement", warnings)

    remaining_cash = cash - required_cash
    if remaining_cash < buffer:
        warnings.append(
            ProjectionWarning(
                level=WarningLevel.WARNING,
                message=(
                    f"Settlement leaves only {format_money(remaining_cash)} buffer "
                    f"(recommended: {format_money(buffer)})"
                ),
                amount=remaining_cash,
            )
        )
    forgiven = t.principal - required_cash
    if forgiven > 0:
        warnings.append(
            ProjectionWarning(
                level=WarningLevel.INFO,
                message=f"Creditor writes off {format_money(forgiven)} of principal",
                amount=forgiven,
            )
        )
    schedule.add(ZERO, required_cash, required_cash, ZERO, on=t.start_date)
    return schedule.build("settlement", warnings)


def calculate_forbearance(loan: LoanInput) -> Projection:
    """Payment holiday, then interest catch-up, then amortization.

    During the holiday interest accrues into the balance. The catch-up
    phase repays the accrued interest in equal instalments without touching
    the balance. The remaining periods amortize the (grown) balance with the
    annuity formula.
    """
    loan = as_variant(loan, ForbearanceInput)
    t = _terms(loan)
    holiday_periods = _require_int(loan.holiday_periods, "holiday_periods", 0)
    repay_periods = _require_int(loan.repay_periods, "repay_periods", 0)

    schedule = _ScheduleBuilder(t.start_date)
    schedule.add(t.principal)
    balance = t.principal
    accrued_interest = ZERO
    for period in range(1, t.periods + 1):
        if period <= holiday_periods:
            interest = balance * t.rate
            balance += interest
            accrued_interest += interest
            schedule.add(balance, ZERO, ZERO, interest)
        elif period <= holiday_periods + repay_periods:
            catch_up = accrued_interest / Decimal(repay_periods)
            schedule.add(balance, catch_up, ZERO, catch_up)
        elif balance <= 0:
            schedule.add(ZERO)
        else:
            remaining = t.periods - period + 1
            payment = annuity_payment(balance, t.rate, remaining)
            interest = balance * t.rate
            principal_part = payment - interest
            if remaining == 1:
                principal_part = balance
                payment = balance + interest
            balance = clamp_residual(balance - principal_part)
            schedule.add(balance, payment, principal_part, interest)

    warnings = [
        ProjectionWarning(
            level=WarningLevel.WARNING,
            message=f"Forbearance adds {format_money(accrued_interest)} in accrued interest during holiday",
            amount=accrued_interest,
        ),
        check_residual_balance(balance, t.periods),
    ]
    return schedule.build("forbearance", warnings)


PROJECTORS: Dict[RepaymentMethod, Callable[[LoanInput], Projection]] = {
    RepaymentMethod.BULLET: calculate_bullet,
    RepaymentMethod.AMORTIZATION: calculate_amortization,
    RepaymentMethod.REBORROWING_CASCADE: calculate_reborrowing_cascade,
    RepaymentMethod.INTEREST_ONLY_BALLOON: calculate_interest_only_balloon,
    RepaymentMethod.EQUAL_PRINCIPAL: calculate_equal_principal,
    RepaymentMethod.GRADUATED: calculate_graduated,
    RepaymentMethod.SETTLEMENT: calculate_settlement,
    RepaymentMethod.FORBEARANCE: calculate_forbearance,
}

_unmapped = {m for m in RepaymentMethod if not m.is_portfolio} - set(PROJECTORS)
if _unmapped:
    raise RuntimeError(f"Repayment methods without a projector: {sorted(m.value for m in _unmapped)}")


def project(method: Union[RepaymentMethod, str], loan: LoanInput) -> Projection:
    """Project ``loan`` under ``method``.

    Raises
    ------
    UnsupportedMethodError
        For ``snowball``/``avalanche``, which need a portfolio (see
        :func:`debt_calc.multi_debt.compare_strategies`), or an unknown name.
    """
    try:
        method = RepaymentMethod(method)
    except ValueError as exc:
        raise UnsupportedMethodError(f"Unknown repayment method: {method!r}") from exc
    if method.is_portfolio:
        raise UnsupportedMethodError(
            f"'{method.value}' is a portfolio strategy; use compare_strategies for multiple debts"
        )
    return PROJECTORS[method](loan)
