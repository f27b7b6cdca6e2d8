"""Data models for the debt calculator.

This module defines dataclasses for the loan inputs each repayment strategy
consumes, the projection every strategy produces and the records used by the
multi-debt simulator. Inputs are frozen: they are constructed once per
projection request and never modified. Numeric fields accept ``int``,
``float``, ``str`` or ``Decimal``; the engine coerces them to ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .utils import Number


class RepaymentMethod(str, Enum):
    """Repayment policies a debt can be projected under.

    ``SNOWBALL`` and ``AVALANCHE`` are portfolio-level orderings handled by
    :mod:`debt_calc.multi_debt`; every other member has a single-debt
    projector in :mod:`debt_calc.engine`.
    """

    BULLET = "bullet"
    AMORTIZATION = "amortization"
    REBORROWING_CASCADE = "reborrowing_cascade"
    INTEREST_ONLY_BALLOON = "interest_only_balloon"
    EQUAL_PRINCIPAL = "equal_principal"
    GRADUATED = "graduated"
    SNOWBALL = "snowball"
    AVALANCHE = "avalanche"
    SETTLEMENT = "settlement"
    FORBEARANCE = "forbearance"

    @property
    def is_portfolio(self) -> bool:
        return self in (RepaymentMethod.SNOWBALL, RepaymentMethod.AVALANCHE)


class WarningLevel(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class LoanInput:
    """Terms of a single debt.

    Attributes
    ----------
    principal:
        Amount owed at origination. Must be positive.
    rate:
        Periodic interest rate as a decimal fraction, e.g. ``0.01`` for a
        12 % APR paid monthly.
    periods:
        Number of monthly periods. Must be positive.
    start_date:
        Origination date, as a ``date`` or ``YYYY-MM-DD`` string.
    monthly_income, monthly_living_costs:
        Optional affordability context. The affordability check only runs
        when both are given.
    max_affordable_payment:
        Optional hard ceiling on a single payment.
    """

    principal: Number
    rate: Number
    periods: int
    start_date: Union[date, str]
    monthly_income: Optional[Number] = None
    monthly_living_costs: Optional[Number] = None
    max_affordable_payment: Optional[Number] = None


@dataclass(frozen=True)
class ReborrowingInput(LoanInput):
    reborrow_percentage: Number = 80  # share of the repaid balance borrowed again, 0-100
    reborrow_max_cycles: int = 10


@dataclass(frozen=True)
class GraduatedInput(LoanInput):
    base_payment: Number = 0
    step_periods: int = 3  # periods between payment increases
    step_percentage: Number = 25  # increase applied at each step, in percent
    allow_negative_amortization: bool = False


@dataclass(frozen=True)
class SettlementInput(LoanInput):
    cash_available: Number = 0
    accepted_percentage: Number = 70  # share of principal the creditor accepts
    min_cash_buffer: Number = 0  # cash the borrower wants to keep afterwards


@dataclass(frozen=True)
class ForbearanceInput(LoanInput):
    holiday_periods: int = 0  # periods with no payment
    repay_periods: int = 0  # periods spent repaying the accrued interest


@dataclass(frozen=True)
class ProjectionWarning:
    """An advisory annotation attached to a projection.

    Warnings never stop a computation: a projection carrying a ``critical``
    warning is still complete.
    """

    level: WarningLevel
    message: str
    period: Optional[int] = None
    amount: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.level.value, "message": self.message}
        if self.period is not None:
            data["period"] = self.period
        if self.amount is not None:
            data["amount"] = float(self.amount)
        return data


@dataclass
class Projection:
    """Period-by-period schedule produced by every strategy.

    The lists are parallel: entry ``i`` of each describes the same period.
    Index 0 is origination; single-debt projections hold ``periods + 1``
    entries.
    """

    dates: List[date]
    balances: List[Decimal]
    payments: List[Decimal]
    principal: List[Decimal]
    interest: List[Decimal]
    total_paid: Decimal
    total_interest: Decimal
    payoff_date: date
    warnings: List[ProjectionWarning] = field(default_factory=list)

    @property
    def period_count(self) -> int:
        return len(self.dates) - 1

    @property
    def final_balance(self) -> Decimal:
        return self.balances[-1]

    @property
    def highest_payment(self) -> Decimal:
        return max(self.payments, default=Decimal("0"))

    def has_critical(self) -> bool:
        return any(w.level is WarningLevel.CRITICAL for w in self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serialisable dictionary."""
        return {
            "dates": [d.isoformat() for d in self.dates],
            "balances": [float(b) for b in self.balances],
            "payments": [float(p) for p in self.payments],
            "principal": [float(p) for p in self.principal],
            "interest": [float(i) for i in self.interest],
            "totalPaid": float(self.total_paid),
            "totalInterest": float(self.total_interest),
            "payoffDate": self.payoff_date.isoformat(),
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class MultiDebtLoan:
    """One debt in a portfolio handed to the multi-debt simulator."""

    id: str
    principal: Number
    rate: Number  # periodic (monthly) rate
    minimum_payment: Number


@dataclass
class MultiDebtComparison:
    """Snowball and avalanche projections of the same portfolio.

    ``interest_saved`` and ``time_saved`` are snowball minus avalanche, so a
    positive value means avalanche is cheaper or faster.
    """

    snowball: Projection
    avalanche: Projection
    interest_saved: Decimal
    time_saved: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snowball": self.snowball.to_dict(),
            "avalanche": self.avalanche.to_dict(),
            "interestSaved": float(self.interest_saved),
            "timeSaved": self.time_saved,
        }


@dataclass
class MethodOption:
    """One repayment method evaluated for a draft debt."""

    method: RepaymentMethod
    title: str
    projection: Projection
    highest_payment: Decimal
    hidden: bool = False
    hide_reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value,
            "methodTitle": self.title,
            "projection": self.projection.to_dict(),
            "highestPayment": float(self.highest_payment),
            "hidden": self.hidden,
            "hideReason": self.hide_reason,
        }


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def score(self) -> int:
        return {RiskLevel.LOW: 25, RiskLevel.MEDIUM: 50, RiskLevel.HIGH: 75}[self]

    @property
    def headline(self) -> str:
        return {
            RiskLevel.LOW: "Looks Affordable",
            RiskLevel.MEDIUM: "Room for Caution",
            RiskLevel.HIGH: "High Risk",
        }[self]


@dataclass
class RiskAnalysis:
    """Rule-based verdict on whether a draft debt is affordable.

    ``debt_to_income`` and ``payment_to_disposable`` are percentages of the
    first scheduled payment. ``buffer_weeks`` is disposable income divided by
    that payment.
    """

    level: RiskLevel
    recommendation: str
    monthly_payment: Decimal
    total_interest: Decimal
    debt_to_income: Decimal
    payment_to_disposable: Decimal
    disposable_income: Decimal
    buffer_weeks: Decimal
    warnings: List[str] = field(default_factory=list)
    positives: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "riskLevel": self.level.value,
            "riskScore": self.level.score,
            "headline": self.level.headline,
            "recommendation": self.recommendation,
            "warnings": list(self.warnings),
            "positives": list(self.positives),
            "metrics": {
                "monthlyPayment": float(self.monthly_payment),
                "totalInterest": float(self.total_interest),
                "debtToIncome": round(float(self.debt_to_income), 1),
                "paymentToDisposable": round(float(self.payment_to_disposable), 1),
                "disposableIncome": float(self.disposable_income),
                "bufferWeeks": round(float(self.buffer_weeks), 1),
            },
        }
