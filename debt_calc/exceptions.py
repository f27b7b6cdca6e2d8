"""Exception hierarchy for the debt calculator.

Business-level infeasibility (unaffordable payments, insufficient settlement
cash, a portfolio that never pays off) is reported through projection
warnings, never raised. These exceptions cover malformed input only.
"""


class DebtCalcError(Exception):
    """Base exception class for all debt calculator errors."""


class InvalidLoanInputError(DebtCalcError, ValueError):
    """Raised for malformed inputs (non-positive principal, non-finite numbers...)."""


class UnsupportedMethodError(DebtCalcError, ValueError):
    """Raised when a repayment method has no single-debt projector."""
