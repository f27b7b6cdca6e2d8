"""Tests for debt_calc.risk."""

from datetime import date
from decimal import Decimal

from debt_calc.data_models import LoanInput, RiskLevel, WarningLevel
from debt_calc.engine import calculate_amortization, calculate_bullet
from debt_calc.risk import (
    analyze_risk,
    check_affordability,
    check_balloon,
    check_payment_ceiling,
    check_residual_balance,
    disposable_income,
)

INCOME = Decimal(3000)
COSTS = Decimal(2000)  # 1,000 disposable


class TestCheckAffordability:
    def test_opt_in(self):
        assert check_affordability(Decimal(5000), None, COSTS) is None
        assert check_affordability(Decimal(5000), INCOME, None) is None

    def test_above_disposable_is_critical(self):
        warning = check_affordability(Decimal("1000.01"), INCOME, COSTS)
        assert warning.level is WarningLevel.CRITICAL
        assert "$1,000.00" in warning.message
        assert warning.amount == Decimal("1000.01")

    def test_above_half_is_warning(self):
        assert check_affordability(Decimal(600), INCOME, COSTS).level is WarningLevel.WARNING

    def test_exactly_disposable_is_warning(self):
        assert check_affordability(Decimal(1000), INCOME, COSTS).level is WarningLevel.WARNING

    def test_half_or_less_is_fine(self):
        assert check_affordability(Decimal(500), INCOME, COSTS) is None

    def test_period_passed_through(self):
        assert check_affordability(Decimal(900), INCOME, COSTS, period=4).period == 4

    def test_disposable_income(self):
        assert disposable_income(INCOME, COSTS) == 1000
        assert disposable_income(None, COSTS) is None


class TestCeilingAndBalloon:
    def test_no_ceiling(self):
        assert check_payment_ceiling(Decimal(300), None, "Fixed payment") is None

    def test_ceiling_exceeded(self):
        warning = check_payment_ceiling(Decimal(300), Decimal(250), "Fixed payment", period=0)
        assert warning.level is WarningLevel.CRITICAL
        assert warning.message.startswith("Fixed payment of $300.00")

    def test_ceiling_met(self):
        assert check_payment_ceiling(Decimal(250), Decimal(250), "Fixed payment") is None

    def test_balloon_share(self):
        warning = check_balloon(
            Decimal(801), INCOME, COSTS, Decimal("0.8"), "Final payment of {amount} requires {percent}%+"
        )
        assert warning.message == "Final payment of $801.00 requires 80%+"
        assert check_balloon(Decimal(800), INCOME, COSTS, Decimal("0.8"), "{amount}") is None

    def test_residual(self):
        assert check_residual_balance(Decimal(0), 12) is None
        assert check_residual_balance(Decimal(50), 12).level is WarningLevel.CRITICAL


def flat_loan(**context):
    """1,200 interest-free over a year: 100 a month."""
    return calculate_amortization(LoanInput(1200, 0, 12, date(2025, 1, 1), **context))


class TestAnalyzeRisk:
    def test_comfortable_loan_is_low_risk(self):
        analysis = analyze_risk(flat_loan(), 1200, 12, 5000, 3000)
        assert analysis.level is RiskLevel.LOW
        assert analysis.monthly_payment == 100
        assert analysis.payment_to_disposable == 5
        assert analysis.debt_to_income == 2
        assert analysis.buffer_weeks == 20
        assert analysis.warnings == []
        assert analysis.positives == [
            "Payment is only 5% of spare cash - comfortable",
            "Low total interest - good deal",
            "Short term minimizes interest",
        ]
        assert analysis.recommendation.startswith("Looks good!")

    def test_payment_eating_spare_cash_is_high_risk(self):
        # 100 out of 160 disposable is 62.5%.
        analysis = analyze_risk(flat_loan(), 1200, 12, 1160, 1000)
        assert analysis.level is RiskLevel.HIGH
        assert analysis.warnings == [
            "Payment eats 63% of spare cash - very tight",
            "Buffer drops to 1.6 weeks after payment",
        ]
        assert analysis.recommendation == (
            "Try extending to 19 periods to bring payment <= 40% of spare cash"
        )

    def test_debt_to_income_above_twenty_percent_is_medium(self):
        analysis = analyze_risk(flat_loan(), 1200, 12, 400, 100)
        assert analysis.level is RiskLevel.MEDIUM
        assert analysis.warnings == ["Debt-to-income is above 20% - monitor closely"]
        assert analysis.recommendation == "Avoid taking on more debt while repaying this one"

    def test_expensive_interest_is_medium(self):
        projection = calculate_amortization(LoanInput(1000, "0.05", 12, date(2025, 1, 1)))
        analysis = analyze_risk(projection, 1000, 12, 10000, 0)
        assert analysis.level is RiskLevel.MEDIUM
        assert analysis.warnings == ["Interest cost is over 30% of principal"]
        assert analysis.recommendation == "Manageable if income stays steady - keep emergency savings"

    def test_critical_projection_warning_makes_it_high(self):
        loan = LoanInput(5000, "0.02", 6, date(2025, 1, 1), monthly_income=2000, monthly_living_costs=1000)
        projection = calculate_bullet(loan)
        analysis = analyze_risk(projection, 5000, 6, 2000, 1000)
        assert analysis.monthly_payment == 0
        assert analysis.level is RiskLevel.HIGH
        assert analysis.warnings == [projection.warnings[0].message]
        assert analysis.recommendation.startswith("Consider reducing loan amount")

    def test_to_dict(self):
        data = analyze_risk(flat_loan(), 1200, 12, 1160, 1000).to_dict()
        assert data["riskLevel"] == "high"
        assert data["riskScore"] == 75
        assert data["headline"] == "High Risk"
        assert data["metrics"]["paymentToDisposable"] == 62.5
        assert data["metrics"]["debtToIncome"] == 8.6
        assert data["metrics"]["monthlyPayment"] == 100
