"""Tests for debt_calc.multi_debt."""

from datetime import date

import pytest

from debt_calc.data_models import MultiDebtLoan, WarningLevel
from debt_calc.exceptions import InvalidLoanInputError
from debt_calc.multi_debt import (
    MAX_PERIODS,
    avalanche_order,
    compare_strategies,
    simulate_portfolio,
    snowball_order,
)

START = date(2025, 3, 1)


class TestSimulatePortfolio:
    def test_single_interest_free_loan(self):
        projection = simulate_portfolio([MultiDebtLoan("a", 1000, 0, 100)], 0, START)
        assert projection.period_count == 10
        assert projection.dates[0] == START
        assert projection.dates[-1] == date(2026, 1, 1)
        assert all(p == 100 for p in projection.payments[1:])
        assert projection.balances[0] == 1000
        assert projection.balances[-1] == 0
        assert projection.total_interest == 0
        assert projection.warnings == []

    def test_surplus_goes_to_first_loan_in_order(self):
        loans = [MultiDebtLoan("x", 500, 0, 0), MultiDebtLoan("y", 500, 0, 0)]
        projection = simulate_portfolio(loans, 100, START)
        assert projection.balances[1] == 900
        # x is cleared after five periods, then y takes the surplus.
        assert projection.period_count == 10

    def test_minimum_capped_at_balance_plus_interest(self):
        projection = simulate_portfolio([MultiDebtLoan("a", 50, "0.1", 500)], 0, START)
        assert projection.payments[1] == 55
        assert projection.period_count == 1

    def test_surplus_capped_at_target_balance(self):
        projection = simulate_portfolio([MultiDebtLoan("a", 150, 0, 0)], 400, START)
        assert projection.payments[1] == 150
        assert projection.balances[-1] == 0

    def test_totals_match_columns(self):
        loans = [MultiDebtLoan("a", 2000, "0.015", 80), MultiDebtLoan("b", 800, "0.02", 40)]
        projection = simulate_portfolio(loans, 150, START)
        assert projection.total_paid == sum(projection.payments)
        assert projection.total_interest == sum(projection.interest)
        assert float(projection.total_paid - projection.total_interest) == pytest.approx(2800, abs=0.02)

    def test_never_negative(self):
        loans = [MultiDebtLoan("a", "333.33", "0.01", 100), MultiDebtLoan("b", "77.7", "0.03", 50)]
        projection = simulate_portfolio(loans, 250, START)
        assert all(b >= 0 for b in projection.balances)

    def test_does_not_converge(self):
        # 5% of 1,000 is 50 a month of interest against a 10 minimum.
        projection = simulate_portfolio([MultiDebtLoan("a", 1000, "0.05", 10)], 0, START)
        assert projection.period_count == MAX_PERIODS == 1000
        assert len(projection.dates) == 1001
        assert [w.level for w in projection.warnings] == [WarningLevel.CRITICAL]
        assert "did not converge" in projection.warnings[0].message
        assert projection.balances[-1] == 1000

    def test_minimum_below_interest_keeps_balance_flat(self):
        projection = simulate_portfolio([MultiDebtLoan("a", 1000, "0.05", 10)], 0, START)
        assert projection.principal[1] == 0
        assert projection.payments[1] == 10
        assert projection.interest[1] == 50
        assert all(a >= b for a, b in zip(projection.balances, projection.balances[1:]))
        assert all(p >= 0 for p in projection.principal)

    def test_input_not_mutated(self):
        loans = [MultiDebtLoan("a", 1000, 0, 100)]
        simulate_portfolio(loans, 50, START)
        assert loans[0].principal == 1000

    def test_empty_portfolio(self):
        with pytest.raises(InvalidLoanInputError):
            simulate_portfolio([], 100, START)

    def test_negative_surplus(self):
        with pytest.raises(InvalidLoanInputError):
            simulate_portfolio([MultiDebtLoan("a", 1000, 0, 100)], -1, START)

    def test_negative_minimum(self):
        with pytest.raises(InvalidLoanInputError):
            simulate_portfolio([MultiDebtLoan("a", 1000, 0, -5)], 0, START)


class TestOrdering:
    LOANS = [
        MultiDebtLoan("mid", 5000, "0.01", 100),
        MultiDebtLoan("small", 300, "0.02", 25),
        MultiDebtLoan("big", 9000, "0.03", 200),
    ]

    def test_snowball_smallest_first(self):
        assert [l.id for l in snowball_order(self.LOANS)] == ["small", "mid", "big"]

    def test_avalanche_highest_rate_first(self):
        assert [l.id for l in avalanche_order(self.LOANS)] == ["big", "small", "mid"]


class TestCompareStrategies:
    def test_avalanche_wins_when_small_loan_is_cheap(self):
        loans = [
            MultiDebtLoan("cheap_small", 300, 0, 0),
            MultiDebtLoan("dear_big", 3000, "0.03", 90),
        ]
        comparison = compare_strategies(loans, 400, START)
        # The snowball clears the small loan first while the big one only
        # covers its interest.
        assert comparison.snowball.balances[1] == 3000
        assert comparison.avalanche.balances[1] == 2900
        assert comparison.interest_saved == 90
        assert comparison.time_saved == 0
        assert comparison.snowball.period_count == comparison.avalanche.period_count == 8
        assert comparison.interest_saved == (
            comparison.snowball.total_interest - comparison.avalanche.total_interest
        )
        for projection in (comparison.snowball, comparison.avalanche):
            assert all(b >= 0 for b in projection.balances)
            assert projection.balances[-1] == 0

    def test_same_order_means_no_difference(self):
        loans = [MultiDebtLoan("a", 100, "0.03", 10), MultiDebtLoan("b", 900, "0.01", 30)]
        comparison = compare_strategies(loans, 200, START)
        assert comparison.interest_saved == 0
        assert comparison.time_saved == 0

    def test_both_runs_use_the_surplus(self):
        loans = [MultiDebtLoan("a", 1000, 0, 0), MultiDebtLoan("b", 2000, 0, 0)]
        comparison = compare_strategies(loans, 500, START)
        assert comparison.snowball.period_count == 6
        assert comparison.avalanche.period_count == 6
        assert comparison.avalanche.warnings == []

    def test_to_dict(self):
        comparison = compare_strategies([MultiDebtLoan("a", 100, 0, 50)], 0, START)
        data = comparison.to_dict()
        assert set(data) == {"snowball", "avalanche", "interestSaved", "timeSaved"}
        assert data["snowball"]["dates"][0] == "2025-03-01"
