"""Shared test fixtures for debt_calc."""

from datetime import date

import pytest

from debt_calc.data_models import LoanInput


@pytest.fixture
def start():
    return date(2025, 1, 15)


@pytest.fixture
def standard_loan(start):
    """12,000 at 1% a month over a year: the textbook amortization example."""
    return LoanInput(principal=12000, rate=0.01, periods=12, start_date=start)
