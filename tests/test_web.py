"""Tests for the debt_calc_web JSON API."""

import importlib
from decimal import Decimal

import pytest
from loguru import logger

from debt_calc.data_models import GraduatedInput, ReborrowingInput
from debt_calc.exceptions import InvalidLoanInputError
from debt_calc.utils import to_decimal
import debt_calc_web.app as web_app
from debt_calc_web.app import create_app, loan_input_from_debt


@pytest.fixture()
def client():
    app = create_app({"TESTING": True, "LOG_LEVEL": "WARNING"})
    with app.test_client() as client:
        yield client


def _debt(**overrides):
    debt = {
        "principalAmount": "12000",
        "interestRate": "12",
        "totalPeriods": 12,
        "startDate": "2025-01-15",
        "repaymentMethod": "amortization",
    }
    debt.update(overrides)
    return debt


class TestLoanInputFromDebt:
    def test_apr_normalized_to_monthly(self):
        loan = loan_input_from_debt(_debt())
        assert loan.rate == Decimal("0.01")

    def test_policy_defaults(self):
        loan = loan_input_from_debt(_debt(repaymentMethod="reborrowing_cascade", reborrowPercentage=""))
        assert isinstance(loan, ReborrowingInput)
        assert loan.reborrow_percentage == 80
        assert loan.reborrow_max_cycles == 10

    def test_graduated_fields(self):
        loan = loan_input_from_debt(
            _debt(repaymentMethod="graduated", graduatedBasePayment="500", graduatedStepPeriods=6)
        )
        assert isinstance(loan, GraduatedInput)
        assert to_decimal(loan.base_payment, "base_payment") == 500
        assert loan.step_periods == 6
        assert loan.step_percentage == 25

    def test_missing_periods_default_to_a_year(self):
        debt = _debt()
        del debt["totalPeriods"]
        assert loan_input_from_debt(debt).periods == 12

    @pytest.mark.parametrize("flag, expected", [("false", False), ("TRUE", True), (True, True), (False, False)])
    def test_negative_amortization_flag(self, flag, expected):
        loan = loan_input_from_debt(_debt(repaymentMethod="graduated", graduatedAllowNegativeAmort=flag))
        assert loan.allow_negative_amortization is expected

    def test_negative_amortization_flag_rejects_garbage(self):
        with pytest.raises(InvalidLoanInputError):
            loan_input_from_debt(_debt(repaymentMethod="graduated", graduatedAllowNegativeAmort="maybe"))


class TestProjectionEndpoint:
    def test_amortization(self, client):
        resp = client.post("/api/projection", json=_debt())
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["totalInterest"] == pytest.approx(794.22, abs=0.05)
        assert data["payoffDate"] == "2026-01-15"
        assert data["balances"][-1] == 0

    def test_portfolio_method_falls_back_to_amortization(self, client):
        resp = client.post("/api/projection", json=_debt(repaymentMethod="snowball"))
        assert resp.status_code == 200
        assert resp.get_json()["payments"][1] == pytest.approx(1066.19, abs=0.01)

    def test_warnings_serialized(self, client):
        resp = client.post(
            "/api/projection",
            json=_debt(repaymentMethod="bullet", monthlyIncome="2000", monthlyLivingCosts="1000"),
        )
        warning = resp.get_json()["warnings"][0]
        assert warning["type"] == "critical"
        assert warning["period"] == 12

    def test_missing_principal(self, client):
        debt = _debt()
        del debt["principalAmount"]
        resp = client.post("/api/projection", json=debt)
        assert resp.status_code == 400
        assert "principalAmount" in resp.get_json()["error"]

    def test_negative_principal(self, client):
        resp = client.post("/api/projection", json=_debt(principalAmount="-5"))
        assert resp.status_code == 400

    def test_unknown_method(self, client):
        resp = client.post("/api/projection", json=_debt(repaymentMethod="lottery"))
        assert resp.status_code == 400

    def test_not_json(self, client):
        resp = client.post("/api/projection", data="principal=1", content_type="text/plain")
        assert resp.status_code == 400


class TestCompareEndpoint:
    def test_compare(self, client):
        resp = client.post(
            "/api/compare",
            json={
                "debts": [
                    {"id": "card", "currentBalance": "3000", "interestRate": "22", "paymentAmount": "90"},
                    {"id": "car", "currentBalance": "9000", "interestRate": "6", "paymentAmount": "250"},
                ],
                "surplus": "300",
                "startDate": "2025-01-01",
            },
        )
        assert resp.status_code == 200
        data = resp.get_json()
        assert set(data) == {"snowball", "avalanche", "interestSaved", "timeSaved"}
        assert data["interestSaved"] >= 0

    def test_debts_required(self, client):
        resp = client.post("/api/compare", json={"surplus": 100})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "debts array is required"


class TestCompareMethodsEndpoint:
    def test_monthly(self, client):
        resp = client.post(
            "/api/compare-methods",
            json={
                "principal": "10000",
                "interestRate": "1",
                "rateFrequency": "month",
                "length": "12",
                "lengthUnit": "months",
                "monthlyIncome": "5000",
                "monthlyLivingCosts": "3000",
                "cashSpare": "0",
                "startDate": "2025-01-01",
            },
        )
        assert resp.status_code == 200
        data = resp.get_json()
        assert len(data["methods"]) == 8
        assert data["normalizedInput"]["interestRate"] == pytest.approx(0.01)
        assert data["normalizedInput"]["periods"] == 12

    def test_weekly_terms(self, client):
        resp = client.post(
            "/api/compare-methods",
            json={
                "principal": 2000,
                "interestRate": 1,
                "rateFrequency": "week",
                "length": 52,
                "lengthUnit": "weeks",
                "monthlyIncome": 4000,
                "monthlyLivingCosts": 2500,
                "existingDebts": [{"id": "card", "currentBalance": 1500, "interestRate": 20, "paymentAmount": 50}],
            },
        )
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["normalizedInput"]["periods"] == 13
        assert data["normalizedInput"]["interestRate"] == pytest.approx(0.0433)
        assert {m["method"] for m in data["methods"]} >= {"snowball", "avalanche"}

    def test_income_required(self, client):
        resp = client.post("/api/compare-methods", json={"principal": 100, "length": 12})
        assert resp.status_code == 400


class TestAnalyzeRiskEndpoint:
    def test_low_risk(self, client):
        resp = client.post(
            "/api/analyze-risk",
            json={
                "principal": 1200,
                "interestRate": 0,
                "periods": 12,
                "repaymentMethod": "amortization",
                "monthlyIncome": 5000,
                "monthlyLivingCosts": 3000,
                "startDate": "2025-01-01",
            },
        )
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["analysis"]["riskLevel"] == "low"
        assert data["analysis"]["riskScore"] == 25
        assert data["analysis"]["metrics"]["paymentToDisposable"] == 5.0
        assert data["projection"]["payments"][1] == 100

    def test_income_required(self, client):
        resp = client.post("/api/analyze-risk", json={"principal": 1200, "monthlyLivingCosts": 1000})
        assert resp.status_code == 400
        assert "monthlyIncome" in resp.get_json()["error"]

    def test_unknown_method(self, client):
        resp = client.post(
            "/api/analyze-risk",
            json={"principal": 1200, "monthlyIncome": 5000, "monthlyLivingCosts": 3000, "repaymentMethod": "lottery"},
        )
        assert resp.status_code == 400


def test_import_keeps_existing_log_sinks():
    messages = []
    sink_id = logger.add(messages.append, level="INFO")
    try:
        importlib.reload(web_app)
        logger.info("still listening")
    finally:
        logger.remove(sink_id)
    assert any("still listening" in m for m in messages)


def test_healthz(client):
    assert client.get("/healthz").get_json() == {"status": "ok"}
