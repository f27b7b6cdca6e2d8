"""JSON API for the debt calculator.

The endpoints take a debt's fields as the client stores them (APR in
percent, lengths in months or weeks, policy parameters possibly missing),
normalize them to the monthly inputs the engine expects and return the
serialized projection. Nothing is persisted.

The app is built by :func:`create_app`; ``flask --app debt_calc_web.app run``
finds the factory on its own.
"""

import os
from datetime import date
from typing import Any, Dict, Mapping, Optional

from flask import Flask, jsonify, request
from loguru import logger

from debt_calc.data_models import (
    ForbearanceInput,
    GraduatedInput,
    LoanInput,
    MultiDebtLoan,
    ReborrowingInput,
    RepaymentMethod,
    SettlementInput,
)
from debt_calc.engine import project
from debt_calc.exceptions import DebtCalcError, InvalidLoanInputError
from debt_calc.logging_config import setup_logging
from debt_calc.methods import compare_methods, project_draft
from debt_calc.multi_debt import compare_strategies
from debt_calc.risk import analyze_risk
from debt_calc.utils import monthly_rate_from_apr, normalize_periods, normalize_rate, to_decimal

DEFAULT_PERIODS = 12

_MISSING = object()


def _field(payload: Mapping[str, Any], name: str, default: Any = _MISSING) -> Any:
    """Return ``payload[name]``, treating ``None`` and ``""`` as absent."""
    value = payload.get(name)
    if value is None or value == "":
        if default is _MISSING:
            raise InvalidLoanInputError(f"Missing required field: {name}")
        return default
    return value


def _int_field(payload: Mapping[str, Any], name: str, default: Any = _MISSING) -> Any:
    value = _field(payload, name, default)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidLoanInputError(f"{name} must be an integer, got {value!r}") from exc


def _bool_field(payload: Mapping[str, Any], name: str, default: bool = False) -> bool:
    value = _field(payload, name, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise InvalidLoanInputError(f"{name} must be true or false, got {value!r}")


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidLoanInputError("Request body must be a JSON object")
    return payload


def _optional_rate(payload: Mapping[str, Any], name: str = "interestRate"):
    apr = _field(payload, name, None)
    return monthly_rate_from_apr(apr) if apr is not None else 0


def loan_input_from_debt(debt: Mapping[str, Any]) -> LoanInput:
    """Build the input variant for ``debt['repaymentMethod']``.

    Missing policy parameters fall back to the same defaults the projection
    screen uses (80 % re-borrowed for 10 cycles, 25 % steps every 3 periods,
    70 % settlements). Portfolio methods are projected as amortization.
    """
    base = dict(
        principal=_field(debt, "principalAmount"),
        rate=_optional_rate(debt),
        periods=_int_field(debt, "totalPeriods", DEFAULT_PERIODS),
        start_date=_field(debt, "startDate", date.today()),
        monthly_income=_field(debt, "monthlyIncome", None),
        monthly_living_costs=_field(debt, "monthlyLivingCosts", None),
        max_affordable_payment=_field(debt, "maxAffordablePayment", None),
    )
    method = _field(debt, "repaymentMethod", RepaymentMethod.AMORTIZATION.value)
    try:
        method = RepaymentMethod(method)
    except ValueError as exc:
        raise InvalidLoanInputError(f"Unknown repayment method: {method!r}") from exc

    if method is RepaymentMethod.REBORROWING_CASCADE:
        return ReborrowingInput(
            **base,
            reborrow_percentage=_field(debt, "reborrowPercentage", 80),
            reborrow_max_cycles=_int_field(debt, "reborrowMaxCycles", 10),
        )
    if method is RepaymentMethod.GRADUATED:
        return GraduatedInput(
            **base,
            base_payment=_field(debt, "graduatedBasePayment", 0),
            step_periods=_int_field(debt, "graduatedStepPeriods", 3),
            step_percentage=_field(debt, "graduatedStepPercentage", 25),
            allow_negative_amortization=_bool_field(debt, "graduatedAllowNegativeAmort"),
        )
    if method is RepaymentMethod.SETTLEMENT:
        return SettlementInput(
            **base,
            cash_available=_field(debt, "settlementCashAvailable", 0),
            accepted_percentage=_field(debt, "settlementAcceptedPercentage", 70),
            min_cash_buffer=_field(debt, "settlementMinCashBuffer", 0),
        )
    if method is RepaymentMethod.FORBEARANCE:
        return ForbearanceInput(
            **base,
            holiday_periods=_int_field(debt, "forbearanceHolidayPeriods", 0),
            repay_periods=_int_field(debt, "forbearanceRepayPeriods", 0),
        )
    return LoanInput(**base)


def _method_for(debt: Mapping[str, Any]) -> RepaymentMethod:
    method = RepaymentMethod(_field(debt, "repaymentMethod", RepaymentMethod.AMORTIZATION.value))
    if method.is_portfolio:
        logger.info(f"Projecting single debt under '{method.value}' as amortization")
        return RepaymentMethod.AMORTIZATION
    return method


def portfolio_from_debts(debts: Any) -> list:
    if not isinstance(debts, list) or not debts:
        raise InvalidLoanInputError("debts array is required")
    return [
        MultiDebtLoan(
            id=str(_field(d, "id")),
            principal=_field(d, "currentBalance"),
            rate=_optional_rate(d),
            minimum_payment=_field(d, "paymentAmount", 0),
        )
        for d in debts
    ]


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Create the Flask app, reading settings from the environment.

    ``DEBT_CALC_LOG_LEVEL`` and ``DEBT_CALC_LOG_FILE`` configure logging;
    ``overrides`` replaces any config value (used by the tests).
    """
    app = Flask(__name__)
    app.config["LOG_LEVEL"] = os.environ.get("DEBT_CALC_LOG_LEVEL", "INFO")
    app.config["LOG_FILE"] = os.environ.get("DEBT_CALC_LOG_FILE")
    if overrides:
        app.config.update(overrides)
    setup_logging(app.config["LOG_LEVEL"], log_file=app.config["LOG_FILE"])

    @app.errorhandler(DebtCalcError)
    def handle_invalid_input(exc: DebtCalcError):
        logger.info(f"Rejected request to {request.path}: {exc}")
        return jsonify({"error": str(exc)}), 400

    @app.get("/healthz")
    def healthz():
        return jsonify({"status": "ok"})

    @app.post("/api/projection")
    def projection():
        debt = _json_body()
        loan = loan_input_from_debt(debt)
        return jsonify(project(_method_for(debt), loan).to_dict())

    @app.post("/api/compare")
    def compare():
        payload = _json_body()
        loans = portfolio_from_debts(payload.get("debts"))
        surplus = _field(payload, "surplus", 0)
        start_date = _field(payload, "startDate", date.today())
        return jsonify(compare_strategies(loans, surplus, start_date).to_dict())

    @app.post("/api/compare-methods")
    def compare_all_methods():
        payload = _json_body()
        rate = normalize_rate(_field(payload, "interestRate", 0), _field(payload, "rateFrequency", "month"))
        periods = normalize_periods(_field(payload, "length"), _field(payload, "lengthUnit", "months"))
        other_debts = payload.get("existingDebts") or []
        options = compare_methods(
            principal=_field(payload, "principal"),
            rate=rate,
            periods=periods,
            start_date=_field(payload, "startDate", date.today()),
            monthly_income=_field(payload, "monthlyIncome"),
            monthly_living_costs=_field(payload, "monthlyLivingCosts"),
            cash_available=_field(payload, "cashSpare", 0),
            other_debts=portfolio_from_debts(other_debts) if other_debts else (),
        )
        return jsonify(
            {
                "methods": [o.to_dict() for o in options],
                "normalizedInput": {
                    "principal": float(to_decimal(_field(payload, "principal"), "principal")),
                    "interestRate": float(rate),
                    "periods": periods,
                },
            }
        )

    @app.post("/api/analyze-risk")
    def analyze_draft_risk():
        payload = _json_body()
        principal = _field(payload, "principal")
        periods = _int_field(payload, "periods", DEFAULT_PERIODS)
        income = _field(payload, "monthlyIncome")
        living_costs = _field(payload, "monthlyLivingCosts")
        projection = project_draft(
            _field(payload, "repaymentMethod", RepaymentMethod.AMORTIZATION.value),
            principal=principal,
            rate=_optional_rate(payload),
            periods=periods,
            start_date=_field(payload, "startDate", date.today()),
            monthly_income=income,
            monthly_living_costs=living_costs,
        )
        analysis = analyze_risk(projection, principal, periods, income, living_costs)
        return jsonify({"analysis": analysis.to_dict(), "projection": projection.to_dict()})

    return app


if __name__ == "__main__":
    print("Starting Debt Calculator API...")
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
