import pytest

from models import db
from models.health_score import HealthScoreSubmission
from services.health_score import category, compute_pfhr, validate_inputs
from tests.factories import make_user
from utils.errors import ValidationError

TYPICAL = {
    "monthly_income": 500000,
    "monthly_expenses": 300000,
    "emergency_fund": 1800000,
    "total_debt": 1000000,
    "monthly_debt_payments": 50000,
    "portfolio_value": 5000000,
    "investment_experience": "intermediate",
    "risk_tolerance": "moderate",
    "age": 35,
}


def test_typical_investor():
    result = compute_pfhr(TYPICAL)

    breakdown = result["breakdown"]
    assert breakdown["emergency_fund_score"] == 100
    assert breakdown["financial_knowledge_score"] == 80
    assert breakdown["debt_score"] == pytest.approx(52.22, abs=0.01)
    assert breakdown["savings_rate_score"] == pytest.approx(100)
    assert breakdown["investment_readiness_score"] == pytest.approx(41.67, abs=0.01)
    assert 0 <= result["score"] <= 100
    assert result["risk_level"] in {"low", "medium", "high"}
    assert result["category"] == category(result["score"])


def test_weights():
    result = compute_pfhr(TYPICAL)
    b = result["breakdown"]
    expected = (
        b["emergency_fund_score"] * 0.3
        + b["debt_score"] * 0.3
        + b["savings_rate_score"] * 0.2
        + b["investment_readiness_score"] * 0.2
        + b["financial_knowledge_score"] * 0.1
    )
    assert result["score"] == pytest.approx(expected, abs=0.01)


def test_fragile_profile():
    result = compute_pfhr({
        "monthly_income": 300000,
        "monthly_expenses": 320000,
        "emergency_fund": 0,
        "total_debt": 5000000,
        "monthly_debt_payments": 100000,
        "portfolio_value": 0,
        "investment_experience": "beginner",
        "risk_tolerance": "aggressive",
        "age": 45,
    })
    assert result["risk_level"] == "high"
    assert result["category"] == "fragile"
    assert result["breakdown"]["savings_rate_score"] == 0
    assert any("emergency fund" in r for r in result["recommendations"])
    assert any("debt-to-income" in r for r in result["recommendations"])


def test_no_expenses_edge():
    inputs = dict(TYPICAL, monthly_expenses=0, emergency_fund=0)
    assert compute_pfhr(inputs)["breakdown"]["emergency_fund_score"] == 50


def test_healthy_gets_positive_note():
    result = compute_pfhr({
        "monthly_income": 1000000,
        "monthly_expenses": 300000,
        "emergency_fund": 3600000,
        "total_debt": 0,
        "monthly_debt_payments": 0,
        "portfolio_value": 24000000,
        "investment_experience": "advanced",
        "risk_tolerance": "aggressive",
        "age": 38,
    })
    assert result["score"] == 100
    assert result["risk_level"] == "low"
    assert result["category"] == "healthy"
    assert result["recommendations"] == ["Maintain current financial practices"]


def test_zero_income_rejected():
    with pytest.raises(ValidationError):
        compute_pfhr(dict(TYPICAL, monthly_income=0))


@pytest.mark.parametrize("override", [
    {"monthly_income": 0},
    {"monthly_expenses": -1},
    {"emergency_fund": 10.5},
    {"investment_experience": "expert"},
    {"risk_tolerance": "yolo"},
    {"age": 17},
    {"age": 121},
    {"age": True},
])
def test_validation(override):
    with pytest.raises(ValidationError):
        validate_inputs(dict(TYPICAL, **override))


@pytest.mark.parametrize("score,expected", [(0, "fragile"), (33, "fragile"), (33.01, "developing"),
                                            (66, "developing"), (66.5, "healthy"), (100, "healthy")])
def test_category_thresholds(score, expected):
    assert category(score) == expected


def test_score_route_persists_submission(app):
    client = app.test_client()
    resp = client.post("/score", json=TYPICAL)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["submission_id"]
    assert body["category"] in {"fragile", "developing", "healthy"}

    row = db.session.get(HealthScoreSubmission, body["submission_id"])
    assert row.investor_id is None
    assert row.inputs["age"] == 35

    assert client.get(f"/score/{body['submission_id']}").get_json()["score"] == body["score"]


def test_score_route_validation_error(app):
    resp = app.test_client().post("/score", json=dict(TYPICAL, age=12))
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "VALIDATION_ERROR"


def test_owned_submission_is_private(app, client_for):
    owner = make_user("owner@example.com")
    client, headers = client_for(owner)
    submission_id = client.post("/score", json=TYPICAL, headers=headers).get_json()["submission_id"]

    assert client.get(f"/score/{submission_id}").status_code == 200
    assert app.test_client().get(f"/score/{submission_id}").status_code == 404


def test_typical_totals():
    result = compute_pfhr(TYPICAL)
    assert result["score"] == pytest.approx(82.0, abs=0.01)
    assert result["risk_level"] == "medium"
    assert result["category"] == "healthy"
