"""
PFHR: Personal Financial Health & Readiness score.

All money inputs are integer minor units (paise). Five component scores
(0-100) are combined with fixed weights:

    emergency fund 0.3, debt 0.3, savings rate 0.2,
    investment readiness 0.2, financial knowledge 0.1
"""
import math

from utils.errors import ValidationError

MONEY_FIELDS = (
    "monthly_income",
    "monthly_expenses",
    "emergency_fund",
    "total_debt",
    "monthly_debt_payments",
    "portfolio_value",
)
EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced")
RISK_TOLERANCES = ("conservative", "moderate", "aggressive")
MIN_AGE, MAX_AGE = 18, 120

WEIGHTS = {
    "emergency_fund_score": 0.3,
    "debt_score": 0.3,
    "savings_rate_score": 0.2,
    "investment_readiness_score": 0.2,
    "financial_knowledge_score": 0.1,
}

EMERGENCY_TARGET_MONTHS = 6

# risk tolerance that matches each experience level
ALIGNED = {"beginner": "conservative", "intermediate": "moderate", "advanced": "aggressive"}
EXPERIENCE_SCORES = {"beginner": 40, "intermediate": 70, "advanced": 100}


def _round_to(value, decimals=2):
    # half-up, not Python's banker's rounding
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def _clamp01(value):
    return max(0.0, min(1.0, value))


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def validate_inputs(data):
    if not isinstance(data, dict):
        raise ValidationError("Invalid input")

    errors = []
    cleaned = {}
    for field in MONEY_FIELDS:
        value = data.get(field)
        if not _is_int(value):
            errors.append(f"{field} must be an integer amount in paise")
        elif field == "monthly_income" and value <= 0:
            errors.append("Monthly income must be greater than 0")
        elif value < 0:
            errors.append(f"{field} must be non-negative")
        else:
            cleaned[field] = value

    if data.get("investment_experience") not in EXPERIENCE_LEVELS:
        errors.append("Investment experience must be beginner, intermediate, or advanced")
    else:
        cleaned["investment_experience"] = data["investment_experience"]

    if data.get("risk_tolerance") not in RISK_TOLERANCES:
        errors.append("Risk tolerance must be conservative, moderate, or aggressive")
    else:
        cleaned["risk_tolerance"] = data["risk_tolerance"]

    age = data.get("age")
    if not _is_int(age) or not (MIN_AGE <= age <= MAX_AGE):
        errors.append(f"Age must be between {MIN_AGE} and {MAX_AGE}")
    else:
        cleaned["age"] = age

    if errors:
        raise ValidationError("Invalid input", details=errors)
    return cleaned


def emergency_fund_score(inputs):
    target = inputs["monthly_expenses"] * EMERGENCY_TARGET_MONTHS
    if target == 0:
        return 100.0 if inputs["emergency_fund"] > 0 else 50.0

    ratio = inputs["emergency_fund"] / target
    score = _clamp01(ratio) * 100
    if ratio > 1:
        # up to 12 months earns a small bonus, still capped at 100
        bonus_ratio = min(ratio, 2)
        return min(100.0, score * (1 + (bonus_ratio - 1) * 0.1))
    return score


def debt_score(inputs):
    annual_income = inputs["monthly_income"] * 12
    annual_payments = inputs["monthly_debt_payments"] * 12

    debt_to_income = inputs["total_debt"] / annual_income if annual_income > 0 else 0
    ratio_score = max(0.0, 100 - (debt_to_income / 0.36) * 100)

    burden = annual_payments / annual_income if annual_income > 0 else 0
    burden_score = max(0.0, 100 - (burden / 0.2) * 100)

    return ratio_score * 0.6 + burden_score * 0.4


def savings_rate_score(inputs):
    disposable = inputs["monthly_income"] - inputs["monthly_debt_payments"]
    if disposable <= 0:
        return 0.0
    savings_rate = (disposable - inputs["monthly_expenses"]) / disposable
    return min(100.0, _clamp01(savings_rate / 0.2) * 100)


def portfolio_target_ratio(age):
    """Portfolio as a multiple of annual income expected at ``age``."""
    if age < 30:
        return 0.5
    if age < 35:
        return 1.0
    if age < 40:
        return 2.0
    if age < 50:
        return 3.0
    if age < 60:
        return 6.0
    return 8.0


def investment_readiness_score(inputs):
    annual_income = inputs["monthly_income"] * 12
    portfolio_ratio = inputs["portfolio_value"] / annual_income if annual_income > 0 else 0
    return _clamp01(portfolio_ratio / portfolio_target_ratio(inputs["age"])) * 100


def financial_knowledge_score(inputs):
    experience = inputs["investment_experience"]
    score = EXPERIENCE_SCORES.get(experience, 0)
    if ALIGNED.get(experience) == inputs["risk_tolerance"]:
        score = min(100, score + 10)
    return float(score)


def risk_level(score, breakdown):
    if score < 50 or breakdown["emergency_fund_score"] < 30 or breakdown["debt_score"] < 30:
        return "high"
    if score > 75 and breakdown["emergency_fund_score"] > 60 and breakdown["debt_score"] > 60:
        return "low"
    return "medium"


def category(score):
    if score <= 33:
        return "fragile"
    if score <= 66:
        return "developing"
    return "healthy"


def _inr(paise):
    return f"₹{paise / 100:,.2f}"


def recommendations(breakdown, inputs):
    out = []
    income = inputs["monthly_income"]

    if breakdown["emergency_fund_score"] < 50:
        target = inputs["monthly_expenses"] * EMERGENCY_TARGET_MONTHS
        out.append(
            f"Build emergency fund to {EMERGENCY_TARGET_MONTHS} months of expenses (target: {_inr(target)})"
        )

    if breakdown["debt_score"] < 50:
        dti = inputs["total_debt"] / (income * 12) * 100 if income > 0 else 0
        if dti > 36:
            out.append(f"Reduce debt-to-income ratio (currently {dti:.1f}%, target: <36%)")
        else:
            out.append("Focus on paying down high-interest debt")

    if breakdown["savings_rate_score"] < 50:
        disposable = income - inputs["monthly_debt_payments"]
        current = disposable - inputs["monthly_expenses"]
        out.append(
            f"Increase savings rate to 20% (target: {_inr(disposable * 0.2)}/month, "
            f"currently: {_inr(current)}/month)"
        )

    if breakdown["investment_readiness_score"] < 50:
        target = income * 12 * portfolio_target_ratio(inputs["age"])
        out.append(f"Build investment portfolio (target: {_inr(target)} for your age)")

    if breakdown["financial_knowledge_score"] < 60:
        out.append("Consider financial education resources or working with a financial advisor")

    return out or ["Maintain current financial practices"]


def compute_pfhr(inputs):
    if inputs.get("monthly_income") == 0:
        raise ValidationError("Monthly income must be greater than 0 to calculate PFHR score")

    raw = {
        "emergency_fund_score": emergency_fund_score(inputs),
        "debt_score": debt_score(inputs),
        "savings_rate_score": savings_rate_score(inputs),
        "investment_readiness_score": investment_readiness_score(inputs),
        "financial_knowledge_score": financial_knowledge_score(inputs),
    }
    # the weights add up to 1.1, so a perfect profile would overshoot
    score = _round_to(min(100.0, sum(raw[name] * weight for name, weight in WEIGHTS.items())))

    return {
        "score": score,
        "category": category(score),
        "breakdown": {name: _round_to(value) for name, value in raw.items()},
        "risk_level": risk_level(score, raw),
        "recommendations": recommendations(raw, inputs),
    }
