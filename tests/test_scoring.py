"""Tests for the technical debt scoring engine."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from techdebt.models import ScoreCategory, Severity, TicketCounts, UsageMetrics
from techdebt.scoring import (
    SEVERITY_WEIGHTS,
    UNUSED_KEY_MODULE_PENALTY,
    UNUSED_REGULAR_MODULE_PENALTY,
    calculate_technical_debt_score,
    calculate_ticket_impact_score,
    calculate_usage_health_score,
    generate_recommendations,
    get_score_category,
    validate_scoring_inputs,
)


def _counts(critical: int = 0, severe: int = 0, moderate: int = 0, low: int = 0) -> TicketCounts:
    return TicketCounts(critical=critical, severe=severe, moderate=moderate, low=low)


def _steady_usage() -> UsageMetrics:
    return UsageMetrics(current_usage=1000, previous_usage=1000)


def test_severity_weights_match_expected_constants():
    """Verify severity weights are CRITICAL=4, SEVERE=3, MODERATE=2, LOW=1."""
    assert SEVERITY_WEIGHTS[Severity.CRITICAL] == 4
    assert SEVERITY_WEIGHTS[Severity.SEVERE] == 3
    assert SEVERITY_WEIGHTS[Severity.MODERATE] == 2
    assert SEVERITY_WEIGHTS[Severity.LOW] == 1


def test_ticket_impact_score_weights_all_severities():
    """Verify impact score is the weighted sum over all four severities."""
    assert calculate_ticket_impact_score(_counts(2, 3, 4, 5)) == 30


def test_ticket_impact_score_zero_tickets_is_zero():
    """Verify an empty ticket set has no impact."""
    assert calculate_ticket_impact_score(_counts()) == 0


def test_ticket_impact_score_only_critical_tickets():
    """Verify critical-only tickets are weighted by four."""
    assert calculate_ticket_impact_score(_counts(critical=5)) == 20


def test_usage_health_score_steady_usage_is_perfect():
    """Verify unchanged usage yields a health score of 100."""
    assert calculate_usage_health_score(_steady_usage(), is_key_module=False) == 100


def test_usage_health_score_zero_usage_with_previous_usage_floors_at_zero():
    """Verify zero current usage adds the flat penalty and a 100% drop, floored at 0."""
    usage = UsageMetrics(current_usage=0, previous_usage=1000)

    assert usage.usage_drop_percentage == 100
    assert calculate_usage_health_score(usage, is_key_module=False) == 0


def test_usage_health_score_zero_usage_without_history_applies_flat_penalty_only():
    """Verify zero usage with no previous usage applies only the flat penalty."""
    usage = UsageMetrics(current_usage=0, previous_usage=0)

    assert calculate_usage_health_score(usage, is_key_module=False) == 100 - UNUSED_REGULAR_MODULE_PENALTY
    assert calculate_usage_health_score(usage, is_key_module=True) == 100 - UNUSED_KEY_MODULE_PENALTY


def test_usage_health_score_small_drop_only_subtracts_percentage():
    """Verify a 20% drop below the threshold subtracts only the drop itself."""
    usage = UsageMetrics(current_usage=800, previous_usage=1000)

    assert calculate_usage_health_score(usage, is_key_module=False) == pytest.approx(80)


def test_usage_health_score_drop_at_threshold_adds_flat_penalty():
    """Verify a drop of exactly 30% triggers the flat penalty on top of the drop."""
    usage = UsageMetrics(current_usage=70, previous_usage=100)

    assert calculate_usage_health_score(usage, is_key_module=False) == pytest.approx(45)


def test_usage_health_score_large_drop_key_module_combines_penalties():
    """Verify key modules get the larger flat penalty plus the drop percentage."""
    usage = UsageMetrics(current_usage=500, previous_usage=1000)

    assert calculate_usage_health_score(usage, is_key_module=True) == pytest.approx(0)
    assert calculate_usage_health_score(usage, is_key_module=False) == pytest.approx(25)


def test_technical_debt_score_combines_impact_and_usage():
    """Verify debt score is impact * 2 plus the usage health shortfall."""
    score = calculate_technical_debt_score(_counts(1, 2, 1, 1), _steady_usage(), is_key_module=False)

    assert score == 26
    assert get_score_category(score) == ScoreCategory.GOOD


def test_technical_debt_score_usage_contribution_saturates_at_100():
    """Verify the usage term never exceeds 100 even when the penalty does."""
    usage = UsageMetrics(current_usage=0, previous_usage=1000)

    assert calculate_technical_debt_score(_counts(), usage, is_key_module=True) == 100
    assert calculate_technical_debt_score(_counts(critical=50), usage, is_key_module=True) == 500


def test_scoring_functions_are_deterministic():
    """Verify repeated calls with identical inputs produce identical outputs."""
    counts = _counts(3, 1, 0, 7)
    usage = UsageMetrics(current_usage=55, previous_usage=100)

    first = calculate_technical_debt_score(counts, usage, True)
    second = calculate_technical_debt_score(counts, usage, True)

    assert first == second
    assert generate_recommendations(first, counts, usage, True) == generate_recommendations(
        second, counts, usage, True
    )


@pytest.mark.parametrize(
    "score, expected",
    [
        (0, ScoreCategory.GOOD),
        (50, ScoreCategory.GOOD),
        (50.5, ScoreCategory.MODERATE_RISK),
        (100, ScoreCategory.MODERATE_RISK),
        (100.1, ScoreCategory.HIGH_RISK),
        (200, ScoreCategory.HIGH_RISK),
        (200.1, ScoreCategory.CRITICAL),
    ],
)
def test_score_category_boundaries_are_inclusive(score, expected):
    """Verify category upper bounds are inclusive at 50, 100 and 200."""
    assert get_score_category(score) == expected


def test_recommendations_report_critical_and_severe_counts():
    """Verify critical and severe ticket advisories include their counts."""
    counts = _counts(critical=2, severe=3)
    recommendations = generate_recommendations(17, counts, _steady_usage(), False)

    assert "Address 2 critical ticket(s)" in recommendations[0]
    assert "(3)" in recommendations[1]


def test_recommendations_zero_usage_wording_depends_on_key_module():
    """Verify zero usage is urgent for key modules and mild otherwise."""
    usage = UsageMetrics(current_usage=0, previous_usage=0)

    key = generate_recommendations(50, _counts(), usage, True)
    regular = generate_recommendations(25, _counts(), usage, False)

    assert key[0].startswith("URGENT")
    assert "zero usage" in regular[0]
    assert "URGENT" not in regular[0]


def test_recommendations_report_usage_drop_with_one_decimal():
    """Verify a drop above the threshold is reported with one decimal place."""
    usage = UsageMetrics(current_usage=55, previous_usage=100)
    recommendations = generate_recommendations(70, _counts(), usage, False)

    assert any("45.0%" in recommendation for recommendation in recommendations)


def test_recommendations_critical_tier_has_two_lines():
    """Verify scores of 200 and above produce emergency and daily standup advice."""
    recommendations = generate_recommendations(200, _counts(critical=25), _steady_usage(), False)

    tier = [r for r in recommendations if r.startswith("CRITICAL:")]
    assert len(tier) == 1
    assert any("daily standup" in recommendation for recommendation in recommendations)


def test_recommendations_high_and_moderate_tiers():
    """Verify high and moderate risk tiers each add their keyword line."""
    high = generate_recommendations(150, _counts(), _steady_usage(), False)
    moderate = generate_recommendations(75, _counts(), _steady_usage(), False)

    assert high[0].startswith("HIGH RISK:")
    assert len(high) == 2
    assert moderate[0].startswith("MODERATE RISK:")
    assert len(moderate) == 2


def test_recommendations_good_health_is_single_line():
    """Verify a healthy module receives exactly one recommendation."""
    recommendations = generate_recommendations(0, _counts(), _steady_usage(), False)

    assert recommendations == ["Module is in good health. Continue current maintenance practices."]


def test_recommendations_high_volume_and_key_module_advice_follow_tier():
    """Verify volume and key-module advice are appended after the tier lines."""
    counts = _counts(low=11)
    score = calculate_technical_debt_score(counts, _steady_usage(), True)
    recommendations = generate_recommendations(score, counts, _steady_usage(), True)

    assert score == 22
    assert "High ticket volume (11 tickets)" in recommendations[-1]

    key_counts = _counts(severe=10)
    key_score = calculate_technical_debt_score(key_counts, _steady_usage(), True)
    key_recommendations = generate_recommendations(key_score, key_counts, _steady_usage(), True)

    assert key_recommendations[-1].startswith("This is a key module")


def test_validate_scoring_inputs_accepts_typed_values():
    """Verify valid typed inputs produce no errors."""
    assert validate_scoring_inputs(_counts(1, 2, 3, 4), _steady_usage()) == []


def test_validate_scoring_inputs_accepts_raw_mappings():
    """Verify valid raw mappings produce no errors."""
    errors = validate_scoring_inputs(
        {"CRITICAL": 0, "SEVERE": 1, "MODERATE": 2, "LOW": 3},
        {
            "currentUsage": 10,
            "previousUsage": 12.5,
            "usageDropPercentage": 20.0,
            "isZeroUsage": False,
        },
    )

    assert errors == []


def test_validate_scoring_inputs_accumulates_all_errors():
    """Verify every malformed field is reported instead of stopping at the first."""
    errors = validate_scoring_inputs(
        {"CRITICAL": -1, "SEVERE": 1.5, "MODERATE": 2, "LOW": True},
        {
            "currentUsage": -5,
            "previousUsage": "100",
            "usageDropPercentage": -1,
            "isZeroUsage": "no",
        },
    )

    assert len(errors) == 7
    assert "Invalid ticket count for CRITICAL: must be a non-negative integer" in errors
    assert "Invalid ticket count for SEVERE: must be a non-negative integer" in errors
    assert "Invalid ticket count for LOW: must be a non-negative integer" in errors
    assert "Invalid current usage: must be a non-negative number" in errors
    assert "Invalid previous usage: must be a non-negative number" in errors
    assert "Invalid usage drop percentage: must be a non-negative number" in errors
    assert "Invalid zero usage flag: must be a boolean" in errors


def test_validate_scoring_inputs_reports_missing_and_unknown_severities():
    """Verify missing severities and unknown severity keys are both reported."""
    errors = validate_scoring_inputs(
        {"CRITICAL": 0, "SEVERE": 0, "MODERATE": 0, "URGENT": 1},
        _steady_usage(),
    )

    assert errors == ["Unknown severity level: URGENT", "Missing ticket count for LOW"]


def test_validate_scoring_inputs_never_raises_on_wrong_types():
    """Verify non-mapping inputs are reported rather than raising."""
    errors = validate_scoring_inputs(None, None)

    assert "Invalid ticket counts: must be a mapping of severity to count" in errors
    assert "Invalid zero usage flag: must be a boolean" in errors
    assert len(errors) == 5


def test_validate_scoring_inputs_accepts_integers_beyond_float_range():
    """Verify arbitrarily large JSON integers are validated without raising."""
    errors = validate_scoring_inputs(
        {"CRITICAL": 0, "SEVERE": 0, "MODERATE": 0, "LOW": 0},
        {
            "currentUsage": 10**400,
            "previousUsage": 0,
            "usageDropPercentage": 0,
            "isZeroUsage": False,
        },
    )

    assert errors == []


def test_validate_scoring_inputs_rejects_non_finite_floats():
    """Verify NaN and infinite usage values are reported as invalid."""
    errors = validate_scoring_inputs(
        {"CRITICAL": 0, "SEVERE": 0, "MODERATE": 0, "LOW": 0},
        {
            "currentUsage": float("nan"),
            "previousUsage": float("inf"),
            "usageDropPercentage": -(10**400),
            "isZeroUsage": False,
        },
    )

    assert errors == [
        "Invalid current usage: must be a non-negative number",
        "Invalid previous usage: must be a non-negative number",
        "Invalid usage drop percentage: must be a non-negative number",
    ]
