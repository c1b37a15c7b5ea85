"""Tests for report formatting and rendering."""

import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from techdebt.models import (
    AreaFailure,
    ChecklistItem,
    MonthOverMonth,
    OrganizationDebtSummary,
    RiskLevel,
    ScoreCategory,
    TechnicalDebtResult,
    TicketBreakdown,
    TicketCounts,
    TrendAnalysis,
    TrendData,
    TrendIndicator,
    UsageCorrelation,
    UsageMetrics,
)
from techdebt.report import (
    format_number,
    format_percentage,
    render_debt_report,
    render_ticket_breakdown,
    render_trend_analysis,
    render_usage_correlation,
)


def test_format_number_and_percentage_handle_missing_values():
    """Verify formatting helpers render fixed decimals, signs and n/a."""
    assert format_number(12.345) == "12.3"
    assert format_number(2.5, 2) == "2.50"
    assert format_number(None) == "n/a"
    assert format_percentage(12.5) == "+12.5%"
    assert format_percentage(-80) == "-80.0%"
    assert format_percentage(None) == "n/a"


def test_render_debt_report_lists_checklist_and_failures():
    """Verify the debt report includes the summary, per-area details and failures."""
    result = TechnicalDebtResult(
        organization="acme",
        product_area="Checkout",
        debt_score=122.0,
        category=ScoreCategory.HIGH_RISK,
        ticket_counts=TicketCounts(critical=1, severe=2, moderate=0, low=1),
        usage_metrics=UsageMetrics(current_usage=400, previous_usage=1000),
        recommendations=("Fix critical tickets.", "Review usage."),
        is_key_module=True,
    )
    summary = OrganizationDebtSummary(
        organization="acme",
        total_product_areas=1,
        average_debt_score=122.0,
        critical_areas=0,
        high_risk_areas=1,
        checklist=(
            ChecklistItem(
                priority=1,
                product_area="Checkout",
                debt_score=122.0,
                category=ScoreCategory.HIGH_RISK,
                recommendations=result.recommendations,
                is_key_module=True,
            ),
        ),
    )

    report = render_debt_report(summary, [result], [AreaFailure("Billing", "timeout")])

    assert "Organization: acme" in report
    assert "Average debt score: 122.00" in report
    assert "High risk areas: 1" in report
    assert "1) Checkout [key module]" in report
    assert "Debt score: 122.0 (High Risk)" in report
    assert "CRITICAL=1 SEVERE=2 MODERATE=0 LOW=1" in report
    assert "drop=60.0%" in report
    assert "   - Review usage." in report
    assert "Failed product areas:" in report
    assert "   - Billing: timeout" in report


def test_render_ticket_breakdown_shows_resolution_time():
    """Verify breakdown lines show totals and n/a when nothing was resolved."""
    report = render_ticket_breakdown(
        "acme",
        [
            TicketBreakdown("Checkout", TicketCounts(critical=2), 2, 3),
            TicketBreakdown("Search", TicketCounts(low=1), 1, None),
        ],
    )

    assert "Checkout: total=2 CRITICAL=2" in report
    assert "avg_resolution=3d" in report
    assert "avg_resolution=n/a" in report


def test_render_usage_correlation_shows_risk():
    """Verify correlation lines show risk level, score and usage drop."""
    report = render_usage_correlation(
        "acme",
        [UsageCorrelation("Checkout", 20, 500.0, 1000.0, 50.0, 0.8, RiskLevel.CRITICAL)],
    )

    assert "Checkout: risk=CRITICAL score=0.80 tickets=20 usage_drop=50.0%" in report


def test_render_trend_analysis_shows_changes_and_points():
    """Verify trend output lists the indicator, signed changes and monthly points."""
    trend = TrendAnalysis(
        product_area="Search",
        trends=(
            TrendData("2026-02", 10, 80.0, 100.0),
            TrendData("2026-03", 2, 80.0, None),
        ),
        month_over_month=MonthOverMonth(ticket_change=-80.0, usage_change=0.0),
        trend_indicator=TrendIndicator.IMPROVING,
    )

    report = render_trend_analysis("acme", [trend])

    assert "Search: IMPROVING" in report
    assert "Tickets -80.0%, usage +0.0%, debt score n/a" in report
    assert "2026-02: tickets=10 usage=80.00 debt=100.0" in report
    assert "2026-03: tickets=2 usage=80.00 debt=n/a" in report
