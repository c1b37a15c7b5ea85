"""Text rendering helpers for technical debt and analytics reports.

This module provides utilities for:
- Formatting optional scores and percentages.
- Rendering the per-area technical debt report with an organization summary.
- Rendering ticket breakdown, usage correlation and trend tables.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .models import (
    AreaFailure,
    OrganizationDebtSummary,
    TechnicalDebtResult,
    TicketBreakdown,
    TrendAnalysis,
    UsageCorrelation,
)


def format_number(value: Optional[float], digits: int = 1) -> str:
    """Format a number with fixed decimals, or ``"n/a"`` when missing."""
    if value is None:
        return "n/a"
    return f"{value:.{digits}f}"


def format_percentage(value: Optional[float]) -> str:
    """Format a percentage change with an explicit sign, or ``"n/a"``."""
    if value is None:
        return "n/a"
    return f"{value:+.1f}%"


def render_debt_report(
    summary: OrganizationDebtSummary,
    results: Sequence[TechnicalDebtResult],
    failures: Sequence[AreaFailure] = (),
) -> str:
    """Render the technical debt report for an organization.

    The report opens with the organization summary, then lists each product
    area in checklist priority order with its ticket counts, usage metrics
    and recommendations. Failed product areas are listed at the end.

    Args:
        summary: Organization roll-up built from ``results``.
        results: Per-area technical debt results.
        failures: Product areas whose computation failed.

    Returns:
        Formatted multi-line text report.
    """
    by_area = {result.product_area: result for result in results}

    lines = [
        f"Organization: {summary.organization}",
        "Technical Debt Report",
        "",
        f"Product areas analyzed: {summary.total_product_areas}",
        f"Average debt score: {format_number(summary.average_debt_score, 2)}",
        f"Critical areas: {summary.critical_areas}",
        f"High risk areas: {summary.high_risk_areas}",
    ]

    for item in summary.checklist:
        result = by_area[item.product_area]
        counts = result.ticket_counts
        usage = result.usage_metrics
        key_marker = " [key module]" if item.is_key_module else ""

        lines.extend(
            [
                "",
                f"{item.priority}) {item.product_area}{key_marker}",
                f"   Debt score: {format_number(item.debt_score)} ({item.category.value})",
                f"   Tickets: CRITICAL={counts.critical} SEVERE={counts.severe} "
                f"MODERATE={counts.moderate} LOW={counts.low}",
                f"   Usage: current={format_number(usage.current_usage, 2)} "
                f"previous={format_number(usage.previous_usage, 2)} "
                f"drop={format_number(usage.usage_drop_percentage)}%",
            ]
        )
        lines.extend(f"   - {recommendation}" for recommendation in item.recommendations)

    if failures:
        lines.extend(["", "Failed product areas:"])
        lines.extend(f"   - {failure.product_area}: {failure.error}" for failure in failures)

    return "\n".join(lines)


def render_ticket_breakdown(organization: str, breakdowns: Sequence[TicketBreakdown]) -> str:
    lines: List[str] = [f"Organization: {organization}", "Ticket Breakdown", ""]
    for breakdown in breakdowns:
        counts = breakdown.severity_counts
        resolution = (
            f"{breakdown.average_resolution_time}d"
            if breakdown.average_resolution_time is not None
            else "n/a"
        )
        lines.append(
            f"{breakdown.product_area}: total={breakdown.total_tickets} "
            f"CRITICAL={counts.critical} SEVERE={counts.severe} "
            f"MODERATE={counts.moderate} LOW={counts.low} avg_resolution={resolution}"
        )
    return "\n".join(lines)


def render_usage_correlation(organization: str, correlations: Sequence[UsageCorrelation]) -> str:
    lines: List[str] = [f"Organization: {organization}", "Usage Correlation", ""]
    for correlation in correlations:
        lines.append(
            f"{correlation.product_area}: risk={correlation.risk_level.value} "
            f"score={format_number(correlation.correlation_score, 2)} "
            f"tickets={correlation.ticket_count} "
            f"usage_drop={format_number(correlation.usage_drop_percentage)}%"
        )
    return "\n".join(lines)


def render_trend_analysis(organization: str, trends: Sequence[TrendAnalysis]) -> str:
    lines: List[str] = [f"Organization: {organization}", "Trend Analysis"]
    for trend in trends:
        change = trend.month_over_month
        lines.extend(
            [
                "",
                f"{trend.product_area}: {trend.trend_indicator.value}",
                f"   Tickets {format_percentage(change.ticket_change)}, "
                f"usage {format_percentage(change.usage_change)}, "
                f"debt score {format_percentage(change.debt_score_change)}",
            ]
        )
        for point in trend.trends:
            lines.append(
                f"   {point.period}: tickets={point.ticket_count} "
                f"usage={format_number(point.usage_amount, 2)} "
                f"debt={format_number(point.debt_score)}"
            )
    return "\n".join(lines)
