"""Organization-wide support analytics.

This module computes, per product area of an organization:
- ticket breakdowns by severity with average resolution time,
- a ticket volume vs. usage decline correlation score and risk level,
- month-over-month trend series with a qualitative trend indicator.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from .debt import collect_area_results
from .models import (
    MonthOverMonth,
    RiskLevel,
    Severity,
    StoredAnalysis,
    Ticket,
    TicketBreakdown,
    TicketCounts,
    TrendAnalysis,
    TrendData,
    TrendIndicator,
    UsageCorrelation,
    UsageRecord,
    ensure_aware,
)
from .store import DataProvider, HistoryStore

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT_AREA = "Unknown"
CORRELATION_WINDOW = timedelta(days=30)
TICKET_NORMALIZER = 10
TICKET_WEIGHT = 0.6
USAGE_DROP_WEIGHT = 0.4
TREND_THRESHOLD = 10.0
HISTORY_SCAN_LIMIT = 1000

_TREND_ORDER = {
    TrendIndicator.DECLINING: 0,
    TrendIndicator.STABLE: 1,
    TrendIndicator.IMPROVING: 2,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calculate_correlation_score(ticket_count: int, usage_drop_percentage: float) -> float:
    """Blend ticket volume and usage decline into a score in ``[0, 1]``.

    Ticket volume saturates at ``TICKET_NORMALIZER`` tickets and weighs 0.6;
    the usage drop is clamped to ``[0, 100]`` percent and weighs 0.4.
    """
    normalized_tickets = min(ticket_count / TICKET_NORMALIZER, 1.0)
    normalized_drop = min(max(usage_drop_percentage / 100.0, 0.0), 1.0)
    return normalized_tickets * TICKET_WEIGHT + normalized_drop * USAGE_DROP_WEIGHT


def get_risk_level(correlation_score: float) -> RiskLevel:
    if correlation_score >= 0.8:
        return RiskLevel.CRITICAL
    if correlation_score >= 0.6:
        return RiskLevel.HIGH
    if correlation_score >= 0.4:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def percentage_change(current: float, previous: float) -> float:
    """Percentage change with the denominator floored at 1 to avoid division by zero."""
    return (current - previous) / max(previous, 1) * 100


def _signal(change: float, favorable_when_decreasing: bool) -> int:
    if change < -TREND_THRESHOLD:
        return 1 if favorable_when_decreasing else -1
    if change > TREND_THRESHOLD:
        return -1 if favorable_when_decreasing else 1
    return 0


def get_trend_indicator(month_over_month: MonthOverMonth) -> TrendIndicator:
    """Combine ticket, usage and debt score deltas into a trend indicator.

    Fewer tickets, more usage and a lower debt score are favorable. Each
    signal counts only when it moves by more than ``TREND_THRESHOLD`` points.
    """
    total = _signal(month_over_month.ticket_change, favorable_when_decreasing=True)
    total += _signal(month_over_month.usage_change, favorable_when_decreasing=False)
    if month_over_month.debt_score_change is not None:
        total += _signal(month_over_month.debt_score_change, favorable_when_decreasing=True)

    if total > 0:
        return TrendIndicator.IMPROVING
    if total < 0:
        return TrendIndicator.DECLINING
    return TrendIndicator.STABLE


def _month_start(value: datetime, months_back: int) -> datetime:
    index = value.year * 12 + (value.month - 1) - months_back
    return value.replace(
        year=index // 12, month=index % 12 + 1, day=1, hour=0, minute=0, second=0, microsecond=0
    )


def _month_window(as_of: datetime, months_back: int) -> Tuple[datetime, datetime]:
    start = _month_start(as_of, months_back)
    end = _month_start(as_of, months_back - 1)
    return start, end


def _sum_usage(records: List[UsageRecord], start: datetime, end: datetime, end_inclusive: bool) -> float:
    total = 0.0
    for record in records:
        if record.recorded_at < start:
            continue
        if record.recorded_at > end or (not end_inclusive and record.recorded_at == end):
            continue
        total += record.amount
    return total


class AnalyticsService:
    """Ticket, usage and trend analytics over an organization's raw records."""

    def __init__(self, provider: DataProvider, history: Optional[HistoryStore] = None) -> None:
        self._provider = provider
        self._history = history

    def get_ticket_breakdown(
        self,
        organization: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[TicketBreakdown]:
        """Break tickets down by product area and severity.

        Tickets are filtered by their requested timestamp against the optional
        inclusive bounds. Average resolution time is reported in whole days
        and only for areas with at least one resolved ticket. The result is
        sorted by total ticket count, highest first.
        """
        ensure_aware("start_date", start_date)
        ensure_aware("end_date", end_date)
        grouped: Dict[str, List[Ticket]] = {}
        for ticket in self._provider.tickets(organization):
            if start_date is not None and ticket.requested < start_date:
                continue
            if end_date is not None and ticket.requested > end_date:
                continue
            area = ticket.product_area.strip() or UNKNOWN_PRODUCT_AREA
            grouped.setdefault(area, []).append(ticket)

        breakdowns: List[TicketBreakdown] = []
        for product_area, tickets in grouped.items():
            counts: Dict[Severity, int] = {}
            for ticket in tickets:
                counts[ticket.severity] = counts.get(ticket.severity, 0) + 1
            severity_counts = TicketCounts.from_mapping(counts)

            breakdowns.append(
                TicketBreakdown(
                    product_area=product_area,
                    severity_counts=severity_counts,
                    total_tickets=severity_counts.total,
                    average_resolution_time=self._average_resolution_days(tickets),
                )
            )

        breakdowns.sort(key=lambda breakdown: breakdown.total_tickets, reverse=True)
        return breakdowns

    @staticmethod
    def _average_resolution_days(tickets: List[Ticket]) -> Optional[int]:
        durations = [
            (ticket.resolution_date - ticket.requested).total_seconds()
            for ticket in tickets
            if ticket.resolution_date is not None
        ]
        if not durations:
            return None
        average_days = sum(durations) / len(durations) / 86400
        return int(math.floor(average_days + 0.5))

    def get_usage_correlation(
        self,
        organization: str,
        as_of: Optional[datetime] = None,
    ) -> List[UsageCorrelation]:
        """Correlate recent ticket volume with usage decline per product area.

        Returns correlations sorted by correlation score, highest first.
        """
        ensure_aware("as_of", as_of)
        now = as_of or _utcnow()
        product_areas = self._provider.distinct_product_areas(organization)

        correlations, _ = collect_area_results(
            product_areas,
            lambda area: self._usage_correlation(organization, area, now),
            organization=organization,
        )

        correlations.sort(key=lambda correlation: correlation.correlation_score, reverse=True)
        return correlations

    def _usage_correlation(self, organization: str, product_area: str, now: datetime) -> UsageCorrelation:
        window_start = now - CORRELATION_WINDOW
        previous_start = window_start - CORRELATION_WINDOW

        ticket_count = self._provider.ticket_counts_by_severity(
            organization, product_area, window_start, now
        ).total

        records = self._provider.usage_records(organization, product_area)
        current_usage = _sum_usage(records, window_start, now, end_inclusive=True)
        previous_usage = _sum_usage(records, previous_start, window_start, end_inclusive=False)

        usage_drop_percentage = 0.0
        if previous_usage > 0:
            usage_drop_percentage = max(
                0.0, (previous_usage - current_usage) / previous_usage * 100
            )

        correlation_score = calculate_correlation_score(ticket_count, usage_drop_percentage)

        return UsageCorrelation(
            product_area=product_area,
            ticket_count=ticket_count,
            current_usage=current_usage,
            previous_usage=previous_usage,
            usage_drop_percentage=usage_drop_percentage,
            correlation_score=correlation_score,
            risk_level=get_risk_level(correlation_score),
        )

    def get_trend_analysis(
        self,
        organization: str,
        months: int = 6,
        as_of: Optional[datetime] = None,
    ) -> List[TrendAnalysis]:
        """Build monthly trend series for every product area.

        Bucket 0 is the calendar month containing ``as_of``. Month-over-month
        deltas compare bucket 0 with bucket 1. Declining areas come first,
        then stable, then improving.

        Raises:
            ValueError: If ``months`` is not positive.
        """
        if months <= 0:
            raise ValueError("Trend analysis requires at least one month.")
        ensure_aware("as_of", as_of)

        now = as_of or _utcnow()
        product_areas = self._provider.distinct_product_areas(organization)

        trends, _ = collect_area_results(
            product_areas,
            lambda area: self._trend_analysis(organization, area, months, now),
            organization=organization,
        )

        trends.sort(key=lambda trend: _TREND_ORDER[trend.trend_indicator])

        logger.info(
            "Built trend analysis",
            extra={
                "organization": organization,
                "months": months,
                "product_areas": len(product_areas),
                "declining": sum(
                    1 for trend in trends if trend.trend_indicator == TrendIndicator.DECLINING
                ),
            },
        )
        return trends

    def _trend_analysis(
        self, organization: str, product_area: str, months: int, now: datetime
    ) -> TrendAnalysis:
        usage = self._provider.usage_records(organization, product_area)
        history: List[StoredAnalysis] = []
        if self._history is not None:
            history = self._history.query_history(organization, product_area, HISTORY_SCAN_LIMIT)

        buckets: List[TrendData] = []
        for months_back in range(months):
            start, end = _month_window(now, months_back)

            ticket_count = self._provider.ticket_counts_by_severity(
                organization, product_area, start, end - timedelta(microseconds=1)
            ).total
            debt_score = next(
                (row.debt_score for row in history if start <= row.analysis_date < end),
                None,
            )

            buckets.append(
                TrendData(
                    period=start.strftime("%Y-%m"),
                    ticket_count=ticket_count,
                    usage_amount=_sum_usage(usage, start, end, end_inclusive=False),
                    debt_score=debt_score,
                )
            )

        month_over_month = MonthOverMonth()
        if len(buckets) >= 2:
            current, previous = buckets[0], buckets[1]
            debt_score_change = None
            if current.debt_score is not None and previous.debt_score is not None:
                debt_score_change = percentage_change(current.debt_score, previous.debt_score)
            month_over_month = MonthOverMonth(
                ticket_change=percentage_change(current.ticket_count, previous.ticket_count),
                usage_change=percentage_change(current.usage_amount, previous.usage_amount),
                debt_score_change=debt_score_change,
            )

        return TrendAnalysis(
            product_area=product_area,
            trends=tuple(reversed(buckets)),
            month_over_month=month_over_month,
            trend_indicator=get_trend_indicator(month_over_month),
        )

    def get_organizations(self) -> List[str]:
        return self._provider.organizations()

    def get_last_upload_date(self, organization: str) -> Dict[str, Optional[datetime]]:
        """Return the latest ticket and usage timestamps for an organization."""
        tickets = self._provider.tickets(organization)
        usage = self._provider.usage_records(organization)
        return {
            "tickets": max((ticket.requested for ticket in tickets), default=None),
            "usage": max((record.recorded_at for record in usage), default=None),
        }
