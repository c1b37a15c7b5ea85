"""Technical debt computation for product areas of an organization.

For one (organization, product area) this module:
- counts tickets by severity over the trailing 30 days,
- looks up current usage and usage from 30-60 days earlier,
- looks up whether the area is a key module,
- runs the scoring engine to produce a ``TechnicalDebtResult``.

It also aggregates results across all product areas of an organization and
manages the append-only analysis history.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

from .models import (
    AreaFailure,
    ChecklistItem,
    OrganizationDebtSummary,
    ScoreCategory,
    StoredAnalysis,
    TechnicalDebtResult,
    UsageMetrics,
    ensure_aware,
)
from .scoring import (
    calculate_technical_debt_score,
    generate_recommendations,
    get_score_category,
)
from .store import DataProvider, HistoryStore

logger = logging.getLogger(__name__)

TICKET_WINDOW = timedelta(days=30)
PREVIOUS_USAGE_START = timedelta(days=60)
PREVIOUS_USAGE_END = timedelta(days=30)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def collect_area_results(
    product_areas: Iterable[str],
    compute: Callable[[str], T],
    organization: str = "",
) -> Tuple[List[T], List[AreaFailure]]:
    """Run ``compute`` for every product area, separating results from failures.

    A failing area is logged and reported as an ``AreaFailure``; the remaining
    areas are still computed. Results keep the order of ``product_areas``.
    """
    results: List[T] = []
    failures: List[AreaFailure] = []

    for product_area in product_areas:
        try:
            results.append(compute(product_area))
        except Exception as exc:
            logger.exception(
                "Failed to compute product area",
                extra={"organization": organization, "product_area": product_area},
            )
            failures.append(AreaFailure(product_area=product_area, error=str(exc)))

    return results, failures


class TechnicalDebtService:
    """Computes, stores and retrieves technical debt analyses."""

    def __init__(self, provider: DataProvider, history: HistoryStore) -> None:
        self._provider = provider
        self._history = history

    def calculate_technical_debt(
        self,
        organization: str,
        product_area: str,
        as_of: Optional[datetime] = None,
    ) -> TechnicalDebtResult:
        """Calculate technical debt for one product area.

        Args:
            organization: Organization owning the product area.
            product_area: Product area to score.
            as_of: End of the analysis window; defaults to now (UTC).

        Returns:
            The computed ``TechnicalDebtResult``. Nothing is persisted.
        """
        ensure_aware("as_of", as_of)
        analysis_date = as_of or _utcnow()

        ticket_counts = self._provider.ticket_counts_by_severity(
            organization, product_area, analysis_date - TICKET_WINDOW, analysis_date
        )
        usage_metrics = self._usage_metrics(organization, product_area, analysis_date)
        is_key_module = self._provider.is_key_module(organization, product_area)

        debt_score = calculate_technical_debt_score(ticket_counts, usage_metrics, is_key_module)
        recommendations = generate_recommendations(
            debt_score, ticket_counts, usage_metrics, is_key_module
        )

        return TechnicalDebtResult(
            organization=organization,
            product_area=product_area,
            debt_score=debt_score,
            category=get_score_category(debt_score),
            ticket_counts=ticket_counts,
            usage_metrics=usage_metrics,
            recommendations=tuple(recommendations),
            is_key_module=is_key_module,
        )

    def _usage_metrics(
        self, organization: str, product_area: str, analysis_date: datetime
    ) -> UsageMetrics:
        current = self._provider.usage_record(organization, product_area, analysis_date)
        previous = self._provider.usage_record(
            organization,
            product_area,
            analysis_date,
            not_before=analysis_date - PREVIOUS_USAGE_START,
            before=analysis_date - PREVIOUS_USAGE_END,
        )

        if current is None or previous is None:
            logger.debug(
                "Usage history incomplete, defaulting missing usage to 0",
                extra={
                    "organization": organization,
                    "product_area": product_area,
                    "has_current": current is not None,
                    "has_previous": previous is not None,
                },
            )

        return UsageMetrics(
            current_usage=current.amount if current else 0.0,
            previous_usage=previous.amount if previous else 0.0,
        )

    def calculate_organization_technical_debt(
        self,
        organization: str,
        as_of: Optional[datetime] = None,
    ) -> List[TechnicalDebtResult]:
        """Calculate technical debt for every product area of an organization.

        Areas that fail are logged and left out of the returned list.
        """
        results, _ = self.calculate_organization_technical_debt_with_failures(
            organization, as_of
        )
        return results

    def calculate_organization_technical_debt_with_failures(
        self,
        organization: str,
        as_of: Optional[datetime] = None,
    ) -> Tuple[List[TechnicalDebtResult], List[AreaFailure]]:
        ensure_aware("as_of", as_of)
        analysis_date = as_of or _utcnow()
        product_areas = self._provider.distinct_product_areas(organization)

        results, failures = collect_area_results(
            product_areas,
            lambda area: self.calculate_technical_debt(organization, area, analysis_date),
            organization=organization,
        )

        logger.info(
            "Calculated organization technical debt",
            extra={
                "organization": organization,
                "product_areas": len(product_areas),
                "succeeded": len(results),
                "failed": len(failures),
            },
        )
        return results, failures

    def store_technical_debt_analysis(
        self,
        result: TechnicalDebtResult,
        analysis_date: Optional[datetime] = None,
    ) -> StoredAnalysis:
        """Append a result to the history store and return the stored row."""
        row = StoredAnalysis(
            organization=result.organization,
            product_area=result.product_area,
            analysis_date=analysis_date or _utcnow(),
            ticket_count_by_severity=result.ticket_counts.as_dict(),
            usage_metrics=result.usage_metrics.as_dict(),
            debt_score=result.debt_score,
            recommendations="\n".join(result.recommendations),
        )
        self._history.append_analysis(row)
        return row

    def get_historical_analysis(
        self,
        organization: str,
        product_area: Optional[str] = None,
        limit: int = 10,
    ) -> List[StoredAnalysis]:
        """Return up to ``limit`` stored analyses, newest first."""
        return self._history.query_history(organization, product_area, limit)

    def summarize_organization(
        self,
        organization: str,
        results: List[TechnicalDebtResult],
    ) -> OrganizationDebtSummary:
        """Roll per-area results up into an organization summary.

        The checklist orders areas by descending debt score, with key modules
        ahead of other areas on equal scores.
        """
        ranked = sorted(results, key=lambda result: (-result.debt_score, not result.is_key_module))
        checklist = tuple(
            ChecklistItem(
                priority=index,
                product_area=result.product_area,
                debt_score=result.debt_score,
                category=result.category,
                recommendations=result.recommendations,
                is_key_module=result.is_key_module,
            )
            for index, result in enumerate(ranked, start=1)
        )

        average = sum(result.debt_score for result in results) / len(results) if results else 0.0

        return OrganizationDebtSummary(
            organization=organization,
            total_product_areas=len(results),
            average_debt_score=round(average, 2),
            critical_areas=sum(1 for result in results if result.category == ScoreCategory.CRITICAL),
            high_risk_areas=sum(
                1 for result in results if result.category == ScoreCategory.HIGH_RISK
            ),
            checklist=checklist,
        )
