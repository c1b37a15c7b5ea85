"""Data provider and history store interfaces, with an in-memory implementation.

The scoring and analytics services only depend on the two protocols below.
``InMemoryStore`` implements both over raw ticket, usage and mapping records;
``SupportApiClient.load_organization`` fills one from the support backend.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Set

from .models import (
    ProductAreaMapping,
    Severity,
    StoredAnalysis,
    Ticket,
    TicketCounts,
    UsageRecord,
)

logger = logging.getLogger(__name__)


class DataProvider(Protocol):
    """Read access to an organization's raw ticket, usage and mapping records."""

    def ticket_counts_by_severity(
        self, organization: str, product_area: str, start: datetime, end: datetime
    ) -> TicketCounts:
        ...

    def usage_record(
        self,
        organization: str,
        product_area: str,
        at_or_before: datetime,
        not_before: Optional[datetime] = None,
        before: Optional[datetime] = None,
    ) -> Optional[UsageRecord]:
        ...

    def tickets(self, organization: str) -> List[Ticket]:
        ...

    def usage_records(self, organization: str, product_area: Optional[str] = None) -> List[UsageRecord]:
        ...

    def distinct_product_areas(self, organization: str) -> List[str]:
        ...

    def is_key_module(self, organization: str, product_area: str) -> bool:
        ...

    def organizations(self) -> List[str]:
        ...


class HistoryStore(Protocol):
    """Append-only storage for technical debt analyses."""

    def append_analysis(self, analysis: StoredAnalysis) -> None:
        ...

    def query_history(
        self, organization: str, product_area: Optional[str] = None, limit: int = 10
    ) -> List[StoredAnalysis]:
        ...


class InMemoryStore:
    """In-memory ``DataProvider`` and ``HistoryStore`` over raw records."""

    def __init__(
        self,
        tickets: Iterable[Ticket] = (),
        usage: Iterable[UsageRecord] = (),
        mappings: Iterable[ProductAreaMapping] = (),
        history: Iterable[StoredAnalysis] = (),
    ) -> None:
        self._tickets: List[Ticket] = list(tickets)
        self._usage: List[UsageRecord] = list(usage)
        self._mappings: List[ProductAreaMapping] = list(mappings)
        self._history: List[StoredAnalysis] = list(history)

    def _capabilities(self, organization: str, product_area: str) -> Set[str]:
        """Capabilities whose usage counts toward a product area.

        A usage record belongs to a product area when its capability is mapped
        to that area, or when the capability is the product area name itself.
        """
        capabilities = {product_area}
        for mapping in self._mappings:
            if mapping.organization == organization and mapping.product_area == product_area:
                capabilities.add(mapping.capability)
        return capabilities

    def ticket_counts_by_severity(
        self, organization: str, product_area: str, start: datetime, end: datetime
    ) -> TicketCounts:
        """Count tickets requested within ``[start, end]`` grouped by severity."""
        counts: Dict[Severity, int] = {}
        for ticket in self._tickets:
            if ticket.organization != organization or ticket.product_area != product_area:
                continue
            if start <= ticket.requested <= end:
                counts[ticket.severity] = counts.get(ticket.severity, 0) + 1
        return TicketCounts.from_mapping(counts)

    def usage_record(
        self,
        organization: str,
        product_area: str,
        at_or_before: datetime,
        not_before: Optional[datetime] = None,
        before: Optional[datetime] = None,
    ) -> Optional[UsageRecord]:
        """Return the most recent usage record for a product area in a window.

        The window is ``[not_before, at_or_before]``, additionally bounded by
        ``recorded_at < before`` when ``before`` is given.
        """
        capabilities = self._capabilities(organization, product_area)
        latest: Optional[UsageRecord] = None

        for record in self._usage:
            if record.organization != organization or record.capability not in capabilities:
                continue
            if record.recorded_at > at_or_before:
                continue
            if not_before is not None and record.recorded_at < not_before:
                continue
            if before is not None and record.recorded_at >= before:
                continue
            if latest is None or record.recorded_at > latest.recorded_at:
                latest = record

        return latest

    def tickets(self, organization: str) -> List[Ticket]:
        return [ticket for ticket in self._tickets if ticket.organization == organization]

    def usage_records(self, organization: str, product_area: Optional[str] = None) -> List[UsageRecord]:
        records = [record for record in self._usage if record.organization == organization]
        if product_area is None:
            return records
        capabilities = self._capabilities(organization, product_area)
        return [record for record in records if record.capability in capabilities]

    def distinct_product_areas(self, organization: str) -> List[str]:
        areas = {
            mapping.product_area for mapping in self._mappings if mapping.organization == organization
        }
        return sorted(areas)

    def is_key_module(self, organization: str, product_area: str) -> bool:
        return any(
            mapping.is_key_module
            for mapping in self._mappings
            if mapping.organization == organization and mapping.product_area == product_area
        )

    def organizations(self) -> List[str]:
        names = {ticket.organization for ticket in self._tickets}
        names.update(record.organization for record in self._usage)
        return sorted(name for name in names if name)

    def append_analysis(self, analysis: StoredAnalysis) -> None:
        self._history.append(analysis)
        logger.debug(
            "Appended technical debt analysis",
            extra={
                "organization": analysis.organization,
                "product_area": analysis.product_area,
                "debt_score": analysis.debt_score,
            },
        )

    def query_history(
        self, organization: str, product_area: Optional[str] = None, limit: int = 10
    ) -> List[StoredAnalysis]:
        """Return up to ``limit`` analyses for an organization, newest first."""
        rows = [
            row
            for row in self._history
            if row.organization == organization
            and (product_area is None or row.product_area == product_area)
        ]
        rows.sort(key=lambda row: row.analysis_date, reverse=True)
        return rows[: max(0, limit)]
