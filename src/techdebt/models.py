"""Domain models for technical debt scoring and support analytics.

Raw records (tickets, usage records, product area mappings) model only the
fields needed by the scoring and analytics code. Result records are immutable
once produced.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple


class Severity(str, Enum):
    """Support ticket severity levels, most severe first."""

    CRITICAL = "CRITICAL"
    SEVERE = "SEVERE"
    MODERATE = "MODERATE"
    LOW = "LOW"

    @classmethod
    def parse(cls, label: str) -> "Severity":
        """Normalize a free-text severity label.

        Matching is case-insensitive. Unknown or empty labels fall back to
        ``MODERATE``, the same default used when tickets are ingested.
        """
        normalized = (label or "").strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            return cls.MODERATE


class ScoreCategory(str, Enum):
    GOOD = "Good"
    MODERATE_RISK = "Moderate Risk"
    HIGH_RISK = "High Risk"
    CRITICAL = "Critical"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TrendIndicator(str, Enum):
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    DECLINING = "DECLINING"


RESOLVED_STATUSES = frozenset({"RESOLVED", "SOLVED", "CLOSED"})


def ensure_aware(name: str, value: Optional[datetime]) -> None:
    """Raise ``ValueError`` unless ``value`` is ``None`` or timezone-aware.

    Window comparisons mix record timestamps with UTC ``as_of`` values, so
    naive datetimes are rejected where they enter the model.
    """
    if value is not None and value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware, got {value!r}")


@dataclass(frozen=True, slots=True)
class TicketCounts:
    """Ticket counts per severity. All four severities are always present."""

    critical: int = 0
    severe: int = 0
    moderate: int = 0
    low: int = 0

    def __post_init__(self) -> None:
        for severity, count in self.as_dict().items():
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise ValueError(
                    f"Ticket count for {severity} must be a non-negative integer, got {count!r}"
                )

    @classmethod
    def from_mapping(cls, counts: Mapping[Severity, int]) -> "TicketCounts":
        """Build counts from a partial severity mapping, defaulting missing keys to 0."""
        by_name = {Severity(key).value: value for key, value in counts.items()}
        return cls(
            critical=by_name.get(Severity.CRITICAL.value, 0),
            severe=by_name.get(Severity.SEVERE.value, 0),
            moderate=by_name.get(Severity.MODERATE.value, 0),
            low=by_name.get(Severity.LOW.value, 0),
        )

    def get(self, severity: Severity) -> int:
        return getattr(self, severity.value.lower())

    @property
    def total(self) -> int:
        return self.critical + self.severe + self.moderate + self.low

    def as_dict(self) -> Dict[str, int]:
        return {
            Severity.CRITICAL.value: self.critical,
            Severity.SEVERE.value: self.severe,
            Severity.MODERATE.value: self.moderate,
            Severity.LOW.value: self.low,
        }


@dataclass(frozen=True, slots=True)
class UsageMetrics:
    """Current and previous usage; drop percentage and zero-usage flag are derived."""

    current_usage: float
    previous_usage: float

    def __post_init__(self) -> None:
        for name in ("current_usage", "previous_usage"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ValueError(f"{name} must be a non-negative number, got {value!r}")
            if isinstance(value, float) and not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value!r}")

    @property
    def usage_drop_percentage(self) -> float:
        if self.previous_usage <= 0:
            return 0.0
        drop = (self.previous_usage - self.current_usage) / self.previous_usage * 100
        return max(0.0, drop)

    @property
    def is_zero_usage(self) -> bool:
        return self.current_usage == 0

    def as_dict(self) -> Dict[str, object]:
        return {
            "currentUsage": self.current_usage,
            "previousUsage": self.previous_usage,
            "usageDropPercentage": self.usage_drop_percentage,
            "isZeroUsage": self.is_zero_usage,
        }


@dataclass(frozen=True, slots=True)
class Ticket:
    """A support ticket as supplied by the ticket store."""

    ticket_id: str
    organization: str
    product_area: str
    severity: Severity
    status: str
    requested: datetime
    updated: Optional[datetime] = None

    def __post_init__(self) -> None:
        ensure_aware("requested", self.requested)
        ensure_aware("updated", self.updated)

    @property
    def resolution_date(self) -> Optional[datetime]:
        """Return the resolution timestamp for resolved tickets, else ``None``."""
        if self.status.strip().upper() not in RESOLVED_STATUSES:
            return None
        return self.updated


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """One usage/cost measurement for a capability at a point in time."""

    organization: str
    capability: str
    amount: float
    recorded_at: datetime

    def __post_init__(self) -> None:
        ensure_aware("recorded_at", self.recorded_at)


@dataclass(frozen=True, slots=True)
class ProductAreaMapping:
    """Links a product area to a monitoring capability and its key-module flag."""

    organization: str
    product_area: str
    capability: str
    is_key_module: bool = False


@dataclass(frozen=True, slots=True)
class TechnicalDebtResult:
    """Computed technical debt for one product area of an organization."""

    organization: str
    product_area: str
    debt_score: float
    category: ScoreCategory
    ticket_counts: TicketCounts
    usage_metrics: UsageMetrics
    recommendations: Tuple[str, ...]
    is_key_module: bool


@dataclass(frozen=True, slots=True)
class StoredAnalysis:
    """Append-only history row for a technical debt analysis."""

    organization: str
    product_area: str
    analysis_date: datetime
    ticket_count_by_severity: Dict[str, int]
    usage_metrics: Dict[str, object]
    debt_score: float
    recommendations: str

    def __post_init__(self) -> None:
        ensure_aware("analysis_date", self.analysis_date)


@dataclass(frozen=True, slots=True)
class AreaFailure:
    """A product area whose computation failed during an organization-wide run."""

    product_area: str
    error: str


@dataclass(frozen=True, slots=True)
class ChecklistItem:
    priority: int
    product_area: str
    debt_score: float
    category: ScoreCategory
    recommendations: Tuple[str, ...]
    is_key_module: bool


@dataclass(frozen=True, slots=True)
class OrganizationDebtSummary:
    """Organization-wide roll-up of per-area technical debt results."""

    organization: str
    total_product_areas: int
    average_debt_score: float
    critical_areas: int
    high_risk_areas: int
    checklist: Tuple[ChecklistItem, ...] = ()


@dataclass(frozen=True, slots=True)
class TicketBreakdown:
    product_area: str
    severity_counts: TicketCounts
    total_tickets: int
    average_resolution_time: Optional[int] = None


@dataclass(frozen=True, slots=True)
class UsageCorrelation:
    product_area: str
    ticket_count: int
    current_usage: float
    previous_usage: float
    usage_drop_percentage: float
    correlation_score: float
    risk_level: RiskLevel


@dataclass(frozen=True, slots=True)
class TrendData:
    """Ticket and usage totals for one calendar month (``YYYY-MM``)."""

    period: str
    ticket_count: int
    usage_amount: float
    debt_score: Optional[float] = None


@dataclass(frozen=True, slots=True)
class MonthOverMonth:
    ticket_change: float = 0.0
    usage_change: float = 0.0
    debt_score_change: Optional[float] = None


@dataclass(frozen=True, slots=True)
class TrendAnalysis:
    product_area: str
    trends: Tuple[TrendData, ...]
    month_over_month: MonthOverMonth = field(default_factory=MonthOverMonth)
    trend_indicator: TrendIndicator = TrendIndicator.STABLE
