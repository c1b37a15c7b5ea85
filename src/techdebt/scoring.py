"""Technical debt scoring engine.

Pure, deterministic functions that turn ticket counts and usage metrics into:
- a ticket impact score (severity-weighted ticket count),
- a usage health score in ``[0, 100]``,
- a combined technical debt score and its category,
- ordered, human-readable recommendations.

No function in this module performs I/O.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Union

from .models import ScoreCategory, Severity, TicketCounts, UsageMetrics

SEVERITY_WEIGHTS: Dict[Severity, int] = {
    Severity.CRITICAL: 4,
    Severity.SEVERE: 3,
    Severity.MODERATE: 2,
    Severity.LOW: 1,
}

UNUSED_KEY_MODULE_PENALTY = 50
UNUSED_REGULAR_MODULE_PENALTY = 25
USAGE_DROP_THRESHOLD = 30.0

HIGH_TICKET_VOLUME = 10
SEVERE_TICKET_ADVISORY = 2


def calculate_ticket_impact_score(ticket_counts: TicketCounts) -> int:
    """Return the severity-weighted sum of ticket counts.

    ``CRITICAL`` tickets weigh 4, ``SEVERE`` 3, ``MODERATE`` 2 and ``LOW`` 1.
    Zero tickets yield ``0``; the score is unbounded above.
    """
    return sum(
        ticket_counts.get(severity) * weight for severity, weight in SEVERITY_WEIGHTS.items()
    )


def calculate_usage_health_score(usage_metrics: UsageMetrics, is_key_module: bool) -> float:
    """Return the usage health score in ``[0, 100]``.

    A flat penalty (50 for key modules, 25 otherwise) applies when usage is
    zero or has dropped by at least ``USAGE_DROP_THRESHOLD`` percent. The drop
    percentage itself is always added on top of the flat penalty, so both
    count when the drop crosses the threshold.
    """
    drop = usage_metrics.usage_drop_percentage
    penalty = 0.0

    if usage_metrics.is_zero_usage or drop >= USAGE_DROP_THRESHOLD:
        penalty += UNUSED_KEY_MODULE_PENALTY if is_key_module else UNUSED_REGULAR_MODULE_PENALTY

    penalty += drop

    return max(0.0, 100.0 - penalty)


def calculate_technical_debt_score(
    ticket_counts: TicketCounts,
    usage_metrics: UsageMetrics,
    is_key_module: bool,
) -> float:
    """Return ``impact * 2 + (100 - health)``.

    The usage term saturates at 100 because the health score floors at 0;
    the ticket term is never capped.
    """
    ticket_impact_score = calculate_ticket_impact_score(ticket_counts)
    usage_health_score = calculate_usage_health_score(usage_metrics, is_key_module)
    return ticket_impact_score * 2 + (100.0 - usage_health_score)


def get_score_category(debt_score: float) -> ScoreCategory:
    """Map a debt score to its category (upper bounds are inclusive)."""
    if debt_score <= 50:
        return ScoreCategory.GOOD
    if debt_score <= 100:
        return ScoreCategory.MODERATE_RISK
    if debt_score <= 200:
        return ScoreCategory.HIGH_RISK
    return ScoreCategory.CRITICAL


def generate_recommendations(
    debt_score: float,
    ticket_counts: TicketCounts,
    usage_metrics: UsageMetrics,
    is_key_module: bool,
) -> List[str]:
    """Build ordered, actionable recommendations for a product area.

    Each rule is checked independently and appends its advice when its
    condition holds, in this order: critical tickets, severe ticket volume,
    usage, score tier, overall ticket volume, key module.
    """
    recommendations: List[str] = []

    if ticket_counts.critical > 0:
        recommendations.append(
            f"Address {ticket_counts.critical} critical ticket(s) immediately - "
            "these have the highest impact on technical debt."
        )

    if ticket_counts.severe > SEVERE_TICKET_ADVISORY:
        recommendations.append(
            f"High volume of severe tickets ({ticket_counts.severe}) detected. "
            "Consider dedicating additional resources to resolve these issues."
        )

    if usage_metrics.is_zero_usage:
        if is_key_module:
            recommendations.append(
                "URGENT: Key module shows zero usage. "
                "Investigate potential system failures or user adoption issues."
            )
        else:
            recommendations.append(
                "Module shows zero usage. Consider deprecation or investigate integration issues."
            )
    elif usage_metrics.usage_drop_percentage >= USAGE_DROP_THRESHOLD:
        recommendations.append(
            f"Significant usage drop detected ({usage_metrics.usage_drop_percentage:.1f}%). "
            "Investigate potential performance issues or user experience problems."
        )

    if debt_score >= 200:
        recommendations.append(
            "CRITICAL: Immediate action required. Consider emergency response team allocation."
        )
        recommendations.append("Schedule daily standups to track progress on critical issues.")
    elif debt_score >= 101:
        recommendations.append("HIGH RISK: Prioritize this module in the next sprint planning.")
        recommendations.append("Consider code review and refactoring initiatives.")
    elif debt_score >= 51:
        recommendations.append("MODERATE RISK: Monitor closely and address issues proactively.")
        recommendations.append("Schedule regular maintenance windows for this module.")
    else:
        recommendations.append("Module is in good health. Continue current maintenance practices.")

    total_tickets = ticket_counts.total
    if total_tickets > HIGH_TICKET_VOLUME:
        recommendations.append(
            f"High ticket volume ({total_tickets} tickets). "
            "Consider root cause analysis to identify systemic issues."
        )

    if is_key_module and debt_score > 50:
        recommendations.append(
            "This is a key module - consider additional monitoring and faster response times."
        )

    return recommendations


def _is_non_negative_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, float):
        return math.isfinite(value) and value >= 0
    return False


def _validate_ticket_counts(counts: Mapping[str, Any]) -> List[str]:
    errors: List[str] = []
    known = {severity.value for severity in Severity}

    for key in counts:
        if key not in known:
            errors.append(f"Unknown severity level: {key}")

    for severity in Severity:
        if severity.value not in counts:
            errors.append(f"Missing ticket count for {severity.value}")
            continue
        count = counts[severity.value]
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            errors.append(
                f"Invalid ticket count for {severity.value}: must be a non-negative integer"
            )

    return errors


def validate_scoring_inputs(
    ticket_counts: Union[TicketCounts, Mapping[str, Any]],
    usage_metrics: Union[UsageMetrics, Mapping[str, Any]],
) -> List[str]:
    """Validate scoring inputs and report every problem found.

    Accepts either typed values or raw mappings as decoded from JSON, where
    ticket counts are keyed by severity name and usage metrics use the keys
    ``currentUsage``, ``previousUsage``, ``usageDropPercentage`` and
    ``isZeroUsage``.

    Returns:
        A list of human-readable error strings; empty when inputs are valid.
        This function never raises.
    """
    errors: List[str] = []

    if isinstance(ticket_counts, TicketCounts):
        errors.extend(_validate_ticket_counts(ticket_counts.as_dict()))
    elif isinstance(ticket_counts, Mapping):
        errors.extend(_validate_ticket_counts(ticket_counts))
    else:
        errors.append("Invalid ticket counts: must be a mapping of severity to count")

    usage: Mapping[str, Any]
    if isinstance(usage_metrics, UsageMetrics):
        usage = usage_metrics.as_dict()
    elif isinstance(usage_metrics, Mapping):
        usage = usage_metrics
    else:
        usage = {}

    if not _is_non_negative_number(usage.get("currentUsage")):
        errors.append("Invalid current usage: must be a non-negative number")

    if not _is_non_negative_number(usage.get("previousUsage")):
        errors.append("Invalid previous usage: must be a non-negative number")

    if not _is_non_negative_number(usage.get("usageDropPercentage")):
        errors.append("Invalid usage drop percentage: must be a non-negative number")

    if not isinstance(usage.get("isZeroUsage"), bool):
        errors.append("Invalid zero usage flag: must be a boolean")

    return errors
