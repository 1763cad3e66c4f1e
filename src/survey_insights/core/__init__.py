from .aggregation import (
    TEXT_DISPLAY_LIMIT,
    AggregateResult,
    CategoryScore,
    DistributionBucket,
    QuestionSummary,
    TextResponseGroup,
    aggregate_responses,
    build_distribution,
    completion_rate,
    count_participants,
)
from .anonymity import AGGREGATE_EXPORT_FLOOR, DETAIL_ANONYMITY_FLOOR, GuardResult, guard_detail
from .nps import NPSBreakdown, classify_satisfaction, compute_nps, parse_nps_value
from .risk import RISK_LEVELS, RiskAlert, RiskLevel, classify_risk, find_risk_alerts, risk_level_label

__all__ = [
    "AGGREGATE_EXPORT_FLOOR",
    "DETAIL_ANONYMITY_FLOOR",
    "RISK_LEVELS",
    "TEXT_DISPLAY_LIMIT",
    "AggregateResult",
    "CategoryScore",
    "DistributionBucket",
    "GuardResult",
    "NPSBreakdown",
    "QuestionSummary",
    "RiskAlert",
    "RiskLevel",
    "TextResponseGroup",
    "aggregate_responses",
    "build_distribution",
    "classify_risk",
    "classify_satisfaction",
    "completion_rate",
    "compute_nps",
    "count_participants",
    "find_risk_alerts",
    "guard_detail",
    "parse_nps_value",
    "risk_level_label",
]
