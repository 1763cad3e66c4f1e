from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal, Mapping

RiskLevel = Literal["high", "medium", "low"]

RISK_LEVELS: tuple[RiskLevel, ...] = ("high", "medium", "low")

HIGH_RISK_UPPER = 2.5
MEDIUM_RISK_UPPER = 3.5
# Averages at or below this line escalate a high-risk alert to critical.
CRITICAL_ALERT_SCORE = 2.0

RISK_LEVEL_LABELS: dict[str, str] = {
    "high": "High",
    "medium": "Medium",
    "low": "Low",
}


def classify_risk(average_score: float) -> RiskLevel:
    """Map a 1-5 average to a risk tier (lower scores mean higher risk).

    Lower bounds are inclusive: 2.5 is medium and 3.5 is low.
    """
    score = float(average_score)
    if score < HIGH_RISK_UPPER:
        return "high"
    if score < MEDIUM_RISK_UPPER:
        return "medium"
    return "low"


def risk_level_label(level: str, labels: Mapping[str, str] | None = None) -> str:
    table = labels or RISK_LEVEL_LABELS
    return table.get(level, level)


def risk_sort_key(level: str) -> int:
    try:
        return RISK_LEVELS.index(level)  # type: ignore[arg-type]
    except ValueError:
        return len(RISK_LEVELS)


@dataclass(slots=True, frozen=True)
class RiskAlert:
    category: str
    average_score: float
    severity: Literal["high", "critical"]
    threshold: float = HIGH_RISK_UPPER

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "averageScore": self.average_score,
            "severity": self.severity,
            "threshold": self.threshold,
        }


def find_risk_alerts(category_scores: Iterable[Any]) -> list[RiskAlert]:
    """Return one alert per high-risk category, most severe first."""
    alerts: list[RiskAlert] = []
    for item in category_scores:
        if getattr(item, "risk_level", "") != "high":
            continue
        score = float(getattr(item, "average_score", 0.0))
        severity: Literal["high", "critical"] = "critical" if score <= CRITICAL_ALERT_SCORE else "high"
        alerts.append(RiskAlert(category=str(item.category), average_score=score, severity=severity))
    alerts.sort(key=lambda a: (a.severity != "critical", a.average_score, a.category))
    return alerts
