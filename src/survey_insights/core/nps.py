from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Literal

SatisfactionClass = Literal["excellent", "good", "neutral", "critical"]

NPS_MIN = 0
NPS_MAX = 10


@dataclass(slots=True, frozen=True)
class NPSBreakdown:
    average_score: float
    promoters: int
    passives: int
    detractors: int
    total: int
    promoter_pct: float
    passive_pct: float
    detractor_pct: float
    nps_score: int
    classification: SatisfactionClass

    def to_dict(self) -> dict[str, Any]:
        return {
            "averageScore": self.average_score,
            "promoters": self.promoters,
            "passives": self.passives,
            "detractors": self.detractors,
            "total": self.total,
            "promoterPct": self.promoter_pct,
            "passivePct": self.passive_pct,
            "detractorPct": self.detractor_pct,
            "npsScore": self.nps_score,
            "classification": self.classification,
        }


def parse_nps_value(value: Any) -> int | None:
    """Return the 0-10 integer for a raw NPS answer, or None when it is not valid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return None
    if number != number or not number.is_integer():
        return None
    as_int = int(number)
    if as_int < NPS_MIN or as_int > NPS_MAX:
        return None
    return as_int


def classify_satisfaction(average_score: float) -> SatisfactionClass:
    if average_score >= 9:
        return "excellent"
    if average_score >= 7:
        return "good"
    if average_score >= 5:
        return "neutral"
    return "critical"


def _pct(count: int, total: int) -> float:
    return round(count / total * 100, 2) if total else 0.0


def compute_nps(values: Iterable[Any]) -> NPSBreakdown:
    valid = [v for v in (parse_nps_value(x) for x in values) if v is not None]
    promoters = sum(1 for v in valid if v >= 9)
    passives = sum(1 for v in valid if 7 <= v <= 8)
    detractors = sum(1 for v in valid if v <= 6)
    total = promoters + passives + detractors

    raw_average = sum(valid) / total if total else 0.0
    nps_score = round((promoters - detractors) / total * 100) if total else 0
    return NPSBreakdown(
        average_score=round(raw_average, 2),
        promoters=promoters,
        passives=passives,
        detractors=detractors,
        total=total,
        promoter_pct=_pct(promoters, total),
        passive_pct=_pct(passives, total),
        detractor_pct=_pct(detractors, total),
        nps_score=int(nps_score),
        classification=classify_satisfaction(raw_average),
    )


def normalize_nps_to_scale(value: float, *, scale_max: int = 5) -> float:
    """Project a 0-10 answer onto the 1..scale_max range used by category averages."""
    return (float(value) / NPS_MAX) * (scale_max - 1) + 1
