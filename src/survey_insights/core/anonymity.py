from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")

# Minimum distinct participants before response-level detail may be rendered.
DETAIL_ANONYMITY_FLOOR = 10

# Minimum distinct participants before an aggregate summary may leave the system as a file.
AGGREGATE_EXPORT_FLOOR = 5

SUPPRESSION_MESSAGE = "Detailed responses require more participants to protect respondent anonymity."


@dataclass(slots=True, frozen=True)
class GuardResult(Generic[T]):
    suppressed: bool
    current_count: int
    minimum_required: int
    remaining: int | None = None
    percent_complete: float | None = None
    detail: T | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "suppressed": self.suppressed,
            "currentCount": self.current_count,
            "minimumRequired": self.minimum_required,
        }
        if self.suppressed:
            payload["remaining"] = self.remaining
            payload["percentComplete"] = self.percent_complete
            payload["message"] = self.message
        else:
            payload["detail"] = self.detail
        return payload


def guard_detail(participant_count: int, k: int, detail: T) -> GuardResult[T]:
    """Gate response-level detail behind the anonymity floor ``k``.

    Below the floor the detail is dropped and only progress towards ``k`` is
    reported. Aggregate statistics never pass through here.
    """
    floor = int(k)
    if floor <= 0:
        raise ValueError("anonymity floor must be positive")
    count = max(0, int(participant_count))
    if count < floor:
        return GuardResult(
            suppressed=True,
            current_count=count,
            minimum_required=floor,
            remaining=floor - count,
            percent_complete=round(min(100.0, count / floor * 100), 2),
            detail=None,
            message=SUPPRESSION_MESSAGE,
        )
    return GuardResult(
        suppressed=False,
        current_count=count,
        minimum_required=floor,
        detail=detail,
    )
