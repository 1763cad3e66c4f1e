from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, TypedDict, Union

QuestionType = Literal["numeric-scale", "single-choice", "open-text", "nps-0-10"]
QuestionnaireKind = Literal["risk", "climate"]

QUESTION_TYPES = ("numeric-scale", "single-choice", "open-text", "nps-0-10")
NUMERIC_QUESTION_TYPES = {"numeric-scale", "nps-0-10"}

# Source systems label the same types differently.
_QUESTION_TYPE_ALIASES = {
    "likert_scale": "numeric-scale",
    "likert": "numeric-scale",
    "scale": "numeric-scale",
    "rating": "numeric-scale",
    "numeric": "numeric-scale",
    "nps": "nps-0-10",
    "nps_0_10": "nps-0-10",
    "multiple_choice": "single-choice",
    "single_choice": "single-choice",
    "choice": "single-choice",
    "text": "open-text",
    "long_text": "open-text",
    "open_text": "open-text",
}


class RawResponse(TypedDict, total=False):
    id: str
    anonymous_id: str
    question_id: str
    category: str
    theme: str
    raw_value: str
    value: str
    created_at: str


class RawQuestion(TypedDict, total=False):
    id: str
    text: str
    category: str
    theme: str
    type: str
    scale_max: int
    order_index: int


@dataclass(slots=True, frozen=True)
class NumericValue:
    number: float
    kind: Literal["numeric"] = "numeric"


@dataclass(slots=True, frozen=True)
class TextValue:
    text: str
    kind: Literal["text"] = "text"


ResponseValue = Union[NumericValue, TextValue]


def parse_response_value(raw: str) -> ResponseValue:
    """Resolve a raw answer into its numeric or text form.

    Only finite numbers count as numeric; "nan", "inf" and partial numbers such as
    "4 stars" stay text.
    """
    text = str(raw or "").strip()
    try:
        number = float(text)
    except (TypeError, ValueError):
        return TextValue(text=text)
    if not math.isfinite(number):
        return TextValue(text=text)
    return NumericValue(number=number)


def normalize_question_type(value: str) -> str:
    raw = str(value or "").strip().lower()
    if raw in QUESTION_TYPES:
        return raw
    return _QUESTION_TYPE_ALIASES.get(raw, "numeric-scale")


@dataclass(slots=True, frozen=True)
class Question:
    id: str
    text: str = ""
    category: str = ""
    type: str = "numeric-scale"
    scale_max: int = 5
    order_index: int = 0

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_QUESTION_TYPES


@dataclass(slots=True, frozen=True)
class Response:
    anonymous_id: str
    question_id: str
    category: str
    raw_value: str
    value: ResponseValue = field(default_factory=lambda: TextValue(text=""))
    id: str = ""
    created_at: datetime | None = None

    @property
    def is_blank(self) -> bool:
        return not self.raw_value.strip()

    @property
    def numeric(self) -> float | None:
        if isinstance(self.value, NumericValue):
            return self.value.number
        return None


def make_response(
    *,
    anonymous_id: str,
    question_id: str,
    category: str,
    raw_value: str,
    id: str = "",
    created_at: datetime | None = None,
) -> Response:
    raw = str(raw_value if raw_value is not None else "")
    return Response(
        id=str(id or ""),
        anonymous_id=str(anonymous_id or ""),
        question_id=str(question_id or ""),
        category=str(category or ""),
        raw_value=raw,
        value=parse_response_value(raw),
        created_at=created_at,
    )


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def to_response(payload: RawResponse) -> Response:
    raw_value = payload.get("raw_value", payload.get("value", ""))
    return make_response(
        id=str(payload.get("id", "")),
        anonymous_id=str(payload.get("anonymous_id", "")),
        question_id=str(payload.get("question_id", "")),
        category=str(payload.get("category", payload.get("theme", ""))),
        raw_value="" if raw_value is None else str(raw_value),
        created_at=_parse_timestamp(payload.get("created_at")),
    )


def to_question(payload: RawQuestion) -> Question:
    qtype = normalize_question_type(str(payload.get("type", "")))
    default_max = 10 if qtype == "nps-0-10" else 5
    return Question(
        id=str(payload.get("id", "")),
        text=str(payload.get("text", "")),
        category=str(payload.get("category", payload.get("theme", ""))),
        type=qtype,
        scale_max=int(payload.get("scale_max", default_max) or default_max),
        order_index=int(payload.get("order_index", 0) or 0),
    )
