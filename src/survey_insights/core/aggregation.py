from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

from ..models import NumericValue, Question, Response, parse_response_value
from .nps import NPSBreakdown, compute_nps, normalize_nps_to_scale
from .risk import RiskAlert, RiskLevel, classify_risk, find_risk_alerts

TEXT_DISPLAY_LIMIT = 10
UNCATEGORIZED = "uncategorized"


@dataclass(slots=True, frozen=True)
class DistributionBucket:
    value: str
    count: int
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "count": self.count, "percentage": self.percentage}


@dataclass(slots=True, frozen=True)
class QuestionSummary:
    question_id: str
    question_text: str
    question_type: str
    category: str
    response_count: int
    participant_count: int
    average_score: float | None
    distribution: tuple[DistributionBucket, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "questionId": self.question_id,
            "questionText": self.question_text,
            "questionType": self.question_type,
            "category": self.category,
            "responseCount": self.response_count,
            "participantCount": self.participant_count,
            "averageScore": self.average_score,
            "distribution": [b.to_dict() for b in self.distribution],
        }


@dataclass(slots=True, frozen=True)
class CategoryScore:
    category: str
    label: str
    average_score: float
    risk_level: RiskLevel
    response_count: int
    question_count: int
    participant_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "categoryName": self.label,
            "averageScore": self.average_score,
            "riskLevel": self.risk_level,
            "responseCount": self.response_count,
            "questionCount": self.question_count,
            "participantCount": self.participant_count,
        }


@dataclass(slots=True, frozen=True)
class TextResponseGroup:
    question_id: str
    theme: str
    items: tuple[str, ...]
    total_count: int
    remaining_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "questionId": self.question_id,
            "theme": self.theme,
            "items": list(self.items),
            "totalCount": self.total_count,
            "remainingCount": self.remaining_count,
        }


@dataclass(slots=True, frozen=True)
class AggregateResult:
    questionnaire_kind: str
    category_scores: tuple[CategoryScore, ...]
    questions: tuple[QuestionSummary, ...]
    text_responses: tuple[TextResponseGroup, ...]
    total_participants: int
    total_responses: int
    total_questions: int
    completion_rate: float
    nps_breakdown: NPSBreakdown | None = None
    last_response_at: datetime | None = None
    risk_alerts: tuple[RiskAlert, ...] = field(default_factory=tuple)

    def category(self, key: str) -> CategoryScore | None:
        for item in self.category_scores:
            if item.category == key:
                return item
        return None

    def high_risk_categories(self) -> list[CategoryScore]:
        return [c for c in self.category_scores if c.risk_level == "high"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "questionnaireKind": self.questionnaire_kind,
            "categoryScores": [c.to_dict() for c in self.category_scores],
            "questions": [q.to_dict() for q in self.questions],
            "npsBreakdown": self.nps_breakdown.to_dict() if self.nps_breakdown else None,
            "textResponses": [t.to_dict() for t in self.text_responses],
            "totalParticipants": self.total_participants,
            "totalResponses": self.total_responses,
            "totalQuestions": self.total_questions,
            "completionRate": self.completion_rate,
            "lastResponseAt": self.last_response_at.isoformat() if self.last_response_at else None,
            "riskAlerts": [a.to_dict() for a in self.risk_alerts],
        }


def count_participants(responses: Iterable[Response]) -> int:
    return len({r.anonymous_id for r in responses if r.anonymous_id})


def completion_rate(total_responses: int, participants: int, total_questions: int) -> float:
    if total_questions <= 0 or participants <= 0:
        return 0.0
    return round(total_responses / (participants * total_questions) * 100, 2)


def _distribution_sort_key(value: str) -> tuple[int, float, str]:
    parsed = parse_response_value(value)
    if isinstance(parsed, NumericValue):
        return (0, parsed.number, value)
    return (1, 0.0, value)


def build_distribution(raw_values: list[str]) -> tuple[DistributionBucket, ...]:
    """Count each distinct answer; percentages are rounded per bucket, not renormalised."""
    total = len(raw_values)
    if total == 0:
        return ()
    counts: dict[str, int] = defaultdict(int)
    for value in raw_values:
        counts[value] += 1
    return tuple(
        DistributionBucket(value=value, count=count, percentage=round(count / total * 100, 2))
        for value, count in sorted(counts.items(), key=lambda kv: _distribution_sort_key(kv[0]))
    )


def _numeric_values(responses: Iterable[Response]) -> list[float]:
    return [r.value.number for r in responses if isinstance(r.value, NumericValue)]


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def _question_for(response: Response, index: Mapping[str, Question]) -> Question:
    question = index.get(response.question_id)
    if question is not None:
        return question
    return Question(id=response.question_id, category=response.category)


def _ordered_categories(keys: Iterable[str], labels: Mapping[str, str]) -> list[str]:
    known = [k for k in labels if k in keys]
    rest = sorted(k for k in keys if k not in labels)
    return known + rest


def summarize_question(question: Question, category: str, responses: list[Response]) -> QuestionSummary:
    answered = [r for r in responses if not r.is_blank]
    average = _mean(_numeric_values(answered)) if question.is_numeric else None
    return QuestionSummary(
        question_id=question.id,
        question_text=question.text,
        question_type=question.type,
        category=category,
        response_count=len(answered),
        participant_count=count_participants(answered),
        average_score=round(average, 2) if average is not None else None,
        distribution=build_distribution([r.raw_value.strip() for r in answered]),
    )


def aggregate_responses(
    responses: Iterable[Response],
    questions: Iterable[Question] | None = None,
    *,
    questionnaire_kind: str = "risk",
    labels: Mapping[str, str] | None = None,
    total_questions: int | None = None,
) -> AggregateResult:
    """Compute category/theme scores, per-question summaries and NPS for one assessment.

    ``responses`` must already be scoped to a single assessment. Grouping uses the
    response category (the theme for climate questionnaires), falling back to the
    question's category. Open-text answers are passed through, never averaged.
    """
    rows = [r for r in responses if not r.is_blank]
    question_list = list(questions or [])
    index = {q.id: q for q in question_list}
    label_map = dict(labels or {})

    grouped: dict[str, dict[str, list[Response]]] = defaultdict(lambda: defaultdict(list))
    for response in rows:
        question = _question_for(response, index)
        category = response.category or question.category or UNCATEGORIZED
        grouped[category][question.id].append(response)

    summaries: list[QuestionSummary] = []
    category_scores: list[CategoryScore] = []
    text_groups: list[TextResponseGroup] = []
    nps_candidates: list[tuple[Question, list[Response]]] = []

    for category in _ordered_categories(grouped.keys(), label_map):
        by_question = grouped[category]
        ordered_ids = sorted(
            by_question.keys(),
            key=lambda qid: (_question_for(by_question[qid][0], index).order_index, qid),
        )
        pooled: list[float] = []
        scored_questions = 0
        category_rows: list[Response] = []

        for question_id in ordered_ids:
            question_rows = by_question[question_id]
            question = _question_for(question_rows[0], index)
            category_rows.extend(question_rows)

            if question.type == "open-text":
                texts = [r.raw_value.strip() for r in question_rows if not r.is_blank]
                shown = tuple(texts[:TEXT_DISPLAY_LIMIT])
                text_groups.append(
                    TextResponseGroup(
                        question_id=question.id,
                        theme=label_map.get(category, category),
                        items=shown,
                        total_count=len(texts),
                        remaining_count=len(texts) - len(shown),
                    )
                )
                continue

            summary = summarize_question(question, category, question_rows)
            summaries.append(summary)
            if not question.is_numeric:
                continue

            values = _numeric_values(r for r in question_rows if not r.is_blank)
            if question.type == "nps-0-10":
                nps_candidates.append((question, question_rows))
                values = [normalize_nps_to_scale(v) for v in values]
            if values:
                scored_questions += 1
                pooled.extend(values)

        average = _mean(pooled)
        if average is None:
            continue
        category_scores.append(
            CategoryScore(
                category=category,
                label=label_map.get(category, category),
                average_score=round(average, 2),
                risk_level=classify_risk(average),
                response_count=len(pooled),
                question_count=scored_questions,
                participant_count=count_participants(category_rows),
            )
        )

    nps: NPSBreakdown | None = None
    if nps_candidates:
        _, nps_rows = min(nps_candidates, key=lambda item: (item[0].order_index, item[0].id))
        nps = compute_nps(r.raw_value for r in nps_rows if not r.is_blank)

    participants = count_participants(rows)
    question_total = total_questions if total_questions is not None else (
        len(index) if index else len({r.question_id for r in rows})
    )
    timestamps = [r.created_at for r in rows if r.created_at is not None]

    return AggregateResult(
        questionnaire_kind=questionnaire_kind,
        category_scores=tuple(category_scores),
        questions=tuple(summaries),
        text_responses=tuple(text_groups),
        total_participants=participants,
        total_responses=len(rows),
        total_questions=question_total,
        completion_rate=completion_rate(len(rows), participants, question_total),
        nps_breakdown=nps,
        last_response_at=max(timestamps) if timestamps else None,
        risk_alerts=tuple(find_risk_alerts(category_scores)),
    )
