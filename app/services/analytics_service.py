import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.config import Settings, get_settings
from app.models import Assessment, Question as QuestionRow, SurveyResponse
from config.category_labels import get_label_set
from survey_insights.core import AggregateResult, GuardResult, aggregate_responses, count_participants, guard_detail
from survey_insights.errors import PersistenceError
from survey_insights.models import Question, Response, make_response, normalize_question_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClosureCheck:
    is_closed: bool
    reason: str  # manual/expired/all_responses/not_closed
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"isClosed": self.is_closed, "reason": self.reason, "message": self.message}


def load_assessment(db: Session, assessment_id: int) -> Assessment | None:
    stmt = (
        select(Assessment)
        .where(Assessment.id == assessment_id)
        .options(selectinload(Assessment.questionnaire))
    )
    try:
        return db.execute(stmt).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Failed to load assessment %s", assessment_id)
        raise PersistenceError(str(exc)) from exc


def _core_question(row: QuestionRow) -> Question:
    qtype = normalize_question_type(row.type)
    return Question(
        id=str(row.id),
        text=str(row.text or ""),
        category=str(row.category or ""),
        type=qtype,
        scale_max=int(row.scale_max or (10 if qtype == "nps-0-10" else 5)),
        order_index=int(row.order_index or 0),
    )


def load_core_rows(db: Session, assessment: Assessment) -> tuple[list[Response], list[Question]]:
    """Read persisted rows for one assessment and resolve each answer's tagged value."""
    try:
        question_rows = db.execute(
            select(QuestionRow)
            .where(QuestionRow.questionnaire_id == assessment.questionnaire_id)
            .order_by(QuestionRow.order_index, QuestionRow.id)
        ).scalars().all()
        response_rows = db.execute(
            select(SurveyResponse)
            .where(SurveyResponse.assessment_id == assessment.id)
            .order_by(SurveyResponse.created_at, SurveyResponse.id)
        ).scalars().all()
    except SQLAlchemyError as exc:
        logger.exception("Failed to load responses for assessment %s", assessment.id)
        raise PersistenceError(str(exc)) from exc

    questions = [_core_question(q) for q in question_rows]
    categories = {q.id: q.category for q in questions}
    responses = [
        make_response(
            id=str(r.id),
            anonymous_id=r.anonymous_id,
            question_id=str(r.question_id),
            category=categories.get(str(r.question_id), ""),
            raw_value=r.response_text,
            created_at=r.created_at,
        )
        for r in response_rows
    ]
    return responses, questions


def aggregate_assessment(
    db: Session,
    assessment: Assessment,
    *,
    settings: Settings | None = None,
) -> AggregateResult:
    cfg = settings or get_settings()
    labels = get_label_set(cfg.category_label_set)
    responses, questions = load_core_rows(db, assessment)
    result = aggregate_responses(
        responses,
        questions,
        questionnaire_kind=assessment.questionnaire_kind,
        labels=labels.labels,
        total_questions=len(questions) or None,
    )
    for alert in result.risk_alerts:
        # External notifiers pick these up from the log stream.
        logger.warning(
            "Risk alert assessment=%s category=%s score=%.2f severity=%s",
            assessment.id,
            alert.category,
            alert.average_score,
            alert.severity,
        )
    return result


def check_detail_access(
    db: Session,
    assessment: Assessment,
    *,
    settings: Settings | None = None,
) -> GuardResult[list[dict[str, Any]]]:
    """Response-level detail, gated by the detail anonymity floor."""
    cfg = settings or get_settings()
    responses, _ = load_core_rows(db, assessment)
    participants = count_participants(responses)
    detail = [
        {
            "questionId": r.question_id,
            "category": r.category,
            "value": r.raw_value,
            "createdAt": r.created_at.isoformat() if r.created_at else None,
        }
        for r in responses
        if not r.is_blank
    ]
    result = guard_detail(participants, cfg.detail_anonymity_floor, detail)
    if result.suppressed:
        logger.info(
            "Detail view suppressed for assessment %s (%s/%s participants)",
            assessment.id,
            participants,
            cfg.detail_anonymity_floor,
        )
    return result


def check_assessment_closed(
    assessment: Assessment,
    participant_count: int,
    *,
    now: datetime | None = None,
) -> ClosureCheck:
    current = now or datetime.utcnow()
    if str(assessment.status or "") == "closed":
        return ClosureCheck(True, "manual", "Assessment closed manually")
    if assessment.end_date is not None and assessment.end_date < current:
        return ClosureCheck(True, "expired", "Assessment closed by end date")
    expected = int(assessment.expected_participants or 0)
    if expected > 0 and participant_count >= expected:
        return ClosureCheck(True, "all_responses", "All expected participants responded")
    return ClosureCheck(
        False,
        "not_closed",
        f"Waiting for responses ({participant_count}/{expected or '?'})",
    )


def record_responses(
    db: Session,
    assessment: Assessment,
    anonymous_id: str,
    answers: dict[str, Any],
) -> int:
    """Store one participant's answers. Blank answers are skipped; returns rows inserted."""
    anon = str(anonymous_id or "").strip()
    if not anon:
        raise ValueError("anonymous_id is required")
    if check_assessment_closed(assessment, 0).is_closed:
        raise ValueError("assessment is closed")

    try:
        question_ids = set(
            db.execute(
                select(QuestionRow.id).where(QuestionRow.questionnaire_id == assessment.questionnaire_id)
            ).scalars().all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Failed to load questions for assessment %s", assessment.id)
        raise PersistenceError(str(exc)) from exc
    rows: list[SurveyResponse] = []
    for raw_qid, value in answers.items():
        try:
            qid = int(raw_qid)
        except (TypeError, ValueError):
            raise ValueError(f"unknown question: {raw_qid}") from None
        if qid not in question_ids:
            raise ValueError(f"unknown question: {raw_qid}")
        text = "" if value is None else str(value).strip()
        if not text:
            continue
        rows.append(
            SurveyResponse(
                assessment_id=assessment.id,
                question_id=qid,
                anonymous_id=anon,
                response_text=text,
            )
        )

    try:
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to store responses for assessment %s", assessment.id)
        raise PersistenceError(str(exc)) from exc
    return len(rows)
