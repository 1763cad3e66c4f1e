from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Response
from sqlalchemy.orm import Session

from app.dependencies import error_response, get_assessment, get_db
from app.models import Assessment
from app.services.analytics_service import (
    aggregate_assessment,
    check_assessment_closed,
    check_detail_access,
    load_core_rows,
    record_responses,
)
from app.services.export_service import EXPORT_SECTIONS, export_responses_csv, export_summary_csv
from survey_insights.core import count_participants
from survey_insights.errors import (
    ANONYMITY_PROTECTED,
    GENERIC_FAILURE_MESSAGE,
    NOT_FOUND,
    PERSISTENCE_FAILURE,
    PersistenceError,
)

router = APIRouter(prefix="/api", tags=["analytics"])


@router.get("/assessments/{assessment_id}/analytics")
def api_assessment_analytics(
    assessment_id: int,
    db: Session = Depends(get_db),
    assessment: Assessment | None = Depends(get_assessment),
):
    if not assessment:
        return error_response(NOT_FOUND, "Assessment not found")
    try:
        result = aggregate_assessment(db, assessment)
    except PersistenceError:
        return error_response(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)
    return {
        "assessmentId": assessment_id,
        "title": assessment.title,
        "organizationName": assessment.organization_name,
        **result.to_dict(),
    }


@router.get("/assessments/{assessment_id}/detail")
def api_assessment_detail(
    assessment_id: int,
    db: Session = Depends(get_db),
    assessment: Assessment | None = Depends(get_assessment),
):
    if not assessment:
        return error_response(NOT_FOUND, "Assessment not found")
    try:
        return check_detail_access(db, assessment).to_dict()
    except PersistenceError:
        return error_response(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)


@router.get("/assessments/{assessment_id}/closure")
def api_assessment_closure(
    assessment_id: int,
    db: Session = Depends(get_db),
    assessment: Assessment | None = Depends(get_assessment),
):
    if not assessment:
        return error_response(NOT_FOUND, "Assessment not found")
    try:
        responses, _ = load_core_rows(db, assessment)
    except PersistenceError:
        return error_response(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)
    participants = count_participants(responses)
    return check_assessment_closed(assessment, participants).to_dict()


@router.post("/assessments/{assessment_id}/responses")
def api_submit_responses(
    assessment_id: int,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    assessment: Assessment | None = Depends(get_assessment),
):
    if not assessment:
        return error_response(NOT_FOUND, "Assessment not found")
    answers = payload.get("answers")
    if not isinstance(answers, dict):
        return error_response("INVALID_INPUT", "answers must be an object keyed by question id")
    try:
        stored = record_responses(db, assessment, str(payload.get("anonymous_id", "")), answers)
    except ValueError as exc:
        return error_response("INVALID_INPUT", str(exc))
    except PersistenceError:
        return error_response(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)
    return {"success": True, "stored": stored}


@router.get("/assessments/{assessment_id}/export")
def api_export_assessment(
    assessment_id: int,
    export_format: str = Query("csv", alias="format"),
    section: str = Query("summary"),
    db: Session = Depends(get_db),
    assessment: Assessment | None = Depends(get_assessment),
):
    if not assessment:
        return error_response(NOT_FOUND, "Assessment not found")
    if export_format.lower() != "csv":
        return error_response("INVALID_INPUT", f"unsupported export format: {export_format}")
    if section not in EXPORT_SECTIONS:
        return error_response("INVALID_INPUT", f"section must be one of: {', '.join(EXPORT_SECTIONS)}")

    exporter = export_summary_csv if section == "summary" else export_responses_csv
    try:
        result = exporter(db, assessment)
    except PersistenceError:
        return error_response(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)
    if result.suppressed:
        return error_response(ANONYMITY_PROTECTED, result.message, guard=result.to_dict())

    filename = f"assessment_{assessment_id}_{section}.csv"
    return Response(
        content=result.detail,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
