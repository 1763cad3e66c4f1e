from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.dependencies import error_response, get_db
from app.services.artifact_store import artifact_to_dict, get_artifact, get_artifact_history
from app.services.narrative_orchestrator import generate_action_plan, generate_report
from survey_insights.errors import GENERIC_FAILURE_MESSAGE, NOT_FOUND, PERSISTENCE_FAILURE, PersistenceError

router = APIRouter(prefix="/api", tags=["reports"])


def _respond(result: dict[str, Any]):
    if result.get("success"):
        return result
    extra = {k: v for k, v in result.items() if k not in {"success", "error", "message"}}
    return error_response(str(result.get("error")), str(result.get("message") or ""), **extra)


@router.post("/assessments/{assessment_id}/reports")
def api_generate_report(assessment_id: int, db: Session = Depends(get_db)):
    return _respond(generate_report(db, assessment_id))


@router.post("/assessments/{assessment_id}/action-plans")
def api_generate_action_plan(
    assessment_id: int,
    payload: dict[str, Any] = Body(default={}),
    db: Session = Depends(get_db),
):
    high_risk = payload.get("highRiskCategories", payload.get("high_risk_categories", []))
    if not isinstance(high_risk, list):
        return error_response("INVALID_INPUT", "highRiskCategories must be a list")
    return _respond(generate_action_plan(db, assessment_id, high_risk))


@router.get("/assessments/{assessment_id}/artifacts")
def api_artifact_history(
    assessment_id: int,
    kind: str = Query(default=""),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    try:
        rows = get_artifact_history(db, assessment_id, kind=kind or None, limit=limit)
    except PersistenceError:
        return error_response(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)
    return {"assessmentId": assessment_id, "items": [artifact_to_dict(r, include_payload=False) for r in rows]}


@router.get("/artifacts/{artifact_id}")
def api_artifact(artifact_id: int, db: Session = Depends(get_db)):
    try:
        row = get_artifact(db, artifact_id)
    except PersistenceError:
        return error_response(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)
    if row is None:
        return error_response(NOT_FOUND, "Artifact not found")
    return artifact_to_dict(row)
