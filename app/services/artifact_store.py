import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import GeneratedArtifact
from app.utils.jsonx import from_json, to_json
from survey_insights.errors import PersistenceError

logger = logging.getLogger(__name__)

ARTIFACT_KINDS = ("report", "action_plan")


def save_artifact(
    db: Session,
    *,
    assessment_id: int,
    kind: str,
    title: str,
    payload: Any,
    source: str,
    decision_log: list[dict[str, Any]] | None = None,
    generation_time_ms: int = 0,
    status: str = "completed",
) -> GeneratedArtifact:
    """Insert a new artifact row. Earlier rows for the same assessment are never touched."""
    if kind not in ARTIFACT_KINDS:
        raise ValueError(f"unknown artifact kind: {kind}")
    row = GeneratedArtifact(
        assessment_id=assessment_id,
        kind=kind,
        title=title[:255],
        payload_json=to_json(payload),
        status=status,
        source=source,
        decision_log_json=to_json(decision_log or []),
        generation_time_ms=max(0, int(generation_time_ms)),
    )
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to persist %s for assessment %s", kind, assessment_id)
        raise PersistenceError(str(exc)) from exc
    return row


def get_artifact_history(
    db: Session,
    assessment_id: int,
    *,
    kind: str | None = None,
    limit: int = 50,
) -> list[GeneratedArtifact]:
    stmt = select(GeneratedArtifact).where(GeneratedArtifact.assessment_id == assessment_id)
    if kind:
        stmt = stmt.where(GeneratedArtifact.kind == kind)
    stmt = stmt.order_by(GeneratedArtifact.created_at.desc(), GeneratedArtifact.id.desc()).limit(max(1, limit))
    try:
        return list(db.execute(stmt).scalars().all())
    except SQLAlchemyError as exc:
        logger.exception("Failed to load artifact history for assessment %s", assessment_id)
        raise PersistenceError(str(exc)) from exc


def get_artifact(db: Session, artifact_id: int) -> GeneratedArtifact | None:
    try:
        return db.get(GeneratedArtifact, artifact_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load artifact %s", artifact_id)
        raise PersistenceError(str(exc)) from exc


def artifact_to_dict(row: GeneratedArtifact, *, include_payload: bool = True) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": int(row.id),
        "assessmentId": int(row.assessment_id),
        "kind": row.kind,
        "title": row.title,
        "status": row.status,
        "source": row.source,
        "generationTimeMs": int(row.generation_time_ms or 0),
        "createdAt": row.created_at.isoformat() if row.created_at else None,
    }
    if include_payload:
        out["payload"] = from_json(row.payload_json, {})
        out["decisionLog"] = from_json(row.decision_log_json, [])
    return out
