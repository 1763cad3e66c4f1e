import csv
import io
import logging
from dataclasses import replace
from typing import Any

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.models import Assessment
from app.services.analytics_service import aggregate_assessment, load_core_rows
from config.category_labels import get_label_set
from survey_insights.core import GuardResult, count_participants, guard_detail

logger = logging.getLogger(__name__)

EXPORT_SECTIONS = ("summary", "responses")

# Spreadsheet tools need the BOM to read UTF-8 accents correctly.
CSV_BOM = "\ufeff"

SUMMARY_SUPPRESSION_MESSAGE = "Exporting results requires more participants to protect respondent anonymity."

RESPONSE_COLUMNS = ["Respondent", "Question", "Category", "Type", "Response", "Created At"]
SUMMARY_COLUMNS = ["Category", "Average Score", "Risk Level", "Total Responses", "Total Questions"]


def _render(rows: list[list[Any]]) -> str:
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerows(rows)
    return CSV_BOM + out.getvalue()


def export_summary_csv(
    db: Session,
    assessment: Assessment,
    *,
    settings: Settings | None = None,
) -> GuardResult[str]:
    """Per-category aggregate results as CSV, withheld below the export floor."""
    cfg = settings or get_settings()
    labels = get_label_set(cfg.category_label_set)
    aggregate = aggregate_assessment(db, assessment, settings=cfg)

    rows: list[list[Any]] = [
        ["Assessment", assessment.title or ""],
        ["Organization", assessment.organization_name or ""],
        ["Total Participants", aggregate.total_participants],
        ["Completion Rate", f"{aggregate.completion_rate}%"],
        ["Last Response", aggregate.last_response_at.isoformat() if aggregate.last_response_at else ""],
        [],
        SUMMARY_COLUMNS,
    ]
    for c in aggregate.category_scores:
        rows.append(
            [
                c.label,
                f"{c.average_score:.2f}",
                labels.risk_label(c.risk_level),
                c.response_count,
                c.question_count,
            ]
        )

    result = guard_detail(aggregate.total_participants, cfg.aggregate_export_floor, rows)
    if result.suppressed:
        logger.info(
            "Summary export suppressed for assessment %s (%s/%s participants)",
            assessment.id,
            result.current_count,
            result.minimum_required,
        )
        return replace(result, message=SUMMARY_SUPPRESSION_MESSAGE)
    return replace(result, detail=_render(rows))


def export_responses_csv(
    db: Session,
    assessment: Assessment,
    *,
    settings: Settings | None = None,
) -> GuardResult[str]:
    """One CSV row per stored answer, withheld below the detail anonymity floor.

    Anonymous ids are replaced by a respondent number that is only stable within
    one export, so files taken at different times cannot be joined on it.
    """
    cfg = settings or get_settings()
    responses, questions = load_core_rows(db, assessment)
    participants = count_participants(responses)
    result = guard_detail(participants, cfg.detail_anonymity_floor, None)
    if result.suppressed:
        logger.info(
            "Responses export suppressed for assessment %s (%s/%s participants)",
            assessment.id,
            participants,
            cfg.detail_anonymity_floor,
        )
        return result

    labels = get_label_set(cfg.category_label_set)
    by_id = {q.id: q for q in questions}
    respondents: dict[str, int] = {}
    rows: list[list[Any]] = [RESPONSE_COLUMNS]
    for r in responses:
        if r.is_blank:
            continue
        number = respondents.setdefault(r.anonymous_id, len(respondents) + 1)
        question = by_id.get(r.question_id)
        rows.append(
            [
                number,
                question.text if question else "",
                labels.label(r.category) if r.category else "",
                question.type if question else "",
                r.raw_value,
                r.created_at.isoformat() if r.created_at else "",
            ]
        )
    logger.info("Exported %s responses for assessment %s", len(rows) - 1, assessment.id)
    return replace(result, detail=_render(rows))
