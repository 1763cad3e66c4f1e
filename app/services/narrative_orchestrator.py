"""Narrative artifacts (executive report, action plan) for one assessment.

Providers are tried one at a time in the configured order. The first output that
passes validation wins; any provider failure or invalid output moves on to the next
provider, and the deterministic template closes the chain so a caller with enough
data always gets an artifact. Only aggregate statistics ever reach a prompt.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.models import Assessment
from app.services.analytics_service import aggregate_assessment, check_assessment_closed, load_assessment
from app.services.artifact_store import save_artifact
from app.services.llm_providers import TextProvider, build_providers
from app.services.narrative_templates import NarrativeContext, template_action_plan, template_report
from app.utils.jsonx import parse_first_object
from config.category_labels import get_label_set, resolve_category_key
from survey_insights.core import RISK_LEVELS
from survey_insights.errors import (
    GENERIC_FAILURE_MESSAGE,
    INSUFFICIENT_DATA,
    NOT_FOUND,
    PARSE_FAILURE,
    PERSISTENCE_FAILURE,
    PROVIDER_UNAVAILABLE,
    PersistenceError,
)

logger = logging.getLogger(__name__)

TEMPLATE_SOURCE = "template"

REPORT_SYSTEM_PROMPT = (
    "You are an occupational health specialist in psychosocial risk. "
    "Answer with a single valid JSON object and nothing else."
)


class NarrativeState(str, Enum):
    NOT_STARTED = "not-started"
    CHECKING_PRECONDITIONS = "checking-preconditions"
    INSUFFICIENT_DATA = "insufficient-data"
    GENERATING = "generating"
    VALIDATING = "validating"
    ACCEPTED = "accepted"
    PROVIDER_FALLBACK = "provider-fallback"
    TEMPLATE_FALLBACK = "template-fallback"
    PERSISTED = "persisted"


@dataclass
class AttemptRecord:
    provider: str
    model: str
    outcome: str  # accepted/PROVIDER_UNAVAILABLE/PARSE_FAILURE/cancelled
    detail: str = ""
    elapsed_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "outcome": self.outcome,
            "detail": self.detail,
            "elapsedMs": self.elapsed_ms,
        }


@dataclass
class NarrativeRun:
    kind: str
    assessment_id: int
    state: NarrativeState = NarrativeState.NOT_STARTED
    states: list[str] = field(default_factory=list)
    attempts: list[AttemptRecord] = field(default_factory=list)
    started: float = field(default_factory=time.monotonic)

    def enter(self, state: NarrativeState) -> None:
        self.state = state
        self.states.append(state.value)
        logger.debug("%s run for assessment %s -> %s", self.kind, self.assessment_id, state.value)

    def decision_log(self) -> list[dict[str, Any]]:
        return [a.to_dict() for a in self.attempts]

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)


# --- output validation -------------------------------------------------------


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _text_list(value: Any) -> list[str] | None:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return None
    return [v for v in value if v.strip()]


def validate_report(text: str) -> dict[str, Any] | None:
    parsed = parse_first_object(text)
    if parsed is None or not _is_text(parsed.get("executiveSummary")) or not _is_text(parsed.get("conclusion")):
        return None

    analysis = parsed.get("riskAnalysis")
    if not isinstance(analysis, list):
        return None
    risk_analysis: list[dict[str, Any]] = []
    for item in analysis:
        if not isinstance(item, dict):
            return None
        recs = _text_list(item.get("recommendations"))
        if (
            not _is_text(item.get("category"))
            or not _is_text(item.get("categoryName"))
            or not _is_number(item.get("score"))
            or item.get("riskLevel") not in RISK_LEVELS
            or not _is_text(item.get("analysis"))
            or recs is None
        ):
            return None
        risk_analysis.append(
            {
                "category": item["category"],
                "categoryName": item["categoryName"],
                "score": float(item["score"]),
                "riskLevel": item["riskLevel"],
                "analysis": item["analysis"],
                "recommendations": recs,
            }
        )

    overall = _text_list(parsed.get("overallRecommendations"))
    priorities_raw = parsed.get("actionPriorities")
    if overall is None or not isinstance(priorities_raw, list):
        return None
    priorities: list[dict[str, str]] = []
    for item in priorities_raw:
        if not isinstance(item, dict) or item.get("priority") not in RISK_LEVELS:
            return None
        if not all(_is_text(item.get(k)) for k in ("action", "timeline", "responsible")):
            return None
        priorities.append({k: item[k] for k in ("priority", "action", "timeline", "responsible")})

    return {
        "executiveSummary": parsed["executiveSummary"],
        "riskAnalysis": risk_analysis,
        "overallRecommendations": overall,
        "actionPriorities": priorities,
        "conclusion": parsed["conclusion"],
    }


_ACTION_TEXT_FIELDS = ("category", "timeline", "responsible", "expectedImpact")


def validate_action_plan(text: str) -> list[dict[str, str]] | None:
    parsed = parse_first_object(text)
    if parsed is None:
        return None
    raw_actions = parsed.get("actions")
    if not isinstance(raw_actions, list) or not raw_actions:
        return None
    actions: list[dict[str, str]] = []
    for idx, item in enumerate(raw_actions, start=1):
        if not isinstance(item, dict) or item.get("priority") not in RISK_LEVELS:
            return None
        if not _is_text(item.get("title")) or not _is_text(item.get("description")):
            return None
        action = {
            "id": str(item.get("id") or f"ai-{idx}"),
            "priority": item["priority"],
            "title": item["title"],
            "description": item["description"],
        }
        for key in _ACTION_TEXT_FIELDS:
            action[key] = str(item.get(key) or "")
        actions.append(action)
    return actions


# --- prompts -------------------------------------------------------------------


def build_report_prompt(ctx: NarrativeContext) -> str:
    high = [c.label for c in ctx.by_level("high")]
    medium = [c.label for c in ctx.by_level("medium")]
    lines = [
        "Analyse the aggregate survey results below and write an executive report.",
        "",
        "ASSESSMENT:",
        f"- Organization: {ctx.organization_name}",
        f"- Assessment: {ctx.assessment_title}",
        f"- Participants: {ctx.total_participants}",
        f"- Completion rate: {ctx.completion_rate}%",
        "",
        "CATEGORY SCORES (scale 1-5, lower = higher risk):",
    ]
    for c in ctx.category_scores:
        lines.append(f"- {c.category} / {c.label}: {c.average_score} ({ctx.labels.risk_label(c.risk_level)})")
    if high:
        lines.append(f"HIGH RISK AREAS: {', '.join(high)}")
    if medium:
        lines.append(f"AREAS NEEDING ATTENTION: {', '.join(medium)}")
    lines += [
        "",
        "Reply ONLY with valid JSON in this format:",
        '{"executiveSummary": "2-3 paragraphs", '
        '"riskAnalysis": [{"category": "category_key", "categoryName": "Category name", "score": 2.5, '
        '"riskLevel": "high|medium|low", "analysis": "Detailed analysis", "recommendations": ["..."]}], '
        '"overallRecommendations": ["..."], '
        '"actionPriorities": [{"priority": "high|medium|low", "action": "...", "timeline": "...", '
        '"responsible": "..."}], '
        '"conclusion": "..."}',
    ]
    return "\n".join(lines)


def build_action_plan_prompt(ctx: NarrativeContext, high_risk: list[dict[str, Any]]) -> str:
    lines = [
        "Build a practical action plan to mitigate the psychosocial risks below.",
        "",
        "CONTEXT:",
        f"- Organization: {ctx.organization_name}",
        f"- Assessment: {ctx.assessment_title}",
        f"- Employees: {ctx.expected_participants or 'not informed'}",
        "",
        "HIGH RISK AREAS:",
    ]
    for item in high_risk:
        lines.append(f"- {ctx.labels.label(item['category'])}: score {item['score']:.2f}")
    lines += [
        "",
        "Suggest specific, practical and measurable actions for each area.",
        "Reply ONLY with valid JSON in this format:",
        '{"actions": [{"priority": "high|medium|low", "category": "Category name", "title": "Short title", '
        '"description": "What to do", "timeline": "e.g. 2-4 weeks", "responsible": "e.g. HR, Managers", '
        '"expectedImpact": "Expected impact"}]}',
        "Generate between 3 and 8 actions, prioritising high impact.",
    ]
    return "\n".join(lines)


# --- provider chain ------------------------------------------------------------


def run_provider_chain(
    run: NarrativeRun,
    providers: list[TextProvider],
    prompt: str,
    validator: Callable[[str], Any],
    *,
    system: str = "",
    cancel_event: threading.Event | None = None,
) -> tuple[Any, str] | None:
    """Try each provider exactly once, in order. Returns (payload, provider name) or None."""
    for provider in providers:
        name = str(getattr(provider, "name", provider.__class__.__name__))
        model = str(getattr(provider, "model", "") or "")
        if cancel_event is not None and cancel_event.is_set():
            run.attempts.append(AttemptRecord(name, model, "cancelled"))
            logger.info("%s generation cancelled before %s", run.kind, name)
            return None

        run.enter(NarrativeState.GENERATING)
        t0 = time.monotonic()
        try:
            result = provider.generate(prompt, system=system)
        except Exception as exc:
            elapsed = int((time.monotonic() - t0) * 1000)
            logger.exception("%s provider %s raised during generation", run.kind, name)
            detail = f"exception: {exc.__class__.__name__}: {exc}"[:300]
            run.attempts.append(AttemptRecord(name, model, PROVIDER_UNAVAILABLE, detail, elapsed))
            run.enter(NarrativeState.PROVIDER_FALLBACK)
            continue
        elapsed = int((time.monotonic() - t0) * 1000)
        if not result.ok:
            run.attempts.append(AttemptRecord(name, model, result.reason, result.detail, elapsed))
            run.enter(NarrativeState.PROVIDER_FALLBACK)
            continue

        run.enter(NarrativeState.VALIDATING)
        payload = validator(result.text)
        if payload is None:
            logger.warning("%s output from %s failed validation", run.kind, name)
            run.attempts.append(AttemptRecord(name, model, PARSE_FAILURE, "schema_mismatch", elapsed))
            run.enter(NarrativeState.PROVIDER_FALLBACK)
            continue

        run.attempts.append(AttemptRecord(name, model, "accepted", "", elapsed))
        run.enter(NarrativeState.ACCEPTED)
        return payload, name
    return None


def _failure(error: str, message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "error": error, "message": message, **extra}


def _context(assessment: Assessment, aggregate, settings: Settings) -> NarrativeContext:
    return NarrativeContext(
        organization_name=str(assessment.organization_name or ""),
        assessment_title=str(assessment.title or ""),
        total_participants=aggregate.total_participants,
        completion_rate=aggregate.completion_rate,
        category_scores=aggregate.category_scores,
        expected_participants=int(assessment.expected_participants or 0),
        labels=get_label_set(settings.category_label_set),
    )


def _persist(db: Session, run: NarrativeRun, *, title: str, payload: Any, source: str) -> dict[str, Any]:
    try:
        row = save_artifact(
            db,
            assessment_id=run.assessment_id,
            kind=run.kind,
            title=title,
            payload=payload,
            source=source,
            decision_log=run.decision_log(),
            generation_time_ms=run.elapsed_ms(),
        )
    except PersistenceError:
        return _failure(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)
    run.enter(NarrativeState.PERSISTED)
    logger.info(
        "Stored %s #%s for assessment %s (source=%s, %sms)",
        run.kind,
        row.id,
        run.assessment_id,
        source,
        row.generation_time_ms,
    )
    return {
        "success": True,
        "artifactId": int(row.id),
        "source": source,
        "decisionLog": run.decision_log(),
        "generationTimeMs": int(row.generation_time_ms or 0),
    }


def generate_report(
    db: Session,
    assessment_id: int,
    *,
    providers: list[TextProvider] | None = None,
    settings: Settings | None = None,
    cancel_event: threading.Event | None = None,
) -> dict[str, Any]:
    cfg = settings or get_settings()
    run = NarrativeRun(kind="report", assessment_id=assessment_id)
    run.enter(NarrativeState.CHECKING_PRECONDITIONS)

    try:
        assessment = load_assessment(db, assessment_id)
        if assessment is None:
            return _failure(NOT_FOUND, "Assessment not found")
        aggregate = aggregate_assessment(db, assessment, settings=cfg)
    except PersistenceError:
        return _failure(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)

    closure = check_assessment_closed(assessment, aggregate.total_participants)
    if not closure.is_closed:
        run.enter(NarrativeState.INSUFFICIENT_DATA)
        return _failure(INSUFFICIENT_DATA, f"Assessment is not closed yet. {closure.message}", closure=closure.to_dict())
    if aggregate.total_participants < cfg.min_report_participants:
        run.enter(NarrativeState.INSUFFICIENT_DATA)
        return _failure(
            INSUFFICIENT_DATA,
            f"At least {cfg.min_report_participants} participants are required to generate a report.",
        )

    ctx = _context(assessment, aggregate, cfg)
    chain = build_providers(cfg) if providers is None else list(providers)
    outcome = run_provider_chain(
        run,
        chain,
        build_report_prompt(ctx),
        validate_report,
        system=REPORT_SYSTEM_PROMPT,
        cancel_event=cancel_event,
    )
    if outcome is None:
        run.enter(NarrativeState.TEMPLATE_FALLBACK)
        logger.info("Using template report for assessment %s", assessment_id)
        report, source = template_report(ctx), TEMPLATE_SOURCE
        run.attempts.append(AttemptRecord(TEMPLATE_SOURCE, "", "accepted"))
    else:
        report, source = outcome

    report = {"generatedAt": datetime.utcnow().isoformat(), **report}
    result = _persist(db, run, title=f"Executive report - {assessment.title}", payload=report, source=source)
    if result["success"]:
        result["report"] = report
    return result


def _normalize_high_risk(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        key = resolve_category_key(str(item.get("category", "")))
        if not key:
            continue
        try:
            score = float(item.get("score", 0.0))
        except (TypeError, ValueError):
            score = 0.0
        out.append({"category": key, "score": score})
    return out


def generate_action_plan(
    db: Session,
    assessment_id: int,
    high_risk_categories: list[dict[str, Any]],
    *,
    providers: list[TextProvider] | None = None,
    settings: Settings | None = None,
    cancel_event: threading.Event | None = None,
) -> dict[str, Any]:
    cfg = settings or get_settings()
    run = NarrativeRun(kind="action_plan", assessment_id=assessment_id)
    run.enter(NarrativeState.CHECKING_PRECONDITIONS)

    try:
        assessment = load_assessment(db, assessment_id)
        if assessment is None:
            return _failure(NOT_FOUND, "Assessment not found")
        aggregate = aggregate_assessment(db, assessment, settings=cfg)
    except PersistenceError:
        return _failure(PERSISTENCE_FAILURE, GENERIC_FAILURE_MESSAGE)

    if aggregate.total_participants < cfg.min_report_participants:
        run.enter(NarrativeState.INSUFFICIENT_DATA)
        return _failure(
            INSUFFICIENT_DATA,
            f"At least {cfg.min_report_participants} participants are required to generate an action plan.",
        )

    ctx = _context(assessment, aggregate, cfg)
    high_risk = _normalize_high_risk(high_risk_categories)
    chain = build_providers(cfg) if providers is None else list(providers)
    outcome = run_provider_chain(
        run,
        chain,
        build_action_plan_prompt(ctx, high_risk),
        validate_action_plan,
        system=REPORT_SYSTEM_PROMPT,
        cancel_event=cancel_event,
    )
    if outcome is None:
        run.enter(NarrativeState.TEMPLATE_FALLBACK)
        logger.info("Using template action plan for assessment %s", assessment_id)
        actions, source = template_action_plan(high_risk, ctx.labels), TEMPLATE_SOURCE
        run.attempts.append(AttemptRecord(TEMPLATE_SOURCE, "", "accepted"))
    else:
        actions, source = outcome

    payload = {"generatedAt": datetime.utcnow().isoformat(), "highRiskCategories": high_risk, "actions": actions}
    result = _persist(db, run, title=f"Action plan - {assessment.title}", payload=payload, source=source)
    if result["success"]:
        result["actions"] = actions
    return result
