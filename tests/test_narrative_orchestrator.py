from __future__ import annotations

import json
import threading

from app.config import get_settings
from app.services.artifact_store import get_artifact_history
from app.services.llm_providers import ProviderResult
from app.services.narrative_orchestrator import generate_action_plan, generate_report, validate_report
from survey_insights.errors import (
    GENERIC_FAILURE_MESSAGE,
    INSUFFICIENT_DATA,
    NOT_FOUND,
    PARSE_FAILURE,
    PERSISTENCE_FAILURE,
    PROVIDER_UNAVAILABLE,
)


class FakeProvider:
    def __init__(self, name: str, result: ProviderResult) -> None:
        self.name = name
        self.model = f"{name}-model"
        self.result = result
        self.prompts: list[str] = []

    def generate(self, prompt: str, *, system: str = "") -> ProviderResult:
        self.prompts.append(prompt)
        return self.result


VALID_REPORT = {
    "executiveSummary": "Workload is the main concern.",
    "riskAnalysis": [
        {
            "category": "demands_and_pace",
            "categoryName": "Work Demands and Pace",
            "score": 2.0,
            "riskLevel": "high",
            "analysis": "Overload reported.",
            "recommendations": ["Rebalance tasks"],
        }
    ],
    "overallRecommendations": ["Survey again next quarter"],
    "actionPriorities": [
        {"priority": "high", "action": "Rebalance tasks", "timeline": "30 days", "responsible": "HR"}
    ],
    "conclusion": "Act on workload first.",
}


def _ok(payload: dict) -> ProviderResult:
    return ProviderResult.success("Sure, here is the report:\n" + json.dumps(payload) + "\nThanks!")


def test_without_providers_the_template_always_succeeds(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)

    result = generate_report(db, assessment.id, providers=[])

    assert result["success"] is True
    assert result["source"] == "template"
    report = result["report"]
    assert [r["category"] for r in report["riskAnalysis"]] == ["demands_and_pace", "leadership_recognition"]
    assert report["riskAnalysis"][0]["riskLevel"] == "high"
    assert report["actionPriorities"][0]["timeline"] == "30 days"
    assert len(report["overallRecommendations"]) == 4
    assert result["decisionLog"] == [
        {"provider": "template", "model": "", "outcome": "accepted", "detail": "", "elapsedMs": 0}
    ]


def test_insufficient_participants_never_calls_a_provider(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=2)
    provider = FakeProvider("first", _ok(VALID_REPORT))

    result = generate_report(db, assessment.id, providers=[provider])

    assert result["success"] is False
    assert result["error"] == INSUFFICIENT_DATA
    assert provider.prompts == []
    assert get_artifact_history(db, assessment.id) == []


def test_open_assessment_cannot_produce_a_report(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=5, status="open")
    provider = FakeProvider("first", _ok(VALID_REPORT))

    result = generate_report(db, assessment.id, providers=[provider])

    assert result["error"] == INSUFFICIENT_DATA
    assert result["closure"]["reason"] == "not_closed"
    assert provider.prompts == []


def test_all_expected_participants_closes_the_assessment(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=4, status="open", expected_participants=4)

    assert generate_report(db, assessment.id, providers=[])["success"] is True


def test_unknown_assessment_is_not_found(db) -> None:
    assert generate_report(db, 9999, providers=[])["error"] == NOT_FOUND


def test_falls_back_in_order_and_first_valid_output_wins(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)
    down = FakeProvider("down", ProviderResult.failure("status=503"))
    garbled = FakeProvider("garbled", ProviderResult.success('{"executiveSummary": "missing the rest"}'))
    good = FakeProvider("good", _ok(VALID_REPORT))
    never = FakeProvider("never", _ok(VALID_REPORT))

    result = generate_report(db, assessment.id, providers=[down, garbled, good, never])

    assert result["success"] is True
    assert result["source"] == "good"
    assert result["report"]["executiveSummary"] == VALID_REPORT["executiveSummary"]
    assert [e["outcome"] for e in result["decisionLog"]] == [PROVIDER_UNAVAILABLE, PARSE_FAILURE, "accepted"]
    assert len(down.prompts) == len(garbled.prompts) == len(good.prompts) == 1
    assert never.prompts == []


def test_all_providers_failing_ends_in_template(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)
    providers = [
        FakeProvider("a", ProviderResult.failure("request_error: timeout")),
        FakeProvider("b", ProviderResult.success("I cannot answer in JSON today.")),
    ]

    result = generate_report(db, assessment.id, providers=providers)

    assert result["success"] is True
    assert result["source"] == "template"
    assert [e["provider"] for e in result["decisionLog"]] == ["a", "b", "template"]


def test_prompt_carries_aggregates_only(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)
    provider = FakeProvider("first", _ok(VALID_REPORT))

    generate_report(db, assessment.id, providers=[provider])

    prompt = provider.prompts[0]
    assert "anon-" not in prompt
    assert "Participants: 3" in prompt
    assert "demands_and_pace" in prompt


def test_cancellation_stops_provider_attempts(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)
    provider = FakeProvider("first", _ok(VALID_REPORT))
    cancel = threading.Event()
    cancel.set()

    result = generate_report(db, assessment.id, providers=[provider], cancel_event=cancel)

    assert provider.prompts == []
    assert result["source"] == "template"
    assert result["decisionLog"][0]["outcome"] == "cancelled"


def test_regeneration_is_additive(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)

    first = generate_report(db, assessment.id, providers=[])
    second = generate_report(db, assessment.id, providers=[])

    history = get_artifact_history(db, assessment.id)
    assert [row.id for row in history] == [second["artifactId"], first["artifactId"]]
    assert all(row.status == "completed" for row in history)


def test_action_plan_template_resolves_display_labels(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3, status="open")
    high_risk = [{"category": "Work Demands and Pace", "score": 2.1}, {"category": "Âncoras", "score": 2.3}]

    result = generate_action_plan(db, assessment.id, high_risk, providers=[])

    assert result["success"] is True
    actions = result["actions"]
    assert [a["id"] for a in actions] == ["action-1", "action-2", "action-3", "action-4"]
    assert actions[0]["category"] == "Work Demands and Pace"
    assert actions[0]["timeline"] == "2-4 weeks"


def test_action_plan_without_known_categories_gets_monitoring_item(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)

    result = generate_action_plan(db, assessment.id, [{"category": "unknown", "score": 1.0}], providers=[])

    assert [a["title"] for a in result["actions"]] == ["Maintain continuous monitoring"]


def test_action_plan_from_provider_gets_generated_ids(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)
    payload = {
        "actions": [
            {
                "priority": "high",
                "category": "Work Demands and Pace",
                "title": "Hire two analysts",
                "description": "Relieve the backlog.",
                "timeline": "6 weeks",
                "responsible": "HR",
                "expectedImpact": "Less overtime",
            }
        ]
    }
    provider = FakeProvider("first", _ok(payload))

    result = generate_action_plan(db, assessment.id, [{"category": "demands_and_pace", "score": 2.0}], providers=[provider])

    assert result["source"] == "first"
    assert result["actions"][0]["id"] == "ai-1"


def test_action_plan_with_empty_action_list_is_rejected(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)
    provider = FakeProvider("first", ProviderResult.success('{"actions": []}'))

    result = generate_action_plan(db, assessment.id, [], providers=[provider])

    assert result["source"] == "template"
    assert result["decisionLog"][0]["outcome"] == PARSE_FAILURE


def test_action_plan_needs_three_participants(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=1)

    result = generate_action_plan(db, assessment.id, [], providers=[], settings=get_settings())

    assert result["error"] == INSUFFICIENT_DATA


def test_report_validation_rejects_wrong_types() -> None:
    bad = dict(VALID_REPORT, riskAnalysis=[dict(VALID_REPORT["riskAnalysis"][0], score="2.0")])

    assert validate_report(json.dumps(VALID_REPORT)) is not None
    assert validate_report(json.dumps(bad)) is None
    assert validate_report("[1, 2, 3]") is None


class RaisingProvider:
    name = "flaky"
    model = "flaky-model"

    def generate(self, prompt: str, *, system: str = "") -> ProviderResult:
        raise RuntimeError("connection pool exhausted")


def test_provider_that_raises_falls_through_to_the_next_one(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)
    backup = FakeProvider("backup", _ok(VALID_REPORT))

    result = generate_report(db, assessment.id, providers=[RaisingProvider(), backup])

    assert result["success"] is True
    assert result["source"] == "backup"
    first, second = result["decisionLog"]
    assert first["provider"] == "flaky"
    assert first["outcome"] == PROVIDER_UNAVAILABLE
    assert first["detail"].startswith("exception: RuntimeError")
    assert second["outcome"] == "accepted"
    assert len(backup.prompts) == 1


def test_provider_that_raises_still_ends_in_a_template_action_plan(db, seed_assessment) -> None:
    assessment = seed_assessment(participants=3)

    result = generate_action_plan(db, assessment.id, [{"category": "demands_and_pace", "score": 2.0}], providers=[RaisingProvider()])

    assert result["success"] is True
    assert result["source"] == "template"
    assert [a["outcome"] for a in result["decisionLog"]] == [PROVIDER_UNAVAILABLE, "accepted"]


def test_unreadable_response_table_is_a_persistence_failure(db, seed_assessment) -> None:
    import app.db as app_db
    from app.models import SurveyResponse

    assessment = seed_assessment(participants=3)
    assessment_id = assessment.id
    db.close()
    SurveyResponse.__table__.drop(bind=app_db.engine)
    provider = FakeProvider("first", _ok(VALID_REPORT))

    report = generate_report(db, assessment_id, providers=[provider])
    plan = generate_action_plan(db, assessment_id, [], providers=[provider])

    for result in (report, plan):
        assert result["success"] is False
        assert result["error"] == PERSISTENCE_FAILURE
        assert result["message"] == GENERIC_FAILURE_MESSAGE
    assert provider.prompts == []
