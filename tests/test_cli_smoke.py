from __future__ import annotations

import json
import os
from pathlib import Path
from uuid import uuid4

from fastapi.testclient import TestClient

from survey_insights.cli.main import main


LOCAL_TMP_ROOT = Path(__file__).resolve().parent / ".tmp_local"


def _make_local_tmp(prefix: str) -> Path:
    LOCAL_TMP_ROOT.mkdir(parents=True, exist_ok=True)
    path = LOCAL_TMP_ROOT / f"{prefix}_{uuid4().hex[:8]}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _client(prefix: str) -> TestClient:
    tmp = _make_local_tmp(prefix)
    os.environ["DATABASE_URL"] = f"sqlite:///{(tmp / 'api.db').as_posix()}"
    os.environ["RUNTIME_DIR"] = str(tmp)
    os.environ["NARRATIVE_PROVIDER_ORDER"] = ""

    from app.main import create_app

    return TestClient(create_app())


def test_survey_insights_cli_smoke() -> None:
    tmp = _make_local_tmp("survey_cli")
    input_path = tmp / "input.json"
    output_path = tmp / "result.json"

    input_payload = {
        "questions": [
            {"id": "q1", "category": "demands_and_pace", "type": "likert_scale"},
            {"id": "q2", "category": "suggestions", "type": "text", "order_index": 1},
        ],
        "responses": [
            {"anonymous_id": "a1", "question_id": "q1", "raw_value": "2"},
            {"anonymous_id": "a2", "question_id": "q1", "value": 3},
            {"anonymous_id": "a2", "question_id": "q2", "raw_value": "More people on shift"},
        ],
    }
    input_path.write_text(json.dumps(input_payload), encoding="utf-8")

    code = main([str(input_path), "--out", str(output_path)])

    assert code == 0
    result = json.loads(output_path.read_text(encoding="utf-8"))
    assert result["totalParticipants"] == 2
    assert result["categoryScores"][0]["riskLevel"] == "medium"
    assert result["textResponses"]["suppressed"] is True
    assert "detail" not in result["textResponses"]


def test_cli_rejects_missing_input() -> None:
    tmp = _make_local_tmp("survey_cli_missing")

    assert main([str(tmp / "nope.json"), "--out", str(tmp / "out.json")]) == 2


def test_app_health_smoke() -> None:
    client = _client("health")

    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert client.get("/api/health").json()["status"] == "ok"


def test_api_submit_aggregate_and_report_flow() -> None:
    client = _client("api_flow")

    from app.db import SessionLocal
    from app.models import Assessment, Question, Questionnaire

    with SessionLocal() as db:
        questionnaire = Questionnaire(title="Baseline", kind="risk")
        questionnaire.questions.append(Question(text="Pace is fine", category="demands_and_pace", order_index=0))
        db.add(questionnaire)
        db.flush()
        assessment = Assessment(
            organization_name="ACME",
            title="API run",
            questionnaire_id=questionnaire.id,
            status="open",
            expected_participants=3,
        )
        db.add(assessment)
        db.commit()
        assessment_id = assessment.id
        question_id = questionnaire.questions[0].id

    assert client.get("/api/assessments/424242/analytics").status_code == 404

    for n, value in enumerate(["2", "2", "3"]):
        res = client.post(
            f"/api/assessments/{assessment_id}/responses",
            json={"anonymous_id": f"p{n}", "answers": {str(question_id): value}},
        )
        assert res.status_code == 200
        assert res.json() == {"success": True, "stored": 1}

    analytics = client.get(f"/api/assessments/{assessment_id}/analytics").json()
    assert analytics["totalParticipants"] == 3
    assert analytics["categoryScores"][0]["riskLevel"] == "high"

    detail = client.get(f"/api/assessments/{assessment_id}/detail").json()
    assert detail["suppressed"] is True

    assert client.get(f"/api/assessments/{assessment_id}/closure").json()["reason"] == "all_responses"

    report = client.post(f"/api/assessments/{assessment_id}/reports")
    assert report.status_code == 200
    assert report.json()["source"] == "template"

    plan = client.post(
        f"/api/assessments/{assessment_id}/action-plans",
        json={"highRiskCategories": [{"category": "demands_and_pace", "score": 2.33}]},
    )
    assert plan.status_code == 200
    assert len(plan.json()["actions"]) == 2

    history = client.get(f"/api/assessments/{assessment_id}/artifacts").json()["items"]
    assert [item["kind"] for item in history] == ["action_plan", "report"]
    artifact = client.get(f"/api/artifacts/{history[1]['id']}").json()
    assert artifact["payload"]["riskAnalysis"][0]["category"] == "demands_and_pace"
    assert client.get("/api/artifacts/999999").status_code == 404


def test_api_report_for_too_few_participants_is_422() -> None:
    client = _client("api_insufficient")

    from app.db import SessionLocal
    from app.models import Assessment, Questionnaire

    with SessionLocal() as db:
        questionnaire = Questionnaire(title="Empty", kind="climate")
        db.add(questionnaire)
        db.flush()
        assessment = Assessment(organization_name="ACME", title="Empty run", questionnaire_id=questionnaire.id, status="closed")
        db.add(assessment)
        db.commit()
        assessment_id = assessment.id

    res = client.post(f"/api/assessments/{assessment_id}/reports")
    assert res.status_code == 422
    assert res.json()["error"] == "INSUFFICIENT_DATA"


def _seed_closed_assessment(participants: int) -> int:
    from app.db import SessionLocal
    from app.models import Assessment, Question, Questionnaire, SurveyResponse

    with SessionLocal() as db:
        questionnaire = Questionnaire(title="Baseline", kind="risk")
        questionnaire.questions.append(Question(text="Pace is fine", category="demands_and_pace", order_index=0))
        db.add(questionnaire)
        db.flush()
        assessment = Assessment(organization_name="ACME", title="Export run", questionnaire_id=questionnaire.id, status="closed")
        db.add(assessment)
        db.flush()
        for n in range(participants):
            db.add(
                SurveyResponse(
                    assessment_id=assessment.id,
                    question_id=questionnaire.questions[0].id,
                    anonymous_id=f"p{n}",
                    response_text="4",
                )
            )
        db.commit()
        return assessment.id


def test_api_export_csv_respects_anonymity_floors() -> None:
    client = _client("api_export")
    small = _seed_closed_assessment(participants=3)
    large = _seed_closed_assessment(participants=6)

    blocked = client.get(f"/api/assessments/{small}/export", params={"format": "csv"})
    assert blocked.status_code == 403
    assert blocked.json()["error"] == "ANONYMITY_PROTECTED"
    assert blocked.json()["guard"]["remaining"] == 2

    summary = client.get(f"/api/assessments/{large}/export", params={"format": "csv", "section": "summary"})
    assert summary.status_code == 200
    assert summary.headers["content-type"].startswith("text/csv")
    assert f"assessment_{large}_summary.csv" in summary.headers["content-disposition"]
    assert "Work Demands and Pace" in summary.text

    responses = client.get(f"/api/assessments/{large}/export", params={"section": "responses"})
    assert responses.status_code == 403
    assert responses.json()["guard"]["minimumRequired"] == 10

    assert client.get(f"/api/assessments/{large}/export", params={"format": "xlsx"}).status_code == 400
    assert client.get(f"/api/assessments/{large}/export", params={"section": "raw"}).status_code == 400
    assert client.get("/api/assessments/424242/export").status_code == 404


def test_api_storage_read_failure_is_a_generic_500() -> None:
    client = _client("api_read_failure")
    assessment_id = _seed_closed_assessment(participants=3)

    import app.db as app_db
    from app.models import SurveyResponse

    SurveyResponse.__table__.drop(bind=app_db.engine)

    for path in ("analytics", "detail", "closure", "export"):
        res = client.get(f"/api/assessments/{assessment_id}/{path}")
        assert res.status_code == 500
        assert res.json()["error"] == "PERSISTENCE_FAILURE"
        assert res.json()["message"] == "Could not complete the request. Please try again later."

    report = client.post(f"/api/assessments/{assessment_id}/reports")
    assert report.status_code == 500
    assert report.json()["error"] == "PERSISTENCE_FAILURE"
