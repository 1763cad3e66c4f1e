from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import pytest


ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
VENV_SITE_PACKAGES = ROOT_DIR / ".venv" / "Lib" / "site-packages"

for path in (ROOT_DIR, SRC_DIR, VENV_SITE_PACKAGES):
    value = str(path)
    if path.exists() and value not in sys.path:
        sys.path.insert(0, value)


@pytest.fixture()
def db(tmp_path):
    import app.db as app_db

    app_db.configure_database(f"sqlite:///{(tmp_path / 'survey.db').as_posix()}")
    app_db.init_schema()
    with app_db.SessionLocal() as session:
        yield session
    if app_db.engine is not None:
        app_db.engine.dispose()
    app_db.configure_database("sqlite:///:memory:")


@pytest.fixture()
def seed_assessment(db):
    """Factory: one numeric question per category, every participant giving the same answer."""
    from app.models import Assessment, Question, Questionnaire, SurveyResponse

    def _seed(
        *,
        participants: int = 3,
        category_values: dict[str, str] | None = None,
        status: str = "closed",
        expected_participants: int = 0,
        end_date: datetime | None = None,
        title: str = "Q1 assessment",
    ) -> Assessment:
        values = category_values or {"demands_and_pace": "2", "leadership_recognition": "4"}
        questionnaire = Questionnaire(title="Risk baseline", kind="risk")
        for idx, category in enumerate(values):
            questionnaire.questions.append(
                Question(text=f"{category} item", category=category, type="numeric-scale", order_index=idx)
            )
        db.add(questionnaire)
        db.flush()

        assessment = Assessment(
            organization_id="org-1",
            organization_name="ACME",
            title=title,
            questionnaire_id=questionnaire.id,
            status=status,
            expected_participants=expected_participants,
            end_date=end_date,
        )
        db.add(assessment)
        db.flush()
        for n in range(participants):
            for question in questionnaire.questions:
                db.add(
                    SurveyResponse(
                        assessment_id=assessment.id,
                        question_id=question.id,
                        anonymous_id=f"anon-{n}",
                        response_text=values[question.category],
                    )
                )
        db.commit()
        return assessment

    return _seed
