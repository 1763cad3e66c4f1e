import random
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
for path in (ROOT_DIR, ROOT_DIR / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from app.db import SessionLocal, init_schema  # noqa: E402
from app.models import Assessment, Question, Questionnaire, SurveyResponse  # noqa: E402

DEMO_QUESTIONS = [
    ("My workload is manageable within normal hours.", "demands_and_pace", "numeric-scale"),
    ("I can keep a sustainable pace at work.", "demands_and_pace", "numeric-scale"),
    ("I know what is expected of me.", "autonomy_clarity_change", "numeric-scale"),
    ("My manager recognizes good work.", "leadership_recognition", "numeric-scale"),
    ("I feel safe reporting disrespectful behaviour.", "violence_harassment", "numeric-scale"),
    ("How likely are you to recommend this workplace?", "anchors", "nps-0-10"),
    ("What would you change first?", "suggestions", "open-text"),
]

DEMO_SUGGESTIONS = ["More people on the night shift", "Clearer priorities", "Fewer meetings", ""]


def main() -> None:
    init_schema()
    rng = random.Random(42)
    with SessionLocal() as db:
        questionnaire = Questionnaire(title="Psychosocial risk baseline", kind="risk")
        for idx, (text, category, qtype) in enumerate(DEMO_QUESTIONS):
            questionnaire.questions.append(
                Question(
                    text=text,
                    category=category,
                    type=qtype,
                    scale_max=10 if qtype == "nps-0-10" else 5,
                    order_index=idx,
                )
            )
        db.add(questionnaire)
        db.flush()

        assessment = Assessment(
            organization_id="demo-org",
            organization_name="Demo Logistics",
            title="Q1 psychosocial assessment",
            questionnaire_id=questionnaire.id,
            status="closed",
            expected_participants=15,
        )
        db.add(assessment)
        db.flush()

        for n in range(12):
            anon = f"demo-{n:03d}"
            for question in questionnaire.questions:
                if question.type == "open-text":
                    value = rng.choice(DEMO_SUGGESTIONS)
                elif question.type == "nps-0-10":
                    value = str(rng.randint(3, 10))
                elif question.category == "demands_and_pace":
                    value = str(rng.randint(1, 3))
                else:
                    value = str(rng.randint(2, 5))
                if value:
                    db.add(
                        SurveyResponse(
                            assessment_id=assessment.id,
                            question_id=question.id,
                            anonymous_id=anon,
                            response_text=value,
                        )
                    )
        db.commit()
        print(f"Seeded: #{assessment.id} - {assessment.organization_name} / {assessment.title}")


if __name__ == "__main__":
    main()
