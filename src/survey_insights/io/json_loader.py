from __future__ import annotations

import json
from pathlib import Path

from ..models import Question, Response, to_question, to_response


def load_survey_file(path: Path) -> tuple[list[Response], list[Question]]:
    """Read responses (and optional questions) from a JSON file.

    Accepts either a bare list of response objects or an object with
    ``responses`` and ``questions`` keys.
    """
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, list):
        raw_responses, raw_questions = raw, []
    elif isinstance(raw, dict):
        raw_responses = raw.get("responses", [])
        raw_questions = raw.get("questions", []) or []
    else:
        raise ValueError("Input JSON must be a list of responses or an object with a 'responses' list.")
    if not isinstance(raw_responses, list) or not isinstance(raw_questions, list):
        raise ValueError("'responses' and 'questions' must be lists.")

    responses: list[Response] = []
    for item in raw_responses:
        if not isinstance(item, dict):
            raise ValueError("Each response must be an object.")
        responses.append(to_response(item))  # type: ignore[arg-type]

    questions: list[Question] = []
    for item in raw_questions:
        if not isinstance(item, dict):
            raise ValueError("Each question must be an object.")
        questions.append(to_question(item))  # type: ignore[arg-type]
    return responses, questions


def dump_result_file(path: Path, payload: dict[str, object]) -> None:
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
