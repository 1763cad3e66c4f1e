from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ..core import DETAIL_ANONYMITY_FLOOR, aggregate_responses, guard_detail
from ..io import dump_result_file, load_survey_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="survey-insights",
        description="Aggregate anonymous survey responses into category scores, risk tiers and NPS.",
    )
    parser.add_argument("input", help="JSON file containing responses (and optionally questions)")
    parser.add_argument(
        "--out",
        default="examples/output/aggregate.json",
        help="Output JSON file path (default: examples/output/aggregate.json)",
    )
    parser.add_argument(
        "--kind",
        choices=["risk", "climate"],
        default="risk",
        help="Questionnaire kind; climate groups by theme (default: risk)",
    )
    parser.add_argument(
        "--total-questions",
        type=int,
        default=None,
        help="Number of questions in the questionnaire, for the completion rate",
    )
    parser.add_argument(
        "--detail-floor",
        type=int,
        default=DETAIL_ANONYMITY_FLOOR,
        help=f"Participants required before open-text detail is written (default: {DETAIL_ANONYMITY_FLOOR})",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    input_path = Path(args.input).resolve()
    output_path = Path(args.out).resolve()

    if not input_path.exists() or not input_path.is_file():
        print(f"error: input file not found: {input_path}", file=sys.stderr)
        return 2
    if args.detail_floor <= 0:
        print("error: --detail-floor must be positive", file=sys.stderr)
        return 2

    try:
        responses, questions = load_survey_file(input_path)
    except Exception as exc:
        print(f"error: invalid input: {exc}", file=sys.stderr)
        return 2

    result = aggregate_responses(
        responses,
        questions,
        questionnaire_kind=args.kind,
        total_questions=args.total_questions,
    )
    payload = result.to_dict()
    text_access = guard_detail(result.total_participants, args.detail_floor, payload.pop("textResponses"))
    payload["textResponses"] = text_access.to_dict()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    dump_result_file(output_path, payload)

    print(f"participants={result.total_participants}")
    print(f"categories={len(result.category_scores)}")
    print(f"wrote={output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
