from .response import (
    NUMERIC_QUESTION_TYPES,
    QUESTION_TYPES,
    NumericValue,
    Question,
    QuestionnaireKind,
    QuestionType,
    RawQuestion,
    RawResponse,
    Response,
    ResponseValue,
    TextValue,
    make_response,
    normalize_question_type,
    parse_response_value,
    to_question,
    to_response,
)

__all__ = [
    "NUMERIC_QUESTION_TYPES",
    "QUESTION_TYPES",
    "NumericValue",
    "Question",
    "QuestionnaireKind",
    "QuestionType",
    "RawQuestion",
    "RawResponse",
    "Response",
    "ResponseValue",
    "TextValue",
    "make_response",
    "normalize_question_type",
    "parse_response_value",
    "to_question",
    "to_response",
]
