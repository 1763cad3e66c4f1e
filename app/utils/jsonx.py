import json
from typing import Any


def to_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


def from_json(value: str, fallback: Any):
    try:
        return json.loads(value) if value else fallback
    except Exception:
        return fallback


def first_balanced_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring of ``text``.

    Braces inside JSON string literals are ignored. When the outermost brace is
    never closed the earliest-opening balanced object inside it is returned;
    None when no brace is ever closed. Single pass over the input.
    """
    value = str(text or "")
    start = value.find("{")
    if start == -1:
        return None
    opened: list[int] = []
    best: tuple[int, int] | None = None
    in_string = False
    escaped = False
    for idx in range(start, len(value)):
        ch = value[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            opened.append(idx)
        elif ch == "}" and opened:
            begin = opened.pop()
            if not opened:
                return value[begin : idx + 1]
            if best is None or begin < best[0]:
                best = (begin, idx)
    if best is None:
        return None
    return value[best[0] : best[1] + 1]


def parse_first_object(text: str) -> dict[str, Any] | None:
    blob = first_balanced_object(text)
    if blob is None:
        return None
    try:
        parsed = json.loads(blob)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None
