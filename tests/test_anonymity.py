from __future__ import annotations

import pytest

from survey_insights.core import guard_detail


def test_below_floor_suppresses_detail() -> None:
    result = guard_detail(12, 50, ["secret answer"])

    assert result.suppressed is True
    assert result.remaining == 38
    assert result.percent_complete == 24.0
    assert result.detail is None
    payload = result.to_dict()
    assert "detail" not in payload
    assert payload["minimumRequired"] == 50


@pytest.mark.parametrize("count", [0, 1, 9])
def test_remaining_is_floor_minus_count(count: int) -> None:
    result = guard_detail(count, 10, {"rows": [1, 2]})

    assert result.suppressed
    assert result.remaining == 10 - count
    assert result.percent_complete <= 100


@pytest.mark.parametrize("count", [10, 11, 250])
def test_at_or_above_floor_passes_detail_unchanged(count: int) -> None:
    detail = {"rows": [1, 2]}
    result = guard_detail(count, 10, detail)

    assert result.suppressed is False
    assert result.detail is detail
    assert result.to_dict()["detail"] == detail


def test_floor_must_be_positive() -> None:
    with pytest.raises(ValueError):
        guard_detail(3, 0, [])
