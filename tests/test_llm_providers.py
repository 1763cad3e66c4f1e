from __future__ import annotations

import json

import pytest
import requests

from app.config import Settings
from app.services import llm_providers
from app.services.llm_providers import AnthropicProvider, OpenAIProvider, build_providers
from survey_insights.errors import PROVIDER_UNAVAILABLE


class _FakeResponse:
    def __init__(self, status_code: int, body) -> None:
        self.status_code = status_code
        self._body = body

    @property
    def text(self) -> str:
        return self._body if isinstance(self._body, str) else json.dumps(self._body)

    def json(self):
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body


def _capture_post(monkeypatch, response=None, exc: Exception | None = None) -> list[dict]:
    calls: list[dict] = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if exc is not None:
            raise exc
        return response

    monkeypatch.setattr(llm_providers.requests, "post", fake_post)
    return calls


def test_anthropic_success_reads_content_text(monkeypatch) -> None:
    calls = _capture_post(monkeypatch, _FakeResponse(200, {"content": [{"type": "text", "text": '{"ok": true}'}]}))
    provider = AnthropicProvider("key-a", "claude-3-haiku-20240307", timeout_seconds=7)

    result = provider.generate("prompt", system="be brief")

    assert result.ok and result.text == '{"ok": true}'
    sent = calls[0]
    assert sent["url"] == llm_providers.ANTHROPIC_MESSAGES_URL
    assert sent["headers"]["x-api-key"] == "key-a"
    assert sent["headers"]["anthropic-version"] == "2023-06-01"
    assert sent["timeout"] == 7
    assert sent["json"]["system"] == "be brief"
    assert sent["json"]["messages"] == [{"role": "user", "content": "prompt"}]


def test_openai_success_reads_first_choice(monkeypatch) -> None:
    body = {"choices": [{"message": {"content": "hello"}}]}
    calls = _capture_post(monkeypatch, _FakeResponse(200, body))

    result = OpenAIProvider("key-o", "gpt-4.1-mini").generate("prompt")

    assert result.ok and result.text == "hello"
    assert calls[0]["headers"]["Authorization"] == "Bearer key-o"
    assert calls[0]["json"]["model"] == "gpt-4.1-mini"


@pytest.mark.parametrize(
    "response",
    [
        _FakeResponse(500, "upstream exploded"),
        _FakeResponse(429, {"error": "rate limited"}),
        _FakeResponse(200, "not json at all"),
        _FakeResponse(200, {"choices": []}),
        _FakeResponse(200, {"choices": [{"message": {"content": "   "}}]}),
    ],
)
def test_openai_failures_are_provider_unavailable(monkeypatch, response) -> None:
    _capture_post(monkeypatch, response)

    result = OpenAIProvider("key-o", "gpt-4.1-mini").generate("prompt")

    assert not result.ok
    assert result.reason == PROVIDER_UNAVAILABLE


def test_timeout_is_absorbed(monkeypatch) -> None:
    _capture_post(monkeypatch, exc=requests.Timeout("read timed out"))

    result = AnthropicProvider("key-a", "model").generate("prompt")

    assert not result.ok
    assert result.detail.startswith("request_error")


def test_build_providers_follows_order_and_skips_missing_keys(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("RUNTIME_DIR", str(tmp_path))
    monkeypatch.setenv("NARRATIVE_PROVIDER_ORDER", "openai, anthropic, mystery")
    monkeypatch.setenv("OPENAI_API_KEY", "key-o")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")

    providers = build_providers(Settings())

    assert [p.name for p in providers] == ["openai"]

    monkeypatch.setenv("ANTHROPIC_API_KEY", "key-a")
    assert [p.name for p in build_providers(Settings())] == ["openai", "anthropic"]

    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    assert build_providers(Settings()) == []


def test_http_provider_base_requires_request_shape() -> None:
    with pytest.raises(TypeError):
        llm_providers.HttpCompletionProvider("key", "model")

    class HeadersOnly(llm_providers.HttpCompletionProvider):
        def _headers(self) -> dict[str, str]:
            return {}

    with pytest.raises(TypeError):
        HeadersOnly("key", "model")
