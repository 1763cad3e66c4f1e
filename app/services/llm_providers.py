import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from app.config import Settings
from survey_insights.errors import PROVIDER_UNAVAILABLE

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
OPENAI_CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


@dataclass(frozen=True)
class ProviderResult:
    ok: bool
    text: str = ""
    reason: str = ""
    detail: str = ""

    @classmethod
    def success(cls, text: str) -> "ProviderResult":
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, detail: str, *, reason: str = PROVIDER_UNAVAILABLE) -> "ProviderResult":
        return cls(ok=False, reason=reason, detail=detail[:300])


class TextProvider(Protocol):
    name: str
    model: str

    def generate(self, prompt: str, *, system: str = "") -> ProviderResult: ...


class HttpCompletionProvider(ABC):
    """One POST to a text-completion endpoint; no retries, bounded by ``timeout_seconds``.

    Subclasses supply the endpoint plus request and response shapes.
    """

    name = "http"
    endpoint = ""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        timeout_seconds: int = 30,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_tokens = max_tokens
        self.temperature = temperature

    @abstractmethod
    def _headers(self) -> dict[str, str]: ...

    @abstractmethod
    def _payload(self, prompt: str, system: str) -> dict[str, Any]: ...

    @abstractmethod
    def _extract_text(self, body: Any) -> str: ...

    def generate(self, prompt: str, *, system: str = "") -> ProviderResult:
        try:
            res = requests.post(
                self.endpoint,
                json=self._payload(prompt, system),
                headers=self._headers(),
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            logger.warning("%s request error: %s", self.name, exc)
            return ProviderResult.failure(f"request_error: {exc}")

        if res.status_code < 200 or res.status_code >= 300:
            logger.warning("%s request failed: status=%s body=%s", self.name, res.status_code, res.text[:400])
            return ProviderResult.failure(f"status={res.status_code}")

        try:
            text = self._extract_text(res.json())
        except (ValueError, AttributeError, IndexError, KeyError, TypeError) as exc:
            logger.warning("%s returned an unreadable body: %s", self.name, exc)
            return ProviderResult.failure("unreadable_body")

        text = str(text or "").strip()
        if not text:
            logger.warning("%s returned an empty completion", self.name)
            return ProviderResult.failure("empty_completion")
        return ProviderResult.success(text)


class AnthropicProvider(HttpCompletionProvider):
    name = "anthropic"
    endpoint = ANTHROPIC_MESSAGES_URL

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def _payload(self, prompt: str, system: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system
        return payload

    def _extract_text(self, body: Any) -> str:
        blocks = body.get("content") or []
        return "".join(str(b.get("text", "")) for b in blocks if isinstance(b, dict) and b.get("type", "text") == "text")


class OpenAIProvider(HttpCompletionProvider):
    name = "openai"
    endpoint = OPENAI_CHAT_COMPLETIONS_URL

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    def _payload(self, prompt: str, system: str) -> dict[str, Any]:
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": messages,
        }

    def _extract_text(self, body: Any) -> str:
        return body.get("choices", [{}])[0].get("message", {}).get("content", "")


_PROVIDER_REGISTRY: dict[str, tuple[type[HttpCompletionProvider], str, str]] = {
    "anthropic": (AnthropicProvider, "anthropic_api_key", "anthropic_model"),
    "openai": (OpenAIProvider, "openai_api_key", "openai_model"),
}


def build_providers(settings: Settings) -> list[TextProvider]:
    """Instantiate configured providers in priority order; missing keys are skipped."""
    providers: list[TextProvider] = []
    seen: set[str] = set()
    for name in settings.narrative_provider_order:
        entry = _PROVIDER_REGISTRY.get(name)
        if entry is None or name in seen:
            if entry is None:
                logger.warning("Unknown narrative provider %r in NARRATIVE_PROVIDER_ORDER", name)
            continue
        seen.add(name)
        cls, key_attr, model_attr = entry
        api_key = str(getattr(settings, key_attr, "") or "").strip()
        if not api_key:
            continue
        providers.append(
            cls(
                api_key,
                str(getattr(settings, model_attr, "") or "").strip(),
                timeout_seconds=settings.provider_timeout_seconds,
                max_tokens=settings.narrative_max_tokens,
                temperature=settings.narrative_temperature,
            )
        )
    return providers
