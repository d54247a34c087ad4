from __future__ import annotations

from dataclasses import dataclass

import requests

from surrogateagent.errors import CompletionError, EmptyCompletionError

_DEFAULT_BASE_URLS = {
    "mistral": "https://api.mistral.ai/v1",
    "groq": "https://api.groq.com/openai/v1",
    "openai": "https://api.openai.com/v1",
    "openai_compatible": "https://api.openai.com/v1",
}


@dataclass(frozen=True)
class OpenAICompatibleConfig:
    provider: str
    model: str
    api_key: str
    timeout_seconds: int
    api_base_url: str | None = None


class OpenAICompatibleClient:
    def __init__(self, cfg: OpenAICompatibleConfig) -> None:
        provider = (cfg.provider or "").strip().lower()
        if provider not in _DEFAULT_BASE_URLS:
            raise ValueError(
                "provider must be one of: " + ", ".join(sorted(_DEFAULT_BASE_URLS))
            )

        api_key = (cfg.api_key or "").strip()
        if not api_key:
            raise RuntimeError("LLM API key is required.")

        self._provider = provider
        self._model = (cfg.model or "").strip()
        if not self._model:
            raise RuntimeError("LLM model is required.")

        self._api_key = api_key
        self._timeout_seconds = max(1, int(cfg.timeout_seconds))
        base = (cfg.api_base_url or "").strip() or _DEFAULT_BASE_URLS[provider]
        self._base_url = base.rstrip("/")

    @property
    def model(self) -> str:
        return self._model

    def complete(
        self,
        *,
        messages: list[dict[str, object]],
        temperature: float | None = None,
        max_tokens: int | None = None,
        model: str | None = None,
        timeout_seconds: int | None = None,
    ) -> str:
        payload: dict[str, object] = {
            "model": (model or "").strip() or self._model,
            "messages": messages,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        try:
            response = requests.post(
                f"{self._base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=max(1, timeout_seconds or self._timeout_seconds),
            )
        except requests.RequestException as exc:
            raise CompletionError(f"LLM request failed: {exc}") from exc

        if not response.ok:
            detail = response.text.strip()
            raise CompletionError(
                f"LLM completion failed ({response.status_code}): {detail[:400] or 'request failed'}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise CompletionError("LLM completion returned invalid JSON.") from exc
        if not isinstance(body, dict):
            raise CompletionError("LLM completion returned unexpected payload.")
        choices = body.get("choices")
        if not isinstance(choices, list) or not choices:
            raise CompletionError("LLM completion returned no choices.")
        row = choices[0]
        if not isinstance(row, dict):
            raise CompletionError("LLM completion returned malformed choice row.")
        message = row.get("message")
        if not isinstance(message, dict):
            raise CompletionError("LLM completion missing message payload.")
        content = message.get("content")
        if isinstance(content, list):
            content = "\n".join(
                str(part.get("text", "")).strip()
                for part in content
                if isinstance(part, dict) and str(part.get("text", "")).strip()
            )
        if isinstance(content, str) and content.strip():
            return content.strip()
        raise EmptyCompletionError("LLM completion missing content.")
