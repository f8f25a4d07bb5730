import json
import logging
import os
import re
from typing import Any, Optional, Protocol

import httpx
from fastapi import Request

logger = logging.getLogger("uvicorn.error")

AI_PROVIDER = os.getenv("AI_PROVIDER", "gemini").strip().lower()
AI_MODEL = os.getenv("AI_MODEL", "").strip()
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_CONNECT_TIMEOUT_SECONDS = float(os.getenv("LLM_CONNECT_TIMEOUT_SECONDS", "10"))

DEFAULT_MODELS = {
    "gemini": "gemini-1.5-flash",
    "openai": "gpt-4o-mini",
}
API_KEY_ENV = {
    "gemini": "GEMINI_API_KEY",
    "openai": "OPENAI_API_KEY",
}

PARSE_FAILURE_NOTE = "Response could not be parsed as JSON. Please check the format."
_CODE_FENCE = re.compile(r"```(?:json)?\n?")


def _http_timeout() -> httpx.Timeout:
    return httpx.Timeout(LLM_TIMEOUT_SECONDS, connect=LLM_CONNECT_TIMEOUT_SECONDS)


class LLMRequestError(RuntimeError):
    def __init__(self, provider: str, model: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text or "").strip()


def parse_model_reply(raw_text: str) -> dict[str, Any]:
    """Parse a model reply as a JSON object, or wrap the text in a fallback payload.

    Callers tell the two outcomes apart by the presence of ``rawResponse``.
    """
    text = strip_code_fences(raw_text)
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass
    return {"rawResponse": text, "note": PARSE_FAILURE_NOTE}


def _raise_for_status(response: httpx.Response, provider: str, model: str) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code if exc.response is not None else None
        detail = ""
        if exc.response is not None:
            detail = (exc.response.text or "").strip()[:220]
        raise LLMRequestError(
            provider=provider,
            model=model,
            status_code=status,
            message=f"{provider} request failed (status={status}): {detail or 'no response body'}",
        ) from exc


def _gemini_request(model: str, api_key: str, prompt: str) -> str:
    url = f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    response = httpx.post(
        url,
        params={"key": api_key},
        headers={"Content-Type": "application/json"},
        json={"contents": [{"parts": [{"text": prompt}]}]},
        timeout=_http_timeout(),
    )
    _raise_for_status(response, "gemini", model)
    data = response.json()
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError) as exc:
        raise LLMRequestError(provider="gemini", model=model, message="Gemini returned no candidates") from exc
    return "".join(str(part.get("text", "")) for part in parts)


def _openai_request(model: str, api_key: str, prompt: str) -> str:
    response = httpx.post(
        "https://api.openai.com/v1/chat/completions",
        headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
        json={"model": model, "messages": [{"role": "user", "content": prompt}]},
        timeout=_http_timeout(),
    )
    _raise_for_status(response, "openai", model)
    data = response.json()
    try:
        return str(data["choices"][0]["message"].get("content") or "")
    except (KeyError, IndexError, TypeError) as exc:
        raise LLMRequestError(provider="openai", model=model, message="OpenAI returned no choices") from exc


class TextGenerator(Protocol):
    def generate_text(self, prompt: str) -> str:
        ...


class HostedTextGenerator:
    """Single round trip to a hosted model; no retries."""

    def __init__(self, provider: str, model: str, api_key: str) -> None:
        if provider not in API_KEY_ENV:
            raise ValueError(f"Unsupported AI provider: {provider}")
        self.provider = provider
        self.model = model
        self._api_key = api_key

    def generate_text(self, prompt: str) -> str:
        try:
            if self.provider == "gemini":
                return _gemini_request(self.model, self._api_key, prompt)
            return _openai_request(self.model, self._api_key, prompt)
        except httpx.TimeoutException as exc:
            raise LLMRequestError(
                provider=self.provider,
                model=self.model,
                message=f"{self.provider} request timed out while waiting for response.",
            ) from exc
        except httpx.HTTPError as exc:
            raise LLMRequestError(
                provider=self.provider,
                model=self.model,
                message=f"{self.provider} request failed: {str(exc)[:220]}",
            ) from exc


def build_text_generator(
    provider: Optional[str] = None, model: Optional[str] = None, api_key: Optional[str] = None
) -> Optional[TextGenerator]:
    """Build the process-wide generator from the environment; None when no credential is set."""
    provider = (provider or AI_PROVIDER).strip().lower()
    if provider not in API_KEY_ENV:
        logger.warning("ai_provider_unsupported provider=%s", provider)
        return None
    key = api_key if api_key is not None else os.getenv(API_KEY_ENV[provider], "")
    if not key.strip():
        logger.warning("ai_not_configured provider=%s missing=%s", provider, API_KEY_ENV[provider])
        return None
    return HostedTextGenerator(provider, model or AI_MODEL or DEFAULT_MODELS[provider], key.strip())


def get_text_generator(request: Request) -> Optional[TextGenerator]:
    return getattr(request.app.state, "text_generator", None)
