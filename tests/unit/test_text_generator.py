import json

import httpx
import pytest

from healthhub.services.llm import (
    DEFAULT_MODELS,
    HostedTextGenerator,
    LLMRequestError,
    build_text_generator,
)


def _response(status_code: int, payload=None, text: str = "") -> httpx.Response:
    request = httpx.Request("POST", "https://llm.test/generate")
    if payload is not None:
        return httpx.Response(status_code, json=payload, request=request)
    return httpx.Response(status_code, text=text, request=request)


def test_build_without_credential_returns_none(monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert build_text_generator(provider="gemini") is None
    assert build_text_generator(provider="openai") is None


def test_build_with_blank_credential_returns_none(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "   ")
    assert build_text_generator(provider="gemini") is None


def test_build_unsupported_provider_returns_none(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "key-123")
    assert build_text_generator(provider="llama") is None


def test_build_reads_credential_and_default_model(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", " sk-test ")
    monkeypatch.setattr("healthhub.services.llm.AI_MODEL", "")
    generator = build_text_generator(provider="openai")
    assert isinstance(generator, HostedTextGenerator)
    assert generator.provider == "openai"
    assert generator.model == DEFAULT_MODELS["openai"]


def test_gemini_reply_text_is_joined(monkeypatch) -> None:
    calls = []

    def fake_post(url, **kwargs):
        calls.append((url, kwargs))
        reply = {"candidates": [{"content": {"parts": [{"text": '{"mealPlan": '}, {"text": "{}}"}]}}]}
        return _response(200, reply)

    monkeypatch.setattr(httpx, "post", fake_post)
    generator = HostedTextGenerator("gemini", "gemini-1.5-flash", "key-123")

    assert generator.generate_text("plan my meals") == '{"mealPlan": {}}'
    url, kwargs = calls[0]
    assert url.endswith("/models/gemini-1.5-flash:generateContent")
    assert kwargs["params"] == {"key": "key-123"}
    assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "plan my meals"


def test_openai_reply_content_is_returned(monkeypatch) -> None:
    calls = []

    def fake_post(url, **kwargs):
        calls.append(kwargs)
        return _response(200, {"choices": [{"message": {"content": json.dumps({"workoutPlan": {}})}}]})

    monkeypatch.setattr(httpx, "post", fake_post)
    generator = HostedTextGenerator("openai", "gpt-4o-mini", "sk-test")

    assert generator.generate_text("plan my workouts") == '{"workoutPlan": {}}'
    assert calls[0]["headers"]["Authorization"] == "Bearer sk-test"
    assert calls[0]["json"]["model"] == "gpt-4o-mini"


def test_http_error_status_maps_to_request_error(monkeypatch) -> None:
    monkeypatch.setattr(httpx, "post", lambda url, **kwargs: _response(500, text="upstream exploded"))
    generator = HostedTextGenerator("gemini", "gemini-1.5-flash", "key-123")

    with pytest.raises(LLMRequestError) as exc_info:
        generator.generate_text("hello")
    assert exc_info.value.provider == "gemini"
    assert exc_info.value.status_code == 500
    assert "upstream exploded" in str(exc_info.value)


def test_timeout_maps_to_request_error(monkeypatch) -> None:
    def slow_post(url, **kwargs):
        raise httpx.ReadTimeout("timed out")

    monkeypatch.setattr(httpx, "post", slow_post)
    generator = HostedTextGenerator("openai", "gpt-4o-mini", "sk-test")

    with pytest.raises(LLMRequestError) as exc_info:
        generator.generate_text("hello")
    assert exc_info.value.provider == "openai"
    assert exc_info.value.status_code is None
    assert "timed out" in str(exc_info.value)


def test_gemini_without_candidates_maps_to_request_error(monkeypatch) -> None:
    monkeypatch.setattr(httpx, "post", lambda url, **kwargs: _response(200, {"candidates": []}))
    generator = HostedTextGenerator("gemini", "gemini-1.5-flash", "key-123")

    with pytest.raises(LLMRequestError) as exc_info:
        generator.generate_text("hello")
    assert exc_info.value.provider == "gemini"
    assert exc_info.value.model == "gemini-1.5-flash"


def test_openai_without_choices_maps_to_request_error(monkeypatch) -> None:
    monkeypatch.setattr(httpx, "post", lambda url, **kwargs: _response(200, {"choices": []}))
    generator = HostedTextGenerator("openai", "gpt-4o-mini", "sk-test")

    with pytest.raises(LLMRequestError):
        generator.generate_text("hello")


def test_unsupported_provider_is_rejected() -> None:
    with pytest.raises(ValueError):
        HostedTextGenerator("llama", "llama-3", "key")
