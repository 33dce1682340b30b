from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from keyledger.services import prompt_refiner


class _Response:
    def __init__(self, body: Any, *, status_code: int = 200) -> None:
        self._body = body
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request("POST", "https://ai.example.local")
            raise httpx.HTTPStatusError(
                "upstream error",
                request=request,
                response=httpx.Response(self.status_code, request=request),
            )

    def json(self) -> Any:
        return self._body


class _Client:
    def __init__(self, calls: list[dict[str, Any]], outcome: _Response | Exception) -> None:
        self._calls = calls
        self._outcome = outcome

    async def __aenter__(self) -> "_Client":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        return None

    async def post(self, url: str, params: dict[str, str], json: dict[str, object]) -> _Response:
        self._calls.append({"url": url, "params": params, "json": json})
        if isinstance(self._outcome, Exception):
            raise self._outcome
        return self._outcome


def _settings(**overrides: object) -> SimpleNamespace:
    base = {
        "gemini_api_key": "test-key",
        "gemini_model": "gemini-test",
        "gemini_api_url": "https://ai.example.local/v1beta/",
        "refine_timeout_seconds": 3.0,
    }
    base.update(overrides)
    return SimpleNamespace(**base)


def _patch_http_client(
    monkeypatch: pytest.MonkeyPatch,
    calls: list[dict[str, Any]],
    outcome: _Response | Exception,
) -> None:
    def factory(timeout: float) -> _Client:
        assert timeout == 3.0
        return _Client(calls, outcome)

    monkeypatch.setattr(prompt_refiner.httpx, "AsyncClient", factory)


def _answer(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.mark.asyncio
async def test_refine_prompt_returns_model_text(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(prompt_refiner, "get_settings", lambda: _settings())
    _patch_http_client(monkeypatch, calls, _Response(_answer("  Refined prompt  ")))

    result = await prompt_refiner.refine_prompt("make a login system")

    assert result == prompt_refiner.RefinedPrompt(text="Refined prompt", refined=True)
    assert calls[0]["url"] == "https://ai.example.local/v1beta/models/gemini-test:generateContent"
    assert calls[0]["params"] == {"key": "test-key"}
    sent_text = calls[0]["json"]["contents"][0]["parts"][0]["text"]
    assert sent_text.endswith("make a login system")


@pytest.mark.asyncio
async def test_refine_prompt_falls_back_without_api_key(monkeypatch) -> None:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(prompt_refiner, "get_settings", lambda: _settings(gemini_api_key=""))
    _patch_http_client(monkeypatch, calls, _Response(_answer("unused")))

    result = await prompt_refiner.refine_prompt("base")

    assert result == prompt_refiner.RefinedPrompt(text="base", refined=False)
    assert calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcome",
    [
        httpx.ReadTimeout("timed out"),
        httpx.ConnectError("unreachable"),
        _Response({"error": "quota"}, status_code=429),
        _Response({"candidates": []}),
        _Response(_answer("   ")),
        _Response(["not", "an", "object"]),
    ],
)
async def test_refine_prompt_falls_back_on_failure(monkeypatch, outcome) -> None:
    monkeypatch.setattr(prompt_refiner, "get_settings", lambda: _settings())
    _patch_http_client(monkeypatch, [], outcome)

    result = await prompt_refiner.refine_prompt("base")

    assert result.text == "base"
    assert result.refined is False
