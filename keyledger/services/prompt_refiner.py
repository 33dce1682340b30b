from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from keyledger.core.config import get_settings

logger = structlog.get_logger(__name__)

REFINE_INSTRUCTIONS = (
    "You are the Lead Systems Architect for the GTA:SAMP Pawn open-source community. "
    "You specialize in high-performance, low-level scripting optimizations.\n\n"
    "Transform the base prompt below into a detailed prompt that forces the AI to output "
    "professional-grade engineering. The refined prompt MUST cover: threaded database "
    "queries that do not lag the server; strict tags such as 'Float:' and 'bool:' plus "
    "custom enums for all variables; y_hooks callback hooks for modularity; parameterized "
    "SQL and range checks for every player input; compact enumerator layouts.\n\n"
    "Output ONLY the refined prompt text. Do not provide code yet.\n\n"
    "BASE PROMPT:\n"
)


@dataclass(frozen=True, slots=True)
class RefinedPrompt:
    text: str
    refined: bool


def _extract_text(body: Any) -> str:
    candidates = body.get("candidates") if isinstance(body, dict) else None
    if not isinstance(candidates, list) or not candidates:
        return ""
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    return "".join(texts).strip()


async def refine_prompt(base_prompt: str) -> RefinedPrompt:
    """Asks the text-generation API to expand `base_prompt`.

    Any failure (no API key, timeout, HTTP error, empty answer) returns the
    original prompt unchanged with `refined=False`.
    """
    fallback = RefinedPrompt(text=base_prompt, refined=False)
    settings = get_settings()
    api_key = (settings.gemini_api_key or "").strip()
    if not api_key or not base_prompt.strip():
        return fallback

    url = f"{settings.gemini_api_url.rstrip('/')}/models/{settings.gemini_model}:generateContent"
    body = {"contents": [{"parts": [{"text": f"{REFINE_INSTRUCTIONS}{base_prompt}"}]}]}
    try:
        async with httpx.AsyncClient(timeout=settings.refine_timeout_seconds) as client:
            response = await client.post(url, params={"key": api_key}, json=body)
            response.raise_for_status()
            text = _extract_text(response.json())
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("prompt_refine_failed", error_type=type(exc).__name__)
        return fallback

    if not text:
        logger.warning("prompt_refine_empty_response")
        return fallback
    return RefinedPrompt(text=text, refined=True)
