"""Gemini generateContent wrapper with Google Search grounding."""

from __future__ import annotations

import logging

import httpx
from tenacity import retry, retry_if_result, stop_after_attempt, wait_exponential

from sciref.config import get_gemini_key, get_timeout
from sciref.errors import ProviderError

logger = logging.getLogger(__name__)

GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta"
MAX_OUTPUT_TOKENS = 8192
RETRY_STATUSES = {429, 503}


@retry(
    retry=retry_if_result(lambda r: r.status_code in RETRY_STATUSES),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry_error_callback=lambda state: state.outcome.result(),
)
async def _post(url: str, **kwargs) -> httpx.Response:
    async with httpx.AsyncClient() as client:
        return await client.post(url, **kwargs)


def _response_text(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict))


class GeminiBackend:
    """Single-turn text generation against the Gemini REST API."""

    def __init__(self, api_key: str | None = None, *, grounded: bool = True):
        self.api_key = api_key
        self.grounded = grounded

    async def generate(self, prompt: str, *, model: str) -> str:
        try:
            api_key = self.api_key or get_gemini_key()
        except ValueError as e:
            raise ProviderError(str(e)) from e

        payload: dict = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": MAX_OUTPUT_TOKENS},
        }
        if self.grounded:
            payload["tools"] = [{"google_search": {}}]

        logger.info("Gemini request (model=%s, %d prompt chars)", model, len(prompt))
        try:
            resp = await _post(
                f"{GEMINI_BASE}/models/{model}:generateContent",
                json=payload,
                headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
                timeout=get_timeout(),
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Gemini API error {e.response.status_code}: {e.response.text[:300]}"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        text = _response_text(data)
        if not text:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            if reason:
                raise ProviderError(f"Gemini blocked the request: {reason}")
            raise ProviderError("No response received from Gemini")
        return text
