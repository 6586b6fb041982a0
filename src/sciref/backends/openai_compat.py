"""Chat completions against OpenAI or any OpenAI-compatible gateway."""

from __future__ import annotations

import logging

import openai

from sciref.config import get_openai_base_url, get_openai_key, get_timeout
from sciref.errors import ProviderError

logger = logging.getLogger(__name__)


class OpenAIBackend:
    """Single-turn text generation via the OpenAI client."""

    def __init__(self, api_key: str | None = None, base_url: str | None = None):
        self.api_key = api_key
        self.base_url = base_url

    async def generate(self, prompt: str, *, model: str) -> str:
        try:
            api_key = self.api_key or get_openai_key()
        except ValueError as e:
            raise ProviderError(str(e)) from e

        client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url or get_openai_base_url(),
            timeout=get_timeout(),
        )
        logger.info("OpenAI request (model=%s, %d prompt chars)", model, len(prompt))
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0,
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI request failed: {e}") from e

        if not response.choices:
            raise ProviderError(f"No response received from {model}")
        text = (response.choices[0].message.content or "").strip()
        if not text:
            raise ProviderError(f"No response received from {model}")
        return text
