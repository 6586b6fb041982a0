"""Reference provider: prompt an LLM, recover its JSON, verify the result."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from sciref.backends.gemini import GeminiBackend
from sciref.backends.openai_compat import OpenAIBackend
from sciref.config import get_verify_model
from sciref.errors import MalformedPayload, ProviderError
from sciref.models import DisapprovalLog, Reference, SearchPreferences, SelectionContext
from sciref.parsing import parse_candidates
from sciref.prompts import build_search_prompt, build_verify_prompt
from sciref.verify import verify_references

logger = logging.getLogger(__name__)


class ReferenceProvider(Protocol):
    async def search(
        self,
        context: SelectionContext,
        prefs: SearchPreferences,
        history: Optional[DisapprovalLog] = None,
    ) -> list[Reference]:
        ...


class TextBackend(Protocol):
    async def generate(self, prompt: str, *, model: str) -> str:
        ...


def backend_for_model(model: str) -> TextBackend:
    if model.startswith("gemini"):
        return GeminiBackend()
    return OpenAIBackend()


class LLMReferenceProvider:
    """Find references with a search-grounded LLM, then confirm them.

    *backend* overrides model-based backend selection for both passes.
    """

    def __init__(
        self,
        *,
        backend: Optional[TextBackend] = None,
        verify: bool = True,
        verify_model: Optional[str] = None,
    ):
        self.backend = backend
        self.verify = verify
        self.verify_model = verify_model

    def _backend(self, model: str) -> TextBackend:
        return self.backend or backend_for_model(model)

    async def search(
        self,
        context: SelectionContext,
        prefs: SearchPreferences,
        history: Optional[DisapprovalLog] = None,
    ) -> list[Reference]:
        prompt = build_search_prompt(context, prefs, history)
        text = await self._backend(prefs.model).generate(prompt, model=prefs.model)
        if not text or not text.strip():
            raise ProviderError("No response received from the model")

        try:
            records = parse_candidates(text)
        except MalformedPayload as e:
            logger.error("Failed to parse model response: %s", text[:500])
            raise MalformedPayload(
                "Failed to parse references from AI response. "
                "The model might have returned unstructured text.",
                raw=e.raw,
            ) from e

        references = [Reference.from_dict(raw) for raw in records]
        references = [r for r in references if r.title]
        logger.info("Parsed %d candidate references", len(references))

        if not self.verify:
            return references
        return await verify_references(references, self._confirm)

    async def _confirm(self, references: list[Reference]) -> str:
        model = self.verify_model or get_verify_model()
        return await self._backend(model).generate(build_verify_prompt(references), model=model)
