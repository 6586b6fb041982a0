"""Tests for sciref.provider with scripted backends."""

import asyncio
import json

import pytest

from sciref.backends.gemini import GeminiBackend
from sciref.backends.openai_compat import OpenAIBackend
from sciref.errors import MalformedPayload, ProviderError
from sciref.models import SearchPreferences, SelectionContext
from sciref.provider import LLMReferenceProvider, backend_for_model


CONTEXT = SelectionContext(
    full_text="Perovskite solar cells degrade under humidity.",
    highlighted_text="Perovskite solar cells degrade",
)

CANDIDATES = [
    {
        "title": "Moisture Degradation of Perovskites",
        "authors": ["Lee", "etc."],
        "year": "2019",
        "publication": "Nature Energy",
        "url": "http://old",
        "summary": "Studies humidity.",
        "relevance": "Directly on topic.",
        "citationCount": 420,
    },
    {"title": "Invented Paper", "year": "2021", "citationCount": 3},
    {"title": "", "year": "2020"},
]


class ScriptedBackend:
    """Backend returning canned texts in call order."""

    def __init__(self, *texts):
        self.texts = list(texts)
        self.calls = []

    async def generate(self, prompt, *, model):
        self.calls.append((prompt, model))
        text = self.texts.pop(0)
        if isinstance(text, Exception):
            raise text
        return text


def _search(provider, prefs=None):
    return asyncio.run(provider.search(CONTEXT, prefs or SearchPreferences()))


class TestSearch:
    def test_without_verification(self):
        backend = ScriptedBackend("```json\n" + json.dumps(CANDIDATES) + "\n```")
        refs = _search(LLMReferenceProvider(backend=backend, verify=False))

        assert [r.title for r in refs] == ["Moisture Degradation of Perovskites", "Invented Paper"]
        assert refs[0].citation_count == 420
        assert len(backend.calls) == 1
        assert backend.calls[0][1] == SearchPreferences().model

    def test_verification_filters_and_merges(self):
        confirmed = [{"title": "Moisture Degradation of Perovskites", "url": "https://doi.org/10/x"}]
        backend = ScriptedBackend(json.dumps(CANDIDATES), json.dumps(confirmed))

        refs = _search(LLMReferenceProvider(backend=backend, verify_model="verifier"))

        assert len(refs) == 1
        assert refs[0].url == "https://doi.org/10/x"
        assert refs[0].summary == "Studies humidity."
        assert backend.calls[1][1] == "verifier"
        assert "Invented Paper" in backend.calls[1][0]

    def test_verification_failure_keeps_candidates(self):
        backend = ScriptedBackend(json.dumps(CANDIDATES), ProviderError("quota exceeded"))
        refs = _search(LLMReferenceProvider(backend=backend, verify_model="verifier"))
        assert len(refs) == 2

    def test_truncated_output_recovered(self):
        text = '[{"title": "Moisture Degradation of Perovskites", "year": "2019"}, {"title": "Invented Pa'
        backend = ScriptedBackend(text)
        refs = _search(LLMReferenceProvider(backend=backend, verify=False))
        assert [r.title for r in refs] == ["Moisture Degradation of Perovskites"]

    def test_unstructured_output(self):
        backend = ScriptedBackend("Sorry, I could not find any papers.")
        with pytest.raises(MalformedPayload, match="Failed to parse references"):
            _search(LLMReferenceProvider(backend=backend, verify=False))

    def test_blank_output(self):
        backend = ScriptedBackend("   ")
        with pytest.raises(ProviderError, match="No response received"):
            _search(LLMReferenceProvider(backend=backend, verify=False))

    def test_backend_error_propagates(self):
        backend = ScriptedBackend(ProviderError("API key is missing"))
        with pytest.raises(ProviderError, match="API key is missing"):
            _search(LLMReferenceProvider(backend=backend))

    def test_exclusions_reach_prompt(self):
        backend = ScriptedBackend("[]")
        prefs = SearchPreferences().with_exclusions(["Already Shown Paper"])
        _search(LLMReferenceProvider(backend=backend), prefs)
        assert "Already Shown Paper" in backend.calls[0][0]


class TestBackendForModel:
    def test_gemini(self):
        assert isinstance(backend_for_model("gemini-2.5-flash"), GeminiBackend)

    def test_other(self):
        assert isinstance(backend_for_model("gpt-4o-mini"), OpenAIBackend)
