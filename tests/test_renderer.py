"""Tests for sciref renderer output formatting."""

from io import StringIO

from rich.console import Console

from sciref.models import (
    PUBLISHER_OPTIONS,
    SOURCE_TYPE_OPTIONS,
    Reference,
    SearchPreferences,
    SearchSession,
    SelectionContext,
    SessionStatus,
)
from sciref.renderer import render_bibliography, render_options, render_reference, render_session


def _capture_output(render_fn, *args, **kwargs) -> str:
    """Capture Rich console output as plain text."""
    buf = StringIO()
    # Temporarily replace the module-level console
    import sciref.renderer as mod
    original = mod.console
    mod.console = Console(file=buf, force_terminal=False, width=120)
    try:
        render_fn(*args, **kwargs)
    finally:
        mod.console = original
    return buf.getvalue()


def _session(**kwargs):
    defaults = dict(
        id="search-1-1",
        context=SelectionContext("full text", "a highlighted claim"),
        query_prefs=SearchPreferences(num_references=2),
    )
    defaults.update(kwargs)
    return SearchSession(**defaults)


class TestRenderReference:
    def test_full_reference(self):
        ref = Reference(
            title="Attention Is All You Need",
            authors=["Vaswani", "etc."],
            year="2017",
            publication="NeurIPS",
            url="https://arxiv.org/abs/1706.03762",
            summary="Introduces the Transformer.",
            relevance="Foundational architecture.",
            citation_count=100000,
        )
        output = _capture_output(render_reference, ref, 1)

        assert "[1] Attention Is All You Need" in output
        assert "Vaswani, etc. | 2017 | NeurIPS | cited by 100000" in output
        assert "https://arxiv.org/abs/1706.03762" in output
        assert "Why: Foundational architecture." in output

    def test_minimal_reference(self):
        output = _capture_output(render_reference, Reference(title=""), 2)
        assert "[2] (untitled)" in output
        assert "cited by" not in output

    def test_long_summary_truncated(self):
        output = _capture_output(render_reference, Reference(title="T", summary="x" * 400), 1)
        assert output.count("x") == 300
        assert "..." in output


class TestRenderSession:
    def test_loading(self):
        output = _capture_output(render_session, _session())
        assert "a highlighted claim" in output
        assert "Finding citations..." in output

    def test_error(self):
        session = _session(status=SessionStatus.ERROR, error_message="API key is missing")
        output = _capture_output(render_session, session)
        assert "Error: API key is missing" in output
        assert "Retry" in output

    def test_no_results(self):
        output = _capture_output(render_session, _session(status=SessionStatus.SUCCESS))
        assert "No references found." in output

    def test_success(self):
        session = _session(
            status=SessionStatus.SUCCESS,
            visible=[Reference(title="Paper A"), Reference(title="Paper B")],
            pool=[Reference(title="Paper C")],
            is_refilling=True,
        )
        output = _capture_output(render_session, session)

        assert "Showing 2 of 2 (Highly Cited, 1 in reserve)" in output
        assert "[1] Paper A" in output
        assert "[2] Paper B" in output
        assert "Paper C" not in output
        assert "Fetching more references" in output


class TestRenderBibliography:
    def test_empty(self):
        assert "No references cited." in _capture_output(render_bibliography, [])

    def test_lines(self):
        output = _capture_output(render_bibliography, ["[1] A. J. 2020. Available at: u"])
        assert "References:" in output
        assert "[1] A. J. 2020." in output


def test_render_options():
    output = _capture_output(render_options, PUBLISHER_OPTIONS, SOURCE_TYPE_OPTIONS)
    assert "most_cited  (Highly Cited)" in output
    assert "low_impact  (not highly cited)" in output
    assert "gemini-2.5-flash  (balanced)" in output
    assert PUBLISHER_OPTIONS[0] in output
    assert SOURCE_TYPE_OPTIONS[0] in output
