"""Tests for sciref.models."""

from sciref.models import (
    DisapprovalLog,
    DisapprovalReason,
    Reference,
    SearchPreferences,
    SearchSession,
    SelectionContext,
    normalize_title,
)


class TestReferenceFromDict:
    def test_full_record(self):
        ref = Reference.from_dict({
            "title": "Paper",
            "authors": ["Smith", "etc."],
            "year": "2020",
            "publication": "Nature",
            "url": "https://doi.org/x",
            "summary": "S",
            "relevance": "R",
            "citationCount": 150,
        })
        assert ref.title == "Paper"
        assert ref.authors == ["Smith", "etc."]
        assert ref.citation_count == 150

    def test_loose_types(self):
        ref = Reference.from_dict({"title": "P", "authors": "Smith", "year": 2021, "citationCount": "1,200"})
        assert ref.authors == ["Smith"]
        assert ref.year == "2021"
        assert ref.citation_count == 1200

    def test_bad_citation_counts(self):
        assert Reference.from_dict({"title": "P", "citationCount": -3}).citation_count is None
        assert Reference.from_dict({"title": "P", "citationCount": "many"}).citation_count is None
        assert Reference.from_dict({"title": "P"}).citation_count is None

    def test_missing_fields_default_empty(self):
        ref = Reference.from_dict({"title": None})
        assert ref.title == ""
        assert ref.authors == []
        assert ref.url == ""

    def test_to_dict_roundtrip_keys(self):
        data = Reference(title="P", citation_count=3).to_dict()
        assert data["citationCount"] == 3
        assert "citationCount" not in Reference(title="P").to_dict()


class TestSearchPreferences:
    def test_clamps_num_references(self):
        assert SearchPreferences(num_references=9).num_references == 5
        assert SearchPreferences(num_references=0).num_references == 1
        assert SearchPreferences(num_references=3).num_references == 3

    def test_snapshot_drops_exclusions(self):
        prefs = SearchPreferences(exclude_titles=["A"], publisher_filter=["IEEE"])
        snap = prefs.snapshot()
        assert snap.exclude_titles == []
        snap.publisher_filter.append("ACS")
        assert prefs.publisher_filter == ["IEEE"]

    def test_with_exclusions(self):
        prefs = SearchPreferences()
        assert prefs.with_exclusions(["A", "B"]).exclude_titles == ["A", "B"]
        assert prefs.exclude_titles == []


class TestSearchSession:
    def test_copy_is_independent(self):
        session = SearchSession(
            id="s1",
            context=SelectionContext("full", "hl"),
            query_prefs=SearchPreferences(),
            visible=[Reference(title="A")],
        )
        copy = session.copy()
        copy.visible.clear()
        assert len(session.visible) == 1


class TestDisapprovalLog:
    def test_append_only_records(self):
        log = DisapprovalLog()
        log.append(Reference(title="A", publication="Acme"), DisapprovalReason.UNWANTED_SOURCE)
        log.append(Reference(title="B", publication="Acme"), DisapprovalReason.UNWANTED_SOURCE)
        log.append(Reference(title="C", publication="Other"), DisapprovalReason.NOT_NEW)

        assert len(log) == 3
        assert log.unwanted_sources() == ["Acme"]
        assert log.rejected_titles() == ["A", "B", "C"]
        assert isinstance(log.records, tuple)


class TestNormalizeTitle:
    def test_strips_punctuation_and_case(self):
        assert normalize_title("Deep Learning for X!!") == "deeplearningforx"

    def test_none(self):
        assert normalize_title(None) == ""
