"""Prompt templates for the reference search and verification passes."""

from __future__ import annotations

import json

from sciref.models import DisapprovalLog, Reference, SearchPreferences, SelectionContext, SortPriority

# Small batches keep the JSON inside the output token budget.
FETCH_BATCH_SIZE = 7

PRIORITY_INSTRUCTIONS = {
    SortPriority.HIGH_IMPACT: (
        "Strictly prioritize papers published in journals with the HIGHEST Impact "
        "Factors. List results in descending order of journal impact factor."
    ),
    SortPriority.MOST_CITED: (
        "Strictly prioritize papers with the HIGHEST citation counts. List results "
        "in descending order of citation count."
    ),
    SortPriority.NEWEST: (
        "Strictly prioritize the most recently published papers. List results in "
        "descending order of publication date (Newest First)."
    ),
}

SEARCH_PROMPT_TEMPLATE = """\
You are an expert academic research assistant.
The user is writing a scientific paper and needs references for a specific statement.

**Task**: Find valid, existing, and high-quality academic references based on the \
user's highlighted text and context.

**Context**:
- The entire paragraph text is: "{full_text}"
- The user has HIGHLIGHTED this specific text to find references for: "{highlighted_text}"
- The immediate text before the highlight is: "{preceding_context}"
  Use this context to disambiguate the highlighted text.

**Search Criteria**:
- Find the top {batch_size} matches.
- **Priority**: {priority}
- Published after year: {year_start}
{criteria}

**Instructions**:
1. Use Google Search to find REAL papers. Do not hallucinate citations.
2. Select papers that strongly support or relate to the highlighted text in its context.
3. Return the result strictly as a JSON array.
4. The "authors" field should only contain the first author and "etc.".
5. Keep "summary" and "relevance" fields concise (max 50 words each).
6. Estimate the citation count for the paper if available (approximate is fine).

**Output JSON Schema**:
[
  {{
    "title": "Paper Title",
    "authors": ["Author 1", "etc."],
    "year": "YYYY",
    "publication": "Journal/Conference Name",
    "url": "Link to the paper or DOI",
    "summary": "Brief 1-sentence summary.",
    "relevance": "Why this matches the text.",
    "citationCount": 150
  }}
]
"""

VERIFY_PROMPT_TEMPLATE = """\
You are a meticulous fact-checker for academic references.

**Input**: A JSON list of potential academic references:
{references}

**Task**:
1. Perform a Google Search for each paper Title and Author to CONFIRM it exists.
2. Verify the URL. If the provided URL is broken or incorrect, find the correct \
official URL (DOI, Publisher, PubMed, etc.).
3. Filter out any references that are hallucinations (i.e., the paper does not exist).

**Output**:
- Return a JSON array of the CONFIRMED references, with corrected URLs.
- You must output valid JSON only. Do not add any conversational text.

**Structure**:
[
  {{ "title": "...", "authors": [...], "year": "...", "url": "..." }}
]
"""


def _criteria_lines(prefs: SearchPreferences, history: DisapprovalLog | None) -> list[str]:
    lines = []
    if prefs.publisher_filter:
        lines.append(f"Limit results to these publishers/groups: {', '.join(prefs.publisher_filter)}.")
    else:
        lines.append("Include any reputable scientific publisher.")

    if prefs.source_types:
        lines.append(f"Limit results to these document types: {', '.join(prefs.source_types)}.")
    else:
        lines.append("Prioritize Research Articles and Reviews.")

    if prefs.exclude_titles:
        lines.append(
            "DO NOT include the following papers as they have already been reviewed: "
            f"{json.dumps(prefs.exclude_titles, ensure_ascii=False)}."
        )

    if history is not None:
        sources = history.unwanted_sources()
        if sources:
            lines.append(
                "DO NOT include papers from these sources/journals which were "
                f"previously rejected: {', '.join(sources)}."
            )
        rejected = history.rejected_titles()
        if rejected:
            lines.append(
                "The user rejected these papers earlier; do not suggest them again: "
                f"{json.dumps(rejected, ensure_ascii=False)}."
            )
    return lines


def build_search_prompt(
    context: SelectionContext,
    prefs: SearchPreferences,
    history: DisapprovalLog | None = None,
    *,
    batch_size: int = FETCH_BATCH_SIZE,
) -> str:
    priority = PRIORITY_INSTRUCTIONS.get(
        prefs.priority,
        "Prioritize papers that are most contextually relevant to the highlighted text.",
    )
    criteria = "\n".join(f"- {line}" for line in _criteria_lines(prefs, history))
    return SEARCH_PROMPT_TEMPLATE.format(
        full_text=context.full_text,
        highlighted_text=context.highlighted_text,
        preceding_context=context.preceding_context,
        batch_size=batch_size,
        priority=priority,
        year_start=prefs.year_start or "Any",
        criteria=criteria,
    )


def build_verify_prompt(references: list[Reference]) -> str:
    # Only the fields the verifier can check, to save tokens.
    short = [
        {"title": r.title, "authors": r.authors, "year": r.year, "url": r.url}
        for r in references
    ]
    return VERIFY_PROMPT_TEMPLATE.format(references=json.dumps(short, ensure_ascii=False))
