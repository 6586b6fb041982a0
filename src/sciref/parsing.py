"""Recover a JSON array of candidate records from raw model output.

Model output is often wrapped in markdown fences, surrounded by chatty text,
or cut off mid-array when the token budget runs out.  ``parse_candidates``
extracts the outermost ``[...]`` and, when the closing bracket never arrived,
keeps every object up to the last complete ``}``.
"""

from __future__ import annotations

import json
import logging
import re

from sciref.errors import MalformedPayload

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?")


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def extract_json_array(text: str) -> str:
    """Return the substring of *text* that should decode as a JSON array."""
    clean = strip_fences(text or "")

    start = clean.find("[")
    if start == -1:
        raise MalformedPayload("No JSON array found in response", raw=clean)

    end = clean.rfind("]")
    if end < start:
        last_brace = clean.rfind("}")
        if last_brace <= start:
            raise MalformedPayload(
                "JSON structure is incomplete and unrecoverable", raw=clean
            )
        logger.warning("Response was truncated; recovered partial JSON array")
        return clean[start:last_brace + 1] + "]"

    return clean[start:end + 1]


def parse_candidates(text: str) -> list[dict]:
    """Parse raw provider text into a list of candidate records."""
    candidate = extract_json_array(text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error("JSON parse failed on: %s", candidate[:500])
        raise MalformedPayload(f"Invalid JSON in response: {e.msg}", raw=candidate) from e

    if not isinstance(data, list):
        raise MalformedPayload("Parsed result is not an array", raw=candidate)

    records = [item for item in data if isinstance(item, dict)]
    if len(records) != len(data):
        logger.debug("Skipped %d non-object array items", len(data) - len(records))
    return records
