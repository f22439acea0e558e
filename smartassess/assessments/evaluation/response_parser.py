"""
Scorer Response Parsing

The scoring model answers in free text that usually, but not always,
contains a JSON object. Parsing produces one of three results, tried in
order: a structured result from embedded JSON, a heuristic result from a
``marks: <n>`` fragment, or an unparsable result worth zero marks.
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

FEEDBACK_LIMIT = 200

MARK_KEYS = ("marksObtained", "marks", "score")
RATIONALE_KEYS = ("reasoning", "rationale")

_MARKS_PATTERN = re.compile(r"marks[:\s]+(-?\d+(?:\.\d+)?)", re.IGNORECASE)
_decoder = json.JSONDecoder()


def clamp_marks(value: Any, max_marks: float) -> float:
    """Coerce ``value`` to a mark within [0, max_marks]; anything non-numeric is 0."""
    if isinstance(value, bool):
        return 0
    try:
        marks = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(marks):
        return 0
    return min(max(marks, 0), max_marks)


@dataclass(frozen=True)
class StructuredResponse:
    """Scorer returned a JSON object."""
    marks: float
    feedback: str
    rationale: str


@dataclass(frozen=True)
class HeuristicResponse:
    """Scorer returned prose with a recognisable marks fragment."""
    marks: float
    feedback: str
    rationale: str = ""


@dataclass(frozen=True)
class UnparsableResponse:
    """Nothing usable in the scorer output."""
    marks: float
    feedback: str
    rationale: str = "Could not parse scorer response"


ParsedResponse = Union[StructuredResponse, HeuristicResponse, UnparsableResponse]


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first well-formed JSON object embedded in ``text``."""
    index = text.find("{")
    while index != -1:
        try:
            value, _ = _decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        index = text.find("{", index + 1)
    return None


def _first_present(data: Dict[str, Any], keys) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _parse_structured(text: str, max_marks: float) -> Optional[StructuredResponse]:
    data = extract_json_object(text)
    if data is None:
        return None
    feedback = data.get("feedback")
    rationale = _first_present(data, RATIONALE_KEYS)
    return StructuredResponse(
        marks=clamp_marks(_first_present(data, MARK_KEYS), max_marks),
        feedback=str(feedback) if feedback is not None else "",
        rationale=str(rationale) if rationale is not None else ""
    )


def _parse_heuristic(text: str, max_marks: float) -> Optional[HeuristicResponse]:
    match = _MARKS_PATTERN.search(text)
    if match is None:
        return None
    return HeuristicResponse(
        marks=clamp_marks(match.group(1), max_marks),
        feedback=text[:FEEDBACK_LIMIT]
    )


def parse_response(text: Optional[str], max_marks: float) -> ParsedResponse:
    """
    Parse raw scorer output.

    Args:
        text: Raw message content from the scorer
        max_marks: Upper bound for the awarded mark

    Returns:
        The first parse strategy that succeeds
    """
    text = text or ""
    return (
        _parse_structured(text, max_marks)
        or _parse_heuristic(text, max_marks)
        or UnparsableResponse(marks=0, feedback=text[:FEEDBACK_LIMIT])
    )
