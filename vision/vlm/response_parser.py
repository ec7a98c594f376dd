"""Tolerant parsing of model output into candidate fields."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from core.errors import ExternalServiceError
from vision.base_vision import CandidateField

logger = logging.getLogger("sb.vision.parser")

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip()).strip()


def _scan_array(text: str, start: int) -> tuple[int | None, int | None]:
    """Return (end of balanced array, end of last complete top-level element)."""
    depth = 0
    in_string = False
    escaped = False
    last_complete: int | None = None
    for pos in range(start, len(text)):
        ch = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            depth -= 1
            if depth == 0:
                return pos + 1, last_complete
            if depth == 1 and ch == "}":
                last_complete = pos + 1
    return None, last_complete


def extract_json_array(text: str) -> list[Any]:
    """Pull a JSON array out of a model response.

    Handles markdown fences, prose around the array, and a response cut off
    mid-array, in which case the complete leading elements are kept.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
        if isinstance(data, list):
            return data
    except json.JSONDecodeError:
        pass

    start = cleaned.find("[")
    if start < 0:
        raise ExternalServiceError("Model response did not contain a JSON array")

    end, last_complete = _scan_array(cleaned, start)
    candidate = cleaned[start:end] if end is not None else None
    if candidate is None and last_complete is not None:
        logger.warning("Model response truncated; keeping complete elements only")
        candidate = cleaned[start:last_complete] + "]"
    if candidate is None:
        raise ExternalServiceError("Model response contained an unterminated JSON array")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ExternalServiceError(f"Model response was not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ExternalServiceError("Model response JSON was not an array")
    return data


def parse_candidates(text: str) -> list[CandidateField]:
    fields: list[CandidateField] = []
    for item in extract_json_array(text):
        if not isinstance(item, dict):
            continue
        try:
            fields.append(CandidateField.model_validate(item))
        except ValidationError as exc:
            logger.debug("Dropping malformed field %r: %s", item, exc)
    return fields
