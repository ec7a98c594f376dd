"""Merging newly extracted candidate fields into the session field list."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from core.state_manager import SessionField, clamp_index

logger = logging.getLogger("sb.merge")

OVERLAP_THRESHOLD = 0.5
CONTINUATION_RATIO = 0.5
PARAGRAPH_SEPARATOR = "\n\n"


@dataclass
class MergeResult:
    fields: list[SessionField]
    current_index: int
    added: int = 0
    appended: int = 0
    discarded: int = 0


def token_jaccard(a: str, b: str) -> float:
    tokens_a = set(a.lower().split())
    tokens_b = set(b.lower().split())
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def values_overlap(existing: str, incoming: str) -> bool:
    """True when one value contains the other or their token sets mostly agree."""
    a = existing.strip().lower()
    b = incoming.strip().lower()
    if a and b and (a in b or b in a):
        return True
    return token_jaccard(a, b) >= OVERLAP_THRESHOLD


def merge_fields(
    existing: list[SessionField],
    incoming: Iterable[SessionField],
    current_index: int = 0,
) -> MergeResult:
    """Merge ``incoming`` into a copy of ``existing``.

    New ids are appended. A known id keeps its value when the incoming value
    overlaps it, gains the incoming value as a continuation paragraph when it is
    at least half as long, and is otherwise left alone. Existing fields are
    never removed and ``existing`` itself is not mutated.
    """
    was_empty = not existing
    merged = [
        SessionField(id=f.id, label=f.label, value=f.value, source=f.source, type=f.type)
        for f in existing
    ]
    by_id = {f.id: f for f in merged}
    result = MergeResult(fields=merged, current_index=0)

    for candidate in incoming:
        value = (candidate.value or "").strip()
        if not value:
            result.discarded += 1
            continue

        current = by_id.get(candidate.id)
        if current is None:
            new_field = SessionField(
                id=candidate.id,
                label=candidate.label or candidate.id,
                value=value,
                source=candidate.source,
                type=candidate.type,
            )
            merged.append(new_field)
            by_id[new_field.id] = new_field
            result.added += 1
            continue

        if values_overlap(current.value, value):
            result.discarded += 1
            continue

        if len(value) >= CONTINUATION_RATIO * len(current.value):
            current.value = f"{current.value}{PARAGRAPH_SEPARATOR}{value}"
            result.appended += 1
        else:
            result.discarded += 1

    result.current_index = 0 if was_empty else clamp_index(current_index, len(merged))
    logger.debug(
        "Merged fields: added=%d appended=%d discarded=%d total=%d",
        result.added,
        result.appended,
        result.discarded,
        len(merged),
    )
    return result


def unique_field_id(label: str, taken: Iterable[str]) -> str:
    """Derive a snake_case id from ``label`` that does not collide with ``taken``."""
    base = "_".join("".join(ch if ch.isalnum() else " " for ch in label.lower()).split()) or "field"
    used = set(taken)
    if base not in used:
        return base
    n = 2
    while f"{base}_{n}" in used:
        n += 1
    return f"{base}_{n}"
