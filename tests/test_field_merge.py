"""Tests for session field merging."""

from __future__ import annotations

from core.field_merge import merge_fields, token_jaccard, unique_field_id, values_overlap
from core.state_manager import SessionField


def _field(field_id: str, value: str, label: str = "") -> SessionField:
    return SessionField(id=field_id, label=label or field_id, value=value)


def test_merge_into_empty_session() -> None:
    result = merge_fields([], [_field("patient_name", "John Smith", "Patient Name")], current_index=3)

    assert [(f.id, f.value) for f in result.fields] == [("patient_name", "John Smith")]
    assert result.current_index == 0
    assert result.added == 1


def test_contained_value_is_treated_as_recapture() -> None:
    existing = [_field("note", "Line one.")]
    result = merge_fields(existing, [_field("note", "Line one. Line two.")])

    assert result.fields[0].value == "Line one."
    assert result.discarded == 1


def test_long_unrelated_value_is_appended_as_continuation() -> None:
    a = "Patient presented with persistent cough and mild fever over three days."
    b = "Auscultation revealed crackles bilaterally; chest radiograph ordered today."
    result = merge_fields([_field("note", a)], [_field("note", b)])

    assert result.fields[0].value == f"{a}\n\n{b}"
    assert result.appended == 1


def test_short_unrelated_value_is_discarded() -> None:
    a = "Patient presented with persistent cough and mild fever over three days."
    result = merge_fields([_field("note", a)], [_field("note", "Afebrile")])

    assert result.fields[0].value == a
    assert result.discarded == 1


def test_merging_same_candidates_twice_is_idempotent() -> None:
    a = "alpha beta gamma delta epsilon"
    b = "zeta eta theta iota kappa"
    incoming = [_field("note", b), _field("mrn", "12345"), _field("dob", "1980-01-01")]

    first = merge_fields([_field("note", a)], incoming)
    second = merge_fields(first.fields, incoming, first.current_index)

    assert [(f.id, f.value) for f in second.fields] == [(f.id, f.value) for f in first.fields]
    assert second.added == 0
    assert second.appended == 0


def test_merge_never_removes_or_mutates_existing() -> None:
    existing = [_field("a", "one"), _field("b", "two")]
    result = merge_fields(existing, [_field("c", "three")], current_index=1)

    assert [f.id for f in result.fields] == ["a", "b", "c"]
    assert existing[0].value == "one" and len(existing) == 2
    assert result.current_index == 1


def test_duplicate_ids_in_one_batch_stay_unique() -> None:
    result = merge_fields([], [_field("note", "first page of text"), _field("note", "second page here")])

    assert [f.id for f in result.fields] == ["note"]
    assert result.fields[0].value == "first page of text\n\nsecond page here"


def test_empty_incoming_values_are_skipped() -> None:
    result = merge_fields([], [_field("blank", "   ")])

    assert result.fields == []
    assert result.current_index == 0


def test_overlap_uses_containment_or_token_jaccard() -> None:
    assert values_overlap("Jane Doe", "jane doe")
    assert values_overlap("one two three four", "one two three five")
    assert not values_overlap("one two three four", "five six seven eight")
    assert token_jaccard("", "anything") == 0.0


def test_unique_field_id_suffixes_collisions() -> None:
    assert unique_field_id("Patient Name", []) == "patient_name"
    assert unique_field_id("Patient Name", ["patient_name"]) == "patient_name_2"
    assert unique_field_id("Patient Name", ["patient_name", "patient_name_2"]) == "patient_name_3"
    assert unique_field_id("!!!", []) == "field"
