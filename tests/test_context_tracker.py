"""Tests for frontmost-window classification and the sticky source flag."""

from __future__ import annotations

import asyncio

from core.config_loader import AgentSettings
from core.context_tracker import Classification, ContextTracker, FrontmostContext, titles_match
from core.errors import PermissionDeniedError
from core.state_manager import LinkedWindow

LINKED = LinkedWindow("Chrome", "Patient Chart - Jane Doe")


def _tracker(controller, settings: AgentSettings) -> ContextTracker:
    return ContextTracker(controller, settings)


def test_linked_title_tolerates_unsaved_marker(controller, settings) -> None:
    tracker = _tracker(controller, settings)

    result = tracker.classify("Chrome", "Patient Chart - Jane Doe *", LINKED)

    assert result is Classification.LINKED_TARGET


def test_linked_requires_same_app(controller, settings) -> None:
    tracker = _tracker(controller, settings)

    assert tracker.classify("Safari", "Patient Chart - Jane Doe", LINKED) is Classification.OTHER


def test_source_own_and_other(controller, settings) -> None:
    tracker = _tracker(controller, settings)

    assert tracker.classify("Heidi", "Session notes", None) is Classification.SOURCE
    assert tracker.classify("Google Chrome", "Heidi Health - Scribe", None) is Classification.SOURCE
    assert tracker.classify("Electron", "panel", LINKED) is Classification.OWN
    assert tracker.classify("scribe-bridge", "", LINKED) is Classification.OWN
    assert tracker.classify("Finder", "Downloads", LINKED) is Classification.OTHER


def test_empty_titles_never_match() -> None:
    assert not titles_match("", "Patient Chart")
    assert not titles_match("Patient Chart", "   ")
    assert titles_match("patient chart", "Patient Chart - Jane Doe")


def test_sticky_flag_survives_own_popups(controller, settings) -> None:
    tracker = _tracker(controller, settings)

    tracker.observe(Classification.SOURCE)
    tracker.observe(Classification.OWN)
    assert tracker.last_known_source_context is True

    tracker.observe(Classification.OTHER)
    assert tracker.last_known_source_context is False

    tracker.observe(Classification.SOURCE)
    tracker.observe(Classification.LINKED_TARGET)
    assert tracker.last_known_source_context is False


def test_can_open_gate(controller, settings) -> None:
    tracker = _tracker(controller, settings)
    own = FrontmostContext("Electron", "panel", Classification.OWN)
    other = FrontmostContext("Finder", "x", Classification.OTHER)

    assert tracker.can_open(None, LINKED) is False
    assert tracker.can_open(other, LINKED) is False
    assert tracker.can_open(own, None) is False
    assert tracker.can_open(own, LINKED) is True
    tracker.observe(Classification.SOURCE)
    assert tracker.can_open(own, None) is True


def test_poll_classifies_and_remembers_source_app(controller, settings) -> None:
    tracker = _tracker(controller, settings)
    controller.focus("Heidi", "Consult")

    context = asyncio.run(tracker.poll(None))

    assert context is not None
    assert context.classification is Classification.SOURCE
    assert tracker.last_known_source_context is True
    assert tracker.last_source_app == "Heidi"


def test_poll_returns_none_when_query_fails(controller, settings) -> None:
    tracker = _tracker(controller, settings)
    controller.frontmost_error = PermissionDeniedError("assistive access")

    assert asyncio.run(tracker.poll(LINKED)) is None
    assert tracker.last_context is None


def test_poll_returns_none_without_frontmost_window(controller, settings) -> None:
    tracker = _tracker(controller, settings)

    assert asyncio.run(tracker.poll(None)) is None
