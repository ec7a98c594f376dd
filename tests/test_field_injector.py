"""Tests for field selection and clipboard-paste injection."""

from __future__ import annotations

import asyncio
import random

import pytest

from core.errors import AgentError, NoActiveSessionError, StateConflictError
from core.field_injector import FieldInjector
from core.state_manager import SessionField, StateManager


def _injector(controller, settings, values: list[str]) -> FieldInjector:
    state = StateManager()
    state.update(session_fields=[SessionField(f"f{i}", f"F{i}", v) for i, v in enumerate(values)])
    return FieldInjector(controller, state, settings)


def test_selection_stays_in_bounds(controller, settings) -> None:
    injector = _injector(controller, settings, ["a", "b", "c"])
    rng = random.Random(7)

    for _ in range(200):
        if rng.random() < 0.5:
            injector.select_previous()
        else:
            injector.select_next()
        assert 0 <= injector.state.state.current_index <= 2


def test_select_on_empty_session_is_noop(controller, settings) -> None:
    injector = _injector(controller, settings, [])

    assert injector.select_next() is False
    assert injector.select_previous() is False
    assert injector.state.state.current_index == 0


def test_paste_writes_value_and_restores_clipboard(controller, settings) -> None:
    controller.clipboard = "user clipboard"
    injector = _injector(controller, settings, ["John Smith", "1980-01-01"])
    injector.select_next()

    field = asyncio.run(injector.paste_current_field())

    assert field.value == "1980-01-01"
    assert controller.pasted == ["1980-01-01"]
    assert controller.clipboard == "user clipboard"
    assert injector.state.state.status == "idle"
    assert injector.state.state.current_index == 1


def test_clipboard_is_restored_when_paste_fails(controller, settings) -> None:
    controller.clipboard = "keep me"
    controller.paste_error = AgentError("keystroke rejected")
    injector = _injector(controller, settings, ["value"])

    with pytest.raises(AgentError):
        asyncio.run(injector.paste_current_field())

    assert controller.clipboard == "keep me"
    assert not injector.busy


def test_paste_without_fields_raises(controller, settings) -> None:
    injector = _injector(controller, settings, [])

    with pytest.raises(NoActiveSessionError):
        asyncio.run(injector.paste_current_field())


def test_second_paste_while_first_in_flight_is_rejected(controller, settings) -> None:
    controller.clipboard = "original"
    injector = _injector(controller, settings, ["first value"])

    async def scenario() -> None:
        controller.paste_gate = asyncio.Event()
        first = asyncio.create_task(injector.paste_current_field())
        await asyncio.sleep(0.01)
        assert injector.busy
        with pytest.raises(StateConflictError):
            await injector.paste_current_field()
        controller.paste_gate.set()
        await first

    asyncio.run(scenario())

    assert controller.pasted == ["first value"]
    assert controller.clipboard == "original"
