"""Tests for AppleScript generation and parsing and the macOS controller wiring."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.errors import AgentError, NoMatchingWindowError, PermissionDeniedError
from os_controller import applescript
from os_controller.mac_controller import MacController
from os_controller.screen_capture import clamp_rect


def test_escape_applescript_string() -> None:
    assert applescript.escape_applescript_str('Say "hi" \\ bye') == 'Say \\"hi\\" \\\\ bye'


def test_set_bounds_script_targets_window_by_title() -> None:
    script = applescript.set_bounds_script('Chrome "Beta"', 'Chart "A"', 2, (0, 25, 1040, 800))

    assert 'application process "Chrome \\"Beta\\""' in script
    assert 'first window whose name is "Chart \\"A\\""' in script
    assert "{0, 25}" in script and "{1040, 800}" in script


def test_set_bounds_script_falls_back_to_index() -> None:
    script = applescript.set_bounds_script("Preview", "", 3, (1, 2, 3, 4))

    assert "window 3" in script


def test_parse_geometry_rows_skips_malformed() -> None:
    output = "Heidi\tConsult\t1\t10\t25\t1300\t800\tfalse\nbroken row\nChrome\tForm\t2\t0\t0\t900.0\t700\ttrue"

    rows = applescript.parse_geometry_rows(output)

    assert rows[0] == {
        "app_name": "Heidi",
        "title": "Consult",
        "index": 1,
        "x": 10,
        "y": 25,
        "width": 1300,
        "height": 800,
        "fullscreen": False,
    }
    assert rows[1]["fullscreen"] is True and rows[1]["width"] == 900
    assert len(rows) == 2


def test_parse_frontmost() -> None:
    assert applescript.parse_frontmost("Heidi\tConsult - Jane") == ("Heidi", "Consult - Jane")
    assert applescript.parse_frontmost("Finder\t") == ("Finder", "")
    assert applescript.parse_frontmost("") is None


@pytest.mark.parametrize(
    ("stderr", "expected"),
    [
        ("System Events got an error: osascript is not allowed assistive access. (-1719)", PermissionDeniedError),
        ("Not authorized to send Apple events to System Events. (-1743)", PermissionDeniedError),
        ("System Events got an error: Can't get window 1 of process \"X\". (-1728)", NoMatchingWindowError),
        ("syntax error", AgentError),
    ],
)
def test_classify_failure(stderr: str, expected: type) -> None:
    assert type(applescript.classify_failure(stderr)) is expected


def test_mac_controller_parses_frontmost() -> None:
    ctrl = MacController(input_controller=MagicMock())
    with patch.object(applescript, "run_osascript", AsyncMock(return_value="Heidi\tConsult")):
        front = asyncio.run(ctrl.query_frontmost())

    assert front == {"app_name": "Heidi", "title": "Consult"}


def test_mac_controller_clipboard_and_paste_use_input_controller() -> None:
    input_ctrl = MagicMock()
    input_ctrl.read_clipboard.return_value = "before"
    ctrl = MacController(input_controller=input_ctrl)

    async def scenario() -> str:
        await ctrl.write_clipboard("value")
        await ctrl.send_paste()
        return await ctrl.read_clipboard()

    assert asyncio.run(scenario()) == "before"
    input_ctrl.write_clipboard.assert_called_once_with("value")
    input_ctrl.paste.assert_called_once_with()


def test_clamp_rect_to_monitor() -> None:
    monitor = {"left": 0, "top": 0, "width": 1440, "height": 900}

    assert clamp_rect((-10, 800, 200, 300), monitor) == (0, 800, 190, 100)
    with pytest.raises(ValueError):
        clamp_rect((2000, 0, 100, 100), monitor)
