"""macOS controller backed by System Events AppleScript, pyautogui and pyperclip."""

from __future__ import annotations

import asyncio
import logging
import sys

from os_controller import applescript
from os_controller.base_controller import (
    BaseController,
    Bounds,
    FrontmostWindow,
    WindowGeometry,
    WindowRef,
)
from os_controller.input_controller import InputController

logger = logging.getLogger("sb.mac_controller")


class MacController(BaseController):
    """Window, keystroke, and clipboard automation for macOS."""

    def __init__(self, input_controller: InputController | None = None, script_timeout: float = 10.0) -> None:
        if sys.platform != "darwin":
            logger.warning("MacController created on %s; OS calls will fail.", sys.platform)
        self.input = input_controller or InputController()
        self.script_timeout = script_timeout

    async def _run(self, script: str) -> str:
        return await applescript.run_osascript(script, timeout=self.script_timeout)

    async def query_frontmost(self) -> FrontmostWindow | None:
        parsed = applescript.parse_frontmost(await self._run(applescript.FRONTMOST_SCRIPT))
        if parsed is None:
            return None
        app_name, title = parsed
        return {"app_name": app_name, "title": title}

    async def list_window_geometries(self, app_name: str | None = None) -> list[WindowGeometry]:
        output = await self._run(applescript.geometry_script(app_name))
        return [WindowGeometry(**row) for row in applescript.parse_geometry_rows(output)]  # type: ignore[typeddict-item]

    async def list_visible_windows(self) -> list[WindowRef]:
        return [
            {"app_name": g["app_name"], "title": g["title"], "index": g["index"]}
            for g in await self.list_window_geometries()
        ]

    async def set_window_bounds(self, window: WindowRef, bounds: Bounds) -> None:
        script = applescript.set_bounds_script(
            window["app_name"], window["title"], window.get("index"), bounds
        )
        await self._run(script)
        logger.debug("Set bounds of %s/%r to %s", window["app_name"], window["title"], bounds)

    async def activate_window(self, app_name: str, title: str | None = None) -> None:
        await self._run(applescript.activate_script(app_name, title))

    async def send_paste(self) -> None:
        await asyncio.to_thread(self.input.paste)

    async def send_keystroke(self, key: str, modifiers: list[str] | None = None) -> None:
        await asyncio.to_thread(self.input.press, key, modifiers)

    async def read_clipboard(self) -> str:
        return await asyncio.to_thread(self.input.read_clipboard)

    async def write_clipboard(self, text: str) -> None:
        await asyncio.to_thread(self.input.write_clipboard, text)

    async def screen_size(self) -> tuple[int, int]:
        return await asyncio.to_thread(self.input.screen_size)
