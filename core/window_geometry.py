"""Shrinks windows to make room for the side panel and restores them afterwards."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from core.errors import AgentError, NoMatchingWindowError
from os_controller.base_controller import BaseController, WindowGeometry, WindowRef

logger = logging.getLogger("sb.geometry")


@dataclass(frozen=True)
class OriginalBounds:
    """Pre-push geometry of one window."""

    x: int
    y: int
    width: int
    height: int
    app_name: str
    window_title: str = ""
    index: int | None = None

    def window_ref(self) -> WindowRef:
        return {"app_name": self.app_name, "title": self.window_title, "index": self.index or 0}


def _widest(candidates: list[WindowGeometry]) -> WindowGeometry | None:
    if not candidates:
        return None
    return max(candidates, key=lambda g: (g["width"], g["width"] * g["height"]))


class GeometryCoordinator:
    """Pushes a window left of a reserved right-hand strip and puts it back."""

    def __init__(self, controller: BaseController, is_own_app: Callable[[str], bool]) -> None:
        self.controller = controller
        self.is_own_app = is_own_app

    async def _select_candidate(self, reserved_width: int) -> WindowGeometry | None:
        front = await self.controller.query_frontmost()
        if front is None:
            return None

        if self.is_own_app(front["app_name"]):
            others = [
                g
                for g in await self.controller.list_window_geometries()
                if not self.is_own_app(g["app_name"]) and g["width"] > reserved_width
            ]
            return _widest(others)

        windows = await self.controller.list_window_geometries(front["app_name"])
        titled = [g for g in windows if front["title"] and g["title"] == front["title"]]
        return titled[0] if titled else _widest(windows)

    async def push(self, reserved_width: int) -> OriginalBounds | None:
        """Resize the relevant window to end where the panel begins.

        Returns its pre-resize bounds, or None when nothing was resized.
        """
        try:
            candidate = await self._select_candidate(reserved_width)
        except AgentError as exc:
            logger.warning("Could not inspect windows for push: %s", exc)
            return None
        if candidate is None:
            logger.debug("No window to push")
            return None
        return await self.push_window(candidate, reserved_width)

    async def push_window(self, window: WindowGeometry, reserved_width: int) -> OriginalBounds | None:
        if window["fullscreen"]:
            logger.debug("Skipping fullscreen window %s", window["app_name"])
            return None
        if window["width"] <= reserved_width:
            logger.debug(
                "Skipping %s: width %d does not exceed reserved %d",
                window["app_name"],
                window["width"],
                reserved_width,
            )
            return None

        screen_width, _ = await self.controller.screen_size()
        original = OriginalBounds(
            x=window["x"],
            y=window["y"],
            width=window["width"],
            height=window["height"],
            app_name=window["app_name"],
            window_title=window["title"],
            index=window["index"],
        )
        new_bounds = (0, window["y"], screen_width - reserved_width, window["height"])
        await self.controller.set_window_bounds(original.window_ref(), new_bounds)
        logger.info("Pushed %s (%r) to %s", original.app_name, original.window_title, new_bounds)
        return original

    async def restore(self, bounds: OriginalBounds) -> None:
        """Put a window back at its saved bounds; a vanished window is ignored."""
        target = (bounds.x, bounds.y, bounds.width, bounds.height)
        try:
            await self.controller.set_window_bounds(bounds.window_ref(), target)
        except NoMatchingWindowError:
            logger.info("Window %s (%r) gone; nothing to restore", bounds.app_name, bounds.window_title)
            return
        except AgentError as exc:
            logger.warning("Restore of %s failed: %s", bounds.app_name, exc)
            return
        logger.info("Restored %s (%r) to %s", bounds.app_name, bounds.window_title, target)
