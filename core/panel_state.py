"""Side-panel visibility state machine with eased slide animation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from enum import Enum

from core.config_loader import AgentSettings
from core.errors import AgentError
from core.window_geometry import GeometryCoordinator, OriginalBounds
from os_controller.base_controller import WindowGeometry
from ui.surfaces import PanelSurface, Surface

logger = logging.getLogger("sb.panel")


class PanelState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"


def ease_out_cubic(p: float) -> float:
    return 1 - (1 - p) ** 3


def ease_in_cubic(p: float) -> float:
    return p**3


def slide_positions(start: int, end: int, steps: int, easing: Callable[[float], float]) -> list[int]:
    """Discrete x positions from ``start`` to ``end``; the last one is always ``end``."""
    steps = max(1, steps)
    return [round(start + (end - start) * easing(i / steps)) for i in range(1, steps + 1)]


class PanelController:
    """Drives CLOSED -> OPENING -> OPEN -> CLOSING -> CLOSED.

    Opening pushes the relevant windows aside before sliding the panel in;
    closing slides it out and restores every pushed window, each on its own,
    even when the animation fails part way.
    """

    def __init__(
        self,
        geometry: GeometryCoordinator,
        panel: PanelSurface,
        icon: Surface,
        pairing: Surface,
        settings: AgentSettings,
        on_change: Callable[[PanelState], None] | None = None,
    ) -> None:
        self.geometry = geometry
        self.panel = panel
        self.icon = icon
        self.pairing = pairing
        self.settings = settings
        self.on_change = on_change
        self.state = PanelState.CLOSED
        self.pushed: list[OriginalBounds] = []
        self._closed_polls = 0
        self._close_pending = False
        self._opening_done: asyncio.Event | None = None

    @property
    def has_pushed(self) -> bool:
        return bool(self.pushed)

    @property
    def is_animating(self) -> bool:
        return self.state in (PanelState.OPENING, PanelState.CLOSING)

    def _set_state(self, state: PanelState) -> None:
        self.state = state
        logger.debug("Panel -> %s", state.value)
        if self.on_change:
            self.on_change(state)

    async def _animate(self, start: int, end: int, easing: Callable[[float], float]) -> None:
        steps = max(1, self.settings.animation_steps)
        delay = self.settings.animation_duration / steps
        for x in slide_positions(start, end, steps, easing):
            self.panel.move_to(x)
            await asyncio.sleep(delay)

    async def _push_all(self, extra_windows: Iterable[WindowGeometry]) -> None:
        width = self.settings.panel_width
        try:
            bounds = await self.geometry.push(width)
        except AgentError as exc:
            logger.warning("Push of frontmost window failed: %s", exc)
            bounds = None
        if bounds is not None:
            self.pushed.append(bounds)

        for window in extra_windows:
            if any(b.app_name == window["app_name"] and b.window_title == window["title"] for b in self.pushed):
                continue
            try:
                extra = await self.geometry.push_window(window, width)
            except AgentError as exc:
                logger.warning("Push of %s failed: %s", window["app_name"], exc)
                continue
            if extra is not None:
                self.pushed.append(extra)

    async def _restore_all(self) -> None:
        pushed, self.pushed = self.pushed, []
        for bounds in pushed:
            try:
                await self.geometry.restore(bounds)
            except Exception:
                logger.exception("Unexpected failure restoring %s", bounds.app_name)

    async def open(self, linked: bool, extra_windows: Iterable[WindowGeometry] = ()) -> bool:
        if self.state is not PanelState.CLOSED:
            return False
        self._set_state(PanelState.OPENING)
        self._closed_polls = 0
        self._close_pending = False
        self._opening_done = asyncio.Event()
        self.icon.hide()
        self.pairing.hide()
        try:
            try:
                await self._push_all(extra_windows)
                screen_width, _ = await self.geometry.controller.screen_size()
                self.panel.move_to(screen_width)
                self.panel.show()
                await self._animate(screen_width, screen_width - self.settings.panel_width, ease_out_cubic)
            except Exception:
                self.panel.hide()
                await self._restore_all()
                self._close_pending = False
                self._set_state(PanelState.CLOSED)
                self.icon.show()
                raise
            self._set_state(PanelState.OPEN)

            if self._close_pending:
                self._close_pending = False
                logger.info("Close requested while opening; closing panel")
                await self.close()
                return True
        finally:
            self._opening_done.set()

        if not linked:
            await asyncio.sleep(self.settings.pairing_settle)
            if self.state is PanelState.OPEN:
                self.pairing.show()
        return True

    async def close(self) -> bool:
        """Slide out and restore; a close during OPENING waits for the open to land first."""
        if self.state is PanelState.OPENING and self._opening_done is not None:
            self._close_pending = True
            await self._opening_done.wait()
            return self.state is PanelState.CLOSED
        if self.state is not PanelState.OPEN:
            return False
        self._set_state(PanelState.CLOSING)
        self.pairing.hide()
        try:
            screen_width, _ = await self.geometry.controller.screen_size()
            start = getattr(self.panel, "x", None)
            if start is None:
                start = screen_width - self.settings.panel_width
            await self._animate(start, screen_width, ease_in_cubic)
        finally:
            self.panel.hide()
            await self._restore_all()
            self.icon.show()
            self._closed_polls = 0
            self._set_state(PanelState.CLOSED)
        return True

    async def toggle(self, can_open: bool, linked: bool, extra_windows: Iterable[WindowGeometry] = ()) -> bool:
        """Open or close; a no-op mid-animation or when closed and not allowed to open."""
        if self.is_animating:
            logger.debug("Toggle ignored while %s", self.state.value)
            return False
        if self.state is PanelState.OPEN:
            return await self.close()
        if not can_open:
            logger.debug("Toggle ignored: context does not allow opening")
            return False
        return await self.open(linked=linked, extra_windows=extra_windows)

    async def on_poll(self, can_open: bool) -> bool:
        """Feed one tracker result; closes after consecutive polls that disallow opening."""
        if self.state is not PanelState.OPEN:
            self._closed_polls = 0
            return False
        if can_open:
            self._closed_polls = 0
            return False
        self._closed_polls += 1
        if self._closed_polls < max(1, self.settings.close_debounce_polls):
            return False
        logger.info("Context lost for %d polls; closing panel", self._closed_polls)
        return await self.close()
