"""Global shortcut bindings dispatched onto the agent's event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from concurrent.futures import Future
from typing import Any

from core.agent_controller import AgentController

logger = logging.getLogger("sb.hotkeys")

DEFAULT_SHORTCUTS: dict[str, str] = {
    "capture": "<alt>+c",
    "select_previous": "<alt>+w",
    "select_next": "<alt>+s",
    "paste": "<alt>+v",
    "clear": "<alt>+x",
    "toggle_panel": "<alt>+y",
    "switch_windows": "<alt>+<tab>",
}


def action_table(agent: AgentController) -> dict[str, Callable[[], Awaitable[Any]]]:
    return {
        "capture": agent.capture_and_enrich,
        "select_previous": agent.select_previous,
        "select_next": agent.select_next,
        "paste": agent.paste_current_field,
        "clear": agent.clear_session,
        "toggle_panel": agent.toggle_panel,
        "switch_windows": agent.switch_linked_windows,
    }


class ShortcutBinder:
    """Maps key combinations to control-surface coroutines.

    pynput invokes callbacks on its listener thread; each one only schedules
    the coroutine on ``loop`` and returns.
    """

    def __init__(
        self,
        agent: AgentController,
        loop: asyncio.AbstractEventLoop,
        shortcuts: dict[str, str] | None = None,
    ) -> None:
        self.agent = agent
        self.loop = loop
        self.shortcuts = {**DEFAULT_SHORTCUTS, **(shortcuts or {})}
        self.actions = action_table(agent)
        self._listener: Any | None = None

    def dispatch(self, action: str) -> Future[Any] | None:
        handler = self.actions.get(action)
        if handler is None:
            logger.warning("No handler for shortcut action %r", action)
            return None
        logger.debug("Shortcut %s", action)
        future = asyncio.run_coroutine_threadsafe(handler(), self.loop)
        future.add_done_callback(self._log_result)
        return future

    @staticmethod
    def _log_result(future: Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Shortcut handler raised: %s", exc)

    def hotkey_map(self) -> dict[str, Callable[[], None]]:
        mapping: dict[str, Callable[[], None]] = {}
        for action, combo in self.shortcuts.items():
            if action not in self.actions or not combo:
                continue
            mapping[combo] = lambda action=action: self.dispatch(action)
        return mapping

    def start(self) -> None:
        from pynput import keyboard

        self._listener = keyboard.GlobalHotKeys(self.hotkey_map())
        self._listener.start()
        logger.info("Global shortcuts active: %s", ", ".join(f"{k}={v}" for k, v in self.shortcuts.items()))

    def stop(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
