"""Keyboard and clipboard input via pyautogui and pyperclip."""

from __future__ import annotations

import logging

from core.errors import AgentError, PermissionDeniedError

try:
    import pyautogui
    import pyperclip

    pyautogui.FAILSAFE = True
    pyautogui.PAUSE = 0.02
except ImportError:
    pyautogui = None
    pyperclip = None

_MODIFIER_KEYS = {
    "cmd": "command",
    "command": "command",
    "meta": "command",
    "ctrl": "ctrl",
    "control": "ctrl",
    "alt": "option",
    "option": "option",
    "shift": "shift",
}


class InputController:
    """Synthetic keystrokes and plain-text clipboard access."""

    def __init__(self) -> None:
        self.logger = logging.getLogger("sb.input_controller")
        if not pyautogui:
            self.logger.warning("pyautogui not installed. InputController disabled.")

    def _check_available(self) -> None:
        if not pyautogui or not pyperclip:
            raise AgentError("Cannot execute action: pyautogui/pyperclip missing.")

    def paste(self) -> None:
        """Press Cmd+V."""
        self.press("v", ["command"])

    def press(self, key: str, modifiers: list[str] | None = None) -> None:
        self._check_available()
        keys = [_MODIFIER_KEYS.get(m.lower(), m.lower()) for m in (modifiers or [])]
        keys.append(key.lower() if len(key) > 1 else key)
        try:
            if len(keys) == 1:
                pyautogui.press(keys[0])
            else:
                pyautogui.hotkey(*keys)
        except pyautogui.FailSafeException:
            raise
        except Exception as exc:
            # Quartz event posting fails silently or raises when accessibility is off.
            raise PermissionDeniedError(f"Keystroke injection failed: {exc}") from exc
        self.logger.debug("Pressed %s", "+".join(keys))

    def read_clipboard(self) -> str:
        self._check_available()
        try:
            return pyperclip.paste() or ""
        except pyperclip.PyperclipException as exc:
            raise AgentError(f"Clipboard read failed: {exc}") from exc

    def write_clipboard(self, text: str) -> None:
        self._check_available()
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            raise AgentError(f"Clipboard write failed: {exc}") from exc

    def screen_size(self) -> tuple[int, int]:
        self._check_available()
        width, height = pyautogui.size()
        return int(width), int(height)
