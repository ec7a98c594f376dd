"""Field selection and clipboard-paste injection into the focused window."""

from __future__ import annotations

import asyncio
import logging

from core.config_loader import AgentSettings
from core.errors import AgentError, NoActiveSessionError, StateConflictError
from core.state_manager import SessionField, StateManager, clamp_index
from os_controller.base_controller import BaseController

logger = logging.getLogger("sb.injector")


def _preview(value: str, limit: int = 50) -> str:
    return value if len(value) <= limit else f"{value[:limit]}..."


class FieldInjector:
    """Moves the selection and pastes the selected value.

    Only one paste may be in flight; the clipboard is saved before the value is
    written and put back on every exit path.
    """

    def __init__(self, controller: BaseController, state: StateManager, settings: AgentSettings) -> None:
        self.controller = controller
        self.state = state
        self.settings = settings
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _move(self, delta: int) -> bool:
        fields = self.state.state.session_fields
        if not fields:
            return False
        current = self.state.state.current_index
        target = clamp_index(current + delta, len(fields))
        if target != current:
            self.state.update(current_index=target)
        return True

    def select_previous(self) -> bool:
        return self._move(-1)

    def select_next(self) -> bool:
        return self._move(1)

    def current_field(self) -> SessionField:
        fields = self.state.state.session_fields
        if not fields:
            raise NoActiveSessionError("No session fields available")
        field = fields[clamp_index(self.state.state.current_index, len(fields))]
        if not field.value:
            raise NoActiveSessionError(f'Selected field "{field.label}" has no value')
        return field

    async def paste_current_field(self) -> SessionField:
        if self.busy:
            raise StateConflictError("A paste is already in progress")
        async with self._lock:
            field = self.current_field()
            logger.info("Pasting %s (%d chars): %r", field.label, len(field.value), _preview(field.value))
            self.state.update(status="typing", last_error=None, last_error_kind=None, remediation=None)

            previous = await self.controller.read_clipboard()
            try:
                await self.controller.write_clipboard(field.value)
                await asyncio.sleep(self.settings.clipboard_settle)
                await asyncio.sleep(self.settings.focus_settle)
                await self.controller.send_paste()
                await asyncio.sleep(self.settings.paste_land)
            finally:
                await asyncio.sleep(self.settings.restore_settle)
                try:
                    await self.controller.write_clipboard(previous)
                except AgentError as exc:
                    logger.warning("Failed to restore previous clipboard text: %s", exc)

            self.state.update(status="idle")
            return field
