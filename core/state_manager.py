"""Agent state container with single-writer updates and broadcast to listeners."""

from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from core.errors import PermissionDeniedError, error_kind
from core.event_bus import EventBus

AgentStatus = Literal["idle", "capturing", "typing", "error"]

STATE_UPDATED = "state_updated"


@dataclass
class SessionField:
    """One captured or manually added key/value pair."""

    id: str
    label: str
    value: str
    source: str = "capture"
    type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "value": self.value,
            "source": self.source,
            "type": self.type,
        }


@dataclass(frozen=True)
class LinkedWindow:
    """The paired target window receiving pasted values."""

    app_name: str
    window_title: str
    index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"app_name": self.app_name, "window_title": self.window_title, "index": self.index}


@dataclass
class AgentState:
    """Mutable in-memory state for the running agent."""

    status: AgentStatus = "idle"
    session_id: str | None = None
    session_fields: list[SessionField] = field(default_factory=list)
    current_index: int = 0
    last_error: str | None = None
    last_error_kind: str | None = None
    remediation: str | None = None
    linked_window: LinkedWindow | None = None
    panel_state: str = "closed"

    def current_field(self) -> SessionField | None:
        if not self.session_fields:
            return None
        return self.session_fields[self.current_index]

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "session_id": self.session_id,
            "session_fields": [f.to_dict() for f in self.session_fields],
            "current_index": self.current_index,
            "last_error": self.last_error,
            "last_error_kind": self.last_error_kind,
            "remediation": self.remediation,
            "linked_window": self.linked_window.to_dict() if self.linked_window else None,
            "panel_state": self.panel_state,
        }


def clamp_index(index: int, length: int) -> int:
    """Clamp an index into ``[0, max(0, length - 1)]``."""
    return max(0, min(index, max(0, length - 1)))


class StateManager:
    """Owns the single AgentState and broadcasts a snapshot after every change."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self.state = AgentState()
        self.bus = bus or EventBus()

    def snapshot(self) -> AgentState:
        """Return a deep copy safe to hand to listeners."""
        return copy.deepcopy(self.state)

    def subscribe(self, callback: Callable[[AgentState], None]) -> Callable[[], None]:
        return self.bus.subscribe(STATE_UPDATED, callback)

    def update(self, **changes: Any) -> AgentState:
        """Apply attribute changes, re-clamp the selection, and broadcast."""
        for key, value in changes.items():
            if not hasattr(self.state, key):
                raise AttributeError(f"Unknown state attribute: {key}")
            setattr(self.state, key, value)
        self.state.current_index = clamp_index(
            self.state.current_index, len(self.state.session_fields)
        )
        snap = self.snapshot()
        self.bus.emit(STATE_UPDATED, snap)
        return snap

    def set_error(self, exc: BaseException) -> AgentState:
        remediation = exc.remediation if isinstance(exc, PermissionDeniedError) else None
        return self.update(
            status="error",
            last_error=str(exc) or exc.__class__.__name__,
            last_error_kind=error_kind(exc),
            remediation=remediation,
        )

    def clear_error(self, status: AgentStatus = "idle") -> AgentState:
        return self.update(status=status, last_error=None, last_error_kind=None, remediation=None)
