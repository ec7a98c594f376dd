"""Base interface for OS automation controllers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TypedDict


class FrontmostWindow(TypedDict):
    app_name: str
    title: str


class WindowRef(TypedDict):
    app_name: str
    title: str
    index: int


class WindowGeometry(TypedDict):
    app_name: str
    title: str
    index: int
    x: int
    y: int
    width: int
    height: int
    fullscreen: bool


Bounds = tuple[int, int, int, int]


class BaseController(ABC):
    """Abstract automation controller interface.

    Every method is a suspension point for the agent's event loop. Failures
    surface as ``core.errors`` types so callers can tell a denied permission
    from a vanished window.
    """

    @abstractmethod
    async def query_frontmost(self) -> FrontmostWindow | None:
        """Return the frontmost application and window title, or None."""

    @abstractmethod
    async def list_visible_windows(self) -> list[WindowRef]:
        """Return every visible window of every visible process."""

    @abstractmethod
    async def list_window_geometries(self, app_name: str | None = None) -> list[WindowGeometry]:
        """Return window bounds, optionally restricted to one process."""

    @abstractmethod
    async def set_window_bounds(self, window: WindowRef, bounds: Bounds) -> None:
        """Move and resize a window to ``(x, y, width, height)``."""

    @abstractmethod
    async def activate_window(self, app_name: str, title: str | None = None) -> None:
        """Bring an application (and optionally one of its windows) to the front."""

    @abstractmethod
    async def send_paste(self) -> None:
        """Issue the platform paste shortcut."""

    @abstractmethod
    async def send_keystroke(self, key: str, modifiers: list[str] | None = None) -> None:
        """Press a single key, e.g. ``tab`` or a character, with optional modifiers."""

    @abstractmethod
    async def read_clipboard(self) -> str:
        """Return the current plain-text clipboard contents."""

    @abstractmethod
    async def write_clipboard(self, text: str) -> None:
        """Replace the plain-text clipboard contents."""

    @abstractmethod
    async def screen_size(self) -> tuple[int, int]:
        """Return the main display's ``(width, height)``."""
