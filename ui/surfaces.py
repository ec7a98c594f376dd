"""UI collaborator interfaces and a headless implementation that only logs."""

from __future__ import annotations

import logging
from typing import Protocol


class Surface(Protocol):
    is_visible: bool

    def show(self) -> None: ...

    def hide(self) -> None: ...


class PanelSurface(Surface, Protocol):
    def move_to(self, x: int) -> None: ...


class HeadlessSurface:
    """Records visibility and position changes instead of drawing anything."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.is_visible = False
        self.x: int | None = None
        self.positions: list[int] = []
        self.logger = logging.getLogger(f"sb.ui.{name}")

    def show(self) -> None:
        if not self.is_visible:
            self.logger.debug("show")
        self.is_visible = True

    def hide(self) -> None:
        if self.is_visible:
            self.logger.debug("hide")
        self.is_visible = False

    def move_to(self, x: int) -> None:
        self.x = x
        self.positions.append(x)
