"""Shared fakes for the OS, capture and extraction boundaries."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from core.agent_controller import AgentController
from core.config_loader import AgentSettings
from core.errors import NoMatchingWindowError
from os_controller.base_controller import (
    BaseController,
    Bounds,
    FrontmostWindow,
    WindowGeometry,
    WindowRef,
)
from vision.base_vision import BaseFieldExtractor, CandidateField


def make_window(
    app_name: str,
    title: str,
    x: int = 0,
    y: int = 25,
    width: int = 1200,
    height: int = 800,
    index: int = 1,
    fullscreen: bool = False,
) -> WindowGeometry:
    return {
        "app_name": app_name,
        "title": title,
        "index": index,
        "x": x,
        "y": y,
        "width": width,
        "height": height,
        "fullscreen": fullscreen,
    }


class FakeController(BaseController):
    """In-memory windows, clipboard and keystroke log."""

    def __init__(self) -> None:
        self.windows: list[WindowGeometry] = []
        self.frontmost: FrontmostWindow | None = None
        self.frontmost_error: Exception | None = None
        self.list_error: Exception | None = None
        self.bounds_errors: dict[str, Exception] = {}
        self.clipboard = ""
        self.pasted: list[str] = []
        self.keystrokes: list[tuple[str, list[str]]] = []
        self.paste_error: Exception | None = None
        self.paste_gate: asyncio.Event | None = None
        self.activated: list[tuple[str, str | None]] = []
        self.set_bounds_calls: list[tuple[str, str, Bounds]] = []
        self.screen = (1440, 900)
        self.visible_override: list[WindowRef] | None = None

    def focus(self, app_name: str, title: str) -> None:
        self.frontmost = {"app_name": app_name, "title": title}

    async def query_frontmost(self) -> FrontmostWindow | None:
        if self.frontmost_error is not None:
            raise self.frontmost_error
        return self.frontmost

    async def list_visible_windows(self) -> list[WindowRef]:
        if self.list_error is not None:
            raise self.list_error
        if self.visible_override is not None:
            return list(self.visible_override)
        return [{"app_name": w["app_name"], "title": w["title"], "index": w["index"]} for w in self.windows]

    async def list_window_geometries(self, app_name: str | None = None) -> list[WindowGeometry]:
        if self.list_error is not None:
            raise self.list_error
        return [dict(w) for w in self.windows if app_name is None or w["app_name"] == app_name]  # type: ignore[misc]

    def find(self, app_name: str, title: str) -> WindowGeometry | None:
        for w in self.windows:
            if w["app_name"] == app_name and w["title"] == title:
                return w
        return None

    async def set_window_bounds(self, window: WindowRef, bounds: Bounds) -> None:
        if window["app_name"] in self.bounds_errors:
            raise self.bounds_errors[window["app_name"]]
        target = self.find(window["app_name"], window["title"])
        if target is None:
            raise NoMatchingWindowError(f"{window['app_name']} window {window['title']!r} not found")
        target["x"], target["y"], target["width"], target["height"] = bounds
        self.set_bounds_calls.append((window["app_name"], window["title"], bounds))

    async def activate_window(self, app_name: str, title: str | None = None) -> None:
        self.activated.append((app_name, title))

    async def send_paste(self) -> None:
        if self.paste_gate is not None:
            await self.paste_gate.wait()
        if self.paste_error is not None:
            raise self.paste_error
        self.pasted.append(self.clipboard)

    async def send_keystroke(self, key: str, modifiers: list[str] | None = None) -> None:
        self.keystrokes.append((key, list(modifiers or [])))

    async def read_clipboard(self) -> str:
        return self.clipboard

    async def write_clipboard(self, text: str) -> None:
        self.clipboard = text

    async def screen_size(self) -> tuple[int, int]:
        return self.screen


class FakeCapture:
    def __init__(self) -> None:
        self.error: Exception | None = None
        self.calls = 0
        self.regions: list[tuple[int, int, int, int]] = []

    def capture_full_screen(self) -> bytes:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return b"\x89PNG fake"

    def capture_region(self, rect: tuple[int, int, int, int]) -> bytes:
        self.regions.append(rect)
        return self.capture_full_screen()


class FakeExtractor(BaseFieldExtractor):
    name = "fake"

    def __init__(self) -> None:
        self.results: list[list[CandidateField]] = []
        self.error: Exception | None = None
        self.hints: list[str | None] = []

    def queue(self, *fields: dict) -> None:
        self.results.append([CandidateField(**f) for f in fields])

    def is_available(self) -> bool:
        return True

    def extract(self, image: bytes, hint: str | None = None) -> list[CandidateField]:
        self.hints.append(hint)
        if self.error is not None:
            raise self.error
        return self.results.pop(0) if self.results else []


@pytest.fixture
def settings() -> AgentSettings:
    return AgentSettings.instant(animation_steps=4, domain_hint="clinical notes")


@pytest.fixture
def controller() -> FakeController:
    return FakeController()


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def window() -> Callable[..., WindowGeometry]:
    return make_window


@pytest.fixture
def agent(
    controller: FakeController,
    capture: FakeCapture,
    extractor: FakeExtractor,
    settings: AgentSettings,
) -> AgentController:
    return AgentController(
        os_controller=controller,
        capture=capture,  # type: ignore[arg-type]
        extractor=extractor,
        settings=settings,
    )
