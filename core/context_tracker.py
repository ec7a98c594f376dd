"""Frontmost-window classification relative to the source app and the linked target."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from core.config_loader import AgentSettings
from core.errors import AgentError
from core.state_manager import LinkedWindow
from os_controller.base_controller import BaseController

logger = logging.getLogger("sb.tracker")


class Classification(str, Enum):
    SOURCE = "source"
    LINKED_TARGET = "linked_target"
    OWN = "own"
    OTHER = "other"


@dataclass(frozen=True)
class FrontmostContext:
    app_name: str
    window_title: str
    classification: Classification


def titles_match(observed: str, reference: str) -> bool:
    """Case-insensitive containment in either direction; empty strings never match."""
    a = observed.strip().lower()
    b = reference.strip().lower()
    if not a or not b:
        return False
    return a == b or a in b or b in a


class ContextTracker:
    """Classifies the frontmost window and keeps the sticky source-context flag.

    ``last_known_source_context`` is set whenever the source app is seen and
    only cleared when the linked target or an unrelated external window comes
    to the front, so the agent's own popups do not count as leaving the source.
    """

    def __init__(self, controller: BaseController, settings: AgentSettings) -> None:
        self.controller = controller
        self.settings = settings
        self.last_known_source_context = False
        self.last_context: FrontmostContext | None = None
        self.last_source_app: str | None = None

    def is_own_app(self, app_name: str) -> bool:
        lowered = app_name.strip().lower()
        if lowered in (name.lower() for name in self.settings.own_app_names):
            return True
        return any(k.lower() in lowered for k in self.settings.own_app_keywords)

    def is_source(self, app_name: str, title: str) -> bool:
        app = app_name.lower()
        text = title.lower()
        return any(k.lower() in app or k.lower() in text for k in self.settings.source_app_keywords)

    def is_linked(self, app_name: str, title: str, linked: LinkedWindow | None) -> bool:
        if linked is None:
            return False
        if app_name.strip().lower() != linked.app_name.strip().lower():
            return False
        return titles_match(title, linked.window_title)

    def classify(self, app_name: str, title: str, linked: LinkedWindow | None) -> Classification:
        if self.is_own_app(app_name):
            return Classification.OWN
        if self.is_source(app_name, title):
            return Classification.SOURCE
        if self.is_linked(app_name, title, linked):
            return Classification.LINKED_TARGET
        return Classification.OTHER

    def observe(self, classification: Classification) -> None:
        """Update the sticky flag from one classification."""
        if classification is Classification.SOURCE:
            self.last_known_source_context = True
        elif classification in (Classification.LINKED_TARGET, Classification.OTHER):
            self.last_known_source_context = False

    def can_open(self, context: FrontmostContext | None, linked: LinkedWindow | None) -> bool:
        if context is None:
            return False
        cls = context.classification
        if cls in (Classification.SOURCE, Classification.LINKED_TARGET):
            return True
        if cls is Classification.OWN:
            return self.last_known_source_context or linked is not None
        return False

    async def poll(self, linked: LinkedWindow | None) -> FrontmostContext | None:
        """Query and classify the frontmost window; None when it cannot be read."""
        try:
            front = await self.controller.query_frontmost()
        except AgentError as exc:
            logger.debug("Frontmost query failed: %s", exc)
            self.last_context = None
            return None
        if front is None:
            self.last_context = None
            return None

        classification = self.classify(front["app_name"], front["title"], linked)
        self.observe(classification)
        if classification is Classification.SOURCE:
            self.last_source_app = front["app_name"]
        context = FrontmostContext(front["app_name"], front["title"], classification)
        if self.last_context is None or self.last_context.classification is not classification:
            logger.info("Frontmost %s (%r) -> %s", context.app_name, context.window_title, classification.value)
        self.last_context = context
        return context
