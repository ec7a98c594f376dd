"""Agent control surface: the single writer of AgentState and owner of the watcher loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypedDict

from core.capture_pipeline import CapturePipeline
from core.config_loader import AgentSettings
from core.context_tracker import Classification, ContextTracker, FrontmostContext, titles_match
from core.errors import AgentError, ExternalServiceError, NoMatchingWindowError
from core.field_injector import FieldInjector
from core.field_merge import unique_field_id
from core.panel_state import PanelController, PanelState
from core.state_manager import AgentState, LinkedWindow, SessionField, StateManager
from core.window_geometry import GeometryCoordinator
from os_controller.base_controller import BaseController, WindowGeometry, WindowRef
from os_controller.screen_capture import Rect, ScreenCapture
from ui.surfaces import HeadlessSurface, PanelSurface, Surface
from vision.base_vision import BaseFieldExtractor

logger = logging.getLogger("sb.agent")


class OperationResult(TypedDict):
    success: bool
    error: str | None


class AgentController:
    """Wires tracker, geometry, panel, pipeline and injector behind one control surface.

    Every public coroutine catches its own failures, records them on the state
    as ``status="error"`` and returns an ``OperationResult`` instead of raising,
    so shortcut callbacks never see an exception.
    """

    def __init__(
        self,
        os_controller: BaseController,
        capture: ScreenCapture,
        extractor: BaseFieldExtractor,
        settings: AgentSettings | None = None,
        panel_surface: PanelSurface | None = None,
        icon_surface: Surface | None = None,
        pairing_surface: Surface | None = None,
        records: Any | None = None,
    ) -> None:
        self.os = os_controller
        self.settings = settings or AgentSettings()
        self.state = StateManager()
        self.records = records
        self.panel_surface = panel_surface or HeadlessSurface("panel")
        self.icon = icon_surface or HeadlessSurface("icon")
        self.pairing = pairing_surface or HeadlessSurface("pairing")

        self.tracker = ContextTracker(os_controller, self.settings)
        self.geometry = GeometryCoordinator(os_controller, self.tracker.is_own_app)
        self.panel = PanelController(
            self.geometry,
            self.panel_surface,
            self.icon,
            self.pairing,
            self.settings,
            on_change=self._on_panel_change,
        )
        self.pipeline = CapturePipeline(capture, extractor, self.state, self.settings)
        self.injector = FieldInjector(os_controller, self.state, self.settings)

        self._poll_count = 0
        self._watcher: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def get_state(self) -> AgentState:
        return self.state.snapshot()

    def on_state_updated(self, callback: Callable[[AgentState], None]) -> Callable[[], None]:
        return self.state.subscribe(callback)

    def get_linked_window(self) -> LinkedWindow | None:
        return self.state.state.linked_window

    def _on_panel_change(self, panel_state: PanelState) -> None:
        self.state.update(panel_state=panel_state.value)

    async def _guarded(self, name: str, operation: Callable[[], Awaitable[Any]]) -> OperationResult:
        try:
            await operation()
        except AgentError as exc:
            logger.warning("%s failed (%s): %s", name, exc.kind, exc)
            self.state.set_error(exc)
            return {"success": False, "error": str(exc)}
        except Exception as exc:
            logger.exception("%s failed unexpectedly", name)
            self.state.set_error(exc)
            return {"success": False, "error": str(exc) or exc.__class__.__name__}
        return {"success": True, "error": None}

    # ------------------------------------------------------------------
    # Session fields
    # ------------------------------------------------------------------

    async def capture_and_enrich(self, region: Rect | None = None) -> OperationResult:
        async def _run() -> None:
            result = await self.pipeline.capture_and_enrich(region)
            logger.info("Session now has %d fields (+%d new)", len(result.fields), result.added)

        return await self._guarded("capture_and_enrich", _run)

    async def select_previous(self) -> OperationResult:
        async def _run() -> None:
            self.injector.select_previous()

        return await self._guarded("select_previous", _run)

    async def select_next(self) -> OperationResult:
        async def _run() -> None:
            self.injector.select_next()

        return await self._guarded("select_next", _run)

    async def paste_current_field(self) -> OperationResult:
        return await self._guarded("paste_current_field", self.injector.paste_current_field)

    async def clear_session(self) -> OperationResult:
        async def _run() -> None:
            self.state.update(
                session_id=None,
                session_fields=[],
                current_index=0,
                status="idle",
                last_error=None,
                last_error_kind=None,
                remediation=None,
            )
            logger.info("Session cleared")

        return await self._guarded("clear_session", _run)

    async def add_manual_field(self, label: str, value: str) -> OperationResult:
        async def _run() -> None:
            label_text = label.strip()
            value_text = value.strip()
            if not label_text or not value_text:
                raise ValueError("Manual field needs a label and a value")
            fields = list(self.state.state.session_fields)
            field_id = unique_field_id(label_text, (f.id for f in fields))
            fields.append(SessionField(id=field_id, label=label_text, value=value_text, source="manual"))
            self.state.update(session_fields=fields)

        return await self._guarded("add_manual_field", _run)

    async def fetch_record_session(self, session_id: str) -> OperationResult:
        async def _run() -> None:
            if self.records is None:
                raise ExternalServiceError("Record API client is not configured")
            self.state.update(status="capturing")
            notes = await asyncio.to_thread(self.records.get_session_consult_notes, session_id)
            incoming: list[SessionField] = []
            taken: list[str] = []
            for note in notes:
                content = (note.content or "").strip()
                if not content:
                    continue
                field_id = unique_field_id("consult_note", taken)
                taken.append(field_id)
                incoming.append(
                    SessionField(id=field_id, label="Consult Note", value=content, source="record", type="text")
                )
            result = self.pipeline.enrich(incoming)
            logger.info("Imported %d consult notes from record session %s", result.added, session_id)

        return await self._guarded("fetch_record_session", _run)

    # ------------------------------------------------------------------
    # Pairing
    # ------------------------------------------------------------------

    async def list_windows(self) -> list[WindowRef]:
        """Visible windows eligible for pairing; empty on failure."""
        try:
            windows = await self.os.list_visible_windows()
        except Exception as exc:
            logger.warning("list_windows failed: %s", exc)
            self.state.set_error(exc)
            return []
        seen: set[tuple[str, str, int]] = set()
        eligible: list[WindowRef] = []
        for w in windows:
            key = (w["app_name"], w["title"], w["index"])
            if not w["title"].strip() or key in seen:
                continue
            if self.tracker.is_own_app(w["app_name"]) or self.tracker.is_source(w["app_name"], w["title"]):
                continue
            seen.add(key)
            eligible.append(w)
        return eligible

    async def set_linked_window(self, window: LinkedWindow | WindowRef) -> OperationResult:
        async def _run() -> None:
            linked = (
                window
                if isinstance(window, LinkedWindow)
                else LinkedWindow(window["app_name"], window["title"], window.get("index"))
            )
            self.state.update(linked_window=linked)
            logger.info("Linked target window: %s (%r)", linked.app_name, linked.window_title)
            self.pairing.hide()

            context = await self.tracker.poll(linked)
            in_source = context is not None and context.classification is Classification.SOURCE
            if (in_source or self.tracker.last_known_source_context) and self.panel.state is PanelState.CLOSED:
                await self._activate_source()
                await self.panel.open(linked=True, extra_windows=await self._linked_geometry(linked))
            elif self.panel.state is PanelState.CLOSED:
                self.icon.show()

        return await self._guarded("set_linked_window", _run)

    async def disconnect(self) -> OperationResult:
        async def _run() -> None:
            self.state.update(linked_window=None)
            logger.info("Linked target window cleared")
            await self.panel.close()

        return await self._guarded("disconnect", _run)

    async def icon_clicked(self) -> OperationResult:
        if self.state.state.linked_window is None:
            self.pairing.show()
            return {"success": True, "error": None}
        return await self.toggle_panel()

    # ------------------------------------------------------------------
    # Panel and window switching
    # ------------------------------------------------------------------

    async def toggle_panel(self) -> OperationResult:
        async def _run() -> None:
            linked = self.state.state.linked_window
            if self.panel.state is PanelState.OPEN:
                await self.panel.toggle(can_open=True, linked=linked is not None)
                return
            context = await self.tracker.poll(linked)
            can_open = self.tracker.can_open(context, linked)
            await self.panel.toggle(
                can_open=can_open,
                linked=linked is not None,
                extra_windows=await self._linked_geometry(linked),
            )

        return await self._guarded("toggle_panel", _run)

    async def switch_linked_windows(self) -> OperationResult:
        async def _run() -> None:
            linked = self.state.state.linked_window
            if linked is None:
                raise NoMatchingWindowError("No target window linked; pair a window first")
            context = await self.tracker.poll(linked)
            if context is None:
                logger.info("Cannot switch: frontmost window unknown")
                return
            if context.classification is Classification.SOURCE:
                await self.os.activate_window(linked.app_name, linked.window_title)
            elif context.classification is Classification.LINKED_TARGET:
                await self._activate_source()
            else:
                logger.info("Switch ignored from %s", context.classification.value)

        return await self._guarded("switch_linked_windows", _run)

    async def _activate_source(self) -> None:
        app_name = self.tracker.last_source_app
        if app_name is None:
            for w in await self.os.list_visible_windows():
                if self.tracker.is_source(w["app_name"], w["title"]):
                    app_name = w["app_name"]
                    break
        if app_name is None:
            raise NoMatchingWindowError("Source application is not running")
        await self.os.activate_window(app_name)

    async def _linked_geometry(self, linked: LinkedWindow | None) -> list[WindowGeometry]:
        """The linked target and the source window, both pushed when the panel opens."""
        if linked is None:
            return []
        try:
            windows = await self.os.list_window_geometries()
        except AgentError as exc:
            logger.debug("Linked window geometry unavailable: %s", exc)
            return []
        targets = [
            w for w in windows if w["app_name"] == linked.app_name and titles_match(w["title"], linked.window_title)
        ][:1]
        sources = [w for w in windows if self.tracker.is_source(w["app_name"], w["title"])]
        if self.tracker.last_source_app is not None:
            preferred = [w for w in sources if w["app_name"] == self.tracker.last_source_app]
            sources = preferred or sources
        if sources:
            targets.append(max(sources, key=lambda w: w["width"] * w["height"]))
        return targets

    # ------------------------------------------------------------------
    # Watcher
    # ------------------------------------------------------------------

    def _update_idle_surfaces(self, context: FrontmostContext | None) -> None:
        if context is None or context.classification is Classification.OTHER:
            self.icon.hide()
            self.pairing.hide()
        elif context.classification is Classification.SOURCE:
            self.icon.show()
        elif context.classification is Classification.LINKED_TARGET:
            self.icon.show()
            self.pairing.hide()

    async def validate_linked_window(self) -> bool:
        """Clear the link when its window is gone; an empty window list is ignored."""
        linked = self.state.state.linked_window
        if linked is None:
            return False
        windows = await self.os.list_visible_windows()
        if not windows:
            logger.debug("Window list empty; skipping linked-window validation")
            return True
        for w in windows:
            if w["app_name"] == linked.app_name and titles_match(w["title"], linked.window_title):
                return True
        logger.info("Linked window %s (%r) no longer visible; unlinking", linked.app_name, linked.window_title)
        self.state.update(linked_window=None)
        return False

    async def tick(self) -> FrontmostContext | None:
        """One watcher iteration."""
        self._poll_count += 1
        linked = self.state.state.linked_window
        context = await self.tracker.poll(linked)
        can_open = self.tracker.can_open(context, linked)

        if self.panel.state is PanelState.OPEN:
            await self.panel.on_poll(can_open)
        elif self.panel.state is PanelState.CLOSED:
            self._update_idle_surfaces(context)
            every = max(1, self.settings.validate_every_polls)
            if linked is not None and self._poll_count % every == 0:
                try:
                    await self.validate_linked_window()
                except AgentError as exc:
                    logger.debug("Linked-window validation skipped: %s", exc)
        return context

    async def _watch(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception:
                logger.exception("Error in window watcher")
            await asyncio.sleep(self.settings.poll_interval)

    def start(self) -> None:
        if self._watcher is None or self._watcher.done():
            self._watcher = asyncio.get_running_loop().create_task(self._watch())
            logger.info("Window watcher started (interval %.2fs)", self.settings.poll_interval)

    async def stop(self) -> None:
        if self._watcher is None:
            return
        self._watcher.cancel()
        try:
            await self._watcher
        except asyncio.CancelledError:
            pass
        self._watcher = None
        await self.panel.close()
