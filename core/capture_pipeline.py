"""Capture -> extract -> merge pipeline feeding the session field store."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable

from core.config_loader import AgentSettings
from core.errors import AgentError, ExternalServiceError
from core.field_merge import MergeResult, merge_fields
from core.state_manager import SessionField, StateManager
from os_controller.screen_capture import Rect, ScreenCapture
from vision.base_vision import BaseFieldExtractor, CandidateField

logger = logging.getLogger("sb.pipeline")


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}"


def accept_candidates(candidates: Iterable[CandidateField], min_confidence: float) -> list[CandidateField]:
    return [c for c in candidates if c.confidence >= min_confidence and c.value.strip()]


def to_session_fields(candidates: Iterable[CandidateField], source: str) -> list[SessionField]:
    return [
        SessionField(id=c.id, label=c.label or c.id, value=c.value.strip(), source=source, type=c.type)
        for c in candidates
    ]


class CapturePipeline:
    """Captures the screen, extracts fields, and merges them into the session.

    The session is only written after extraction succeeds, so a failed capture
    leaves existing fields untouched.
    """

    def __init__(
        self,
        capture: ScreenCapture,
        extractor: BaseFieldExtractor,
        state: StateManager,
        settings: AgentSettings,
    ) -> None:
        self.capture = capture
        self.extractor = extractor
        self.state = state
        self.settings = settings

    async def _grab(self, region: Rect | None) -> bytes:
        try:
            if region is None:
                return await asyncio.to_thread(self.capture.capture_full_screen)
            return await asyncio.to_thread(self.capture.capture_region, region)
        except AgentError:
            raise
        except Exception as exc:
            raise ExternalServiceError(f"Screen capture failed: {exc}") from exc

    async def _extract(self, image: bytes) -> list[CandidateField]:
        try:
            return await asyncio.to_thread(self.extractor.extract, image, self.settings.domain_hint)
        except AgentError:
            raise
        except Exception as exc:
            raise ExternalServiceError(f"Field extraction failed: {exc}") from exc

    async def capture_and_enrich(self, region: Rect | None = None) -> MergeResult:
        self.state.update(status="capturing", last_error=None, last_error_kind=None, remediation=None)
        image = await self._grab(region)
        candidates = await self._extract(image)
        accepted = accept_candidates(candidates, self.settings.min_confidence)
        logger.info(
            "Extracted %d candidates, %d above confidence %.2f",
            len(candidates),
            len(accepted),
            self.settings.min_confidence,
        )
        return self.enrich(to_session_fields(accepted, source="capture"))

    def enrich(self, incoming: list[SessionField]) -> MergeResult:
        """Merge already-accepted fields into the current session and broadcast."""
        current = self.state.state
        result = merge_fields(current.session_fields, incoming, current.current_index)
        self.state.update(
            session_fields=result.fields,
            current_index=result.current_index,
            session_id=current.session_id or new_session_id(),
            status="idle",
        )
        return result
