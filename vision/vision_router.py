"""Extraction router selecting the vision model or the OCR fallback.

When ``vlm_enabled`` is true and the provider's API key is set, screenshots go
to the vision model. If that call fails and ``fallback_to_ocr`` is on, the
same image is read with Tesseract instead.
"""

from __future__ import annotations

import logging
from typing import Any

from core.errors import ExternalServiceError
from vision.base_vision import BaseFieldExtractor, CandidateField
from vision.ocr.ocr_engine import OCRFieldExtractor
from vision.vlm.vision_extractor import VisionFieldExtractor

logger = logging.getLogger("sb.vision")


class ExtractionRouter(BaseFieldExtractor):
    """Choose an extraction backend based on config and availability."""

    name = "router"

    def __init__(
        self,
        config: dict[str, Any],
        vlm: BaseFieldExtractor | None = None,
        ocr: BaseFieldExtractor | None = None,
    ) -> None:
        vision_cfg = config.get("models", {}).get("vision", {})
        self.vlm_enabled = bool(vision_cfg.get("vlm_enabled", True))
        self.fallback_to_ocr = bool(vision_cfg.get("fallback_to_ocr", True))

        self.vlm: BaseFieldExtractor | None = vlm
        if self.vlm is None and self.vlm_enabled:
            self.vlm = self._build_vlm(vision_cfg)
        self.ocr: BaseFieldExtractor = ocr or OCRFieldExtractor()

    @staticmethod
    def _build_vlm(vision_cfg: dict[str, Any]) -> BaseFieldExtractor | None:
        provider = str(vision_cfg.get("provider", "openai")).lower()
        try:
            extractor = VisionFieldExtractor(
                provider=provider,
                model=vision_cfg.get("models", {}).get(provider),
                max_tokens=int(vision_cfg.get("max_tokens", 4000)),
                temperature=float(vision_cfg.get("temperature", 0.1)),
            )
        except ValueError as exc:
            logger.warning("Vision provider disabled: %s", exc)
            return None
        if not extractor.is_available():
            logger.warning("Vision provider %s has no API key; OCR only.", provider)
            return None
        logger.info("Vision provider active (%s, model=%s)", provider, extractor.model)
        return extractor

    def is_available(self) -> bool:
        return (self.vlm is not None and self.vlm.is_available()) or self.ocr.is_available()

    def extract(self, image: bytes, hint: str | None = None) -> list[CandidateField]:
        """Route to the vision model first, then OCR when allowed."""
        if self.vlm is not None:
            try:
                return self.vlm.extract(image, hint)
            except Exception as exc:
                if not self.fallback_to_ocr:
                    raise
                logger.warning("Vision extraction failed, falling back to OCR: %s", exc)

        if self.ocr.is_available():
            return self.ocr.extract(image, hint)
        raise ExternalServiceError(
            "No extraction backend available. Set OPENAI_API_KEY or ANTHROPIC_API_KEY, or install tesseract."
        )
