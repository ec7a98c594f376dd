"""Local OCR field extractor built on Tesseract.

``image_to_data`` returns one row per recognized word with its block,
paragraph and line numbers. Words are regrouped into lines; lines shaped like
``Label: value`` become individual fields and the remaining text is kept as a
single ``screen_text`` field. Field confidence is the mean normalized word
confidence of the words it was built from.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from core.errors import ExternalServiceError
from core.field_merge import unique_field_id
from vision.base_vision import BaseFieldExtractor, CandidateField

logger = logging.getLogger("sb.vision.ocr")

_LABEL_RE = re.compile(r"^(?P<label>[A-Za-z][A-Za-z0-9 .#/()'-]{0,40}?)\s*:\s*(?P<value>\S.*)$")


@dataclass
class OCRLine:
    words: list[str] = field(default_factory=list)
    confidences: list[float] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(self.words).strip()

    @property
    def confidence(self) -> float:
        return sum(self.confidences) / len(self.confidences) if self.confidences else 0.0


def group_lines(data: dict[str, list[Any]]) -> list[OCRLine]:
    """Regroup Tesseract word rows into lines in reading order."""
    lines: dict[tuple[int, int, int], OCRLine] = {}
    texts = data.get("text", [])
    confs = data.get("conf", [])
    for idx, raw_text in enumerate(texts):
        word = str(raw_text).strip()
        if not word:
            continue
        try:
            raw_conf = float(confs[idx])
        except (IndexError, TypeError, ValueError):
            raw_conf = -1.0
        if raw_conf < 0:
            continue
        key = (
            int(data.get("block_num", [0] * len(texts))[idx]),
            int(data.get("par_num", [0] * len(texts))[idx]),
            int(data.get("line_num", [0] * len(texts))[idx]),
        )
        line = lines.setdefault(key, OCRLine())
        line.words.append(word)
        line.confidences.append(max(0.0, min(1.0, raw_conf / 100.0)))
    return list(lines.values())


def parse_fields(lines: list[OCRLine]) -> list[CandidateField]:
    fields: list[CandidateField] = []
    taken: list[str] = []
    narrative: list[OCRLine] = []

    for line in lines:
        match = _LABEL_RE.match(line.text)
        if match is None:
            narrative.append(line)
            continue
        label = match.group("label").strip()
        field_id = unique_field_id(label, taken)
        taken.append(field_id)
        fields.append(
            CandidateField(
                id=field_id,
                label=label,
                value=match.group("value").strip(),
                type="text",
                confidence=line.confidence,
            )
        )

    if narrative:
        words_conf = [c for line in narrative for c in line.confidences]
        fields.append(
            CandidateField(
                id=unique_field_id("screen_text", taken),
                label="Screen Text",
                value="\n".join(line.text for line in narrative),
                type="text",
                confidence=sum(words_conf) / len(words_conf) if words_conf else 0.0,
            )
        )
    return fields


class OCRFieldExtractor(BaseFieldExtractor):
    """Extracts fields with pytesseract when the tesseract binary is present."""

    name = "ocr"

    @staticmethod
    def _tesseract_available() -> bool:
        try:
            import pytesseract

            _ = pytesseract.get_tesseract_version()
            return True
        except Exception:
            return False

    def is_available(self) -> bool:
        return self._tesseract_available()

    def extract(self, image: bytes, hint: str | None = None) -> list[CandidateField]:
        _ = hint
        try:
            import pytesseract
            from PIL import Image

            with Image.open(io.BytesIO(image)) as img:
                data = pytesseract.image_to_data(img, output_type=pytesseract.Output.DICT)
        except Exception as exc:
            raise ExternalServiceError(f"Tesseract OCR failed: {exc}") from exc

        fields = parse_fields(group_lines(data))
        logger.info("OCR produced %d fields", len(fields))
        return fields
