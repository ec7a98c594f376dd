"""Base field-extractor abstraction and the candidate field model."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CandidateField(BaseModel):
    """One extraction result before confidence filtering and merge."""

    model_config = ConfigDict(extra="ignore")

    id: str
    label: str = ""
    value: str
    type: str | None = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field id must not be empty")
        return v

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: object) -> str:
        if v is None:
            return ""
        if isinstance(v, (list, tuple)):
            return "\n".join(str(item) for item in v)
        return str(v)


class BaseFieldExtractor(ABC):
    """Abstract interface for OCR and vision-model field extractors."""

    name = "base"

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the extractor can run in the current environment."""

    @abstractmethod
    def extract(self, image: bytes, hint: str | None = None) -> list[CandidateField]:
        """Extract candidate fields from PNG image bytes."""
