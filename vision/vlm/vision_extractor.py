"""Vision-model field extractor over OpenAI-compatible chat-completions endpoints.

OpenAI, Groq and Anthropic all accept the same multimodal request shape via
the ``openai`` SDK; only the base URL, default model and key variable differ.
"""

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from typing import Any

from core.errors import ExternalServiceError
from vision.base_vision import BaseFieldExtractor, CandidateField
from vision.vlm.response_parser import parse_candidates

logger = logging.getLogger("sb.vision.vlm")


@dataclass(frozen=True)
class ProviderSpec:
    base_url: str | None
    default_model: str
    key_envs: tuple[str, ...]
    model_env: str | None = None


PROVIDERS: dict[str, ProviderSpec] = {
    "openai": ProviderSpec(None, "gpt-4o", ("OPENAI_API_KEY",), "OPENAI_MODEL_ID"),
    "groq": ProviderSpec("https://api.groq.com/openai/v1", "llama-3.2-90b-vision-preview", ("GROQ_API_KEY",)),
    "anthropic": ProviderSpec(
        "https://api.anthropic.com/v1/",
        "claude-sonnet-4-5-20250929",
        ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
        "CLAUDE_MODEL_ID",
    ),
}
PROVIDERS["claude"] = PROVIDERS["anthropic"]

_EXTRACTION_PROMPT = """\
You are reading a screenshot from {domain}.

Extract the useful information on screen as key/value fields. Return ONLY a
JSON array of objects shaped like:
[
  {{"id": "snake_case_id", "label": "Human readable label", "value": "text as shown",
    "type": "name|date|id|text|number|list", "confidence": 0.0}}
]

Rules:
- Prefer fields whose label is clearly visible (e.g. "Patient Name", "MRN", "Date of Birth").
- Keep long narrative notes together as one or a few fields (e.g. "clinical_note"),
  never split line by line.
- Only include fields you are confident about (confidence >= 0.7); omit guesses.
- Ids are snake_case and stable for the same label.
- No markdown and no commentary, only the JSON array. Return [] if nothing is readable.
"""


def build_prompt(hint: str | None) -> str:
    return _EXTRACTION_PROMPT.format(domain=hint or "a clinical or medical application")


class VisionFieldExtractor(BaseFieldExtractor):
    """Sends a PNG screenshot to a vision model and parses the returned fields."""

    name = "vlm"

    def __init__(
        self,
        provider: str = "openai",
        model: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
        client: Any | None = None,
    ) -> None:
        if provider not in PROVIDERS:
            raise ValueError(f"Unsupported vision provider: {provider}")
        self.provider = provider
        self.profile = PROVIDERS[provider]
        env_model = os.getenv(self.profile.model_env) if self.profile.model_env else None
        self.model = env_model or model or self.profile.default_model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client

    def _api_key(self) -> str | None:
        for env in self.profile.key_envs:
            value = os.getenv(env)
            if value:
                return value
        return None

    def is_available(self) -> bool:
        return self._client is not None or bool(self._api_key())

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = self._api_key()
            if not api_key:
                raise ExternalServiceError(
                    f"{' or '.join(self.profile.key_envs)} not set; cannot use {self.provider} vision provider"
                )
            from openai import OpenAI

            self._client = OpenAI(api_key=api_key, base_url=self.profile.base_url)
        return self._client

    def extract(self, image: bytes, hint: str | None = None) -> list[CandidateField]:
        client = self._get_client()
        image_url = f"data:image/png;base64,{base64.b64encode(image).decode('utf-8')}"
        messages: list[dict[str, Any]] = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": build_prompt(hint)},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }
        ]
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:
            logger.error("%s vision call failed: %s", self.provider, exc)
            raise ExternalServiceError(f"{self.provider} vision call failed: {exc}") from exc

        content = response.choices[0].message.content or "[]"
        logger.info("%s response received (%d chars)", self.provider, len(content))
        return parse_candidates(content)
