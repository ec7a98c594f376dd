"""Configuration loading and typed agent settings."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILES = {"default.yaml": None, "models.yaml": "models"}


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse one YAML layer; an absent or empty file is an empty layer."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    layer = yaml.safe_load(text)
    if layer is None:
        return {}
    if not isinstance(layer, dict):
        raise ValueError(f"{path.name} must hold a mapping, got {type(layer).__name__}")
    return layer


def overlay(base: dict[str, Any], *layers: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``layers`` onto a copy of ``base``; later layers win."""
    result = copy.deepcopy(base)
    for layer in layers:
        for key, value in layer.items():
            current = result.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                result[key] = overlay(current, value)
            else:
                result[key] = copy.deepcopy(value)
    return result


def _env_layer() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    base_url = os.getenv("HEIDI_API_BASE_URL")
    if base_url:
        layer["records"] = {"base_url": base_url}
    provider = os.getenv("VISION_AI_PROVIDER")
    if provider:
        layer["models"] = {"vision": {"provider": provider.lower()}}
    return layer


def load_effective_config(root: Path) -> dict[str, Any]:
    """Read ``config/default.yaml`` and ``config/models.yaml`` (under ``models``).

    ``HEIDI_API_BASE_URL`` and ``VISION_AI_PROVIDER`` win over the files.
    """
    layers = []
    for filename, section in CONFIG_FILES.items():
        data = read_config_file(root / "config" / filename)
        layers.append({section: data} if section else data)
    return overlay({}, *layers, _env_layer())


def _ms(value: Any, default: int) -> float:
    return float(value if value is not None else default) / 1000.0


@dataclass
class AgentSettings:
    """Resolved timing, geometry, and matching settings for the agent core.

    All delays are stored in seconds.
    """

    agent_name: str = "scribe-bridge"
    own_app_names: list[str] = field(default_factory=lambda: ["scribe-bridge", "Python"])
    own_app_keywords: list[str] = field(default_factory=lambda: ["electron"])
    source_app_keywords: list[str] = field(default_factory=lambda: ["heidi"])
    panel_width: int = 400
    poll_interval: float = 1.0
    close_debounce_polls: int = 2
    validate_every_polls: int = 5
    animation_duration: float = 0.3
    animation_steps: int = 30
    pairing_settle: float = 0.3
    clipboard_settle: float = 0.2
    focus_settle: float = 0.4
    paste_land: float = 0.5
    restore_settle: float = 0.2
    min_confidence: float = 0.7
    domain_hint: str | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> AgentSettings:
        agent = config.get("agent", {})
        anim = config.get("animation", {})
        inj = config.get("injection", {})
        extraction = config.get("extraction", {})
        defaults = cls()
        return cls(
            agent_name=agent.get("name", defaults.agent_name),
            own_app_names=list(agent.get("own_app_names", defaults.own_app_names)),
            own_app_keywords=list(agent.get("own_app_keywords", defaults.own_app_keywords)),
            source_app_keywords=list(agent.get("source_app_keywords", defaults.source_app_keywords)),
            panel_width=int(agent.get("panel_width", defaults.panel_width)),
            poll_interval=_ms(agent.get("poll_interval_ms"), 1000),
            close_debounce_polls=int(agent.get("close_debounce_polls", defaults.close_debounce_polls)),
            validate_every_polls=int(agent.get("validate_every_polls", defaults.validate_every_polls)),
            animation_duration=_ms(anim.get("duration_ms"), 300),
            animation_steps=int(anim.get("steps", defaults.animation_steps)),
            pairing_settle=_ms(anim.get("pairing_settle_ms"), 300),
            clipboard_settle=_ms(inj.get("clipboard_settle_ms"), 200),
            focus_settle=_ms(inj.get("focus_settle_ms"), 400),
            paste_land=_ms(inj.get("paste_land_ms"), 500),
            restore_settle=_ms(inj.get("restore_settle_ms"), 200),
            min_confidence=float(extraction.get("min_confidence", defaults.min_confidence)),
            domain_hint=extraction.get("domain_hint", defaults.domain_hint),
        )

    @classmethod
    def instant(cls, **overrides: Any) -> AgentSettings:
        """Settings with every delay at zero, for headless runs and tests."""
        base: dict[str, Any] = {
            "poll_interval": 0.0,
            "animation_duration": 0.0,
            "pairing_settle": 0.0,
            "clipboard_settle": 0.0,
            "focus_settle": 0.0,
            "paste_land": 0.0,
            "restore_settle": 0.0,
        }
        base.update(overrides)
        return cls(**base)
