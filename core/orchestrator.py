"""Wires the macOS boundaries, extractors and Record API client into one agent."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.agent_controller import AgentController
from core.config_loader import AgentSettings, load_effective_config
from os_controller.mac_controller import MacController
from os_controller.screen_capture import ScreenCapture
from records.client import RecordApiClient
from vision.vision_router import ExtractionRouter

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@dataclass
class RuntimeBundle:
    config: dict[str, Any]
    settings: AgentSettings
    agent: AgentController
    records: RecordApiClient


def build_runtime(root: Path | None = None) -> RuntimeBundle:
    """Resolve config under ``root`` and build a ready-to-start agent."""
    config = load_effective_config((root or PROJECT_ROOT).resolve())
    settings = AgentSettings.from_config(config)
    records = RecordApiClient.from_config(config)
    agent = AgentController(
        os_controller=MacController(),
        capture=ScreenCapture(),
        extractor=ExtractionRouter(config),
        settings=settings,
        records=records if records.enabled else None,
    )
    return RuntimeBundle(config, settings, agent, records)
