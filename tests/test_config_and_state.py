"""Tests for configuration loading, settings resolution and the state store."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config_loader import AgentSettings, load_effective_config, overlay, read_config_file
from core.errors import PermissionDeniedError
from core.state_manager import SessionField, StateManager, clamp_index


def test_read_config_file_missing_empty_and_invalid(tmp_path: Path) -> None:
    assert read_config_file(tmp_path / "absent.yaml") == {}
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert read_config_file(empty) == {}
    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_config_file(bad)


def test_overlay_is_recursive_and_leaves_base_untouched() -> None:
    base = {"a": {"b": 1, "c": 2}, "d": 1}

    merged = overlay(base, {"a": {"c": 3}}, {"d": 2})

    assert merged == {"a": {"b": 1, "c": 3}, "d": 2}
    assert base == {"a": {"b": 1, "c": 2}, "d": 1}


def test_effective_config_layers_models_and_env(tmp_path: Path, monkeypatch) -> None:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text(
        "agent:\n  panel_width: 360\n  poll_interval_ms: 500\nrecords:\n  base_url: https://yaml.example\n",
        encoding="utf-8",
    )
    (config_dir / "models.yaml").write_text("vision:\n  provider: openai\n", encoding="utf-8")
    monkeypatch.setenv("HEIDI_API_BASE_URL", "https://env.example")
    monkeypatch.setenv("VISION_AI_PROVIDER", "Claude")

    config = load_effective_config(tmp_path)
    settings = AgentSettings.from_config(config)

    assert config["records"]["base_url"] == "https://env.example"
    assert config["models"]["vision"]["provider"] == "claude"
    assert settings.panel_width == 360
    assert settings.poll_interval == pytest.approx(0.5)
    assert settings.animation_steps == 30
    assert settings.min_confidence == pytest.approx(0.7)


def test_repository_defaults_resolve() -> None:
    root = Path(__file__).resolve().parents[1]

    settings = AgentSettings.from_config(load_effective_config(root))

    assert settings.panel_width == 400
    assert settings.clipboard_settle == pytest.approx(0.2)
    assert settings.paste_land == pytest.approx(0.5)
    assert "heidi" in settings.source_app_keywords


def test_clamp_index_bounds() -> None:
    assert clamp_index(-3, 5) == 0
    assert clamp_index(9, 5) == 4
    assert clamp_index(2, 0) == 0


def test_update_clamps_selection_and_broadcasts_copies() -> None:
    manager = StateManager()
    received = []
    manager.subscribe(received.append)

    manager.update(session_fields=[SessionField("a", "A", "1"), SessionField("b", "B", "2")], current_index=1)
    manager.update(session_fields=[SessionField("a", "A", "1")])

    assert manager.state.current_index == 0
    assert [s.current_index for s in received] == [1, 0]
    received[0].session_fields.clear()
    assert len(manager.state.session_fields) == 1


def test_set_error_records_kind_and_hint() -> None:
    manager = StateManager()

    manager.set_error(PermissionDeniedError("Accessibility disabled"))

    assert manager.state.status == "error"
    assert manager.state.last_error == "Accessibility disabled"
    assert manager.state.last_error_kind == "permission_denied"
    assert "Accessibility" in (manager.state.remediation or "")


def test_update_rejects_unknown_attribute() -> None:
    with pytest.raises(AttributeError):
        StateManager().update(not_a_field=1)
