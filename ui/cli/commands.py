"""Typer command handlers."""

from __future__ import annotations

import asyncio
import json
import logging

import typer

from core.orchestrator import RuntimeBundle, build_runtime
from core.state_manager import AgentState
from ui.hotkeys import ShortcutBinder

logger = logging.getLogger("sb.cli")


def _print_state(state: AgentState) -> None:
    current = state.current_field()
    label = current.label if current else "-"
    typer.echo(
        f"[{state.status}] fields={len(state.session_fields)} "
        f"selected={label} panel={state.panel_state}"
        + (f" error={state.last_error}" if state.last_error else "")
    )


async def _serve(bundle: RuntimeBundle) -> None:
    agent = bundle.agent
    agent.on_state_updated(_print_state)
    binder = ShortcutBinder(agent, asyncio.get_running_loop(), bundle.config.get("shortcuts"))
    binder.start()
    agent.start()
    try:
        await asyncio.Event().wait()
    finally:
        binder.stop()
        await agent.stop()


def run(log_level: str = "INFO") -> None:
    """Run the agent until interrupted."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    bundle = build_runtime()
    typer.echo("Agent running. Press Ctrl+C to stop.")
    try:
        asyncio.run(_serve(bundle))
    except KeyboardInterrupt:
        typer.echo("stopped")


def config_show() -> None:
    """Print effective config."""
    bundle = build_runtime()
    typer.echo(json.dumps(bundle.config, indent=2, default=str))
