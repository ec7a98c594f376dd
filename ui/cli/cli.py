"""CLI entrypoint for scribe-bridge."""

from __future__ import annotations

import typer

from ui.cli import commands

app = typer.Typer(help="Clinical notes to form bridge agent")
config_app = typer.Typer(help="Configuration commands")


@app.command("run")
def run_cmd(
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
) -> None:
    """Start the window watcher and global shortcuts."""
    commands.run(log_level=log_level)


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
