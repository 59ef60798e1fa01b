"""Command registration utilities for the tubesum CLI."""

from __future__ import annotations

import typer
from rich.console import Console

from tubesum.cli.commands import channels, pipeline
from tubesum.cli.commands.common import ContainerFactory, ExitCode


def register_commands(app: typer.Typer, console: Console, container_factory: ContainerFactory) -> None:
    """Attach command groups to the provided Typer application."""

    pipeline.register(app, console, container_factory)
    channels.register(app, console, container_factory)

    @app.callback(invoke_without_command=True)
    def main_callback(ctx: typer.Context) -> None:
        """Summarize new uploads from subscribed YouTube channels."""

        if ctx.invoked_subcommand is None:
            console.print("[bold green]tubesum CLI ready for commands.[/bold green]")


__all__ = ["ExitCode", "register_commands"]
