"""CLI entry point and application wiring."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from tubesum.cli.commands import register_commands
from tubesum.cli.commands.common import ContainerFactory
from tubesum.services.container import ServiceContainer


class CLIApplication:
    """Central orchestrator for the tubesum Typer application."""

    def __init__(
        self,
        console: Optional[Console] = None,
        container_factory: Optional[ContainerFactory] = None,
    ) -> None:
        self.console = console or Console()
        factory = container_factory or (lambda: ServiceContainer.build(console=self.console))
        self._app = typer.Typer(add_completion=False, rich_markup_mode="rich")
        register_commands(self._app, self.console, factory)

    @property
    def app(self) -> typer.Typer:
        """Return the underlying Typer application instance."""

        return self._app

    def run(self, *, prog_name: Optional[str] = None, args: Optional[list[str]] = None) -> None:
        """Invoke the Typer application with optional overrides."""

        self._app(prog_name=prog_name, args=args)


def create_app(
    console: Optional[Console] = None,
    container_factory: Optional[ContainerFactory] = None,
) -> typer.Typer:
    """Factory helper that returns the configured Typer application."""

    return CLIApplication(console=console, container_factory=container_factory).app


def main() -> None:
    """Console script entry point for `python -m tubesum` or the installed CLI."""

    CLIApplication().run(prog_name="tubesum")


__all__ = ["CLIApplication", "create_app", "main"]
