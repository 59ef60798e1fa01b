"""CLI commands for managing subscribed channels."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Tuple
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from tubesum.cli.commands.common import ContainerFactory, ExitCode, close_container
from tubesum.config.settings import load_channel_seeds
from tubesum.models.channel import DEFAULT_CATEGORY, Channel
from tubesum.services.storage import ChannelAlreadyExistsError, StorageError
from tubesum.services.youtube import ChannelLookupError


def register(app: typer.Typer, console: Console, container_factory: ContainerFactory) -> None:
    """Attach the ``channels`` command group to the root application."""

    channels_app = typer.Typer(help="Manage subscribed YouTube channels.", no_args_is_help=True)
    app.add_typer(channels_app, name="channels")

    @channels_app.command("add")
    def add_channel(
        identifier: str = typer.Argument(..., help="Channel URL, @handle or UC... id"),
        category: str = typer.Option(DEFAULT_CATEGORY, "--category", "-c", help="Category label"),
    ) -> None:
        """Resolve a channel against YouTube and subscribe to it."""

        async def _add() -> Channel:
            container = container_factory()
            try:
                info = await container.youtube.resolve_channel(identifier)
                return await asyncio.to_thread(container.storage.add_channel, info, category=category)
            finally:
                await close_container(container)

        try:
            channel = asyncio.run(_add())
        except ChannelLookupError as exc:
            console.print(f"[red]Channel not found:[/red] {exc}")
            raise typer.Exit(code=ExitCode.NOT_FOUND) from exc
        except ChannelAlreadyExistsError as exc:
            console.print(f"[yellow]{exc}[/yellow]")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc

        console.print(f"[green]Subscribed to[/green] {channel.channel_name} [dim]({channel.category})[/dim]")
        console.print(f"Record ID: {channel.id}")

    @channels_app.command("list")
    def list_channels() -> None:
        """Show every subscribed channel with its summarized video count."""

        async def _list() -> List[Channel]:
            container = container_factory()
            try:
                return await asyncio.to_thread(container.storage.list_all_channels)
            finally:
                await close_container(container)

        try:
            channels = asyncio.run(_list())
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc

        if not channels:
            console.print("[yellow]No channels configured.[/yellow]")
            return

        table = Table(title="Channels")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Category")
        table.add_column("Videos", justify="right")
        for channel in channels:
            table.add_row(str(channel.id), channel.channel_name, channel.category, str(channel.video_count or 0))
        console.print(table)

    @channels_app.command("remove")
    def remove_channel(record_id: str = typer.Argument(..., help="Channel record UUID")) -> None:
        """Delete a channel along with its videos and queued entries."""

        try:
            parsed_id = UUID(record_id)
        except ValueError as exc:
            console.print(f"[red]Error:[/red] {record_id!r} is not a valid UUID")
            raise typer.Exit(code=ExitCode.INVALID_INPUT) from exc

        async def _remove() -> bool:
            container = container_factory()
            try:
                return await asyncio.to_thread(container.storage.delete_channel, parsed_id)
            finally:
                await close_container(container)

        try:
            deleted = asyncio.run(_remove())
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc

        if not deleted:
            console.print(f"[yellow]Channel {parsed_id} not found.[/yellow]")
            raise typer.Exit(code=ExitCode.NOT_FOUND)
        console.print(f"[green]Channel {parsed_id} deleted.[/green]")

    @channels_app.command("import")
    def import_channels(
        seed_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML file listing channels"),
    ) -> None:
        """Subscribe to every channel listed in a YAML seed file, skipping existing ones."""

        seeds = load_channel_seeds(seed_file).channels
        if not seeds:
            console.print("[yellow]No channels listed in seed file.[/yellow]")
            return

        async def _import() -> Tuple[int, int, int]:
            added = skipped = failed = 0
            container = container_factory()
            try:
                for seed in seeds:
                    try:
                        info = await container.youtube.resolve_channel(seed.url)
                        channel = await asyncio.to_thread(container.storage.add_channel, info, category=seed.category)
                    except ChannelAlreadyExistsError:
                        skipped += 1
                        console.print(f"[dim]Already subscribed:[/dim] {seed.url}")
                    except ChannelLookupError as exc:
                        failed += 1
                        console.print(f"[red]Could not resolve[/red] {seed.url}: {exc}")
                    else:
                        added += 1
                        console.print(f"[green]Added[/green] {channel.channel_name} ({channel.category})")
            finally:
                await close_container(container)
            return added, skipped, failed

        try:
            added, skipped, failed = asyncio.run(_import())
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc

        console.print(f"Imported {added} channel(s); {skipped} already present; {failed} failed.")
        if failed:
            raise typer.Exit(code=ExitCode.NOT_FOUND)


__all__ = ["register"]
