"""CLI commands for running ingestion, submitting single videos and serving the API."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from typing import Awaitable, Callable, List, Optional, TypeVar

import typer
import uvicorn
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from tubesum.cli.commands.common import ContainerFactory, ExitCode, close_container
from tubesum.config.settings import get_settings
from tubesum.db.migrate import run_migrations
from tubesum.models.channel import DEFAULT_CATEGORY
from tubesum.models.job import JobStatus, SingleVideoJob
from tubesum.models.video import PendingVideo
from tubesum.services.container import ServiceContainer
from tubesum.services.ingestion import IngestionReport
from tubesum.services.jobs import DUPLICATE_MESSAGE
from tubesum.services.storage import StorageError
from tubesum.utils.validation import InvalidYouTubeURLError

ResultT = TypeVar("ResultT")


def register(app: typer.Typer, console: Console, container_factory: ContainerFactory) -> None:
    """Register pipeline commands on the root application."""

    def run_with_container(action: Callable[[ServiceContainer], Awaitable[ResultT]]) -> ResultT:
        async def _runner() -> ResultT:
            container = container_factory()
            try:
                return await action(container)
            finally:
                await close_container(container)

        return asyncio.run(_runner())

    @app.command("migrate")
    def migrate() -> None:
        """Apply the SQL migrations to the configured database."""

        try:
            run_migrations(console)
        except Exception as exc:
            console.print(f"[red]Migration failed:[/red] {exc}")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc

    @app.command("fetch")
    def fetch(
        category: str = typer.Option(DEFAULT_CATEGORY, "--category", "-c", help="Channel category to process"),
        json_output: bool = typer.Option(False, "--json", help="Print the run report as JSON"),
    ) -> None:
        """Fetch, summarize and store new videos for every channel in a category."""

        try:
            report = run_with_container(lambda container: container.ingestion.run(category))
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc
        except Exception as exc:  # pragma: no cover - unexpected failure
            console.print(f"[red]Fetch failed:[/red] {exc}")
            raise typer.Exit(code=ExitCode.PROCESSING_ERROR) from exc

        if json_output:
            typer.echo(json.dumps(asdict(report), indent=2))
            return
        console.print(_render_report(report))

    @app.command("fetch-video")
    def fetch_video(url: str = typer.Argument(..., help="YouTube video URL to summarize")) -> None:
        """Summarize one video and store it under the standalone channel."""

        async def _process(container: ServiceContainer) -> SingleVideoJob:
            job = container.jobs.create_job(url)
            return await container.jobs.process(job)

        try:
            job = run_with_container(_process)
        except InvalidYouTubeURLError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise typer.Exit(code=ExitCode.INVALID_INPUT) from exc
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc

        if job.status is JobStatus.ERROR or job.video is None:
            if job.error == DUPLICATE_MESSAGE:
                console.print(f"[yellow]{job.error}[/yellow]")
                raise typer.Exit(code=ExitCode.STORAGE_ERROR)
            console.print(f"[red]Error:[/red] {job.error}")
            raise typer.Exit(code=ExitCode.PROCESSING_ERROR)

        video = job.video
        console.print(Panel.fit(f"[bold]{video.title}[/bold]\n{video.video_url}", border_style="green"))
        if video.duration_seconds is not None:
            console.print(f"Duration: {video.duration_seconds // 60}m {video.duration_seconds % 60}s")
        console.print(Panel(Markdown(video.summary), title="Summary", border_style="blue"))

    @app.command("pending")
    def pending(
        retry: bool = typer.Option(False, "--retry", help="Run the retry pass over the queue now"),
    ) -> None:
        """Show videos waiting for a transcript, optionally retrying them."""

        async def _pending(container: ServiceContainer) -> List[PendingVideo]:
            if retry:
                report = await container.ingestion.process_pending()
                console.print(
                    f"Promoted {report.promoted}, retried {report.retried}, discarded {report.discarded}."
                )
            return await asyncio.to_thread(container.storage.list_pending)

        try:
            rows = run_with_container(_pending)
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=ExitCode.STORAGE_ERROR) from exc

        if not rows:
            console.print("[green]No videos waiting for transcripts.[/green]")
            return

        table = Table(title="Pending Videos")
        table.add_column("Video ID", style="cyan")
        table.add_column("Title")
        table.add_column("Retries", justify="right")
        table.add_column("Queued")
        for row in rows:
            added = row.added_at.strftime("%Y-%m-%d %H:%M") if row.added_at else "-"
            table.add_row(row.video_id, row.title, str(row.retry_count), added)
        console.print(table)

    @app.command("serve")
    def serve(
        host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to API_HOST)"),
        port: Optional[int] = typer.Option(None, "--port", help="Bind port (defaults to API_PORT)"),
    ) -> None:
        """Run the HTTP API with the cron scheduler."""

        settings = get_settings()
        uvicorn.run(
            "tubesum.api.app:create_app",
            factory=True,
            host=host or settings.api_host,
            port=port or settings.api_port,
            log_level=settings.log_level.lower(),
        )


def _render_report(report: IngestionReport) -> Table:
    table = Table(title=f"Fetch report: {report.category}")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Channels", str(report.channels))
    table.add_row("Summarized", str(report.processed))
    table.add_row("Queued for retry", str(report.queued))
    table.add_row("Skipped (known)", str(report.skipped))
    table.add_row("Promoted from queue", str(report.promoted))
    table.add_row("Retried later", str(report.retried))
    table.add_row("Discarded", str(report.discarded))
    if report.failed_channels:
        table.add_row("Failed channels", ", ".join(report.failed_channels), style="red")
    return table


__all__ = ["register"]
