"""Wiring of the service graph shared by the web app and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rich.console import Console

from tubesum.config.settings import Settings, get_settings
from tubesum.db.connection import close_pool
from tubesum.services.ingestion import IngestionService
from tubesum.services.jobs import SingleVideoJobService
from tubesum.services.scheduler import IngestionScheduler
from tubesum.services.storage import StorageService
from tubesum.services.summarization import SummarizationService
from tubesum.services.transcript import TranscriptService
from tubesum.services.youtube import YouTubeClient


@dataclass(slots=True)
class ServiceContainer:
    """All long-lived services, built once per process and sharing one console."""

    settings: Settings
    console: Console
    storage: StorageService
    youtube: YouTubeClient
    transcripts: TranscriptService
    summarizer: SummarizationService
    ingestion: IngestionService
    jobs: SingleVideoJobService
    scheduler: IngestionScheduler

    @classmethod
    def build(
        cls,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        storage: Optional[StorageService] = None,
        youtube: Optional[YouTubeClient] = None,
        transcripts: Optional[TranscriptService] = None,
        summarizer: Optional[SummarizationService] = None,
    ) -> "ServiceContainer":
        """Construct the default service graph, accepting overrides for any leaf service."""

        settings = settings or get_settings()
        console = console or Console()
        storage = storage or StorageService(settings=settings, console=console)
        youtube = youtube or YouTubeClient(settings=settings, console=console)
        transcripts = transcripts or TranscriptService(settings=settings, console=console)
        summarizer = summarizer or SummarizationService(settings=settings, console=console)

        ingestion = IngestionService(
            store=storage,
            youtube=youtube,
            transcripts=transcripts,
            summarizer=summarizer,
            settings=settings,
            console=console,
        )
        jobs = SingleVideoJobService(
            store=storage,
            youtube=youtube,
            transcripts=transcripts,
            summarizer=summarizer,
            settings=settings,
            console=console,
        )
        scheduler = IngestionScheduler(ingestion=ingestion, settings=settings, console=console)
        return cls(
            settings=settings,
            console=console,
            storage=storage,
            youtube=youtube,
            transcripts=transcripts,
            summarizer=summarizer,
            ingestion=ingestion,
            jobs=jobs,
            scheduler=scheduler,
        )

    async def aclose(self) -> None:
        """Stop background work and release network clients."""

        await self.scheduler.shutdown()
        await self.jobs.wait_for_pending()
        await self.youtube.aclose()
        await self.summarizer.aclose()
        close_pool()


__all__ = ["ServiceContainer"]
