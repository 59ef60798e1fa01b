"""Cron scheduling and fire-and-forget triggers for ingestion runs."""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from rich.console import Console

from tubesum.config.settings import Settings, get_settings
from tubesum.models.channel import DEFAULT_CATEGORY
from tubesum.services.ingestion import IngestionReport, IngestionService

CRON_JOB_ID = "daily-video-fetch"


class IngestionScheduler:
    """Own the APScheduler cron job and any ad-hoc ingestion tasks.

    Runs started here never propagate errors to the caller; a failed run is logged and the
    scheduler keeps going.
    """

    def __init__(
        self,
        *,
        ingestion: IngestionService,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ) -> None:
        self._ingestion = ingestion
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self._cron_enabled = True
        self._tasks: Set[asyncio.Task[Any]] = set()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self, *, run_on_startup: Optional[bool] = None) -> None:
        """Register the cron job and start the scheduler on the running event loop.

        Parameters
        ----------
        run_on_startup:
            Trigger one ``main`` run immediately. Defaults to ``RUN_ON_STARTUP``.
        """

        trigger = CronTrigger.from_crontab(self._settings.fetch_schedule, timezone="UTC")
        self._scheduler.add_job(
            self._run_scheduled,
            trigger=trigger,
            id=CRON_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        if not self._cron_enabled:
            self._scheduler.pause_job(CRON_JOB_ID)
        self._console.log(f"Cron job scheduled: {self._settings.fetch_schedule!r} (UTC)")

        should_run = self._settings.run_on_startup if run_on_startup is None else run_on_startup
        if should_run:
            self._console.log("Running initial video fetch on startup...")
            self.trigger(DEFAULT_CATEGORY)

    async def shutdown(self) -> None:
        """Stop the scheduler and cancel in-flight ad-hoc runs."""

        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def trigger(self, category: str = DEFAULT_CATEGORY) -> asyncio.Task[Optional[IngestionReport]]:
        """Start an ingestion run for ``category`` without waiting for it to finish."""

        task = asyncio.get_running_loop().create_task(self.run_safely(category))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run_safely(self, category: str = DEFAULT_CATEGORY) -> Optional[IngestionReport]:
        """Run one ingestion pass, logging instead of raising on failure."""

        try:
            return await self._ingestion.run(category)
        except Exception as exc:
            self._console.log(f"[red]Fetch job failed for category {category!r}:[/red] {exc!r}")
            return None

    def get_cron_enabled(self) -> bool:
        return self._cron_enabled

    def set_cron_enabled(self, enabled: bool) -> bool:
        """Pause or resume the cron job; returns the new state."""

        self._cron_enabled = enabled
        if self._scheduler.get_job(CRON_JOB_ID) is not None:
            if enabled:
                self._scheduler.resume_job(CRON_JOB_ID)
            else:
                self._scheduler.pause_job(CRON_JOB_ID)
        self._console.log(f"Cron job {'started' if enabled else 'stopped'}")
        return enabled

    async def _run_scheduled(self) -> None:
        self._console.log("Cron triggered: daily video fetch")
        await self.run_safely(DEFAULT_CATEGORY)


__all__ = ["CRON_JOB_ID", "IngestionScheduler"]
