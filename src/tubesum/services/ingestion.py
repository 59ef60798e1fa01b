"""Channel ingestion pipeline: discovery, transcripts, summaries and the pending retry queue."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import AbstractSet, Any, Callable, List, Optional, TypeVar

from rich.console import Console

from tubesum.config.settings import Settings, get_settings
from tubesum.models.channel import DEFAULT_CATEGORY, Channel
from tubesum.models.video import DiscoveredVideo, PendingVideo, Video
from tubesum.services import IngestionStore
from tubesum.services.summarization import SummarizationService
from tubesum.services.transcript import TranscriptService
from tubesum.services.youtube import YouTubeClient
from tubesum.utils.validation import watch_url

ResultT = TypeVar("ResultT")

# A pending row whose retry_count has reached this value is discarded on its next failure.
PENDING_RETRY_BUDGET = 1


@dataclass(slots=True)
class IngestionReport:
    """Counters describing the outcome of one ingestion run."""

    category: str
    channels: int = 0
    processed: int = 0
    queued: int = 0
    skipped: int = 0
    promoted: int = 0
    retried: int = 0
    discarded: int = 0
    failed_channels: List[str] = field(default_factory=list)
    queued_ids: List[str] = field(default_factory=list)


class IngestionService:
    """Drive one sequential ingestion run across the channels of a category.

    The service keeps no state between runs; everything it needs is read from the store at
    the start of each invocation, so restarts and repeated triggers are safe. Channels,
    candidates and pending rows are processed strictly one at a time.
    """

    def __init__(
        self,
        *,
        store: IngestionStore,
        youtube: YouTubeClient,
        transcripts: TranscriptService,
        summarizer: SummarizationService,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
    ) -> None:
        self._store = store
        self._youtube = youtube
        self._transcripts = transcripts
        self._summarizer = summarizer
        self._settings = settings or get_settings()
        self._console = console or Console()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    async def run(self, category: str = DEFAULT_CATEGORY) -> IngestionReport:
        """Fetch, summarize and store new videos for every channel in ``category``.

        Parameters
        ----------
        category:
            Channel category to process, matched case-insensitively.

        Returns
        -------
        IngestionReport
            Counters for the run, including the pending-queue pass.
        """

        report = IngestionReport(category=category)
        self._console.log(f"Starting video fetch job for category: {category!r}")

        channels = await self._call_store(self._store.list_channels, category)
        if not channels:
            self._console.log("No channels configured. Skipping.")
            return report

        report.channels = len(channels)
        for channel in channels:
            try:
                await self.process_channel(channel, report)
            except Exception as exc:
                report.failed_channels.append(channel.channel_name)
                self._console.log(f"[red]Error processing channel {channel.channel_name}:[/red] {exc}")

        self._console.log(f"[green]Fetch job complete.[/green] Processed {report.processed} new video(s).")

        await self.process_pending(report, skip=frozenset(report.queued_ids))
        return report

    async def process_channel(self, channel: Channel, report: IngestionReport) -> None:
        """Discover recent uploads for one channel and handle each unseen candidate in order."""

        self._console.log(f"Processing channel: {channel.channel_name}")
        hours = self._settings.lookback_hours
        candidates = await self._youtube.list_recent_videos(channel.channel_id, hours)
        self._console.log(f"  Found {len(candidates)} videos in last {hours}h")
        if not candidates:
            return

        durations = await self._youtube.fetch_durations([candidate.video_id for candidate in candidates])
        for candidate in candidates:
            if candidate.video_id in durations:
                candidate = candidate.model_copy(update={"duration_seconds": durations[candidate.video_id]})
            await self.process_candidate(channel, candidate, report)

    async def process_candidate(self, channel: Channel, candidate: DiscoveredVideo, report: IngestionReport) -> None:
        """Summarize a new candidate or defer it to the pending queue when no transcript exists."""

        if await self._is_known(candidate.video_id):
            report.skipped += 1
            self._console.log(f"  Skipping already processed/queued video: {candidate.title}")
            return

        self._console.log(f"  Processing video: {candidate.title}")
        transcript = await self._transcripts.fetch_usable_text(candidate.video_id)

        if transcript is None:
            pending = PendingVideo(
                video_id=candidate.video_id,
                title=candidate.title,
                thumbnail=candidate.thumbnail,
                description=candidate.description,
                video_url=watch_url(candidate.video_id),
                published_at=candidate.published_at,
                duration_seconds=candidate.duration_seconds,
                channel_id=self._channel_pk(channel),
                retry_count=0,
            )
            await self._call_store(self._store.insert_pending, pending)
            report.queued += 1
            report.queued_ids.append(candidate.video_id)
            self._console.log(f"  [yellow]No transcript for {candidate.title!r}, adding to pending queue.[/yellow]")
            return

        summary = await self._summarizer.summarize(transcript, candidate.title)
        video = Video(
            video_id=candidate.video_id,
            title=candidate.title,
            thumbnail=candidate.thumbnail,
            summary=summary,
            video_url=watch_url(candidate.video_id),
            published_at=candidate.published_at,
            duration_seconds=candidate.duration_seconds,
            channel_id=self._channel_pk(channel),
        )
        stored = await self._call_store(self._store.insert_video, video, ignore_conflicts=True)
        if stored is None:
            report.skipped += 1
            self._console.log(f"  [yellow]Video stored concurrently, skipping:[/yellow] {candidate.title}")
            return

        report.processed += 1
        self._console.log(f"  [green]✓ Saved video:[/green] {candidate.title}")

    async def process_pending(
        self,
        report: Optional[IngestionReport] = None,
        *,
        skip: AbstractSet[str] = frozenset(),
    ) -> IngestionReport:
        """Retry transcript extraction for every queued video, oldest first.

        A row that still has no usable transcript is kept with ``retry_count`` incremented on
        its first failure and deleted on its second. A row that now has a transcript is
        summarized, promoted to the videos table and removed from the queue. Ids in ``skip``
        (videos queued earlier in the same run) wait for the next run.
        """

        report = report or IngestionReport(category="*")
        pending_rows = await self._call_store(self._store.list_pending)
        if not pending_rows:
            return report

        self._console.log(f"Processing {len(pending_rows)} pending video(s)...")
        for row in pending_rows:
            if row.video_id in skip:
                continue
            try:
                await self._retry_pending(row, report)
            except Exception as exc:
                self._console.log(f"[red]Error processing pending video {row.title}:[/red] {exc}")
        return report

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    async def _retry_pending(self, row: PendingVideo, report: IngestionReport) -> None:
        transcript = await self._transcripts.fetch_usable_text(row.video_id)

        if transcript is None:
            if row.retry_count >= PENDING_RETRY_BUDGET:
                await self._call_store(self._store.delete_pending, row.video_id)
                report.discarded += 1
                self._console.log(f"  [yellow]Discarding pending video (no transcript after retry):[/yellow] {row.title}")
            else:
                await self._call_store(self._store.increment_pending_retry, row.video_id)
                report.retried += 1
                self._console.log(f"  No transcript yet for {row.title!r}, will retry next run.")
            return

        summary = await self._summarizer.summarize(transcript, row.title)
        video = Video(
            video_id=row.video_id,
            title=row.title,
            thumbnail=row.thumbnail,
            summary=summary,
            video_url=row.video_url,
            published_at=row.published_at,
            duration_seconds=row.duration_seconds,
            channel_id=row.channel_id,
        )
        await self._call_store(self._store.insert_video, video, ignore_conflicts=True)
        await self._call_store(self._store.delete_pending, row.video_id)
        report.promoted += 1
        self._console.log(f"  [green]✓ Processed pending video:[/green] {row.title}")

    async def _is_known(self, video_id: str) -> bool:
        if await self._call_store(self._store.video_exists, video_id):
            return True
        return await self._call_store(self._store.pending_exists, video_id)

    @staticmethod
    def _channel_pk(channel: Channel) -> Any:
        if channel.id is None:
            raise ValueError(f"Channel {channel.channel_id} has not been persisted")
        return channel.id

    @staticmethod
    async def _call_store(func: Callable[..., ResultT], *args: Any, **kwargs: Any) -> ResultT:
        """Run a blocking store operation in a worker thread."""

        return await asyncio.to_thread(func, *args, **kwargs)


__all__ = ["IngestionReport", "IngestionService", "PENDING_RETRY_BUDGET"]
