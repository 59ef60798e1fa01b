"""In-memory tracking and background processing of single-video submissions."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Set

from rich.console import Console

from tubesum.config.settings import Settings, get_settings
from tubesum.models.channel import STANDALONE_CHANNEL_ID
from tubesum.models.job import JobStatus, SingleVideoJob, SubmitResult
from tubesum.models.video import Video
from tubesum.services import IngestionStore
from tubesum.services.summarization import SummarizationService
from tubesum.services.transcript import TranscriptService
from tubesum.services.youtube import YouTubeClient
from tubesum.utils.progress import ProcessingStage
from tubesum.utils.validation import InvalidYouTubeURLError, extract_video_id, watch_url

INVALID_URL_MESSAGE = "Invalid YouTube URL"
DUPLICATE_MESSAGE = "This video has already been summarized."
METADATA_MESSAGE = "Could not fetch video metadata from YouTube. Check the URL."
NO_TRANSCRIPT_MESSAGE = "Could not fetch transcript for this video. It may not have captions available."
UNEXPECTED_MESSAGE = "Unexpected processing error"


class JobFailure(RuntimeError):
    """Raised inside a job to end it with a user-facing error message."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SingleVideoJobService:
    """Accept manual video submissions and process them outside the request cycle.

    Jobs live only in memory and are forgotten on restart. A finished job remains queryable for
    ``JOB_TTL_SECONDS`` after completion; expired records are swept whenever the job table is
    read or written.
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
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._youtube = youtube
        self._transcripts = transcripts
        self._summarizer = summarizer
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._clock = clock
        self._jobs: Dict[str, SingleVideoJob] = {}
        self._tasks: Set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def create_job(self, url: str) -> SingleVideoJob:
        """Validate ``url`` and register a pending job for it.

        Raises
        ------
        InvalidYouTubeURLError
            If no video id can be extracted from ``url``.
        """

        video_id = extract_video_id(url)
        self.sweep_expired()
        job = SingleVideoJob(
            job_id=str(uuid.uuid4()),
            video_url=url,
            video_id=video_id,
            current_stage=ProcessingStage.VALIDATING,
            submitted_at=self._clock(),
        )
        self._jobs[job.job_id] = job
        return job

    def submit(self, url: str) -> SubmitResult:
        """Register a job and schedule it on the running event loop.

        Returns immediately with the job id, or with an error when the URL is not a YouTube
        video link.
        """

        try:
            job = self.create_job(url)
        except InvalidYouTubeURLError:
            return SubmitResult(error=INVALID_URL_MESSAGE)

        task = asyncio.get_running_loop().create_task(self._run_in_background(job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._console.log(f"Queued single-video job {job.job_id} for video {job.video_id}")
        return SubmitResult(job_id=job.job_id)

    def get_status(self, job_id: str) -> Optional[SingleVideoJob]:
        """Return the job record, or ``None`` when unknown or expired."""

        self.sweep_expired()
        return self._jobs.get(job_id)

    def sweep_expired(self) -> int:
        """Forget finished jobs whose retention window has passed; return how many were removed."""

        now = self._clock()
        expired = [
            job_id for job_id, job in self._jobs.items() if job.expires_at is not None and job.expires_at <= now
        ]
        for job_id in expired:
            del self._jobs[job_id]
        return len(expired)

    async def wait_for_pending(self) -> None:
        """Wait for every scheduled job task to finish."""

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def process(self, job: SingleVideoJob) -> SingleVideoJob:
        """Run the full pipeline for one job and record its terminal state.

        Parameters
        ----------
        job:
            A job previously returned by :meth:`create_job`.

        Returns
        -------
        SingleVideoJob
            The same record, now ``done`` with the stored video or ``error`` with a message.
        """

        self._console.log(f"Starting single-video job {job.job_id} for video {job.video_id}")
        try:
            video = await self._execute(job)
        except JobFailure as exc:
            self._finish(job, error=str(exc))
            self._console.log(f"[yellow]Single-video job {job.job_id} failed:[/yellow] {exc}")
            return job
        except Exception as exc:
            self._finish(job, error=str(exc) or UNEXPECTED_MESSAGE)
            self._console.log(f"[red]Single-video job {job.job_id} failed:[/red] {exc!r}")
            return job

        self._finish(job, video=video)
        self._console.log(f"[green]Single-video job {job.job_id} completed:[/green] {video.title!r}")
        return job

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    async def _execute(self, job: SingleVideoJob) -> Video:
        video_id = job.video_id

        if await asyncio.to_thread(self._store.video_exists, video_id):
            raise JobFailure(DUPLICATE_MESSAGE)

        job.current_stage = ProcessingStage.FETCHING_METADATA
        metadata = await self._youtube.fetch_video_metadata(video_id)
        if metadata is None:
            raise JobFailure(METADATA_MESSAGE)
        durations = await self._youtube.fetch_durations([video_id])

        job.current_stage = ProcessingStage.TRANSCRIBING
        transcript = await self._transcripts.fetch_usable_text(video_id)
        if transcript is None:
            raise JobFailure(NO_TRANSCRIPT_MESSAGE)

        job.current_stage = ProcessingStage.SUMMARIZING
        summary = await self._summarizer.summarize(transcript, metadata.title)

        job.current_stage = ProcessingStage.STORING
        video = Video(
            video_id=video_id,
            title=metadata.title,
            thumbnail=metadata.thumbnail,
            summary=summary,
            video_url=watch_url(video_id),
            published_at=metadata.published_at,
            duration_seconds=durations.get(video_id),
            channel_id=STANDALONE_CHANNEL_ID,
        )
        stored = await asyncio.to_thread(self._store.insert_video, video, ignore_conflicts=True)
        if stored is None:
            raise JobFailure(DUPLICATE_MESSAGE)
        await asyncio.to_thread(self._store.delete_pending, video_id)
        return stored

    async def _run_in_background(self, job: SingleVideoJob) -> None:
        try:
            await self.process(job)
        except Exception as exc:  # pragma: no cover - process() records its own failures
            self._console.log(f"[red]Unhandled error in single-video job {job.job_id}:[/red] {exc!r}")
            self._finish(job, error=UNEXPECTED_MESSAGE)

    def _finish(self, job: SingleVideoJob, *, video: Optional[Video] = None, error: Optional[str] = None) -> None:
        completed_at = self._clock()
        job.status = JobStatus.ERROR if error is not None else JobStatus.DONE
        job.current_stage = ProcessingStage.FAILED if error is not None else ProcessingStage.COMPLETE
        job.video = video
        job.error = error
        job.completed_at = completed_at
        job.expires_at = completed_at + timedelta(seconds=self._settings.job_ttl_seconds)


__all__ = [
    "DUPLICATE_MESSAGE",
    "INVALID_URL_MESSAGE",
    "METADATA_MESSAGE",
    "NO_TRANSCRIPT_MESSAGE",
    "SingleVideoJobService",
]
