"""Transcript acquisition service built on YouTube captions."""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Sequence

from rich.console import Console
from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api._errors import CouldNotRetrieveTranscript, NoTranscriptFound

from tubesum.config.settings import Settings, get_settings
from tubesum.models.transcript import Transcript, TranscriptSegment
from tubesum.utils.validation import InvalidYouTubeURLError, extract_video_id, watch_url


class TranscriptUnavailableError(RuntimeError):
    """Raised when no transcript can be obtained for a video, whatever the cause."""


class TranscriptService:
    """Service responsible for fetching YouTube caption transcripts."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        transcript_api: Optional[Any] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._transcript_api = transcript_api or YouTubeTranscriptApi()
        self._languages: Sequence[str] = tuple(self._settings.transcript_languages) or ("en",)

    @property
    def min_chars(self) -> int:
        """Minimum transcript length, in characters, considered usable for summarization."""

        return self._settings.min_transcript_chars

    def get_transcript_from_captions(self, video_id: str) -> Transcript:
        """Fetch the transcript directly from YouTube captions.

        Parameters
        ----------
        video_id:
            The canonical 11-character YouTube video identifier.

        Returns
        -------
        Transcript
            Ordered caption segments with their timing metadata.

        Raises
        ------
        TranscriptUnavailableError
            If captions are disabled, the video is private or unavailable, the request fails,
            or the caption track is empty.
        """

        try:
            fetched_transcript = self._fetch_captions(video_id)
            captions = fetched_transcript.to_raw_data()
        except CouldNotRetrieveTranscript as exc:
            raise TranscriptUnavailableError(f"Captions unavailable for {video_id}: {exc.__class__.__name__}") from exc
        except Exception as exc:  # network and parsing failures from the scraper
            raise TranscriptUnavailableError(f"Caption fetch failed for {video_id}: {exc}") from exc

        segments: List[TranscriptSegment] = [
            TranscriptSegment(
                text=str(segment.get("text", "")),
                start=float(segment.get("start", 0.0)),
                duration=float(segment.get("duration", 0.0)),
            )
            for segment in captions
        ]
        if not segments:
            raise TranscriptUnavailableError(f"Caption track for {video_id} is empty")
        return Transcript(video_id=video_id, segments=segments)

    def get_transcript(self, url: str) -> Transcript:
        """Obtain a transcript for a watch URL (or bare video id)."""

        try:
            video_id = extract_video_id(url)
        except InvalidYouTubeURLError as exc:
            raise TranscriptUnavailableError(str(exc)) from exc
        return self.get_transcript_from_captions(video_id)

    async def fetch_transcript(self, video_id: str) -> Transcript:
        """Fetch a transcript off the event loop, bounded by the external call timeout."""

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.get_transcript, watch_url(video_id)),
                timeout=self._settings.external_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise TranscriptUnavailableError(f"Caption fetch timed out for {video_id}") from exc

    def is_usable(self, text: Optional[str]) -> bool:
        """Return whether a transcript is long enough to summarize."""

        return text is not None and len(text) >= self.min_chars

    async def fetch_usable_text(self, video_id: str) -> Optional[str]:
        """Return the joined transcript text, or ``None`` when missing or too short to use."""

        try:
            transcript = await self.fetch_transcript(video_id)
        except TranscriptUnavailableError as exc:
            self._console.log(f"[yellow]No transcript for {video_id}:[/yellow] {exc}")
            return None

        text = transcript.text
        if not self.is_usable(text):
            self._console.log(
                f"[yellow]Transcript for {video_id} too short[/yellow] ({len(text)} < {self.min_chars} chars)"
            )
            return None
        return text

    def _fetch_captions(self, video_id: str) -> Any:
        """Prefer the configured languages, then fall back to the first listed track."""

        try:
            return self._transcript_api.fetch(video_id, languages=self._languages)
        except NoTranscriptFound:
            for transcript in self._transcript_api.list(video_id):
                return transcript.fetch()
            raise


__all__ = ["TranscriptService", "TranscriptUnavailableError"]
