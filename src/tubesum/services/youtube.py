"""Async client for the YouTube Data API: discovery, durations, metadata and channel lookup."""

from __future__ import annotations

import html
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx
from pydantic import ValidationError
from rich.console import Console

from tubesum.config.settings import Settings, get_settings
from tubesum.models.channel import ChannelInfo
from tubesum.models.video import DiscoveredVideo, VideoMetadata
from tubesum.utils.validation import (
    ChannelIdentifierKind,
    InvalidChannelIdentifierError,
    channel_url,
    parse_channel_identifier,
)

YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
DISCOVERY_PAGE_SIZE = 10
DURATION_BATCH_SIZE = 50

_DURATION_PATTERN = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$")


class YouTubeAPIError(RuntimeError):
    """Raised when the YouTube Data API is unreachable or answers with an error."""


class ChannelLookupError(YouTubeAPIError):
    """Raised when a channel reference cannot be resolved to a YouTube channel."""


def match_iso8601_duration(token: str) -> Optional[int]:
    """Return total seconds for an ISO-8601 duration token, or ``None`` if it is malformed."""

    match = _DURATION_PATTERN.fullmatch(token.strip()) if token else None
    if match is None or not any(match.groups()):
        return None
    days, hours, minutes, seconds = (int(group) if group else 0 for group in match.groups())
    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def parse_iso8601_duration(token: str) -> int:
    """Convert a token such as ``PT1H2M3S`` into seconds; malformed tokens yield ``0``."""

    return match_iso8601_duration(token) or 0


def _best_thumbnail(thumbnails: Mapping[str, Any]) -> str:
    for size in ("high", "medium", "default"):
        candidate = thumbnails.get(size) or {}
        if candidate.get("url"):
            return str(candidate["url"])
    return ""


def _chunked(values: List[str], size: int) -> Iterable[List[str]]:
    for index in range(0, len(values), size):
        yield values[index : index + size]


class YouTubeClient:
    """Thin async wrapper over the YouTube Data API v3 endpoints used by the pipeline.

    Discovery and duration lookups never raise: failures are logged and surface as empty
    results so that a single unreachable channel cannot abort an ingestion run.
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._settings.external_timeout_seconds)

    async def __aenter__(self) -> "YouTubeClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""

        if self._owns_client:
            await self._http.aclose()

    # ------------------------------------------------------------------ #
    # Discovery                                                          #
    # ------------------------------------------------------------------ #
    async def list_recent_videos(self, channel_id: str, hours: Optional[int] = None) -> List[DiscoveredVideo]:
        """Return up to ten videos a channel published within the lookback window, newest first.

        Parameters
        ----------
        channel_id:
            External ``UC...`` identifier of the channel to search.
        hours:
            Lookback window relative to now; defaults to the configured ``LOOKBACK_HOURS``.

        Returns
        -------
        list[DiscoveredVideo]
            Candidate videos without durations. Empty when the API key is missing or the
            search request fails.
        """

        window = hours if hours is not None else self._settings.lookback_hours
        published_after = datetime.now(timezone.utc) - timedelta(hours=window)
        params = {
            "part": "snippet",
            "channelId": channel_id,
            "type": "video",
            "order": "date",
            "publishedAfter": published_after.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "maxResults": str(DISCOVERY_PAGE_SIZE),
        }

        try:
            payload = await self._get("/search", params)
        except YouTubeAPIError as exc:
            self._console.log(f"[red]Video discovery failed for channel {channel_id}:[/red] {exc}")
            return []

        videos: List[DiscoveredVideo] = []
        for item in payload.get("items") or []:
            try:
                snippet = item["snippet"]
                videos.append(
                    DiscoveredVideo(
                        video_id=item["id"]["videoId"],
                        title=html.unescape(snippet.get("title", "")),
                        description=html.unescape(snippet.get("description", "")),
                        thumbnail=_best_thumbnail(snippet.get("thumbnails") or {}),
                        published_at=snippet["publishedAt"],
                    )
                )
            except (KeyError, TypeError, ValidationError) as exc:
                self._console.log(f"[yellow]Skipping malformed search result for {channel_id}:[/yellow] {exc}")
        return videos[:DISCOVERY_PAGE_SIZE]

    # ------------------------------------------------------------------ #
    # Durations                                                          #
    # ------------------------------------------------------------------ #
    async def fetch_durations(self, video_ids: Iterable[str]) -> Dict[str, int]:
        """Resolve durations in seconds for the given ids, in batches of fifty.

        Ids with a missing or malformed ``contentDetails.duration`` are left out of the
        mapping. Request failures are logged and never raised.
        """

        durations: Dict[str, int] = {}
        unique_ids = list(dict.fromkeys(video_id for video_id in video_ids if video_id))
        for batch in _chunked(unique_ids, DURATION_BATCH_SIZE):
            try:
                payload = await self._get("/videos", {"part": "contentDetails", "id": ",".join(batch)})
            except YouTubeAPIError as exc:
                self._console.log(f"[yellow]Duration lookup failed:[/yellow] {exc}")
                continue

            for item in payload.get("items") or []:
                if not isinstance(item, Mapping):
                    continue
                token = (item.get("contentDetails") or {}).get("duration")
                seconds = match_iso8601_duration(token) if isinstance(token, str) else None
                if item.get("id") and seconds is not None:
                    durations[str(item["id"])] = seconds
        return durations

    # ------------------------------------------------------------------ #
    # Single video metadata                                              #
    # ------------------------------------------------------------------ #
    async def fetch_video_metadata(self, video_id: str) -> Optional[VideoMetadata]:
        """Return title, thumbnail and publish time for one video, or ``None`` if unavailable."""

        try:
            payload = await self._get("/videos", {"part": "snippet", "id": video_id})
            items = payload.get("items") or []
            if not items:
                return None
            snippet = items[0]["snippet"]
            return VideoMetadata(
                title=html.unescape(snippet.get("title", "")),
                thumbnail=_best_thumbnail(snippet.get("thumbnails") or {}),
                published_at=snippet["publishedAt"],
            )
        except (YouTubeAPIError, KeyError, TypeError, ValidationError) as exc:
            self._console.log(f"[red]Metadata lookup failed for {video_id}:[/red] {exc}")
            return None

    # ------------------------------------------------------------------ #
    # Channel directory                                                  #
    # ------------------------------------------------------------------ #
    async def resolve_channel(self, identifier: str) -> ChannelInfo:
        """Resolve a channel URL, ``@handle`` or ``UC...`` id to its canonical details.

        Raises
        ------
        ChannelLookupError
            If the reference is malformed, unknown to YouTube, or the lookup request fails.
        """

        try:
            kind, value = parse_channel_identifier(identifier)
        except InvalidChannelIdentifierError as exc:
            raise ChannelLookupError(str(exc)) from exc

        params = {"part": "snippet", kind.value: value}
        try:
            payload = await self._get("/channels", params)
        except YouTubeAPIError as exc:
            raise ChannelLookupError(f"Channel lookup failed for {identifier!r}: {exc}") from exc

        items = payload.get("items") or []
        if not items:
            raise ChannelLookupError(f"YouTube channel not found: {identifier!r}")

        item = items[0]
        external_id = str(item.get("id") or (value if kind is ChannelIdentifierKind.ID else ""))
        if not external_id:
            raise ChannelLookupError(f"YouTube returned a channel without an id for {identifier!r}")
        title = html.unescape((item.get("snippet") or {}).get("title") or external_id)
        return ChannelInfo(channel_id=external_id, channel_name=title, channel_url=channel_url(external_id))

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    async def _get(self, path: str, params: Mapping[str, str]) -> Dict[str, Any]:
        api_key = self._api_key()
        if api_key is None:
            raise YouTubeAPIError("YOUTUBE_API_KEY is not set")

        try:
            response = await self._http.get(
                f"{YOUTUBE_API_BASE_URL}{path}",
                params={**params, "key": api_key},
            )
        except httpx.HTTPError as exc:
            raise YouTubeAPIError(f"request to {path} failed: {exc!r}") from exc

        if response.status_code >= 400:
            raise YouTubeAPIError(f"{path} returned {response.status_code}: {response.text[:500]}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise YouTubeAPIError(f"{path} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise YouTubeAPIError(f"{path} returned an unexpected payload")
        return payload

    def _api_key(self) -> Optional[str]:
        if self._settings.youtube_api_key is None:
            return None
        return self._settings.youtube_api_key.get_secret_value() or None


__all__ = [
    "ChannelLookupError",
    "DISCOVERY_PAGE_SIZE",
    "DURATION_BATCH_SIZE",
    "YouTubeAPIError",
    "YouTubeClient",
    "match_iso8601_duration",
    "parse_iso8601_duration",
]
