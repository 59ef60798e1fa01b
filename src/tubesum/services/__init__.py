"""Service layer for the tubesum application."""

from __future__ import annotations

from typing import List, Optional, Protocol

from tubesum.models.channel import Channel
from tubesum.models.video import PendingVideo, Video


class IngestionStore(Protocol):
    """Persistence operations the ingestion pipeline relies on.

    Every write is keyed by the external video id, which keeps repeated or overlapping runs
    from creating duplicate rows.
    """

    def list_channels(self, category: str) -> List[Channel]:
        """Return channels whose category matches case-insensitively."""

    def video_exists(self, video_id: str) -> bool:
        """Return whether a summarized video with this external id is stored."""

    def pending_exists(self, video_id: str) -> bool:
        """Return whether this external id is waiting in the retry queue."""

    def insert_video(self, video: Video, *, ignore_conflicts: bool = False) -> Optional[Video]:
        """Store a summarized video; ``None`` when a conflicting row was ignored."""

    def insert_pending(self, pending: PendingVideo) -> Optional[PendingVideo]:
        """Queue a video for transcript retry; ``None`` when it was already queued."""

    def increment_pending_retry(self, video_id: str) -> None:
        """Record one more failed transcript attempt for a queued video."""

    def delete_pending(self, video_id: str) -> None:
        """Remove a video from the retry queue."""

    def list_pending(self) -> List[PendingVideo]:
        """Return the retry queue, oldest first."""


__all__ = ["IngestionStore"]
