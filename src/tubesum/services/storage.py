"""Persistence layer responsible for channels, summarized videos and the retry queue."""

from __future__ import annotations

from typing import List, Optional, Tuple
from uuid import UUID

from psycopg2 import IntegrityError
from rich.console import Console

from tubesum.config.settings import Settings, get_settings
from tubesum.db import ConnectionFactory
from tubesum.db.channel_repository import ChannelRepository
from tubesum.db.connection import get_connection
from tubesum.db.migrate import run_migrations
from tubesum.db.pending_repository import PendingVideoRepository
from tubesum.db.repositories import RecordNotFoundError
from tubesum.db.video_repository import VideoRepository
from tubesum.models.channel import DEFAULT_CATEGORY, STANDALONE_CHANNEL_ID, Channel, ChannelInfo
from tubesum.models.video import PendingVideo, Video


class StorageError(RuntimeError):
    """Base exception raised when persistence fails."""


class ChannelAlreadyExistsError(StorageError):
    """Raised when adding a channel whose external id is already subscribed."""


class VideoAlreadyExistsError(StorageError):
    """Raised when a strict insert collides with an already stored video."""


class StorageService:
    """Postgres-backed implementation of the :class:`tubesum.services.IngestionStore` protocol.

    Also exposes the channel and video administration operations used by the API and CLI.
    """

    _migrations_applied: bool = False

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        auto_migrate: bool = True,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._connection_factory = connection_factory or get_connection
        self._channel_repo = ChannelRepository(self._connection_factory)
        self._video_repo = VideoRepository(self._connection_factory)
        self._pending_repo = PendingVideoRepository(self._connection_factory)

        if auto_migrate and not StorageService._migrations_applied:
            try:
                run_migrations(console=self._console, settings=self._settings, quiet=True)
            except Exception as exc:  # pragma: no cover - surfaced to caller
                raise StorageError(f"Failed to run database migrations: {exc}") from exc
            StorageService._migrations_applied = True

    # ------------------------------------------------------------------ #
    # Ingestion store protocol                                           #
    # ------------------------------------------------------------------ #
    def list_channels(self, category: str = DEFAULT_CATEGORY) -> List[Channel]:
        """Return channels in ``category`` (case-insensitive), excluding the standalone sentinel."""

        return self._channel_repo.list_by_category(category)

    def video_exists(self, video_id: str) -> bool:
        return self._video_repo.exists_by_video_id(video_id)

    def pending_exists(self, video_id: str) -> bool:
        return self._pending_repo.exists_by_video_id(video_id)

    def insert_video(self, video: Video, *, ignore_conflicts: bool = False) -> Optional[Video]:
        """Persist a summarized video.

        Parameters
        ----------
        video:
            Video row to insert. ``fetched_at`` is assigned by the database.
        ignore_conflicts:
            When ``True`` a row that already exists for the same external id is left untouched
            and ``None`` is returned instead of raising.

        Raises
        ------
        VideoAlreadyExistsError
            If the external id is already stored and ``ignore_conflicts`` is ``False``.
        """

        if ignore_conflicts:
            return self._video_repo.insert_ignoring_conflict(video, conflict_column="video_id")
        try:
            return self._video_repo.insert(video)
        except IntegrityError as exc:
            raise VideoAlreadyExistsError(f"Video '{video.video_id}' already stored.") from exc

    def insert_pending(self, pending: PendingVideo) -> Optional[PendingVideo]:
        """Queue a video for transcript retry; a repeat enqueue is silently ignored."""

        return self._pending_repo.insert_ignoring_conflict(pending, conflict_column="video_id")

    def increment_pending_retry(self, video_id: str) -> None:
        self._pending_repo.increment_retry(video_id)

    def delete_pending(self, video_id: str) -> None:
        self._pending_repo.delete_by_video_id(video_id)

    def list_pending(self) -> List[PendingVideo]:
        return self._pending_repo.list_oldest_first()

    # ------------------------------------------------------------------ #
    # Channel administration                                             #
    # ------------------------------------------------------------------ #
    def list_all_channels(self) -> List[Channel]:
        """Return every subscribed channel with its summarized video count, newest first."""

        return self._channel_repo.list_with_video_counts()

    def get_channel(self, record_id: UUID) -> Optional[Channel]:
        try:
            return self._channel_repo.get_by_id(record_id)
        except RecordNotFoundError:
            return None

    def add_channel(self, info: ChannelInfo, *, category: str = DEFAULT_CATEGORY) -> Channel:
        """Subscribe to a resolved channel.

        Raises
        ------
        ChannelAlreadyExistsError
            If a channel with the same external id is already stored.
        """

        if self._channel_repo.find_by_channel_id(info.channel_id) is not None:
            raise ChannelAlreadyExistsError(f"Channel '{info.channel_id}' already exists.")

        channel = Channel(
            channel_id=info.channel_id,
            channel_name=info.channel_name,
            channel_url=info.channel_url,
            category=category,
        )
        try:
            stored = self._channel_repo.insert(channel)
        except IntegrityError as exc:
            raise ChannelAlreadyExistsError(f"Channel '{info.channel_id}' already exists.") from exc
        self._console.log(f"[green]Added channel[/green] {stored.channel_name} ({stored.category})")
        return stored

    def delete_channel(self, record_id: UUID) -> bool:
        """Delete a channel and, through the foreign key cascade, its videos and queue entries."""

        if record_id == STANDALONE_CHANNEL_ID:
            raise StorageError("The standalone channel cannot be deleted.")
        return self._channel_repo.delete_by_id(record_id)

    # ------------------------------------------------------------------ #
    # Video administration                                               #
    # ------------------------------------------------------------------ #
    def list_videos(
        self,
        *,
        limit: int = 50,
        offset: int = 0,
        channel_id: Optional[UUID] = None,
        category: Optional[str] = None,
    ) -> Tuple[List[Video], int]:
        """Return a page of summarized videos (newest first) and the total matching count."""

        return self._video_repo.list_page(limit=limit, offset=offset, channel_id=channel_id, category=category)

    def get_video(self, record_id: UUID) -> Optional[Video]:
        return self._video_repo.find_with_channel(record_id)

    def delete_video(self, record_id: UUID) -> bool:
        return self._video_repo.delete_by_id(record_id)


__all__ = [
    "ChannelAlreadyExistsError",
    "StorageError",
    "StorageService",
    "VideoAlreadyExistsError",
]
