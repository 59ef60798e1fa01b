"""FastAPI application exposing admin triggers, job status and read access to summaries."""

from __future__ import annotations

import asyncio
import secrets
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from tubesum import __version__
from tubesum.models.channel import DEFAULT_CATEGORY, Channel
from tubesum.models.job import SingleVideoJob
from tubesum.models.video import Video
from tubesum.services.container import ServiceContainer
from tubesum.services.storage import ChannelAlreadyExistsError, StorageError
from tubesum.services.youtube import ChannelLookupError

MAX_CATEGORY_LENGTH = 50
MAX_PAGE_SIZE = 100


class FetchCategoryRequest(BaseModel):
    category: str


class CronStatus(BaseModel):
    active: bool


class FetchVideoRequest(BaseModel):
    url: str = Field(min_length=1)


class FetchVideoAccepted(BaseModel):
    job_id: str


class AddChannelRequest(BaseModel):
    """A channel URL, ``@handle`` or ``UC...`` id plus the category to file it under."""

    channel: str = Field(min_length=1)
    category: str = Field(default=DEFAULT_CATEGORY, min_length=1, max_length=MAX_CATEGORY_LENGTH)


class MessageResponse(BaseModel):
    message: str


class VideoPage(BaseModel):
    videos: List[Video]
    total: int
    has_more: bool


def get_services(request: Request) -> ServiceContainer:
    """Return the service container attached to the running application."""

    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="services not initialized")
    return services


def require_admin(
    authorization: Optional[str] = Header(default=None),
    services: ServiceContainer = Depends(get_services),
) -> None:
    """Check the bearer token on admin routes; reject every request when no token is configured."""

    configured = services.settings.admin_api_token
    if configured is None or not configured.get_secret_value():
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="admin token not configured")

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No token provided")
    if not secrets.compare_digest(token, configured.get_secret_value()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return None


def normalise_category(raw: str) -> str:
    """Trim and lowercase a category, rejecting empty, oversized and ``main`` values."""

    category = raw.strip().lower()
    if not category:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="category is required")
    if len(category) > MAX_CATEGORY_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="category exceeds maximum length")
    if category == DEFAULT_CATEGORY:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use /api/admin/trigger-fetch to fetch main channels",
        )
    return category


def create_app(services: Optional[ServiceContainer] = None, *, start_scheduler: bool = True) -> FastAPI:
    """Build the FastAPI application.

    Parameters
    ----------
    services:
        Pre-built service container. When omitted, one is built from the environment during
        application startup and closed on shutdown.
    start_scheduler:
        Whether the lifespan starts the cron scheduler (and the optional startup run).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = getattr(app.state, "services", None) is None
        if owned:
            app.state.services = ServiceContainer.build()
        container: ServiceContainer = app.state.services
        if start_scheduler:
            container.scheduler.start()
        try:
            yield
        finally:
            if owned:
                await container.aclose()
            elif start_scheduler:
                await container.scheduler.shutdown()

    app = FastAPI(title="tubesum", version=__version__, lifespan=lifespan)
    if services is not None:
        app.state.services = services

    admin = [Depends(require_admin)]

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    # ------------------------------------------------------------------ #
    # Admin: ingestion triggers                                          #
    # ------------------------------------------------------------------ #
    @app.post("/api/admin/trigger-fetch", dependencies=admin, response_model=MessageResponse)
    async def trigger_fetch(services: ServiceContainer = Depends(get_services)) -> MessageResponse:
        services.scheduler.trigger(DEFAULT_CATEGORY)
        return MessageResponse(message="Video fetch job triggered for main channels. Processing in background.")

    @app.post("/api/admin/fetch-category", dependencies=admin, response_model=MessageResponse)
    async def fetch_category(
        payload: FetchCategoryRequest,
        services: ServiceContainer = Depends(get_services),
    ) -> MessageResponse:
        category = normalise_category(payload.category)
        services.scheduler.trigger(category)
        return MessageResponse(
            message=f'Video fetch job triggered for "{category}" channels. Processing in background.'
        )

    @app.get("/api/admin/cron", dependencies=admin, response_model=CronStatus)
    async def get_cron(services: ServiceContainer = Depends(get_services)) -> CronStatus:
        return CronStatus(active=services.scheduler.get_cron_enabled())

    @app.put("/api/admin/cron", dependencies=admin, response_model=CronStatus)
    async def set_cron(payload: CronStatus, services: ServiceContainer = Depends(get_services)) -> CronStatus:
        return CronStatus(active=services.scheduler.set_cron_enabled(payload.active))

    # ------------------------------------------------------------------ #
    # Admin: single video submission                                     #
    # ------------------------------------------------------------------ #
    @app.post(
        "/api/admin/fetch-video",
        dependencies=admin,
        status_code=status.HTTP_202_ACCEPTED,
        response_model=FetchVideoAccepted,
    )
    async def fetch_video(
        payload: FetchVideoRequest,
        services: ServiceContainer = Depends(get_services),
    ) -> FetchVideoAccepted:
        result = services.jobs.submit(payload.url)
        if result.error is not None or result.job_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
        return FetchVideoAccepted(job_id=result.job_id)

    @app.get("/api/admin/fetch-video/{job_id}", dependencies=admin, response_model=SingleVideoJob)
    async def fetch_video_status(job_id: str, services: ServiceContainer = Depends(get_services)) -> SingleVideoJob:
        job = services.jobs.get_status(job_id)
        if job is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found or expired")
        return job

    # ------------------------------------------------------------------ #
    # Channels                                                           #
    # ------------------------------------------------------------------ #
    @app.get("/api/channels", response_model=List[Channel])
    async def list_channels(services: ServiceContainer = Depends(get_services)) -> List[Channel]:
        return await asyncio.to_thread(services.storage.list_all_channels)

    @app.post(
        "/api/channels",
        dependencies=admin,
        status_code=status.HTTP_201_CREATED,
        response_model=Channel,
    )
    async def add_channel(payload: AddChannelRequest, services: ServiceContainer = Depends(get_services)) -> Channel:
        try:
            info = await services.youtube.resolve_channel(payload.channel)
        except ChannelLookupError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        try:
            return await asyncio.to_thread(services.storage.add_channel, info, category=payload.category)
        except ChannelAlreadyExistsError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Channel already exists") from exc

    @app.delete("/api/channels/{record_id}", dependencies=admin, response_model=MessageResponse)
    async def delete_channel(record_id: UUID, services: ServiceContainer = Depends(get_services)) -> MessageResponse:
        try:
            deleted = await asyncio.to_thread(services.storage.delete_channel, record_id)
        except StorageError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")
        return MessageResponse(message="Channel deleted successfully")

    # ------------------------------------------------------------------ #
    # Videos                                                             #
    # ------------------------------------------------------------------ #
    @app.get("/api/videos", response_model=VideoPage)
    async def list_videos(
        limit: int = Query(default=50, ge=1, le=MAX_PAGE_SIZE),
        offset: int = Query(default=0, ge=0),
        channel_id: Optional[UUID] = Query(default=None),
        category: Optional[str] = Query(default=None),
        services: ServiceContainer = Depends(get_services),
    ) -> VideoPage:
        filters: Dict[str, Any] = {"limit": limit, "offset": offset, "channel_id": channel_id}
        if category is not None:
            normalised = category.strip().lower()
            if not normalised:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="category must be a non-empty string")
            if len(normalised) > MAX_CATEGORY_LENGTH:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="category exceeds maximum length")
            filters["category"] = normalised

        videos, total = await asyncio.to_thread(lambda: services.storage.list_videos(**filters))
        return VideoPage(videos=videos, total=total, has_more=offset + limit < total)

    @app.get("/api/videos/{record_id}", response_model=Video)
    async def get_video(record_id: UUID, services: ServiceContainer = Depends(get_services)) -> Video:
        video = await asyncio.to_thread(services.storage.get_video, record_id)
        if video is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
        return video

    @app.delete("/api/videos/{record_id}", dependencies=admin, response_model=MessageResponse)
    async def delete_video(record_id: UUID, services: ServiceContainer = Depends(get_services)) -> MessageResponse:
        deleted = await asyncio.to_thread(services.storage.delete_video, record_id)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
        return MessageResponse(message="Video deleted successfully")

    return app


__all__ = ["create_app", "get_services", "normalise_category", "require_admin"]
