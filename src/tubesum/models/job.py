"""Pydantic models describing single-video submission jobs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from tubesum.models.base import TubeBaseModel
from tubesum.models.video import Video
from tubesum.utils.progress import ProcessingStage


class JobStatus(str, Enum):
    """Lifecycle states for a single-video job."""

    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


class SingleVideoJob(TubeBaseModel):
    """In-memory record tracking one manual video submission.

    Holds the submitted URL, the stage currently executing, and either the stored video or an
    error message once the job reaches a terminal state.
    """

    job_id: str
    video_url: str
    video_id: str
    status: JobStatus = JobStatus.PENDING
    current_stage: Optional[ProcessingStage] = None
    video: Optional[Video] = None
    error: Optional[str] = None
    submitted_at: datetime
    completed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class SubmitResult(TubeBaseModel):
    """Outcome of a submission request: a job id or an immediate validation error."""

    job_id: Optional[str] = None
    error: Optional[str] = Field(default=None)


__all__ = ["JobStatus", "SingleVideoJob", "SubmitResult"]
