"""Video generation models."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Optional

from dreamviz.config import Settings


class VideoStatus(StrEnum):
    """Known remote job states. Remote payloads may report others."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"  # local placeholder, never reported by the API


TERMINAL_STATUSES = frozenset({VideoStatus.COMPLETED, VideoStatus.FAILED, VideoStatus.CANCELLED})


def is_terminal_status(status: Optional[str]) -> bool:
    """Unrecognised or missing statuses count as still running."""
    if not status:
        return False
    return status.strip().lower() in TERMINAL_STATUSES


def is_completed_status(status: Optional[str]) -> bool:
    return bool(status) and status.strip().lower() == VideoStatus.COMPLETED


@dataclass(frozen=True)
class GenerationOptions:
    """Optional knobs when requesting a video generation.

    ``seed`` is carried for callers but not sent to the API.
    """

    duration_seconds: Optional[int] = None
    aspect_ratio: Optional[str] = None
    format: Optional[str] = None
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.duration_seconds is not None and self.duration_seconds <= 0:
            raise ValueError("duration_seconds must be positive")

    @classmethod
    def defaults(cls, settings: Settings) -> GenerationOptions:
        """Options the serving layer and CLI use when the caller gives none."""
        return cls(
            duration_seconds=settings.default_duration_seconds,
            aspect_ratio=settings.default_aspect_ratio,
            format=settings.default_video_format,
        )


@dataclass(frozen=True)
class OutputDescriptor:
    """One candidate artifact location pulled from a job payload."""

    payload: dict[str, Any]

    @property
    def file_id(self) -> Optional[str]:
        return _non_blank(self.payload.get("file_id"))

    @property
    def asset_id(self) -> Optional[str]:
        return _non_blank(self.payload.get("asset_id"))


@dataclass(frozen=True)
class GenerationJob:
    """Identity and lifecycle record for one remote generation request.

    A completed job normally carries ``download_reference``: a local
    ``/videos/<file>`` handle when the artifact was persisted, otherwise the
    remote URL. ``polling_exhausted`` marks a job the poller gave up on
    while it was still running.
    """

    id: str
    status: str
    created_at: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.UTC))
    download_reference: Optional[str] = None
    remote_url: Optional[str] = None
    polling_exhausted: bool = False

    @property
    def is_terminal(self) -> bool:
        return is_terminal_status(self.status)

    @property
    def is_ready(self) -> bool:
        """Check if the video is ready for download."""
        return is_completed_status(self.status) and self.download_reference is not None

    @property
    def missing_artifact(self) -> bool:
        """Completed, but neither a local copy nor a remote URL could be found."""
        return is_completed_status(self.status) and self.download_reference is None

    @property
    def is_local(self) -> bool:
        return bool(self.download_reference) and self.download_reference.startswith("/videos/")

    def to_dict(self) -> dict[str, Any]:
        """Serialize the job for API and CLI output."""
        data: dict[str, Any] = {
            "job_id": self.id,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }
        if self.download_reference:
            data["download_url"] = self.download_reference
        if self.polling_exhausted:
            data["polling_exhausted"] = True
        if self.missing_artifact:
            data["artifact_missing"] = True
        return data


def _non_blank(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None
