"""Submit a generation job and wait for it to reach a terminal state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Awaitable, Callable, Optional

from dreamviz.errors import ContractViolationError, TransportError
from dreamviz.logging_config import get_logger
from dreamviz.modules.video.client import VideoAPIClient
from dreamviz.modules.video.models import is_terminal_status

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_MAX_ATTEMPTS = 48
DEFAULT_INTERVAL_SECONDS = 10.0


class PollState(StrEnum):
    """Where a single job's poll loop currently stands."""

    SUBMITTED = "submitted"
    WAITING = "waiting"
    FETCHING = "fetching"
    TERMINAL = "terminal"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class PollResult:
    """Last observation of a job when the poll loop stopped."""

    video_id: str
    payload: dict[str, Any]
    status: str
    state: PollState
    attempts: int

    @property
    def exhausted(self) -> bool:
        return self.state == PollState.EXHAUSTED


class JobPoller:
    """Drives one job from submission to a terminal status.

    Every instance tracks a single job; nothing is shared between
    instances, so concurrent runs never block or observe each other.
    Running out of attempts returns the last non-terminal observation.
    Cancellation while waiting propagates ``asyncio.CancelledError``.
    """

    def __init__(
        self,
        client: VideoAPIClient,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._max_attempts = max_attempts
        self._interval = interval_seconds
        self._sleep = sleep
        self.state = PollState.SUBMITTED

    async def submit(self, payload: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Submit the request and return the job id with the raw reply.

        Transport and contract errors are fatal here.
        """
        response = await self._client.create_video(payload)
        video_id = str(response.get("id") or "").strip()
        if not video_id:
            raise ContractViolationError("Video generation response missing id")
        logger.info(
            "video_submitted",
            video_id=video_id,
            model=payload.get("model"),
            status=response.get("status", "unknown"),
        )
        return video_id, response

    async def wait(self, video_id: str, initial: dict[str, Any]) -> PollResult:
        """Poll ``video_id`` until terminal or out of attempts."""
        current = initial
        status = _status_of(initial) or ""
        attempts = 0

        while not is_terminal_status(status) and attempts < self._max_attempts:
            self.state = PollState.WAITING
            try:
                await self._sleep(self._interval)
            except asyncio.CancelledError:
                logger.info("video_poll_cancelled", video_id=video_id, attempts=attempts, status=status)
                raise

            self.state = PollState.FETCHING
            attempts += 1
            try:
                current = await self._client.get_video(video_id)
            except TransportError as exc:
                logger.warning("video_poll_error", video_id=video_id, attempt=attempts, error=str(exc))
                continue

            next_status = _status_of(current) or status
            if next_status.lower() != status.lower():
                logger.info("video_status_changed", video_id=video_id, status=next_status, attempt=attempts)
            status = next_status

        if is_terminal_status(status):
            self.state = PollState.TERMINAL
            logger.info("video_terminal", video_id=video_id, status=status, attempts=attempts)
        else:
            self.state = PollState.EXHAUSTED
            logger.warning("video_poll_exhausted", video_id=video_id, attempts=attempts, status=status)

        return PollResult(
            video_id=video_id,
            payload=current,
            status=status,
            state=self.state,
            attempts=attempts,
        )

    async def submit_and_await(self, payload: dict[str, Any]) -> PollResult:
        video_id, response = await self.submit(payload)
        return await self.wait(video_id, response)


def _status_of(payload: dict[str, Any]) -> Optional[str]:
    value = payload.get("status")
    if value is None:
        return None
    text = str(value).strip()
    return text or None
