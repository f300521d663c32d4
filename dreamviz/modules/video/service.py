"""Layer 3: submits the engineered prompt to the video API and collects the result."""

from __future__ import annotations

import asyncio
import datetime as dt
import json
from pathlib import Path
from typing import Any, Callable, Optional

from dreamviz.config import Settings, get_settings
from dreamviz.logging_config import get_logger
from dreamviz.modules.prompt.models import PromptPackage
from dreamviz.modules.video.client import VideoAPIClient
from dreamviz.modules.video.downloader import ArtifactDownloader
from dreamviz.modules.video.models import GenerationJob, GenerationOptions, is_completed_status
from dreamviz.modules.video.poller import JobPoller, Sleep
from dreamviz.modules.video.resolver import ArtifactResolver, extract_download_url

logger = get_logger(__name__)

ClientFactory = Callable[[Settings], VideoAPIClient]

CREATED_AT_FIELDS = ("created_at", "queued_at", "started_at")


def render_video_prompt(prompt: PromptPackage, options: Optional[GenerationOptions] = None) -> str:
    """Flatten a PromptPackage into the plain-text generation prompt.

    Blank optional fields contribute no line. Output depends only on the
    inputs.
    """
    parts = [prompt.sora_prompt.strip()]

    if prompt.narrative_beats:
        parts.append("\n\nKey beats:\n")
        parts.extend(f"- {beat}\n" for beat in prompt.narrative_beats)
    if prompt.visual_keywords:
        parts.append(f"\nVisual anchors: {', '.join(prompt.visual_keywords)}\n")
    if prompt.negative_prompts:
        parts.append(f"\nAvoid: {', '.join(prompt.negative_prompts)}\n")

    if prompt.emotional_tone:
        parts.append(f"\nEmotional tone: {prompt.emotional_tone}\n")
    if prompt.color_palette:
        parts.append(f"Palette: {prompt.color_palette}\n")
    if prompt.camera_style:
        parts.append(f"Camera style: {prompt.camera_style}\n")
    if prompt.motion_style:
        parts.append(f"Motion style: {prompt.motion_style}\n")

    if options is not None:
        if options.duration_seconds is not None:
            parts.append(f"\nTarget duration: {options.duration_seconds} seconds\n")
        if options.aspect_ratio and options.aspect_ratio.strip():
            parts.append(f"Aspect ratio: {options.aspect_ratio.strip()}\n")

    return "".join(parts)


def parse_timestamp(value: Any) -> Optional[dt.datetime]:
    """Epoch seconds, epoch milliseconds or ISO-8601 text, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if len(str(abs(int(value)))) > 11 else value
        try:
            return dt.datetime.fromtimestamp(seconds, dt.UTC)
        except (OverflowError, OSError, ValueError):
            return None
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = dt.datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=dt.UTC)


def extract_created_at(payload: dict[str, Any]) -> dt.datetime:
    for name in CREATED_AT_FIELDS:
        parsed = parse_timestamp(payload.get(name))
        if parsed is not None:
            return parsed
    return dt.datetime.now(dt.UTC)


class VideoGenerationService:
    """Unified video generation entry point.

    Each call opens its own API client and poller, so concurrent calls
    share nothing but the output directory.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        output_dir: Optional[Path] = None,
        client_factory: Optional[ClientFactory] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        self.output_dir = Path(output_dir) if output_dir else self._settings.video_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._client_factory = client_factory or VideoAPIClient
        self._sleep = sleep

    async def generate_video(
        self,
        prompt: PromptPackage,
        options: Optional[GenerationOptions] = None,
    ) -> GenerationJob:
        """Generate a video and return its (terminal or last observed) job record."""
        options = options or GenerationOptions()
        request = {
            "model": self._settings.openai_video_model,
            "prompt": render_video_prompt(prompt, options),
        }

        async with self._client_factory(self._settings) as client:
            poller = JobPoller(
                client,
                max_attempts=self._settings.video_poll_max_attempts,
                interval_seconds=self._settings.video_poll_interval_seconds,
                sleep=self._sleep,
            )
            result = await poller.submit_and_await(request)
            video_id = result.video_id

            local_reference = remote_url = None
            if is_completed_status(result.status):
                descriptor = await ArtifactResolver(client.get_video).resolve(video_id, result.payload)
                remote_url = extract_download_url(descriptor.payload) if descriptor else None
                downloader = ArtifactDownloader(client, self.output_dir)
                local_reference = await downloader.persist(video_id, descriptor, options)

        job = GenerationJob(
            id=video_id,
            status=result.status or "processing",
            created_at=extract_created_at(result.payload),
            download_reference=local_reference or remote_url,
            remote_url=remote_url,
            polling_exhausted=result.exhausted,
        )
        if job.missing_artifact:
            logger.warning("video_completed_without_reference", video_id=video_id)
            logger.warning(
                "video_final_payload",
                video_id=video_id,
                payload=json.dumps(result.payload, indent=2, default=str),
            )
        elif job.download_reference and not job.is_local:
            logger.info("video_remote_reference_only", video_id=video_id)
        return job
