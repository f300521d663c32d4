"""High-level pipeline: transcription, prompt engineering, video generation."""

from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Optional

from dreamviz.errors import DreamVizError
from dreamviz.logging_config import get_logger, run_context
from dreamviz.modules.prompt.models import PromptPackage
from dreamviz.modules.prompt.service import DreamPromptEngineer
from dreamviz.modules.speech.models import SpeechTranscript, TranscriptionRequest
from dreamviz.modules.speech.service import SpeechTranscriptionService
from dreamviz.modules.video.models import GenerationJob, GenerationOptions, VideoStatus
from dreamviz.modules.video.service import VideoGenerationService

logger = get_logger(__name__)

SKIPPED_ID_PREFIX = "skipped-"


class PipelineStage(StrEnum):
    """Pipeline run states."""

    IDLE = "idle"
    TRANSCRIBING = "transcribing"
    PROMPT_ENGINEERING = "prompt_engineering"
    VIDEO_GENERATING = "video_generating"
    DONE = "done"


class PipelineError(DreamVizError):
    """A stage failed; later stages were not attempted."""

    def __init__(self, stage: PipelineStage, cause: BaseException) -> None:
        detail = getattr(cause, "detail", None) or str(cause) or type(cause).__name__
        super().__init__(detail)
        self.stage = stage
        self.cause = cause
        self.kind = getattr(cause, "kind", "input" if isinstance(cause, ValueError) else "internal")


@dataclass(frozen=True)
class PipelineOutcome:
    """Aggregates the outputs from the three pipeline layers."""

    transcript: SpeechTranscript
    prompt: PromptPackage
    video_job: GenerationJob
    stages: tuple[PipelineStage, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "transcript": self.transcript.to_dict(),
            "prompt": self.prompt.model_dump(),
            "video": self.video_job.to_dict(),
        }


def skipped_job() -> GenerationJob:
    """Placeholder job used when video generation is switched off."""
    return GenerationJob(
        id=f"{SKIPPED_ID_PREFIX}{uuid.uuid4().hex[:12]}",
        status=VideoStatus.SKIPPED.value,
        created_at=dt.datetime.now(dt.UTC),
    )


class DreamVisualizationPipeline:
    """Runs Transcribing -> PromptEngineering -> VideoGenerating in order.

    A transcript override skips transcription and ``skip_video_generation``
    replaces the video stage with a placeholder job. Run state lives on the
    call stack, so one pipeline can serve concurrent runs.
    """

    def __init__(
        self,
        transcriber: SpeechTranscriptionService,
        prompt_engineer: DreamPromptEngineer,
        video_service: VideoGenerationService,
        skip_video_generation: bool = False,
    ) -> None:
        self.transcriber = transcriber
        self.prompt_engineer = prompt_engineer
        self.video_service = video_service
        self.skip_video_generation = skip_video_generation

    async def run(
        self,
        request: TranscriptionRequest,
        options: GenerationOptions,
        image_path: Optional[Path] = None,
    ) -> PipelineOutcome:
        """Full run starting from an audio file."""
        with run_context():
            stages = [PipelineStage.IDLE, PipelineStage.TRANSCRIBING]
            transcript = await self._stage(PipelineStage.TRANSCRIBING, self.transcriber.transcribe(request))
            return await self._continue(stages, transcript, options, image_path)

    async def run_with_transcript(
        self,
        transcript: SpeechTranscript,
        options: GenerationOptions,
        image_path: Optional[Path] = None,
    ) -> PipelineOutcome:
        """Run from an already known transcript, skipping transcription."""
        with run_context():
            logger.info("pipeline_transcript_override", chars=len(transcript.full_text))
            return await self._continue([PipelineStage.IDLE], transcript, options, image_path)

    async def _continue(
        self,
        stages: list[PipelineStage],
        transcript: SpeechTranscript,
        options: GenerationOptions,
        image_path: Optional[Path],
    ) -> PipelineOutcome:
        stages.append(PipelineStage.PROMPT_ENGINEERING)
        prompt = await self._stage(
            PipelineStage.PROMPT_ENGINEERING,
            self.prompt_engineer.engineer_prompt(transcript.full_text, image_path),
        )

        if self.skip_video_generation:
            video_job = skipped_job()
            logger.info("pipeline_video_skipped", job_id=video_job.id)
        else:
            stages.append(PipelineStage.VIDEO_GENERATING)
            video_job = await self._stage(
                PipelineStage.VIDEO_GENERATING,
                self.video_service.generate_video(prompt, options),
            )

        stages.append(PipelineStage.DONE)
        logger.info("pipeline_done", job_id=video_job.id, status=video_job.status)
        return PipelineOutcome(transcript, prompt, video_job, tuple(stages))

    async def _stage(self, stage: PipelineStage, work: Any) -> Any:
        logger.info("pipeline_stage_started", stage=stage.value)
        try:
            result = await work
        except DreamVizError as exc:
            logger.error("pipeline_stage_failed", stage=stage.value, kind=exc.kind, error=exc.detail)
            raise PipelineError(stage, exc) from exc
        except Exception as exc:
            logger.exception("pipeline_stage_failed", stage=stage.value, error=str(exc))
            raise PipelineError(stage, exc) from exc
        logger.info("pipeline_stage_finished", stage=stage.value)
        return result
