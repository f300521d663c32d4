"""API route definitions for Dream Visualizer."""

from __future__ import annotations

import mimetypes
import tempfile
import time
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from dreamviz.config import get_settings
from dreamviz.logging_config import get_logger
from dreamviz.modules.prompt.models import PromptPackage
from dreamviz.modules.speech.models import SpeechTranscript, TranscriptionRequest
from dreamviz.modules.video.downloader import safe_artifact_path
from dreamviz.modules.video.models import GenerationOptions
from dreamviz.pipeline import PipelineError

logger = get_logger(__name__)

router = APIRouter()

# Content-type fragment -> temp file suffix for uploads without an extension.
_AUDIO_SUFFIXES = (
    ("webm", ".webm"),
    ("mp4", ".m4a"),
    ("mp3", ".mp3"),
    ("wav", ".wav"),
    ("ogg", ".ogg"),
    ("flac", ".flac"),
)


# ── Request / Response Models ────────────────────────────────────────

class VideoOptionsRequest(BaseModel):
    """Generation options accepted by ``POST /videos``."""

    duration_seconds: Optional[int] = None
    aspect_ratio: Optional[str] = None
    format: Optional[str] = None

    def to_options(self) -> GenerationOptions:
        """Fill gaps from the configured defaults; non-positive durations fall back too."""
        defaults = GenerationOptions.defaults(get_settings())
        duration = self.duration_seconds
        return GenerationOptions(
            duration_seconds=duration if duration and duration > 0 else defaults.duration_seconds,
            aspect_ratio=self.aspect_ratio or defaults.aspect_ratio,
            format=self.format or defaults.format,
        )


class VideoRequest(BaseModel):
    """Prompt-to-video request."""

    prompt: PromptPackage
    options: VideoOptionsRequest = Field(default_factory=VideoOptionsRequest)


class VideoResponse(BaseModel):
    """Prompt-to-video response."""

    job_id: str
    status: str
    download_url: Optional[str] = None


# ── Pipeline accessor (set from main.py) ─────────────────────────────

_pipeline = None


def set_pipeline(pipeline: Any) -> None:
    """Inject the pipeline instance."""
    global _pipeline
    _pipeline = pipeline


def get_pipeline():
    """Get the pipeline, raising if not initialized."""
    if _pipeline is None:
        raise HTTPException(status_code=503, detail="System not initialized")
    return _pipeline


def _error(status_code: int, error: str, details: str = "", kind: str = "") -> JSONResponse:
    body = {"error": error}
    if details:
        body["details"] = details
    if kind:
        body["kind"] = kind
    return JSONResponse(status_code=status_code, content=body)


def upload_suffix(filename: Optional[str], content_type: Optional[str]) -> str:
    """Temp-file suffix for an uploaded audio file."""
    name = filename or ""
    if "." in name:
        return name[name.rindex("."):]
    kind = content_type or ""
    for fragment, suffix in _AUDIO_SUFFIXES:
        if fragment in kind:
            return suffix
    return ".bin"


async def _persist_upload(upload: UploadFile) -> Path:
    suffix = upload_suffix(upload.filename, upload.content_type)
    with tempfile.NamedTemporaryFile(prefix="dream-upload", suffix=suffix, delete=False) as fh:
        fh.write(await upload.read())
        return Path(fh.name)


# ── Health ───────────────────────────────────────────────────────────

@router.get("/health", response_class=PlainTextResponse)
async def health_check() -> str:
    return "ok"


# ── Dreams ───────────────────────────────────────────────────────────

@router.post("/dreams")
async def create_dream(
    audio: Optional[UploadFile] = File(None),
    language: Optional[str] = Form(None),
    transcript_override: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
) -> Any:
    """Run the full pipeline on an uploaded narration."""
    pipeline = get_pipeline()
    if audio is None:
        return _error(400, "audio file is required")

    started = time.monotonic()
    options = GenerationOptions.defaults(get_settings())
    temp_files: list[Path] = []
    try:
        audio_path = await _persist_upload(audio)
        temp_files.append(audio_path)
        logger.info(
            "audio_received",
            filename=audio.filename,
            content_type=audio.content_type,
            size=audio_path.stat().st_size,
        )
        image_path = None
        if image is not None and image.filename:
            image_path = await _persist_upload(image)
            temp_files.append(image_path)

        if transcript_override and transcript_override.strip():
            logger.info("transcript_override_used", chars=len(transcript_override))
            outcome = await pipeline.run_with_transcript(
                SpeechTranscript.from_text(transcript_override), options, image_path,
            )
        else:
            request = TranscriptionRequest(
                audio_path=audio_path,
                language=language.strip() if language and language.strip() else None,
            )
            outcome = await pipeline.run(request, options, image_path)
    except PipelineError as exc:
        logger.error("pipeline_failed", stage=exc.stage.value, kind=exc.kind, error=exc.detail)
        if exc.kind in ("transport", "contract"):
            return _error(502, "Pipeline execution failed", exc.detail, exc.kind)
        return _error(500, "Unexpected server error", exc.detail, exc.kind)
    except Exception as exc:
        logger.exception("unexpected_server_error")
        return _error(500, "Unexpected server error", str(exc))
    finally:
        for path in temp_files:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("temp_file_delete_failed", path=str(path), error=str(exc))

    response = outcome.to_dict()
    response["elapsed_ms"] = int((time.monotonic() - started) * 1000)
    return response


# ── Videos ───────────────────────────────────────────────────────────

@router.post("/videos", response_model=VideoResponse)
async def create_video(req: VideoRequest) -> Any:
    """Generate a video straight from an engineered prompt."""
    pipeline = get_pipeline()
    try:
        job = await pipeline.video_service.generate_video(req.prompt, req.options.to_options())
    except Exception as exc:
        logger.exception("video_generation_failed")
        return _error(502, "Video generation failed", getattr(exc, "detail", None) or str(exc))
    return VideoResponse(job_id=job.id, status=job.status, download_url=job.download_reference)


@router.get("/videos/{filename}")
async def get_video_file(filename: str) -> Any:
    """Stream a persisted video."""
    pipeline = get_pipeline()
    try:
        path = safe_artifact_path(Path(pipeline.video_service.output_dir), filename)
    except ValueError:
        return PlainTextResponse("Invalid filename", status_code=400)
    if not path.is_file():
        return PlainTextResponse("Video not found", status_code=404)

    media_type, _ = mimetypes.guess_type(path.name)
    return FileResponse(
        path,
        media_type=media_type or "video/mp4",
        headers={"Cache-Control": "no-store"},
    )
