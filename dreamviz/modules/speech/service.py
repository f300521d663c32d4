"""Layer 1: converts spoken narration into text for prompt engineering."""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from dreamviz.config import Settings, get_settings
from dreamviz.errors import TranscriptionError
from dreamviz.logging_config import get_logger
from dreamviz.modules.speech.models import SpeechTranscript, TranscriptionRequest, Utterance
from dreamviz.openai_support import as_payload, build_client, retry_transport, transport_errors

logger = get_logger(__name__)


class SpeechTranscriptionService:
    """Transcribes an audio file with the configured speech model."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    async def transcribe(self, request: TranscriptionRequest) -> SpeechTranscript:
        audio_path = request.audio_path
        if not audio_path.is_file():
            raise ValueError(f"Audio file is not readable: {audio_path}")

        kwargs: dict[str, Any] = {"model": self._settings.openai_audio_model}
        if request.language and request.language.strip():
            kwargs["language"] = request.language.strip()
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature

        data = await self._create(audio_path.name, audio_path.read_bytes(), kwargs)
        if "text" not in data:
            raise TranscriptionError("Transcription response missing text")
        transcript = SpeechTranscript(
            full_text=str(data.get("text") or ""),
            utterances=parse_utterances(data),
            generated_at=parse_created(data),
        )
        logger.info(
            "audio_transcribed",
            file=audio_path.name,
            chars=len(transcript.full_text),
            segments=len(transcript.utterances),
        )
        return transcript

    @retry_transport
    async def _create(self, filename: str, content: bytes, kwargs: dict[str, Any]) -> dict[str, Any]:
        client = build_client(self._settings)
        with transport_errors("Transcription request"):
            response = await client.audio.transcriptions.create(file=(filename, content), **kwargs)
        return as_payload(response)


def parse_utterances(data: dict[str, Any]) -> list[Utterance]:
    segments = data.get("segments")
    if not isinstance(segments, list):
        return []
    utterances = []
    for segment in segments:
        if not isinstance(segment, dict):
            continue
        utterances.append(Utterance(
            start_seconds=_float(segment.get("start")),
            end_seconds=_float(segment.get("end")),
            text=str(segment.get("text") or ""),
        ))
    return utterances


def parse_created(data: dict[str, Any]) -> dt.datetime:
    created = data.get("created")
    if isinstance(created, (int, float)) and not isinstance(created, bool):
        return dt.datetime.fromtimestamp(created, dt.UTC)
    return dt.datetime.now(dt.UTC)


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
