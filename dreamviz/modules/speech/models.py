"""Speech transcription models."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass(frozen=True)
class TranscriptionRequest:
    """Options for the speech transcription layer."""

    audio_path: Path
    language: Optional[str] = None
    temperature: Optional[float] = None


@dataclass(frozen=True)
class Utterance:
    """One timed segment of the transcript."""

    start_seconds: float
    end_seconds: float
    text: str


@dataclass(frozen=True)
class SpeechTranscript:
    """Domain-level representation of a transcription."""

    full_text: str
    utterances: list[Utterance] = field(default_factory=list)
    generated_at: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.UTC))

    @classmethod
    def from_text(cls, text: str) -> SpeechTranscript:
        """Wrap caller-supplied text as a single-utterance transcript.

        The utterance length is estimated at 0.6s per word, at least 1s.
        """
        duration = max(1.0, len(text.split()) * 0.6)
        return cls(full_text=text, utterances=[Utterance(0.0, duration, text)])

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.full_text,
            "generated_at": self.generated_at.isoformat(),
            "segments": [
                {"start": u.start_seconds, "end": u.end_seconds, "text": u.text}
                for u in self.utterances
            ],
        }
