"""Speech transcription module."""

from dreamviz.modules.speech.models import SpeechTranscript, TranscriptionRequest, Utterance
from dreamviz.modules.speech.service import SpeechTranscriptionService

__all__ = ["SpeechTranscript", "TranscriptionRequest", "Utterance", "SpeechTranscriptionService"]
