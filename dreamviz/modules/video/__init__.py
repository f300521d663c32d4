"""Video generation service module."""

from dreamviz.modules.video.models import GenerationJob, GenerationOptions, OutputDescriptor, VideoStatus
from dreamviz.modules.video.service import VideoGenerationService, render_video_prompt

__all__ = [
    "GenerationJob",
    "GenerationOptions",
    "OutputDescriptor",
    "VideoStatus",
    "VideoGenerationService",
    "render_video_prompt",
]
