"""Dream Visualizer application entry point.

Quick Start:
    $ dreamviz-server            # Start the HTTP server
    $ dreamviz visualize a.m4a   # One-shot run from the command line

Environment:
    OPENAI_API_KEY               # required
    DREAMVIZ_ENV                 # development/production (default: development)
    DREAMVIZ_LOG_LEVEL           # DEBUG/INFO/WARNING/ERROR (default: INFO)
    SKIP_VIDEO_GENERATION        # true to stop after prompt engineering
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dreamviz import __version__
from dreamviz.api.routes import router, set_pipeline
from dreamviz.config import Settings, get_settings
from dreamviz.logging_config import get_logger, setup_logging
from dreamviz.modules.prompt.service import DreamPromptEngineer
from dreamviz.modules.speech.service import SpeechTranscriptionService
from dreamviz.modules.video.service import VideoGenerationService
from dreamviz.pipeline import DreamVisualizationPipeline

setup_logging()
logger = get_logger(__name__)


def build_pipeline(settings: Optional[Settings] = None) -> DreamVisualizationPipeline:
    """Wire the three layers from one settings object."""
    settings = settings or get_settings()
    settings.require_credentials()
    return DreamVisualizationPipeline(
        transcriber=SpeechTranscriptionService(settings),
        prompt_engineer=DreamPromptEngineer(settings),
        video_service=VideoGenerationService(settings),
        skip_video_generation=settings.skip_video_generation,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the pipeline on startup."""
    settings = get_settings()
    set_pipeline(build_pipeline(settings))
    logger.info(
        "dreamviz_started",
        version=__version__,
        env=settings.dreamviz_env,
        video_dir=str(settings.video_dir),
        skip_video_generation=settings.skip_video_generation,
    )
    yield
    set_pipeline(None)
    logger.info("dreamviz_stopped")


app = FastAPI(
    title="Dream Visualizer",
    description="Spoken dream narration to generated video",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


def run() -> None:
    """Run the server with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "dreamviz.main:app",
        host=settings.api_host,
        port=settings.dream_server_port,
        log_level=settings.dreamviz_log_level.lower(),
    )


if __name__ == "__main__":
    run()
