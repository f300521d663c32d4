"""Dream Visualizer CLI commands."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from dreamviz.errors import ConfigurationError, DreamVizError

app = typer.Typer(help="Dream Visualizer: spoken dream narration to video", no_args_is_help=True)
console = Console()


def _async_run(coro):
    """Run an async coroutine."""
    return asyncio.run(coro)


@app.command()
def visualize(
    audio: Path = typer.Argument(..., help="Path to the recorded narration"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Language hint, e.g. 'en'"),
    transcript: Optional[str] = typer.Option(None, "--transcript", "-t", help="Use this text instead of transcribing"),
    image: Optional[Path] = typer.Option(None, "--image", "-i", help="Reference image for the prompt"),
    duration: Optional[int] = typer.Option(None, "--duration", "-d", min=1, help="Target duration in seconds"),
    aspect_ratio: Optional[str] = typer.Option(None, "--aspect-ratio", help="Target aspect ratio"),
    video_format: Optional[str] = typer.Option(None, "--format", help="Target container"),
) -> None:
    """Run transcription, prompt engineering and video generation."""
    from dreamviz.config import get_settings
    from dreamviz.logging_config import setup_logging
    from dreamviz.main import build_pipeline
    from dreamviz.modules.speech.models import SpeechTranscript, TranscriptionRequest
    from dreamviz.modules.video.models import GenerationOptions

    setup_logging()
    try:
        pipeline = build_pipeline()
    except ConfigurationError as exc:
        console.print(f"[red]✗ Configuration error:[/red] {exc.detail}")
        raise typer.Exit(code=2)

    defaults = GenerationOptions.defaults(get_settings())
    options = GenerationOptions(
        duration_seconds=duration or defaults.duration_seconds,
        aspect_ratio=aspect_ratio or defaults.aspect_ratio,
        format=video_format or defaults.format,
    )
    try:
        if transcript and transcript.strip():
            outcome = _async_run(pipeline.run_with_transcript(SpeechTranscript.from_text(transcript), options, image))
        else:
            request = TranscriptionRequest(audio_path=audio, language=language)
            outcome = _async_run(pipeline.run(request, options, image))
    except DreamVizError as exc:
        console.print(f"[red]✗ Pipeline failed[/red] ({exc.kind}): {exc.detail}")
        raise typer.Exit(code=1)

    console.print(Panel(outcome.transcript.full_text or "[dim](empty)[/dim]", title="Transcription"))
    console.print(Panel(outcome.prompt.sora_prompt or "[dim](empty)[/dim]", title="Engineered prompt"))

    job = outcome.video_job
    console.print(f"[bold]Video job:[/bold] {job.id}")
    console.print(f"[bold]Status:[/bold]    {job.status}")
    if job.polling_exhausted:
        console.print("[yellow]⚠ Still processing; stopped waiting.[/yellow]")
    elif job.download_reference:
        console.print(f"[bold]Download:[/bold]  {job.download_reference}")
    elif job.missing_artifact:
        console.print("[yellow]⚠ Completed, but no downloadable artifact was found.[/yellow]")


@app.command("render-prompt")
def render_prompt(
    prompt_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="PromptPackage JSON file"),
    duration: Optional[int] = typer.Option(None, "--duration", "-d", min=1),
    aspect_ratio: Optional[str] = typer.Option(None, "--aspect-ratio"),
) -> None:
    """Print the generation prompt a PromptPackage renders to."""
    from dreamviz.modules.prompt.models import PromptPackage
    from dreamviz.modules.video.models import GenerationOptions
    from dreamviz.modules.video.service import render_video_prompt

    try:
        prompt = PromptPackage.model_validate(json.loads(prompt_file.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValueError) as exc:
        console.print(f"[red]✗ Invalid prompt file:[/red] {exc}")
        raise typer.Exit(code=1)

    options = GenerationOptions(duration_seconds=duration, aspect_ratio=aspect_ratio)
    typer.echo(render_video_prompt(prompt, options), nl=False)


@app.command()
def serve() -> None:
    """Start the HTTP server."""
    from dreamviz.main import run

    run()


if __name__ == "__main__":
    app()
