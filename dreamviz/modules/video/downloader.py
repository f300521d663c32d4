"""Persist a finished job's artifact into the local video directory."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, Optional

from dreamviz.errors import DreamVizError
from dreamviz.logging_config import get_logger
from dreamviz.modules.video.client import VideoAPIClient
from dreamviz.modules.video.models import GenerationOptions, OutputDescriptor
from dreamviz.modules.video.resolver import extension_from_options, extract_download_url, infer_extension

logger = get_logger(__name__)

PUBLIC_PREFIX = "/videos/"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9\-_.]")
# Dot runs, and a trailing dot that would meet the extension separator.
_DOT_RUNS = re.compile(r"\.{2,}|\.$")


def sanitise_for_filename(value: str) -> str:
    """Replace every character outside ``[A-Za-z0-9-_.]`` with ``_``.

    Dot runs are collapsed too, so the result always passes
    ``safe_artifact_path`` once an extension is appended.
    """
    return _DOT_RUNS.sub("_", _UNSAFE_CHARS.sub("_", value))


def public_reference(path: Path) -> str:
    """Relative handle the serving layer resolves back to ``path``."""
    return PUBLIC_PREFIX + path.name


def safe_artifact_path(output_dir: Path, filename: str) -> Path:
    """Resolve ``filename`` inside ``output_dir``.

    Raises ValueError for traversal segments or anything that lands
    outside the directory.
    """
    if not filename or ".." in filename or "/" in filename or "\\" in filename:
        raise ValueError(f"Invalid filename: {filename!r}")
    root = output_dir.resolve()
    resolved = (root / filename).resolve()
    if not resolved.is_relative_to(root) or resolved == root:
        raise ValueError(f"Invalid filename: {filename!r}")
    return resolved


# Descriptor strategies, tried in order: name -> locator -> content URL builder.
LocatorStrategy = tuple[str, Callable[[OutputDescriptor], Optional[str]], Callable[[VideoAPIClient, str], str]]

DESCRIPTOR_STRATEGIES: tuple[LocatorStrategy, ...] = (
    ("file", lambda d: d.file_id, lambda c, file_id: c.file_content_url(file_id)),
    ("asset", lambda d: d.asset_id, lambda c, asset_id: c.asset_content_url(asset_id)),
    ("direct", lambda d: extract_download_url(d.payload), lambda c, url: url),
)


class ArtifactDownloader:
    """Fetches the artifact bytes through the first strategy that works.

    File handle, asset handle and direct URL are tried in that order, then
    the job's own content endpoint. A failed strategy is logged and the
    next one is tried.
    """

    def __init__(self, client: VideoAPIClient, output_dir: Path) -> None:
        self._client = client
        self._output_dir = output_dir

    def target_path(self, video_id: str, extension: str) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        return self._output_dir / f"{sanitise_for_filename(video_id)}.{extension}"

    async def persist(
        self,
        video_id: str,
        descriptor: Optional[OutputDescriptor],
        options: Optional[GenerationOptions] = None,
    ) -> Optional[str]:
        """Download the artifact and return its public reference, or None."""
        if descriptor is not None:
            destination = self.target_path(video_id, infer_extension(descriptor, options))
            for name, locate, build_url in DESCRIPTOR_STRATEGIES:
                locator = locate(descriptor)
                if not locator:
                    continue
                if await self._fetch(video_id, name, build_url(self._client, locator), destination):
                    return public_reference(destination)
            logger.debug("video_descriptor_exhausted", video_id=video_id)

        destination = self.target_path(video_id, extension_from_options(options))
        if await self._fetch(video_id, "content", self._client.video_content_url(video_id), destination):
            return public_reference(destination)
        return None

    async def _fetch(self, video_id: str, strategy: str, url: str, destination: Path) -> bool:
        try:
            await self._client.download(url, destination)
        except (DreamVizError, OSError) as exc:
            logger.warning("video_download_failed", video_id=video_id, strategy=strategy, error=str(exc))
            return False
        logger.info("video_saved", video_id=video_id, strategy=strategy, path=str(destination))
        return True
