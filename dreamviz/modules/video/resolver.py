"""Locate the produced artifact inside a variable-shape job payload.

Backends have reported the output of a generation job in many layouts:
a list of typed outputs, a single output object, URLs nested under
``file``, ``data``, ``sources``, ``formats`` or ``media``, and format hints
spread over half a dozen fields. Lookups are kept as ordered tables so a
new layout is one more row, not another branch.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlsplit

from dreamviz.errors import DreamVizError
from dreamviz.logging_config import get_logger
from dreamviz.modules.video.models import GenerationOptions, OutputDescriptor, is_completed_status

logger = get_logger(__name__)

DEFAULT_EXTENSION = "mp4"

# Fields that hold a directly fetchable URL, in priority order.
URL_FIELDS: tuple[str, ...] = ("download_url", "url", "content_url", "uri")

# Deepest nesting the URL search descends into (descriptor -> file -> data ...).
MAX_URL_DEPTH = 4


def _objects(value: Any) -> list[dict[str, Any]]:
    return [value] if isinstance(value, dict) else []


def _arrays(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return []


def _arrays_or_objects(value: Any) -> list[dict[str, Any]]:
    return _objects(value) or _arrays(value)


# Nested containers searched after the direct fields: field -> children extractor.
NESTED_URL_LOOKUPS: tuple[tuple[str, Callable[[Any], list[dict[str, Any]]]], ...] = (
    ("file", _objects),
    ("data", _arrays),
    ("sources", _arrays_or_objects),
    ("formats", _arrays),
    ("media", _arrays_or_objects),
)


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


# ── Output selection ─────────────────────────────────────────────────


def select_output(payload: dict[str, Any]) -> Optional[OutputDescriptor]:
    """Pick the output descriptor from a job payload.

    A list prefers the first ``type == "video"`` entry and otherwise takes
    the first entry; a single object is used as-is.
    """
    output = payload.get("output")
    if isinstance(output, list):
        entries = [item for item in output if isinstance(item, dict)]
        for item in entries:
            if str(item.get("type", "")).lower() == "video":
                return OutputDescriptor(item)
        if entries:
            return OutputDescriptor(entries[0])
    elif isinstance(output, dict):
        return OutputDescriptor(output)

    logger.debug("video_output_absent", video_id=payload.get("id", "unknown"))
    return None


# ── URL extraction ───────────────────────────────────────────────────


def extract_download_url(node: dict[str, Any], depth: int = 0) -> Optional[str]:
    """Return the first non-blank download URL found in ``node``.

    Direct fields win over nested ones; nested containers are searched in
    ``NESTED_URL_LOOKUPS`` order and the search stops at the first hit.
    """
    if not isinstance(node, dict):
        return None
    for name in URL_FIELDS:
        value = _text(node.get(name))
        if value:
            return value
    if depth >= MAX_URL_DEPTH:
        return None
    for name, children in NESTED_URL_LOOKUPS:
        for child in children(node.get(name)):
            found = extract_download_url(child, depth + 1)
            if found:
                return found
    return None


# ── Extension inference ──────────────────────────────────────────────


def normalise_extension(value: Optional[str]) -> Optional[str]:
    """Strip ``video/`` prefixes, MIME parameters and leading dots."""
    text = _text(value)
    if not text:
        return None
    text = text.split(";", 1)[0].strip()
    if text.lower().startswith("video/"):
        text = text[len("video/"):]
    text = text.lstrip(".")
    cleaned = "".join(ch for ch in text if ch.isalnum())
    return cleaned.lower() or None


def _mime_subtype(value: Any) -> Optional[str]:
    text = _text(value)
    if text and text.lower().startswith("video/"):
        return normalise_extension(text)
    return None


def _suffix(value: Optional[str]) -> Optional[str]:
    if not value or "." not in value:
        return None
    return normalise_extension(value.rsplit(".", 1)[1])


def _from_format(node: dict[str, Any], url: Optional[str]) -> Optional[str]:
    return normalise_extension(node.get("format"))


def _from_content_type(node: dict[str, Any], url: Optional[str]) -> Optional[str]:
    return _mime_subtype(node.get("content_type"))


def _from_mime_type(node: dict[str, Any], url: Optional[str]) -> Optional[str]:
    return _mime_subtype(node.get("mime_type"))


def _from_url(node: dict[str, Any], url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    last_segment = urlsplit(url).path.rsplit("/", 1)[-1]
    return _suffix(last_segment)


def _from_file_extension(node: dict[str, Any], url: Optional[str]) -> Optional[str]:
    return normalise_extension(node.get("file_extension"))


def _from_filename(node: dict[str, Any], url: Optional[str]) -> Optional[str]:
    name = _text(node.get("filename")) or _text(node.get("name"))
    return _suffix(name)


# Payload-derived format signals, consulted after the caller's own format.
EXTENSION_LOOKUPS: tuple[tuple[str, Callable[[dict[str, Any], Optional[str]], Optional[str]]], ...] = (
    ("format", _from_format),
    ("content_type", _from_content_type),
    ("mime_type", _from_mime_type),
    ("url", _from_url),
    ("file_extension", _from_file_extension),
    ("filename", _from_filename),
)


def extension_from_options(options: Optional[GenerationOptions]) -> str:
    """Extension for the caller's requested format, or the default container."""
    requested = normalise_extension(options.format) if options else None
    return requested or DEFAULT_EXTENSION


def infer_extension(
    descriptor: Optional[OutputDescriptor],
    options: Optional[GenerationOptions] = None,
) -> str:
    """Choose the output file extension. Never fails."""
    requested = normalise_extension(options.format) if options else None
    if requested:
        return requested
    if descriptor is None:
        return DEFAULT_EXTENSION
    url = extract_download_url(descriptor.payload)
    for _, lookup in EXTENSION_LOOKUPS:
        found = lookup(descriptor.payload, url)
        if found:
            return found
    return DEFAULT_EXTENSION


# ── Resolution with secondary fetches ────────────────────────────────

FetchJob = Callable[..., Awaitable[dict[str, Any]]]


class ArtifactResolver:
    """Resolves the output descriptor for a finished job.

    Some API versions elide ``output`` from status responses; for a
    completed job the resolver re-fetches the job, then asks again with
    ``include=output``.
    """

    def __init__(self, fetch_job: FetchJob) -> None:
        self._fetch_job = fetch_job

    async def resolve(self, video_id: str, payload: dict[str, Any]) -> Optional[OutputDescriptor]:
        descriptor = select_output(payload)
        if descriptor is not None or not is_completed_status(_text(payload.get("status"))):
            return descriptor

        try:
            descriptor = select_output(await self._fetch_job(video_id))
            if descriptor is not None:
                logger.info("video_output_fetched", video_id=video_id)
                return descriptor
            descriptor = select_output(await self._fetch_job(video_id, include="output"))
            if descriptor is not None:
                logger.info("video_output_fetched", video_id=video_id, include="output")
            return descriptor
        except DreamVizError as exc:
            logger.warning("video_output_fetch_failed", video_id=video_id, error=str(exc))
            return None

