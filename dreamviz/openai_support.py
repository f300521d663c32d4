"""Helpers shared by the layers that call the OpenAI SDK."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dreamviz.config import Settings
from dreamviz.errors import TransportError

# Transport failures are retried; contract violations never are.
retry_transport = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(min=1, max=10),
    retry=retry_if_exception_type(TransportError),
    reraise=True,
)


def build_client(settings: Settings) -> Any:
    """Create an ``openai.AsyncOpenAI`` bound to the configured endpoint."""
    import openai

    return openai.AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        project=settings.project,
        timeout=settings.openai_request_timeout_seconds,
        max_retries=0,
    )


@contextmanager
def transport_errors(operation: str) -> Iterator[None]:
    """Re-raise SDK failures as ``TransportError``."""
    import openai

    try:
        yield
    except openai.APIError as exc:
        raise TransportError(
            f"{operation} failed: {exc}",
            status_code=getattr(exc, "status_code", None),
        ) from exc


def as_payload(response: Any) -> dict[str, Any]:
    """Plain dict view of an SDK response object."""
    if isinstance(response, dict):
        return response
    dump = getattr(response, "model_dump", None)
    if callable(dump):
        data = dump()
        if isinstance(data, dict):
            return data
    return {}
