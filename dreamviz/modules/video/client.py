"""HTTP client for the remote video generation API."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, urlsplit

import httpx

from dreamviz.config import Settings
from dreamviz.errors import ContractViolationError, TransportError
from dreamviz.logging_config import get_logger

logger = get_logger(__name__)


class VideoAPIClient:
    """Thin async wrapper over the ``videos``, ``files`` and ``assets`` endpoints.

    One instance per generation run::

        async with VideoAPIClient(settings) as client:
            job = await client.create_video({"model": "sora-2", "prompt": "..."})
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._base_url = settings.openai_base_url
        self._http = httpx.AsyncClient(
            timeout=settings.openai_request_timeout_seconds,
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> VideoAPIClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── Headers ──────────────────────────────────────────────────────

    def _auth_headers(self) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._settings.openai_api_key}"}
        if self._settings.project:
            headers["OpenAI-Project"] = self._settings.project
        return headers

    def is_api_host(self, url: str) -> bool:
        """True when ``url`` points at the configured API scheme and host."""
        target = urlsplit(url)
        api = urlsplit(self._base_url)
        return (target.scheme, target.netloc.lower()) == (api.scheme, api.netloc.lower())

    # ── URLs ─────────────────────────────────────────────────────────

    def url_for(self, *segments: str) -> str:
        return "/".join([self._base_url, *(quote(s, safe="") for s in segments)])

    def file_content_url(self, file_id: str) -> str:
        return self.url_for("files", file_id, "content")

    def asset_content_url(self, asset_id: str) -> str:
        return self.url_for("assets", asset_id, "content")

    def video_content_url(self, video_id: str) -> str:
        return self.url_for("videos", video_id, "content")

    # ── JSON endpoints ───────────────────────────────────────────────

    async def create_video(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Submit a generation request."""
        return await self._request_json("POST", self.url_for("videos"), json=payload)

    async def get_video(self, video_id: str, include: Optional[str] = None) -> dict[str, Any]:
        """Fetch the current state of a generation job."""
        params = {"include": include} if include else None
        return await self._request_json("GET", self.url_for("videos", video_id), params=params)

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._http.request(method, url, headers=self._auth_headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"HTTP call to {url} failed: {exc}") from exc

        if resp.is_error:
            raise TransportError(
                f"API call failed with status {resp.status_code}: {resp.text[:500]}",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ContractViolationError(f"API returned a non-JSON body for {url}") from exc
        if not isinstance(data, dict):
            raise ContractViolationError(f"API returned {type(data).__name__}, expected an object")
        return data

    # ── Downloads ────────────────────────────────────────────────────

    async def download(self, url: str, destination: Path) -> Path:
        """Stream ``url`` into ``destination``.

        Credentials are only attached for the configured API host.
        """
        headers = self._auth_headers() if self.is_api_host(url) else {}
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with self._http.stream("GET", url, headers=headers) as resp:
                if resp.is_error:
                    body = (await resp.aread()).decode(errors="replace")
                    raise TransportError(
                        f"Failed to download asset ({resp.status_code}): {body[:500]}",
                        status_code=resp.status_code,
                    )
                with destination.open("wb") as fh:
                    async for chunk in resp.aiter_bytes():
                        fh.write(chunk)
        except httpx.HTTPError as exc:
            destination.unlink(missing_ok=True)
            raise TransportError(f"Failed to download video asset: {exc}") from exc

        if destination.stat().st_size == 0:
            destination.unlink(missing_ok=True)
            raise TransportError("Download returned an empty body")

        logger.debug("video_asset_downloaded", url=url, path=str(destination))
        return destination
