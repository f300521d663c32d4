"""Shared test fixtures and configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

os.environ.setdefault("DREAMVIZ_ENV", "test")
os.environ.setdefault("DREAMVIZ_LOG_LEVEL", "WARNING")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

from dreamviz.config import Settings

API_BASE = "https://api.test/v1"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Return test settings with videos written under tmp_path."""
    return Settings(
        dreamviz_env="test",
        dreamviz_log_level="WARNING",
        openai_api_key="sk-test",
        openai_base_url=API_BASE,
        dream_video_dir=str(tmp_path / "videos"),
        video_poll_interval_seconds=0.0,
        _env_file=None,
    )


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Injected poll sleep that returns immediately and counts calls."""
    return AsyncMock(return_value=None)


def make_video_client(
    create: Optional[dict[str, Any]] = None,
    polls: Any = None,
    failing_urls: tuple[str, ...] = (),
) -> MagicMock:
    """Build a stand-in for VideoAPIClient.

    ``polls`` feeds ``get_video`` (a list becomes a side_effect sequence);
    downloads write bytes unless the URL contains one of ``failing_urls``.
    """
    from dreamviz.errors import TransportError

    client = MagicMock()
    client.create_video = AsyncMock(return_value=create if create is not None else {"id": "video_1", "status": "queued"})
    if isinstance(polls, list):
        client.get_video = AsyncMock(side_effect=polls)
    else:
        client.get_video = AsyncMock(return_value=polls or {"status": "completed"})

    client.file_content_url = lambda file_id: f"{API_BASE}/files/{file_id}/content"
    client.asset_content_url = lambda asset_id: f"{API_BASE}/assets/{asset_id}/content"
    client.video_content_url = lambda video_id: f"{API_BASE}/videos/{video_id}/content"

    async def _download(url: str, destination: Path) -> Path:
        if any(fragment in url for fragment in failing_urls):
            raise TransportError(f"Failed to download asset (404): {url}", status_code=404)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"\x00\x00\x00\x18ftypmp42")
        return destination

    client.download = AsyncMock(side_effect=_download)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


@pytest.fixture
def video_client_factory():
    """Expose make_video_client to tests."""
    return make_video_client
