"""Tests for artifact selection, URL extraction and extension inference."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from dreamviz.errors import TransportError
from dreamviz.modules.video.models import GenerationOptions, OutputDescriptor
from dreamviz.modules.video.resolver import (
    ArtifactResolver,
    extract_download_url,
    infer_extension,
    normalise_extension,
    select_output,
)


class TestSelectOutput:
    """Choosing the descriptor from the ``output`` field."""

    @pytest.mark.parametrize("order", [0, 1, 2])
    def test_video_entry_preferred_regardless_of_position(self, order) -> None:
        entries = [{"type": "thumbnail", "url": "a"}, {"type": "audio", "url": "b"}]
        entries.insert(order, {"type": "Video", "file_id": "file_1"})
        descriptor = select_output({"output": entries})
        assert descriptor.file_id == "file_1"

    def test_first_entry_without_video_type(self) -> None:
        descriptor = select_output({"output": [{"type": "image", "url": "first"}, {"url": "second"}]})
        assert descriptor.payload["url"] == "first"

    def test_single_object(self) -> None:
        descriptor = select_output({"output": {"asset_id": "asset_7"}})
        assert descriptor.asset_id == "asset_7"

    @pytest.mark.parametrize("payload", [{}, {"output": None}, {"output": []}, {"output": "text"}])
    def test_absent_output(self, payload) -> None:
        assert select_output(payload) is None

    def test_blank_ids_ignored(self) -> None:
        descriptor = OutputDescriptor({"file_id": "  ", "asset_id": None})
        assert descriptor.file_id is None
        assert descriptor.asset_id is None


class TestExtractDownloadUrl:
    """Ordered search for a fetchable URL."""

    def test_direct_fields_in_priority_order(self) -> None:
        node = {"uri": "u4", "content_url": "u3", "url": "u2", "download_url": "u1"}
        assert extract_download_url(node) == "u1"
        assert extract_download_url({"uri": "u4", "content_url": "u3"}) == "u3"

    def test_blank_direct_field_skipped(self) -> None:
        assert extract_download_url({"download_url": "  ", "url": "https://cdn/x.mp4"}) == "https://cdn/x.mp4"

    def test_direct_beats_nested(self) -> None:
        node = {"uri": "direct", "file": {"url": "nested"}}
        assert extract_download_url(node) == "direct"

    def test_nested_containers_in_order(self) -> None:
        node = {
            "media": [{"url": "from-media"}],
            "data": [{"url": "from-data"}],
            "file": {"download_url": "from-file"},
        }
        assert extract_download_url(node) == "from-file"
        del node["file"]
        assert extract_download_url(node) == "from-data"

    def test_sources_as_object_or_array(self) -> None:
        assert extract_download_url({"sources": {"url": "obj"}}) == "obj"
        assert extract_download_url({"sources": [{"nothing": 1}, {"url": "arr"}]}) == "arr"

    def test_formats_array(self) -> None:
        assert extract_download_url({"formats": [{"uri": "https://cdn/f.webm"}]}) == "https://cdn/f.webm"

    def test_depth_is_bounded(self) -> None:
        node = {"url": "deep"}
        for _ in range(6):
            node = {"file": node}
        assert extract_download_url(node) is None

    def test_idempotent(self) -> None:
        node = {"data": [{"sources": {"url": "https://cdn/a.mp4"}}]}
        assert extract_download_url(node) == extract_download_url(node) == "https://cdn/a.mp4"

    def test_nothing_found(self) -> None:
        assert extract_download_url({"file": {"id": "x"}, "data": "oops"}) is None


class TestInferExtension:
    """Extension resolution order."""

    def test_requested_format_wins(self) -> None:
        descriptor = OutputDescriptor({"content_type": "video/mp4"})
        assert infer_extension(descriptor, GenerationOptions(format="webm")) == "webm"

    def test_descriptor_format_field(self) -> None:
        assert infer_extension(OutputDescriptor({"format": ".MOV"})) == "mov"

    def test_content_type(self) -> None:
        descriptor = OutputDescriptor({"content_type": "video/quicktime; codecs=avc1"})
        assert infer_extension(descriptor) == "quicktime"

    def test_non_video_content_type_ignored(self) -> None:
        descriptor = OutputDescriptor({"content_type": "application/json", "mime_type": "video/webm"})
        assert infer_extension(descriptor) == "webm"

    def test_url_suffix_ignores_query(self) -> None:
        descriptor = OutputDescriptor({"url": "https://cdn.example.com/v/clip.webm?sig=a.b"})
        assert infer_extension(descriptor) == "webm"

    def test_file_extension_and_filename(self) -> None:
        assert infer_extension(OutputDescriptor({"file_extension": ".mkv"})) == "mkv"
        assert infer_extension(OutputDescriptor({"filename": "dream.final.mov"})) == "mov"
        assert infer_extension(OutputDescriptor({"name": "dream.avi"})) == "avi"

    def test_defaults_to_mp4(self) -> None:
        assert infer_extension(None) == "mp4"
        assert infer_extension(OutputDescriptor({"url": "https://cdn/v/noext"})) == "mp4"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("video/mp4", "mp4"), (".WebM", "webm"), ("mp4;codecs=x", "mp4"), ("  ", None), (None, None)],
    )
    def test_normalise_extension(self, raw, expected) -> None:
        assert normalise_extension(raw) == expected


class TestArtifactResolver:
    """Secondary fetches for completed jobs without output."""

    @pytest.mark.asyncio
    async def test_output_present_needs_no_fetch(self) -> None:
        fetch = AsyncMock()
        descriptor = await ArtifactResolver(fetch).resolve(
            "video_1", {"status": "completed", "output": [{"type": "video", "file_id": "f"}]}
        )
        assert descriptor.file_id == "f"
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refetch_then_include_output(self) -> None:
        fetch = AsyncMock(side_effect=[
            {"status": "completed"},
            {"status": "completed", "output": {"asset_id": "asset_1"}},
        ])
        descriptor = await ArtifactResolver(fetch).resolve("video_1", {"status": "completed"})
        assert descriptor.asset_id == "asset_1"
        assert fetch.await_count == 2
        fetch.assert_awaited_with("video_1", include="output")

    @pytest.mark.asyncio
    async def test_first_refetch_suffices(self) -> None:
        fetch = AsyncMock(return_value={"output": [{"url": "https://cdn/x.mp4"}]})
        descriptor = await ArtifactResolver(fetch).resolve("video_1", {"status": "COMPLETED"})
        assert descriptor is not None
        fetch.assert_awaited_once_with("video_1")

    @pytest.mark.asyncio
    async def test_not_completed_skips_fetch(self) -> None:
        fetch = AsyncMock()
        assert await ArtifactResolver(fetch).resolve("video_1", {"status": "failed"}) is None
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_error_yields_none(self) -> None:
        fetch = AsyncMock(side_effect=TransportError("boom", status_code=500))
        assert await ArtifactResolver(fetch).resolve("video_1", {"status": "completed"}) is None
