"""Tests for the submit/poll loop."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from dreamviz.errors import ContractViolationError, TransportError
from dreamviz.modules.video.poller import JobPoller, PollState


class TestSubmit:
    """Job submission."""

    @pytest.mark.asyncio
    async def test_missing_id_is_contract_violation(self, video_client_factory, no_sleep) -> None:
        client = video_client_factory(create={"status": "queued"})
        poller = JobPoller(client, sleep=no_sleep)
        with pytest.raises(ContractViolationError, match="missing id"):
            await poller.submit({"model": "sora-2", "prompt": "p"})

    @pytest.mark.asyncio
    async def test_returns_trimmed_id(self, video_client_factory, no_sleep) -> None:
        reply = {"id": " video_7 ", "status": "queued"}
        client = video_client_factory(create=reply)
        poller = JobPoller(client, sleep=no_sleep)

        assert await poller.submit({"model": "sora-2"}) == ("video_7", reply)
        assert poller.state == PollState.SUBMITTED

    @pytest.mark.asyncio
    async def test_blank_id_is_contract_violation(self, video_client_factory, no_sleep) -> None:
        client = video_client_factory(create={"id": "  ", "status": "queued"})
        with pytest.raises(ContractViolationError):
            await JobPoller(client, sleep=no_sleep).submit({})

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, video_client_factory, no_sleep) -> None:
        client = video_client_factory()
        client.create_video = AsyncMock(side_effect=TransportError("502", status_code=502))
        with pytest.raises(TransportError):
            await JobPoller(client, sleep=no_sleep).submit_and_await({})
        no_sleep.assert_not_awaited()


class TestWait:
    """Polling until terminal or out of attempts."""

    @pytest.mark.asyncio
    async def test_sleeps_once_per_non_terminal_observation(self, video_client_factory, no_sleep) -> None:
        client = video_client_factory(polls=[{"status": "processing"}, {"status": "completed"}])
        poller = JobPoller(client, interval_seconds=10.0, sleep=no_sleep)

        result = await poller.wait("video_1", {"id": "video_1", "status": "queued"})

        assert result.status == "completed"
        assert result.state == PollState.TERMINAL
        assert result.attempts == 2
        assert no_sleep.await_count == 2
        no_sleep.assert_awaited_with(10.0)
        client.get_video.assert_awaited_with("video_1")

    @pytest.mark.asyncio
    async def test_submit_and_await(self, video_client_factory, no_sleep) -> None:
        client = video_client_factory()
        result = await JobPoller(client, sleep=no_sleep).submit_and_await({"model": "sora-2"})
        assert result.video_id == "video_1"
        assert result.status == "completed"
        assert result.attempts == 1
        client.create_video.assert_awaited_once_with({"model": "sora-2"})

    @pytest.mark.asyncio
    async def test_already_failed_returns_without_sleeping(self, video_client_factory, no_sleep) -> None:
        client = video_client_factory(create={"id": "video_2", "status": "FAILED"})
        result = await JobPoller(client, sleep=no_sleep).submit_and_await({})
        assert result.status == "FAILED"
        assert result.attempts == 0
        no_sleep.assert_not_awaited()
        client.get_video.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exhaustion_returns_last_observation(self, video_client_factory, no_sleep) -> None:
        client = video_client_factory(polls={"status": "processing", "progress": 40})
        poller = JobPoller(client, sleep=no_sleep)

        result = await poller.wait("video_1", {"id": "video_1", "status": "queued"})

        assert result.exhausted
        assert result.state == PollState.EXHAUSTED
        assert result.status == "processing"
        assert result.payload["progress"] == 40
        assert result.attempts == 48
        assert no_sleep.await_count == 48

    @pytest.mark.asyncio
    async def test_transport_error_while_polling_keeps_going(self, video_client_factory, no_sleep) -> None:
        client = video_client_factory(polls=[
            TransportError("timeout"),
            {"status": "completed", "output": []},
        ])
        result = await JobPoller(client, sleep=no_sleep).wait("video_1", {"status": "in_progress"})
        assert result.status == "completed"
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_status_missing_from_poll_keeps_previous(self, video_client_factory, no_sleep) -> None:
        client = video_client_factory(polls=[{}, {"status": "cancelled"}])
        result = await JobPoller(client, max_attempts=5, sleep=no_sleep).wait("v", {"status": "queued"})
        assert result.status == "cancelled"
        assert result.state == PollState.TERMINAL

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, video_client_factory) -> None:
        client = video_client_factory(polls={"status": "processing"})
        sleep = AsyncMock(side_effect=asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            await JobPoller(client, sleep=sleep).wait("video_1", {"status": "queued"})
        client.get_video.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancelling_task_stops_polling(self, video_client_factory) -> None:
        client = video_client_factory(polls={"status": "processing"})
        poller = JobPoller(client, interval_seconds=0.01)

        task = asyncio.create_task(poller.wait("video_1", {"status": "queued"}))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert poller.state == PollState.WAITING

    @pytest.mark.asyncio
    async def test_concurrent_jobs_are_independent(self, video_client_factory) -> None:
        fast = video_client_factory(polls=[{"status": "completed"}])
        slow = video_client_factory(polls=[{"status": "processing"}, {"status": "processing"}, {"status": "failed"}])

        first, second = await asyncio.gather(
            JobPoller(fast, interval_seconds=0.0).wait("a", {"status": "queued"}),
            JobPoller(slow, interval_seconds=0.0).wait("b", {"status": "queued"}),
        )

        assert (first.video_id, first.status, first.attempts) == ("a", "completed", 1)
        assert (second.video_id, second.status, second.attempts) == ("b", "failed", 3)
