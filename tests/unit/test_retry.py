"""
Unit tests for RetryController.

Tests cover:
- attempt counting for eventual success and exhaustion
- transport errors vs. classifier rejections
- cancellation during the delay
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock, patch

from core.exceptions import InvalidResponseException, NetworkException, RetriesExhaustedException
from services.watch.classifier import SoftErrorClassifier
from services.watch.retry import RetryController


def network_error(cause, message=None):
    exc = NetworkException(message or str(cause))
    exc.__cause__ = cause
    return exc


def make_controller(fetch, retries=3, delay=0):
    fetcher = Mock()
    fetcher.fetch = fetch
    return RetryController(
        fetcher=fetcher,
        classifier=SoftErrorClassifier(),
        retries=retries,
        delay=delay,
        global_patterns=[],
    )


class TestRetryController:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [0, 1, 2])
    async def test_succeeds_after_k_failures(self, sample_target, make_result, failures):
        responses = [make_result(status_code=503)] * failures + [make_result()]
        fetch = AsyncMock(side_effect=responses)
        controller = make_controller(fetch, retries=3)

        result = await controller.fetch_with_retries(Mock(), sample_target)

        assert result.status_code == 200
        assert fetch.await_count == failures + 1

    @pytest.mark.asyncio
    async def test_exhaustion_on_response_errors(self, sample_target, make_result):
        fetch = AsyncMock(return_value=make_result(status_code=500))
        controller = make_controller(fetch, retries=2)

        with pytest.raises(InvalidResponseException) as exc_info:
            await controller.fetch_with_retries(Mock(), sample_target)

        assert fetch.await_count == 2
        assert not isinstance(exc_info.value, RetriesExhaustedException)
        assert exc_info.value.failure.message.startswith(
            "still a response error after 2 retries: statuscode is 500"
        )
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_only_failures_have_zero_status(self, sample_target):
        fetch = AsyncMock(side_effect=network_error(ConnectionRefusedError("refused")))
        controller = make_controller(fetch, retries=3)

        with pytest.raises(RetriesExhaustedException) as exc_info:
            await controller.fetch_with_retries(Mock(), sample_target)

        failure = exc_info.value.failure
        assert fetch.await_count == 3
        assert failure.status_code == 0
        assert failure.body == b""
        assert failure.message == "still an error after 3 retries: refused"
        assert exc_info.value.is_timeout is False

    @pytest.mark.asyncio
    async def test_timeout_exhaustion_is_flagged(self, sample_target):
        fetch = AsyncMock(side_effect=network_error(asyncio.TimeoutError(), "timeout fetching url"))
        controller = make_controller(fetch, retries=1)

        with pytest.raises(RetriesExhaustedException) as exc_info:
            await controller.fetch_with_retries(Mock(), sample_target)

        assert exc_info.value.is_timeout is True

    @pytest.mark.asyncio
    async def test_transport_error_then_success(self, sample_target, make_result):
        fetch = AsyncMock(side_effect=[network_error(ConnectionResetError("reset")), make_result()])
        controller = make_controller(fetch, retries=2)

        result = await controller.fetch_with_retries(Mock(), sample_target)
        assert result.status_code == 200

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts_only(self, sample_target, make_result):
        fetch = AsyncMock(side_effect=[make_result(status_code=502), make_result()])
        controller = make_controller(fetch, retries=3, delay=5)

        with patch("services.watch.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            await controller.fetch_with_retries(Mock(), sample_target)

        sleep.assert_awaited_once_with(5)

    @pytest.mark.asyncio
    async def test_cancel_during_delay_propagates(self, sample_target, make_result):
        fetch = AsyncMock(return_value=make_result(status_code=503))
        controller = make_controller(fetch, retries=3, delay=30)

        task = asyncio.create_task(controller.fetch_with_retries(Mock(), sample_target))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert fetch.await_count == 1

    def test_rejects_invalid_retry_settings(self):
        with pytest.raises(ValueError):
            RetryController(fetcher=Mock(), retries=0)
        with pytest.raises(ValueError):
            RetryController(fetcher=Mock(), retries=1, delay=-1)
