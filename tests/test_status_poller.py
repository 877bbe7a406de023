"""Unit tests for StatusPoller: status dispatch, retry budget and error classification.

The HTTP port is an AsyncMock fed with status bodies; intervals are in the
millisecond range so retry loops complete immediately.
"""

import asyncio

import pytest

from resultpoll.core.exceptions import (
    BackendError,
    ConfigurationError,
    GATEWAY_ROUTE_MESSAGE,
    NetworkError,
    NotFoundError,
    PollCancelledError,
    PollTimeoutError,
    TransportError,
)
from resultpoll.core.models.result import JobStatus
from resultpoll.core.utils.cancellation import CancellationToken


def transport_error():
    return TransportError(
        "There was a connection error with the remote service.",
        url="http://test-api.com/v1/predictions/test-prediction-id/result",
    )


class TestDispatch:
    """One request, one dispatch decision."""

    @pytest.mark.asyncio
    async def test_requests_status_url(self, poller, mock_http_client, job_id, ready_body):
        mock_http_client.get_json.side_effect = [ready_body]

        await poller.poll(job_id)

        mock_http_client.get_json.assert_awaited_once_with(
            "http://test-api.com/v1/predictions/test-prediction-id/result", timeout=None
        )

    @pytest.mark.asyncio
    async def test_ready_returns_complete_payload(self, poller, mock_http_client, job_id, ready_body):
        mock_http_client.get_json.side_effect = [ready_body]

        outcome = await poller.poll(job_id)

        assert outcome.status == JobStatus.ready
        assert outcome.payload.score == 75.5
        assert outcome.payload.category == "average"
        assert outcome.payload.analysis == "Your mental wellness is average"
        assert outcome.payload.advice.description == "x"
        assert outcome.payload.advice.factors["sleep"].advices == ["Get 7-8 hours"]
        assert outcome.payload.metadata.completed_at is not None

    @pytest.mark.asyncio
    async def test_partial_drops_analysis_and_advice(self, poller, mock_http_client, job_id, partial_body):
        partial_body["result"]["wellness_analysis"] = "early text"
        mock_http_client.get_json.side_effect = [partial_body]

        outcome = await poller.poll(job_id)

        assert outcome.status == JobStatus.partial
        assert outcome.payload.score == 75.5
        assert outcome.payload.analysis is None
        assert outcome.payload.advice is None
        assert outcome.payload.is_partial is True

    @pytest.mark.asyncio
    async def test_negative_score_is_clamped(self, poller, mock_http_client, job_id, partial_body):
        partial_body["result"]["prediction_score"] = -2.5
        mock_http_client.get_json.side_effect = [partial_body]

        outcome = await poller.poll(job_id)

        assert outcome.payload.score == 0.0

    @pytest.mark.asyncio
    async def test_queued_is_treated_like_processing(self, poller, mock_http_client, job_id, ready_body):
        mock_http_client.get_json.side_effect = [{"status": "queued"}, ready_body]

        outcome = await poller.poll(job_id)

        assert outcome.status == JobStatus.ready
        assert mock_http_client.get_json.await_count == 2

    @pytest.mark.asyncio
    async def test_timing_derives_end_to_end_latency(self, poller, mock_http_client, job_id, partial_body):
        partial_body["result"]["timing"] = {
            "ridge_prediction_ms": 3.2,
            "server_processing_ms": 12.0,
            "start_timestamp": 1_700_000_000.0,
        }
        mock_http_client.get_json.side_effect = [partial_body]

        outcome = await poller.poll(job_id)

        timing = outcome.payload.metadata.timing
        assert timing.ridge_prediction_ms == 3.2
        assert timing.total_end_to_end_ms > 0


class TestFatalErrors:
    """Fatal statuses fail on the first request regardless of the budget."""

    @pytest.mark.asyncio
    async def test_backend_error_carries_server_message(
        self, poller, mock_http_client, fast_config, job_id
    ):
        mock_http_client.get_json.side_effect = [
            {"status": "error", "error": "Model prediction failed"}
        ]

        with pytest.raises(BackendError) as excinfo:
            await poller.poll(job_id, fast_config.model_copy(update={"max_attempts": 10}))

        assert excinfo.value.message == "Model prediction failed"
        assert mock_http_client.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_backend_error_without_message_uses_default(self, poller, mock_http_client, job_id):
        mock_http_client.get_json.side_effect = [{"status": "error"}]

        with pytest.raises(BackendError) as excinfo:
            await poller.poll(job_id)

        assert excinfo.value.message == "Prediction failed"

    @pytest.mark.asyncio
    async def test_not_found(self, poller, mock_http_client, fast_config, job_id):
        mock_http_client.get_json.side_effect = [{"status": "not_found"}]

        with pytest.raises(NotFoundError):
            await poller.poll(job_id, fast_config.model_copy(update={"max_attempts": 10}))

        assert mock_http_client.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_gateway_misrouting_is_configuration_error(
        self, poller, mock_http_client, fast_config, job_id
    ):
        mock_http_client.get_json.side_effect = [
            {"message": "no Route matched with those values"}
        ]

        with pytest.raises(ConfigurationError) as excinfo:
            await poller.poll(job_id, fast_config.model_copy(update={"max_attempts": 50}))

        assert excinfo.value.message == GATEWAY_ROUTE_MESSAGE
        assert excinfo.value.diagnostic == "no Route matched with those values"
        assert mock_http_client.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_unknown_status_is_configuration_error(self, poller, mock_http_client, job_id):
        mock_http_client.get_json.side_effect = [{"status": "exploded"}]

        with pytest.raises(ConfigurationError) as excinfo:
            await poller.poll(job_id)

        assert "Unknown status: exploded" in excinfo.value.message
        assert mock_http_client.get_json.await_count == 1


class TestRetryBudget:
    """Pending statuses and transport failures share the attempt budget."""

    @pytest.mark.asyncio
    async def test_processing_until_budget_raises_timeout(
        self, poller, mock_http_client, job_id, processing_body
    ):
        mock_http_client.get_json.side_effect = [processing_body] * 3

        with pytest.raises(PollTimeoutError) as excinfo:
            await poller.poll(job_id)

        assert mock_http_client.get_json.await_count == 3
        assert excinfo.value.attempts == 3

    @pytest.mark.asyncio
    async def test_transport_failure_then_ready(
        self, poller, mock_http_client, fast_config, job_id, ready_body
    ):
        mock_http_client.get_json.side_effect = [transport_error(), ready_body]

        outcome = await poller.poll(job_id, fast_config.model_copy(update={"max_attempts": 5}))

        assert outcome.status == JobStatus.ready
        assert mock_http_client.get_json.await_count == 2

    @pytest.mark.asyncio
    async def test_persistent_transport_failure_becomes_network_error(
        self, poller, mock_http_client, job_id
    ):
        mock_http_client.get_json.side_effect = [transport_error() for _ in range(3)]

        with pytest.raises(NetworkError) as excinfo:
            await poller.poll(job_id)

        assert mock_http_client.get_json.await_count == 3
        assert excinfo.value.attempts == 3
        assert isinstance(excinfo.value.__cause__, TransportError)

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_retried(self, poller, mock_http_client, job_id, ready_body):
        mock_http_client.get_json.side_effect = [RuntimeError("boom"), ready_body]

        outcome = await poller.poll(job_id)

        assert outcome.status == JobStatus.ready

    @pytest.mark.asyncio
    async def test_malformed_ready_body_is_transient(self, poller, mock_http_client, job_id, ready_body):
        mock_http_client.get_json.side_effect = [{"status": "ready", "result": None}, ready_body]

        outcome = await poller.poll(job_id)

        assert outcome.payload.advice is not None
        assert mock_http_client.get_json.await_count == 2

    @pytest.mark.asyncio
    async def test_no_requests_after_ready(
        self, poller, mock_http_client, fast_config, job_id, ready_body, processing_body
    ):
        mock_http_client.get_json.side_effect = [processing_body, ready_body, processing_body]

        await poller.poll(job_id, fast_config.model_copy(update={"max_attempts": 10}))

        assert mock_http_client.get_json.await_count == 2


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_token_makes_no_request(self, poller, mock_http_client, job_id):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(PollCancelledError):
            await poller.poll(job_id, token=token)

        mock_http_client.get_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_during_sleep_stops_loop(
        self, poller, mock_http_client, fast_config, job_id, processing_body
    ):
        mock_http_client.get_json.return_value = processing_body
        token = CancellationToken()
        slow = fast_config.model_copy(update={"interval": 30.0, "max_attempts": 10})
        asyncio.get_running_loop().call_later(0.05, token.cancel)

        with pytest.raises(PollCancelledError):
            await asyncio.wait_for(poller.poll(job_id, slow, token), timeout=5)

        assert mock_http_client.get_json.await_count == 1


class TestCacheWrites:
    @pytest.mark.asyncio
    async def test_partial_is_cached_without_advice(
        self, poller, mock_http_client, cache, job_id, partial_body
    ):
        mock_http_client.get_json.side_effect = [partial_body]

        await poller.poll(job_id)

        entry = cache.get(job_id)
        assert entry.result_data.score == 75.5
        assert entry.advice_data is None

    @pytest.mark.asyncio
    async def test_ready_is_cached_with_advice(self, poller, mock_http_client, cache, job_id, ready_body):
        mock_http_client.get_json.side_effect = [ready_body]

        await poller.poll(job_id)

        assert cache.get(job_id).advice_data.description == "x"

    @pytest.mark.asyncio
    async def test_failure_writes_nothing(self, poller, mock_http_client, cache, job_id):
        mock_http_client.get_json.side_effect = [{"status": "not_found"}]

        with pytest.raises(NotFoundError):
            await poller.poll(job_id)

        assert cache.get(job_id) is None


class TestFetchOnce:
    @pytest.mark.asyncio
    async def test_processing_is_returned_not_slept_on(
        self, poller, mock_http_client, job_id, processing_body
    ):
        mock_http_client.get_json.side_effect = [processing_body]

        outcome = await poller.fetch_once(job_id)

        assert outcome.status == JobStatus.processing
        assert outcome.payload is None

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, poller, mock_http_client, job_id):
        mock_http_client.get_json.side_effect = [transport_error()]

        with pytest.raises(TransportError):
            await poller.fetch_once(job_id)


class TestStatusBeforeBody:
    """The status field decides fatal outcomes even when other fields are malformed."""

    @pytest.mark.asyncio
    async def test_non_string_status_is_configuration_error(
        self, poller, mock_http_client, fast_config, job_id
    ):
        mock_http_client.get_json.side_effect = [{"status": 5}]

        with pytest.raises(ConfigurationError) as excinfo:
            await poller.poll(job_id, fast_config.model_copy(update={"max_attempts": 10}))

        assert excinfo.value.message == "Unknown status: 5"
        assert mock_http_client.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_error_with_malformed_result_is_backend_error(
        self, poller, mock_http_client, fast_config, job_id
    ):
        mock_http_client.get_json.side_effect = [
            {"status": "error", "error": "boom", "result": "x"}
        ]

        with pytest.raises(BackendError) as excinfo:
            await poller.poll(job_id, fast_config.model_copy(update={"max_attempts": 10}))

        assert excinfo.value.message == "boom"
        assert mock_http_client.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_not_found_with_malformed_fields(self, poller, mock_http_client, job_id):
        mock_http_client.get_json.side_effect = [
            {"status": "not_found", "created_at": "yesterday", "result": []}
        ]

        with pytest.raises(NotFoundError):
            await poller.poll(job_id)

        assert mock_http_client.get_json.await_count == 1

    @pytest.mark.asyncio
    async def test_malformed_partial_body_stays_transient(
        self, poller, mock_http_client, job_id, partial_body
    ):
        mock_http_client.get_json.side_effect = [
            {"status": "partial", "result": "x"},
            partial_body,
        ]

        outcome = await poller.poll(job_id)

        assert outcome.status == JobStatus.partial
        assert mock_http_client.get_json.await_count == 2


class TestRetryLogging:
    @pytest.mark.asyncio
    async def test_transient_failure_is_logged_before_retry(
        self, poller, mock_http_client, job_id, ready_body, caplog
    ):
        mock_http_client.get_json.side_effect = [transport_error(), ready_body]

        with caplog.at_level("WARNING", logger="resultpoll"):
            await poller.poll(job_id)

        transient = [r.getMessage() for r in caplog.records if "[poll:transient]" in r.getMessage()]
        assert len(transient) == 1
        assert "attempt=1/3" in transient[0]
        assert "TransportError" in transient[0]
