"""Shared fixtures: status bodies as the prediction API returns them, and a
fast polling configuration so retry loops finish in milliseconds."""

import copy

import pytest
from unittest.mock import AsyncMock

from resultpoll.adapters.key_value_store_inmemory import InMemoryKeyValueStore
from resultpoll.adapters.retry_tenacity import TenacityRetryAdapter
from resultpoll.core.config import PollingConfig
from resultpoll.core.managers.result_cache import ResultCache
from resultpoll.core.managers.status_poller import StatusPoller

JOB_ID = "test-prediction-id"

PARTIAL_BODY = {
    "status": "partial",
    "result": {
        "prediction_score": 75.5,
        "health_level": "average",
    },
    "message": "Prediction ready. AI advice still processing.",
    "created_at": "2026-01-21T10:00:00Z",
}

READY_BODY = {
    "status": "ready",
    "result": {
        "prediction_score": 75.5,
        "health_level": "average",
        "wellness_analysis": "Your mental wellness is average",
        "advice": {
            "description": "x",
            "factors": {
                "sleep": {
                    "advices": ["Get 7-8 hours"],
                    "references": ["https://example.org/sleep"],
                }
            },
        },
    },
    "created_at": "2026-01-21T10:00:00Z",
    "completed_at": "2026-01-21T10:01:00Z",
}

PROCESSING_BODY = {"status": "processing", "result": None, "created_at": "2026-01-21T10:00:00Z"}


@pytest.fixture
def job_id():
    return JOB_ID


@pytest.fixture
def partial_body():
    return copy.deepcopy(PARTIAL_BODY)


@pytest.fixture
def ready_body():
    return copy.deepcopy(READY_BODY)


@pytest.fixture
def processing_body():
    return copy.deepcopy(PROCESSING_BODY)


@pytest.fixture
def fast_config():
    """Polling configuration with tiny intervals for unit tests."""
    return PollingConfig(
        base_url="http://test-api.com",
        status_path="/v1/predictions",
        max_attempts=3,
        interval=0.001,
        advice_max_attempts=3,
        advice_interval=0.001,
    )


@pytest.fixture
def mock_http_client():
    """HTTP port double; tests feed `get_json.side_effect`."""
    return AsyncMock()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def cache(store):
    return ResultCache(store)


@pytest.fixture
def poller(mock_http_client, fast_config, cache):
    return StatusPoller(
        mock_http_client,
        config=fast_config,
        retry_port=TenacityRetryAdapter(),
        cache=cache,
    )
