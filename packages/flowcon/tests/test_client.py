"""Tests for FlowConClient: request shape, retry/backoff, graceful degradation."""

from __future__ import annotations

import json
import socket
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from flowcon.client import FlowConClient, deliver
from flowcon.models import DeliveryOutcome, MemoryRecord


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resp(status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status = status
    return resp


def _http_error(code: int) -> HTTPError:
    return HTTPError("http://localhost:8080/api/memories", code, "error", {}, None)


def _record(**extra) -> MemoryRecord:
    return MemoryRecord.model_validate({"content": "test memory", "tags": ["test"], **extra})


@pytest.fixture
def mock_sleep():
    with patch("flowcon.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


# ---------------------------------------------------------------------------
# Request shape
# ---------------------------------------------------------------------------

class TestRequest:
    @pytest.mark.asyncio
    async def test_posts_to_memories_endpoint(self, mock_sleep):
        with patch("flowcon.client.urlopen", return_value=_resp()) as mock_urlopen:
            client = FlowConClient("http://localhost:8080", "test-pat-token")
            await client.send_memory(_record())

        assert mock_urlopen.call_count == 1
        req = mock_urlopen.call_args[0][0]
        assert req.full_url == "http://localhost:8080/api/memories"
        assert req.get_method() == "POST"

    @pytest.mark.asyncio
    async def test_trailing_slash_stripped(self, mock_sleep):
        with patch("flowcon.client.urlopen", return_value=_resp()) as mock_urlopen:
            await FlowConClient("http://localhost:8080/", "t").send_memory(_record())
        assert mock_urlopen.call_args[0][0].full_url == "http://localhost:8080/api/memories"

    @pytest.mark.asyncio
    async def test_headers(self, mock_sleep):
        with patch("flowcon.client.urlopen", return_value=_resp()) as mock_urlopen:
            await FlowConClient("http://localhost:8080", "secret-pat-123").send_memory(_record())

        req = mock_urlopen.call_args[0][0]
        assert req.get_header("Authorization") == "Bearer secret-pat-123"
        assert req.get_header("Content-type") == "application/json"

    @pytest.mark.asyncio
    async def test_body_contains_all_fields(self, mock_sleep):
        record = _record(pr_reference={"pr_number": "1"}, confidence=0.5)
        with patch("flowcon.client.urlopen", return_value=_resp()) as mock_urlopen:
            await FlowConClient("http://localhost:8080", "t").send_memory(record)

        body = json.loads(mock_urlopen.call_args[0][0].data.decode("utf-8"))
        assert body == {
            "content": "test memory",
            "tags": ["test"],
            "pr_reference": {"pr_number": "1"},
            "confidence": 0.5,
        }

    @pytest.mark.asyncio
    async def test_accepts_plain_mapping(self, mock_sleep):
        with patch("flowcon.client.urlopen", return_value=_resp()) as mock_urlopen:
            await FlowConClient("http://localhost:8080", "t").send_memory(
                {"content": "raw", "tags": []}
            )
        body = json.loads(mock_urlopen.call_args[0][0].data)
        assert body == {"content": "raw", "tags": []}

    @pytest.mark.asyncio
    async def test_timeout_passed_to_urlopen(self, mock_sleep):
        with patch("flowcon.client.urlopen", return_value=_resp()) as mock_urlopen:
            await FlowConClient("http://localhost:8080", "t", timeout=5).send_memory(_record())
        assert mock_urlopen.call_args.kwargs["timeout"] == 5


# ---------------------------------------------------------------------------
# Retry and graceful degradation
# ---------------------------------------------------------------------------

class TestRetry:
    @pytest.mark.asyncio
    async def test_first_attempt_success_short_circuits(self, mock_sleep):
        with patch("flowcon.client.urlopen", return_value=_resp(201)) as mock_urlopen:
            result = await FlowConClient("http://localhost:8080", "t").send_memory(_record())

        assert result == DeliveryOutcome(success=True)
        assert mock_urlopen.call_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt(self, mock_sleep):
        side_effect = [URLError("Network error"), _http_error(503), _resp()]
        with patch("flowcon.client.urlopen", side_effect=side_effect) as mock_urlopen:
            result = await FlowConClient("http://localhost:8080", "t").send_memory(_record())

        assert result.success is True
        assert mock_urlopen.call_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_limits_to_three_attempts(self, mock_sleep):
        with patch("flowcon.client.urlopen", side_effect=URLError("ECONNREFUSED")) as mock_urlopen:
            result = await FlowConClient("http://localhost:8080", "t").send_memory(_record())

        assert mock_urlopen.call_count == 3
        assert result == DeliveryOutcome(success=True)
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [400, 401, 404, 500])
    async def test_http_errors_degrade_to_success(self, mock_sleep, code):
        with patch("flowcon.client.urlopen", side_effect=_http_error(code)) as mock_urlopen:
            result = await FlowConClient("http://localhost:8080", "t").send_memory(_record())

        assert result.success is True
        assert mock_urlopen.call_count == 3

    @pytest.mark.asyncio
    async def test_non_2xx_status_without_exception_is_failure(self, mock_sleep):
        side_effect = [_resp(302), _resp(200)]
        with patch("flowcon.client.urlopen", side_effect=side_effect) as mock_urlopen:
            await FlowConClient("http://localhost:8080", "t").send_memory(_record())
        assert mock_urlopen.call_count == 2
        mock_sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self, mock_sleep):
        side_effect = [socket.timeout("timed out"), _resp()]
        with patch("flowcon.client.urlopen", side_effect=side_effect) as mock_urlopen:
            result = await FlowConClient("http://localhost:8080", "t").send_memory(_record())
        assert result.success is True
        assert mock_urlopen.call_count == 2

    @pytest.mark.asyncio
    async def test_exhaustion_logged_as_warning(self, mock_sleep, caplog):
        with patch("flowcon.client.urlopen", side_effect=URLError("down")):
            with caplog.at_level("WARNING", logger="flowcon.client"):
                await FlowConClient("http://localhost:8080", "t").send_memory(_record())
        assert any("after 3 attempts" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_calls_are_independent(self, mock_sleep):
        client = FlowConClient("http://localhost:8080", "t")
        with patch("flowcon.client.urlopen", side_effect=URLError("down")):
            await client.send_memory(_record())
        with patch("flowcon.client.urlopen", return_value=_resp()) as mock_urlopen:
            await client.send_memory(_record())
        assert mock_urlopen.call_count == 1


class TestAttemptLog:
    @pytest.mark.asyncio
    async def test_records_failures(self, mock_sleep):
        client = FlowConClient("http://localhost:8080", "t")
        with patch("flowcon.client.urlopen", side_effect=_http_error(500)):
            attempts = await client._send_with_retry(b"{}")
        assert attempts.delivered is False
        assert attempts.attempts == 3
        assert attempts.errors == ["HTTP 500"] * 3

    @pytest.mark.asyncio
    async def test_records_success(self, mock_sleep):
        client = FlowConClient("http://localhost:8080", "t")
        with patch("flowcon.client.urlopen", side_effect=[URLError("x"), _resp()]):
            attempts = await client._send_with_retry(b"{}")
        assert attempts.delivered is True
        assert attempts.attempts == 2


@pytest.mark.asyncio
async def test_deliver_helper(mock_sleep):
    with patch("flowcon.client.urlopen", return_value=_resp()) as mock_urlopen:
        result = await deliver(_record(), "https://store.example", "pat")
    assert result.success is True
    req = mock_urlopen.call_args[0][0]
    assert req.full_url == "https://store.example/api/memories"
    assert req.get_header("Authorization") == "Bearer pat"


@pytest.mark.asyncio
async def test_lone_surrogate_is_escaped_and_sent(mock_sleep):
    from flowcon.extractor import extract_memories

    [record] = extract_memories('<memories>{"content": "x", "tags": ["\\udc80"]}</memories>')
    with patch("flowcon.client.urlopen", return_value=_resp()) as mock_urlopen:
        result = await FlowConClient("http://localhost:8080", "t").send_memory(record)

    assert result.success is True
    assert mock_urlopen.call_count == 1
    data = mock_urlopen.call_args[0][0].data
    assert b"\\udc80" in data
    assert json.loads(data)["tags"] == ["\udc80"]
