import json

import httpx
import pytest

from dagscanner.errors import BackendError, EmptyInputError, NetworkError
from dagscanner.services.analysis_client import AnalysisRequestClient

from fakes import TARGET, scored

API_URL = "http://proxy.test/api/analyze"


def _client(handler):
    return AnalysisRequestClient(
        API_URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )


@pytest.mark.asyncio
async def test_submit_posts_address_and_parses_result():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"address": TARGET, "score": 82, "status": "Secure"})

    async with _client(handler) as client:
        result = await client.submit(TARGET)

    assert result == scored(TARGET, 82, "Secure")
    assert requests[0].method == "POST"
    assert str(requests[0].url) == API_URL
    assert json.loads(requests[0].content) == {"address": TARGET}


@pytest.mark.asyncio
@pytest.mark.parametrize("address", ["", "  "])
async def test_blank_address_is_rejected_locally(address):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    with pytest.raises(EmptyInputError):
        await _client(handler).submit(address)
    assert calls == []


@pytest.mark.asyncio
async def test_backend_error_carries_status_and_message():
    def handler(request):
        return httpx.Response(429, json={"error": "rate limited"})

    with pytest.raises(BackendError) as exc_info:
        await _client(handler).submit(TARGET)

    assert exc_info.value.status_code == 429
    assert exc_info.value.message == "rate limited"


@pytest.mark.asyncio
async def test_backend_error_without_json_body_uses_generic_message():
    def handler(request):
        return httpx.Response(502, text="<html>Bad gateway</html>")

    with pytest.raises(BackendError) as exc_info:
        await _client(handler).submit(TARGET)

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "Failed to get analysis from the backend."


@pytest.mark.asyncio
async def test_malformed_success_body_is_backend_error():
    def handler(request):
        return httpx.Response(200, json={"address": TARGET, "score": 140, "status": "Secure"})

    with pytest.raises(BackendError) as exc_info:
        await _client(handler).submit(TARGET)

    assert exc_info.value.status_code == 200


@pytest.mark.asyncio
async def test_transport_failure_is_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError):
        await _client(handler).submit(TARGET)


@pytest.mark.asyncio
async def test_timeout_is_network_error_and_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(NetworkError):
        await _client(handler).submit(TARGET)
    assert len(calls) == 1
