"""Kuberhealthy reporter test suite.

Requests are served by `httpx.MockTransport`; nothing leaves the process.
"""
import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from netcheck.core.types import Cancelled, Failure, Success, TimedOut, TIMEOUT_ERROR_MESSAGE
from netcheck.reporting import (
    KuberhealthyReporter,
    ReportingError,
    reporting_origin,
    wait_for_kuberhealthy,
)

REPORTING_URL = "http://kuberhealthy.kuberhealthy.svc.cluster.local/check"


def recording_client(requests, status_code=200):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code)
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_success_report_payload():
    requests = []
    async with recording_client(requests) as client:
        reporter = KuberhealthyReporter(REPORTING_URL, "run-123", client=client)
        await reporter.report(Success())

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == REPORTING_URL
    assert request.headers["kh-run-uuid"] == "run-123"
    assert json.loads(request.content) == {"ok": True, "errors": []}


@pytest.mark.asyncio
@pytest.mark.parametrize("verdict", [Failure(reason="10.0.0.1:9 is DOWN"), TimedOut(), Cancelled()])
async def test_failure_report_payload(verdict):
    requests = []
    async with recording_client(requests) as client:
        await KuberhealthyReporter(REPORTING_URL, "run-123", client=client).report(verdict)

    assert json.loads(requests[0].content) == {"ok": False, "errors": verdict.errors}


@pytest.mark.asyncio
async def test_timeout_report_carries_fixed_message():
    requests = []
    async with recording_client(requests) as client:
        await KuberhealthyReporter(REPORTING_URL, "run-123", client=client).report(TimedOut())

    assert json.loads(requests[0].content)["errors"] == [TIMEOUT_ERROR_MESSAGE]


@pytest.mark.asyncio
async def test_non_200_status_raises():
    async with recording_client([], status_code=400) as client:
        reporter = KuberhealthyReporter(REPORTING_URL, "run-123", client=client)
        with pytest.raises(ReportingError, match=r"\[400\]"):
            await reporter.report_success()


@pytest.mark.asyncio
async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        reporter = KuberhealthyReporter(REPORTING_URL, "run-123", client=client)
        with pytest.raises(ReportingError, match="Failed to send report"):
            await reporter.report_failure(["down"])


@pytest.mark.asyncio
@pytest.mark.parametrize("url, uuid, missing", [
    (None, "run-123", "KH_REPORTING_URL"),
    (REPORTING_URL, None, "KH_RUN_UUID"),
])
async def test_missing_kuberhealthy_environment_raises(url, uuid, missing):
    with pytest.raises(ReportingError, match=missing):
        await KuberhealthyReporter(url, uuid).report_success()


def test_reporting_origin():
    assert reporting_origin(REPORTING_URL) == "http://kuberhealthy.kuberhealthy.svc.cluster.local"
    assert reporting_origin("https://kh:8443/check?x=1") == "https://kh:8443"


# ═══════════════════════════════════════════════════════════════════════════
# WAIT FOR KUBERHEALTHY
# ═══════════════════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_wait_returns_once_kuberhealthy_answers():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("not yet", request=request)
        return httpx.Response(404)

    deadline = datetime.now(timezone.utc) + timedelta(seconds=5)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        reachable = await wait_for_kuberhealthy(REPORTING_URL, deadline, client=client, interval=0.01)

    assert reachable is True
    assert len(attempts) == 3
    assert str(attempts[0].url).rstrip("/") == "http://kuberhealthy.kuberhealthy.svc.cluster.local"


@pytest.mark.asyncio
async def test_wait_gives_up_at_deadline():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    deadline = datetime.now(timezone.utc) - timedelta(seconds=1)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        reachable = await wait_for_kuberhealthy(REPORTING_URL, deadline, client=client)

    assert reachable is False


@pytest.mark.asyncio
async def test_wait_without_url_gives_up():
    deadline = datetime.now(timezone.utc) + timedelta(seconds=5)
    assert await wait_for_kuberhealthy(None, deadline) is False


@pytest.mark.asyncio
async def test_wait_stops_when_already_cancelled():
    requests = []
    cancel = asyncio.Event()
    cancel.set()
    deadline = datetime.now(timezone.utc) + timedelta(seconds=5)

    async with recording_client(requests) as client:
        reachable = await wait_for_kuberhealthy(REPORTING_URL, deadline, client=client, cancel=cancel)

    assert reachable is False
    assert requests == []


@pytest.mark.asyncio
async def test_wait_stops_polling_once_cancelled():
    attempts = []
    cancel = asyncio.Event()

    def handler(request):
        attempts.append(request)
        cancel.set()
        raise httpx.ConnectError("down", request=request)

    deadline = datetime.now(timezone.utc) + timedelta(seconds=30)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        reachable = await asyncio.wait_for(
            wait_for_kuberhealthy(REPORTING_URL, deadline, client=client, interval=10, cancel=cancel),
            timeout=2,
        )

    assert reachable is False
    assert len(attempts) == 1
