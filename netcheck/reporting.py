"""Kuberhealthy report client.

Deliver the check verdict to Kuberhealthy and wait for Kuberhealthy to become
reachable before the check starts. The report is a JSON document
`{"ok": bool, "errors": [str]}` POSTed to `KH_REPORTING_URL` with the run's
UUID in the `kh-run-uuid` header.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlsplit

import httpx

from netcheck.core.logging_config import get_logger
from netcheck.core.types import Verdict

logger = get_logger(__name__)

RUN_UUID_HEADER = "kh-run-uuid"
DEFAULT_REPORT_TIMEOUT = 10.0
WAIT_POLL_INTERVAL = 1.0


class ReportingError(Exception):
    """Raised when a report cannot be delivered to Kuberhealthy."""


class KuberhealthyReporter:
    """Sends exactly what it is given to the Kuberhealthy reporting endpoint.

    Args:
        reporting_url: `KH_REPORTING_URL`.
        run_uuid: `KH_RUN_UUID`.
        client: Optional preconfigured client (tests inject a mock transport).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        reporting_url: Optional[str],
        run_uuid: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_REPORT_TIMEOUT,
    ):
        self.reporting_url = reporting_url
        self.run_uuid = run_uuid
        self._client = client
        self._timeout = timeout

    async def report(self, verdict: Verdict) -> None:
        """Report a verdict as success or failure."""
        if verdict.ok:
            await self.report_success()
        else:
            await self.report_failure(verdict.errors)

    async def report_success(self) -> None:
        logger.info("Reporting success to Kuberhealthy")
        await self._send(ok=True, errors=[])

    async def report_failure(self, errors: list[str]) -> None:
        logger.info("Reporting failure to Kuberhealthy", errors=errors)
        await self._send(ok=False, errors=errors)

    async def _send(self, ok: bool, errors: list[str]) -> None:
        if not self.reporting_url:
            raise ReportingError("KH_REPORTING_URL environment variable has not been set")
        if not self.run_uuid:
            raise ReportingError("KH_RUN_UUID environment variable has not been set")

        payload = {"ok": ok, "errors": errors}
        headers = {RUN_UUID_HEADER: self.run_uuid}

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.reporting_url, json=payload, headers=headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self.reporting_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ReportingError(f"Failed to send report to {self.reporting_url}: {e}") from e

        if response.status_code != httpx.codes.OK:
            raise ReportingError(
                f"Bad status code from Kuberhealthy status reporting url: "
                f"[{response.status_code}] {response.reason_phrase}"
            )
        logger.debug("Report accepted", status_code=response.status_code)


def reporting_origin(reporting_url: str) -> str:
    """Scheme and authority of the reporting URL, e.g. "http://kuberhealthy.kh:80"."""
    parts = urlsplit(reporting_url)
    return f"{parts.scheme}://{parts.netloc}"


async def wait_for_kuberhealthy(
    reporting_url: Optional[str],
    deadline: datetime,
    client: Optional[httpx.AsyncClient] = None,
    interval: float = WAIT_POLL_INTERVAL,
    cancel: Optional[asyncio.Event] = None,
) -> bool:
    """Poll Kuberhealthy until it answers or the deadline passes.

    Any HTTP response counts as reachable. Failures are logged and never
    raised. Setting `cancel` stops the polling between attempts.

    Returns:
        True once Kuberhealthy answered, False when giving up.
    """
    if not reporting_url:
        logger.error("Failed to reach Kuberhealthy", error="KH_REPORTING_URL is not set")
        return False

    origin = reporting_origin(reporting_url)
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=interval)
    try:
        while True:
            if cancel is not None and cancel.is_set():
                logger.info("Stopped waiting for Kuberhealthy", url=origin)
                return False
            try:
                await client.get(origin)
                logger.info("Kuberhealthy is reachable", url=origin)
                return True
            except httpx.HTTPError as e:
                logger.debug("Kuberhealthy not reachable yet", url=origin, error=str(e))

            remaining = (deadline - datetime.now(timezone.utc)).total_seconds()
            if remaining <= 0:
                logger.error("Failed to reach Kuberhealthy", url=origin)
                return False
            await _pause(min(interval, remaining), cancel)
    finally:
        if owns_client:
            await client.aclose()


async def _pause(seconds: float, cancel: Optional[asyncio.Event]) -> None:
    if cancel is None:
        await asyncio.sleep(seconds)
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass
