"""Race coordination for one network connection check run.

The coordinator launches the probe in the background and waits for whichever
happens first:

    1. The external cancellation event is set -> `Cancelled`.
    2. The effective deadline elapses -> `TimedOut`.
    3. The probe completes -> `Success` or `Failure`, after applying the
       invert-success flag.

Only the third outcome consults `invert_success`; a timeout or a cancellation
is always a failed check. Exactly one verdict is produced and handed to the
reporter exactly once. A probe that loses the race is left to finish on its
own (its dial is bounded by the same timeout) and its result is dropped.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Protocol

from netcheck.checker.prober import probe_connection
from netcheck.core.logging_config import bound_contextvars, get_logger
from netcheck.core.types import (
    Cancelled,
    Failure,
    ProbeConfig,
    ProbeResult,
    Success,
    TimedOut,
    Verdict,
)

logger = get_logger(__name__)

ProbeFunc = Callable[[str, float], Awaitable[ProbeResult]]


class Reporter(Protocol):
    """Sink receiving the single verdict of a run."""

    async def report(self, verdict: Verdict) -> None:
        ...


class NetworkConnectionChecker:
    """Runs the probe under the cancellation / timeout / completion race.

    Attributes:
        config: The run's immutable configuration.
        reporter: Receives the verdict.
        kube_client: Kubernetes API client created at process start.
        namespace: Namespace the check pod runs in, empty when unknown.
    """

    def __init__(
        self,
        config: ProbeConfig,
        reporter: Reporter,
        kube_client: Optional[Any] = None,
        namespace: str = "",
        probe: ProbeFunc = probe_connection,
    ):
        self.config = config
        self.reporter = reporter
        self.kube_client = kube_client
        self.namespace = namespace
        self._probe = probe
        self._background: set[asyncio.Task] = set()

    async def run(self, cancel: asyncio.Event) -> Verdict:
        """Execute the check and report its verdict.

        Args:
            cancel: Cooperative cancellation signal. Setting it before the probe
                finishes cancels the run; the coordinator sets it itself once a
                verdict is chosen.

        Returns:
            The verdict that was reported.

        Raises:
            Exception: Whatever the reporter raises is propagated unchanged.
        """
        with bound_contextvars(target=self.config.target, namespace=self.namespace):
            return await self._race(cancel)

    async def _race(self, cancel: asyncio.Event) -> Verdict:
        logger.info("Running network connection checker")
        timeout = self.config.remaining()
        probe_task = asyncio.create_task(
            self._probe(self.config.target, timeout), name="network-connection-probe"
        )
        cancel_task = asyncio.create_task(cancel.wait(), name="network-connection-cancel")

        done, _ = await asyncio.wait(
            {probe_task, cancel_task},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )

        if cancel_task in done:
            logger.info("Cancelling check and shutting down due to interrupt.")
            verdict: Verdict = Cancelled()
        elif probe_task in done:
            cancel.set()
            verdict = self._judge(probe_task.result())
        else:
            cancel.set()
            logger.info("Cancelling check and shutting down due to timeout.")
            verdict = TimedOut()

        cancel_task.cancel()
        if not probe_task.done():
            self._detach(probe_task)

        await self.reporter.report(verdict)
        return verdict

    def _judge(self, result: ProbeResult) -> Verdict:
        if isinstance(result, Failure) and not self.config.invert_success:
            return result
        if isinstance(result, Failure):
            logger.info("Target unreachable as expected", reason=result.reason)
        return Success()

    def _detach(self, task: asyncio.Task) -> None:
        # Hold a reference until the abandoned probe finishes.
        self._background.add(task)
        task.add_done_callback(self._drop_result)

    def _drop_result(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug("Abandoned probe raised after the verdict", error=str(error))
