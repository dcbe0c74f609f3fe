"""Entry point for the network connection check.

Wire the check together for one process run: load settings, configure
logging, read the pod namespace, build the Kubernetes client, wait for
Kuberhealthy, run the race coordinator and exit.

Exit Codes:
    0: A verdict (pass or fail) was delivered to Kuberhealthy.
    1: Invalid configuration, no Kubernetes client, or the report could not
       be delivered.
"""

import asyncio
import logging.config
import signal
import sys
from typing import Callable, Optional

from pydantic import ValidationError
from pydantic_settings import SettingsError

from netcheck.checker.coordinator import NetworkConnectionChecker, Reporter
from netcheck.config import (
    ConfigurationError,
    KuberhealthySettings,
    Settings,
    describe_validation_error,
    get_settings,
    read_namespace,
)
from netcheck.core.logging_config import (
    configure_structlog_wrapper,
    get_logger,
    get_logging_config,
)
from netcheck.kube import KubeClientError, create_kube_client
from netcheck.reporting import KuberhealthyReporter, ReportingError, wait_for_kuberhealthy

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

_CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def configure_logging(settings: Settings) -> None:
    """Configure standard library logging and the structlog wrapper."""
    logging.config.dictConfig(get_logging_config(settings))
    configure_structlog_wrapper()


def install_cancel_handlers(cancel: asyncio.Event) -> None:
    """Set `cancel` on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in _CANCEL_SIGNALS:
        try:
            loop.add_signal_handler(sig, cancel.set)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handlers unavailable", signal=sig.name)


def remove_cancel_handlers() -> None:
    loop = asyncio.get_running_loop()
    for sig in _CANCEL_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, RuntimeError):
            pass


async def report_configuration_error(error: ConfigurationError) -> int:
    """Report an invalid configuration to Kuberhealthy, best effort."""
    logger.error("Invalid check configuration", error=str(error))
    try:
        kh_settings = KuberhealthySettings()
    except (ValidationError, SettingsError) as e:
        logger.error("Unable to report configuration error", error=describe_validation_error(e))
        return EXIT_FAILURE

    reporter = KuberhealthyReporter(kh_settings.KH_REPORTING_URL, kh_settings.KH_RUN_UUID)
    try:
        await reporter.report_failure([str(error)])
    except ReportingError as e:
        logger.error("Unable to report configuration error", error=str(e))
    return EXIT_FAILURE


async def run_check(
    settings: Settings,
    reporter: Optional[Reporter] = None,
    kube_client_factory: Callable = create_kube_client,
    cancel: Optional[asyncio.Event] = None,
) -> int:
    """Run one network connection check.

    Args:
        settings: Validated check settings.
        reporter: Verdict sink, the Kuberhealthy reporter by default.
        kube_client_factory: Builds the Kubernetes client from a kubeconfig path.
        cancel: Cancellation signal, a fresh event wired to SIGINT/SIGTERM by default.

    Returns:
        The process exit code.
    """
    probe_config = settings.probe_config()
    namespace = read_namespace(settings.NAMESPACE_FILE)

    try:
        kube_client = kube_client_factory(settings.KUBECONFIG)
    except KubeClientError as e:
        logger.critical("Unable to create kubernetes client", error=str(e))
        return EXIT_FAILURE

    if reporter is None:
        reporter = KuberhealthyReporter(settings.KH_REPORTING_URL, settings.KH_RUN_UUID)

    if cancel is None:
        cancel = asyncio.Event()
    install_cancel_handlers(cancel)

    checker = NetworkConnectionChecker(
        probe_config, reporter, kube_client=kube_client, namespace=namespace
    )
    try:
        await wait_for_kuberhealthy(settings.KH_REPORTING_URL, probe_config.deadline, cancel=cancel)
        verdict = await checker.run(cancel)
    except ReportingError as e:
        logger.error(
            "Error running network connection check",
            target=settings.CONNECTION_TARGET,
            error=str(e),
        )
        return EXIT_FAILURE
    finally:
        remove_cancel_handlers()

    logger.info(
        "Done running network connection check",
        target=settings.CONNECTION_TARGET,
        verdict=verdict.kind,
    )
    return EXIT_OK


def main() -> None:
    """Console script entry point."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        # Defaults only: the environment could not be validated.
        configure_logging(Settings.model_construct())
        sys.exit(asyncio.run(report_configuration_error(e)))

    configure_logging(settings)
    sys.exit(asyncio.run(run_check(settings)))


if __name__ == "__main__":
    main()
