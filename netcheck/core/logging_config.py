"""Logging configuration for the network connection check.

Every line the check writes goes through one stdlib handler on stdout,
rendered by structlog:

    - `get_logging_config`: dictConfig for the root logger and the
      third-party modules that are kept at WARNING.
    - `configure_structlog_wrapper`: structlog's logger factory and
      processor chain.
    - `bound_contextvars`: tags the log lines of one run with its target and
      namespace.
"""

from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from netcheck.config import Settings

# Environments whose output is collected by the cluster log pipeline.
JSON_ENVIRONMENTS = ("production", "staging")


def get_common_processors() -> list[Processor]:
    """Processors shared by structlog loggers and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]


def select_renderer(environment: str) -> Processor:
    """JSON lines for the cluster, colored console output anywhere else."""
    if environment.lower() in JSON_ENVIRONMENTS:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def get_logging_config(settings: "Settings") -> dict[str, Any]:
    """Build the `logging.config.dictConfig` dictionary for the check.

    Only reads LOG_LEVEL, ENVIRONMENT and LOGGING_NOISY_MODULES, so settings
    built with `Settings.model_construct()` are enough when the environment
    failed validation.
    """
    log_level = settings.LOG_LEVEL.upper()
    quiet = {
        module: {"level": "WARNING", "propagate": True}
        for module in settings.LOGGING_NOISY_MODULES
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "check": {
                "()": "structlog.stdlib.ProcessorFormatter",
                "processor": select_renderer(settings.ENVIRONMENT),
                "foreign_pre_chain": get_common_processors(),
            },
        },
        "handlers": {
            "stdout": {
                "level": log_level,
                "class": "logging.StreamHandler",
                "formatter": "check",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "": {"handlers": ["stdout"], "level": log_level},
            **quiet,
        },
    }


def configure_structlog_wrapper() -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *get_common_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, named after the calling module by convention."""
    return structlog.get_logger(name) if name else structlog.get_logger()


bound_contextvars = structlog.contextvars.bound_contextvars
