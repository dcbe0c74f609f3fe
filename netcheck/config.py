"""Check configuration management via pydantic-settings.

Load the network connection check parameters from environment variables
and/or a `.env` file. Kuberhealthy injects the reporting endpoint, run UUID
and run deadline into the check pod; the check's own behavior is driven by
`CONNECTION_TARGET` and `CONNECTION_TARGET_UNREACHABLE`.
"""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from netcheck.core.logging_config import get_logger
from netcheck.core.types import (
    DEADLINE_SAFETY_MARGIN,
    DEFAULT_CHECK_TIMEOUT,
    ProbeConfig,
)

logger = get_logger(__name__)

DEFAULT_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"

# Accepted spellings, matching Go's strconv.ParseBool.
_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class ConfigurationError(Exception):
    """Raised when the environment cannot produce a runnable check."""


class KuberhealthySettings(BaseSettings):
    """Values Kuberhealthy injects into every check pod.

    Kept separate from `Settings` so a failure can still be reported when the
    check's own variables are invalid.

    Attributes:
        KH_REPORTING_URL: Endpoint receiving the check report.
        KH_RUN_UUID: Identifier of this run, echoed back in the report.
        KH_CHECK_RUN_DEADLINE: Unix timestamp (seconds) the run must finish by.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    KH_REPORTING_URL: Optional[str] = None
    KH_RUN_UUID: Optional[str] = None
    KH_CHECK_RUN_DEADLINE: Optional[int] = None

    @field_validator("KH_REPORTING_URL", "KH_RUN_UUID", "KH_CHECK_RUN_DEADLINE", mode="before")
    @classmethod
    def empty_as_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def run_deadline(self) -> Optional[datetime]:
        """The orchestrator deadline as an aware datetime, if one was supplied."""
        if self.KH_CHECK_RUN_DEADLINE is None:
            return None
        return datetime.fromtimestamp(self.KH_CHECK_RUN_DEADLINE, tz=timezone.utc)


class Settings(KuberhealthySettings):
    """Network connection check settings.

    Attributes:
        CONNECTION_TARGET: Network target, optionally prefixed with "proto://".
        CONNECTION_TARGET_UNREACHABLE: Treat an unreachable target as passing.
        KUBECONFIG: Optional kubeconfig path; in-cluster config otherwise.
        NAMESPACE_FILE: Service account namespace file.
        ENVIRONMENT: Selects JSON (staging/production) or console logs.
        LOG_LEVEL: Minimum logging verbosity level.
        LOGGING_NOISY_MODULES: Libraries held at WARNING.
    """

    # ==========================================================================
    # CHECK PARAMETERS
    # ==========================================================================
    CONNECTION_TARGET: str = Field(min_length=1)
    CONNECTION_TARGET_UNREACHABLE: bool = False

    # ==========================================================================
    # CLUSTER ACCESS
    # ==========================================================================
    KUBECONFIG: Optional[str] = None
    NAMESPACE_FILE: str = DEFAULT_NAMESPACE_FILE

    # ==========================================================================
    # ENVIRONMENT & LOGGING
    # ==========================================================================
    ENVIRONMENT: Literal["development", "staging", "production"] = "production"
    LOG_LEVEL: Literal["debug", "info", "warning", "error", "critical"] = "info"
    LOGGING_NOISY_MODULES: list[str] = [
        "httpx",
        "httpcore",
        "kubernetes",
        "urllib3",
        "asyncio",
    ]

    @field_validator("CONNECTION_TARGET_UNREACHABLE", mode="before")
    @classmethod
    def parse_unreachable_flag(cls, v):
        """Parse the flag with Go's ParseBool vocabulary.

        An empty value keeps the default. Anything outside the vocabulary is a
        configuration error.

        Raises:
            ValueError: If the value is not a recognised boolean spelling.
        """
        if isinstance(v, bool):
            return v
        text = str(v)
        if text == "":
            return False
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValueError(f"CONNECTION_TARGET_UNREACHABLE could not be parsed: {text!r}")

    @field_validator("KUBECONFIG", mode="before")
    @classmethod
    def empty_kubeconfig_as_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def probe_config(self, now: Optional[datetime] = None) -> ProbeConfig:
        """Build the immutable configuration for one check run.

        The effective deadline is the orchestrator deadline minus the safety
        margin. Without an orchestrator deadline the default timeout applies.

        Args:
            now: Reference time, defaults to the current UTC time.

        Returns:
            The run's ProbeConfig.
        """
        now = now or datetime.now(timezone.utc)
        run_deadline = self.run_deadline
        if run_deadline is None:
            logger.info("No check deadline supplied, using default timeout",
                        timeout=DEFAULT_CHECK_TIMEOUT.total_seconds())
            deadline = now + DEFAULT_CHECK_TIMEOUT
        else:
            deadline = run_deadline - DEADLINE_SAFETY_MARGIN

        logger.info("Check time limit set", seconds=(deadline - now).total_seconds())
        return ProbeConfig(
            target=self.CONNECTION_TARGET,
            invert_success=self.CONNECTION_TARGET_UNREACHABLE,
            deadline=deadline,
        )


def read_namespace(path: str = DEFAULT_NAMESPACE_FILE) -> str:
    """Read the pod namespace from the service account mount.

    Args:
        path: Namespace file location.

    Returns:
        The stripped namespace, or an empty string when the file is unreadable.
    """
    try:
        with open(path, "r") as f:
            namespace = f.read().strip()
    except OSError as e:
        logger.warning("Failed to open namespace file", path=path, error=str(e))
        return ""

    if namespace:
        logger.info("Found pod namespace", namespace=namespace)
    return namespace


# ==============================================================================
# DEPENDENCY INJECTION
# ==============================================================================


@lru_cache()
def get_settings() -> Settings:
    """Return a cached singleton instance of the check settings.

    Raises:
        ConfigurationError: If required variables are missing or malformed.
    """
    try:
        return Settings()
    except (ValidationError, SettingsError) as e:
        raise ConfigurationError(describe_validation_error(e)) from e


def describe_validation_error(error: Exception) -> str:
    """Flatten a settings error into one log/report line."""
    if not isinstance(error, ValidationError):
        return str(error)
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "settings"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)
