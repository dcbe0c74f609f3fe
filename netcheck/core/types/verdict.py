"""Defines the values exchanged between the check stages.

A run starts from a `ProbeConfig`, dials a `ProbeTarget` and ends with
exactly one `Verdict`. Verdicts form a discriminated union on `kind` so a
reporter can serialize any of them the same way.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, field_validator

from .base import CanonicalModel


TIMEOUT_ERROR_MESSAGE = (
    "Failed to complete network connection check in time! Timeout was reached."
)
CANCELLED_MESSAGE = "Cancelling check and shutting down due to interrupt."

DEFAULT_CHECK_TIMEOUT = timedelta(seconds=20)
DEADLINE_SAFETY_MARGIN = timedelta(seconds=5)


# ═══════════════════════════════════════════════════════════════════════════
# PROBE INPUTS
# ═══════════════════════════════════════════════════════════════════════════

class ProbeTarget(CanonicalModel):
    """A parsed connection target.

    Attributes:
        transport_protocol: Network name handed to the dialer ("tcp", "udp6", ...).
        host_port: Address part of the target, not validated.

    Example:
        >>> ProbeTarget(transport_protocol="udp", host_port="10.0.0.1:53")
    """
    transport_protocol: str = Field(description="Transport protocol for the dial")
    host_port: str = Field(description="host:port to dial")


class ProbeConfig(CanonicalModel):
    """Configuration for exactly one check run.

    Attributes:
        target: Raw connection target, optionally prefixed with "proto://".
        invert_success: Treat an unreachable target as a passing check.
        deadline: Absolute effective deadline (UTC). The safety margin has
            already been subtracted.
    """
    target: str = Field(min_length=1, description="Raw connection target")
    invert_success: bool = Field(default=False)
    deadline: datetime

    @field_validator("deadline")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Interpret naive deadlines as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def remaining(self, now: Optional[datetime] = None) -> float:
        """Seconds left until the deadline, never negative."""
        now = now or datetime.now(timezone.utc)
        return max(0.0, (self.deadline - now).total_seconds())


# ═══════════════════════════════════════════════════════════════════════════
# VERDICTS
# ═══════════════════════════════════════════════════════════════════════════

class _BaseVerdict(CanonicalModel):
    """Common accessors for all verdict variants."""

    @property
    def ok(self) -> bool:
        return False

    @property
    def errors(self) -> List[str]:
        reason = getattr(self, "reason", None)
        return [reason] if reason else []


class Success(_BaseVerdict):
    """The check passed."""
    kind: Literal["success"] = "success"

    @property
    def ok(self) -> bool:
        return True


class Failure(_BaseVerdict):
    """The dial (or the close after it) failed.

    Attributes:
        reason: Human readable diagnostic embedding the target and the
            transport error.
    """
    kind: Literal["failure"] = "failure"
    reason: str = Field(min_length=1)


class TimedOut(_BaseVerdict):
    """The deadline elapsed before the probe finished."""
    kind: Literal["timed_out"] = "timed_out"
    reason: str = TIMEOUT_ERROR_MESSAGE


class Cancelled(_BaseVerdict):
    """The run was interrupted from outside before the probe finished."""
    kind: Literal["cancelled"] = "cancelled"
    reason: str = CANCELLED_MESSAGE


ProbeResult = Union[Success, Failure]

Verdict = Annotated[
    Union[Success, Failure, TimedOut, Cancelled],
    Field(discriminator="kind"),
]
