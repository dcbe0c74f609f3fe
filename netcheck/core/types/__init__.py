# netcheck/core/types/__init__.py
"""
Public API for the check's type system.

Internal enums and helpers remain private to their modules.
"""

# ═══════════════════════════════════════════════════════════════════════════
# 1. BASE MODEL
# ═══════════════════════════════════════════════════════════════════════════
from .base import CanonicalModel

# ═══════════════════════════════════════════════════════════════════════════
# 2. PROBE INPUTS AND VERDICTS
# ═══════════════════════════════════════════════════════════════════════════
from .verdict import (
    # Constants
    TIMEOUT_ERROR_MESSAGE,
    CANCELLED_MESSAGE,
    DEFAULT_CHECK_TIMEOUT,
    DEADLINE_SAFETY_MARGIN,

    # Inputs
    ProbeTarget,
    ProbeConfig,

    # Verdict variants
    Success,
    Failure,
    TimedOut,
    Cancelled,

    # Unions
    ProbeResult,
    Verdict,
)

__all__ = [
    "CanonicalModel",
    "TIMEOUT_ERROR_MESSAGE",
    "CANCELLED_MESSAGE",
    "DEFAULT_CHECK_TIMEOUT",
    "DEADLINE_SAFETY_MARGIN",
    "ProbeTarget",
    "ProbeConfig",
    "Success",
    "Failure",
    "TimedOut",
    "Cancelled",
    "ProbeResult",
    "Verdict",
]
