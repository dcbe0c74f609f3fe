"""Shared base model for the check's domain types.

All values that flow through the check (targets, configuration, verdicts)
are immutable once built, so they share a single frozen pydantic base.
"""

from pydantic import BaseModel, ConfigDict


class CanonicalModel(BaseModel):
    """A base model providing shared configuration for all domain structures.

    Configuration:
        frozen: Prevents modification after creation.
        extra: Rejects unknown fields.

    Strings are not stripped: targets are passed to the dialer exactly as
    configured.
    """
    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
    )
