"""Test configuration and shared fixtures.

Provide isolated settings, loopback network endpoints and a recording reporter
so the suite runs without a cluster, Kuberhealthy or outside network access.
"""
import os
import socket
from datetime import datetime, timedelta, timezone
from typing import Generator
from unittest import mock

import pytest

from netcheck.core.types import ProbeConfig

# ==============================================================================
# ENVIRONMENT FIXTURES
# ==============================================================================

@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Run the test with an empty process environment."""
    with mock.patch.dict(os.environ, {}, clear=True):
        yield


@pytest.fixture
def namespace_file(tmp_path) -> str:
    """Provide a service account namespace file."""
    path = tmp_path / "namespace"
    path.write_text("kuberhealthy\n")
    return str(path)

# ==============================================================================
# NETWORK FIXTURES
# ==============================================================================

@pytest.fixture
def listening_port() -> Generator[int, None, None]:
    """Provide a loopback TCP port that accepts connections.

    The kernel completes the handshake from the listen backlog, no accept loop
    is needed.
    """
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(8)
    try:
        yield server.getsockname()[1]
    finally:
        server.close()


@pytest.fixture
def closed_port() -> int:
    """Provide a loopback TCP port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port

# ==============================================================================
# CHECK HELPERS
# ==============================================================================

class RecordingReporter:
    """Reporter double that records every verdict it receives."""

    def __init__(self):
        self.verdicts = []

    async def report(self, verdict) -> None:
        self.verdicts.append(verdict)


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def make_probe_config():
    """Build a ProbeConfig whose deadline is `seconds` from now."""
    def _make(target: str, invert_success: bool = False, seconds: float = 5.0) -> ProbeConfig:
        return ProbeConfig(
            target=target,
            invert_success=invert_success,
            deadline=datetime.now(timezone.utc) + timedelta(seconds=seconds),
        )
    return _make
