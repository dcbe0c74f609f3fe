"""Single-attempt connectivity probe.

Dial the configured target once, close the connection straight away and
describe the outcome as a `Success` or `Failure`. Nothing here retries and
nothing here raises for network errors: the race coordinator only ever sees
data.

For UDP a successful "connection" only proves a socket could be created and
associated with the remote address; no datagram is exchanged.
"""

import asyncio
import ipaddress
import socket
from typing import Optional

from netcheck.checker.address import split_address, split_host_port
from netcheck.core.logging_config import get_logger
from netcheck.core.types import Failure, ProbeResult, Success

logger = get_logger(__name__)

# transport protocol -> (address family, socket type)
NETWORKS = {
    "tcp": (socket.AF_UNSPEC, socket.SOCK_STREAM),
    "tcp4": (socket.AF_INET, socket.SOCK_STREAM),
    "tcp6": (socket.AF_INET6, socket.SOCK_STREAM),
    "udp": (socket.AF_UNSPEC, socket.SOCK_DGRAM),
    "udp4": (socket.AF_INET, socket.SOCK_DGRAM),
    "udp6": (socket.AF_INET6, socket.SOCK_DGRAM),
}


class _Connection:
    """An established probe connection that only needs closing."""

    def __init__(self, writer: Optional[asyncio.StreamWriter] = None,
                 transport: Optional[asyncio.BaseTransport] = None):
        self._writer = writer
        self._transport = transport

    async def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            await self._writer.wait_closed()
        if self._transport is not None:
            self._transport.close()


def local_bind_address(connection_target: str) -> Optional[tuple[str, int]]:
    """Local address to bind before dialing, if any.

    Only a raw target that is itself an IP literal yields a bind address, in
    which case that IP is bound with an ephemeral port. Every other target
    dials without binding.
    """
    try:
        ip = ipaddress.ip_address(connection_target)
    except ValueError:
        return None
    return (str(ip), 0)


def describe_error(error: BaseException) -> str:
    """Render a dial error the way it appears in check reports."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return "i/o timeout"
    text = str(error)
    return text or type(error).__name__


async def dial(network: str, host_port: str, timeout: float,
               local_addr: Optional[tuple[str, int]] = None) -> _Connection:
    """Open one connection to host_port over the given network.

    Raises:
        ValueError: Unknown network or malformed address, including a port
            outside 0-65535.
        OSError: The connection could not be established.
        asyncio.TimeoutError: The attempt exceeded `timeout` seconds.
    """
    try:
        family, sock_type = NETWORKS[network]
    except KeyError:
        raise ValueError(f"unknown network {network}") from None

    host, port = split_host_port(host_port)
    remote_port = int(port) if port.isdigit() else port
    remote_host = host or None

    if sock_type == socket.SOCK_STREAM:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(
                remote_host, remote_port, family=family, local_addr=local_addr
            ),
            timeout=timeout,
        )
        return _Connection(writer=writer)

    loop = asyncio.get_running_loop()
    transport, _ = await asyncio.wait_for(
        loop.create_datagram_endpoint(
            asyncio.DatagramProtocol,
            remote_addr=(remote_host or "localhost", remote_port),
            family=family,
            local_addr=local_addr,
        ),
        timeout=timeout,
    )
    return _Connection(transport=transport)


async def probe_connection(connection_target: str, timeout: float) -> ProbeResult:
    """Dial `connection_target` once and close the connection.

    Args:
        connection_target: Raw target, optionally prefixed with "proto://".
        timeout: Upper bound for the dial, in seconds.

    Returns:
        Success when both the dial and the close succeed, otherwise a Failure
        whose reason names the target and the transport error.
    """
    target = split_address(connection_target)
    network, host_port = target.transport_protocol, target.host_port

    try:
        conn = await dial(
            network, host_port, timeout,
            local_addr=local_bind_address(connection_target),
        )
    except (OSError, ValueError, OverflowError, asyncio.TimeoutError) as e:
        message = (
            f"Network connection check determined that {connection_target} is DOWN: "
            f"dial {network} {host_port}: {describe_error(e)}"
        )
        logger.error(message)
        return Failure(reason=message)

    try:
        await conn.close()
    except OSError as e:
        logger.error("Failed to close probe connection", target=connection_target, error=str(e))
        return Failure(reason=describe_error(e))

    logger.debug("Probe connection established and closed", target=connection_target)
    return Success()
