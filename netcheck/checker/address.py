"""Connection target parsing."""

from netcheck.core.types import ProbeTarget

SCHEME_SEPARATOR = "://"
DEFAULT_TRANSPORT = "tcp"
MAX_PORT = 65535


def split_address(full_address: str) -> ProbeTarget:
    """Split a target into its transport protocol and host:port.

    "udp://10.0.0.1:53" yields ("udp", "10.0.0.1:53"); a target without a
    scheme defaults to TCP. The host:port part is not validated here, a
    malformed address surfaces as a dial failure.
    """
    protocol, sep, host_port = full_address.partition(SCHEME_SEPARATOR)
    if sep:
        return ProbeTarget(transport_protocol=protocol, host_port=host_port)
    return ProbeTarget(transport_protocol=DEFAULT_TRANSPORT, host_port=full_address)


def split_host_port(host_port: str) -> tuple[str, str]:
    """Split "host:port" or "[ipv6]:port" into host and port.

    Raises:
        ValueError: If the port is missing or out of range, or the host part is
            ambiguous.
    """
    if host_port.startswith("["):
        end = host_port.find("]")
        if end < 0:
            raise ValueError(f"address {host_port}: missing ']' in address")
        host, rest = host_port[1:end], host_port[end + 1:]
        if not rest.startswith(":"):
            raise ValueError(f"address {host_port}: missing port in address")
        port = rest[1:]
    else:
        host, sep, port = host_port.rpartition(":")
        if not sep:
            raise ValueError(f"address {host_port}: missing port in address")
        if ":" in host:
            raise ValueError(f"address {host_port}: too many colons in address")

    if not port:
        raise ValueError(f"address {host_port}: missing port in address")
    if port.lstrip("+-").isdigit() and not 0 <= int(port) <= MAX_PORT:
        raise ValueError(f"address {host_port}: invalid port")
    return host, port
