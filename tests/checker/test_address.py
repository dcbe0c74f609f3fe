"""Connection target parsing test suite."""
import pytest

from netcheck.checker.address import split_address, split_host_port


@pytest.mark.parametrize("raw, protocol, host_port", [
    ("tcp://10.0.0.1:9", "tcp", "10.0.0.1:9"),
    ("udp://10.0.0.1:53", "udp", "10.0.0.1:53"),
    ("tcp6://[::1]:443", "tcp6", "[::1]:443"),
    ("udp://a://b", "udp", "a://b"),
])
def test_split_address_with_scheme(raw, protocol, host_port):
    """Verify the scheme becomes the transport protocol and the rest the address."""
    target = split_address(raw)
    assert target.transport_protocol == protocol
    assert target.host_port == host_port


@pytest.mark.parametrize("raw", ["example.com:80", "10.0.0.1:9", "not an address", ""])
def test_split_address_defaults_to_tcp(raw):
    """Verify targets without a scheme dial over TCP unchanged."""
    target = split_address(raw)
    assert target.transport_protocol == "tcp"
    assert target.host_port == raw


def test_split_address_result_is_frozen():
    target = split_address("example.com:80")
    with pytest.raises(Exception):
        target.host_port = "other:1"


@pytest.mark.parametrize("host_port, expected", [
    ("example.com:80", ("example.com", "80")),
    ("10.0.0.1:9", ("10.0.0.1", "9")),
    ("[::1]:443", ("::1", "443")),
    (":8080", ("", "8080")),
    ("example.com:http", ("example.com", "http")),
    ("127.0.0.1:0", ("127.0.0.1", "0")),
    ("127.0.0.1:65535", ("127.0.0.1", "65535")),
])
def test_split_host_port(host_port, expected):
    assert split_host_port(host_port) == expected


@pytest.mark.parametrize("host_port, message", [
    ("example.com", "missing port in address"),
    ("example.com:", "missing port in address"),
    ("::1:80", "too many colons in address"),
    ("[::1]", "missing port in address"),
    ("[::1:80", "missing ']' in address"),
    ("127.0.0.1:99999", "invalid port"),
    ("127.0.0.1:65536", "invalid port"),
    ("127.0.0.1:-1", "invalid port"),
    ("[::1]:70000", "invalid port"),
])
def test_split_host_port_rejects_malformed(host_port, message):
    with pytest.raises(ValueError, match=message):
        split_host_port(host_port)
