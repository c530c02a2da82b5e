"""
IP endpoints for senders and receivers.

Receiver lists come from configuration text such as
``"192.168.1.50, 192.168.1.51:6455 nodes.local"``. Parsing is all-or-nothing:
one bad entry rejects the whole list. Host names are resolved to IPv4
addresses while parsing, so an unknown name is a configuration error and
the send path never does a DNS lookup.
"""

from __future__ import annotations

import ipaddress
import re
import socket
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from dmxlink.core.exceptions import AddressError

_ENTRY_SEPARATOR = re.compile(r"[,\s]+")
_HOSTNAME_LABEL = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")
_NUMERIC_HOST = re.compile(r"^[0-9.]+$")

# (host, port) -> IPv4 address text
Resolver = Callable[[str, int], str]


@dataclass(frozen=True)
class AddressNode:
    """One IP endpoint. ``host`` is None for a wildcard local endpoint."""

    host: Optional[str] = None
    port: int = 0

    @property
    def resolved(self) -> bool:
        return self.host is not None and self.port > 0

    def as_tuple(self) -> Tuple[str, int]:
        """Socket address for ``bind``/``sendto``."""
        return (self.host or "0.0.0.0", self.port)

    @classmethod
    def from_string(cls, entry: str, default_port: int) -> "AddressNode":
        """Parse ``host[:port]``; a missing port falls back to ``default_port``."""
        text = entry.strip()
        if not text:
            raise AddressError(entry, "empty entry")

        host, sep, port_text = text.partition(":")
        if sep:
            # str.isdigit() alone accepts digits int() rejects, e.g. "²"
            if not (port_text.isascii() and port_text.isdigit()):
                raise AddressError(entry, f"port '{port_text}' is not a number")
            port = int(port_text)
            if not 1 <= port <= 65535:
                raise AddressError(entry, f"port {port} out of range (1-65535)")
        else:
            port = default_port

        _validate_host(entry, host)
        return cls(host=host, port=port)

    @classmethod
    def from_socket(cls, sock: socket.socket) -> "AddressNode":
        """Endpoint a bound socket actually got from the OS."""
        host, port = sock.getsockname()[:2]
        return cls(host=host, port=port)

    def __str__(self) -> str:
        return f"{self.host or '*'}:{self.port}"


def _validate_host(entry: str, host: str) -> None:
    if not host:
        raise AddressError(entry, "missing host")

    if _NUMERIC_HOST.match(host):
        try:
            ipaddress.IPv4Address(host)
        except ValueError:
            raise AddressError(entry, f"'{host}' is not a valid IPv4 address")
        return

    labels = host.rstrip(".").split(".")
    if len(host) > 253 or not all(_HOSTNAME_LABEL.match(label) for label in labels):
        raise AddressError(entry, f"'{host}' is not a valid host name")


def resolve_ipv4(host: str, port: int) -> str:
    """
    Look up the IPv4 address of a host name.

    Raises:
        AddressError: the name does not resolve
    """
    try:
        infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_DGRAM)
    except (socket.gaierror, UnicodeError) as e:
        raise AddressError(host, f"could not resolve host name ({e})")
    if not infos:
        raise AddressError(host, "host name has no IPv4 address")
    return infos[0][4][0]


def resolve_node(node: AddressNode, resolver: Optional[Resolver] = resolve_ipv4) -> AddressNode:
    """Replace a host name by its IPv4 address; literals pass through."""
    if node.host is None or resolver is None or _NUMERIC_HOST.match(node.host):
        return node
    return AddressNode(host=resolver(node.host, node.port), port=node.port)


def parse_address_list(
    text: str,
    default_port: int,
    resolver: Optional[Resolver] = resolve_ipv4,
) -> Tuple[AddressNode, ...]:
    """
    Parse a delimited receiver list.

    Args:
        text: entries separated by commas and/or whitespace
        default_port: port used for entries without one
        resolver: maps host names to IPv4 addresses; None keeps names as given

    Returns:
        Receivers in configuration order

    Raises:
        AddressError: list is empty, any entry is malformed or a host name
            does not resolve
    """
    stripped = (text or "").strip().strip(",").strip()
    if not stripped:
        raise AddressError("", "Could not initialize sender (address not set)")

    entries = _ENTRY_SEPARATOR.split(stripped)
    # Validate every entry before any lookup
    nodes = [AddressNode.from_string(entry, default_port) for entry in entries]
    return tuple(resolve_node(node, resolver) for node in nodes)
