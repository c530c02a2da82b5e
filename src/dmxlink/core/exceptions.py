"""
Custom Exceptions for dmxlink.

Provides a hierarchy of exceptions for configuration, link and encoding
failures so callers can decide between reporting, retrying and failing loudly.
"""

from __future__ import annotations

from typing import Optional


class DmxLinkError(Exception):
    """Base exception for all dmxlink errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(DmxLinkError):
    """Base exception for configuration errors.

    A link with a configuration error stays offline until it is reconfigured.
    """

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class AddressError(ConfigError):
    """Invalid or missing receiver/local address."""

    def __init__(self, entry: str, reason: str):
        if entry:
            super().__init__(f"Invalid address '{entry}': {reason}")
        else:
            super().__init__(reason)
        self.entry = entry
        self.reason = reason


class UniverseRangeError(ConfigError):
    """Universe id outside the range the protocol allows."""

    def __init__(self, universe: int, minimum: int, maximum: int):
        super().__init__(
            f"Universe {universe} out of range ({minimum}-{maximum})"
        )
        self.universe = universe
        self.minimum = minimum
        self.maximum = maximum


# =============================================================================
# Link Errors
# =============================================================================


class LinkError(DmxLinkError):
    """Base exception for socket level failures on a link."""
    pass


class SocketOpenError(LinkError):
    """Failed to bind the local socket or to probe the first receiver."""

    def __init__(self, node: Optional[str], reason: str):
        node_str = node or "ephemeral endpoint"
        super().__init__(
            f"Could not open UDP socket on {node_str}: {reason}",
            recoverable=True,
        )
        self.node = node
        self.reason = reason


class SocketSendError(LinkError):
    """Error while sending a packet to one receiver."""

    def __init__(self, receiver: str, reason: str):
        super().__init__(f"Could not send to {receiver}: {reason}", recoverable=True)
        self.receiver = receiver
        self.reason = reason


# =============================================================================
# Encoding Errors
# =============================================================================


class EncodingError(DmxLinkError):
    """Base exception for packet encoding/decoding errors."""
    pass


class PayloadSizeError(EncodingError):
    """Channel payload larger than the protocol allows."""

    def __init__(self, size: int, maximum: int):
        super().__init__(
            f"DMX payload too large: {size} bytes (max {maximum})",
            recoverable=False,
        )
        self.size = size
        self.maximum = maximum


class PacketFormatError(EncodingError):
    """Raw bytes do not form a valid packet for the protocol."""

    def __init__(self, protocol: str, reason: str):
        super().__init__(f"Malformed {protocol} packet: {reason}", recoverable=False)
        self.protocol = protocol
