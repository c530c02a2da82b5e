"""Core system components for dmxlink."""

from dmxlink.core.state import LinkHealth, LinkState, SendTimingState, StatusDetail
from dmxlink.core.config import LinkConfig, Settings, TimingConfig
from dmxlink.core.exceptions import (
    DmxLinkError,
    ConfigError,
    AddressError,
    UniverseRangeError,
    LinkError,
    SocketOpenError,
    SocketSendError,
    EncodingError,
    PayloadSizeError,
    PacketFormatError,
)

__all__ = [
    "LinkHealth",
    "LinkState",
    "SendTimingState",
    "StatusDetail",
    "LinkConfig",
    "Settings",
    "TimingConfig",
    "DmxLinkError",
    "ConfigError",
    "AddressError",
    "UniverseRangeError",
    "LinkError",
    "SocketOpenError",
    "SocketSendError",
    "EncodingError",
    "PayloadSizeError",
    "PacketFormatError",
]
