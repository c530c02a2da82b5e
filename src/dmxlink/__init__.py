"""
dmxlink: DMX512 over Ethernet

Streams DMX universes to ArtNet and sACN nodes over UDP, with change
detection, burst repeats, heartbeat refresh and self-healing sockets.
"""

__version__ = "0.1.0"
__author__ = "dmxlink contributors"

from dmxlink.core.config import LinkConfig, Settings, TimingConfig
from dmxlink.link.bridge import DmxBridge

__all__ = [
    "DmxBridge",
    "LinkConfig",
    "Settings",
    "TimingConfig",
    "__version__",
]
