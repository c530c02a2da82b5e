"""Link management: sockets, send scheduling and status reporting."""

from dmxlink.link.bridge import DmxBridge, create_codec
from dmxlink.link.runner import LinkRunner
from dmxlink.link.scheduler import TransmissionScheduler
from dmxlink.link.session import LinkSession
from dmxlink.link.status import LinkStatus, LoggingStatusSink, StatusKind, StatusSink

__all__ = [
    "DmxBridge",
    "create_codec",
    "LinkRunner",
    "TransmissionScheduler",
    "LinkSession",
    "LinkStatus",
    "LoggingStatusSink",
    "StatusKind",
    "StatusSink",
]
